"""Feed connection manager with bounded reconnect."""

import asyncio
import json
from collections.abc import AsyncIterator, Awaitable, Callable
from typing import Any

import structlog
from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import InvalidURI, WebSocketException
from websockets.uri import parse_uri

from ..core.errors import ConnectError, MaxRetriesExceeded, NotConnectedError
from ..core.interfaces import Connector, Transport
from ..core.types import Connection, ConnectionState

logger = structlog.get_logger(__name__)

DEFAULT_CHANNEL = "DiscoverLpChannel"


def subscribe_message(channel: str) -> dict[str, str]:
    """Build the subscribe control message for a named channel."""
    return {
        "command": "subscribe",
        "identifier": json.dumps({"channel": channel}),
    }


class ConnectionManager:
    """Owns a single subscription to the remote feed.

    The manager drives the lifecycle
    ``IDLE -> CONNECTING -> OPEN -> CLOSING -> CLOSED`` and moves to
    ``RECONNECTING`` on an unexpected close or error. Reconnects wait a fixed
    interval. The first open is not a reconnect: with
    ``max_reconnect_attempts=N`` the transport is opened at most ``N + 1``
    times in a row before the connection is closed for good and
    ``MaxRetriesExceeded`` is raised from ``frames()``. A successful open and
    subscribe resets the counter.

    Callers consume inbound frames through ``frames()`` and transmit through
    ``send()``; the underlying transport is never handed out.
    """

    def __init__(
        self,
        endpoint: str,
        channel: str = DEFAULT_CHANNEL,
        reconnect_interval_seconds: float = 5.0,
        max_reconnect_attempts: int = 10,
        open_timeout_seconds: float = 10.0,
        origin: str | None = None,
        connector: Connector | None = None,
        sleep: Callable[[float], Awaitable[Any]] | None = None,
    ) -> None:
        """Initialize connection manager.

        Args:
            endpoint: Feed WebSocket URL
            channel: Channel name sent in the subscribe message
            reconnect_interval_seconds: Fixed delay before each reconnect
            max_reconnect_attempts: Reconnects allowed before giving up
            open_timeout_seconds: Handshake timeout
            origin: Optional Origin header for the handshake
            connector: Optional transport factory (for testing)
            sleep: Optional sleep coroutine used for backoff (for testing)
        """
        self.channel = channel
        self.open_timeout_seconds = open_timeout_seconds
        self.origin = origin
        self._connector = connector or ws_connect
        self._sleep = sleep or asyncio.sleep

        self.connection = Connection(
            endpoint=endpoint,
            max_reconnect_attempts=max_reconnect_attempts,
            reconnect_interval_seconds=reconnect_interval_seconds,
        )

        self._transport: Transport | None = None
        self._reconnect_timer: asyncio.Task | None = None
        self._closing = False
        self.reconnects = 0

    @property
    def endpoint(self) -> str:
        return self.connection.endpoint

    @property
    def state(self) -> ConnectionState:
        return self.connection.state

    @property
    def attempts(self) -> int:
        return self.connection.attempts

    @property
    def is_open(self) -> bool:
        return self.connection.state is ConnectionState.OPEN

    def _set_state(self, state: ConnectionState) -> None:
        previous = self.connection.state
        if previous is state:
            return
        self.connection.state = state
        logger.debug(
            "Connection state changed",
            endpoint=self.endpoint,
            previous=previous.value,
            state=state.value,
        )

    def _validate_endpoint(self) -> None:
        try:
            uri = parse_uri(self.endpoint)
        except (InvalidURI, ValueError) as e:
            raise ConnectError(f"Malformed endpoint {self.endpoint!r}: {e}") from e
        if not uri.host:
            raise ConnectError(f"Malformed endpoint {self.endpoint!r}: missing host")

    async def open(self) -> Connection:
        """Establish the transport and subscribe to the channel.

        Returns:
            The connection record, in state OPEN

        Raises:
            ConnectError: If the endpoint is malformed, a connect attempt is
                already pending, the connection was closed, or the transport
                could not be created
        """
        if self._closing or self.state is ConnectionState.CLOSED:
            raise ConnectError("Connection is closed")
        if self.state is ConnectionState.CONNECTING:
            raise ConnectError("A connect attempt is already pending")
        if self.state is ConnectionState.OPEN:
            return self.connection

        self._validate_endpoint()
        self._set_state(ConnectionState.CONNECTING)

        kwargs: dict[str, Any] = {}
        if self.origin:
            kwargs["origin"] = self.origin

        try:
            transport = await asyncio.wait_for(
                self._connector(self.endpoint, **kwargs),
                timeout=self.open_timeout_seconds,
            )
        except (OSError, asyncio.TimeoutError, WebSocketException) as e:
            if not self._closing:
                self._set_state(ConnectionState.IDLE)
            raise ConnectError(f"Failed to connect to {self.endpoint}: {e!r}") from e

        if self._closing:
            # close() ran while the handshake was in flight
            await self._release(transport)
            raise ConnectError("Connection closed during handshake")

        self._transport = transport
        try:
            await self._on_open()
        except (OSError, WebSocketException) as e:
            await self._drop_transport()
            raise ConnectError(f"Failed to subscribe to {self.channel}: {e!r}") from e
        return self.connection

    async def _on_open(self) -> None:
        self._set_state(ConnectionState.OPEN)
        logger.info("Connected to feed", endpoint=self.endpoint, channel=self.channel)
        await self.send(subscribe_message(self.channel))
        # Attempts reset only once the subscription is on the wire
        self.connection.attempts = 0
        self.connection.last_error = None
        logger.info("Subscribed to channel", channel=self.channel)

    def _on_message(self, raw: str | bytes) -> str:
        if isinstance(raw, bytes):
            return raw.decode("utf-8", errors="replace")
        return raw

    def _on_close(self) -> None:
        logger.warning("Feed connection closed unexpectedly", endpoint=self.endpoint)
        self.connection.last_error = "connection closed"

    def _on_error(self, cause: BaseException) -> None:
        logger.error(
            "Feed connection error", endpoint=self.endpoint, error=repr(cause)
        )
        self.connection.last_error = repr(cause)

    async def send(self, payload: dict[str, Any]) -> None:
        """Serialize and transmit a control message.

        Args:
            payload: JSON-serializable message

        Raises:
            NotConnectedError: If the connection is not OPEN
        """
        if self.state is not ConnectionState.OPEN or self._transport is None:
            raise NotConnectedError(
                f"Cannot send while connection is {self.state.value}"
            )
        await self._transport.send(json.dumps(payload))

    async def frames(self) -> AsyncIterator[str]:
        """Yield raw inbound frames in arrival order, reconnecting as needed.

        Ends when ``close()`` is called.

        Raises:
            MaxRetriesExceeded: When reconnect attempts are exhausted
        """
        while not self._closing:
            try:
                await self.open()
            except ConnectError as e:
                if self._closing:
                    break
                self._on_error(e)
            else:
                try:
                    async for raw in self._transport:
                        yield self._on_message(raw)
                except (OSError, WebSocketException) as e:
                    if not self._closing:
                        self._on_error(e)
                else:
                    if not self._closing:
                        self._on_close()
                finally:
                    await self._drop_transport()

            if self._closing:
                break

            self.connection.attempts += 1
            if self.connection.attempts > self.connection.max_reconnect_attempts:
                self._set_state(ConnectionState.CLOSED)
                logger.critical(
                    "Reconnect attempts exhausted",
                    endpoint=self.endpoint,
                    attempts=self.connection.max_reconnect_attempts,
                    last_error=self.connection.last_error,
                )
                raise MaxRetriesExceeded(
                    self.connection.max_reconnect_attempts,
                    self.connection.last_error,
                )

            await self._wait_before_reconnect()

        self._set_state(ConnectionState.CLOSED)

    async def _wait_before_reconnect(self) -> None:
        self._set_state(ConnectionState.RECONNECTING)
        self.reconnects += 1
        logger.warning(
            "Reconnecting to feed",
            endpoint=self.endpoint,
            attempt=self.connection.attempts,
            max_attempts=self.connection.max_reconnect_attempts,
            delay_seconds=self.connection.reconnect_interval_seconds,
        )
        self._reconnect_timer = asyncio.ensure_future(
            self._sleep(self.connection.reconnect_interval_seconds)
        )
        try:
            # asyncio.wait does not raise if close() cancels the timer
            await asyncio.wait({self._reconnect_timer})
        finally:
            if not self._reconnect_timer.done():
                self._reconnect_timer.cancel()
            self._reconnect_timer = None
        if not self._closing:
            self._set_state(ConnectionState.IDLE)

    async def _drop_transport(self) -> None:
        transport, self._transport = self._transport, None
        if transport is not None:
            await self._release(transport)
        if not self._closing:
            self._set_state(ConnectionState.IDLE)

    async def _release(self, transport: Transport) -> None:
        try:
            await transport.close()
        except (OSError, WebSocketException) as e:
            logger.debug("Error while closing transport", error=repr(e))

    async def close(self) -> None:
        """Close the connection, cancelling any pending reconnect."""
        if self.state is ConnectionState.CLOSED and self._transport is None:
            self._closing = True
            return

        self._closing = True
        self._set_state(ConnectionState.CLOSING)

        if self._reconnect_timer is not None and not self._reconnect_timer.done():
            self._reconnect_timer.cancel()

        transport, self._transport = self._transport, None
        if transport is not None:
            await self._release(transport)

        self._set_state(ConnectionState.CLOSED)
        logger.info("Feed connection closed", endpoint=self.endpoint)

    async def __aenter__(self) -> "ConnectionManager":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

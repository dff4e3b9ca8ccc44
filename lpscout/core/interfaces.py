"""Core interfaces for the token scout."""

from collections.abc import AsyncIterator
from typing import Any, Protocol, runtime_checkable

from .types import FilterDecision, MatchResult, TokenEvent


@runtime_checkable
class Transport(Protocol):
    """Bidirectional message transport (a WebSocket client connection)."""

    async def send(self, message: str) -> None:
        """Send a text message."""
        ...

    async def close(self) -> None:
        """Close the transport."""
        ...

    def __aiter__(self) -> AsyncIterator[str | bytes]:
        """Iterate over inbound messages until the transport closes."""
        ...


class Connector(Protocol):
    """Factory that opens a transport to an endpoint."""

    async def __call__(self, endpoint: str, **kwargs: Any) -> Transport:
        """Open a transport."""
        ...


class Filter(Protocol):
    """Token filter protocol."""

    def evaluate(self, event: TokenEvent) -> FilterDecision:
        """Evaluate a token event and return filter decision."""
        ...


class Reporter(Protocol):
    """Sink for admitted tokens."""

    async def report(self, match: MatchResult) -> None:
        """Report an admitted token."""
        ...


class AlertSink(Protocol):
    """Alert sink protocol."""

    async def push(self, message: str) -> None:
        """Push alert message."""
        ...

"""Telegram reporting and admin commands for the token scout."""

import asyncio
import html
from typing import Any, Protocol, runtime_checkable

import httpx
import structlog
from tenacity import (
    AsyncRetrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from ..core.interfaces import AlertSink, Reporter
from ..core.types import MatchResult

logger = structlog.get_logger(__name__)


@runtime_checkable
class StatusProvider(Protocol):
    """Protocol for status callback provider."""

    def get_status(self) -> dict[str, Any]:
        """Get current pipeline status."""
        ...


def format_match(match: MatchResult) -> str:
    """Render a match as a Telegram HTML message."""
    event = match.event
    score = match.score
    age = f"{score.age_hours:.2f}h" if score.age_hours is not None else "n/a"
    price = f"${event.price_usd:.8f}" if event.price_usd is not None else "n/a"

    return (
        f"🚀 <b>Trending Token: {html.escape(event.name)} "
        f"({html.escape(event.symbol)})</b>\n\n"
        f"Address: <code>{html.escape(event.token_address)}</code>\n"
        f"Twitter: {html.escape(event.social_handle or '')}\n"
        f"Price: {price}\n"
        f"Market cap: ${event.market_cap:,.2f}\n"
        f"Volume: ${event.volume:,.2f} "
        f"(vol/mcap {score.volume_mcap_ratio:.3f})\n"
        f"Buys/Sells: {event.buys}/{event.sells} "
        f"(ratio {score.buy_sell_ratio:.2f})\n"
        f"Pooled SOL: {event.pooled_liquidity:,.2f}\n"
        f"Top holders: {event.effective_top_holders_percent:.2f}%\n"
        f"LP burned: {event.lp_burned_percent:g}%\n"
        f"Age: {age}\n"
        f"Risk: {match.risk_level.value}"
    )


class TelegramReporter(Reporter, AlertSink):
    """Telegram-based reporter and alert sink."""

    def __init__(
        self,
        bot_token: str,
        admin_user_ids: list[int],
        session: httpx.AsyncClient | None = None,
        max_attempts: int = 3,
        retry_multiplier: float = 1.0,
    ) -> None:
        """Initialize Telegram reporter.

        Args:
            bot_token: Telegram bot token
            admin_user_ids: List of admin user IDs to send alerts to
            session: Optional HTTP session for requests
            max_attempts: Send attempts per message on network errors
            retry_multiplier: Base delay in seconds for exponential backoff
        """
        self.bot_token = bot_token
        self.admin_user_ids = admin_user_ids
        self.session = session or httpx.AsyncClient(timeout=30.0)
        self.base_url = f"https://api.telegram.org/bot{bot_token}"
        self.max_attempts = max_attempts
        self.retry_multiplier = retry_multiplier

        logger.info("Telegram reporter initialized", admin_count=len(admin_user_ids))

    async def report(self, match: MatchResult) -> None:
        """Send an admitted token to all admin users."""
        await self.push(format_match(match))

    async def push(self, message: str) -> None:
        """Push alert message to all admin users.

        Args:
            message: Alert message to send
        """
        if not self.admin_user_ids:
            logger.warning("No admin users configured, skipping alert")
            return

        success_count = 0
        for user_id in self.admin_user_ids:
            try:
                await self._send_message(user_id, message)
                success_count += 1
                logger.debug("Alert sent to admin", user_id=user_id)
            except Exception as e:
                logger.error(
                    "Failed to send alert to admin", user_id=user_id, error=str(e)
                )

        logger.info(
            "Alert push completed",
            total_admins=len(self.admin_user_ids),
            success_count=success_count,
        )

    async def _send_message(self, chat_id: int, text: str) -> None:
        """Send message to specific chat ID, retrying network errors.

        Args:
            chat_id: Telegram chat ID
            text: Message text
        """
        url = f"{self.base_url}/sendMessage"
        data = {"chat_id": chat_id, "text": text, "parse_mode": "HTML"}

        retrying = AsyncRetrying(
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential(multiplier=self.retry_multiplier, max=10),
            retry=retry_if_exception_type((httpx.NetworkError, httpx.TimeoutException)),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                response = await self.session.post(url, json=data)

        response.raise_for_status()

        result = response.json()
        if not result.get("ok"):
            raise RuntimeError(
                f"Telegram API error: {result.get('description', 'Unknown error')}"
            )

    async def close(self) -> None:
        """Close the reporter and cleanup resources."""
        if self.session:
            await self.session.aclose()
        logger.info("Telegram reporter closed")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


MAX_STATUS_LENGTH = 4000

HELP_TEXT = (
    "🤖 <b>Token Scout Commands</b>\n\n"
    "<b>/status</b> - Connection state and pipeline counters\n"
    "<b>/help</b> - Show this help message\n\n"
    "Trending tokens are pushed to admins as they are found."
)


def format_status(status: dict[str, Any]) -> str:
    """Render pipeline status as one ``key: value`` line per counter."""
    body = "\n".join(f"{key}: {value}" for key, value in status.items())
    # Telegram rejects messages over 4096 characters
    if len(body) > MAX_STATUS_LENGTH:
        body = body[:MAX_STATUS_LENGTH] + "\n... (truncated)"
    return f"📊 <b>Scout Status</b>\n\n<pre>{html.escape(body)}</pre>"


class TelegramCommandListener:
    """Long-polls the Bot API for admin commands and answers them.

    Only messages from the reporter's admin users are answered. Replies go
    out through the reporter, so they share its session and retry policy.
    """

    def __init__(
        self,
        reporter: TelegramReporter,
        status_provider: StatusProvider,
        poll_timeout_seconds: int = 25,
        retry_delay_seconds: float = 5.0,
    ) -> None:
        """Initialize command listener.

        Args:
            reporter: Reporter whose bot token, admins and session are used
            status_provider: Source of the /status reply
            poll_timeout_seconds: Long-poll timeout for getUpdates
            retry_delay_seconds: Pause after a failed poll
        """
        self.reporter = reporter
        self.status_provider = status_provider
        self.poll_timeout_seconds = poll_timeout_seconds
        self.retry_delay_seconds = retry_delay_seconds
        self.offset: int | None = None
        self.commands_answered = 0
        self._task: asyncio.Task | None = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def answer(self, text: str) -> str:
        """Build the reply to a command message."""
        if not text.startswith("/"):
            return "Invalid command format"

        # "/status@ScoutBot now" -> "/status"
        command = text.split()[0].split("@")[0].lower()

        if command == "/status":
            try:
                status = self.status_provider.get_status()
            except Exception as e:
                logger.error("Failed to get status", error=str(e))
                return f"❌ Error getting status: {html.escape(str(e))}"
            return format_status(status)
        if command == "/help":
            return HELP_TEXT
        return f"Unknown command: {html.escape(command)}"

    async def handle_update(self, update: dict[str, Any]) -> bool:
        """Answer one update if it is a command from an admin.

        Returns:
            True if a reply was sent
        """
        message = update.get("message") or {}
        chat_id = (message.get("chat") or {}).get("id")
        user_id = (message.get("from") or {}).get("id")
        text = message.get("text") or ""

        if not chat_id or not text:
            return False
        if user_id not in self.reporter.admin_user_ids:
            logger.warning("Ignored command from non-admin", user_id=user_id)
            return False

        await self.reporter._send_message(chat_id, self.answer(text))
        self.commands_answered += 1
        logger.info("Command answered", command=text.split()[0], user_id=user_id)
        return True

    async def poll_once(self) -> int:
        """Fetch pending updates and answer them.

        Returns:
            Number of updates fetched

        Raises:
            httpx.HTTPError: If the getUpdates request fails
            RuntimeError: If the Bot API reports an error
        """
        params: dict[str, Any] = {
            "timeout": self.poll_timeout_seconds,
            "allowed_updates": '["message"]',
        }
        if self.offset is not None:
            params["offset"] = self.offset

        response = await self.reporter.session.get(
            f"{self.reporter.base_url}/getUpdates",
            params=params,
            timeout=self.poll_timeout_seconds + 10,
        )
        response.raise_for_status()

        result = response.json()
        if not result.get("ok"):
            raise RuntimeError(
                f"Telegram API error: {result.get('description', 'Unknown error')}"
            )

        updates = result.get("result") or []
        for update in updates:
            update_id = update.get("update_id")
            # Offset advances even when the reply fails
            if isinstance(update_id, int):
                self.offset = update_id + 1
            try:
                await self.handle_update(update)
            except (httpx.HTTPError, RuntimeError) as e:
                logger.error(
                    "Failed to answer command", update_id=update_id, error=str(e)
                )

        return len(updates)

    async def _run(self) -> None:
        while True:
            try:
                await self.poll_once()
            except (httpx.HTTPError, RuntimeError, ValueError) as e:
                logger.warning("Command poll failed", error=str(e))
                await asyncio.sleep(self.retry_delay_seconds)

    def start(self) -> None:
        """Start polling for commands."""
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info("Telegram command listener started")

    async def stop(self) -> None:
        """Stop polling for commands."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info(
            "Telegram command listener stopped",
            commands_answered=self.commands_answered,
        )

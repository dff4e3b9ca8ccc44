"""Main token scouting pipeline runner."""

import argparse
import asyncio
import signal
import sys
import time
from collections.abc import Callable
from datetime import datetime
from typing import Any

import structlog

from ..alerts.console import LogReporter
from ..alerts.telegram import TelegramCommandListener, TelegramReporter
from ..config.logging_setup import configure_logging
from ..config.settings import AppSettings, load_settings
from ..core.errors import MaxRetriesExceeded
from ..core.interfaces import AlertSink, Reporter
from ..core.types import MatchResult
from ..feed.connection import ConnectionManager
from ..feed.decoder import FrameDecoder
from ..feed.keepalive import KeepAliveScheduler
from ..filters.momentum import MomentumFilter
from ..risk.concentration import ConcentrationRiskCalculator

logger = structlog.get_logger(__name__)


class NoopAlertSink(AlertSink):
    """No-operation alert sink for when Telegram is not configured."""

    async def push(self, message: str) -> None:
        """No-op push - just log the message."""
        logger.info("Alert (noop)", message=message)


class PipelineStats:
    """Counters for frames and events flowing through the pipeline."""

    def __init__(self) -> None:
        self.frames_received = 0
        self.events_decoded = 0
        self.events_rejected = 0
        self.matches = 0
        self.reporter_errors = 0
        self.started_at = datetime.now()

    def to_dict(self) -> dict[str, Any]:
        return {
            "frames_received": self.frames_received,
            "events_decoded": self.events_decoded,
            "events_rejected": self.events_rejected,
            "matches": self.matches,
            "reporter_errors": self.reporter_errors,
            "uptime_seconds": (datetime.now() - self.started_at).total_seconds(),
        }


class ScoutPipeline:
    """Feed -> decoder -> momentum filter -> reporters."""

    def __init__(
        self,
        settings: AppSettings,
        manager: ConnectionManager | None = None,
        reporters: list[Reporter] | None = None,
        alerts: AlertSink | None = None,
        now_fn: Callable[[], float] | None = None,
    ) -> None:
        """Initialize the pipeline with assembled components.

        Args:
            settings: Application settings
            manager: Optional connection manager (for testing)
            reporters: Optional reporters, replacing the configured ones
            alerts: Optional alert sink for lifecycle notifications
            now_fn: Optional function to get current timestamp (for testing)
        """
        self.settings = settings
        self.running = False
        self._shutdown_task: asyncio.Task | None = None
        self._now_fn = now_fn or time.time
        self._last_stats_log = self._now_fn()

        self.manager = manager or ConnectionManager(
            endpoint=settings.feed_url,
            channel=settings.channel,
            reconnect_interval_seconds=settings.reconnect_interval_seconds,
            max_reconnect_attempts=settings.max_reconnect_attempts,
            open_timeout_seconds=settings.open_timeout_seconds,
            origin=settings.feed_origin,
        )
        self.keepalive = KeepAliveScheduler(
            self.manager, interval_seconds=settings.keepalive_interval_seconds
        )
        self.decoder = FrameDecoder()
        self.filter = MomentumFilter(
            thresholds=settings.thresholds,
            risk_fn=ConcentrationRiskCalculator(),
            now_fn=self._now_fn,
        )
        self.stats = PipelineStats()

        self.telegram: TelegramReporter | None = None
        self.commands: TelegramCommandListener | None = None
        if settings.telegram_bot_token and settings.telegram_admin_ids:
            self.telegram = TelegramReporter(
                bot_token=settings.telegram_bot_token,
                admin_user_ids=settings.telegram_admin_ids,
            )
            self.commands = TelegramCommandListener(self.telegram, status_provider=self)
            logger.info("Using Telegram reporter")

        if reporters is not None:
            self.reporters = reporters
        else:
            self.reporters = [LogReporter()]
            if self.telegram is not None:
                self.reporters.append(self.telegram)

        self.alerts = alerts or self.telegram or NoopAlertSink()

        logger.info(
            "Scout pipeline initialized",
            feed_url=settings.feed_url,
            channel=settings.channel,
            reporters=[type(r).__name__ for r in self.reporters],
        )

    async def process_frame(self, raw: str | bytes) -> list[MatchResult]:
        """Decode, filter and report one frame.

        Never raises for bad frames, rejected tokens or reporter failures.

        Returns:
            Matches produced from this frame
        """
        self.stats.frames_received += 1
        events = self.decoder(raw)
        self.stats.events_decoded += len(events)

        matches = []
        for event in events:
            try:
                match = self.filter.match(event)
            except Exception as e:
                self.stats.events_rejected += 1
                logger.error(
                    "Error filtering token",
                    token_address=event.token_address,
                    error=str(e),
                )
                continue

            if match is None:
                self.stats.events_rejected += 1
                continue

            self.stats.matches += 1
            matches.append(match)
            await self._report(match)

        return matches

    async def _report(self, match: MatchResult) -> None:
        for reporter in self.reporters:
            try:
                await reporter.report(match)
            except Exception as e:
                self.stats.reporter_errors += 1
                logger.error(
                    "Reporter failed",
                    reporter=type(reporter).__name__,
                    token_address=match.event.token_address,
                    error=str(e),
                )

    def get_status(self) -> dict[str, Any]:
        """Current connection state and pipeline counters."""
        status = self.stats.to_dict()
        status.update(
            {
                "connection_state": self.manager.state.value,
                "reconnect_attempts": self.manager.attempts,
                "reconnects": self.manager.reconnects,
                "frames_ignored": self.decoder.frames_ignored,
                "decode_errors": self.decoder.decode_errors,
                "pings_sent": self.keepalive.pings_sent,
            }
        )
        return status

    def _maybe_log_stats(self) -> None:
        now = self._now_fn()
        if now - self._last_stats_log >= self.settings.stats_interval_seconds:
            self._last_stats_log = now
            logger.info("Pipeline metrics", **self.get_status())

    async def run(self) -> None:
        """Consume the feed until stopped.

        Raises:
            MaxRetriesExceeded: When the feed cannot be re-established
        """
        logger.info("Starting scout pipeline", feed_url=self.settings.feed_url)
        self.running = True
        await self.alerts.push("🤖 Token scout started")
        self.keepalive.start()
        if self.commands is not None:
            self.commands.start()

        try:
            async for raw in self.manager.frames():
                await self.process_frame(raw)
                self._maybe_log_stats()
        except MaxRetriesExceeded as e:
            logger.critical("Feed connection lost for good", error=str(e))
            await self.alerts.push(f"🚨 Feed connection lost: {e}")
            raise
        except asyncio.CancelledError:
            logger.info("Pipeline cancelled")
            raise
        finally:
            await self.stop()

    async def stop(self) -> None:
        """Stop the pipeline and release the connection."""
        if not self.running:
            return
        logger.info("Stopping scout pipeline", **self.get_status())
        self.running = False

        await self.keepalive.stop()
        if self.commands is not None:
            await self.commands.stop()
        await self.manager.close()
        await self.alerts.push("🛑 Token scout stopped")

        if self.telegram is not None:
            await self.telegram.close()

    def request_shutdown(self) -> None:
        """Close the feed from a signal handler so run() winds down."""
        if self._shutdown_task is None:
            logger.info("Received shutdown signal")
            self._shutdown_task = asyncio.create_task(self.manager.close())


async def main() -> None:
    """Main entry point for the token scout."""
    parser = argparse.ArgumentParser(description="Token launch momentum scout")
    parser.add_argument(
        "--config", default=None, help="Configuration file path (YAML)"
    )
    parser.add_argument("--log-level", default=None, help="Override log level")

    args = parser.parse_args()

    try:
        settings = load_settings(args.config)
        configure_logging(args.log_level or settings.log_level, settings.log_json)
        logger.info("Settings loaded", config=args.config)

        pipeline = ScoutPipeline(settings)

        loop = asyncio.get_running_loop()
        for signum in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(signum, pipeline.request_shutdown)

        await pipeline.run()

    except Exception as e:
        logger.error("Fatal error", error=str(e))
        sys.exit(1)


def cli() -> None:
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    cli()

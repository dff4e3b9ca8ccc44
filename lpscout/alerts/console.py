"""Log-based reporter for admitted tokens."""

from datetime import UTC, datetime
from typing import Any

import structlog

from ..core.interfaces import Reporter
from ..core.types import MatchResult

logger = structlog.get_logger(__name__)


def match_fields(match: MatchResult) -> dict[str, Any]:
    """Flatten a match into the fields shown for a trending token."""
    event = match.event
    created = None
    if event.created_timestamp is not None:
        created = datetime.fromtimestamp(event.created_timestamp, tz=UTC).isoformat()
    age_hours = match.score.age_hours

    return {
        "name": event.name,
        "symbol": event.symbol,
        "twitter": event.social_handle,
        "price_usd": event.price_usd,
        "market_cap": round(event.market_cap, 2),
        "holders": event.holders_count,
        "top_holders_perc": f"{event.effective_top_holders_percent:.2f}%",
        "volume": event.volume,
        "volume_mcap_ratio": round(match.score.volume_mcap_ratio, 3),
        "token_address": event.token_address,
        "dev_holding": (
            f"{event.dev_holding_percent}%"
            if event.dev_holding_percent is not None
            else None
        ),
        "lp_burned": f"{event.lp_burned_percent:g}%",
        "buys": event.buys,
        "sells": event.sells,
        "buy_sell_ratio": round(match.score.buy_sell_ratio, 2),
        "pooled_sol": event.pooled_liquidity,
        "created_time": created,
        "age_hours": round(age_hours, 2) if age_hours is not None else None,
        "risk_level": match.risk_level.value,
    }


class LogReporter(Reporter):
    """Reporter that writes each match to the structured log."""

    def __init__(self) -> None:
        self.reported = 0

    async def report(self, match: MatchResult) -> None:
        """Log a trending token."""
        self.reported += 1
        logger.info("Trending token found", **match_fields(match))

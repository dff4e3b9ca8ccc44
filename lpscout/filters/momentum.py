"""Momentum filter for freshly launched tokens."""

import time
from collections.abc import Callable
from datetime import UTC, datetime

import structlog

from ..core.interfaces import Filter
from ..core.types import (
    FilterDecision,
    FilterThresholds,
    MatchResult,
    MomentumScore,
    RiskLevel,
    TokenEvent,
)

logger = structlog.get_logger(__name__)

CRITERIA_COUNT = 7


def buy_sell_ratio(event: TokenEvent) -> float:
    """Buys over sells, with zero sells counted as one."""
    return event.buys / max(event.sells, 1)


def volume_mcap_ratio(event: TokenEvent) -> float:
    """Volume over market cap, 0.0 when market cap is zero."""
    if event.market_cap <= 0:
        return 0.0
    return event.volume / event.market_cap


def score(event: TokenEvent, now: float | None = None) -> MomentumScore:
    """Compute the derived momentum metrics for a token.

    Args:
        event: Token event
        now: Current Unix time, defaults to time.time()

    Returns:
        Momentum metrics; age_hours is None without a creation timestamp
    """
    age_hours = None
    if event.created_timestamp is not None:
        current = time.time() if now is None else now
        age_hours = (current - event.created_timestamp) / 3600

    return MomentumScore(
        buy_sell_ratio=buy_sell_ratio(event),
        volume_mcap_ratio=volume_mcap_ratio(event),
        age_hours=age_hours,
    )


def rejection_reasons(event: TokenEvent, thresholds: FilterThresholds) -> list[str]:
    """List every admission criterion the token fails."""
    reasons = []

    if event.social_handle is None:
        reasons.append("No social handle")

    if event.market_cap < thresholds.min_market_cap:
        reasons.append(
            f"Market cap too low: ${event.market_cap:.2f} < ${thresholds.min_market_cap:.2f}"
        )
    elif event.market_cap > thresholds.max_market_cap:
        reasons.append(
            f"Market cap too high: ${event.market_cap:.2f} > ${thresholds.max_market_cap:.2f}"
        )

    top_holders = event.effective_top_holders_percent
    if top_holders > thresholds.max_top_holders_percent:
        reasons.append(
            f"Top holders too concentrated: {top_holders:.1f}% > "
            f"{thresholds.max_top_holders_percent:.1f}%"
        )

    ratio = buy_sell_ratio(event)
    if ratio < thresholds.min_buy_sell_ratio:
        reasons.append(
            f"Buy/sell ratio too low: {ratio:.2f} < {thresholds.min_buy_sell_ratio:.2f}"
        )

    if event.volume < thresholds.min_volume:
        reasons.append(
            f"Volume too low: ${event.volume:.2f} < ${thresholds.min_volume:.2f}"
        )

    if event.pooled_liquidity < thresholds.min_pooled_liquidity:
        reasons.append(
            f"Pooled liquidity too low: {event.pooled_liquidity:.2f} < "
            f"{thresholds.min_pooled_liquidity:.2f}"
        )

    if event.market_cap <= 0:
        reasons.append("Market cap is zero")
    else:
        vm_ratio = volume_mcap_ratio(event)
        if not vm_ratio > thresholds.min_volume_mcap_ratio:
            reasons.append(
                f"Volume/market cap ratio not above threshold: {vm_ratio:.5f} <= "
                f"{thresholds.min_volume_mcap_ratio:.5f}"
            )

    return reasons


def admits(event: TokenEvent, thresholds: FilterThresholds) -> bool:
    """Return True if the token meets every momentum criterion."""
    return not rejection_reasons(event, thresholds)


class MomentumFilter(Filter):
    """Filter that admits tokens showing early positive trading momentum."""

    def __init__(
        self,
        thresholds: FilterThresholds | None = None,
        risk_fn: Callable[[TokenEvent], RiskLevel] | None = None,
        now_fn: Callable[[], float] | None = None,
    ) -> None:
        """Initialize momentum filter.

        Args:
            thresholds: Admission thresholds
            risk_fn: Optional risk classifier attached to matches
            now_fn: Optional function to get current timestamp (for testing)
        """
        self.thresholds = thresholds or FilterThresholds()
        self._risk_fn = risk_fn
        self._now_fn = now_fn or time.time

    def evaluate(self, event: TokenEvent) -> FilterDecision:
        """Evaluate token event against the momentum criteria."""
        reasons = rejection_reasons(event, self.thresholds)
        accepted = not reasons
        decision_score = max(0.0, 1.0 - len(reasons) / CRITERIA_COUNT)

        if accepted:
            reasons.append("Passed momentum criteria")

        logger.debug(
            "Momentum filter evaluation",
            token_address=event.token_address,
            accepted=accepted,
            score=decision_score,
            reasons=reasons,
        )

        return FilterDecision(accepted=accepted, score=decision_score, reasons=reasons)

    def match(self, event: TokenEvent) -> MatchResult | None:
        """Build a MatchResult for an admitted token, or None if rejected."""
        if not self.evaluate(event).accepted:
            return None

        now = self._now_fn()
        risk_level = self._risk_fn(event) if self._risk_fn else RiskLevel.UNKNOWN
        return MatchResult(
            event=event,
            score=score(event, now=now),
            risk_level=risk_level,
            matched_at=datetime.fromtimestamp(now, tz=UTC),
        )

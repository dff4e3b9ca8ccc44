"""Holder concentration risk estimation."""

import math
from statistics import pvariance

import structlog

from ..core.types import RiskLevel, TokenEvent

logger = structlog.get_logger(__name__)

# Trades sampled per side when looking for uniform bot clusters
TRADE_SAMPLE_SIZE = 20


def estimate_holder_shares(event: TokenEvent) -> tuple[list[float], float, int] | None:
    """Estimate a holdings distribution from audit data.

    The top decile of holders splits ``top_holders_percent`` with linearly
    decaying weights; the remaining holders share the rest equally.

    Returns:
        (top holder shares in percent, remaining percent, remaining holder
        count), or None when holder data is missing
    """
    if event.top_holders_percent is None or not event.holders_count:
        return None

    holders = event.holders_count
    top_n = min(holders, math.ceil(holders * 0.1))
    weights = [max(1.0 - 0.1 * i, 0.1) for i in range(top_n)]
    total_weight = sum(weights)
    top_shares = [event.top_holders_percent * w / total_weight for w in weights]

    remaining_pct = max(100.0 - event.top_holders_percent, 0.0)
    return top_shares, remaining_pct, holders - top_n


def wallet_concentration(event: TokenEvent) -> float | None:
    """Normalized Herfindahl-Hirschman index of the estimated holdings (0-1)."""
    estimate = estimate_holder_shares(event)
    if estimate is None:
        return None

    top_shares, remaining_pct, remaining_holders = estimate
    total = sum(top_shares) + (remaining_pct if remaining_holders > 0 else 0.0)
    if total <= 0:
        return 0.0

    hhi = sum((share / total) ** 2 for share in top_shares)
    if remaining_holders > 0:
        # Equal shares: m * (r/m)^2 == r^2 / m
        hhi += (remaining_pct / total) ** 2 / remaining_holders

    n = event.holders_count
    if n is None or n <= 1:
        return hhi
    return max(0.0, (hhi - 1 / n) / (1 - 1 / n))


def bot_likelihood(event: TokenEvent) -> float:
    """Heuristic likelihood (0-1) that trading is dominated by bots."""
    likelihood = 0.0

    if event.snipers_count:
        likelihood += 0.2

    if event.price_usd is None:
        return min(likelihood, 1.0)

    sampled_buys = min(event.buys, TRADE_SAMPLE_SIZE)
    sampled_sells = min(event.sells, TRADE_SAMPLE_SIZE)
    if sampled_buys + sampled_sells >= 3:
        amounts = []
        if sampled_buys:
            amounts += [event.volume / event.buys] * sampled_buys
        if sampled_sells:
            amounts += [event.volume / event.sells] * sampled_sells

        # Uniform trade sizes within a burst
        if pvariance(amounts) < 0.001:
            likelihood += 0.3

        # One-sided burst
        if sampled_buys == 0 or sampled_sells == 0:
            likelihood += 0.2

    return min(likelihood, 1.0)


class ConcentrationRiskCalculator:
    """Classifies tokens by bot-adjusted holder concentration."""

    def __init__(
        self,
        low: float = 0.25,
        moderate: float = 0.50,
        high: float = 0.75,
        very_high: float = 1.0,
    ) -> None:
        """Initialize risk calculator with upper bounds for each level."""
        self.thresholds = [
            (low, RiskLevel.LOW),
            (moderate, RiskLevel.MODERATE),
            (high, RiskLevel.HIGH),
            (very_high, RiskLevel.VERY_HIGH),
        ]

    def adjusted_concentration(self, event: TokenEvent) -> float | None:
        """Concentration scaled up by bot activity, or None without holder data."""
        base = wallet_concentration(event)
        if base is None:
            return None
        return base * (1.0 + bot_likelihood(event) ** 1.5)

    def risk_level(self, concentration: float | None) -> RiskLevel:
        """Map a concentration value to a risk level."""
        if concentration is None:
            return RiskLevel.UNKNOWN
        for bound, level in self.thresholds:
            if concentration <= bound:
                return level
        return RiskLevel.UNKNOWN

    def __call__(self, event: TokenEvent) -> RiskLevel:
        """Classify a token event."""
        concentration = self.adjusted_concentration(event)
        level = self.risk_level(concentration)
        logger.debug(
            "Concentration risk",
            token_address=event.token_address,
            concentration=concentration,
            risk_level=level.value,
        )
        return level

"""Tests for holder concentration risk."""

import pytest

from lpscout.core.types import RiskLevel, TokenEvent
from lpscout.risk.concentration import (
    ConcentrationRiskCalculator,
    bot_likelihood,
    estimate_holder_shares,
    wallet_concentration,
)


class TestHolderShares:
    """Test holdings estimation."""

    def test_missing_data(self):
        """Test no estimate without both audit percent and holder count."""
        assert estimate_holder_shares(TokenEvent(holders_count=100)) is None
        assert estimate_holder_shares(TokenEvent(top_holders_percent=20)) is None
        assert estimate_holder_shares(
            TokenEvent(top_holders_percent=20, holders_count=0)
        ) is None

    def test_top_decile_split(self):
        """Test the top decile shares the audited percentage."""
        event = TokenEvent(top_holders_percent=20.0, holders_count=100)

        top_shares, remaining_pct, remaining_holders = estimate_holder_shares(event)

        assert len(top_shares) == 10
        assert sum(top_shares) == pytest.approx(20.0)
        assert top_shares == sorted(top_shares, reverse=True)
        assert remaining_pct == pytest.approx(80.0)
        assert remaining_holders == 90


class TestConcentration:
    """Test concentration index and bot adjustment."""

    def test_dispersed_holders(self):
        """Test many small holders give a low index."""
        event = TokenEvent(top_holders_percent=20.0, holders_count=100)
        assert wallet_concentration(event) == pytest.approx(0.00222, abs=1e-4)

    def test_whale_dominated(self):
        """Test one dominant holder gives a high index."""
        event = TokenEvent(top_holders_percent=95.0, holders_count=2)
        assert wallet_concentration(event) == pytest.approx(0.81)

    def test_bot_likelihood_none(self):
        """Test balanced organic trading has no bot signal."""
        event = TokenEvent(price_usd=1.0, buys=30, sells=20, volume=1000.0)
        assert bot_likelihood(event) == 0.0

    def test_bot_likelihood_one_sided_uniform(self):
        """Test snipers plus a uniform one-sided burst score high."""
        event = TokenEvent(
            price_usd=1.0, buys=10, sells=0, volume=100.0, snipers_count=3
        )
        assert bot_likelihood(event) == pytest.approx(0.7)

    def test_bot_likelihood_without_price(self):
        """Test only the sniper signal applies without a price."""
        event = TokenEvent(buys=10, sells=0, volume=100.0, snipers_count=1)
        assert bot_likelihood(event) == pytest.approx(0.2)


class TestRiskCalculator:
    """Test risk level classification."""

    @pytest.mark.parametrize(
        "concentration,expected",
        [
            (None, RiskLevel.UNKNOWN),
            (0.0, RiskLevel.LOW),
            (0.25, RiskLevel.LOW),
            (0.3, RiskLevel.MODERATE),
            (0.6, RiskLevel.HIGH),
            (0.9, RiskLevel.VERY_HIGH),
            (1.0, RiskLevel.VERY_HIGH),
            (1.5, RiskLevel.UNKNOWN),
        ],
    )
    def test_risk_level(self, concentration, expected):
        """Test bucket boundaries."""
        assert ConcentrationRiskCalculator().risk_level(concentration) is expected

    def test_classify_events(self):
        """Test end-to-end classification of token events."""
        calculator = ConcentrationRiskCalculator()

        assert calculator(TokenEvent(top_holders_percent=20.0, holders_count=100)) is (
            RiskLevel.LOW
        )
        assert calculator(TokenEvent(top_holders_percent=95.0, holders_count=2)) is (
            RiskLevel.VERY_HIGH
        )
        assert calculator(TokenEvent()) is RiskLevel.UNKNOWN

    def test_bot_activity_raises_risk(self):
        """Test bot activity scales concentration up."""
        calculator = ConcentrationRiskCalculator()
        organic = TokenEvent(
            top_holders_percent=60.0, holders_count=10, price_usd=1.0,
            buys=30, sells=20, volume=1000.0,
        )
        botted = organic.model_copy(update={"buys": 10, "sells": 0, "snipers_count": 5})

        assert calculator.adjusted_concentration(botted) > (
            calculator.adjusted_concentration(organic)
        )

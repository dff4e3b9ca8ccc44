"""Core data types for the token scout."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class ConnectionState(str, Enum):
    """Lifecycle states of a feed connection."""

    IDLE = "idle"
    CONNECTING = "connecting"
    OPEN = "open"
    CLOSING = "closing"
    CLOSED = "closed"
    RECONNECTING = "reconnecting"


class RiskLevel(str, Enum):
    """Holder concentration risk bucket."""

    LOW = "low"
    MODERATE = "moderate"
    HIGH = "high"
    VERY_HIGH = "very_high"
    UNKNOWN = "unknown"


class Connection(BaseModel):
    """One logical link to the remote feed."""

    endpoint: str = Field(description="Feed WebSocket URL")
    state: ConnectionState = Field(
        default=ConnectionState.IDLE, description="Current lifecycle state"
    )
    attempts: int = Field(default=0, ge=0, description="Reconnect attempt counter")
    max_reconnect_attempts: int = Field(
        default=10, ge=0, description="Reconnect attempts before giving up"
    )
    reconnect_interval_seconds: float = Field(
        default=5.0, ge=0, description="Fixed delay before each reconnect"
    )
    last_error: str | None = Field(default=None, description="Last reported cause")


class Socials(BaseModel):
    """Social presence advertised by a token."""

    model_config = ConfigDict(frozen=True)

    twitter: str | None = Field(default=None, description="Microblogging handle")
    telegram: str | None = Field(default=None, description="Telegram link")
    website: str | None = Field(default=None, description="Project website")


class TokenEvent(BaseModel):
    """A decoded token launch record from the discover feed."""

    model_config = ConfigDict(frozen=True)

    id: str | None = Field(default=None, description="Feed record identifier")
    name: str = Field(default="", description="Token name")
    symbol: str = Field(default="", description="Token symbol")
    token_address: str = Field(default="", description="Token contract address")

    market_cap: float = Field(default=0.0, ge=0, description="Fully diluted value in USD")
    price_usd: float | None = Field(default=None, description="Price in USD")

    pooled_liquidity: float = Field(
        default=0.0, ge=0, description="Pooled base asset (SOL) amount"
    )
    volume: float = Field(default=0.0, ge=0, description="Trailing volume in USD")

    top_holders_percent: float | None = Field(
        default=None, ge=0, le=100, description="Top holders concentration percent"
    )
    dev_holding_percent: float | None = Field(
        default=None, description="Percent of supply held by the deployer"
    )
    holders_count: int | None = Field(default=None, ge=0, description="Holder count")

    buys: int = Field(default=0, ge=0, description="Buy count")
    sells: int = Field(default=0, ge=0, description="Sell count")

    lp_burned_percent: float = Field(
        default=0.0, ge=0, le=100, description="Percent of LP tokens burned"
    )
    freeze_authority: bool | None = Field(default=None, description="Freeze authority set")
    mint_authority: bool | None = Field(default=None, description="Mint authority set")
    snipers_count: int | None = Field(default=None, ge=0, description="Sniper wallets")

    socials: Socials = Field(default_factory=Socials, description="Social handles")
    created_timestamp: int | None = Field(
        default=None, description="Creation time (Unix epoch seconds)"
    )

    @property
    def social_handle(self) -> str | None:
        """Twitter handle, or None when absent or blank."""
        handle = self.socials.twitter
        if handle is None or not handle.strip():
            return None
        return handle

    @property
    def effective_top_holders_percent(self) -> float:
        """Top holders percent, treating missing audit data as 100%."""
        if self.top_holders_percent is None:
            return 100.0
        return self.top_holders_percent


class FilterThresholds(BaseModel):
    """Static thresholds for the momentum filter."""

    model_config = ConfigDict(frozen=True)

    min_market_cap: float = Field(default=40000.0, ge=0, description="Min market cap USD")
    max_market_cap: float = Field(default=500000.0, ge=0, description="Max market cap USD")
    max_top_holders_percent: float = Field(
        default=25.0, ge=0, le=100, description="Max top holders percent"
    )
    min_buy_sell_ratio: float = Field(default=1.2, ge=0, description="Min buys/sells")
    min_volume: float = Field(default=5000.0, ge=0, description="Min volume USD")
    min_pooled_liquidity: float = Field(
        default=20.0, ge=0, description="Min pooled SOL"
    )
    min_volume_mcap_ratio: float = Field(
        default=0.1, ge=0, description="Volume/market cap ratio must exceed this"
    )


class MomentumScore(BaseModel):
    """Derived momentum metrics for a token."""

    model_config = ConfigDict(frozen=True)

    buy_sell_ratio: float = Field(description="Buys divided by max(sells, 1)")
    volume_mcap_ratio: float = Field(description="Volume divided by market cap")
    age_hours: float | None = Field(default=None, description="Hours since creation")


class FilterDecision(BaseModel):
    """Filter evaluation decision."""

    accepted: bool = Field(description="Whether the token passed the filter")
    score: float = Field(description="Fraction of criteria passed (0-1)")
    reasons: list[str] = Field(default_factory=list, description="Reasons for decision")


class MatchResult(BaseModel):
    """An admitted token together with the metrics it was admitted on."""

    model_config = ConfigDict(frozen=True)

    event: TokenEvent = Field(description="The admitted token event")
    score: MomentumScore = Field(description="Derived momentum metrics")
    risk_level: RiskLevel = Field(
        default=RiskLevel.UNKNOWN, description="Holder concentration risk"
    )
    matched_at: datetime = Field(description="When the match was produced")

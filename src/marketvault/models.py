"""Domain models for the allocation vault."""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class PnlKind(str, Enum):
    """Which PnL cap the oracle applied when pricing a market token."""

    DEPOSITS = "DEPOSITS"
    WITHDRAWALS = "WITHDRAWALS"
    TRADERS = "TRADERS"


class RebalanceState(str, Enum):
    IDLE = "IDLE"
    EXECUTING = "EXECUTING"
    COMMITTED = "COMMITTED"
    ABORTED = "ABORTED"


class TransferDirection(str, Enum):
    INBOUND = "inbound"
    OUTBOUND = "outbound"


class MarketEntry(BaseModel):
    """A market position tracked by the weight registry."""

    market: str = Field(min_length=1)
    target_weight: int = Field(gt=0)
    realized_weight: Optional[int] = Field(default=None, ge=0)

    @property
    def reference_weight(self) -> int:
        """Weight the next rebalance is measured against."""
        if self.realized_weight is not None:
            return self.realized_weight
        return self.target_weight


class PoolDescriptor(BaseModel):
    """Oracle-side description of the pool behind a market token."""

    market: str
    index_token: str
    long_token: str
    short_token: str


class TokenPrice(BaseModel):
    min: int = Field(ge=0)
    max: int = Field(ge=0)


class PriceInputs(BaseModel):
    """Token prices the oracle needs to value a pool."""

    index_token_price: TokenPrice
    long_token_price: TokenPrice
    short_token_price: TokenPrice


class PriceQuote(BaseModel):
    """Ephemeral market-token price. Never persisted."""

    value: int
    scale: int = Field(ge=0)
    pnl_kind: PnlKind = PnlKind.DEPOSITS


class Transfer(BaseModel):
    """A base-asset movement performed during a rebalance."""

    market: str
    direction: TransferDirection
    counterparty: str
    amount: int = Field(gt=0)


class VaultEvent(BaseModel):
    emitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class WeightUpdated(VaultEvent):
    market: str
    old_weight: int
    new_weight: int


class MarketRemoved(VaultEvent):
    market: str
    weight: int


class RebalanceCompleted(VaultEvent):
    total_assets: int
    success: bool


class RebalanceResult(BaseModel):
    """Outcome of one rebalance call."""

    state: RebalanceState
    prev_total_assets: int
    total_assets: int
    realized_weights: dict[str, int] = Field(default_factory=dict)
    transfers: list[Transfer] = Field(default_factory=list)

"""Ordered registry of market target weights."""

from typing import Optional

import structlog

from marketvault.errors import InvariantViolation, ValidationError
from marketvault.models import MarketEntry, MarketRemoved, WeightUpdated

logger = structlog.get_logger(__name__)


class WeightRegistry:
    """Insertion-ordered collection of market entries.

    Entries live in a list and a ``market -> index`` dict gives O(1)
    existence checks. Removal shifts later entries left so the relative
    order of the survivors never changes; positional callers must re-read
    ``entries()`` after a removal.
    """

    def __init__(self):
        self._entries: list[MarketEntry] = []
        self._index: dict[str, int] = {}
        self._total_weight = 0

    @property
    def total_weight(self) -> int:
        """Sum of all stored target weights, in bps."""
        return self._total_weight

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, market: str) -> bool:
        return market in self._index

    def get(self, market: str) -> Optional[MarketEntry]:
        idx = self._index.get(market)
        if idx is None:
            return None
        return self._entries[idx]

    def markets(self) -> list[str]:
        return [e.market for e in self._entries]

    def entries(self) -> list[tuple[str, int]]:
        """Ordered ``(market, reference_weight)`` pairs in insertion order."""
        return [(e.market, e.reference_weight) for e in self._entries]

    def set_weight(self, market: str, weight: int) -> WeightUpdated:
        """Insert a market or replace its target weight.

        Replacing a weight clears any realized weight, so the new target is
        what the next rebalance is measured against.

        Raises:
            ValidationError: If ``market`` is empty or ``weight`` is not positive.
        """
        if not market:
            raise ValidationError("market id must be non-empty")
        if weight is None or weight <= 0:
            raise ValidationError(f"weight must be positive, got {weight}")

        idx = self._index.get(market)
        if idx is None:
            old_weight = 0
            self._index[market] = len(self._entries)
            self._entries.append(MarketEntry(market=market, target_weight=weight))
        else:
            old_weight = self._entries[idx].target_weight
            self._entries[idx] = MarketEntry(market=market, target_weight=weight)

        self._total_weight += weight - old_weight

        logger.debug(
            "registry.weight_set",
            market=market,
            old_weight=old_weight,
            new_weight=weight,
            total_weight=self._total_weight,
        )
        return WeightUpdated(market=market, old_weight=old_weight, new_weight=weight)

    def remove(self, market: str) -> MarketRemoved:
        """Remove a market and subtract its target weight from the total.

        Raises:
            InvariantViolation: If the market is not registered.
        """
        idx = self._index.get(market)
        if idx is None:
            raise InvariantViolation(f"market {market!r} is not registered")

        entry = self._entries.pop(idx)
        del self._index[market]
        for later in self._entries[idx:]:
            self._index[later.market] -= 1
        self._total_weight -= entry.target_weight

        logger.debug(
            "registry.market_removed",
            market=market,
            weight=entry.target_weight,
            total_weight=self._total_weight,
        )
        return MarketRemoved(market=market, weight=entry.target_weight)

    def record_realized(self, market: str, weight: int) -> None:
        """Store the weight a rebalance measured for ``market``."""
        idx = self._index.get(market)
        if idx is None:
            raise InvariantViolation(f"market {market!r} is not registered")
        self._entries[idx] = self._entries[idx].model_copy(update={"realized_weight": weight})

    def to_state_dict(self) -> dict:
        """Serialize for state persistence."""
        return {
            "entries": [e.model_dump(mode="json") for e in self._entries],
            "total_weight": self._total_weight,
        }

    def restore_from_state(self, state: dict) -> None:
        """Restore from persisted state. ``total_weight`` is recomputed from entries."""
        self._entries = [MarketEntry.model_validate(data) for data in state.get("entries", [])]
        self._index = {e.market: i for i, e in enumerate(self._entries)}
        if len(self._index) != len(self._entries):
            raise InvariantViolation("persisted registry contains duplicate markets")
        self._total_weight = sum(e.target_weight for e in self._entries)

        stored_total = state.get("total_weight")
        if stored_total is not None and stored_total != self._total_weight:
            logger.warning(
                "registry.total_weight_mismatch",
                stored=stored_total,
                recomputed=self._total_weight,
            )

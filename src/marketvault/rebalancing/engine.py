"""Rebalancer - applies a keeper's delta vector as one all-or-nothing unit."""

from typing import Sequence

import structlog

from marketvault.errors import ExternalCallFailure, InvariantViolation, ValidationError
from marketvault.fixedpoint import BPS_DENOMINATOR, band, outside_band
from marketvault.logging_config import get_rebalance_logger
from marketvault.models import (
    RebalanceCompleted,
    RebalanceResult,
    RebalanceState,
    Transfer,
    TransferDirection,
)
from marketvault.rebalancing.journal import TransferJournal
from marketvault.registry import WeightRegistry
from marketvault.valuation.aggregator import ValuationAggregator
from marketvault.valuation.base import AssetToken

logger = structlog.get_logger(__name__)


class Rebalancer:
    """Moves base asset per market while keeping weight and value in bands.

    State machine: IDLE -> EXECUTING -> COMMITTED | ABORTED. Bands and
    funding are checked on projected balances before the first transfer.
    Realized weights are staged and only written to the registry on commit.
    Transfers are journaled and reversed if execution fails part way.
    Callers are responsible for serializing calls (see ``AllocationVault``).
    """

    def __init__(
        self,
        vault_address: str,
        registry: WeightRegistry,
        valuation: ValuationAggregator,
        asset: AssetToken,
        asset_threshold_bps: int,
        weight_threshold_bps: int,
    ):
        self._vault = vault_address
        self._registry = registry
        self._valuation = valuation
        self._asset = asset
        self._asset_threshold_bps = asset_threshold_bps
        self._weight_threshold_bps = weight_threshold_bps
        self._state = RebalanceState.IDLE
        self._rebalance_log = get_rebalance_logger()

    @property
    def state(self) -> RebalanceState:
        return self._state

    def rebalance(self, caller: str, deltas: Sequence[int]) -> tuple[RebalanceResult, RebalanceCompleted]:
        """Apply ``deltas`` positionally against the registry's current order.

        Every band and funding check first runs against projected balances,
        so a rejected call moves nothing. Only a transfer that fails once
        execution has started needs compensating transfers.

        Args:
            caller: Keeper principal; inbound amounts are pulled from it and
                outbound amounts are sent to it.
            deltas: Signed asset amounts, one per registry entry.

        Returns:
            The committed result and the completion event.

        Raises:
            ValidationError: Length mismatch (nothing is transferred).
            ExternalCallFailure: Insufficient funding, or a transfer or
                compensating transfer failed.
            InvariantViolation: A weight or the total value left its band.
        """
        self._state = RebalanceState.IDLE
        entries = self._registry.entries()
        if len(deltas) != len(entries):
            raise ValidationError(
                f"expected {len(entries)} deltas for {len(entries)} markets, got {len(deltas)}"
            )

        prev_total = self._valuation.total_assets()
        journal = TransferJournal(self._vault, self._asset)
        staged: dict[str, int] = {}
        self._state = RebalanceState.EXECUTING

        logger.info(
            "rebalancer.starting",
            caller=caller,
            markets=len(entries),
            prev_total_assets=prev_total,
        )

        try:
            self._preflight(caller, entries, deltas, prev_total)

            for (market, prev_weight), delta in zip(entries, deltas):
                self._move(journal, caller, market, delta)
                staged[market] = self._live_weight(market, prev_weight)

            total = self._valuation.total_assets()
            self._check_total(total, prev_total)
        except Exception as e:
            self._abort(journal, caller, prev_total, e)
            raise

        for market, weight in staged.items():
            self._registry.record_realized(market, weight)
        self._state = RebalanceState.COMMITTED

        result = RebalanceResult(
            state=self._state,
            prev_total_assets=prev_total,
            total_assets=total,
            realized_weights=staged,
            transfers=journal.transfers,
        )
        event = RebalanceCompleted(total_assets=total, success=True)

        self._rebalance_log.info(
            "rebalance.committed",
            caller=caller,
            prev_total_assets=prev_total,
            total_assets=total,
            transfers=len(journal.transfers),
            realized_weights=staged,
        )
        return result, event

    def _preflight(
        self,
        caller: str,
        entries: list[tuple[str, int]],
        deltas: Sequence[int],
        prev_total: int,
    ) -> None:
        """Run every check against projected balances before anything moves.

        Transfers only change the idle balance, so market values are read
        once and the idle, keeper balance and allowance are carried forward
        delta by delta.
        """
        values = self._valuation.breakdown()
        deployed = sum(values.values())
        idle = self._valuation.idle_balance()
        keeper_balance = self._asset.balance_of(caller)
        allowance = self._asset.allowance(caller, self._vault)

        for (market, prev_weight), delta in zip(entries, deltas):
            if delta > 0:
                if keeper_balance < delta or allowance < delta:
                    raise ExternalCallFailure(
                        f"inbound transfer of {delta} for market {market} exceeds keeper "
                        f"balance {keeper_balance} or allowance {allowance}"
                    )
                keeper_balance -= delta
                allowance -= delta
            elif delta < 0:
                if idle < -delta:
                    raise ExternalCallFailure(
                        f"outbound transfer of {-delta} for market {market} exceeds "
                        f"idle balance {idle}"
                    )
                keeper_balance -= delta
            idle += delta

            total = idle + deployed
            if total <= 0:
                raise InvariantViolation(
                    f"total assets dropped to zero while rebalancing {market}"
                )
            self._check_weight(market, values[market] * BPS_DENOMINATOR // total, prev_weight)

        self._check_total(idle + deployed, prev_total)

    def _check_total(self, total: int, prev_total: int) -> None:
        lower, upper = band(prev_total, self._asset_threshold_bps)
        if outside_band(total, lower, upper):
            raise InvariantViolation(
                f"total assets {total} outside band [{lower}, {upper}] "
                f"around {prev_total}"
            )

    def _move(self, journal: TransferJournal, caller: str, market: str, delta: int) -> None:
        if delta > 0:
            ok = self._asset.transfer_from(caller, self._vault, delta)
            direction = TransferDirection.INBOUND
        elif delta < 0:
            ok = self._asset.transfer(caller, -delta)
            direction = TransferDirection.OUTBOUND
        else:
            return

        if not ok:
            raise ExternalCallFailure(
                f"{direction.value} transfer of {abs(delta)} for market {market} failed"
            )
        journal.record(
            Transfer(market=market, direction=direction, counterparty=caller, amount=abs(delta))
        )
        logger.debug(
            "rebalancer.transfer",
            market=market,
            direction=direction.value,
            amount=abs(delta),
        )

    def _check_weight(self, market: str, new_weight: int, prev_weight: int) -> None:
        lower, upper = band(prev_weight, self._weight_threshold_bps)
        if outside_band(new_weight, lower, upper):
            raise InvariantViolation(
                f"weight of {market} is {new_weight} bps, outside band "
                f"[{lower}, {upper}] around {prev_weight}"
            )

    def _live_weight(self, market: str, prev_weight: int) -> int:
        """Re-read the weight after a transfer; guards against valuations moving mid-call."""
        if self._valuation.total_assets() <= 0:
            raise InvariantViolation(
                f"total assets dropped to zero while rebalancing {market}"
            )
        new_weight = self._valuation.current_weight(market, conservative=False)
        self._check_weight(market, new_weight, prev_weight)
        return new_weight

    def _abort(
        self, journal: TransferJournal, caller: str, prev_total: int, error: Exception
    ) -> None:
        self._state = RebalanceState.ABORTED
        logger.warning(
            "rebalancer.aborted",
            caller=caller,
            error=str(error),
            error_type=type(error).__name__,
            transfers_to_reverse=len(journal.transfers),
        )
        try:
            journal.unwind()
        except ExternalCallFailure as unwind_error:
            logger.critical(
                "rebalancer.rollback_failed",
                caller=caller,
                error=str(unwind_error),
                original_error=str(error),
            )
            raise unwind_error from error

        self._rebalance_log.info(
            "rebalance.aborted",
            caller=caller,
            prev_total_assets=prev_total,
            reversed_transfers=len(journal.transfers),
            error=str(error),
        )

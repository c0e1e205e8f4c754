"""Allocation vault: role-gated entry points over the allocation engine."""

import threading
from collections import deque
from typing import Sequence

import structlog

from marketvault.config import VaultConfig
from marketvault.errors import AuthorizationError
from marketvault.fixedpoint import Rounding
from marketvault.logging_config import get_event_logger
from marketvault.models import MarketRemoved, RebalanceResult, VaultEvent, WeightUpdated
from marketvault.rebalancing.engine import Rebalancer
from marketvault.registry import WeightRegistry
from marketvault.shares import ShareConverter
from marketvault.valuation.aggregator import ValuationAggregator
from marketvault.valuation.base import AssetToken, MarketTokenResolver, PriceOracle, ShareLedger

logger = structlog.get_logger(__name__)


class AllocationVault:
    """Multi-market allocation vault.

    The vault manager edits the weight registry, the keeper rebalances.
    All state-mutating entry points run under one lock, so no rebalance
    ever interleaves with another rebalance or a weight change.
    """

    def __init__(
        self,
        config: VaultConfig,
        oracle: PriceOracle,
        asset: AssetToken,
        market_tokens: MarketTokenResolver,
        ledger: ShareLedger,
    ):
        self._config = config
        self._lock = threading.RLock()
        self._events: deque[VaultEvent] = deque(maxlen=config.event_history)
        self._event_log = get_event_logger()

        self.registry = WeightRegistry()
        self.valuation = ValuationAggregator(
            vault_address=config.vault_address,
            registry=self.registry,
            oracle=oracle,
            asset=asset,
            market_tokens=market_tokens,
            asset_decimals=config.asset_decimals,
        )
        self.shares = ShareConverter(
            ledger=ledger,
            total_assets=self.valuation.total_assets,
            deposit_cap=config.deposit_cap,
            decimals_offset=config.decimals_offset,
        )
        self.rebalancer = Rebalancer(
            vault_address=config.vault_address,
            registry=self.registry,
            valuation=self.valuation,
            asset=asset,
            asset_threshold_bps=config.asset_threshold_bps,
            weight_threshold_bps=config.weight_threshold_bps,
        )

    @property
    def config(self) -> VaultConfig:
        return self._config

    def _require(self, caller: str, principal: str, role: str) -> None:
        if caller != principal:
            logger.warning("vault.unauthorized", caller=caller, role=role)
            raise AuthorizationError(f"{caller!r} is not the {role}")

    def _emit(self, event: VaultEvent) -> None:
        self._events.append(event)
        self._event_log.info(
            f"event.{type(event).__name__}",
            **event.model_dump(mode="json"),
        )

    def events(self) -> list[VaultEvent]:
        """Most recent notifications, oldest first; older ones live in the event log."""
        return list(self._events)

    # Vault-manager entry points

    def set_weight(self, caller: str, market: str, weight: int) -> WeightUpdated:
        self._require(caller, self._config.vault_manager, "vault manager")
        with self._lock:
            event = self.registry.set_weight(market, weight)
            self._emit(event)
        return event

    def remove(self, caller: str, market: str) -> MarketRemoved:
        self._require(caller, self._config.vault_manager, "vault manager")
        with self._lock:
            event = self.registry.remove(market)
            self._emit(event)
        return event

    # Keeper entry point

    def rebalance(self, caller: str, deltas: Sequence[int]) -> RebalanceResult:
        self._require(caller, self._config.keeper, "keeper")
        with self._lock:
            result, event = self.rebalancer.rebalance(caller, list(deltas))
            self._emit(event)
        return result

    # Pricing surface for the share ledger

    def total_assets(self) -> int:
        return self.valuation.total_assets()

    def total_weight(self) -> int:
        return self.registry.total_weight

    def current_weight(self, market: str, conservative: bool = False) -> int:
        return self.valuation.current_weight(market, conservative)

    def max_deposit(self) -> int:
        return self.shares.max_deposit()

    def max_mint(self) -> int:
        return self.shares.max_mint()

    def assets_to_shares(self, assets: int, rounding: Rounding = Rounding.FLOOR) -> int:
        return self.shares.assets_to_shares(assets, rounding)

    def shares_to_assets(self, shares: int, rounding: Rounding = Rounding.FLOOR) -> int:
        return self.shares.shares_to_assets(shares, rounding)

    # Persistence

    def to_state_dict(self) -> dict:
        with self._lock:
            return {"registry": self.registry.to_state_dict()}

    def restore_from_state(self, state: dict) -> None:
        with self._lock:
            self.registry.restore_from_state(state.get("registry", {}))
        logger.info(
            "vault.restored",
            markets=len(self.registry),
            total_weight=self.registry.total_weight,
        )

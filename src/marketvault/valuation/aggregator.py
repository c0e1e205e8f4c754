"""Multi-market valuation in base-asset terms."""

import structlog

from marketvault.errors import InvariantViolation
from marketvault.fixedpoint import BPS_DENOMINATOR, DecimalNormalizer
from marketvault.registry import WeightRegistry
from marketvault.valuation.base import AssetToken, MarketTokenResolver, PriceOracle

logger = structlog.get_logger(__name__)


class ValuationAggregator:
    """Values every registered market position plus the idle balance.

    Prices are fetched fresh on every call; quotes are never cached.
    Collaborator failures propagate to the caller unchanged.
    """

    def __init__(
        self,
        vault_address: str,
        registry: WeightRegistry,
        oracle: PriceOracle,
        asset: AssetToken,
        market_tokens: MarketTokenResolver,
        asset_decimals: int,
    ):
        self._vault = vault_address
        self._registry = registry
        self._oracle = oracle
        self._asset = asset
        self._market_tokens = market_tokens
        self._asset_decimals = asset_decimals

    def idle_balance(self) -> int:
        return self._asset.balance_of(self._vault)

    def _quote_market(self, market: str, conservative: bool) -> tuple[int, int]:
        pool = self._oracle.describe(market)
        inputs = self._oracle.token_prices(pool)
        quote = self._oracle.quote_price(pool, inputs, conservative)
        position = self._market_tokens(market).balance_of(self._vault)

        value = quote.value * position
        if value <= 0:
            if quote.value < 0:
                logger.warning(
                    "valuation.negative_price_floored",
                    market=market,
                    price=quote.value,
                    pnl_kind=quote.pnl_kind.value,
                )
            value = 0
        return value, quote.scale

    def market_value(self, market: str, conservative: bool) -> int:
        """Raw position value (price times position size), floored at zero."""
        value, _ = self._quote_market(market, conservative)
        return value

    def market_value_in_assets(self, market: str, conservative: bool) -> int:
        """Position value rescaled to base-asset precision."""
        value, scale = self._quote_market(market, conservative)
        if value == 0:
            return 0
        market_decimals = self._market_tokens(market).decimals()
        return DecimalNormalizer.convert(value, scale, market_decimals, self._asset_decimals)

    def pool_value(self, market: str, conservative: bool) -> int:
        pool = self._oracle.describe(market)
        inputs = self._oracle.token_prices(pool)
        return self._oracle.pool_valuation(pool, inputs, conservative)

    def breakdown(self) -> dict[str, int]:
        """Asset-scale value of each registered market, in registry order."""
        return {
            market: self.market_value_in_assets(market, conservative=False)
            for market in self._registry.markets()
        }

    def total_assets(self) -> int:
        """Idle balance plus every market position, in base-asset units."""
        return self.idle_balance() + sum(self.breakdown().values())

    def current_weight(self, market: str, conservative: bool) -> int:
        """Share of total assets held in ``market``, in bps.

        Raises:
            InvariantViolation: If total assets are zero. Callers must check first.
        """
        total = self.total_assets()
        if total <= 0:
            raise InvariantViolation("current weight is undefined while total assets are zero")
        value = self.market_value_in_assets(market, conservative)
        return value * BPS_DENOMINATOR // total

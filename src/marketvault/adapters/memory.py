"""In-memory collaborators for simulation and tests."""

import structlog

from marketvault.errors import ValidationError
from marketvault.models import PoolDescriptor, PriceInputs, PriceQuote, PnlKind, TokenPrice
from marketvault.valuation.base import AssetToken, MarketToken, PriceOracle, ShareLedger

logger = structlog.get_logger(__name__)


class InMemoryAssetToken(AssetToken):
    """Balance/allowance book for the base asset.

    Transfers return False on insufficient balance or allowance, and raise
    ValidationError for non-positive amounts.
    """

    def __init__(self, owner: str, decimals: int = 6):
        self._owner = owner
        self._decimals = decimals
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], int] = {}

    def decimals(self) -> int:
        return self._decimals

    def balance_of(self, owner: str) -> int:
        return self._balances.get(owner, 0)

    def mint(self, to: str, amount: int) -> None:
        self._balances[to] = self.balance_of(to) + amount

    def approve(self, owner: str, spender: str, amount: int) -> None:
        self._allowances[(owner, spender)] = amount

    def allowance(self, owner: str, spender: str) -> int:
        return self._allowances.get((owner, spender), 0)

    def _move(self, src: str, dst: str, amount: int) -> bool:
        if amount <= 0:
            raise ValidationError(f"transfer amount must be positive, got {amount}")
        if self.balance_of(src) < amount:
            logger.debug("memory_token.insufficient_balance", src=src, amount=amount)
            return False
        self._balances[src] -= amount
        self._balances[dst] = self.balance_of(dst) + amount
        return True

    def transfer_from(self, src: str, dst: str, amount: int) -> bool:
        if amount <= 0:
            raise ValidationError(f"transfer amount must be positive, got {amount}")
        allowed = self.allowance(src, self._owner)
        if allowed < amount:
            logger.debug("memory_token.insufficient_allowance", src=src, amount=amount)
            return False
        if not self._move(src, dst, amount):
            return False
        self._allowances[(src, self._owner)] = allowed - amount
        return True

    def transfer(self, dst: str, amount: int) -> bool:
        return self._move(self._owner, dst, amount)


class InMemoryMarketToken(MarketToken):
    def __init__(self, decimals: int = 18):
        self._decimals = decimals
        self._balances: dict[str, int] = {}

    def decimals(self) -> int:
        return self._decimals

    def balance_of(self, owner: str) -> int:
        return self._balances.get(owner, 0)

    def set_balance(self, owner: str, amount: int) -> None:
        self._balances[owner] = amount


class StaticPriceOracle(PriceOracle):
    """Oracle serving fixed market-token prices.

    A price may be a single value or a ``(low, high)`` range; conservative
    quotes take the low end.
    """

    def __init__(self, scale: int = 30):
        self._scale = scale
        self._prices: dict[str, tuple[int, int]] = {}
        self._scales: dict[str, int] = {}
        self._pool_values: dict[str, int] = {}

    def set_price(self, market: str, price, scale: int | None = None) -> None:
        if isinstance(price, tuple):
            low, high = price
        else:
            low = high = price
        self._prices[market] = (low, high)
        self._scales[market] = self._scale if scale is None else scale

    def set_pool_value(self, market: str, value: int) -> None:
        self._pool_values[market] = value

    def _require(self, market: str) -> None:
        if market not in self._prices:
            raise KeyError(f"No price configured for market '{market}'")

    def describe(self, market: str) -> PoolDescriptor:
        self._require(market)
        return PoolDescriptor(
            market=market,
            index_token=f"{market}:index",
            long_token=f"{market}:long",
            short_token=f"{market}:short",
        )

    def token_prices(self, pool: PoolDescriptor) -> PriceInputs:
        low, high = self._prices[pool.market]
        price = TokenPrice(min=max(low, 0), max=max(high, 0))
        return PriceInputs(
            index_token_price=price,
            long_token_price=price,
            short_token_price=price,
        )

    def quote_price(
        self, pool: PoolDescriptor, inputs: PriceInputs, conservative: bool
    ) -> PriceQuote:
        low, high = self._prices[pool.market]
        return PriceQuote(
            value=low if conservative else high,
            scale=self._scales[pool.market],
            pnl_kind=PnlKind.WITHDRAWALS if conservative else PnlKind.DEPOSITS,
        )

    def pool_valuation(
        self, pool: PoolDescriptor, inputs: PriceInputs, conservative: bool
    ) -> int:
        return self._pool_values.get(pool.market, 0)


class InMemoryShareLedger(ShareLedger):
    def __init__(self, supply: int = 0):
        self._supply = supply

    def total_supply(self) -> int:
        return self._supply

    def mint(self, amount: int) -> None:
        self._supply += amount


"""Abstract collaborators the vault prices and moves assets through."""

from abc import ABC, abstractmethod
from typing import Callable

from marketvault.models import PoolDescriptor, PriceInputs, PriceQuote


class PriceOracle(ABC):
    """Read-only market-token pricing service."""

    @abstractmethod
    def describe(self, market: str) -> PoolDescriptor:
        """Return the pool descriptor behind a market token."""
        ...

    @abstractmethod
    def token_prices(self, pool: PoolDescriptor) -> PriceInputs:
        """Return current index/long/short token prices for a pool."""
        ...

    @abstractmethod
    def quote_price(
        self, pool: PoolDescriptor, inputs: PriceInputs, conservative: bool
    ) -> PriceQuote:
        """Price one market token. ``conservative`` selects the lower bound."""
        ...

    @abstractmethod
    def pool_valuation(
        self, pool: PoolDescriptor, inputs: PriceInputs, conservative: bool
    ) -> int:
        """Total pool value in oracle scale."""
        ...


class AssetToken(ABC):
    """Base-asset token. Transfers report success as a bool."""

    @abstractmethod
    def balance_of(self, owner: str) -> int:
        ...

    @abstractmethod
    def decimals(self) -> int:
        ...

    @abstractmethod
    def allowance(self, owner: str, spender: str) -> int:
        """Amount ``spender`` may still pull from ``owner``."""
        ...

    @abstractmethod
    def transfer_from(self, src: str, dst: str, amount: int) -> bool:
        """Move ``amount`` from ``src`` to ``dst`` using the vault's allowance."""
        ...

    @abstractmethod
    def transfer(self, dst: str, amount: int) -> bool:
        """Move ``amount`` out of the vault to ``dst``."""
        ...


class MarketToken(ABC):
    """Staked market-position token."""

    @abstractmethod
    def balance_of(self, owner: str) -> int:
        ...

    @abstractmethod
    def decimals(self) -> int:
        ...


class ShareLedger(ABC):
    """Share bookkeeping the vault prices against."""

    @abstractmethod
    def total_supply(self) -> int:
        ...


MarketTokenResolver = Callable[[str], MarketToken]

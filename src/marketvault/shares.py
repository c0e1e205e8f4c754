"""Asset <-> share conversion priced against total vault value."""

from typing import Callable

from marketvault.fixedpoint import Rounding, mul_div
from marketvault.valuation.base import ShareLedger


class ShareConverter:
    """Converts between asset amounts and share amounts.

    Non-empty conversions use ``supply + 10**decimals_offset`` virtual shares
    against ``total_assets + 1`` virtual assets. The virtual terms make a
    donation to a near-empty vault too expensive to skew the share price.
    """

    def __init__(
        self,
        ledger: ShareLedger,
        total_assets: Callable[[], int],
        deposit_cap: int,
        decimals_offset: int = 0,
    ):
        self._ledger = ledger
        self._total_assets = total_assets
        self._deposit_cap = deposit_cap
        self._offset_units = 10**decimals_offset

    def assets_to_shares(self, assets: int, rounding: Rounding = Rounding.FLOOR) -> int:
        supply = self._ledger.total_supply()
        if supply == 0:
            return assets
        return mul_div(
            assets,
            supply + self._offset_units,
            self._total_assets() + 1,
            rounding,
        )

    def shares_to_assets(self, shares: int, rounding: Rounding = Rounding.FLOOR) -> int:
        supply = self._ledger.total_supply()
        if supply == 0:
            return shares
        return mul_div(
            shares,
            self._total_assets() + 1,
            supply + self._offset_units,
            rounding,
        )

    def max_deposit(self) -> int:
        """Remaining room under the deposit cap, never negative."""
        return max(self._deposit_cap - self._total_assets(), 0)

    def max_mint(self) -> int:
        return self.assets_to_shares(self.max_deposit(), Rounding.FLOOR)

    # Previews round in the vault's favour.

    def preview_deposit(self, assets: int) -> int:
        return self.assets_to_shares(assets, Rounding.FLOOR)

    def preview_mint(self, shares: int) -> int:
        return self.shares_to_assets(shares, Rounding.CEIL)

    def preview_withdraw(self, assets: int) -> int:
        return self.assets_to_shares(assets, Rounding.CEIL)

    def preview_redeem(self, shares: int) -> int:
        return self.shares_to_assets(shares, Rounding.FLOOR)

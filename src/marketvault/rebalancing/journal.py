"""Compensation journal for transfers performed inside a rebalance."""

import structlog

from marketvault.errors import ExternalCallFailure
from marketvault.models import Transfer, TransferDirection
from marketvault.valuation.base import AssetToken

logger = structlog.get_logger(__name__)


class TransferJournal:
    """Records completed transfers so they can be reversed on abort."""

    def __init__(self, vault_address: str, asset: AssetToken):
        self._vault = vault_address
        self._asset = asset
        self._transfers: list[Transfer] = []

    @property
    def transfers(self) -> list[Transfer]:
        return list(self._transfers)

    def record(self, transfer: Transfer) -> None:
        self._transfers.append(transfer)

    def unwind(self) -> None:
        """Reverse every recorded transfer, newest first.

        Raises:
            ExternalCallFailure: If a compensating transfer reports failure.
                Transfers older than the failing one are left in place.
        """
        for transfer in reversed(self._transfers):
            if transfer.direction == TransferDirection.INBOUND:
                ok = self._asset.transfer(transfer.counterparty, transfer.amount)
            else:
                ok = self._asset.transfer_from(transfer.counterparty, self._vault, transfer.amount)

            if not ok:
                raise ExternalCallFailure(
                    f"could not reverse {transfer.direction.value} transfer of "
                    f"{transfer.amount} for market {transfer.market}"
                )
            logger.debug(
                "journal.transfer_reversed",
                market=transfer.market,
                direction=transfer.direction.value,
                amount=transfer.amount,
            )

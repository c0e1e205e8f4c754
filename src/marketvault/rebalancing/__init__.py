"""Rebalancing module: threshold-checked, all-or-nothing asset movements."""

from marketvault.rebalancing.engine import Rebalancer
from marketvault.rebalancing.journal import TransferJournal

__all__ = [
    "Rebalancer",
    "TransferJournal",
]

"""Valuation of market positions and the collaborator interfaces behind it."""

from marketvault.valuation.aggregator import ValuationAggregator
from marketvault.valuation.base import AssetToken, MarketToken, PriceOracle, ShareLedger

__all__ = [
    "ValuationAggregator",
    "AssetToken",
    "MarketToken",
    "PriceOracle",
    "ShareLedger",
]

"""Multi-market allocation vault."""

from marketvault.vault import AllocationVault

__all__ = ["AllocationVault"]

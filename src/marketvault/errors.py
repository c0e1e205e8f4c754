"""Named failure kinds raised by vault operations."""


class VaultError(Exception):
    """Base class for all vault failures."""


class AuthorizationError(VaultError):
    """Raised when the caller lacks the role required by an entry point."""


class ValidationError(VaultError):
    """Raised when an input is malformed (empty market, zero weight, bad lengths)."""


class ExternalCallFailure(VaultError):
    """Raised when a token transfer reports failure."""


class InvariantViolation(VaultError):
    """Raised when a weight or value drifts outside its band, or a market is missing."""

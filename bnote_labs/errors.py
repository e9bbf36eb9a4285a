"""Error kinds raised by the staking engine and its collaborators."""

from __future__ import annotations


class ValidationError(ValueError):
    """User-supplied stake inputs are unusable (amount, days)."""


class RangeViolation(ValidationError):
    """Lock days fall outside the contract's [min, max] window."""

    def __init__(self, lock_days: int, min_lock_days: int, max_lock_days: int):
        super().__init__(
            f"Days must be between {min_lock_days} and {max_lock_days} (got {lock_days})."
        )
        self.lock_days = lock_days
        self.min_lock_days = min_lock_days
        self.max_lock_days = max_lock_days


class ConfigurationError(RuntimeError):
    """Protocol parameters make an estimate meaningless (e.g. zero share rate)."""


class UpstreamUnavailable(RuntimeError):
    """A ledger or market data collaborator failed to answer."""

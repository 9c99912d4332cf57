"""Error types for sync cycles.

A failed or cancelled cycle never writes persisted state.
"""


class SyncError(Exception):
    """Base exception for sync errors."""


class ProviderUnavailableError(SyncError):
    """Raised when the workout log provider cannot be reached or refuses the request."""


class SyncCancelledError(SyncError):
    """Raised when a cycle is cancelled, usually because a newer one started."""

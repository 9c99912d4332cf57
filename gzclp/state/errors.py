"""Error types for the state module."""


class StateCorruptionError(RuntimeError):
    """Raised when a persisted partition payload fails validation.

    The stored data is left as it is so it can be exported or repaired.
    """


class ImportValidationError(ValueError):
    """Raised when an import bundle is malformed or from an unsupported version."""

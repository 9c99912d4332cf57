"""Error types for the progression domain.

Malformed workout data is never raised: analysis skips the offending
exercise and keeps going. The errors below signal programming mistakes or
configuration conflicts that must surface to the caller.
"""


class ContractViolationError(RuntimeError):
    """Raised when an impossible tier/stage/change-type value reaches the engine.

    Enum and pydantic validation should make this unreachable; if it fires,
    an upstream caller bypassed validation.
    """


class RoleConflictError(ValueError):
    """Raised when a main-lift role is assigned to a second exercise."""

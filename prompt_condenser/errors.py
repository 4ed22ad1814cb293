"""Exception types raised by prompt-condenser."""


class InvalidInputError(TypeError):
    """Prompt or text argument is missing or of the wrong type.

    Raised before any compression stage runs; retrying with the same
    argument will fail the same way.
    """


class DictionaryLoadConflict(ValueError):
    """The symbol dictionary source is corrupt (duplicate symbol or concept,
    or a malformed entry). Fatal at startup."""


def require_text(value, name: str = "text") -> str:
    """Return *value* if it is a ``str``, else raise InvalidInputError."""
    if value is None:
        raise InvalidInputError(f"{name} is required")
    if not isinstance(value, str):
        raise InvalidInputError(
            f"{name} must be a string, got {type(value).__name__}"
        )
    return value


def require_ratio(value, name: str = "target_ratio") -> float:
    """Return *value* as a float in (0, 1], else raise InvalidInputError."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidInputError(
            f"{name} must be a number, got {type(value).__name__}"
        )
    ratio = float(value)
    if not 0.0 < ratio <= 1.0:
        raise InvalidInputError(f"{name} must be in (0, 1], got {ratio}")
    return ratio

class ProgressError(Exception):
    """Base class for errors raised by the progress tracker."""


class NotFoundError(ProgressError, ValueError):
    """A referenced user, workout or exercise does not exist."""


class InvalidArgumentError(ProgressError, ValueError):
    """An identifier, date or calendar parameter is malformed."""


class ConflictError(ProgressError, ValueError):
    """A uniqueness rule such as one workout per day key was violated."""


class ConsistencyFault(ProgressError, RuntimeError):
    """Derived state disagrees with the records it is computed from.

    Always a bug or corrupted data. Callers must let it propagate.
    """


def require_positive_id(value, name: str = "id") -> int:
    """Return ``value`` if it is a positive integer identifier."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise InvalidArgumentError(f"{name} must be a positive integer")
    return value

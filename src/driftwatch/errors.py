"""Domain errors raised by the evaluator, ingestor and stores.

The API maps these to HTTP status codes; the CLI prints them and exits non-zero.
"""


class DriftwatchError(Exception):
    """Base class for all Driftwatch errors."""


class NotFoundError(DriftwatchError):
    """A project, threshold or alert does not exist."""


class InvalidThresholdError(DriftwatchError):
    """A threshold configuration cannot be stored (e.g. no boundary set)."""


class InvalidTransitionError(DriftwatchError):
    """An alert status change is not allowed from its current status."""


class NonFiniteValueError(DriftwatchError, ValueError):
    """A metric or baseline value is NaN or infinite."""


class AlreadyExistsError(DriftwatchError):
    """A project with the same slug already exists."""

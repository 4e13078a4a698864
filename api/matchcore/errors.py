"""
Error taxonomy for the matching core.

ValidationError and ConflictError are recoverable by the caller.
NotFoundError is only raised where the operation needs the record to exist;
optional attribute records degrade to absent data instead.
DependencyError wraps attribute store failures and is never retried here.
"""


class MatchCoreError(Exception):
    """Base class for errors raised by the matching core."""

    status_code = 500


class ValidationError(MatchCoreError):
    """Malformed id, empty required list, or a cap exceeded."""

    status_code = 400


class NotFoundError(MatchCoreError):
    """A required identity or profile record is missing."""

    status_code = 404


class ConflictError(MatchCoreError):
    """Optimistic update lost the race too many times."""

    status_code = 409


class DependencyError(MatchCoreError):
    """The attribute store failed or timed out."""

    status_code = 503

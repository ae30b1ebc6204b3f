"""
Error taxonomy for reconciliation.

InvalidInput is a client-side rejection and is never retried.
StorageFailure wraps any error raised by the contact store.
InvariantViolation signals a detected inconsistency in stored clusters; it is
fatal for the request and is logged where it is raised.
"""


class ReconciliationError(Exception):
    """Base class for all reconciliation errors."""


class InvalidInput(ReconciliationError):
    """Neither email nor phone number was supplied."""


class StorageFailure(ReconciliationError):
    """The contact store failed (connection loss, constraint violation, timeout)."""


class InvariantViolation(ReconciliationError):
    """Stored contacts break a cluster invariant."""

from django.core.exceptions import PermissionDenied


class AuthorizationError(PermissionDenied):
    """The caller does not hold an administrative role."""


class StoreError(Exception):
    """A read or commit against the database failed.

    Batches committed before the failure stay committed.
    """


class TransitionCancelled(Exception):
    def __init__(self, message, result=None):
        super().__init__(message)
        self.result = result


class YearNotFound(Exception):
    """No current, upcoming or archived academic year carries the label."""

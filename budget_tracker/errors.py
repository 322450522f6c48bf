# budget_tracker/errors.py


class BudgetTrackerError(Exception):
    """Base class for errors raised by budget_tracker."""


class ValidationError(BudgetTrackerError):
    """A transaction, category or budget failed validation."""


class NotAuthenticated(BudgetTrackerError):
    """No user is signed in."""


class StoreError(BudgetTrackerError):
    """The backing store failed a read, write or live query."""


class MalformedRecord(BudgetTrackerError):
    """A stored record could not be turned back into an entity."""

class ApplicationError(Exception):
    """Base application-layer error, independent from transport concerns."""

    kind = "application_error"


class NotFoundError(ApplicationError):
    """Raised when an expected entity does not exist."""

    kind = "not_found"


class ConflictError(ApplicationError):
    """Raised when a uniqueness or state conflict occurs."""

    kind = "conflict"


class DuplicatePeriodError(ConflictError):
    """Raised when a billing period already exists for the school, year and month."""

    kind = "duplicate_period"


class ActivePeriodProtectedError(ConflictError):
    """Raised when trying to delete the active billing period."""

    kind = "active_period_protected"


class ForbiddenError(ApplicationError):
    """Raised when operation is forbidden by business rules."""

    kind = "forbidden"


class ValidationError(ApplicationError):
    """Raised when application-level validation fails."""

    kind = "validation_error"


class MissingFieldsError(ValidationError):
    """Raised when required input fields are absent."""

    kind = "missing_fields"


class PersistenceFailureError(ApplicationError):
    """Raised when the store fails mid-transaction; the transaction has been rolled back."""

    kind = "persistence_failure"


class ClosedPeriodError(ConflictError):
    """Raised when a payment targets a row of a period that has already been rolled over."""

    kind = "closed_period"

"""Custom exception hierarchy."""


class AppError(Exception):
    """Base exception for application errors."""

    status_code = 500
    title = "Internal Server Error"

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error


class DatabaseError(AppError):
    """Raised when a database operation fails."""
    pass


class ConfigurationError(AppError):
    """Raised when configuration is invalid or missing."""
    pass


class ValidationError(AppError):
    """Raised when input validation or a business rule fails."""

    status_code = 400
    title = "Validation Failed"


class NotFoundError(AppError):
    """Raised when a tenant-scoped record does not exist."""

    status_code = 404
    title = "Not Found"

    def __init__(self, entity: str, identifier=None):
        message = f"{entity} not found" if identifier is None else f"{entity} {identifier} not found"
        super().__init__(message)
        self.entity = entity
        self.identifier = identifier


class ConflictError(AppError):
    """Raised when a guarded write lost a race or a uniqueness rule is hit."""

    status_code = 409
    title = "Conflict"


class InvalidStateTransitionError(ConflictError):
    """Raised when a status change is not in the entity's transition table."""

    title = "Invalid State Transition"

    def __init__(self, entity: str, from_status: str, to_status: str, message: str = None):
        super().__init__(
            message or f"Cannot transition {entity} from {from_status} to {to_status}"
        )
        self.entity = entity
        self.from_status = from_status
        self.to_status = to_status


class PermissionDeniedError(AppError):
    """Raised when the principal lacks the role for an operation."""

    status_code = 403
    title = "Forbidden"

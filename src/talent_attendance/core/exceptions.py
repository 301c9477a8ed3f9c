class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced student, department or record does not exist."""


class ConflictError(DomainError):
    """Raised when a write collides with a unique constraint."""


class AuthenticationError(DomainError):
    """Raised when the admin password is wrong."""


class AuthorizationError(DomainError):
    """Raised when an admin-only action is attempted without an admin session."""

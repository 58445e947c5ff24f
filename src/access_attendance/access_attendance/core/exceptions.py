class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when the target of an operation does not exist."""


class ConflictError(DomainError):
    """Raised when an operation collides with existing state (e.g. an open session)."""


class AuthorizationError(DomainError):
    """Raised when a principal lacks permission for an action."""


class DependencyFailure(DomainError):
    """Raised when a collaborator (schedule lookup, notification sink) is unreachable."""


class VersionConflict(DomainError):
    """Raised when an optimistic update lost the race against another writer."""

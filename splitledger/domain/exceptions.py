"""Domain-specific exceptions"""


class DomainException(Exception):
    """Base exception for domain layer"""

    pass


class ValidationError(DomainException):
    """Split inputs or expense data are inconsistent; nothing was applied"""

    pass


class InvalidTransitionError(ValidationError):
    """Settlement status change not allowed by the status machine"""

    def __init__(self, current: str, requested: str):
        super().__init__(f"cannot move settlement from {current} to {requested}")
        self.current = current
        self.requested = requested


class NotFoundError(DomainException):
    """Referenced user or entity does not exist in the snapshot"""

    pass


class PersistenceError(DomainException):
    """Snapshot storage read or write failed"""

    pass

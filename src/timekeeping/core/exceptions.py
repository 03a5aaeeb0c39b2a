from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced record does not exist."""


class AlreadyActiveEntryError(DomainError):
    """Raised when an employee already has an in-progress time entry."""

    def __init__(self, message: str = "You already have an active time entry"):
        super().__init__(message)


class AlreadyClockedOutError(DomainError):
    """Raised when clocking out an entry that already has a clock-out time."""

    def __init__(self, message: str = "Already clocked out"):
        super().__init__(message)


class ClockInValidationError(ValidationError):
    """Aggregate of every failed clock-in pre-check."""

    def __init__(self, errors: list[str]):
        self.errors = list(errors)
        super().__init__("; ".join(self.errors))


class PeriodAlreadyExistsError(DomainError):
    """Raised by a pay period repository when the same range already exists."""


class ExportedEntryImmutableError(DomainError):
    """Raised when something tries to change a time entry exported to payroll."""

    def __init__(self, entry_id: Optional[int] = None):
        self.entry_id = entry_id
        super().__init__(f"Time entry {entry_id} was exported to payroll and cannot be changed")

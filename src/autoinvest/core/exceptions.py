"""Application-level exceptions."""

from decimal import Decimal
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from autoinvest.domain.views import SweepSummary


class AppError(Exception):
    """Base exception for application errors."""

    def __init__(self, message: str, code: str = "APP_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class ValidationError(AppError):
    """Raised when input validation fails."""

    def __init__(self, message: str):
        super().__init__(message, code="VALIDATION_ERROR")


class NotFoundError(AppError):
    """Raised when a requested resource is not found."""

    def __init__(self, resource: str, identifier: str):
        super().__init__(f"{resource} not found: {identifier}", code="NOT_FOUND")


class InsufficientSharesError(AppError):
    """Raised when attempting to sell more shares than held."""

    def __init__(self, symbol: str, requested: str, available: str):
        super().__init__(
            f"Insufficient shares of {symbol}: requested {requested}, available {available}",
            code="INSUFFICIENT_SHARES",
        )


class InsufficientCashError(AppError):
    """Raised when a debit would take a cash balance below zero."""

    def __init__(self, currency: str, requested: Decimal, available: Decimal):
        self.currency = currency
        self.requested = requested
        self.available = available
        self.shortfall = requested - available
        super().__init__(
            f"Insufficient {currency} balance: requested {requested}, "
            f"available {available}, shortfall {self.shortfall}",
            code="INSUFFICIENT_CASH",
        )


class ScheduleConfigurationError(AppError):
    """Raised when a schedule cannot be created or applied as requested."""

    def __init__(self, message: str):
        super().__init__(message, code="SCHEDULE_CONFIGURATION")


class CommitConflictError(AppError):
    """Raised when an atomic commit keeps losing optimistic-concurrency races."""

    def __init__(self, holding_id: str, attempts: int):
        self.holding_id = holding_id
        self.attempts = attempts
        super().__init__(
            f"Commit for holding {holding_id} conflicted {attempts} time(s); abandoned for this sweep",
            code="COMMIT_CONFLICT",
        )


class SweepAbortedError(AppError):
    """Raised when the store becomes unreachable mid-sweep.

    ``summary`` holds the decisions made before the failure.
    """

    def __init__(self, message: str, summary: Optional["SweepSummary"] = None):
        self.summary = summary
        super().__init__(message, code="SWEEP_ABORTED")

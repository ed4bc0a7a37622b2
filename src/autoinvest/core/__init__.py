"""Core utilities and shared functionality."""

from autoinvest.core.timezone import (
    now_utc,
    now_in_market,
    market_today,
    parse_iso_date,
    MARKET_TIMEZONES,
)
from autoinvest.core.exceptions import (
    AppError,
    ValidationError,
    NotFoundError,
    InsufficientSharesError,
    InsufficientCashError,
    ScheduleConfigurationError,
    CommitConflictError,
    SweepAbortedError,
)

__all__ = [
    "now_utc",
    "now_in_market",
    "market_today",
    "parse_iso_date",
    "MARKET_TIMEZONES",
    "AppError",
    "ValidationError",
    "NotFoundError",
    "InsufficientSharesError",
    "InsufficientCashError",
    "ScheduleConfigurationError",
    "CommitConflictError",
    "SweepAbortedError",
]

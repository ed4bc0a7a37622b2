"""Enumerations for domain models."""

from enum import Enum


class Market(str, Enum):
    """Markets whose trading calendar drives execution dates."""

    US = "US"
    KR = "KR"
    GLOBAL = "GLOBAL"


class Currency(str, Enum):
    """Supported ledger currencies."""

    USD = "USD"
    KRW = "KRW"


class TransactionType(str, Enum):
    """Types of ledger transactions."""

    BUY = "buy"
    SELL = "sell"


class PurchaseMethod(str, Enum):
    """How a transaction entered the ledger."""

    MANUAL = "manual"
    AUTO = "auto"


class TransactionStatus(str, Enum):
    """Settlement status of a transaction."""

    COMPLETED = "completed"
    PENDING = "pending"


class Frequency(str, Enum):
    """Auto-invest cadence."""

    DAILY = "daily"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class AutomationStatus(str, Enum):
    """Outcome of one sweep decision."""

    SUCCESS = "success"
    SKIPPED = "skipped"
    ERROR = "error"
    PREVIEW = "preview"


class ScheduleAction(str, Enum):
    """Actions recorded in schedule revisions."""

    CREATE = "create"
    CLOSE = "close"
    REAPPLY = "reapply"


class CashMovementKind(str, Enum):
    """Reasons a cash balance moved."""

    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    AUTO_BUY = "auto_buy"
    REFUND = "refund"

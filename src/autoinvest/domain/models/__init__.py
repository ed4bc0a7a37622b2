"""Domain models package."""

from autoinvest.domain.models.enums import (
    Market,
    Currency,
    TransactionType,
    PurchaseMethod,
    TransactionStatus,
    Frequency,
    AutomationStatus,
    ScheduleAction,
    CashMovementKind,
)
from autoinvest.domain.models.holding import Holding, AutoInvestConfig
from autoinvest.domain.models.transaction import Transaction
from autoinvest.domain.models.schedule import AutoInvestSchedule, ScheduleRevision
from autoinvest.domain.models.balance import CashBalance, CashMovement
from autoinvest.domain.models.automation_log import AutomationLogEntry

__all__ = [
    "Market",
    "Currency",
    "TransactionType",
    "PurchaseMethod",
    "TransactionStatus",
    "Frequency",
    "AutomationStatus",
    "ScheduleAction",
    "CashMovementKind",
    "Holding",
    "AutoInvestConfig",
    "Transaction",
    "AutoInvestSchedule",
    "ScheduleRevision",
    "CashBalance",
    "CashMovement",
    "AutomationLogEntry",
]

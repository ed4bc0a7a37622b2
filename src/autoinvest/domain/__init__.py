"""Domain layer - pure business models with no external dependencies."""

from autoinvest.domain.models import (
    Holding,
    AutoInvestConfig,
    Transaction,
    AutoInvestSchedule,
    ScheduleRevision,
    CashBalance,
    CashMovement,
    AutomationLogEntry,
)

__all__ = [
    "Holding",
    "AutoInvestConfig",
    "Transaction",
    "AutoInvestSchedule",
    "ScheduleRevision",
    "CashBalance",
    "CashMovement",
    "AutomationLogEntry",
]

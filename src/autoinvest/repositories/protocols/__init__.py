"""Repository protocol definitions (interfaces)."""

from autoinvest.repositories.protocols.holding_repo import HoldingRepository
from autoinvest.repositories.protocols.transaction_repo import TransactionRepository
from autoinvest.repositories.protocols.schedule_repo import ScheduleRepository
from autoinvest.repositories.protocols.balance_repo import BalanceRepository
from autoinvest.repositories.protocols.automation_log_repo import AutomationLogRepository
from autoinvest.repositories.protocols.repository_set import RepositorySet

__all__ = [
    "HoldingRepository",
    "TransactionRepository",
    "ScheduleRepository",
    "BalanceRepository",
    "AutomationLogRepository",
    "RepositorySet",
]

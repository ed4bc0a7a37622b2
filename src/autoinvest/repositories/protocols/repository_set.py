"""Bundle of repositories sharing one unit of work."""

from dataclasses import dataclass

from autoinvest.repositories.protocols.automation_log_repo import AutomationLogRepository
from autoinvest.repositories.protocols.balance_repo import BalanceRepository
from autoinvest.repositories.protocols.holding_repo import HoldingRepository
from autoinvest.repositories.protocols.schedule_repo import ScheduleRepository
from autoinvest.repositories.protocols.transaction_repo import TransactionRepository


@dataclass
class RepositorySet:
    """Every repository bound to the same session."""

    holdings: HoldingRepository
    transactions: TransactionRepository
    schedules: ScheduleRepository
    balances: BalanceRepository
    automation_logs: AutomationLogRepository

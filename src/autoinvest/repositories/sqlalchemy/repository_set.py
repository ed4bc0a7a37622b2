"""Build a RepositorySet over one SQLAlchemy session."""

from sqlalchemy.orm import Session

from autoinvest.repositories.protocols.repository_set import RepositorySet
from autoinvest.repositories.sqlalchemy.automation_log_repo import SqlAlchemyAutomationLogRepository
from autoinvest.repositories.sqlalchemy.balance_repo import SqlAlchemyBalanceRepository
from autoinvest.repositories.sqlalchemy.holding_repo import SqlAlchemyHoldingRepository
from autoinvest.repositories.sqlalchemy.schedule_repo import SqlAlchemyScheduleRepository
from autoinvest.repositories.sqlalchemy.transaction_repo import SqlAlchemyTransactionRepository


def build_repositories(db: Session) -> RepositorySet:
    """Return the SQLAlchemy repositories for ``db``."""
    return RepositorySet(
        holdings=SqlAlchemyHoldingRepository(db),
        transactions=SqlAlchemyTransactionRepository(db),
        schedules=SqlAlchemyScheduleRepository(db),
        balances=SqlAlchemyBalanceRepository(db),
        automation_logs=SqlAlchemyAutomationLogRepository(db),
    )

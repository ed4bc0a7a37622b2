"""SQLAlchemy repository implementations."""

from autoinvest.repositories.sqlalchemy.database import (
    get_engine,
    get_session_factory,
    get_db,
    get_session,
    init_db,
    init_db_with_url,
    reset_database,
    atomic,
    Base,
)
from autoinvest.repositories.sqlalchemy.holding_repo import SqlAlchemyHoldingRepository
from autoinvest.repositories.sqlalchemy.transaction_repo import SqlAlchemyTransactionRepository
from autoinvest.repositories.sqlalchemy.schedule_repo import SqlAlchemyScheduleRepository
from autoinvest.repositories.sqlalchemy.balance_repo import SqlAlchemyBalanceRepository
from autoinvest.repositories.sqlalchemy.automation_log_repo import SqlAlchemyAutomationLogRepository
from autoinvest.repositories.sqlalchemy.repository_set import build_repositories

__all__ = [
    "get_engine",
    "get_session_factory",
    "get_db",
    "get_session",
    "init_db",
    "init_db_with_url",
    "reset_database",
    "atomic",
    "Base",
    "SqlAlchemyHoldingRepository",
    "SqlAlchemyTransactionRepository",
    "SqlAlchemyScheduleRepository",
    "SqlAlchemyBalanceRepository",
    "SqlAlchemyAutomationLogRepository",
    "build_repositories",
]

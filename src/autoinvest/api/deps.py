"""Dependency injection for FastAPI."""

from fastapi import Depends
from sqlalchemy.orm import Session, sessionmaker

from autoinvest.config.settings import get_settings
from autoinvest.providers.trading_calendar import WeekdayTradingCalendar, calendar_from_settings
from autoinvest.providers.stub_provider import StubPriceProvider, StubExchangeRateProvider
from autoinvest.repositories.sqlalchemy.database import get_db, get_session_factory
from autoinvest.repositories.sqlalchemy import (
    SqlAlchemyHoldingRepository,
    SqlAlchemyTransactionRepository,
    SqlAlchemyScheduleRepository,
    SqlAlchemyBalanceRepository,
    SqlAlchemyAutomationLogRepository,
    build_repositories,
)
from autoinvest.services import (
    AutoInvestExecutor,
    BalanceService,
    LedgerService,
    MarketDataService,
    ReconciliationEngine,
    ScheduleService,
)


def get_holding_repo(db: Session = Depends(get_db)) -> SqlAlchemyHoldingRepository:
    """Provide HoldingRepository instance."""
    return SqlAlchemyHoldingRepository(db)


def get_transaction_repo(db: Session = Depends(get_db)) -> SqlAlchemyTransactionRepository:
    """Provide TransactionRepository instance."""
    return SqlAlchemyTransactionRepository(db)


def get_schedule_repo(db: Session = Depends(get_db)) -> SqlAlchemyScheduleRepository:
    """Provide ScheduleRepository instance."""
    return SqlAlchemyScheduleRepository(db)


def get_balance_repo(db: Session = Depends(get_db)) -> SqlAlchemyBalanceRepository:
    """Provide BalanceRepository instance."""
    return SqlAlchemyBalanceRepository(db)


def get_automation_log_repo(db: Session = Depends(get_db)) -> SqlAlchemyAutomationLogRepository:
    """Provide AutomationLogRepository instance."""
    return SqlAlchemyAutomationLogRepository(db)


def get_calendar() -> WeekdayTradingCalendar:
    """Provide the trading calendar (weekends plus configured holidays)."""
    return calendar_from_settings(get_settings())


def get_price_provider() -> StubPriceProvider:
    """Provide price provider instance (stub for offline operation)."""
    return StubPriceProvider()


def get_fx_provider() -> StubExchangeRateProvider:
    """Provide exchange-rate provider instance (stub for offline operation)."""
    return StubExchangeRateProvider()


def get_sweep_session_factory() -> sessionmaker:
    """Provide the session factory the sweep opens one session per holding from."""
    return get_session_factory()


def get_market_data_service(
    price_provider: StubPriceProvider = Depends(get_price_provider),
    fx_provider: StubExchangeRateProvider = Depends(get_fx_provider),
) -> MarketDataService:
    """Provide MarketDataService instance."""
    return MarketDataService(price_provider=price_provider, fx_provider=fx_provider)


def get_reconciliation_engine(
    holding_repo: SqlAlchemyHoldingRepository = Depends(get_holding_repo),
    transaction_repo: SqlAlchemyTransactionRepository = Depends(get_transaction_repo),
) -> ReconciliationEngine:
    """Provide ReconciliationEngine instance."""
    return ReconciliationEngine(holding_repo=holding_repo, transaction_repo=transaction_repo)


def get_balance_service(
    db: Session = Depends(get_db),
    balance_repo: SqlAlchemyBalanceRepository = Depends(get_balance_repo),
) -> BalanceService:
    """Provide BalanceService instance."""
    return BalanceService(db=db, balance_repo=balance_repo)


def get_ledger_service(
    db: Session = Depends(get_db),
    holding_repo: SqlAlchemyHoldingRepository = Depends(get_holding_repo),
    transaction_repo: SqlAlchemyTransactionRepository = Depends(get_transaction_repo),
    reconciliation: ReconciliationEngine = Depends(get_reconciliation_engine),
    calendar: WeekdayTradingCalendar = Depends(get_calendar),
) -> LedgerService:
    """Provide LedgerService instance."""
    return LedgerService(
        db=db,
        holding_repo=holding_repo,
        transaction_repo=transaction_repo,
        reconciliation=reconciliation,
        calendar=calendar,
    )


def get_schedule_service(
    db: Session = Depends(get_db),
    holding_repo: SqlAlchemyHoldingRepository = Depends(get_holding_repo),
    transaction_repo: SqlAlchemyTransactionRepository = Depends(get_transaction_repo),
    schedule_repo: SqlAlchemyScheduleRepository = Depends(get_schedule_repo),
    balance_service: BalanceService = Depends(get_balance_service),
    reconciliation: ReconciliationEngine = Depends(get_reconciliation_engine),
    market_data: MarketDataService = Depends(get_market_data_service),
    calendar: WeekdayTradingCalendar = Depends(get_calendar),
) -> ScheduleService:
    """Provide ScheduleService instance."""
    return ScheduleService(
        db=db,
        holding_repo=holding_repo,
        transaction_repo=transaction_repo,
        schedule_repo=schedule_repo,
        balance_service=balance_service,
        reconciliation=reconciliation,
        market_data=market_data,
        calendar=calendar,
    )


def get_executor(
    session_factory: sessionmaker = Depends(get_sweep_session_factory),
    market_data: MarketDataService = Depends(get_market_data_service),
    calendar: WeekdayTradingCalendar = Depends(get_calendar),
) -> AutoInvestExecutor:
    """Provide AutoInvestExecutor instance."""
    return AutoInvestExecutor(
        session_factory=session_factory,
        repositories=build_repositories,
        market_data=market_data,
        calendar=calendar,
    )

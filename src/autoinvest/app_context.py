"""Application context for in-process service management.

Provides a centralized way to access all services without HTTP.
Used by the command-line sweep and by scripts that drive the engine directly.
"""

from datetime import date
from pathlib import Path
from typing import Optional

from autoinvest.config.settings import Settings, set_settings, get_settings
from autoinvest.domain.views import SweepSummary
from autoinvest.providers.trading_calendar import TradingCalendar, calendar_from_settings
from autoinvest.providers.stub_provider import StubPriceProvider, StubExchangeRateProvider
from autoinvest.repositories.sqlalchemy.database import (
    init_db,
    init_db_with_url,
    reset_database,
    get_session,
    get_session_factory,
)
from autoinvest.repositories.sqlalchemy import (
    SqlAlchemyHoldingRepository,
    SqlAlchemyTransactionRepository,
    SqlAlchemyScheduleRepository,
    SqlAlchemyBalanceRepository,
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


class AppContext:
    """
    Application context providing in-process access to all services.

    Services share one session; the sweep executor opens its own
    sessions from the factory.
    """

    def __init__(self, database_url: Optional[str] = None, data_dir: Optional[Path] = None):
        self._database_url = database_url
        self._data_dir = data_dir
        self._session = None
        self._initialized = False

        # Service instances (lazy initialized)
        self._calendar: Optional[TradingCalendar] = None
        self._market_data_service: Optional[MarketDataService] = None
        self._ledger_service: Optional[LedgerService] = None
        self._balance_service: Optional[BalanceService] = None
        self._schedule_service: Optional[ScheduleService] = None
        self._executor: Optional[AutoInvestExecutor] = None

    def initialize(self) -> None:
        """Point the settings and database at this context's location and create tables."""
        if self._database_url or self._data_dir:
            overrides = {"database_url": self._database_url, "data_dir": self._data_dir}
            settings = get_settings().model_copy(
                update={k: v for k, v in overrides.items() if v is not None}
            )
            set_settings(settings)
            reset_database()
            init_db_with_url(settings.get_database_url())
        else:
            init_db()

        self._reset_services()
        self._initialized = True

    @property
    def is_initialized(self) -> bool:
        """Check if context is initialized."""
        return self._initialized

    @property
    def settings(self) -> Settings:
        return get_settings()

    def _get_session(self):
        """Get or create database session."""
        if self._session is None:
            self._session = get_session()
        return self._session

    def _reset_services(self) -> None:
        self._ledger_service = None
        self._balance_service = None
        self._schedule_service = None
        self._executor = None

    @property
    def calendar(self) -> TradingCalendar:
        if self._calendar is None:
            self._calendar = calendar_from_settings(get_settings())
        return self._calendar

    @property
    def market_data(self) -> MarketDataService:
        """Get the MarketDataService instance."""
        if self._market_data_service is None:
            self._market_data_service = MarketDataService(
                price_provider=StubPriceProvider(),
                fx_provider=StubExchangeRateProvider(),
            )
        return self._market_data_service

    def _reconciliation(self) -> ReconciliationEngine:
        session = self._get_session()
        return ReconciliationEngine(
            holding_repo=SqlAlchemyHoldingRepository(session),
            transaction_repo=SqlAlchemyTransactionRepository(session),
        )

    @property
    def ledger(self) -> LedgerService:
        """Get the LedgerService instance."""
        if self._ledger_service is None:
            session = self._get_session()
            self._ledger_service = LedgerService(
                db=session,
                holding_repo=SqlAlchemyHoldingRepository(session),
                transaction_repo=SqlAlchemyTransactionRepository(session),
                reconciliation=self._reconciliation(),
                calendar=self.calendar,
            )
        return self._ledger_service

    @property
    def balances(self) -> BalanceService:
        """Get the BalanceService instance."""
        if self._balance_service is None:
            session = self._get_session()
            self._balance_service = BalanceService(session, SqlAlchemyBalanceRepository(session))
        return self._balance_service

    @property
    def schedules(self) -> ScheduleService:
        """Get the ScheduleService instance."""
        if self._schedule_service is None:
            session = self._get_session()
            self._schedule_service = ScheduleService(
                db=session,
                holding_repo=SqlAlchemyHoldingRepository(session),
                transaction_repo=SqlAlchemyTransactionRepository(session),
                schedule_repo=SqlAlchemyScheduleRepository(session),
                balance_service=self.balances,
                reconciliation=self._reconciliation(),
                market_data=self.market_data,
                calendar=self.calendar,
            )
        return self._schedule_service

    @property
    def executor(self) -> AutoInvestExecutor:
        """Get the AutoInvestExecutor instance."""
        if self._executor is None:
            self._executor = AutoInvestExecutor(
                session_factory=get_session_factory(),
                repositories=build_repositories,
                market_data=self.market_data,
                calendar=self.calendar,
            )
        return self._executor

    def run_sweep(self, as_of: Optional[date] = None, dry_run: bool = False) -> SweepSummary:
        """Run one sweep and refresh the shared session so it sees the new rows."""
        summary = self.executor.run_sweep(as_of=as_of, dry_run=dry_run)
        if self._session is not None:
            self._session.expire_all()
        return summary

    def close(self) -> None:
        """Clean up resources."""
        if self._session:
            self._session.close()
            self._session = None

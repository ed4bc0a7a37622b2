"""
Pytest configuration and fixtures for auto-invest engine tests.

This module provides:
- In-memory SQLite database fixtures
- A trading calendar with a fixed "today" and a New Year's holiday
- Deterministic, failing and empty price providers
- Service, executor and repository fixtures
- Factory helpers for holdings, cash and schedules
"""

from datetime import date
from decimal import Decimal
from typing import Callable, Optional

import pytest
from sqlalchemy import create_engine, StaticPool
from sqlalchemy.orm import sessionmaker, Session
from fastapi.testclient import TestClient

from autoinvest.main import app
from autoinvest.api.deps import (
    get_calendar,
    get_fx_provider,
    get_price_provider,
    get_sweep_session_factory,
)
from autoinvest.repositories.sqlalchemy.database import Base, get_db, reset_database
# Import ORM models to register them with Base before creating tables
from autoinvest.repositories.sqlalchemy import orm_models  # noqa: F401
from autoinvest.repositories.sqlalchemy import (
    SqlAlchemyHoldingRepository,
    SqlAlchemyTransactionRepository,
    SqlAlchemyScheduleRepository,
    SqlAlchemyBalanceRepository,
    SqlAlchemyAutomationLogRepository,
    build_repositories,
)
from autoinvest.providers.trading_calendar import WeekdayTradingCalendar
from autoinvest.services import (
    AutoInvestExecutor,
    BalanceService,
    LedgerService,
    MarketDataService,
    ReconciliationEngine,
    ScheduleService,
    TransactionCreate,
)
from autoinvest.domain.models import (
    Currency,
    Frequency,
    Holding,
    Market,
    TransactionType,
)
from autoinvest.domain.views import SweepSummary
from autoinvest.config.settings import Settings, set_settings, reset_settings


FIXED_TODAY = date(2024, 1, 31)  # Wednesday
NEW_YEAR = date(2024, 1, 1)  # Monday, US market holiday


# =============================================================================
# CALENDAR FIXTURES
# =============================================================================


class FixedTodayCalendar(WeekdayTradingCalendar):
    """Weekday calendar whose 'today' never moves."""

    def __init__(self, today: date, holidays=None):
        super().__init__(holidays)
        self._today = today

    def today(self, market: Market) -> date:
        return self._today


@pytest.fixture
def fixed_today() -> date:
    """Fixed 'today' for deterministic tests."""
    return FIXED_TODAY


@pytest.fixture
def calendar(fixed_today) -> FixedTodayCalendar:
    """Calendar with weekends and 2024-01-01 closed for the US market."""
    return FixedTodayCalendar(fixed_today, holidays={Market.US: [NEW_YEAR]})


# =============================================================================
# DATABASE FIXTURES
# =============================================================================


@pytest.fixture
def test_settings() -> Settings:
    """Settings for tests: in-memory database, single sweep worker."""
    return Settings(
        database_url="sqlite://",
        sweep_max_workers=1,
        commit_retry_attempts=3,
        us_holidays=[NEW_YEAR],
    )


@pytest.fixture(scope="function")
def test_engine(test_settings):
    """Create test database engine with shared in-memory SQLite."""
    # Reset settings for clean state
    reset_settings()
    set_settings(test_settings)

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    reset_settings()


@pytest.fixture(scope="function")
def test_session(test_engine) -> Session:
    """Create test database session."""
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def session_factory(test_engine) -> sessionmaker:
    """Session factory the sweep executor opens per-holding sessions from."""
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
        bind=test_engine,
    )


# =============================================================================
# REPOSITORY FIXTURES
# =============================================================================


@pytest.fixture
def holding_repo(test_session) -> SqlAlchemyHoldingRepository:
    """Provide test HoldingRepository."""
    return SqlAlchemyHoldingRepository(test_session)


@pytest.fixture
def transaction_repo(test_session) -> SqlAlchemyTransactionRepository:
    """Provide test TransactionRepository."""
    return SqlAlchemyTransactionRepository(test_session)


@pytest.fixture
def schedule_repo(test_session) -> SqlAlchemyScheduleRepository:
    """Provide test ScheduleRepository."""
    return SqlAlchemyScheduleRepository(test_session)


@pytest.fixture
def balance_repo(test_session) -> SqlAlchemyBalanceRepository:
    """Provide test BalanceRepository."""
    return SqlAlchemyBalanceRepository(test_session)


@pytest.fixture
def automation_log_repo(test_session) -> SqlAlchemyAutomationLogRepository:
    """Provide test AutomationLogRepository."""
    return SqlAlchemyAutomationLogRepository(test_session)


# =============================================================================
# MARKET DATA FIXTURES
# =============================================================================


class DeterministicPriceProvider:
    """
    Deterministic price provider for testing.

    Every date gets the symbol's fixed price unless a per-date price is set.
    """

    FIXED_PRICES = {
        "AAPL": Decimal("100.00"),
        "MSFT": Decimal("250.00"),
        "VOO": Decimal("400.00"),
        "005930": Decimal("70000"),
    }

    def __init__(self):
        self._prices = dict(self.FIXED_PRICES)
        self._by_date: dict[tuple[str, date], Optional[Decimal]] = {}
        self.calls: list[tuple[str, date]] = []

    def set_price(self, symbol: str, price: Optional[Decimal], day: Optional[date] = None) -> None:
        if day is None:
            self._prices[symbol.upper()] = price
        else:
            self._by_date[(symbol.upper(), day)] = price

    def get_historical_price(
        self,
        symbol: str,
        day: date,
        method: str = "auto",
        market: Optional[Market] = None,
    ) -> Optional[Decimal]:
        self.calls.append((symbol.upper(), day))
        key = (symbol.upper(), day)
        if key in self._by_date:
            return self._by_date[key]
        return self._prices.get(symbol.upper())


class FailingPriceProvider:
    """Price provider that always raises an exception."""

    def get_historical_price(self, symbol, day, method="auto", market=None):
        raise ConnectionError("Network unavailable")


class DeterministicFxProvider:
    """FX provider with a fixed USD/KRW rate that counts lookups."""

    def __init__(self, rate: Decimal = Decimal("1300")):
        self._rate = rate
        self.calls = 0

    def set_rate(self, rate: Optional[Decimal]) -> None:
        self._rate = rate

    def get_historical_exchange_rate(self, day, from_currency, to_currency):
        self.calls += 1
        if (from_currency, to_currency) == ("USD", "KRW"):
            return self._rate
        return None


@pytest.fixture
def price_provider() -> DeterministicPriceProvider:
    """Provide deterministic price provider."""
    return DeterministicPriceProvider()


@pytest.fixture
def failing_provider() -> FailingPriceProvider:
    """Provide a price provider that always fails."""
    return FailingPriceProvider()


@pytest.fixture
def fx_provider() -> DeterministicFxProvider:
    """Provide deterministic FX provider."""
    return DeterministicFxProvider()


@pytest.fixture
def market_data_service(price_provider, fx_provider) -> MarketDataService:
    """Provide test MarketDataService with deterministic providers."""
    return MarketDataService(price_provider=price_provider, fx_provider=fx_provider)


# =============================================================================
# SERVICE FIXTURES
# =============================================================================


@pytest.fixture
def reconciliation_engine(holding_repo, transaction_repo) -> ReconciliationEngine:
    """Provide test ReconciliationEngine."""
    return ReconciliationEngine(holding_repo=holding_repo, transaction_repo=transaction_repo)


@pytest.fixture
def balance_service(test_session, balance_repo) -> BalanceService:
    """Provide test BalanceService."""
    return BalanceService(db=test_session, balance_repo=balance_repo)


@pytest.fixture
def ledger_service(
    test_session,
    holding_repo,
    transaction_repo,
    reconciliation_engine,
    calendar,
) -> LedgerService:
    """Provide test LedgerService."""
    return LedgerService(
        db=test_session,
        holding_repo=holding_repo,
        transaction_repo=transaction_repo,
        reconciliation=reconciliation_engine,
        calendar=calendar,
    )


@pytest.fixture
def schedule_service(
    test_session,
    holding_repo,
    transaction_repo,
    schedule_repo,
    balance_service,
    reconciliation_engine,
    market_data_service,
    calendar,
) -> ScheduleService:
    """Provide test ScheduleService."""
    return ScheduleService(
        db=test_session,
        holding_repo=holding_repo,
        transaction_repo=transaction_repo,
        schedule_repo=schedule_repo,
        balance_service=balance_service,
        reconciliation=reconciliation_engine,
        market_data=market_data_service,
        calendar=calendar,
    )


@pytest.fixture
def executor(session_factory, market_data_service, calendar) -> AutoInvestExecutor:
    """Provide test AutoInvestExecutor."""
    return AutoInvestExecutor(
        session_factory=session_factory,
        repositories=build_repositories,
        market_data=market_data_service,
        calendar=calendar,
    )


@pytest.fixture
def run_sweep(executor, test_session) -> Callable[..., SweepSummary]:
    """Run a sweep, then expire the test session so it reads the sweep's writes."""

    def _run(as_of: Optional[date] = None, dry_run: bool = False) -> SweepSummary:
        summary = executor.run_sweep(as_of=as_of, dry_run=dry_run)
        test_session.expire_all()
        return summary

    return _run


# =============================================================================
# FACTORY FIXTURES
# =============================================================================


@pytest.fixture
def holding_factory(ledger_service) -> Callable[..., Holding]:
    """Factory for creating test holdings."""

    def _create_holding(
        symbol: str = "AAPL",
        owner_id: str = "owner-1",
        portfolio_id: str = "main",
        market: Optional[Market] = None,
        currency: Optional[Currency] = None,
    ) -> Holding:
        return ledger_service.create_holding(
            owner_id=owner_id,
            portfolio_id=portfolio_id,
            symbol=symbol,
            market=market,
            currency=currency,
        )

    return _create_holding


@pytest.fixture
def deposit(balance_service) -> Callable[..., Decimal]:
    """Factory for funding a holding's portfolio."""

    def _deposit(holding: Holding, amount: Decimal) -> Decimal:
        balance = balance_service.deposit(
            holding.owner_id, holding.portfolio_id, holding.currency, amount
        )
        return balance.balance

    return _deposit


@pytest.fixture
def transaction_factory(ledger_service):
    """Factory for recording manual transactions."""

    def _create_transaction(
        holding_id: str,
        txn_type: TransactionType,
        shares: Decimal,
        price: Decimal,
        trade_date: Optional[date] = None,
        fee: Decimal = Decimal("0"),
    ):
        return ledger_service.add_transaction(
            TransactionCreate(
                holding_id=holding_id,
                txn_type=txn_type,
                shares=shares,
                price=price,
                trade_date=trade_date,
                fee=fee,
            )
        )

    return _create_transaction


@pytest.fixture
def schedule_factory(schedule_service):
    """Factory for starting schedule versions; returns the new open version."""

    def _create_schedule(
        holding_id: str,
        frequency: Frequency = Frequency.DAILY,
        amount: Decimal = Decimal("100"),
        effective_from: Optional[date] = NEW_YEAR,
        regenerate: bool = False,
    ):
        schedules = schedule_service.create_schedule(
            holding_id,
            frequency=frequency,
            amount=amount,
            effective_from=effective_from,
            regenerate=regenerate,
        )
        return schedules[0]

    return _create_schedule


# =============================================================================
# PRESET DATA FIXTURES
# =============================================================================


@pytest.fixture
def funded_holding(holding_factory, deposit) -> Holding:
    """An AAPL holding whose portfolio holds 1,000 USD."""
    holding = holding_factory(symbol="AAPL")
    deposit(holding, Decimal("1000"))
    return holding


# =============================================================================
# API TEST CLIENT FIXTURE
# =============================================================================


@pytest.fixture
def client(test_engine, session_factory, calendar, price_provider, fx_provider) -> TestClient:
    """Provide FastAPI test client with test database and deterministic market data."""
    TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

    def override_get_db():
        session = TestSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_sweep_session_factory] = lambda: session_factory
    app.dependency_overrides[get_calendar] = lambda: calendar
    app.dependency_overrides[get_price_provider] = lambda: price_provider
    app.dependency_overrides[get_fx_provider] = lambda: fx_provider
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    reset_database()


# =============================================================================
# HELPER FUNCTIONS (exported for use in tests)
# =============================================================================


def assert_decimal_equal(
    actual: Decimal,
    expected: Decimal,
    tolerance: Decimal = Decimal("0.01"),
) -> None:
    """Assert two Decimals are equal within tolerance."""
    diff = abs(Decimal(actual) - Decimal(expected))
    assert diff <= tolerance, f"Expected {expected}, got {actual} (diff={diff})"

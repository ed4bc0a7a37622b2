"""SQLAlchemy ORM model definitions."""

from decimal import Decimal

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
    Enum as SqlEnum,
    func,
)
from sqlalchemy.orm import relationship

from autoinvest.repositories.sqlalchemy.database import Base
from autoinvest.domain.models.enums import (
    AutomationStatus,
    CashMovementKind,
    Currency,
    Frequency,
    Market,
    PurchaseMethod,
    ScheduleAction,
    TransactionStatus,
    TransactionType,
)

_QTY = Numeric(precision=24, scale=8)
_ZERO = Decimal("0")


class HoldingORM(Base):
    """SQLAlchemy model for Holding, including the embedded auto-invest config."""

    __tablename__ = "holdings"

    holding_id = Column(String(36), primary_key=True)
    owner_id = Column(String(64), nullable=False)
    portfolio_id = Column(String(64), nullable=False)
    symbol = Column(String(20), nullable=False)
    market = Column(SqlEnum(Market), nullable=False, default=Market.US)
    currency = Column(SqlEnum(Currency), nullable=False, default=Currency.USD)

    shares = Column(_QTY, nullable=False, default=_ZERO)
    average_cost = Column(_QTY, nullable=False, default=_ZERO)
    total_invested = Column(_QTY, nullable=False, default=_ZERO)
    current_price = Column(_QTY, nullable=False, default=_ZERO)
    total_value = Column(_QTY, nullable=False, default=_ZERO)
    profit_loss = Column(_QTY, nullable=False, default=_ZERO)
    return_rate = Column(_QTY, nullable=False, default=_ZERO)
    transaction_count = Column(Integer, nullable=False, default=0)
    first_transaction_date = Column(Date, nullable=True)
    last_transaction_date = Column(Date, nullable=True)

    # Sweep entry point: indexed so the active set is a lookup, not a scan
    auto_invest_active = Column(Boolean, nullable=False, default=False, index=True)
    auto_invest_schedule_id = Column(String(36), nullable=True)
    auto_invest_frequency = Column(SqlEnum(Frequency), nullable=True)
    auto_invest_amount = Column(_QTY, nullable=True)
    auto_invest_start_date = Column(Date, nullable=True)
    auto_invest_last_executed = Column(Date, nullable=True)
    auto_invest_last_updated = Column(Date, nullable=True)

    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=True, server_default=func.now(), onupdate=func.now())

    transactions = relationship("TransactionORM", back_populates="holding")
    schedules = relationship("ScheduleORM", back_populates="holding")

    __table_args__ = (
        UniqueConstraint("owner_id", "portfolio_id", "symbol", name="uq_holding_symbol"),
        Index("ix_holdings_owner_portfolio", "owner_id", "portfolio_id"),
    )
    __mapper_args__ = {"version_id_col": version}


class TransactionORM(Base):
    """SQLAlchemy model for Transaction (immutable ledger entry)."""

    __tablename__ = "transactions"

    txn_id = Column(String(36), primary_key=True)
    holding_id = Column(String(36), ForeignKey("holdings.holding_id"), nullable=False)
    txn_type = Column(SqlEnum(TransactionType), nullable=False)
    symbol = Column(String(20), nullable=False)
    shares = Column(_QTY, nullable=False)
    price = Column(_QTY, nullable=False)
    gross_amount = Column(_QTY, nullable=False, default=_ZERO)
    fee = Column(_QTY, nullable=False, default=_ZERO)
    tax = Column(_QTY, nullable=False, default=_ZERO)
    currency = Column(SqlEnum(Currency), nullable=False)
    trade_date = Column(Date, nullable=False)
    purchase_method = Column(SqlEnum(PurchaseMethod), nullable=False, default=PurchaseMethod.MANUAL)
    status = Column(SqlEnum(TransactionStatus), nullable=False, default=TransactionStatus.COMPLETED)
    scheduled_date = Column(Date, nullable=True)
    schedule_id = Column(String(36), nullable=True)
    exchange_rate = Column(Numeric(precision=18, scale=6), nullable=True)
    note = Column(Text, nullable=True)
    sequence = Column(Integer, nullable=False)
    executed_at = Column(DateTime, nullable=False, server_default=func.now())
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    holding = relationship("HoldingORM", back_populates="transactions")

    __table_args__ = (
        # NULL scheduled_date (manual rows) never collides
        UniqueConstraint("holding_id", "scheduled_date", name="uq_auto_txn_due_date"),
        UniqueConstraint("holding_id", "sequence", name="uq_txn_sequence"),
        Index("ix_txn_holding_method_date", "holding_id", "purchase_method", "trade_date"),
    )


class ScheduleORM(Base):
    """SQLAlchemy model for AutoInvestSchedule (one version)."""

    __tablename__ = "auto_invest_schedules"

    # Insertion order; ties on effective_from resolve to the newer version
    id = Column(Integer, primary_key=True, autoincrement=True)
    schedule_id = Column(String(36), nullable=False, unique=True)
    holding_id = Column(String(36), ForeignKey("holdings.holding_id"), nullable=False, index=True)
    frequency = Column(SqlEnum(Frequency), nullable=False)
    amount = Column(_QTY, nullable=False)
    currency = Column(SqlEnum(Currency), nullable=False)
    effective_from = Column(Date, nullable=False)
    effective_to = Column(Date, nullable=True)
    note = Column(Text, nullable=False, default="")
    created_by = Column(String(64), nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=True, server_default=func.now(), onupdate=func.now())

    holding = relationship("HoldingORM", back_populates="schedules")
    revisions = relationship("ScheduleRevisionORM", back_populates="schedule")

    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_schedule_amount_positive"),
    )


class ScheduleRevisionORM(Base):
    """SQLAlchemy model for ScheduleRevision (audit trail)."""

    __tablename__ = "schedule_revisions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    rev_id = Column(String(36), nullable=False, unique=True)
    schedule_id = Column(String(36), ForeignKey("auto_invest_schedules.schedule_id"), nullable=False)
    holding_id = Column(String(36), nullable=False, index=True)
    action = Column(SqlEnum(ScheduleAction), nullable=False)
    actor = Column(String(64), nullable=True)
    reason = Column(Text, nullable=True)
    before_json = Column(Text, nullable=True)
    after_json = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    schedule = relationship("ScheduleORM", back_populates="revisions")


class CashBalanceORM(Base):
    """SQLAlchemy model for CashBalance."""

    __tablename__ = "cash_balances"

    owner_id = Column(String(64), primary_key=True)
    portfolio_id = Column(String(64), primary_key=True)
    currency = Column(SqlEnum(Currency), primary_key=True)
    balance = Column(_QTY, nullable=False, default=_ZERO)
    version = Column(Integer, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=True, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint("balance >= 0", name="ck_cash_balance_non_negative"),
    )
    __mapper_args__ = {"version_id_col": version}


class CashMovementORM(Base):
    """SQLAlchemy model for CashMovement (append-only)."""

    __tablename__ = "cash_movements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    movement_id = Column(String(36), nullable=False, unique=True)
    owner_id = Column(String(64), nullable=False)
    portfolio_id = Column(String(64), nullable=False)
    currency = Column(SqlEnum(Currency), nullable=False)
    kind = Column(SqlEnum(CashMovementKind), nullable=False)
    amount = Column(_QTY, nullable=False)
    balance_after = Column(_QTY, nullable=False)
    reference = Column(String(36), nullable=True)
    note = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    __table_args__ = (
        Index("ix_cash_movements_owner_portfolio", "owner_id", "portfolio_id"),
    )


class AutomationLogORM(Base):
    """SQLAlchemy model for AutomationLogEntry (append-only)."""

    __tablename__ = "automation_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    log_id = Column(String(36), nullable=False, unique=True)
    run_id = Column(String(36), nullable=False, index=True)
    triggered_at = Column(DateTime, nullable=False)
    status = Column(SqlEnum(AutomationStatus), nullable=False)
    owner_id = Column(String(64), nullable=True)
    portfolio_id = Column(String(64), nullable=True)
    holding_id = Column(String(36), nullable=True)
    symbol = Column(String(20), nullable=True)
    scheduled_date = Column(Date, nullable=True)
    amount = Column(_QTY, nullable=True)
    currency = Column(String(3), nullable=True)
    message = Column(Text, nullable=True)
    shares = Column(_QTY, nullable=True)
    price = Column(_QTY, nullable=True)
    balance_before = Column(_QTY, nullable=True)
    balance_after = Column(_QTY, nullable=True)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

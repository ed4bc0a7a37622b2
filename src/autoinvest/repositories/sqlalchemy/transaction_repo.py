"""SQLAlchemy implementation of TransactionRepository."""

from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from autoinvest.domain.models import PurchaseMethod, Transaction
from autoinvest.repositories.sqlalchemy.orm_models import TransactionORM


class SqlAlchemyTransactionRepository:
    """SQLAlchemy-backed transaction repository."""

    def __init__(self, db: Session):
        self._db = db

    def create(self, transaction: Transaction) -> Transaction:
        """Persist a new transaction.

        Raises ``IntegrityError`` on flush if an auto transaction already
        exists for the same holding and scheduled date.
        """
        orm_txn = self._to_orm(transaction)
        self._db.add(orm_txn)
        self._db.flush()
        self._db.refresh(orm_txn)
        return self._to_domain(orm_txn)

    def get_by_id(self, txn_id: str) -> Optional[Transaction]:
        """Retrieve transaction by ID."""
        orm_txn = self._db.query(TransactionORM).filter(
            TransactionORM.txn_id == txn_id
        ).first()
        return self._to_domain(orm_txn) if orm_txn else None

    def list_by_holding(self, holding_id: str) -> list[Transaction]:
        """List all transactions for a holding, ordered by (trade_date, sequence)."""
        query = (
            self._db.query(TransactionORM)
            .filter(TransactionORM.holding_id == holding_id)
            .order_by(TransactionORM.trade_date, TransactionORM.sequence)
        )
        return [self._to_domain(t) for t in query.all()]

    def next_sequence(self, holding_id: str) -> int:
        """Return the next insertion sequence number for a holding."""
        current = (
            self._db.query(func.max(TransactionORM.sequence))
            .filter(TransactionORM.holding_id == holding_id)
            .scalar()
        )
        return (current or 0) + 1

    def find_auto_for_date(self, holding_id: str, day: date) -> Optional[Transaction]:
        """Return the auto transaction dated ``day``, if one exists."""
        orm_txn = self._db.query(TransactionORM).filter(
            TransactionORM.holding_id == holding_id,
            TransactionORM.purchase_method == PurchaseMethod.AUTO,
            TransactionORM.trade_date == day,
        ).first()
        return self._to_domain(orm_txn) if orm_txn else None

    def list_auto(
        self,
        holding_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Transaction]:
        """List auto transactions in an inclusive date window."""
        query = self._db.query(TransactionORM).filter(
            TransactionORM.holding_id == holding_id,
            TransactionORM.purchase_method == PurchaseMethod.AUTO,
        )
        if start_date:
            query = query.filter(TransactionORM.trade_date >= start_date)
        if end_date:
            query = query.filter(TransactionORM.trade_date <= end_date)
        query = query.order_by(TransactionORM.trade_date, TransactionORM.sequence)
        return [self._to_domain(t) for t in query.all()]

    def latest_auto_date(self, holding_id: str) -> Optional[date]:
        """Return the trade date of the newest auto transaction."""
        return (
            self._db.query(func.max(TransactionORM.trade_date))
            .filter(
                TransactionORM.holding_id == holding_id,
                TransactionORM.purchase_method == PurchaseMethod.AUTO,
            )
            .scalar()
        )

    def delete_many(self, txn_ids: list[str]) -> int:
        """Delete transactions by ID; returns the number removed."""
        if not txn_ids:
            return 0
        removed = (
            self._db.query(TransactionORM)
            .filter(TransactionORM.txn_id.in_(txn_ids))
            .delete(synchronize_session="fetch")
        )
        self._db.flush()
        return removed

    @staticmethod
    def _to_orm(txn: Transaction) -> TransactionORM:
        """Convert domain model to ORM model."""
        return TransactionORM(
            txn_id=txn.txn_id,
            holding_id=txn.holding_id,
            txn_type=txn.txn_type,
            symbol=txn.symbol,
            shares=txn.shares,
            price=txn.price,
            gross_amount=txn.gross_amount,
            fee=txn.fee,
            tax=txn.tax,
            currency=txn.currency,
            trade_date=txn.trade_date,
            purchase_method=txn.purchase_method,
            status=txn.status,
            scheduled_date=txn.scheduled_date,
            schedule_id=txn.schedule_id,
            exchange_rate=txn.exchange_rate,
            note=txn.note,
            sequence=txn.sequence,
        )

    @staticmethod
    def _to_domain(orm: TransactionORM) -> Transaction:
        """Convert ORM model to domain model."""
        return Transaction(
            txn_id=orm.txn_id,
            holding_id=orm.holding_id,
            txn_type=orm.txn_type,
            symbol=orm.symbol,
            shares=Decimal(str(orm.shares)),
            price=Decimal(str(orm.price)),
            trade_date=orm.trade_date,
            currency=orm.currency,
            gross_amount=Decimal(str(orm.gross_amount or 0)),
            fee=Decimal(str(orm.fee or 0)),
            tax=Decimal(str(orm.tax or 0)),
            purchase_method=orm.purchase_method,
            status=orm.status,
            scheduled_date=orm.scheduled_date,
            schedule_id=orm.schedule_id,
            exchange_rate=Decimal(str(orm.exchange_rate)) if orm.exchange_rate is not None else None,
            note=orm.note,
            sequence=orm.sequence,
            executed_at=orm.executed_at,
            created_at=orm.created_at,
        )

"""SQLAlchemy implementation of AutomationLogRepository."""

from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from autoinvest.domain.models import AutomationLogEntry
from autoinvest.repositories.sqlalchemy.orm_models import AutomationLogORM


def _optional_decimal(value) -> Optional[Decimal]:
    return Decimal(str(value)) if value is not None else None


class SqlAlchemyAutomationLogRepository:
    """SQLAlchemy-backed automation log repository (append-only)."""

    def __init__(self, db: Session):
        self._db = db

    def add_many(self, entries: list[AutomationLogEntry]) -> int:
        """Append entries; returns the number written."""
        self._db.add_all([self._to_orm(e) for e in entries])
        self._db.flush()
        return len(entries)

    def list_by_run(self, run_id: str) -> list[AutomationLogEntry]:
        """List the entries written by one sweep."""
        query = (
            self._db.query(AutomationLogORM)
            .filter(AutomationLogORM.run_id == run_id)
            .order_by(AutomationLogORM.id)
        )
        return [self._to_domain(e) for e in query.all()]

    def list_recent(self, limit: int = 50, holding_id: Optional[str] = None) -> list[AutomationLogEntry]:
        """List the newest entries."""
        query = self._db.query(AutomationLogORM)
        if holding_id:
            query = query.filter(AutomationLogORM.holding_id == holding_id)
        query = query.order_by(AutomationLogORM.id.desc()).limit(limit)
        return [self._to_domain(e) for e in query.all()]

    @staticmethod
    def _to_orm(entry: AutomationLogEntry) -> AutomationLogORM:
        """Convert domain model to ORM model."""
        return AutomationLogORM(
            log_id=entry.log_id,
            run_id=entry.run_id,
            triggered_at=entry.triggered_at,
            status=entry.status,
            owner_id=entry.owner_id,
            portfolio_id=entry.portfolio_id,
            holding_id=entry.holding_id,
            symbol=entry.symbol,
            scheduled_date=entry.scheduled_date,
            amount=entry.amount,
            currency=entry.currency,
            message=entry.message,
            shares=entry.shares,
            price=entry.price,
            balance_before=entry.balance_before,
            balance_after=entry.balance_after,
        )

    @staticmethod
    def _to_domain(orm: AutomationLogORM) -> AutomationLogEntry:
        """Convert ORM model to domain model."""
        return AutomationLogEntry(
            log_id=orm.log_id,
            run_id=orm.run_id,
            triggered_at=orm.triggered_at,
            status=orm.status,
            owner_id=orm.owner_id,
            portfolio_id=orm.portfolio_id,
            holding_id=orm.holding_id,
            symbol=orm.symbol,
            scheduled_date=orm.scheduled_date,
            amount=_optional_decimal(orm.amount),
            currency=orm.currency,
            message=orm.message,
            shares=_optional_decimal(orm.shares),
            price=_optional_decimal(orm.price),
            balance_before=_optional_decimal(orm.balance_before),
            balance_after=_optional_decimal(orm.balance_after),
            created_at=orm.created_at,
        )

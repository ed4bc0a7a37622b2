"""SQLAlchemy implementation of BalanceRepository."""

from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from autoinvest.domain.models import CashBalance, CashMovement, Currency
from autoinvest.repositories.sqlalchemy.orm_models import CashBalanceORM, CashMovementORM


class SqlAlchemyBalanceRepository:
    """SQLAlchemy-backed cash balance repository."""

    def __init__(self, db: Session):
        self._db = db

    def get(self, owner_id: str, portfolio_id: str, currency: Currency) -> Optional[CashBalance]:
        """Retrieve a balance row."""
        orm_balance = self._query(owner_id, portfolio_id, currency).first()
        return self._to_domain(orm_balance) if orm_balance else None

    def get_for_update(
        self, owner_id: str, portfolio_id: str, currency: Currency
    ) -> Optional[CashBalance]:
        """Retrieve a balance row, re-reading and locking it inside the transaction."""
        orm_balance = (
            self._query(owner_id, portfolio_id, currency)
            .with_for_update()
            .populate_existing()
            .first()
        )
        return self._to_domain(orm_balance) if orm_balance else None

    def list_balances(self, owner_id: str, portfolio_id: str) -> list[CashBalance]:
        """List all balance rows for a portfolio."""
        query = (
            self._db.query(CashBalanceORM)
            .filter(
                CashBalanceORM.owner_id == owner_id,
                CashBalanceORM.portfolio_id == portfolio_id,
            )
            .order_by(CashBalanceORM.currency)
        )
        return [self._to_domain(b) for b in query.all()]

    def save(self, balance: CashBalance) -> CashBalance:
        """Insert or update a balance row.

        ``balance.version`` is the version the caller read. The stored row is
        re-read here; if another writer moved it on (or created it) since,
        ``StaleDataError`` is raised and nothing is written. The flush is
        version-checked too, which closes the gap between re-read and write.
        """
        orm_balance = (
            self._query(balance.owner_id, balance.portfolio_id, balance.currency)
            .populate_existing()
            .first()
        )
        if orm_balance is None:
            orm_balance = CashBalanceORM(
                owner_id=balance.owner_id,
                portfolio_id=balance.portfolio_id,
                currency=balance.currency,
                balance=balance.balance,
            )
            self._db.add(orm_balance)
        elif orm_balance.version != balance.version:
            raise StaleDataError(
                f"Cash balance {balance.owner_id}/{balance.portfolio_id}/{balance.currency.value} "
                f"is at version {orm_balance.version}, expected {balance.version}"
            )
        else:
            orm_balance.balance = balance.balance

        self._db.flush()
        self._db.refresh(orm_balance)
        return self._to_domain(orm_balance)

    def add_movement(self, movement: CashMovement) -> CashMovement:
        """Append a movement record."""
        orm_movement = CashMovementORM(
            movement_id=movement.movement_id,
            owner_id=movement.owner_id,
            portfolio_id=movement.portfolio_id,
            currency=movement.currency,
            kind=movement.kind,
            amount=movement.amount,
            balance_after=movement.balance_after,
            reference=movement.reference,
            note=movement.note,
        )
        self._db.add(orm_movement)
        self._db.flush()
        self._db.refresh(orm_movement)
        return self._movement_to_domain(orm_movement)

    def list_movements(
        self,
        owner_id: str,
        portfolio_id: str,
        currency: Optional[Currency] = None,
    ) -> list[CashMovement]:
        """List movements, oldest first."""
        query = self._db.query(CashMovementORM).filter(
            CashMovementORM.owner_id == owner_id,
            CashMovementORM.portfolio_id == portfolio_id,
        )
        if currency:
            query = query.filter(CashMovementORM.currency == Currency(currency))
        query = query.order_by(CashMovementORM.id)
        return [self._movement_to_domain(m) for m in query.all()]

    def _query(self, owner_id: str, portfolio_id: str, currency: Currency):
        return self._db.query(CashBalanceORM).filter(
            CashBalanceORM.owner_id == owner_id,
            CashBalanceORM.portfolio_id == portfolio_id,
            CashBalanceORM.currency == Currency(currency),
        )

    @staticmethod
    def _to_domain(orm: CashBalanceORM) -> CashBalance:
        """Convert ORM model to domain model."""
        return CashBalance(
            owner_id=orm.owner_id,
            portfolio_id=orm.portfolio_id,
            currency=orm.currency,
            balance=Decimal(str(orm.balance or 0)),
            version=orm.version,
            created_at=orm.created_at,
            updated_at=orm.updated_at,
        )

    @staticmethod
    def _movement_to_domain(orm: CashMovementORM) -> CashMovement:
        """Convert ORM movement to domain model."""
        return CashMovement(
            movement_id=orm.movement_id,
            owner_id=orm.owner_id,
            portfolio_id=orm.portfolio_id,
            currency=orm.currency,
            kind=orm.kind,
            amount=Decimal(str(orm.amount)),
            balance_after=Decimal(str(orm.balance_after)),
            reference=orm.reference,
            note=orm.note,
            created_at=orm.created_at,
        )

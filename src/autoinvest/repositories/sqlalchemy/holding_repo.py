"""SQLAlchemy implementation of HoldingRepository."""

from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from autoinvest.domain.models import AutoInvestConfig, Holding
from autoinvest.domain.views import HoldingSnapshot
from autoinvest.repositories.sqlalchemy.orm_models import HoldingORM


class SqlAlchemyHoldingRepository:
    """SQLAlchemy-backed holding repository.

    Writes are flushed, never committed: the calling service owns the
    transaction boundary (see ``database.atomic``).
    """

    def __init__(self, db: Session):
        self._db = db

    def create(self, holding: Holding) -> Holding:
        """Persist a new holding."""
        orm_holding = self._to_orm(holding)
        self._db.add(orm_holding)
        self._db.flush()
        self._db.refresh(orm_holding)
        return self._to_domain(orm_holding)

    def get_by_id(self, holding_id: str) -> Optional[Holding]:
        """Retrieve holding by ID."""
        orm_holding = self._db.query(HoldingORM).filter(
            HoldingORM.holding_id == holding_id
        ).first()
        return self._to_domain(orm_holding) if orm_holding else None

    def get_for_update(self, holding_id: str) -> Optional[Holding]:
        """Retrieve holding by ID, locking the row for the current transaction."""
        orm_holding = (
            self._db.query(HoldingORM)
            .filter(HoldingORM.holding_id == holding_id)
            .with_for_update()
            .populate_existing()
            .first()
        )
        return self._to_domain(orm_holding) if orm_holding else None

    def get_by_symbol(self, owner_id: str, portfolio_id: str, symbol: str) -> Optional[Holding]:
        """Retrieve the holding for a symbol inside a portfolio."""
        orm_holding = self._db.query(HoldingORM).filter(
            HoldingORM.owner_id == owner_id,
            HoldingORM.portfolio_id == portfolio_id,
            HoldingORM.symbol == symbol,
        ).first()
        return self._to_domain(orm_holding) if orm_holding else None

    def list_holdings(
        self,
        owner_id: Optional[str] = None,
        portfolio_id: Optional[str] = None,
    ) -> list[Holding]:
        """List holdings, optionally filtered by owner and portfolio."""
        query = self._db.query(HoldingORM)
        if owner_id:
            query = query.filter(HoldingORM.owner_id == owner_id)
        if portfolio_id:
            query = query.filter(HoldingORM.portfolio_id == portfolio_id)
        query = query.order_by(HoldingORM.symbol)
        return [self._to_domain(h) for h in query.all()]

    def list_auto_invest_active_ids(self) -> list[str]:
        """List IDs of holdings whose auto-invest flag is on."""
        rows = (
            self._db.query(HoldingORM.holding_id)
            .filter(HoldingORM.auto_invest_active == True)  # noqa: E712
            .order_by(HoldingORM.holding_id)
            .all()
        )
        return [row.holding_id for row in rows]

    def save_snapshot(self, snapshot: HoldingSnapshot, expected_version: Optional[int] = None) -> Holding:
        """Write the derived figures of a holding.

        With ``expected_version`` the stored row is re-read first and the
        write is refused with ``StaleDataError`` unless it is still at that
        version. The flush itself is version-checked as well.
        """
        orm_holding = self._get_orm(snapshot.holding_id, expected_version)

        orm_holding.shares = snapshot.shares
        orm_holding.average_cost = snapshot.average_cost
        orm_holding.total_invested = snapshot.total_invested
        orm_holding.current_price = snapshot.current_price
        orm_holding.total_value = snapshot.total_value
        orm_holding.profit_loss = snapshot.profit_loss
        orm_holding.return_rate = snapshot.return_rate
        orm_holding.transaction_count = snapshot.transaction_count
        orm_holding.first_transaction_date = snapshot.first_transaction_date
        orm_holding.last_transaction_date = snapshot.last_transaction_date

        self._db.flush()
        return self._to_domain(orm_holding)

    def save_auto_invest(
        self,
        holding_id: str,
        config: Optional[AutoInvestConfig],
        expected_version: Optional[int] = None,
    ) -> Holding:
        """Replace the embedded auto-invest config (None clears it)."""
        orm_holding = self._get_orm(holding_id, expected_version)
        config = config or AutoInvestConfig()

        orm_holding.auto_invest_active = config.is_active
        orm_holding.auto_invest_schedule_id = config.current_schedule_id
        orm_holding.auto_invest_frequency = config.frequency
        orm_holding.auto_invest_amount = config.amount
        orm_holding.auto_invest_start_date = config.start_date
        orm_holding.auto_invest_last_executed = config.last_executed
        orm_holding.auto_invest_last_updated = config.last_updated

        self._db.flush()
        return self._to_domain(orm_holding)

    def _get_orm(self, holding_id: str, expected_version: Optional[int] = None) -> HoldingORM:
        query = self._db.query(HoldingORM).filter(HoldingORM.holding_id == holding_id)
        if expected_version is not None:
            query = query.populate_existing()
        orm_holding = query.first()
        if not orm_holding:
            raise ValueError(f"Holding not found: {holding_id}")
        if expected_version is not None and orm_holding.version != expected_version:
            raise StaleDataError(
                f"Holding {holding_id} is at version {orm_holding.version}, expected {expected_version}"
            )
        return orm_holding

    @staticmethod
    def _to_orm(holding: Holding) -> HoldingORM:
        """Convert domain model to ORM model."""
        config = holding.auto_invest or AutoInvestConfig()
        return HoldingORM(
            holding_id=holding.holding_id,
            owner_id=holding.owner_id,
            portfolio_id=holding.portfolio_id,
            symbol=holding.symbol,
            market=holding.market,
            currency=holding.currency,
            shares=holding.shares,
            average_cost=holding.average_cost,
            total_invested=holding.total_invested,
            current_price=holding.current_price,
            total_value=holding.total_value,
            profit_loss=holding.profit_loss,
            return_rate=holding.return_rate,
            transaction_count=holding.transaction_count,
            first_transaction_date=holding.first_transaction_date,
            last_transaction_date=holding.last_transaction_date,
            auto_invest_active=config.is_active,
            auto_invest_schedule_id=config.current_schedule_id,
            auto_invest_frequency=config.frequency,
            auto_invest_amount=config.amount,
            auto_invest_start_date=config.start_date,
            auto_invest_last_executed=config.last_executed,
            auto_invest_last_updated=config.last_updated,
        )

    @staticmethod
    def _to_domain(orm: HoldingORM) -> Holding:
        """Convert ORM model to domain model."""
        config = None
        if orm.auto_invest_active or orm.auto_invest_schedule_id or orm.auto_invest_frequency:
            config = AutoInvestConfig(
                is_active=bool(orm.auto_invest_active),
                current_schedule_id=orm.auto_invest_schedule_id,
                frequency=orm.auto_invest_frequency,
                amount=(
                    Decimal(str(orm.auto_invest_amount))
                    if orm.auto_invest_amount is not None
                    else None
                ),
                start_date=orm.auto_invest_start_date,
                last_executed=orm.auto_invest_last_executed,
                last_updated=orm.auto_invest_last_updated,
            )

        return Holding(
            holding_id=orm.holding_id,
            owner_id=orm.owner_id,
            portfolio_id=orm.portfolio_id,
            symbol=orm.symbol,
            market=orm.market,
            currency=orm.currency,
            shares=Decimal(str(orm.shares or 0)),
            average_cost=Decimal(str(orm.average_cost or 0)),
            total_invested=Decimal(str(orm.total_invested or 0)),
            current_price=Decimal(str(orm.current_price or 0)),
            total_value=Decimal(str(orm.total_value or 0)),
            profit_loss=Decimal(str(orm.profit_loss or 0)),
            return_rate=Decimal(str(orm.return_rate or 0)),
            transaction_count=orm.transaction_count or 0,
            first_transaction_date=orm.first_transaction_date,
            last_transaction_date=orm.last_transaction_date,
            auto_invest=config,
            version=orm.version,
            created_at=orm.created_at,
            updated_at=orm.updated_at,
        )

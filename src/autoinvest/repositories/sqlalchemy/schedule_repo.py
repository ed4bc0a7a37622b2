"""SQLAlchemy implementation of ScheduleRepository."""

from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from autoinvest.domain.models import AutoInvestSchedule, ScheduleRevision
from autoinvest.repositories.sqlalchemy.orm_models import ScheduleORM, ScheduleRevisionORM


class SqlAlchemyScheduleRepository:
    """SQLAlchemy-backed schedule repository."""

    def __init__(self, db: Session):
        self._db = db

    def create(self, schedule: AutoInvestSchedule) -> AutoInvestSchedule:
        """Persist a new schedule version."""
        orm_schedule = ScheduleORM(
            schedule_id=schedule.schedule_id,
            holding_id=schedule.holding_id,
            frequency=schedule.frequency,
            amount=schedule.amount,
            currency=schedule.currency,
            effective_from=schedule.effective_from,
            effective_to=schedule.effective_to,
            note=schedule.note or "",
            created_by=schedule.created_by,
        )
        self._db.add(orm_schedule)
        self._db.flush()
        self._db.refresh(orm_schedule)
        return self._to_domain(orm_schedule)

    def get_by_id(self, schedule_id: str) -> Optional[AutoInvestSchedule]:
        """Retrieve schedule by ID."""
        orm_schedule = self._db.query(ScheduleORM).filter(
            ScheduleORM.schedule_id == schedule_id
        ).first()
        return self._to_domain(orm_schedule) if orm_schedule else None

    def list_by_holding(self, holding_id: str) -> list[AutoInvestSchedule]:
        """List a holding's schedule versions, newest effective_from first."""
        query = (
            self._db.query(ScheduleORM)
            .filter(ScheduleORM.holding_id == holding_id)
            .order_by(ScheduleORM.effective_from.desc(), ScheduleORM.id.desc())
        )
        return [self._to_domain(s) for s in query.all()]

    def get_open(self, holding_id: str) -> Optional[AutoInvestSchedule]:
        """Return the version with no effective_to, if any."""
        orm_schedule = (
            self._db.query(ScheduleORM)
            .filter(
                ScheduleORM.holding_id == holding_id,
                ScheduleORM.effective_to.is_(None),
            )
            .order_by(ScheduleORM.effective_from.desc(), ScheduleORM.id.desc())
            .first()
        )
        return self._to_domain(orm_schedule) if orm_schedule else None

    def get_latest(self, holding_id: str) -> Optional[AutoInvestSchedule]:
        """Return the version with the greatest effective_from."""
        orm_schedule = (
            self._db.query(ScheduleORM)
            .filter(ScheduleORM.holding_id == holding_id)
            .order_by(ScheduleORM.effective_from.desc(), ScheduleORM.id.desc())
            .first()
        )
        return self._to_domain(orm_schedule) if orm_schedule else None

    def update(self, schedule: AutoInvestSchedule) -> AutoInvestSchedule:
        """Update an existing schedule version."""
        orm_schedule = self._db.query(ScheduleORM).filter(
            ScheduleORM.schedule_id == schedule.schedule_id
        ).first()
        if not orm_schedule:
            raise ValueError(f"Schedule not found: {schedule.schedule_id}")

        orm_schedule.frequency = schedule.frequency
        orm_schedule.amount = schedule.amount
        orm_schedule.currency = schedule.currency
        orm_schedule.effective_from = schedule.effective_from
        orm_schedule.effective_to = schedule.effective_to
        orm_schedule.note = schedule.note or ""

        self._db.flush()
        return self._to_domain(orm_schedule)

    def create_revision(self, revision: ScheduleRevision) -> ScheduleRevision:
        """Create a new revision record."""
        orm_rev = ScheduleRevisionORM(
            rev_id=revision.rev_id,
            schedule_id=revision.schedule_id,
            holding_id=revision.holding_id,
            action=revision.action,
            actor=revision.actor,
            reason=revision.reason,
            before_json=revision.before_json,
            after_json=revision.after_json,
        )
        self._db.add(orm_rev)
        self._db.flush()
        self._db.refresh(orm_rev)
        return self._revision_to_domain(orm_rev)

    def list_revisions(self, holding_id: str) -> list[ScheduleRevision]:
        """List all revisions for a holding's schedules, oldest first."""
        orm_revs = (
            self._db.query(ScheduleRevisionORM)
            .filter(ScheduleRevisionORM.holding_id == holding_id)
            .order_by(ScheduleRevisionORM.id)
            .all()
        )
        return [self._revision_to_domain(r) for r in orm_revs]

    @staticmethod
    def _to_domain(orm: ScheduleORM) -> AutoInvestSchedule:
        """Convert ORM model to domain model."""
        return AutoInvestSchedule(
            schedule_id=orm.schedule_id,
            holding_id=orm.holding_id,
            frequency=orm.frequency,
            amount=Decimal(str(orm.amount)),
            effective_from=orm.effective_from,
            currency=orm.currency,
            effective_to=orm.effective_to,
            note=orm.note or "",
            created_by=orm.created_by,
            created_at=orm.created_at,
            updated_at=orm.updated_at,
        )

    @staticmethod
    def _revision_to_domain(orm: ScheduleRevisionORM) -> ScheduleRevision:
        """Convert ORM revision to domain model."""
        return ScheduleRevision(
            rev_id=orm.rev_id,
            schedule_id=orm.schedule_id,
            holding_id=orm.holding_id,
            action=orm.action,
            actor=orm.actor,
            reason=orm.reason,
            before_json=orm.before_json,
            after_json=orm.after_json,
            created_at=orm.created_at,
        )

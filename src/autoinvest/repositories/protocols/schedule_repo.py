"""Schedule repository protocol."""

from typing import Optional, Protocol

from autoinvest.domain.models import AutoInvestSchedule, ScheduleRevision


class ScheduleRepository(Protocol):
    """Interface for schedule versions and their revisions."""

    def create(self, schedule: AutoInvestSchedule) -> AutoInvestSchedule:
        """Persist a new schedule version."""
        ...

    def get_by_id(self, schedule_id: str) -> Optional[AutoInvestSchedule]:
        """Retrieve schedule by ID."""
        ...

    def list_by_holding(self, holding_id: str) -> list[AutoInvestSchedule]:
        """List a holding's schedule versions, newest effective_from first."""
        ...

    def get_open(self, holding_id: str) -> Optional[AutoInvestSchedule]:
        """Return the version with no effective_to, if any."""
        ...

    def get_latest(self, holding_id: str) -> Optional[AutoInvestSchedule]:
        """Return the version with the greatest effective_from."""
        ...

    def update(self, schedule: AutoInvestSchedule) -> AutoInvestSchedule:
        """Update an existing schedule version."""
        ...

    def create_revision(self, revision: ScheduleRevision) -> ScheduleRevision:
        """Create a new revision record."""
        ...

    def list_revisions(self, holding_id: str) -> list[ScheduleRevision]:
        """List all revisions for a holding's schedules, oldest first."""
        ...

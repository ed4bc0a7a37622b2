"""Auto-invest schedule versions and their audit trail."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from autoinvest.domain.models.enums import Currency, Frequency, ScheduleAction


@dataclass
class AutoInvestSchedule:
    """
    One version of a holding's auto-invest parameters.

    Active from ``effective_from`` through ``effective_to`` (both inclusive);
    ``effective_to`` is None for the single active version of a holding.
    """

    schedule_id: str
    holding_id: str
    frequency: Frequency
    amount: Decimal
    effective_from: date
    currency: Currency = Currency.USD
    effective_to: Optional[date] = None
    note: str = ""
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if isinstance(self.frequency, str):
            self.frequency = Frequency(self.frequency)
        if isinstance(self.currency, str):
            self.currency = Currency(self.currency)

    @property
    def is_open(self) -> bool:
        return self.effective_to is None

    def covers(self, day: date) -> bool:
        """Return True if ``day`` falls inside the schedule's window."""
        if day < self.effective_from:
            return False
        return self.effective_to is None or day <= self.effective_to


@dataclass
class ScheduleRevision:
    """
    Audit entry for a schedule mutation (who, when, why).

    Before/after are JSON snapshots; reapply entries include the
    removed/created transaction counts in ``after_json``.
    """

    rev_id: str
    schedule_id: str
    holding_id: str
    action: ScheduleAction
    actor: Optional[str] = None
    reason: Optional[str] = None
    before_json: Optional[str] = None
    after_json: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if isinstance(self.action, str):
            self.action = ScheduleAction(self.action)

"""Result objects returned by the reconciliation, execution and schedule services."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from autoinvest.domain.models.enums import AutomationStatus


@dataclass
class HoldingSnapshot:
    """Aggregate state of a holding as folded from its transaction log."""

    holding_id: str
    shares: Decimal
    average_cost: Decimal
    total_invested: Decimal
    current_price: Decimal
    total_value: Decimal
    profit_loss: Decimal
    return_rate: Decimal
    transaction_count: int
    first_transaction_date: Optional[date] = None
    last_transaction_date: Optional[date] = None
    written: bool = False


@dataclass
class SweepLogEntry:
    """One resolver/executor decision for one holding in one sweep."""

    status: AutomationStatus
    holding_id: Optional[str] = None
    owner_id: Optional[str] = None
    portfolio_id: Optional[str] = None
    symbol: Optional[str] = None
    scheduled_date: Optional[date] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    message: Optional[str] = None
    shares: Optional[Decimal] = None
    price: Optional[Decimal] = None
    balance_before: Optional[Decimal] = None
    balance_after: Optional[Decimal] = None
    transaction_id: Optional[str] = None


@dataclass
class SweepSummary:
    """Bounded result of one sweep over all active holdings."""

    run_id: str
    triggered_at: datetime
    as_of: Optional[date] = None
    dry_run: bool = False
    logs: list[SweepLogEntry] = field(default_factory=list)

    def _count(self, status: AutomationStatus) -> int:
        return sum(1 for log in self.logs if log.status == status)

    @property
    def processed(self) -> int:
        return len(self.logs)

    @property
    def success_count(self) -> int:
        return self._count(AutomationStatus.SUCCESS)

    @property
    def skipped_count(self) -> int:
        return self._count(AutomationStatus.SKIPPED)

    @property
    def error_count(self) -> int:
        return self._count(AutomationStatus.ERROR)

    @property
    def preview_count(self) -> int:
        return self._count(AutomationStatus.PREVIEW)


@dataclass
class GenerationResult:
    """Outcome of regenerating auto buys over a date range."""

    created: int = 0
    total_shares: Decimal = field(default_factory=lambda: Decimal("0"))
    total_amount: Decimal = field(default_factory=lambda: Decimal("0"))
    skipped_dates: list[date] = field(default_factory=list)
    last_created_date: Optional[date] = None


@dataclass
class ReapplyResult:
    """Outcome of an explicit schedule reapply."""

    new_schedule_id: str
    removed: int
    created: int
    skipped_dates: list[date] = field(default_factory=list)
    snapshot: Optional[HoldingSnapshot] = None


@dataclass
class CloseResult:
    """Outcome of closing a schedule version."""

    schedule_id: str
    effective_to: date
    removed: int = 0
    snapshot: Optional[HoldingSnapshot] = None

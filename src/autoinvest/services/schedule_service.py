"""Schedule versioning, closing and the audited reapply operation."""

import json
import logging
import uuid
from dataclasses import asdict, replace
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy.orm import Session

from autoinvest.config.settings import Settings, get_settings
from autoinvest.core.exceptions import (
    InsufficientCashError,
    NotFoundError,
    ScheduleConfigurationError,
    ValidationError,
)
from autoinvest.domain.models import (
    AutoInvestConfig,
    AutoInvestSchedule,
    Frequency,
    Holding,
    PurchaseMethod,
    ScheduleAction,
    ScheduleRevision,
    Transaction,
    TransactionType,
)
from autoinvest.domain.views import CloseResult, GenerationResult, ReapplyResult
from autoinvest.providers.trading_calendar import TradingCalendar
from autoinvest.repositories.protocols import (
    HoldingRepository,
    ScheduleRepository,
    TransactionRepository,
)
from autoinvest.repositories.sqlalchemy.database import atomic
from autoinvest.services.balance_service import BalanceService
from autoinvest.services.due_dates import scheduled_trading_dates
from autoinvest.services.market_data_service import MarketDataService
from autoinvest.services.reconciliation import ReconciliationEngine

logger = logging.getLogger(__name__)


class ScheduleService:
    """
    Service for auto-invest schedule versions.

    A holding has at most one open version. Changing parameters closes the
    open version the day before the new one starts. Auto-generated history
    is only rewritten by ``reapply_schedule`` (or an explicit regenerate or
    purge), and every mutation leaves a ScheduleRevision behind.
    """

    def __init__(
        self,
        db: Session,
        holding_repo: HoldingRepository,
        transaction_repo: TransactionRepository,
        schedule_repo: ScheduleRepository,
        balance_service: BalanceService,
        reconciliation: ReconciliationEngine,
        market_data: MarketDataService,
        calendar: TradingCalendar,
        settings: Optional[Settings] = None,
    ):
        self._db = db
        self._holding_repo = holding_repo
        self._transaction_repo = transaction_repo
        self._schedule_repo = schedule_repo
        self._balance_service = balance_service
        self._reconciliation = reconciliation
        self._market_data = market_data
        self._calendar = calendar
        self._settings = settings or get_settings()

    def list_schedules(self, holding_id: str) -> list[AutoInvestSchedule]:
        """List a holding's schedule versions, newest first."""
        self._get_holding(holding_id)
        return self._schedule_repo.list_by_holding(holding_id)

    def get_schedule(self, holding_id: str, schedule_id: str) -> AutoInvestSchedule:
        """Get one schedule version of a holding."""
        schedule = self._schedule_repo.get_by_id(schedule_id)
        if not schedule or schedule.holding_id != holding_id:
            raise NotFoundError("Schedule", schedule_id)
        return schedule

    def list_revisions(self, holding_id: str) -> list[ScheduleRevision]:
        """List the audit trail of a holding's schedules."""
        self._get_holding(holding_id)
        return self._schedule_repo.list_revisions(holding_id)

    def create_schedule(
        self,
        holding_id: str,
        frequency: Frequency,
        amount: Decimal,
        effective_from: Optional[date] = None,
        note: str = "",
        actor: Optional[str] = None,
        regenerate: bool = False,
        price_override: Optional[Decimal] = None,
    ) -> list[AutoInvestSchedule]:
        """
        Start a new schedule version for a holding.

        The open version (if any) is closed on ``effective_from - 1 day``
        and the holding's auto-invest config points at the new version.
        With ``regenerate`` the auto history from ``effective_from`` up to
        today is rebuilt under the new version.

        Returns:
            The holding's schedule versions, newest first.
        """
        holding = self._get_holding(holding_id)
        frequency = self._validate_parameters(frequency, amount)
        today = self._calendar.today(holding.market)
        effective_from = effective_from or today

        with atomic(self._db):
            schedule = self._start_version(
                holding, frequency, amount, effective_from, note or "", actor, today
            )
            if regenerate:
                self._rewrite_history(holding, schedule, effective_from, today, price_override)
                self._reconciliation.reconcile(holding_id)
                self._refresh_auto_invest(holding.holding_id, today)

        logger.info(
            "Created schedule %s for holding %s: %s %s from %s",
            schedule.schedule_id,
            holding_id,
            frequency.value,
            amount,
            effective_from,
        )
        return self._schedule_repo.list_by_holding(holding_id)

    def close_schedule(
        self,
        holding_id: str,
        schedule_id: str,
        effective_to: Optional[date] = None,
        actor: Optional[str] = None,
        reason: Optional[str] = None,
        purge_transactions: bool = False,
    ) -> CloseResult:
        """
        Close (delete) a schedule version.

        Closing the holding's current version turns auto-invest off. With
        ``purge_transactions`` the auto buys inside the version's window are
        removed, their cost is refunded and the holding is reconciled.
        """
        holding = self._get_holding(holding_id)
        schedule = self.get_schedule(holding_id, schedule_id)
        today = self._calendar.today(holding.market)

        if schedule.is_open:
            effective_to = effective_to or today
            if effective_to < schedule.effective_from - timedelta(days=1):
                raise ScheduleConfigurationError(
                    f"Schedule {schedule_id} cannot end on {effective_to}, before it starts on {schedule.effective_from}"
                )
        else:
            # Closed windows are fixed; only reapply rewrites history after closing
            if effective_to is not None and effective_to != schedule.effective_to:
                raise ScheduleConfigurationError(
                    f"Schedule {schedule_id} is closed on {schedule.effective_to} and cannot be moved to {effective_to}"
                )
            if not purge_transactions:
                raise ScheduleConfigurationError(
                    f"Schedule {schedule_id} is already closed (effective_to {schedule.effective_to})"
                )
            effective_to = schedule.effective_to

        removed = 0
        snapshot = None
        with atomic(self._db):
            before = self._to_json(schedule)
            closed = schedule
            if schedule.is_open:
                closed = self._schedule_repo.update(replace(schedule, effective_to=effective_to))

                current = self._locked_holding(holding_id)
                config = current.auto_invest
                if config and config.current_schedule_id == schedule_id:
                    self._holding_repo.save_auto_invest(
                        holding_id,
                        replace(config, is_active=False, last_updated=today),
                        expected_version=current.version,
                    )

            if purge_transactions:
                removed = self._remove_auto_transactions(
                    holding, schedule.effective_from, effective_to, reason="schedule closed"
                )
                snapshot = self._reconciliation.reconcile(holding_id)
                self._refresh_auto_invest(holding_id, today)

            self._record_revision(
                closed,
                ScheduleAction.CLOSE,
                actor=actor,
                reason=reason,
                before=before,
                extra={"removed": removed},
            )

        logger.info(
            "Closed schedule %s of holding %s on %s (removed %d auto transactions)",
            schedule_id,
            holding_id,
            effective_to,
            removed,
        )
        return CloseResult(
            schedule_id=schedule_id,
            effective_to=effective_to,
            removed=removed,
            snapshot=snapshot,
        )

    def reapply_schedule(
        self,
        holding_id: str,
        schedule_id: str,
        effective_from: date,
        price_override: Optional[Decimal] = None,
        actor: Optional[str] = None,
        reason: Optional[str] = None,
    ) -> ReapplyResult:
        """
        Re-run a schedule's parameters from ``effective_from`` forward.

        A new version with the schedule's frequency and amount starts on
        ``effective_from``. Every auto buy dated on or after it is removed
        (cost refunded) and one buy per scheduled trading date up to today
        is regenerated, priced at the historical price or ``price_override``.
        Dates with no price or no cash are skipped. The holding is
        reconciled and the whole rewrite is recorded as one revision.
        """
        holding = self._get_holding(holding_id)
        source = self.get_schedule(holding_id, schedule_id)
        frequency = self._validate_parameters(source.frequency, source.amount)
        if price_override is not None and price_override <= 0:
            raise ValidationError("Price override must be greater than zero")
        today = self._calendar.today(holding.market)

        with atomic(self._db):
            schedule = self._start_version(
                holding,
                frequency,
                source.amount,
                effective_from,
                f"reapply of {schedule_id}",
                actor,
                today,
                record=False,
            )
            removed, generation = self._rewrite_history(
                holding, schedule, effective_from, today, price_override
            )
            snapshot = self._reconciliation.reconcile(holding_id)
            self._refresh_auto_invest(holding_id, today)

            self._record_revision(
                schedule,
                ScheduleAction.REAPPLY,
                actor=actor,
                reason=reason,
                before=self._to_json(source),
                extra={
                    "source_schedule_id": schedule_id,
                    "removed": removed,
                    "created": generation.created,
                    "skipped_dates": [d.isoformat() for d in generation.skipped_dates],
                },
            )

        logger.info(
            "Reapplied schedule %s for holding %s from %s: removed=%d created=%d skipped=%d",
            schedule_id,
            holding_id,
            effective_from,
            removed,
            generation.created,
            len(generation.skipped_dates),
        )
        return ReapplyResult(
            new_schedule_id=schedule.schedule_id,
            removed=removed,
            created=generation.created,
            skipped_dates=generation.skipped_dates,
            snapshot=snapshot,
        )

    def preview_dates(
        self,
        holding_id: str,
        start: date,
        frequency: Frequency,
        end: Optional[date] = None,
    ) -> list[date]:
        """List the trading dates a schedule would execute on up to ``end`` (default today)."""
        holding = self._get_holding(holding_id)
        end = end or self._calendar.today(holding.market)
        return scheduled_trading_dates(
            start,
            Frequency(frequency),
            holding.market,
            end,
            self._calendar,
            self._settings.resolver_iteration_cap,
        )

    def _get_holding(self, holding_id: str) -> Holding:
        holding = self._holding_repo.get_by_id(holding_id)
        if not holding:
            raise NotFoundError("Holding", holding_id)
        return holding

    def _locked_holding(self, holding_id: str) -> Holding:
        """Re-read the holding inside the current unit before writing its config."""
        holding = self._holding_repo.get_for_update(holding_id)
        if not holding:
            raise NotFoundError("Holding", holding_id)
        return holding

    @staticmethod
    def _validate_parameters(frequency, amount: Decimal) -> Frequency:
        try:
            frequency = Frequency(frequency)
        except ValueError:
            raise ValidationError(f"Unknown frequency: {frequency}")
        if amount is None or amount <= 0:
            raise ValidationError("Auto-invest amount must be greater than zero")
        return frequency

    def _start_version(
        self,
        holding: Holding,
        frequency: Frequency,
        amount: Decimal,
        effective_from: date,
        note: str,
        actor: Optional[str],
        today: date,
        record: bool = True,
    ) -> AutoInvestSchedule:
        """Close the open version and insert a new open one (inside a unit)."""
        current = self._schedule_repo.get_open(holding.holding_id)
        if current:
            before = self._to_json(current)
            # A version superseded before it began keeps an empty window
            closed = self._schedule_repo.update(
                replace(current, effective_to=effective_from - timedelta(days=1))
            )
            self._record_revision(
                closed,
                ScheduleAction.CLOSE,
                actor=actor,
                reason="superseded",
                before=before,
            )

        schedule = self._schedule_repo.create(
            AutoInvestSchedule(
                schedule_id=str(uuid.uuid4()),
                holding_id=holding.holding_id,
                frequency=frequency,
                amount=amount,
                effective_from=effective_from,
                currency=holding.currency,
                note=note,
                created_by=actor,
            )
        )
        if record:
            self._record_revision(schedule, ScheduleAction.CREATE, actor=actor)

        current = self._locked_holding(holding.holding_id)
        config = current.auto_invest or AutoInvestConfig()
        self._holding_repo.save_auto_invest(
            holding.holding_id,
            replace(
                config,
                is_active=True,
                current_schedule_id=schedule.schedule_id,
                frequency=frequency,
                amount=amount,
                start_date=config.start_date or effective_from,
                last_updated=today,
            ),
            expected_version=current.version,
        )
        return schedule

    def _rewrite_history(
        self,
        holding: Holding,
        schedule: AutoInvestSchedule,
        effective_from: date,
        today: date,
        price_override: Optional[Decimal],
    ) -> tuple[int, GenerationResult]:
        removed = self._remove_auto_transactions(
            holding, effective_from, None, reason=f"rewrite from {effective_from}"
        )
        generation = self._generate_transactions(holding, schedule, effective_from, today, price_override)
        return removed, generation

    def _remove_auto_transactions(
        self,
        holding: Holding,
        start: date,
        end: Optional[date],
        reason: str,
    ) -> int:
        """Delete auto buys in ``[start, end]`` and refund what they cost."""
        doomed = self._transaction_repo.list_auto(holding.holding_id, start_date=start, end_date=end)
        for txn in doomed:
            self._balance_service.credit_refund(
                holding.owner_id,
                holding.portfolio_id,
                txn.currency,
                txn.total_cost,
                reference=txn.txn_id,
                note=f"refund {txn.trade_date.isoformat()}: {reason}",
            )
        return self._transaction_repo.delete_many([t.txn_id for t in doomed])

    def _generate_transactions(
        self,
        holding: Holding,
        schedule: AutoInvestSchedule,
        start: date,
        end: date,
        price_override: Optional[Decimal],
    ) -> GenerationResult:
        """Write one auto buy per scheduled trading date in ``[start, end]``."""
        result = GenerationResult()
        quantum = self._settings.get_share_quantum()
        dates = scheduled_trading_dates(
            start,
            schedule.frequency,
            holding.market,
            end,
            self._calendar,
            self._settings.resolver_iteration_cap,
        )

        for day in dates:
            price = self._market_data.get_price(holding.symbol, day, market=holding.market) or price_override
            if price is None:
                result.skipped_dates.append(day)
                continue

            shares = (schedule.amount / price).quantize(quantum, rounding=ROUND_HALF_UP)
            if shares <= 0:
                result.skipped_dates.append(day)
                continue

            txn_id = str(uuid.uuid4())
            try:
                self._balance_service.debit_for_buy(
                    holding.owner_id,
                    holding.portfolio_id,
                    holding.currency,
                    schedule.amount,
                    reference=txn_id,
                    note=f"auto buy {day.isoformat()} (regenerated)",
                )
            except InsufficientCashError as exc:
                logger.warning("Skipping regenerated buy on %s for %s: %s", day, holding.symbol, exc)
                result.skipped_dates.append(day)
                continue

            self._transaction_repo.create(
                Transaction(
                    txn_id=txn_id,
                    holding_id=holding.holding_id,
                    txn_type=TransactionType.BUY,
                    symbol=holding.symbol,
                    shares=shares,
                    price=price,
                    trade_date=day,
                    currency=holding.currency,
                    gross_amount=schedule.amount,
                    purchase_method=PurchaseMethod.AUTO,
                    scheduled_date=day,
                    schedule_id=schedule.schedule_id,
                    exchange_rate=self._exchange_rate(holding, day),
                    note=f"auto-invest {schedule.frequency.value}",
                    sequence=self._transaction_repo.next_sequence(holding.holding_id),
                )
            )
            result.created += 1
            result.total_shares += shares
            result.total_amount += schedule.amount
            result.last_created_date = day

        return result

    def _exchange_rate(self, holding: Holding, day: date) -> Optional[Decimal]:
        if holding.currency.value == self._settings.local_currency:
            return None
        return self._market_data.get_exchange_rate(
            day, holding.currency.value, self._settings.local_currency
        )

    def _refresh_auto_invest(self, holding_id: str, today: date) -> None:
        """Point ``last_executed`` at the newest remaining auto buy."""
        holding = self._locked_holding(holding_id)
        if not holding.auto_invest:
            return
        self._holding_repo.save_auto_invest(
            holding_id,
            replace(
                holding.auto_invest,
                last_executed=self._transaction_repo.latest_auto_date(holding_id),
                last_updated=today,
            ),
            expected_version=holding.version,
        )

    def _record_revision(
        self,
        schedule: AutoInvestSchedule,
        action: ScheduleAction,
        actor: Optional[str] = None,
        reason: Optional[str] = None,
        before: Optional[str] = None,
        extra: Optional[dict] = None,
    ) -> ScheduleRevision:
        """Create audit revision for a schedule change."""
        after = json.loads(self._to_json(schedule))
        if extra:
            after.update(extra)
        revision = ScheduleRevision(
            rev_id=str(uuid.uuid4()),
            schedule_id=schedule.schedule_id,
            holding_id=schedule.holding_id,
            action=action,
            actor=actor,
            reason=reason,
            before_json=before,
            after_json=json.dumps(after),
        )
        return self._schedule_repo.create_revision(revision)

    @staticmethod
    def _to_json(schedule: AutoInvestSchedule) -> str:
        """Serialize schedule to JSON for revision storage."""
        data = asdict(schedule)
        for key, value in data.items():
            if isinstance(value, Decimal):
                data[key] = str(value)
            elif isinstance(value, (date, datetime)):
                data[key] = value.isoformat()
            elif hasattr(value, "value"):  # Enum
                data[key] = value.value
        return json.dumps(data)

"""Auto-invest execution engine: the periodic sweep over active schedules."""

import logging
import uuid
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from autoinvest.config.settings import Settings, get_settings
from autoinvest.core.exceptions import (
    CommitConflictError,
    InsufficientCashError,
    NotFoundError,
    SweepAbortedError,
)
from autoinvest.core.timezone import now_utc
from autoinvest.domain.models import (
    AutoInvestSchedule,
    AutomationLogEntry,
    AutomationStatus,
    Holding,
    Market,
    PurchaseMethod,
    Transaction,
    TransactionType,
)
from autoinvest.domain.views import SweepLogEntry, SweepSummary
from autoinvest.providers.trading_calendar import TradingCalendar, determine_market
from autoinvest.repositories.protocols import RepositorySet
from autoinvest.repositories.sqlalchemy.database import atomic
from autoinvest.services.balance_service import BalanceService
from autoinvest.services.due_dates import resolve_next_due
from autoinvest.services.market_data_service import MarketDataService
from autoinvest.services.reconciliation import apply_buy_to_holding

logger = logging.getLogger(__name__)

ALREADY_EXECUTED = "already executed"


class _AlreadyExecuted(Exception):
    """An auto buy for the due date appeared inside the commit."""


@dataclass
class _CommitOutcome:
    transaction_id: str
    balance_before: Decimal
    balance_after: Decimal


class AutoInvestExecutor:
    """
    Runs the auto-invest sweep.

    Every holding with auto-invest switched on is resolved against its
    current schedule; a due buy is committed exactly once in a single
    transaction that debits cash, appends the ledger row and updates the
    holding snapshot. Holdings are independent: each gets its own session,
    and a failure in one becomes one ``error`` entry in the summary.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session],
        repositories: Callable[[Session], RepositorySet],
        market_data: MarketDataService,
        calendar: TradingCalendar,
        settings: Optional[Settings] = None,
    ):
        self._session_factory = session_factory
        self._repositories = repositories
        self._market_data = market_data
        self._calendar = calendar
        self._settings = settings or get_settings()

    def run_sweep(self, as_of: Optional[date] = None, dry_run: bool = False) -> SweepSummary:
        """
        Process every active holding once.

        Args:
            as_of: Date to run for; defaults to each holding's market today.
            dry_run: Compute everything but write nothing (``preview`` entries).

        Raises:
            SweepAbortedError: the store became unreachable; ``summary`` holds
                the entries produced before the failure.
        """
        summary = SweepSummary(
            run_id=str(uuid.uuid4()),
            triggered_at=now_utc(),
            as_of=as_of,
            dry_run=dry_run,
        )
        logger.info("Starting sweep %s (as_of=%s, dry_run=%s)", summary.run_id, as_of, dry_run)

        try:
            holding_ids = self._list_active_holdings()
        except OperationalError as exc:
            raise SweepAbortedError(f"Cannot list active holdings: {exc}", summary) from exc

        aborted: Optional[OperationalError] = None
        workers = max(1, self._settings.sweep_max_workers)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="sweep") as pool:
            futures = [
                pool.submit(self._process_holding, holding_id, as_of, dry_run)
                for holding_id in holding_ids
            ]
            for future in futures:
                # After an abort, holdings already in flight still report
                if aborted is not None and future.cancel():
                    continue
                try:
                    entry = future.result()
                except OperationalError as exc:
                    aborted = aborted or exc
                    continue
                summary.logs.append(entry)
                self._log_decision(entry)

        if aborted is not None:
            logger.error("Sweep %s aborted after %d holdings: %s", summary.run_id, summary.processed, aborted)
            if not dry_run:
                self._persist_logs_after_abort(summary)
            raise SweepAbortedError(f"Store unavailable during sweep: {aborted}", summary) from aborted

        if not dry_run:
            self._persist_logs(summary)

        logger.info(
            "Sweep %s finished: processed=%d success=%d skipped=%d error=%d preview=%d",
            summary.run_id,
            summary.processed,
            summary.success_count,
            summary.skipped_count,
            summary.error_count,
            summary.preview_count,
        )
        return summary

    def _list_active_holdings(self) -> list[str]:
        with self._session_factory() as db:
            return self._repositories(db).holdings.list_auto_invest_active_ids()

    def _process_holding(self, holding_id: str, as_of: Optional[date], dry_run: bool) -> SweepLogEntry:
        with self._session_factory() as db:
            repos = self._repositories(db)
            try:
                return self._execute(db, repos, holding_id, as_of, dry_run)
            except OperationalError:
                raise
            except Exception as exc:
                logger.exception("Auto-invest failed for holding %s", holding_id)
                return SweepLogEntry(
                    status=AutomationStatus.ERROR,
                    holding_id=holding_id,
                    message=str(exc),
                )

    def _execute(
        self,
        db: Session,
        repos: RepositorySet,
        holding_id: str,
        as_of: Optional[date],
        dry_run: bool,
    ) -> SweepLogEntry:
        holding = repos.holdings.get_by_id(holding_id)
        if holding is None:
            return SweepLogEntry(
                status=AutomationStatus.SKIPPED, holding_id=holding_id, message="holding not found"
            )
        if not holding.auto_invest_active:
            return self._entry(holding, AutomationStatus.SKIPPED, "auto-invest is not active")

        market = determine_market(holding.market, holding.currency.value, holding.symbol)
        today = as_of or self._calendar.today(market)

        schedule = self._load_schedule(repos, holding)
        reason = self._validate_schedule(schedule, today)
        if reason:
            return self._entry(
                holding,
                AutomationStatus.SKIPPED,
                reason,
                amount=schedule.amount if schedule else None,
            )

        last_executed = holding.auto_invest.last_executed
        if last_executed == today:
            return self._entry(
                holding, AutomationStatus.SKIPPED, ALREADY_EXECUTED,
                scheduled_date=today, amount=schedule.amount,
            )

        due = resolve_next_due(
            schedule.effective_from,
            schedule.frequency,
            market,
            today,
            last_executed,
            self._calendar,
            self._settings.resolver_iteration_cap,
        )
        if due is None:
            return self._entry(
                holding, AutomationStatus.SKIPPED, f"not due on {today.isoformat()}",
                amount=schedule.amount,
            )

        if repos.transactions.find_auto_for_date(holding_id, due):
            return self._entry(
                holding, AutomationStatus.SKIPPED, ALREADY_EXECUTED,
                scheduled_date=due, amount=schedule.amount,
            )

        price = self._price(holding, due, market)
        if price is None:
            return self._entry(
                holding, AutomationStatus.ERROR,
                f"no usable price for {holding.symbol} on {due.isoformat()}",
                scheduled_date=due, amount=schedule.amount,
            )

        shares = (schedule.amount / price).quantize(
            self._settings.get_share_quantum(), rounding=ROUND_HALF_UP
        )
        if shares <= 0:
            return self._entry(
                holding, AutomationStatus.ERROR,
                f"computed shares {shares} is not positive (amount {schedule.amount}, price {price})",
                scheduled_date=due, amount=schedule.amount, price=price,
            )

        fx_rate = self._exchange_rate(holding, due)

        if dry_run:
            return self._preview(repos, holding, schedule, due, price, shares)

        return self._commit_with_retry(db, repos, holding, schedule, due, price, shares, fx_rate, today)

    @staticmethod
    def _load_schedule(repos: RepositorySet, holding: Holding) -> Optional[AutoInvestSchedule]:
        """Current schedule by reference, else the latest by effective_from."""
        schedule_id = holding.auto_invest.current_schedule_id
        if schedule_id:
            schedule = repos.schedules.get_by_id(schedule_id)
            if schedule and schedule.holding_id == holding.holding_id:
                return schedule
        return repos.schedules.get_latest(holding.holding_id)

    @staticmethod
    def _validate_schedule(schedule: Optional[AutoInvestSchedule], today: date) -> Optional[str]:
        if schedule is None:
            return "no auto-invest schedule found"
        if schedule.amount is None or schedule.amount <= 0:
            return "schedule amount must be positive"
        if schedule.effective_from is None:
            return "schedule has no effective date"
        if schedule.covers(today):
            return None
        if today < schedule.effective_from:
            return f"schedule starts on {schedule.effective_from.isoformat()}"
        return f"schedule ended on {schedule.effective_to.isoformat()}"

    def _price(self, holding: Holding, due: date, market: Market) -> Optional[Decimal]:
        price = self._market_data.get_price(holding.symbol, due, market=market)
        if price is not None:
            return price
        if holding.current_price > 0:
            logger.info(
                "Using last known price %s for %s on %s", holding.current_price, holding.symbol, due
            )
            return holding.current_price
        return None

    def _exchange_rate(self, holding: Holding, due: date) -> Optional[Decimal]:
        local = self._settings.local_currency
        if holding.currency.value == local:
            return None
        rate = self._market_data.get_exchange_rate(due, holding.currency.value, local)
        if rate is None:
            logger.info("No %s/%s rate for %s; storing buy without FX", holding.currency.value, local, due)
        return rate

    def _preview(
        self,
        repos: RepositorySet,
        holding: Holding,
        schedule: AutoInvestSchedule,
        due: date,
        price: Decimal,
        shares: Decimal,
    ) -> SweepLogEntry:
        balance = repos.balances.get(holding.owner_id, holding.portfolio_id, holding.currency)
        before = balance.balance if balance else Decimal("0")
        after = before - schedule.amount

        message = f"would buy {shares} {holding.symbol} at {price}"
        if after < 0:
            message += f"; insufficient funds (shortfall {-after})"

        return self._entry(
            holding,
            AutomationStatus.PREVIEW,
            message,
            scheduled_date=due,
            amount=schedule.amount,
            shares=shares,
            price=price,
            balance_before=before,
            balance_after=after,
        )

    def _commit_with_retry(
        self,
        db: Session,
        repos: RepositorySet,
        holding: Holding,
        schedule: AutoInvestSchedule,
        due: date,
        price: Decimal,
        shares: Decimal,
        fx_rate: Optional[Decimal],
        today: date,
    ) -> SweepLogEntry:
        """Run the atomic commit, retrying the whole unit on version conflicts."""
        attempts = max(1, self._settings.commit_retry_attempts)

        for attempt in range(1, attempts + 1):
            try:
                with atomic(db):
                    outcome = self._commit_buy(
                        db, repos, holding.holding_id, schedule, due, price, shares, fx_rate, today
                    )
            except _AlreadyExecuted:
                return self._entry(
                    holding, AutomationStatus.SKIPPED, ALREADY_EXECUTED,
                    scheduled_date=due, amount=schedule.amount,
                )
            except InsufficientCashError as exc:
                return self._entry(
                    holding,
                    AutomationStatus.ERROR,
                    exc.message,
                    scheduled_date=due,
                    amount=schedule.amount,
                    shares=shares,
                    price=price,
                    balance_before=exc.available,
                    balance_after=exc.available,
                )
            except IntegrityError:
                if repos.transactions.find_auto_for_date(holding.holding_id, due):
                    return self._entry(
                        holding, AutomationStatus.SKIPPED, ALREADY_EXECUTED,
                        scheduled_date=due, amount=schedule.amount,
                    )
                logger.warning(
                    "Constraint conflict committing %s on %s (attempt %d/%d)",
                    holding.holding_id, due, attempt, attempts,
                )
                continue
            except StaleDataError:
                logger.warning(
                    "Concurrent update on holding %s (attempt %d/%d)",
                    holding.holding_id, attempt, attempts,
                )
                continue

            return self._entry(
                holding,
                AutomationStatus.SUCCESS,
                f"bought {shares} {holding.symbol} at {price}",
                scheduled_date=due,
                amount=schedule.amount,
                shares=shares,
                price=price,
                balance_before=outcome.balance_before,
                balance_after=outcome.balance_after,
                transaction_id=outcome.transaction_id,
            )

        raise CommitConflictError(holding.holding_id, attempts)

    def _commit_buy(
        self,
        db: Session,
        repos: RepositorySet,
        holding_id: str,
        schedule: AutoInvestSchedule,
        due: date,
        price: Decimal,
        shares: Decimal,
        fx_rate: Optional[Decimal],
        today: date,
    ) -> _CommitOutcome:
        """Debit cash, append the buy and update the snapshot. Caller owns the transaction."""
        holding = repos.holdings.get_for_update(holding_id)
        if holding is None:
            raise NotFoundError("Holding", holding_id)

        # Re-checked here so the check and the write share one transaction
        if repos.transactions.find_auto_for_date(holding_id, due):
            raise _AlreadyExecuted()

        txn_id = str(uuid.uuid4())
        balances = BalanceService(db, repos.balances)
        before, after = balances.debit_for_buy(
            holding.owner_id,
            holding.portfolio_id,
            holding.currency,
            schedule.amount,
            reference=txn_id,
            note=f"auto buy {holding.symbol} {due.isoformat()}",
        )

        created = repos.transactions.create(
            Transaction(
                txn_id=txn_id,
                holding_id=holding_id,
                txn_type=TransactionType.BUY,
                symbol=holding.symbol,
                shares=shares,
                price=price,
                trade_date=due,
                currency=holding.currency,
                gross_amount=schedule.amount,
                purchase_method=PurchaseMethod.AUTO,
                scheduled_date=due,
                schedule_id=schedule.schedule_id,
                exchange_rate=fx_rate,
                note=f"auto-invest {schedule.frequency.value}",
                sequence=repos.transactions.next_sequence(holding_id),
            )
        )

        updated = repos.holdings.save_snapshot(
            apply_buy_to_holding(holding, created), expected_version=holding.version
        )
        repos.holdings.save_auto_invest(
            holding_id,
            replace(holding.auto_invest, last_executed=due, last_updated=today),
            expected_version=updated.version,
        )
        return _CommitOutcome(transaction_id=txn_id, balance_before=before, balance_after=after)

    def _persist_logs(self, summary: SweepSummary) -> None:
        entries = [
            AutomationLogEntry(
                log_id=str(uuid.uuid4()),
                run_id=summary.run_id,
                triggered_at=summary.triggered_at,
                status=log.status,
                owner_id=log.owner_id,
                portfolio_id=log.portfolio_id,
                holding_id=log.holding_id,
                symbol=log.symbol,
                scheduled_date=log.scheduled_date,
                amount=log.amount,
                currency=log.currency,
                message=log.message,
                shares=log.shares,
                price=log.price,
                balance_before=log.balance_before,
                balance_after=log.balance_after,
            )
            for log in summary.logs
        ]
        if not entries:
            return
        try:
            with self._session_factory() as db:
                with atomic(db):
                    self._repositories(db).automation_logs.add_many(entries)
        except OperationalError as exc:
            raise SweepAbortedError(f"Cannot persist automation logs: {exc}", summary) from exc

    def _persist_logs_after_abort(self, summary: SweepSummary) -> None:
        """Store the entries of an aborted sweep; buys it committed keep their audit rows."""
        try:
            self._persist_logs(summary)
        except SweepAbortedError as exc:
            logger.error("Automation logs of aborted sweep %s not stored: %s", summary.run_id, exc.message)

    @staticmethod
    def _entry(holding: Holding, status: AutomationStatus, message: str, **fields) -> SweepLogEntry:
        return SweepLogEntry(
            status=status,
            holding_id=holding.holding_id,
            owner_id=holding.owner_id,
            portfolio_id=holding.portfolio_id,
            symbol=holding.symbol,
            currency=holding.currency.value,
            message=message,
            **fields,
        )

    @staticmethod
    def _log_decision(entry: SweepLogEntry) -> None:
        level = logging.WARNING if entry.status == AutomationStatus.ERROR else logging.INFO
        logger.log(
            level,
            "%s %s (%s) on %s: %s",
            entry.status.value,
            entry.symbol or "-",
            entry.holding_id,
            entry.scheduled_date.isoformat() if entry.scheduled_date else "-",
            entry.message,
        )

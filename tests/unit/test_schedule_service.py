"""
Unit tests for ScheduleService.

Tests cover:
- Creating schedule versions and closing the previous one
- Validation of frequency and amount
- Closing a schedule, with and without purging its auto buys
- Reapplying a schedule from a date (refund, regenerate, reconcile, audit)
- Date previews
"""

import json
import pytest
from datetime import date
from decimal import Decimal

from autoinvest.core.exceptions import (
    NotFoundError,
    ScheduleConfigurationError,
    ValidationError,
)
from autoinvest.domain.models import (
    CashMovementKind,
    Currency,
    Frequency,
    PurchaseMethod,
    ScheduleAction,
    TransactionType,
)
from autoinvest.services import ScheduleService

from tests.conftest import assert_decimal_equal


WEEKLY_DATES = [
    date(2024, 1, 2),
    date(2024, 1, 9),
    date(2024, 1, 16),
    date(2024, 1, 23),
    date(2024, 1, 30),
]


# =============================================================================
# CREATE TESTS
# =============================================================================


class TestCreateSchedule:
    """Tests for starting schedule versions."""

    def test_first_version_activates_auto_invest(
        self,
        schedule_service: ScheduleService,
        holding_factory,
        holding_repo,
        fixed_today,
    ):
        """
        GIVEN a holding without auto-invest
        WHEN I create a daily 100 schedule from 2024-01-01
        THEN one open version exists and the holding points at it
        """
        holding = holding_factory()

        schedules = schedule_service.create_schedule(
            holding.holding_id, Frequency.DAILY, Decimal("100"), effective_from=date(2024, 1, 1), actor="alice"
        )

        assert len(schedules) == 1
        schedule = schedules[0]
        assert schedule.is_open
        assert schedule.currency == Currency.USD
        assert schedule.created_by == "alice"

        config = holding_repo.get_by_id(holding.holding_id).auto_invest
        assert config.is_active is True
        assert config.current_schedule_id == schedule.schedule_id
        assert config.frequency == Frequency.DAILY
        assert config.amount == Decimal("100")
        assert config.start_date == date(2024, 1, 1)
        assert config.last_updated == fixed_today
        assert config.last_executed is None

        revisions = schedule_service.list_revisions(holding.holding_id)
        assert [r.action for r in revisions] == [ScheduleAction.CREATE]
        assert revisions[0].actor == "alice"

    def test_new_version_closes_previous(self, schedule_service: ScheduleService, holding_factory, holding_repo):
        """
        GIVEN an open daily schedule from 2024-01-01
        WHEN a weekly schedule starts on 2024-02-01
        THEN the daily one ends on 2024-01-31 and is audited as superseded
        """
        holding = holding_factory()
        schedule_service.create_schedule(holding.holding_id, Frequency.DAILY, Decimal("100"), date(2024, 1, 1))

        schedules = schedule_service.create_schedule(
            holding.holding_id, Frequency.WEEKLY, Decimal("250"), date(2024, 2, 1)
        )

        newest, previous = schedules
        assert newest.effective_from == date(2024, 2, 1)
        assert newest.is_open
        assert previous.effective_to == date(2024, 1, 31)

        config = holding_repo.get_by_id(holding.holding_id).auto_invest
        assert config.current_schedule_id == newest.schedule_id
        assert config.amount == Decimal("250")
        assert config.start_date == date(2024, 1, 1)

        revisions = schedule_service.list_revisions(holding.holding_id)
        assert [r.action for r in revisions] == [
            ScheduleAction.CREATE,
            ScheduleAction.CLOSE,
            ScheduleAction.CREATE,
        ]
        assert revisions[1].reason == "superseded"
        assert json.loads(revisions[1].before_json)["effective_to"] is None

    def test_defaults_to_today(self, schedule_service: ScheduleService, holding_factory, fixed_today):
        holding = holding_factory()

        schedules = schedule_service.create_schedule(holding.holding_id, Frequency.MONTHLY, Decimal("10"))

        assert schedules[0].effective_from == fixed_today

    @pytest.mark.parametrize(
        "frequency,amount",
        [
            ("hourly", Decimal("100")),
            (Frequency.DAILY, Decimal("0")),
            (Frequency.DAILY, Decimal("-1")),
        ],
    )
    def test_invalid_parameters_rejected(self, schedule_service: ScheduleService, holding_factory, frequency, amount):
        holding = holding_factory()

        with pytest.raises(ValidationError):
            schedule_service.create_schedule(holding.holding_id, frequency, amount, date(2024, 1, 1))

        assert schedule_service.list_schedules(holding.holding_id) == []

    def test_unknown_holding_rejected(self, schedule_service: ScheduleService):
        with pytest.raises(NotFoundError):
            schedule_service.create_schedule("missing", Frequency.DAILY, Decimal("1"))

    def test_regenerate_builds_history(
        self,
        schedule_service: ScheduleService,
        funded_holding,
        holding_repo,
        transaction_repo,
        balance_service,
    ):
        """
        GIVEN a holding with 1,000 USD available
        WHEN a weekly 100 schedule from 2024-01-02 is created with regenerate
        THEN one buy per weekly trading date up to today is written and paid for
        """
        schedule_service.create_schedule(
            funded_holding.holding_id, Frequency.WEEKLY, Decimal("100"), date(2024, 1, 2), regenerate=True
        )

        autos = transaction_repo.list_auto(funded_holding.holding_id)
        assert [t.trade_date for t in autos] == WEEKLY_DATES
        assert all(t.scheduled_date == t.trade_date for t in autos)
        assert all(t.exchange_rate == Decimal("1300") for t in autos)

        holding = holding_repo.get_by_id(funded_holding.holding_id)
        assert holding.shares == Decimal("5")
        assert holding.total_invested == Decimal("500")
        assert holding.auto_invest.last_executed == date(2024, 1, 30)

        balance = balance_service.get_balance("owner-1", "main", Currency.USD)
        assert balance.balance == Decimal("500")


# =============================================================================
# CLOSE TESTS
# =============================================================================


class TestCloseSchedule:
    """Tests for closing schedule versions."""

    def test_close_current_deactivates(
        self,
        schedule_service: ScheduleService,
        holding_factory,
        schedule_factory,
        holding_repo,
        fixed_today,
    ):
        holding = holding_factory()
        schedule = schedule_factory(holding.holding_id)

        result = schedule_service.close_schedule(holding.holding_id, schedule.schedule_id, reason="paused")

        assert result.effective_to == fixed_today
        assert result.removed == 0
        assert result.snapshot is None
        assert holding_repo.get_by_id(holding.holding_id).auto_invest_active is False
        revision = schedule_service.list_revisions(holding.holding_id)[-1]
        assert revision.action == ScheduleAction.CLOSE
        assert revision.reason == "paused"

    def test_close_twice_rejected(self, schedule_service: ScheduleService, holding_factory, schedule_factory):
        holding = holding_factory()
        schedule = schedule_factory(holding.holding_id)
        schedule_service.close_schedule(holding.holding_id, schedule.schedule_id)

        with pytest.raises(ScheduleConfigurationError):
            schedule_service.close_schedule(holding.holding_id, schedule.schedule_id)

    @pytest.mark.parametrize("purge", [False, True])
    def test_closed_window_cannot_move(
        self,
        schedule_service: ScheduleService,
        holding_factory,
        schedule_factory,
        purge,
    ):
        """
        GIVEN v1 from 2024-01-01 superseded by v2 from 2024-01-10
        WHEN v1 is closed again with a later effective_to
        THEN it is rejected and v1 still ends on 2024-01-09
        """
        holding = holding_factory()
        first = schedule_factory(holding.holding_id, effective_from=date(2024, 1, 1))
        second = schedule_factory(holding.holding_id, effective_from=date(2024, 1, 10))
        revisions_before = len(schedule_service.list_revisions(holding.holding_id))

        with pytest.raises(ScheduleConfigurationError):
            schedule_service.close_schedule(
                holding.holding_id,
                first.schedule_id,
                effective_to=date(2024, 1, 31),
                purge_transactions=purge,
            )

        assert schedule_service.get_schedule(holding.holding_id, first.schedule_id).effective_to == date(2024, 1, 9)
        assert schedule_service.get_schedule(holding.holding_id, second.schedule_id).is_open
        assert len(schedule_service.list_revisions(holding.holding_id)) == revisions_before

    def test_purge_of_closed_version_uses_stored_window(
        self,
        schedule_service: ScheduleService,
        funded_holding,
        schedule_factory,
        holding_repo,
        transaction_repo,
        balance_service,
    ):
        """
        GIVEN weekly v1 from 2024-01-02 and weekly v2 from 2024-01-17, both regenerated
        WHEN v1 is purged
        THEN only v1's buys (01-02, 01-09, 01-16) go and v2 keeps its window and buys
        """
        first = schedule_factory(
            funded_holding.holding_id, Frequency.WEEKLY, effective_from=date(2024, 1, 2), regenerate=True
        )
        second = schedule_factory(
            funded_holding.holding_id, Frequency.WEEKLY, effective_from=date(2024, 1, 17), regenerate=True
        )

        result = schedule_service.close_schedule(
            funded_holding.holding_id, first.schedule_id, purge_transactions=True
        )

        assert result.effective_to == date(2024, 1, 16)
        assert result.removed == 3
        assert schedule_service.get_schedule(funded_holding.holding_id, first.schedule_id).effective_to == date(2024, 1, 16)
        assert schedule_service.get_schedule(funded_holding.holding_id, second.schedule_id).is_open
        remaining = [t.trade_date for t in transaction_repo.list_auto(funded_holding.holding_id)]
        assert remaining == [date(2024, 1, 17), date(2024, 1, 24), date(2024, 1, 31)]
        assert holding_repo.get_by_id(funded_holding.holding_id).auto_invest_active is True
        assert balance_service.get_balance("owner-1", "main", Currency.USD).balance == Decimal("700")

    def test_end_before_start_rejected(self, schedule_service: ScheduleService, holding_factory, schedule_factory):
        holding = holding_factory()
        schedule = schedule_factory(holding.holding_id, effective_from=date(2024, 1, 10))

        with pytest.raises(ScheduleConfigurationError):
            schedule_service.close_schedule(holding.holding_id, schedule.schedule_id, effective_to=date(2024, 1, 5))

    def test_schedule_of_other_holding_not_found(
        self,
        schedule_service: ScheduleService,
        holding_factory,
        schedule_factory,
    ):
        first = holding_factory(symbol="AAPL")
        second = holding_factory(symbol="MSFT")
        schedule = schedule_factory(first.holding_id)

        with pytest.raises(NotFoundError):
            schedule_service.close_schedule(second.holding_id, schedule.schedule_id)

    def test_purge_refunds_and_reconciles(
        self,
        schedule_service: ScheduleService,
        funded_holding,
        schedule_factory,
        holding_repo,
        transaction_repo,
        balance_service,
    ):
        """
        GIVEN five regenerated weekly buys
        WHEN the schedule is closed with purge_transactions
        THEN the buys are removed, their cost refunded and the holding emptied
        """
        schedule = schedule_factory(
            funded_holding.holding_id, Frequency.WEEKLY, effective_from=date(2024, 1, 2), regenerate=True
        )

        result = schedule_service.close_schedule(
            funded_holding.holding_id, schedule.schedule_id, purge_transactions=True
        )

        assert result.removed == 5
        assert result.snapshot.shares == 0
        assert transaction_repo.list_auto(funded_holding.holding_id) == []
        holding = holding_repo.get_by_id(funded_holding.holding_id)
        assert holding.shares == 0
        assert holding.auto_invest.last_executed is None
        assert balance_service.get_balance("owner-1", "main", Currency.USD).balance == Decimal("1000")
        kinds = [m.kind for m in balance_service.list_movements("owner-1", "main")]
        assert kinds.count(CashMovementKind.REFUND) == 5

    def test_purge_keeps_manual_transactions(
        self,
        schedule_service: ScheduleService,
        funded_holding,
        schedule_factory,
        transaction_factory,
        transaction_repo,
        holding_repo,
    ):
        transaction_factory(funded_holding.holding_id, TransactionType.BUY, Decimal("2"), Decimal("90"), date(2024, 1, 3))
        schedule = schedule_factory(
            funded_holding.holding_id, Frequency.WEEKLY, effective_from=date(2024, 1, 2), regenerate=True
        )

        schedule_service.close_schedule(funded_holding.holding_id, schedule.schedule_id, purge_transactions=True)

        remaining = transaction_repo.list_by_holding(funded_holding.holding_id)
        assert [t.purchase_method for t in remaining] == [PurchaseMethod.MANUAL]
        assert holding_repo.get_by_id(funded_holding.holding_id).shares == Decimal("2")


# =============================================================================
# REAPPLY TESTS
# =============================================================================


class TestReapplySchedule:
    """Tests for reapplying a schedule from a date."""

    def test_reapply_rewrites_history_from_date(
        self,
        schedule_service: ScheduleService,
        funded_holding,
        schedule_factory,
        price_provider,
        holding_repo,
        transaction_repo,
        balance_service,
    ):
        """
        GIVEN five weekly buys at 100 and a price that moved to 200
        WHEN the schedule is reapplied from 2024-01-16
        THEN the last three buys are replaced by buys at 200 under a new version
        """
        schedule = schedule_factory(
            funded_holding.holding_id, Frequency.WEEKLY, effective_from=date(2024, 1, 2), regenerate=True
        )
        price_provider.set_price("AAPL", Decimal("200"))

        result = schedule_service.reapply_schedule(
            funded_holding.holding_id, schedule.schedule_id, date(2024, 1, 16), actor="ops", reason="price fix"
        )

        assert result.removed == 3
        assert result.created == 3
        assert result.skipped_dates == []
        assert result.new_schedule_id != schedule.schedule_id
        assert result.snapshot.shares == Decimal("3.5")
        assert result.snapshot.total_invested == Decimal("500")

        autos = transaction_repo.list_auto(funded_holding.holding_id)
        assert [t.trade_date for t in autos] == WEEKLY_DATES
        assert [t.schedule_id for t in autos[2:]] == [result.new_schedule_id] * 3
        assert [t.shares for t in autos[2:]] == [Decimal("0.5")] * 3

        holding = holding_repo.get_by_id(funded_holding.holding_id)
        assert holding.auto_invest.current_schedule_id == result.new_schedule_id
        assert holding.auto_invest.last_executed == date(2024, 1, 30)
        assert_decimal_equal(holding.average_cost, Decimal("142.86"))
        assert balance_service.get_balance("owner-1", "main", Currency.USD).balance == Decimal("500")

        schedules = schedule_service.list_schedules(funded_holding.holding_id)
        assert schedules[0].schedule_id == result.new_schedule_id
        assert schedules[0].note == f"reapply of {schedule.schedule_id}"
        assert schedules[1].effective_to == date(2024, 1, 15)

        revision = schedule_service.list_revisions(funded_holding.holding_id)[-1]
        assert revision.action == ScheduleAction.REAPPLY
        assert revision.actor == "ops"
        after = json.loads(revision.after_json)
        assert after["source_schedule_id"] == schedule.schedule_id
        assert after["removed"] == 3
        assert after["created"] == 3

    def test_reapply_skips_dates_without_cash(
        self,
        schedule_service: ScheduleService,
        holding_factory,
        deposit,
        schedule_factory,
        balance_service,
    ):
        holding = holding_factory()
        deposit(holding, Decimal("250"))
        schedule = schedule_factory(holding.holding_id, Frequency.WEEKLY, effective_from=date(2024, 1, 2))

        result = schedule_service.reapply_schedule(holding.holding_id, schedule.schedule_id, date(2024, 1, 2))

        assert result.created == 2
        assert result.skipped_dates == WEEKLY_DATES[2:]
        assert balance_service.get_balance("owner-1", "main", Currency.USD).balance == Decimal("50")

    def test_missing_price_skipped_or_overridden(
        self,
        schedule_service: ScheduleService,
        funded_holding,
        schedule_factory,
        price_provider,
        transaction_repo,
    ):
        schedule = schedule_factory(funded_holding.holding_id, Frequency.WEEKLY, effective_from=date(2024, 1, 2))
        price_provider.set_price("AAPL", None, day=date(2024, 1, 9))

        skipped = schedule_service.reapply_schedule(funded_holding.holding_id, schedule.schedule_id, date(2024, 1, 2))
        assert skipped.skipped_dates == [date(2024, 1, 9)]
        assert skipped.created == 4

        overridden = schedule_service.reapply_schedule(
            funded_holding.holding_id,
            skipped.new_schedule_id,
            date(2024, 1, 2),
            price_override=Decimal("50"),
        )
        assert overridden.removed == 4
        assert overridden.created == 5
        buy = transaction_repo.find_auto_for_date(funded_holding.holding_id, date(2024, 1, 9))
        assert buy.price == Decimal("50")
        assert buy.shares == Decimal("2")

    def test_non_positive_override_rejected(
        self,
        schedule_service: ScheduleService,
        holding_factory,
        schedule_factory,
    ):
        holding = holding_factory()
        schedule = schedule_factory(holding.holding_id)

        with pytest.raises(ValidationError):
            schedule_service.reapply_schedule(
                holding.holding_id, schedule.schedule_id, date(2024, 1, 2), price_override=Decimal("0")
            )


# =============================================================================
# PREVIEW TESTS
# =============================================================================


class TestPreviewDates:
    """Tests for preview_dates."""

    def test_preview_until_today(self, schedule_service: ScheduleService, holding_factory):
        holding = holding_factory()

        dates = schedule_service.preview_dates(holding.holding_id, date(2024, 1, 1), Frequency.WEEKLY)

        assert dates == WEEKLY_DATES

    def test_preview_with_end(self, schedule_service: ScheduleService, holding_factory):
        holding = holding_factory()

        dates = schedule_service.preview_dates(
            holding.holding_id, date(2024, 1, 1), Frequency.DAILY, end=date(2024, 1, 5)
        )

        assert dates == [date(2024, 1, 2), date(2024, 1, 3), date(2024, 1, 4), date(2024, 1, 5)]

"""
Integration tests for the in-process AppContext and the command-line sweep.
"""

from datetime import date
from decimal import Decimal

import pytest

import entrypoint
from autoinvest.app_context import AppContext
from autoinvest.config.settings import get_settings, reset_settings, set_settings
from autoinvest.domain.models import AutomationStatus, Currency, Frequency
from autoinvest.repositories.sqlalchemy.database import reset_database

from tests.conftest import NEW_YEAR


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite:///{tmp_path / 'autoinvest.db'}"


@pytest.fixture
def context(database_url, test_settings):
    """AppContext on a throwaway SQLite file."""
    reset_settings()
    set_settings(test_settings)
    ctx = AppContext(database_url=database_url)
    ctx.initialize()
    yield ctx
    ctx.close()
    reset_database()
    reset_settings()


def _funded_schedule(ctx: AppContext) -> str:
    holding = ctx.ledger.create_holding(owner_id="owner-1", portfolio_id="main", symbol="AAPL")
    ctx.balances.deposit("owner-1", "main", Currency.USD, Decimal("1000"))
    ctx.schedules.create_schedule(
        holding.holding_id, frequency=Frequency.DAILY, amount=Decimal("100"), effective_from=NEW_YEAR
    )
    return holding.holding_id


# =============================================================================
# APP CONTEXT
# =============================================================================


class TestAppContext:
    """Tests for AppContext wiring."""

    def test_initialize_applies_database_override(self, context, database_url):
        assert context.is_initialized
        assert get_settings().database_url == database_url
        assert get_settings().sweep_max_workers == 1

    def test_services_share_one_store(self, context):
        holding_id = _funded_schedule(context)

        assert context.ledger.get_holding(holding_id).auto_invest_active is True
        assert context.balances.get_balance("owner-1", "main", Currency.USD).balance == Decimal("1000")
        assert len(context.schedules.list_schedules(holding_id)) == 1

    def test_dry_run_then_live_sweep(self, context):
        """
        GIVEN a funded daily schedule
        WHEN a dry run and then a live sweep run for 2024-01-02
        THEN only the live sweep changes the holding and the balance
        """
        holding_id = _funded_schedule(context)

        preview = context.run_sweep(as_of=date(2024, 1, 2), dry_run=True)
        assert preview.logs[0].status == AutomationStatus.PREVIEW
        assert context.ledger.get_holding(holding_id).shares == 0

        live = context.run_sweep(as_of=date(2024, 1, 2))
        assert live.logs[0].status == AutomationStatus.SUCCESS
        assert context.ledger.get_holding(holding_id).shares == live.logs[0].shares
        assert context.balances.get_balance("owner-1", "main", Currency.USD).balance == Decimal("900")


# =============================================================================
# COMMAND LINE
# =============================================================================


class TestSweepCommand:
    """Tests for `entrypoint.py sweep`."""

    def test_parse_sweep_arguments(self):
        args = entrypoint.parse_args(["sweep", "--as-of", "2024-01-02", "--dry-run"])

        assert args.command == "sweep"
        assert args.as_of == date(2024, 1, 2)
        assert args.dry_run is True
        assert args.database_url is None
        assert args.log_level is None

    def test_no_command_means_serve(self):
        assert entrypoint.parse_args([]).command is None

    def test_empty_store_exits_clean(self, context, database_url, capsys):
        code = entrypoint.main(["sweep", "--as-of", "2024-01-02", "--database-url", database_url])

        assert code == 0
        assert "processed=0" in capsys.readouterr().out

    def test_preview_is_printed(self, context, database_url, capsys):
        _funded_schedule(context)

        code = entrypoint.main(
            ["sweep", "--as-of", "2024-01-02", "--dry-run", "--database-url", database_url]
        )

        out = capsys.readouterr().out
        assert code == 0
        assert "preview" in out
        assert "would buy" in out
        assert "preview=1" in out

    def test_errors_set_exit_code(self, context, database_url):
        holding = context.ledger.create_holding(owner_id="owner-1", portfolio_id="main", symbol="AAPL")
        context.schedules.create_schedule(
            holding.holding_id, frequency=Frequency.DAILY, amount=Decimal("100"), effective_from=NEW_YEAR
        )

        code = entrypoint.main(["sweep", "--as-of", "2024-01-02", "--database-url", database_url])

        assert code == 1

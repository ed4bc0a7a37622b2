"""
Unit tests for LedgerService.

Tests cover:
- Holding creation with market/currency inference
- Manual transactions and trade-date normalization
- Validation errors (oversell, non-positive values, unknown holdings)
- Oversells judged against the stored share count
- Reconciliation after each transaction
"""

import pytest
from dataclasses import replace
from datetime import date
from decimal import Decimal

from autoinvest.core.exceptions import (
    InsufficientSharesError,
    NotFoundError,
    ValidationError,
)
from autoinvest.domain.models import Currency, Market, PurchaseMethod, TransactionType
from autoinvest.services import LedgerService, TransactionCreate

from tests.conftest import assert_decimal_equal


# =============================================================================
# HOLDING TESTS
# =============================================================================


class TestCreateHolding:
    """Tests for holding creation."""

    def test_us_symbol_defaults(self, ledger_service: LedgerService):
        holding = ledger_service.create_holding("owner-1", "main", " aapl ")

        assert holding.symbol == "AAPL"
        assert holding.market == Market.US
        assert holding.currency == Currency.USD
        assert holding.shares == 0
        assert holding.auto_invest_active is False

    def test_numeric_symbol_is_korean(self, ledger_service: LedgerService):
        holding = ledger_service.create_holding("owner-1", "main", "005930")

        assert holding.market == Market.KR
        assert holding.currency == Currency.KRW

    def test_duplicate_symbol_rejected(self, ledger_service: LedgerService):
        ledger_service.create_holding("owner-1", "main", "AAPL")

        with pytest.raises(ValidationError):
            ledger_service.create_holding("owner-1", "main", "aapl")

    def test_same_symbol_in_other_portfolio_allowed(self, ledger_service: LedgerService):
        ledger_service.create_holding("owner-1", "main", "AAPL")
        other = ledger_service.create_holding("owner-1", "ira", "AAPL")

        assert other.portfolio_id == "ira"
        assert len(ledger_service.list_holdings(owner_id="owner-1")) == 2

    def test_get_unknown_holding_raises(self, ledger_service: LedgerService):
        with pytest.raises(NotFoundError):
            ledger_service.get_holding("missing")


# =============================================================================
# TRANSACTION TESTS
# =============================================================================


class TestAddTransaction:
    """Tests for manual transactions."""

    def test_buy_reconciles_holding(self, ledger_service: LedgerService, holding_factory, transaction_factory):
        """
        GIVEN an empty AAPL holding
        WHEN I record buys of 10 @ 100 and 5 @ 120 and a sell of 8 @ 150
        THEN the holding shows 7 shares and about 746.67 invested
        """
        holding = holding_factory()

        transaction_factory(holding.holding_id, TransactionType.BUY, Decimal("10"), Decimal("100"), date(2024, 1, 2))
        transaction_factory(holding.holding_id, TransactionType.BUY, Decimal("5"), Decimal("120"), date(2024, 1, 3))
        transaction_factory(holding.holding_id, TransactionType.SELL, Decimal("8"), Decimal("150"), date(2024, 1, 4))

        stored = ledger_service.get_holding(holding.holding_id)
        assert stored.shares == Decimal("7")
        assert_decimal_equal(stored.total_invested, Decimal("746.67"))
        assert stored.transaction_count == 3

    def test_manual_transaction_fields(self, ledger_service: LedgerService, holding_factory, transaction_factory):
        holding = holding_factory()

        txn = transaction_factory(
            holding.holding_id, TransactionType.BUY, Decimal("2"), Decimal("50"), date(2024, 1, 2), fee=Decimal("1")
        )

        assert txn.purchase_method == PurchaseMethod.MANUAL
        assert txn.scheduled_date is None
        assert txn.gross_amount == Decimal("100")
        assert txn.currency == Currency.USD
        assert txn.sequence == 1

    def test_sequence_orders_same_day_entries(self, ledger_service: LedgerService, holding_factory, transaction_factory):
        holding = holding_factory()
        transaction_factory(holding.holding_id, TransactionType.BUY, Decimal("1"), Decimal("10"), date(2024, 1, 2))
        transaction_factory(holding.holding_id, TransactionType.SELL, Decimal("1"), Decimal("12"), date(2024, 1, 2))

        transactions = ledger_service.list_transactions(holding.holding_id)

        assert [t.sequence for t in transactions] == [1, 2]
        assert [t.txn_type for t in transactions] == [TransactionType.BUY, TransactionType.SELL]
        assert ledger_service.get_holding(holding.holding_id).shares == 0

    def test_future_date_becomes_today(self, holding_factory, transaction_factory, fixed_today):
        holding = holding_factory()

        txn = transaction_factory(holding.holding_id, TransactionType.BUY, Decimal("1"), Decimal("10"), date(2030, 1, 1))

        assert txn.trade_date == fixed_today

    def test_missing_date_becomes_today(self, holding_factory, transaction_factory, fixed_today):
        holding = holding_factory()

        txn = transaction_factory(holding.holding_id, TransactionType.BUY, Decimal("1"), Decimal("10"))

        assert txn.trade_date == fixed_today

    def test_weekend_date_rolls_back(self, holding_factory, transaction_factory):
        holding = holding_factory()

        txn = transaction_factory(holding.holding_id, TransactionType.BUY, Decimal("1"), Decimal("10"), date(2024, 1, 7))

        assert txn.trade_date == date(2024, 1, 5)

    def test_oversell_rejected(self, ledger_service: LedgerService, holding_factory, transaction_factory):
        holding = holding_factory()
        transaction_factory(holding.holding_id, TransactionType.BUY, Decimal("1"), Decimal("10"), date(2024, 1, 2))

        with pytest.raises(InsufficientSharesError):
            transaction_factory(holding.holding_id, TransactionType.SELL, Decimal("2"), Decimal("10"), date(2024, 1, 3))

        assert len(ledger_service.list_transactions(holding.holding_id)) == 1

    def test_oversell_checked_against_stored_shares(
        self, monkeypatch, ledger_service: LedgerService, holding_repo, holding_factory, transaction_factory
    ):
        """
        GIVEN a holding with 1 share whose earlier read still showed 5
        WHEN selling 3
        THEN the sell is rejected against the stored share count
        """
        holding = holding_factory()
        transaction_factory(holding.holding_id, TransactionType.BUY, Decimal("1"), Decimal("10"), date(2024, 1, 2))
        outdated = replace(holding_repo.get_by_id(holding.holding_id), shares=Decimal("5"))
        monkeypatch.setattr(holding_repo, "get_by_id", lambda holding_id: outdated)

        with pytest.raises(InsufficientSharesError):
            transaction_factory(holding.holding_id, TransactionType.SELL, Decimal("3"), Decimal("10"), date(2024, 1, 3))

        monkeypatch.undo()
        assert len(ledger_service.list_transactions(holding.holding_id)) == 1

    @pytest.mark.parametrize(
        "shares,price,fee",
        [
            (Decimal("0"), Decimal("10"), Decimal("0")),
            (Decimal("1"), Decimal("0"), Decimal("0")),
            (Decimal("1"), Decimal("10"), Decimal("-1")),
        ],
    )
    def test_invalid_values_rejected(self, ledger_service: LedgerService, holding_factory, shares, price, fee):
        holding = holding_factory()

        with pytest.raises(ValidationError):
            ledger_service.add_transaction(
                TransactionCreate(
                    holding_id=holding.holding_id,
                    txn_type=TransactionType.BUY,
                    shares=shares,
                    price=price,
                    fee=fee,
                )
            )

    def test_reconcile_holding_with_price(self, ledger_service: LedgerService, holding_factory, transaction_factory):
        holding = holding_factory()
        transaction_factory(holding.holding_id, TransactionType.BUY, Decimal("4"), Decimal("25"), date(2024, 1, 2))

        snapshot = ledger_service.reconcile_holding(holding.holding_id, current_price=Decimal("30"))

        assert snapshot.total_value == Decimal("120")
        assert snapshot.return_rate == Decimal("20")
        assert ledger_service.get_holding(holding.holding_id).current_price == Decimal("30")

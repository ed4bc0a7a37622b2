"""Ledger service for holdings and manual transactions."""

import logging
import uuid
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from autoinvest.core.exceptions import InsufficientSharesError, NotFoundError, ValidationError
from autoinvest.domain.models import (
    Currency,
    Holding,
    Market,
    PurchaseMethod,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from autoinvest.domain.views import HoldingSnapshot
from autoinvest.providers.trading_calendar import TradingCalendar, determine_market
from autoinvest.repositories.protocols import HoldingRepository, TransactionRepository
from autoinvest.repositories.sqlalchemy.database import atomic
from autoinvest.services.reconciliation import ReconciliationEngine

logger = logging.getLogger(__name__)


@dataclass
class TransactionCreate:
    """Input data for recording a manual transaction."""

    holding_id: str
    txn_type: TransactionType
    shares: Decimal
    price: Decimal
    trade_date: Optional[date] = None
    fee: Decimal = Decimal("0")
    tax: Decimal = Decimal("0")
    exchange_rate: Optional[Decimal] = None
    status: TransactionStatus = TransactionStatus.COMPLETED
    note: Optional[str] = None


class LedgerService:
    """
    Service for managing holdings and their transaction ledger.

    Transactions are the source of truth and are never edited; every new
    entry is followed by a reconciliation of the holding it belongs to.
    """

    def __init__(
        self,
        db: Session,
        holding_repo: HoldingRepository,
        transaction_repo: TransactionRepository,
        reconciliation: ReconciliationEngine,
        calendar: TradingCalendar,
    ):
        self._db = db
        self._holding_repo = holding_repo
        self._transaction_repo = transaction_repo
        self._reconciliation = reconciliation
        self._calendar = calendar

    def create_holding(
        self,
        owner_id: str,
        portfolio_id: str,
        symbol: str,
        market: Optional[Market] = None,
        currency: Optional[Currency] = None,
    ) -> Holding:
        """
        Create an empty holding.

        The market is inferred from currency/symbol when not given, and the
        currency defaults to the market's home currency.
        """
        symbol = (symbol or "").strip().upper()
        if not symbol:
            raise ValidationError("Symbol is required")

        currency_value = Currency(currency).value if currency else None
        resolved_market = determine_market(market, currency_value, symbol)
        if currency is None:
            currency = Currency.KRW if resolved_market == Market.KR else Currency.USD

        if self._holding_repo.get_by_symbol(owner_id, portfolio_id, symbol):
            raise ValidationError(f"Holding for '{symbol}' already exists in portfolio {portfolio_id}")

        holding = Holding(
            holding_id=str(uuid.uuid4()),
            owner_id=owner_id,
            portfolio_id=portfolio_id,
            symbol=symbol,
            market=resolved_market,
            currency=Currency(currency),
        )
        with atomic(self._db):
            created = self._holding_repo.create(holding)
        logger.info("Created holding %s (%s, %s)", created.holding_id, symbol, resolved_market.value)
        return created

    def get_holding(self, holding_id: str) -> Holding:
        """Get holding by ID."""
        holding = self._holding_repo.get_by_id(holding_id)
        if not holding:
            raise NotFoundError("Holding", holding_id)
        return holding

    def list_holdings(
        self,
        owner_id: Optional[str] = None,
        portfolio_id: Optional[str] = None,
    ) -> list[Holding]:
        """List holdings."""
        return self._holding_repo.list_holdings(owner_id=owner_id, portfolio_id=portfolio_id)

    def add_transaction(self, data: TransactionCreate) -> Transaction:
        """
        Record a manual buy or sell and reconcile the holding.

        A future trade date becomes the market's today; a non-trading date
        moves back to the previous trading day.
        """
        holding = self.get_holding(data.holding_id)
        trade_date = self._normalize_trade_date(data.trade_date, holding.market)

        with atomic(self._db):
            # Share count checked against the row as of this transaction
            holding = self._holding_repo.get_for_update(data.holding_id)
            if not holding:
                raise NotFoundError("Holding", data.holding_id)
            self._validate_transaction_create(data, holding)

            transaction = Transaction(
                txn_id=str(uuid.uuid4()),
                holding_id=holding.holding_id,
                txn_type=data.txn_type,
                symbol=holding.symbol,
                shares=data.shares,
                price=data.price,
                trade_date=trade_date,
                currency=holding.currency,
                gross_amount=data.shares * data.price,
                fee=data.fee,
                tax=data.tax,
                purchase_method=PurchaseMethod.MANUAL,
                status=data.status,
                exchange_rate=data.exchange_rate,
                note=data.note,
                sequence=self._transaction_repo.next_sequence(holding.holding_id),
            )
            created = self._transaction_repo.create(transaction)
            self._reconciliation.reconcile(holding.holding_id)

        logger.info(
            "Recorded manual %s of %s %s @ %s on %s",
            created.txn_type.value,
            created.shares,
            created.symbol,
            created.price,
            created.trade_date,
        )
        return created

    def list_transactions(self, holding_id: str) -> list[Transaction]:
        """List a holding's transactions in fold order."""
        self.get_holding(holding_id)
        return self._transaction_repo.list_by_holding(holding_id)

    def reconcile_holding(
        self,
        holding_id: str,
        current_price: Optional[Decimal] = None,
    ) -> HoldingSnapshot:
        """Recompute a holding's snapshot (optionally at a new price) and commit it."""
        with atomic(self._db):
            if current_price is not None:
                return self._reconciliation.mark_to_market(holding_id, current_price)
            return self._reconciliation.reconcile(holding_id)

    def _normalize_trade_date(self, trade_date: Optional[date], market: Market) -> date:
        today = self._calendar.today(market)
        if trade_date is None or trade_date > today:
            trade_date = today
        return self._calendar.previous_trading_day(trade_date, market)

    @staticmethod
    def _validate_transaction_create(data: TransactionCreate, holding: Holding) -> None:
        """Validate transaction creation input."""
        txn_type = TransactionType(data.txn_type)
        if data.shares is None or data.shares <= 0:
            raise ValidationError(f"{txn_type.value} requires shares > 0")
        if data.price is None or data.price <= 0:
            raise ValidationError(f"{txn_type.value} requires price > 0")
        if data.fee < 0 or data.tax < 0:
            raise ValidationError("Fee and tax cannot be negative")

        if txn_type == TransactionType.SELL and data.shares > holding.shares:
            raise InsufficientSharesError(holding.symbol, str(data.shares), str(holding.shares))

"""Cash balance ledger."""

import logging
import uuid
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from autoinvest.core.exceptions import InsufficientCashError, ValidationError
from autoinvest.domain.models import CashBalance, CashMovement, CashMovementKind, Currency
from autoinvest.repositories.protocols import BalanceRepository
from autoinvest.repositories.sqlalchemy.database import atomic

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class BalanceService:
    """
    Service for per-portfolio, per-currency cash balances.

    Balances never go below zero. ``deposit`` and ``withdraw`` are complete
    units of work; ``debit_for_buy`` and ``credit_refund`` only flush and
    run inside the caller's atomic unit.
    """

    def __init__(self, db: Session, balance_repo: BalanceRepository):
        self._db = db
        self._balance_repo = balance_repo

    def get_balance(self, owner_id: str, portfolio_id: str, currency: Currency) -> CashBalance:
        """Return the balance, or an unsaved zero balance if none exists yet."""
        currency = Currency(currency)
        balance = self._balance_repo.get(owner_id, portfolio_id, currency)
        return balance or CashBalance(owner_id=owner_id, portfolio_id=portfolio_id, currency=currency)

    def get_all_balances(self, owner_id: str, portfolio_id: str) -> list[CashBalance]:
        """Return one balance per supported currency."""
        stored = {b.currency: b for b in self._balance_repo.list_balances(owner_id, portfolio_id)}
        return [
            stored.get(currency) or CashBalance(owner_id=owner_id, portfolio_id=portfolio_id, currency=currency)
            for currency in Currency
        ]

    def deposit(
        self,
        owner_id: str,
        portfolio_id: str,
        currency: Currency,
        amount: Decimal,
        note: Optional[str] = None,
    ) -> CashBalance:
        """Add cash to a balance."""
        self._require_positive(amount)
        with atomic(self._db):
            balance = self._apply(
                owner_id, portfolio_id, currency, amount, CashMovementKind.DEPOSIT, note=note
            )
        logger.info("Deposited %s %s into %s/%s", amount, balance.currency.value, owner_id, portfolio_id)
        return balance

    def withdraw(
        self,
        owner_id: str,
        portfolio_id: str,
        currency: Currency,
        amount: Decimal,
        note: Optional[str] = None,
    ) -> CashBalance:
        """Remove cash from a balance; raises InsufficientCashError below zero."""
        self._require_positive(amount)
        with atomic(self._db):
            balance = self._apply(
                owner_id, portfolio_id, currency, -amount, CashMovementKind.WITHDRAWAL, note=note
            )
        logger.info("Withdrew %s %s from %s/%s", amount, balance.currency.value, owner_id, portfolio_id)
        return balance

    def list_movements(
        self,
        owner_id: str,
        portfolio_id: str,
        currency: Optional[Currency] = None,
    ) -> list[CashMovement]:
        """List the movement history of a portfolio."""
        return self._balance_repo.list_movements(owner_id, portfolio_id, currency)

    def debit_for_buy(
        self,
        owner_id: str,
        portfolio_id: str,
        currency: Currency,
        amount: Decimal,
        reference: Optional[str] = None,
        note: Optional[str] = None,
    ) -> tuple[Decimal, Decimal]:
        """
        Debit an auto buy inside the caller's transaction.

        The balance row is re-read and locked here, never taken from an
        earlier read. Nothing is written when funds are short.

        Returns:
            (balance_before, balance_after)
        """
        balance = self._apply(
            owner_id,
            portfolio_id,
            currency,
            -amount,
            CashMovementKind.AUTO_BUY,
            reference=reference,
            note=note,
        )
        return balance.balance + amount, balance.balance

    def credit_refund(
        self,
        owner_id: str,
        portfolio_id: str,
        currency: Currency,
        amount: Decimal,
        reference: Optional[str] = None,
        note: Optional[str] = None,
    ) -> Decimal:
        """Credit back the cost of a removed auto buy; returns the new balance."""
        balance = self._apply(
            owner_id,
            portfolio_id,
            currency,
            amount,
            CashMovementKind.REFUND,
            reference=reference,
            note=note,
        )
        return balance.balance

    def _apply(
        self,
        owner_id: str,
        portfolio_id: str,
        currency: Currency,
        delta: Decimal,
        kind: CashMovementKind,
        reference: Optional[str] = None,
        note: Optional[str] = None,
    ) -> CashBalance:
        currency = Currency(currency)
        current = self._balance_repo.get_for_update(owner_id, portfolio_id, currency)
        available = current.balance if current else ZERO

        new_balance = available + delta
        if new_balance < ZERO:
            raise InsufficientCashError(currency.value, -delta, available)

        saved = self._balance_repo.save(
            CashBalance(
                owner_id=owner_id,
                portfolio_id=portfolio_id,
                currency=currency,
                balance=new_balance,
                version=current.version if current else None,
            )
        )
        self._balance_repo.add_movement(
            CashMovement(
                movement_id=str(uuid.uuid4()),
                owner_id=owner_id,
                portfolio_id=portfolio_id,
                currency=currency,
                kind=kind,
                amount=abs(delta),
                balance_after=new_balance,
                reference=reference,
                note=note,
            )
        )
        return saved

    @staticmethod
    def _require_positive(amount: Decimal) -> None:
        if amount is None or amount <= ZERO:
            raise ValidationError("Amount must be greater than zero")

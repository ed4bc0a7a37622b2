"""Transaction domain model."""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from autoinvest.domain.models.enums import (
    Currency,
    PurchaseMethod,
    TransactionStatus,
    TransactionType,
)


@dataclass
class Transaction:
    """
    Ledger transaction entry (source of truth for a holding).

    Immutable once written: a mistake is corrected by writing another
    transaction. ``sequence`` orders same-day entries within a holding.
    Auto-generated buys carry ``scheduled_date`` and ``schedule_id``.
    """

    txn_id: str
    holding_id: str
    txn_type: TransactionType
    symbol: str
    shares: Decimal
    price: Decimal
    trade_date: date
    currency: Currency = Currency.USD
    gross_amount: Decimal = field(default_factory=lambda: Decimal("0"))
    fee: Decimal = field(default_factory=lambda: Decimal("0"))
    tax: Decimal = field(default_factory=lambda: Decimal("0"))
    purchase_method: PurchaseMethod = PurchaseMethod.MANUAL
    status: TransactionStatus = TransactionStatus.COMPLETED
    scheduled_date: Optional[date] = None
    schedule_id: Optional[str] = None
    exchange_rate: Optional[Decimal] = None
    note: Optional[str] = None
    sequence: int = 0
    executed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if isinstance(self.txn_type, str):
            self.txn_type = TransactionType(self.txn_type)
        if isinstance(self.currency, str):
            self.currency = Currency(self.currency)
        if isinstance(self.purchase_method, str):
            self.purchase_method = PurchaseMethod(self.purchase_method)
        if isinstance(self.status, str):
            self.status = TransactionStatus(self.status)

    @property
    def total_cost(self) -> Decimal:
        """Cash paid for a buy including fee and tax."""
        return self.gross_amount + self.fee + self.tax

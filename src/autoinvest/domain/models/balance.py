"""Cash balance models."""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Optional

from autoinvest.domain.models.enums import CashMovementKind, Currency


@dataclass
class CashBalance:
    """Running cash balance per owner, portfolio and currency. Never negative."""

    owner_id: str
    portfolio_id: str
    currency: Currency
    balance: Decimal = field(default_factory=lambda: Decimal("0"))
    version: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if isinstance(self.currency, str):
            self.currency = Currency(self.currency)


@dataclass
class CashMovement:
    """Append-only record of one change to a cash balance."""

    movement_id: str
    owner_id: str
    portfolio_id: str
    currency: Currency
    kind: CashMovementKind
    amount: Decimal
    balance_after: Decimal
    reference: Optional[str] = None
    note: Optional[str] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if isinstance(self.currency, str):
            self.currency = Currency(self.currency)
        if isinstance(self.kind, str):
            self.kind = CashMovementKind(self.kind)

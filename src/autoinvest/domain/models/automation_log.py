"""Automation log entry model."""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from autoinvest.domain.models.enums import AutomationStatus


@dataclass
class AutomationLogEntry:
    """
    Persisted record of one sweep decision.

    Write-once audit data. The engine never reads it back; the API lists it
    for review.
    """

    log_id: str
    run_id: str
    triggered_at: datetime
    status: AutomationStatus
    owner_id: Optional[str] = None
    portfolio_id: Optional[str] = None
    holding_id: Optional[str] = None
    symbol: Optional[str] = None
    scheduled_date: Optional[date] = None
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    message: Optional[str] = None
    shares: Optional[Decimal] = None
    price: Optional[Decimal] = None
    balance_before: Optional[Decimal] = None
    balance_after: Optional[Decimal] = None
    created_at: Optional[datetime] = None

    def __post_init__(self) -> None:
        if isinstance(self.status, str):
            self.status = AutomationStatus(self.status)

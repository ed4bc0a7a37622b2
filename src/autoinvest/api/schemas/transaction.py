"""Pydantic schemas for transaction endpoints."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from autoinvest.domain.models.enums import (
    Currency,
    PurchaseMethod,
    TransactionStatus,
    TransactionType,
)


class TransactionCreateRequest(BaseModel):
    """Request schema for recording a manual transaction."""

    txn_type: TransactionType = Field(..., description="buy or sell")
    shares: Decimal = Field(..., gt=0)
    price: Decimal = Field(..., gt=0)
    trade_date: Optional[date] = Field(
        default=None,
        description="Trading day; future dates become today, non-trading days roll back",
    )
    fee: Decimal = Field(default=Decimal("0"), ge=0)
    tax: Decimal = Field(default=Decimal("0"), ge=0)
    exchange_rate: Optional[Decimal] = Field(default=None, gt=0)
    status: TransactionStatus = TransactionStatus.COMPLETED
    note: Optional[str] = Field(default=None, max_length=500)


class TransactionResponse(BaseModel):
    """Response schema for a single transaction."""

    model_config = {"from_attributes": True}

    txn_id: str
    holding_id: str
    txn_type: TransactionType
    symbol: str
    shares: Decimal
    price: Decimal
    trade_date: date
    currency: Currency
    gross_amount: Decimal
    fee: Decimal
    tax: Decimal
    purchase_method: PurchaseMethod
    status: TransactionStatus
    scheduled_date: Optional[date] = None
    schedule_id: Optional[str] = None
    exchange_rate: Optional[Decimal] = None
    note: Optional[str] = None
    sequence: int
    executed_at: Optional[datetime] = None


class TransactionListResponse(BaseModel):
    """Response schema for listing transactions."""

    transactions: list[TransactionResponse]
    count: int

"""Pydantic schemas for cash balance endpoints."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from autoinvest.domain.models.enums import CashMovementKind, Currency


class CashOperationRequest(BaseModel):
    """Request schema for a deposit or withdrawal."""

    currency: Currency
    amount: Decimal = Field(..., gt=0)
    note: Optional[str] = Field(default=None, max_length=500)


class BalanceResponse(BaseModel):
    """Response schema for one currency balance."""

    model_config = {"from_attributes": True}

    owner_id: str
    portfolio_id: str
    currency: Currency
    balance: Decimal
    updated_at: Optional[datetime] = None


class BalanceListResponse(BaseModel):
    """Response schema for all balances of a portfolio."""

    balances: list[BalanceResponse]


class CashMovementResponse(BaseModel):
    """Response schema for one movement."""

    model_config = {"from_attributes": True}

    movement_id: str
    currency: Currency
    kind: CashMovementKind
    amount: Decimal
    balance_after: Decimal
    reference: Optional[str] = None
    note: Optional[str] = None
    created_at: Optional[datetime] = None


class CashMovementListResponse(BaseModel):
    """Response schema for listing movements."""

    movements: list[CashMovementResponse]
    count: int

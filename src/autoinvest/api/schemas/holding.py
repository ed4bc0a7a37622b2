"""Pydantic schemas for holding endpoints."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from autoinvest.domain.models.enums import Currency, Frequency, Market


class HoldingCreateRequest(BaseModel):
    """Request schema for creating a holding."""

    owner_id: str = Field(..., min_length=1, max_length=64)
    portfolio_id: str = Field(default="main", min_length=1, max_length=64)
    symbol: str = Field(..., min_length=1, max_length=20)
    market: Optional[Market] = Field(default=None, description="Inferred from currency/symbol when omitted")
    currency: Optional[Currency] = Field(default=None, description="Defaults to the market's currency")

    @field_validator("symbol")
    @classmethod
    def uppercase_symbol(cls, v: str) -> str:
        return v.strip().upper()


class AutoInvestConfigResponse(BaseModel):
    """Embedded auto-invest settings of a holding."""

    model_config = {"from_attributes": True}

    is_active: bool
    current_schedule_id: Optional[str] = None
    frequency: Optional[Frequency] = None
    amount: Optional[Decimal] = None
    start_date: Optional[date] = None
    last_executed: Optional[date] = None
    last_updated: Optional[date] = None


class HoldingResponse(BaseModel):
    """Response schema for a single holding."""

    model_config = {"from_attributes": True}

    holding_id: str
    owner_id: str
    portfolio_id: str
    symbol: str
    market: Market
    currency: Currency
    shares: Decimal
    average_cost: Decimal
    total_invested: Decimal
    current_price: Decimal
    total_value: Decimal
    profit_loss: Decimal
    return_rate: Decimal
    transaction_count: int
    first_transaction_date: Optional[date] = None
    last_transaction_date: Optional[date] = None
    auto_invest: Optional[AutoInvestConfigResponse] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class HoldingListResponse(BaseModel):
    """Response schema for listing holdings."""

    holdings: list[HoldingResponse]
    count: int


class ReconcileRequest(BaseModel):
    """Optional live price to revalue the holding at."""

    current_price: Optional[Decimal] = Field(default=None, gt=0)


class HoldingSnapshotResponse(BaseModel):
    """Response schema for a reconciled snapshot."""

    model_config = {"from_attributes": True}

    holding_id: str
    shares: Decimal
    average_cost: Decimal
    total_invested: Decimal
    current_price: Decimal
    total_value: Decimal
    profit_loss: Decimal
    return_rate: Decimal
    transaction_count: int
    first_transaction_date: Optional[date] = None
    last_transaction_date: Optional[date] = None
    written: bool

"""Pydantic schemas for auto-invest schedules and sweeps."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field

from autoinvest.domain.models.enums import (
    AutomationStatus,
    Currency,
    Frequency,
    ScheduleAction,
)
from autoinvest.api.schemas.holding import HoldingSnapshotResponse


class ScheduleCreateRequest(BaseModel):
    """Request schema for starting a new schedule version."""

    frequency: Frequency
    amount: Decimal = Field(..., gt=0)
    effective_from: Optional[date] = Field(default=None, description="Defaults to market today")
    note: str = Field(default="", max_length=500)
    actor: Optional[str] = Field(default=None, max_length=64)
    regenerate: bool = Field(default=False, description="Rebuild auto history from effective_from")
    price_per_share: Optional[Decimal] = Field(default=None, gt=0)


class ScheduleResponse(BaseModel):
    """Response schema for one schedule version."""

    model_config = {"from_attributes": True}

    schedule_id: str
    holding_id: str
    frequency: Frequency
    amount: Decimal
    currency: Currency
    effective_from: date
    effective_to: Optional[date] = None
    note: str
    created_by: Optional[str] = None
    created_at: Optional[datetime] = None


class ScheduleListResponse(BaseModel):
    """Response schema for a holding's schedule versions."""

    schedules: list[ScheduleResponse]
    count: int


class ScheduleCloseResponse(BaseModel):
    """Response schema for closing a schedule."""

    model_config = {"from_attributes": True}

    schedule_id: str
    effective_to: date
    removed: int
    snapshot: Optional[HoldingSnapshotResponse] = None


class ReapplyRequest(BaseModel):
    """Request schema for reapplying a schedule from a date."""

    schedule_id: str
    effective_from: date
    price_per_share: Optional[Decimal] = Field(default=None, gt=0)
    actor: Optional[str] = Field(default=None, max_length=64)
    reason: Optional[str] = Field(default=None, max_length=500)


class ReapplyResponse(BaseModel):
    """Response schema for a reapply."""

    model_config = {"from_attributes": True}

    new_schedule_id: str
    removed: int
    created: int
    skipped_dates: list[date]
    snapshot: Optional[HoldingSnapshotResponse] = None


class ScheduleRevisionResponse(BaseModel):
    """Response schema for one audit entry."""

    model_config = {"from_attributes": True}

    rev_id: str
    schedule_id: str
    action: ScheduleAction
    actor: Optional[str] = None
    reason: Optional[str] = None
    before_json: Optional[str] = None
    after_json: Optional[str] = None
    created_at: Optional[datetime] = None


class PreviewDatesResponse(BaseModel):
    """Planned execution dates."""

    dates: list[date]
    count: int


class SweepRequest(BaseModel):
    """Request schema for running a sweep."""

    as_of: Optional[date] = None
    dry_run: bool = False


class SweepLogResponse(BaseModel):
    """One sweep decision."""

    model_config = {"from_attributes": True}

    status: AutomationStatus
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
    transaction_id: Optional[str] = None


class SweepSummaryResponse(BaseModel):
    """Response schema for a sweep."""

    model_config = {"from_attributes": True}

    run_id: str
    triggered_at: datetime
    as_of: Optional[date] = None
    dry_run: bool
    processed: int
    success_count: int
    skipped_count: int
    error_count: int
    preview_count: int
    logs: list[SweepLogResponse]


class AutomationLogResponse(BaseModel):
    """Response schema for a persisted sweep decision."""

    model_config = {"from_attributes": True}

    log_id: str
    run_id: str
    triggered_at: datetime
    status: AutomationStatus
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


class AutomationLogListResponse(BaseModel):
    """Response schema for listing persisted sweep decisions."""

    logs: list[AutomationLogResponse]
    count: int

"""Auto-invest schedule and sweep endpoints."""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query

from autoinvest.api.deps import get_automation_log_repo, get_executor, get_schedule_service
from autoinvest.api.schemas import (
    ScheduleCreateRequest,
    ScheduleResponse,
    ScheduleListResponse,
    ScheduleCloseResponse,
    ReapplyRequest,
    ReapplyResponse,
    ScheduleRevisionResponse,
    PreviewDatesResponse,
    SweepRequest,
    SweepSummaryResponse,
    AutomationLogResponse,
    AutomationLogListResponse,
)
from autoinvest.domain.models import Frequency
from autoinvest.repositories.sqlalchemy import SqlAlchemyAutomationLogRepository
from autoinvest.services import AutoInvestExecutor, ScheduleService

router = APIRouter(prefix="/holdings/{holding_id}/auto-invest", tags=["auto-invest"])
sweep_router = APIRouter(prefix="/auto-invest", tags=["auto-invest"])


@sweep_router.post("/sweep", response_model=SweepSummaryResponse)
def run_sweep(
    request: Optional[SweepRequest] = None,
    executor: AutoInvestExecutor = Depends(get_executor),
) -> SweepSummaryResponse:
    """Execute (or preview) every due auto-invest buy."""
    request = request or SweepRequest()
    summary = executor.run_sweep(as_of=request.as_of, dry_run=request.dry_run)
    return SweepSummaryResponse.model_validate(summary)


@sweep_router.get("/logs", response_model=AutomationLogListResponse)
def list_automation_logs(
    run_id: Optional[str] = Query(None, description="Entries of one sweep, in decision order"),
    holding_id: Optional[str] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    repo: SqlAlchemyAutomationLogRepository = Depends(get_automation_log_repo),
) -> AutomationLogListResponse:
    """List persisted sweep decisions, newest first unless filtered by run."""
    if run_id:
        logs = repo.list_by_run(run_id)
    else:
        logs = repo.list_recent(limit=limit, holding_id=holding_id)
    return AutomationLogListResponse(
        logs=[AutomationLogResponse.model_validate(log) for log in logs],
        count=len(logs),
    )


@router.get("", response_model=ScheduleListResponse)
def list_schedules(
    holding_id: str,
    service: ScheduleService = Depends(get_schedule_service),
) -> ScheduleListResponse:
    """List a holding's schedule versions, newest first."""
    schedules = service.list_schedules(holding_id)
    return ScheduleListResponse(
        schedules=[ScheduleResponse.model_validate(s) for s in schedules],
        count=len(schedules),
    )


@router.post("", response_model=ScheduleListResponse, status_code=201)
def create_schedule(
    holding_id: str,
    request: ScheduleCreateRequest,
    service: ScheduleService = Depends(get_schedule_service),
) -> ScheduleListResponse:
    """Start a new schedule version, closing the open one."""
    schedules = service.create_schedule(
        holding_id,
        frequency=request.frequency,
        amount=request.amount,
        effective_from=request.effective_from,
        note=request.note,
        actor=request.actor,
        regenerate=request.regenerate,
        price_override=request.price_per_share,
    )
    return ScheduleListResponse(
        schedules=[ScheduleResponse.model_validate(s) for s in schedules],
        count=len(schedules),
    )


@router.post("/reapply", response_model=ReapplyResponse)
def reapply_schedule(
    holding_id: str,
    request: ReapplyRequest,
    service: ScheduleService = Depends(get_schedule_service),
) -> ReapplyResponse:
    """Rewrite auto history from a date using an existing schedule's parameters."""
    result = service.reapply_schedule(
        holding_id,
        request.schedule_id,
        request.effective_from,
        price_override=request.price_per_share,
        actor=request.actor,
        reason=request.reason,
    )
    return ReapplyResponse.model_validate(result)


@router.get("/preview", response_model=PreviewDatesResponse)
def preview_dates(
    holding_id: str,
    start: date = Query(...),
    frequency: Frequency = Query(...),
    end: Optional[date] = Query(None, description="Defaults to today"),
    service: ScheduleService = Depends(get_schedule_service),
) -> PreviewDatesResponse:
    """List the trading dates a schedule would execute on."""
    dates = service.preview_dates(holding_id, start, frequency, end=end)
    return PreviewDatesResponse(dates=dates, count=len(dates))


@router.get("/revisions", response_model=list[ScheduleRevisionResponse])
def list_revisions(
    holding_id: str,
    service: ScheduleService = Depends(get_schedule_service),
) -> list[ScheduleRevisionResponse]:
    """Audit trail of the holding's schedule changes."""
    return [ScheduleRevisionResponse.model_validate(r) for r in service.list_revisions(holding_id)]


@router.get("/{schedule_id}", response_model=ScheduleResponse)
def get_schedule(
    holding_id: str,
    schedule_id: str,
    service: ScheduleService = Depends(get_schedule_service),
) -> ScheduleResponse:
    """Get one schedule version."""
    return ScheduleResponse.model_validate(service.get_schedule(holding_id, schedule_id))


@router.delete("/{schedule_id}", response_model=ScheduleCloseResponse)
def close_schedule(
    holding_id: str,
    schedule_id: str,
    effective_to: Optional[date] = Query(None, description="Last active day; defaults to today"),
    purge_transactions: bool = Query(False, description="Also remove the version's auto buys"),
    actor: Optional[str] = Query(None),
    reason: Optional[str] = Query(None),
    service: ScheduleService = Depends(get_schedule_service),
) -> ScheduleCloseResponse:
    """Close a schedule version."""
    result = service.close_schedule(
        holding_id,
        schedule_id,
        effective_to=effective_to,
        actor=actor,
        reason=reason,
        purge_transactions=purge_transactions,
    )
    return ScheduleCloseResponse.model_validate(result)

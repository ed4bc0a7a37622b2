"""Pydantic schemas for API request/response."""

from autoinvest.api.schemas.holding import (
    HoldingCreateRequest,
    AutoInvestConfigResponse,
    HoldingResponse,
    HoldingListResponse,
    ReconcileRequest,
    HoldingSnapshotResponse,
)
from autoinvest.api.schemas.transaction import (
    TransactionCreateRequest,
    TransactionResponse,
    TransactionListResponse,
)
from autoinvest.api.schemas.auto_invest import (
    ScheduleCreateRequest,
    ScheduleResponse,
    ScheduleListResponse,
    ScheduleCloseResponse,
    ReapplyRequest,
    ReapplyResponse,
    ScheduleRevisionResponse,
    PreviewDatesResponse,
    SweepRequest,
    SweepLogResponse,
    SweepSummaryResponse,
    AutomationLogResponse,
    AutomationLogListResponse,
)
from autoinvest.api.schemas.balance import (
    CashOperationRequest,
    BalanceResponse,
    BalanceListResponse,
    CashMovementResponse,
    CashMovementListResponse,
)

__all__ = [
    "HoldingCreateRequest",
    "AutoInvestConfigResponse",
    "HoldingResponse",
    "HoldingListResponse",
    "ReconcileRequest",
    "HoldingSnapshotResponse",
    "TransactionCreateRequest",
    "TransactionResponse",
    "TransactionListResponse",
    "ScheduleCreateRequest",
    "ScheduleResponse",
    "ScheduleListResponse",
    "ScheduleCloseResponse",
    "ReapplyRequest",
    "ReapplyResponse",
    "ScheduleRevisionResponse",
    "PreviewDatesResponse",
    "SweepRequest",
    "SweepLogResponse",
    "SweepSummaryResponse",
    "AutomationLogResponse",
    "AutomationLogListResponse",
    "CashOperationRequest",
    "BalanceResponse",
    "BalanceListResponse",
    "CashMovementResponse",
    "CashMovementListResponse",
]

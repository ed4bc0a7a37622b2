"""Holding and manual transaction endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from autoinvest.api.deps import get_ledger_service
from autoinvest.api.schemas import (
    HoldingCreateRequest,
    HoldingResponse,
    HoldingListResponse,
    ReconcileRequest,
    HoldingSnapshotResponse,
    TransactionCreateRequest,
    TransactionResponse,
    TransactionListResponse,
)
from autoinvest.services import LedgerService, TransactionCreate

router = APIRouter(prefix="/holdings", tags=["holdings"])


@router.post("", response_model=HoldingResponse, status_code=201)
def create_holding(
    request: HoldingCreateRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> HoldingResponse:
    """Create an empty holding."""
    holding = service.create_holding(
        owner_id=request.owner_id,
        portfolio_id=request.portfolio_id,
        symbol=request.symbol,
        market=request.market,
        currency=request.currency,
    )
    return HoldingResponse.model_validate(holding)


@router.get("", response_model=HoldingListResponse)
def list_holdings(
    owner_id: Optional[str] = Query(None),
    portfolio_id: Optional[str] = Query(None),
    service: LedgerService = Depends(get_ledger_service),
) -> HoldingListResponse:
    """List holdings, optionally for one owner/portfolio."""
    holdings = service.list_holdings(owner_id=owner_id, portfolio_id=portfolio_id)
    return HoldingListResponse(
        holdings=[HoldingResponse.model_validate(h) for h in holdings],
        count=len(holdings),
    )


@router.get("/{holding_id}", response_model=HoldingResponse)
def get_holding(
    holding_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> HoldingResponse:
    """Get a holding by ID."""
    return HoldingResponse.model_validate(service.get_holding(holding_id))


@router.post("/{holding_id}/reconcile", response_model=HoldingSnapshotResponse)
def reconcile_holding(
    holding_id: str,
    request: Optional[ReconcileRequest] = None,
    service: LedgerService = Depends(get_ledger_service),
) -> HoldingSnapshotResponse:
    """Rebuild the holding's figures from its transaction log."""
    current_price = request.current_price if request else None
    snapshot = service.reconcile_holding(holding_id, current_price=current_price)
    return HoldingSnapshotResponse.model_validate(snapshot)


@router.post("/{holding_id}/transactions", response_model=TransactionResponse, status_code=201)
def create_transaction(
    holding_id: str,
    request: TransactionCreateRequest,
    service: LedgerService = Depends(get_ledger_service),
) -> TransactionResponse:
    """Record a manual buy or sell."""
    transaction = service.add_transaction(
        TransactionCreate(
            holding_id=holding_id,
            txn_type=request.txn_type,
            shares=request.shares,
            price=request.price,
            trade_date=request.trade_date,
            fee=request.fee,
            tax=request.tax,
            exchange_rate=request.exchange_rate,
            status=request.status,
            note=request.note,
        )
    )
    return TransactionResponse.model_validate(transaction)


@router.get("/{holding_id}/transactions", response_model=TransactionListResponse)
def list_transactions(
    holding_id: str,
    service: LedgerService = Depends(get_ledger_service),
) -> TransactionListResponse:
    """List a holding's transactions in ledger order."""
    transactions = service.list_transactions(holding_id)
    return TransactionListResponse(
        transactions=[TransactionResponse.model_validate(t) for t in transactions],
        count=len(transactions),
    )

"""Cash balance endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from autoinvest.api.deps import get_balance_service
from autoinvest.api.schemas import (
    CashOperationRequest,
    BalanceResponse,
    BalanceListResponse,
    CashMovementResponse,
    CashMovementListResponse,
)
from autoinvest.domain.models import Currency
from autoinvest.services import BalanceService

router = APIRouter(prefix="/balances", tags=["balances"])


@router.get("/{owner_id}/{portfolio_id}", response_model=BalanceListResponse)
def get_balances(
    owner_id: str,
    portfolio_id: str,
    service: BalanceService = Depends(get_balance_service),
) -> BalanceListResponse:
    """Get the portfolio's balance in every currency."""
    balances = service.get_all_balances(owner_id, portfolio_id)
    return BalanceListResponse(balances=[BalanceResponse.model_validate(b) for b in balances])


@router.post("/{owner_id}/{portfolio_id}/deposit", response_model=BalanceResponse)
def deposit(
    owner_id: str,
    portfolio_id: str,
    request: CashOperationRequest,
    service: BalanceService = Depends(get_balance_service),
) -> BalanceResponse:
    """Add cash."""
    balance = service.deposit(owner_id, portfolio_id, request.currency, request.amount, note=request.note)
    return BalanceResponse.model_validate(balance)


@router.post("/{owner_id}/{portfolio_id}/withdraw", response_model=BalanceResponse)
def withdraw(
    owner_id: str,
    portfolio_id: str,
    request: CashOperationRequest,
    service: BalanceService = Depends(get_balance_service),
) -> BalanceResponse:
    """Remove cash; fails when the balance would go negative."""
    balance = service.withdraw(owner_id, portfolio_id, request.currency, request.amount, note=request.note)
    return BalanceResponse.model_validate(balance)


@router.get("/{owner_id}/{portfolio_id}/movements", response_model=CashMovementListResponse)
def list_movements(
    owner_id: str,
    portfolio_id: str,
    currency: Optional[Currency] = Query(None),
    service: BalanceService = Depends(get_balance_service),
) -> CashMovementListResponse:
    """List cash movements, oldest first."""
    movements = service.list_movements(owner_id, portfolio_id, currency)
    return CashMovementListResponse(
        movements=[CashMovementResponse.model_validate(m) for m in movements],
        count=len(movements),
    )

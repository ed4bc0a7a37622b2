"""Business logic services."""

from autoinvest.services.due_dates import resolve_next_due, scheduled_trading_dates
from autoinvest.services.reconciliation import (
    ReconciliationEngine,
    apply_transaction,
    fold_transactions,
    apply_buy_to_holding,
)
from autoinvest.services.market_data_service import MarketDataService
from autoinvest.services.balance_service import BalanceService
from autoinvest.services.ledger_service import LedgerService, TransactionCreate
from autoinvest.services.schedule_service import ScheduleService
from autoinvest.services.execution_engine import AutoInvestExecutor

__all__ = [
    "resolve_next_due",
    "scheduled_trading_dates",
    "ReconciliationEngine",
    "apply_transaction",
    "fold_transactions",
    "apply_buy_to_holding",
    "MarketDataService",
    "BalanceService",
    "LedgerService",
    "TransactionCreate",
    "ScheduleService",
    "AutoInvestExecutor",
]

"""Ledger reconciliation: derive a holding's snapshot from its transactions."""

import logging
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal
from typing import Iterable, Optional

from autoinvest.config.settings import Settings, get_settings
from autoinvest.core.exceptions import NotFoundError
from autoinvest.domain.models import Holding, Transaction, TransactionType
from autoinvest.domain.views import HoldingSnapshot
from autoinvest.repositories.protocols import HoldingRepository, TransactionRepository

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
# Matches the storage scale of the snapshot columns
SNAPSHOT_QUANTUM = Decimal("0.00000001")


@dataclass(frozen=True)
class LedgerState:
    """Running totals of the fold."""

    shares: Decimal = ZERO
    total_invested: Decimal = ZERO
    average_cost: Decimal = ZERO
    last_trade_price: Optional[Decimal] = None
    transaction_count: int = 0
    first_transaction_date: Optional[date] = None
    last_transaction_date: Optional[date] = None

    @classmethod
    def from_holding(cls, holding: Holding) -> "LedgerState":
        return cls(
            shares=holding.shares,
            total_invested=holding.total_invested,
            average_cost=holding.average_cost,
            last_trade_price=holding.current_price if holding.current_price > ZERO else None,
            transaction_count=holding.transaction_count,
            first_transaction_date=holding.first_transaction_date,
            last_transaction_date=holding.last_transaction_date,
        )


def apply_transaction(state: LedgerState, txn: Transaction) -> LedgerState:
    """
    Apply one transaction to the running totals.

    Buys add ``shares * price`` to invested capital and re-average.
    Sells remove ``average_cost * sold`` from invested capital and leave the
    average untouched; both figures floor at zero and the average resets
    once no shares remain.
    """
    shares = state.shares
    invested = state.total_invested
    average = state.average_cost

    if txn.txn_type == TransactionType.BUY:
        invested += txn.shares * txn.price
        shares += txn.shares
        average = invested / shares if shares > ZERO else ZERO

    elif txn.txn_type == TransactionType.SELL:
        invested = max(ZERO, invested - average * txn.shares)
        shares = max(ZERO, shares - txn.shares)
        if shares == ZERO:
            average = ZERO
            invested = ZERO

    first = state.first_transaction_date
    last = state.last_transaction_date
    return replace(
        state,
        shares=shares,
        total_invested=invested,
        average_cost=average,
        last_trade_price=txn.price if txn.price > ZERO else state.last_trade_price,
        transaction_count=state.transaction_count + 1,
        first_transaction_date=txn.trade_date if first is None or txn.trade_date < first else first,
        last_transaction_date=txn.trade_date if last is None or txn.trade_date > last else last,
    )


def fold_transactions(transactions: Iterable[Transaction]) -> LedgerState:
    """Fold an ordered transaction log from an empty position."""
    state = LedgerState()
    for txn in transactions:
        state = apply_transaction(state, txn)
    return state


def build_snapshot(holding_id: str, state: LedgerState, current_price: Decimal) -> HoldingSnapshot:
    """Derive valuation figures from folded totals."""
    total_value = state.shares * current_price
    profit_loss = total_value - state.total_invested
    if state.total_invested > ZERO:
        return_rate = profit_loss / state.total_invested * HUNDRED
    else:
        return_rate = ZERO

    return HoldingSnapshot(
        holding_id=holding_id,
        shares=state.shares.quantize(SNAPSHOT_QUANTUM),
        average_cost=state.average_cost.quantize(SNAPSHOT_QUANTUM),
        total_invested=state.total_invested.quantize(SNAPSHOT_QUANTUM),
        current_price=current_price.quantize(SNAPSHOT_QUANTUM),
        total_value=total_value.quantize(SNAPSHOT_QUANTUM),
        profit_loss=profit_loss.quantize(SNAPSHOT_QUANTUM),
        return_rate=return_rate.quantize(SNAPSHOT_QUANTUM),
        transaction_count=state.transaction_count,
        first_transaction_date=state.first_transaction_date,
        last_transaction_date=state.last_transaction_date,
    )


def apply_buy_to_holding(holding: Holding, txn: Transaction) -> HoldingSnapshot:
    """
    Incrementally apply a new buy to a holding's stored snapshot.

    Uses the same fold step as a full reconcile; the trade price becomes
    the holding's current price.
    """
    state = apply_transaction(LedgerState.from_holding(holding), txn)
    return build_snapshot(holding.holding_id, state, txn.price)


class ReconciliationEngine:
    """
    Single authority for a holding's shares, average cost and valuation.

    The stored snapshot is a cache of the transaction log; it is recomputed
    from scratch here and never edited directly anywhere else. Writes are
    flushed into the caller's transaction.
    """

    def __init__(
        self,
        holding_repo: HoldingRepository,
        transaction_repo: TransactionRepository,
        settings: Optional[Settings] = None,
    ):
        self._holding_repo = holding_repo
        self._transaction_repo = transaction_repo
        self._settings = settings or get_settings()

    def compute(self, holding: Holding, current_price: Optional[Decimal] = None) -> HoldingSnapshot:
        """Fold a holding's log without writing anything."""
        transactions = self._transaction_repo.list_by_holding(holding.holding_id)
        state = fold_transactions(transactions)

        if not transactions:
            # Nothing left to fold: keep the dates the holding already knew
            state = replace(
                state,
                first_transaction_date=holding.first_transaction_date,
                last_transaction_date=holding.last_transaction_date,
            )

        price = self._resolve_price(holding, state, current_price)
        return build_snapshot(holding.holding_id, state, price)

    def reconcile(self, holding_id: str, current_price: Optional[Decimal] = None) -> HoldingSnapshot:
        """
        Recompute and store a holding's snapshot from its transaction log.

        Called after any transaction mutation. The write is skipped when
        every figure already matches within ``reconcile_tolerance``.
        """
        holding = self._holding_repo.get_for_update(holding_id)
        if not holding:
            raise NotFoundError("Holding", holding_id)

        snapshot = self.compute(holding, current_price)

        if self._matches(holding, snapshot):
            logger.debug("Holding %s already consistent; no write", holding_id)
            return snapshot

        self._holding_repo.save_snapshot(snapshot, expected_version=holding.version)
        snapshot.written = True
        logger.info(
            "Reconciled holding %s: shares=%s invested=%s avg=%s",
            holding_id,
            snapshot.shares,
            snapshot.total_invested,
            snapshot.average_cost,
        )
        return snapshot

    def mark_to_market(self, holding_id: str, price: Decimal) -> HoldingSnapshot:
        """Revalue a holding at a new price without touching its cost basis."""
        if price <= ZERO:
            raise ValueError(f"Price must be positive: {price}")
        return self.reconcile(holding_id, current_price=price)

    @staticmethod
    def _resolve_price(
        holding: Holding,
        state: LedgerState,
        current_price: Optional[Decimal],
    ) -> Decimal:
        if current_price is not None and current_price > ZERO:
            return current_price
        if holding.current_price > ZERO:
            return holding.current_price
        if state.last_trade_price is not None:
            return state.last_trade_price
        return ZERO

    def _matches(self, holding: Holding, snapshot: HoldingSnapshot) -> bool:
        tolerance = self._settings.reconcile_tolerance
        pairs = (
            (holding.shares, snapshot.shares),
            (holding.average_cost, snapshot.average_cost),
            (holding.total_invested, snapshot.total_invested),
            (holding.current_price, snapshot.current_price),
            (holding.total_value, snapshot.total_value),
            (holding.profit_loss, snapshot.profit_loss),
            (holding.return_rate, snapshot.return_rate),
        )
        if any(abs(stored - computed) > tolerance for stored, computed in pairs):
            return False
        return (
            holding.transaction_count == snapshot.transaction_count
            and holding.first_transaction_date == snapshot.first_transaction_date
            and holding.last_transaction_date == snapshot.last_transaction_date
        )

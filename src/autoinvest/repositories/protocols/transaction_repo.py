"""Transaction repository protocol."""

from datetime import date
from typing import Optional, Protocol

from autoinvest.domain.models import Transaction


class TransactionRepository(Protocol):
    """Interface for transaction (ledger) data access. There is no update."""

    def create(self, transaction: Transaction) -> Transaction:
        """Persist a new transaction."""
        ...

    def get_by_id(self, txn_id: str) -> Optional[Transaction]:
        """Retrieve transaction by ID."""
        ...

    def list_by_holding(self, holding_id: str) -> list[Transaction]:
        """List all transactions for a holding, ordered by (trade_date, sequence)."""
        ...

    def next_sequence(self, holding_id: str) -> int:
        """Return the next insertion sequence number for a holding."""
        ...

    def find_auto_for_date(self, holding_id: str, day: date) -> Optional[Transaction]:
        """Return the auto transaction dated ``day``, if one exists."""
        ...

    def list_auto(
        self,
        holding_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[Transaction]:
        """List auto transactions in an inclusive date window."""
        ...

    def latest_auto_date(self, holding_id: str) -> Optional[date]:
        """Return the trade date of the newest auto transaction."""
        ...

    def delete_many(self, txn_ids: list[str]) -> int:
        """Delete transactions by ID; returns the number removed."""
        ...

"""Cash balance repository protocol."""

from typing import Optional, Protocol

from autoinvest.domain.models import CashBalance, CashMovement, Currency


class BalanceRepository(Protocol):
    """Interface for cash balances and their movement history."""

    def get(self, owner_id: str, portfolio_id: str, currency: Currency) -> Optional[CashBalance]:
        """Retrieve a balance row."""
        ...

    def get_for_update(
        self, owner_id: str, portfolio_id: str, currency: Currency
    ) -> Optional[CashBalance]:
        """Retrieve a balance row, re-reading and locking it inside the transaction."""
        ...

    def list_balances(self, owner_id: str, portfolio_id: str) -> list[CashBalance]:
        """List all balance rows for a portfolio."""
        ...

    def save(self, balance: CashBalance) -> CashBalance:
        """Insert a balance row, or update it if it is still at ``balance.version``."""
        ...

    def add_movement(self, movement: CashMovement) -> CashMovement:
        """Append a movement record."""
        ...

    def list_movements(
        self,
        owner_id: str,
        portfolio_id: str,
        currency: Optional[Currency] = None,
    ) -> list[CashMovement]:
        """List movements, oldest first."""
        ...

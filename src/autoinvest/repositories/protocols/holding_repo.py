"""Holding repository protocol."""

from typing import Optional, Protocol

from autoinvest.domain.models import AutoInvestConfig, Holding
from autoinvest.domain.views import HoldingSnapshot


class HoldingRepository(Protocol):
    """Interface for holding data access."""

    def create(self, holding: Holding) -> Holding:
        """Persist a new holding."""
        ...

    def get_by_id(self, holding_id: str) -> Optional[Holding]:
        """Retrieve holding by ID."""
        ...

    def get_for_update(self, holding_id: str) -> Optional[Holding]:
        """Retrieve holding by ID, locking the row for the current transaction."""
        ...

    def get_by_symbol(self, owner_id: str, portfolio_id: str, symbol: str) -> Optional[Holding]:
        """Retrieve the holding for a symbol inside a portfolio."""
        ...

    def list_holdings(
        self,
        owner_id: Optional[str] = None,
        portfolio_id: Optional[str] = None,
    ) -> list[Holding]:
        """List holdings, optionally filtered by owner and portfolio."""
        ...

    def list_auto_invest_active_ids(self) -> list[str]:
        """List IDs of holdings whose auto-invest flag is on (indexed lookup)."""
        ...

    def save_snapshot(self, snapshot: HoldingSnapshot, expected_version: Optional[int] = None) -> Holding:
        """Write the derived figures; refused if the row moved past ``expected_version``."""
        ...

    def save_auto_invest(
        self,
        holding_id: str,
        config: Optional[AutoInvestConfig],
        expected_version: Optional[int] = None,
    ) -> Holding:
        """Replace the embedded auto-invest config (None clears it)."""
        ...

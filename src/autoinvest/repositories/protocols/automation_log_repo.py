"""Automation log repository protocol."""

from typing import Optional, Protocol

from autoinvest.domain.models import AutomationLogEntry


class AutomationLogRepository(Protocol):
    """Interface for the append-only sweep audit log."""

    def add_many(self, entries: list[AutomationLogEntry]) -> int:
        """Append entries; returns the number written."""
        ...

    def list_by_run(self, run_id: str) -> list[AutomationLogEntry]:
        """List the entries written by one sweep."""
        ...

    def list_recent(self, limit: int = 50, holding_id: Optional[str] = None) -> list[AutomationLogEntry]:
        """List the newest entries."""
        ...

"""Recurring auto-invest engine: due-date resolution, idempotent execution, ledger reconciliation."""

__version__ = "0.1.0"

"""View models for engine outputs."""

from autoinvest.domain.views.results import (
    HoldingSnapshot,
    SweepLogEntry,
    SweepSummary,
    GenerationResult,
    ReapplyResult,
    CloseResult,
)

__all__ = [
    "HoldingSnapshot",
    "SweepLogEntry",
    "SweepSummary",
    "GenerationResult",
    "ReapplyResult",
    "CloseResult",
]

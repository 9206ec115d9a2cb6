"""Suggestion ledger and the batch pipeline that fills and applies it."""

from .ledger import LedgerStateError, SuggestionLedger
from .models import (
    AnalysisOutcome,
    ApplyResult,
    Decision,
    FilterMode,
    LedgerSnapshot,
    LedgerState,
    RenameFailure,
    SnapshotItem,
)
from .pipeline import BatchSuggestionPipeline, ProgressCallback

__all__ = [
    "AnalysisOutcome",
    "ApplyResult",
    "BatchSuggestionPipeline",
    "Decision",
    "FilterMode",
    "LedgerSnapshot",
    "LedgerState",
    "LedgerStateError",
    "ProgressCallback",
    "RenameFailure",
    "SnapshotItem",
    "SuggestionLedger",
]

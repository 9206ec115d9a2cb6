"""Data models exchanged between the batch pipeline and its callers."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from screenbutler.ingestion.models import FileEntry
from screenbutler.organization.renamer import RenameErrorKind


class Decision(str, Enum):
    """Review state of a suggestion."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class LedgerState(str, Enum):
    """Coarse lifecycle of a batch."""

    IDLE = "idle"
    ANALYZING = "analyzing"
    REVIEWING = "reviewing"
    APPLYING = "applying"
    COMPLETED = "completed"


FilterMode = Literal["all", "approved", "rejected", "pending"]


class AnalysisOutcome(BaseModel):
    """Result of analyzing one candidate.

    Attributes:
        suggestion: Suggested base name, never absent.
        source: Whether the model or the local fallback produced the suggestion.
        error: Analysis failure message when the fallback was used because of an error.
    """

    suggestion: str
    source: Literal["model", "fallback"]
    error: Optional[str] = None


class RenameFailure(BaseModel):
    """A rename attempt that did not succeed."""

    entry: FileEntry
    kind: RenameErrorKind
    message: str


class ApplyResult(BaseModel):
    """Outcome of one apply run.

    Attributes:
        approved_count: Number of approved entries the run covered.
        succeeded: Number of successful renames.
        failed: Per-entry failures.
        renamed: Old path to new path for each success.
    """

    approved_count: int = 0
    succeeded: int = 0
    failed: List[RenameFailure] = Field(default_factory=list)
    renamed: Dict[Path, Path] = Field(default_factory=dict)

    @property
    def summary(self) -> str:
        return f"Renamed {self.succeeded} of {self.approved_count} files."


class SnapshotItem(BaseModel):
    """Read-only view of one candidate."""

    entry: FileEntry
    suggestion: Optional[str] = None
    decision: Optional[Decision] = None
    source: Optional[Literal["model", "fallback"]] = None
    error: Optional[str] = None
    renamed_to: Optional[Path] = None


class LedgerSnapshot(BaseModel):
    """Point-in-time view of a ledger for presentation layers."""

    state: LedgerState
    total: int
    processed_count: int
    success_count: int
    approved_count: int
    rejected_count: int
    pending_count: int
    items: List[SnapshotItem] = Field(default_factory=list)


__all__ = [
    "AnalysisOutcome",
    "ApplyResult",
    "Decision",
    "FilterMode",
    "LedgerSnapshot",
    "LedgerState",
    "RenameFailure",
    "SnapshotItem",
]

"""Per-batch record of rename suggestions and review decisions."""

from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

from screenbutler.ingestion.models import FileEntry

from .models import (
    AnalysisOutcome,
    Decision,
    FilterMode,
    LedgerSnapshot,
    LedgerState,
    RenameFailure,
    SnapshotItem,
)

LOGGER = logging.getLogger(__name__)

_REVIEWABLE_STATES = frozenset(
    {LedgerState.ANALYZING, LedgerState.REVIEWING, LedgerState.COMPLETED}
)


class LedgerStateError(RuntimeError):
    """Raised when a command is issued in a state that does not allow it."""


class SuggestionLedger:
    """Working state for one batch of rename suggestions.

    A candidate gets a decision only once its suggestion has arrived; until
    then ``decision_for`` returns None and review commands ignore it.

    The ``begin_*``/``record_*``/``finish_*`` methods belong to the pipeline's
    coordinating thread. Review commands (``set_decision``, ``toggle_decision``,
    ``edit_suggestion``, ``approve_all``, ``reject_all``) come from the user.
    """

    def __init__(
        self,
        candidates: Iterable[FileEntry],
        *,
        skipped: Iterable[FileEntry] = (),
    ) -> None:
        self._candidates: tuple[FileEntry, ...] = tuple(dict.fromkeys(candidates))
        self._skipped: tuple[FileEntry, ...] = tuple(skipped)
        self._suggestions: dict[FileEntry, str] = {}
        self._decisions: dict[FileEntry, Decision] = {}
        self._outcomes: dict[FileEntry, AnalysisOutcome] = {}
        self._failures: dict[FileEntry, RenameFailure] = {}
        self._renamed: dict[Path, Path] = {}
        self._state = LedgerState.IDLE
        self._processed_count = 0
        self._success_count = 0

    # Queries ---------------------------------------------------------

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def candidates(self) -> tuple[FileEntry, ...]:
        return self._candidates

    @property
    def skipped(self) -> tuple[FileEntry, ...]:
        """Entries dropped when the batch started (directories, unsupported types)."""
        return self._skipped

    @property
    def suggestions(self) -> Mapping[FileEntry, str]:
        return MappingProxyType(self._suggestions)

    @property
    def decisions(self) -> Mapping[FileEntry, Decision]:
        return MappingProxyType(self._decisions)

    @property
    def failures(self) -> tuple[RenameFailure, ...]:
        return tuple(self._failures.values())

    @property
    def renamed(self) -> Mapping[Path, Path]:
        return MappingProxyType(self._renamed)

    @property
    def processed_count(self) -> int:
        return self._processed_count

    @property
    def success_count(self) -> int:
        return self._success_count

    def suggestion_for(self, entry: FileEntry) -> Optional[str]:
        return self._suggestions.get(entry)

    def decision_for(self, entry: FileEntry) -> Optional[Decision]:
        return self._decisions.get(entry)

    def outcome_for(self, entry: FileEntry) -> Optional[AnalysisOutcome]:
        return self._outcomes.get(entry)

    def entries_with(self, decision: Decision) -> list[FileEntry]:
        """Candidates holding ``decision``, in candidate order."""
        return [entry for entry in self._candidates if self._decisions.get(entry) == decision]

    def is_analysis_complete(self) -> bool:
        return self._processed_count == len(self._candidates)

    def snapshot(self, filter_mode: FilterMode = "all") -> LedgerSnapshot:
        """Return a read-only view, optionally limited to one review bucket.

        ``pending`` lists analyzed entries that are still undecided.
        """
        items: list[SnapshotItem] = []
        for entry in self._candidates:
            decision = self._decisions.get(entry)
            if filter_mode != "all" and (decision is None or decision.value != filter_mode):
                continue
            outcome = self._outcomes.get(entry)
            items.append(
                SnapshotItem(
                    entry=entry,
                    suggestion=self._suggestions.get(entry),
                    decision=decision,
                    source=outcome.source if outcome else None,
                    error=outcome.error if outcome else None,
                    renamed_to=self._renamed.get(entry.path),
                )
            )

        counts = {decision: 0 for decision in Decision}
        for decision in self._decisions.values():
            counts[decision] += 1

        return LedgerSnapshot(
            state=self._state,
            total=len(self._candidates),
            processed_count=self._processed_count,
            success_count=self._success_count,
            approved_count=counts[Decision.APPROVED],
            rejected_count=counts[Decision.REJECTED],
            pending_count=counts[Decision.PENDING],
            items=items,
        )

    # Review commands -------------------------------------------------

    def set_decision(self, entry: FileEntry, decision: Decision) -> bool:
        """Record ``decision`` for ``entry``.

        Returns:
            bool: False when the entry has no suggestion yet (nothing changes).

        Raises:
            KeyError: If ``entry`` is not a candidate of this batch.
            LedgerStateError: If the batch is no longer under review.
        """
        self._require_reviewable(entry)
        if entry not in self._suggestions:
            return False
        self._decisions[entry] = decision
        return True

    def toggle_decision(self, entry: FileEntry) -> Optional[Decision]:
        """Flip approved and rejected; an undecided entry becomes approved.

        Returns:
            Optional[Decision]: The new decision, or None when not yet analyzed.
        """
        self._require_reviewable(entry)
        current = self._decisions.get(entry)
        if current is None:
            return None
        new = Decision.REJECTED if current is Decision.APPROVED else Decision.APPROVED
        self._decisions[entry] = new
        return new

    def edit_suggestion(self, entry: FileEntry, new_name: str) -> bool:
        """Replace the suggestion; editing a rejected entry approves it.

        Returns:
            bool: False when the entry has no suggestion yet (nothing changes).
        """
        self._require_reviewable(entry)
        if entry not in self._suggestions:
            return False
        self._suggestions[entry] = new_name
        if self._decisions[entry] is Decision.REJECTED:
            self._decisions[entry] = Decision.APPROVED
        return True

    def approve_all(self) -> int:
        """Approve every analyzed entry; returns how many were touched."""
        return self._decide_all(Decision.APPROVED)

    def reject_all(self) -> int:
        """Reject every analyzed entry; returns how many were touched."""
        return self._decide_all(Decision.REJECTED)

    # Coordinator transitions -----------------------------------------

    def begin_analysis(self) -> None:
        self._transition({LedgerState.IDLE}, LedgerState.ANALYZING)
        if not self._candidates:
            LOGGER.info("Batch has no supported candidates; nothing to analyze")
            self._state = LedgerState.COMPLETED

    def record_outcome(self, entry: FileEntry, outcome: AnalysisOutcome) -> None:
        """Store the suggestion for ``entry``; its decision starts as pending."""
        if self._state is not LedgerState.ANALYZING:
            raise LedgerStateError(f"Cannot record analysis while {self._state.value}.")
        if entry not in self._candidates:
            raise KeyError(entry)
        if entry in self._outcomes:
            raise LedgerStateError(f"{entry.name} has already been analyzed.")
        self._outcomes[entry] = outcome
        self._suggestions[entry] = outcome.suggestion
        self._decisions[entry] = Decision.PENDING
        self._processed_count += 1

    def finish_analysis(self) -> None:
        self._transition({LedgerState.ANALYZING}, LedgerState.REVIEWING)
        LOGGER.info(
            "Analysis finished: %d of %d candidate(s) processed",
            self._processed_count,
            len(self._candidates),
        )

    def begin_apply(self, entries: Iterable[FileEntry]) -> list[FileEntry]:
        """Enter the applying state for ``entries``, which must be approved.

        Raises:
            LedgerStateError: If the batch is not reviewable or nothing is approved.
        """
        selected = [entry for entry in entries if self._decisions.get(entry) is Decision.APPROVED]
        if not selected:
            raise LedgerStateError("Approve at least one suggestion before applying.")
        self._transition({LedgerState.REVIEWING, LedgerState.COMPLETED}, LedgerState.APPLYING)
        return selected

    def record_rename_success(self, entry: FileEntry, new_path: Path) -> None:
        if self._state is not LedgerState.APPLYING:
            raise LedgerStateError(f"Cannot record renames while {self._state.value}.")
        self._renamed[entry.path] = new_path
        self._failures.pop(entry, None)
        self._success_count += 1

    def record_rename_failure(self, failure: RenameFailure) -> None:
        if self._state is not LedgerState.APPLYING:
            raise LedgerStateError(f"Cannot record renames while {self._state.value}.")
        self._failures[failure.entry] = failure

    def finish_apply(self) -> None:
        self._transition({LedgerState.APPLYING}, LedgerState.COMPLETED)

    # Helpers ---------------------------------------------------------

    def _decide_all(self, decision: Decision) -> int:
        if self._state not in _REVIEWABLE_STATES:
            raise LedgerStateError(f"Cannot change decisions while {self._state.value}.")
        for entry in self._suggestions:
            self._decisions[entry] = decision
        return len(self._suggestions)

    def _require_reviewable(self, entry: FileEntry) -> None:
        if entry not in self._candidates:
            raise KeyError(entry)
        if self._state not in _REVIEWABLE_STATES:
            raise LedgerStateError(f"Cannot change decisions while {self._state.value}.")

    def _transition(self, allowed: set[LedgerState], target: LedgerState) -> None:
        if self._state not in allowed:
            raise LedgerStateError(
                f"Cannot move from {self._state.value} to {target.value}."
            )
        LOGGER.debug("Ledger %s -> %s", self._state.value, target.value)
        self._state = target


__all__ = ["LedgerStateError", "SuggestionLedger"]

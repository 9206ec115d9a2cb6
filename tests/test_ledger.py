"""Tests for the suggestion ledger state machine."""

from pathlib import Path

import pytest

from screenbutler.batch import (
    AnalysisOutcome,
    Decision,
    LedgerState,
    LedgerStateError,
    RenameFailure,
    SuggestionLedger,
)
from screenbutler.ingestion import FileEntry
from screenbutler.organization import RenameErrorKind


def _entry(name: str) -> FileEntry:
    return FileEntry(name=name, path=Path("/photos") / name)


def _outcome(suggestion: str) -> AnalysisOutcome:
    return AnalysisOutcome(suggestion=suggestion, source="model")


def _analyzing_ledger(*names: str) -> tuple[SuggestionLedger, list[FileEntry]]:
    entries = [_entry(name) for name in names]
    ledger = SuggestionLedger(entries)
    ledger.begin_analysis()
    return ledger, entries


def _assert_decisions_follow_suggestions(ledger: SuggestionLedger) -> None:
    assert set(ledger.decisions) <= set(ledger.suggestions)


def test_candidates_are_deduplicated_by_path() -> None:
    first = _entry("IMG_0001.jpg")
    duplicate = FileEntry(name="IMG_0001.jpg", path=first.path, size_bytes=99)

    ledger = SuggestionLedger([first, duplicate, _entry("IMG_0002.jpg")])

    assert len(ledger.candidates) == 2
    assert ledger.state is LedgerState.IDLE


def test_recorded_outcome_starts_pending() -> None:
    ledger, (first, second) = _analyzing_ledger("IMG_0001.jpg", "IMG_0002.jpg")

    ledger.record_outcome(first, _outcome("Beach"))

    assert ledger.suggestion_for(first) == "Beach"
    assert ledger.decision_for(first) is Decision.PENDING
    assert ledger.decision_for(second) is None
    assert ledger.processed_count == 1
    _assert_decisions_follow_suggestions(ledger)


def test_decisions_on_unanalyzed_entries_are_ignored() -> None:
    ledger, (entry,) = _analyzing_ledger("IMG_0001.jpg")

    assert ledger.set_decision(entry, Decision.APPROVED) is False
    assert ledger.toggle_decision(entry) is None
    assert ledger.edit_suggestion(entry, "Beach") is False
    assert ledger.decisions == {}
    assert ledger.suggestions == {}


def test_toggle_cycles_between_approved_and_rejected() -> None:
    ledger, (entry,) = _analyzing_ledger("IMG_0001.jpg")
    ledger.record_outcome(entry, _outcome("Beach"))

    assert ledger.toggle_decision(entry) is Decision.APPROVED
    assert ledger.toggle_decision(entry) is Decision.REJECTED
    assert ledger.toggle_decision(entry) is Decision.APPROVED


def test_editing_rejected_entry_approves_it() -> None:
    ledger, (rejected, pending) = _analyzing_ledger("IMG_0001.jpg", "IMG_0002.jpg")
    ledger.record_outcome(rejected, _outcome("Beach"))
    ledger.record_outcome(pending, _outcome("Forest"))
    ledger.set_decision(rejected, Decision.REJECTED)

    assert ledger.edit_suggestion(rejected, "Sunny Beach") is True
    assert ledger.edit_suggestion(pending, "Pine Forest") is True

    assert ledger.suggestion_for(rejected) == "Sunny Beach"
    assert ledger.decision_for(rejected) is Decision.APPROVED
    assert ledger.decision_for(pending) is Decision.PENDING


def test_bulk_decisions_skip_entries_still_analyzing() -> None:
    ledger, (done, waiting) = _analyzing_ledger("IMG_0001.jpg", "IMG_0002.jpg")
    ledger.record_outcome(done, _outcome("Beach"))

    assert ledger.approve_all() == 1
    assert ledger.decision_for(done) is Decision.APPROVED
    assert ledger.decision_for(waiting) is None

    assert ledger.reject_all() == 1
    assert ledger.decision_for(done) is Decision.REJECTED
    _assert_decisions_follow_suggestions(ledger)


def test_unknown_entry_raises_key_error() -> None:
    ledger, _ = _analyzing_ledger("IMG_0001.jpg")

    with pytest.raises(KeyError):
        ledger.set_decision(_entry("elsewhere.jpg"), Decision.APPROVED)


def test_decisions_are_refused_before_analysis_starts() -> None:
    entry = _entry("IMG_0001.jpg")
    ledger = SuggestionLedger([entry])

    with pytest.raises(LedgerStateError):
        ledger.approve_all()


def test_empty_batch_completes_immediately() -> None:
    ledger = SuggestionLedger([])

    ledger.begin_analysis()

    assert ledger.state is LedgerState.COMPLETED
    assert ledger.processed_count == 0


def test_apply_requires_an_approved_entry() -> None:
    ledger, (entry,) = _analyzing_ledger("IMG_0001.jpg")
    ledger.record_outcome(entry, _outcome("Beach"))
    ledger.finish_analysis()

    with pytest.raises(LedgerStateError):
        ledger.begin_apply(ledger.candidates)

    ledger.set_decision(entry, Decision.APPROVED)
    assert ledger.begin_apply(ledger.candidates) == [entry]
    assert ledger.state is LedgerState.APPLYING


def test_apply_cycle_tracks_successes_and_failures() -> None:
    ledger, (good, bad) = _analyzing_ledger("IMG_0001.jpg", "IMG_0002.jpg")
    for entry in (good, bad):
        ledger.record_outcome(entry, _outcome("Beach"))
    ledger.finish_analysis()
    ledger.approve_all()

    ledger.begin_apply(ledger.candidates)
    ledger.record_rename_success(good, good.path.with_name("Beach.jpg"))
    ledger.record_rename_failure(
        RenameFailure(entry=bad, kind=RenameErrorKind.DESTINATION_EXISTS, message="taken")
    )
    ledger.finish_apply()

    assert ledger.state is LedgerState.COMPLETED
    assert ledger.success_count == 1
    assert ledger.renamed == {good.path: good.path.with_name("Beach.jpg")}
    assert [failure.entry for failure in ledger.failures] == [bad]


def test_record_outcome_rejects_duplicates() -> None:
    ledger, (entry,) = _analyzing_ledger("IMG_0001.jpg")
    ledger.record_outcome(entry, _outcome("Beach"))

    with pytest.raises(LedgerStateError):
        ledger.record_outcome(entry, _outcome("Again"))


def test_snapshot_filters_by_decision() -> None:
    ledger, (approved, rejected, pending, waiting) = _analyzing_ledger(
        "IMG_0001.jpg", "IMG_0002.jpg", "IMG_0003.jpg", "IMG_0004.jpg"
    )
    for entry in (approved, rejected, pending):
        ledger.record_outcome(entry, _outcome(entry.stem))
    ledger.set_decision(approved, Decision.APPROVED)
    ledger.set_decision(rejected, Decision.REJECTED)

    snapshot = ledger.snapshot()
    assert snapshot.total == 4
    assert snapshot.processed_count == 3
    assert (snapshot.approved_count, snapshot.rejected_count, snapshot.pending_count) == (1, 1, 1)
    assert [item.entry for item in snapshot.items] == [approved, rejected, pending, waiting]

    assert [item.entry for item in ledger.snapshot("approved").items] == [approved]
    assert [item.entry for item in ledger.snapshot("rejected").items] == [rejected]
    assert [item.entry for item in ledger.snapshot("pending").items] == [pending]

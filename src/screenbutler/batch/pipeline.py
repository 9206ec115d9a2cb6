"""Batch rename-suggestion pipeline.

The pipeline fans analysis and rename work out to a bounded thread pool and
fans the results back in on the calling thread, which is the only place the
ledger is mutated. Workers return values; they never touch the ledger.
"""

from __future__ import annotations

import logging
import random
import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional, Sequence, TypeVar

from screenbutler.ingestion.detectors import TypeDetector
from screenbutler.ingestion.models import FileEntry
from screenbutler.naming.base import AnalysisError, Analyzer
from screenbutler.naming.fallback import (
    DEFAULT_FALLBACK_PREFIX,
    fallback_name,
    sanitize_base_name,
)
from screenbutler.organization.renamer import (
    RenameError,
    RenameErrorKind,
    Renamer,
    destination_for,
)

from .ledger import LedgerStateError, SuggestionLedger
from .models import AnalysisOutcome, ApplyResult, LedgerSnapshot, RenameFailure

LOGGER = logging.getLogger(__name__)

ProgressCallback = Callable[[LedgerSnapshot], None]

_T = TypeVar("_T")
_R = TypeVar("_R")


class BatchSuggestionPipeline:
    """Drive suggestion, review and apply for one batch of files.

    Args:
        renamer: Performs the actual renames.
        analyzer: Produces model suggestions; unused when ``has_credential`` is False.
        has_credential: Whether a model credential is configured. Without one every
            candidate receives the local fallback name.
        detector: Decides which entries are supported and which use visual analysis.
        max_workers: Upper bound on concurrently running analysis or rename tasks.
        fallback_prefix: Prefix for names generated when a suggestion is blank.
        on_progress: Called with a fresh snapshot after each recorded result.
        rng: Random source for generated names.
    """

    def __init__(
        self,
        renamer: Renamer,
        analyzer: Optional[Analyzer] = None,
        *,
        has_credential: bool = False,
        detector: Optional[TypeDetector] = None,
        max_workers: int = 4,
        fallback_prefix: str = DEFAULT_FALLBACK_PREFIX,
        on_progress: Optional[ProgressCallback] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1.")
        self.renamer = renamer
        self.analyzer = analyzer
        self.has_credential = has_credential and analyzer is not None
        self.detector = detector or TypeDetector()
        self.max_workers = max_workers
        self.fallback_prefix = fallback_prefix
        self.on_progress = on_progress
        self._rng = rng or random.Random()
        self._cancel_event = threading.Event()
        self._ledger: Optional[SuggestionLedger] = None

    @property
    def ledger(self) -> SuggestionLedger:
        if self._ledger is None:
            raise LedgerStateError("No batch has been started.")
        return self._ledger

    # Batch lifecycle -------------------------------------------------

    def start_batch(self, entries: Iterable[FileEntry]) -> SuggestionLedger:
        """Create a fresh ledger from the supported, non-directory entries."""
        candidates: list[FileEntry] = []
        skipped: list[FileEntry] = []
        for entry in entries:
            if self.detector.is_supported(entry):
                candidates.append(entry)
            else:
                skipped.append(entry)

        if skipped:
            LOGGER.debug("Skipping %d unsupported or directory entries", len(skipped))
        self._cancel_event.clear()
        self._ledger = SuggestionLedger(candidates, skipped=skipped)
        LOGGER.info("Started batch with %d candidate(s)", len(self._ledger.candidates))
        return self._ledger

    def run(self, entries: Iterable[FileEntry]) -> SuggestionLedger:
        """Start a batch and analyze every candidate."""
        ledger = self.start_batch(entries)
        self.analyze()
        return ledger

    def cancel(self) -> None:
        """Stop dispatching new work; tasks already running are still recorded.

        The request applies to the phase in progress, or to the next one when
        issued between phases, and is consumed when that phase ends.
        """
        LOGGER.info("Cancellation requested")
        self._cancel_event.set()

    @property
    def cancelled(self) -> bool:
        """Whether a cancel request is waiting to be consumed."""
        return self._cancel_event.is_set()

    # Analysis --------------------------------------------------------

    def analyze_one(self, entry: FileEntry) -> AnalysisOutcome:
        """Return a suggestion for ``entry``, falling back to a local name on failure.

        Safe to call from worker threads; the ledger is not modified.
        """
        if not self.has_credential or self.analyzer is None:
            return AnalysisOutcome(suggestion=fallback_name(entry.name), source="fallback")

        visual = self.detector.is_visual(entry)
        try:
            suggestion = self.analyzer.analyze(entry, visual=visual)
        except AnalysisError as exc:
            LOGGER.warning("Analysis failed for %s: %s", entry.path, exc)
            return AnalysisOutcome(
                suggestion=fallback_name(entry.name), source="fallback", error=str(exc)
            )
        except Exception as exc:
            LOGGER.warning("Analyzer raised unexpectedly for %s: %s", entry.path, exc)
            return AnalysisOutcome(
                suggestion=fallback_name(entry.name),
                source="fallback",
                error=f"{type(exc).__name__}: {exc}",
            )
        return AnalysisOutcome(suggestion=suggestion, source="model")

    def analyze(self) -> LedgerSnapshot:
        """Analyze all candidates and move the ledger to review.

        Returns once every dispatched analysis has been recorded. After
        ``cancel`` the remaining candidates stay unanalyzed. If the fan-in is
        interrupted, in-flight analyses are still recorded before the error
        propagates.
        """
        ledger = self.ledger
        ledger.begin_analysis()
        if not ledger.candidates:
            self._cancel_event.clear()
            return ledger.snapshot()

        def record(entry: FileEntry, future: Future[AnalysisOutcome]) -> None:
            ledger.record_outcome(entry, future.result())

        try:
            self._collect(self._fan_out(ledger.candidates, self.analyze_one), record)
        finally:
            ledger.finish_analysis()
            self._cancel_event.clear()

        if not ledger.is_analysis_complete():
            LOGGER.info(
                "Analysis stopped early; %d candidate(s) left unanalyzed",
                len(ledger.candidates) - ledger.processed_count,
            )
        return ledger.snapshot()

    # Apply -----------------------------------------------------------

    def apply_approved(self) -> ApplyResult:
        """Rename every approved entry that has not been renamed yet.

        Raises:
            LedgerStateError: If analysis has not finished or nothing is approved.
        """
        ledger = self.ledger
        pending = [
            entry
            for entry in ledger.candidates
            if entry.path not in ledger.renamed
        ]
        return self._apply(ledger.begin_apply(pending))

    def retry_failed(self) -> ApplyResult:
        """Re-run the apply phase for entries whose last rename failed.

        Raises:
            LedgerStateError: If there is nothing to retry.
        """
        ledger = self.ledger
        failed = [failure.entry for failure in ledger.failures]
        if not failed:
            raise LedgerStateError("There are no failed renames to retry.")
        return self._apply(ledger.begin_apply(failed))

    def _apply(self, entries: Sequence[FileEntry]) -> ApplyResult:
        ledger = self.ledger
        result = ApplyResult(approved_count=len(entries))
        try:
            targets = self._reserve_targets(entries, result)

            def rename(entry: FileEntry) -> Path:
                return self.renamer.rename(entry.path, targets[entry])

            def record(entry: FileEntry, future: Future[Path]) -> None:
                error = future.exception()
                if error is None:
                    new_path = future.result()
                    ledger.record_rename_success(entry, new_path)
                    result.succeeded += 1
                    result.renamed[entry.path] = new_path
                else:
                    self._record_failure(result, _failure_from(entry, error))

            self._collect(self._fan_out(list(targets), rename), record)
        finally:
            ledger.finish_apply()
            self._cancel_event.clear()

        LOGGER.info(result.summary)
        return result

    def _reserve_targets(
        self, entries: Sequence[FileEntry], result: ApplyResult
    ) -> dict[FileEntry, str]:
        """Sanitize each suggestion and give every destination a single owner.

        Entries whose destination is already claimed by an earlier entry are
        recorded as ``DESTINATION_EXISTS`` failures and left out of the result.
        """
        ledger = self.ledger
        targets: dict[FileEntry, str] = {}
        owners: dict[Path, FileEntry] = {}
        for entry in entries:
            base_name = sanitize_base_name(
                ledger.suggestion_for(entry) or "",
                prefix=self.fallback_prefix,
                rng=self._rng,
            )
            destination = destination_for(entry.path, base_name)
            owner = owners.setdefault(destination, entry)
            if owner is entry:
                targets[entry] = base_name
                continue
            self._record_failure(
                result,
                RenameFailure(
                    entry=entry,
                    kind=RenameErrorKind.DESTINATION_EXISTS,
                    message=f"{owner.name} is already being renamed to {destination.name}",
                ),
            )
        return targets

    def _record_failure(self, result: ApplyResult, failure: RenameFailure) -> None:
        LOGGER.warning(
            "Rename failed for %s (%s): %s",
            failure.entry.path,
            failure.kind.value,
            failure.message,
        )
        self.ledger.record_rename_failure(failure)
        result.failed.append(failure)
        self._notify()

    # Helpers ---------------------------------------------------------

    def _collect(
        self,
        outcomes: Iterator[tuple[_T, Future[_R]]],
        record: Callable[[_T, Future[_R]], None],
    ) -> None:
        """Record each finished task and report progress.

        If recording is interrupted, dispatch stops and the tasks still in
        flight are recorded before the error is re-raised.
        """
        try:
            for item, future in outcomes:
                record(item, future)
                self._notify()
        except BaseException:
            self._cancel_event.set()
            for item, future in outcomes:
                record(item, future)
            raise

    def _fan_out(
        self,
        items: Sequence[_T],
        work: Callable[[_T], _R],
    ) -> Iterator[tuple[_T, Future[_R]]]:
        """Run ``work`` over ``items`` with at most ``max_workers`` in flight.

        Yields each item with its finished future, in completion order, on the
        calling thread. A replacement task is submitted only after the caller
        has handled the yielded result, and none once cancellation is requested.
        """
        queue = iter(items)
        in_flight: dict[Future[_R], _T] = {}

        with ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="screenbutler"
        ) as executor:

            def submit_next() -> bool:
                if self._cancel_event.is_set():
                    return False
                item = next(queue, None)
                if item is None:
                    return False
                in_flight[executor.submit(work, item)] = item
                return True

            while len(in_flight) < self.max_workers and submit_next():
                pass

            while in_flight:
                done, _ = wait(in_flight, return_when=FIRST_COMPLETED)
                for future in done:
                    item = in_flight.pop(future)
                    yield item, future
                    submit_next()

    def _notify(self) -> None:
        if self.on_progress is None:
            return
        try:
            self.on_progress(self.ledger.snapshot())
        except Exception:
            LOGGER.warning("Progress callback failed", exc_info=True)


def _failure_from(entry: FileEntry, error: BaseException) -> RenameFailure:
    if isinstance(error, RenameError):
        return RenameFailure(entry=entry, kind=error.kind, message=str(error))
    return RenameFailure(
        entry=entry,
        kind=RenameErrorKind.UNKNOWN,
        message=f"{type(error).__name__}: {error}",
    )


__all__ = ["BatchSuggestionPipeline", "ProgressCallback"]

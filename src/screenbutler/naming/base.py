"""Analyzer contract shared by model-backed and test implementations."""

from __future__ import annotations

from typing import Protocol

from screenbutler.ingestion.models import FileEntry


class AnalysisError(Exception):
    """Raised when a suggestion could not be produced for a file."""


class Analyzer(Protocol):
    """Produce a suggested base name (no extension) for one entry.

    ``visual`` selects content-based analysis of the image itself; otherwise
    only the filename is described to the model.
    """

    def analyze(self, entry: FileEntry, *, visual: bool) -> str: ...


__all__ = ["AnalysisError", "Analyzer"]

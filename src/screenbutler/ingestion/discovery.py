"""Directory listing and smart selection of rename candidates."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable

from screenbutler.classification.ambiguity import is_ambiguous

from .detectors import TypeDetector
from .models import FileEntry

LOGGER = logging.getLogger(__name__)


class DirectoryScanner:
    """List the immediate contents of a directory as ``FileEntry`` objects."""

    def __init__(self, *, include_hidden: bool = False) -> None:
        self.include_hidden = include_hidden

    def list_directory(self, root: Path) -> list[FileEntry]:
        """Return entries under ``root`` with directories first, then by name.

        Args:
            root: Directory to list.

        Returns:
            list[FileEntry]: Entries that could be stat-ed.

        Raises:
            NotADirectoryError: If ``root`` is not a directory.
            PermissionError: If the directory cannot be read.
        """
        root = root.expanduser().resolve()
        if not root.is_dir():
            raise NotADirectoryError(f"Not a directory: {root}")

        entries: list[FileEntry] = []
        for path in root.iterdir():
            if not self.include_hidden and path.name.startswith("."):
                continue
            entry = FileEntry.from_path(path)
            if entry is None:
                LOGGER.debug("Skipping unreadable entry %s", path)
                continue
            entries.append(entry)

        entries.sort(key=lambda item: (not item.is_directory, item.name.lower()))
        return entries


def select_ambiguous(
    entries: Iterable[FileEntry],
    detector: TypeDetector | None = None,
) -> list[FileEntry]:
    """Return supported, non-directory entries whose names look auto-generated."""
    detector = detector or TypeDetector()
    selected = [
        entry for entry in entries if detector.is_supported(entry) and is_ambiguous(entry.name)
    ]
    LOGGER.info("Smart selection found %d ambiguous file(s)", len(selected))
    return selected


__all__ = ["DirectoryScanner", "select_ambiguous"]

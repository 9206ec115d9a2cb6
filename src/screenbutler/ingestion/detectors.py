"""Extension-based file type detection."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from .models import FileEntry


class MediaKind(str, Enum):
    """Broad content families that the rename workflow understands."""

    IMAGE = "image"
    VIDEO = "video"
    DOCUMENT = "document"
    SPREADSHEET = "spreadsheet"


SUPPORTED_EXTENSIONS: dict[MediaKind, frozenset[str]] = {
    MediaKind.IMAGE: frozenset(
        {"jpg", "jpeg", "png", "heic", "heif", "gif", "webp", "tiff", "raw", "bmp"}
    ),
    MediaKind.VIDEO: frozenset({"mp4", "mov", "m4v", "avi", "wmv", "webm", "mkv", "3gp"}),
    MediaKind.DOCUMENT: frozenset({"pdf", "txt", "rtf", "doc", "docx", "pages"}),
    MediaKind.SPREADSHEET: frozenset({"xls", "xlsx", "csv", "numbers"}),
}

# Formats a vision model accepts once re-encoded as JPEG.
VISUAL_EXTENSIONS = frozenset({"jpg", "jpeg", "png", "gif", "heic", "bmp", "tiff"})


class TypeDetector:
    """Classify entries by extension into the supported media families."""

    def detect(self, entry: FileEntry) -> Optional[MediaKind]:
        """Return the media kind of ``entry`` or None when unsupported.

        Directories are never supported.
        """
        if entry.is_directory:
            return None
        extension = entry.extension
        for kind, extensions in SUPPORTED_EXTENSIONS.items():
            if extension in extensions:
                return kind
        return None

    def is_supported(self, entry: FileEntry) -> bool:
        return self.detect(entry) is not None

    def is_visual(self, entry: FileEntry) -> bool:
        """Whether the entry's pixels can be sent to the analyzer directly."""
        return not entry.is_directory and entry.extension in VISUAL_EXTENSIONS


__all__ = ["MediaKind", "SUPPORTED_EXTENSIONS", "VISUAL_EXTENSIONS", "TypeDetector"]

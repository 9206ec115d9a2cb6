"""Lexical heuristics that flag auto-generated or non-descriptive filenames.

The classifier looks at the name only: no file content, size, or timestamps.
It favours recall, so descriptive names that happen to embed a digit run or a
generic word are also flagged; the review step lets the user reject those.
"""

from __future__ import annotations

import os
import re
from typing import Iterable

_DATE_TIME_PATTERNS = tuple(
    re.compile(pattern, re.IGNORECASE)
    for pattern in (
        r"\d{4}-\d{2}-\d{2}",
        r"\d{1,2}-\d{1,2}-\d{2,4}",
        r"\d{2}\.\d{2}\.\d{2}",
        r"\d{2,4}[-_]?\d{1,2}[-_]?\d{1,2}",
        r"recording at \d{4}-\d{2}-\d{2}",
        r"\d{1,2}[:.]\d{1,2}([:.]\d{1,2})?",
        r"\d{2}\.\d{2}\.\d{2}$",
        r"^[A-Za-z]{2,4}[_-]?\d{3,6}$",
        r"^\d+$",
        r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
    )
)

GENERIC_WORDS = (
    "image",
    "img",
    "screenshot",
    "screen",
    "photo",
    "pic",
    "picture",
    "recording",
    "record",
    "video",
    "movie",
    "file",
    "document",
    "doc",
    "untitled",
    "unnamed",
    "new",
    "scan",
    "capture",
    "attachment",
    "download",
    "export",
    "import",
    "output",
    "print",
    "temp",
    "tmp",
)

CAMERA_PREFIXES = (
    "dsc",
    "img",
    "dcim",
    "mov",
    "vid",
    "clip",
    "100canon",
    "gopro",
    "iphoto",
    "photo",
    "still",
    "frame",
    "mvi_",
    "pict",
)

SCREENSHOT_PHRASES = (
    "screenshot",
    "screen shot",
    "screen_shot",
    "screensnap",
    "screen snap",
    "screen-snap",
    "screen-capture",
    "screen_capture",
)

COPY_MARKERS = ("copy", "copy of", "duplicate", " - copy", "_copy", "(copy)")

VERSION_TOKENS = (
    "v1",
    "v2",
    "v3",
    "ver",
    "version",
    "rev",
    "revision",
    " - v",
    "_v",
    "-v",
    "(v",
    "_rev",
    "-rev",
)

_SEPARATORS = (" ", "_", "-", "(")
_MIN_STEM_LENGTH = 3


def filename_stem(filename: str) -> str:
    """Return ``filename`` without its final extension."""
    return os.path.splitext(filename)[0]


def is_ambiguous(filename: str) -> bool:
    """Return True when ``filename`` looks generic enough to be worth renaming.

    Hidden files (leading ``.``) are never ambiguous. Matching is
    case-insensitive; the extension is removed before stem-based checks.

    Args:
        filename: Last path segment including its extension.

    Returns:
        bool: Whether any ambiguity rule matched.
    """
    if filename.startswith("."):
        return False

    lowered = filename.lower()
    if "recording at" in lowered or (lowered.startswith("recording") and "20" in lowered):
        return True

    stem = filename_stem(filename).lower()
    return (
        _matches_date_or_code(stem)
        or len(stem) < _MIN_STEM_LENGTH
        or _has_generic_word(stem)
        or stem.startswith(CAMERA_PREFIXES)
        or _contains_any(stem, SCREENSHOT_PHRASES)
        or _contains_any(stem, COPY_MARKERS)
        or _has_version_token(stem)
    )


def _matches_date_or_code(stem: str) -> bool:
    return any(pattern.search(stem) for pattern in _DATE_TIME_PATTERNS)


def _has_generic_word(stem: str) -> bool:
    for word in GENERIC_WORDS:
        if stem.startswith(word):
            return True
        if f"_{word}_" in stem or f"-{word}-" in stem:
            return True
        if stem.endswith((f"_{word}", f"-{word}")):
            return True
    return False


def _contains_any(stem: str, needles: Iterable[str]) -> bool:
    return any(needle in stem for needle in needles)


def _has_version_token(stem: str) -> bool:
    # A token found at position 0 only counts when it starts with a separator.
    for token in VERSION_TOKENS:
        index = stem.find(token)
        if index < 0:
            continue
        if index > 0 or token.startswith(_SEPARATORS):
            return True
    return False


__all__ = [
    "CAMERA_PREFIXES",
    "COPY_MARKERS",
    "GENERIC_WORDS",
    "SCREENSHOT_PHRASES",
    "VERSION_TOKENS",
    "filename_stem",
    "is_ambiguous",
]

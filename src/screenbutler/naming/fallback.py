"""Locally generated names used when no model suggestion is available."""

from __future__ import annotations

import random
from typing import Optional

from screenbutler.classification.ambiguity import filename_stem

DEFAULT_FALLBACK_PREFIX = "Renamed_File_"
_UNSAFE_CHARACTERS = ("/", ":", "\\")


def fallback_name(filename: str) -> str:
    """Derive a readable suggestion from the existing name.

    Underscores and hyphens become spaces and each word is capitalised, so
    ``IMG_4821.HEIC`` becomes ``Img 4821``.
    """
    spaced = filename_stem(filename).replace("_", " ").replace("-", " ")
    return " ".join(_capitalize(word) for word in spaced.split(" "))


def sanitize_base_name(
    suggestion: str,
    *,
    prefix: str = DEFAULT_FALLBACK_PREFIX,
    rng: Optional[random.Random] = None,
) -> str:
    """Make a suggestion safe to use as a base name.

    Path separators and colons become underscores. A blank suggestion is
    replaced with ``prefix`` followed by a random three-digit number.
    """
    if not suggestion.strip():
        generator = rng or random
        return f"{prefix}{generator.randint(100, 999)}"

    sanitized = suggestion
    for character in _UNSAFE_CHARACTERS:
        sanitized = sanitized.replace(character, "_")
    return sanitized


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


__all__ = ["DEFAULT_FALLBACK_PREFIX", "fallback_name", "sanitize_base_name"]

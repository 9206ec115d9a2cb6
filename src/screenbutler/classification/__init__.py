"""Filename ambiguity classification."""

from .ambiguity import filename_stem, is_ambiguous

__all__ = ["filename_stem", "is_ambiguous"]

"""Applying renames to the filesystem."""

from .renamer import FileRenamer, RenameError, RenameErrorKind, Renamer, destination_for

__all__ = ["FileRenamer", "RenameError", "RenameErrorKind", "Renamer", "destination_for"]

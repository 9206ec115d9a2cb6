"""Filesystem renames that keep the original extension."""

from __future__ import annotations

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Protocol

LOGGER = logging.getLogger(__name__)


class RenameErrorKind(str, Enum):
    """Reasons a single rename can fail."""

    NOT_FOUND = "not_found"
    DESTINATION_EXISTS = "destination_exists"
    ACCESS_DENIED = "access_denied"
    UNKNOWN = "unknown"


class RenameError(Exception):
    """Raised when a rename cannot be performed.

    Attributes:
        kind: Failure category.
    """

    def __init__(self, kind: RenameErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind


class Renamer(Protocol):
    """Rename ``path`` to ``new_base_name`` plus its existing extension."""

    def rename(self, path: Path, new_base_name: str) -> Path: ...


PermissionHandler = Callable[[Path], bool]


def destination_for(path: Path, new_base_name: str) -> Path:
    """Return the sibling path named ``new_base_name`` with ``path``'s extension."""
    return path.with_name(f"{new_base_name}{path.suffix}")


class FileRenamer:
    """Rename files in place after validating the move.

    Missing sources and occupied destinations are rejected before anything
    is touched. When the source or its directory is not writable, the optional
    ``permission_handler`` is asked to grant access; without one (or when it
    declines) the rename fails with ``ACCESS_DENIED``.
    """

    def __init__(self, permission_handler: Optional[PermissionHandler] = None) -> None:
        self._permission_handler = permission_handler

    def rename(self, path: Path, new_base_name: str) -> Path:
        """Rename ``path`` and return the new location.

        The destination is claimed with an exclusive create before the move,
        so an existing file is never replaced, even one that appears after
        validation.

        Args:
            path: Existing file to rename.
            new_base_name: New name without extension.

        Returns:
            Path: Destination path after the move.

        Raises:
            RenameError: If validation or the move itself fails.
        """
        if not path.exists():
            raise RenameError(RenameErrorKind.NOT_FOUND, f"The file doesn't exist: {path}")

        destination = destination_for(path, new_base_name)
        if destination == path:
            return path
        if destination.exists() and not _same_file(path, destination):
            raise _destination_taken(destination)

        for target in (path, destination.parent):
            if not os.access(target, os.W_OK) and not self._request_access(target):
                raise RenameError(
                    RenameErrorKind.ACCESS_DENIED,
                    f"You don't have permission to rename this file: {target}",
                )

        LOGGER.debug("Renaming %s -> %s", path, destination)
        try:
            if _same_file(path, destination):
                # Case-only change on a case-insensitive volume.
                os.replace(path, destination)
            else:
                _move_without_overwrite(path, destination)
        except FileExistsError as exc:
            raise _destination_taken(destination) from exc
        except PermissionError as exc:
            raise RenameError(RenameErrorKind.ACCESS_DENIED, str(exc)) from exc
        except FileNotFoundError as exc:
            raise RenameError(RenameErrorKind.NOT_FOUND, str(exc)) from exc
        except OSError as exc:
            raise RenameError(RenameErrorKind.UNKNOWN, f"Error: {exc}") from exc
        return destination

    def _request_access(self, target: Path) -> bool:
        if self._permission_handler is None:
            return False
        granted = self._permission_handler(target)
        LOGGER.info("Access request for %s %s", target, "granted" if granted else "declined")
        return granted


def _move_without_overwrite(source: Path, destination: Path) -> None:
    """Move ``source`` onto a freshly reserved ``destination``.

    Raises:
        FileExistsError: If ``destination`` already exists.
    """
    fd = os.open(destination, os.O_WRONLY | os.O_CREAT | os.O_EXCL, 0o600)
    os.close(fd)
    try:
        os.replace(source, destination)
    except BaseException:
        destination.unlink(missing_ok=True)
        raise


def _same_file(first: Path, second: Path) -> bool:
    try:
        return os.path.samefile(first, second)
    except OSError:
        return False


def _destination_taken(destination: Path) -> RenameError:
    return RenameError(
        RenameErrorKind.DESTINATION_EXISTS,
        f"A file with that name already exists: {destination.name}",
    )


__all__ = [
    "FileRenamer",
    "PermissionHandler",
    "RenameError",
    "RenameErrorKind",
    "Renamer",
    "destination_for",
]

"""Data models describing directory entries considered for renaming."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict

from screenbutler.classification.ambiguity import filename_stem


class FileEntry(BaseModel):
    """One filesystem object as seen by the most recent directory listing.

    Entries are immutable. Two entries are equal when their paths are equal,
    so they can key selection sets and suggestion mappings.

    Attributes:
        name: Last path segment including the extension.
        path: Location of the object on disk.
        is_directory: Whether the object is a directory.
        size_bytes: Size reported by the filesystem.
        modified_at: Last modification time, when available.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    path: Path
    is_directory: bool = False
    size_bytes: int = 0
    modified_at: Optional[datetime] = None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FileEntry):
            return NotImplemented
        return self.path == other.path

    def __hash__(self) -> int:
        return hash(self.path)

    @property
    def stem(self) -> str:
        """Name without its final extension."""
        if self.name.startswith(".") and self.name.count(".") == 1:
            return self.name
        return filename_stem(self.name)

    @property
    def extension(self) -> str:
        """Lower-case extension without the leading dot."""
        suffix = self.name[len(self.stem) :]
        return suffix.lstrip(".").lower()

    @classmethod
    def from_path(cls, path: Path) -> Optional["FileEntry"]:
        """Build an entry by stat-ing ``path``; returns None when it cannot be read."""
        try:
            stat = path.stat()
        except OSError:
            return None
        return cls(
            name=path.name,
            path=path,
            is_directory=path.is_dir(),
            size_bytes=stat.st_size,
            modified_at=datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc),
        )


__all__ = ["FileEntry"]

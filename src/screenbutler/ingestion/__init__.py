"""Directory listing and file type detection."""

from .detectors import MediaKind, TypeDetector
from .discovery import DirectoryScanner, select_ambiguous
from .models import FileEntry

__all__ = ["DirectoryScanner", "FileEntry", "MediaKind", "TypeDetector", "select_ambiguous"]

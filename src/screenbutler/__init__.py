"""ScreenButler finds generically named files and renames them with reviewed suggestions."""

from importlib import metadata as _metadata

from .classification import is_ambiguous

__all__ = ["__version__", "is_ambiguous"]


def __getattr__(name: str):
    if name != "__version__":
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    try:
        return _metadata.version("screenbutler")
    except _metadata.PackageNotFoundError:
        return "0.0.0+local"

"""Rename suggestion sources.

The DSPy-backed ``ModelAnalyzer`` lives in :mod:`screenbutler.naming.analyzer`
and is imported on demand so that classification-only commands stay fast.
"""

from .base import AnalysisError, Analyzer
from .fallback import DEFAULT_FALLBACK_PREFIX, fallback_name, sanitize_base_name

__all__ = [
    "AnalysisError",
    "Analyzer",
    "DEFAULT_FALLBACK_PREFIX",
    "fallback_name",
    "sanitize_base_name",
]

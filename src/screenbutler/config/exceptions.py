"""Errors raised while reading, merging, or validating ScreenButler settings."""


class ConfigError(Exception):
    """Raised for unreadable config files, malformed overrides, or invalid values."""

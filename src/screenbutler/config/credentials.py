"""Credential lookup for the hosted analysis provider."""

from __future__ import annotations

import os
from typing import Mapping, Protocol

from .models import LLMSettings

API_KEY_ENV_VAR = "OPENAI_API_KEY"


class CredentialStore(Protocol):
    """Read-only access to the provider credential."""

    def has_credential(self) -> bool: ...

    def get_credential(self) -> str: ...


class SettingsCredentialStore:
    """Resolve the API key from ``llm.api_key`` first, then the environment.

    Blank values count as missing so an empty ``api_key:`` entry in the config
    file does not mask the environment variable.
    """

    def __init__(
        self,
        settings: LLMSettings,
        *,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._settings = settings
        self._env = env if env is not None else os.environ

    def has_credential(self) -> bool:
        return bool(self.get_credential())

    def get_credential(self) -> str:
        configured = (self._settings.api_key or "").strip()
        if configured:
            return configured
        return self._env.get(API_KEY_ENV_VAR, "").strip()


__all__ = ["API_KEY_ENV_VAR", "CredentialStore", "SettingsCredentialStore"]

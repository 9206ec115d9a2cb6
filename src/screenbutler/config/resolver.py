"""Configuration resolution helpers."""

from __future__ import annotations

from collections.abc import Mapping as MappingABC
from copy import deepcopy
from typing import Any, Dict, Mapping, Sequence, get_args

import yaml
from pydantic import BaseModel, ValidationError

from .exceptions import ConfigError
from .models import ButlerConfig

ENV_PREFIX = "SCREENBUTLER__"


def resolve_with_precedence(
    *,
    defaults: ButlerConfig,
    file_overrides: Mapping[str, Any] | None = None,
    env_overrides: Mapping[str, Any] | None = None,
    cli_overrides: Mapping[str, Any] | None = None,
) -> ButlerConfig:
    """Merge configuration layers; later layers win.

    Precedence is defaults < file < environment < CLI. Keys in any layer may be
    dotted (``llm.api_key``) or nested mappings.

    Raises:
        ConfigError: If a layer is malformed or the merged values fail validation.
    """
    merged = defaults.model_dump(mode="python")
    for name, source in (
        ("file", file_overrides),
        ("environment", env_overrides),
        ("cli", cli_overrides),
    ):
        if source is None:
            continue
        merged = _deep_merge(merged, _expand_dotted(source, source_name=name))

    try:
        return ButlerConfig.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration values: {exc}") from exc


def parse_env_overrides(env: Mapping[str, str]) -> dict[str, Any]:
    """Collect ``SCREENBUTLER__SECTION__KEY`` variables into a nested mapping.

    Values are parsed as YAML scalars so ``true``/``4``/``null`` keep their types,
    except that text settings keep the raw string (an all-digit API key stays text).
    """
    overrides: dict[str, Any] = {}
    for key, raw_value in env.items():
        if not key.startswith(ENV_PREFIX):
            continue
        segments = [segment.lower() for segment in key[len(ENV_PREFIX) :].split("__") if segment]
        if not segments:
            continue
        try:
            value = parse_scalar(segments, raw_value)
        except yaml.YAMLError:
            value = raw_value
        assign_dotted(overrides, segments, value)
    return overrides


def parse_scalar(path: Sequence[str], raw_value: str) -> Any:
    """Parse ``raw_value`` as YAML, keeping it verbatim when ``path`` names a text setting.

    Raises:
        yaml.YAMLError: If ``raw_value`` is not valid YAML.
    """
    value = yaml.safe_load(raw_value)
    if value is not None and not isinstance(value, str) and _expects_text(path):
        return raw_value
    return value


def flatten_for_env(config: ButlerConfig) -> Dict[str, str]:
    """Render the config as the environment variables that would reproduce it."""
    flat: Dict[str, str] = {}

    def _walk(prefix: list[str], value: Any) -> None:
        if isinstance(value, dict):
            for key, child in value.items():
                _walk(prefix + [str(key)], child)
            return
        env_key = ENV_PREFIX + "__".join(part.upper() for part in prefix)
        if isinstance(value, list):
            flat[env_key] = yaml.safe_dump(value, default_flow_style=True).strip()
        else:
            flat[env_key] = "null" if value is None else str(value)

    _walk([], config.model_dump(mode="python"))
    return flat


def assign_dotted(target: dict[str, Any], path: Sequence[str], value: Any) -> None:
    """Assign ``value`` at ``path`` inside ``target``, creating sections as needed.

    Raises:
        ConfigError: If an intermediate segment already holds a non-mapping value.
    """
    node = target
    for segment in path[:-1]:
        existing = node.setdefault(segment, {})
        if not isinstance(existing, dict):
            raise ConfigError(
                f"Cannot assign into '{segment}' because it is not a mapping in the config file."
            )
        node = existing
    node[path[-1]] = value


def _expand_dotted(source: Mapping[str, Any], *, source_name: str) -> dict[str, Any]:
    if not isinstance(source, MappingABC):
        raise ConfigError(f"{source_name.capitalize()} overrides must be a mapping.")

    result: dict[str, Any] = {}
    for key, value in source.items():
        if not isinstance(key, str):
            raise ConfigError(f"{source_name.capitalize()} override keys must be strings.")
        if isinstance(value, MappingABC):
            value = _expand_dotted(value, source_name=source_name)
        path = key.split(".")
        current = _lookup(result, path[:-1])
        if isinstance(value, dict) and isinstance(current.get(path[-1]), dict):
            value = _deep_merge(current[path[-1]], value)
        try:
            assign_dotted(result, path, value)
        except ConfigError as exc:
            raise ConfigError(
                f"{source_name.capitalize()} override for {key} conflicts with existing value."
            ) from exc
    return result


def _expects_text(path: Sequence[str]) -> bool:
    model: type[BaseModel] = ButlerConfig
    for segment in path[:-1]:
        field = model.model_fields.get(segment)
        annotation = field.annotation if field else None
        if not (isinstance(annotation, type) and issubclass(annotation, BaseModel)):
            return False
        model = annotation
    field = model.model_fields.get(path[-1])
    if field is None:
        return False
    return field.annotation is str or str in get_args(field.annotation)


def _lookup(node: dict[str, Any], path: Sequence[str]) -> dict[str, Any]:
    for segment in path:
        child = node.get(segment)
        if not isinstance(child, dict):
            return {}
        node = child
    return node


def _deep_merge(base: Mapping[str, Any], overrides: Mapping[str, Any]) -> dict[str, Any]:
    merged = {key: deepcopy(value) for key, value in base.items()}
    for key, value in overrides.items():
        if isinstance(value, MappingABC) and isinstance(merged.get(key), MappingABC):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


__all__ = [
    "ENV_PREFIX",
    "resolve_with_precedence",
    "parse_env_overrides",
    "parse_scalar",
    "flatten_for_env",
    "assign_dotted",
]

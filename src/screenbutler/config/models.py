"""Configuration models describing ScreenButler settings."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ButlerBaseModel(BaseModel):
    """Shared configuration for ScreenButler Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class LLMSettings(ButlerBaseModel):
    """Language-model configuration used for rename suggestions.

    Attributes:
        provider: Identifier for the language-model provider.
        vision_model: Model used when image content is sent for analysis.
        text_model: Model used for filename-only prompts.
        api_base_url: Optional custom endpoint for OpenAI-compatible gateways.
        api_key: Optional credential for hosted providers.
        vision_temperature: Sampling temperature for image analysis.
        vision_max_tokens: Maximum response tokens for image analysis.
        text_max_tokens: Maximum response tokens for filename-only prompts.
        request_timeout_seconds: Per-request timeout passed to the provider.
    """

    provider: str = "openai"
    vision_model: str = "gpt-4o"
    text_model: str = "gpt-3.5-turbo"
    api_base_url: Optional[str] = None
    api_key: Optional[str] = None
    vision_temperature: float = 0.5
    vision_max_tokens: int = 150
    text_max_tokens: int = 100
    request_timeout_seconds: int = 30


class ProcessingOptions(ButlerBaseModel):
    """Options governing candidate discovery and analysis.

    Attributes:
        include_hidden: Whether hidden files appear in directory listings.
        max_workers: Upper bound on concurrent analysis and rename tasks.
        ambiguous_only: Whether `rename` preselects only ambiguous names.
    """

    include_hidden: bool = False
    max_workers: int = Field(default=4, ge=1)
    ambiguous_only: bool = True


class RenameOptions(ButlerBaseModel):
    """Settings applied when committing approved renames.

    Attributes:
        fallback_prefix: Prefix for generated names when a suggestion is blank.
    """

    fallback_prefix: str = "Renamed_File_"


class LoggingSettings(ButlerBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
        log_file: Optional path of a rotating log file.
        max_size_mb: Maximum log size before rotation.
        backup_count: Number of historical log files to retain.
    """

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "WARNING"
    log_file: Optional[str] = None
    max_size_mb: int = 10
    backup_count: int = 3


class CLIOptions(ButlerBaseModel):
    """CLI behavior defaults and presentation preferences.

    Attributes:
        quiet_default: Whether commands suppress non-error output by default.
        summary_default: Whether commands only print summary lines by default.
    """

    quiet_default: bool = False
    summary_default: bool = False


class ButlerConfig(ButlerBaseModel):
    """Top-level configuration struct for ScreenButler.

    Attributes:
        llm: Language model settings.
        processing: Discovery and analysis settings.
        rename: Rename commit settings.
        logging: Logging configuration.
        cli: CLI presentation defaults.
    """

    llm: LLMSettings = Field(default_factory=LLMSettings)
    processing: ProcessingOptions = Field(default_factory=ProcessingOptions)
    rename: RenameOptions = Field(default_factory=RenameOptions)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    cli: CLIOptions = Field(default_factory=CLIOptions)


__all__ = [
    "ButlerBaseModel",
    "LLMSettings",
    "ProcessingOptions",
    "RenameOptions",
    "LoggingSettings",
    "CLIOptions",
    "ButlerConfig",
]

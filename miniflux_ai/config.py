"""
Configuration management using YAML files, dataclasses and environment variables.

This module defines all configuration dataclasses and provides loading
from an optional YAML file with defaults, followed by environment overrides.
Configuration sections:
- MinifluxConfig: feed reader API settings
- ProviderConfig: LLM provider settings
- ScheduleConfig: cron trigger settings
- ProcessingConfig: batch size and fan-out limits
- PromptsConfig: custom prompt directory and naming convention
- LoggingConfig: logging behavior
- AppConfig: root configuration container
"""

from __future__ import annotations

from dataclasses import dataclass, field
import os
from typing import Any, Mapping

import yaml
from apscheduler.triggers.cron import CronTrigger


DEFAULT_PROCESSING_INTERVAL_CRON = "*/1 * * * *"

DEFAULT_API_KEY_ENVS = {
    "openai": "OPENAI_API_KEY",
    "gemini": "GOOGLE_API_KEY",
}


@dataclass
class MinifluxConfig:
    """Configuration for the Miniflux REST API.

    Attributes:
        base_url: Root URL of the Miniflux instance (without /v1)
        auth_token: API token sent as X-Auth-Token
        entry_limit: Maximum unread entries requested per feed
        timeout_seconds: HTTP request timeout
        trust_env: Whether to respect system proxy settings
    """

    base_url: str | None = None
    auth_token: str | None = None
    entry_limit: int = 100
    timeout_seconds: float = 30.0
    trust_env: bool = True


@dataclass
class ProviderConfig:
    """Configuration for the classification LLM provider.

    Attributes:
        name: Provider name ("openai" or "gemini")
        model: Model identifier
        api_key_env: Environment variable holding the API key (provider default if unset)
        base_url: Base URL for the provider API (provider default if unset)
        api_key: Optional inline API key (overrides env var)
        timeout_seconds: HTTP request timeout
        trust_env: Whether to respect system proxy settings for API requests
    """

    name: str = "openai"
    model: str = "gpt-5-nano"
    api_key_env: str | None = None
    base_url: str | None = None
    api_key: str | None = None
    timeout_seconds: float = 60.0
    trust_env: bool = True


@dataclass
class ScheduleConfig:
    """Configuration for the recurring trigger.

    Attributes:
        cron: Five-field crontab expression
        max_instances: How many ticks may run at the same time
    """

    cron: str = DEFAULT_PROCESSING_INTERVAL_CRON
    max_instances: int = 10


@dataclass
class ProcessingConfig:
    """Configuration for a single pipeline tick.

    Attributes:
        batch_size: Maximum entries classified per tick (required)
        concurrency: Maximum in-flight fan-out requests, 0 for unbounded
    """

    batch_size: int | None = None
    concurrency: int = 0


@dataclass
class PromptsConfig:
    """Configuration for custom prompt files.

    Attributes:
        directory: Directory scanned for prompt files at startup
        prefix: Filename prefix preceding the category name
        suffix: Filename suffix following the category name
    """

    directory: str = "prompts"
    prefix: str = "custom-prompt-"
    suffix: str = ".md"


@dataclass
class LoggingConfig:
    """Configuration for logging behavior.

    Attributes:
        level: Logging level ("DEBUG", "INFO", "WARNING", "ERROR")
        console: Whether to log to console
        file: Whether to log to file
        format: Log file format ("jsonl" or "plain")
        directory: Directory for log files
        filename: Name of the main log file
        llm_log_enabled: Whether to write oracle decisions to a separate log
        llm_log_file: Name of the LLM decision log file
    """

    level: str = "INFO"
    console: bool = True
    file: bool = False
    format: str = "jsonl"
    directory: str = "logs"
    filename: str = "miniflux-ai.jsonl"
    llm_log_enabled: bool = False
    llm_log_file: str = "llm.jsonl"


@dataclass
class AppConfig:
    """Root configuration container aggregating all config sections."""

    miniflux: MinifluxConfig = field(default_factory=MinifluxConfig)
    provider: ProviderConfig = field(default_factory=ProviderConfig)
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    prompts: PromptsConfig = field(default_factory=PromptsConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# env var -> (section, field, converter)
_ENV_OVERRIDES: dict[str, tuple[str, str, Any]] = {
    "MINIFLUX_URL": ("miniflux", "base_url", str),
    "MINIFLUX_AUTH_TOKEN": ("miniflux", "auth_token", str),
    "PROCESSING_INTERVAL_CRON": ("schedule", "cron", str),
    "PROCESSING_BATCH_SIZE": ("processing", "batch_size", int),
    "PROCESSING_CONCURRENCY": ("processing", "concurrency", int),
    "LOGGING_LEVEL": ("logging", "level", str),
    "CUSTOM_PROMPTS_DIR": ("prompts", "directory", str),
}


def load_config(path: str | None, environ: Mapping[str, str] | None = None) -> AppConfig:
    """Load configuration from an optional YAML file, then apply env overrides."""
    raw: dict[str, Any] = {}
    if path:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}

    cfg = _merge_config(AppConfig(), raw)
    return apply_env_overrides(cfg, os.environ if environ is None else environ)


def apply_env_overrides(cfg: AppConfig, environ: Mapping[str, str]) -> AppConfig:
    """Override config fields from environment variables that are set and non-empty."""
    for env_name, (section, name, convert) in _ENV_OVERRIDES.items():
        value = environ.get(env_name)
        if value is None or value.strip() == "":
            continue
        try:
            converted = convert(value.strip())
        except ValueError as exc:
            raise ValueError(f"Invalid value for {env_name}: {value!r}") from exc
        setattr(getattr(cfg, section), name, converted)
    return cfg


def validate_config(cfg: AppConfig) -> None:
    """Raise ValueError when required settings are missing or malformed."""
    if not cfg.miniflux.base_url:
        raise ValueError("Missing Miniflux URL (set MINIFLUX_URL)")
    if not cfg.miniflux.auth_token:
        raise ValueError("Missing Miniflux auth token (set MINIFLUX_AUTH_TOKEN)")
    if cfg.processing.batch_size is None:
        raise ValueError("Missing batch size (set PROCESSING_BATCH_SIZE)")
    if not isinstance(cfg.processing.batch_size, int) or cfg.processing.batch_size < 0:
        raise ValueError(f"Batch size must be a non-negative integer: {cfg.processing.batch_size!r}")
    if not isinstance(cfg.processing.concurrency, int) or cfg.processing.concurrency < 0:
        raise ValueError(f"Concurrency must be a non-negative integer: {cfg.processing.concurrency!r}")
    if not isinstance(cfg.schedule.max_instances, int) or cfg.schedule.max_instances < 1:
        raise ValueError(f"schedule.max_instances must be an integer of at least 1: {cfg.schedule.max_instances!r}")
    try:
        CronTrigger.from_crontab(cfg.schedule.cron)
    except ValueError as exc:
        raise ValueError(f"Invalid cron expression {cfg.schedule.cron!r}: {exc}") from exc


def get_api_key(cfg: ProviderConfig) -> str | None:
    """Get API key from inline config or environment variable."""
    if cfg.api_key:
        return cfg.api_key
    env_name = cfg.api_key_env or DEFAULT_API_KEY_ENVS.get(cfg.name.lower().strip())
    if not env_name:
        return None
    return os.getenv(env_name)


def _merge_config(base: AppConfig, raw: dict[str, Any]) -> AppConfig:
    """Merge raw YAML config into base AppConfig."""
    data = _asdict(base)
    for key, value in raw.items():
        if key not in data:
            continue
        if isinstance(value, dict) and isinstance(data[key], dict):
            data[key].update(value)
        else:
            data[key] = value
    return _fromdict(data)


def _asdict(cfg: AppConfig) -> dict[str, Any]:
    """Convert AppConfig to nested dictionary."""
    return {
        "miniflux": {
            "base_url": cfg.miniflux.base_url,
            "auth_token": cfg.miniflux.auth_token,
            "entry_limit": cfg.miniflux.entry_limit,
            "timeout_seconds": cfg.miniflux.timeout_seconds,
            "trust_env": cfg.miniflux.trust_env,
        },
        "provider": {
            "name": cfg.provider.name,
            "model": cfg.provider.model,
            "api_key_env": cfg.provider.api_key_env,
            "base_url": cfg.provider.base_url,
            "api_key": cfg.provider.api_key,
            "timeout_seconds": cfg.provider.timeout_seconds,
            "trust_env": cfg.provider.trust_env,
        },
        "schedule": {
            "cron": cfg.schedule.cron,
            "max_instances": cfg.schedule.max_instances,
        },
        "processing": {
            "batch_size": cfg.processing.batch_size,
            "concurrency": cfg.processing.concurrency,
        },
        "prompts": {
            "directory": cfg.prompts.directory,
            "prefix": cfg.prompts.prefix,
            "suffix": cfg.prompts.suffix,
        },
        "logging": {
            "level": cfg.logging.level,
            "console": cfg.logging.console,
            "file": cfg.logging.file,
            "format": cfg.logging.format,
            "directory": cfg.logging.directory,
            "filename": cfg.logging.filename,
            "llm_log_enabled": cfg.logging.llm_log_enabled,
            "llm_log_file": cfg.logging.llm_log_file,
        },
    }


def _fromdict(data: dict[str, Any]) -> AppConfig:
    """Reconstruct AppConfig from nested dictionary."""
    return AppConfig(
        miniflux=MinifluxConfig(**data["miniflux"]),
        provider=ProviderConfig(**data["provider"]),
        schedule=ScheduleConfig(**data["schedule"]),
        processing=ProcessingConfig(**data["processing"]),
        prompts=PromptsConfig(**data["prompts"]),
        logging=LoggingConfig(**data["logging"]),
    )

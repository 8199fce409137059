"""Centralized configuration management for the autolinks engine."""

import os
from pathlib import Path
from typing import Callable, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .exceptions import ConfigurationError


class CustomAutolinkConfig(BaseModel):
    """A user-configured reference pattern, e.g. ``JIRA-<num>``."""
    model_config = ConfigDict(populate_by_name=True)

    prefix: str = Field("", description="Short prefix that starts a reference, e.g. 'JIRA-' or '#'")
    url: str = Field("", description="URL template; '<num>' is replaced with the matched id")
    alphanumeric: bool = Field(False, description="Allow letters as well as digits in the id")
    ignore_case: bool = Field(
        False,
        alias="ignoreCase",
        description="Match the prefix case-insensitively"
    )
    title: Optional[str] = Field(None, description="Link title template; may contain '<num>'")


class CacheConfig(BaseModel):
    """Reference group cache configuration."""
    refset_ttl_seconds: float = Field(
        60 * 60,
        description="Seconds since last access before cached reference groups expire"
    )


class EnrichmentConfig(BaseModel):
    """Issue/pull request enrichment configuration."""
    pause_timeout_seconds: float = Field(
        0.25,
        description="How long to wait for enrichment before rendering a loading state"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "WARNING"
    rich: bool = True


class AutolinksConfig(BaseModel):
    """Complete autolinks configuration."""

    autolinks: list[CustomAutolinkConfig] = Field(default_factory=list)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    enrichment: EnrichmentConfig = Field(default_factory=EnrichmentConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


ConfigListener = Callable[[AutolinksConfig], None]

# Global config instance
_config: Optional[AutolinksConfig] = None
_listeners: list[ConfigListener] = []


def _notify() -> None:
    config = get_config()
    for listener in list(_listeners):
        listener(config)


def add_change_listener(listener: ConfigListener) -> None:
    """Register a callback invoked whenever the active configuration changes."""
    if listener not in _listeners:
        _listeners.append(listener)


def remove_change_listener(listener: ConfigListener) -> None:
    if listener in _listeners:
        _listeners.remove(listener)


def get_config() -> AutolinksConfig:
    """Get the current configuration (loads default if not set)."""
    global _config
    if _config is None:
        _config = AutolinksConfig()
    return _config


def set_config(config: AutolinksConfig) -> AutolinksConfig:
    """Replace the active configuration and notify listeners."""
    global _config
    _config = config
    _notify()
    return _config


def load_config(config_path: Path) -> AutolinksConfig:
    """Load configuration from a YAML file."""
    try:
        with open(config_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Could not read config file {config_path}: {e}") from e

    try:
        config = AutolinksConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid config file {config_path}: {e}") from e

    return set_config(config)


def reset_config() -> None:
    """Reset to default configuration."""
    global _config
    _config = None
    _notify()


def save_default_config(output_path: Path) -> None:
    """Save a starter configuration to a YAML file."""
    config = AutolinksConfig(
        autolinks=[
            CustomAutolinkConfig(
                prefix="JIRA-",
                url="https://jira.example.com/browse/JIRA-<num>",
                title="Open JIRA-<num>",
            ),
        ]
    )

    data = config.model_dump(by_alias=True)

    with open(output_path, 'w', encoding='utf-8') as f:
        yaml.dump(data, f, default_flow_style=False, sort_keys=False, allow_unicode=True)


def find_config_file() -> Optional[Path]:
    """Find a config file in standard locations."""
    search_paths = [
        Path.cwd() / 'autolinks.yaml',
        Path.cwd() / 'autolinks.yml',
        Path.cwd() / '.autolinks.yaml',
        Path.home() / '.config' / 'autolinks' / 'config.yaml',
    ]

    # Also check environment variable
    env_config = os.environ.get('AUTOLINKS_CONFIG')
    if env_config:
        search_paths.insert(0, Path(env_config))

    for path in search_paths:
        if path.exists():
            return path

    return None

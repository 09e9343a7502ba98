"""
Configuration loader for kubelog.

This module provides configuration management with:
- Multiple configuration sources (files, dicts, env vars)
- Schema validation
- Type coercion
- Configuration merging
"""

import os
import json
import yaml
import toml
from pathlib import Path
from typing import Optional, Dict, Any, List, Union
from pydantic import BaseModel, Field, field_validator, ValidationError, ConfigDict

from .logging import get_logger
from .errors import ConfigurationError


logger = get_logger("kubelog.config")

ENV_PREFIX = "KUBELOG_"
OVERRIDE_PRIORITY = 100


class ConfigSource(BaseModel):
    """Configuration source definition."""
    path: Optional[Path] = None
    data: Dict[str, Any] = Field(default_factory=dict)
    priority: int = 0
    source_type: str = "dict"

    model_config = ConfigDict(arbitrary_types_allowed=True)


class ApiConfig(BaseModel):
    """API server connection settings."""
    base_url: str = "http://localhost:8001"
    token: Optional[str] = None
    headers: Dict[str, str] = Field(default_factory=dict)
    verify_ssl: bool = True
    connect_timeout: float = 10.0
    request_timeout: float = 15.0

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, v):
        """Require an absolute http(s) URL."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"base_url must start with http:// or https://: {v}")
        return v.rstrip("/")


class StreamConfig(BaseModel):
    """Log streaming settings."""
    max_retries: int = Field(default=3, ge=0)
    base_retry_delay: float = Field(default=1.0, gt=0)
    encoding: str = "utf-8"
    decode_errors: str = "replace"

    @field_validator('decode_errors')
    @classmethod
    def validate_decode_errors(cls, v):
        """Only strict and replace are meaningful for a log stream."""
        if v not in ("strict", "replace"):
            raise ValueError(f"decode_errors must be 'strict' or 'replace': {v}")
        return v


class ExportConfig(BaseModel):
    """Export defaults."""
    directory: Path = Field(default_factory=lambda: Path.cwd())
    include_timestamps: bool = True
    include_metadata: bool = True


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "WARNING"
    format: str = "console"
    directory: Path = Field(default_factory=lambda: Path.home() / ".kubelog" / "logs")
    enable_file: bool = False
    max_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5
    enable_sentry: bool = False
    sentry_dsn: Optional[str] = None

    @field_validator('level')
    @classmethod
    def validate_level(cls, v):
        """Validate log level."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}")
        return v.upper()

    @field_validator('format')
    @classmethod
    def validate_format(cls, v):
        if v not in ("json", "console"):
            raise ValueError(f"Invalid log format: {v}")
        return v


class KubeLogConfig(BaseModel):
    """Main kubelog configuration."""
    app_name: str = "kubelog"
    debug: bool = False  # forces DEBUG logging

    api: ApiConfig = Field(default_factory=ApiConfig)
    stream: StreamConfig = Field(default_factory=StreamConfig)
    export: ExportConfig = Field(default_factory=ExportConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        validate_assignment=True
    )


_SECTIONS = ("api", "stream", "export", "logging")


class ConfigLoader:
    """Configuration loader with multiple source support."""

    def __init__(self, environ: Optional[Dict[str, str]] = None):
        """
        Initialize configuration loader.

        Args:
            environ: Environment mapping (defaults to os.environ)
        """
        self._sources: List[ConfigSource] = []
        self._config: Optional[KubeLogConfig] = None
        self._environ = environ if environ is not None else os.environ

    def add_source(
        self,
        source: Union[str, Path, Dict[str, Any]],
        priority: int = 0,
        source_type: Optional[str] = None
    ) -> None:
        """
        Add configuration source.

        Args:
            source: Configuration source (file path or dict)
            priority: Source priority (higher wins)
            source_type: Source type (auto-detected if None)
        """
        if isinstance(source, (str, Path)):
            path = Path(source).expanduser()
            if not source_type:
                source_type = self._detect_source_type(path)

            self._sources.append(ConfigSource(
                path=path,
                priority=priority,
                source_type=source_type
            ))
        else:
            self._sources.append(ConfigSource(
                data=source,
                priority=priority,
                source_type="dict"
            ))

        self._sources.sort(key=lambda s: s.priority)

    def _detect_source_type(self, path: Path) -> str:
        """Detect configuration file type."""
        suffix = path.suffix.lower()
        if suffix == ".json":
            return "json"
        elif suffix in (".yaml", ".yml"):
            return "yaml"
        elif suffix == ".toml":
            return "toml"
        else:
            raise ConfigurationError(f"Unknown config file type: {suffix}")

    def load(self) -> KubeLogConfig:
        """
        Load configuration from all sources.

        Sources are merged lowest priority first so higher priorities win.
        Environment variables override files but not explicit overrides
        (priority >= OVERRIDE_PRIORITY).

        Returns:
            Merged configuration
        """
        merged_data: Dict[str, Any] = {}
        env_applied = False

        for source in self._sources:
            if source.priority >= OVERRIDE_PRIORITY and not env_applied:
                merged_data = self._deep_merge(merged_data, self._load_env_vars())
                env_applied = True
            merged_data = self._deep_merge(merged_data, self._load_source(source))

        if not env_applied:
            merged_data = self._deep_merge(merged_data, self._load_env_vars())

        try:
            self._config = KubeLogConfig(**merged_data)
        except ValidationError as e:
            errors = []
            for error in e.errors():
                field = ".".join(str(x) for x in error["loc"])
                errors.append(f"{field}: {error['msg']}")

            raise ConfigurationError(
                f"Configuration validation failed: {'; '.join(errors)}"
            ) from e

        logger.debug("configuration_loaded", sources=len(self._sources))
        return self._config

    def _load_source(self, source: ConfigSource) -> Dict[str, Any]:
        """Load data from a configuration source."""
        if source.path is None:
            return source.data

        if not source.path.exists():
            logger.warning("config_file_not_found", path=str(source.path))
            return {}

        content = source.path.read_text(encoding="utf-8")

        try:
            if source.source_type == "json":
                return json.loads(content)
            elif source.source_type == "yaml":
                return yaml.safe_load(content) or {}
            elif source.source_type == "toml":
                return toml.loads(content)
        except (ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(
                f"Could not parse {source.path}: {e}", cause=e
            ) from e

        raise ConfigurationError(f"Unknown source type: {source.source_type}")

    def _load_env_vars(self) -> Dict[str, Any]:
        """
        Load configuration from environment variables.

        KUBELOG_API_BASE_URL becomes {"api": {"base_url": ...}};
        KUBELOG_DEBUG becomes {"debug": ...}.
        """
        result: Dict[str, Any] = {}

        for key, value in self._environ.items():
            if not key.startswith(ENV_PREFIX):
                continue

            key = key[len(ENV_PREFIX):].lower()
            section, _, rest = key.partition("_")

            if section in _SECTIONS and rest:
                result.setdefault(section, {})[rest] = self._convert_value(value)
            else:
                result[key] = self._convert_value(value)

        return result

    def _convert_value(self, value: str) -> Any:
        """Convert string value to appropriate type."""
        if value.lower() in ("true", "yes", "on"):
            return True
        elif value.lower() in ("false", "no", "off"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        return value

    def _deep_merge(self, base: Dict[str, Any], update: Dict[str, Any]) -> Dict[str, Any]:
        """Deep merge two dictionaries."""
        result = base.copy()

        for key, value in update.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value

        return result

    def get_config(self) -> KubeLogConfig:
        """Get current configuration."""
        if self._config is None:
            raise ConfigurationError("Configuration not loaded")
        return self._config


DEFAULT_CONFIG_PATHS = (
    Path.home() / ".kubelog" / "config.yaml",
    Path.home() / ".kubelog" / "config.json",
    Path("./kubelog.yaml"),
    Path("./kubelog.json"),
)


def load_config(
    config_paths: Optional[List[Union[str, Path]]] = None,
    extra_config: Optional[Dict[str, Any]] = None,
    environ: Optional[Dict[str, str]] = None
) -> KubeLogConfig:
    """
    Load configuration from standard locations.

    Args:
        config_paths: Additional configuration paths
        extra_config: Extra configuration to merge (highest priority)
        environ: Environment mapping override

    Returns:
        Loaded configuration
    """
    loader = ConfigLoader(environ=environ)

    for path in DEFAULT_CONFIG_PATHS:
        if path.exists():
            loader.add_source(path, priority=10)

    if config_paths:
        for i, path in enumerate(config_paths):
            loader.add_source(path, priority=20 + i)

    if extra_config:
        loader.add_source(extra_config, priority=OVERRIDE_PRIORITY)

    return loader.load()


__all__ = [
    'KubeLogConfig',
    'ApiConfig',
    'StreamConfig',
    'ExportConfig',
    'LoggingConfig',
    'ConfigLoader',
    'load_config',
]

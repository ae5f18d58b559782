"""
Arbi Configuration Management.

Handles loading, saving, and validating configuration from various sources:
- Default values
- Configuration file (TOML)
- Environment variables
- Command-line arguments
"""

from __future__ import annotations

import json
import os
import re
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Optional, List
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from arbi_cli.engine.models import ScanParameters
from arbi_cli.exceptions import ConfigurationError


DEFAULT_CONFIG_DIR = Path.home() / ".config" / "arbi"
DEFAULT_CONFIG_FILE = "config.toml"
DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "arbi"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

_TRUE_VALUES = ("true", "1", "yes", "on")


@dataclass
class ValidationError:
    """Validation error for configuration."""
    field: str
    message: str
    severity: str  # "error" or "warning"

    def __str__(self) -> str:
        return f"[{self.severity.upper()}] {self.field}: {self.message}"


@dataclass
class SchedulerConfig:
    """Configuration for the cron scheduler.

    One enable flag per job, named after the job kind. A disabled job
    is registered but its trigger stays inactive until enabled.
    """

    opportunity_scan: bool = True
    autonomous_listing: bool = True
    order_fulfillment: bool = True
    cleanup: bool = True
    daily_reset: bool = True
    payout_processing: bool = True

    # Start all enabled jobs when the daemon starts
    autostart: bool = True

    timezone: str = "UTC"
    misfire_grace_time: int = 60 * 5  # seconds
    allow_overlap: bool = False
    max_history: int = 1000

    def is_enabled(self, kind: Any) -> bool:
        """Return the enable flag for a JobKind."""
        return bool(getattr(self, kind.name.lower()))


@dataclass
class BackendConfig:
    """Configuration for the marketplace backend API."""

    base_url: str = "http://localhost:3000"
    timeout: float = 30.0


@dataclass
class ServerConfig:
    """Configuration for the management HTTP API."""

    host: str = "127.0.0.1"
    port: int = 8400


@dataclass
class LoggingConfig:
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[Path] = None


@dataclass
class ArbiConfig:
    """Main configuration container for Arbi."""

    config_dir: Path = DEFAULT_CONFIG_DIR
    data_dir: Path = DEFAULT_DATA_DIR

    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    scan: ScanParameters = field(default_factory=ScanParameters)
    backend: BackendConfig = field(default_factory=BackendConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def pid_file(self) -> Path:
        return self.data_dir / "arbi.pid"


def load_config(
    config_path: Optional[Path] = None,
    env_prefix: str = "ARBI_"
) -> ArbiConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file
    3. Default values

    Args:
        config_path: Path to config file (default: ~/.config/arbi/config.toml)
        env_prefix: Prefix for environment variables

    Returns:
        Loaded configuration

    Raises:
        ConfigurationError: If the config file can not be parsed
    """
    config = ArbiConfig()

    if config_path is None:
        env_config_dir = os.environ.get(f"{env_prefix}CONFIG_DIR")
        if env_config_dir:
            config_path = Path(env_config_dir) / DEFAULT_CONFIG_FILE
        else:
            config_path = DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILE

    if config_path.exists():
        config = _load_from_file(config_path, config)

    config = _load_from_env(config, env_prefix)

    return config


def _apply_section(target: Any, values: dict[str, Any]) -> None:
    for key, value in values.items():
        if hasattr(target, key):
            setattr(target, key, value)


def _load_from_file(path: Path, config: ArbiConfig) -> ArbiConfig:
    """Load configuration from a TOML file."""
    try:
        with open(path, "rb") as f:
            data = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigurationError(f"Failed to load config from {path}: {e}") from e

    for section in ("scheduler", "scan", "backend", "server"):
        if isinstance(data.get(section), dict):
            _apply_section(getattr(config, section), data[section])

    if isinstance(data.get("logging"), dict):
        _apply_section(config.logging, data["logging"])
        if config.logging.file:
            config.logging.file = Path(config.logging.file)

    if "config_dir" in data:
        config.config_dir = Path(data["config_dir"])
    if "data_dir" in data:
        config.data_dir = Path(data["data_dir"])

    return config


def _load_from_env(config: ArbiConfig, prefix: str) -> ArbiConfig:
    """Load configuration from environment variables."""

    # Per-job enable flags, e.g. ARBI_JOB_CLEANUP=false
    for flag in ("opportunity_scan", "autonomous_listing", "order_fulfillment",
                 "cleanup", "daily_reset", "payout_processing"):
        if env_val := os.environ.get(f"{prefix}JOB_{flag.upper()}"):
            setattr(config.scheduler, flag, env_val.lower() in _TRUE_VALUES)

    if env_val := os.environ.get(f"{prefix}AUTOSTART"):
        config.scheduler.autostart = env_val.lower() in _TRUE_VALUES
    if env_val := os.environ.get(f"{prefix}TIMEZONE"):
        config.scheduler.timezone = env_val
    if env_val := os.environ.get(f"{prefix}ALLOW_OVERLAP"):
        config.scheduler.allow_overlap = env_val.lower() in _TRUE_VALUES

    if env_val := os.environ.get(f"{prefix}BACKEND_URL"):
        config.backend.base_url = env_val
    if env_val := os.environ.get(f"{prefix}BACKEND_TIMEOUT"):
        config.backend.timeout = float(env_val)

    if env_val := os.environ.get(f"{prefix}HOST"):
        config.server.host = env_val
    if env_val := os.environ.get(f"{prefix}PORT"):
        config.server.port = int(env_val)

    if env_val := os.environ.get(f"{prefix}MIN_SCORE"):
        config.scan.min_score = float(env_val)
    if env_val := os.environ.get(f"{prefix}AUTO_BUY_ENABLED"):
        config.scan.auto_buy_enabled = env_val.lower() in _TRUE_VALUES
    if env_val := os.environ.get(f"{prefix}DAILY_BUDGET"):
        config.scan.daily_budget = float(env_val)

    if env_val := os.environ.get(f"{prefix}LOG_LEVEL"):
        config.logging.level = env_val.upper()
    if env_val := os.environ.get(f"{prefix}LOG_FILE"):
        config.logging.file = Path(env_val)

    if env_val := os.environ.get(f"{prefix}CONFIG_DIR"):
        config.config_dir = Path(env_val)
    if env_val := os.environ.get(f"{prefix}DATA_DIR"):
        config.data_dir = Path(env_val)

    return config


def _toml_value(value: Any) -> str:
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(_toml_value(v) for v in value) + "]"
    return json.dumps(str(value))


def save_config(config: ArbiConfig, path: Optional[Path] = None) -> Path:
    """
    Save configuration to a TOML file.

    Args:
        config: Configuration to save
        path: Path to save to (default: config.config_dir / config.toml)

    Returns:
        Path the configuration was written to
    """
    if path is None:
        path = config.config_dir / DEFAULT_CONFIG_FILE

    path.parent.mkdir(parents=True, exist_ok=True)

    lines = [
        "# Arbi Configuration",
        "# Generated automatically - edit with care",
        "",
        f"config_dir = {_toml_value(config.config_dir)}",
        f"data_dir = {_toml_value(config.data_dir)}",
    ]

    for section in ("scheduler", "scan", "backend", "server"):
        section_obj = getattr(config, section)
        lines.extend(["", f"[{section}]"])
        for fld in fields(section_obj):
            lines.append(f"{fld.name} = {_toml_value(getattr(section_obj, fld.name))}")

    lines.extend([
        "",
        "[logging]",
        f"level = {_toml_value(config.logging.level)}",
        f"format = {_toml_value(config.logging.format)}",
    ])
    if config.logging.file:
        lines.append(f"file = {_toml_value(config.logging.file)}")

    with open(path, "w") as f:
        f.write("\n".join(lines) + "\n")

    return path


def ensure_directories(config: ArbiConfig) -> None:
    """Ensure all required directories exist."""
    config.config_dir.mkdir(parents=True, exist_ok=True)
    config.data_dir.mkdir(parents=True, exist_ok=True)


def _validate_url(url: str) -> bool:
    """Validate a URL format."""
    url_pattern = r"^https?://[^\s/$.?#].[^\s]*$"
    return bool(re.match(url_pattern, url))


def _validate_timezone(name: str) -> bool:
    try:
        ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return False
    return True


def validate_config(config: Optional[ArbiConfig] = None) -> List[ValidationError]:
    """
    Validate configuration and return list of errors.

    Args:
        config: Configuration to validate (default: loaded from file)

    Returns:
        List of validation errors (empty if valid)
    """
    if config is None:
        config = load_config()

    errors: List[ValidationError] = []

    if not _validate_timezone(config.scheduler.timezone):
        errors.append(ValidationError(
            field="scheduler.timezone",
            message=f"Unknown timezone: {config.scheduler.timezone}",
            severity="error"
        ))

    if config.scheduler.misfire_grace_time < 0:
        errors.append(ValidationError(
            field="scheduler.misfire_grace_time",
            message="Misfire grace time must not be negative",
            severity="error"
        ))

    if config.scheduler.allow_overlap:
        errors.append(ValidationError(
            field="scheduler.allow_overlap",
            message="Overlapping runs enabled; a slow job may run concurrently with itself.",
            severity="warning"
        ))

    for name in ("min_score", "min_roi", "min_profit", "max_price",
                 "scan_interval", "auto_buy_score", "daily_budget"):
        value = getattr(config.scan, name)
        if value < 0:
            errors.append(ValidationError(
                field=f"scan.{name}",
                message=f"Must not be negative: {value}",
                severity="error"
            ))

    if config.scan.auto_buy_enabled and config.scan.auto_buy_score < config.scan.min_score:
        errors.append(ValidationError(
            field="scan.auto_buy_score",
            message="Auto-buy score is below min_score; every kept opportunity may be purchased.",
            severity="warning"
        ))

    if not _validate_url(config.backend.base_url):
        errors.append(ValidationError(
            field="backend.base_url",
            message=f"Invalid URL format: {config.backend.base_url}",
            severity="error"
        ))

    if config.backend.timeout <= 0:
        errors.append(ValidationError(
            field="backend.timeout",
            message="Timeout must be positive",
            severity="error"
        ))

    if not 0 < config.server.port < 65536:
        errors.append(ValidationError(
            field="server.port",
            message=f"Port out of range: {config.server.port}",
            severity="error"
        ))

    if config.logging.level.upper() not in LOG_LEVELS:
        errors.append(ValidationError(
            field="logging.level",
            message=f"Unknown log level: {config.logging.level}",
            severity="error"
        ))

    if not config.data_dir.exists():
        errors.append(ValidationError(
            field="data_dir",
            message=f"Data directory does not exist: {config.data_dir}",
            severity="warning"
        ))

    return errors


def _config_to_dict(config: ArbiConfig) -> dict[str, Any]:
    """Convert configuration to dictionary."""
    def section_dict(section_obj: Any) -> dict[str, Any]:
        result = {}
        for f in fields(section_obj):
            value = getattr(section_obj, f.name)
            result[f.name] = str(value) if isinstance(value, Path) else value
        return result

    return {
        "config_dir": str(config.config_dir),
        "data_dir": str(config.data_dir),
        "scheduler": section_dict(config.scheduler),
        "scan": section_dict(config.scan),
        "backend": section_dict(config.backend),
        "server": section_dict(config.server),
        "logging": section_dict(config.logging),
    }


def export_config_json(config: ArbiConfig) -> str:
    """
    Export configuration as JSON string.

    Args:
        config: Configuration to export

    Returns:
        JSON string representation of config
    """
    return json.dumps(_config_to_dict(config), indent=2)

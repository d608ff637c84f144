"""
BackMan Configuration — loads and merges config from multiple sources.

Precedence (highest to lowest):
1. Explicit overrides (passed in code)
2. Environment variables (BACKMAN_*)
3. Project config (./backman.toml)
4. User config (<backman home>/config.toml)
5. Defaults (hardcoded)

Environment variable mapping:
    BACKMAN_STORE_PATH → store.path
    BACKMAN_POLL_INTERVAL → scheduler.poll_interval
    BACKMAN_ELEVATION_DELAY → scheduler.elevation_delay
    BACKMAN_LAUNCHER → launcher.provider
"""

from __future__ import annotations

import os
import platform
import re
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from backman.core.errors import ConfigError


def get_backman_home() -> Path:
    """
    Directory holding tasks.json, config.toml and logs.

    Windows keeps tasks machine-wide under %PROGRAMDATA%\\BackMan so that
    elevated and non-elevated runs see the same file; other systems use
    ~/.backman.
    """
    if platform.system().lower() == "windows":
        base = os.environ.get("PROGRAMDATA")
        if base:
            return Path(base) / "BackMan"
    return Path.home() / ".backman"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Config Sub-Models
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class SchedulerConfig(BaseModel):
    """Scheduler loop configuration."""

    poll_interval: float = 30.0  # seconds between due-task checks
    elevation_delay: float = 3.0  # settling pause after each elevated launch
    run_startup_tasks: bool = True


class StoreConfig(BaseModel):
    """Task store configuration."""

    path: str = Field(default_factory=lambda: str(get_backman_home() / "tasks.json"))
    seed_example: bool = True


class LauncherConfig(BaseModel):
    """Process launcher configuration."""

    provider: str = "auto"
    elevation_helper: str = "pkexec"
    powershell: str | None = None


class LoggingConfig(BaseModel):
    """Log file configuration."""

    dir: str = Field(default_factory=lambda: str(get_backman_home() / "logs"))
    console_level: str = "WARNING"
    file_level: str = "DEBUG"


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Main Config
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class BackmanConfig(BaseModel):
    """Root configuration for BackMan."""

    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    store: StoreConfig = Field(default_factory=StoreConfig)
    launcher: LauncherConfig = Field(default_factory=LauncherConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @staticmethod
    def load(
        overrides: dict[str, Any] | None = None,
        project_path: Path | None = None,
        user_path: Path | None = None,
    ) -> BackmanConfig:
        """
        Load configuration from all sources and merge.

        Precedence: overrides > env vars > project toml > user toml > defaults
        """
        merged: dict[str, Any] = {}

        user_config_path = user_path or get_backman_home() / "config.toml"
        if user_config_path.exists():
            _deep_merge(merged, _load_toml(user_config_path))

        project_config_path = project_path or Path.cwd() / "backman.toml"
        if project_config_path.exists():
            _deep_merge(merged, _load_toml(project_config_path))

        _deep_merge(merged, _load_from_env())

        if overrides:
            _deep_merge(merged, overrides)

        _substitute_env_vars(merged)

        try:
            return BackmanConfig(**merged)
        except Exception as e:
            raise ConfigError(f"Invalid configuration: {e}") from e

    def get_store_path(self) -> Path:
        return Path(self.store.path).expanduser()

    def get_log_dir(self) -> Path:
        return Path(self.logging.dir).expanduser()


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Internal Helpers
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


def _load_toml(path: Path) -> dict[str, Any]:
    """Load a TOML file."""
    try:
        import tomllib
    except ImportError:
        import tomli as tomllib  # type: ignore[no-redef]

    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except Exception as e:
        raise ConfigError(f"Failed to load config from {path}: {e}") from e


def _load_from_env() -> dict[str, Any]:
    """Load configuration from BACKMAN_* environment variables."""
    result: dict[str, Any] = {}

    env_mapping = {
        "BACKMAN_STORE_PATH": ("store", "path"),
        "BACKMAN_SEED_EXAMPLE": ("store", "seed_example"),
        "BACKMAN_POLL_INTERVAL": ("scheduler", "poll_interval"),
        "BACKMAN_ELEVATION_DELAY": ("scheduler", "elevation_delay"),
        "BACKMAN_RUN_STARTUP_TASKS": ("scheduler", "run_startup_tasks"),
        "BACKMAN_LAUNCHER": ("launcher", "provider"),
        "BACKMAN_ELEVATION_HELPER": ("launcher", "elevation_helper"),
        "BACKMAN_LOG_DIR": ("logging", "dir"),
        "BACKMAN_LOG_LEVEL": ("logging", "console_level"),
    }

    for env_var, (section, key) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            result.setdefault(section, {})[key] = _convert_value(value)

    return result


def _convert_value(value: str) -> Any:
    """Convert string value to appropriate type."""
    if value.lower() in ("true", "yes"):
        return True
    if value.lower() in ("false", "no"):
        return False
    try:
        return int(value)
    except ValueError:
        pass
    try:
        return float(value)
    except ValueError:
        pass
    return value


def _deep_merge(base: dict, override: dict) -> None:
    """Deep merge override into base (mutates base)."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value


_ENV_PATTERN = re.compile(r"\$\{([^}]+)\}")


def _expand(value: str) -> str:
    return _ENV_PATTERN.sub(lambda m: os.environ.get(m.group(1), ""), value)


def _substitute_env_vars(data: dict) -> None:
    """Recursively substitute ${ENV_VAR} patterns in string values."""
    for key, value in data.items():
        if isinstance(value, dict):
            _substitute_env_vars(value)
        elif isinstance(value, str):
            data[key] = _expand(value)
        elif isinstance(value, list):
            data[key] = [_expand(v) if isinstance(v, str) else v for v in value]

"""rowmodel configuration loader.

Priority (high → low):
  1. CLI flags           (handled at the call site, not in this module)
  2. Environment variables  (ROWMODEL_DATABASE, ROWMODEL_LOG_LEVEL)
  3. Per-project rowmodel.yaml
  4. Global ~/.rowmodel/config.yaml
  5. Hardcoded defaults

All YAML reads use yaml.safe_load(), never yaml.load().
"""

from __future__ import annotations

import os
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".rowmodel"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "rowmodel.yaml"

_KNOWN_SECTIONS: frozenset[str] = frozenset(["database", "logging"])

_JOURNAL_MODES: frozenset[str] = frozenset(
    ["DELETE", "TRUNCATE", "PERSIST", "MEMORY", "WAL", "OFF"]
)
_LOG_LEVELS: frozenset[str] = frozenset(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class DatabaseCfg:
    """SQLite database settings (rowmodel.yaml: database:).

    Attributes:
        path: Database file, relative to the working directory unless absolute.
        journal_mode: Value for ``PRAGMA journal_mode`` on every connection.
        timeout: Seconds sqlite3 waits on a locked database before failing.
    """

    path: str = ".rowmodel.db"
    journal_mode: str = "WAL"
    timeout: float = 5.0


@dataclass
class LoggingCfg:
    """Logging settings (rowmodel.yaml: logging:)."""

    level: str = "INFO"
    json: bool = False


@dataclass
class RowModelConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    database: DatabaseCfg = field(default_factory=DatabaseCfg)
    logging: LoggingCfg = field(default_factory=LoggingCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}'; ignored.",
                UserWarning,
                stacklevel=4,
            )


def _validate(cfg: RowModelConfig) -> None:
    if not cfg.database.path:
        raise ConfigError("database.path must not be empty.")
    if cfg.database.journal_mode not in _JOURNAL_MODES:
        raise ConfigError(
            f"database.journal_mode '{cfg.database.journal_mode}' is not valid.\n"
            f"  Use one of: {', '.join(sorted(_JOURNAL_MODES))}"
        )
    if cfg.database.timeout < 0:
        raise ConfigError(f"database.timeout must be >= 0, got {cfg.database.timeout}")
    if cfg.logging.level not in _LOG_LEVELS:
        raise ConfigError(
            f"logging.level '{cfg.logging.level}' is not valid.\n"
            f"  Use one of: {', '.join(sorted(_LOG_LEVELS))}"
        )


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> RowModelConfig:
    """Build a *RowModelConfig* from a merged raw YAML dict."""
    cfg = RowModelConfig()

    if "database" in data:
        d = data["database"] or {}
        try:
            cfg.database = DatabaseCfg(
                path=str(d.get("path", cfg.database.path)),
                journal_mode=str(d.get("journal_mode", cfg.database.journal_mode)).upper(),
                timeout=float(d.get("timeout", cfg.database.timeout)),
            )
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"Invalid database section: {exc}") from exc

    if "logging" in data:
        lg = data["logging"] or {}
        cfg.logging = LoggingCfg(
            level=str(lg.get("level", cfg.logging.level)).upper(),
            json=bool(lg.get("json", cfg.logging.json)),
        )

    return cfg


def _apply_env_overrides(cfg: RowModelConfig) -> RowModelConfig:
    """Apply ROWMODEL_* environment variable overrides."""
    if path := os.environ.get("ROWMODEL_DATABASE"):
        cfg.database.path = path
    if level := os.environ.get("ROWMODEL_LOG_LEVEL"):
        cfg.logging.level = level.upper()
    return cfg


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file '{path}' is not valid YAML: {exc}") from exc
    if not isinstance(raw, dict):
        raise ConfigError(f"Config file '{path}' must contain a mapping at the top level.")
    return raw


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> RowModelConfig:
    """Load and return a merged *RowModelConfig*.

    Applies layers in order: global → per-project → env vars.

    Args:
        project_dir: Directory to search for *rowmodel.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If a config file is malformed or holds an invalid value.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        raw_global = _read_yaml(global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = _read_yaml(project_cfg_path)
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)
    cfg = _apply_env_overrides(cfg)
    _validate(cfg)
    return cfg

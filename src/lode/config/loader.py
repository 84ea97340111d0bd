#
# config/loader.py
#
"""
Loads the TOML configuration file into the attrs configuration models.
"""

import os
import shlex
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog

from lode.config.models import FrameworkConfig, GlobalConfig, LodeConfig, SshConfig
from lode.exceptions import ConfigurationError
from lode.status import DEFAULT_PRECEDENCE, StatusPrecedence

log = structlog.get_logger("config.loader")

LOG_LEVEL_ENV_VAR = "LODE_LOG_LEVEL"

_FRAMEWORK_KEYS = {"name", "path", "runner", "command", "patterns", "max_workers", "enabled", "ssh"}
_SSH_KEYS = {"host", "user", "port", "identity", "remote_path", "options"}


def _resolve_path(raw: str, base_dir: Path) -> Path:
    path = Path(os.path.expandvars(raw)).expanduser()
    if not path.is_absolute():
        path = base_dir / path
    return path.resolve()


def _check_keys(table: Mapping[str, Any], allowed: set[str], where: str, config_path: Path) -> None:
    unknown = set(table) - allowed
    if unknown:
        raise ConfigurationError(f"Unknown key(s) {sorted(unknown)} in [{where}]", str(config_path))


def _load_global(table: Mapping[str, Any], base_dir: Path, config_path: Path) -> GlobalConfig:
    level = os.environ.get(LOG_LEVEL_ENV_VAR) or table.get("log_level", "INFO")
    precedence = DEFAULT_PRECEDENCE
    if "status_precedence" in table:
        precedence = StatusPrecedence.from_names(table["status_precedence"])
    snapshot_dir = table.get("snapshot_dir")
    return GlobalConfig(
        log_level=str(level),
        status_precedence=precedence,
        snapshot_dir=_resolve_path(snapshot_dir, base_dir) if snapshot_dir else None,
    )


def _load_ssh(table: Mapping[str, Any], where: str, config_path: Path) -> SshConfig:
    _check_keys(table, _SSH_KEYS, where, config_path)
    if not table.get("host"):
        raise ConfigurationError(f"Missing 'host' in [{where}]", str(config_path))
    return SshConfig(
        host=str(table["host"]),
        user=table.get("user"),
        port=table.get("port"),
        identity=table.get("identity"),
        remote_path=table.get("remote_path"),
        options=dict(table.get("options", {})),
    )


def _load_framework(
    framework_id: str, table: Mapping[str, Any], base_dir: Path, config_path: Path
) -> FrameworkConfig:
    where = f"frameworks.{framework_id}"
    _check_keys(table, _FRAMEWORK_KEYS, where, config_path)
    if "path" not in table:
        raise ConfigurationError(f"Missing 'path' in [{where}]", str(config_path))

    kwargs: dict[str, Any] = {
        "name": table.get("name", framework_id),
        "path": _resolve_path(str(table["path"]), base_dir),
    }
    for key in ("runner", "max_workers", "enabled"):
        if key in table:
            kwargs[key] = table[key]
    if "command" in table:
        command = table["command"]
        kwargs["command"] = shlex.split(command) if isinstance(command, str) else command
    if "patterns" in table:
        patterns = table["patterns"]
        kwargs["patterns"] = [patterns] if isinstance(patterns, str) else patterns
    if "ssh" in table:
        kwargs["ssh"] = _load_ssh(table["ssh"], f"{where}.ssh", config_path)

    framework = FrameworkConfig(**kwargs)
    if not framework.path.is_dir():
        log.warning(
            "Framework path does not exist, disabling framework",
            framework_id=framework_id,
            path=str(framework.path),
        )
        framework._path_valid = False
    return framework


def load_config(config_path: Path) -> LodeConfig:
    """
    Reads and validates the configuration file.

    Raises:
        ConfigurationError: if the file cannot be read, is not valid TOML or
            does not describe a valid configuration.
    """
    config_path = Path(config_path)
    log.debug("Loading configuration", path=str(config_path))
    try:
        with config_path.open("rb") as handle:
            raw = tomllib.load(handle)
    except FileNotFoundError as e:
        raise ConfigurationError("Configuration file not found", str(config_path)) from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML: {e}", str(config_path)) from e
    except OSError as e:
        raise ConfigurationError(f"Unable to read configuration: {e}", str(config_path)) from e

    base_dir = config_path.parent.resolve()
    try:
        global_config = _load_global(raw.get("global", {}), base_dir, config_path)
        frameworks = {
            str(framework_id): _load_framework(str(framework_id), table, base_dir, config_path)
            for framework_id, table in raw.get("frameworks", {}).items()
        }
    except ConfigurationError:
        raise
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid configuration value: {e}", str(config_path)) from e

    config = LodeConfig(frameworks=frameworks, global_config=global_config)
    log.info(
        "Configuration loaded",
        path=str(config_path),
        frameworks=len(frameworks),
        enabled=len(config.enabled_frameworks()),
    )
    return config


# 🔼⚙️

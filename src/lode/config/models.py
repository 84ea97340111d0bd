#
# config/models.py
#
"""
Attrs-based data models for the lode configuration structure.
"""

import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from attrs import define, field, mutable

from lode.status import DEFAULT_PRECEDENCE, StatusPrecedence

DEFAULT_PATTERNS: tuple[str, ...] = ("tests/**/test_*.py", "tests/**/*_test.py")


# --- Validators ---
def _validate_log_level(inst: Any, attr: Any, value: str) -> None:
    """Validator for standard logging level names."""
    valid = logging.getLevelNamesMapping().keys()
    if value.upper() not in valid:
        raise ValueError(f"Invalid log_level '{value}'. Must be one of {list(valid)}.")


def _validate_positive_int(inst: Any, attr: Any, value: int) -> None:
    """Validator ensures integer is positive."""
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValueError(f"Field '{attr.name}' must be positive integer, got {value!r}")


def _validate_port(inst: Any, attr: Any, value: int | None) -> None:
    if value is not None and not (0 < value < 65536):
        raise ValueError(f"Field '{attr.name}' must be a valid TCP port, got {value!r}")


# --- Remote execution ---
@define(frozen=True, slots=True)
class SshConfig:
    """Connection details for running a framework on a remote host."""

    host: str = field()
    user: str | None = field(default=None)
    port: int | None = field(default=None, validator=_validate_port)
    identity: str | None = field(default=None)
    remote_path: str | None = field(default=None)
    options: Mapping[str, str | int] = field(factory=dict)


# --- Framework and Global Config Models ---
@mutable(slots=True)
class FrameworkConfig:
    """
    Configuration for one test-running framework. Mutable to allow disabling on load if path invalid.
    """

    name: str = field()
    path: Path = field(converter=Path)
    runner: str = field(default="pytest")
    command: tuple[str, ...] = field(default=("python", "-m", "pytest"), converter=tuple)
    patterns: tuple[str, ...] = field(default=DEFAULT_PATTERNS, converter=tuple)
    max_workers: int = field(default=4, validator=_validate_positive_int)
    enabled: bool = field(default=True)
    ssh: SshConfig | None = field(default=None)
    _path_valid: bool = field(default=True, repr=False, init=False)

    @property
    def is_remote(self) -> bool:
        return self.ssh is not None


@define(frozen=True, slots=True)
class GlobalConfig:
    """Global default settings for lode."""

    log_level: str = field(default="INFO", validator=_validate_log_level)
    status_precedence: StatusPrecedence = field(default=DEFAULT_PRECEDENCE)
    snapshot_dir: Path | None = field(default=None)

    @property
    def numeric_log_level(self) -> int:
        return logging.getLevelName(self.log_level.upper())


@define(frozen=True, slots=True)
class LodeConfig:
    """Root configuration object for the lode application."""

    frameworks: dict[str, FrameworkConfig] = field(factory=dict)
    global_config: GlobalConfig = field(factory=GlobalConfig, metadata={"toml_name": "global"})

    def enabled_frameworks(self) -> dict[str, FrameworkConfig]:
        return {
            framework_id: framework
            for framework_id, framework in self.frameworks.items()
            if framework.enabled and framework._path_valid
        }


# 🔼⚙️

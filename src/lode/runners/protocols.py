#
# src/lode/runners/protocols.py
#
"""
Defines the runtime protocols and data structures for test runners.
"""

from pathlib import Path
from typing import Protocol, runtime_checkable

import attrs

from lode.config.models import FrameworkConfig
from lode.nuggets.protocols import NuggetKey
from lode.nuggets.results import ResultFragment


@attrs.define(frozen=True, slots=True)
class SuiteInvocation:
    """
    One runner call: a test file and, optionally, the tests inside it to run.

    An empty `test_ids` runs the whole file.
    """

    suite_id: str
    file: Path
    test_ids: tuple[NuggetKey, ...] = attrs.field(default=(), converter=tuple)

    @property
    def is_selective(self) -> bool:
        return bool(self.test_ids)


@attrs.define(frozen=True, slots=True)
class RunnerOutcome:
    """What a runner produced for one suite."""

    success: bool
    exit_code: int | None
    fragment: ResultFragment | None = None
    stdout: str = ""
    stderr: str = ""


@runtime_checkable
class Runner(Protocol):
    """
    Protocol for anything able to execute a suite and report its results.
    """

    async def run_suite(self, invocation: SuiteInvocation, config: FrameworkConfig) -> RunnerOutcome:
        """
        Args:
            invocation: The suite (and selected tests) to run.
            config: Configuration of the framework owning the suite.

        Returns:
            A RunnerOutcome whose fragment carries the suite results.

        Raises:
            RunnerError: When the process could not run or produced nothing usable.
        """
        ...


# 🔼⚙️

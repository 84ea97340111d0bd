import asyncio
from pathlib import Path

import pytest

from lode.config import FrameworkConfig
from lode.framework import Framework
from lode.nuggets import NuggetArena, ResultFragment, Suite
from lode.runners import RunnerOutcome, SuiteInvocation
from lode.status import Status


def frag(node_id: str, status: Status | None = None, tests: list[ResultFragment] | None = None, **kwargs) -> ResultFragment:
    """Shorthand for building result fragments in tests."""
    return ResultFragment(id=node_id, name=kwargs.pop("name", node_id), status=status, tests=tests, **kwargs)


@pytest.fixture
def arena() -> NuggetArena:
    return NuggetArena(name="test")


@pytest.fixture
def make_suite(arena: NuggetArena):
    """Builds a suite from (test_id, status) pairs or ready-made fragments."""

    def _make(suite_id: str = "suite", tests=(), **kwargs) -> Suite:
        children = [item if isinstance(item, ResultFragment) else frag(*item) for item in tests]
        return Suite(arena, frag(suite_id, tests=children, file=f"/project/tests/{suite_id}.py", **kwargs))

    return _make


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A project with two test files."""
    tests_dir = tmp_path / "tests"
    tests_dir.mkdir()
    (tests_dir / "test_alpha.py").write_text("def test_one():\n    assert True\n")
    (tests_dir / "test_beta.py").write_text("def test_two():\n    assert True\n")
    (tests_dir / "helpers.py").write_text("")
    return tmp_path


@pytest.fixture
def framework_config(project_dir: Path) -> FrameworkConfig:
    return FrameworkConfig(name="Unit", path=project_dir, patterns=("tests/**/test_*.py",), max_workers=2)


@pytest.fixture
def framework(framework_config: FrameworkConfig) -> Framework:
    framework = Framework("unit", framework_config)
    framework.refresh()
    return framework


@pytest.fixture
def config_file(project_dir: Path) -> Path:
    path = project_dir / "lode.toml"
    path.write_text(
        """
[global]
log_level = "DEBUG"

[frameworks.unit]
name = "Unit tests"
path = "."
command = "python -m pytest"
patterns = ["tests/**/test_*.py"]
max_workers = 2
"""
    )
    return path


class FakeRunner:
    """Reports every requested test (or `test_one` for whole files) as passed."""

    def __init__(self, failures: dict[str, Exception] | None = None, no_results: bool = False):
        self.invocations: list[SuiteInvocation] = []
        self.failures = failures or {}
        self.no_results = no_results

    async def run_suite(self, invocation, config):
        self.invocations.append(invocation)
        error = self.failures.get(invocation.file.name)
        if error is not None:
            raise error
        if self.no_results:
            return RunnerOutcome(success=True, exit_code=0)
        test_ids = [key[-1] for key in invocation.test_ids] or ["test_one"]
        fragment = frag(invocation.suite_id, tests=[frag(test_id, Status.PASSED) for test_id in test_ids])
        return RunnerOutcome(success=True, exit_code=0, fragment=fragment)


class BlockingRunner:
    """Never finishes on its own; `started` is set once a suite is running."""

    def __init__(self):
        self.started = asyncio.Event()

    async def run_suite(self, invocation, config):
        self.started.set()
        await asyncio.Event().wait()

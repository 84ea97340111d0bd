# tests/unit/test_orchestrator.py

"""Unit tests for the RunOrchestrator lifecycle: setup, runs and snapshots."""

import asyncio
from pathlib import Path

import pytest
from conftest import FakeRunner

from lode.exceptions import ConfigurationError, EntityNotFoundError
from lode.runtime.orchestrator import RunOrchestrator
from lode.status import Status


@pytest.fixture
def orchestrator(config_file: Path) -> RunOrchestrator:
    orchestrator = RunOrchestrator(config_file, asyncio.Event())
    orchestrator.run_handler.runner_factory = lambda name: FakeRunner()
    return orchestrator


@pytest.mark.asyncio
class TestOrchestrator:
    async def test_setup_builds_frameworks(self, orchestrator: RunOrchestrator, project_dir: Path):
        await orchestrator.setup()

        framework = orchestrator.get_framework("unit")
        assert framework.name == "Unit tests"
        assert len(framework.suites) == 2
        assert orchestrator.snapshots.directory == project_dir / ".lode"

    async def test_run_once_saves_snapshot(self, orchestrator: RunOrchestrator, config_file: Path, project_dir: Path):
        statuses = await orchestrator.run_once()

        assert statuses == {"unit": Status.PASSED}
        assert (project_dir / ".lode" / "unit.json").is_file()

        again = RunOrchestrator(config_file, asyncio.Event())
        await again.setup()
        restored = again.get_framework("unit")
        assert all(suite.count_children() == 1 for suite in restored.suites)
        assert restored.status is Status.IDLE
        assert len(restored.ledger) == 1

    async def test_run_once_unknown_framework(self, orchestrator: RunOrchestrator):
        with pytest.raises(EntityNotFoundError):
            await orchestrator.run_once(["missing"])

    async def test_unknown_runner_is_reported(self, orchestrator: RunOrchestrator):
        def factory(name):
            raise ConfigurationError("Unsupported test runner")

        orchestrator.run_handler.runner_factory = factory
        await orchestrator.setup()

        assert await orchestrator.start_run("unit") is None

    async def test_missing_config(self, tmp_path: Path):
        orchestrator = RunOrchestrator(tmp_path / "missing.toml", asyncio.Event())

        with pytest.raises(ConfigurationError):
            await orchestrator.setup()

    async def test_run_exits_on_shutdown(self, orchestrator: RunOrchestrator, project_dir: Path):
        task = asyncio.create_task(orchestrator.run())
        await asyncio.sleep(0.1)

        orchestrator.shutdown_event.set()
        await asyncio.wait_for(task, timeout=5)

        assert (project_dir / ".lode" / "unit.json").is_file()

    async def test_refresh_picks_up_new_files(self, orchestrator: RunOrchestrator, project_dir: Path):
        await orchestrator.setup()
        (project_dir / "tests" / "test_gamma.py").write_text("")

        orchestrator.refresh()

        assert len(orchestrator.get_framework("unit").suites) == 3

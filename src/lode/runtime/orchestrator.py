# src/lode/runtime/orchestrator.py

"""
High-level coordinator for lode: loads the configuration, builds one
Framework per configured framework and drives runs, stops and snapshots.
"""

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import structlog

from lode.config import LodeConfig, load_config
from lode.exceptions import ConfigurationError, EntityNotFoundError, SnapshotError
from lode.framework import Framework
from lode.ledger import RunRecord
from lode.persistence import SnapshotStore
from lode.status import Status
from lode.telemetry import StructLogger

from .run_handler import RunHandler
from .tui_interface import TUIInterface

if TYPE_CHECKING:
    from lode.tui.app import LodeTuiApp


log: StructLogger = structlog.get_logger("runtime.orchestrator")

DEFAULT_SNAPSHOT_DIRNAME = ".lode"


class RunOrchestrator:
    """Instantiates and coordinates all runtime components."""

    def __init__(
        self,
        config_path: Path,
        shutdown_event: asyncio.Event,
        app: Optional["LodeTuiApp"] = None,
    ):
        self.config_path = config_path
        self.shutdown_event = shutdown_event
        self.app = app
        self.tui = TUIInterface(app)
        self.run_handler = RunHandler(self.tui)
        self.config: LodeConfig | None = None
        self.frameworks: dict[str, Framework] = {}
        self.snapshots: SnapshotStore | None = None
        self._run_tasks: dict[str, asyncio.Task] = {}

    # --- Lifecycle ---
    async def setup(self) -> None:
        """
        Loads the configuration and builds the frameworks.

        Raises:
            ConfigurationError: When the configuration cannot be loaded.
        """
        self.config = await asyncio.to_thread(load_config, self.config_path)
        snapshot_dir = self.config.global_config.snapshot_dir or (self.config_path.parent / DEFAULT_SNAPSHOT_DIRNAME)
        self.snapshots = SnapshotStore(snapshot_dir)
        self._initialize_frameworks(self.config)

    def _initialize_frameworks(self, config: LodeConfig) -> None:
        log.info("Initializing frameworks...")
        self.tui.post_log_update(None, "INFO", "Initializing frameworks...")
        self.frameworks.clear()

        for framework_id, framework_config in config.enabled_frameworks().items():
            init_log = log.bind(framework_id=framework_id)
            framework = Framework(
                framework_id,
                framework_config,
                precedence=config.global_config.status_precedence,
                ui=self.tui,
            )
            if self.snapshots is not None and (snapshot := self.snapshots.load(framework_id)):
                framework.restore(snapshot)
            try:
                framework.refresh()
            except OSError as e:
                init_log.error("Failed to discover suites", error=str(e))
                self.tui.post_log_update(framework_id, "ERROR", f"Suite discovery failed: {e}")
            self.frameworks[framework_id] = framework
            init_log.info("Framework ready", suites=len(framework.suites), status=framework.status.value)

        self.tui.post_frameworks_ready(list(self.frameworks))
        log.info(f"Initialized {len(self.frameworks)} frameworks.")

    async def run(self) -> None:
        """TUI mode: set up, then serve run/stop requests until shutdown."""
        log.info("Orchestrator run sequence starting.")
        try:
            try:
                await self.setup()
            except ConfigurationError as e:
                log.critical("Failed to load or validate config", error=str(e), exc_info=True)
                self.tui.post_log_update(None, "CRITICAL", f"Config Error: {e}")
                await asyncio.sleep(0.1)
                return

            await self.shutdown_event.wait()
        except asyncio.CancelledError:
            log.warning("Orchestrator task was cancelled.")
        finally:
            log.info("Orchestrator entering cleanup phase.")
            for framework_id in list(self._run_tasks):
                self.stop_run(framework_id)
            self.save_snapshots()
            log.info("Orchestrator cleanup complete.")

    async def run_once(self, framework_ids: list[str] | None = None) -> dict[str, Status]:
        """Headless mode: set up, run the given (or all) frameworks once and save."""
        await self.setup()
        targets = framework_ids or list(self.frameworks)
        for framework_id in targets:
            self.get_framework(framework_id)
        await asyncio.gather(*(self.start_run(framework_id) for framework_id in targets))
        return {framework_id: self.frameworks[framework_id].status for framework_id in targets}

    # --- Commands ---
    def get_framework(self, framework_id: str) -> Framework:
        framework = self.frameworks.get(framework_id)
        if framework is None:
            raise EntityNotFoundError((), framework_id)
        return framework

    async def start_run(self, framework_id: str) -> RunRecord | None:
        framework = self.get_framework(framework_id)
        task = asyncio.create_task(self.run_handler.execute_run(framework))
        self._run_tasks[framework_id] = task
        try:
            record = await task
        except ConfigurationError as e:
            log.error("Cannot start run", framework_id=framework_id, error=str(e))
            self.tui.post_log_update(framework_id, "ERROR", str(e))
            return None
        finally:
            if self._run_tasks.get(framework_id) is task:
                del self._run_tasks[framework_id]
        self.save_snapshot(framework)
        return record

    def stop_run(self, framework_id: str, fault: bool = False) -> None:
        self.run_handler.stop(self.get_framework(framework_id), fault=fault)

    def refresh(self, framework_id: str | None = None) -> None:
        targets = [framework_id] if framework_id else list(self.frameworks)
        for target in targets:
            self.get_framework(target).refresh()

    # --- Snapshots ---
    def save_snapshot(self, framework: Framework) -> None:
        if self.snapshots is None:
            return
        try:
            self.snapshots.save(framework.id, framework.snapshot())
        except SnapshotError as e:
            log.error("Failed to save snapshot", framework_id=framework.id, error=str(e))
            self.tui.post_log_update(framework.id, "ERROR", str(e))

    def save_snapshots(self) -> None:
        for framework in self.frameworks.values():
            self.save_snapshot(framework)

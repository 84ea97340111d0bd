# src/lode/runtime/run_handler.py
"""
Executes a run of one framework: queues the nodes in scope, runs suites
concurrently and debriefs each result as soon as it arrives.
"""

import asyncio
from collections.abc import Callable
from pathlib import Path

import structlog

from lode.exceptions import RunnerError
from lode.framework import Framework
from lode.ledger import RunRecord
from lode.nuggets import Suite
from lode.runners import Runner, SuiteInvocation, get_test_runner
from lode.runtime.tui_interface import TUIInterface
from lode.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runtime.run_handler")


class RunHandler:
    """Drives runs and stops for any number of frameworks, one run per framework at a time."""

    def __init__(self, tui: TUIInterface, runner_factory: Callable[[str], Runner] = get_test_runner):
        self.tui = tui
        self.runner_factory = runner_factory
        self._suite_tasks: dict[str, set[asyncio.Task]] = {}
        log.debug("RunHandler initialized.")

    def is_running(self, framework_id: str) -> bool:
        return framework_id in self._suite_tasks

    async def execute_run(self, framework: Framework) -> RunRecord | None:
        """
        Runs every suite in scope and returns the ledger record of the run.

        Returns None without doing anything when the framework is already running.

        Raises:
            ConfigurationError: When the configured runner is unknown.
        """
        run_log = log.bind(framework_id=framework.id)
        if self.is_running(framework.id):
            run_log.warning("Run requested while another one is in progress, ignoring.")
            return None

        runner = self.runner_factory(framework.config.runner)
        selective = framework.is_selective()
        suites = framework.suites_in_scope()
        record = framework.ledger.begin(selective=selective)

        run_log.info("Starting run", suites=len(suites), selective=selective)
        self.tui.post_log_update(framework.id, "INFO", f"Running {len(suites)} suite(s)...")
        framework.queue(selective)

        semaphore = asyncio.Semaphore(framework.config.max_workers)
        tasks = {
            asyncio.create_task(self._run_suite(framework, suite, runner, selective, semaphore))
            for suite in suites
        }
        self._suite_tasks[framework.id] = tasks
        try:
            await asyncio.gather(*tasks, return_exceptions=True)
        finally:
            self._suite_tasks.pop(framework.id, None)

        framework.ledger.finish(record, framework.status)
        run_log.info("Run finished", status=framework.status.value, duration=record.duration)
        self.tui.post_log_update(framework.id, "INFO", f"Run finished: {framework.status.value}")
        return record

    async def _run_suite(
        self,
        framework: Framework,
        suite: Suite,
        runner: Runner,
        selective: bool,
        semaphore: asyncio.Semaphore,
    ) -> None:
        suite_log = log.bind(framework_id=framework.id, suite_id=suite.id)
        async with semaphore:
            suite.running(selective)
            test_ids = tuple(test.key[1:] for test in suite.selected_tests()) if selective else ()
            invocation = SuiteInvocation(suite_id=suite.id, file=Path(suite.file or suite.name), test_ids=test_ids)
            try:
                outcome = await runner.run_suite(invocation, framework.config)
            except RunnerError as e:
                suite_log.error("Runner fault, marking pending tests as errored", error=str(e), exit_code=e.exit_code)
                self.tui.post_log_update(framework.id, "ERROR", str(e))
                suite.error_queued(selective)
                return
            except Exception as e:
                suite_log.critical("Unexpected error while running suite", error=str(e), exc_info=True)
                self.tui.post_log_update(framework.id, "CRITICAL", f"Suite failure: {e}")
                suite.error_queued(selective)
                return

            if outcome.fragment is not None:
                await suite.debrief(outcome.fragment, cleanup=not selective)
            else:
                suite_log.warning("Runner produced no results", exit_code=outcome.exit_code)
            # Anything the runner did not report on never ran.
            suite.idle_queued(selective)

    def stop(self, framework: Framework, fault: bool = False) -> None:
        """
        Cancels the framework's in-flight suites and settles pending nodes right
        away, without waiting for the processes to exit.
        """
        tasks = self._suite_tasks.get(framework.id, set())
        for task in list(tasks):
            task.cancel()
        if fault:
            framework.error_queued(selective=False)
        else:
            framework.idle_queued(selective=False)
        log.info("Run stopped", framework_id=framework.id, cancelled=len(tasks), fault=fault)
        self.tui.post_log_update(framework.id, "WARNING" if fault else "INFO", "Run stopped.")

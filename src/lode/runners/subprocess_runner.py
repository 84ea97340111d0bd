#
# src/lode/runners/subprocess_runner.py
#
"""
Runs a suite's test command as a child process, locally or through ssh.
"""

import asyncio
from pathlib import Path

import structlog

from lode.config.models import FrameworkConfig
from lode.exceptions import RunnerError
from lode.runners.parsers import OutputParser
from lode.runners.protocols import RunnerOutcome, SuiteInvocation
from lode.runners.ssh import SSH_FAILURE_EXIT_CODE, SshOptions
from lode.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runners.subprocess")


class SubprocessRunner:
    """Executes the configured command for one suite and parses its output."""

    def __init__(self, parser: OutputParser):
        self.parser = parser

    def __repr__(self) -> str:
        return f"<SubprocessRunner parser={self.parser.name!r}>"

    def build_argv(self, invocation: SuiteInvocation, config: FrameworkConfig) -> tuple[list[str], Path | None]:
        """
        Returns the argv to execute and the local working directory (None for remote runs,
        where the command changes into `remote_path` itself).
        """
        file = invocation.file
        if file.is_absolute() and file.is_relative_to(config.path):
            file = file.relative_to(config.path)
        args = self.parser.build_args(invocation, config.command, file.as_posix())
        if config.ssh is not None:
            return SshOptions.from_config(config.ssh).argv(args), None
        return args, config.path

    async def run_suite(self, invocation: SuiteInvocation, config: FrameworkConfig) -> RunnerOutcome:
        run_log = log.bind(suite_id=invocation.suite_id, file=str(invocation.file), remote=config.is_remote)
        argv, cwd = self.build_argv(invocation, config)
        run_log.debug("Starting test process", argv=argv, cwd=str(cwd) if cwd else None)

        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
            )
        except (FileNotFoundError, PermissionError) as e:
            raise RunnerError(
                f"Unable to start '{argv[0]}'", suite_id=invocation.suite_id, details=e
            ) from e

        try:
            stdout_bytes, stderr_bytes = await proc.communicate()
        except asyncio.CancelledError:
            if proc.returncode is None:
                run_log.info("Run cancelled, terminating test process", pid=proc.pid)
                proc.kill()
            raise

        exit_code = proc.returncode
        stdout = stdout_bytes.decode(errors="replace")
        stderr = stderr_bytes.decode(errors="replace")

        if config.is_remote and exit_code == SSH_FAILURE_EXIT_CODE:
            raise RunnerError(
                f"ssh failed to reach '{config.ssh.host}': {stderr.strip() or 'no output'}",
                suite_id=invocation.suite_id,
                exit_code=exit_code,
            )

        fragment = self.parser.parse(invocation, stdout, stderr, exit_code)
        if fragment is None and exit_code != 0:
            raise RunnerError(
                f"Test command exited with {exit_code} without reporting results: "
                f"{(stderr or stdout).strip()[-500:] or 'no output'}",
                suite_id=invocation.suite_id,
                exit_code=exit_code,
            )

        run_log.debug("Test process finished", exit_code=exit_code, has_results=fragment is not None)
        return RunnerOutcome(
            success=exit_code == 0,
            exit_code=exit_code,
            fragment=fragment,
            stdout=stdout,
            stderr=stderr,
        )


# 🔼⚙️

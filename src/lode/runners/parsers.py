#
# src/lode/runners/parsers.py
#
"""
Turns the output of a test command into a suite result fragment.

Each parser also knows how to build the command arguments for its tool, so
selected tests can be addressed the way that tool expects.
"""

import json
import re
from collections.abc import Sequence
from typing import Any

import structlog

from lode.nuggets.protocols import NuggetKey
from lode.nuggets.results import ResultFragment, RunStats
from lode.runners.protocols import SuiteInvocation
from lode.status import DEFAULT_PRECEDENCE, Status
from lode.telemetry import StructLogger

log: StructLogger = structlog.get_logger("runners.parsers")

# pytest exit codes
PYTEST_OK = 0
PYTEST_TESTS_FAILED = 1
PYTEST_NO_TESTS_COLLECTED = 5

PYTEST_STATUS_MAP: dict[str, Status] = {
    "PASSED": Status.PASSED,
    "FAILED": Status.FAILED,
    "ERROR": Status.ERROR,
    "SKIPPED": Status.INCOMPLETE,
    "XFAIL": Status.INCOMPLETE,
    "XPASS": Status.WARNING,
}

_RESULT_LINE = re.compile(r"^(?P<nodeid>\S+?::\S+)\s+(?P<status>" + "|".join(PYTEST_STATUS_MAP) + r")\b")
_BANNER = re.compile(r"^={3,} (?P<title>.+?) ={3,}$")
_SECTION = re.compile(r"^_{3,} (?P<title>.+?) _{3,}$")
_CAPTURE = re.compile(r"^-{3,} Captured .+? -{3,}$")
_DURATION = re.compile(r" in (?P<seconds>\d+(?:\.\d+)?)s\b")
_PARAMETRIZED = re.compile(r"^(?P<function>[^\[]+)\[(?P<params>.*)\]$")
_PHASE_PREFIX = re.compile(r"^ERROR at (?:setup|teardown) of ")
_ANSI = re.compile(r"\x1b\[[0-9;]*m")

COLLECTION_ERROR_PREFIX = "ERROR collecting "


def pytest_node_id(file: str, test_key: Sequence[str]) -> str:
    """
    pytest node id of a test, from its identifiers below the suite.

    A parametrized case sits below its function in the tree but pytest
    addresses it directly (`file::Class::test_x[1]`).
    """
    parts = list(test_key)
    if len(parts) >= 2 and parts[-1].startswith(parts[-2] + "["):
        del parts[-2]
    return "::".join([file, *parts])


class OutputParser:
    """Base class for the supported output formats."""

    name = "base"

    def build_args(self, invocation: SuiteInvocation, command: Sequence[str], file: str) -> list[str]:
        raise NotImplementedError

    def parse(
        self, invocation: SuiteInvocation, stdout: str, stderr: str, exit_code: int | None
    ) -> ResultFragment | None:
        """Returns None when the output holds nothing recognizable."""
        raise NotImplementedError


class PytestOutputParser(OutputParser):
    """
    Reads `pytest -v` output: one `nodeid STATUS` line per test, followed by
    the FAILURES and ERRORS sections used as feedback.
    """

    name = "pytest"

    def build_args(self, invocation: SuiteInvocation, command: Sequence[str], file: str) -> list[str]:
        targets = [pytest_node_id(file, key) for key in invocation.test_ids] or [file]
        return [*command, "-v", "--color=no", "--tb=short", *targets]

    def parse(
        self, invocation: SuiteInvocation, stdout: str, stderr: str, exit_code: int | None
    ) -> ResultFragment | None:
        lines = [_ANSI.sub("", line) for line in stdout.splitlines()]
        results: dict[str, Status] = {}
        for line in lines:
            match = _RESULT_LINE.match(line.strip())
            if not match:
                continue
            nodeid, status = match["nodeid"], PYTEST_STATUS_MAP[match["status"]]
            # A test reported twice (e.g. FAILED then ERROR at teardown) keeps the worse status.
            previous = results.get(nodeid)
            results[nodeid] = status if previous is None else DEFAULT_PRECEDENCE.aggregate((previous, status))

        sections = self._sections(lines)
        collection_errors = {title: body for title, body in sections.items() if title.startswith(COLLECTION_ERROR_PREFIX)}
        stats = self._stats(lines)

        if results:
            tests = self._build_tree(results, sections)
            fragment = ResultFragment(
                id=invocation.suite_id, name=invocation.file.name, stats=stats, tests=tests
            )
        elif exit_code == PYTEST_NO_TESTS_COLLECTED:
            fragment = ResultFragment(id=invocation.suite_id, name=invocation.file.name, stats=stats, tests=[])
        elif collection_errors:
            # Nothing ran; leave the known tests untouched.
            fragment = ResultFragment(id=invocation.suite_id, name=invocation.file.name, stats=stats)
        else:
            return None

        if collection_errors:
            fragment.status = Status.ERROR
            fragment.feedback = "\n\n".join(
                "\n".join([title, *body[0]]) for title, body in collection_errors.items()
            )
        if stderr.strip():
            fragment.console = stderr.splitlines()
        log.debug(
            "Parsed pytest output",
            suite_id=invocation.suite_id,
            tests=len(results),
            collection_errors=len(collection_errors),
            exit_code=exit_code,
        )
        return fragment

    def _sections(self, lines: list[str]) -> dict[str, tuple[list[str], list[str]]]:
        """Failure and error sections: title -> (feedback lines, captured output lines)."""
        sections: dict[str, tuple[list[str], list[str]]] = {}
        in_report = False
        current: tuple[list[str], list[str]] | None = None
        capturing = False
        for line in lines:
            banner = _BANNER.match(line)
            if banner:
                in_report = banner["title"] in ("FAILURES", "ERRORS")
                current = None
                continue
            if not in_report:
                continue
            section = _SECTION.match(line)
            if section:
                title = _PHASE_PREFIX.sub("", section["title"])
                current = sections.setdefault(title, ([], []))
                capturing = False
                continue
            if current is None:
                continue
            if _CAPTURE.match(line):
                capturing = True
                continue
            current[1 if capturing else 0].append(line)
        return sections

    def _stats(self, lines: list[str]) -> RunStats | None:
        for line in reversed(lines):
            banner = _BANNER.match(line)
            if banner:
                duration = _DURATION.search(banner["title"])
                if duration:
                    return RunStats(duration=float(duration["seconds"]))
        return None

    def _build_tree(
        self, results: dict[str, Status], sections: dict[str, tuple[list[str], list[str]]]
    ) -> list[ResultFragment]:
        roots: list[ResultFragment] = []
        containers: dict[NuggetKey, ResultFragment] = {}
        for nodeid, status in results.items():
            parts = nodeid.split("::")[1:]
            leaf = parts[-1]
            params = None
            parametrized = _PARAMETRIZED.match(leaf)
            if parametrized:
                params = parametrized["params"]
                parts = [*parts[:-1], parametrized["function"], leaf]

            siblings = roots
            for depth in range(len(parts) - 1):
                key = tuple(parts[: depth + 1])
                container = containers.get(key)
                if container is None:
                    container = ResultFragment(id=parts[depth], name=parts[depth], tests=[])
                    containers[key] = container
                    siblings.append(container)
                siblings = container.tests

            feedback, console = sections.get(".".join(nodeid.split("::")[1:]), ([], []))
            siblings.append(
                ResultFragment(
                    id=leaf,
                    name=f"[{params}]" if params is not None else leaf,
                    status=status,
                    params=params,
                    feedback="\n".join(feedback).strip() or None,
                    console=console or None,
                )
            )
        return roots


class JsonFragmentParser(OutputParser):
    """
    For commands that print the suite result themselves as one JSON document
    shaped like a result fragment. Selected tests are passed as
    `id::id` paths after the file.
    """

    name = "json"

    def build_args(self, invocation: SuiteInvocation, command: Sequence[str], file: str) -> list[str]:
        return [*command, file, *("::".join(key) for key in invocation.test_ids)]

    def parse(
        self, invocation: SuiteInvocation, stdout: str, stderr: str, exit_code: int | None
    ) -> ResultFragment | None:
        payload = self._extract(stdout)
        if payload is None:
            return None
        fragment = ResultFragment.from_payload(
            payload, fallback_id=invocation.suite_id, fallback_name=invocation.file.name
        )
        if stderr.strip() and fragment.console is None:
            fragment.console = stderr.splitlines()
        return fragment

    def _extract(self, stdout: str) -> Any:
        text = stdout.strip()
        if not text:
            return None
        try:
            return json.loads(text)
        except json.JSONDecodeError:
            pass
        # Tools that log before printing their result: take the last JSON line.
        for line in reversed(text.splitlines()):
            line = line.strip()
            if line.startswith("{"):
                try:
                    return json.loads(line)
                except json.JSONDecodeError:
                    continue
        log.debug("No JSON document found in runner output", length=len(text))
        return None


# 🔼⚙️

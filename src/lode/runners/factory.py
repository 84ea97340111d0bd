#
# src/lode/runners/factory.py
#
"""
Factory for creating test runner instances.
"""

import structlog

from lode.exceptions import ConfigurationError
from lode.runners.parsers import JsonFragmentParser, OutputParser, PytestOutputParser
from lode.runners.protocols import Runner
from lode.runners.subprocess_runner import SubprocessRunner

log = structlog.get_logger("runners.factory")

RUNNER_MAP: dict[str, type[OutputParser]] = {
    "pytest": PytestOutputParser,
    "json": JsonFragmentParser,
}


def get_test_runner(name: str) -> Runner:
    """
    Returns a runner for the given output format name.

    Raises:
        ConfigurationError: For an unknown runner name.
    """
    runner_name = name.lower()
    parser_class = RUNNER_MAP.get(runner_name)

    if not parser_class:
        log.error("Unsupported test runner specified", runner=runner_name)
        raise ConfigurationError(
            f"Unsupported test runner: '{name}'. Available runners: {list(RUNNER_MAP.keys())}"
        )

    log.debug("Instantiating test runner", runner=runner_name)
    return SubprocessRunner(parser_class())


# 🔼⚙️

#
# src/lode/runners/__init__.py
#
"""
Test runners: execute suites and report their results as fragments.
"""

from lode.runners.factory import RUNNER_MAP, get_test_runner
from lode.runners.parsers import JsonFragmentParser, OutputParser, PytestOutputParser
from lode.runners.protocols import Runner, RunnerOutcome, SuiteInvocation
from lode.runners.ssh import SshOptions
from lode.runners.subprocess_runner import SubprocessRunner

__all__ = [
    "RUNNER_MAP",
    "JsonFragmentParser",
    "OutputParser",
    "PytestOutputParser",
    "Runner",
    "RunnerOutcome",
    "SshOptions",
    "SubprocessRunner",
    "SuiteInvocation",
    "get_test_runner",
]

# 🔼⚙️

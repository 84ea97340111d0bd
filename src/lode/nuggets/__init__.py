#
# src/lode/nuggets/__init__.py
#
"""
The result tree: suites, tests and the protocol merging runner results into them.
"""

from lode.nuggets.arena import NuggetArena
from lode.nuggets.events import Emitter
from lode.nuggets.nugget import Nugget
from lode.nuggets.protocols import ChildLoader, NuggetKey, NullChildLoader
from lode.nuggets.results import ResultFragment, RunStats
from lode.nuggets.suite import Suite, suite_id_for
from lode.nuggets.test import Test

__all__ = [
    "ChildLoader",
    "Emitter",
    "Nugget",
    "NuggetArena",
    "NuggetKey",
    "NullChildLoader",
    "ResultFragment",
    "RunStats",
    "Suite",
    "Test",
    "suite_id_for",
]

# 🔼⚙️

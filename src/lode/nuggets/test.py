#
# src/lode/nuggets/test.py
#
"""
A single test case, possibly owning nested cases (classes, parametrized runs).
"""

from typing import Any

from lode.nuggets.nugget import Nugget
from lode.nuggets.results import ResultFragment, RunStats
from lode.status import Status


class Test(Nugget):
    __test__ = False  # keep pytest from collecting this class

    default_status = Status.IDLE

    @property
    def feedback(self) -> Any:
        return self.result.feedback

    @property
    def console(self) -> list[Any]:
        return self.result.console or []

    @property
    def stats(self) -> RunStats | None:
        return self.result.stats

    @property
    def params(self) -> str | None:
        return self.result.params

    def new_test(self, fragment: ResultFragment, selected: bool = False) -> "Test":
        return Test(self.arena, self.key + (fragment.id,), fragment, selected=selected)


# 🔼⚙️

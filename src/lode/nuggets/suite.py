#
# src/lode/nuggets/suite.py
#
"""
A test file: the unit addressed by one runner invocation.
"""

import hashlib
import weakref
from pathlib import Path
from typing import TYPE_CHECKING

import attrs

from lode.nuggets.arena import NuggetArena
from lode.nuggets.nugget import Nugget
from lode.nuggets.results import ResultFragment
from lode.nuggets.test import Test
from lode.status import Status

if TYPE_CHECKING:
    from lode.framework import Framework


def suite_id_for(path: Path | str) -> str:
    """Stable suite id derived from the file path."""
    return hashlib.sha1(str(path).encode("utf-8")).hexdigest()[:16]


class Suite(Nugget):
    default_status = Status.EMPTY

    def __init__(
        self,
        arena: NuggetArena,
        fragment: ResultFragment,
        framework: "Framework | None" = None,
        selected: bool = False,
    ):
        self._framework_ref = weakref.ref(framework) if framework is not None else None
        super().__init__(arena, (fragment.id,), fragment, selected=selected)

    @classmethod
    def from_file(
        cls, arena: NuggetArena, path: Path, framework: "Framework | None" = None, root: Path | None = None
    ) -> "Suite":
        """Creates an empty suite for a discovered test file; `root` shortens the displayed name."""
        relative = path.relative_to(root) if root is not None and path.is_relative_to(root) else path
        fragment = ResultFragment(id=suite_id_for(path), name=relative.as_posix(), file=str(path))
        return cls(arena, fragment, framework=framework)

    @property
    def framework(self) -> "Framework | None":
        return self._framework_ref() if self._framework_ref is not None else None

    @property
    def file(self) -> str | None:
        return self.result.file

    def build(self, fragment: ResultFragment, cleanup: bool) -> None:
        # Runners rarely echo the file back; keep the discovered one.
        if fragment.file is None and self.result.file is not None:
            fragment = attrs.evolve(fragment, file=self.result.file)
        super().build(fragment, cleanup)

    def new_test(self, fragment: ResultFragment, selected: bool = False) -> Test:
        return Test(self.arena, self.key + (fragment.id,), fragment, selected=selected)

    def selected_tests(self) -> list[Nugget]:
        """Selected tests of this file; empty when the file is selected as a whole."""
        return [nugget for nugget in self.selection_scope() if nugget is not self]


# 🔼⚙️

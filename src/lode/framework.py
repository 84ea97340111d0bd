#
# src/lode/framework.py
#
"""
A test-running framework registered for a project: owns the suites found in
the project, the run ledger and the display filters.
"""

from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any

import structlog
from attrs import field, mutable

from lode.config.models import FrameworkConfig
from lode.exceptions import EntityNotFoundError
from lode.ledger import RunLedger
from lode.nuggets import Nugget, NuggetArena, NuggetKey, ResultFragment, Suite, Test
from lode.status import DEFAULT_PRECEDENCE, Status, StatusPrecedence
from lode.telemetry import StructLogger

if TYPE_CHECKING:
    from lode.runtime.tui_interface import TUIInterface

log: StructLogger = structlog.get_logger("framework")

UI_EVENTS = ("status", "selected", "expanded", "children", "debriefed")


@mutable(slots=True)
class FrameworkFilters:
    """Filters applied to the suites shown in the UI. Empty values disable a filter."""

    keyword: str | None = field(default=None)
    statuses: frozenset[Status] = field(factory=frozenset, converter=frozenset)
    selected_only: bool = field(default=False)

    @property
    def active(self) -> bool:
        return bool(self.keyword or self.statuses or self.selected_only)


def _names_in(nugget: Nugget) -> Iterable[str]:
    yield nugget.display_name
    if nugget.is_materialized:
        for child in nugget.children:
            yield from _names_in(child)
    else:
        stack = list(nugget.result.tests or ())
        while stack:
            fragment = stack.pop()
            yield fragment.display_name or fragment.name
            stack.extend(fragment.tests or ())


class Framework:
    """
    Boundary object the runtime talks to. Also acts as the lazy child loader
    of its own tree.
    """

    def __init__(
        self,
        framework_id: str,
        config: FrameworkConfig,
        precedence: StatusPrecedence = DEFAULT_PRECEDENCE,
        ui: "TUIInterface | None" = None,
    ):
        self.id = framework_id
        self.config = config
        self.ui = ui
        self.arena = NuggetArena(precedence=precedence, loader=self, name=framework_id)
        self.suites: list[Suite] = []
        self.ledger = RunLedger()
        self.filters = FrameworkFilters()
        self._log = log.bind(framework_id=framework_id)
        if ui is not None and ui.is_active:
            self.arena.on_register(self._attach_ui)

    def __repr__(self) -> str:
        return f"<Framework {self.id!r} suites={len(self.suites)} status={self.status.value}>"

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def status(self) -> Status:
        """Aggregated from the current suite statuses on every read."""
        return self.arena.precedence.aggregate(suite.status for suite in self.suites)

    # --- Suites ---
    def discover(self) -> list[Path]:
        """Files under the framework path matching the configured patterns."""
        root = self.config.path
        found: set[Path] = set()
        for pattern in self.config.patterns:
            found.update(path for path in root.glob(pattern) if path.is_file())
        return sorted(found)

    def refresh(self) -> tuple[list[Suite], list[Suite]]:
        """
        Synchronizes suites with the files on disk.

        Returns:
            The suites added and the suites removed.
        """
        files = self.discover()
        known = {suite.file: suite for suite in self.suites}
        added = [self.add_suite(path) for path in files if str(path) not in known]
        present = {str(path) for path in files}
        removed = [suite for suite in list(self.suites) if suite.file not in present]
        for suite in removed:
            self.remove_suite(suite)
        if added or removed:
            self._log.info("Suites refreshed", added=len(added), removed=len(removed), total=len(self.suites))
        return added, removed

    def add_suite(self, path: Path) -> Suite:
        suite = Suite.from_file(self.arena, path, framework=self, root=self.config.path)
        self.suites.append(suite)
        return suite

    def remove_suite(self, suite: Suite) -> None:
        self.suites.remove(suite)
        self.arena.discard(suite)
        self._log.debug("Suite removed", suite_id=suite.id, file=suite.file)

    def get_suite(self, suite_id: str) -> Suite:
        nugget = self.arena.find((suite_id,))
        if not isinstance(nugget, Suite):
            raise EntityNotFoundError((suite_id,), self.id)
        return nugget

    def find(self, identifiers: Sequence[str]) -> Nugget:
        """Looks up a materialized node without expanding anything."""
        return self.arena.find(identifiers)

    async def resolve(self, identifiers: Sequence[str]) -> Nugget:
        """
        Walks down to the node at `identifiers`, expanding nodes on the way.

        Raises:
            EntityNotFoundError: When any identifier along the path is unknown.
        """
        if not identifiers:
            raise EntityNotFoundError((), self.id)
        nugget: Nugget = self.get_suite(identifiers[0])
        for depth, test_id in enumerate(identifiers[1:], start=2):
            if not nugget.is_materialized:
                await nugget.toggle_expanded(True)
            child = nugget.find_test(test_id)
            if child is None:
                raise EntityNotFoundError(tuple(identifiers[:depth]), self.id)
            nugget = child
        return nugget

    async def load_children(self, identifiers: NuggetKey) -> list[ResultFragment]:
        nugget = self.arena.find(identifiers)
        return [fragment.copy() for fragment in nugget.result.tests or ()]

    # --- Persistence ---
    def snapshot(self) -> dict[str, Any]:
        return {
            "suites": [suite.persist() for suite in self.suites],
            "ledger": self.ledger.to_payload(),
        }

    def restore(self, snapshot: Mapping[str, Any]) -> None:
        """Rebuilds suites (children stay stored until expanded) and the ledger from a snapshot."""
        restored = 0
        for payload in snapshot.get("suites") or ():
            fragment = ResultFragment.from_payload(payload)
            existing = self.arena.get((fragment.id,))
            if isinstance(existing, Suite):
                existing.build(fragment, cleanup=False)
            else:
                self.suites.append(Suite(self.arena, fragment, framework=self))
            restored += 1
        self.ledger = RunLedger.from_payload(snapshot.get("ledger") or ())
        self._log.debug("Snapshot restored", suites=restored, runs=len(self.ledger))

    # --- Selection and run state ---
    def is_selective(self) -> bool:
        return any(suite.selected for suite in self.suites)

    def selected_suites(self) -> list[Suite]:
        return [suite for suite in self.suites if suite.selected]

    def suites_in_scope(self) -> list[Suite]:
        """Suites a run will execute: the selected ones, or all of them when nothing is selected."""
        return self.selected_suites() if self.is_selective() else list(self.suites)

    def queue(self, selective: bool = False) -> None:
        for suite in self.suites:
            suite.queue(selective)

    def idle(self, selective: bool = False) -> None:
        for suite in self.suites:
            suite.idle(selective)

    def error(self, selective: bool = False) -> None:
        for suite in self.suites:
            suite.error(selective)

    def idle_queued(self, selective: bool = True) -> None:
        for suite in self.suites:
            suite.idle_queued(selective)

    def error_queued(self, selective: bool = True) -> None:
        for suite in self.suites:
            suite.error_queued(selective)

    def is_new(self, test: Test) -> bool:
        """True when the test was first seen after the start of the last completed run."""
        last = self.ledger.last_run()
        if last is None or test.stats is None or test.stats.first is None:
            return False
        try:
            first_seen = datetime.fromisoformat(test.stats.first)
        except ValueError:
            return False
        return first_seen > last.started

    # --- Filters ---
    def set_filter(self, key: str, value: Any) -> None:
        if key not in ("keyword", "statuses", "selected_only"):
            raise ValueError(f"Unknown filter '{key}'")
        if key == "statuses":
            value = frozenset(Status.parse(status) for status in value or ())
        setattr(self.filters, key, value)
        self._log.debug("Filter set", filter=key, value=value)

    def reset_filters(self) -> None:
        self.filters = FrameworkFilters()

    def visible_suites(self) -> list[Suite]:
        filters = self.filters
        visible = []
        for suite in self.suites:
            if filters.selected_only and not suite.selected:
                continue
            if filters.statuses and suite.status not in filters.statuses:
                continue
            if filters.keyword:
                needle = filters.keyword.lower()
                if not any(needle in name.lower() for name in _names_in(suite)):
                    continue
            visible.append(suite)
        return visible

    # --- UI bridge ---
    def _attach_ui(self, nugget: Nugget) -> None:
        for event in UI_EVENTS:
            nugget.on(event, self._make_forwarder(event))

    def _make_forwarder(self, event: str):
        def forward(nugget: Nugget, *args: Any) -> None:
            if self.ui is not None:
                self.ui.post_nugget_update(self.id, event, nugget.render())

        return forward


# 🔼⚙️

#
# src/lode/nuggets/nugget.py
#
"""
Base class for every node of the results tree (suites and tests).

A nugget's status is never stored on its own once it has children: it is
recomputed from the children (and from its own run state when that is an
error) every time something below it changes.
"""

from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any, ClassVar

import attrs
import structlog

from lode.nuggets import selection
from lode.nuggets.arena import NuggetArena
from lode.nuggets.debrief import (
    fragment_status,
    merge_fragments,
    merge_stats,
    persist_fragment,
    plan_debrief,
    reset_fragment,
    stamp_last_run,
    transition_fragments,
)
from lode.nuggets.events import Emitter
from lode.nuggets.protocols import NuggetKey
from lode.nuggets.results import ResultFragment, now_iso
from lode.status import PENDING_STATUSES, Status

if TYPE_CHECKING:
    from lode.nuggets.test import Test

log = structlog.get_logger("nuggets.nugget")


class Nugget(Emitter):
    """
    Abstract tree node.

    Events emitted (all with the node as first argument):
        status: (nugget, new_status, old_status)
        selected: (nugget, selected)
        expanded: (nugget, expanded)
        children: (nugget,) when children were added, removed or materialized
        debriefed: (nugget,) after a debrief completed
    """

    default_status: ClassVar[Status] = Status.IDLE

    def __init__(
        self,
        arena: NuggetArena,
        key: Sequence[str],
        fragment: ResultFragment,
        selected: bool = False,
    ):
        super().__init__()
        self.arena = arena
        self.key: NuggetKey = tuple(key)
        self.selected = selected
        self.expanded = False
        self.partial = False
        self.status: Status = self.default_status
        self.children: list["Test"] = []
        self.result = ResultFragment(id=self.key[-1], name=fragment.name)
        self._materialized = False
        self._building = False
        self._loading = False
        self._cleanups = 0
        self._log = log.bind(nugget_id=self.key[-1], kind=type(self).__name__)
        arena.register(self)
        self.build(fragment, cleanup=False)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id!r} status={self.status.value}>"

    # --- Identity ---
    @property
    def id(self) -> str:
        return self.key[-1]

    @property
    def name(self) -> str:
        return self.result.name

    @property
    def display_name(self) -> str:
        return self.result.display_name or self.result.name

    @property
    def is_materialized(self) -> bool:
        """Whether children exist as nodes (as opposed to stored fragments)."""
        return self._materialized

    def new_test(self, fragment: ResultFragment, selected: bool = False) -> "Test":
        raise NotImplementedError

    # --- Structure ---
    def count_children(self) -> int:
        if self._materialized:
            return len(self.children)
        return len(self.result.tests or ())

    def has_children(self) -> bool:
        return self.count_children() > 0

    def find_test(self, test_id: str) -> "Test | None":
        for child in self.children:
            if child.id == test_id:
                return child
        return None

    # --- Expansion ---
    async def toggle_expanded(self, toggle: bool | None = None, cascade: bool = False) -> None:
        """
        Expands or collapses this node.

        Expanding a node whose children were never materialized asks the
        arena's child loader for them. The node reports itself as expanded
        right away and gets its children once the loader answers.
        """
        toggle = (not self.expanded) if toggle is None else bool(toggle)
        if toggle == self.expanded and not cascade:
            return
        if toggle != self.expanded:
            self.expanded = toggle
            self.emit("expanded", self, toggle)
        if toggle and not self._materialized:
            await self._load_children()
        if cascade:
            for child in list(self.children):
                await child.toggle_expanded(toggle, cascade)

    async def _load_children(self) -> None:
        if self._loading:
            return
        self._loading = True
        cleanups = self._cleanups
        try:
            fragments = await self.arena.loader.load_children(self.key)
        except Exception:
            self._log.exception("Unable to load children, node stays empty")
            return
        finally:
            self._loading = False
        if not self._materialized:
            self._materialize(fragments, stored_is_complete=self._cleanups != cleanups)

    def _materialize(self, fragments: Sequence[ResultFragment], stored_is_complete: bool = False) -> None:
        # Anything debriefed while the loader was busy is newer than what it returned.
        # After a cleanup debrief the stored list is the whole child set.
        stored = self.result.tests or []
        merged = merge_fragments(fragments, stored, cleanup=stored_is_complete) if fragments else list(stored)
        self._building = True
        try:
            self.children = [self.new_test(fragment, selected=self.selected) for fragment in merged]
            self.result = attrs.evolve(self.result, tests=None)
            self._materialized = True
        finally:
            self._building = False
        self._log.debug("Children materialized", count=len(self.children))
        self.emit("children", self)
        self._recompute_status()

    # --- Selection ---
    def toggle_selected(self, toggle: bool | None = None, cascade: bool = False) -> None:
        """
        Selects or deselects this node.

        With `cascade`, every materialized descendant follows. Ancestors are
        selected as long as at least one of their children is.
        """
        toggle = (not self.selected) if toggle is None else bool(toggle)
        if toggle == self.selected and not cascade:
            return
        self._set_selected(toggle)
        if cascade:
            for child in self.children:
                child._cascade_selected(toggle)
        self._sync_ancestor_selection()

    def _cascade_selected(self, toggle: bool) -> None:
        self._set_selected(toggle)
        for child in self.children:
            child._cascade_selected(toggle)

    def _set_selected(self, toggle: bool) -> None:
        if self.selected == toggle:
            return
        self.selected = toggle
        self.emit("selected", self, toggle)

    def _sync_ancestor_selection(self) -> None:
        parent = self.arena.parent_of(self)
        while parent is not None:
            parent._set_selected(any(child.selected for child in parent.children))
            parent = self.arena.parent_of(parent)

    def is_partially_selected(self) -> bool:
        return selection.is_partially_selected(self)

    def selection_scope(self) -> list["Nugget"]:
        return selection.selection_scope(self)

    def selected_tests(self) -> list["Nugget"]:
        """Selected leaf closure: nodes to run, each standing for its whole subtree."""
        return self.selection_scope()

    # --- Run state transitions ---
    def queue(self, selective: bool = False) -> None:
        self._transition(Status.QUEUED, selective)

    def running(self, selective: bool = False) -> None:
        """Marks queued nodes in scope as running (the runner started on them)."""
        self._transition(Status.RUNNING, selective, only=frozenset({Status.QUEUED}))

    def idle(self, selective: bool = False) -> None:
        self._transition(Status.IDLE, selective)

    def error(self, selective: bool = False) -> None:
        self._transition(Status.ERROR, selective)

    def idle_queued(self, selective: bool = True) -> None:
        """Reverts nodes still waiting for a result to idle, leaving arrived results alone."""
        self._transition(Status.IDLE, selective, only=PENDING_STATUSES)

    def error_queued(self, selective: bool = True) -> None:
        """Marks nodes still waiting for a result as errored, leaving arrived results alone."""
        self._transition(Status.ERROR, selective, only=PENDING_STATUSES)

    def _transition(self, status: Status, selective: bool, only: frozenset[Status] | None = None) -> None:
        if selective and not self.selected:
            return
        self._apply_transition(status, selective, only)
        self._propagate()

    def _apply_transition(self, status: Status, selective: bool, only: frozenset[Status] | None) -> None:
        self._building = True
        try:
            if only is None or self.status in only or self.result.status in only:
                self.result.status = status
            if self._materialized:
                children, child_selective = selection.scope_children(self.children, selective)
                for child in children:
                    child._apply_transition(status, child_selective, only)
            elif self.result.tests:
                self.result.tests = transition_fragments(self.result.tests, status, only, self.arena.precedence)
        finally:
            self._building = False
        self._recompute_status(propagate=False)

    # --- Building and debriefing ---
    def merge_results(self, fragment: ResultFragment) -> ResultFragment:
        """
        Keeps the first-seen stamp of this node when it has one; otherwise the
        fragment's own stamp, or now for a node seen for the first time.
        """
        return attrs.evolve(fragment, stats=merge_stats(self.result.stats, fragment.stats))

    def build(self, fragment: ResultFragment, cleanup: bool) -> None:
        """
        Merges a result fragment into this node and its subtree.

        Args:
            fragment: Result for this node; its `tests` (when present) are
                matched against existing children by id.
            cleanup: Remove children missing from `fragment.tests`. Leave it
                off for selective runs so unselected children keep their state.
        """
        fragment = self.merge_results(attrs.evolve(fragment, id=self.id))
        incoming = fragment.tests
        stored = self.result.tests
        self._building = True
        try:
            if incoming is None:
                self.partial = self.has_children()
            elif self._materialized:
                self._debrief_children(incoming, cleanup)
            else:
                plan = plan_debrief([child.id for child in stored or ()], incoming, cleanup)
                stored = merge_fragments(stored or [], incoming, cleanup)
                if cleanup:
                    self._cleanups += 1
                self.partial = plan.partial
            self.result = attrs.evolve(fragment, tests=None if self._materialized else stored)
        finally:
            self._building = False
        self._recompute_status()

    def _debrief_children(self, incoming: Sequence[ResultFragment], cleanup: bool) -> None:
        plan = plan_debrief([child.id for child in self.children], incoming, cleanup)
        by_id = {child.id: child for child in self.children}

        for fragment in plan.updates:
            by_id[fragment.id].build(fragment, cleanup)

        # Only a whole-subtree selection extends to tests that were not there yet.
        chosen = [child.selected for child in self.children]
        inherit = self.selected and (not any(chosen) or all(chosen))
        for fragment in plan.additions:
            self.children.append(self.new_test(fragment, selected=inherit))

        for child_id in plan.removals:
            stale = by_id[child_id]
            self.children.remove(stale)
            self.arena.discard(stale)
            self._log.debug("Removed stale child", child_id=child_id)

        self.partial = plan.partial
        if plan.additions or plan.removals:
            self.emit("children", self)

    async def debrief(self, result: ResultFragment | Mapping[str, Any], cleanup: bool) -> None:
        """
        Entry point for results streamed back by a runner.

        Stamps the run time, merges the result and notifies listeners. Never
        raises: a payload that cannot be processed leaves this node in ERROR
        with feedback explaining why.
        """
        fragment = ResultFragment.from_payload(result, fallback_id=self.id, fallback_name=self.name)
        if fragment.id != self.id:
            self._log.warning("Result id does not match node, keeping node id", fragment_id=fragment.id)
        fragment = stamp_last_run(fragment, now_iso())
        try:
            self.build(fragment, cleanup)
        except Exception as e:
            self._log.exception("Debrief failed, marking node as errored")
            self.build(ResultFragment.malformed(self.id, self.name, f"Unable to process result: {e}"), False)
        self.emit("debriefed", self)

    # --- Status bookkeeping ---
    def _compute_status(self) -> Status:
        own = self.result.status
        if self._materialized and self.children:
            statuses = [child.status for child in self.children]
        elif self.result.tests:
            statuses = [fragment_status(child, self.arena.precedence) for child in self.result.tests]
        else:
            return own or self.default_status
        if own is Status.ERROR:
            statuses.append(own)
        return self.arena.precedence.aggregate(statuses)

    def _recompute_status(self, propagate: bool = True) -> None:
        changed = self._update_status(self._compute_status())
        if propagate and changed:
            self._propagate()

    def _refresh_status(self) -> None:
        """Called by a child whose status changed."""
        if self._building:
            return
        self._recompute_status()

    def _propagate(self) -> None:
        parent = self.arena.parent_of(self)
        if parent is not None:
            parent._refresh_status()

    def _update_status(self, new_status: Status) -> bool:
        old_status = self.status
        if old_status is new_status:
            return False
        self.status = new_status
        log_func = self._log.warning if new_status is Status.ERROR else self._log.debug
        log_func("Nugget status changed", old_status=old_status.value, new_status=new_status.value)
        self.emit("status", self, new_status, old_status)
        return True

    # --- Output ---
    def render(self, status: Status | None = None) -> dict[str, Any]:
        """
        Payload for the UI: this node only, children are fetched on expansion.
        """
        payload = self.result.to_payload(status=status or self.status, include_tests=False)
        payload.update(
            identifiers=list(self.key),
            hasChildren=self.has_children(),
            selected=self.selected,
            partial=self.partial,
        )
        return payload

    def persist(self, status: Status | None = Status.IDLE) -> dict[str, Any]:
        """
        Full merged result tree for persistence.

        Args:
            status: Status written on every node; `None` keeps current statuses.
        """
        payload = self.result.to_payload(status=status or self.status, include_tests=False)
        if self._materialized:
            payload["tests"] = [child.persist(status) for child in self.children]
        elif self.result.tests is not None:
            payload["tests"] = [
                persist_fragment(child, status, self.arena.precedence) for child in self.result.tests
            ]
        return payload

    def reset_result(self) -> None:
        """Forgets run output (feedback, console, statuses) but keeps identity and first-seen."""
        self._building = True
        try:
            self.result = reset_fragment(self.result)
            for child in self.children:
                child.reset_result()
            self.partial = False
        finally:
            self._building = False
        self._recompute_status()


# 🔼⚙️

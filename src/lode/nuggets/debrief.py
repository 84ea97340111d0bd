#
# src/lode/nuggets/debrief.py
#
"""
The debrief protocol: reconciling an existing list of children with an
incoming, possibly partial, list of child results.

The same rules apply to materialized child nodes (see `Nugget.build`) and to
child results that are still stored as plain fragments, so a subtree keeps
its history whether or not it has been expanded.
"""

from collections.abc import Iterable, Sequence

import attrs
import structlog
from attrs import define, field

from lode.nuggets.results import ResultFragment, RunStats, now_iso
from lode.status import DEFAULT_PRECEDENCE, Status, StatusPrecedence

log = structlog.get_logger("nuggets.debrief")


@define(frozen=True, slots=True)
class DebriefPlan:
    """What to do with each child when merging an incoming child list."""

    updates: tuple[ResultFragment, ...] = field(default=())
    additions: tuple[ResultFragment, ...] = field(default=())
    removals: tuple[str, ...] = field(default=())
    untouched: tuple[str, ...] = field(default=())

    @property
    def partial(self) -> bool:
        """True when some existing children were neither updated nor removed."""
        return bool(self.untouched)


def plan_debrief(existing_ids: Sequence[str], incoming: Iterable[ResultFragment], cleanup: bool) -> DebriefPlan:
    """
    Matches incoming child results against existing children by id.

    Existing children missing from `incoming` are scheduled for removal when
    `cleanup` is set and left untouched otherwise. Duplicate ids in `incoming`
    keep their first occurrence.
    """
    known = set(existing_ids)
    seen: set[str] = set()
    updates: list[ResultFragment] = []
    additions: list[ResultFragment] = []
    for fragment in incoming:
        if fragment.id in seen:
            log.warning("Duplicate child id in result fragment, ignoring repeat", id=fragment.id)
            continue
        seen.add(fragment.id)
        (updates if fragment.id in known else additions).append(fragment)

    missing = tuple(child_id for child_id in existing_ids if child_id not in seen)
    return DebriefPlan(
        updates=tuple(updates),
        additions=tuple(additions),
        removals=missing if cleanup else (),
        untouched=() if cleanup else missing,
    )


def merge_stats(previous: RunStats | None, incoming: RunStats | None) -> RunStats:
    """
    Merges run statistics, keeping the first-seen stamp of `previous` when it
    has one, then the one carried by `incoming`, and stamping now otherwise.
    """
    base = previous if previous is not None else RunStats()
    merged = base.overlay(incoming)
    if merged.first is None:
        merged.first = now_iso()
    return merged


def merge_fragment(previous: ResultFragment | None, incoming: ResultFragment, cleanup: bool) -> ResultFragment:
    """Merges one incoming fragment into the previously stored one, recursively."""
    tests = previous.tests if previous is not None else None
    if incoming.tests is not None:
        tests = merge_fragments(tests or [], incoming.tests, cleanup)
    elif tests is not None:
        tests = [child.copy() for child in tests]
    return attrs.evolve(
        incoming,
        stats=merge_stats(previous.stats if previous is not None else None, incoming.stats),
        tests=tests,
    )


def merge_fragments(
    existing: Sequence[ResultFragment], incoming: Sequence[ResultFragment], cleanup: bool
) -> list[ResultFragment]:
    """Applies the debrief protocol to two lists of stored child fragments."""
    plan = plan_debrief([fragment.id for fragment in existing], incoming, cleanup)
    updates = {fragment.id: fragment for fragment in plan.updates}
    removals = set(plan.removals)

    merged: list[ResultFragment] = []
    for fragment in existing:
        if fragment.id in removals:
            continue
        if fragment.id in updates:
            merged.append(merge_fragment(fragment, updates[fragment.id], cleanup))
        else:
            merged.append(fragment.copy())
    merged.extend(merge_fragment(None, fragment, cleanup) for fragment in plan.additions)
    return merged


def fragment_status(
    fragment: ResultFragment,
    precedence: StatusPrecedence = DEFAULT_PRECEDENCE,
    default: Status = Status.IDLE,
) -> Status:
    """Status of a stored fragment, aggregated from its nested tests when it has any."""
    if not fragment.tests:
        return fragment.status or default
    statuses = [fragment_status(child, precedence) for child in fragment.tests]
    if fragment.status is Status.ERROR:
        statuses.append(Status.ERROR)
    return precedence.aggregate(statuses)


def transition_fragments(
    fragments: Sequence[ResultFragment],
    status: Status,
    only: frozenset[Status] | None = None,
    precedence: StatusPrecedence = DEFAULT_PRECEDENCE,
) -> list[ResultFragment]:
    """
    Moves every stored fragment (recursively) to `status`.

    With `only`, fragments whose current status is not in `only` are left as
    they are, which protects results that already arrived.
    """
    moved: list[ResultFragment] = []
    for fragment in fragments:
        current = fragment_status(fragment, precedence)
        own_status = fragment.status
        if only is None or current in only or (fragment.status in only):
            own_status = status
        moved.append(
            attrs.evolve(
                fragment,
                status=own_status,
                tests=(
                    transition_fragments(fragment.tests, status, only, precedence)
                    if fragment.tests is not None
                    else None
                ),
            )
        )
    return moved


def reset_fragment(fragment: ResultFragment) -> ResultFragment:
    """Strips run output from a fragment tree, keeping identity and first-seen stamps."""
    stats = RunStats(first=fragment.stats.first) if fragment.stats is not None else None
    return ResultFragment(
        id=fragment.id,
        name=fragment.name,
        display_name=fragment.display_name,
        params=fragment.params,
        file=fragment.file,
        stats=stats,
        tests=[reset_fragment(child) for child in fragment.tests] if fragment.tests is not None else None,
    )


def persist_fragment(
    fragment: ResultFragment,
    status: Status | None,
    precedence: StatusPrecedence = DEFAULT_PRECEDENCE,
) -> dict:
    """
    Serializes a stored fragment tree for persistence.

    `status` forces every node to that status; `None` writes each node's
    current (aggregated) status.
    """
    payload = fragment.to_payload(status=status or fragment_status(fragment, precedence), include_tests=False)
    if fragment.tests is not None:
        payload["tests"] = [persist_fragment(child, status, precedence) for child in fragment.tests]
    return payload


def stamp_last_run(fragment: ResultFragment, when: str) -> ResultFragment:
    """Stamps `stats.last` with `when` on every node of the tree, replacing any reported value."""
    stats = attrs.evolve(fragment.stats or RunStats(), last=when)
    return attrs.evolve(
        fragment,
        stats=stats,
        tests=[stamp_last_run(child, when) for child in fragment.tests] if fragment.tests is not None else None,
    )


# 🔼⚙️

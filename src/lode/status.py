#
# src/lode/status.py
#
"""
Test statuses and the aggregation of child statuses into a parent status.
"""

from collections.abc import Iterable, Sequence
from enum import Enum

from attrs import define, field


class Status(Enum):
    """Closed set of statuses a suite or test can be in."""

    ERROR = "error"
    FAILED = "failed"
    WARNING = "warning"
    INCOMPLETE = "incomplete"
    PASSED = "passed"
    RUNNING = "running"
    QUEUED = "queued"
    IDLE = "idle"
    EMPTY = "empty"  # Only for a container without children.

    @classmethod
    def parse(cls, value: "str | Status") -> "Status":
        """Converts a wire value into a Status, raising ValueError on unknown values."""
        if isinstance(value, Status):
            return value
        return cls(str(value).strip().lower())


# Statuses a node is in while a run still owes it a result.
PENDING_STATUSES: frozenset[Status] = frozenset({Status.QUEUED, Status.RUNNING})

STATUS_EMOJI_MAP = {
    Status.ERROR: "💥",
    Status.FAILED: "❌",
    Status.WARNING: "⚠️",
    Status.INCOMPLETE: "⏸️",
    Status.PASSED: "✅",
    Status.RUNNING: "🔄",
    Status.QUEUED: "⏳",
    Status.IDLE: "⚪",
    Status.EMPTY: "➖",
}

DEFAULT_ORDER: tuple[Status, ...] = (
    Status.ERROR,
    Status.FAILED,
    Status.WARNING,
    Status.INCOMPLETE,
    Status.PASSED,
    Status.RUNNING,
    Status.QUEUED,
    Status.IDLE,
    Status.EMPTY,
)


def _validate_order(inst: "StatusPrecedence", attr, value: Sequence[Status]) -> None:
    if len(value) != len(Status) or set(value) != set(Status):
        missing = sorted(s.value for s in set(Status) - set(value))
        raise ValueError(
            f"Status precedence must list every status exactly once (missing: {missing or 'none'}, "
            f"got {len(value)} entries)."
        )


@define(frozen=True, slots=True)
class StatusPrecedence:
    """
    Ordering used to pick a parent's status from its children.

    The first entry wins over everything listed after it.
    """

    order: tuple[Status, ...] = field(default=DEFAULT_ORDER, converter=tuple, validator=_validate_order)

    @classmethod
    def from_names(cls, names: Iterable[str]) -> "StatusPrecedence":
        return cls(tuple(Status.parse(name) for name in names))

    def rank(self, status: Status) -> int:
        """Lower rank means higher precedence."""
        return self.order.index(status)

    def aggregate(self, statuses: Iterable[Status]) -> Status:
        """
        Returns the highest-precedence status of the given multiset.

        An empty multiset aggregates to EMPTY. The result does not depend on
        the order of the input.
        """
        best: Status | None = None
        best_rank = len(self.order)
        for status in statuses:
            rank = self.order.index(status)
            if rank < best_rank:
                best, best_rank = status, rank
        return best if best is not None else Status.EMPTY


DEFAULT_PRECEDENCE = StatusPrecedence()


# 🔼⚙️

#
# src/lode/nuggets/results.py
#
"""
Result fragments streamed back by test runners.

`None` on an optional field means the payload did not carry it, which is
different from an empty value (e.g. `tests=[]` says "this node has no
children", `tests=None` says nothing about children at all).
"""

import hashlib
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

import attrs
import structlog
from attrs import define, field

from lode.status import Status

log = structlog.get_logger("nuggets.results")


def now_iso() -> str:
    """Current time as an ISO-8601 UTC timestamp."""
    return datetime.now(UTC).isoformat()


def ephemeral_id(*parts: object) -> str:
    """Generates a stable id for nodes whose payload did not carry one."""
    digest = hashlib.sha1("\x1f".join(str(part) for part in parts).encode("utf-8")).hexdigest()
    return f"ephemeral-{digest[:12]}"


@define(slots=True)
class RunStats:
    """Run statistics of a node. `first` is set once and never changes afterwards."""

    first: str | None = field(default=None)
    last: str | None = field(default=None)
    duration: float | None = field(default=None)
    extra: dict[str, Any] = field(factory=dict)

    @classmethod
    def from_payload(cls, payload: Any) -> "RunStats | None":
        if not isinstance(payload, Mapping):
            return None
        extra = {k: v for k, v in payload.items() if k not in ("first", "last", "duration")}
        duration = payload.get("duration")
        try:
            duration = float(duration) if duration is not None else None
        except (TypeError, ValueError):
            duration = None
        return cls(
            first=payload.get("first"),
            last=payload.get("last"),
            duration=duration,
            extra=extra,
        )

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = dict(self.extra)
        for key in ("first", "last", "duration"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        return payload

    def overlay(self, newer: "RunStats | None") -> "RunStats":
        """Returns a copy where every field present in `newer` wins, except `first`."""
        if newer is None:
            return attrs.evolve(self, extra=dict(self.extra))
        return RunStats(
            first=self.first or newer.first,
            last=newer.last if newer.last is not None else self.last,
            duration=newer.duration if newer.duration is not None else self.duration,
            extra={**self.extra, **newer.extra},
        )


@define(slots=True)
class ResultFragment:
    """A (possibly partial) result for one suite or test, nesting child results in `tests`."""

    id: str = field()
    name: str = field()
    display_name: str | None = field(default=None)
    status: Status | None = field(default=None)
    feedback: Any = field(default=None)
    console: list[Any] | None = field(default=None)
    params: str | None = field(default=None)
    file: str | None = field(default=None)
    stats: RunStats | None = field(default=None)
    tests: "list[ResultFragment] | None" = field(default=None)

    @classmethod
    def from_payload(
        cls,
        payload: Any,
        fallback_id: str | None = None,
        fallback_name: str | None = None,
    ) -> "ResultFragment":
        """
        Parses a wire payload. Never raises.

        A payload without identity, with an unusable shape or with an unknown
        status becomes an ERROR fragment whose feedback describes the defect,
        so the node that was supposed to report still shows something.
        """
        if isinstance(payload, ResultFragment):
            return payload
        if not isinstance(payload, Mapping):
            log.warning("Malformed result fragment", reason="not a mapping", payload_type=type(payload).__name__)
            return cls.malformed(
                fallback_id or ephemeral_id(repr(payload)),
                fallback_name or "Unknown",
                f"Malformed result: expected an object, got {type(payload).__name__}.",
            )

        problems: list[str] = []
        raw_id = payload.get("id")
        raw_name = payload.get("name")
        if not raw_id and not raw_name:
            problems.append("missing 'id' and 'name'")
        node_id = str(raw_id or fallback_id or raw_name or ephemeral_id(sorted(payload.items(), key=str)))
        name = str(raw_name or fallback_name or node_id)

        status: Status | None = None
        if payload.get("status") is not None:
            try:
                status = Status.parse(payload["status"])
            except ValueError:
                problems.append(f"unknown status {payload['status']!r}")

        tests: list[ResultFragment] | None = None
        raw_tests = payload.get("tests")
        if raw_tests is not None:
            if isinstance(raw_tests, list):
                tests = [
                    cls.from_payload(child, fallback_id=f"{node_id}#{index}", fallback_name=f"{name} #{index}")
                    for index, child in enumerate(raw_tests)
                ]
            else:
                problems.append("'tests' is not a list")

        console = payload.get("console")
        if console is not None and not isinstance(console, list):
            console = [console]

        fragment = cls(
            id=node_id,
            name=name,
            display_name=payload.get("displayName") or payload.get("display_name"),
            status=status,
            feedback=payload.get("feedback"),
            console=console,
            params=payload.get("params"),
            file=payload.get("file"),
            stats=RunStats.from_payload(payload.get("stats")),
            tests=tests,
        )
        if problems:
            log.warning("Malformed result fragment", id=node_id, problems=problems)
            fragment.status = Status.ERROR
            fragment.feedback = "Malformed result: " + "; ".join(problems) + "."
        return fragment

    @classmethod
    def malformed(cls, node_id: str, name: str, reason: str) -> "ResultFragment":
        return cls(id=node_id, name=name, status=Status.ERROR, feedback=reason)

    def copy(self) -> "ResultFragment":
        """Deep copy of the fragment tree (payload values are shared)."""
        return attrs.evolve(
            self,
            console=list(self.console) if self.console is not None else None,
            stats=self.stats.overlay(None) if self.stats is not None else None,
            tests=[child.copy() for child in self.tests] if self.tests is not None else None,
        )

    def to_payload(self, status: Status | None = None, include_tests: bool = True) -> dict[str, Any]:
        """
        Serializes back to the wire shape.

        Args:
            status: Overrides this node's status in the output (children keep theirs).
            include_tests: Whether to nest child payloads.
        """
        payload: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "displayName": self.display_name or self.name,
            "status": (status or self.status or Status.IDLE).value,
        }
        for key in ("feedback", "console", "params", "file"):
            value = getattr(self, key)
            if value is not None:
                payload[key] = value
        if self.stats is not None:
            payload["stats"] = self.stats.to_payload()
        if include_tests and self.tests is not None:
            payload["tests"] = [child.to_payload() for child in self.tests]
        return payload


# 🔼⚙️

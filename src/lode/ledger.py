#
# src/lode/ledger.py
#
"""
History of the runs of one framework.
"""

from collections.abc import Iterable, Mapping
from datetime import UTC, datetime
from typing import Any

import structlog
from attrs import field, mutable

from lode.status import Status
from lode.telemetry import StructLogger

log: StructLogger = structlog.get_logger("ledger")

DEFAULT_HISTORY_SIZE = 50


@mutable(slots=True)
class RunRecord:
    """One run: when it started and finished, and the framework status it ended with."""

    started: datetime = field()
    selective: bool = field(default=False)
    finished: datetime | None = field(default=None)
    status: Status | None = field(default=None)

    @property
    def duration(self) -> float | None:
        if self.finished is None:
            return None
        return (self.finished - self.started).total_seconds()

    @property
    def is_complete(self) -> bool:
        return self.finished is not None

    def to_payload(self) -> dict[str, Any]:
        return {
            "started": self.started.isoformat(),
            "finished": self.finished.isoformat() if self.finished else None,
            "status": self.status.value if self.status else None,
            "duration": self.duration,
            "selective": self.selective,
        }

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "RunRecord":
        """
        Raises:
            ValueError: On a missing or unparsable timestamp or status.
            KeyError: When `started` is missing.
        """
        finished = payload.get("finished")
        status = payload.get("status")
        return cls(
            started=datetime.fromisoformat(payload["started"]),
            selective=bool(payload.get("selective", False)),
            finished=datetime.fromisoformat(finished) if finished else None,
            status=Status.parse(status) if status else None,
        )


class RunLedger:
    """Bounded list of run records, newest last."""

    def __init__(self, records: Iterable[RunRecord] = (), max_records: int = DEFAULT_HISTORY_SIZE):
        self.max_records = max_records
        self._records: list[RunRecord] = list(records)[-max_records:]

    def __len__(self) -> int:
        return len(self._records)

    def begin(self, selective: bool = False) -> RunRecord:
        record = RunRecord(started=datetime.now(UTC), selective=selective)
        self._records.append(record)
        del self._records[: -self.max_records]
        log.debug("Run started", started=record.started.isoformat(), selective=selective)
        return record

    def finish(self, record: RunRecord, status: Status) -> RunRecord:
        record.finished = datetime.now(UTC)
        record.status = status
        log.debug("Run finished", status=status.value, duration=record.duration)
        return record

    @property
    def current(self) -> RunRecord | None:
        """The run in progress, if any."""
        if self._records and not self._records[-1].is_complete:
            return self._records[-1]
        return None

    def last_run(self) -> RunRecord | None:
        """Most recent completed run."""
        for record in reversed(self._records):
            if record.is_complete:
                return record
        return None

    def history(self) -> list[RunRecord]:
        return list(self._records)

    def to_payload(self) -> list[dict[str, Any]]:
        return [record.to_payload() for record in self._records if record.is_complete]

    @classmethod
    def from_payload(cls, payload: Iterable[Mapping[str, Any]], max_records: int = DEFAULT_HISTORY_SIZE) -> "RunLedger":
        records = []
        for entry in payload:
            try:
                records.append(RunRecord.from_payload(entry))
            except (KeyError, TypeError, ValueError) as e:
                log.warning("Skipping unreadable run record", error=str(e))
        return cls(records, max_records=max_records)


# 🔼⚙️

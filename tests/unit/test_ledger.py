# tests/unit/test_ledger.py

"""Unit tests for the run ledger."""

from datetime import UTC, datetime

from lode.ledger import RunLedger, RunRecord
from lode.status import Status


class TestRunLedger:
    def test_begin_and_finish(self):
        ledger = RunLedger()

        record = ledger.begin(selective=True)
        assert ledger.current is record
        assert ledger.last_run() is None
        assert record.duration is None

        ledger.finish(record, Status.PASSED)

        assert ledger.current is None
        assert ledger.last_run() is record
        assert record.status is Status.PASSED
        assert record.selective is True
        assert record.duration >= 0

    def test_history_is_bounded(self):
        ledger = RunLedger(max_records=3)
        for _ in range(5):
            ledger.finish(ledger.begin(), Status.PASSED)

        assert len(ledger) == 3
        assert len(ledger.history()) == 3

    def test_payload_skips_unfinished_runs(self):
        ledger = RunLedger()
        ledger.finish(ledger.begin(), Status.FAILED)
        ledger.begin()

        payload = ledger.to_payload()

        assert len(payload) == 1
        assert payload[0]["status"] == "failed"

    def test_from_payload_round_trip(self):
        started = datetime(2024, 5, 1, 12, 0, tzinfo=UTC)
        finished = datetime(2024, 5, 1, 12, 0, 30, tzinfo=UTC)
        record = RunRecord(started=started, finished=finished, status=Status.ERROR, selective=True)

        ledger = RunLedger.from_payload([record.to_payload()])

        restored = ledger.last_run()
        assert restored == record
        assert restored.duration == 30.0

    def test_from_payload_skips_bad_entries(self):
        ledger = RunLedger.from_payload(
            [
                {"started": "not a date"},
                {"finished": "2024-05-01T12:00:00+00:00"},
                {"started": "2024-05-01T12:00:00+00:00", "status": "exploded"},
                {"started": "2024-05-01T12:00:00+00:00", "finished": "2024-05-01T12:01:00+00:00", "status": "passed"},
            ]
        )

        assert len(ledger) == 1
        assert ledger.last_run().status is Status.PASSED

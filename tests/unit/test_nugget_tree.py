# tests/unit/test_nugget_tree.py

"""Behaviour of the result tree: aggregation, debriefs and persistence."""

from unittest.mock import patch

import pytest
from conftest import frag

from lode.nuggets import NuggetArena, ResultFragment, Suite
from lode.nuggets.results import RunStats
from lode.status import Status

RESULTS = [("A", Status.PASSED), ("B", Status.FAILED)]


def suite_payload(*tests, **kwargs) -> dict:
    """Wire payload for the default `suite` node."""
    payload = {"id": "suite", "name": "suite", **kwargs}
    if tests:
        payload["tests"] = [{"id": test_id, "name": test_id, "status": status} for test_id, status in tests]
    return payload


class TestAggregation:
    def test_new_suite_is_empty(self, make_suite):
        assert make_suite().status is Status.EMPTY

    def test_stored_children_drive_status(self, make_suite):
        suite = make_suite(tests=RESULTS)

        assert suite.status is Status.FAILED
        assert not suite.is_materialized
        assert suite.count_children() == 2

    @pytest.mark.asyncio
    async def test_precedence_in_tree(self, make_suite):
        suite = make_suite(tests=[("A", Status.PASSED), ("B", Status.WARNING), ("C", Status.IDLE)])
        assert suite.status is Status.WARNING

        await suite.debrief(suite_payload(("D", "error")), cleanup=False)

        assert suite.status is Status.ERROR

    @pytest.mark.parametrize("order", [RESULTS, list(reversed(RESULTS))])
    def test_child_order_does_not_matter(self, make_suite, order):
        assert make_suite(tests=order).status is Status.FAILED

    @pytest.mark.asyncio
    async def test_debrief_order_does_not_matter(self, make_suite):
        forward = make_suite("forward", tests=[("A",), ("B",)])
        backward = make_suite("backward", tests=[("A",), ("B",)])

        for suite, order in ((forward, RESULTS), (backward, reversed(RESULTS))):
            for test_id, status in order:
                test = {"id": test_id, "name": test_id, "status": status.value}
                await suite.debrief({"id": suite.id, "name": suite.id, "tests": [test]}, cleanup=False)

        assert forward.status is backward.status is Status.FAILED
        assert [t.status for t in forward.result.tests] == [t.status for t in backward.result.tests]

    @pytest.mark.asyncio
    async def test_container_own_error_counts(self, make_suite):
        suite = make_suite(tests=[("A", Status.PASSED)])

        await suite.debrief(suite_payload(status="error"), cleanup=False)

        assert suite.status is Status.ERROR

    @pytest.mark.asyncio
    async def test_container_own_failure_is_ignored(self, make_suite):
        suite = make_suite(tests=[("A", Status.PASSED)])

        await suite.debrief(suite_payload(status="failed"), cleanup=False)

        assert suite.status is Status.PASSED

    @pytest.mark.asyncio
    async def test_child_change_propagates(self, make_suite):
        suite = make_suite(tests=RESULTS)
        await suite.toggle_expanded(True)
        changes = []
        suite.on("status", lambda nugget, new, old: changes.append((new, old)))

        suite.find_test("B").build(frag("B", Status.ERROR), cleanup=False)

        assert suite.status is Status.ERROR
        assert changes == [(Status.ERROR, Status.FAILED)]


class TestDebrief:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("materialize", [False, True])
    async def test_selective_run_is_non_destructive(self, make_suite, materialize):
        suite = make_suite(tests=RESULTS)
        if materialize:
            await suite.toggle_expanded(True)

        await suite.debrief(suite_payload(("A", "passed")), cleanup=False)
        suite.idle_queued(selective=False)

        assert suite.status is Status.FAILED
        assert suite.partial is True
        assert suite.count_children() == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("materialize", [False, True])
    async def test_cleanup_removes_stale_tests(self, make_suite, arena, materialize):
        suite = make_suite(tests=RESULTS)
        if materialize:
            await suite.toggle_expanded(True)

        await suite.debrief(suite_payload(("A", "passed")), cleanup=True)

        assert suite.status is Status.PASSED
        assert suite.partial is False
        assert suite.count_children() == 1
        assert arena.get(("suite", "B")) is None

    @pytest.mark.asyncio
    async def test_new_tests_are_added(self, make_suite, arena):
        suite = make_suite(tests=[("A", Status.PASSED)])
        await suite.toggle_expanded(True)
        children_events = []
        suite.on("children", children_events.append)

        await suite.debrief(suite_payload(("A", "passed"), ("C", "failed")), cleanup=True)

        assert [child.id for child in suite.children] == ["A", "C"]
        assert arena.get(("suite", "C")) is suite.find_test("C")
        assert children_events == [suite]

    @pytest.mark.parametrize("cleanup", [False, True])
    @pytest.mark.parametrize("materialize", [False, True])
    @pytest.mark.asyncio
    async def test_rebuilding_is_idempotent(self, make_suite, materialize, cleanup):
        suite = make_suite(tests=RESULTS)
        if materialize:
            await suite.toggle_expanded(True)
        stats = RunStats(first="t0", last="t1")
        fragment = frag(
            "suite",
            stats=stats,
            tests=[frag("A", Status.PASSED, stats=stats), frag("B", Status.FAILED, stats=stats, feedback="boom")],
        )

        suite.build(fragment, cleanup=cleanup)
        once = suite.persist(status=None)
        suite.build(fragment, cleanup=cleanup)

        assert suite.persist(status=None) == once

    @pytest.mark.asyncio
    async def test_first_seen_is_stable(self, make_suite):
        with patch("lode.nuggets.debrief.now_iso", return_value="T0"):
            suite = make_suite(tests=[("A", Status.PASSED)])

        with patch("lode.nuggets.debrief.now_iso", return_value="T1"), patch(
            "lode.nuggets.nugget.now_iso", return_value="T1"
        ):
            await suite.debrief(suite_payload(("A", "failed")), cleanup=False)

        stored = suite.result.tests[0]
        assert stored.stats.first == "T0"
        assert stored.stats.last == "T1"
        assert suite.result.stats.first == "T0"

        await suite.toggle_expanded(True)
        assert suite.find_test("A").stats.first == "T0"

    @pytest.mark.asyncio
    async def test_debrief_advances_reported_last_run(self, make_suite):
        suite = make_suite(tests=[("A", Status.PASSED)])
        payload = suite_payload(("A", "failed"))
        payload["stats"] = {"last": "2000-01-01T00:00:00+00:00"}

        with patch("lode.nuggets.nugget.now_iso", return_value="T2"):
            await suite.debrief(payload, cleanup=False)

        assert suite.result.stats.last == "T2"
        assert suite.result.tests[0].stats.last == "T2"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("payload", ["garbage", {"id": "suite", "name": "suite", "status": "bogus"}])
    async def test_malformed_result_marks_error(self, make_suite, payload):
        suite = make_suite(tests=RESULTS)

        await suite.debrief(payload, cleanup=True)

        assert suite.status is Status.ERROR
        assert "Malformed result" in suite.result.feedback
        assert suite.count_children() == 2

    @pytest.mark.asyncio
    async def test_mismatched_id_keeps_node_id(self, make_suite, arena):
        suite = make_suite(tests=RESULTS)

        await suite.debrief({"id": "elsewhere", "name": "suite", "tests": []}, cleanup=True)

        assert suite.id == "suite"
        assert suite.result.id == "suite"
        assert arena.get(("suite",)) is suite
        assert suite.count_children() == 0

    @pytest.mark.asyncio
    async def test_debriefed_event(self, make_suite):
        suite = make_suite(tests=RESULTS)
        seen = []
        suite.on("debriefed", seen.append)

        await suite.debrief(suite_payload(("A", "passed")), cleanup=False)

        assert seen == [suite]

    @pytest.mark.asyncio
    async def test_suite_keeps_discovered_file(self, make_suite):
        suite = make_suite(tests=RESULTS)

        await suite.debrief(suite_payload(("A", "passed")), cleanup=False)

        assert suite.file == "/project/tests/suite.py"


class TestOutput:
    def test_render_is_shallow(self, make_suite):
        suite = make_suite(tests=RESULTS)

        payload = suite.render()

        assert payload["identifiers"] == ["suite"]
        assert payload["status"] == "failed"
        assert payload["hasChildren"] is True
        assert payload["selected"] is False
        assert payload["partial"] is False
        assert "tests" not in payload

    @pytest.mark.asyncio
    @pytest.mark.parametrize("materialize", [False, True])
    async def test_persist_forces_idle(self, make_suite, materialize):
        suite = make_suite(tests=[frag("A", Status.FAILED, tests=[frag("A1", Status.FAILED)]), ("B", Status.PASSED)])
        if materialize:
            await suite.toggle_expanded(True, cascade=True)

        payload = suite.persist()

        assert payload["status"] == "idle"
        assert [test["status"] for test in payload["tests"]] == ["idle", "idle"]
        assert payload["tests"][0]["tests"][0]["status"] == "idle"

    @pytest.mark.asyncio
    async def test_persist_round_trips_through_a_new_suite(self, make_suite):
        suite = make_suite(tests=[frag("A", Status.FAILED, feedback="boom"), ("B", Status.PASSED)])
        await suite.toggle_expanded(True)

        restored = Suite(NuggetArena(), ResultFragment.from_payload(suite.persist(status=None)))

        assert restored.status is Status.FAILED
        assert restored.result.tests[0].feedback == "boom"

    @pytest.mark.asyncio
    async def test_reset_result(self, make_suite):
        with patch("lode.nuggets.debrief.now_iso", return_value="T0"):
            suite = make_suite(tests=[frag("A", Status.FAILED, feedback="boom")])
        await suite.toggle_expanded(True)

        suite.reset_result()

        test = suite.find_test("A")
        assert test.status is Status.IDLE
        assert test.feedback is None
        assert test.stats.first == "T0"
        assert suite.status is Status.IDLE

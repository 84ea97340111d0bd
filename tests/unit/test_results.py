# tests/unit/test_results.py

"""Unit tests for result fragment parsing and serialization."""

from lode.nuggets.results import ResultFragment, RunStats
from lode.status import Status


class TestFromPayload:
    def test_full_payload(self):
        fragment = ResultFragment.from_payload(
            {
                "id": "suite-1",
                "name": "test_math.py",
                "displayName": "Math",
                "status": "failed",
                "feedback": "boom",
                "console": "single line",
                "stats": {"first": "2024-01-01T00:00:00+00:00", "duration": "1.5", "memory": 12},
                "tests": [{"id": "t1", "name": "test_add", "status": "passed"}],
            }
        )

        assert fragment.id == "suite-1"
        assert fragment.display_name == "Math"
        assert fragment.status is Status.FAILED
        assert fragment.console == ["single line"]
        assert fragment.stats == RunStats(first="2024-01-01T00:00:00+00:00", duration=1.5, extra={"memory": 12})
        assert [child.id for child in fragment.tests] == ["t1"]
        assert fragment.tests[0].status is Status.PASSED

    def test_absent_fields_stay_absent(self):
        fragment = ResultFragment.from_payload({"id": "a", "name": "a"})

        assert fragment.status is None
        assert fragment.stats is None
        assert fragment.tests is None

    def test_empty_tests_list_is_present(self):
        fragment = ResultFragment.from_payload({"id": "a", "name": "a", "tests": []})
        assert fragment.tests == []

    def test_missing_identity_becomes_error(self):
        fragment = ResultFragment.from_payload({"status": "passed"}, fallback_id="node", fallback_name="Node")

        assert fragment.id == "node"
        assert fragment.name == "Node"
        assert fragment.status is Status.ERROR
        assert "missing 'id' and 'name'" in fragment.feedback

    def test_unknown_status_becomes_error(self):
        fragment = ResultFragment.from_payload({"id": "a", "name": "a", "status": "sideways"})

        assert fragment.status is Status.ERROR
        assert "sideways" in fragment.feedback

    def test_non_mapping_becomes_error(self):
        fragment = ResultFragment.from_payload(["not", "a", "dict"], fallback_id="node")

        assert fragment.id == "node"
        assert fragment.status is Status.ERROR
        assert "expected an object" in fragment.feedback

    def test_tests_not_a_list(self):
        fragment = ResultFragment.from_payload({"id": "a", "name": "a", "tests": {"id": "b"}})

        assert fragment.status is Status.ERROR
        assert fragment.tests is None

    def test_nested_children_get_fallback_ids(self):
        fragment = ResultFragment.from_payload({"id": "a", "name": "a", "tests": [{"status": "passed"}]})

        child = fragment.tests[0]
        assert child.id == "a#0"
        assert child.status is Status.ERROR

    def test_name_only_payload_uses_name_as_id(self):
        fragment = ResultFragment.from_payload({"name": "test_thing"})

        assert fragment.id == "test_thing"
        assert fragment.status is None

    def test_fragment_passes_through(self):
        original = ResultFragment(id="a", name="a")
        assert ResultFragment.from_payload(original) is original


class TestToPayload:
    def test_wire_keys(self):
        fragment = ResultFragment(
            id="a",
            name="test_a",
            status=Status.PASSED,
            stats=RunStats(first="f", last="l"),
            tests=[ResultFragment(id="b", name="b")],
        )

        payload = fragment.to_payload()

        assert payload == {
            "id": "a",
            "name": "test_a",
            "displayName": "test_a",
            "status": "passed",
            "stats": {"first": "f", "last": "l"},
            "tests": [{"id": "b", "name": "b", "displayName": "b", "status": "idle"}],
        }

    def test_status_override_and_no_tests(self):
        fragment = ResultFragment(id="a", name="a", status=Status.RUNNING, tests=[])

        payload = fragment.to_payload(status=Status.IDLE, include_tests=False)

        assert payload["status"] == "idle"
        assert "tests" not in payload


class TestRunStats:
    def test_overlay_keeps_first(self):
        stats = RunStats(first="one", last="old", duration=1.0)

        merged = stats.overlay(RunStats(first="two", last="new"))

        assert merged.first == "one"
        assert merged.last == "new"
        assert merged.duration == 1.0

    def test_copy_is_deep(self):
        fragment = ResultFragment(id="a", name="a", console=["x"], tests=[ResultFragment(id="b", name="b")])

        clone = fragment.copy()
        clone.console.append("y")
        clone.tests[0].status = Status.FAILED

        assert fragment.console == ["x"]
        assert fragment.tests[0].status is None

# tests/unit/test_status.py

"""Unit tests for statuses and their aggregation."""

import itertools

import pytest

from lode.status import DEFAULT_PRECEDENCE, Status, StatusPrecedence

aggregate = DEFAULT_PRECEDENCE.aggregate


class TestStatusParse:
    def test_parses_wire_values(self):
        assert Status.parse("passed") is Status.PASSED
        assert Status.parse(" FAILED ") is Status.FAILED
        assert Status.parse(Status.IDLE) is Status.IDLE

    def test_rejects_unknown_values(self):
        with pytest.raises(ValueError):
            Status.parse("exploded")


class TestAggregation:
    """Parent status is the highest-precedence child status."""

    def test_empty_multiset_is_empty(self):
        assert aggregate([]) is Status.EMPTY

    def test_precedence_example(self):
        statuses = [Status.PASSED, Status.WARNING, Status.IDLE]
        assert aggregate(statuses) is Status.WARNING
        assert aggregate([*statuses, Status.ERROR]) is Status.ERROR

    def test_order_independent(self):
        statuses = [Status.PASSED, Status.INCOMPLETE, Status.IDLE, Status.QUEUED]
        results = {aggregate(permutation) for permutation in itertools.permutations(statuses)}
        assert results == {Status.INCOMPLETE}

    def test_idempotent(self):
        statuses = [Status.RUNNING, Status.PASSED, Status.FAILED]
        assert aggregate(statuses) is aggregate(statuses) is Status.FAILED

    def test_default_order(self):
        order = [status.value for status in DEFAULT_PRECEDENCE.order]
        assert order == [
            "error",
            "failed",
            "warning",
            "incomplete",
            "passed",
            "running",
            "queued",
            "idle",
            "empty",
        ]

    @pytest.mark.parametrize(
        ("higher", "lower"),
        [
            (Status.ERROR, Status.FAILED),
            (Status.FAILED, Status.WARNING),
            (Status.PASSED, Status.RUNNING),
            (Status.QUEUED, Status.IDLE),
        ],
    )
    def test_pairwise(self, higher: Status, lower: Status):
        assert aggregate([lower, higher]) is higher


class TestStatusPrecedence:
    def test_custom_order(self):
        names = ["failed", "error", "warning", "incomplete", "passed", "running", "queued", "idle", "empty"]
        precedence = StatusPrecedence.from_names(names)
        assert precedence.aggregate([Status.ERROR, Status.FAILED]) is Status.FAILED
        assert precedence.rank(Status.FAILED) == 0

    def test_incomplete_order_is_rejected(self):
        with pytest.raises(ValueError, match="every status"):
            StatusPrecedence((Status.ERROR, Status.PASSED))

    def test_duplicates_are_rejected(self):
        order = list(DEFAULT_PRECEDENCE.order)
        order[-1] = Status.ERROR
        with pytest.raises(ValueError):
            StatusPrecedence(tuple(order))

# tests/unit/test_events.py

"""Unit tests for per-node events and the node registry."""

from unittest.mock import MagicMock

import pytest
from conftest import frag

from lode.exceptions import EntityNotFoundError
from lode.nuggets import Emitter, Suite


class TestEmitter:
    def test_listeners_called_in_order(self):
        emitter = Emitter()
        calls = []
        emitter.on("status", lambda *args: calls.append(("first", args)))
        emitter.on("status", lambda *args: calls.append(("second", args)))

        emitter.emit("status", 1, 2)

        assert calls == [("first", (1, 2)), ("second", (1, 2))]

    def test_unsubscribe(self):
        emitter = Emitter()
        listener = MagicMock()
        unsubscribe = emitter.on("selected", listener)

        unsubscribe()
        emitter.emit("selected", True)

        listener.assert_not_called()
        assert emitter.listener_count("selected") == 0

    def test_off_without_listener_clears_event(self):
        emitter = Emitter()
        emitter.on("status", MagicMock())
        emitter.on("status", MagicMock())

        emitter.off("status")

        assert emitter.listener_count("status") == 0

    def test_failing_listener_does_not_interrupt(self):
        emitter = Emitter()
        after = MagicMock()
        emitter.on("status", MagicMock(side_effect=RuntimeError("boom")))
        emitter.on("status", after)

        emitter.emit("status", "payload")

        after.assert_called_once_with("payload")

    def test_emit_without_listeners(self):
        Emitter().emit("nothing")


class TestArena:
    def test_registers_on_construction(self, make_suite, arena):
        suite = make_suite()

        assert ("suite",) in arena
        assert arena.find(("suite",)) is suite
        assert len(arena) == 1

    def test_find_unknown_raises(self, arena):
        with pytest.raises(EntityNotFoundError) as exc_info:
            arena.find(("missing", "test"))

        assert exc_info.value.identifiers == ("missing", "test")

    @pytest.mark.asyncio
    async def test_parent_of(self, make_suite, arena):
        suite = make_suite(tests=[("A",)])
        await suite.toggle_expanded(True)

        test = suite.find_test("A")

        assert arena.parent_of(test) is suite
        assert arena.parent_of(suite) is None

    @pytest.mark.asyncio
    async def test_discard_drops_subtree(self, make_suite, arena):
        suite = make_suite(tests=[frag("A", tests=[frag("A1")])])
        await suite.toggle_expanded(True, cascade=True)
        assert len(arena) == 3

        arena.discard(suite)

        assert len(arena) == 0

    def test_register_hook_sees_new_nodes(self, arena):
        seen = []
        arena.on_register(lambda nugget: seen.append(nugget.key))

        Suite(arena, frag("one"))

        assert seen == [("one",)]

    def test_same_key_replaces_node(self, arena):
        old = Suite(arena, frag("dup"))
        new = Suite(arena, frag("dup"))

        assert arena.get(("dup",)) is new
        assert arena.get(("dup",)) is not old

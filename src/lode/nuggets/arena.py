#
# src/lode/nuggets/arena.py
#
"""
Registry of every live node of one framework, keyed by identifier path.

Parents are found by dropping the last identifier of a key, so nodes refer
to their parent by id only and never own it.
"""

from collections.abc import Callable, Iterator, Sequence
from typing import TYPE_CHECKING

import structlog

from lode.exceptions import EntityNotFoundError
from lode.nuggets.protocols import ChildLoader, NuggetKey, NullChildLoader
from lode.status import DEFAULT_PRECEDENCE, StatusPrecedence

if TYPE_CHECKING:
    from lode.nuggets.nugget import Nugget

log = structlog.get_logger("nuggets.arena")

RegisterHook = Callable[["Nugget"], None]


class NuggetArena:
    """Owns the id -> node index, the status precedence and the child loader of one tree."""

    def __init__(
        self,
        precedence: StatusPrecedence = DEFAULT_PRECEDENCE,
        loader: ChildLoader | None = None,
        name: str = "default",
    ):
        self.precedence = precedence
        self.loader: ChildLoader = loader or NullChildLoader()
        self.name = name
        self._nodes: dict[NuggetKey, "Nugget"] = {}
        self._register_hooks: list[RegisterHook] = []
        self._log = log.bind(arena=name)

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, key: object) -> bool:
        return key in self._nodes

    def __iter__(self) -> Iterator["Nugget"]:
        return iter(list(self._nodes.values()))

    def on_register(self, hook: RegisterHook) -> None:
        """Calls `hook` for every node registered from now on (e.g. to subscribe a UI bridge)."""
        self._register_hooks.append(hook)

    def register(self, nugget: "Nugget") -> None:
        if nugget.key in self._nodes and self._nodes[nugget.key] is not nugget:
            self._log.warning("Replacing node registered under the same key", key=nugget.key)
            self.discard(self._nodes[nugget.key])
        self._nodes[nugget.key] = nugget
        for hook in self._register_hooks:
            hook(nugget)

    def discard(self, nugget: "Nugget") -> None:
        """Drops a node and its materialized descendants from the index."""
        for child in nugget.children:
            self.discard(child)
        if self._nodes.get(nugget.key) is nugget:
            del self._nodes[nugget.key]

    def get(self, key: Sequence[str]) -> "Nugget | None":
        return self._nodes.get(tuple(key))

    def parent_of(self, nugget: "Nugget") -> "Nugget | None":
        if len(nugget.key) < 2:
            return None
        return self._nodes.get(nugget.key[:-1])

    def find(self, identifiers: Sequence[str]) -> "Nugget":
        """
        Raises:
            EntityNotFoundError: when no node is registered under `identifiers`.
        """
        nugget = self.get(identifiers)
        if nugget is None:
            raise EntityNotFoundError(tuple(identifiers), self.name)
        return nugget

# 🔼⚙️

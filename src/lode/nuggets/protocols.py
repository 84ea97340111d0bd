#
# src/lode/nuggets/protocols.py
#
"""
Interfaces the tree expects from its collaborators.
"""

from typing import Protocol, runtime_checkable

from lode.nuggets.results import ResultFragment

NuggetKey = tuple[str, ...]


@runtime_checkable
class ChildLoader(Protocol):
    """
    Supplies the children of a node the first time it is expanded.
    """

    async def load_children(self, identifiers: NuggetKey) -> list[ResultFragment]:
        """
        Args:
            identifiers: Identifier path of the node (suite id first, then test ids).

        Returns:
            The node's immediate child results, in display order.
        """
        ...


class NullChildLoader:
    """Loader for trees that never defer children (everything arrives through debriefs)."""

    async def load_children(self, identifiers: NuggetKey) -> list[ResultFragment]:
        return []

# 🔼⚙️

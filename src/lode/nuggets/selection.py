#
# src/lode/nuggets/selection.py
#
"""
Which nodes take part in a selective run.

A node that is selected without any selected child stands for its whole
subtree. A node with some selected children only takes those along.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lode.nuggets.nugget import Nugget


def scope_children(children: Sequence["Nugget"], selective: bool) -> tuple[list["Nugget"], bool]:
    """
    Returns the children in scope and whether the selection must still be
    honoured below them.
    """
    if not selective:
        return list(children), False
    chosen = [child for child in children if child.selected]
    if chosen:
        return chosen, True
    # No finer-grained selection: everything below is implicitly included.
    return list(children), False


def selection_scope(nugget: "Nugget") -> list["Nugget"]:
    """Deepest selected nodes under (and including) `nugget`, in tree order."""
    if not nugget.selected:
        return []
    chosen = [child for child in nugget.children if child.selected]
    if not chosen:
        return [nugget]
    scope: list["Nugget"] = []
    for child in chosen:
        scope.extend(selection_scope(child))
    return scope


def is_fully_selected(nugget: "Nugget") -> bool:
    if not nugget.selected:
        return False
    return all(is_fully_selected(child) for child in nugget.children)


def is_partially_selected(nugget: "Nugget") -> bool:
    """Selected, but with at least one descendant that is not."""
    return nugget.selected and not is_fully_selected(nugget)


# 🔼⚙️

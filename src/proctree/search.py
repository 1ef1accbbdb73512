"""Hierarchy-aware search over a published process tree."""

from enum import Enum

from proctree.models import ProcessRecord, ProcessTree


class ViewMode(Enum):
    """How the process set is presented."""

    TREE = "tree"
    FLAT = "flat"

    def toggle(self) -> "ViewMode":
        return ViewMode.FLAT if self is ViewMode.TREE else ViewMode.TREE


def subtree_matches(tree: ProcessTree, pid: int, query: str) -> bool:
    """Check whether ``pid`` or any of its descendants matches ``query``."""
    record = tree.get(pid)
    if record is None:
        return False
    if record.matches(query):
        return True
    return any(child.matches(query) for child in tree.descendants(pid))


def filter_entries(tree: ProcessTree, query: str, mode: ViewMode) -> list[ProcessRecord]:
    """
    Compute the top-level entries to display for ``query``.

    In tree mode a root is kept when it or any descendant matches; its
    subtree is left intact for the presentation layer to render. In flat
    mode every record is tested on its own. An empty query returns the
    source list unchanged. The query is matched exactly as typed,
    surrounding whitespace included.
    """
    if mode is ViewMode.TREE:
        source = tree.roots or tree.records
    else:
        source = tree.records

    if not query:
        return source

    if mode is ViewMode.TREE:
        return [record for record in source if subtree_matches(tree, record.pid, query)]
    return [record for record in source if record.matches(query)]

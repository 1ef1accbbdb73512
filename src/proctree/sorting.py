"""Sort criteria applied to the flat list and recursively over the tree."""

from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any

from proctree.models import ProcessRecord, ProcessTree


class SortKey(Enum):
    """Sort keys for the process list and tree."""

    NAME = "name"
    PID = "pid"
    USER = "user"
    CPU = "cpu"

    def next(self) -> "SortKey":
        """Return the key after this one, wrapping around."""
        keys = list(SortKey)
        return keys[(keys.index(self) + 1) % len(keys)]


def sort_key_func(key: SortKey) -> Callable[[ProcessRecord], Any]:
    """
    Return a key function for ``sorted`` implementing ``key``.

    Every key ends with the pid, which is unique within a snapshot, so the
    resulting order is total and does not depend on input order. CPU is
    the only descending criterion.
    """
    key_func = {
        SortKey.NAME: lambda p: (p.name.casefold(), p.pid),
        SortKey.PID: lambda p: p.pid,
        SortKey.USER: lambda p: (p.username.casefold(), p.pid),
        SortKey.CPU: lambda p: (-p.cpu_usage, p.pid),
    }
    return key_func[key]


def sort_records(records: Iterable[ProcessRecord], key: SortKey) -> list[ProcessRecord]:
    """Sort records by the given criterion."""
    return sorted(records, key=sort_key_func(key))


def sort_tree(tree: ProcessTree, key: SortKey) -> ProcessTree:
    """
    Return a copy of ``tree`` ordered by ``key``.

    The flat list, the root list and every node's children are sorted
    independently. Records are shared with the input tree.
    """
    func = sort_key_func(key)
    children = {
        pid: sorted(child_pids, key=lambda child: func(tree.by_pid[child]))
        for pid, child_pids in tree.children.items()
    }
    return ProcessTree(
        by_pid=tree.by_pid,
        records=sorted(tree.records, key=func),
        roots=sorted(tree.roots, key=func),
        children=children,
        parents=tree.parents,
    )

"""Reconstruction of the process forest from flat records."""

import logging
from collections.abc import Iterable

from proctree.models import ProcessRecord, ProcessTree
from proctree.sorting import SortKey, sort_tree

logger = logging.getLogger(__name__)

# Bound on the fallback root set when no record qualifies as a root
FALLBACK_ROOT_LIMIT = 10


def build_tree(
    records: Iterable[ProcessRecord],
    sort_key: SortKey = SortKey.NAME,
    fallback_limit: int = FALLBACK_ROOT_LIMIT,
) -> ProcessTree:
    """
    Build a sorted forest from the records of one collection.

    A record whose ppid is nonzero and names another record in the set is
    attached as that record's child. Every other record is a root. If no
    root is found, up to ``fallback_limit`` records whose ppid is <= 1 or
    does not resolve are used instead, lowest pid first.

    Args:
        records: Records of a single snapshot.
        sort_key: Criterion applied to the flat list, roots and children.
        fallback_limit: Maximum size of the fallback root set.
    """
    by_pid: dict[int, ProcessRecord] = {}
    for record in records:
        if record.pid in by_pid:
            logger.warning("duplicate pid %d in snapshot, keeping the last one", record.pid)
        by_pid[record.pid] = record

    children: dict[int, list[int]] = {}
    parents: dict[int, int] = {}
    roots: list[ProcessRecord] = []

    for record in by_pid.values():
        ppid = record.ppid
        if ppid != 0 and ppid != record.pid and ppid in by_pid:
            children.setdefault(ppid, []).append(record.pid)
            parents[record.pid] = ppid
        else:
            roots.append(record)

    if not roots and by_pid:
        roots = fallback_roots(by_pid, fallback_limit)
        logger.info("no root processes found, using %d fallback roots", len(roots))

    tree = ProcessTree(
        by_pid=by_pid,
        records=list(by_pid.values()),
        roots=roots,
        children=children,
        parents=parents,
    )
    return sort_tree(tree, sort_key)


def fallback_roots(
    by_pid: dict[int, ProcessRecord],
    limit: int = FALLBACK_ROOT_LIMIT,
) -> list[ProcessRecord]:
    """Pick at most ``limit`` top-level candidates, ordered by pid."""
    candidates = [
        record
        for record in by_pid.values()
        if record.ppid <= 1 or record.ppid not in by_pid
    ]
    return sorted(candidates, key=lambda record: record.pid)[:limit]

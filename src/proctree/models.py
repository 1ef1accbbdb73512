"""Data models for proctree."""

from collections.abc import Iterator
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple

# Highest uid still treated as a system account.
SYSTEM_UID_LIMIT = 500

# Stands in for a uid that could not be read.
UNKNOWN_UID = -1


class ProcessKind(Enum):
    """Ownership class of a process, derived from its uid."""

    ROOT = "root"
    SYSTEM = "system"
    USER = "user"
    UNKNOWN = "unknown"


class RawProcess(NamedTuple):
    """One row of the OS process table as returned by the collector."""

    pid: int
    ppid: int
    name: str
    uid: int
    path: str


@dataclass(slots=True, frozen=True)
class ProcessRecord:
    """Immutable record of one process within a single snapshot."""

    pid: int
    ppid: int
    name: str
    username: str
    uid: int
    path: str = ""
    cpu_usage: float = 0.0  # Placeholder, never computed

    @property
    def kind(self) -> ProcessKind:
        """Classify the process by its owning uid."""
        if self.uid < 0:
            return ProcessKind.UNKNOWN
        if self.uid == 0:
            return ProcessKind.ROOT
        if self.uid < SYSTEM_UID_LIMIT:
            return ProcessKind.SYSTEM
        return ProcessKind.USER

    @property
    def is_root_owned(self) -> bool:
        return self.uid == 0

    def matches(self, query: str) -> bool:
        """
        Case-insensitive substring match against name, user and pid.

        Args:
            query: Text to look for. An empty query matches everything.
        """
        needle = query.casefold()
        return (
            needle in self.name.casefold()
            or needle in self.username.casefold()
            or needle in str(self.pid)
        )


@dataclass(slots=True, frozen=True)
class ProcessTree:
    """
    One published snapshot: every record plus the derived forest.

    Records live in an arena keyed by pid; parent and children links are
    pid references resolved through the arena. A tree is never mutated
    after it has been built. Re-sorting yields a new instance.
    """

    by_pid: dict[int, ProcessRecord] = field(default_factory=dict)
    records: list[ProcessRecord] = field(default_factory=list)
    roots: list[ProcessRecord] = field(default_factory=list)
    children: dict[int, list[int]] = field(default_factory=dict)
    parents: dict[int, int] = field(default_factory=dict)

    @classmethod
    def empty(cls) -> "ProcessTree":
        return cls()

    def __len__(self) -> int:
        return len(self.by_pid)

    def __contains__(self, pid: object) -> bool:
        return pid in self.by_pid

    def __bool__(self) -> bool:
        return bool(self.by_pid)

    def get(self, pid: int) -> ProcessRecord | None:
        return self.by_pid.get(pid)

    def children_of(self, pid: int) -> list[ProcessRecord]:
        """Return the (sorted) children of ``pid``."""
        return [self.by_pid[child] for child in self.children.get(pid, ())]

    def parent_of(self, pid: int) -> ProcessRecord | None:
        parent_pid = self.parents.get(pid)
        if parent_pid is None:
            return None
        return self.by_pid.get(parent_pid)

    def has_children(self, pid: int) -> bool:
        return bool(self.children.get(pid))

    def descendants(self, pid: int) -> Iterator[ProcessRecord]:
        """
        Yield every descendant of ``pid`` depth-first, in sorted order.

        A visited set guards against parent cycles in corrupted input.
        """
        seen = {pid}
        stack = list(reversed(self.children.get(pid, ())))
        while stack:
            current = stack.pop()
            if current in seen:
                continue
            seen.add(current)
            yield self.by_pid[current]
            stack.extend(reversed(self.children.get(current, ())))

    def ancestors(self, pid: int) -> list[ProcessRecord]:
        """Return the parent chain of ``pid``, nearest first."""
        chain: list[ProcessRecord] = []
        seen = {pid}
        current = self.parents.get(pid)
        while current is not None and current not in seen:
            seen.add(current)
            chain.append(self.by_pid[current])
            current = self.parents.get(current)
        return chain

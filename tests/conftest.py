"""Shared fixtures for proctree tests."""

import dataclasses

import pytest

from proctree.errors import CollectionError
from proctree.models import ProcessRecord


def make_record(pid, ppid=0, name="proc", username="user", uid=501, path="", cpu_usage=0.0):
    """Build a ProcessRecord with test defaults."""
    return ProcessRecord(
        pid=pid,
        ppid=ppid,
        name=name,
        username=username,
        uid=uid,
        path=path,
        cpu_usage=cpu_usage,
    )


class FakeCollector:
    """Collector returning scripted results instead of querying the OS."""

    def __init__(self, *results):
        self._results = list(results)
        self.calls = 0

    def snapshot(self):
        self.calls += 1
        result = self._results.pop(0) if len(self._results) > 1 else self._results[0]
        if isinstance(result, Exception):
            raise result
        # Fresh objects each cycle, as the real collector produces
        return [dataclasses.replace(record) for record in result]


@pytest.fixture
def finder_records():
    """init -> Finder -> Helper."""
    return [
        make_record(1, 0, "init", username="root", uid=0),
        make_record(50, 1, "Finder"),
        make_record(51, 50, "Helper"),
    ]


@pytest.fixture
def failing_collector():
    return FakeCollector(CollectionError("sysctl failed"))


def publish(explorer):
    """Run one collection on the calling thread and apply it."""
    explorer._queue.put(explorer.monitor.collect_once())
    return explorer.apply_updates()

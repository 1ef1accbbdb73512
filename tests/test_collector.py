"""Tests for the SnapshotCollector class."""

import os
from collections import namedtuple

import psutil
import pytest

from proctree import collector as collector_module
from proctree.collector import SnapshotCollector
from proctree.errors import CollectionError
from proctree.models import UNKNOWN_UID, ProcessKind, ProcessRecord, RawProcess

Uids = namedtuple("Uids", "real effective saved")


class FakeProcess:
    """Stand-in for psutil.Process with pre-fetched info."""

    def __init__(self, info):
        self.info = info


class VanishingProcess:
    """A process that exits before its info can be read."""

    @property
    def info(self):
        raise psutil.NoSuchProcess(999)


def fake_iter(*procs):
    def process_iter(attrs=None, ad_value=None):
        yield from procs

    return process_iter


def info(pid, ppid=1, name="proc", uid=501, exe="/bin/proc"):
    return {"pid": pid, "ppid": ppid, "name": name, "uids": Uids(uid, uid, uid), "exe": exe}


class TestCollect:
    """Tests for SnapshotCollector.collect with a patched psutil."""

    def test_collects_raw_rows(self, monkeypatch):
        monkeypatch.setattr(
            psutil,
            "process_iter",
            fake_iter(FakeProcess(info(1, 0, "init", 0, "/sbin/init")), FakeProcess(info(50))),
        )

        rows = SnapshotCollector().collect()

        assert rows == [
            RawProcess(pid=1, ppid=0, name="init", uid=0, path="/sbin/init"),
            RawProcess(pid=50, ppid=1, name="proc", uid=501, path="/bin/proc"),
        ]

    def test_missing_metadata_degrades(self, monkeypatch):
        """AccessDenied values arrive as None and become placeholders."""
        monkeypatch.setattr(
            psutil,
            "process_iter",
            fake_iter(FakeProcess({"pid": 7, "ppid": None, "name": None, "uids": None, "exe": None})),
        )

        rows = SnapshotCollector().collect()

        assert rows == [RawProcess(pid=7, ppid=0, name="", uid=UNKNOWN_UID, path="")]

    def test_unreadable_uid_is_not_root(self, monkeypatch):
        monkeypatch.setattr(
            psutil,
            "process_iter",
            fake_iter(FakeProcess({"pid": 7, "ppid": 1, "name": "locked", "uids": None, "exe": None})),
        )

        [record] = SnapshotCollector().snapshot()

        assert record.username == "?"
        assert record.kind is ProcessKind.UNKNOWN
        assert not record.is_root_owned

    def test_skips_vanished_processes(self, monkeypatch):
        monkeypatch.setattr(
            psutil,
            "process_iter",
            fake_iter(FakeProcess(info(1, 0)), VanishingProcess(), FakeProcess(info(2))),
        )

        rows = SnapshotCollector().collect()

        assert [row.pid for row in rows] == [1, 2]

    def test_empty_table_is_not_an_error(self, monkeypatch):
        monkeypatch.setattr(psutil, "process_iter", fake_iter())
        assert SnapshotCollector().collect() == []

    @pytest.mark.parametrize("error", [psutil.AccessDenied(), OSError("sysctl failed")])
    def test_query_failure_raises_collection_error(self, monkeypatch, error):
        def process_iter(attrs=None, ad_value=None):
            raise error

        monkeypatch.setattr(psutil, "process_iter", process_iter)

        with pytest.raises(CollectionError):
            SnapshotCollector().collect()

    def test_failure_mid_iteration_raises_collection_error(self, monkeypatch):
        def process_iter(attrs=None, ad_value=None):
            yield FakeProcess(info(1, 0))
            raise OSError("table changed")

        monkeypatch.setattr(psutil, "process_iter", process_iter)

        with pytest.raises(CollectionError):
            SnapshotCollector().collect()


class TestUsernames:
    """Tests for uid to user name resolution."""

    def test_unknown_uid_falls_back_to_number(self, monkeypatch):
        def getpwuid(uid):
            raise KeyError(uid)

        monkeypatch.setattr(collector_module.pwd, "getpwuid", getpwuid)

        assert SnapshotCollector().resolve_username(4321) == "4321"

    def test_names_are_cached(self, monkeypatch):
        calls = []
        Passwd = namedtuple("Passwd", "pw_name")

        def getpwuid(uid):
            calls.append(uid)
            return Passwd("alice")

        monkeypatch.setattr(collector_module.pwd, "getpwuid", getpwuid)
        collector = SnapshotCollector()

        assert collector.resolve_username(501) == "alice"
        assert collector.resolve_username(501) == "alice"
        assert calls == [501]

    def test_unknown_uid_sentinel_skips_lookup(self, monkeypatch):
        def getpwuid(uid):
            raise AssertionError("lookup attempted")

        monkeypatch.setattr(collector_module.pwd, "getpwuid", getpwuid)

        assert SnapshotCollector().resolve_username(UNKNOWN_UID) == "?"

    def test_root_uid_resolves(self):
        assert SnapshotCollector().resolve_username(0) == "root"


class TestSnapshot:
    """Tests against the real process table."""

    def test_to_records_sets_cpu_placeholder(self, monkeypatch):
        def getpwuid(uid):
            raise KeyError(uid)

        monkeypatch.setattr(collector_module.pwd, "getpwuid", getpwuid)
        records = SnapshotCollector().to_records([RawProcess(5, 1, "sh", 1000, "/bin/sh")])

        assert records == [
            ProcessRecord(pid=5, ppid=1, name="sh", username="1000", uid=1000, path="/bin/sh", cpu_usage=0.0)
        ]

    def test_snapshot_contains_current_process(self):
        records = SnapshotCollector().snapshot()

        assert len(records) > 0
        assert all(isinstance(record, ProcessRecord) for record in records)
        pids = [record.pid for record in records]
        assert len(pids) == len(set(pids))
        assert os.getpid() in pids

    def test_snapshot_records_have_required_fields(self):
        for record in SnapshotCollector().snapshot()[:5]:
            assert isinstance(record.pid, int)
            assert isinstance(record.ppid, int)
            assert isinstance(record.name, str)
            assert isinstance(record.username, str)
            assert isinstance(record.path, str)
            assert record.cpu_usage == 0.0

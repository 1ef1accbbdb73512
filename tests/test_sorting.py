"""Tests for the sort engine."""

import random

import pytest

from conftest import make_record
from proctree.sorting import SortKey, sort_records, sort_tree
from proctree.tree import build_tree


@pytest.fixture
def mixed_records():
    return [
        make_record(30, 1, "zsh", username="bob", cpu_usage=1.0),
        make_record(10, 1, "Bash", username="Alice", cpu_usage=5.0),
        make_record(20, 1, "apache", username="carol", cpu_usage=5.0),
        make_record(1, 0, "init", username="root", uid=0),
    ]


class TestSortKey:
    """Tests for SortKey enum."""

    def test_sort_key_values(self):
        assert SortKey.NAME.value == "name"
        assert SortKey.PID.value == "pid"
        assert SortKey.USER.value == "user"
        assert SortKey.CPU.value == "cpu"

    def test_next_cycles_and_wraps(self):
        assert SortKey.NAME.next() is SortKey.PID
        assert SortKey.PID.next() is SortKey.USER
        assert SortKey.USER.next() is SortKey.CPU
        assert SortKey.CPU.next() is SortKey.NAME


class TestSortRecords:
    """Tests for sort_records comparators."""

    def test_name_is_case_insensitive(self, mixed_records):
        names = [r.name for r in sort_records(mixed_records, SortKey.NAME)]
        assert names == ["apache", "Bash", "init", "zsh"]

    def test_pid_ascending(self, mixed_records):
        assert [r.pid for r in sort_records(mixed_records, SortKey.PID)] == [1, 10, 20, 30]

    def test_user_is_case_insensitive(self, mixed_records):
        users = [r.username for r in sort_records(mixed_records, SortKey.USER)]
        assert users == ["Alice", "bob", "carol", "root"]

    def test_cpu_descending_ties_by_pid(self, mixed_records):
        assert [r.pid for r in sort_records(mixed_records, SortKey.CPU)] == [10, 20, 30, 1]

    def test_placeholder_cpu_orders_by_pid(self):
        records = [make_record(pid) for pid in (9, 3, 7)]
        assert [r.pid for r in sort_records(records, SortKey.CPU)] == [3, 7, 9]

    @pytest.mark.parametrize("key", list(SortKey))
    def test_order_does_not_depend_on_input_order(self, mixed_records, key):
        expected = sort_records(mixed_records, key)
        shuffled = list(mixed_records)
        random.Random(7).shuffle(shuffled)
        assert sort_records(shuffled, key) == expected

    @pytest.mark.parametrize("key", list(SortKey))
    def test_sort_is_idempotent(self, mixed_records, key):
        once = sort_records(mixed_records, key)
        assert sort_records(once, key) == once

    def test_name_ties_broken_by_pid(self):
        records = [make_record(8, name="node"), make_record(3, name="Node"), make_record(5, name="NODE")]
        assert [r.pid for r in sort_records(records, SortKey.NAME)] == [3, 5, 8]


class TestSortTree:
    """Tests for recursive tree sorting."""

    def build(self):
        records = [
            make_record(1, 0, "init"),
            make_record(40, 1, "cron"),
            make_record(30, 1, "sshd"),
            make_record(35, 30, "bash"),
            make_record(31, 30, "zsh"),
            make_record(33, 30, "Fish"),
            make_record(2, 0, "kthreadd"),
        ]
        return build_tree(records, sort_key=SortKey.PID)

    def test_sorts_every_level(self):
        tree = sort_tree(self.build(), SortKey.NAME)

        assert [r.name for r in tree.roots] == ["init", "kthreadd"]
        assert [r.name for r in tree.children_of(1)] == ["cron", "sshd"]
        assert [r.name for r in tree.children_of(30)] == ["bash", "Fish", "zsh"]
        assert [r.name for r in tree.records][:3] == ["bash", "cron", "Fish"]

    def test_returns_new_tree(self):
        original = self.build()
        resorted = sort_tree(original, SortKey.NAME)

        assert resorted is not original
        assert [r.pid for r in original.children_of(30)] == [31, 33, 35]
        assert resorted.by_pid is original.by_pid

    def test_children_follow_flat_ordering_rule(self):
        tree = sort_tree(self.build(), SortKey.NAME)
        flat_rank = {r.pid: i for i, r in enumerate(tree.records)}

        for record in tree.records:
            ranks = [flat_rank[c.pid] for c in tree.children_of(record.pid)]
            assert ranks == sorted(ranks)

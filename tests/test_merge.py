"""Tests for per-key record merging."""

from staybook.sync.merge import merge_records


def key(record):
    return record[0]


class TestMergeRecords:
    def test_remote_only_rows_survive(self):
        remote = [("X", 1)]
        local = [("Y", 1)]
        assert merge_records(remote, local, key) == [("X", 1), ("Y", 1)]

    def test_local_wins_on_same_key(self):
        remote = [("X", "old"), ("Z", 1)]
        local = [("X", "new")]
        assert merge_records(remote, local, key) == [("X", "new"), ("Z", 1)]

    def test_idempotent(self):
        remote = [("X", 1), ("Y", 1)]
        local = [("Y", 2), ("W", 1)]
        once = merge_records(remote, local, key)
        twice = merge_records(once, local, key)
        assert twice == once

    def test_disjoint_keys_commute_as_sets(self):
        a = [("A", 1)]
        b = [("B", 1)]
        assert set(merge_records(a, b, key)) == set(merge_records(b, a, key))

    def test_empty_sides(self):
        assert merge_records([], [], key) == []
        assert merge_records([("A", 1)], [], key) == [("A", 1)]

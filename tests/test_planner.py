"""Tests for the partition planner and the Group value."""

from __future__ import annotations

import math

import pytest

from minisplit.errors import ConfigurationError
from minisplit.group import Group
from minisplit.planner import Partition, Policy, chunk_size, plan, plan_strict, plan_tolerant


def assert_tiles(parts, total):
    covered = []
    for prev, nxt in zip(parts, parts[1:]):
        assert prev.end == nxt.start
        assert prev.start <= nxt.start
    for p in parts:
        assert 0 <= p.start <= p.end <= total
        covered.extend(range(p.start, p.end))
    assert covered == list(range(total))


class TestStrict:
    def test_even_split(self):
        parts = plan_strict(12, 4)
        assert [(p.start, p.end) for p in parts] == [(0, 3), (3, 6), (6, 9), (9, 12)]
        assert [p.rank for p in parts] == [0, 1, 2, 3]

    def test_tiles_when_divisible(self):
        for size in range(1, 9):
            for total in range(0, 5 * size + 1, size):
                assert_tiles(plan(total, size, Policy.STRICT), total)

    def test_rejects_remainder(self):
        with pytest.raises(ConfigurationError):
            plan_strict(10, 3)

    def test_single_participant_takes_all(self):
        (only,) = plan_strict(7, 1)
        assert (only.start, only.end) == (0, 7)


class TestTolerant:
    def test_tiles_for_any_size(self):
        for size in range(1, 9):
            for total in range(0, 30):
                assert_tiles(plan(total, size, Policy.TOLERANT), total)

    def test_ceil_blocks(self):
        parts = plan_tolerant(10, 4)
        assert [len(p) for p in parts] == [3, 3, 3, 1]

    def test_last_block_is_the_short_one(self):
        for size in range(1, 9):
            for total in range(1, 40):
                chunk = math.ceil(total / size)
                tail = total - (size - 1) * chunk
                if tail < 0:
                    continue
                lengths = [len(p) for p in plan_tolerant(total, size)]
                assert lengths[-1] == tail
                assert all(n == chunk for n in lengths[:-1])

    def test_trailing_ranks_may_be_empty(self):
        parts = plan_tolerant(5, 4)
        assert [(p.start, p.end) for p in parts] == [(0, 2), (2, 4), (4, 5), (5, 5)]

    def test_empty_dataset(self):
        parts = plan_tolerant(0, 3)
        assert all(len(p) == 0 for p in parts)


class TestPlannerArguments:
    def test_policy_by_name(self):
        assert plan(6, 2, "strict") == plan(6, 2, Policy.STRICT)
        assert chunk_size(7, 2, "tolerant") == 4

    def test_zero_participants(self):
        with pytest.raises(ConfigurationError):
            plan(4, 0, Policy.TOLERANT)

    def test_negative_total(self):
        with pytest.raises(ConfigurationError):
            plan(-1, 2, Policy.TOLERANT)

    def test_partition_slice(self):
        p = Partition(rank=1, start=2, end=4)
        assert p.slice("abcdef") == "cd"
        assert len(p) == 2


class TestGroup:
    def test_coordinator(self):
        assert Group(0, 3).is_coordinator
        assert not Group(2, 3).is_coordinator
        assert list(Group(0, 3).workers) == [1, 2]

    def test_rank_out_of_range(self):
        with pytest.raises(ValueError):
            Group(3, 3)
        with pytest.raises(ValueError):
            Group(0, 0)

    def test_immutable(self):
        g = Group(1, 2)
        with pytest.raises(AttributeError):
            g.rank = 0

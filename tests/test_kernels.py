"""Tests for the compute kernels."""

from __future__ import annotations

import numpy as np
import pytest

from minisplit.kernels import MatrixKernel, SearchKernel, timed
from minisplit.records import Record


def reference_matmul(a, b):
    k, m, n = a.shape
    p = b.shape[2]
    out = np.zeros((k, m, p), dtype=np.int64)
    for kk in range(k):
        for i in range(m):
            for j in range(p):
                acc = 0
                for l in range(n):
                    acc += (int(a[kk, i, l]) * int(b[kk, l, j])) % 100
                out[kk, i, j] = acc % 100
    return out


class TestMatrixKernel:
    def test_single_element(self):
        a = np.array([[[7]]], dtype=np.int32)
        b = np.array([[[13]]], dtype=np.int32)
        assert MatrixKernel().compute((a, b))[0, 0, 0] == 91

    def test_matches_loop_reference(self):
        rng = np.random.default_rng(3)
        a = rng.integers(0, 100, size=(3, 4, 5), dtype=np.int32)
        b = rng.integers(0, 100, size=(3, 5, 2), dtype=np.int32)
        r = MatrixKernel().compute((a, b))
        assert r.shape == (3, 4, 2)
        np.testing.assert_array_equal(r, reference_matmul(a, b))
        assert r.min() >= 0 and r.max() <= 99

    def test_wide_shared_dimension(self):
        rng = np.random.default_rng(5)
        a = rng.integers(0, 100, size=(2, 6, 40), dtype=np.int32)
        b = rng.integers(0, 100, size=(2, 40, 5), dtype=np.int32)
        np.testing.assert_array_equal(MatrixKernel().compute((a, b)), reference_matmul(a, b))

    def test_empty_partition(self):
        a = np.empty((0, 2, 3), dtype=np.int32)
        b = np.empty((0, 3, 4), dtype=np.int32)
        assert MatrixKernel().compute((a, b)).shape == (0, 2, 4)

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            MatrixKernel().compute((np.zeros((1, 2, 3)), np.zeros((1, 2, 3))))


class TestSearchKernel:
    def test_hit(self):
        assert SearchKernel("Bob").compute([Record("Bob Marley", "555-1212")]) == "Bob Marley 555-1212\n"

    def test_miss(self):
        assert SearchKernel("Zed").compute([Record("Bob Marley", "555-1212")]) == ""

    def test_substring_anywhere_case_sensitive(self):
        kernel = SearchKernel("ob")
        records = [Record("Bob", "1"), Record("Rob Roy", "2"), Record("BOB", "3"), Record("Ann", "ob")]
        assert kernel.compute(records) == "Bob 1\nRob Roy 2\n"

    def test_timed(self):
        result, elapsed = timed(SearchKernel("A"), [Record("Ann", "1")])
        assert result == "Ann 1\n"
        assert elapsed >= 0.0

"""Tests for framed transfers and the tree broadcast."""

from __future__ import annotations

import numpy as np
import pytest

from minisplit.broadcast import bcast_framed, bcast_tree
from minisplit.channel import (HEADER_NBYTES, decode_text, encode_text, recv_framed,
                               recv_text, send_framed, send_text)
from minisplit.local import run_local


class TestFramed:
    def test_payload_arrives_intact(self):
        payload = bytes(range(256)) * 3

        def prog(comm):
            if comm.Get_rank() == 0:
                return send_framed(comm, payload, dest=1)
            return recv_framed(comm, source=0)

        sent, got = run_local(2, prog, timeout=5)
        assert got == payload
        assert sent == HEADER_NBYTES + len(payload)

    def test_empty_payload(self):
        def prog(comm):
            if comm.Get_rank() == 0:
                send_framed(comm, b"", dest=1)
                return None
            return recv_framed(comm, source=0)

        assert run_local(2, prog, timeout=5)[1] == b""

    def test_consecutive_frames_in_order(self):
        def prog(comm):
            if comm.Get_rank() == 1:
                for word in ("first", "second", "third"):
                    send_text(comm, word, dest=0)
                return None
            return [recv_text(comm, source=1) for _ in range(3)]

        assert run_local(2, prog, timeout=5)[0] == ["first", "second", "third"]

    def test_text_counts_terminator(self):
        assert encode_text("Bob") == b"Bob\x00"
        assert decode_text(b"Bob\x00") == "Bob"

        def prog(comm):
            if comm.Get_rank() == 0:
                return send_text(comm, "Zoë", dest=1)
            return recv_text(comm, source=0)

        sent, got = run_local(2, prog, timeout=5)
        assert got == "Zoë"
        assert sent == HEADER_NBYTES + len("Zoë".encode("utf-8")) + 1


class TestBroadcast:
    @pytest.mark.parametrize("size", [1, 2, 3, 4, 5, 7, 8])
    def test_every_root(self, size):
        for root in range(size):
            def prog(comm):
                if comm.Get_rank() == root:
                    buf = np.array([root, 42, -1], dtype=np.int32)
                else:
                    buf = np.zeros(3, dtype=np.int32)
                bcast_tree(comm, buf, root)
                return buf.tolist()

            out = run_local(size, prog, timeout=5)
            assert out == [[root, 42, -1]] * size

    def test_single_rank_moves_nothing(self):
        buf = np.ones(4)
        assert run_local(1, lambda c: bcast_tree(c, buf, 0)) == [0]

    def test_one_message_per_non_root(self):
        def prog(comm):
            return bcast_tree(comm, np.zeros(2, dtype=np.int64), 0)

        moved = run_local(5, prog, timeout=5)
        # 4 messages of 16 bytes, each counted by its sender and its receiver
        assert sum(moved) == 2 * 16 * 4
        # root only sends: to vranks 1, 2 and 4
        assert moved[0] == 3 * 16

    def test_framed_broadcast(self):
        def prog(comm):
            payload = b"query text" if comm.Get_rank() == 2 else None
            data, _ = bcast_framed(comm, payload, root=2)
            return data

        assert run_local(4, prog, timeout=5) == [b"query text"] * 4

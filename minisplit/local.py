# minisplit/local.py
"""
In-process transport: every rank is a thread, every (source, dest, tag)
channel is a FIFO queue.

`LocalComm` implements the subset of the mpi4py communicator API the rest of
the package relies on (Get_rank, Get_size, Send, Recv, Barrier), with the same
blocking semantics: Recv and Barrier wait with no timeout, and messages on one
channel arrive in send order. Nothing else is shared between ranks.
"""
import logging
import queue
import threading
import time
from collections import defaultdict
from typing import Any, Callable, List, Optional

import numpy as np

logger = logging.getLogger(__name__)


class LocalWorld:
    def __init__(self, size: int):
        if size < 1:
            raise ValueError(f"world size must be >= 1, got {size}")
        self.size = size
        self._channels = defaultdict(queue.Queue)
        self._lock = threading.Lock()
        self._barrier = threading.Barrier(size)

    def channel(self, source: int, dest: int, tag: int) -> queue.Queue:
        with self._lock:
            return self._channels[(source, dest, tag)]

    def comm(self, rank: int) -> "LocalComm":
        return LocalComm(self, rank)

    def abort(self):
        self._barrier.abort()


class LocalComm:
    def __init__(self, world: LocalWorld, rank: int):
        if not 0 <= rank < world.size:
            raise ValueError(f"rank {rank} outside [0, {world.size})")
        self.world = world
        self.rank = rank
        self.size = world.size

    def Get_rank(self) -> int: return self.rank
    def Get_size(self) -> int: return self.size
    def Barrier(self): self.world._barrier.wait()

    @staticmethod
    def Wtime() -> float:
        return time.perf_counter()

    def _check_peer(self, peer: int):
        if not 0 <= peer < self.size:
            raise ValueError(f"peer rank {peer} outside [0, {self.size})")

    def Send(self, buf: np.ndarray, dest: int, tag: int = 0):
        self._check_peer(dest)
        # copy out so the sender may reuse its buffer immediately
        msg = np.ascontiguousarray(buf).reshape(-1).view(np.uint8).copy()
        self.world.channel(self.rank, dest, tag).put(msg)

    def Recv(self, buf: np.ndarray, source: int, tag: int = 0):
        self._check_peer(source)
        if not buf.flags.c_contiguous:
            raise ValueError("receive buffer must be C-contiguous")
        msg = self.world.channel(source, self.rank, tag).get()
        dst = buf.reshape(-1).view(np.uint8)
        if msg.size > dst.size:
            raise ValueError(
                f"message of {msg.size} bytes truncated by {dst.size}-byte buffer "
                f"(source={source}, tag={tag})"
            )
        dst[:msg.size] = msg


def run_local(size: int, fn: Callable[[LocalComm], Any],
              timeout: Optional[float] = None) -> List[Any]:
    """
    Run `fn(comm)` once per rank on its own thread; return results in rank order.

    The first failing rank's exception is re-raised. With a `timeout`, ranks
    still blocked after that many seconds raise TimeoutError instead of
    hanging the caller.
    """
    world = LocalWorld(size)
    results: List[Any] = [None] * size
    errors: List[Optional[BaseException]] = [None] * size

    def target(rank: int):
        try:
            results[rank] = fn(world.comm(rank))
        except BaseException as exc:
            errors[rank] = exc
            world.abort()

    threads = [
        threading.Thread(target=target, args=(r,), name=f"rank-{r}", daemon=True)
        for r in range(size)
    ]
    logger.debug("starting %d in-process ranks", size)
    for t in threads:
        t.start()

    deadline = None if timeout is None else time.monotonic() + timeout
    for t in threads:
        t.join(None if deadline is None else max(0.0, deadline - time.monotonic()))

    for exc in errors:
        if exc is not None and not isinstance(exc, threading.BrokenBarrierError):
            raise exc
    stuck = [t.name for t in threads if t.is_alive()]
    if stuck:
        raise TimeoutError(f"participants still blocked: {', '.join(stuck)}")
    for exc in errors:
        if exc is not None:
            raise exc
    return results

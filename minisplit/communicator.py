# minisplit/communicator.py
import logging
from typing import List, Optional, Sequence

import numpy as np

from .broadcast import bcast_framed, bcast_tree
from .channel import (FRAME_TAG, HEADER_NBYTES, decode_text, encode_text,
                      recv_framed, send_framed)
from .collectives import gather_linear, gather_text, scatter_linear, scatter_text
from .group import COORDINATOR, Group

logger = logging.getLogger(__name__)


class Communicator:
    """
    Communicator wrapper that tracks per-rank bytes transferred.

    `comm` is an mpi4py communicator or anything exposing the same
    Get_rank/Get_size/Send/Recv/Barrier subset (see minisplit.local).
    """
    def __init__(self, comm):
        self.comm = comm
        self.group = Group.from_comm(comm)
        self.total_bytes_transferred = 0

    # --- passthroughs
    def Get_size(self) -> int: return self.group.size
    def Get_rank(self) -> int: return self.group.rank
    def Barrier(self): self.comm.Barrier()

    def _count(self, nbytes: int) -> int:
        self.total_bytes_transferred += nbytes
        return nbytes

    # --- fixed-width collectives
    def myBcast(self, buf: np.ndarray, root: int = COORDINATOR, method: str = "tree") -> int:
        """
        In-place broadcast into 'buf' from 'root' to all ranks.
        Returns bytes this rank sent/received; accumulates into self.total_bytes_transferred.
        """
        if method == "tree":
            bytes_rank = bcast_tree(self.comm, buf, root)
        elif method == "mpi":
            self.comm.Bcast(buf, root=root)
            bytes_rank = 0 if self.group.size == 1 else int(buf.nbytes)
        else:
            raise ValueError(f"Unknown method '{method}' for broadcast")
        return self._count(bytes_rank)

    def myScatter(self, sendbuf: Optional[np.ndarray], recvbuf: np.ndarray,
                  root: int = COORDINATOR, method: str = "linear") -> int:
        """
        Deliver block i of root's 'sendbuf' (split along axis 0) into rank i's 'recvbuf'.
        """
        if method == "linear":
            bytes_rank = scatter_linear(self.comm, sendbuf, recvbuf, root)
        elif method == "mpi":
            self.comm.Scatter(sendbuf, recvbuf, root=root)
            if self.group.rank == root:
                bytes_rank = int(recvbuf.nbytes) * (self.group.size - 1)
            else:
                bytes_rank = int(recvbuf.nbytes)
        else:
            raise ValueError(f"Unknown method '{method}' for scatter")
        return self._count(bytes_rank)

    def myGather(self, sendbuf: np.ndarray, recvbuf: Optional[np.ndarray],
                 root: int = COORDINATOR, method: str = "linear") -> int:
        """
        Concatenate every rank's 'sendbuf' into root's 'recvbuf' in rank order.
        """
        if method == "linear":
            bytes_rank = gather_linear(self.comm, sendbuf, recvbuf, root)
        elif method == "mpi":
            self.comm.Gather(sendbuf, recvbuf, root=root)
            if self.group.rank == root:
                bytes_rank = int(sendbuf.nbytes) * (self.group.size - 1)
            else:
                bytes_rank = int(sendbuf.nbytes)
        else:
            raise ValueError(f"Unknown method '{method}' for gather")
        return self._count(bytes_rank)

    # --- variable-length transfers
    def send_text(self, text: str, dest: int, tag: int = FRAME_TAG) -> int:
        return self._count(send_framed(self.comm, encode_text(text), dest, tag))

    def recv_text(self, source: int, tag: int = FRAME_TAG) -> str:
        payload = recv_framed(self.comm, source, tag)
        self._count(HEADER_NBYTES + len(payload))
        return decode_text(payload)

    def bcast_text(self, text: Optional[str], root: int = COORDINATOR) -> str:
        payload = encode_text(text) if self.group.rank == root else None
        payload, moved = bcast_framed(self.comm, payload, root)
        self._count(moved)
        return decode_text(payload)

    def scatter_text(self, chunks: Optional[Sequence[str]], root: int = COORDINATOR) -> str:
        text, moved = scatter_text(self.comm, chunks, root)
        self._count(moved)
        logger.debug("rank %d: scatter_text moved %d bytes", self.group.rank, moved)
        return text

    def gather_text(self, text: str, root: int = COORDINATOR) -> Optional[List[str]]:
        parts, moved = gather_text(self.comm, text, root)
        self._count(moved)
        logger.debug("rank %d: gather_text moved %d bytes", self.group.rank, moved)
        return parts

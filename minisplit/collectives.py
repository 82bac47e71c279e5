# minisplit/collectives.py
"""
Scatter / gather built on point-to-point transfers.

Fixed-width variants move equal blocks along axis 0 of numpy buffers.
Text variants move one framed message per worker rank, in rank order, for
records whose encoded size is not known up front.
"""
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .channel import HEADER_NBYTES, decode_text, recv_framed, send_text

SCATTER_TAG = 102
GATHER_TAG = 103


def _blocks(buf: np.ndarray, size: int) -> int:
    if buf.shape[0] % size != 0:
        raise ValueError(
            f"buffer with {buf.shape[0]} rows cannot hold {size} equal blocks"
        )
    return buf.shape[0] // size


def scatter_linear(comm, sendbuf: Optional[np.ndarray], recvbuf: np.ndarray,
                   root: int = 0) -> int:
    rank = comm.Get_rank()
    size = comm.Get_size()
    if rank != root:
        comm.Recv(recvbuf, source=root, tag=SCATTER_TAG)
        return int(recvbuf.nbytes)

    width = _blocks(sendbuf, size)
    bytes_rank = 0
    for dst in range(size):
        block = sendbuf[dst * width:(dst + 1) * width]
        if dst == root:
            np.copyto(recvbuf, block)
            continue
        comm.Send(np.ascontiguousarray(block), dest=dst, tag=SCATTER_TAG)
        bytes_rank += int(block.nbytes)
    return bytes_rank


def gather_linear(comm, sendbuf: np.ndarray, recvbuf: Optional[np.ndarray],
                  root: int = 0) -> int:
    rank = comm.Get_rank()
    size = comm.Get_size()
    if rank != root:
        comm.Send(np.ascontiguousarray(sendbuf), dest=root, tag=GATHER_TAG)
        return int(sendbuf.nbytes)

    width = _blocks(recvbuf, size)
    bytes_rank = 0
    for src in range(size):
        block = recvbuf[src * width:(src + 1) * width]
        if src == root:
            np.copyto(block, sendbuf)
            continue
        incoming = np.empty_like(block)
        comm.Recv(incoming, source=src, tag=GATHER_TAG)
        block[...] = incoming
        bytes_rank += int(incoming.nbytes)
    return bytes_rank


def scatter_text(comm, chunks: Optional[Sequence[str]], root: int = 0) -> Tuple[str, int]:
    """
    Root passes one string per rank; every rank returns its own string.
    Root keeps chunks[root] without a self-transfer.
    """
    rank = comm.Get_rank()
    size = comm.Get_size()
    if rank != root:
        payload = recv_framed(comm, source=root)
        return decode_text(payload), HEADER_NBYTES + len(payload)

    if len(chunks) != size:
        raise ValueError(f"expected {size} chunks, got {len(chunks)}")
    bytes_rank = 0
    for dst in range(size):
        if dst != root:
            bytes_rank += send_text(comm, chunks[dst], dest=dst)
    return chunks[root], bytes_rank


def gather_text(comm, text: str, root: int = 0) -> Tuple[Optional[List[str]], int]:
    """
    Inverse of scatter_text: root returns every rank's string in rank order,
    other ranks return None.
    """
    rank = comm.Get_rank()
    size = comm.Get_size()
    if rank != root:
        return None, send_text(comm, text, dest=root)

    parts = []
    bytes_rank = 0
    for src in range(size):
        if src == root:
            parts.append(text)
            continue
        payload = recv_framed(comm, source=src)
        parts.append(decode_text(payload))
        bytes_rank += HEADER_NBYTES + len(payload)
    return parts, bytes_rank

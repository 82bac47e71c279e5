# minisplit/broadcast.py
import math
from typing import Optional, Tuple

import numpy as np

from .channel import HEADER_DTYPE

BCAST_TAG = 101  # keep distinct from the framing tag


def bcast_tree(comm, buf: np.ndarray, root: int = 0) -> int:
    """
    Binomial-tree broadcast of `buf` (in place) from `root` over Send/Recv.
    Returns bytes this rank sent/received.
    """
    rank = comm.Get_rank()
    size = comm.Get_size()
    if size == 1:
        return 0

    # Map to virtual rank space where root == 0
    vrank = (rank - root) % size

    steps = math.ceil(math.log2(size))
    bytes_rank = 0
    msg_nbytes = int(buf.nbytes)

    for k in range(steps):
        span  = 1 << k                  # distance this round: 1,2,4,8,...
        block = span << 1               # ranks holding the data after this round

        if vrank < span:
            # already holds the data -> sender (if partner exists inside [0..P-1])
            dst_vr = vrank + span
            if dst_vr < size:
                dst = (dst_vr + root) % size
                comm.Send(buf, dest=dst, tag=BCAST_TAG)
                bytes_rank += msg_nbytes
        elif vrank < block:
            # receives this round, relays in later rounds
            src = (vrank - span + root) % size
            comm.Recv(buf, source=src, tag=BCAST_TAG)
            bytes_rank += msg_nbytes

    return bytes_rank


def bcast_framed(comm, payload: Optional[bytes], root: int = 0) -> Tuple[bytes, int]:
    """
    Broadcast a variable-length payload: length first, then the body.
    Only `root` supplies `payload`; every rank returns (payload, bytes moved).
    """
    rank = comm.Get_rank()
    header = np.empty(1, dtype=HEADER_DTYPE)
    if rank == root:
        header[0] = len(payload)
    moved = bcast_tree(comm, header, root)

    if rank == root:
        body = np.frombuffer(payload, dtype=np.uint8).copy()
    else:
        body = np.empty(int(header[0]), dtype=np.uint8)
    moved += bcast_tree(comm, body, root)
    return body.tobytes(), moved

# minisplit/channel.py
"""
Framed point-to-point transfer.

A payload whose size the receiver cannot know in advance travels as two
blocking messages on the same (source, dest, tag) channel: a single int32
length header, then exactly that many bytes. Works over any transport with
mpi4py-style buffer `Send(buf, dest, tag)` / `Recv(buf, source, tag)`.
"""
import numpy as np

FRAME_TAG = 1
HEADER_DTYPE = np.int32
HEADER_NBYTES = np.dtype(HEADER_DTYPE).itemsize
TERMINATOR = b"\x00"


def send_framed(comm, payload: bytes, dest: int, tag: int = FRAME_TAG) -> int:
    """Send `payload` to `dest`; returns bytes put on the wire (header included)."""
    header = np.array([len(payload)], dtype=HEADER_DTYPE)
    comm.Send(header, dest=dest, tag=tag)
    body = np.frombuffer(payload, dtype=np.uint8)
    comm.Send(body, dest=dest, tag=tag)
    return HEADER_NBYTES + len(payload)


def recv_framed(comm, source: int, tag: int = FRAME_TAG) -> bytes:
    header = np.empty(1, dtype=HEADER_DTYPE)
    comm.Recv(header, source=source, tag=tag)
    body = np.empty(int(header[0]), dtype=np.uint8)
    comm.Recv(body, source=source, tag=tag)
    return body.tobytes()


def encode_text(text: str) -> bytes:
    # terminator is part of the counted length
    return text.encode("utf-8") + TERMINATOR


def decode_text(payload: bytes) -> str:
    if payload.endswith(TERMINATOR):
        payload = payload[:-len(TERMINATOR)]
    return payload.decode("utf-8")


def send_text(comm, text: str, dest: int, tag: int = FRAME_TAG) -> int:
    return send_framed(comm, encode_text(text), dest, tag)


def recv_text(comm, source: int, tag: int = FRAME_TAG) -> str:
    return decode_text(recv_framed(comm, source, tag))

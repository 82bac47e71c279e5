# minisplit/kernels.py
import abc
import time
from typing import Any, Iterable, Tuple

import numpy as np

from .records import Record, format_hit

MODULUS = 100


class ComputeKernel(abc.ABC):
    """
    Local computation over one partition. Sees only the data it is handed
    and never communicates.
    """

    @abc.abstractmethod
    def compute(self, local: Any) -> Any:
        ...


class MatrixKernel(ComputeKernel):
    """
    Batched multiply of A (k x M x N) by B (k x N x P), each product term and
    the final sum reduced modulo 100.
    """

    def __init__(self, modulus: int = MODULUS):
        self.modulus = modulus

    def compute(self, local: Tuple[np.ndarray, np.ndarray]) -> np.ndarray:
        a, b = local
        if a.ndim != 3 or b.ndim != 3 or a.shape[0] != b.shape[0] or a.shape[2] != b.shape[1]:
            raise ValueError(f"incompatible shapes {a.shape} and {b.shape}")
        a = a.astype(np.int64)
        b = b.astype(np.int64)
        acc = np.zeros((a.shape[0], a.shape[1], b.shape[2]), dtype=np.int64)
        # one (k, M, P) slab of product terms per step of the shared dimension
        for l in range(a.shape[2]):
            acc += (a[:, :, l, None] * b[:, None, l, :]) % self.modulus
        return (acc % self.modulus).astype(np.int32)


class SearchKernel(ComputeKernel):
    """Emit a hit line for every record whose name contains the query."""

    def __init__(self, query: str):
        self.query = query

    def matches(self, record: Record) -> bool:
        return self.query in record.name

    def compute(self, local: Iterable[Record]) -> str:
        return "".join(format_hit(r) for r in local if self.matches(r))


def timed(kernel: ComputeKernel, local: Any) -> Tuple[Any, float]:
    start = time.perf_counter()
    result = kernel.compute(local)
    return result, time.perf_counter() - start

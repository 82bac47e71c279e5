# minisplit/config.py
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import numpy as np

from .errors import ConfigurationError
from .planner import Policy

STATUS_OK = 0
STATUS_REJECTED = 1

_POLICY_CODES = {Policy.STRICT: 0, Policy.TOLERANT: 1}
_POLICY_BY_CODE = {v: k for k, v in _POLICY_CODES.items()}


def _check_policy(policy) -> Policy:
    try:
        return Policy(policy)
    except ValueError:
        raise ConfigurationError(f"unknown partition policy {policy!r}") from None


@dataclass
class MatrixConfig:
    """Shapes of A (K x M x N), B (K x N x P); K is the partitioned axis."""
    k: int = 100
    m: int = 50
    n: int = 50
    p: int = 50
    policy: Policy = Policy.STRICT
    seed: Optional[int] = None
    output: Optional[str] = None
    show: bool = False

    @property
    def dims(self):
        return (self.k, self.m, self.n, self.p)

    def validate(self):
        if any(d < 1 for d in self.dims):
            raise ConfigurationError(f"matrix dimensions must be positive, got {self.dims}")
        _check_policy(self.policy)

    def to_header(self, status: int = STATUS_OK) -> np.ndarray:
        # [status, K, M, N, P, policy]; broadcast by the coordinator
        return np.array([status, *self.dims, _POLICY_CODES[Policy(self.policy)]],
                        dtype=np.int32)

    @staticmethod
    def empty_header() -> np.ndarray:
        return np.zeros(6, dtype=np.int32)

    @classmethod
    def from_header(cls, header: np.ndarray) -> "MatrixConfig":
        _, k, m, n, p, code = (int(x) for x in header)
        return cls(k=k, m=m, n=n, p=p, policy=_POLICY_BY_CODE[code])


@dataclass
class SearchConfig:
    paths: List[str] = field(default_factory=list)
    query: str = ""
    policy: Policy = Policy.TOLERANT
    output: str = "output.txt"

    @classmethod
    def from_inputs(cls, inputs: Sequence[str], **kwargs) -> "SearchConfig":
        """`inputs` is FILE... QUERY, the query always last."""
        inputs = list(inputs)
        if not inputs:
            return cls(**kwargs)
        return cls(paths=inputs[:-1], query=inputs[-1], **kwargs)

    def validate(self):
        if not self.paths or not self.query:
            raise ConfigurationError("usage: search <file>... <search_term>")
        _check_policy(self.policy)

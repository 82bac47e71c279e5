# minisplit/planner.py
import enum
import logging
from dataclasses import dataclass
from typing import List, Sequence

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


class Policy(str, enum.Enum):
    STRICT = "strict"      # equal blocks, T must divide evenly
    TOLERANT = "tolerant"  # ceil-sized blocks, trailing ranks may come up short


@dataclass(frozen=True)
class Partition:
    """Half-open range [start, end) owned by one rank."""
    rank: int
    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start

    def slice(self, data: Sequence):
        return data[self.start:self.end]


def chunk_size(total: int, size: int, policy: Policy) -> int:
    """Block width every rank is planned against."""
    policy = Policy(policy)
    if size < 1:
        raise ConfigurationError(f"participant count must be >= 1, got {size}")
    if total < 0:
        raise ConfigurationError(f"record count must be >= 0, got {total}")

    if policy is Policy.STRICT:
        if total % size != 0:
            raise ConfigurationError(
                f"{total} records cannot be split evenly across {size} participants"
            )
        return total // size
    return -(-total // size)


def plan(total: int, size: int, policy: Policy) -> List[Partition]:
    """
    Split [0, total) into `size` ordered ranges under `policy`.

    The ranges tile [0, total) exactly once; rank i's range never starts after
    rank i+1's. Raises ConfigurationError when the strict policy cannot apply.
    """
    chunk = chunk_size(total, size, policy)
    parts = [
        Partition(rank=r, start=min(r * chunk, total), end=min((r + 1) * chunk, total))
        for r in range(size)
    ]
    logger.debug("planned %d records over %d ranks (%s, chunk=%d)",
                 total, size, Policy(policy).value, chunk)
    return parts


def plan_strict(total: int, size: int) -> List[Partition]:
    return plan(total, size, Policy.STRICT)


def plan_tolerant(total: int, size: int) -> List[Partition]:
    return plan(total, size, Policy.TOLERANT)

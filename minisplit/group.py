# minisplit/group.py
from dataclasses import dataclass

COORDINATOR = 0


@dataclass(frozen=True)
class Group:
    """
    Fixed (rank, size) identity of this participant, built once at start.
    """
    rank: int
    size: int

    def __post_init__(self):
        if self.size < 1:
            raise ValueError(f"group size must be >= 1, got {self.size}")
        if not 0 <= self.rank < self.size:
            raise ValueError(f"rank {self.rank} outside [0, {self.size})")

    @classmethod
    def from_comm(cls, comm) -> "Group":
        return cls(rank=comm.Get_rank(), size=comm.Get_size())

    @property
    def is_coordinator(self) -> bool:
        return self.rank == COORDINATOR

    @property
    def workers(self) -> range:
        # non-coordinator ranks, in rank order
        return range(COORDINATOR + 1, self.size)

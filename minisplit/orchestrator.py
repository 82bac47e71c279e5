# minisplit/orchestrator.py
"""
Coordinator/worker drivers.

Every rank walks the same sequence, specialized by rank:

    validate -> broadcast decision + config -> distribute -> compute
             -> collect -> emit/finish

Only the coordinator validates; its decision travels in a broadcast status
header so a rejected run ends on every rank before anything is distributed.
"""
import abc
import logging
from dataclasses import dataclass
from typing import Any, List, Optional

import numpy as np

from .communicator import Communicator
from .config import STATUS_OK, STATUS_REJECTED, MatrixConfig, SearchConfig
from .errors import ConfigurationError
from .kernels import ComputeKernel, MatrixKernel, SearchKernel, timed
from .planner import Partition, chunk_size, plan
from .records import Record, decode_records, encode_records, read_phonebook, write_results

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_CONFIG = 1


@dataclass
class RunReport:
    rank: int
    exit_code: int
    elapsed: Optional[float] = None
    result: Any = None  # assembled output, coordinator only


def report_timing(rank: int, elapsed: float):
    # one line per rank, never aggregated
    print(f"Process {rank} took {elapsed:f} seconds.", flush=True)


def format_matrices(r: np.ndarray) -> str:
    lines = []
    for k, mat in enumerate(r):
        lines.append(f"Result Matrix R{k}")
        lines.extend(" ".join(f"{v:3d}" for v in row) + " " for row in mat)
        lines.append("")
    return "\n".join(lines) + "\n"


class Orchestrator(abc.ABC):

    def __init__(self, comm: Communicator):
        self.comm = comm
        self.group = comm.group

    # --- hooks
    @abc.abstractmethod
    def empty_header(self) -> np.ndarray: ...

    @abc.abstractmethod
    def validate(self) -> np.ndarray:
        """Coordinator only. Returns the config header or raises ConfigurationError."""

    @abc.abstractmethod
    def configure(self, header: np.ndarray) -> ComputeKernel: ...

    @abc.abstractmethod
    def distribute(self) -> Any: ...

    @abc.abstractmethod
    def collect(self, result: Any) -> Any: ...

    def emit(self, assembled: Any):
        pass

    def finish(self, assembled: Any, elapsed: float):
        if self.group.is_coordinator:
            self.emit(assembled)
        report_timing(self.group.rank, elapsed)

    # --- driver
    def run(self) -> RunReport:
        rank = self.group.rank
        header = self.empty_header()
        if self.group.is_coordinator:
            try:
                header = self.validate()
            except ConfigurationError as exc:
                logger.error("%s", exc)
                header[0] = STATUS_REJECTED
            except Exception:
                # release the workers before failing
                header = self.empty_header()
                header[0] = STATUS_REJECTED
                self.comm.myBcast(header)
                raise

        self.comm.myBcast(header)
        if header[0] != STATUS_OK:
            logger.debug("rank %d: run rejected by coordinator", rank)
            return RunReport(rank=rank, exit_code=EXIT_CONFIG)

        kernel = self.configure(header)
        local = self.distribute()
        result, elapsed = timed(kernel, local)
        assembled = self.collect(result)
        self.finish(assembled, elapsed)
        logger.debug("rank %d: done, %d bytes transferred",
                     rank, self.comm.total_bytes_transferred)
        return RunReport(rank=rank, exit_code=EXIT_OK, elapsed=elapsed,
                         result=assembled if self.group.is_coordinator else None)


class MatrixRun(Orchestrator):
    """
    Scatter blocks of A and B along K, multiply locally, gather R.

    Under the tolerant policy the coordinator pads A and B to size * chunk
    rows so the uniform scatter still applies; padding rows are never
    computed and are trimmed from the gathered result.
    """

    def __init__(self, comm: Communicator, config: Optional[MatrixConfig] = None,
                 a: Optional[np.ndarray] = None, b: Optional[np.ndarray] = None,
                 method: str = "linear"):
        super().__init__(comm)
        self.config = config
        self.a = a
        self.b = b
        self.method = method
        self.parts: List[Partition] = []
        self.chunk = 0

    def empty_header(self) -> np.ndarray:
        return MatrixConfig.empty_header()

    def validate(self) -> np.ndarray:
        cfg = self.config
        if cfg is None:
            raise ConfigurationError("no matrix configuration on the coordinator")
        cfg.validate()
        if self.a is not None and self.a.shape != (cfg.k, cfg.m, cfg.n):
            raise ConfigurationError(f"A has shape {self.a.shape}, expected {(cfg.k, cfg.m, cfg.n)}")
        if self.b is not None and self.b.shape != (cfg.k, cfg.n, cfg.p):
            raise ConfigurationError(f"B has shape {self.b.shape}, expected {(cfg.k, cfg.n, cfg.p)}")
        plan(cfg.k, self.group.size, cfg.policy)
        return cfg.to_header()

    def configure(self, header: np.ndarray) -> ComputeKernel:
        received = MatrixConfig.from_header(header)
        if not self.group.is_coordinator:
            self.config = received
        else:
            # coordinator-only settings stay; shape and policy come from the header
            self.config.k, self.config.m, self.config.n, self.config.p = received.dims
            self.config.policy = received.policy
        self.parts = plan(received.k, self.group.size, received.policy)
        self.chunk = chunk_size(received.k, self.group.size, received.policy)
        return MatrixKernel()

    def _padded(self, x: np.ndarray) -> np.ndarray:
        rows = self.chunk * self.group.size
        out = np.zeros((rows,) + x.shape[1:], dtype=np.int32)
        out[:x.shape[0]] = x
        return out

    def distribute(self):
        cfg = self.config
        send_a = send_b = None
        if self.group.is_coordinator:
            rng = np.random.default_rng(cfg.seed)
            if self.a is None:
                self.a = rng.integers(0, 100, size=(cfg.k, cfg.m, cfg.n), dtype=np.int32)
            if self.b is None:
                self.b = rng.integers(0, 100, size=(cfg.k, cfg.n, cfg.p), dtype=np.int32)
            send_a = self._padded(self.a)
            send_b = self._padded(self.b)

        local_a = np.empty((self.chunk, cfg.m, cfg.n), dtype=np.int32)
        local_b = np.empty((self.chunk, cfg.n, cfg.p), dtype=np.int32)
        self.comm.myScatter(send_a, local_a, method=self.method)
        self.comm.myScatter(send_b, local_b, method=self.method)

        mine = len(self.parts[self.group.rank])
        return local_a[:mine], local_b[:mine]

    def collect(self, result: np.ndarray):
        cfg = self.config
        local_r = np.zeros((self.chunk, cfg.m, cfg.p), dtype=np.int32)
        local_r[:result.shape[0]] = result

        full = None
        if self.group.is_coordinator:
            full = np.empty((self.chunk * self.group.size, cfg.m, cfg.p), dtype=np.int32)
        self.comm.myGather(local_r, full, method=self.method)
        return None if full is None else full[:cfg.k]

    def finish(self, assembled, elapsed: float):
        # align ranks before the timing lines
        self.comm.Barrier()
        super().finish(assembled, elapsed)

    def emit(self, assembled: np.ndarray):
        if self.config.show:
            print(format_matrices(assembled), end="", flush=True)
        if self.config.output:
            np.save(self.config.output, assembled)
            logger.debug("wrote result to %s", self.config.output)


class SearchRun(Orchestrator):
    """
    Send each worker its records as framed text, search locally, collect the
    hit lines in rank order and write them once from the coordinator.
    """

    def __init__(self, comm: Communicator, config: Optional[SearchConfig] = None):
        super().__init__(comm)
        self.config = config
        self.records: List[Record] = []
        self.parts: List[Partition] = []

    def empty_header(self) -> np.ndarray:
        return np.zeros(1, dtype=np.int32)

    def validate(self) -> np.ndarray:
        cfg = self.config
        if cfg is None:
            raise ConfigurationError("no search configuration on the coordinator")
        cfg.validate()
        self.records = read_phonebook(cfg.paths)
        self.parts = plan(len(self.records), self.group.size, cfg.policy)
        return np.array([STATUS_OK], dtype=np.int32)

    def configure(self, header: np.ndarray) -> ComputeKernel:
        query = self.comm.bcast_text(self.config.query if self.group.is_coordinator else None)
        return SearchKernel(query)

    def distribute(self):
        if not self.group.is_coordinator:
            return decode_records(self.comm.scatter_text(None))

        chunks = [encode_records(p.slice(self.records)) for p in self.parts]
        self.comm.scatter_text(chunks)
        # own partition stays as parsed records
        return self.parts[self.group.rank].slice(self.records)

    def collect(self, result: str):
        parts = self.comm.gather_text(result)
        return None if parts is None else "".join(parts)

    def emit(self, assembled: str):
        path = write_results(self.config.output, assembled)
        logger.debug("wrote %d hit line(s) to %s", assembled.count("\n"), path)


def run_matrix(comm: Communicator, config: Optional[MatrixConfig] = None,
               a: Optional[np.ndarray] = None, b: Optional[np.ndarray] = None,
               method: str = "linear") -> RunReport:
    return MatrixRun(comm, config, a, b, method).run()


def run_search(comm: Communicator, config: Optional[SearchConfig] = None) -> RunReport:
    return SearchRun(comm, config).run()

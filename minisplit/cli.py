# minisplit/cli.py
"""
Command line entry point.

    mpiexec -n 4 python -m minisplit matrix --dims 100 50 50 50
    mpiexec -n 4 python -m minisplit search phonebook1.txt phonebook2.txt Bob

`--local N` runs N in-process ranks instead of the MPI world.
"""
import argparse
import logging
from typing import List, Optional

from .communicator import Communicator
from .config import MatrixConfig, SearchConfig
from .local import run_local
from .orchestrator import run_matrix, run_search
from .planner import Policy

logger = logging.getLogger(__name__)


def positive_int(text: str) -> int:
    value = int(text)
    if value < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {text}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="minisplit",
        description="Partition a dataset across ranks, compute locally, gather on rank 0.",
    )
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    parser.add_argument("--local", type=positive_int, default=None, metavar="N",
                        help="Run N in-process ranks instead of using MPI.COMM_WORLD")
    sub = parser.add_subparsers(dest="command", required=True)

    mat = sub.add_parser("matrix", help="Batched modulo-100 matrix multiply")
    mat.add_argument("--dims", type=int, nargs=4, default=[100, 50, 50, 50],
                     metavar=("K", "M", "N", "P"),
                     help="A is K x M x N, B is K x N x P; K is split across ranks")
    mat.add_argument("--policy", choices=[p.value for p in Policy], default=Policy.STRICT.value)
    mat.add_argument("--seed", type=int, default=None, help="Seed for the random inputs")
    mat.add_argument("--output", default=None, help="Save the result with numpy.save")
    mat.add_argument("--show", action="store_true", help="Print every result matrix")

    search = sub.add_parser("search", help="Substring search over phonebook files")
    search.add_argument("inputs", nargs="*", metavar="FILE... QUERY",
                        help="One or more phonebook files followed by the search term")
    search.add_argument("--policy", choices=[p.value for p in Policy], default=Policy.TOLERANT.value)
    search.add_argument("--output", default="output.txt")
    return parser


def _config(args: argparse.Namespace):
    if args.command == "matrix":
        k, m, n, p = args.dims
        return MatrixConfig(k=k, m=m, n=n, p=p, policy=Policy(args.policy),
                            seed=args.seed, output=args.output, show=args.show)
    return SearchConfig.from_inputs(args.inputs, policy=Policy(args.policy), output=args.output)


def run(args: argparse.Namespace, comm) -> int:
    comm = Communicator(comm)
    config = _config(args)
    if args.command == "matrix":
        report = run_matrix(comm, config)
    else:
        report = run_search(comm, config)
    return report.exit_code


def main(argv: Optional[List[str]] = None, comm=None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s [%(threadName)s] %(levelname)s %(name)s: %(message)s",
    )

    if args.local is not None:
        codes = run_local(args.local, lambda c: run(args, c))
        return max(codes)

    if comm is None:
        from mpi4py import MPI
        comm = MPI.COMM_WORLD
    logger.debug("rank %d of %d starting %s", comm.Get_rank(), comm.Get_size(), args.command)
    return run(args, comm)

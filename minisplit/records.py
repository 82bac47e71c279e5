# minisplit/records.py
"""
Phonebook records: input files, the line-oriented wire text, result files.

Input lines look like ``"Bob Marley","555-1212"``; quotes and surrounding
whitespace are optional. Wire text is one ``name,value`` line per record.
"""
import logging
from pathlib import Path
from typing import Iterable, Iterator, List, NamedTuple, Sequence

from .errors import ConfigurationError, ParseError

logger = logging.getLogger(__name__)

DELIMITER = ","


class Record(NamedTuple):
    name: str
    value: str


def parse_record(line: str) -> Record:
    """Split one line at its first delimiter, stripping whitespace and quotes."""
    name, sep, value = line.rstrip("\r\n").partition(DELIMITER)
    if not sep:
        raise ParseError(f"no '{DELIMITER}' in line {line!r}")
    return Record(_clean(name), _clean(value))


def _clean(field: str) -> str:
    field = field.strip()
    if len(field) >= 2 and field[0] == field[-1] == '"':
        field = field[1:-1]
    return field


def parse_lines(lines: Iterable[str]) -> List[Record]:
    records = []
    for line in lines:
        if not line.strip():
            continue
        try:
            records.append(parse_record(line))
        except ParseError as exc:
            logger.debug("skipping line: %s", exc)
    return records


def _decode_lines(f: Iterable[bytes]) -> Iterator[str]:
    for raw in f:
        try:
            yield raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            logger.debug("skipping line: %s", ParseError(f"undecodable line {raw!r}: {exc}"))


def read_phonebook(paths: Sequence) -> List[Record]:
    """Read records from every path, in order. Unreadable paths are a ConfigurationError."""
    records = []
    for path in paths:
        try:
            with open(path, "rb") as f:
                records.extend(parse_lines(_decode_lines(f)))
        except OSError as exc:
            raise ConfigurationError(f"cannot read phonebook {path}: {exc}") from exc
    logger.debug("read %d records from %d file(s)", len(records), len(paths))
    return records


def encode_records(records: Iterable[Record]) -> str:
    return "".join(f"{r.name}{DELIMITER}{r.value}\n" for r in records)


def decode_records(text: str) -> List[Record]:
    """Inverse of encode_records; fields are taken verbatim."""
    records = []
    for line in text.split("\n"):
        if not line:
            continue
        name, sep, value = line.partition(DELIMITER)
        if not sep:
            logger.debug("skipping line: %s", ParseError(f"no '{DELIMITER}' in line {line!r}"))
            continue
        records.append(Record(name, value))
    return records


def format_hit(record: Record) -> str:
    return f"{record.name} {record.value}\n"


def write_results(path, text: str) -> Path:
    path = Path(path)
    path.write_text(text, encoding="utf-8")
    return path

"""
soa_tables/index.py - SOA Index File Locator

The index file is a sequence of fixed-length little-endian records:

    [0, 4)    int32   table number
    [4, 54)   char[50] table name
    [54, 58)  int32   byte offset of the table in the data file

Table numbers are neither consecutive nor sorted, so the scan is strictly
sequential and the first exact match wins.

Author: Actuarial Pipeline Project
License: MIT
"""

import struct
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Optional
import logging

from .exceptions import ConfigurationError, CorruptFormatError, NotFoundError

logger = logging.getLogger(__name__)


INDEX_RECORD_LENGTH = 58
INDEX_NAME_LENGTH = 50

# Byte order is part of the format: never use native ('=' or '@') codes here.
_INDEX_RECORD = struct.Struct("<i50si")


@dataclass(frozen=True)
class IndexEntry:
    """One decoded index record."""
    table_number: int
    name: str
    offset: int


def check_table_number(table_number: int, source: Optional[str] = None) -> None:
    """Reject table numbers that the SOA format never uses."""
    if table_number <= 0:
        raise ConfigurationError(
            f"there is no table number {table_number}; table numbers are positive",
            path=source, table_number=table_number, field="table_number"
        )


def _decode_name(raw: bytes) -> str:
    return raw.split(b"\x00", 1)[0].decode("latin-1").strip()


def _read_record(stream: BinaryIO, table_number: Optional[int],
                 source: Optional[str]) -> Optional[bytes]:
    """Next full record, or None at a clean end of stream."""
    record = stream.read(INDEX_RECORD_LENGTH)
    if not record:
        return None
    if len(record) != INDEX_RECORD_LENGTH:
        raise CorruptFormatError(
            f"attempted to read {INDEX_RECORD_LENGTH} index bytes, "
            f"but got {len(record)} bytes instead",
            path=source, table_number=table_number
        )
    return record


def read_index(stream: BinaryIO, *, source: Optional[str] = None) -> Iterator[IndexEntry]:
    """Yield every entry of an index stream in file order."""
    while True:
        record = _read_record(stream, None, source)
        if record is None:
            return
        number, name, offset = _INDEX_RECORD.unpack(record)
        yield IndexEntry(table_number=number, name=_decode_name(name), offset=offset)


def locate_table(stream: BinaryIO, table_number: int, *,
                 source: Optional[str] = None) -> int:
    """
    Find the data-file offset of a table.

    Args:
        stream: Binary index stream positioned at its first record
        table_number: Positive SOA table number
        source: Path used in diagnostics

    Returns:
        Byte offset of the table's first record in the data file

    Raises:
        ConfigurationError: table_number is not positive (nothing is read)
        NotFoundError: no record carries table_number
        CorruptFormatError: the stream ends inside a record
    """
    check_table_number(table_number, source)

    scanned = 0
    while True:
        record = _read_record(stream, table_number, source)
        if record is None:
            break
        scanned += 1
        number, _, offset = _INDEX_RECORD.unpack(record)
        if number == table_number:
            logger.debug(f"Table {table_number} found at index record {scanned}, offset {offset}")
            return offset

    raise NotFoundError(
        f"not present among {scanned} index records",
        path=source, table_number=table_number
    )

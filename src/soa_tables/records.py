"""
soa_tables/records.py - SOA Data Record Parser

A table in the data file is a stream of variable-length records:

    int16   record type (tag)
    uint16  nominal length of the payload in bytes
    bytes   payload

Record types read here:

    9999  end of table
    1     table name (text)
    2     int32   table number, echoing the index
    3     char    table type: A, D or S (either case)
    12    int16   minimum age
    13    int16   maximum age
    14    int16   select period
    15    int16   maximum select age (zero means max_age)
    17    double  values

Any other record type is skipped by its nominal length.

The nominal length of the values record cannot be trusted: it is a
sixteen-bit quantity, so it wraps for tables of more than 8191 values.
The number of values is deduced instead from the metadata records, which
the format always writes ahead of the values.

All fields are little endian. Decoding goes through explicit '<' struct
formats and the '<f8' numpy dtype, so a big-endian host byte-swaps
instead of silently misreading.

Author: Actuarial Pipeline Project
License: MIT
"""

import struct
import numpy as np
from dataclasses import dataclass
from typing import BinaryIO, Optional, Tuple
import logging

from .exceptions import CorruptFormatError
from .geometry import TableMetadata, TableType, count_values

logger = logging.getLogger(__name__)


RECORD_TABLE_NAME = 1
RECORD_TABLE_NUMBER = 2
RECORD_TABLE_TYPE = 3
RECORD_MIN_AGE = 12
RECORD_MAX_AGE = 13
RECORD_SELECT_PERIOD = 14
RECORD_MAX_SELECT_AGE = 15
RECORD_VALUES = 17
RECORD_END = 9999

# Largest byte count the uint16 nominal length can express.
NOMINAL_LENGTH_MAX = 0xFFFF

_HEADER = struct.Struct("<hH")
_INT16 = struct.Struct("<h")
_INT32 = struct.Struct("<i")
_VALUE_DTYPE = np.dtype("<f8")

# Age-like int16 records: tag -> field name.
_AGE_FIELDS = {
    RECORD_MIN_AGE: "min_age",
    RECORD_MAX_AGE: "max_age",
    RECORD_SELECT_PERIOD: "select_period",
    RECORD_MAX_SELECT_AGE: "max_select_age",
}

_REQUIRED_FIELDS = ("table_type", "min_age", "max_age", "select_period", "max_select_age")


@dataclass
class _ParseState:
    """Fields collected while parsing; None means not yet seen."""
    table_number: Optional[int] = None
    table_type: Optional[TableType] = None
    min_age: Optional[int] = None
    max_age: Optional[int] = None
    select_period: Optional[int] = None
    max_select_age: Optional[int] = None
    name: Optional[str] = None
    values: Optional[np.ndarray] = None


class RecordParser:
    """
    Decode one table from a data stream positioned at its first record.

    A parser is single use: construct it, call parse() once.
    """

    def __init__(self, stream: BinaryIO, table_number: int, *,
                 methuselah: int, source: Optional[str] = None):
        self.stream = stream
        self.table_number = table_number
        self.methuselah = methuselah
        self.source = source
        self._state = _ParseState()

    def _error(self, message: str, field: Optional[str] = None) -> CorruptFormatError:
        return CorruptFormatError(message, path=self.source,
                                  table_number=self.table_number, field=field)

    def _read(self, size: int, what: str) -> bytes:
        data = self.stream.read(size)
        if len(data) != size:
            raise self._error(
                f"attempted to read {size} bytes of {what}, but got {len(data)} bytes instead"
            )
        return data

    def _assign(self, field: str, value) -> None:
        if getattr(self._state, field) is not None:
            raise self._error("record appears more than once", field=field)
        setattr(self._state, field, value)

    def _read_scalar(self, codec: struct.Struct, nominal_length: int, field: str) -> int:
        if nominal_length != codec.size:
            raise self._error(
                f"nominal length {nominal_length} should be {codec.size}", field=field
            )
        (value,) = codec.unpack(self._read(codec.size, field))
        return value

    # ------------------------------------------------------------------
    # Record handlers
    # ------------------------------------------------------------------

    def _parse_table_number(self, nominal_length: int) -> None:
        number = self._read_scalar(_INT32, nominal_length, "table_number")
        if number != self.table_number:
            raise self._error(
                f"data records table {number}, but the index pointed here for "
                f"table {self.table_number}",
                field="table_number"
            )
        self._assign("table_number", number)

    def _parse_table_type(self, nominal_length: int) -> None:
        if nominal_length != 1:
            raise self._error(f"nominal length {nominal_length} should be 1",
                              field="table_type")
        code = self._read(1, "table_type").decode("latin-1")
        try:
            table_type = TableType.from_code(code)
        except CorruptFormatError as e:
            raise self._error(e.message, field="table_type") from None
        self._assign("table_type", table_type)

    def _parse_age_field(self, tag: int, nominal_length: int) -> None:
        field = _AGE_FIELDS[tag]
        value = self._read_scalar(_INT16, nominal_length, field)
        if not (0 <= value <= self.methuselah):
            raise self._error(
                f"value {value} outside [0, {self.methuselah}]", field=field
            )
        self._assign(field, value)

    def _parse_name(self, nominal_length: int) -> None:
        raw = self._read(nominal_length, "table_name")
        if self._state.name is not None:
            # Informational only: the first name wins.
            logger.debug(f"Table {self.table_number}: ignoring repeated name record")
            return
        self._state.name = raw.split(b"\x00", 1)[0].decode("latin-1").strip()

    def _reconciled_context(self) -> Tuple[TableType, int, int, int, int]:
        """Metadata needed to size the values record, after reconciliation."""
        state = self._state
        missing = [f for f in _REQUIRED_FIELDS if getattr(state, f) is None]
        if missing:
            raise self._error(
                f"values record precedes {', '.join(missing)}", field="values"
            )
        if state.min_age > state.max_age:
            raise self._error(
                f"min_age {state.min_age} exceeds max_age {state.max_age}", field="min_age"
            )
        select_period = state.select_period
        if state.table_type is not TableType.SELECT_AND_ULTIMATE:
            select_period = 0
        max_select_age = state.max_select_age or state.max_age
        if select_period:
            if max_select_age < state.min_age:
                raise self._error(
                    f"max_select_age {max_select_age} is below min_age {state.min_age}",
                    field="max_select_age"
                )
            if select_period > 1 + state.max_age - state.min_age:
                raise self._error(
                    f"select period {select_period} exceeds the age range "
                    f"{state.min_age}-{state.max_age}",
                    field="select_period"
                )
        return state.table_type, state.min_age, state.max_age, select_period, max_select_age

    def _parse_values(self, nominal_length: int) -> None:
        if self._state.values is not None:
            raise self._error("record appears more than once", field="values")
        context = self._reconciled_context()
        number_of_values = count_values(*context)
        if number_of_values <= 0:
            raise self._error(
                f"parameters imply {number_of_values} values", field="values"
            )

        deduced_length = number_of_values * _VALUE_DTYPE.itemsize
        if deduced_length != nominal_length:
            if deduced_length <= NOMINAL_LENGTH_MAX:
                raise self._error(
                    f"nominal length {nominal_length} disagrees with deduced "
                    f"length {deduced_length} ({number_of_values} values)",
                    field="values"
                )
            logger.debug(
                f"Table {self.table_number}: {number_of_values} values exceed what "
                f"the nominal length can express; ignoring nominal length {nominal_length}"
            )

        raw = self._read(deduced_length, "values")
        values = np.frombuffer(raw, dtype=_VALUE_DTYPE).astype(np.float64)
        values.flags.writeable = False
        self._state.values = values

    def _skip(self, tag: int, nominal_length: int) -> None:
        logger.debug(f"Skipping record type {tag} ({nominal_length} bytes)")
        self._read(nominal_length, f"record type {tag}")

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def _finalize(self) -> Tuple[TableMetadata, np.ndarray]:
        state = self._state
        for field in _REQUIRED_FIELDS:
            if getattr(state, field) is None:
                raise self._error("record is missing", field=field)
        if state.values is None:
            raise self._error("record is missing", field="values")

        select_period = state.select_period
        if state.table_type is not TableType.SELECT_AND_ULTIMATE and select_period:
            # Published SOA tables break this invariant; accept and repair.
            logger.warning(
                f"Table {self.table_number}: non-select table stores select period "
                f"{select_period}; treating it as 0"
            )
            select_period = 0

        metadata = TableMetadata(
            table_number=self.table_number,
            table_type=state.table_type,
            min_age=state.min_age,
            max_age=state.max_age,
            select_period=select_period,
            max_select_age=state.max_select_age or state.max_age,
            name=state.name,
        )
        return metadata, state.values

    def parse(self) -> Tuple[TableMetadata, np.ndarray]:
        """
        Read records up to the end marker.

        Returns:
            (metadata, values): reconciled metadata and a read-only array

        Raises:
            CorruptFormatError: on any structural violation, including a
                stream that ends before the end marker
        """
        handlers = {
            RECORD_TABLE_NAME: self._parse_name,
            RECORD_TABLE_NUMBER: self._parse_table_number,
            RECORD_TABLE_TYPE: self._parse_table_type,
            RECORD_VALUES: self._parse_values,
        }
        while True:
            tag, nominal_length = _HEADER.unpack(self._read(_HEADER.size, "record header"))
            if tag == RECORD_END:
                break
            if tag in _AGE_FIELDS:
                self._parse_age_field(tag, nominal_length)
            elif tag in handlers:
                handlers[tag](nominal_length)
            else:
                self._skip(tag, nominal_length)
        return self._finalize()


def parse_table(stream: BinaryIO, table_number: int, *, methuselah: int,
                source: Optional[str] = None) -> Tuple[TableMetadata, np.ndarray]:
    """Parse the table whose first record is at the stream's position."""
    return RecordParser(stream, table_number, methuselah=methuselah, source=source).parse()

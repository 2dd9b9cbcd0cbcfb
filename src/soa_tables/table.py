"""
soa_tables/table.py - SOA Rate Table Handle

Public entry point. A TableHandle is built once per (database, table
number) by a single pass over the index and data files, and is immutable
afterwards, so it may be shared read-only between threads.

Example:
    table = TableHandle("/data/qx_cso", 42)
    q = table.values(issue_age=35, length=65)

    select = TableHandle("/data/qx_cso", 47)
    q = select.values_elaborated(45, 20, ReentryMethod.REENTER_UPON_RATE_RESET,
                                 inforce_duration=5, reset_duration=-2)

Author: Actuarial Pipeline Project
License: MIT
"""

import numpy as np
import pandas as pd
from pathlib import Path
from typing import BinaryIO, Optional, Union
import logging

from .config import DEFAULT_SETTINGS, TableSettings, data_path, index_path
from .exceptions import CorruptFormatError, NotFoundError
from .geometry import TableGeometry, TableMetadata, TableType
from .index import check_table_number, locate_table, read_index
from .projector import RateProjector, ReentryMethod
from .records import parse_table

logger = logging.getLogger(__name__)


def _open_binary(path: Path, table_number: Optional[int]) -> BinaryIO:
    try:
        return open(path, "rb")
    except FileNotFoundError as e:
        raise NotFoundError(
            "file is required but could not be found",
            path=path, table_number=table_number
        ) from e


def _seek_table(stream: BinaryIO, offset: int, table_number: int, source: str) -> None:
    if offset < 0:
        raise CorruptFormatError(
            f"index gives invalid offset {offset}",
            path=source, table_number=table_number, field="offset"
        )
    stream.seek(offset)


class TableHandle:
    """
    One parsed SOA table.

    Attributes:
        path: Database path as given by the caller
        table_number: SOA table number
        metadata: Reconciled table parameters
        geometry: Index arithmetic derived from metadata
        raw_values: Stored values, read-only
    """

    def __init__(self, path: Union[str, Path], table_number: int,
                 settings: Optional[TableSettings] = None):
        """
        Load a table from an SOA database.

        Args:
            path: Database base name; its extension, if any, is replaced by
                  the index and data suffixes
            table_number: Positive SOA table number
            settings: Reader settings (defaults to DEFAULT_SETTINGS)

        Raises:
            ConfigurationError: table_number is not positive
            NotFoundError: a file is missing or the table is not indexed
            CorruptFormatError: the files violate the SOA format
        """
        check_table_number(table_number, str(path))
        settings = settings or DEFAULT_SETTINGS

        ndx = index_path(path, settings)
        dat = data_path(path, settings)

        with _open_binary(ndx, table_number) as index_stream:
            offset = locate_table(index_stream, table_number, source=str(ndx))

        with _open_binary(dat, table_number) as data_stream:
            _seek_table(data_stream, offset, table_number, str(dat))
            metadata, raw_values = parse_table(
                data_stream, table_number,
                methuselah=settings.methuselah, source=str(dat)
            )

        self._init(path, metadata, raw_values)

    @classmethod
    def from_streams(cls, index_stream: BinaryIO, data_stream: BinaryIO,
                     table_number: int, *,
                     settings: Optional[TableSettings] = None,
                     source: str = "<stream>") -> "TableHandle":
        """Load a table from already-open index and data streams."""
        check_table_number(table_number, source)
        settings = settings or DEFAULT_SETTINGS

        offset = locate_table(index_stream, table_number, source=source)
        _seek_table(data_stream, offset, table_number, source)
        metadata, raw_values = parse_table(
            data_stream, table_number, methuselah=settings.methuselah, source=source
        )

        handle = cls.__new__(cls)
        handle._init(source, metadata, raw_values)
        return handle

    def _init(self, path: Union[str, Path], metadata: TableMetadata,
              raw_values: np.ndarray) -> None:
        self._path = str(path)
        self._metadata = metadata
        self._geometry = TableGeometry(metadata)
        self._raw_values = raw_values
        self._projector = RateProjector(self._geometry, raw_values)

        logger.info(
            f"Loaded table {metadata.table_number} from '{self._path}': "
            f"type={metadata.table_type.value}, ages {metadata.min_age}-{metadata.max_age}, "
            f"select period {metadata.select_period}, {len(raw_values)} values"
        )

    def __repr__(self) -> str:
        m = self._metadata
        return (f"TableHandle(path={self._path!r}, table_number={m.table_number}, "
                f"table_type={m.table_type.name})")

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def path(self) -> str:
        return self._path

    @property
    def table_number(self) -> int:
        return self._metadata.table_number

    @property
    def metadata(self) -> TableMetadata:
        return self._metadata

    @property
    def geometry(self) -> TableGeometry:
        return self._geometry

    @property
    def raw_values(self) -> np.ndarray:
        return self._raw_values

    @property
    def table_type(self) -> TableType:
        return self._metadata.table_type

    @property
    def min_age(self) -> int:
        return self._metadata.min_age

    @property
    def max_age(self) -> int:
        return self._metadata.max_age

    @property
    def select_period(self) -> int:
        return self._metadata.select_period

    @property
    def max_select_age(self) -> int:
        return self._metadata.max_select_age

    @property
    def name(self) -> Optional[str]:
        return self._metadata.name

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def values(self, issue_age: int, length: int) -> np.ndarray:
        """Rates for durations 0..length-1 of a life issued at issue_age."""
        return self._projector.values(issue_age, length)

    def values_elaborated(self, issue_age: int, length: int,
                          method: ReentryMethod,
                          inforce_duration: int,
                          reset_duration: int) -> np.ndarray:
        """Rates with select reentry applied; see RateProjector."""
        return self._projector.values_elaborated(
            issue_age, length, method, inforce_duration, reset_duration
        )

    def to_frame(self) -> pd.DataFrame:
        """
        Every rate the table can produce, in long format.

        One row per (issue_age, duration) with its attained age. A duration
        table has no issue-age axis, so it is listed under min_age only.

        Returns:
            DataFrame with columns issue_age, duration, attained_age, rate
        """
        m = self._metadata
        if m.table_type is TableType.DURATION_BANDED:
            issue_ages = [m.min_age]
        else:
            issue_ages = range(m.min_age, m.max_age + 1)

        frames = []
        for issue_age in issue_ages:
            rates = self.values(issue_age, self._geometry.max_length(issue_age))
            durations = np.arange(len(rates))
            frames.append(pd.DataFrame({
                'issue_age': issue_age,
                'duration': durations,
                'attained_age': issue_age + durations,
                'rate': rates,
            }))
        return pd.concat(frames, ignore_index=True)


def list_tables(path: Union[str, Path],
                settings: Optional[TableSettings] = None) -> pd.DataFrame:
    """
    Index entries of an SOA database.

    Returns:
        DataFrame with columns table_number, name, offset in file order
    """
    settings = settings or DEFAULT_SETTINGS
    ndx = index_path(path, settings)
    with _open_binary(ndx, None) as index_stream:
        entries = list(read_index(index_stream, source=str(ndx)))
    logger.debug(f"Read {len(entries)} index entries from '{ndx}'")
    return pd.DataFrame(
        [(e.table_number, e.name, e.offset) for e in entries],
        columns=['table_number', 'name', 'offset']
    )


def actuarial_table_rates(path: Union[str, Path], table_number: int,
                          issue_age: int, length: int,
                          settings: Optional[TableSettings] = None) -> np.ndarray:
    """Load a table and return values(issue_age, length) in one call."""
    return TableHandle(path, table_number, settings).values(issue_age, length)


def actuarial_table_rates_elaborated(path: Union[str, Path], table_number: int,
                                     issue_age: int, length: int,
                                     method: ReentryMethod,
                                     inforce_duration: int,
                                     reset_duration: int,
                                     settings: Optional[TableSettings] = None) -> np.ndarray:
    """Load a table and return values_elaborated(...) in one call."""
    return TableHandle(path, table_number, settings).values_elaborated(
        issue_age, length, method, inforce_duration, reset_duration
    )

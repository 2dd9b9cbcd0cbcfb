"""
soa_tables/geometry.py - Table Metadata and Index Arithmetic

Three table topologies share one flat array of stored values:

- Age banded: one rate per age, min_age..max_age.
- Duration banded: one rate per policy duration; issue age plays no part.
- Select and ultimate: one row per issue age up to max_select_age, each
  holding select_period select rates followed by its first ultimate rate;
  the ultimate column is shared, so rows overlap on attained age and the
  tail of the array holds the remaining ultimate-only rates.

For a select table with select period s, a row of stride (1 + s) is
[x]+0 ... [x]+(s-1), x+s. Walking a row past its select columns skips s
cells to land on the next row's ultimate column, which holds the rate for
the next attained age.

Author: Actuarial Pipeline Project
License: MIT
"""

import numpy as np
from dataclasses import dataclass
from enum import Enum
from typing import Optional
import logging

from .exceptions import CorruptFormatError, PreconditionError

logger = logging.getLogger(__name__)


class TableType(Enum):
    """SOA table types, keyed by their one-byte code."""
    AGE_BANDED = "A"
    DURATION_BANDED = "D"
    SELECT_AND_ULTIMATE = "S"

    @classmethod
    def from_code(cls, code: str) -> "TableType":
        """Decode a table-type byte; SOA permits either case."""
        try:
            return cls(code.upper())
        except ValueError:
            raise CorruptFormatError(
                f"table type {code!r} not recognized: must be one of 'A', 'D', or 'S'",
                field="table_type"
            ) from None


@dataclass(frozen=True)
class TableMetadata:
    """Validated, reconciled table parameters."""
    table_number: int
    table_type: TableType
    min_age: int
    max_age: int
    select_period: int
    max_select_age: int
    name: Optional[str] = None

    @property
    def is_select(self) -> bool:
        return self.table_type is TableType.SELECT_AND_ULTIMATE


def count_values(table_type: TableType, min_age: int, max_age: int,
                 select_period: int, max_select_age: int) -> int:
    """
    Number of stored values implied by a table's parameters.

    select_period and max_select_age must already be reconciled: zero
    select period for non-select tables, max_select_age never zero.
    """
    if table_type is not TableType.SELECT_AND_ULTIMATE or not select_period:
        return 1 + max_age - min_age
    return (
        (1 + max_select_age - min_age) * select_period
        + 1 + max_age - min_age - select_period
    )


@dataclass(frozen=True)
class TableGeometry:
    """Bounds checking and subscript arithmetic for one table."""
    metadata: TableMetadata

    @property
    def value_count(self) -> int:
        m = self.metadata
        return count_values(m.table_type, m.min_age, m.max_age,
                            m.select_period, m.max_select_age)

    def max_length(self, issue_age: int) -> int:
        """Longest vector obtainable for issue_age."""
        return 1 + self.metadata.max_age - issue_age

    def check_lookup(self, issue_age: int, length: int) -> None:
        """Validate the arguments common to every query."""
        m = self.metadata
        if not (m.min_age <= issue_age <= m.max_age):
            raise PreconditionError(
                f"issue age {issue_age} outside [{m.min_age}, {m.max_age}]",
                table_number=m.table_number, field="issue_age"
            )
        if not (0 <= length <= self.max_length(issue_age)):
            raise PreconditionError(
                f"length {length} outside [0, {self.max_length(issue_age)}] "
                f"for issue age {issue_age}",
                table_number=m.table_number, field="length"
            )

    def check_reentry(self, issue_age: int, length: int,
                      inforce_duration: int, reset_duration: int) -> None:
        """Validate the arguments of an elaborated query."""
        self.check_lookup(issue_age, length)
        table_number = self.metadata.table_number
        if inforce_duration < 0:
            raise PreconditionError(
                f"inforce duration {inforce_duration} is negative",
                table_number=table_number, field="inforce_duration"
            )
        if not inforce_duration < self.max_length(issue_age):
            raise PreconditionError(
                f"inforce duration {inforce_duration} must be less than "
                f"{self.max_length(issue_age)} for issue age {issue_age}",
                table_number=table_number, field="inforce_duration"
            )
        if not reset_duration <= inforce_duration:
            raise PreconditionError(
                f"reset duration {reset_duration} exceeds "
                f"inforce duration {inforce_duration}",
                table_number=table_number, field="reset_duration"
            )

    def indices(self, issue_age: int, length: int) -> np.ndarray:
        """
        Positions in the stored values of the rates for issue_age,
        durations 0..length-1.

        Callers must have validated the arguments with check_lookup().

        For select tables an issue age above max_select_age is treated as
        [max_select_age] + (issue_age - max_select_age): the row walk
        starts that many cells into the last select row.
        """
        m = self.metadata
        if m.table_type is TableType.AGE_BANDED:
            start = issue_age - m.min_age
            return np.arange(start, start + length)
        if m.table_type is TableType.DURATION_BANDED:
            return np.arange(length)

        select_period = m.select_period
        max_select_age = m.max_select_age
        stride = 1 + select_period
        k = (
            max(0, issue_age - max_select_age)
            + (min(max_select_age, issue_age) - m.min_age) * stride
        )
        positions = np.empty(length, dtype=np.intp)
        for j in range(length):
            positions[j] = k
            k += 1
            if j + issue_age < max_select_age + select_period and select_period <= j:
                k += select_period
        return positions

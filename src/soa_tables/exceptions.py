"""
soa_tables/exceptions.py - Rate Table Error Taxonomy

Every failure raised while locating, decoding or querying a table derives
from RateTableError and carries the source path, the table number and,
where one applies, the offending field name.

Author: Actuarial Pipeline Project
License: MIT
"""

from pathlib import Path
from typing import Optional, Union


class RateTableError(Exception):
    """Base class for all rate table failures."""

    def __init__(self, message: str, *,
                 path: Optional[Union[str, Path]] = None,
                 table_number: Optional[int] = None,
                 field: Optional[str] = None):
        self.message = message
        self.path = str(path) if path is not None else None
        self.table_number = table_number
        self.field = field
        super().__init__(self._render())

    def _render(self) -> str:
        context = []
        if self.table_number is not None:
            context.append(f"table {self.table_number}")
        if self.path is not None:
            context.append(f"file '{self.path}'")
        if self.field is not None:
            context.append(f"field '{self.field}'")
        if not context:
            return self.message
        return f"{', '.join(context)}: {self.message}"


class PreconditionError(RateTableError, ValueError):
    """Caller-supplied argument outside the table's valid range."""


class ConfigurationError(PreconditionError):
    """Invalid table request, e.g. a non-positive table number."""


class NotFoundError(RateTableError, LookupError):
    """Table absent from the index, or index/data file missing."""


class CorruptFormatError(RateTableError):
    """Binary data violates the SOA table format."""


class UnsupportedModeError(RateTableError, ValueError):
    """Reentry method not valid for the requested query."""

"""
SOA Rate Table Reader

Reads mortality, lapse, interest and other rate tables stored in the
binary database format published by the Society of Actuaries, and projects
them into rate vectors by issue age, duration and select reentry.

Table topologies:
- Age banded (A)
- Duration banded (D)
- Select and ultimate (S), with reentry at inforce duration or rate reset

Version: 1.0.0

Author: Actuarial Pipeline Project
License: MIT
"""

__version__ = "1.0.0"
__author__ = "Actuarial Pipeline Project"

from .config import (
    TableSettings,
    DEFAULT_SETTINGS,
)

from .exceptions import (
    RateTableError,
    PreconditionError,
    ConfigurationError,
    NotFoundError,
    CorruptFormatError,
    UnsupportedModeError,
)

from .geometry import (
    TableType,
    TableMetadata,
    TableGeometry,
)

from .index import (
    IndexEntry,
    locate_table,
    read_index,
)

from .records import (
    RecordParser,
    parse_table,
)

from .projector import (
    RateProjector,
    ReentryMethod,
)

from .table import (
    TableHandle,
    list_tables,
    actuarial_table_rates,
    actuarial_table_rates_elaborated,
)

__all__ = [
    # Configuration
    "TableSettings",
    "DEFAULT_SETTINGS",

    # Errors
    "RateTableError",
    "PreconditionError",
    "ConfigurationError",
    "NotFoundError",
    "CorruptFormatError",
    "UnsupportedModeError",

    # Metadata and geometry
    "TableType",
    "TableMetadata",
    "TableGeometry",

    # Decoding
    "IndexEntry",
    "locate_table",
    "read_index",
    "RecordParser",
    "parse_table",

    # Queries
    "RateProjector",
    "ReentryMethod",
    "TableHandle",
    "list_tables",
    "actuarial_table_rates",
    "actuarial_table_rates_elaborated",
]

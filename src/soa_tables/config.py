"""
soa_tables/config.py - Reader Configuration

Settings that the surrounding calculation engine may tune when opening
SOA table databases. An SOA database is a pair of files sharing a base
name: 'name.ndx' (fixed-length index) and 'name.dat' (table records).

Author: Actuarial Pipeline Project
License: MIT
"""

from pathlib import Path
from typing import Union
from pydantic import BaseModel, Field
import logging

logger = logging.getLogger(__name__)


class TableSettings(BaseModel):
    """Reader settings for an SOA table database."""
    methuselah: int = Field(
        default=969,
        ge=0,
        description="Maximum plausible age; bounds every age-like field (Genesis 5:27)"
    )
    index_suffix: str = Field(default=".ndx", description="Extension of the index file")
    data_suffix: str = Field(default=".dat", description="Extension of the data file")


DEFAULT_SETTINGS = TableSettings()


def index_path(path: Union[str, Path], settings: TableSettings = DEFAULT_SETTINGS) -> Path:
    """Index file belonging to the database named by `path`."""
    return Path(path).with_suffix(settings.index_suffix)


def data_path(path: Union[str, Path], settings: TableSettings = DEFAULT_SETTINGS) -> Path:
    """Data file belonging to the database named by `path`."""
    return Path(path).with_suffix(settings.data_suffix)

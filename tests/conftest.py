"""
tests/conftest.py - Shared fixtures

Author: Actuarial Pipeline Project
License: MIT
"""

import numpy as np
import pytest

from soa_tables import TableHandle

from table_builder import (
    SELECT_RAW,
    age_table_bytes,
    duration_table_bytes,
    handle_from_bytes,
    select_table_bytes,
    write_database,
)


@pytest.fixture
def age_table() -> TableHandle:
    return handle_from_bytes(1, age_table_bytes())


@pytest.fixture
def duration_table() -> TableHandle:
    return handle_from_bytes(2, duration_table_bytes())


@pytest.fixture
def select_table() -> TableHandle:
    return handle_from_bytes(3, select_table_bytes())


@pytest.fixture
def select_raw() -> np.ndarray:
    return np.array(SELECT_RAW)


@pytest.fixture
def soa_database(tmp_path):
    """Base path of an on-disk database holding tables 1, 2 and 3."""
    return write_database(
        tmp_path / "qx_test",
        {
            1: age_table_bytes(name="Age banded test table"),
            2: duration_table_bytes(),
            3: select_table_bytes(),
        },
        names={1: "Age banded", 2: "Duration banded", 3: "Select and ultimate"},
    )

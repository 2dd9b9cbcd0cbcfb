"""
tests/test_index.py - Index File Locator Tests

Author: Actuarial Pipeline Project
License: MIT
"""

import io

import pytest

from soa_tables import (
    ConfigurationError,
    CorruptFormatError,
    NotFoundError,
    PreconditionError,
    locate_table,
    read_index,
)

from soa_tables.index import INDEX_NAME_LENGTH, INDEX_RECORD_LENGTH, _INDEX_RECORD

from table_builder import index_record


class UntouchableStream:
    """Stream that fails the test if anything reads it."""

    def read(self, size=-1):
        raise AssertionError("stream must not be read")


class TestLocateTable:

    def test_first_record(self):
        stream = io.BytesIO(index_record(42, 0) + index_record(47, 1234))
        assert locate_table(stream, 42) == 0

    def test_unsorted_numbers_scanned_sequentially(self):
        """Table numbers are not sorted, so a smaller number later is still found."""
        stream = io.BytesIO(
            index_record(900, 10) + index_record(5, 20) + index_record(47, 30)
        )
        assert locate_table(stream, 47) == 30

    def test_first_match_wins(self):
        stream = io.BytesIO(index_record(7, 100) + index_record(7, 200))
        assert locate_table(stream, 7) == 100

    def test_not_found(self):
        stream = io.BytesIO(index_record(1, 0) + index_record(2, 58))
        with pytest.raises(NotFoundError) as excinfo:
            locate_table(stream, 3, source="qx_cso.ndx")
        assert excinfo.value.table_number == 3
        assert "qx_cso.ndx" in str(excinfo.value)

    def test_empty_index_is_not_found(self):
        with pytest.raises(NotFoundError):
            locate_table(io.BytesIO(b""), 1)

    def test_truncated_record_is_corrupt(self):
        stream = io.BytesIO(index_record(1, 0) + index_record(2, 58)[:30])
        with pytest.raises(CorruptFormatError, match="got 30 bytes"):
            locate_table(stream, 2)

    def test_truncation_after_match_is_not_read(self):
        stream = io.BytesIO(index_record(1, 0) + b"\x01\x02\x03")
        assert locate_table(stream, 1) == 0

    @pytest.mark.parametrize("table_number", [0, -1, -42])
    def test_nonpositive_number_rejected_before_reading(self, table_number):
        with pytest.raises(ConfigurationError):
            locate_table(UntouchableStream(), table_number)

    def test_configuration_error_is_a_precondition_error(self):
        with pytest.raises(PreconditionError):
            locate_table(UntouchableStream(), 0)


class TestReadIndex:

    def test_entries_in_file_order(self):
        stream = io.BytesIO(
            index_record(42, 0, "1980 US CSO Male Age nearest")
            + index_record(47, 812, "1980 US CSO Selection Factors, Female")
        )
        entries = list(read_index(stream))
        assert [e.table_number for e in entries] == [42, 47]
        assert [e.offset for e in entries] == [0, 812]
        assert entries[0].name == "1980 US CSO Male Age nearest"

    def test_truncated_trailing_record(self):
        stream = io.BytesIO(index_record(42, 0) + b"\x00" * 10)
        with pytest.raises(CorruptFormatError):
            list(read_index(stream))

    def test_record_layout_is_58_bytes(self):
        assert _INDEX_RECORD.size == INDEX_RECORD_LENGTH == 58
        assert len(index_record(42, 0, "x" * INDEX_NAME_LENGTH)) == INDEX_RECORD_LENGTH

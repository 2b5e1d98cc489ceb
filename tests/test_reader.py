# tests/test_reader.py
from __future__ import annotations

import logging

import pytest

from s2range_store import cellid
from s2range_store.blockfile import BlockFileWriter
from s2range_store.const import BLOCK_TYPE_HEADER, BLOCK_TYPE_PADDING, BLOCK_TYPE_SUFFIX_TABLE
from s2range_store.errors import CorruptDataError, FormatMismatchError
from s2range_store.header import encode_header
from s2range_store.ranges import SuffixTableRange
from s2range_store.reader import S2RangeFileReader
from s2range_store.shared_data import SuffixTableSharedData
from s2range_store.packed_table import PackedTableWriter

from conftest import PREFIX_A, PREFIX_B, make_test_format, write_ranges


@pytest.fixture
def example_file(tmp_path, level12_format):
    fmt = level12_format
    ranges = [
        SuffixTableRange(fmt.create_cell_id(PREFIX_A, 1000), fmt.create_cell_id(PREFIX_A, 2000), 1),
        SuffixTableRange(fmt.create_cell_id(PREFIX_A, 2000), fmt.create_cell_id(PREFIX_A, 3000), 2),
        SuffixTableRange(fmt.create_cell_id(PREFIX_B, 1000), fmt.create_cell_id(PREFIX_B, 2000), 3),
    ]
    return write_ranges(tmp_path / "example.s2r", fmt, ranges)


def test_example_scenario(example_file, level12_format, caplog):
    caplog.set_level(logging.INFO)
    fmt = level12_format
    with S2RangeFileReader.open(example_file, expected_level=12, expected_allowed_list=True,
                                expected_entry_value_size=4, expected_version=1) as reader:
        assert reader.file_format == fmt

        def value_at(prefix, suffix):
            entry = reader.find_entry_by_cell_id(fmt.create_cell_id(prefix, suffix))
            return None if entry is None else entry.entry_value

        assert value_at(PREFIX_A, 1500) == 1
        assert value_at(PREFIX_A, 2500) == 2
        assert value_at(PREFIX_B, 1500) == 3
        assert value_at(PREFIX_A, 500) is None
        assert value_at(PREFIX_B, 500) is None
        assert value_at(PREFIX_A, 2000) == 2
        assert value_at(PREFIX_A, 3000) is None
        assert value_at(PREFIX_B, 2000) is None

        entry = reader.find_entry_by_cell_id(fmt.create_cell_id(PREFIX_A, 1999))
        assert entry == SuffixTableRange(fmt.create_cell_id(PREFIX_A, 1000),
                                         fmt.create_cell_id(PREFIX_A, 2000), 1)
    assert any("Opened" in r.getMessage() for r in caplog.records)


@pytest.mark.parametrize("expected", [
    {"expected_level": 14},
    {"expected_allowed_list": False},
    {"expected_entry_value_size": 0},
    {"expected_version": 2},
])
def test_header_mismatch(example_file, expected):
    with pytest.raises(FormatMismatchError):
        S2RangeFileReader.open(example_file, **expected)


def test_query_preconditions(example_file, level12_format):
    with S2RangeFileReader.open(example_file) as reader:
        with pytest.raises(ValueError, match="level"):
            reader.find_entry_by_cell_id(cellid.face_begin(4, 10))
        with pytest.raises(ValueError):
            reader.find_entry_by_cell_id((6 << 61) | cellid.lsb_for_level(12))
        with pytest.raises(ValueError):
            reader.get_suffix_table_block(level12_format.max_prefix_value + 1)
        block = reader.get_suffix_table_block(PREFIX_A)
        with pytest.raises(ValueError, match="prefix"):
            block.find_entry_by_cell_id(level12_format.create_cell_id(PREFIX_B, 1))


def test_closed_reader(example_file, level12_format):
    reader = S2RangeFileReader.open(example_file)
    reader.close()
    assert reader.closed
    with pytest.raises(ValueError):
        reader.find_entry_by_cell_id(level12_format.create_cell_id(PREFIX_A, 1500))


def test_block_access(example_file, level12_format):
    with S2RangeFileReader.open(example_file) as reader:
        block = reader.get_suffix_table_block(PREFIX_A)
        assert reader.get_suffix_table_block(PREFIX_A) is block
        assert block.prefix == PREFIX_A
        assert block.entry_count == 2
        assert block.entry_value_count == 2
        assert [block.get_entry_value(i) for i in range(2)] == [1, 2]
        second = block.get_entry_by_index(1)
        assert second.index == 1
        assert second.suffix_table_range.entry_value == 2
        assert second.suffix_table_range is second.suffix_table_range

        empty = reader.get_suffix_table_block(0)
        assert empty.is_empty and empty.entry_count == 0
        assert list(empty) == []
        with pytest.raises(IndexError):
            empty.get_entry_by_index(0)
        assert empty.find_entry_by_cell_id(level12_format.create_cell_id(0, 5)) is None


@pytest.mark.parametrize("compressed", [False, True])
def test_round_trip(tmp_path, compressed):
    fmt = make_test_format(entry_value_size=2)
    ranges = []
    value = 1
    for prefix in (0, 1, 2, 700, 5000):
        for start in (0, 40, 100, 16000):
            end = start + 25 if start < 16000 else 16384
            end_cell = fmt.create_cell_id(prefix, end) if end < 16384 \
                else fmt.next_prefix_first_cell_id(prefix)
            ranges.append(SuffixTableRange(fmt.create_cell_id(prefix, start), end_cell, value))
            value += 1
    path = write_ranges(tmp_path / "rt.s2r", fmt, ranges, compressed=compressed)

    with S2RangeFileReader.open(path) as reader:
        for r in ranges:
            cell = r.start_cell_id
            while cell != r.end_cell_id:
                assert reader.find_entry_by_cell_id(cell) == r
                cell = cellid.next_cell(cell)
            before = cellid.prev_cell(r.start_cell_id)
            if cellid.is_valid(before) and not any(o.contains(before) for o in ranges):
                assert reader.find_entry_by_cell_id(before) is None
            if cellid.is_valid(r.end_cell_id) and not any(o.contains(r.end_cell_id) for o in ranges):
                assert reader.find_entry_by_cell_id(r.end_cell_id) is None
        assert list(reader.iter_ranges()) == ranges


def test_partition_has_no_gaps_or_duplicates(tmp_path, level12_format):
    fmt = level12_format
    ranges = [
        SuffixTableRange(fmt.create_cell_id(3, 60000), fmt.create_cell_id(6, 10), 7),
        SuffixTableRange(fmt.create_cell_id(6, 10), fmt.create_cell_id(6, 20), 8),
        SuffixTableRange(fmt.create_cell_id(PREFIX_A, 0), fmt.create_cell_id(PREFIX_A + 2, 1), 9),
    ]
    path = write_ranges(tmp_path / "p.s2r", fmt, ranges)
    with S2RangeFileReader.open(path) as reader:
        merged: list[SuffixTableRange] = []
        for piece in reader.iter_ranges():
            last = merged[-1] if merged else None
            if last and last.end_cell_id == piece.start_cell_id and last.entry_value == piece.entry_value:
                merged[-1] = SuffixTableRange(last.start_cell_id, piece.end_cell_id, last.entry_value)
            else:
                merged.append(piece)
    assert merged == ranges


def test_range_ending_after_face_five_wraps(tmp_path, level12_format):
    fmt = level12_format
    wrapped = SuffixTableRange(fmt.create_cell_id(PREFIX_B, 100), cellid.face_begin(0, 12), 5)
    assert wrapped.wraps
    path = write_ranges(tmp_path / "w.s2r", fmt, [wrapped])
    with S2RangeFileReader.open(path) as reader:
        last_cell = fmt.create_cell_id(PREFIX_B, fmt.max_suffix_value)
        assert reader.find_entry_by_cell_id(last_cell) == wrapped
        assert reader.find_entry_by_cell_id(fmt.create_cell_id(0, 0)) is None
        assert reader.find_entry_by_cell_id(fmt.create_cell_id(PREFIX_B, 99)) is None


def _write_raw_file(path, fmt, tables: dict[int, bytes]):
    writer = BlockFileWriter(path)
    writer.add_block(BLOCK_TYPE_HEADER, b"", encode_header(fmt))
    for _ in range(fmt.suffix_table_block_id_offset - 1):
        writer.add_block(BLOCK_TYPE_PADDING, b"", b"")
    for prefix in range(fmt.max_prefix_value + 1):
        writer.add_block(BLOCK_TYPE_SUFFIX_TABLE, b"", tables.get(prefix, b""))
    writer.close()


def test_range_overflowing_next_prefix_is_corrupt(tmp_path, level12_format):
    fmt = level12_format
    shared = SuffixTableSharedData(7, (1,)).to_bytes(fmt)
    table = PackedTableWriter(fmt.table_entry_byte_count, fmt.suffix_bit_count, shared)
    table.add_entry(65000, 1000)
    path = tmp_path / "corrupt.s2r"
    _write_raw_file(path, fmt, {7: table.close()})
    with S2RangeFileReader.open(path) as reader:
        with pytest.raises(CorruptDataError, match="exceeds"):
            reader.find_entry_by_cell_id(fmt.create_cell_id(7, 65100))


def test_block_with_wrong_prefix_is_corrupt(tmp_path, level12_format):
    fmt = level12_format
    table = PackedTableWriter(fmt.table_entry_byte_count, fmt.suffix_bit_count,
                              SuffixTableSharedData(8, (1,)).to_bytes(fmt))
    table.add_entry(0, 1)
    path = tmp_path / "corrupt.s2r"
    _write_raw_file(path, fmt, {7: table.close()})
    with S2RangeFileReader.open(path) as reader:
        with pytest.raises(CorruptDataError):
            reader.get_suffix_table_block(7)


def test_missing_blocks_are_corrupt(tmp_path, level12_format):
    path = tmp_path / "short.s2r"
    writer = BlockFileWriter(path)
    writer.add_block(BLOCK_TYPE_HEADER, b"", encode_header(level12_format))
    writer.close()
    with pytest.raises(CorruptDataError):
        S2RangeFileReader.open(path)

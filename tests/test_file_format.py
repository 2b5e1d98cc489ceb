# tests/test_file_format.py
from __future__ import annotations

import dataclasses

import pytest

from s2range_store import cellid
from s2range_store.file_format import S2RangeFileFormat, get_file_format_for_level

from conftest import PREFIX_A, PREFIX_B


def test_derived_values(test_format):
    assert test_format.prefix_bit_count == 13
    assert test_format.suffix_bit_count == 14
    assert test_format.max_prefix_value == 8191
    assert test_format.max_suffix_value == 16383
    assert test_format.table_entry_range_length_bit_count == 18
    assert test_format.table_entry_max_range_length == (1 << 18) - 1
    assert test_format.table_entry_byte_count == 4


def test_level12_preset():
    fmt = get_file_format_for_level(12, False, entry_value_size=4, version=3)
    assert (fmt.prefix_bit_count, fmt.suffix_bit_count) == (11, 16)
    assert fmt.table_entry_max_range_length == 65535
    assert fmt.suffix_table_block_id_offset == 5
    assert not fmt.is_allowed_list
    assert fmt.max_entry_value == 0xFFFFFFFF


def test_unknown_level_preset():
    with pytest.raises(ValueError, match="No file format"):
        get_file_format_for_level(13, True)


@pytest.mark.parametrize("changes", [
    {"level": 0},
    {"prefix_bit_count": 2, "suffix_bit_count": 25},
    {"suffix_bit_count": 15},
    {"suffix_table_block_id_offset": 0},
    {"table_entry_bit_count": 12},
    {"table_entry_bit_count": 8},
    {"entry_value_size": 5},
    {"version": -1},
])
def test_invalid_formats(test_format, changes):
    with pytest.raises(ValueError):
        dataclasses.replace(test_format, **changes)


def test_format_is_immutable(test_format):
    with pytest.raises(dataclasses.FrozenInstanceError):
        test_format.level = 14


def test_create_and_extract(level12_format):
    fmt = level12_format
    cell = fmt.create_cell_id(PREFIX_A, 1000)
    assert cellid.level(cell) == 12
    assert cellid.face(cell) == 4
    assert fmt.extract_prefix(cell) == PREFIX_A
    assert fmt.extract_suffix(cell) == 1000
    assert fmt.create_cell_id(0, 0) == cellid.face_begin(0, 12)
    assert fmt.extract_face_from_prefix(PREFIX_B) == 5


def test_create_cell_id_rejects_overflow(level12_format):
    with pytest.raises(ValueError):
        level12_format.create_cell_id(1 << 11, 0)
    with pytest.raises(ValueError):
        level12_format.create_cell_id(0, 1 << 16)
    with pytest.raises(ValueError):
        level12_format.create_cell_id(-1, 0)


def test_calculate_range_length(level12_format):
    fmt = level12_format
    start = fmt.create_cell_id(PREFIX_A, 1000)
    assert fmt.calculate_range_length(start, fmt.create_cell_id(PREFIX_A, 2000)) == 1000
    assert fmt.calculate_range_length(start, fmt.create_cell_id(PREFIX_A + 1, 0)) == 65536 - 1000
    with pytest.raises(ValueError):
        fmt.calculate_range_length(start, fmt.create_cell_id(PREFIX_A + 1, 1))


def test_next_prefix_wraps_after_face_five(level12_format):
    fmt = level12_format
    assert fmt.next_prefix(PREFIX_A) == PREFIX_A + 1
    assert fmt.next_prefix(PREFIX_B) == 0
    assert fmt.next_prefix_first_cell_id(PREFIX_B) == cellid.face_begin(0, 12)


def test_table_entry_value(level12_format):
    assert level12_format.create_table_entry_value(65535) == 65535
    assert level12_format.extract_range_length_from_table_entry_value(0x1_0005) == 5
    with pytest.raises(ValueError):
        level12_format.create_table_entry_value(65536)
    with pytest.raises(ValueError):
        level12_format.create_table_entry_value(0)

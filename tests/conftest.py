# tests/conftest.py
from __future__ import annotations

import pytest

from s2range_store.file_format import S2RangeFileFormat, get_file_format_for_level
from s2range_store.writer import S2RangeFileWriter

TEST_LEVEL = 12
# the two test prefixes of the level 12 preset (11 prefix bits): faces 4 and 5
PREFIX_A = 0b100_11111111
PREFIX_B = 0b101_11111111


def make_test_format(is_allowed_list: bool = True, entry_value_size: int = 0,
                     version: int = 0) -> S2RangeFileFormat:
    """Level 12 with a level 5 prefix: 13 prefix bits, 14 suffix bits."""
    prefix_bits = 3 + 5 * 2
    suffix_bits = (3 + TEST_LEVEL * 2) - prefix_bits
    return S2RangeFileFormat(TEST_LEVEL, prefix_bits, suffix_bits, 5, 32,
                             is_allowed_list, entry_value_size, version)


def write_ranges(path, file_format, ranges, compressed=False):
    with S2RangeFileWriter.open(path, file_format, compressed=compressed) as writer:
        writer.create_sorted_suffix_blocks(ranges)
    return path


@pytest.fixture
def test_format() -> S2RangeFileFormat:
    return make_test_format()


@pytest.fixture
def level12_format() -> S2RangeFileFormat:
    return get_file_format_for_level(12, True, entry_value_size=4, version=1)

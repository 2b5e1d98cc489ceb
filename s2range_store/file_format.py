# ==================================================
# s2range_store/file_format.py
# ==================================================
"""
The immutable descriptor of a range file.

The significant bits of a cell id at the data level (``3 + 2 * level``) are
split into a prefix, which selects a suffix table block, and a suffix, which is
stored in that block's rows. Each row is ``table_entry_bit_count`` wide: the
suffix of the range start in the high bits and the range length in the rest.
"""
from dataclasses import dataclass

from . import cellid
from .const import (BITS_PER_LEVEL, FACE_BIT_COUNT, LEVEL_PRESETS, MAX_ENTRY_VALUE_SIZE,
                    MAX_FACE_ID, MAX_LEVEL)


@dataclass(frozen=True)
class S2RangeFileFormat:
    level: int
    prefix_bit_count: int
    suffix_bit_count: int
    suffix_table_block_id_offset: int
    table_entry_bit_count: int
    is_allowed_list: bool
    entry_value_size: int = 0
    version: int = 0

    def __post_init__(self):
        if not 1 <= self.level <= MAX_LEVEL:
            raise ValueError(f"level={self.level} must be in [1, {MAX_LEVEL}]")
        if self.prefix_bit_count < FACE_BIT_COUNT:
            raise ValueError(f"prefix_bit_count={self.prefix_bit_count} must be >= {FACE_BIT_COUNT}")
        if self.suffix_bit_count < 1:
            raise ValueError(f"suffix_bit_count={self.suffix_bit_count} must be >= 1")
        level_bits = FACE_BIT_COUNT + BITS_PER_LEVEL * self.level
        if self.prefix_bit_count + self.suffix_bit_count != level_bits:
            raise ValueError(
                f"prefix_bit_count={self.prefix_bit_count} + suffix_bit_count={self.suffix_bit_count}"
                f" must equal {level_bits} for level={self.level}")
        if self.suffix_table_block_id_offset < 1:
            raise ValueError("suffix_table_block_id_offset must leave room for the header block")
        if self.table_entry_bit_count % 8 or not 8 <= self.table_entry_bit_count <= 64:
            raise ValueError(
                f"table_entry_bit_count={self.table_entry_bit_count} must be a whole number of bytes <= 64 bits")
        if self.table_entry_bit_count <= self.suffix_bit_count:
            raise ValueError(
                f"table_entry_bit_count={self.table_entry_bit_count} leaves no bits for the range length")
        if not 0 <= self.entry_value_size <= MAX_ENTRY_VALUE_SIZE:
            raise ValueError(f"entry_value_size={self.entry_value_size} must be in [0, {MAX_ENTRY_VALUE_SIZE}]")
        if self.version < 0:
            raise ValueError(f"version={self.version} must be >= 0")

    # ------------------------------------------------------------------
    @property
    def max_prefix_value(self) -> int:
        return (1 << self.prefix_bit_count) - 1

    @property
    def max_suffix_value(self) -> int:
        return (1 << self.suffix_bit_count) - 1

    @property
    def table_entry_byte_count(self) -> int:
        return self.table_entry_bit_count // 8

    @property
    def table_entry_range_length_bit_count(self) -> int:
        return self.table_entry_bit_count - self.suffix_bit_count

    @property
    def table_entry_max_range_length(self) -> int:
        return (1 << self.table_entry_range_length_bit_count) - 1

    @property
    def max_entry_value(self) -> int:
        return (1 << (8 * self.entry_value_size)) - 1

    @property
    def _suffix_shift(self) -> int:
        return 64 - self.prefix_bit_count - self.suffix_bit_count

    # ------------------------------------------------------------------
    def extract_prefix(self, cell_id: int) -> int:
        return cell_id >> (64 - self.prefix_bit_count)

    def extract_suffix(self, cell_id: int) -> int:
        return (cell_id >> self._suffix_shift) & self.max_suffix_value

    def extract_face_from_prefix(self, prefix: int) -> int:
        return prefix >> (self.prefix_bit_count - FACE_BIT_COUNT)

    def create_cell_id(self, prefix: int, suffix: int) -> int:
        if not 0 <= prefix <= self.max_prefix_value:
            raise ValueError(f"prefix={prefix} ({prefix:b}) does not fit in {self.prefix_bit_count} bits")
        if not 0 <= suffix <= self.max_suffix_value:
            raise ValueError(f"suffix={suffix} ({suffix:b}) does not fit in {self.suffix_bit_count} bits")
        shift = self._suffix_shift
        return (prefix << (64 - self.prefix_bit_count)) | (suffix << shift) | (1 << (shift - 1))

    def next_prefix(self, prefix: int) -> int:
        """``prefix + 1``, wrapping to prefix 0 past the last face."""
        nxt = prefix + 1
        if self.extract_face_from_prefix(nxt) > MAX_FACE_ID:
            return 0
        return nxt

    def next_prefix_first_cell_id(self, prefix: int) -> int:
        return self.create_cell_id(self.next_prefix(prefix), 0)

    def calculate_range_length(self, start_cell_id: int, end_cell_id: int) -> int:
        """Number of cells between ``start_cell_id`` and the exclusive
        ``end_cell_id``, which must share the prefix of the start or be the
        first cell of the next prefix."""
        start_prefix = self.extract_prefix(start_cell_id)
        start_suffix = self.extract_suffix(start_cell_id)
        if self.extract_prefix(end_cell_id) == start_prefix:
            return self.extract_suffix(end_cell_id) - start_suffix
        if end_cell_id == self.next_prefix_first_cell_id(start_prefix):
            return self.max_suffix_value + 1 - start_suffix
        raise ValueError(
            f"start={cellid.to_token(start_cell_id)} and end={cellid.to_token(end_cell_id)}"
            f" are not in the same prefix")

    # -------- table entry values -----------------------------------------
    def create_table_entry_value(self, range_length: int) -> int:
        if not 0 < range_length <= self.table_entry_max_range_length:
            raise ValueError(
                f"range_length={range_length} must be in [1, {self.table_entry_max_range_length}]")
        return range_length

    def extract_range_length_from_table_entry_value(self, value: int) -> int:
        return value & self.table_entry_max_range_length

    # ------------------------------------------------------------------
    def cell_id_to_string(self, cell_id: int) -> str:
        prefix = self.extract_prefix(cell_id)
        suffix = self.extract_suffix(cell_id)
        return (f"{cellid.to_token(cell_id)}"
                f"[{prefix:0{self.prefix_bit_count}b}|{suffix:0{self.suffix_bit_count}b}]")


def get_file_format_for_level(level: int, is_allowed_list: bool,
                              entry_value_size: int = 0, version: int = 0) -> S2RangeFileFormat:
    """Canonical format for ``level`` (see ``LEVEL_PRESETS``)."""
    try:
        prefix_level, entry_bits, block_id_offset = LEVEL_PRESETS[level]
    except KeyError:
        raise ValueError(f"No file format defined for level={level}") from None
    prefix_bits = FACE_BIT_COUNT + BITS_PER_LEVEL * prefix_level
    suffix_bits = BITS_PER_LEVEL * (level - prefix_level)
    return S2RangeFileFormat(level, prefix_bits, suffix_bits, block_id_offset, entry_bits,
                             is_allowed_list, entry_value_size, version)

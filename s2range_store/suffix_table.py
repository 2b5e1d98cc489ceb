# ==================================================
# s2range_store/suffix_table.py
# ==================================================
"""
Suffix table blocks: one per prefix value, holding the ranges whose cells
carry that prefix.

A block is either empty (zero-length payload) or populated, in which case the
payload is a packed table whose rows are ``key = suffix of the range start``
and ``value = range length``, and whose shared data holds the table prefix and
each row's entry value by row position. Because range ends are exclusive, the
last range of a block may end on the first cell of the next prefix (or, after
face 5, the first cell of face 0).
"""
from dataclasses import dataclass, field
from typing import Iterator, Optional, Union

from . import cellid
from .blockfile import BlockData
from .errors import CorruptDataError
from .file_format import S2RangeFileFormat
from .packed_table import PackedTable, PackedTableWriter, TableEntry
from .ranges import SuffixTableRange
from .shared_data import SuffixTableSharedData


@dataclass(frozen=True)
class EmptyTable:
    prefix: int


@dataclass(frozen=True)
class PopulatedTable:
    packed_table: PackedTable
    shared_data: SuffixTableSharedData

    @property
    def prefix(self) -> int:
        return self.shared_data.table_prefix


Table = Union[EmptyTable, PopulatedTable]


@dataclass
class Entry:
    """A row of a populated block. The range is built on first access."""
    block: "SuffixTableBlock"
    table_entry: TableEntry
    _range: Optional[SuffixTableRange] = field(default=None, repr=False, compare=False)

    @property
    def index(self) -> int:
        return self.table_entry.index

    @property
    def suffix_table_range(self) -> SuffixTableRange:
        if self._range is None:
            self._range = self.block._entry_to_range(self.table_entry)
        return self._range


class SuffixTableBlock:
    def __init__(self, file_format: S2RangeFileFormat, table: Table):
        self.file_format = file_format
        self.table = table

    @classmethod
    def create_empty(cls, file_format: S2RangeFileFormat, prefix: int) -> "SuffixTableBlock":
        return cls(file_format, EmptyTable(prefix))

    @classmethod
    def create_populated(cls, file_format: S2RangeFileFormat, block_data: BlockData) -> "SuffixTableBlock":
        if block_data.size == 0:
            raise ValueError(f"block_id={block_data.block_id} is zero length")
        packed_table = PackedTable(block_data.data)
        if packed_table.key_bits != file_format.suffix_bit_count \
                or packed_table.entry_size != file_format.table_entry_byte_count:
            raise CorruptDataError(
                f"block_id={block_data.block_id} row layout does not match the file format")
        shared = SuffixTableSharedData.from_bytes(packed_table.shared_data, file_format)
        if shared.entry_value_count and shared.entry_value_count != packed_table.entry_count:
            raise CorruptDataError(
                f"block_id={block_data.block_id} has {packed_table.entry_count} rows"
                f" but {shared.entry_value_count} entry values")
        return cls(file_format, PopulatedTable(packed_table, shared))

    @classmethod
    def from_block_data(cls, file_format: S2RangeFileFormat, prefix: int,
                        block_data: BlockData) -> "SuffixTableBlock":
        if block_data.size == 0:
            return cls.create_empty(file_format, prefix)
        block = cls.create_populated(file_format, block_data)
        if block.prefix != prefix:
            raise CorruptDataError(
                f"block_id={block_data.block_id} holds prefix={block.prefix}, expected {prefix}")
        return block

    # ------------------------------------------------------------------
    @property
    def prefix(self) -> int:
        return self.table.prefix

    @property
    def is_empty(self) -> bool:
        return isinstance(self.table, EmptyTable)

    @property
    def entry_count(self) -> int:
        if isinstance(self.table, EmptyTable):
            return 0
        return self.table.packed_table.entry_count

    @property
    def entry_value_count(self) -> int:
        if isinstance(self.table, EmptyTable):
            return 0
        return self.table.shared_data.entry_value_count

    def get_entry_value(self, index: int) -> int:
        if isinstance(self.table, EmptyTable):
            raise IndexError(f"index={index}: empty table")
        return self.table.shared_data.get_entry_value(index)

    def get_entry_by_index(self, i: int) -> Entry:
        if isinstance(self.table, EmptyTable):
            raise IndexError(f"i={i}: empty table")
        return Entry(self, self.table.packed_table.get_entry_by_index(i))

    def __iter__(self) -> Iterator[Entry]:
        if isinstance(self.table, PopulatedTable):
            for table_entry in self.table.packed_table:
                yield Entry(self, table_entry)

    def find_entry_by_cell_id(self, cell_id: int) -> Optional[Entry]:
        """Entry whose range holds ``cell_id``, or ``None``.

        ``cell_id`` must be at the file's level and carry this block's prefix.
        """
        fmt = self.file_format
        cellid.check_valid(cell_id)
        if cellid.level(cell_id) != fmt.level:
            raise ValueError(f"{cellid.to_token(cell_id)} level is not {fmt.level}")
        if fmt.extract_prefix(cell_id) != self.prefix:
            raise ValueError(
                f"{fmt.cell_id_to_string(cell_id)} does not have prefix"
                f" {self.prefix:0{fmt.prefix_bit_count}b}")
        if isinstance(self.table, EmptyTable):
            return None
        suffix = fmt.extract_suffix(cell_id)

        def match(key: int, value: int) -> int:
            if suffix < key:
                return -1
            if suffix >= key + fmt.extract_range_length_from_table_entry_value(value):
                return 1
            return 0

        table_entry = self.table.packed_table.find_entry(match)
        if table_entry is None:
            return None
        return Entry(self, table_entry)

    # ------------------------------------------------------------------
    def _entry_to_range(self, table_entry: TableEntry) -> SuffixTableRange:
        fmt = self.file_format
        prefix = self.prefix
        start_suffix = table_entry.key
        if start_suffix > fmt.max_suffix_value:
            raise CorruptDataError(f"start suffix={start_suffix} exceeds {fmt.max_suffix_value}")
        range_length = fmt.extract_range_length_from_table_entry_value(table_entry.value)
        if range_length == 0:
            raise CorruptDataError(f"Row {table_entry.index} of prefix={prefix} has zero length")
        start_cell_id = fmt.create_cell_id(prefix, start_suffix)

        end_prefix, end_suffix = prefix, start_suffix + range_length
        if end_suffix > fmt.max_suffix_value:
            # exclusive ends may land on the first cell of the next prefix
            if end_suffix != fmt.max_suffix_value + 1:
                raise CorruptDataError(
                    f"Range exceeds allowable cell ids: start={fmt.cell_id_to_string(start_cell_id)},"
                    f" range_length={range_length}")
            end_prefix, end_suffix = fmt.next_prefix(prefix), 0
        end_cell_id = fmt.create_cell_id(end_prefix, end_suffix)
        entry_value = self.table.shared_data.get_entry_value(table_entry.index)
        return SuffixTableRange(start_cell_id, end_cell_id, entry_value)

    def __repr__(self):
        kind = "empty" if self.is_empty else f"{self.entry_count} entries"
        return f"SuffixTableBlock(prefix={self.prefix}, {kind})"


# -------- write side ------------------------------------------------------

def build_empty_table() -> bytes:
    return b""


def build_populated_table(file_format: S2RangeFileFormat, prefix: int,
                          ranges: list[SuffixTableRange]) -> bytes:
    """Pack ranges that all start in ``prefix`` and each fit in one row."""
    shared = SuffixTableSharedData(prefix, tuple(r.entry_value for r in ranges))
    writer = PackedTableWriter(file_format.table_entry_byte_count, file_format.suffix_bit_count,
                               shared.to_bytes(file_format))
    for r in ranges:
        if file_format.extract_prefix(r.start_cell_id) != prefix:
            raise ValueError(f"{r} does not start in prefix={prefix}")
        range_length = file_format.calculate_range_length(r.start_cell_id, r.end_cell_id)
        writer.add_entry(file_format.extract_suffix(r.start_cell_id),
                         file_format.create_table_entry_value(range_length))
    return writer.close()

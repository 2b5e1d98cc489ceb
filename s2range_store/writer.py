# ==================================================
# s2range_store/writer.py
# ==================================================
"""
Writes range files.

``create_sorted_suffix_blocks`` walks every prefix value in order and groups
the incoming ranges by the prefix of their start cell. Ranges that run into
later prefixes are cut at prefix boundaries and the remainder is pushed back
onto the input; ranges too long for one table row are cut into row-sized
pieces. Blocks are buffered until ``close()``, which writes the header block,
the padding blocks and then one suffix table block per prefix, so that the
block id of a prefix is ``suffix_table_block_id_offset + prefix``.
"""
import logging
import os
from collections import deque
from typing import Generic, Iterable, TypeVar

from . import cellid
from .blockfile import BlockFileWriter
from .const import BLOCK_TYPE_HEADER, BLOCK_TYPE_PADDING, BLOCK_TYPE_SUFFIX_TABLE
from .errors import InputContractError
from .file_format import S2RangeFileFormat
from .header import encode_header
from .ranges import SuffixTableRange
from .suffix_table import build_empty_table, build_populated_table

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PushBackIterator(Generic[T]):
    """Iterator that can take back items it has already produced."""
    def __init__(self, source: Iterable[T]):
        self._source = iter(source)
        self._pushed: deque[T] = deque()

    def __iter__(self):
        return self

    def __next__(self) -> T:
        if self._pushed:
            return self._pushed.pop()
        return next(self._source)

    def push_back(self, item: T):
        self._pushed.append(item)

    def has_next(self) -> bool:
        if self._pushed:
            return True
        try:
            self._pushed.append(next(self._source))
        except StopIteration:
            return False
        return True


class S2RangeFileWriter:
    def __init__(self, file_format: S2RangeFileFormat, block_file_writer: BlockFileWriter):
        self.file_format = file_format
        self._block_file_writer = block_file_writer
        self._header = encode_header(file_format)
        self._suffix_table_blocks: list[bytes] = []

    @classmethod
    def open(cls, path: str | os.PathLike, file_format: S2RangeFileFormat,
             compressed: bool = False) -> "S2RangeFileWriter":
        return cls(file_format, BlockFileWriter(path, compressed=compressed))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if exc_type is None:
            self.close()
        else:
            self._block_file_writer.abort()

    # ------------------------------------------------------------------
    def create_sorted_suffix_blocks(self, ranges: Iterable[SuffixTableRange]):
        """Group sorted, non-overlapping ranges into one block per prefix."""
        if self._suffix_table_blocks:
            raise ValueError("Suffix blocks have already been created")
        pending = PushBackIterator(ranges)
        populated = 0
        for prefix in range(self.file_format.max_prefix_value + 1):
            same_prefix_ranges = self._collect_same_prefix_ranges(pending, prefix)
            self._suffix_table_blocks.append(self._write_same_prefix_ranges(prefix, same_prefix_ranges))
            populated += bool(same_prefix_ranges)

        if pending.has_next():
            raise InputContractError(f"Unexpected ranges left at the end: {next(pending)}")
        logger.info("Created %d suffix table blocks, %d populated",
                    len(self._suffix_table_blocks), populated)

    def _collect_same_prefix_ranges(self, pending: PushBackIterator[SuffixTableRange],
                                    current_prefix: int) -> list[SuffixTableRange]:
        fmt = self.file_format
        same_prefix_ranges: list[SuffixTableRange] = []
        for current in pending:
            if cellid.level(current.start_cell_id) != fmt.level:
                raise ValueError(f"{current} does not have level={fmt.level}")
            start_prefix = fmt.extract_prefix(current.start_cell_id)
            if start_prefix != current_prefix:
                if start_prefix < current_prefix:
                    raise InputContractError(
                        f"Prefix out of order: current_prefix={current_prefix},"
                        f" start_cell_prefix={start_prefix}, range={current}")
                # belongs to a later prefix
                pending.push_back(current)
                break

            end_prefix = fmt.extract_prefix(current.end_cell_id)
            if start_prefix == end_prefix:
                same_prefix_ranges.append(current)
                continue

            # the range spans prefixes: keep the head, push back the rest
            entry_value = current.entry_value
            same_prefix_ranges.append(SuffixTableRange(
                current.start_cell_id, fmt.next_prefix_first_cell_id(start_prefix), entry_value))
            others: list[SuffixTableRange] = []
            prefix = fmt.next_prefix(start_prefix)
            while prefix != end_prefix:
                others.append(SuffixTableRange(
                    fmt.create_cell_id(prefix, 0), fmt.next_prefix_first_cell_id(prefix), entry_value))
                prefix = fmt.next_prefix(prefix)
            tail_start = fmt.create_cell_id(end_prefix, 0)
            if tail_start != current.end_cell_id:
                others.append(SuffixTableRange(tail_start, current.end_cell_id, entry_value))
            logger.debug("Split %s across %d prefixes", current, len(others) + 1)
            for other in reversed(others):
                pending.push_back(other)
            break
        return same_prefix_ranges

    def _write_same_prefix_ranges(self, prefix: int,
                                  same_prefix_ranges: list[SuffixTableRange]) -> bytes:
        if not same_prefix_ranges:
            return build_empty_table()
        table_ranges = self._split_to_table_ranges(same_prefix_ranges)
        return build_populated_table(self.file_format, prefix, table_ranges)

    def _split_to_table_ranges(self, same_prefix_ranges: list[SuffixTableRange]) -> list[SuffixTableRange]:
        fmt = self.file_format
        max_range_length = fmt.table_entry_max_range_length
        table_ranges: list[SuffixTableRange] = []
        last = None
        for current in same_prefix_ranges:
            if last is not None:
                if current.start_cell_id < last.start_cell_id:
                    raise InputContractError(f"{current} is out of order after {last}")
                if last.overlaps(current):
                    raise InputContractError(f"{last} overlaps {current}")
            last = current

            start, end = current.start_cell_id, current.end_cell_id
            while fmt.calculate_range_length(start, end) > max_range_length:
                new_end = cellid.offset_cell_id(start, max_range_length)
                table_ranges.append(SuffixTableRange(start, new_end, current.entry_value))
                start = new_end
            table_ranges.append(SuffixTableRange(start, end, current.entry_value))
        return table_ranges

    # ------------------------------------------------------------------
    def close(self):
        writer = self._block_file_writer
        if writer.closed:
            return
        if not self._suffix_table_blocks:
            self.create_sorted_suffix_blocks(())
        try:
            writer.add_block(BLOCK_TYPE_HEADER, b"", self._header)
            for _ in range(self.file_format.suffix_table_block_id_offset - 1):
                writer.add_block(BLOCK_TYPE_PADDING, b"", b"")
            for payload in self._suffix_table_blocks:
                writer.add_block(BLOCK_TYPE_SUFFIX_TABLE, b"", payload)
        finally:
            writer.close()

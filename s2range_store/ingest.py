# ==================================================
# s2range_store/ingest.py
# ==================================================
"""
Builds range files from text lists of cells.

Each input line is ``<cell id>,<entry value>``. Cell ids may be written as
unsigned or as signed (two's complement) 64-bit decimals.
"""
import logging
import os
import time
from pathlib import Path
from typing import Iterable

from . import cellid
from .const import CELL_ID_MASK
from .errors import CorruptDataError, InputContractError
from .file_format import get_file_format_for_level
from .ranges import SuffixTableRange
from .reader import S2RangeFileReader
from .writer import S2RangeFileWriter

logger = logging.getLogger(__name__)

Cell = tuple[int, int]   # (cell id, entry value)


def parse_cell_line(line: str, line_no: int = 0) -> Cell:
    parts = line.strip().split(",")
    if len(parts) != 2:
        raise InputContractError(f"Invalid cell line {line_no}: {line!r}")
    try:
        cell = int(parts[0])
        value = int(parts[1])
    except ValueError as exc:
        raise InputContractError(f"Invalid cell line {line_no}: {line!r}") from exc
    if not -(1 << 63) <= cell <= CELL_ID_MASK or not 0 <= value <= 0xFFFFFFFF:
        raise InputContractError(f"Value out of range on line {line_no}: {line!r}")
    return cell & CELL_ID_MASK, value


def read_cells(path: str | os.PathLike) -> list[Cell]:
    cells = []
    with open(path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, 1):
            if not line.strip():
                continue
            cells.append(parse_cell_line(line, line_no))
    logger.info("Read %d cells from %s", len(cells), path)
    return cells


def normalize_cells(cells: Iterable[Cell], level: int) -> list[Cell]:
    """Bring every cell to ``level``, sorted by cell id. Coarser cells expand
    to their children, finer cells collapse to their parent; the first value
    seen for a cell wins."""
    by_cell: dict[int, int] = {}
    for cell, value in cells:
        cellid.check_valid(cell)
        cell_level = cellid.level(cell)
        if cell_level == level:
            by_cell.setdefault(cell, value)
        elif cell_level < level:
            child = cellid.child_begin(cell, level)
            end = cellid.child_end(cell, level)
            while child != end:
                by_cell.setdefault(child, value)
                child = cellid.next_cell(child)
        else:
            by_cell.setdefault(cellid.parent(cell, level), value)
    return sorted(by_cell.items())


def cells_to_ranges(sorted_cells: Iterable[Cell], level: int) -> list[SuffixTableRange]:
    """Merge sorted cells at ``level`` into maximal same-value ranges."""
    started = time.monotonic()
    ranges = []
    start = end = None
    entry_value = 0
    for cell, value in sorted_cells:
        if cellid.level(cell) != level:
            raise InputContractError(f"Bad level for cell {cellid.to_token(cell)}, must be {level}")
        if start is None:
            start, entry_value = cell, value
        elif end != cell or value != entry_value:
            ranges.append(SuffixTableRange(start, end, entry_value))
            start, entry_value = cell, value
        end = cellid.child_end(cell, level)
    if start is not None:
        ranges.append(SuffixTableRange(start, end, entry_value))
    logger.info("Created %d ranges in %.1f ms", len(ranges), (time.monotonic() - started) * 1000)
    return ranges


# ------------------------------------------------------------------
def create_file(input_path: str | os.PathLike, output_path: str | os.PathLike, level: int,
                is_allowed_list: bool, entry_value_size: int = 0, version: int = 0,
                compressed: bool = False):
    """Write a range file for the cells listed in ``input_path`` and verify it."""
    cells = normalize_cells(read_cells(input_path), level)
    logger.info("Normalized to %d cells at level %d", len(cells), level)
    file_format = get_file_format_for_level(level, is_allowed_list, entry_value_size, version)
    with S2RangeFileWriter.open(output_path, file_format, compressed=compressed) as writer:
        writer.create_sorted_suffix_blocks(cells_to_ranges(cells, level))
    verify_file(output_path, cells, is_allowed_list, entry_value_size)


def verify_file(path: str | os.PathLike, sorted_cells: list[Cell], is_allowed_list: bool,
                entry_value_size: int = 0):
    """Check that every cell reads back with its value and that the cells
    just outside the list are absent."""
    listed = {cell for cell, _ in sorted_cells}
    with S2RangeFileReader.open(path, expected_allowed_list=is_allowed_list,
                                expected_entry_value_size=entry_value_size) as reader:
        for cell, value in sorted_cells:
            entry = reader.find_entry_by_cell_id(cell)
            if entry is None:
                raise CorruptDataError(f"cell {cellid.to_token(cell)} is missing from {path}")
            if entry_value_size and entry.entry_value != value:
                raise CorruptDataError(
                    f"cell {cellid.to_token(cell)} has entry value {entry.entry_value}, expected {value}")
        if sorted_cells:
            neighbours = (cellid.prev_cell(sorted_cells[0][0]), cellid.next_cell(sorted_cells[-1][0]))
            for cell in neighbours:
                if cellid.is_valid(cell) and cell not in listed \
                        and reader.find_entry_by_cell_id(cell) is not None:
                    raise CorruptDataError(f"cell {cellid.to_token(cell)} is unexpectedly present in {path}")
    logger.info("Verified %d cells in %s", len(sorted_cells), path)


def create_test_file(path: str | os.PathLike):
    """Three ranges over two prefixes, for exercising readers."""
    file_format = get_file_format_for_level(12, True, entry_value_size=4, version=1)
    if file_format.prefix_bit_count != 11:
        raise ValueError("Test data requires 11 prefix bits")
    ranges = [
        SuffixTableRange(file_format.create_cell_id(0b100_11111111, 1000),
                         file_format.create_cell_id(0b100_11111111, 2000), 1),
        SuffixTableRange(file_format.create_cell_id(0b100_11111111, 2000),
                         file_format.create_cell_id(0b100_11111111, 3000), 2),
        # different face, so a different suffix table
        SuffixTableRange(file_format.create_cell_id(0b101_11111111, 1000),
                         file_format.create_cell_id(0b101_11111111, 2000), 3),
    ]
    with S2RangeFileWriter.open(Path(path), file_format) as writer:
        writer.create_sorted_suffix_blocks(ranges)
    return file_format

# ==================================================
# s2range_store/reader.py
# ==================================================
import logging
import os
from typing import Iterator, Optional

from . import cellid
from .blockfile import BlockFileReader
from .const import BLOCK_TYPE_SUFFIX_TABLE
from .errors import CorruptDataError, FormatMismatchError
from .file_format import S2RangeFileFormat
from .header import decode_header
from .ranges import SuffixTableRange
from .suffix_table import SuffixTableBlock

logger = logging.getLogger(__name__)


class S2RangeFileReader:
    """Point lookups against a range file.

    Suffix table blocks are read on demand; the most recently decoded block is
    kept so that repeated lookups in the same prefix skip the decode.
    """
    def __init__(self, block_file_reader: BlockFileReader):
        self._block_file_reader = block_file_reader
        header = block_file_reader.read_block(0)
        self.file_format = decode_header(header.block_type, header.data)
        expected = (self.file_format.suffix_table_block_id_offset
                    + self.file_format.max_prefix_value + 1)
        if block_file_reader.block_count != expected:
            raise CorruptDataError(
                f"File has {block_file_reader.block_count} blocks, expected {expected}")
        self._last_block: Optional[SuffixTableBlock] = None

    @classmethod
    def open(cls, path: str | os.PathLike, *,
             expected_level: int | None = None,
             expected_allowed_list: bool | None = None,
             expected_entry_value_size: int | None = None,
             expected_version: int | None = None) -> "S2RangeFileReader":
        """Open ``path`` and check the header against any ``expected_*`` value
        that is not ``None``."""
        block_file_reader = BlockFileReader(path)
        try:
            reader = cls(block_file_reader)
            reader._check_expected(expected_level=expected_level,
                                   expected_allowed_list=expected_allowed_list,
                                   expected_entry_value_size=expected_entry_value_size,
                                   expected_version=expected_version)
        except Exception:
            block_file_reader.close()
            raise
        logger.info("Opened %s: level=%d, allowed_list=%s, entry_value_size=%d, version=%d",
                    path, reader.level, reader.is_allowed_list, reader.entry_value_size,
                    reader.version)
        return reader

    def _check_expected(self, **expected):
        fmt = self.file_format
        actual = {
            "expected_level": fmt.level,
            "expected_allowed_list": fmt.is_allowed_list,
            "expected_entry_value_size": fmt.entry_value_size,
            "expected_version": fmt.version,
        }
        for name, want in expected.items():
            if want is not None and actual[name] != want:
                raise FormatMismatchError(
                    f"{name.removeprefix('expected_')}={actual[name]} does not match expected {want}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    # ------------------------------------------------------------------
    @property
    def level(self) -> int:
        return self.file_format.level

    @property
    def is_allowed_list(self) -> bool:
        return self.file_format.is_allowed_list

    @property
    def entry_value_size(self) -> int:
        return self.file_format.entry_value_size

    @property
    def version(self) -> int:
        return self.file_format.version

    @property
    def closed(self) -> bool:
        return self._block_file_reader.closed

    # ------------------------------------------------------------------
    def find_entry_by_cell_id(self, cell_id: int) -> Optional[SuffixTableRange]:
        """The range holding ``cell_id``, or ``None``."""
        self._check_open()
        fmt = self.file_format
        cellid.check_valid(cell_id)
        if cellid.level(cell_id) != fmt.level:
            raise ValueError(
                f"cell_id={cellid.to_token(cell_id)} has level={cellid.level(cell_id)},"
                f" expected {fmt.level}")
        block = self.get_suffix_table_block(fmt.extract_prefix(cell_id))
        entry = block.find_entry_by_cell_id(cell_id)
        if entry is None:
            return None
        return entry.suffix_table_range

    def get_suffix_table_block(self, prefix: int) -> SuffixTableBlock:
        self._check_open()
        fmt = self.file_format
        if not 0 <= prefix <= fmt.max_prefix_value:
            raise ValueError(f"prefix={prefix} not in [0, {fmt.max_prefix_value}]")
        if self._last_block is not None and self._last_block.prefix == prefix:
            return self._last_block
        block_data = self._block_file_reader.read_block(fmt.suffix_table_block_id_offset + prefix)
        if block_data.block_type != BLOCK_TYPE_SUFFIX_TABLE:
            raise CorruptDataError(
                f"block_id={block_data.block_id} has type={block_data.block_type},"
                f" expected a suffix table")
        block = SuffixTableBlock.from_block_data(fmt, prefix, block_data)
        self._last_block = block
        return block

    def iter_suffix_table_blocks(self) -> Iterator[SuffixTableBlock]:
        for prefix in range(self.file_format.max_prefix_value + 1):
            yield self.get_suffix_table_block(prefix)

    def iter_ranges(self) -> Iterator[SuffixTableRange]:
        """Every stored range, in cell id order, as stored (split) in the file."""
        for block in self.iter_suffix_table_blocks():
            for entry in block:
                yield entry.suffix_table_range

    # ------------------------------------------------------------------
    def _check_open(self):
        if self.closed:
            raise ValueError("S2RangeFileReader is closed")

    def close(self):
        self._last_block = None
        self._block_file_reader.close()

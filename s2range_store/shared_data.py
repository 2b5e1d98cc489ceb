# ==================================================
# s2range_store/shared_data.py
# ==================================================
import struct
from dataclasses import dataclass, field

from .const import SHARED_COUNT_FMT, SHARED_PREFIX_FMT
from .errors import CorruptDataError
from .file_format import S2RangeFileFormat

_PREFIX_SIZE = struct.calcsize(SHARED_PREFIX_FMT)
_COUNT_SIZE  = struct.calcsize(SHARED_COUNT_FMT)


@dataclass(frozen=True)
class SuffixTableSharedData:
    """Per-block data stored once instead of once per row: the table prefix
    and the entry value of every row, in row order.

    Encoded as ``prefix | count | value * count``, each value
    ``entry_value_size`` bytes wide. Nothing past the prefix and a zero count
    is stored when the format has no entry values.
    """
    table_prefix: int
    entry_values: tuple[int, ...] = field(default_factory=tuple)

    @property
    def entry_value_count(self) -> int:
        return len(self.entry_values)

    def get_entry_value(self, index: int) -> int:
        if not self.entry_values:
            return 0
        return self.entry_values[index]

    # ------------------------------------------------------------------
    def to_bytes(self, file_format: S2RangeFileFormat) -> bytes:
        size = file_format.entry_value_size
        values = self.entry_values if size else ()
        out = bytearray(struct.pack(SHARED_PREFIX_FMT, self.table_prefix))
        out += struct.pack(SHARED_COUNT_FMT, len(values))
        for value in values:
            if not 0 <= value <= file_format.max_entry_value:
                raise ValueError(f"entry_value={value} does not fit in {size} bytes")
            out += value.to_bytes(size, "big")
        return bytes(out)

    @classmethod
    def from_bytes(cls, data: bytes, file_format: S2RangeFileFormat) -> "SuffixTableSharedData":
        if len(data) < _PREFIX_SIZE + _COUNT_SIZE:
            raise CorruptDataError(f"Shared data of {len(data)} bytes is truncated")
        (prefix,) = struct.unpack_from(SHARED_PREFIX_FMT, data, 0)
        (count,)  = struct.unpack_from(SHARED_COUNT_FMT, data, _PREFIX_SIZE)
        size = file_format.entry_value_size
        if count and not size:
            raise CorruptDataError(f"Shared data holds {count} entry values but the format has none")
        off = _PREFIX_SIZE + _COUNT_SIZE
        if len(data) != off + count * size:
            raise CorruptDataError(
                f"Shared data of {len(data)} bytes does not hold {count} values of {size} bytes")
        values = tuple(int.from_bytes(data[off + i * size: off + (i + 1) * size], "big")
                       for i in range(count))
        return cls(prefix, values)

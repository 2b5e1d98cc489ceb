# ==================================================
# s2range_store/packed_table.py
# ==================================================
"""
A sorted table of fixed-width key/value rows plus one shared-data blob.

Payload layout::

    [TABLE_HDR_FMT header][shared data][row 0][row 1]...

Rows are big-endian, ``entry_size`` bytes wide, with the key in the high
``key_bits`` bits and the value in the remaining low bits. Keys are strictly
ascending so rows can be binary searched.
"""
import struct
from dataclasses import dataclass
from typing import Callable, Iterator, Optional

import numpy as np

from .const import TABLE_HDR_FMT
from .errors import CorruptDataError

TABLE_HDR_SIZE = struct.calcsize(TABLE_HDR_FMT)

# (key, value) -> negative if the target sorts before the row, positive if
# after, zero on a match
Matcher = Callable[[int, int], int]


@dataclass(frozen=True)
class TableEntry:
    index: int
    key: int
    value: int


def _check_layout(entry_size: int, key_bits: int):
    if not 1 <= entry_size <= 8:
        raise ValueError(f"entry_size={entry_size} must be in [1, 8]")
    if not 0 < key_bits < entry_size * 8:
        raise ValueError(f"key_bits={key_bits} must leave room for a value in {entry_size * 8} bits")


class PackedTable:
    def __init__(self, data: bytes):
        if len(data) < TABLE_HDR_SIZE:
            raise CorruptDataError(f"Packed table of {len(data)} bytes has no header")
        entry_size, key_bits, shared_len, count = struct.unpack_from(TABLE_HDR_FMT, data, 0)
        try:
            _check_layout(entry_size, key_bits)
        except ValueError as exc:
            raise CorruptDataError(str(exc)) from exc
        rows_off = TABLE_HDR_SIZE + shared_len
        if rows_off + count * entry_size != len(data):
            raise CorruptDataError(
                f"Packed table size {len(data)} does not match {count} rows of {entry_size} bytes")
        self.entry_size  = entry_size
        self.key_bits    = key_bits
        self.value_bits  = entry_size * 8 - key_bits
        self.shared_data = bytes(data[TABLE_HDR_SIZE:rows_off])

        raw = np.frombuffer(data, dtype=np.uint8, count=count * entry_size,
                            offset=rows_off).reshape(count, entry_size)
        rows = np.zeros(count, dtype=np.uint64)
        for col in range(entry_size):
            rows = (rows << np.uint64(8)) | raw[:, col].astype(np.uint64)
        self._keys   = rows >> np.uint64(self.value_bits)
        self._values = rows & np.uint64((1 << self.value_bits) - 1)

    @property
    def entry_count(self) -> int:
        return len(self._keys)

    def __len__(self):
        return self.entry_count

    # ------------------------------------------------------------------
    def get_entry_by_index(self, i: int) -> TableEntry:
        if not 0 <= i < self.entry_count:
            raise IndexError(f"i={i} not in [0, {self.entry_count})")
        return TableEntry(i, int(self._keys[i]), int(self._values[i]))

    def __iter__(self) -> Iterator[TableEntry]:
        for i in range(self.entry_count):
            yield TableEntry(i, int(self._keys[i]), int(self._values[i]))

    def find_entry(self, matcher: Matcher) -> Optional[TableEntry]:
        """Binary search the rows with ``matcher``; ``None`` when nothing matches."""
        lo, hi = 0, self.entry_count - 1
        while lo <= hi:
            mid = (lo + hi) >> 1
            key, value = int(self._keys[mid]), int(self._values[mid])
            cmp = matcher(key, value)
            if cmp < 0:
                hi = mid - 1
            elif cmp > 0:
                lo = mid + 1
            else:
                return TableEntry(mid, key, value)
        return None


class PackedTableWriter:
    def __init__(self, entry_size: int, key_bits: int, shared_data: bytes = b""):
        _check_layout(entry_size, key_bits)
        self.entry_size  = entry_size
        self.key_bits    = key_bits
        self.value_bits  = entry_size * 8 - key_bits
        self.shared_data = bytes(shared_data)
        self._keys: list[int]   = []
        self._values: list[int] = []

    @property
    def entry_count(self) -> int:
        return len(self._keys)

    def add_entry(self, key: int, value: int):
        if not 0 <= key < (1 << self.key_bits):
            raise ValueError(f"key={key} does not fit in {self.key_bits} bits")
        if not 0 <= value < (1 << self.value_bits):
            raise ValueError(f"value={value} does not fit in {self.value_bits} bits")
        if self._keys and key <= self._keys[-1]:
            raise ValueError(f"key={key} is not greater than the previous key={self._keys[-1]}")
        self._keys.append(key)
        self._values.append(value)

    def close(self) -> bytes:
        keys   = np.asarray(self._keys, dtype=np.uint64)
        values = np.asarray(self._values, dtype=np.uint64)
        rows   = (keys << np.uint64(self.value_bits)) | values
        packed = rows.astype(">u8").view(np.uint8).reshape(-1, 8)[:, 8 - self.entry_size:]
        header = struct.pack(TABLE_HDR_FMT, self.entry_size, self.key_bits,
                             len(self.shared_data), len(self._keys))
        return header + self.shared_data + packed.tobytes()

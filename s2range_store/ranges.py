# ==================================================
# s2range_store/ranges.py
# ==================================================
from dataclasses import dataclass

from . import cellid


@dataclass(frozen=True, slots=True)
class SuffixTableRange:
    """Half-open range ``[start_cell_id, end_cell_id)`` of same-level cells
    tagged with ``entry_value``."""
    start_cell_id: int
    end_cell_id: int
    entry_value: int = 0

    def __post_init__(self):
        cellid.check_valid(self.start_cell_id)
        cellid.check_valid(self.end_cell_id)
        if cellid.level(self.start_cell_id) != cellid.level(self.end_cell_id):
            raise ValueError(f"Levels differ: {self}")
        if self.start_cell_id >= self.end_cell_id and not self.wraps:
            raise ValueError(f"start >= end: {self}")
        if self.entry_value < 0:
            raise ValueError(f"entry_value={self.entry_value} must be >= 0")

    @property
    def wraps(self) -> bool:
        return cellid.is_wrapped_end(self.start_cell_id, self.end_cell_id)

    @property
    def level(self) -> int:
        return cellid.level(self.start_cell_id)

    def _end_key(self) -> int:
        # a wrapped end sorts after every real cell id
        return 1 << 64 if self.wraps else self.end_cell_id

    def overlaps(self, other: "SuffixTableRange") -> bool:
        return self.start_cell_id < other._end_key() and other.start_cell_id < self._end_key()

    def contains(self, cell_id: int) -> bool:
        return self.start_cell_id <= cell_id < self._end_key()

    def __repr__(self):
        return (f"SuffixTableRange(start={cellid.to_token(self.start_cell_id)},"
                f" end={cellid.to_token(self.end_cell_id)}, entry_value={self.entry_value})")

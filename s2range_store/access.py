# ==================================================
# s2range_store/access.py
# ==================================================
import os
from typing import Optional

from .reader import S2RangeFileReader


class S2RangeAccessController:
    """Allow/deny decisions for cell ids backed by a range file.

    In an allowed-list file a cell is allowed when a range holds it; in a
    disallowed-list file it is allowed when no range holds it.
    """
    def __init__(self, reader: S2RangeFileReader):
        self.reader = reader

    @classmethod
    def create(cls, path: str | os.PathLike, **expected) -> "S2RangeAccessController":
        return cls(S2RangeFileReader.open(path, **expected))

    @property
    def level(self) -> int:
        return self.reader.level

    def is_allowed_at_cell(self, cell_id: int) -> bool:
        found = self.reader.find_entry_by_cell_id(cell_id) is not None
        return found if self.reader.is_allowed_list else not found

    def get_regional_config_id(self, cell_id: int) -> Optional[int]:
        """Entry value of the range holding ``cell_id``; ``None`` if no range
        does or the file carries no entry values."""
        if not self.reader.entry_value_size:
            return None
        entry = self.reader.find_entry_by_cell_id(cell_id)
        return None if entry is None else entry.entry_value

    def close(self):
        self.reader.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

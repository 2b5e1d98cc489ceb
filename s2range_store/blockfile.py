# ==================================================
# s2range_store/blockfile.py
# ==================================================
"""
A file made of typed binary blocks addressed by sequential block id.

Layout::

    [file header][block 0][block 1]...[block n-1][block index]

Each block is its extra bytes followed by its (optionally zstd compressed)
payload. The index holds one fixed-width record per block and the header,
rewritten on close, records where the index starts.
"""
import logging
import mmap
import os
import struct
from dataclasses import dataclass
from pathlib import Path

import numpy as np
from zstandard import ZstdError

from .compression import compress, decompress
from .const import *
from .errors import CorruptDataError, FormatMismatchError

logger = logging.getLogger(__name__)

_BLOCK_INFO_DTYPE = np.dtype([
    ("type", "<u4"),
    ("offset", "<u8"),
    ("stored_size", "<u4"),
    ("raw_size", "<u4"),
    ("extra_size", "<u2"),
])
assert _BLOCK_INFO_DTYPE.itemsize == BLOCK_INFO_SIZE == struct.calcsize(BLOCK_INFO_FMT)


@dataclass(frozen=True)
class BlockData:
    block_id: int
    block_type: int
    extra_bytes: bytes
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


class BlockFileWriter:
    """Appends blocks to a new file; the index and header land on ``close()``."""
    def __init__(self, path: str | os.PathLike, magic: bytes = MAGIC,
                 version: int = CONTAINER_VERSION, compressed: bool = False):
        if len(magic) != 4:
            raise ValueError(f"magic={magic!r} must be 4 bytes")
        self.path       = Path(path)
        self.magic      = magic
        self.version    = version
        self.flags      = FLAG_ZSTD if compressed else 0
        self._index: list[tuple] = []
        self.file = open(self.path, "wb")
        # placeholder header, rewritten on close
        self.file.write(b"\0" * FILE_HDR_SIZE)

    @property
    def closed(self) -> bool:
        return self.file.closed

    @property
    def block_count(self) -> int:
        return len(self._index)

    # ------------------------------------------------------------------
    def add_block(self, block_type: int, extra_bytes: bytes, payload: bytes) -> int:
        """Append a block and return its block id."""
        if self.closed:
            raise ValueError("BlockFileWriter is closed")
        stored = compress(payload) if self.flags & FLAG_ZSTD else payload
        offset = self.file.tell()
        self.file.write(extra_bytes)
        self.file.write(stored)
        self._index.append((block_type, offset, len(stored), len(payload), len(extra_bytes)))
        return len(self._index) - 1

    # ------------------------------------------------------------------
    def close(self):
        if self.closed:
            return
        try:
            index_offset = self.file.tell()
            for info in self._index:
                self.file.write(struct.pack(BLOCK_INFO_FMT, *info))
            header = struct.pack(FILE_HDR_FMT, self.magic, self.version, self.flags,
                                 len(self._index), index_offset)
            self.file.seek(0)
            self.file.write(header.ljust(FILE_HDR_SIZE, b"\0"))
            self.file.flush()
        finally:
            self.file.close()
        logger.info("Wrote %d blocks to %s", len(self._index), self.path)

    def abort(self):
        """Close the handle without writing the index; the file is unusable."""
        if not self.closed:
            self.file.close()
            logger.warning("Aborted block file %s", self.path)


class BlockFileReader:
    """Random access to the blocks of a file written by ``BlockFileWriter``."""
    def __init__(self, path: str | os.PathLike, magic: bytes = MAGIC,
                 version: int = CONTAINER_VERSION):
        self.path = Path(path)
        self.file = open(self.path, "rb")
        try:
            self._open_existing(magic, version)
        except Exception:
            self.file.close()
            raise

    def _open_existing(self, magic: bytes, version: int):
        size = os.fstat(self.file.fileno()).st_size
        if size < FILE_HDR_SIZE:
            raise CorruptDataError(f"{self.path} is too short to be a block file")
        self.mm = mmap.mmap(self.file.fileno(), 0, access=mmap.ACCESS_READ)
        f_magic, f_ver, flags, count, index_off = struct.unpack_from(FILE_HDR_FMT, self.mm, 0)
        if f_magic != magic:
            self.mm.close()
            raise CorruptDataError(f"Invalid block file: magic={f_magic!r}")
        if f_ver != version:
            self.mm.close()
            raise FormatMismatchError(f"Unsupported block file version={f_ver}, expected {version}")
        if index_off + count * BLOCK_INFO_SIZE > size or index_off < FILE_HDR_SIZE:
            self.mm.close()
            raise CorruptDataError(f"Block index of {self.path} is out of bounds")
        self.version = f_ver
        self.flags   = flags
        self._index  = np.frombuffer(self.mm, dtype=_BLOCK_INFO_DTYPE,
                                     count=count, offset=index_off).copy()
        ends = self._index["offset"] + self._index["extra_size"] + self._index["stored_size"]
        if count and int(ends.max()) > index_off:
            self.mm.close()
            raise CorruptDataError(f"Block data of {self.path} overlaps the block index")

    @property
    def closed(self) -> bool:
        return self.file.closed

    @property
    def block_count(self) -> int:
        return len(self._index)

    # ------------------------------------------------------------------
    def read_block(self, block_id: int) -> BlockData:
        if self.closed:
            raise ValueError("BlockFileReader is closed")
        if not 0 <= block_id < len(self._index):
            raise IndexError(f"block_id={block_id} not in [0, {len(self._index)})")
        info = self._index[block_id]
        off = int(info["offset"])
        extra_end = off + int(info["extra_size"])
        stored = self.mm[extra_end: extra_end + int(info["stored_size"])]
        raw_size = int(info["raw_size"])
        if self.flags & FLAG_ZSTD:
            try:
                data = decompress(stored, raw_size)
            except ZstdError as exc:
                raise CorruptDataError(f"block_id={block_id} payload does not decompress") from exc
        else:
            data = stored
        if len(data) != raw_size:
            raise CorruptDataError(f"block_id={block_id} has size {len(data)}, expected {raw_size}")
        return BlockData(block_id, int(info["type"]), self.mm[off:extra_end], data)

    def __iter__(self):
        for block_id in range(len(self._index)):
            yield self.read_block(block_id)

    # ------------------------------------------------------------------
    def close(self):
        if self.closed:
            return
        self.mm.close()
        self.file.close()

# ==================================================
# s2range_store/header.py
# ==================================================
import struct

from .const import BLOCK_TYPE_HEADER, HEADER_BLOCK_FMT
from .errors import CorruptDataError
from .file_format import S2RangeFileFormat


def encode_header(file_format: S2RangeFileFormat) -> bytes:
    """Payload of the header block: every field of the file format."""
    return struct.pack(HEADER_BLOCK_FMT,
                       file_format.level,
                       file_format.prefix_bit_count,
                       file_format.suffix_bit_count,
                       file_format.suffix_table_block_id_offset,
                       file_format.table_entry_bit_count,
                       1 if file_format.is_allowed_list else 0,
                       file_format.entry_value_size,
                       file_format.version)


def decode_header(block_type: int, data: bytes) -> S2RangeFileFormat:
    if block_type != BLOCK_TYPE_HEADER:
        raise CorruptDataError(f"Block 0 has type={block_type}, expected a header block")
    if len(data) != struct.calcsize(HEADER_BLOCK_FMT):
        raise CorruptDataError(f"Header block has {len(data)} bytes")
    (level, prefix_bits, suffix_bits, block_id_offset, entry_bits,
     allowed, entry_value_size, version) = struct.unpack(HEADER_BLOCK_FMT, data)
    if allowed not in (0, 1):
        raise CorruptDataError(f"Header block has is_allowed_list={allowed}")
    try:
        return S2RangeFileFormat(level, prefix_bits, suffix_bits, block_id_offset, entry_bits,
                                 bool(allowed), entry_value_size, version)
    except ValueError as exc:
        raise CorruptDataError(f"Header block describes an invalid format: {exc}") from exc

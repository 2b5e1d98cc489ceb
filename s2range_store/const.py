# ==================================================
# s2range_store/const.py
# ==================================================

# -------- block container -------------------------------------------------
MAGIC = b"S2RF"            # 4-byte magic
CONTAINER_VERSION = 1
FILE_HDR_FMT = "<4sHHLQ"   # magic, container version (H), flags (H), block_count (L), index_offset (Q)
FILE_HDR_SIZE = 24         # bytes (4+2+2+4+8+padding)
BLOCK_INFO_FMT = "<LQLLH"  # type, offset, stored_size, raw_size, extra_size
BLOCK_INFO_SIZE = 22
FLAG_ZSTD = 0x1            # non-empty payloads are zstd frames

# -------- block types -----------------------------------------------------
BLOCK_TYPE_HEADER = 1
BLOCK_TYPE_PADDING = 2
BLOCK_TYPE_SUFFIX_TABLE = 3

# -------- header block ----------------------------------------------------
# level, prefix bits, suffix bits, suffix table block id offset (H),
# table entry bits, is_allowed_list, entry value size, version (I)
HEADER_BLOCK_FMT = ">BBBHBBBI"

# -------- packed table ----------------------------------------------------
TABLE_HDR_FMT = ">BBxxII"  # entry byte size, key bits, shared data len, entry count

# -------- suffix table shared data ----------------------------------------
SHARED_PREFIX_FMT = ">I"
SHARED_COUNT_FMT = ">I"
MAX_ENTRY_VALUE_SIZE = 4

# -------- cell ids --------------------------------------------------------
FACE_BIT_COUNT = 3
BITS_PER_LEVEL = 2
MAX_FACE_ID = 5
MAX_LEVEL = 30
POS_BITS = 2 * MAX_LEVEL + 1
CELL_ID_MASK = (1 << 64) - 1

# -------- per-level presets -----------------------------------------------
# level -> (prefix level, table entry bits, suffix table block id offset)
LEVEL_PRESETS = {
    12: (4, 32, 5),
    14: (5, 32, 5),
    16: (6, 32, 5),
}

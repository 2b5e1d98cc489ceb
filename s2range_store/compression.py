# ==================================================
# s2range_store/compression.py
# ==================================================
import zstandard as zstd

# -------- zstd wrappers ---------------------------------------------------

cctx = zstd.ZstdCompressor(level=3)
dctx = zstd.ZstdDecompressor()

def compress(data: bytes) -> bytes:
    # empty payloads mark empty suffix tables and are stored as-is
    if not data:
        return b""
    return cctx.compress(data)

def decompress(data: bytes, size: int) -> bytes:
    if not size:
        return b""
    return dctx.decompress(data, max_output_size=size)

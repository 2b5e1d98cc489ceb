# ==================================================
# s2range_store/dump.py
# ==================================================
import os
from dataclasses import fields
from pathlib import Path

from .reader import S2RangeFileReader
from .suffix_table import SuffixTableBlock


def _zero_pad(value: int, width: int, base: str) -> str:
    return format(value, f"0{width}{base}")


def dump_header(reader: S2RangeFileReader, out_dir: str | os.PathLike) -> Path:
    path = Path(out_dir) / "header.txt"
    with open(path, "w", encoding="utf-8") as f:
        for fld in fields(reader.file_format):
            f.write(f"{fld.name}={getattr(reader.file_format, fld.name)}\n")
    return path


def dump_suffix_table(block: SuffixTableBlock, out_dir: str | os.PathLike) -> Path:
    fmt = block.file_format
    hex_width = (fmt.prefix_bit_count + 3) // 4
    prefix = block.prefix
    path = Path(out_dir) / f"suffixtable_{_zero_pad(prefix, hex_width, 'x')}.txt"
    with open(path, "w", encoding="utf-8") as f:
        f.write(f"Prefix value={_zero_pad(prefix, fmt.prefix_bit_count, 'b')}"
                f" ({_zero_pad(prefix, hex_width, 'x')})\n")
        f.write(f"Entry count={block.entry_count}\n")
        for entry in block:
            f.write(f"Entry[{entry.index}]={entry.suffix_table_range}\n")
        f.write(f"Entry value count={block.entry_value_count}\n")
    return path


def dump_file(reader: S2RangeFileReader, out_dir: str | os.PathLike) -> list[Path]:
    """Header plus one text file per populated suffix table."""
    Path(out_dir).mkdir(parents=True, exist_ok=True)
    written = [dump_header(reader, out_dir)]
    for block in reader.iter_suffix_table_blocks():
        if not block.is_empty:
            written.append(dump_suffix_table(block, out_dir))
    return written

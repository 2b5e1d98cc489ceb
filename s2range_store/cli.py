# ==================================================
# s2range_store/cli.py
# ==================================================
import argparse
import logging
import os

from . import cellid
from .dump import dump_file
from .ingest import create_file, create_test_file
from .reader import S2RangeFileReader

# ───────────────────────── configuration ──────────────────────
LOG_LEVEL = os.getenv("S2RANGE_LOG_LEVEL", "INFO")
COMPRESS  = os.getenv("S2RANGE_COMPRESS", "0") == "1"

logger = logging.getLogger(__name__)


def _cell_id(text: str) -> int:
    value = int(text, 0)
    return value & cellid.CELL_ID_MASK if value < 0 else value


def cmd_create(args):
    create_file(args.input, args.output, args.level, args.allowed_list,
                args.entry_value_size, args.version, compressed=args.compress)


def cmd_create_test(args):
    create_test_file(args.output)


def cmd_lookup(args):
    with S2RangeFileReader.open(args.file) as reader:
        for cell in args.cell_ids:
            entry = reader.find_entry_by_cell_id(cell)
            found = entry is not None
            allowed = found if reader.is_allowed_list else not found
            value = entry.entry_value if found else "-"
            print(f"{cell} {cellid.to_string(cell)} allowed={allowed} entry_value={value}")


def cmd_dump(args):
    with S2RangeFileReader.open(args.file) as reader:
        written = dump_file(reader, args.output_dir)
    logger.info("Dumped %d files to %s", len(written), args.output_dir)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="s2range", description="Build and query S2 cell range files")
    p.add_argument("--log-level", default=LOG_LEVEL)
    sub = p.add_subparsers(dest="command", required=True)

    c = sub.add_parser("create", help="build a range file from a cellId,entryValue text file")
    c.add_argument("input")
    c.add_argument("output")
    c.add_argument("--level", type=int, required=True)
    group = c.add_mutually_exclusive_group(required=True)
    group.add_argument("--allowed-list", dest="allowed_list", action="store_true")
    group.add_argument("--disallowed-list", dest="allowed_list", action="store_false")
    c.add_argument("--entry-value-size", type=int, default=0)
    c.add_argument("--version", type=int, default=0)
    c.add_argument("--compress", action="store_true", default=COMPRESS)
    c.set_defaults(func=cmd_create)

    t = sub.add_parser("create-test", help="write the three-range test file")
    t.add_argument("output")
    t.set_defaults(func=cmd_create_test)

    q = sub.add_parser("lookup", help="look up cell ids")
    q.add_argument("file")
    q.add_argument("cell_ids", nargs="+", type=_cell_id)
    q.set_defaults(func=cmd_lookup)

    d = sub.add_parser("dump", help="dump header and suffix tables as text")
    d.add_argument("file")
    d.add_argument("output_dir")
    d.set_defaults(func=cmd_dump)
    return p


def main(argv=None):
    args = build_parser().parse_args(argv)
    logging.basicConfig(level=args.log_level.upper(),
                        format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    args.func(args)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

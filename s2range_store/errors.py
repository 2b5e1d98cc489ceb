# ==================================================
# s2range_store/errors.py
# ==================================================


class S2RangeError(Exception):
    """Base class for errors raised while writing or reading range files."""


class InputContractError(S2RangeError):
    """Ranges handed to the writer (or cells handed to ingestion) break the
    sorted, non-overlapping contract. The output file must be discarded."""


class CorruptDataError(S2RangeError):
    """Stored bytes disagree with the invariants the writer guarantees."""


class FormatMismatchError(S2RangeError, ValueError):
    """The file header does not match what the caller expects."""

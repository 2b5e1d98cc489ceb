from .access import S2RangeAccessController
from .errors import CorruptDataError, FormatMismatchError, InputContractError, S2RangeError
from .file_format import S2RangeFileFormat, get_file_format_for_level
from .ranges import SuffixTableRange
from .reader import S2RangeFileReader
from .suffix_table import SuffixTableBlock
from .writer import S2RangeFileWriter

__all__ = [
    "S2RangeAccessController",
    "S2RangeError", "InputContractError", "CorruptDataError", "FormatMismatchError",
    "S2RangeFileFormat", "get_file_format_for_level",
    "SuffixTableRange", "SuffixTableBlock",
    "S2RangeFileReader", "S2RangeFileWriter",
]

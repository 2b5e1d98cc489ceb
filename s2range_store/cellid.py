# ==================================================
# s2range_store/cellid.py
# ==================================================
"""
Bit arithmetic over 64-bit S2 cell ids.

A cell id is ``face (3 bits) | 2 bits per level | 1 | 0...``: the lowest set
bit is a sentinel that marks where the significant bits end, so the level of a
cell can be read back from the id alone. All values are plain non-negative
ints in ``[0, 2**64)``.
"""
from .const import (BITS_PER_LEVEL, CELL_ID_MASK, FACE_BIT_COUNT, MAX_FACE_ID,
                    MAX_LEVEL, POS_BITS)

# lsb positions for valid cells are always even
_LSB_LEVEL_MASK = 0x1555555555555555


def lsb(cell_id: int) -> int:
    return cell_id & -cell_id


def lsb_for_level(level: int) -> int:
    return 1 << (BITS_PER_LEVEL * (MAX_LEVEL - level))


def face(cell_id: int) -> int:
    return cell_id >> POS_BITS


def level(cell_id: int) -> int:
    """Return the level encoded by the sentinel bit of ``cell_id``."""
    if cell_id <= 0 or cell_id > CELL_ID_MASK:
        raise ValueError(f"cell_id={cell_id} is not a 64-bit cell id")
    pos = lsb(cell_id).bit_length() - 1
    if pos & 1:
        raise ValueError(f"cell_id={to_token(cell_id)} has no valid level")
    return MAX_LEVEL - (pos >> 1)


def is_valid(cell_id: int) -> bool:
    if cell_id <= 0 or cell_id > CELL_ID_MASK:
        return False
    return face(cell_id) <= MAX_FACE_ID and (lsb(cell_id) & _LSB_LEVEL_MASK) != 0


def check_valid(cell_id: int) -> int:
    if not is_valid(cell_id):
        raise ValueError(f"cell_id={cell_id} ({to_token(cell_id)}) is not a valid cell id")
    return cell_id


def face_begin(face_id: int, lvl: int) -> int:
    """First cell of ``face_id`` at level ``lvl``."""
    return (face_id << POS_BITS) | lsb_for_level(lvl)


# ------------------------------------------------------------------
def child_begin(cell_id: int, lvl: int) -> int:
    return cell_id - lsb(cell_id) + lsb_for_level(lvl)


def child_end(cell_id: int, lvl: int) -> int:
    """Exclusive end of the children of ``cell_id`` at ``lvl``.

    Past the last cell of face 5 the id wraps to the first cell of face 0.
    """
    return _wrap(cell_id + lsb(cell_id) + lsb_for_level(lvl), lvl)


def parent(cell_id: int, lvl: int) -> int:
    new_lsb = lsb_for_level(lvl)
    return (cell_id & -new_lsb) | new_lsb


def next_cell(cell_id: int) -> int:
    return _wrap(cell_id + (lsb(cell_id) << 1), level(cell_id))


def prev_cell(cell_id: int) -> int:
    return (cell_id - (lsb(cell_id) << 1)) & CELL_ID_MASK


def offset_cell_id(cell_id: int, n: int) -> int:
    """Advance ``cell_id`` by ``n`` cells of its own level."""
    return (cell_id + n * (lsb(cell_id) << 1)) & CELL_ID_MASK


def _wrap(cell_id: int, lvl: int) -> int:
    if cell_id > CELL_ID_MASK or face(cell_id) > MAX_FACE_ID:
        return face_begin(0, lvl)
    return cell_id


def is_wrapped_end(start_cell_id: int, end_cell_id: int) -> bool:
    """True when ``end_cell_id`` is the face 0 wrap of the cell after the
    last cell of face 5."""
    if face(start_cell_id) != MAX_FACE_ID:
        return False
    return end_cell_id == face_begin(0, level(start_cell_id))


# ------------------------------------------------------------------
def to_token(cell_id: int) -> str:
    if cell_id == 0:
        return "X"
    return f"{cell_id:016x}".rstrip("0")


def to_string(cell_id: int) -> str:
    """``face/digits`` form, one quad digit per level."""
    if not is_valid(cell_id):
        return f"Invalid: {cell_id:016x}"
    lvl = level(cell_id)
    digits = []
    for i in range(1, lvl + 1):
        shift = POS_BITS - BITS_PER_LEVEL * i
        digits.append(str((cell_id >> shift) & 0x3))
    return f"{face(cell_id)}/{''.join(digits)}"


__all__ = [
    "FACE_BIT_COUNT", "MAX_FACE_ID",
    "lsb", "lsb_for_level", "face", "level", "is_valid", "check_valid",
    "face_begin", "child_begin", "child_end", "parent", "next_cell",
    "prev_cell", "offset_cell_id", "is_wrapped_end", "to_token", "to_string",
]

"""
Cell value codec: gid / flip-flag split and cell orientation

=============================================================================
CELL VALUES
=============================================================================

Every cell of a tile layer is stored as an unsigned 32-bit integer. The
three highest bits are flags, the rest is the global tile id (gid):

    bit 31  bit 30  bit 29  bits 28..0
    +------+-------+-------+---------------------+
    |  H   |   V   |   D   |        gid          |
    +------+-------+-------+---------------------+
     flip    flip    flip
     horiz   vert    diagonal (swap X/Y axes)

    0x80000005 → gid 5, flipped horizontally
    0x20000003 → gid 3, flipped diagonally

=============================================================================
FROM FLAGS TO ORIENTATION
=============================================================================

Renderers work with two flips and a rotation, not with a diagonal flip.
compose_cell_orientation() turns the (H, V, D) triple into that form:

    D  H  V   →  flip_h  flip_v  rotation (Y-up / Y-down)
    0  h  v   →    h       v          0
    1  1  1   →  True    False    270 / 90
    1  1  0   →  False   False    270 / 90
    1  0  1   →  False   False     90 / 270
    1  0  0   →  False   True     270 / 90

The two cases that add a flip on top of the rotation are not symmetrical
with the others. Existing content is authored against this table, so it is
kept exactly as is.

=============================================================================
"""

from enum import IntEnum
from typing import NamedTuple, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .model import Cell, Tile


FLAG_FLIP_HORIZONTALLY = 0x80000000
FLAG_FLIP_VERTICALLY = 0x40000000
FLAG_FLIP_DIAGONALLY = 0x20000000
MASK_CLEAR = 0xE0000000

MAX_CELL_VALUE = 0xFFFFFFFF


class Rotation(IntEnum):
    """Counter-clockwise rotation of a cell, in degrees."""
    NONE = 0
    ROTATE_90 = 90
    ROTATE_180 = 180
    ROTATE_270 = 270


class DecodedCell(NamedTuple):
    gid: int                    # Id looked up in the tileset collection
    flip_horizontally: bool
    flip_vertically: bool
    flip_diagonally: bool


class CellOrientation(NamedTuple):
    flip_horizontally: bool
    flip_vertically: bool
    rotation: Rotation


def decode_cell(raw: int) -> DecodedCell:
    """Split a raw 32-bit cell value into its gid and three flip flags."""
    if not 0 <= raw <= MAX_CELL_VALUE:
        raise ValueError(f"Cell value out of 32-bit range: {raw}")
    return DecodedCell(
        raw & ~MASK_CLEAR,
        raw & FLAG_FLIP_HORIZONTALLY != 0,
        raw & FLAG_FLIP_VERTICALLY != 0,
        raw & FLAG_FLIP_DIAGONALLY != 0,
    )


def encode_cell(gid: int, flip_horizontally: bool = False,
                flip_vertically: bool = False,
                flip_diagonally: bool = False) -> int:
    """Inverse of decode_cell()."""
    if gid & MASK_CLEAR or gid < 0:
        raise ValueError(f"Gid does not fit in 29 bits: {gid}")
    raw = gid
    if flip_horizontally:
        raw |= FLAG_FLIP_HORIZONTALLY
    if flip_vertically:
        raw |= FLAG_FLIP_VERTICALLY
    if flip_diagonally:
        raw |= FLAG_FLIP_DIAGONALLY
    return raw


def compose_cell_orientation(flip_horizontally: bool, flip_vertically: bool,
                             flip_diagonally: bool,
                             y_up: bool = True) -> CellOrientation:
    """Map an (H, V, D) flag triple onto flips plus a rotation."""
    if not flip_diagonally:
        return CellOrientation(flip_horizontally, flip_vertically, Rotation.NONE)

    if flip_horizontally and flip_vertically:
        return CellOrientation(
            True, False, Rotation.ROTATE_270 if y_up else Rotation.ROTATE_90)
    if flip_horizontally:
        return CellOrientation(
            False, False, Rotation.ROTATE_270 if y_up else Rotation.ROTATE_90)
    if flip_vertically:
        return CellOrientation(
            False, False, Rotation.ROTATE_90 if y_up else Rotation.ROTATE_270)
    return CellOrientation(
        False, True, Rotation.ROTATE_270 if y_up else Rotation.ROTATE_90)


def create_cell(tile: Optional['Tile'], flip_horizontally: bool,
                flip_vertically: bool, flip_diagonally: bool,
                y_up: bool = True) -> 'Cell':
    """Build a Cell for ``tile`` with the orientation the flags describe."""
    from .model import Cell

    orientation = compose_cell_orientation(
        flip_horizontally, flip_vertically, flip_diagonally, y_up)
    return Cell(
        tile=tile,
        flip_horizontally=orientation.flip_horizontally,
        flip_vertically=orientation.flip_vertically,
        rotation=orientation.rotation,
    )

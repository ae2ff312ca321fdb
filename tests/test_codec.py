"""Tests for the cell value codec and orientation table."""

import itertools

import pytest

from tmx_loader.codec import (
    FLAG_FLIP_DIAGONALLY, FLAG_FLIP_HORIZONTALLY, FLAG_FLIP_VERTICALLY,
    Rotation, compose_cell_orientation, create_cell, decode_cell, encode_cell,
)
from tmx_loader.model import StaticTile


class TestDecodeCell:
    """Splitting raw values into gid and flags."""

    def test_plain_gid(self) -> None:
        assert decode_cell(42) == (42, False, False, False)

    def test_each_flag(self) -> None:
        assert decode_cell(FLAG_FLIP_HORIZONTALLY | 5) == (5, True, False, False)
        assert decode_cell(FLAG_FLIP_VERTICALLY | 5) == (5, False, True, False)
        assert decode_cell(FLAG_FLIP_DIAGONALLY | 5) == (5, False, False, True)

    def test_all_flags(self) -> None:
        decoded = decode_cell(0xE0000003)
        assert decoded.gid == 3
        assert decoded.flip_horizontally
        assert decoded.flip_vertically
        assert decoded.flip_diagonally

    @pytest.mark.parametrize("raw", [0, 1, 0x1FFFFFFF, 0x20000000, 0x80000007,
                                     0xC0000010, 0xFFFFFFFF, 123456789])
    def test_encode_restores_raw_value(self, raw: int) -> None:
        assert encode_cell(*decode_cell(raw)) == raw

    def test_out_of_range(self) -> None:
        with pytest.raises(ValueError):
            decode_cell(-1)
        with pytest.raises(ValueError):
            decode_cell(0x100000000)

    def test_encode_rejects_gid_using_flag_bits(self) -> None:
        with pytest.raises(ValueError):
            encode_cell(0x20000000)


class TestComposeCellOrientation:
    """The (H, V, D) → flips + rotation table."""

    @pytest.mark.parametrize("h,v", list(itertools.product([False, True], repeat=2)))
    def test_without_diagonal_flags_pass_through(self, h: bool, v: bool) -> None:
        for y_up in (True, False):
            assert compose_cell_orientation(h, v, False, y_up) == (h, v, Rotation.NONE)

    @pytest.mark.parametrize("h,v,y_up,expected", [
        (True, True, True, (True, False, Rotation.ROTATE_270)),
        (True, True, False, (True, False, Rotation.ROTATE_90)),
        (True, False, True, (False, False, Rotation.ROTATE_270)),
        (True, False, False, (False, False, Rotation.ROTATE_90)),
        (False, True, True, (False, False, Rotation.ROTATE_90)),
        (False, True, False, (False, False, Rotation.ROTATE_270)),
        (False, False, True, (False, True, Rotation.ROTATE_270)),
        (False, False, False, (False, True, Rotation.ROTATE_90)),
    ])
    def test_diagonal_flag_table(self, h: bool, v: bool, y_up: bool, expected) -> None:
        assert compose_cell_orientation(h, v, True, y_up) == expected

    def test_never_rotates_180(self) -> None:
        for h, v, d, y_up in itertools.product([False, True], repeat=4):
            rotation = compose_cell_orientation(h, v, d, y_up).rotation
            assert rotation in (Rotation.NONE, Rotation.ROTATE_90, Rotation.ROTATE_270)

    def test_create_cell_shares_tile(self) -> None:
        tile = StaticTile(id=1)
        cell = create_cell(tile, True, False, True, y_up=False)
        assert cell.tile is tile
        assert not cell.flip_horizontally
        assert cell.rotation == Rotation.ROTATE_90

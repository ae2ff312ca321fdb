"""
Y-up / Y-down coordinate normalization

=============================================================================
THE TWO CONVENTIONS
=============================================================================

Map documents are written Y-DOWN: row 0 and y=0 are at the TOP.

    Y-down (document)           Y-up (OpenGL style)
    (0,0) -----> X                 Y
      |                            ^
      |                            |
      v                            |
      Y                          (0,0) -----> X

When loading for a Y-up consumer, every vertical coordinate is mirrored
once, here, so tile rows and vector objects stay consistent:

    tile row        y  →  height - 1 - y
    object y        y  →  map_pixel_height - y
    object anchor   y  →  y - object_height   (keeps top-left as anchor)
    polygon vertex  y  →  -y                  (relative to object position)

=============================================================================
"""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class CoordinateNormalizer:
    y_up: bool = True                # Y axis points up in the loaded map
    map_pixel_height: int = 0        # Map height in pixels (tiles * tileheight)

    def tile_row(self, y: int, height: int) -> int:
        """Grid row for document row ``y`` in a layer ``height`` rows tall."""
        return height - 1 - y if self.y_up else y

    def object_y(self, raw_y: float) -> float:
        return self.map_pixel_height - raw_y if self.y_up else raw_y

    def anchor_y(self, y: float, height: float) -> float:
        """Shift an already normalized y so a shape's anchor stays top-left."""
        return y - height if self.y_up else y

    def vertex(self, x: float, y: float) -> Tuple[float, float]:
        return (x, -y) if self.y_up else (x, y)

    @property
    def region_needs_flip(self) -> bool:
        """Tile image regions are mirrored vertically at creation when Y-up."""
        return self.y_up

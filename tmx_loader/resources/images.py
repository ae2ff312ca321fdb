"""
Image regions and image resolvers (uses PIL)

=============================================================================
REGIONS, NOT PIXELS
=============================================================================

A tile doesn't own pixels. It owns an ImageRegion: a rectangle inside an
image that belongs to whoever loaded it (the synchronous loader, or an
external asset manager):

    tileset.png (owned by the loader / asset manager)
    +-------+-------+-------+
    | tile1 | tile2 | tile3 |   ImageRegion(image=<PIL image>,
    +-------+-------+-------+               x=32, y=0, width=32, height=32)
    | tile4 | tile5 | tile6 |
    +-------+-------+-------+

crop() produces the actual sub-image when a consumer needs it, applying
the region's flips with Image.transpose().

A rotated region (from a texture atlas packed with rotation) is stored
turned 90 degrees counter-clockwise, so its rectangle in the backing image
is height x width. width and height always describe the tile as shown;
crop() turns the pixels back clockwise before applying the flips.

=============================================================================
RESOLVERS
=============================================================================

The tileset builder asks a resolver for the whole-image region of a path:

    DirectImageResolver        dict of images already loaded by us
                               (synchronous load)
    AssetManagerImageResolver  asks an asset manager's get(path)
                               (two-phase load driven by the embedder)

Both satisfy the ImageResolver protocol: get_image(name) -> ImageRegion.

=============================================================================
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Protocol, Union

from PIL import Image

from ..errors import ResourceResolutionError
from ..paths import resource_key

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssetDescriptor:
    """A resource the caller must load before building a map."""
    path: str                    # Resolved path, '/' separated
    kind: str = "image"          # "image" or "atlas"


# =============================================================================
# IMAGE REGION
# =============================================================================

@dataclass(eq=False)
class ImageRegion:
    """Rectangle inside an externally owned image."""
    image: Any                   # Backing image (PIL image or embedder handle)
    source: str = ""             # Resource key of the backing image
    x: int = 0                   # Left edge inside the backing image
    y: int = 0                   # Top edge inside the backing image
    width: int = 0
    height: int = 0
    flip_x: bool = False
    flip_y: bool = False
    rotated: bool = False        # Stored turned 90 degrees counter-clockwise

    @classmethod
    def of_image(cls, image: Any, source: str = "") -> 'ImageRegion':
        """Region covering the whole of ``image`` (anything with width/height)."""
        return cls(image=image, source=source, width=image.width, height=image.height)

    def sub_region(self, x: int, y: int, width: int, height: int) -> 'ImageRegion':
        """Region at (x, y) relative to this region's top-left corner."""
        return ImageRegion(
            image=self.image,
            source=self.source,
            x=self.x + x,
            y=self.y + y,
            width=width,
            height=height,
        )

    def flip(self, x: bool, y: bool):
        """Toggle mirroring on each axis."""
        if x:
            self.flip_x = not self.flip_x
        if y:
            self.flip_y = not self.flip_y

    @property
    def box(self):
        """(left, top, right, bottom) as used by PIL's crop()."""
        if self.rotated:
            return (self.x, self.y, self.x + self.height, self.y + self.width)
        return (self.x, self.y, self.x + self.width, self.y + self.height)

    def crop(self) -> Image.Image:
        """Cut this region out of the backing PIL image, flips applied."""
        tile_img = self.image.crop(self.box)
        if self.rotated:
            tile_img = tile_img.transpose(Image.Transpose.ROTATE_270)
        if self.flip_x:
            tile_img = tile_img.transpose(Image.Transpose.FLIP_LEFT_RIGHT)
        if self.flip_y:
            tile_img = tile_img.transpose(Image.Transpose.FLIP_TOP_BOTTOM)
        return tile_img


# =============================================================================
# RESOLVERS
# =============================================================================

class ImageResolver(Protocol):
    def get_image(self, name: str) -> ImageRegion:
        ...


class AssetManager(Protocol):
    """What the embedding asset manager must offer for the two-phase load."""

    def get(self, name: str) -> Any:
        ...


class DirectImageResolver:
    """Resolves paths against images the loader itself opened."""

    def __init__(self, images: Mapping[str, Any]):
        self.images = images

    def get_image(self, name: str) -> ImageRegion:
        image = self.images.get(name)
        if image is None:
            raise ResourceResolutionError(f"Image '{name}' was not loaded")
        return ImageRegion.of_image(image, name)


class AssetManagerImageResolver:
    """Resolves paths through an external asset manager's get(name)."""

    def __init__(self, asset_manager: AssetManager):
        self.asset_manager = asset_manager

    def get_image(self, name: str) -> ImageRegion:
        try:
            image = self.asset_manager.get(name)
        except KeyError as e:
            raise ResourceResolutionError(
                f"Image '{name}' is not available from the asset manager") from e
        if image is None:
            raise ResourceResolutionError(
                f"Image '{name}' is not available from the asset manager")
        return ImageRegion.of_image(image, name)


# =============================================================================
# LOADING
# =============================================================================

def load_image(path: Union[str, Path], mode: Optional[str] = None) -> Image.Image:
    """
    Open an image file with PIL.

    Image.open() is lazy: only the header is read until pixels are
    accessed, so dependency discovery stays cheap. ``mode`` ("RGBA", ...)
    forces a conversion, which does read the pixels.
    """
    try:
        image = Image.open(str(path))
        if mode and image.mode != mode:
            image = image.convert(mode)
    except OSError as e:
        # Covers missing files and PIL.UnidentifiedImageError
        raise ResourceResolutionError(f"Couldn't load image '{path}': {e}") from e
    logger.debug("Loaded image %s (%dx%d)", resource_key(path), image.width, image.height)
    return image

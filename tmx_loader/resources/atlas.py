"""
Texture atlas documents (libGDX .atlas text format)

=============================================================================
FORMAT
=============================================================================

An atlas packs many small images into one or more page images. The text
file lists pages, and for each page the named regions cut from it:

    tiles.png                  <- page image (relative to the .atlas file)
    size: 128,64
    format: RGBA8888
    filter: Nearest,Nearest
    repeat: none
    tiles                      <- region name
      rotate: false
      xy: 0, 0
      size: 32, 32
      orig: 32, 32
      offset: 0, 0
      index: 0                 <- index within regions of the same name
    tiles
      xy: 32, 0
      size: 32, 32
      index: 1

A blank line starts a new page. Newer packers write region fields without
indentation and may use "bounds: x,y,w,h" instead of xy + size; both
layouts are read. size is always the unrotated size; a region with
"rotate: true" occupies height x width pixels of its page.

=============================================================================
ATLAS-BACKED TILESETS
=============================================================================

A map loaded from an atlas names it in a map property:

    <property name="atlas" value="../atlas/tiles.atlas"/>

Every region named after the atlas file (without extension) is one tile,
and its index is the local tile id: gid = firstgid + region.index.

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from ..errors import MalformedDataError, ResourceResolutionError
from ..paths import resolve_relative, resource_key
from .images import AssetManager, ImageRegion, load_image

logger = logging.getLogger(__name__)


@dataclass(eq=False)
class AtlasPage:
    file: str                                   # Resource key of the page image
    width: int = 0
    height: int = 0
    image: Any = None                           # Loaded page image, if any
    attributes: Dict[str, str] = field(default_factory=dict)


@dataclass(eq=False)
class AtlasRegion:
    name: str
    page: AtlasPage
    index: int = -1                             # -1 = not part of a sequence
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0
    rotate: bool = False                        # Packed turned; w and h swapped in the page

    def image_region(self) -> ImageRegion:
        """The tile as shown; a rotated region is turned back by crop()."""
        return ImageRegion(
            image=self.page.image,
            source=self.page.file,
            x=self.x,
            y=self.y,
            width=self.width,
            height=self.height,
            rotated=self.rotate,
        )


class TextureAtlas:
    """Pages and named regions read from an .atlas file."""

    def __init__(self, pages: Optional[List[AtlasPage]] = None,
                 regions: Optional[List[AtlasRegion]] = None):
        self.pages = pages or []
        self.regions = regions or []

    def find_regions(self, name: str) -> List[AtlasRegion]:
        """All regions called ``name``, in file order."""
        return [region for region in self.regions if region.name == name]

    def close(self):
        """Release the page images opened by load()."""
        for page in self.pages:
            if page.image is not None and hasattr(page.image, 'close'):
                page.image.close()
            page.image = None

    @classmethod
    def parse(cls, text: str) -> 'TextureAtlas':
        """Parse atlas text. Page images are referenced, not loaded."""
        atlas = cls()
        page: Optional[AtlasPage] = None
        region: Optional[AtlasRegion] = None

        for line_no, raw_line in enumerate(text.splitlines(), 1):
            line = raw_line.strip()
            if not line:
                page = None
                region = None
                continue

            if page is None:
                page = AtlasPage(file=line)
                atlas.pages.append(page)
                continue

            if ':' not in line:
                region = AtlasRegion(name=line, page=page)
                atlas.regions.append(region)
                continue

            key, value = (part.strip() for part in line.split(':', 1))
            try:
                if region is None:
                    _set_page_field(page, key, value)
                else:
                    _set_region_field(region, key, value)
            except ValueError as e:
                raise MalformedDataError(
                    f"Atlas line {line_no}: bad value for '{key}': {value!r}") from e

        return atlas

    @classmethod
    def load(cls, path: Union[str, Path],
             image_loader: Callable[[Path], Any] = load_image) -> 'TextureAtlas':
        """Read an atlas file and open its page images (relative to the file)."""
        path = Path(path)
        try:
            text = path.read_text(encoding='utf-8')
        except OSError as e:
            raise ResourceResolutionError(f"Couldn't read atlas '{path}': {e}") from e

        atlas = cls.parse(text)
        for page in atlas.pages:
            page_path = resolve_relative(path, page.file)
            page.file = resource_key(page_path)
            page.image = image_loader(page_path)
            if not page.width:
                page.width, page.height = page.image.width, page.image.height

        logger.debug("Loaded atlas %s: %d pages, %d regions",
                     resource_key(path), len(atlas.pages), len(atlas.regions))
        return atlas


def _pair(value: str) -> List[int]:
    parts = [int(part.strip()) for part in value.split(',')]
    if len(parts) != 2:
        raise ValueError(value)
    return parts


def _set_page_field(page: AtlasPage, key: str, value: str):
    if key == 'size':
        page.width, page.height = _pair(value)
    page.attributes[key] = value


def _set_region_field(region: AtlasRegion, key: str, value: str):
    if key == 'xy':
        region.x, region.y = _pair(value)
    elif key == 'size':
        region.width, region.height = _pair(value)
    elif key == 'bounds':
        parts = [int(part.strip()) for part in value.split(',')]
        if len(parts) != 4:
            raise ValueError(value)
        region.x, region.y, region.width, region.height = parts
    elif key == 'index':
        region.index = int(value)
    elif key == 'rotate':
        region.rotate = value.lower() in ('true', '90')
    # orig, offset, split, pad... don't affect tile placement


# =============================================================================
# RESOLVERS
# =============================================================================

class DirectAtlasResolver:
    """Resolves atlas paths against atlases the loader itself opened."""

    def __init__(self, atlases: Mapping[str, TextureAtlas]):
        self.atlases = atlases

    def get_atlas(self, name: str) -> TextureAtlas:
        atlas = self.atlases.get(name)
        if atlas is None:
            raise ResourceResolutionError(f"Atlas '{name}' was not loaded")
        return atlas


class AssetManagerAtlasResolver:
    """Resolves atlas paths through an external asset manager's get(name)."""

    def __init__(self, asset_manager: AssetManager):
        self.asset_manager = asset_manager

    def get_atlas(self, name: str) -> TextureAtlas:
        try:
            atlas = self.asset_manager.get(name)
        except KeyError as e:
            raise ResourceResolutionError(
                f"Atlas '{name}' is not available from the asset manager") from e
        if atlas is None:
            raise ResourceResolutionError(
                f"Atlas '{name}' is not available from the asset manager")
        return atlas

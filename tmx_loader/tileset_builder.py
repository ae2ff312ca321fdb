"""
Tileset population: cutting tiles out of images and atlases

=============================================================================
GRID TILESETS
=============================================================================

A single image holds all tiles in a grid. margin is the border around the
whole image, spacing the gap between neighbouring tiles; both can differ
per axis:

    margin=1, spacing=1, 32x32 tiles, 100x67 image

    y=1   +--+--------+-+--------+-+--------+-+
          |  | gid+0  | | gid+1  | | gid+2  | |
    y=34  +--+--------+-+--------+-+--------+-+
          |  | gid+3  | | gid+4  | | gid+5  | |
          +--+--------+-+--------+-+--------+-+
             x=1        x=34       x=67

Positions are walked row by row, left to right, top to bottom as stored in
the image, while a whole tile still fits:

    y = margin_y;  while y + tile_h <= image_h:  ...  y += tile_h + spacing_y
      x = margin_x;  while x + tile_w <= image_w:  ...  x += tile_w + spacing_x

Ids are handed out consecutively from first_gid. The map's Y convention
never changes this order; only layer placement depends on it. For Y-up
maps each tile region is mirrored vertically once, here, at creation.

=============================================================================
ATLAS TILESETS
=============================================================================

Tiles come from pre-cut atlas regions instead. A region's index is its
local id, so gid = first_gid + index, the same numbering as grid tiles.

=============================================================================
TILE SOURCES
=============================================================================

How tiles are populated depends on how the caller loads resources. A
walker is handed one tile source and calls its populate() for every
tileset:

    GridTileSource(image_resolver)     grid-walks the tileset image
    AtlasTileSource(atlas_resolver,    reads regions of the atlas the map
                    atlas_file)        names in its "atlas" property

The resolvers decide where images come from (see resources/).

=============================================================================
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, Protocol, Tuple, TYPE_CHECKING

from .errors import StructuralError
from .model import StaticTile, Tileset
from .normalizer import CoordinateNormalizer
from .paths import resource_key
from .resources.atlas import AtlasRegion, TextureAtlas
from .resources.images import ImageRegion, ImageResolver

if TYPE_CHECKING:
    from .document import Element
    from .model import Properties, TileMap

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TileMetrics:
    """Tile size and layout of a grid tileset, in pixels."""
    tile_width: int
    tile_height: int
    margin_x: int = 0
    margin_y: int = 0
    spacing_x: int = 0
    spacing_y: int = 0


# =============================================================================
# GRID ENUMERATION
# =============================================================================

def grid_offsets(metrics: TileMetrics, image_width: int,
                 image_height: int) -> Iterator[Tuple[int, int]]:
    """Yield the (x, y) pixel offset of every tile in raster order."""
    if metrics.tile_width <= 0 or metrics.tile_height <= 0:
        raise StructuralError(
            f"Invalid tile size {metrics.tile_width}x{metrics.tile_height}")

    y = metrics.margin_y
    while y + metrics.tile_height <= image_height:
        x = metrics.margin_x
        while x + metrics.tile_width <= image_width:
            yield x, y
            x += metrics.tile_width + metrics.spacing_x
        y += metrics.tile_height + metrics.spacing_y


def populate_grid_tiles(tileset: Tileset, image: ImageRegion, metrics: TileMetrics,
                        normalizer: CoordinateNormalizer) -> int:
    """
    Cut ``image`` into tiles and add them to ``tileset``.

    Returns the number of tiles created.
    """
    gid = tileset.first_gid
    for x, y in grid_offsets(metrics, image.width, image.height):
        region = image.sub_region(x, y, metrics.tile_width, metrics.tile_height)
        if normalizer.region_needs_flip:
            region.flip(False, True)
        tileset.put_tile(gid, StaticTile(id=gid, region=region))
        gid += 1

    created = gid - tileset.first_gid
    logger.debug("Tileset '%s': %d tiles from %s (%dx%d)",
                 tileset.name, created, image.source, image.width, image.height)
    return created


def populate_atlas_tiles(tileset: Tileset, regions: Iterable[AtlasRegion],
                         normalizer: CoordinateNormalizer) -> int:
    """Add one tile per indexed atlas region; returns the number created."""
    created = 0
    for atlas_region in regions:
        # Regions without an index aren't tiles
        if atlas_region.index < 0:
            continue
        region = atlas_region.image_region()
        if normalizer.region_needs_flip:
            region.flip(False, True)
        gid = tileset.first_gid + atlas_region.index
        tileset.put_tile(gid, StaticTile(id=gid, region=region))
        created += 1

    logger.debug("Tileset '%s': %d tiles from atlas", tileset.name, created)
    return created


def apply_tile_overlays(tileset: Tileset, tile_elements: Iterable['Element'],
                        load_properties: Callable[['Properties', 'Element'], None]):
    """
    Merge per-tile <properties> onto already created tiles.

    <tile id="3"> refers to local id 3, i.e. gid first_gid + 3. Overlays for
    tiles the image doesn't contain are skipped.
    """
    for tile_elem in tile_elements:
        local_id = tile_elem.get_int('id', 0)
        tile = tileset.get_tile(tileset.first_gid + local_id)
        if tile is None:
            logger.warning("Tileset '%s' has no tile %d; ignoring its properties",
                           tileset.name, local_id)
            continue
        properties = tile_elem.child('properties')
        if properties is not None:
            load_properties(tile.properties, properties)


# =============================================================================
# TILE SOURCES
# =============================================================================

class TileSource(Protocol):
    def populate(self, tileset: Tileset, metrics: TileMetrics, tile_map: 'TileMap',
                 map_file: Path, image_file: Path,
                 normalizer: CoordinateNormalizer) -> None:
        ...


class GridTileSource:
    """Populates tilesets by grid-walking their image."""

    def __init__(self, image_resolver: ImageResolver):
        self.image_resolver = image_resolver

    def populate(self, tileset: Tileset, metrics: TileMetrics, tile_map: 'TileMap',
                 map_file: Path, image_file: Path,
                 normalizer: CoordinateNormalizer) -> None:
        image = self.image_resolver.get_image(resource_key(image_file))
        populate_grid_tiles(tileset, image, metrics, normalizer)


class AtlasTileSource:
    """
    Populates tilesets from one texture atlas.

    atlas_file is the already resolved atlas path (see
    formats.tmx.find_atlas_file); regions are looked up by its file name
    without extension.
    """

    def __init__(self, atlas_resolver, atlas_file: Path):
        self.atlas_resolver = atlas_resolver
        self.atlas_file = atlas_file

    def populate(self, tileset: Tileset, metrics: TileMetrics, tile_map: 'TileMap',
                 map_file: Path, image_file: Path,
                 normalizer: CoordinateNormalizer) -> None:
        atlas: TextureAtlas = self.atlas_resolver.get_atlas(resource_key(self.atlas_file))
        populate_atlas_tiles(tileset, atlas.find_regions(self.atlas_file.stem), normalizer)

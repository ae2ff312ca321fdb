"""
In-memory tile map model

=============================================================================
STRUCTURE
=============================================================================

    TileMap
    ├── properties          Properties (orientation, width, height, ...)
    ├── tilesets            TilesetCollection
    │   └── Tileset         name, first_gid, {gid: Tile}
    │       └── Tile        StaticTile (image region) or AnimatedTile (frames)
    ├── layers              MapLayers, document order
    │   ├── TileLayer       width × height grid of Cells
    │   │   └── Cell        shared Tile reference + flips + rotation
    │   └── ObjectLayer     list of MapObjects
    │       └── MapObject   Rectangle / Ellipse / Polygon / Polyline
    └── owned_resources     images/atlases opened by a synchronous load

=============================================================================
GLOBAL TILE IDs (GIDs)
=============================================================================

Tiles are keyed by global id across all tilesets:

    Tileset A (first_gid=1):   6 tiles → gids 1-6
    Tileset B (first_gid=7):   4 tiles → gids 7-10

When a format doesn't store first_gid, the next tileset starts right after
the tiles already registered (TilesetCollection.next_first_gid()).

Cells REFERENCE tiles: a 100x100 layer of grass holds 10000 Cells pointing
at the same Tile object.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import (Any, Dict, Iterator, List, Optional, Tuple, Type,
                    TypeVar, Union)

from .codec import Rotation
from .resources.images import ImageRegion

_MISSING = object()

L = TypeVar('L')


# =============================================================================
# PROPERTIES
# =============================================================================

class Properties:
    """
    Ordered key/value properties of a map, tileset, layer, tile or object.

    Values read from documents are strings; the typed getters coerce them:

        props.get_int('width')          # 20
        props.get_bool('solid', False)  # "true" → True
        props.get_float('speed', 1.0)   # missing → 1.0
    """

    def __init__(self, values: Optional[Dict[str, Any]] = None):
        self._values: Dict[str, Any] = dict(values or {})

    def __repr__(self) -> str:
        return f"Properties({self._values!r})"

    def __contains__(self, key: str) -> bool:
        return key in self._values

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other) -> bool:
        if isinstance(other, Properties):
            return self._values == other._values
        if isinstance(other, dict):
            return self._values == other
        return NotImplemented

    def put(self, key: str, value: Any):
        self._values[key] = value

    def put_all(self, other: 'Properties'):
        for key in other:
            self._values[key] = other[key]

    def remove(self, key: str):
        self._values.pop(key, None)

    def keys(self):
        return self._values.keys()

    def items(self):
        return self._values.items()

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def get_int(self, key: str, default: Any = _MISSING) -> int:
        return self._coerce(key, int, default)

    def get_float(self, key: str, default: Any = _MISSING) -> float:
        return self._coerce(key, float, default)

    def get_bool(self, key: str, default: Any = _MISSING) -> bool:
        return self._coerce(key, _to_bool, default)

    def _coerce(self, key, convert, default):
        if key not in self._values:
            if default is _MISSING:
                raise KeyError(key)
            return default
        value = self._values[key]
        try:
            if convert is int and isinstance(value, str):
                # "32.0" is a valid integral property
                return int(float(value)) if '.' in value else int(value)
            return convert(value)
        except (TypeError, ValueError):
            if default is _MISSING:
                raise ValueError(
                    f"Property '{key}' can't be read as {convert.__name__}: {value!r}"
                ) from None
            return default


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in ('true', '1', 'yes'):
        return True
    if text in ('false', '0', 'no', ''):
        return False
    raise ValueError(value)


# =============================================================================
# TILES
# =============================================================================

@dataclass(eq=False)
class StaticTile:
    """A tile showing one image region."""
    id: int                                          # Global tile ID
    region: Optional[ImageRegion] = None             # Owned by the image's loader
    properties: Properties = field(default_factory=Properties)


@dataclass(eq=False)
class AnimatedTile:
    """
    A tile cycling through frame tiles at a fixed interval.

    Frames are ordinary StaticTiles from a tileset; the animation only
    references them.
    """
    id: int = 0                                      # 0 when not registered in a tileset
    frames: List[StaticTile] = field(default_factory=list)
    interval: float = 0.0                            # Seconds per frame
    properties: Properties = field(default_factory=Properties)

    def frame_at(self, elapsed: float) -> Optional[StaticTile]:
        """Frame shown ``elapsed`` seconds after the animation started."""
        if not self.frames:
            return None
        if self.interval <= 0:
            return self.frames[0]
        index = int(elapsed / self.interval) % len(self.frames)
        return self.frames[index]

    @property
    def region(self) -> Optional[ImageRegion]:
        return self.frames[0].region if self.frames else None


Tile = Union[StaticTile, AnimatedTile]


# =============================================================================
# TILESETS
# =============================================================================

@dataclass(eq=False)
class Tileset:
    """Named set of tiles with a contiguous gid range starting at first_gid."""
    name: str = ""
    first_gid: int = 1
    properties: Properties = field(default_factory=Properties)
    tiles: Dict[int, Tile] = field(default_factory=dict)     # gid → Tile

    def __len__(self) -> int:
        return len(self.tiles)

    def __iter__(self) -> Iterator[Tile]:
        return iter(self.tiles.values())

    def get_tile(self, gid: int) -> Optional[Tile]:
        return self.tiles.get(gid)

    def put_tile(self, gid: int, tile: Tile):
        self.tiles[gid] = tile

    @property
    def last_gid(self) -> int:
        """Highest gid in use (first_gid - 1 when the tileset is empty)."""
        return max(self.tiles, default=self.first_gid - 1)


class TilesetCollection:
    """The ordered tilesets of a map."""

    def __init__(self):
        self._tilesets: List[Tileset] = []

    def __iter__(self) -> Iterator[Tileset]:
        return iter(self._tilesets)

    def __len__(self) -> int:
        return len(self._tilesets)

    def __getitem__(self, index: int) -> Tileset:
        return self._tilesets[index]

    def add(self, tileset: Tileset):
        self._tilesets.append(tileset)

    def get_tileset(self, name: str) -> Optional[Tileset]:
        for tileset in self._tilesets:
            if tileset.name == name:
                return tileset
        return None

    def get_tile(self, gid: int) -> Optional[Tile]:
        """
        Find the tile with global id ``gid``, or None.

        Searches from the last registered tileset backwards, so a later
        tileset wins if a document declares overlapping ranges.
        """
        for tileset in reversed(self._tilesets):
            tile = tileset.get_tile(gid)
            if tile is not None:
                return tile
        return None

    def next_first_gid(self) -> int:
        """First gid for a tileset registered after all current ones."""
        return 1 + sum(len(tileset) for tileset in self._tilesets)


# =============================================================================
# TILE LAYERS
# =============================================================================

@dataclass(eq=False)
class Cell:
    """
    One grid position of a tile layer.

    tile is None for an empty position: either nothing was placed there or
    the document's gid matched no known tile. Both read the same.
    """
    tile: Optional[Tile] = None                      # Shared, not owned
    flip_horizontally: bool = False
    flip_vertically: bool = False
    rotation: Rotation = Rotation.NONE

    @property
    def is_empty(self) -> bool:
        return self.tile is None


@dataclass(eq=False)
class TileLayer:
    """
    Grid of cells. Index with get_cell(x, y); row 0 is the bottom row when
    the map was loaded Y-up and the top row when loaded Y-down.
    """
    name: str = ""
    width: int = 0                                   # Width in tiles
    height: int = 0                                  # Height in tiles
    tile_width: int = 0                              # Tile width in pixels
    tile_height: int = 0                             # Tile height in pixels
    visible: bool = True
    opacity: float = 1.0
    properties: Properties = field(default_factory=Properties)
    cells: List[List[Cell]] = field(default_factory=list)    # [y][x]

    def __post_init__(self):
        if not self.cells:
            self.cells = [[Cell() for _ in range(self.width)]
                          for _ in range(self.height)]

    def get_cell(self, x: int, y: int) -> Optional[Cell]:
        """Cell at column x, row y; None outside the layer."""
        if 0 <= x < self.width and 0 <= y < self.height:
            return self.cells[y][x]
        return None

    def set_cell(self, x: int, y: int, cell: Cell):
        if not (0 <= x < self.width and 0 <= y < self.height):
            raise IndexError(f"Cell ({x}, {y}) outside {self.width}x{self.height} layer")
        self.cells[y][x] = cell


# =============================================================================
# MAP OBJECTS
# =============================================================================

@dataclass(eq=False)
class MapObject:
    """Common part of every vector object."""
    name: Optional[str] = None
    type: Optional[str] = None
    visible: bool = True
    properties: Properties = field(default_factory=Properties)


@dataclass(eq=False)
class RectangleMapObject(MapObject):
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0


@dataclass(eq=False)
class EllipseMapObject(MapObject):
    x: float = 0
    y: float = 0
    width: float = 0
    height: float = 0


@dataclass(eq=False)
class PolygonMapObject(MapObject):
    x: float = 0                                     # Position of vertex (0, 0)
    y: float = 0
    vertices: List[Tuple[float, float]] = field(default_factory=list)

    def transformed_vertices(self) -> List[Tuple[float, float]]:
        return [(self.x + vx, self.y + vy) for vx, vy in self.vertices]


@dataclass(eq=False)
class PolylineMapObject(MapObject):
    x: float = 0
    y: float = 0
    vertices: List[Tuple[float, float]] = field(default_factory=list)

    def transformed_vertices(self) -> List[Tuple[float, float]]:
        return [(self.x + vx, self.y + vy) for vx, vy in self.vertices]


@dataclass(eq=False)
class ObjectLayer:
    """Layer of vector objects, in document order."""
    name: str = ""
    visible: bool = True
    opacity: float = 1.0
    properties: Properties = field(default_factory=Properties)
    objects: List[MapObject] = field(default_factory=list)


Layer = Union[TileLayer, ObjectLayer]


class MapLayers:
    """Tile and object layers of a map, in document order."""

    def __init__(self):
        self._layers: List[Layer] = []

    def __iter__(self) -> Iterator[Layer]:
        return iter(self._layers)

    def __len__(self) -> int:
        return len(self._layers)

    def __getitem__(self, index: int) -> Layer:
        return self._layers[index]

    def add(self, layer: Layer):
        self._layers.append(layer)

    def get(self, name: str) -> Optional[Layer]:
        for layer in self._layers:
            if layer.name == name:
                return layer
        return None

    def by_type(self, layer_type: Type[L]) -> List[L]:
        return [layer for layer in self._layers if isinstance(layer, layer_type)]


# =============================================================================
# TILE MAP
# =============================================================================

class TileMap:
    """
    A decoded map. Built once by a walker; callers only read it.

        tile_map = TmxMapLoader().load("level1.tmx")
        ground = tile_map.layers.get("Ground")
        cell = ground.get_cell(5, 10)
        if not cell.is_empty:
            region = cell.tile.region
    """

    def __init__(self):
        self.properties = Properties()
        self.tilesets = TilesetCollection()
        self.layers = MapLayers()
        # Images/atlases a synchronous load opened for this map
        self.owned_resources: List[Any] = []

    def __repr__(self) -> str:
        return (f"<TileMap {self.properties.get('width')}x{self.properties.get('height')}"
                f" tilesets={len(self.tilesets)} layers={len(self.layers)}>")

    def dispose(self):
        """Close the resources a synchronous load attached to this map."""
        for resource in self.owned_resources:
            close = getattr(resource, 'close', None)
            if close is not None:
                close()
        self.owned_resources = []

"""
TMX / Tide tile map loader

Decodes Tiled TMX maps (and legacy Tide maps) into tilesets, tile layers
and object layers.

Requirements:
    pip install pillow numpy
"""

from .codec import (
    Rotation, DecodedCell, CellOrientation,
    decode_cell, encode_cell, compose_cell_orientation, create_cell,
)
from .errors import (
    TiledMapError, StructuralError, UnsupportedEncodingError,
    MalformedDataError, CorruptDataError, ResourceResolutionError,
)
from .layer_data import decode_layer_data
from .loaders import (
    LoaderParameters, MapLoader, TmxMapLoader, TmxAtlasMapLoader, TideMapLoader,
)
from .model import (
    Properties, StaticTile, AnimatedTile, Tileset, TilesetCollection,
    Cell, TileLayer, ObjectLayer, MapLayers, TileMap, MapObject,
    RectangleMapObject, EllipseMapObject, PolygonMapObject, PolylineMapObject,
)
from .normalizer import CoordinateNormalizer
from .resources import AssetDescriptor, ImageRegion, TextureAtlas

__version__ = "1.0.0"
__all__ = [
    "Rotation",
    "DecodedCell",
    "CellOrientation",
    "decode_cell",
    "encode_cell",
    "compose_cell_orientation",
    "create_cell",
    "TiledMapError",
    "StructuralError",
    "UnsupportedEncodingError",
    "MalformedDataError",
    "CorruptDataError",
    "ResourceResolutionError",
    "decode_layer_data",
    "LoaderParameters",
    "MapLoader",
    "TmxMapLoader",
    "TmxAtlasMapLoader",
    "TideMapLoader",
    "Properties",
    "StaticTile",
    "AnimatedTile",
    "Tileset",
    "TilesetCollection",
    "Cell",
    "TileLayer",
    "ObjectLayer",
    "MapLayers",
    "TileMap",
    "MapObject",
    "RectangleMapObject",
    "EllipseMapObject",
    "PolygonMapObject",
    "PolylineMapObject",
    "CoordinateNormalizer",
    "AssetDescriptor",
    "ImageRegion",
    "TextureAtlas",
]

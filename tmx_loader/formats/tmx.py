"""
TMX document walker

=============================================================================
PASS ORDER
=============================================================================

One linear pass over the <map> element, in this order:

1. Map attributes → map properties (orientation, width, height,
   tilewidth, tileheight, backgroundcolor) and the map's <properties>.
   The pixel height (height * tileheight) is what Y-up object
   coordinates are mirrored against.

2. EVERY <tileset>, in document order. Gids are only meaningful once all
   tilesets are registered, so no layer is read before this finishes.

       <tileset firstgid="1" name="terrain" tilewidth="32" tileheight="32"
                margin="1" spacing="1">
           <image source="terrain.png" width="100" height="67"/>
           <tile id="3"><properties>...</properties></tile>
       </tileset>

   External tilesets point at a TSX document. Its image path is relative
   to the TSX file, NOT to the map:

       maps/level1.tmx:   <tileset firstgid="1" source="../tilesets/t.tsx"/>
       tilesets/t.tsx:    <image source="t.png"/>   → tilesets/t.png

3. The remaining children in document order: <layer> and <objectgroup>.

Any missing mandatory element aborts the whole walk.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Callable, List, Optional, Tuple

from ..codec import create_cell, decode_cell
from ..document import Element, parse_document
from ..errors import MalformedDataError, ResourceResolutionError, StructuralError
from ..layer_data import decode_layer_data
from ..model import (EllipseMapObject, MapObject, ObjectLayer, PolygonMapObject,
                     PolylineMapObject, Properties, RectangleMapObject, TileLayer,
                     TileMap, Tileset)
from ..normalizer import CoordinateNormalizer
from ..paths import resolve_relative
from ..tileset_builder import TileMetrics, TileSource, apply_tile_overlays

logger = logging.getLogger(__name__)


def load_properties(properties: Properties, element: Element):
    """
    Merge a <properties> element into ``properties``.

        <property name="solid" value="true"/>
        <property name="text">Multi-line values live in the text</property>

    Values stay strings; Properties' typed getters convert them.
    """
    for prop in element.children_named('property'):
        name = prop.require('name')
        value = prop.get('value')
        if value is None:
            value = prop.text
        properties.put(name, value)


# =============================================================================
# DEPENDENCY DISCOVERY
# =============================================================================

def _tileset_definition(tileset_elem: Element, map_file: Path,
                        parser: Callable[[Path], Element]) -> Tuple[Element, Path]:
    """The element holding the tileset's contents and the file it lives in."""
    source = tileset_elem.get('source')
    if source is None:
        return tileset_elem, map_file
    tsx_file = resolve_relative(map_file, source)
    return parser(tsx_file), tsx_file


def _tileset_image_file(definition: Element, definition_file: Path) -> Tuple[Element, Path]:
    image = definition.require_child('image')
    return image, resolve_relative(definition_file, image.require('source'))


def tileset_image_files(root: Element, map_file: Path,
                        parser: Callable[[Path], Element] = parse_document) -> List[Path]:
    """Images the map's tilesets are cut from, external tilesets included."""
    images: List[Path] = []
    for tileset_elem in root.children_named('tileset'):
        definition, definition_file = _tileset_definition(tileset_elem, map_file, parser)
        _, image_file = _tileset_image_file(definition, definition_file)
        if image_file not in images:
            images.append(image_file)
    return images


def _property_value(prop: Element) -> Optional[str]:
    value = prop.get('value')
    return prop.text if value is None else value


def atlas_files(root: Element, map_file: Path) -> List[Path]:
    """Atlases named by map properties starting with 'atlas'."""
    properties = root.child('properties')
    if properties is None:
        raise StructuralError(f"Couldn't load tilemap '{map_file}', properties not found")

    atlases: List[Path] = []
    for prop in properties.children_named('property'):
        name = prop.get('name', '')
        value = _property_value(prop)
        if name.startswith('atlas') and value and value.strip():
            atlases.append(resolve_relative(map_file, value.strip()))
    return atlases


def find_atlas_file(root: Element, map_file: Path) -> Path:
    """The atlas named by the first non-empty 'atlas' map property."""
    properties = root.child('properties')
    if properties is not None:
        for prop in properties.children_named('property'):
            if prop.get('name') != 'atlas':
                continue
            value = _property_value(prop)
            if value and value.strip():
                return resolve_relative(map_file, value.strip())
    raise ResourceResolutionError(
        f"Cannot find a valid atlas definition in '{map_file}'")


# =============================================================================
# WALKER
# =============================================================================

class TmxMapWalker:
    """
    Builds a TileMap from a TMX root element.

    Parameters:
    -----------
    tile_source : TileSource
        Populates each tileset (grid image or atlas)
    y_up : bool
        Load for a Y-up coordinate system
    parser : callable
        Parses external tileset documents (Path → Element)
    """

    def __init__(self, tile_source: TileSource, y_up: bool = True,
                 parser: Callable[[Path], Element] = parse_document):
        self.tile_source = tile_source
        self.y_up = y_up
        self.parser = parser

    def walk(self, root: Element, map_file: Path) -> TileMap:
        if root.name != 'map':
            raise StructuralError(f"Expected a <map> document, got <{root.name}>")

        tile_map = TileMap()

        # -----------------------------------------------------------------
        # 1. MAP PROPERTIES
        # -----------------------------------------------------------------
        map_width = root.get_int('width', 0)
        map_height = root.get_int('height', 0)
        tile_width = root.get_int('tilewidth', 0)
        tile_height = root.get_int('tileheight', 0)

        props = tile_map.properties
        if root.get('orientation') is not None:
            props.put('orientation', root.get('orientation'))
        props.put('width', map_width)
        props.put('height', map_height)
        props.put('tilewidth', tile_width)
        props.put('tileheight', tile_height)
        if root.get('backgroundcolor') is not None:
            props.put('backgroundcolor', root.get('backgroundcolor'))

        map_properties = root.child('properties')
        if map_properties is not None:
            load_properties(props, map_properties)

        normalizer = CoordinateNormalizer(self.y_up, map_height * tile_height)

        # -----------------------------------------------------------------
        # 2. TILESETS (all of them, before any layer)
        # -----------------------------------------------------------------
        for tileset_elem in root.children_named('tileset'):
            self._load_tileset(tile_map, tileset_elem, map_file, normalizer)

        # -----------------------------------------------------------------
        # 3. LAYERS
        # -----------------------------------------------------------------
        for elem in root:
            if elem.name == 'layer':
                self._load_tile_layer(tile_map, elem, normalizer)
            elif elem.name == 'objectgroup':
                self._load_object_layer(tile_map, elem, normalizer)

        logger.debug("Walked %s: %d tilesets, %d layers",
                     map_file, len(tile_map.tilesets), len(tile_map.layers))
        return tile_map

    # =========================================================================
    # TILESETS
    # =========================================================================

    def _load_tileset(self, tile_map: TileMap, elem: Element, map_file: Path,
                      normalizer: CoordinateNormalizer):
        # firstgid always comes from the map, even for external tilesets
        if elem.get('firstgid') is not None:
            first_gid = elem.get_int('firstgid', 1)
        else:
            first_gid = tile_map.tilesets.next_first_gid()

        definition, definition_file = _tileset_definition(elem, map_file, self.parser)
        image, image_file = _tileset_image_file(definition, definition_file)

        tile_w = definition.get_int('tilewidth', 0)
        tile_h = definition.get_int('tileheight', 0)
        margin = definition.get_int('margin', 0)
        spacing = definition.get_int('spacing', 0)

        tileset = Tileset(name=definition.get('name', ''), first_gid=first_gid)
        props = tileset.properties
        props.put('firstgid', first_gid)
        props.put('imagesource', image.get('source', ''))
        props.put('imagewidth', image.get_int('width', 0))
        props.put('imageheight', image.get_int('height', 0))
        props.put('tilewidth', tile_w)
        props.put('tileheight', tile_h)
        props.put('margin', margin)
        props.put('spacing', spacing)

        metrics = TileMetrics(tile_w, tile_h, margin, margin, spacing, spacing)
        self.tile_source.populate(tileset, metrics, tile_map, map_file, image_file,
                                  normalizer)

        apply_tile_overlays(tileset, definition.children_named('tile'), load_properties)

        tileset_properties = definition.child('properties')
        if tileset_properties is not None:
            load_properties(props, tileset_properties)

        tile_map.tilesets.add(tileset)

    # =========================================================================
    # TILE LAYERS
    # =========================================================================

    def _load_tile_layer(self, tile_map: TileMap, elem: Element,
                         normalizer: CoordinateNormalizer):
        width = elem.get_int('width', 0)
        height = elem.get_int('height', 0)
        parent = elem.parent

        layer = TileLayer(
            name=elem.get('name', ''),
            width=width,
            height=height,
            tile_width=parent.get_int('tilewidth', 0) if parent is not None else 0,
            tile_height=parent.get_int('tileheight', 0) if parent is not None else 0,
            visible=elem.get_int('visible', 1) == 1,
            opacity=elem.get_float('opacity', 1.0),
        )

        data = elem.require_child('data')
        raw_cells = decode_layer_data(data.text, data.get('encoding'),
                                      data.get('compression'), width, height)

        tilesets = tile_map.tilesets
        for index, raw in enumerate(raw_cells.tolist()):
            y, x = divmod(index, width)
            decoded = decode_cell(raw)
            tile = tilesets.get_tile(decoded.gid)
            if tile is None:
                # gid 0 or no such tile: the cell stays empty
                continue
            cell = create_cell(tile, decoded.flip_horizontally, decoded.flip_vertically,
                               decoded.flip_diagonally, normalizer.y_up)
            layer.set_cell(x, normalizer.tile_row(y, height), cell)

        layer_properties = elem.child('properties')
        if layer_properties is not None:
            load_properties(layer.properties, layer_properties)

        tile_map.layers.add(layer)

    # =========================================================================
    # OBJECT LAYERS
    # =========================================================================

    def _load_object_layer(self, tile_map: TileMap, elem: Element,
                           normalizer: CoordinateNormalizer):
        layer = ObjectLayer(
            name=elem.get('name', ''),
            visible=elem.get_int('visible', 1) == 1,
            opacity=elem.get_float('opacity', 1.0),
        )

        layer_properties = elem.child('properties')
        if layer_properties is not None:
            load_properties(layer.properties, layer_properties)

        for object_elem in elem.children_named('object'):
            layer.objects.append(self._load_object(object_elem, normalizer))

        tile_map.layers.add(layer)

    def _load_object(self, elem: Element, normalizer: CoordinateNormalizer) -> MapObject:
        """
        Build the shape an <object> describes.

        The shape is picked by child tag in this order: <polygon>,
        <polyline>, <ellipse>; anything else is a rectangle.
        """
        x = elem.get_float('x', 0)
        y = normalizer.object_y(elem.get_float('y', 0))
        width = elem.get_float('width', 0)
        height = elem.get_float('height', 0)
        anchored_y = normalizer.anchor_y(y, height)

        polygon = elem.child('polygon')
        polyline = elem.child('polyline')

        if polygon is not None:
            obj = PolygonMapObject(x=x, y=y, vertices=_parse_points(polygon, normalizer))
        elif polyline is not None:
            obj = PolylineMapObject(x=x, y=y, vertices=_parse_points(polyline, normalizer))
        elif elem.child('ellipse') is not None:
            obj = EllipseMapObject(x=x, y=anchored_y, width=width, height=height)
        else:
            obj = RectangleMapObject(x=x, y=anchored_y, width=width, height=height)

        obj.name = elem.get('name')
        obj.type = elem.get('type')
        if obj.type is not None:
            obj.properties.put('type', obj.type)
        obj.properties.put('x', x)
        obj.properties.put('y', anchored_y)
        obj.visible = elem.get_int('visible', 1) == 1

        object_properties = elem.child('properties')
        if object_properties is not None:
            load_properties(obj.properties, object_properties)

        return obj


def _parse_points(elem: Element,
                  normalizer: CoordinateNormalizer) -> List[Tuple[float, float]]:
    """Parse points="0,0 32,0 32,-16" into normalized (x, y) vertices."""
    vertices = []
    for token in elem.require('points').split():
        parts = token.split(',')
        if len(parts) != 2:
            raise MalformedDataError(f"Invalid <{elem.name}> point: {token!r}")
        try:
            vx, vy = float(parts[0]), float(parts[1])
        except ValueError as e:
            raise MalformedDataError(f"Invalid <{elem.name}> point: {token!r}") from e
        vertices.append(normalizer.vertex(vx, vy))
    return vertices

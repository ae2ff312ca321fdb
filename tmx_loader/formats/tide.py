"""
Tide (.tide) document walker

=============================================================================
FORMAT
=============================================================================

Tide is an older XML map format. Sizes are written as "W x H" strings and
there are no global tile ids:

    <Map Id="farm">
        <Properties>
            <Property Key="music" Type="String">theme</Property>
        </Properties>
        <TileSheets>
            <TileSheet Id="outdoors">
                <Description>Outdoor tiles</Description>
                <ImageSource>outdoors.png</ImageSource>
                <Alignment SheetSize="3 x 2" TileSize="32 x 32"
                           Margin="1 x 1" Spacing="1 x 1"/>
            </TileSheet>
        </TileSheets>
        <Layers>
            <Layer Id="Back" Visible="True">
                <Dimensions LayerSize="4 x 2" TileSize="32 x 32"/>
                <TileArray>
                    <Row>
                        <TileSheet Ref="outdoors"/>   switches current sheet
                        <Null Count="2"/>             skips 2 columns
                        <Static Index="4"/>           one tile
                        <Animated Interval="250">     one animated tile
                            <Frames>
                                <Static Index="0"/>
                                <Static Index="1"/>
                            </Frames>
                        </Animated>
                    </Row>
                    ...
                </TileArray>
            </Layer>
        </Layers>
    </Map>

Tile sheets get consecutive gid ranges in document order: each starts
right after the tiles of the sheets registered before it.

=============================================================================
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

from ..document import Element
from ..errors import MalformedDataError, StructuralError
from ..model import AnimatedTile, Cell, Properties, StaticTile, TileLayer, TileMap, Tileset
from ..normalizer import CoordinateNormalizer
from ..paths import resolve_relative
from ..tileset_builder import TileMetrics, TileSource
from .tmx import load_properties

logger = logging.getLogger(__name__)


def parse_size(value: Optional[str], what: str) -> Tuple[int, int]:
    """Parse a Tide "W x H" pair."""
    if value is None:
        raise StructuralError(f"Missing Tide size attribute '{what}'")
    parts = value.split('x')
    try:
        if len(parts) != 2:
            raise ValueError(value)
        return int(parts[0].strip()), int(parts[1].strip())
    except ValueError as e:
        raise MalformedDataError(f"Invalid Tide size for '{what}': {value!r}") from e


def load_tide_properties(properties: Properties, element: Element):
    """Merge <Properties><Property Key="...">value</Property></Properties>."""
    for prop in element.children_named('Property'):
        properties.put(prop.require('Key'), prop.text)


def tilesheet_image_files(root: Element, map_file: Path) -> List[Path]:
    """Images referenced by the map's tile sheets."""
    images: List[Path] = []
    for sheet in root.require_child('TileSheets').children_named('TileSheet'):
        image_file = resolve_relative(map_file, sheet.require_child('ImageSource').text.strip())
        if image_file not in images:
            images.append(image_file)
    return images


class TideMapWalker:
    """Builds a TileMap from a Tide root element."""

    def __init__(self, tile_source: TileSource, y_up: bool = True):
        self.tile_source = tile_source
        self.y_up = y_up

    def walk(self, root: Element, map_file: Path) -> TileMap:
        if root.name != 'Map':
            raise StructuralError(f"Expected a <Map> document, got <{root.name}>")

        tile_map = TileMap()

        lowercase_properties = root.child('properties')
        if lowercase_properties is not None:
            load_properties(tile_map.properties, lowercase_properties)
        tide_properties = root.child('Properties')
        if tide_properties is not None:
            load_tide_properties(tile_map.properties, tide_properties)

        # No map-level pixel height in Tide: objects don't exist here
        normalizer = CoordinateNormalizer(self.y_up, 0)

        for sheet in root.require_child('TileSheets').children_named('TileSheet'):
            self._load_tile_sheet(tile_map, sheet, map_file, normalizer)

        for layer in root.require_child('Layers').children_named('Layer'):
            self._load_layer(tile_map, layer, normalizer)

        logger.debug("Walked %s: %d tile sheets, %d layers",
                     map_file, len(tile_map.tilesets), len(tile_map.layers))
        return tile_map

    # =========================================================================
    # TILE SHEETS
    # =========================================================================

    def _load_tile_sheet(self, tile_map: TileMap, elem: Element, map_file: Path,
                         normalizer: CoordinateNormalizer):
        sheet_id = elem.require('Id')
        image_source = elem.require_child('ImageSource').text.strip()
        description = elem.child('Description')

        alignment = elem.require_child('Alignment')
        tile_w, tile_h = parse_size(alignment.get('TileSize'), 'TileSize')
        margin_x, margin_y = parse_size(alignment.get('Margin', '0 x 0'), 'Margin')
        spacing_x, spacing_y = parse_size(alignment.get('Spacing', '0 x 0'), 'Spacing')

        first_gid = tile_map.tilesets.next_first_gid()

        tileset = Tileset(name=sheet_id, first_gid=first_gid)
        props = tileset.properties
        props.put('firstgid', first_gid)
        props.put('imagesource', image_source)
        props.put('tilewidth', tile_w)
        props.put('tileheight', tile_h)
        props.put('marginX', margin_x)
        props.put('marginY', margin_y)
        props.put('spacingX', spacing_x)
        props.put('spacingY', spacing_y)
        if description is not None:
            props.put('description', description.text)

        metrics = TileMetrics(tile_w, tile_h, margin_x, margin_y, spacing_x, spacing_y)
        image_file = resolve_relative(map_file, image_source)
        self.tile_source.populate(tileset, metrics, tile_map, map_file, image_file,
                                  normalizer)

        sheet_properties = elem.child('Properties')
        if sheet_properties is not None:
            load_tide_properties(props, sheet_properties)

        tile_map.tilesets.add(tileset)

    # =========================================================================
    # LAYERS
    # =========================================================================

    def _load_layer(self, tile_map: TileMap, elem: Element,
                    normalizer: CoordinateNormalizer):
        dimensions = elem.require_child('Dimensions')
        width, height = parse_size(dimensions.get('LayerSize'), 'LayerSize')
        tile_w, tile_h = parse_size(dimensions.get('TileSize'), 'TileSize')

        layer = TileLayer(
            name=elem.get('Id', ''),
            width=width,
            height=height,
            tile_width=tile_w,
            tile_height=tile_h,
            visible=elem.get('Visible', 'True').strip().lower() != 'false',
        )

        rows = elem.require_child('TileArray').children_named('Row')
        if len(rows) > height:
            raise MalformedDataError(
                f"Layer '{layer.name}' has {len(rows)} rows, expected {height}")

        # The current sheet carries over from row to row
        cursor = _SheetCursor(tile_map)
        for row_index, row in enumerate(rows):
            y = normalizer.tile_row(row_index, height)
            x = 0
            for child in row:
                if child.name == 'TileSheet':
                    cursor.select(child.require('Ref'))
                elif child.name == 'Null':
                    x += child.get_int('Count', 1)
                elif child.name == 'Static':
                    _check_column(layer, x)
                    layer.set_cell(x, y, Cell(tile=cursor.tile(child)))
                    x += 1
                elif child.name == 'Animated':
                    _check_column(layer, x)
                    layer.set_cell(x, y, Cell(tile=self._animated_tile(child, cursor)))
                    x += 1

        layer_properties = elem.child('Properties')
        if layer_properties is not None:
            load_tide_properties(layer.properties, layer_properties)

        tile_map.layers.add(layer)

    def _animated_tile(self, elem: Element, cursor: '_SheetCursor') -> AnimatedTile:
        interval_ms = elem.get_int('Interval', 0)
        frames = []
        for frame in elem.require_child('Frames'):
            if frame.name == 'TileSheet':
                cursor.select(frame.require('Ref'))
            elif frame.name == 'Static':
                tile = cursor.tile(frame)
                if isinstance(tile, StaticTile):
                    frames.append(tile)
        return AnimatedTile(frames=frames, interval=interval_ms / 1000.0)


class _SheetCursor:
    """The tile sheet a <Row> currently draws from."""

    def __init__(self, tile_map: TileMap):
        self.tilesets = tile_map.tilesets
        self.current: Optional[Tileset] = None

    def select(self, ref: str):
        tileset = self.tilesets.get_tileset(ref)
        if tileset is None:
            raise StructuralError(f"Unknown Tide tile sheet '{ref}'")
        self.current = tileset

    def tile(self, static: Element):
        if self.current is None:
            raise StructuralError("Tide tile placed before any <TileSheet Ref=...>")
        return self.current.get_tile(self.current.first_gid + static.get_int('Index', 0))


def _check_column(layer: TileLayer, x: int):
    if x >= layer.width:
        raise MalformedDataError(
            f"Layer '{layer.name}' row is wider than {layer.width} tiles")

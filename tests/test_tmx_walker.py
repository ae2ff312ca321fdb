"""Tests for walking TMX documents into TileMaps."""

from pathlib import Path

import pytest

from tmx_loader.codec import Rotation
from tmx_loader.document import parse_string
from tmx_loader.errors import (MalformedDataError, ResourceResolutionError, StructuralError,
                               UnsupportedEncodingError)
from tmx_loader.formats.tmx import TmxMapWalker, atlas_files, find_atlas_file, tileset_image_files
from tmx_loader.model import (EllipseMapObject, ObjectLayer, PolygonMapObject,
                              PolylineMapObject, RectangleMapObject, TileLayer)

MAP_FILE = Path('maps/level.tmx')
TERRAIN = {'maps/terrain.png': (100, 67)}

LEVEL = """\
<map version="1.10" orientation="orthogonal" width="2" height="10"
     tilewidth="32" tileheight="32" backgroundcolor="#102030">
  <properties>
    <property name="music" value="theme"/>
    <property name="intro">Welcome
to the farm</property>
  </properties>
  <tileset firstgid="1" name="terrain" tilewidth="32" tileheight="32" margin="1" spacing="1">
    <image source="terrain.png" width="100" height="67"/>
    <tile id="2"><properties><property name="solid" value="true"/></properties></tile>
    <tile id="40"><properties><property name="lost" value="1"/></properties></tile>
  </tileset>
  <layer name="Ground" width="2" height="2" opacity="0.5">
    <properties><property name="depth" value="3"/></properties>
    <data encoding="csv">1,2,3,4</data>
  </layer>
  <objectgroup name="Objects">
    <object id="1" name="box" type="wall" x="10" y="20" width="30" height="40"/>
    <object id="2" name="zone" x="5" y="10" width="4" height="6"><ellipse/></object>
    <object id="3" name="area" x="0" y="100"><polygon points="0,0 10,20 -5,5"/></object>
    <object id="4" name="path" x="8" y="50" visible="0"><polyline points="0,0 4,-4"/></object>
    <object id="5" name="spawn" x="1" y="2"><point/></object>
  </objectgroup>
  <layer name="Top" width="2" height="2" visible="0">
    <data encoding="csv">0,0,0,99</data>
  </layer>
</map>
"""


def _walk(text: str, grid_source, y_up: bool = True, sizes=None):
    walker = TmxMapWalker(grid_source(TERRAIN if sizes is None else sizes), y_up)
    return walker.walk(parse_string(text), MAP_FILE)


class TestMapAndTilesets:
    """Map attributes, properties and tileset registration."""

    def test_map_properties(self, grid_source) -> None:
        tile_map = _walk(LEVEL, grid_source)
        props = tile_map.properties
        assert props['orientation'] == 'orthogonal'
        assert (props['width'], props['height']) == (2, 10)
        assert (props['tilewidth'], props['tileheight']) == (32, 32)
        assert props['backgroundcolor'] == '#102030'
        assert props['music'] == 'theme'

    def test_property_value_falls_back_to_text(self, grid_source) -> None:
        tile_map = _walk(LEVEL, grid_source)
        assert tile_map.properties['intro'] == "Welcome\nto the farm"

    def test_tileset_properties(self, grid_source) -> None:
        tileset = _walk(LEVEL, grid_source).tilesets.get_tileset('terrain')
        assert len(tileset) == 6
        assert tileset.properties == {
            'firstgid': 1, 'imagesource': 'terrain.png', 'imagewidth': 100,
            'imageheight': 67, 'tilewidth': 32, 'tileheight': 32,
            'margin': 1, 'spacing': 1,
        }

    def test_tile_overlay_properties(self, grid_source) -> None:
        tile_map = _walk(LEVEL, grid_source)
        assert tile_map.tilesets.get_tile(3).properties.get_bool('solid')
        assert len(tile_map.tilesets.get_tile(1).properties) == 0

    def test_missing_first_gid_uses_fold(self, grid_source) -> None:
        text = """
        <map width="1" height="1" tilewidth="32" tileheight="32">
          <tileset name="a" tilewidth="32" tileheight="32" margin="1" spacing="1">
            <image source="a.png"/>
          </tileset>
          <tileset name="b" tilewidth="32" tileheight="32">
            <image source="b.png"/>
          </tileset>
        </map>"""
        tile_map = _walk(text, grid_source,
                         sizes={'maps/a.png': (100, 67), 'maps/b.png': (64, 64)})
        assert [t.first_gid for t in tile_map.tilesets] == [1, 7]
        assert tile_map.tilesets.get_tileset('b').last_gid == 10

    def test_tileset_without_image(self, grid_source) -> None:
        text = """
        <map width="1" height="1" tilewidth="32" tileheight="32">
          <tileset firstgid="1" name="a" tilewidth="32" tileheight="32"/>
        </map>"""
        with pytest.raises(StructuralError):
            _walk(text, grid_source)

    def test_image_not_loaded(self, grid_source) -> None:
        with pytest.raises(ResourceResolutionError):
            _walk(LEVEL, grid_source, sizes={})

    def test_wrong_root(self, grid_source) -> None:
        with pytest.raises(StructuralError):
            _walk("<tileset/>", grid_source)


class TestTileLayers:
    """Cell placement, flags and the Y convention."""

    def test_y_up_reverses_rows(self, grid_source) -> None:
        layer = _walk(LEVEL, grid_source).layers.get('Ground')
        assert isinstance(layer, TileLayer)
        assert [layer.get_cell(x, 1).tile.id for x in range(2)] == [1, 2]
        assert [layer.get_cell(x, 0).tile.id for x in range(2)] == [3, 4]

    def test_y_down_keeps_document_rows(self, grid_source) -> None:
        layer = _walk(LEVEL, grid_source, y_up=False).layers.get('Ground')
        assert [layer.get_cell(x, 0).tile.id for x in range(2)] == [1, 2]
        assert [layer.get_cell(x, 1).tile.id for x in range(2)] == [3, 4]

    def test_layer_attributes(self, grid_source) -> None:
        tile_map = _walk(LEVEL, grid_source)
        ground = tile_map.layers.get('Ground')
        assert (ground.tile_width, ground.tile_height) == (32, 32)
        assert ground.opacity == 0.5
        assert ground.visible
        assert ground.properties['depth'] == '3'
        assert not tile_map.layers.get('Top').visible

    def test_unresolved_gids_are_empty(self, grid_source) -> None:
        top = _walk(LEVEL, grid_source).layers.get('Top')
        assert all(cell.is_empty for row in top.cells for cell in row)

    def test_cells_share_tiles(self, grid_source) -> None:
        text = LEVEL.replace("1,2,3,4", "5,5,5,5")
        tile_map = _walk(text, grid_source)
        ground = tile_map.layers.get('Ground')
        tiles = {id(cell.tile) for row in ground.cells for cell in row}
        assert tiles == {id(tile_map.tilesets.get_tile(5))}

    def test_flip_flags(self, grid_source) -> None:
        # H | gid 1, H+V+D | gid 2, D | gid 3, plain gid 4
        text = LEVEL.replace("1,2,3,4", "2147483649,3758096386,536870915,4")
        ground = _walk(text, grid_source, y_up=False).layers.get('Ground')

        flipped = ground.get_cell(0, 0)
        assert flipped.tile.id == 1
        assert (flipped.flip_horizontally, flipped.flip_vertically) == (True, False)
        assert flipped.rotation == Rotation.NONE

        all_flags = ground.get_cell(1, 0)
        assert all_flags.tile.id == 2
        assert (all_flags.flip_horizontally, all_flags.flip_vertically) == (True, False)
        assert all_flags.rotation == Rotation.ROTATE_90

        diagonal = ground.get_cell(0, 1)
        assert diagonal.tile.id == 3
        assert (diagonal.flip_horizontally, diagonal.flip_vertically) == (False, True)
        assert diagonal.rotation == Rotation.ROTATE_90

    def test_base64_layer(self, grid_source, encode_cells) -> None:
        payload = encode_cells([1, 2, 3, 4], 'zlib')
        text = LEVEL.replace('<data encoding="csv">1,2,3,4</data>',
                             f'<data encoding="base64" compression="zlib">{payload}</data>')
        ground = _walk(text, grid_source, y_up=False).layers.get('Ground')
        assert ground.get_cell(1, 1).tile.id == 4

    def test_layer_without_data(self, grid_source) -> None:
        text = LEVEL.replace('<data encoding="csv">1,2,3,4</data>', '')
        with pytest.raises(StructuralError):
            _walk(text, grid_source)

    def test_legacy_xml_tiles_are_unsupported(self, grid_source) -> None:
        text = LEVEL.replace('<data encoding="csv">1,2,3,4</data>',
                             '<data><tile gid="1"/><tile gid="2"/></data>')
        with pytest.raises(UnsupportedEncodingError):
            _walk(text, grid_source)

    def test_wrong_cell_count(self, grid_source) -> None:
        text = LEVEL.replace("1,2,3,4", "1,2,3")
        with pytest.raises(MalformedDataError):
            _walk(text, grid_source)


class TestObjects:
    """Object shapes and their normalized coordinates."""

    def _objects(self, grid_source, y_up=True):
        layer = _walk(LEVEL, grid_source, y_up).layers.get('Objects')
        assert isinstance(layer, ObjectLayer)
        return {obj.name: obj for obj in layer.objects}

    def test_document_order(self, grid_source) -> None:
        layer = _walk(LEVEL, grid_source).layers.get('Objects')
        assert [obj.name for obj in layer.objects] == ['box', 'zone', 'area', 'path', 'spawn']

    def test_rectangle_y_up(self, grid_source) -> None:
        box = self._objects(grid_source)['box']
        assert isinstance(box, RectangleMapObject)
        # 10 rows * 32 px = 320; 320 - 20 = 300; anchored 300 - 40
        assert (box.x, box.y, box.width, box.height) == (10, 260, 30, 40)
        assert box.type == 'wall'
        assert box.properties['type'] == 'wall'
        assert (box.properties['x'], box.properties['y']) == (10, 260)

    def test_rectangle_y_down(self, grid_source) -> None:
        box = self._objects(grid_source, y_up=False)['box']
        assert (box.x, box.y) == (10, 20)

    def test_ellipse(self, grid_source) -> None:
        zone = self._objects(grid_source)['zone']
        assert isinstance(zone, EllipseMapObject)
        assert zone.y == 320 - 10 - 6

    def test_polygon_vertices_are_negated(self, grid_source) -> None:
        area = self._objects(grid_source)['area']
        assert isinstance(area, PolygonMapObject)
        assert area.y == 220
        assert area.vertices == [(0, 0), (10, -20), (-5, -5)]
        assert area.transformed_vertices()[1] == (10, 200)

    def test_polygon_y_down(self, grid_source) -> None:
        area = self._objects(grid_source, y_up=False)['area']
        assert area.y == 100
        assert area.vertices == [(0, 0), (10, 20), (-5, 5)]

    def test_polyline(self, grid_source) -> None:
        path = self._objects(grid_source)['path']
        assert isinstance(path, PolylineMapObject)
        assert path.vertices == [(0, 0), (4, 4)]
        assert not path.visible

    def test_unknown_shape_is_rectangle(self, grid_source) -> None:
        spawn = self._objects(grid_source)['spawn']
        assert isinstance(spawn, RectangleMapObject)
        assert (spawn.width, spawn.height) == (0, 0)

    def test_bad_points(self, grid_source) -> None:
        text = LEVEL.replace('points="0,0 10,20 -5,5"', 'points="0,0 10"')
        with pytest.raises(MalformedDataError):
            _walk(text, grid_source)


class TestDependencyDiscovery:
    """Which files a TMX document needs before it can be walked."""

    def test_embedded_tileset_images(self) -> None:
        assert tileset_image_files(parse_string(LEVEL), MAP_FILE) == [Path('maps/terrain.png')]

    def test_external_tileset_image_is_relative_to_tsx(self) -> None:
        text = '<map><tileset firstgid="1" source="../tilesets/t.tsx"/></map>'
        tsx = parse_string('<tileset name="t"><image source="t.png"/></tileset>')
        parsed = []

        def parser(path):
            parsed.append(path)
            return tsx

        images = tileset_image_files(parse_string(text), MAP_FILE, parser)
        assert parsed == [Path('tilesets/t.tsx')]
        assert images == [Path('tilesets/t.png')]

    def test_atlas_files(self) -> None:
        text = """
        <map>
          <properties>
            <property name="atlas" value="../atlas/tiles.atlas"/>
            <property name="atlas2" value="extra.atlas"/>
            <property name="atlas3" value="  "/>
            <property name="music" value="x.ogg"/>
          </properties>
        </map>"""
        root = parse_string(text)
        assert atlas_files(root, MAP_FILE) == [Path('atlas/tiles.atlas'),
                                               Path('maps/extra.atlas')]
        assert find_atlas_file(root, MAP_FILE) == Path('atlas/tiles.atlas')

    def test_atlas_map_without_properties(self) -> None:
        with pytest.raises(StructuralError):
            atlas_files(parse_string('<map/>'), MAP_FILE)

    def test_no_atlas_property(self) -> None:
        root = parse_string('<map><properties><property name="a" value="b"/></properties></map>')
        with pytest.raises(ResourceResolutionError):
            find_atlas_file(root, MAP_FILE)

"""Tests for the element tree wrapper and relative path resolution."""

from pathlib import Path

import pytest

from tmx_loader.document import parse_document, parse_string
from tmx_loader.errors import ResourceResolutionError, StructuralError
from tmx_loader.paths import resolve_relative, resource_key


class TestElement:
    """Typed getters and navigation."""

    def test_parent_links(self) -> None:
        root = parse_string('<map tilewidth="32"><layer name="a"/></map>')
        layer = root.require_child('layer')
        assert layer.parent is root
        assert root.parent is None

    def test_typed_getters(self) -> None:
        elem = parse_string('<a w="32" f="32.0" o="0.5" v="true" e=""/>')
        assert elem.get_int('w') == 32
        assert elem.get_int('f') == 32
        assert elem.get_int('e', 7) == 7
        assert elem.get_int('missing', 3) == 3
        assert elem.get_float('o') == 0.5
        assert elem.get_bool('v')
        assert not elem.get_bool('missing')

    def test_bad_number(self) -> None:
        elem = parse_string('<a w="wide"/>')
        with pytest.raises(StructuralError):
            elem.get_int('w')
        with pytest.raises(StructuralError):
            elem.get_float('w')

    def test_require(self) -> None:
        elem = parse_string('<a><b/><c/><b/></a>')
        assert len(elem.children_named('b')) == 2
        assert [child.name for child in elem] == ['b', 'c', 'b']
        with pytest.raises(StructuralError):
            elem.require('name')
        with pytest.raises(StructuralError):
            elem.require_child('d')

    def test_text(self) -> None:
        assert parse_string('<data>1,2</data>').text == '1,2'
        assert parse_string('<data/>').text == ''

    def test_malformed_string(self) -> None:
        with pytest.raises(ResourceResolutionError):
            parse_string('<map>')

    def test_parse_document(self, write_text) -> None:
        path = write_text('doc.xml', '<map width="3"/>')
        assert parse_document(path).get_int('width') == 3

    def test_missing_document(self, tmp_path: Path) -> None:
        with pytest.raises(ResourceResolutionError):
            parse_document(tmp_path / 'missing.tmx')


class TestResolveRelative:
    """Paths inside documents are relative to the document."""

    def test_sibling(self) -> None:
        assert resolve_relative('maps/level.tmx', 'terrain.png') == Path('maps/terrain.png')

    def test_parent(self) -> None:
        assert resolve_relative('maps/level.tmx', '../tiles/t.tsx') == Path('tiles/t.tsx')

    def test_backslashes(self) -> None:
        assert resolve_relative('maps/level.tmx', '..\\tiles\\grass.png') == \
            Path('tiles/grass.png')

    def test_dot_segments(self) -> None:
        assert resolve_relative('maps/level.tmx', './a//b.png') == Path('maps/a/b.png')

    def test_climb_above_relative_base(self) -> None:
        assert resolve_relative('level.tmx', '../t.png') == Path('../t.png')
        assert resolve_relative('level.tmx', '../../t.png') == Path('../../t.png')

    def test_absolute_base(self, tmp_path: Path) -> None:
        base = tmp_path / 'maps' / 'level.tmx'
        assert resolve_relative(base, '../t.png') == tmp_path / 't.png'

    def test_resource_key(self) -> None:
        assert resource_key(Path('maps') / 'a.png') == 'maps/a.png'

"""Shared fixtures for tmx_loader tests."""

import base64
import gzip
import struct
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import pytest
from PIL import Image

from tmx_loader.resources import DirectImageResolver
from tmx_loader.tileset_builder import GridTileSource


@dataclass
class FakeImage:
    """Stand-in for a loaded image: the builder only reads its size."""
    width: int
    height: int


class DictAssetManager:
    """Minimal asset manager: get() looks up already loaded assets."""

    def __init__(self, assets: Dict[str, object]):
        self.assets = assets

    def get(self, name: str) -> object:
        return self.assets[name]


def _encode_cells(values: List[int], compression: Optional[str] = None) -> str:
    raw = struct.pack('<%dI' % len(values), *values)
    if compression == 'gzip':
        raw = gzip.compress(raw)
    elif compression == 'zlib':
        raw = zlib.compress(raw)
    return base64.b64encode(raw).decode('ascii')


@pytest.fixture
def encode_cells() -> Callable[..., str]:
    return _encode_cells


@pytest.fixture
def fake_image() -> type:
    return FakeImage


@pytest.fixture
def asset_manager_cls() -> type:
    return DictAssetManager


@pytest.fixture
def grid_source() -> Callable[[Dict[str, Tuple[int, int]]], GridTileSource]:
    """GridTileSource over fake images keyed by resource path."""

    def _make(sizes: Dict[str, Tuple[int, int]]) -> GridTileSource:
        images = {key: FakeImage(*size) for key, size in sizes.items()}
        return GridTileSource(DirectImageResolver(images))

    return _make


@pytest.fixture
def write_image(tmp_path: Path) -> Callable[..., Path]:
    """Write an RGBA PNG below tmp_path and return its path."""

    def _write(relative: str, size: Tuple[int, int],
               color: Tuple[int, int, int, int] = (255, 0, 0, 255)) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        Image.new('RGBA', size, color).save(path)
        return path

    return _write


@pytest.fixture
def write_text(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write a text file below tmp_path and return its path."""

    def _write(relative: str, content: str) -> Path:
        path = tmp_path / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding='utf-8')
        return path

    return _write

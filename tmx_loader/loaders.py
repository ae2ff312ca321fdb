"""
Map loaders: synchronous and two-phase loading of TMX, TMX+atlas and Tide maps

=============================================================================
TWO WAYS TO LOAD
=============================================================================

SYNCHRONOUS (everything in one call):

    loader = TmxMapLoader()
    tile_map = loader.load("maps/level1.tmx")
    ...
    tile_map.dispose()          # closes the images the load opened

    1. parse the map document
    2. open every image (or atlas) the tilesets need, with PIL
    3. walk the document, cutting tiles from those images
    4. attach the opened images to the map as owned_resources

TWO-PHASE (an asset manager owns the images):

    deps = loader.get_dependencies("maps/level1.tmx")      # phase 1
    for dep in deps:
        asset_manager.load(dep.path, dep.kind)             # embedder's job
    tile_map = loader.load_async(asset_manager, "maps/level1.tmx")   # phase 2

    Phase 2 re-resolves and re-parses the same file; nothing is cached on
    the loader between the phases. Images are looked up with
    asset_manager.get(path), using the paths phase 1 reported.

=============================================================================
FORMATS
=============================================================================

Each loader pairs the shared driving code (MapLoader) with a format
object that knows three things: which resources a document needs, how
to open them, and which walker + tile source builds the map.

    TmxMapLoader        TMX, tiles cut from tileset images
    TmxAtlasMapLoader   TMX, tiles taken from a texture atlas
    TideMapLoader       Tide, tiles cut from tile sheet images

=============================================================================
"""

import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Union

from .document import Element, parse_document
from .formats.tide import TideMapWalker, tilesheet_image_files
from .formats.tmx import TmxMapWalker, atlas_files, find_atlas_file, tileset_image_files
from .model import TileMap
from .paths import resource_key
from .resources.atlas import AssetManagerAtlasResolver, DirectAtlasResolver, TextureAtlas
from .resources.images import (AssetDescriptor, AssetManager, AssetManagerImageResolver,
                               DirectImageResolver, load_image)
from .tileset_builder import AtlasTileSource, GridTileSource, TileSource

logger = logging.getLogger(__name__)


@dataclass
class LoaderParameters:
    """Configuration of a map load."""
    y_up: bool = True                    # Load for a Y-up coordinate system
    convert_mode: Optional[str] = None   # PIL mode images are converted to (e.g. "RGBA")


class MapFormat(Protocol):
    def dependencies(self, root: Element, map_file: Path) -> List[AssetDescriptor]:
        ...

    def open_resources(self, root: Element, map_file: Path,
                       parameters: LoaderParameters) -> Dict[str, Any]:
        ...

    def direct_tile_source(self, resources: Dict[str, Any], root: Element,
                           map_file: Path) -> TileSource:
        ...

    def managed_tile_source(self, asset_manager: AssetManager, root: Element,
                            map_file: Path) -> TileSource:
        ...

    def walk(self, root: Element, map_file: Path, tile_source: TileSource,
             parameters: LoaderParameters) -> TileMap:
        ...


def _close_all(resources: Iterable[Any]):
    for resource in resources:
        close = getattr(resource, 'close', None)
        if close is not None:
            close()


def _open_all(paths: Iterable[Path], opener: Callable[[Path], Any]) -> Dict[str, Any]:
    """Open every path once; on failure close what was already opened."""
    resources: Dict[str, Any] = {}
    try:
        for path in paths:
            key = resource_key(path)
            if key not in resources:
                resources[key] = opener(path)
    except Exception:
        _close_all(resources.values())
        raise
    return resources


# =============================================================================
# FORMATS
# =============================================================================

def _image_dependencies(paths: Iterable[Path]) -> List[AssetDescriptor]:
    return [AssetDescriptor(resource_key(path), "image") for path in paths]


def _open_images(paths: Iterable[Path], parameters: LoaderParameters) -> Dict[str, Any]:
    return _open_all(paths, lambda path: load_image(path, parameters.convert_mode))


class TmxImageFormat:
    """TMX maps whose tilesets are cut from their own images."""

    def dependencies(self, root: Element, map_file: Path) -> List[AssetDescriptor]:
        return _image_dependencies(tileset_image_files(root, map_file))

    def open_resources(self, root: Element, map_file: Path,
                       parameters: LoaderParameters) -> Dict[str, Any]:
        return _open_images(tileset_image_files(root, map_file), parameters)

    def direct_tile_source(self, resources: Dict[str, Any], root: Element,
                           map_file: Path) -> TileSource:
        return GridTileSource(DirectImageResolver(resources))

    def managed_tile_source(self, asset_manager: AssetManager, root: Element,
                            map_file: Path) -> TileSource:
        return GridTileSource(AssetManagerImageResolver(asset_manager))

    def walk(self, root: Element, map_file: Path, tile_source: TileSource,
             parameters: LoaderParameters) -> TileMap:
        return TmxMapWalker(tile_source, parameters.y_up).walk(root, map_file)


class TmxAtlasFormat:
    """
    TMX maps whose tiles come from the atlas named by the 'atlas' map property.

    The atlas path is resolved once with find_atlas_file(), both to open
    the atlas and to look it up again while walking, so the two always
    agree on the key.
    """

    def dependencies(self, root: Element, map_file: Path) -> List[AssetDescriptor]:
        return [AssetDescriptor(resource_key(path), "atlas")
                for path in atlas_files(root, map_file)]

    def open_resources(self, root: Element, map_file: Path,
                       parameters: LoaderParameters) -> Dict[str, Any]:
        def open_atlas(path: Path) -> TextureAtlas:
            return TextureAtlas.load(
                path, image_loader=lambda page: load_image(page, parameters.convert_mode))

        return _open_all([find_atlas_file(root, map_file)], open_atlas)

    def direct_tile_source(self, resources: Dict[str, Any], root: Element,
                           map_file: Path) -> TileSource:
        return AtlasTileSource(DirectAtlasResolver(resources),
                               find_atlas_file(root, map_file))

    def managed_tile_source(self, asset_manager: AssetManager, root: Element,
                            map_file: Path) -> TileSource:
        return AtlasTileSource(AssetManagerAtlasResolver(asset_manager),
                               find_atlas_file(root, map_file))

    def walk(self, root: Element, map_file: Path, tile_source: TileSource,
             parameters: LoaderParameters) -> TileMap:
        return TmxMapWalker(tile_source, parameters.y_up).walk(root, map_file)


class TideFormat:
    """Tide maps; tile sheets are cut from their images."""

    def dependencies(self, root: Element, map_file: Path) -> List[AssetDescriptor]:
        return _image_dependencies(tilesheet_image_files(root, map_file))

    def open_resources(self, root: Element, map_file: Path,
                       parameters: LoaderParameters) -> Dict[str, Any]:
        return _open_images(tilesheet_image_files(root, map_file), parameters)

    def direct_tile_source(self, resources: Dict[str, Any], root: Element,
                           map_file: Path) -> TileSource:
        return GridTileSource(DirectImageResolver(resources))

    def managed_tile_source(self, asset_manager: AssetManager, root: Element,
                            map_file: Path) -> TileSource:
        return GridTileSource(AssetManagerImageResolver(asset_manager))

    def walk(self, root: Element, map_file: Path, tile_source: TileSource,
             parameters: LoaderParameters) -> TileMap:
        return TideMapWalker(tile_source, parameters.y_up).walk(root, map_file)


# =============================================================================
# LOADERS
# =============================================================================

class MapLoader:
    """
    Drives a load for one map format.

    Parameters:
    -----------
    parameters : LoaderParameters, optional
        Defaults for every load (a call can pass its own)
    file_resolver : callable, optional
        Turns the file name given to load() into a Path. Defaults to Path,
        i.e. names are taken relative to the working directory.
    """

    map_format: MapFormat = TmxImageFormat()

    def __init__(self, parameters: Optional[LoaderParameters] = None,
                 file_resolver: Optional[Callable[[str], Path]] = None):
        self.parameters = parameters or LoaderParameters()
        self.file_resolver = file_resolver or Path

    def resolve(self, filename: Union[str, Path]) -> Path:
        return Path(self.file_resolver(str(filename)))

    def _parameters(self, parameters: Optional[LoaderParameters]) -> LoaderParameters:
        return replace(parameters if parameters is not None else self.parameters)

    def load(self, filename: Union[str, Path],
             parameters: Optional[LoaderParameters] = None) -> TileMap:
        """Load a map and everything it needs, synchronously."""
        params = self._parameters(parameters)
        map_file = self.resolve(filename)
        root = parse_document(map_file)

        resources = self.map_format.open_resources(root, map_file, params)
        try:
            tile_source = self.map_format.direct_tile_source(resources, root, map_file)
            tile_map = self.map_format.walk(root, map_file, tile_source, params)
        except Exception:
            _close_all(resources.values())
            raise

        tile_map.owned_resources = list(resources.values())
        logger.info("Loaded map %s (%d tilesets, %d layers, %d resources)",
                    resource_key(map_file), len(tile_map.tilesets),
                    len(tile_map.layers), len(resources))
        return tile_map

    def get_dependencies(self, filename: Union[str, Path],
                         parameters: Optional[LoaderParameters] = None) -> List[AssetDescriptor]:
        """Phase 1 of a two-phase load: the resources the map needs."""
        map_file = self.resolve(filename)
        root = parse_document(map_file)
        dependencies = self.map_format.dependencies(root, map_file)
        logger.debug("Map %s depends on %s", resource_key(map_file),
                     [dep.path for dep in dependencies])
        return dependencies

    def load_async(self, asset_manager: AssetManager, filename: Union[str, Path],
                   parameters: Optional[LoaderParameters] = None) -> TileMap:
        """Phase 2 of a two-phase load: build the map from managed resources."""
        params = self._parameters(parameters)
        map_file = self.resolve(filename)
        root = parse_document(map_file)

        tile_source = self.map_format.managed_tile_source(asset_manager, root, map_file)
        tile_map = self.map_format.walk(root, map_file, tile_source, params)
        logger.info("Loaded map %s from managed resources (%d tilesets, %d layers)",
                    resource_key(map_file), len(tile_map.tilesets), len(tile_map.layers))
        return tile_map


class TmxMapLoader(MapLoader):
    """Loads TMX maps with image-based tilesets."""
    map_format = TmxImageFormat()


class TmxAtlasMapLoader(MapLoader):
    """Loads TMX maps whose tiles are packed in a texture atlas."""
    map_format = TmxAtlasFormat()


class TideMapLoader(MapLoader):
    """Loads Tide maps."""
    map_format = TideFormat()

"""Document walkers for the supported map formats"""

from .tmx import TmxMapWalker, load_properties, tileset_image_files, atlas_files, find_atlas_file
from .tide import TideMapWalker, load_tide_properties, tilesheet_image_files

__all__ = [
    "TmxMapWalker",
    "TideMapWalker",
    "load_properties",
    "load_tide_properties",
    "tileset_image_files",
    "tilesheet_image_files",
    "atlas_files",
    "find_atlas_file",
]

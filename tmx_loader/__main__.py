#!/usr/bin/env python3

"""
TMX Loader - print a summary of a decoded tile map

Usage:
    python -m tmx_loader <map> [--atlas | --tide] [--y-down] [--deps] [-v]

Options:
    --atlas     TMX map whose tiles come from a texture atlas
    --tide      Tide (.tide) map
    --y-down    Keep the document's Y-down convention (default is Y-up)
    --deps      Only list the images/atlases the map needs
    -v          Debug logging
"""

import logging
import sys
from pathlib import Path

from .errors import TiledMapError
from .loaders import LoaderParameters, TideMapLoader, TmxAtlasMapLoader, TmxMapLoader
from .model import ObjectLayer, TileLayer


def print_summary(tile_map):
    props = tile_map.properties
    print(f"Map: {props.get('width')}x{props.get('height')} tiles, "
          f"{props.get('tilewidth')}x{props.get('tileheight')} px "
          f"({props.get('orientation', 'unknown')})")

    print(f"\n=== Tilesets ({len(tile_map.tilesets)}) ===")
    for tileset in tile_map.tilesets:
        print(f"  {tileset.name}: gids {tileset.first_gid}-{tileset.last_gid} "
              f"({len(tileset)} tiles)")

    print(f"\n=== Layers ({len(tile_map.layers)}) ===")
    for layer in tile_map.layers:
        if isinstance(layer, TileLayer):
            used = sum(1 for row in layer.cells for cell in row if not cell.is_empty)
            print(f"  [tiles]   {layer.name}: {layer.width}x{layer.height}, "
                  f"{used} cells used, opacity {layer.opacity}"
                  f"{'' if layer.visible else ', hidden'}")
        elif isinstance(layer, ObjectLayer):
            print(f"  [objects] {layer.name}: {len(layer.objects)} objects")
            for obj in layer.objects:
                print(f"      {type(obj).__name__} {obj.name or ''} "
                      f"at ({obj.properties.get('x')}, {obj.properties.get('y')})")


def main():
    args = [arg for arg in sys.argv[1:] if not arg.startswith('-')]
    flags = {arg for arg in sys.argv[1:] if arg.startswith('-')}

    if len(args) != 1:
        print(__doc__)
        sys.exit(1)

    logging.basicConfig(
        level=logging.DEBUG if '-v' in flags else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    source_path = args[0]
    if not Path(source_path).exists():
        print(f"Error: File '{source_path}' not found")
        sys.exit(1)

    if '--tide' in flags:
        loader = TideMapLoader()
    elif '--atlas' in flags:
        loader = TmxAtlasMapLoader()
    else:
        loader = TmxMapLoader()
    parameters = LoaderParameters(y_up='--y-down' not in flags)

    try:
        if '--deps' in flags:
            for dep in loader.get_dependencies(source_path, parameters):
                print(f"{dep.kind}: {dep.path}")
            return
        tile_map = loader.load(source_path, parameters)
    except TiledMapError as e:
        print(f"Error: {e}")
        sys.exit(1)

    try:
        print_summary(tile_map)
    finally:
        tile_map.dispose()


if __name__ == "__main__":
    main()

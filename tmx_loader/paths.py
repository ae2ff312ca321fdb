"""Relative path resolution for map, tileset, image and atlas references."""

import re
from pathlib import Path
from typing import Union

_SEPARATORS = re.compile(r'[\\/]+')


def resolve_relative(base_file: Union[str, Path], path: str) -> Path:
    """
    Resolve ``path`` against the directory that contains ``base_file``.

    Maps written on Windows use backslashes, so both separators are
    accepted. '..' climbs one directory, '.' and empty segments are skipped.

        resolve_relative("maps/level1.tmx", "..\\tiles/grass.png")
        → Path("tiles/grass.png")
    """
    result = Path(base_file).parent
    for token in _SEPARATORS.split(path):
        if token in ('', '.'):
            continue
        if token == '..':
            # A relative base can't climb past its start: keep the '..'
            if result.name in ('', '..') and not result.is_absolute():
                result = result / '..'
            else:
                result = result.parent
        else:
            result = result / token
    return result


def resource_key(path: Union[str, Path]) -> str:
    """Key under which a resolved image or atlas is stored and looked up."""
    return Path(path).as_posix()

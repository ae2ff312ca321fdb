"""
Exceptions raised while decoding tile maps

=============================================================================
ERROR TAXONOMY
=============================================================================

Every failure of a load is fatal: the loader never hands back a half-built
map. The classes below tell the caller WHAT went wrong:

    TiledMapError
    ├── StructuralError          required element/attribute is missing
    ├── UnsupportedEncodingError unknown layer encoding or compression
    ├── MalformedDataError       bad CSV token, wrong cell count, short payload
    ├── CorruptDataError         gzip/zlib stream could not be inflated
    └── ResourceResolutionError  image, atlas or external tileset unavailable

A cell whose gid matches no tile is NOT an error: it is an empty cell.

=============================================================================
"""

from typing import Optional


class TiledMapError(Exception):
    """Base class for all tile map decoding errors."""


class StructuralError(TiledMapError):
    """A mandatory element or attribute is absent from the document."""


class UnsupportedEncodingError(TiledMapError):
    """
    Layer data uses an encoding or compression this loader doesn't know.

    The offending token is kept in ``value`` so callers can report it.
    """

    def __init__(self, message: str, value: Optional[str] = None):
        super().__init__(message)
        self.value = value


class MalformedDataError(TiledMapError):
    """Layer or object data can't be parsed (bad token, wrong size)."""


class CorruptDataError(TiledMapError):
    """Compressed layer data failed to decompress."""


class ResourceResolutionError(TiledMapError):
    """An image, atlas or external document could not be found or read."""

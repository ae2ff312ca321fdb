"""
Tile layer data decoding

=============================================================================
DATA ENCODINGS
=============================================================================

The <data> element of a tile layer holds width × height cell values:

1. CSV (also accepted as "plain"):
   <data encoding="csv">
       1,2,3,4,
       5,6,7,8
   </data>

2. Base64, little-endian uint32 per cell:
   <data encoding="base64">
       AQAAAAIAAAADAAAABAAAAA==
   </data>

3. Base64 + compression ("gzip" or "zlib"):
   <data encoding="base64" compression="zlib">
       eJxjZGBgYAJiZiBmAWIAAEgABw==
   </data>

The legacy form with one <tile gid="..."/> element per cell (no encoding
attribute) is rejected, as is any encoding or compression not listed here.

=============================================================================
OUTPUT
=============================================================================

A numpy uint32 array of exactly width × height raw values in DOCUMENT
order (row 0 first). Flip flags are still set; splitting them off and
flipping rows for Y-up happens when cells are placed in the grid.

=============================================================================
"""

import base64
import binascii
import gzip
import logging
import zlib
from typing import Optional

import numpy as np

from .errors import CorruptDataError, MalformedDataError, UnsupportedEncodingError

logger = logging.getLogger(__name__)

CSV_ENCODINGS = ('csv', 'plain')
BASE64_ENCODING = 'base64'
NO_COMPRESSION = (None, 'none')
COMPRESSIONS = ('gzip', 'zlib')

CELL_DTYPE = np.dtype('<u4')    # little-endian unsigned 32-bit
MAX_CELL_VALUE = 0xFFFFFFFF


def decode_layer_data(text: Optional[str], encoding: Optional[str],
                      compression: Optional[str], width: int,
                      height: int) -> np.ndarray:
    """
    Decode the content of a <data> element into raw cell values.

    Parameters:
    -----------
    text : str
        Text content of the element
    encoding : str or None
        'csv', 'plain' or 'base64'
    compression : str or None
        None, 'none', 'gzip' or 'zlib' (base64 only)
    width, height : int
        Layer size in tiles; the result has exactly width * height entries

    Raises:
    -------
    UnsupportedEncodingError, MalformedDataError, CorruptDataError
    """
    if encoding is None:
        raise UnsupportedEncodingError(
            "Unsupported encoding (XML) for TMX layer data", None)

    count = width * height

    if encoding in CSV_ENCODINGS:
        if compression not in NO_COMPRESSION:
            raise UnsupportedEncodingError(
                f"Compression '{compression}' can't be combined with {encoding} data",
                compression)
        return _decode_csv(text or "", count)

    if encoding == BASE64_ENCODING:
        if compression not in NO_COMPRESSION and compression not in COMPRESSIONS:
            raise UnsupportedEncodingError(
                f"Unrecognised compression ({compression}) for TMX layer data",
                compression)
        raw = _decode_base64(text or "")
        if compression in COMPRESSIONS:
            raw = _decompress(raw, compression)
        return _read_cells(raw, count)

    # Probably a feature of a newer editor version
    raise UnsupportedEncodingError(
        f"Unrecognised encoding ({encoding}) for TMX layer data", encoding)


# =============================================================================
# CSV
# =============================================================================

def _decode_csv(text: str, count: int) -> np.ndarray:
    tokens = [token.strip() for token in text.strip().split(',')]
    # Tolerate a trailing comma after the last value
    if len(tokens) > 1 and tokens[-1] == '':
        tokens.pop()
    if tokens == ['']:
        tokens = []

    if len(tokens) != count:
        raise MalformedDataError(
            f"CSV layer data has {len(tokens)} values, expected {count}")

    values = []
    for index, token in enumerate(tokens):
        if not (token.isascii() and token.isdigit()):
            raise MalformedDataError(
                f"CSV layer data value #{index} is not an unsigned integer: {token!r}")
        value = int(token)
        if value > MAX_CELL_VALUE:
            raise MalformedDataError(
                f"CSV layer data value #{index} exceeds 32 bits: {value}")
        values.append(value)

    return np.array(values, dtype=np.uint32)


# =============================================================================
# BASE64 + COMPRESSION
# =============================================================================

def _decode_base64(text: str) -> bytes:
    # Editors wrap the payload in newlines and indentation
    payload = ''.join(text.split())
    try:
        return base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise MalformedDataError(f"Invalid base64 layer data: {e}") from e


def _decompress(raw: bytes, compression: str) -> bytes:
    try:
        if compression == 'gzip':
            return gzip.decompress(raw)
        return zlib.decompress(raw)
    except (OSError, EOFError, zlib.error) as e:
        raise CorruptDataError(
            f"Error reading {compression} compressed layer data: {e}") from e


def _read_cells(raw: bytes, count: int) -> np.ndarray:
    needed = count * CELL_DTYPE.itemsize
    if len(raw) < needed:
        raise MalformedDataError(
            f"Layer data has {len(raw)} bytes, expected at least {needed}")
    if len(raw) > needed:
        logger.debug("Ignoring %d trailing bytes of layer data", len(raw) - needed)
    cells = np.frombuffer(raw, dtype=CELL_DTYPE, count=count)
    return cells.astype(np.uint32)

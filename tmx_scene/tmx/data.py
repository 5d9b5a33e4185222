"""
Tile layer data decoding

=============================================================================
DATA ENCODINGS
=============================================================================

TMX supports multiple encodings for the grid of tiles in a layer:

1. XML (deprecated):
   <data>
       <tile gid="1"/><tile gid="2"/><tile/>...
   </data>

2. CSV:
   <data encoding="csv">
       1,2,3,4,
       5,6,7,8
   </data>

3. Base64, optionally compressed:
   <data encoding="base64" compression="zlib">
       eJxjZGBgYAJiZiBmAWIAADgABQ==
   </data>

   compression: none, "gzip", "zlib" or "zstd"

Whatever the encoding, the result is a flat, row-major sequence of
width * height 32-bit words. The encoding is fully opaque past this module.

=============================================================================
GID BIT LAYOUT
=============================================================================

Each 32-bit word packs the global tile id and three flip flags:

    bit 31        bit 30      bit 29      bits 0-28
    +-----------+-----------+-----------+---------------------+
    | flip H    | flip V    | flip D    | global tile id      |
    +-----------+-----------+-----------+---------------------+

GID 0 = empty cell.

The diagonal flag transposes the tile (swaps x and y). When rendering,
apply the diagonal flip first, then horizontal, then vertical.

=============================================================================
"""

import base64
import binascii
import gzip
import logging
import re
import zlib
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Iterable, NamedTuple, Optional, Tuple

import numpy as np
import zstandard

from ..errors import (
    CellCountMismatch, DecompressionFailure, MalformedDocument, UnsupportedFeature,
)
from .reader import describe

logger = logging.getLogger(__name__)

# Bit layout as Tiled writes it: 31 horizontal, 30 vertical, 29 diagonal
GID_FLIP_HORIZONTAL = 1 << 31
GID_FLIP_VERTICAL = 1 << 30
GID_FLIP_DIAGONAL = 1 << 29
GID_FLAGS_SHIFT = 29
GID_MASK = GID_FLIP_DIAGONAL - 1

MAX_WORD = 0xFFFFFFFF

ENCODINGS = (None, 'csv', 'base64')
COMPRESSIONS = (None, 'gzip', 'zlib', 'zstd')

_CSV_SEPARATORS = re.compile(r'[,\s]+')


# =============================================================================
# FLIP FLAGS
# =============================================================================

class FlipFlags(NamedTuple):
    """Flip flags carried in the top three bits of a GID."""
    horizontal: bool = False
    vertical: bool = False
    diagonal: bool = False

    @classmethod
    def from_bits(cls, bits: int) -> 'FlipFlags':
        """Build from the 3-bit value (raw_gid >> 29)."""
        return cls(bool(bits & 0b100), bool(bits & 0b010), bool(bits & 0b001))

    def to_bits(self) -> int:
        return (self.horizontal << 2) | (self.vertical << 1) | int(self.diagonal)

    @property
    def any(self) -> bool:
        return self.horizontal or self.vertical or self.diagonal

    def transform(self) -> Tuple[Tuple[int, int], Tuple[int, int]]:
        """
        2x2 matrix mapping tile-centred (x, y) to flipped coordinates.

        Built in rendering order: transpose, then mirror x, then mirror y.

            no flags        -> ((1, 0), (0, 1))
            diagonal        -> ((0, 1), (1, 0))
            diagonal + H    -> ((0, -1), (1, 0))    (90 degrees clockwise)
        """
        rows = [[1, 0], [0, 1]]
        if self.diagonal:
            rows = [[0, 1], [1, 0]]
        if self.horizontal:
            rows[0] = [-v for v in rows[0]]
        if self.vertical:
            rows[1] = [-v for v in rows[1]]
        return (rows[0][0], rows[0][1]), (rows[1][0], rows[1][1])


NO_FLIP = FlipFlags()


def split_gid(raw: int) -> Tuple[int, FlipFlags]:
    """
    Separate a raw 32-bit word into (gid, flip flags).

    Example:
    --------
    split_gid(0xE0000005) -> (5, FlipFlags(True, True, True))
    split_gid(5)          -> (5, FlipFlags(False, False, False))
    """
    return raw & GID_MASK, FlipFlags.from_bits((raw >> GID_FLAGS_SHIFT) & 0b111)


def join_gid(gid: int, flip: FlipFlags = NO_FLIP) -> int:
    """Inverse of split_gid()."""
    return (gid & GID_MASK) | (flip.to_bits() << GID_FLAGS_SHIFT)


# =============================================================================
# LAYER CELLS
# =============================================================================

@dataclass(frozen=True, eq=False)
class LayerCells:
    """
    Decoded cells of a tile layer.

    Two parallel, read-only numpy arrays of length width * height, row-major:

    gids  : uint32, flip bits stripped (0 = empty)
    flags : uint8, the 3-bit flip value of each cell (see FlipFlags)

    Index calculation: index = row * width + col
    """
    gids: np.ndarray
    flags: np.ndarray

    @classmethod
    def from_raw(cls, raw: np.ndarray) -> 'LayerCells':
        raw = np.asarray(raw, dtype=np.uint32)
        gids = (raw & np.uint32(GID_MASK)).astype(np.uint32)
        flags = (raw >> np.uint32(GID_FLAGS_SHIFT)).astype(np.uint8)
        gids.flags.writeable = False
        flags.flags.writeable = False
        return cls(gids=gids, flags=flags)

    @classmethod
    def empty(cls, count: int) -> 'LayerCells':
        return cls.from_raw(np.zeros(count, dtype=np.uint32))

    def __len__(self) -> int:
        return len(self.gids)

    def __eq__(self, other) -> bool:
        if not isinstance(other, LayerCells):
            return NotImplemented
        return (np.array_equal(self.gids, other.gids)
                and np.array_equal(self.flags, other.flags))

    __hash__ = None

    def cell(self, index: int) -> Tuple[int, FlipFlags]:
        return int(self.gids[index]), FlipFlags.from_bits(int(self.flags[index]))

    def occupied(self) -> np.ndarray:
        """Indices of non-empty cells, in row-major order."""
        return np.flatnonzero(self.gids)

    def raw(self) -> np.ndarray:
        """Recombine gids and flags into the original 32-bit words."""
        return self.gids | (self.flags.astype(np.uint32) << np.uint32(GID_FLAGS_SHIFT))


# =============================================================================
# DECODING
# =============================================================================

def _decode_csv(text: str) -> np.ndarray:
    tokens = [t for t in _CSV_SEPARATORS.split(text.strip()) if t]
    values = []
    for token in tokens:
        try:
            value = int(token)
        except ValueError as e:
            raise MalformedDocument(f"invalid CSV tile value {token!r}") from e
        if not 0 <= value <= MAX_WORD:
            raise MalformedDocument(f"CSV tile value out of range: {token}")
        values.append(value)
    return np.array(values, dtype=np.uint32)


def _decompress(raw: bytes, compression: str, expected_count: int) -> bytes:
    try:
        if compression == 'zlib':
            return zlib.decompress(raw)
        if compression == 'gzip':
            return gzip.decompress(raw)
        return _decompress_zstd(raw, expected_count)
    except (zlib.error, EOFError, OSError, zstandard.ZstdError) as e:
        logger.debug("Decompression failed (%s): %s", compression, e)
        raise DecompressionFailure(compression, str(e)) from e


def _decompress_zstd(raw: bytes, expected_count: int) -> bytes:
    limit = expected_count * 4
    dctx = zstandard.ZstdDecompressor()
    size = zstandard.frame_content_size(raw)
    if size != -1:
        if size != limit:
            raise CellCountMismatch(expected_count, size // 4, f"zstd frame holds {size} bytes")
        return dctx.decompress(raw)

    # No content size in the frame header: stream, reading one byte past the limit
    out = bytearray()
    with dctx.stream_reader(raw) as reader:
        while len(out) <= limit:
            chunk = reader.read(limit + 1 - len(out))
            if not chunk:
                break
            out += chunk
    if len(out) > limit:
        raise CellCountMismatch(expected_count, len(out) // 4,
                                f"zstd frame holds more than {limit} bytes")
    return bytes(out)


def _decode_base64(text: str, compression: Optional[str], expected_count: int) -> np.ndarray:
    # Tiled wraps the payload in newlines and indentation
    compact = ''.join(text.split())
    try:
        raw = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedDocument(f"invalid base64 tile data: {e}") from e

    if compression:
        raw = _decompress(raw, compression, expected_count)

    # Each tile is 4 bytes (little-endian uint32)
    if len(raw) % 4:
        raise CellCountMismatch(expected_count, len(raw) // 4,
                                f"{len(raw)} bytes is not a multiple of 4")
    return np.frombuffer(raw, dtype='<u4').astype(np.uint32)


def decode_payload(text: Optional[str], encoding: Optional[str],
                   compression: Optional[str], expected_count: int) -> np.ndarray:
    """
    Decode a text payload to a flat array of raw 32-bit words.

    Parameters:
    -----------
    text : str
        Content of the <data> element
    encoding : str or None
        'csv' or 'base64' (None is only valid with XML children, see
        decode_layer_data)
    compression : str or None
        'gzip', 'zlib', 'zstd' or None; only valid with base64
    expected_count : int
        width * height of the layer

    Returns:
    --------
    np.ndarray : uint32 words, flip bits included

    Raises:
    -------
    UnsupportedFeature   : unknown encoding or compression
    MalformedDocument    : bad CSV token or bad base64
    DecompressionFailure : corrupt compressed stream
    CellCountMismatch    : decoded length != expected_count
    """
    compression = compression or None
    if encoding not in ('csv', 'base64'):
        raise UnsupportedFeature("tile data encoding", repr(encoding))
    if compression not in COMPRESSIONS:
        raise UnsupportedFeature("tile data compression", repr(compression))
    if compression and encoding != 'base64':
        raise UnsupportedFeature("tile data compression", f"{compression} with {encoding}")

    text = text or ''
    if encoding == 'csv':
        words = _decode_csv(text)
    else:
        words = _decode_base64(text, compression, expected_count)

    if len(words) != expected_count:
        raise CellCountMismatch(expected_count, len(words))
    return words


def decode_layer_data(data_elem: ET.Element, expected_count: int) -> LayerCells:
    """
    Decode a <data> element into LayerCells.

    Parameters:
    -----------
    data_elem : ET.Element
        The <data> element of a <layer>
    expected_count : int
        width * height of the layer
    """
    if data_elem.find('chunk') is not None:
        raise UnsupportedFeature("infinite maps", "chunked tile data")

    encoding = data_elem.get('encoding')
    compression = data_elem.get('compression')

    try:
        if encoding is None:
            if compression:
                raise UnsupportedFeature("tile data compression",
                                         f"{compression} without encoding")
            # Each tile is an element: <tile gid="5"/>
            gids = []
            for tile_elem in data_elem.findall('tile'):
                gid = int(tile_elem.get('gid', 0))
                if not 0 <= gid <= MAX_WORD:
                    raise ValueError(gid)
                gids.append(gid)
            if len(gids) != expected_count:
                raise CellCountMismatch(expected_count, len(gids))
            words = np.array(gids, dtype=np.uint32)
        else:
            words = decode_payload(data_elem.text, encoding, compression, expected_count)
    except ValueError as e:
        raise MalformedDocument(f"invalid tile gid: {e}", element=describe(data_elem)) from e

    logger.debug("Decoded %d cells (%s%s)", len(words), encoding or 'xml',
                 f"+{compression}" if compression else '')
    return LayerCells.from_raw(words)


# =============================================================================
# ENCODING
# =============================================================================

def encode_payload(words: Iterable[int], encoding: str = 'csv',
                   compression: Optional[str] = None,
                   width: Optional[int] = None) -> str:
    """
    Encode raw 32-bit words as <data> text, the inverse of decode_payload().

    Parameters:
    -----------
    words : iterable of int
        Raw GIDs (flip bits included), row-major
    encoding : str
        'csv' or 'base64'
    compression : str, optional
        'gzip', 'zlib' or 'zstd' (base64 only)
    width : int, optional
        Row length; CSV output is split into one line per row when given
    """
    array = np.asarray(list(words), dtype=np.uint32)

    if encoding == 'csv':
        if compression:
            raise UnsupportedFeature("tile data compression", f"{compression} with csv")
        values = [str(int(v)) for v in array]
        if width:
            rows = [','.join(values[i:i + width]) for i in range(0, len(values), width)]
            return '\n' + ',\n'.join(rows) + '\n'
        return ','.join(values)

    if encoding != 'base64':
        raise UnsupportedFeature("tile data encoding", repr(encoding))

    raw = array.astype('<u4').tobytes()
    if compression == 'zlib':
        raw = zlib.compress(raw)
    elif compression == 'gzip':
        raw = gzip.compress(raw)
    elif compression == 'zstd':
        raw = zstandard.ZstdCompressor().compress(raw)
    elif compression is not None:
        raise UnsupportedFeature("tile data compression", repr(compression))

    return base64.b64encode(raw).decode('ascii')

"""
Tilesets and global tile id resolution

=============================================================================
TILESET TYPES
=============================================================================

1. SPRITESHEET TILESET (most common):
   One large image divided into a grid of tiles.

   +---+---+---+---+
   | 0 | 1 | 2 | 3 |
   +---+---+---+---+
   | 4 | 5 | 6 | 7 |
   +---+---+---+---+

2. IMAGE COLLECTION TILESET:
   Each tile is a separate image file, declared on its <tile> element.

Tilesets are either EMBEDDED in the TMX file or EXTERNAL (.tsx):

    <tileset firstgid="1" name="terrain" tilewidth="32" tileheight="32" ...>
        <image source="terrain.png" width="256" height="256"/>
    </tileset>

    <tileset firstgid="101" source="../tilesets/items.tsx"/>

Image paths inside a TSX are relative to the TSX, not to the map.

=============================================================================
SPACING AND MARGIN
=============================================================================

margin = pixels around the EDGE of the entire image
spacing = pixels BETWEEN tiles

    column = local_id % columns
    row    = local_id // columns
    x      = margin + column * (tilewidth + spacing)
    y      = margin + row * (tileheight + spacing)

Example: col=2, tw=16, margin=2, spacing=1 -> x = 2 + 2*17 = 36

=============================================================================
GLOBAL TILE IDS (GIDs)
=============================================================================

    Tileset A (firstgid=1,   100 tiles):  GIDs 1-100
    Tileset B (firstgid=101,  50 tiles):  GIDs 101-150

A GID belongs to the tileset with the largest firstgid <= gid.
local_id = gid - firstgid

=============================================================================
"""

import bisect
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple
import xml.etree.ElementTree as ET

from ..errors import MalformedDocument, UnresolvedTileId
from .objects import MapObject, parse_object
from .properties import Property, parse_properties
from .reader import (
    describe, expect_tag, get_int, parse_document, require_int,
)
from .resources import ImageRef, ResourceResolver, join_reference, read_resource

logger = logging.getLogger(__name__)


class Rect(NamedTuple):
    """Pixel rectangle inside an atlas image."""
    x: int
    y: int
    width: int
    height: int


class Frame(NamedTuple):
    """Animation frame: local tile id within the same tileset + duration in ms."""
    local_id: int
    duration: int


@dataclass(frozen=True)
class TileMeta:
    """
    Per-tile metadata, only present for tiles Tiled wrote a <tile> for.

    Passed through to the scene untouched.
    """
    id: int                                               # Local tile id
    type: str = ""
    properties: Dict[str, Property] = field(default_factory=dict)
    frames: Tuple[Frame, ...] = ()                        # Animation
    shapes: Tuple[MapObject, ...] = ()                    # Collision objects
    image: Optional[ImageRef] = None                      # Collection tilesets

    def frame_gids(self, first_gid: int) -> Tuple[Tuple[int, int], ...]:
        """Animation as (global id, duration) pairs."""
        return tuple((first_gid + f.local_id, f.duration) for f in self.frames)

    @classmethod
    def from_xml(cls, elem: ET.Element, document: str,
                 resolver: Optional[ResourceResolver] = None) -> 'TileMeta':
        image = None
        img_elem = elem.find('image')
        if img_elem is not None:
            image = ImageRef.from_xml(img_elem, document, resolver)

        frames = []
        anim_elem = elem.find('animation')
        if anim_elem is not None:
            for frame_elem in anim_elem.findall('frame'):
                frames.append(Frame(require_int(frame_elem, 'tileid'),
                                    require_int(frame_elem, 'duration')))

        # Collision shapes are read before the map's TilesetTable exists, so a
        # template tile object here cannot be remapped (UnresolvedTileId)
        shapes = []
        group_elem = elem.find('objectgroup')
        if group_elem is not None:
            for obj_elem in group_elem.findall('object'):
                shapes.append(parse_object(obj_elem, document, resolver))

        return cls(
            id=require_int(elem, 'id'),
            type=elem.get('type', elem.get('class', '')),
            properties=parse_properties(elem),
            frames=tuple(frames),
            shapes=tuple(shapes),
            image=image,
        )


# =============================================================================
# TILESET
# =============================================================================

@dataclass(frozen=True)
class Tileset:
    """
    A tileset placed in a map at a given firstgid.

    tile_count is the size of the local id range: a gid g belongs to this
    tileset when first_gid <= g < first_gid + tile_count.
    """
    first_gid: int
    name: str
    tile_width: int
    tile_height: int
    tile_count: int
    columns: int
    spacing: int = 0
    margin: int = 0
    image: Optional[ImageRef] = None                      # None for collections
    tile_offset: Tuple[int, int] = (0, 0)
    properties: Dict[str, Property] = field(default_factory=dict)
    tiles: Dict[int, TileMeta] = field(default_factory=dict)
    source: Optional[str] = None                          # TSX reference if external

    @property
    def is_collection(self) -> bool:
        return self.image is None

    @property
    def last_gid(self) -> int:
        return self.first_gid + self.tile_count - 1

    def __contains__(self, gid: int) -> bool:
        return self.first_gid <= gid < self.first_gid + self.tile_count

    @classmethod
    def from_xml(cls, elem: ET.Element, first_gid: int, document: str,
                 resolver: Optional[ResourceResolver] = None,
                 source: Optional[str] = None) -> 'Tileset':
        """
        Parse tileset content (an inline <tileset> or the root of a TSX).

        Parameters:
        -----------
        elem : ET.Element
            The <tileset> element holding the definition
        first_gid : int
            First Global ID (always from the TMX, never from the TSX)
        document : str
            Reference of the document containing elem, base for image paths
        resolver : ResourceResolver, optional
            Supplies image sizes missing from the document
        source : str, optional
            Reference of the TSX file for external tilesets
        """
        tile_width = require_int(elem, 'tilewidth')
        tile_height = require_int(elem, 'tileheight')
        spacing = get_int(elem, 'spacing', 0)
        margin = get_int(elem, 'margin', 0)
        tile_count = get_int(elem, 'tilecount')
        columns = get_int(elem, 'columns')

        if tile_width <= 0 or tile_height <= 0:
            raise MalformedDocument("tile size must be positive", element=describe(elem))

        tile_offset = (0, 0)
        offset_elem = elem.find('tileoffset')
        if offset_elem is not None:
            tile_offset = (get_int(offset_elem, 'x', 0), get_int(offset_elem, 'y', 0))

        image = None
        img_elem = elem.find('image')
        if img_elem is not None:
            image = ImageRef.from_xml(img_elem, document, resolver)

        # Only tiles with metadata (properties, animations, images) are listed
        tiles: Dict[int, TileMeta] = {}
        for tile_elem in elem.findall('tile'):
            tile = TileMeta.from_xml(tile_elem, document, resolver)
            tiles[tile.id] = tile

        if image is not None:
            # -----------------------------------------------------------------
            # SPRITESHEET: derive / validate the grid from the image size
            # -----------------------------------------------------------------
            fit_columns = max(0, (image.width - 2 * margin + spacing) // (tile_width + spacing))
            fit_rows = max(0, (image.height - 2 * margin + spacing) // (tile_height + spacing))
            if columns is None:
                columns = fit_columns
            elif columns > fit_columns:
                raise MalformedDocument(
                    f"{columns} columns do not fit in a {image.width}px wide image",
                    element=describe(elem))
            if tile_count is None:
                tile_count = columns * fit_rows
            if tile_count > 0 and columns <= 0:
                raise MalformedDocument("tileset has tiles but no columns",
                                        element=describe(elem))
        else:
            # -----------------------------------------------------------------
            # IMAGE COLLECTION: ids may be sparse
            # -----------------------------------------------------------------
            columns = columns or 0
            highest = max(tiles) + 1 if tiles else 0
            tile_count = max(tile_count or 0, highest)

        tileset = cls(
            first_gid=first_gid,
            name=elem.get('name', ''),
            tile_width=tile_width,
            tile_height=tile_height,
            tile_count=tile_count,
            columns=columns,
            spacing=spacing,
            margin=margin,
            image=image,
            tile_offset=tile_offset,
            properties=parse_properties(elem),
            tiles=tiles,
            source=source,
        )
        if image is not None:
            logger.info("Loaded tileset: %s (%dx%d, %d tiles)",
                        tileset.name, image.width, image.height, tile_count)
        else:
            logger.info("Loaded image collection: %s (%d tiles)", tileset.name, len(tiles))
        return tileset

    @classmethod
    def from_reference(cls, first_gid: int, reference: str,
                       resolver: Optional[ResourceResolver]) -> 'Tileset':
        """Load an external TSX tileset through the resolver."""
        root = parse_document(read_resource(resolver, reference), reference)
        expect_tag(root, 'tileset', reference)
        return cls.from_xml(root, first_gid, reference, resolver, source=reference)

    # =========================================================================
    # ATLAS LOOKUP
    # =========================================================================

    def region(self, local_id: int) -> Rect:
        """
        Source rectangle of a tile inside the spritesheet image.

        For collection tiles the rectangle covers the tile's own image.
        """
        if self.image is None:
            meta = self.tiles.get(local_id)
            if meta is None or meta.image is None:
                raise UnresolvedTileId(self.first_gid + local_id,
                                       f"no image for tile {local_id} in '{self.name}'")
            return Rect(0, 0, meta.image.width, meta.image.height)

        col = local_id % self.columns
        row = local_id // self.columns
        return Rect(
            self.margin + col * (self.tile_width + self.spacing),
            self.margin + row * (self.tile_height + self.spacing),
            self.tile_width,
            self.tile_height,
        )


def parse_tileset_element(elem: ET.Element, document: str,
                          resolver: Optional[ResourceResolver] = None) -> Tileset:
    """
    Parse a <tileset> element of a map: inline, or a reference to a TSX.
    """
    first_gid = require_int(elem, 'firstgid')
    if first_gid < 1:
        raise MalformedDocument("firstgid must be at least 1", element=describe(elem))

    source = elem.get('source')
    if source:
        # The TMX only contains a reference; actual data is in the TSX
        return Tileset.from_reference(first_gid, join_reference(document, source), resolver)
    return Tileset.from_xml(elem, first_gid, document, resolver)


# =============================================================================
# RESOLUTION
# =============================================================================

@dataclass(frozen=True)
class ResolvedTile:
    """Everything needed to draw one global tile id."""
    gid: int
    tileset: Tileset
    local_id: int
    image: ImageRef
    region: Rect
    meta: Optional[TileMeta] = None


class TilesetTable:
    """
    All tilesets of a map, sorted by firstgid.

    resolve() finds the owning tileset with a binary predecessor search
    over the sorted firstgids instead of a scan.
    """

    def __init__(self, tilesets: Sequence[Tileset] = ()):
        ordered = sorted(tilesets, key=lambda t: t.first_gid)
        for previous, current in zip(ordered, ordered[1:]):
            if previous.first_gid + previous.tile_count > current.first_gid:
                raise MalformedDocument(
                    f"tileset '{previous.name}' (firstgid {previous.first_gid}, "
                    f"{previous.tile_count} tiles) overlaps '{current.name}' "
                    f"(firstgid {current.first_gid})")
        self._tilesets: Tuple[Tileset, ...] = tuple(ordered)
        self._first_gids: List[int] = [t.first_gid for t in ordered]

    def __iter__(self) -> Iterator[Tileset]:
        return iter(self._tilesets)

    def __len__(self) -> int:
        return len(self._tilesets)

    def __getitem__(self, index: int) -> Tileset:
        return self._tilesets[index]

    def __eq__(self, other) -> bool:
        if not isinstance(other, TilesetTable):
            return NotImplemented
        return self._tilesets == other._tilesets

    __hash__ = None

    def __repr__(self) -> str:
        names = ', '.join(f"{t.name}@{t.first_gid}" for t in self._tilesets)
        return f"TilesetTable([{names}])"

    def find(self, gid: int) -> Optional[Tileset]:
        """Tileset with the largest firstgid <= gid (may not contain gid)."""
        index = bisect.bisect_right(self._first_gids, gid) - 1
        if index < 0:
            return None
        return self._tilesets[index]

    def first_gid_for(self, source: str) -> Optional[int]:
        """firstgid of the external tileset loaded from `source`."""
        for tileset in self._tilesets:
            if tileset.source == source:
                return tileset.first_gid
        return None

    def resolve(self, gid: int) -> ResolvedTile:
        """
        Resolve a global tile id (flip bits already stripped).

        Raises:
        -------
        UnresolvedTileId : No tileset owns gid, or gid is past its last tile
        """
        tileset = self.find(gid)
        if tileset is None or gid <= 0:
            logger.debug("GID %d is below every firstgid", gid)
            raise UnresolvedTileId(gid, "no tileset owns this id")

        local_id = gid - tileset.first_gid
        if local_id >= tileset.tile_count:
            logger.debug("GID %d exceeds tileset '%s'", gid, tileset.name)
            raise UnresolvedTileId(
                gid, f"tileset '{tileset.name}' has {tileset.tile_count} tiles")

        meta = tileset.tiles.get(local_id)
        region = tileset.region(local_id)
        image = tileset.image if tileset.image is not None else meta.image
        return ResolvedTile(gid=gid, tileset=tileset, local_id=local_id,
                            image=image, region=region, meta=meta)

r"""
Map projections: tile grid coordinates <-> layer-local pixels

=============================================================================
ORIENTATIONS
=============================================================================

ORTHOGONAL:
    +---+---+---+
    |0,0|1,0|2,0|          anchor = (col * tw, row * th)
    +---+---+---+
    |0,1|1,1|2,1|
    +---+---+---+

ISOMETRIC:
           /\
          /0,0\            anchor = ((col - row) * tw/2, (col + row) * th/2)
         /\  /\            the anchor is the TOP corner of the diamond,
        /0,1\/1,0\         so x runs negative for the left half of the map
        \  /\  /
         \/1,1\/

STAGGERED (isometric without rotation), stagger axis y:
    /\/\/\/\               every other row is pushed right by tw/2
    \/\/\/\/               rows advance by th/2
    /\/\/\/\

HEXAGONAL, stagger axis y:
    rows advance by (th + side_length) / 2, every other row pushed by tw/2

For stagger axis x the roles of columns and rows are swapped.
stagger index 'odd' shifts odd rows/columns, 'even' shifts even ones.

=============================================================================
SPRITES
=============================================================================

The anchor of a cell is the top-left of its grid footprint (top corner of
the diamond for isometric maps). Tile images may be bigger than the grid
cell; they are aligned to the BOTTOM of the cell:

    +-------+  <- origin_y = anchor_y + map_th - sprite_h
    |  tall |
    |  tree |
    +-------+  <- anchor_y + map_th
    | cell  |

=============================================================================
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Tuple
import xml.etree.ElementTree as ET

from ..errors import MalformedDocument
from .reader import describe, get_int, require_int

Point = Tuple[float, float]


class Orientation(Enum):
    ORTHOGONAL = "orthogonal"
    ISOMETRIC = "isometric"
    STAGGERED = "staggered"
    HEXAGONAL = "hexagonal"


class StaggerAxis(Enum):
    X = "x"
    Y = "y"


class StaggerIndex(Enum):
    ODD = "odd"
    EVEN = "even"


def _enum_attribute(elem: ET.Element, name: str, enum, default):
    raw = elem.get(name)
    if raw is None:
        return default
    try:
        return enum(raw)
    except ValueError as e:
        raise MalformedDocument(f"unknown {name} {raw!r}", element=describe(elem)) from e


@dataclass(frozen=True)
class Projection:
    """
    Pure geometry of a map: tile size plus orientation parameters.

    All methods return layer-local pixels. Layer offsets, parallax and
    scaling are applied by the scene assembler.
    """
    orientation: Orientation
    tile_width: int
    tile_height: int
    stagger_axis: StaggerAxis = StaggerAxis.Y
    stagger_index: StaggerIndex = StaggerIndex.ODD
    hex_side_length: int = 0

    @classmethod
    def from_xml(cls, elem: ET.Element) -> 'Projection':
        """Build from the attributes of the <map> element."""
        orientation = _enum_attribute(elem, 'orientation', Orientation, Orientation.ORTHOGONAL)
        tile_width = require_int(elem, 'tilewidth')
        tile_height = require_int(elem, 'tileheight')
        if tile_width <= 0 or tile_height <= 0:
            raise MalformedDocument("tile size must be positive", element=describe(elem))
        return cls(
            orientation=orientation,
            tile_width=tile_width,
            tile_height=tile_height,
            stagger_axis=_enum_attribute(elem, 'staggeraxis', StaggerAxis, StaggerAxis.Y),
            stagger_index=_enum_attribute(elem, 'staggerindex', StaggerIndex, StaggerIndex.ODD),
            hex_side_length=get_int(elem, 'hexsidelength', 0),
        )

    @property
    def _parity(self) -> int:
        return 1 if self.stagger_index is StaggerIndex.ODD else 0

    def _shifted(self, index: int) -> bool:
        return index % 2 == self._parity

    # =========================================================================
    # CELL -> PIXEL
    # =========================================================================

    def cell_anchor(self, col: int, row: int) -> Point:
        """Layer-local pixel anchor of cell (col, row)."""
        tw, th = self.tile_width, self.tile_height

        if self.orientation is Orientation.ORTHOGONAL:
            return float(col * tw), float(row * th)

        if self.orientation is Orientation.ISOMETRIC:
            return (col - row) * tw / 2, (col + row) * th / 2

        # Staggered and hexagonal only differ in how far rows (or columns)
        # advance: half a tile, or half a tile plus half the flat side.
        side = self.hex_side_length if self.orientation is Orientation.HEXAGONAL else 0
        if self.stagger_axis is StaggerAxis.Y:
            x = col * tw + (tw / 2 if self._shifted(row) else 0)
            y = row * (th + side) / 2
        else:
            x = col * (tw + side) / 2
            y = row * th + (th / 2 if self._shifted(col) else 0)
        return float(x), float(y)

    def sprite_origin(self, anchor: Point, sprite_width: int, sprite_height: int,
                      offset: Tuple[int, int] = (0, 0)) -> Point:
        """
        Top-left corner of a tile image drawn in the cell at `anchor`.

        offset is the tileset's <tileoffset>.
        """
        ax, ay = anchor
        if self.orientation is Orientation.ISOMETRIC:
            ax -= self.tile_width / 2
        return (ax + offset[0],
                ay + self.tile_height - sprite_height + offset[1])

    def object_position(self, x: float, y: float) -> Point:
        """
        Convert object coordinates (as stored in the TMX) to layer pixels.

        Isometric and staggered maps store objects in tile-grid space where
        one tile measures tile_height on both axes:

            col = x / th, row = y / th
            -> ((col - row) * tw/2, (col + row) * th/2)

        Example: tiles 64x32, object at (100, 50) -> (50.0, 75.0)
        """
        if self.orientation in (Orientation.ISOMETRIC, Orientation.STAGGERED):
            tw, th = self.tile_width, self.tile_height
            col, row = x / th, y / th
            return (col - row) * tw / 2, (col + row) * th / 2
        return float(x), float(y)

    # =========================================================================
    # PIXEL -> CELL
    # =========================================================================

    def cell_at(self, x: float, y: float) -> Tuple[int, int]:
        """
        Cell (col, row) containing the layer-local pixel (x, y).

        The result may lie outside the map; callers check bounds.
        """
        tw, th = self.tile_width, self.tile_height

        if self.orientation is Orientation.ORTHOGONAL:
            return math.floor(x / tw), math.floor(y / th)

        if self.orientation is Orientation.ISOMETRIC:
            return math.floor(x / tw + y / th), math.floor(y / th - x / tw)

        return self._nearest_cell(x, y)

    def _nearest_cell(self, x: float, y: float) -> Tuple[int, int]:
        """
        Staggered / hexagonal lookup: estimate the cell from the row (or
        column) pitch, then pick the candidate whose centre is nearest.

        Staggered tiles are diamonds, so distance uses |dx|/(tw/2) + |dy|/(th/2);
        hexagons use euclidean distance.
        """
        tw, th = self.tile_width, self.tile_height
        side = self.hex_side_length if self.orientation is Orientation.HEXAGONAL else 0
        if self.stagger_axis is StaggerAxis.Y:
            col_guess = math.floor(x / tw)
            row_guess = math.floor(y / ((th + side) / 2))
        else:
            col_guess = math.floor(x / ((tw + side) / 2))
            row_guess = math.floor(y / th)

        best = None
        for row in range(row_guess - 2, row_guess + 2):
            for col in range(col_guess - 2, col_guess + 2):
                ax, ay = self.cell_anchor(col, row)
                dx = x - (ax + tw / 2)
                dy = y - (ay + th / 2)
                if self.orientation is Orientation.STAGGERED:
                    distance = abs(dx) / (tw / 2) + abs(dy) / (th / 2)
                else:
                    distance = dx * dx + dy * dy
                # Ties go to the first candidate in row-major order
                if best is None or distance < best[0]:
                    best = (distance, col, row)
        return best[1], best[2]

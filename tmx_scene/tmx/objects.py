"""
Objects of object layers (and of tile collision groups)

=============================================================================
OBJECT SHAPES
=============================================================================

Objects are vector shapes placed on the map, used for collision shapes,
spawn points, trigger areas and entity placement:

    <object id="1" x="100" y="50"><point/></object>              POINT
    <object id="2" x="0" y="0" width="32" height="16"/>          RECTANGLE
    <object id="3" x="8" y="8" width="16" height="16"><ellipse/></object>
    <object id="4" x="0" y="0"><polygon points="0,0 32,0 16,24"/></object>
    <object id="5" x="0" y="0"><polyline points="0,0 10,10"/></object>
    <object id="6" gid="12" x="64" y="96" width="32" height="32"/>  TILE

Polygon and polyline points are relative to the object's (x, y).

Tile objects are anchored at their BOTTOM-left corner (y is the bottom
edge of the tile graphic), unlike every other shape which uses its top-left.
Their gid carries flip flags exactly like tile layer cells.

=============================================================================
TEMPLATES
=============================================================================

An object may point at a template file:

    <object id="7" template="../templates/chest.tx" x="200" y="120"/>

    chest.tx:
    <template>
        <tileset firstgid="1" source="../tilesets/items.tsx"/>
        <object name="chest" type="container" gid="4" width="32" height="32">
            <properties><property name="loot" value="gold"/></properties>
        </object>
    </template>

The template object supplies defaults; every attribute, shape and property
written on the instance overrides it. A template tile object's gid counts
from the template's own tileset reference, so it is remapped to the map's
tileset with the same source.

=============================================================================
"""

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Dict, Optional, Tuple
import xml.etree.ElementTree as ET

from ..errors import MalformedDocument, UnresolvedTileId
from .data import NO_FLIP, FlipFlags, split_gid
from .properties import Property, parse_properties
from .reader import (
    describe, expect_tag, get_bool, get_float, get_int, parse_document, require_int, require_str,
)
from .resources import ResourceResolver, join_reference, read_resource

logger = logging.getLogger(__name__)


class ObjectShape(Enum):
    POINT = "point"
    RECTANGLE = "rectangle"
    ELLIPSE = "ellipse"
    POLYGON = "polygon"
    POLYLINE = "polyline"
    TILE = "tile"


_SHAPE_TAGS = {
    'point': ObjectShape.POINT,
    'ellipse': ObjectShape.ELLIPSE,
    'polygon': ObjectShape.POLYGON,
    'polyline': ObjectShape.POLYLINE,
}


@dataclass(frozen=True)
class MapObject:
    """
    Read-only object record.

    x, y are in the map's object coordinate space: pixels for orthogonal and
    hexagonal maps, tile-grid units scaled by tile height for isometric maps
    (see Projection.object_position).
    """
    id: int
    name: str = ""
    type: str = ""
    shape: ObjectShape = ObjectShape.RECTANGLE
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    rotation: float = 0.0                            # Degrees, clockwise
    visible: bool = True
    points: Tuple[Tuple[float, float], ...] = ()     # Polygon / polyline
    gid: Optional[int] = None                        # Tile objects only
    flip: FlipFlags = NO_FLIP
    template: Optional[str] = None                   # Resolved template reference
    properties: Dict[str, Property] = field(default_factory=dict)

    @property
    def is_tile(self) -> bool:
        return self.gid is not None

    def absolute_points(self) -> Tuple[Tuple[float, float], ...]:
        """Polygon / polyline points in the object coordinate space."""
        return tuple((self.x + px, self.y + py) for px, py in self.points)


def _parse_points(elem: ET.Element) -> Tuple[Tuple[float, float], ...]:
    raw = elem.get('points', '')
    points = []
    for pair in raw.split():
        try:
            px, py = pair.split(',')
            points.append((float(px), float(py)))
        except ValueError as e:
            raise MalformedDocument(f"invalid point {pair!r}", element=describe(elem)) from e
    return tuple(points)


def parse_object(elem: ET.Element, document: str,
                 resolver: Optional[ResourceResolver] = None,
                 tilesets=None) -> MapObject:
    """
    Parse an <object> element, applying its template if it has one.

    Parameters:
    -----------
    elem : ET.Element
        The <object> element
    document : str
        Reference of the document containing the element (for template paths)
    resolver : ResourceResolver, optional
        Supplies template files
    tilesets : TilesetTable, optional
        Map tilesets, needed to remap template tile gids
    """
    base = MapObject(id=0)
    template_ref = elem.get('template')
    if template_ref:
        template_ref = join_reference(document, template_ref)
        base = replace(load_template(template_ref, resolver, tilesets), template=template_ref)

    overrides = {}
    # -----------------------------------------------------------------
    # ATTRIBUTES (override template values)
    # -----------------------------------------------------------------
    if elem.get('id') is not None:
        overrides['id'] = require_int(elem, 'id')
    if elem.get('name') is not None:
        overrides['name'] = elem.get('name')
    # Tiled 1.9 renamed 'type' to 'class'
    obj_type = elem.get('type', elem.get('class'))
    if obj_type is not None:
        overrides['type'] = obj_type
    for attr in ('x', 'y', 'width', 'height', 'rotation'):
        value = get_float(elem, attr)
        if value is not None:
            overrides[attr] = value
    visible = get_bool(elem, 'visible')
    if visible is not None:
        overrides['visible'] = visible

    raw_gid = get_int(elem, 'gid')
    if raw_gid is not None:
        gid, flip = split_gid(raw_gid)
        overrides.update(gid=gid, flip=flip, shape=ObjectShape.TILE)

    # -----------------------------------------------------------------
    # SHAPE
    # -----------------------------------------------------------------
    for child in elem:
        shape = _SHAPE_TAGS.get(child.tag)
        if shape is not None:
            overrides['shape'] = shape
            if shape in (ObjectShape.POLYGON, ObjectShape.POLYLINE):
                overrides['points'] = _parse_points(child)
            break

    # -----------------------------------------------------------------
    # PROPERTIES (merged with template properties)
    # -----------------------------------------------------------------
    own_properties = parse_properties(elem)
    if own_properties:
        merged = dict(base.properties)
        merged.update(own_properties)
        overrides['properties'] = merged

    return replace(base, **overrides)


def load_template(reference: str, resolver: Optional[ResourceResolver],
                  tilesets=None) -> MapObject:
    """
    Read a .tx template and return its object with the gid remapped to
    the map's tilesets.
    """
    root = expect_tag(parse_document(read_resource(resolver, reference), reference),
                      'template', reference)

    obj_elem = root.find('object')
    if obj_elem is None:
        raise MalformedDocument("template has no <object>", reference=reference)
    template_obj = parse_object(obj_elem, reference, resolver)

    if template_obj.gid is None:
        return template_obj

    tileset_elem = root.find('tileset')
    if tileset_elem is None:
        raise MalformedDocument("template tile object without <tileset>", reference=reference)
    template_first_gid = require_int(tileset_elem, 'firstgid')
    tileset_source = join_reference(reference, require_str(tileset_elem, 'source'))

    map_first_gid = tilesets.first_gid_for(tileset_source) if tilesets is not None else None
    if map_first_gid is None:
        raise UnresolvedTileId(template_obj.gid,
                               f"template {reference} uses tileset {tileset_source} "
                               f"which the map does not reference")

    local_id = template_obj.gid - template_first_gid
    if local_id < 0:
        raise UnresolvedTileId(template_obj.gid, f"below firstgid of template {reference}")

    gid = map_first_gid + local_id
    logger.debug("Template %s: gid %d -> %d", reference, template_obj.gid, gid)
    return replace(template_obj, gid=gid)

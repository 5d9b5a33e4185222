"""
Layer records

=============================================================================
LAYER TYPES
=============================================================================

    <layer>        TileLayer    grid of gids
    <objectgroup>  ObjectLayer  free-form objects
    <imagelayer>   ImageLayer   a single image
    <group>        GroupLayer   folder of layers, can be nested

    Layers:
    ├── Background (group)
    │   ├── Sky (image)
    │   └── Mountains
    ├── Ground
    ├── Objects
    └── Foreground

Z-order is declaration order: later layers draw on top.

=============================================================================
COMMON ATTRIBUTES
=============================================================================

    visible              rendered or not ('1' when absent)
    opacity              0.0 = invisible, 1.0 = opaque
    tintcolor            color multiplied into every pixel
    offsetx, offsety     pixel offset from the map origin
    parallaxx, parallaxy 1.0 = normal, 0.5 = half speed, 0 = static

Group attributes apply to all children: offsets add up, opacity, tint
and parallax multiply (done by the scene assembler, not here).

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Union
import xml.etree.ElementTree as ET

from ..errors import CellCountMismatch, MalformedDocument
from .data import LayerCells, decode_layer_data
from .objects import MapObject, parse_object
from .properties import Color, Property, parse_color_attribute, parse_properties
from .reader import describe, get_bool, get_float, get_int, require_int
from .resources import ImageRef, ResourceResolver

logger = logging.getLogger(__name__)

DRAW_ORDERS = ('topdown', 'index')


@dataclass(frozen=True)
class Layer:
    """Attributes shared by every layer type."""
    id: int = 0
    name: str = ""
    visible: bool = True
    opacity: float = 1.0
    offset: Tuple[float, float] = (0.0, 0.0)
    parallax: Tuple[float, float] = (1.0, 1.0)
    tint: Optional[Color] = None
    properties: Dict[str, Property] = field(default_factory=dict)


@dataclass(frozen=True)
class TileLayer(Layer):
    """
    Tile layer - a grid of tile references.

    Cells are row-major: index = row * width + col.

        gid, flip = layer.cell(5, 10)   # column 5, row 10
    """
    width: int = 0
    height: int = 0
    cells: LayerCells = field(default_factory=lambda: LayerCells.empty(0))

    def cell(self, col: int, row: int):
        if not (0 <= col < self.width and 0 <= row < self.height):
            raise IndexError(f"cell ({col}, {row}) outside {self.width}x{self.height}")
        return self.cells.cell(row * self.width + col)


@dataclass(frozen=True)
class ObjectLayer(Layer):
    """Object group. draw_order is kept but objects stay in file order."""
    color: Optional[Color] = None
    draw_order: str = 'topdown'
    objects: Tuple[MapObject, ...] = ()


@dataclass(frozen=True)
class ImageLayer(Layer):
    image: Optional[ImageRef] = None
    repeat_x: bool = False
    repeat_y: bool = False


@dataclass(frozen=True)
class GroupLayer(Layer):
    layers: Tuple['AnyLayer', ...] = ()


AnyLayer = Union[TileLayer, ObjectLayer, ImageLayer, GroupLayer]

LAYER_TAGS = ('layer', 'objectgroup', 'imagelayer', 'group')


def _common_attributes(elem: ET.Element) -> dict:
    opacity = get_float(elem, 'opacity', 1.0)
    if not 0.0 <= opacity <= 1.0:
        raise MalformedDocument(f"opacity {opacity} outside [0, 1]", element=describe(elem))
    return dict(
        id=get_int(elem, 'id', 0),
        name=elem.get('name', ''),
        visible=get_bool(elem, 'visible', True),
        opacity=opacity,
        offset=(get_float(elem, 'offsetx', 0.0), get_float(elem, 'offsety', 0.0)),
        parallax=(get_float(elem, 'parallaxx', 1.0), get_float(elem, 'parallaxy', 1.0)),
        tint=parse_color_attribute(elem, 'tintcolor'),
        properties=parse_properties(elem),
    )


def parse_layer(elem: ET.Element, document: str,
                resolver: Optional[ResourceResolver] = None,
                tilesets=None,
                map_size: Optional[Tuple[int, int]] = None) -> Optional[AnyLayer]:
    """
    Parse any layer element. Returns None for tags that are not layers.

    Parameters:
    -----------
    elem : ET.Element
        <layer>, <objectgroup>, <imagelayer> or <group>
    document : str
        Reference of the map, base for image and template paths
    resolver : ResourceResolver, optional
        Supplies templates and missing image sizes
    tilesets : TilesetTable, optional
        Needed to remap template tile objects
    map_size : (int, int), optional
        Map width and height in tiles. Every tile layer must cover exactly
        this grid; None accepts whatever size the layer declares.
    """
    if elem.tag == 'layer':
        return _parse_tile_layer(elem, map_size)
    if elem.tag == 'objectgroup':
        return _parse_object_layer(elem, document, resolver, tilesets)
    if elem.tag == 'imagelayer':
        return _parse_image_layer(elem, document, resolver)
    if elem.tag == 'group':
        # Recursive: group within group
        children = tuple(
            layer for layer in (parse_layer(child, document, resolver, tilesets, map_size)
                                for child in elem)
            if layer is not None
        )
        return GroupLayer(layers=children, **_common_attributes(elem))
    return None


def _parse_tile_layer(elem: ET.Element, map_size: Optional[Tuple[int, int]] = None) -> TileLayer:
    if map_size is None:
        width = require_int(elem, 'width')
        height = require_int(elem, 'height')
    else:
        width = get_int(elem, 'width', map_size[0])
        height = get_int(elem, 'height', map_size[1])
    if width <= 0 or height <= 0:
        raise MalformedDocument("layer size must be positive", element=describe(elem))
    if map_size is not None and (width, height) != tuple(map_size):
        raise CellCountMismatch(map_size[0] * map_size[1], width * height,
                                f"layer '{elem.get('name', '')}' is {width}x{height}, "
                                f"map is {map_size[0]}x{map_size[1]}")

    data_elem = elem.find('data')
    if data_elem is None:
        cells = LayerCells.empty(width * height)
    else:
        cells = decode_layer_data(data_elem, width * height)

    layer = TileLayer(width=width, height=height, cells=cells, **_common_attributes(elem))
    logger.debug("Tile layer '%s': %dx%d, %d tiles", layer.name, width, height,
                 len(cells.occupied()))
    return layer


def _parse_object_layer(elem: ET.Element, document: str,
                        resolver: Optional[ResourceResolver], tilesets) -> ObjectLayer:
    draw_order = elem.get('draworder', 'topdown')
    if draw_order not in DRAW_ORDERS:
        raise MalformedDocument(f"unknown draworder {draw_order!r}", element=describe(elem))

    objects = tuple(parse_object(obj_elem, document, resolver, tilesets)
                    for obj_elem in elem.findall('object'))
    logger.debug("Object layer '%s': %d objects", elem.get('name', ''), len(objects))
    return ObjectLayer(color=parse_color_attribute(elem, 'color'), draw_order=draw_order,
                       objects=objects, **_common_attributes(elem))


def _parse_image_layer(elem: ET.Element, document: str,
                       resolver: Optional[ResourceResolver]) -> ImageLayer:
    image = None
    img_elem = elem.find('image')
    if img_elem is not None and img_elem.get('source'):
        image = ImageRef.from_xml(img_elem, document, resolver)
    return ImageLayer(image=image,
                      repeat_x=get_bool(elem, 'repeatx', False),
                      repeat_y=get_bool(elem, 'repeaty', False),
                      **_common_attributes(elem))

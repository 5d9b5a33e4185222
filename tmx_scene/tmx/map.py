"""
Map document - the root of a parsed TMX file

=============================================================================
TMX FILE STRUCTURE
=============================================================================

    <map version="1.10" orientation="orthogonal" renderorder="right-down"
         width="100" height="100" tilewidth="32" tileheight="32">
        <properties>...</properties>
        <tileset firstgid="1" source="terrain.tsx"/>
        <tileset firstgid="257" name="objects" ...>...</tileset>
        <layer id="1" name="Ground" width="100" height="100">
            <data encoding="csv">...</data>
        </layer>
        <objectgroup id="2" name="Objects">...</objectgroup>
        <group id="3" name="Decor">...</group>
    </map>

Parsing order: map attributes, then ALL tilesets (so that template tile
objects can be remapped), then layers in declaration order.

=============================================================================
USAGE
=============================================================================

    with open("level1.tmx", "rb") as f:
        document = parse_map(f.read(), resolver, reference="level1.tmx")

    print(f"Map size: {document.width}x{document.height}")
    ground = document.find_layer("Ground")
    gid, flip = ground.cell(5, 10)

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Tuple, Union

from ..errors import MalformedDocument, UnsupportedFeature
from .layers import AnyLayer, GroupLayer, ObjectLayer, parse_layer
from .objects import MapObject
from .projection import Projection
from .properties import Color, Property, parse_color_attribute, parse_properties
from .reader import describe, expect_tag, get_bool, parse_document, require_int
from .resources import ResourceResolver
from .tileset import TilesetTable, parse_tileset_element

logger = logging.getLogger(__name__)

RENDER_ORDER = 'right-down'


@dataclass(frozen=True)
class MapDocument:
    """
    Complete Tiled map, immutable once parsed.

    width, height are in tiles, the projection carries the tile size and
    the orientation parameters. layers is the top level of the layer tree.
    """
    width: int
    height: int
    projection: Projection
    tilesets: TilesetTable
    layers: Tuple[AnyLayer, ...] = ()
    render_order: str = RENDER_ORDER
    background_color: Optional[Color] = None
    properties: Dict[str, Property] = field(default_factory=dict)
    reference: str = "map.tmx"

    @property
    def tile_width(self) -> int:
        return self.projection.tile_width

    @property
    def tile_height(self) -> int:
        return self.projection.tile_height

    def iter_layers(self) -> Iterator[AnyLayer]:
        """All layers depth-first, groups before their children."""
        def walk(layers):
            for layer in layers:
                yield layer
                if isinstance(layer, GroupLayer):
                    yield from walk(layer.layers)

        return walk(self.layers)

    def find_layer(self, name: str) -> Optional[AnyLayer]:
        """First layer with this name, searching inside groups."""
        for layer in self.iter_layers():
            if layer.name == name:
                return layer
        return None

    def iter_objects(self) -> Iterator[Tuple[int, MapObject]]:
        """
        Every object of every object layer as (z, object).

        z is the index of the layer among leaf layers, the same z the
        scene assembler gives it.
        """
        z = 0
        for layer in self.iter_layers():
            if isinstance(layer, GroupLayer):
                continue
            if isinstance(layer, ObjectLayer):
                for obj in layer.objects:
                    yield z, obj
            z += 1


def parse_map(data: Union[bytes, str], resolver: Optional[ResourceResolver] = None,
              reference: str = "map.tmx") -> MapDocument:
    """
    Parse a TMX document.

    Parameters:
    -----------
    data : bytes
        Content of the .tmx file
    resolver : ResourceResolver, optional
        Supplies external tilesets, templates and missing image sizes.
        Without one, any external reference raises ExternalResourceUnavailable.
    reference : str
        Reference of the map itself; relative paths inside are resolved
        against it

    Raises:
    -------
    TmxError subclasses, see tmx_scene.errors
    """
    root = expect_tag(parse_document(data, reference), 'map', reference)

    # -----------------------------------------------------------------
    # MAP ATTRIBUTES
    # -----------------------------------------------------------------
    if get_bool(root, 'infinite', False):
        raise UnsupportedFeature("infinite maps")

    render_order = root.get('renderorder', RENDER_ORDER)
    if render_order != RENDER_ORDER:
        raise UnsupportedFeature("render order", render_order)

    width = require_int(root, 'width')
    height = require_int(root, 'height')
    if width <= 0 or height <= 0:
        raise MalformedDocument(f"map size {width}x{height} must be positive",
                                reference=reference, element=describe(root))

    projection = Projection.from_xml(root)

    # -----------------------------------------------------------------
    # TILESETS (all of them before any layer)
    # -----------------------------------------------------------------
    tilesets = TilesetTable([
        parse_tileset_element(tileset_elem, reference, resolver)
        for tileset_elem in root.findall('tileset')
    ])

    # -----------------------------------------------------------------
    # LAYERS (direct children of <map>, in order)
    # -----------------------------------------------------------------
    layers = tuple(
        layer for layer in (parse_layer(elem, reference, resolver, tilesets, (width, height))
                            for elem in root)
        if layer is not None
    )

    document = MapDocument(
        width=width,
        height=height,
        projection=projection,
        tilesets=tilesets,
        layers=layers,
        render_order=render_order,
        background_color=parse_color_attribute(root, 'backgroundcolor'),
        properties=parse_properties(root),
        reference=reference,
    )
    logger.info("Loaded map %s: %dx%d %s, %d tilesets, %d layers", reference, width, height,
                projection.orientation.value, len(tilesets), len(layers))
    return document

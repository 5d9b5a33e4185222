"""
Scene assembly: MapDocument -> engine-agnostic list of positioned things

=============================================================================
WHAT COMES OUT
=============================================================================

    SceneAssembly
    └── layers (one SceneLayer per leaf layer, z = 0, 1, 2 ...)
        ├── tile layer   -> drawables: one Drawable per non-empty cell
        ├── object layer -> objects:   one ObjectPlacement per object
        └── image layer  -> image:     one ImagePlacement (or None)

Groups do not produce a SceneLayer of their own. Their attributes are
folded into every layer they contain:

    offset     summed            group (10, 0) + layer (5, 5) -> (15, 5)
    opacity    multiplied        0.5 * 0.5 -> 0.25
    tint       multiplied        per channel, 255 = identity
    parallax   multiplied        per axis
    visible    and-ed            hidden group hides everything below

Positions are layer-local anchors from the projection, plus the folded
offset, times SceneConfig.scale. Nothing is depth-sorted: tiles come out
in row-major order, which is what the right-down render order means.

Invisible layers are still emitted (visible=False) so that consumers can
toggle them without reparsing.

=============================================================================
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterator, Optional, Tuple

from ..config import DEFAULT_CONFIG, SceneConfig
from ..tmx.data import FlipFlags
from ..tmx.layers import GroupLayer, ImageLayer, ObjectLayer, TileLayer
from ..tmx.map import MapDocument
from ..tmx.objects import MapObject
from ..tmx.properties import Color
from ..tmx.resources import ImageRef
from ..tmx.tileset import Rect, ResolvedTile, TileMeta

logger = logging.getLogger(__name__)

Point = Tuple[float, float]


def multiply_tint(a: Optional[Color], b: Optional[Color]) -> Optional[Color]:
    """Combine two tints channel by channel. None means no tint (white)."""
    if a is None:
        return b
    if b is None:
        return a
    return Color(*(round(x * y / 255) for x, y in zip(a, b)))


@dataclass(frozen=True)
class LayerContext:
    """Attributes inherited from enclosing groups, copied on every descent."""
    offset: Point = (0.0, 0.0)
    opacity: float = 1.0
    tint: Optional[Color] = None
    parallax: Point = (1.0, 1.0)
    visible: bool = True
    path: str = ""

    def enter(self, layer) -> 'LayerContext':
        return replace(
            self,
            offset=(self.offset[0] + layer.offset[0], self.offset[1] + layer.offset[1]),
            opacity=self.opacity * layer.opacity,
            tint=multiply_tint(self.tint, layer.tint),
            parallax=(self.parallax[0] * layer.parallax[0], self.parallax[1] * layer.parallax[1]),
            visible=self.visible and layer.visible,
            path=f"{self.path}/{layer.name}" if self.path else layer.name,
        )


# =============================================================================
# OUTPUT RECORDS
# =============================================================================

@dataclass(frozen=True)
class Drawable:
    """
    One tile of a tile layer, ready to draw.

    position : anchor of the cell (grid footprint), screen space
    origin   : top-left of the sprite rectangle, screen space
    size     : sprite size, screen space
    image, region : atlas image and source rectangle in it
    """
    position: Point
    origin: Point
    size: Point
    image: ImageRef
    region: Rect
    flip: FlipFlags
    gid: int
    cell: Tuple[int, int]
    z: int
    opacity: float = 1.0
    tint: Optional[Color] = None
    visible: bool = True
    parallax: Point = (1.0, 1.0)
    meta: Optional[TileMeta] = None


@dataclass(frozen=True)
class ObjectPlacement:
    """
    An object with its screen-space position.

    Tile objects carry their resolved tile; their position is the
    bottom-left corner of the graphic, every other shape uses top-left.
    """
    object: MapObject
    position: Point
    z: int
    layer: str = ""
    tile: Optional[ResolvedTile] = None
    anchor: str = 'top-left'
    opacity: float = 1.0
    tint: Optional[Color] = None
    visible: bool = True
    parallax: Point = (1.0, 1.0)


@dataclass(frozen=True)
class ImagePlacement:
    image: ImageRef
    position: Point
    z: int
    layer: str = ""
    repeat_x: bool = False
    repeat_y: bool = False
    opacity: float = 1.0
    tint: Optional[Color] = None
    visible: bool = True
    parallax: Point = (1.0, 1.0)


@dataclass(frozen=True)
class SceneLayer:
    """
    One leaf layer of the map with everything inherited from its groups.

    path is the group path, "Background/Sky". Exactly one of drawables,
    objects or image is meaningful, according to kind.
    """
    kind: str                                        # 'tiles', 'objects' or 'image'
    name: str
    path: str
    z: int
    visible: bool
    opacity: float
    tint: Optional[Color]
    offset: Point
    parallax: Point
    properties: Dict[str, Any]
    drawables: Tuple[Drawable, ...] = ()
    objects: Tuple[ObjectPlacement, ...] = ()
    image: Optional[ImagePlacement] = None


@dataclass(frozen=True)
class SceneAssembly:
    layers: Tuple[SceneLayer, ...]
    background_color: Optional[Color] = None
    scale: Point = (1.0, 1.0)

    def drawables(self) -> Iterator[Drawable]:
        for layer in self.layers:
            yield from layer.drawables

    def objects(self) -> Iterator[ObjectPlacement]:
        for layer in self.layers:
            yield from layer.objects

    def images(self) -> Iterator[ImagePlacement]:
        for layer in self.layers:
            if layer.image is not None:
                yield layer.image


# =============================================================================
# ASSEMBLY
# =============================================================================

class _Assembler:
    """Walks the layer tree once. Not reusable."""

    def __init__(self, document: MapDocument, config: SceneConfig, target: Any):
        self.document = document
        self.projection = document.projection
        self.config = config
        self.target = target
        self.layers = []
        # (hook, placement) in walk order, replayed once the walk succeeded
        self.visits = []

    def _screen(self, x: float, y: float, context: LayerContext) -> Point:
        sx, sy = self.config.scale
        return (x + context.offset[0]) * sx, (y + context.offset[1]) * sy

    def walk(self, layers, context: LayerContext):
        for layer in layers:
            inner = context.enter(layer)
            if isinstance(layer, GroupLayer):
                self.walk(layer.layers, inner)
                continue

            z = len(self.layers)
            if isinstance(layer, TileLayer):
                scene_layer = self._tile_layer(layer, inner, z)
            elif isinstance(layer, ObjectLayer):
                scene_layer = self._object_layer(layer, inner, z)
            elif isinstance(layer, ImageLayer):
                scene_layer = self._image_layer(layer, inner, z)
            else:
                raise TypeError(f"not a layer: {layer!r}")
            self.layers.append(scene_layer)

    def _scene_layer(self, kind: str, layer, context: LayerContext, z: int, **content) -> SceneLayer:
        return SceneLayer(
            kind=kind, name=layer.name, path=context.path, z=z,
            visible=context.visible, opacity=context.opacity, tint=context.tint,
            offset=context.offset, parallax=context.parallax,
            properties=layer.properties, **content,
        )

    # -------------------------------------------------------------------------
    # TILE LAYERS
    # -------------------------------------------------------------------------

    def _tile_layer(self, layer: TileLayer, context: LayerContext, z: int) -> SceneLayer:
        projection = self.projection
        sx, sy = self.config.scale
        resolved: Dict[int, ResolvedTile] = {}
        drawables = []

        # Only non-empty cells, row-major
        for index in layer.cells.occupied():
            index = int(index)
            gid, flip = layer.cells.cell(index)
            tile = resolved.get(gid)
            if tile is None:
                tile = self.document.tilesets.resolve(gid)
                resolved[gid] = tile

            col, row = index % layer.width, index // layer.width
            anchor = projection.cell_anchor(col, row)
            origin = projection.sprite_origin(anchor, tile.region.width, tile.region.height,
                                              tile.tileset.tile_offset)
            drawables.append(Drawable(
                position=self._screen(anchor[0], anchor[1], context),
                origin=self._screen(origin[0], origin[1], context),
                size=(tile.region.width * sx, tile.region.height * sy),
                image=tile.image,
                region=tile.region,
                flip=flip,
                gid=gid,
                cell=(col, row),
                z=z,
                opacity=context.opacity,
                tint=context.tint,
                visible=context.visible,
                parallax=context.parallax,
                meta=tile.meta,
            ))

        logger.debug("Layer %d '%s': %d drawables", z, context.path, len(drawables))
        return self._scene_layer('tiles', layer, context, z, drawables=tuple(drawables))

    # -------------------------------------------------------------------------
    # OBJECT LAYERS
    # -------------------------------------------------------------------------

    def _object_layer(self, layer: ObjectLayer, context: LayerContext, z: int) -> SceneLayer:
        placements = []
        for obj in layer.objects:
            x, y = self.projection.object_position(obj.x, obj.y)
            tile = None
            if obj.is_tile:
                tile = self.document.tilesets.resolve(obj.gid)
            placement = ObjectPlacement(
                object=obj,
                position=self._screen(x, y, context),
                z=z,
                layer=context.path,
                tile=tile,
                anchor='bottom-left' if obj.is_tile else 'top-left',
                opacity=context.opacity,
                tint=context.tint,
                visible=context.visible and obj.visible,
                parallax=context.parallax,
            )
            if self.config.visit_object is not None:
                self.visits.append((self.config.visit_object, placement))
            placements.append(placement)

        logger.debug("Layer %d '%s': %d objects", z, context.path, len(placements))
        return self._scene_layer('objects', layer, context, z, objects=tuple(placements))

    # -------------------------------------------------------------------------
    # IMAGE LAYERS
    # -------------------------------------------------------------------------

    def _image_layer(self, layer: ImageLayer, context: LayerContext, z: int) -> SceneLayer:
        placement = None
        if layer.image is not None:
            placement = ImagePlacement(
                image=layer.image,
                position=self._screen(0.0, 0.0, context),
                z=z,
                layer=context.path,
                repeat_x=layer.repeat_x,
                repeat_y=layer.repeat_y,
                opacity=context.opacity,
                tint=context.tint,
                visible=context.visible,
                parallax=context.parallax,
            )
            if self.config.visit_image is not None:
                self.visits.append((self.config.visit_image, placement))
        return self._scene_layer('image', layer, context, z, image=placement)


def build_scene(document: MapDocument, config: Optional[SceneConfig] = None,
                target: Any = None) -> SceneAssembly:
    """
    Flatten a parsed map into a SceneAssembly.

    Parameters:
    -----------
    document : MapDocument
        Result of parse_map()
    config : SceneConfig, optional
        Scale and visitor hooks
    target : any
        Opaque value handed to the visitors (an engine world, a list...)

    Raises:
    -------
    UnresolvedTileId : A cell or tile object references no tileset.
        Visitor exceptions propagate unchanged.

    The visitors run only after the whole map has been assembled, so a
    failed build never hands anything to target.
    """
    config = config if config is not None else DEFAULT_CONFIG
    assembler = _Assembler(document, config, target)
    assembler.walk(document.layers, LayerContext())
    for visit, placement in assembler.visits:
        visit(placement, target)
    logger.info("Assembled scene: %d layers", len(assembler.layers))
    return SceneAssembly(layers=tuple(assembler.layers),
                         background_color=document.background_color,
                         scale=config.scale)

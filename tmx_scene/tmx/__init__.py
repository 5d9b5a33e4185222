"""TMX document model: parsing, tile data, tilesets, projections"""

from .data import FlipFlags, LayerCells, split_gid, join_gid
from .layers import TileLayer, ObjectLayer, ImageLayer, GroupLayer
from .map import MapDocument, parse_map
from .objects import MapObject, ObjectShape
from .projection import Projection, Orientation, StaggerAxis, StaggerIndex
from .properties import Color, Property, PropertyType
from .resources import ImageRef, ResourceResolver, join_reference
from .tileset import Tileset, TileMeta, TilesetTable, ResolvedTile, Rect, Frame

__all__ = [
    "FlipFlags", "LayerCells", "split_gid", "join_gid",
    "TileLayer", "ObjectLayer", "ImageLayer", "GroupLayer",
    "MapDocument", "parse_map",
    "MapObject", "ObjectShape",
    "Projection", "Orientation", "StaggerAxis", "StaggerIndex",
    "Color", "Property", "PropertyType",
    "ImageRef", "ResourceResolver", "join_reference",
    "Tileset", "TileMeta", "TilesetTable", "ResolvedTile", "Rect", "Frame",
]

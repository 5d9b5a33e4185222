"""
tmx_scene - Tiled TMX maps to engine-agnostic scenes

Requirements:
    pip install numpy pillow zstandard
"""

from .config import SceneConfig
from .errors import (
    TmxError, MalformedDocument, UnsupportedFeature, CellCountMismatch,
    DecompressionFailure, UnresolvedTileId, ExternalResourceUnavailable,
)
from .tmx import (
    MapDocument, parse_map, Projection, Orientation, TilesetTable,
    FlipFlags, split_gid,
)
from .scene import (
    SceneAssembly, SceneLayer, Drawable, ObjectPlacement, ImagePlacement,
    build_scene, parallax_position,
)
from .loader import FileSystemResolver, load_map, load_scene

__version__ = "0.1.0"
__all__ = [
    "SceneConfig",
    "TmxError",
    "MalformedDocument",
    "UnsupportedFeature",
    "CellCountMismatch",
    "DecompressionFailure",
    "UnresolvedTileId",
    "ExternalResourceUnavailable",
    "MapDocument",
    "parse_map",
    "Projection",
    "Orientation",
    "TilesetTable",
    "FlipFlags",
    "split_gid",
    "SceneAssembly",
    "SceneLayer",
    "Drawable",
    "ObjectPlacement",
    "ImagePlacement",
    "build_scene",
    "parallax_position",
    "FileSystemResolver",
    "load_map",
    "load_scene",
]

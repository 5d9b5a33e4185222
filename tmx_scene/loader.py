"""
Loading maps from disk

The parser itself never opens files. This module provides the resolver
most programs want: references are paths relative to a root directory,
and image sizes are read from the image headers with Pillow.

    from tmx_scene.loader import load_scene

    scene = load_scene("assets/maps/level1.tmx")
    for drawable in scene.drawables():
        ...

Paths inside the map (tilesets, templates, images) are resolved relative
to the file that mentions them, exactly as Tiled does.
"""

import logging
from pathlib import Path
from typing import Any, Optional, Tuple, Union

from PIL import Image

from .config import SceneConfig
from .scene.assembler import SceneAssembly, build_scene
from .tmx.map import MapDocument, parse_map

logger = logging.getLogger(__name__)


class FileSystemResolver:
    """
    ResourceResolver reading files below a root directory.

    Parameters:
    -----------
    root : str or Path
        Directory that references are relative to
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def path(self, reference: str) -> Path:
        return self.root / reference

    def read(self, reference: str) -> bytes:
        path = self.path(reference)
        logger.debug("Reading %s", path)
        return path.read_bytes()

    def image_size(self, reference: str) -> Tuple[int, int]:
        # Image.open only reads the header; pixels stay on disk
        with Image.open(self.path(reference)) as image:
            return image.size


def load_map(path: Union[str, Path]) -> MapDocument:
    """
    Load a TMX file and everything it references.

    Raises:
    -------
    FileNotFoundError : If the TMX file itself does not exist
    TmxError subclasses : See tmx_scene.errors
    """
    path = Path(path)
    resolver = FileSystemResolver(path.parent)
    return parse_map(path.read_bytes(), resolver, reference=path.name)


def load_scene(path: Union[str, Path], config: Optional[SceneConfig] = None,
               target: Any = None) -> SceneAssembly:
    """Load a TMX file and assemble its scene in one call."""
    return build_scene(load_map(path), config, target)

from .assembler import (
    SceneAssembly, SceneLayer, Drawable, ObjectPlacement, ImagePlacement,
    LayerContext, build_scene,
)
from .parallax import parallax_position

__all__ = [
    "SceneAssembly", "SceneLayer", "Drawable", "ObjectPlacement", "ImagePlacement",
    "LayerContext", "build_scene", "parallax_position",
]

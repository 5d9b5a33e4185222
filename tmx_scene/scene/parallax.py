"""
Parallax scrolling

A layer with parallax factor f moves at f times the camera speed. The
camera is taken to sit at factor 1, so a layer at factor 1 does not move
relative to the world, and a layer at factor 0 stays glued to the screen:

    camera moves 100px right
    factor 1.0  -> layer shifts   0px (scrolls with the world)
    factor 0.5  -> layer shifts +50px (scrolls at half speed)
    factor 0.0  -> layer shifts +100px (static background)
"""

from typing import Tuple

Point = Tuple[float, float]


def parallax_position(position: Point, factor: Point, camera: Point) -> Point:
    """
    World position of a drawable once its layer's parallax is applied.

    position + camera * (1 - factor), per axis.
    """
    return (position[0] + camera[0] * (1.0 - factor[0]),
            position[1] + camera[1] * (1.0 - factor[1]))

"""
Scene assembly configuration
"""

import math
from dataclasses import dataclass
from typing import Any, Callable, Optional, Tuple

# visit_object(placement, target), visit_image(placement, target)
Visitor = Callable[[Any, Any], None]


@dataclass(frozen=True)
class SceneConfig:
    """
    Options for build_scene().

    scale : (float, float)
        Multiplies every final position (after offsets). Finite, non-zero.
    visit_object : callable, optional
        Called once per object placement as visit_object(placement, target)
    visit_image : callable, optional
        Called once per image layer placement as visit_image(placement, target)
    """
    scale: Tuple[float, float] = (1.0, 1.0)
    visit_object: Optional[Visitor] = None
    visit_image: Optional[Visitor] = None

    def __post_init__(self):
        try:
            sx, sy = self.scale
            sx, sy = float(sx), float(sy)
        except (TypeError, ValueError) as e:
            raise ValueError(f"scale must be a pair of numbers, got {self.scale!r}") from e
        if not (math.isfinite(sx) and math.isfinite(sy)) or sx == 0 or sy == 0:
            raise ValueError(f"scale must be finite and non-zero, got {self.scale!r}")
        # Normalized so that equal configs compare equal
        object.__setattr__(self, 'scale', (sx, sy))

        for name in ('visit_object', 'visit_image'):
            visitor = getattr(self, name)
            if visitor is not None and not callable(visitor):
                raise TypeError(f"{name} must be callable or None")


DEFAULT_CONFIG = SceneConfig()

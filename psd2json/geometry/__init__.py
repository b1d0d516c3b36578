"""Pure geometry: rectangles, intersection, scaling and frame translation."""

from .rect import (
    Rect,
    effective_bounds,
    intersect,
    relative_to,
    scale_to_fit,
)

__all__ = [
    "Rect",
    "effective_bounds",
    "intersect",
    "relative_to",
    "scale_to_fit",
]

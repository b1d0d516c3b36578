"""Rectangle helpers used by the flattener and the image export pipeline.

All rectangles are axis-aligned and expressed in absolute document
coordinates unless stated otherwise. Nothing here touches the filesystem.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence, Tuple

if TYPE_CHECKING:
    from psd2json.document.model import DocumentNode


@dataclass(frozen=True)
class Rect:
    left: int
    top: int
    width: int
    height: int

    @property
    def right(self) -> int:
        return self.left + self.width

    @property
    def bottom(self) -> int:
        return self.top + self.height

    @property
    def origin(self) -> Tuple[int, int]:
        return self.left, self.top

    @property
    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


def intersect(a: Rect, b: Rect) -> Optional[Rect]:
    """Return the overlap of two rectangles, or None when they do not overlap.

    Doxygen:
    - @param a: First rectangle.
    - @param b: Second rectangle.
    - @return: Intersection rectangle or None.
    """
    left = max(a.left, b.left)
    top = max(a.top, b.top)
    right = min(a.right, b.right)
    bottom = min(a.bottom, b.bottom)
    if left >= right or top >= bottom:
        return None
    return Rect(left, top, right - left, bottom - top)


def scale_to_fit(
    width: int,
    height: int,
    max_width: Optional[int] = None,
    max_height: Optional[int] = None,
) -> Tuple[int, int]:
    """Scale (width, height) down so it fits inside the given maximum.

    An unset axis is unbounded. The result is floored and never larger than
    the input; with no maximum on either axis the input is returned as is.

    Doxygen:
    - @param width: Source width in pixels.
    - @param height: Source height in pixels.
    - @param max_width: Maximum width, or None.
    - @param max_height: Maximum height, or None.
    - @return: (width, height) after scaling.
    """
    if not max_width and not max_height:
        return width, height
    if width <= 0 or height <= 0:
        return width, height
    bound_w = max_width or math.inf
    bound_h = max_height or math.inf
    scale = min(bound_w / width, bound_h / height, 1)
    return int(math.floor(width * scale)), int(math.floor(height * scale))


def relative_to(rect: Rect, origin: Tuple[int, int]) -> Tuple[int, int]:
    """Translate the rectangle's top-left corner into the frame at ``origin``."""
    return rect.left - origin[0], rect.top - origin[1]


def _mask_rect(node: "DocumentNode") -> Optional[Rect]:
    mask = node.mask
    if mask is None or not mask.width or not mask.height:
        return None
    left = mask.left if mask.left is not None else node.left
    top = mask.top if mask.top is not None else node.top
    return Rect(left, top, mask.width, mask.height)


def effective_bounds(node: "DocumentNode", preceding: Sequence["DocumentNode"] = ()) -> Rect:
    """Resolve the visible rectangle of a node.

    Order of precedence: the node's own mask; for clipped nodes, the mask of
    the nearest preceding sibling that is not itself clipped (the clip base);
    finally the node's own bounds. Masks of ancestor groups are not consulted.

    Doxygen:
    - @param node: Node whose bounds are resolved.
    - @param preceding: Siblings before ``node`` in document order.
    - @return: Absolute rectangle.
    """
    own_mask = _mask_rect(node)
    if own_mask is not None:
        return own_mask

    if node.clipped:
        base = None
        for sibling in reversed(preceding):
            if not sibling.clipped:
                base = sibling
                break
        if base is not None:
            base_mask = _mask_rect(base)
            if base_mask is not None:
                return base_mask

    return Rect(node.left, node.top, node.width, node.height)

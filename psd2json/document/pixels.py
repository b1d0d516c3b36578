"""Pixel handles handed from the parser side to the image export pipeline.

Plain layers yield a PIL image. Smart objects yield a ``SmartObjectHandle``
that can only save itself to a file, so the exporter has to materialize it
before cropping. Clipped layers yield their own pixels with the alpha channel
multiplied by the coverage of the clip base.
"""

from __future__ import annotations

import io
import logging
from typing import Any, Optional

import numpy as np
from PIL import Image

from psd2json.errors import ExportError

logger = logging.getLogger(__name__)


def layer_image(layer: Any) -> Optional[Image.Image]:
    """Return the layer's own pixels as a PIL image, or None when it has none.

    Doxygen:
    - @param layer: psd-tools layer.
    - @return: PIL image sized to the layer bounds, or None.
    """
    image = None
    topil = getattr(layer, "topil", None)
    if callable(topil):
        image = topil()
    if image is None:
        composite = getattr(layer, "composite", None)
        if callable(composite):
            image = composite()
    return image


class SmartObjectHandle:
    """Save-only pixel handle for smart object layers."""

    def __init__(self, layer: Any) -> None:
        self._layer = layer
        self.name = getattr(layer, "name", "")

    def save(self, path: str) -> None:
        """Write the smart object as PNG.

        Falls back to decoding the embedded payload with Pillow when the layer
        has no rendered pixels. Payloads Pillow cannot read (PSB, AI, PDF) are
        an export error; nothing is written for them.

        Doxygen:
        - @param path: Destination PNG path.
        - @throws ExportError: If no raster image can be produced.
        """
        image = layer_image(self._layer)
        if image is None:
            image = self._decode_payload()
        image.save(path, format="PNG")

    def _decode_payload(self) -> Image.Image:
        smart_object = getattr(self._layer, "smart_object", None)
        data = getattr(smart_object, "data", None)
        if not data:
            raise ExportError(f'Cannot save smart object "{self.name}": no pixel data available')
        try:
            with Image.open(io.BytesIO(data)) as payload:
                payload.load()
                return payload.convert("RGBA")
        except Exception as exc:
            kind = getattr(smart_object, "filetype", "unknown")
            raise ExportError(
                f'Cannot save smart object "{self.name}": embedded {kind} payload is not a raster image ({exc})'
            ) from exc


def _mask_alpha(mask: Any, left: int, top: int, width: int, height: int) -> Optional[np.ndarray]:
    """Rasterize a layer mask over the ``width`` x ``height`` frame at (left, top).

    Outside the mask rectangle the mask's background color applies. A mask
    without pixel data is opaque inside its rectangle.
    """
    if mask is None or getattr(mask, "disabled", False):
        return None
    mw = int(getattr(mask, "width", 0) or 0)
    mh = int(getattr(mask, "height", 0) or 0)
    if mw <= 0 or mh <= 0:
        return None

    background = int(getattr(mask, "background_color", 0) or 0)
    alpha = np.full((height, width), background, dtype=np.uint8)

    mask_image = None
    topil = getattr(mask, "topil", None)
    if callable(topil):
        mask_image = topil()
    if mask_image is not None:
        values = np.asarray(mask_image.convert("L"))
        mh, mw = values.shape[:2]
    else:
        values = np.full((mh, mw), 255, dtype=np.uint8)

    mask_left = getattr(mask, "left", None)
    mask_top = getattr(mask, "top", None)
    mx = left if mask_left is None else int(mask_left)
    my = top if mask_top is None else int(mask_top)

    x0, y0 = max(mx, left), max(my, top)
    x1, y1 = min(mx + mw, left + width), min(my + mh, top + height)
    if x1 > x0 and y1 > y0:
        alpha[y0 - top:y1 - top, x0 - left:x1 - left] = values[y0 - my:y1 - my, x0 - mx:x1 - mx]
    return alpha


def merge_clipping_mask(layer: Any, base: Any) -> Image.Image:
    """Clip ``layer`` against the coverage of ``base`` and return the result.

    Coverage is the base's alpha channel multiplied by the base's layer mask.
    The returned image keeps the layer's own size and position; pixels that
    fall outside the base layer or its mask become fully transparent.

    Doxygen:
    - @param layer: Clipped psd-tools layer.
    - @param base: The clip base (nearest preceding unclipped sibling).
    - @return: RGBA image the size of ``layer``.
    - @throws ExportError: If either layer has no pixel data.
    """
    image = layer_image(layer)
    if image is None:
        raise ExportError(f'Layer "{getattr(layer, "name", "")}" has no pixel data')
    base_image = layer_image(base)
    if base_image is None:
        raise ExportError(f'Failed to merge clipping mask: base "{getattr(base, "name", "")}" has no pixel data')

    pixels = np.array(image.convert("RGBA"))
    base_alpha = np.asarray(base_image.convert("RGBA"))[..., 3]
    h, w = pixels.shape[:2]
    bh, bw = base_alpha.shape[:2]

    mask_alpha = _mask_alpha(getattr(base, "mask", None), base.left, base.top, bw, bh)
    if mask_alpha is not None:
        base_alpha = (base_alpha.astype(np.uint16) * mask_alpha // 255).astype(np.uint8)

    coverage = np.zeros((h, w), dtype=np.uint16)
    x0 = max(layer.left, base.left)
    y0 = max(layer.top, base.top)
    x1 = min(layer.left + w, base.left + bw)
    y1 = min(layer.top + h, base.top + bh)
    if x1 > x0 and y1 > y0:
        coverage[y0 - layer.top:y1 - layer.top, x0 - layer.left:x1 - layer.left] = \
            base_alpha[y0 - base.top:y1 - base.top, x0 - base.left:x1 - base.left]
    else:
        logger.debug('Clipped layer "%s" does not overlap its base', getattr(layer, "name", ""))

    pixels[..., 3] = (pixels[..., 3].astype(np.uint16) * coverage // 255).astype(np.uint8)
    return Image.fromarray(pixels, "RGBA")

"""Image export pipeline: write one layer's pixels under a maximum canvas.

Given a pixel handle, the layer's absolute bounds and an optional maximum
resolution, the exporter decides between pass-through, crop (default) or
scale, writes a PNG and reports where the written image is placed.

Two kinds of handle are accepted:
- ``PIL.Image.Image``: cropped in memory (direct strategy).
- anything exposing only ``save(path)`` (smart objects): saved to a
  temporary file first, then processed from disk (materialize strategy).
"""

from __future__ import annotations

import logging
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Iterator, Optional

from PIL import Image

from psd2json.config import MaxResolution
from psd2json.errors import ExportError
from psd2json.geometry import Rect, intersect, scale_to_fit

logger = logging.getLogger(__name__)

DIRECT = "direct"
MATERIALIZE = "materialize"
RESIZE_MODES = ("crop", "scale")
_PNG_MODES = ("1", "L", "LA", "I", "P", "RGB", "RGBA")


@dataclass
class ExportResult:
    width: int
    height: int
    x: int
    y: int

    @classmethod
    def from_rect(cls, rect: Rect) -> "ExportResult":
        return cls(width=rect.width, height=rect.height, x=rect.left, y=rect.top)


def select_strategy(handle: Any) -> str:
    """Pick how a pixel handle is processed, based on what it can do.

    Doxygen:
    - @param handle: PIL image or save-only handle.
    - @return: DIRECT or MATERIALIZE.
    - @throws ExportError: If the handle is missing or cannot be written at all.
    """
    if handle is None:
        raise ExportError("Layer image is missing")
    if isinstance(handle, Image.Image):
        return DIRECT
    if callable(getattr(handle, "save", None)):
        return MATERIALIZE
    raise ExportError(f"Unsupported pixel handle: {type(handle).__name__}")


def ensure_parent_dir(path: str) -> str:
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    return directory


@contextmanager
def materialized(handle: Any, output_path: str) -> Iterator[str]:
    """Save ``handle`` to a temporary file next to ``output_path``; remove it on exit."""
    directory = ensure_parent_dir(output_path)
    temp_name = f"temp_{int(time.time() * 1000)}_{os.path.basename(output_path)}"
    temp_path = os.path.join(directory, temp_name)
    try:
        handle.save(temp_path)
        if not os.path.exists(temp_path):
            raise ExportError(f"Failed to create temporary file: {temp_path}")
        logger.debug("Temporary file created: %s", temp_path)
        yield temp_path
    finally:
        try:
            if os.path.exists(temp_path):
                os.remove(temp_path)
                logger.debug("Temporary file deleted: %s", temp_path)
        except OSError as exc:
            logger.warning("Could not delete temporary file %s: %s", temp_path, exc)


def _save_png(image: Image.Image, path: str) -> None:
    if image.mode not in _PNG_MODES:
        image = image.convert("RGBA")
    image.save(path, format="PNG")


def _clamp_edge(value: int, limit: int) -> int:
    if value < 0:
        return 0
    if value >= limit:
        return limit - 1
    return value


class ImageExporter:
    """Writes layer images, optionally limited to a maximum canvas."""

    def __init__(self, max_resolution: Optional[MaxResolution] = None, resize_mode: str = "crop") -> None:
        if resize_mode not in RESIZE_MODES:
            raise ValueError(f"resize_mode must be one of {RESIZE_MODES}, got {resize_mode!r}")
        self.max_resolution = max_resolution
        self.resize_mode = resize_mode

    @property
    def constrained(self) -> bool:
        return self.max_resolution is not None and bool(self.max_resolution.width or self.max_resolution.height)

    def export(self, handle: Any, bounds: Rect, output_path: str, name: Optional[str] = None) -> ExportResult:
        """Write ``handle`` to ``output_path`` and report the placed geometry.

        Doxygen:
        - @param handle: PIL image or save-only smart object handle.
        - @param bounds: Absolute effective bounds of the layer.
        - @param output_path: Destination PNG path.
        - @param name: Layer name for log messages.
        - @return: ExportResult in absolute document coordinates.
        - @throws ExportError: If nothing could be written for the layer.
        """
        label = name or os.path.basename(output_path)
        strategy = select_strategy(handle)
        ensure_parent_dir(output_path)
        if strategy == MATERIALIZE:
            logger.warning('Smart object detected: "%s". Processing...', label)
            return self._export_materialized(handle, bounds, output_path, label)
        return self._export_image(handle, bounds, output_path)

    def _export_image(self, image: Image.Image, bounds: Rect, output_path: str) -> ExportResult:
        if not self.constrained:
            _save_png(image, output_path)
            logger.info("Saved image without resizing: %s", output_path)
            return ExportResult.from_rect(bounds)
        if self.resize_mode == "scale":
            return self._scale_and_write(image, bounds, output_path)
        return self._crop_and_write(image, bounds, output_path)

    def _canvas(self, bounds: Rect) -> Rect:
        # An unset axis reaches at least as far as the layer does.
        width = self.max_resolution.width or max(bounds.right, 0)
        height = self.max_resolution.height or max(bounds.bottom, 0)
        return Rect(0, 0, width, height)

    def _write_placeholder(self, bounds: Rect, canvas: Rect, output_path: str) -> ExportResult:
        Image.new("RGBA", (1, 1), (0, 0, 0, 0)).save(output_path, format="PNG")
        x = _clamp_edge(bounds.left, max(canvas.width, 1))
        y = _clamp_edge(bounds.top, max(canvas.height, 1))
        return ExportResult(width=1, height=1, x=x, y=y)

    def _crop_and_write(self, image: Image.Image, bounds: Rect, output_path: str) -> ExportResult:
        canvas = self._canvas(bounds)
        logger.debug(
            "Layer position: (%d, %d), size: %dx%d, canvas %dx%d",
            bounds.left, bounds.top, bounds.width, bounds.height, canvas.width, canvas.height,
        )
        visible = intersect(bounds, canvas)
        if visible is None:
            logger.info("Layer is completely outside the visible area: %s", output_path)
            return self._write_placeholder(bounds, canvas, output_path)

        crop_left = visible.left - bounds.left
        crop_top = visible.top - bounds.top
        crop_w = visible.width
        crop_h = visible.height
        img_w, img_h = image.size
        if crop_left + crop_w > img_w:
            crop_w = img_w - crop_left
        if crop_top + crop_h > img_h:
            crop_h = img_h - crop_top
        if crop_w <= 0 or crop_h <= 0:
            logger.info("Invalid crop dimensions %dx%d, writing empty image: %s", crop_w, crop_h, output_path)
            return self._write_placeholder(bounds, canvas, output_path)

        _save_png(image.crop((crop_left, crop_top, crop_left + crop_w, crop_top + crop_h)), output_path)
        result = ExportResult(width=crop_w, height=crop_h, x=max(0, bounds.left), y=max(0, bounds.top))
        logger.info(
            "Cropped image to %s (%dx%d) at (%d, %d)",
            output_path, result.width, result.height, result.x, result.y,
        )
        return result

    def _scale_and_write(self, image: Image.Image, bounds: Rect, output_path: str) -> ExportResult:
        img_w, img_h = image.size
        target_w, target_h = scale_to_fit(img_w, img_h, self.max_resolution.width, self.max_resolution.height)
        target_w, target_h = max(1, target_w), max(1, target_h)
        if (target_w, target_h) == (img_w, img_h):
            _save_png(image, output_path)
        else:
            _save_png(image.resize((target_w, target_h), Image.Resampling.LANCZOS), output_path)
            logger.info("Scaled image %s from %dx%d to %dx%d", output_path, img_w, img_h, target_w, target_h)
        return ExportResult(width=target_w, height=target_h, x=bounds.left, y=bounds.top)

    def _export_materialized(self, handle: Any, bounds: Rect, output_path: str, label: str) -> ExportResult:
        if not self.constrained:
            handle.save(output_path)
            logger.info('Saved smart object "%s" to %s', label, output_path)
            return ExportResult.from_rect(bounds)

        try:
            with materialized(handle, output_path) as temp_path:
                with Image.open(temp_path) as image:
                    image.load()
                    result = self._export_image(image, bounds, output_path)
            logger.info('Processed smart object "%s" to %dx%d', label, result.width, result.height)
            return result
        except Exception as exc:
            logger.error('Failed to process smart object "%s": %s', label, exc)
            logger.info('Falling back to original image for smart object "%s"', label)

        try:
            handle.save(output_path)
        except Exception as exc:
            raise ExportError(f'Failed to save original smart object "{label}": {exc}') from exc
        return ExportResult.from_rect(bounds)

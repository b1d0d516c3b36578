"""
pytest configuration and shared fakes.

``FakeLayer`` mimics the parts of a psd-tools layer the adapter reads, so the
adapter and pipeline can be exercised without a real PSD file on disk.
"""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, List, Optional

import numpy as np
import pytest
from PIL import Image

from psd2json.document import GroupNode, RasterNode, TextNode


def solid_image(width: int, height: int, color=(255, 0, 0, 255)) -> Image.Image:
    pixels = np.zeros((height, width, 4), dtype=np.uint8)
    pixels[...] = color
    return Image.fromarray(pixels, "RGBA")


class FakeLayer:
    def __init__(
        self,
        name: str,
        kind: str = "pixel",
        left: int = 0,
        top: int = 0,
        width: int = 0,
        height: int = 0,
        visible: bool = True,
        mask: Any = None,
        clipping: bool = False,
        image: Optional[Image.Image] = None,
        layers: Optional[List["FakeLayer"]] = None,
        **extra: Any,
    ) -> None:
        self.name = name
        self.kind = kind
        self.left = left
        self.top = top
        self.width = width
        self.height = height
        self.visible = visible
        self.mask = mask
        self.clipping = clipping
        self._image = image
        if layers is not None:
            self._layers = layers
        for key, value in extra.items():
            setattr(self, key, value)

    def is_group(self) -> bool:
        return self.kind == "group"

    def topil(self) -> Optional[Image.Image]:
        return self._image

    def composite(self) -> Optional[Image.Image]:
        return self._image


def fake_mask(left, top, width, height, disabled=False):
    return SimpleNamespace(left=left, top=top, width=width, height=height, disabled=disabled)


def raster(name, left, top, width, height, image=None, **kwargs) -> RasterNode:
    img = image if image is not None else solid_image(max(width, 1), max(height, 1))
    return RasterNode(
        name=name, left=left, top=top, width=width, height=height,
        load_pixels=lambda: img, load_clipped=lambda: img, **kwargs,
    )


def group(name, left, top, width, height, children, **kwargs) -> GroupNode:
    return GroupNode(name=name, left=left, top=top, width=width, height=height, children=list(children), **kwargs)


def text(name, left, top, width, height, **kwargs) -> TextNode:
    return TextNode(name=name, left=left, top=top, width=width, height=height, **kwargs)


@pytest.fixture
def page_document() -> GroupNode:
    """One group "Page" with a background raster and a title text layer."""
    from psd2json.document import TextInfo

    return group("Root", 0, 0, 1000, 800, [
        group("Page", 100, 50, 800, 600, [
            raster("Bg", 100, 50, 800, 600),
            text("Title", 150, 80, 300, 40, text=TextInfo(content="Hello")),
        ]),
    ])

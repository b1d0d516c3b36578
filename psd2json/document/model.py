from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple, Union


@dataclass
class Mask:
    width: int
    height: int
    left: Optional[int] = None
    top: Optional[int] = None


@dataclass
class TextInfo:
    content: str = ""
    font: str = "default"
    size: float = 0
    color: Tuple[int, int, int, float] = (0, 0, 0, 1)
    alignment: str = "left"
    transform: Dict[str, float] = field(default_factory=dict)

    def css_color(self) -> str:
        r, g, b, a = self.color
        return f"rgba({r}, {g}, {b}, {a:g})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "content": self.content,
            "font": self.font,
            "size": self.size,
            "color": self.css_color(),
            "alignment": self.alignment,
            "transform": dict(self.transform),
        }


@dataclass
class _NodeBase:
    name: str
    left: int
    top: int
    width: int
    height: int
    visible: bool = True
    mask: Optional[Mask] = None
    clipped: bool = False


@dataclass
class GroupNode(_NodeBase):
    children: List["DocumentNode"] = field(default_factory=list)


@dataclass
class TextNode(_NodeBase):
    text: TextInfo = field(default_factory=TextInfo)


@dataclass
class RasterNode(_NodeBase):
    # Loaders return a PIL image or a save-only handle (smart objects).
    load_pixels: Optional[Callable[[], Any]] = None
    load_clipped: Optional[Callable[[], Any]] = None

    def pixel_handle(self) -> Any:
        loader = self.load_clipped if self.clipped else self.load_pixels
        if loader is None:
            return None
        return loader()


DocumentNode = Union[GroupNode, TextNode, RasterNode]

"""Normalize psd-tools layers into the canonical ``DocumentNode`` tree.

Everything that knows about psd-tools attribute names lives here, so the
flattener only ever sees ``GroupNode``, ``TextNode`` and ``RasterNode``.
"""

from __future__ import annotations

import logging
import os
from functools import partial
from typing import Any, Dict, List, Optional, Sequence, Tuple

from psd2json.errors import DocumentError

from .model import DocumentNode, GroupNode, Mask, RasterNode, TextInfo, TextNode
from .pixels import SmartObjectHandle, layer_image, merge_clipping_mask

logger = logging.getLogger(__name__)

_JUSTIFICATION = {0: "left", 1: "right", 2: "center"}
_TRANSFORM_KEYS = ("xx", "xy", "yx", "yy", "tx", "ty")


def _plain(value: Any) -> Any:
    # engine data elements wrap their python value
    return getattr(value, "value", value)


def _kind(layer: Any) -> str:
    kind = getattr(layer, "kind", None)
    if kind == "group":
        return "group"
    is_group = getattr(layer, "is_group", None)
    if callable(is_group) and is_group():
        return "group"
    if kind == "type":
        return "text"
    return "raster"


def child_layers(layer: Any) -> List[Any]:
    """Return the raw child list of a group layer.

    Accepts the psd-tools private ``_layers`` list, a ``children`` or
    ``_children`` attribute, or plain iteration, in that order.
    """
    for attr in ("_layers", "children", "_children"):
        children = getattr(layer, attr, None)
        if children is not None and not callable(children):
            return list(children)
    try:
        return list(iter(layer))
    except TypeError:
        return []


def _clipping_flag(layer: Any) -> bool:
    flag = getattr(layer, "clipping", None)
    if flag is None:
        flag = getattr(layer, "clipping_layer", False)
    return bool(flag)


def _mask_of(layer: Any) -> Optional[Mask]:
    mask = getattr(layer, "mask", None)
    if mask is None or getattr(mask, "disabled", False):
        return None
    width = int(getattr(mask, "width", 0) or 0)
    height = int(getattr(mask, "height", 0) or 0)
    if width <= 0 or height <= 0:
        return None
    left = getattr(mask, "left", None)
    top = getattr(mask, "top", None)
    return Mask(
        width=width,
        height=height,
        left=int(left) if left is not None else None,
        top=int(top) if top is not None else None,
    )


def _engine_dicts(layer: Any) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    engine = getattr(layer, "engine_dict", None)
    resource = getattr(layer, "resource_dict", None)
    if engine is None:
        raw = getattr(layer, "_engine_data", None) or {}
        engine = raw.get("EngineDict")
        resource = resource if resource is not None else raw.get("ResourceDict")
    return engine or {}, resource or {}


def _first_run(engine: Dict[str, Any], run: str, sheet: str) -> Dict[str, Any]:
    runs = (engine.get(run) or {}).get("RunArray") or [{}]
    data = (runs[0] or {}).get(sheet) or {}
    if sheet == "StyleSheet":
        return data.get("StyleSheetData") or {}
    return data.get("Properties") or {}


def _color_of(style: Dict[str, Any]) -> Tuple[int, int, int, float]:
    values = (style.get("FillColor") or {}).get("Values")
    if not values or len(values) < 4:
        return (0, 0, 0, 1)
    a, r, g, b = (float(_plain(v)) for v in list(values)[:4])
    return (round(r * 255), round(g * 255), round(b * 255), round(a, 3))


def extract_text_info(layer: Any) -> TextInfo:
    """Read text metadata from a psd-tools type layer.

    Doxygen:
    - @param layer: psd-tools TypeLayer (or anything exposing the same fields).
    - @return: TextInfo with defaults for anything the layer does not carry.
    """
    info = TextInfo(content=str(_plain(getattr(layer, "text", "") or "")))
    engine, resource = _engine_dicts(layer)

    style = _first_run(engine, "StyleRun", "StyleSheet")
    paragraph = _first_run(engine, "ParagraphRun", "ParagraphSheet")

    font_index = style.get("Font")
    font_set = resource.get("FontSet") or []
    if font_index is not None and 0 <= int(_plain(font_index)) < len(font_set):
        name = _plain((font_set[int(_plain(font_index))] or {}).get("Name"))
        if name:
            info.font = str(name).strip("'\"\x00")

    size = style.get("FontSize")
    if size is not None:
        info.size = float(_plain(size))

    info.color = _color_of(style)

    justification = paragraph.get("Justification")
    if justification is not None:
        info.alignment = _JUSTIFICATION.get(int(_plain(justification)), "justify")

    transform = getattr(layer, "transform", None)
    if transform:
        info.transform = {k: float(v) for k, v in zip(_TRANSFORM_KEYS, transform)}
    return info


def _clip_base(preceding_raw: Sequence[Any]) -> Optional[Any]:
    for sibling in reversed(preceding_raw):
        if not _clipping_flag(sibling):
            return sibling
    return None


def _load_clipped(layer: Any, base: Optional[Any]) -> Any:
    if base is None:
        logger.debug('Clipped layer "%s" has no base; using its own pixels', getattr(layer, "name", ""))
        return layer_image(layer)
    return merge_clipping_mask(layer, base)


def adapt_layer(layer: Any, preceding_raw: Sequence[Any] = ()) -> DocumentNode:
    """Convert one raw layer (without its children) into a canonical node.

    Doxygen:
    - @param layer: psd-tools layer.
    - @param preceding_raw: Raw siblings before ``layer``, used to locate the clip base.
    - @return: GroupNode (with empty children), TextNode or RasterNode.
    """
    common = dict(
        name=str(getattr(layer, "name", "")),
        left=int(getattr(layer, "left", 0) or 0),
        top=int(getattr(layer, "top", 0) or 0),
        width=int(getattr(layer, "width", 0) or 0),
        height=int(getattr(layer, "height", 0) or 0),
        visible=getattr(layer, "visible", True) is not False,
        mask=_mask_of(layer),
        clipped=_clipping_flag(layer),
    )
    kind = _kind(layer)
    if kind == "group":
        return GroupNode(**common)
    if kind == "text":
        return TextNode(text=extract_text_info(layer), **common)

    if getattr(layer, "kind", None) == "smartobject":
        load_pixels = partial(SmartObjectHandle, layer)
    else:
        load_pixels = partial(layer_image, layer)
    return RasterNode(
        load_pixels=load_pixels,
        load_clipped=partial(_load_clipped, layer, _clip_base(preceding_raw)),
        **common,
    )


def adapt_tree(root: Any) -> GroupNode:
    """Build the canonical tree for a parsed document without recursion."""
    root_node = GroupNode(
        name=str(getattr(root, "name", "") or "Root"),
        left=int(getattr(root, "left", 0) or 0),
        top=int(getattr(root, "top", 0) or 0),
        width=int(getattr(root, "width", 0) or 0),
        height=int(getattr(root, "height", 0) or 0),
    )
    stack: List[Tuple[Any, GroupNode]] = [(root, root_node)]
    while stack:
        raw_group, group = stack.pop()
        clip_base = None
        for raw in child_layers(raw_group):
            node = adapt_layer(raw, (clip_base,) if clip_base is not None else ())
            if not node.clipped:
                clip_base = raw
            group.children.append(node)
            if isinstance(node, GroupNode):
                stack.append((raw, node))
    return root_node


def parse_document(path: str) -> GroupNode:
    """Open a PSD/PSB file with psd-tools and return its canonical tree.

    Doxygen:
    - @param path: Path to the document.
    - @return: Root GroupNode.
    - @throws DocumentError: If the file is missing or cannot be parsed.
    """
    if not os.path.exists(path):
        raise DocumentError(f"Document not found: {path}")

    from psd_tools import PSDImage

    try:
        psd = PSDImage.open(path)
    except Exception as exc:
        raise DocumentError(f"Failed to parse document {path}: {exc}") from exc
    logger.info("Parsed %s (%dx%d)", path, psd.width, psd.height)
    return adapt_tree(psd)

"""Flatten the canonical document tree into the nested layout JSON.

The traversal is depth-first in document sibling order and uses an explicit
stack of ``TraversalFrame`` records, so arbitrarily deep group nesting never
touches the interpreter's recursion limit.

Every emitted node carries coordinates relative to its parent group's
effective origin; top-level nodes are relative to the document origin.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

from psd2json.document.model import DocumentNode, GroupNode, RasterNode, TextNode
from psd2json.geometry import Rect, effective_bounds, relative_to
from psd2json.image.export import ImageExporter

from .naming import IMAGE_EXTENSION, FilenameAllocator

logger = logging.getLogger(__name__)


@dataclass
class TraversalFrame:
    siblings: Sequence[DocumentNode]
    output: Dict[str, Any]
    path: List[str] = field(default_factory=list)
    origin: Tuple[int, int] = (0, 0)
    index: int = 0
    # nearest preceding sibling that is not clipped
    clip_base: Optional[DocumentNode] = None


def _layout_node(name: str, kind: str, bounds: Rect, origin: Tuple[int, int]) -> Dict[str, Any]:
    x, y = relative_to(bounds, origin)
    return {
        "name": name,
        "type": kind,
        "x": x,
        "y": y,
        "width": bounds.width,
        "height": bounds.height,
    }


class TreeFlattener:
    """Walks a ``GroupNode`` tree and produces a list of layout dicts.

    When ``image_dir`` is set, raster layers are written through ``exporter``:
    into ``image_dir`` directly in flatten mode, otherwise into
    ``image_dir/<group>/<subgroup>/...``.
    """

    def __init__(
        self,
        image_dir: Optional[str] = None,
        exporter: Optional[ImageExporter] = None,
        allocator: Optional[FilenameAllocator] = None,
        flatten_image_path: bool = False,
    ) -> None:
        self.image_dir = image_dir or None
        self.exporter = exporter or ImageExporter()
        self.flatten_image_path = bool(flatten_image_path)
        self.allocator = allocator or FilenameAllocator(flatten=self.flatten_image_path)

    def flatten(self, root: GroupNode) -> List[Dict[str, Any]]:
        """Return the layout of ``root``'s visible descendants.

        Doxygen:
        - @param root: Document root group; its own geometry is not emitted.
        - @return: List of layout nodes (group nodes nest their children).
        """
        top: Dict[str, Any] = {"children": []}
        stack: List[TraversalFrame] = [TraversalFrame(siblings=root.children, output=top)]

        while stack:
            frame = stack[-1]
            if frame.index >= len(frame.siblings):
                stack.pop()
                continue

            node = frame.siblings[frame.index]
            frame.index += 1
            preceding = (frame.clip_base,) if node.clipped and frame.clip_base is not None else ()
            if not node.clipped:
                frame.clip_base = node
            if not node.visible:
                continue

            bounds = effective_bounds(node, preceding)

            if isinstance(node, GroupNode):
                structure = _layout_node(node.name, "group", bounds, frame.origin)
                structure["children"] = []
                frame.output["children"].append(structure)
                stack.append(
                    TraversalFrame(
                        siblings=node.children,
                        output=structure,
                        path=frame.path + [node.name],
                        origin=bounds.origin,
                    )
                )
            elif isinstance(node, TextNode):
                structure = _layout_node(node.name, "text", bounds, frame.origin)
                structure["text"] = node.text.to_dict()
                frame.output["children"].append(structure)
            else:
                structure = _layout_node(node.name, "image", bounds, frame.origin)
                if self.image_dir:
                    self._export(node, bounds, frame, structure)
                frame.output["children"].append(structure)

        return top["children"]

    def _image_dir_for(self, path: List[str]) -> str:
        if self.flatten_image_path:
            return os.path.abspath(self.image_dir)
        return os.path.abspath(os.path.join(self.image_dir, *path))

    def _export(self, node: DocumentNode, bounds: Rect, frame: TraversalFrame, structure: Dict[str, Any]) -> None:
        try:
            file_name = self.allocator.allocate(
                node.name + IMAGE_EXTENSION,
                "/".join(frame.path) if self.flatten_image_path else None,
            )
            output_path = os.path.join(self._image_dir_for(frame.path), file_name)
            handle = node.pixel_handle() if isinstance(node, RasterNode) else None
            result = self.exporter.export(handle, bounds, output_path, name=node.name)
        except Exception as exc:
            logger.error('Error processing layer "%s": %s', node.name, exc)
            return

        x, y = relative_to(Rect(result.x, result.y, result.width, result.height), frame.origin)
        structure.update(x=x, y=y, width=result.width, height=result.height)
        structure["fileName"] = file_name

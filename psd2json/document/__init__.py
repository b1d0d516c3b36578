"""Canonical document tree and the psd-tools adapter that produces it.

Exposes:
- Data model: GroupNode, TextNode, RasterNode, Mask, TextInfo
- Adapter: parse_document, adapt_tree, adapt_layer, child_layers, extract_text_info
- Pixel handles: SmartObjectHandle, merge_clipping_mask
"""

from .model import DocumentNode, GroupNode, Mask, RasterNode, TextInfo, TextNode
from .adapter import adapt_layer, adapt_tree, child_layers, extract_text_info, parse_document
from .pixels import SmartObjectHandle, layer_image, merge_clipping_mask

__all__ = [
    "DocumentNode",
    "GroupNode",
    "Mask",
    "RasterNode",
    "TextInfo",
    "TextNode",
    "adapt_layer",
    "adapt_tree",
    "child_layers",
    "extract_text_info",
    "parse_document",
    "SmartObjectHandle",
    "layer_image",
    "merge_clipping_mask",
]

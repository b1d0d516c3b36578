"""High-level pipeline: parse document → flatten layout → write JSON and images.

This module provides the single entry point ``convert`` used by the CLI and
by library callers.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Callable, Mapping, Optional, Union

from psd2json.config import ConvertOptions, resolve_options
from psd2json.document import GroupNode, parse_document
from psd2json.image import ImageExporter
from psd2json.layout import FilenameAllocator, TreeFlattener

logger = logging.getLogger(__name__)


def document_base_name(document_path: str) -> str:
    base = os.path.basename(document_path)
    return os.path.splitext(base)[0] or base


def convert(
    document_path: str,
    options: Union[None, str, Mapping[str, Any], ConvertOptions] = None,
    parse: Callable[[str], GroupNode] = parse_document,
) -> str:
    """Convert a layered document to layout JSON, optionally writing files.

    Doxygen:
    - @param document_path: Relative or absolute path of the PSD/PSB file.
    - @param options: Output directory shorthand, option mapping or ConvertOptions.
    - @param parse: Parser returning the canonical root group (psd-tools by default).
    - @return: Pretty-printed JSON array of top-level layout nodes.
    - @throws DocumentError: If the document is missing or cannot be parsed.
    """
    opts = resolve_options(options)
    path = os.path.abspath(document_path)
    doc_name = document_base_name(path)

    root = parse(path)

    image_dir = None
    if opts.out_img_dir:
        image_dir = opts.out_img_dir if opts.flatten_image_path else os.path.join(opts.out_img_dir, doc_name)
    flattener = TreeFlattener(
        image_dir=image_dir,
        exporter=ImageExporter(opts.max_resolution, resize_mode=opts.resize_mode),
        allocator=FilenameAllocator(flatten=opts.flatten_image_path),
        flatten_image_path=opts.flatten_image_path,
    )
    layout = flattener.flatten(root)
    json_text = json.dumps(layout, indent=2, ensure_ascii=False)

    if opts.out_json_dir:
        json_dir = os.path.abspath(opts.out_json_dir)
        os.makedirs(json_dir, exist_ok=True)
        json_path = os.path.join(json_dir, doc_name + ".json")
        with open(json_path, "w", encoding="utf-8") as f:
            f.write(json_text)
        logger.info("Wrote layout to %s", json_path)

    return json_text

"""
Entry point and public facade for the PSD → layout JSON converter.

This module exposes a stable API and a CLI.

Packages:
- psd2json.document: psd-tools adapter and the canonical node tree
- psd2json.geometry: Rectangle intersection, scaling and effective bounds
- psd2json.layout: Stack-based tree flattener and output file naming
- psd2json.image: Layer image export (crop / scale / smart objects)
- psd2json.pipeline: High-level orchestration (`convert`)
"""

from __future__ import annotations

import logging
import sys
from typing import Any, Dict, List, Optional

from psd2json.config import ConvertOptions, MaxResolution, load_settings, resolve_options
from psd2json.document import parse_document
from psd2json.errors import ConversionError, DocumentError, ExportError
from psd2json.geometry import Rect, effective_bounds, intersect, scale_to_fit
from psd2json.image import ExportResult, ImageExporter
from psd2json.layout import FilenameAllocator, TreeFlattener
from psd2json.logging_config import setup_logging
from psd2json.pipeline import convert

__all__ = [
    # config
    "ConvertOptions",
    "MaxResolution",
    "load_settings",
    "resolve_options",
    # errors
    "ConversionError",
    "DocumentError",
    "ExportError",
    # geometry
    "Rect",
    "effective_bounds",
    "intersect",
    "scale_to_fit",
    # building blocks
    "parse_document",
    "ExportResult",
    "ImageExporter",
    "FilenameAllocator",
    "TreeFlattener",
    # pipeline
    "convert",
]

logger = logging.getLogger("psd2json")

USAGE = "psd2json <psd-file-path> [output-directory] [--flatten] [--max-width=<width>] [--max-height=<height>]"


def _cli_options(args: Any, settings: Dict[str, Any]) -> Dict[str, Any]:
    max_resolution = dict(settings.get("max_resolution") or {})
    if args.max_width is not None:
        max_resolution["width"] = args.max_width
    if args.max_height is not None:
        max_resolution["height"] = args.max_height
    return {
        "outJsonDir": args.output_dir or "",
        "outImgDir": args.output_dir or "",
        "flattenImagePath": bool(args.flatten or settings.get("flatten_image_path")),
        "maxResolution": max_resolution or None,
        "resizeMode": "scale" if args.scale else settings.get("resize_mode", "crop"),
    }


def _cli(argv: Optional[List[str]] = None) -> None:
    """CLI for converting one document.

    Arguments:
    path: PSD/PSB file to convert
    output_dir: Directory for <name>.json and exported images (optional;
        without it the JSON is printed to stdout and no images are written)
    --flatten: Write all images into one directory with path-derived unique names
    --max-width / --max-height: Crop exported images to this canvas
    --scale: Scale oversized images down instead of cropping them
    --log-level: Logging level (default from config/settings.json)
    """
    import argparse

    argv = sys.argv[1:] if argv is None else list(argv)
    parser = argparse.ArgumentParser(prog="psd2json", usage=USAGE, description="Convert a PSD layout to JSON and layer images.")
    parser.add_argument("path", help="Path to the PSD/PSB file")
    parser.add_argument("output_dir", nargs="?", default=None, help="Output directory for JSON and images")
    parser.add_argument("--flatten", action="store_true", help="Export all images into a single directory")
    parser.add_argument("--max-width", type=int, default=None, help="Maximum canvas width for exported images")
    parser.add_argument("--max-height", type=int, default=None, help="Maximum canvas height for exported images")
    parser.add_argument("--scale", action="store_true", help="Scale oversized images instead of cropping")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level (DEBUG, INFO, WARNING, ERROR)")

    if not argv:
        print(f"Usage: {USAGE}", file=sys.stderr)
        raise SystemExit(0)

    args = parser.parse_args(argv)

    try:
        settings = load_settings()
        setup_logging(args.log_level or settings.get("log_level", "INFO"))
        result = convert(args.path, _cli_options(args, settings))
    except Exception as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1)

    if not args.output_dir:
        print(result)
    logger.info("Conversion completed successfully!")


if __name__ == "__main__":
    _cli()

"""Layer image export (crop / scale / pass-through) built on Pillow."""

from .export import (
    DIRECT,
    MATERIALIZE,
    ExportResult,
    ImageExporter,
    materialized,
    select_strategy,
)

__all__ = [
    "DIRECT",
    "MATERIALIZE",
    "ExportResult",
    "ImageExporter",
    "materialized",
    "select_strategy",
]

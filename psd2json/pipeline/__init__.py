"""High-level conversion orchestration."""

from .convert import convert, document_base_name

__all__ = [
    "convert",
    "document_base_name",
]

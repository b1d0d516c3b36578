"""Layout tree construction: the stack-based flattener and output naming."""

from .flatten import TraversalFrame, TreeFlattener
from .naming import IMAGE_EXTENSION, FilenameAllocator

__all__ = [
    "TraversalFrame",
    "TreeFlattener",
    "IMAGE_EXTENSION",
    "FilenameAllocator",
]

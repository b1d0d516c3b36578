from __future__ import annotations

import os
from typing import Optional, Set

IMAGE_EXTENSION = ".png"
PATH_JOINER = "_"


class FilenameAllocator:
    """Issues output file names for one conversion run.

    Without flatten mode the layer name is used as is and the nested output
    directories keep names apart. In flatten mode every image lands in one
    directory, so names get the group path as a prefix and a numeric suffix
    until they are unique within the run.
    """

    def __init__(self, flatten: bool = False) -> None:
        self.flatten = bool(flatten)
        self._issued: Set[str] = set()

    def allocate(self, base_name: str, node_path: Optional[str] = None) -> str:
        if not self.flatten:
            return base_name

        stem = os.path.splitext(base_name)[0]
        if node_path:
            segments = [s for s in node_path.replace(os.sep, "/").split("/") if s]
            if segments:
                stem = PATH_JOINER.join(segments) + PATH_JOINER + stem

        candidate = stem
        counter = 1
        while candidate + IMAGE_EXTENSION in self._issued:
            candidate = f"{stem}_{counter}"
            counter += 1

        name = candidate + IMAGE_EXTENSION
        self._issued.add(name)
        return name

    @property
    def issued(self) -> Set[str]:
        return set(self._issued)

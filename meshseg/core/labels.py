"""
Semantic label <-> color lookup for labeled mesh vertices.

The mesh carries semantic labels encoded as vertex colors. SemanticLabel2Color inverts that
encoding with an exact RGB match. Anything with `get_semantic_label_from_color` can stand in
for it (see LabelClassifierLike).
"""
from __future__ import annotations
from typing import Any, Dict, Iterable, Mapping, Optional, Protocol, Sequence, Tuple
import logging

import numpy as np
import yaml

logger = logging.getLogger(__name__)

RGBTuple = Tuple[int, int, int]


class LabelClassifierLike(Protocol):
    """Protocol for the single method MeshSegmenter needs from a label classifier."""

    def get_semantic_label_from_color(self, color: Sequence[int]) -> Optional[int]: ...


def _rgb(color: Sequence[int]) -> RGBTuple:
    c = [int(v) for v in list(color)[:3]]
    if len(c) != 3:
        raise ValueError(f"expected an RGB triple, got {color!r}")
    return (c[0], c[1], c[2])


class SemanticLabel2Color:
    def __init__(self, label_to_color: Mapping[int, Sequence[int]], *, default_color: Sequence[int] = (0, 0, 0)) -> None:
        self._label_to_color: Dict[int, RGBTuple] = {}
        self._color_to_label: Dict[RGBTuple, int] = {}
        self.default_color: RGBTuple = _rgb(default_color)
        for label, color in label_to_color.items():
            rgb = _rgb(color)
            prev = self._color_to_label.get(rgb)
            if prev is not None and prev != int(label):
                logger.warning(f"[labels] color {rgb} already mapped to label {prev}; keeping it over {int(label)}")
                continue
            self._label_to_color[int(label)] = rgb
            self._color_to_label[rgb] = int(label)

    # ---------- construction ----------

    @classmethod
    def from_entries(cls, entries: Iterable[Mapping[str, Any]], **kwargs: Any) -> SemanticLabel2Color:
        """Entries look like {"label": 3, "color": [r, g, b]} (extra keys such as "name" are ignored)."""
        return cls({int(e["label"]): e["color"] for e in entries}, **kwargs)

    @classmethod
    def from_yaml(cls, path: str) -> SemanticLabel2Color:
        with open(path, "r") as f:
            doc = yaml.safe_load(f) or {}
        kwargs: Dict[str, Any] = {}
        if "default_color" in doc:
            kwargs["default_color"] = doc["default_color"]
        label_map = cls.from_entries(doc.get("labels", []), **kwargs)
        logger.info(f"[labels] loaded {len(label_map)} label colors from {path}")
        return label_map

    # ---------- lookup ----------

    def get_semantic_label_from_color(self, color: Sequence[int]) -> Optional[int]:
        return self._color_to_label.get(_rgb(color))

    def get_color_from_label(self, label: int) -> RGBTuple:
        return self._label_to_color.get(int(label), self.default_color)

    def labels(self) -> list[int]:
        return sorted(self._label_to_color)

    def colorize(self, labels: Sequence[int]) -> np.ndarray:
        """(N,3) uint8 colors for a label sequence; unknown labels get the default color."""
        return np.array([self.get_color_from_label(l) for l in labels], dtype=np.uint8).reshape(-1, 3)

    def __len__(self) -> int:
        return len(self._label_to_color)

    def __contains__(self, label: object) -> bool:
        return label in self._label_to_color

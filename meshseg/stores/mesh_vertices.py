"""
MeshVertices: append-only, growable vertex buffer (positions + RGB colors).

- Rows are immutable once written; the buffer only grows (amortized doubling).
- Readers get read-only views of the live rows; nothing is copied wholesale.
- The segmenter borrows it per tick through VertexBufferLike.
"""

from __future__ import annotations
from typing import Optional, Protocol, Tuple
import threading
import logging
import numpy as np

logger = logging.getLogger(__name__)


class VertexBufferLike(Protocol):
    """Protocol for the read-only accessors MeshSegmenter needs from the vertex buffer."""

    @property
    def positions(self) -> np.ndarray: ...   # (N,3) float32

    @property
    def colors(self) -> np.ndarray: ...      # (N,3) uint8

    def __len__(self) -> int: ...


def _readonly(a: np.ndarray) -> np.ndarray:
    v = a.view()
    v.flags.writeable = False
    return v


class MeshVertices:
    def __init__(self, capacity: int = 1024) -> None:
        cap = max(1, int(capacity))
        self._pos = np.zeros((cap, 3), dtype=np.float32)
        self._rgb = np.zeros((cap, 3), dtype=np.uint8)
        self._n = 0
        self._lock = threading.RLock()

    @classmethod
    def from_arrays(cls, positions: np.ndarray, colors: Optional[np.ndarray] = None) -> MeshVertices:
        pos = np.asarray(positions, dtype=np.float32).reshape(-1, 3)
        buf = cls(capacity=max(1, pos.shape[0]))
        buf.append(pos, colors)
        return buf

    # ----- internal helpers -----

    def _reserve(self, n_total: int) -> None:
        cap = self._pos.shape[0]
        if n_total <= cap:
            return
        while cap < n_total:
            cap *= 2
        pos = np.zeros((cap, 3), dtype=np.float32)
        rgb = np.zeros((cap, 3), dtype=np.uint8)
        pos[: self._n] = self._pos[: self._n]
        rgb[: self._n] = self._rgb[: self._n]
        self._pos, self._rgb = pos, rgb
        logger.debug(f"[MV] grow capacity -> {cap}")

    # ----- public API -----

    def append(self, positions: np.ndarray, colors: Optional[np.ndarray] = None) -> range:
        """Append vertices; returns the range of indices assigned to them."""
        pos = np.asarray(positions, dtype=np.float32).reshape(-1, 3)
        if colors is None:
            rgb = np.zeros((pos.shape[0], 3), dtype=np.uint8)
        else:
            rgb = np.asarray(colors, dtype=np.uint8).reshape(-1, 3)
        if rgb.shape[0] != pos.shape[0]:
            raise ValueError(f"positions/colors length mismatch: {pos.shape[0]} vs {rgb.shape[0]}")
        with self._lock:
            start = self._n
            self._reserve(start + pos.shape[0])
            self._pos[start : start + pos.shape[0]] = pos
            self._rgb[start : start + pos.shape[0]] = rgb
            self._n += pos.shape[0]
            return range(start, self._n)

    @property
    def positions(self) -> np.ndarray:
        return _readonly(self._pos[: self._n])

    @property
    def colors(self) -> np.ndarray:
        return _readonly(self._rgb[: self._n])

    def position(self, idx: int) -> np.ndarray:
        return self.positions[idx].copy()

    def color(self, idx: int) -> Tuple[int, int, int]:
        r, g, b = self._rgb[idx]
        return (int(r), int(g), int(b))

    def __len__(self) -> int:
        return self._n

    def stats(self) -> dict:
        return {"vertices": self._n, "capacity": int(self._pos.shape[0])}

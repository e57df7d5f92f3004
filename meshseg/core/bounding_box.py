"""
Bounding boxes for tracked objects.

- BoundingBox stores extents in its own frame (min/max around the center) plus a world pose
  (world_P_center, world_R_center). AABB boxes carry an identity rotation.
- extract_bounding_box() fits a box of the configured family to a point subset:
    AABB  : axis-aligned min/max
    RAABB : rotated about +Z only (yaw from the principal axis of the XY projection)
    OBB   : aligned with the principal axes of the point set
- Fitters are looked up by name in a small registry so callers can plug in their own.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Dict, Literal
import logging
import numpy as np

logger = logging.getLogger(__name__)

BoundingBoxType = Literal["INVALID", "AABB", "RAABB", "OBB"]
BoxFitter = Callable[[np.ndarray], "BoundingBox"]

# relative slack for is_inside, scaled by max(1, |p|)
INSIDE_RTOL = 1e-6

__all__ = ["BoundingBox", "BoundingBoxType", "extract_bounding_box", "register_fitter", "available_types"]


def _zeros3() -> np.ndarray:
    return np.zeros(3, dtype=np.float64)


def _eye3() -> np.ndarray:
    return np.eye(3, dtype=np.float64)


@dataclass(slots=True)
class BoundingBox:
    type: BoundingBoxType = "INVALID"
    min: np.ndarray = field(default_factory=_zeros3)             # (3,) box-frame lower corner
    max: np.ndarray = field(default_factory=_zeros3)             # (3,) box-frame upper corner
    world_P_center: np.ndarray = field(default_factory=_zeros3)  # (3,) world position of center
    world_R_center: np.ndarray = field(default_factory=_eye3)    # (3,3) world <- box rotation

    @property
    def valid(self) -> bool:
        return self.type != "INVALID"

    def dimensions(self) -> np.ndarray:
        return np.asarray(self.max, dtype=np.float64) - np.asarray(self.min, dtype=np.float64)

    def volume(self) -> float:
        if not self.valid:
            return 0.0
        return float(np.prod(self.dimensions()))

    def is_inside(self, point: np.ndarray) -> bool:
        """Inclusive containment test of a world-frame point, widened by INSIDE_RTOL * max(1, |p|) per axis."""
        if not self.valid:
            return False
        p = np.asarray(point, dtype=np.float64).reshape(3)
        R = np.asarray(self.world_R_center, dtype=np.float64)
        p_box = R.T @ (p - np.asarray(self.world_P_center, dtype=np.float64))
        tol = INSIDE_RTOL * max(1.0, float(np.linalg.norm(p)))
        return bool(np.all(p_box >= self.min - tol) and np.all(p_box <= self.max + tol))

    def corners(self) -> np.ndarray:
        """(8,3) world-frame corners; handy for visualization."""
        lo = np.asarray(self.min, dtype=np.float64)
        hi = np.asarray(self.max, dtype=np.float64)
        local = np.array([[x, y, z] for x in (lo[0], hi[0]) for y in (lo[1], hi[1]) for z in (lo[2], hi[2])])
        R = np.asarray(self.world_R_center, dtype=np.float64)
        return local @ R.T + np.asarray(self.world_P_center, dtype=np.float64)

    def copy(self) -> BoundingBox:
        return BoundingBox(
            type=self.type,
            min=self.min.copy(),
            max=self.max.copy(),
            world_P_center=self.world_P_center.copy(),
            world_R_center=self.world_R_center.copy(),
        )

# ------------------------- fitters -------------------------

_FITTERS: Dict[str, BoxFitter] = {}


def register_fitter(name: str):
    """Decorator to register a bounding-box fitter under a type name."""
    def decorator(fn: BoxFitter) -> BoxFitter:
        _FITTERS[name.upper()] = fn
        return fn
    return decorator


def available_types() -> list[str]:
    return sorted(_FITTERS)


def _box_in_frame(points: np.ndarray, R: np.ndarray, box_type: BoundingBoxType) -> BoundingBox:
    # express points in the rotated frame, take min/max there, then map the center back
    mean = points.mean(axis=0)
    local = (points - mean) @ R
    lo = local.min(axis=0)
    hi = local.max(axis=0)
    c_local = 0.5 * (lo + hi)
    return BoundingBox(
        type=box_type,
        min=lo - c_local,
        max=hi - c_local,
        world_P_center=mean + R @ c_local,
        world_R_center=np.array(R, dtype=np.float64),
    )


@register_fitter("AABB")
def _fit_aabb(points: np.ndarray) -> BoundingBox:
    lo = points.min(axis=0)
    hi = points.max(axis=0)
    center = 0.5 * (lo + hi)
    return BoundingBox(
        type="AABB",
        min=lo - center,
        max=hi - center,
        world_P_center=center,
        world_R_center=_eye3(),
    )


@register_fitter("RAABB")
def _fit_raabb(points: np.ndarray) -> BoundingBox:
    xy = points[:, :2] - points[:, :2].mean(axis=0)
    cov = xy.T @ xy / max(1, xy.shape[0])
    _, vecs = np.linalg.eigh(cov)
    major = vecs[:, -1]
    yaw = float(np.arctan2(major[1], major[0]))
    c, s = np.cos(yaw), np.sin(yaw)
    R = np.array([[c, -s, 0.0], [s, c, 0.0], [0.0, 0.0, 1.0]], dtype=np.float64)
    return _box_in_frame(points, R, "RAABB")


@register_fitter("OBB")
def _fit_obb(points: np.ndarray) -> BoundingBox:
    centered = points - points.mean(axis=0)
    cov = centered.T @ centered / max(1, centered.shape[0])
    _, vecs = np.linalg.eigh(cov)
    R = vecs[:, ::-1].copy()  # major axis first
    if np.linalg.det(R) < 0:
        R[:, 2] *= -1.0
    return _box_in_frame(points, R, "OBB")


def extract_bounding_box(points: np.ndarray, bbox_type: str = "AABB") -> BoundingBox:
    """Fit a box of family `bbox_type` to (N,3) points. Empty input yields an INVALID box."""
    pts = np.asarray(points, dtype=np.float64).reshape(-1, 3)
    if pts.shape[0] == 0:
        return BoundingBox()
    fitter = _FITTERS.get(str(bbox_type).upper())
    if fitter is None:
        raise ValueError(f"unknown bounding box type {bbox_type!r}; expected one of {available_types()}")
    return fitter(pts)

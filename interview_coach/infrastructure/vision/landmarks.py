"""
Face landmark frames with a fixed, named index scheme.

Indices follow the 468-point MediaPipe face mesh. A frame is an immutable
(N, 2) or (N, 3) array; lookups past the end of the array (or on
non-finite coordinates) read as missing instead of raising.
"""
from enum import IntEnum
from typing import Any, Iterable, Optional, Sequence

import numpy as np


class FaceMeshIndex(IntEnum):
    """Semantic points used by the geometry scorer."""
    NOSE_TIP = 4
    FACE_CENTER = 10  # forehead center
    LEFT_EYE_OUTER = 33
    CHIN = 152
    RIGHT_EYE_INNER = 362


LEFT_EYE_CONTOUR = (33, 7, 163, 144, 145, 153, 154, 155, 133, 173, 157, 158, 159, 160, 161, 246)
RIGHT_EYE_CONTOUR = (362, 382, 381, 380, 374, 373, 390, 249, 263, 466, 388, 387, 386, 385, 384, 398)

# Anchor points compared between consecutive frames
STABILITY_KEY_POINTS = (
    FaceMeshIndex.NOSE_TIP,
    FaceMeshIndex.FACE_CENTER,
    FaceMeshIndex.LEFT_EYE_OUTER,
    FaceMeshIndex.CHIN,
    FaceMeshIndex.RIGHT_EYE_INNER,
)

FACE_MESH_POINT_COUNT = 468


def _coerce_point(point: Any) -> Sequence[float]:
    if isinstance(point, dict):
        return (point["x"], point["y"], point.get("z", 0.0))
    if hasattr(point, "x") and hasattr(point, "y"):
        return (point.x, point.y, getattr(point, "z", 0.0))
    values = tuple(point)
    if len(values) == 2:
        return (values[0], values[1], 0.0)
    return values[:3]


class LandmarkFrame:
    """One detector frame of face landmarks."""

    __slots__ = ("_points",)

    def __init__(self, points: np.ndarray):
        arr = np.array(points, dtype=np.float64)
        if arr.size == 0:
            arr = arr.reshape(0, 3)
        if arr.ndim != 2 or arr.shape[1] not in (2, 3):
            raise ValueError(f"Landmark array must have shape (N, 2) or (N, 3), got {arr.shape}")
        arr.setflags(write=False)
        self._points = arr

    @classmethod
    def from_points(cls, points: Iterable[Any]) -> "LandmarkFrame":
        """
        Build a frame from detector output.

        Accepts (x, y[, z]) sequences, mappings with x/y[/z] keys, or
        objects exposing .x/.y[/.z] such as MediaPipe landmarks.
        """
        coords = [_coerce_point(p) for p in points]
        if not coords:
            return cls(np.zeros((0, 3)))
        return cls(np.asarray(coords, dtype=np.float64))

    @property
    def points(self) -> np.ndarray:
        return self._points

    def __len__(self) -> int:
        return self._points.shape[0]

    def point(self, index: int) -> Optional[np.ndarray]:
        """Return the (x, y) position at index, or None when it is missing."""
        idx = int(index)
        if idx < 0 or idx >= len(self):
            return None
        xy = self._points[idx, :2]
        if not np.all(np.isfinite(xy)):
            return None
        return xy

    def has(self, indices: Iterable[int]) -> bool:
        return all(self.point(i) is not None for i in indices)

    def centroid(self, indices: Sequence[int]) -> Optional[np.ndarray]:
        """Mean (x, y) of the given points, or None if any is missing."""
        if not indices or not self.has(indices):
            return None
        return self._points[list(indices), :2].mean(axis=0)

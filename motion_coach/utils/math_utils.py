import math
import numpy as np
from typing import Iterable, Optional, Sequence, Tuple, Union


def landmarks_to_array(landmarks: Iterable) -> np.ndarray:
    """(N, 2) float array from MediaPipe landmarks or keypoints (anything with
    `.x` and `.y`). An empty detection gives shape (0, 2)."""
    return np.array([[float(lm.x), float(lm.y)] for lm in landmarks], dtype=float).reshape((-1, 2))


def normalized_to_pixels(
    norm_xy: Union[Tuple[float, float], np.ndarray], frame_shape: Tuple[int, ...]
) -> np.ndarray:
    """Map normalized coordinates (0..1) to float pixel coordinates.

    Accepts a single point `(x,y)` or an array of points shape `(N,2)`.
    Unlike the drawing helpers this keeps sub-pixel precision, since the
    motion metrics accumulate many small steps.

    Args:
        norm_xy: (2,) or (N,2) array-like with values in 0..1
        frame_shape: frame shape as returned by `frame.shape` (height, width, ...)
    """
    h, w = float(frame_shape[0]), float(frame_shape[1])
    arr = np.asarray(norm_xy, dtype=float)

    single = False
    if arr.ndim == 1:
        if arr.size != 2:
            raise ValueError("norm_xy must be shape (2,) or (N,2)")
        arr = arr.reshape((1, 2))
        single = True

    arr_px = np.empty_like(arr)
    arr_px[..., 0] = arr[..., 0] * w
    arr_px[..., 1] = arr[..., 1] * h
    return arr_px[0] if single else arr_px


def euclidean(a, b):
    """Euclidean distance between points.

    - If `a` and `b` are 1-D points, returns a scalar.
    - If arrays of points, returns distances per-row.
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    return np.linalg.norm(a - b, axis=-1)


def centroid_of(points: np.ndarray, indices: Sequence[int]) -> Optional[Tuple[float, float]]:
    """Mean of the selected rows of an (N, 2) landmark array.

    Returns None when any index is out of range, so a malformed detection
    can be skipped by the caller instead of raising mid-frame.
    """
    if points.ndim != 2 or points.shape[0] == 0:
        return None
    if any(i < 0 or i >= points.shape[0] for i in indices):
        return None
    sel = points[list(indices), :]
    return (float(sel[:, 0].mean()), float(sel[:, 1].mean()))


def heading(vector) -> float:
    """Direction of a 2-D vector in radians, as atan2(dy, dx)."""
    return math.atan2(float(vector[1]), float(vector[0]))


def angle_difference(v1, v2) -> float:
    """Absolute angle between two displacement vectors, folded into [0, pi]."""
    d = abs(heading(v1) - heading(v2))
    if d > math.pi:
        d = 2 * math.pi - d
    return d


def linear_band_score(value: float, band_min: float, band_max: float, full: float) -> float:
    """Score a value against an ideal [min, max] band.

    0 at value=0 rising linearly to `full` at band_min, `full` inside the
    band, then falling linearly to 0 at band_max + (band_max - band_min).
    """
    value = max(0.0, float(value))
    width = band_max - band_min
    if value < band_min:
        if band_min <= 0:
            return full
        return full * value / band_min
    if value <= band_max:
        return full
    if width <= 0:
        return 0.0
    over = (value - band_max) / width
    return full * max(0.0, 1.0 - over)


__all__ = [
    "landmarks_to_array",
    "normalized_to_pixels",
    "euclidean",
    "centroid_of",
    "heading",
    "angle_difference",
    "linear_band_score",
]

"""
Head-size scale normalization.

The distance between the eyes (interocular distance, IOD) is a proxy for
how far the user sits from the camera. Once calibration ends the current
IOD is compared against the baseline so that leaning in does not inflate
gesture size.
"""

from typing import Optional, Tuple
from dataclasses import dataclass

from motion_coach.detectors.keypoint_frame import FaceDetection
from motion_coach.utils.math_utils import euclidean


@dataclass
class CalibrationState:
    interocular_distance: Optional[float] = None
    baseline_interocular_distance: Optional[float] = None
    face_within_guide: bool = False
    baseline_captured: bool = False
    eye_midpoint: Optional[Tuple[float, float]] = None


class ScaleNormalizer:
    """
    Tracks current/baseline IOD and the head-guide check.

    Guide geometry is relative to the frame: center at `guide_center_rel`
    (fractions of width, height), radius `guide_radius_rel` * height.
    """

    def __init__(
        self,
        guide_center_rel: Tuple[float, float] = (0.5, 1.0 / 3.0),
        guide_radius_rel: float = 0.2,
        guide_iod_ratio: float = 0.5,
        guide_center_tolerance: float = 0.5,
    ):
        self.guide_center_rel = (float(guide_center_rel[0]), float(guide_center_rel[1]))
        self.guide_radius_rel = float(guide_radius_rel)
        self.guide_iod_ratio = float(guide_iod_ratio)
        self.guide_center_tolerance = float(guide_center_tolerance)
        self.state = CalibrationState()

    @classmethod
    def from_config(cls) -> 'ScaleNormalizer':
        from motion_coach.config.config_manager import get_normalization_setting
        return cls(
            guide_center_rel=get_normalization_setting('guide_center_rel', default=(0.5, 1.0 / 3.0)),
            guide_radius_rel=get_normalization_setting('guide_radius_rel', default=0.2),
            guide_iod_ratio=get_normalization_setting('guide_iod_ratio', default=0.5),
            guide_center_tolerance=get_normalization_setting('guide_center_tolerance', default=0.5),
        )

    @property
    def current_iod(self) -> Optional[float]:
        return self.state.interocular_distance

    @property
    def baseline_iod(self) -> Optional[float]:
        return self.state.baseline_interocular_distance

    @property
    def calibrated(self) -> bool:
        return self.state.baseline_captured

    @property
    def scale_factor(self) -> float:
        current = self.state.interocular_distance
        baseline = self.state.baseline_interocular_distance
        if current is None or baseline is None or baseline <= 0 or current <= 0:
            return 1.0
        return current / baseline

    def guide_geometry(self, width: float, height: float) -> Tuple[Tuple[float, float], float]:
        """((cx, cy), radius) of the head guide in pixels."""
        center = (self.guide_center_rel[0] * width, self.guide_center_rel[1] * height)
        return center, self.guide_radius_rel * height

    def update_face(self, face: Optional[FaceDetection], width: float, height: float) -> bool:
        """
        Refresh the current IOD from a face detection.
        Returns False (and changes nothing) when there is no usable face.
        """
        if face is None:
            return False
        eyes = face.eyes()
        if eyes is None:
            return False
        left, right = eyes
        iod = float(euclidean(left.as_tuple(), right.as_tuple()))
        if iod <= 0:
            return False

        midpoint = ((left.x + right.x) / 2.0, (left.y + right.y) / 2.0)
        self.state.interocular_distance = iod
        self.state.eye_midpoint = midpoint
        self.state.face_within_guide = self._within_guide(iod, midpoint, width, height)
        return True

    def _within_guide(self, iod: float, midpoint, width: float, height: float) -> bool:
        center, radius = self.guide_geometry(width, height)
        if radius <= 0:
            return False
        close_enough = iod < self.guide_iod_ratio * 2.0 * radius
        centered = float(euclidean(midpoint, center)) < self.guide_center_tolerance * radius
        return close_enough and centered

    def capture_baseline(self) -> Optional[float]:
        """Freeze the current IOD as baseline. Only the first call has effect,
        even when no face had been seen yet (scale then stays at 1.0)."""
        if not self.state.baseline_captured:
            self.state.baseline_captured = True
            self.state.baseline_interocular_distance = self.state.interocular_distance
        return self.state.baseline_interocular_distance

    def reset(self):
        self.state = CalibrationState()

    def normalize(self, raw_distance: float) -> float:
        return float(raw_distance) / self.scale_factor


__all__ = [
    'CalibrationState',
    'ScaleNormalizer',
]

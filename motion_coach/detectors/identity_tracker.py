"""
Hand identity assignment.

The upstream detector has no notion of which hand is which from one frame
to the next. IdentityTracker maps each frame's detections onto the two
persistent HandSlots: continuity first (nearest previous position within
a proximity radius), screen side as the fallback.
"""

import numpy as np
from typing import Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass

from motion_coach.detectors.keypoint_frame import HandDetection, LANDMARK_NAMES
from motion_coach.metrics.motion_metrics import HandSlots
from motion_coach.utils.math_utils import centroid_of, euclidean


DEFAULT_COMPOSITE_LANDMARKS = (
    LANDMARK_NAMES['WRIST'],
    LANDMARK_NAMES['INDEX_MCP'],
    LANDMARK_NAMES['PINKY_MCP'],
)


@dataclass(frozen=True)
class Assignment:
    """Result for one frame: a composite point per slot, or None if absent."""
    points: Tuple[Optional[Tuple[float, float]], Optional[Tuple[float, float]]]
    dropped: int = 0

    def __getitem__(self, slot_index: int) -> Optional[Tuple[float, float]]:
        return self.points[slot_index]


class IdentityTracker:

    def __init__(
        self,
        proximity_threshold_px: float = 100.0,
        composite_landmarks: Sequence[int] = DEFAULT_COMPOSITE_LANDMARKS,
    ):
        self.proximity_threshold_px = float(proximity_threshold_px)
        self.composite_landmarks = tuple(int(i) for i in composite_landmarks)

    @classmethod
    def from_config(cls) -> 'IdentityTracker':
        from motion_coach.config.config_manager import get_tracking_setting
        return cls(
            proximity_threshold_px=get_tracking_setting('proximity_threshold_px', default=100.0),
            composite_landmarks=get_tracking_setting('composite_landmarks', default=DEFAULT_COMPOSITE_LANDMARKS),
        )

    def composite_point(self, hand: HandDetection) -> Optional[Tuple[float, float]]:
        """Centroid of the configured landmarks, None if any is missing."""
        return centroid_of(hand.as_array(), self.composite_landmarks)

    def assign(self, hands: List[HandDetection], slots: HandSlots, frame_width: float) -> Assignment:
        """
        Map this frame's detections onto the two slots.

        Slots are only read here; the caller feeds the returned points to the
        accumulator and marks the remaining slots absent.
        """
        midline = float(frame_width) / 2.0
        candidates = []
        for hand in hands:
            point = self.composite_point(hand)
            if point is not None:
                candidates.append(point)

        dropped = len(hands) - len(candidates)

        # slot index -> (priority, point); lower priority wins
        claims: Dict[int, Tuple[float, Tuple[float, float]]] = {}
        for point in candidates:
            slot_index, priority = self._preferred_slot(point, slots, midline)
            current = claims.get(slot_index)
            if current is None:
                claims[slot_index] = (priority, point)
            elif priority < current[0]:
                claims[slot_index] = (priority, point)
                dropped += 1
            else:
                dropped += 1

        points = tuple(claims[i][1] if i in claims else None for i in (HandSlots.LEFT, HandSlots.RIGHT))
        return Assignment(points=points, dropped=dropped)

    def _preferred_slot(self, point, slots: HandSlots, midline: float) -> Tuple[int, float]:
        best_index = None
        best_dist = np.inf
        for slot in slots:
            if slot.last_position is None:
                continue
            d = float(euclidean(point, slot.last_position))
            if d < best_dist:
                best_index, best_dist = slot.index, d

        if best_index is not None and best_dist < self.proximity_threshold_px:
            return best_index, best_dist

        side = HandSlots.LEFT if point[0] < midline else HandSlots.RIGHT
        last = slots[side].last_position
        if last is not None:
            return side, float(euclidean(point, last))
        # Empty slot: the detection farther from the midline is the surer one.
        return side, -abs(point[0] - midline)


__all__ = [
    'Assignment',
    'IdentityTracker',
    'DEFAULT_COMPOSITE_LANDMARKS',
]

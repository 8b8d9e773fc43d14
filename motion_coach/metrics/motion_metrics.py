"""
Per-hand motion accounting.

A HandSlot is one of the two logical hands of a session. The identity
tracker decides which slot a detection belongs to; the MotionAccumulator
then turns successive composite points into travel distance, visible time
and erratic direction reversals.
"""

import numpy as np
from collections import deque
from typing import Iterator, Optional, Tuple
from dataclasses import dataclass, field

from motion_coach.utils.math_utils import angle_difference


@dataclass(frozen=True)
class SlotRates:
    """Rolling rates for one slot, as exposed to observers."""
    speed: float = 0.0          # normalized px / s
    erratic_rate: float = 0.0   # turns / s


@dataclass
class HandSlot:
    """
    Session-long state for one logical hand.
    Counters only grow; they are zeroed once when calibration ends.
    """
    index: int
    trail_length: int = 45

    trail: deque = field(init=False)
    last_position: Optional[Tuple[float, float]] = None
    last_motion_vector: Optional[np.ndarray] = None

    visible_time_ms: float = 0.0
    total_distance: float = 0.0
    erratic_turn_count: int = 0
    comparison_count: int = 0   # angle comparisons made; bounds erratic_turn_count

    seen: bool = False
    # True while the slot was seen on the previous frame too, i.e. last_position
    # may be used as the start of a displacement.
    continuous: bool = False

    def __post_init__(self):
        self.trail = deque(maxlen=int(self.trail_length))

    @property
    def visible_seconds(self) -> float:
        return self.visible_time_ms / 1000.0

    @property
    def speed(self) -> float:
        if self.visible_time_ms <= 0:
            return 0.0
        return self.total_distance / self.visible_seconds

    @property
    def erratic_rate(self) -> float:
        if self.visible_time_ms <= 0:
            return 0.0
        return self.erratic_turn_count / self.visible_seconds

    def rates(self) -> SlotRates:
        return SlotRates(speed=self.speed, erratic_rate=self.erratic_rate)

    def mark_absent(self):
        """No detection this frame: drop the trail, keep the counters."""
        self.seen = False
        self.continuous = False
        self.trail.clear()
        self.last_motion_vector = None

    def reset_counters(self):
        self.visible_time_ms = 0.0
        self.total_distance = 0.0
        self.erratic_turn_count = 0
        self.comparison_count = 0
        self.last_motion_vector = None


class HandSlots:
    """Exactly two slots: slot 0 (left of the mirrored frame) and slot 1."""

    LEFT = 0
    RIGHT = 1

    def __init__(self, trail_length: int = 45):
        self._slots = (HandSlot(index=self.LEFT, trail_length=trail_length),
                       HandSlot(index=self.RIGHT, trail_length=trail_length))

    @property
    def left(self) -> HandSlot:
        return self._slots[self.LEFT]

    @property
    def right(self) -> HandSlot:
        return self._slots[self.RIGHT]

    def __getitem__(self, index: int) -> HandSlot:
        if index not in (self.LEFT, self.RIGHT):
            raise IndexError(f"hand slot must be 0 or 1, got {index!r}")
        return self._slots[index]

    def __iter__(self) -> Iterator[HandSlot]:
        return iter(self._slots)

    def __len__(self) -> int:
        return 2

    def reset_counters(self):
        for slot in self._slots:
            slot.reset_counters()

    def rates(self) -> Tuple[SlotRates, SlotRates]:
        return (self.left.rates(), self.right.rates())


class MotionAccumulator:
    """
    Folds one composite point per frame into a slot's counters.

    Displacements shorter than `min_motion_px` (raw pixels) are sensor
    noise: they add no distance or time. The anchor still moves to the new
    point, so sub-threshold drift never adds up. Distances are converted
    to baseline head size by the session's ScaleNormalizer.
    """

    def __init__(self, min_motion_px: float = 2.0, angle_threshold_rad: float = 1.0):
        self.min_motion_px = float(min_motion_px)
        self.angle_threshold_rad = float(angle_threshold_rad)

    @classmethod
    def from_config(cls) -> 'MotionAccumulator':
        from motion_coach.config.config_manager import get_metrics_setting
        return cls(
            min_motion_px=get_metrics_setting('min_motion_px', default=2.0),
            angle_threshold_rad=get_metrics_setting('angle_threshold_rad', default=1.0),
        )

    def update(
        self,
        slot: HandSlot,
        point: Tuple[float, float],
        normalizer=None,
        elapsed_ms: float = 0.0,
    ) -> float:
        """
        Record `point` for `slot`. Returns the normalized distance added
        (0.0 for the first point of a run or a noise step).
        """
        slot.seen = True
        slot.trail.append(point)

        if not slot.continuous or slot.last_position is None:
            slot.last_position = point
            slot.continuous = True
            return 0.0

        motion = np.array([point[0] - slot.last_position[0],
                           point[1] - slot.last_position[1]], dtype=float)
        raw_dist = float(np.hypot(motion[0], motion[1]))
        if raw_dist < self.min_motion_px:
            slot.last_position = point
            return 0.0

        step = normalizer.normalize(raw_dist) if normalizer is not None else raw_dist
        slot.total_distance += step
        slot.visible_time_ms += max(0.0, float(elapsed_ms))

        if slot.last_motion_vector is not None:
            slot.comparison_count += 1
            if angle_difference(motion, slot.last_motion_vector) > self.angle_threshold_rad:
                slot.erratic_turn_count += 1

        slot.last_position = point
        slot.last_motion_vector = motion
        return step


__all__ = [
    'SlotRates',
    'HandSlot',
    'HandSlots',
    'MotionAccumulator',
]

"""
Live coaching label for the primary hand, debounced against per-frame
flicker. Advisory only: nothing downstream depends on it.
"""

from typing import Dict, Optional
from dataclasses import dataclass

from motion_coach.metrics.motion_metrics import HandSlot


NO_HANDS = 'no hands detected'
TOO_LITTLE = 'too little'
TOO_MUCH = 'too much'
JUST_RIGHT = 'just right'

FEEDBACK_LABELS = (NO_HANDS, TOO_LITTLE, TOO_MUCH, JUST_RIGHT)

DEFAULT_MESSAGES = {
    NO_HANDS: 'No hands detected',
    TOO_LITTLE: 'Too little - gesture more',
    TOO_MUCH: 'Too much - slow down',
    JUST_RIGHT: 'Just right',
}


@dataclass
class FeedbackState:
    current_label: str = NO_HANDS       # published, what observers see
    pending_label: Optional[str] = None
    stable_run_length: int = 0


class LiveFeedbackClassifier:
    """
    Coaching label for the primary hand (slot 0), debounced.

    A label computed on one frame is only a candidate; it replaces the
    published label after `stability_frames` consecutive frames agree.
    """

    def __init__(
        self,
        low_speed: float = 100.0,
        high_speed: float = 300.0,
        max_erratic_rate: Optional[float] = 7.0,
        stability_frames: int = 5,
        messages: Optional[Dict[str, str]] = None,
    ):
        self.low_speed = float(low_speed)
        self.high_speed = float(high_speed)
        self.max_erratic_rate = None if max_erratic_rate is None else float(max_erratic_rate)
        self.stability_frames = max(1, int(stability_frames))
        self.messages = dict(DEFAULT_MESSAGES)
        if messages:
            self.messages.update(messages)
        self.state = FeedbackState()

    @classmethod
    def from_config(cls) -> 'LiveFeedbackClassifier':
        from motion_coach.config.config_manager import get_feedback_setting
        return cls(
            low_speed=get_feedback_setting('low_speed', default=100.0),
            high_speed=get_feedback_setting('high_speed', default=300.0),
            max_erratic_rate=get_feedback_setting('max_erratic_rate', default=7.0),
            stability_frames=get_feedback_setting('stability_frames', default=5),
            messages=get_feedback_setting('messages', default=None),
        )

    @property
    def label(self) -> str:
        return self.state.current_label

    @property
    def message(self) -> str:
        return self.messages.get(self.state.current_label, self.state.current_label)

    def classify(self, slot: HandSlot) -> str:
        """Undebounced label for this frame."""
        if not slot.seen:
            return NO_HANDS
        speed = slot.speed
        if speed < self.low_speed:
            return TOO_LITTLE
        if speed > self.high_speed:
            return TOO_MUCH
        if self.max_erratic_rate is not None and slot.erratic_rate > self.max_erratic_rate:
            return TOO_MUCH
        return JUST_RIGHT

    def update(self, slot: HandSlot) -> str:
        """Classify this frame and return the published label."""
        return self.observe(self.classify(slot))

    def observe(self, label: str) -> str:
        state = self.state
        if label == state.current_label:
            state.pending_label = None
            state.stable_run_length = 0
            return state.current_label

        if label == state.pending_label:
            state.stable_run_length += 1
        else:
            state.pending_label = label
            state.stable_run_length = 1

        if state.stable_run_length >= self.stability_frames:
            state.current_label = label
            state.pending_label = None
            state.stable_run_length = 0
        return state.current_label

    def reset(self):
        self.state = FeedbackState()


__all__ = [
    'NO_HANDS',
    'TOO_LITTLE',
    'TOO_MUCH',
    'JUST_RIGHT',
    'FEEDBACK_LABELS',
    'FeedbackState',
    'LiveFeedbackClassifier',
]

"""
Visual Feedback Overlay for Motion Coach

Draws the per-hand motion trails, the head positioning guide and the live
metrics / coaching panel on top of the mirrored camera preview.
"""

import cv2
import numpy as np
from dataclasses import dataclass


@dataclass
class UIColors:
    """Color palette (BGR)."""
    slot_colors = ((0, 255, 255), (0, 165, 255))   # Yellow, orange
    guide_ok = (0, 255, 0)
    guide_idle = (220, 220, 220)
    background = (20, 20, 30)
    text_primary = (255, 255, 255)
    text_secondary = (180, 180, 200)

    feedback = {
        'no hands detected': (180, 180, 200),
        'too little': (0, 200, 255),
        'too much': (50, 50, 255),
        'just right': (0, 255, 0),
    }


class VisualFeedback:

    def __init__(self, config=None, slot_labels=("Left hand", "Right hand")):
        self.colors = UIColors()
        self.slot_labels = tuple(slot_labels)

        if config:
            from motion_coach.config.config_manager import get_visual_setting
            self.enabled = get_visual_setting('enabled', True)
            self.show_trails = get_visual_setting('show_trails', True)
            self.show_guide = get_visual_setting('show_guide', True)
            self.show_panel = get_visual_setting('show_metrics_panel', True)
            self.trail_thickness = int(get_visual_setting('trail_thickness', 2))
            self.slot_labels = tuple(config.get('display', 'slot_labels', default=self.slot_labels))
        else:
            self.enabled = True
            self.show_trails = True
            self.show_guide = True
            self.show_panel = True
            self.trail_thickness = 2

    def draw(self, frame, engine):
        """Draw everything for the engine's current state onto `frame` (in place)."""
        if not self.enabled or frame is None:
            return frame
        if self.show_guide:
            self.draw_guide(frame, engine.normalizer)
        if self.show_trails:
            for slot in engine.slots:
                self.draw_trail(frame, slot)
        if self.show_panel and engine.live_state is not None:
            self.draw_panel(frame, engine.live_state)
        return frame

    def draw_trail(self, frame, slot):
        if len(slot.trail) < 2:
            return
        color = self.colors.slot_colors[slot.index % len(self.colors.slot_colors)]
        pts = np.array([[int(x), int(y)] for x, y in slot.trail], np.int32).reshape((-1, 1, 2))
        cv2.polylines(frame, [pts], False, color, self.trail_thickness, cv2.LINE_AA)
        head = tuple(int(v) for v in slot.trail[-1])
        cv2.circle(frame, head, 5, color, -1)

    def draw_guide(self, frame, normalizer):
        h, w = frame.shape[:2]
        (cx, cy), radius = normalizer.guide_geometry(w, h)
        color = self.colors.guide_ok if normalizer.state.face_within_guide else self.colors.guide_idle
        # Dashed circle: OpenCV has no dash style, so draw short arcs
        center = (int(cx), int(cy))
        axes = (int(radius), int(radius))
        for start in range(0, 360, 20):
            cv2.ellipse(frame, center, axes, 0, start, start + 12, color, 2, cv2.LINE_AA)

    def draw_panel(self, frame, live_state):
        h, w = frame.shape[:2]
        panel_h = 90
        overlay = frame.copy()
        cv2.rectangle(overlay, (0, h - panel_h), (w, h), self.colors.background, -1)
        cv2.addWeighted(overlay, 0.6, frame, 0.4, 0, frame)

        y = h - panel_h + 20
        for i, rates in enumerate(live_state.per_slot_metrics):
            label = self.slot_labels[i] if i < len(self.slot_labels) else f"Hand {i}"
            text = f"{label}: avg {rates.speed:.1f} px/s, erratic {rates.erratic_rate:.1f} rev/s"
            cv2.putText(frame, text, (10, y), cv2.FONT_HERSHEY_SIMPLEX, 0.5,
                        self.colors.slot_colors[i % 2], 1, cv2.LINE_AA)
            y += 20

        if not live_state.calibrated:
            status = f"Calibrating... {live_state.countdown_remaining}  (center your face in the circle)"
            color = self.colors.text_secondary
        else:
            status = f"Movement: {live_state.feedback_message}"
            color = self.colors.feedback.get(live_state.feedback_label, self.colors.text_primary)
        cv2.putText(frame, status, (10, y + 5), cv2.FONT_HERSHEY_SIMPLEX, 0.6, color, 2, cv2.LINE_AA)

import unittest
import sys
import os

# Add path to source
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from motion_coach.detectors.identity_tracker import IdentityTracker
from motion_coach.detectors.keypoint_frame import HandDetection, Point2D
from motion_coach.metrics.motion_metrics import HandSlots, MotionAccumulator
from tests.synthetic import hand_at, WIDTH


class TestIdentityTracker(unittest.TestCase):
    def setUp(self):
        self.tracker = IdentityTracker(proximity_threshold_px=100.0)
        self.slots = HandSlots()
        self.acc = MotionAccumulator()

    def _apply(self, assignment):
        for slot in self.slots:
            point = assignment[slot.index]
            if point is None:
                slot.mark_absent()
            else:
                self.acc.update(slot, point, elapsed_ms=33.0)

    def test_composite_point_is_centroid_of_three_landmarks(self):
        landmarks = [Point2D(0.0, 0.0) for _ in range(21)]
        landmarks[0] = Point2D(30.0, 30.0)
        landmarks[5] = Point2D(60.0, 0.0)
        landmarks[17] = Point2D(0.0, 60.0)
        point = self.tracker.composite_point(HandDetection(landmarks=landmarks))
        self.assertAlmostEqual(point[0], 30.0)
        self.assertAlmostEqual(point[1], 30.0)

    def test_first_detection_uses_midline(self):
        a = self.tracker.assign([hand_at(50, 100)], self.slots, WIDTH)
        self.assertEqual(a[0], (50.0, 100.0))
        self.assertIsNone(a[1])

        a = self.tracker.assign([hand_at(350, 100)], HandSlots(), WIDTH)
        self.assertIsNone(a[0])
        self.assertEqual(a[1], (350.0, 100.0))

    def test_two_hands_on_opposite_sides(self):
        a = self.tracker.assign([hand_at(300, 100), hand_at(80, 120)], self.slots, WIDTH)
        self.assertEqual(a[0], (80.0, 120.0))
        self.assertEqual(a[1], (300.0, 100.0))
        self.assertEqual(a.dropped, 0)

    def test_far_detection_falls_back_to_midline(self):
        # Slot 0 last seen at x=60; a new hand at x=350 is too far to continue it
        self._apply(self.tracker.assign([hand_at(50, 100)], self.slots, WIDTH))
        self._apply(self.tracker.assign([hand_at(60, 100)], self.slots, WIDTH))
        a = self.tracker.assign([hand_at(350, 100)], self.slots, WIDTH)
        self.assertIsNone(a[0])
        self.assertEqual(a[1], (350.0, 100.0))

    def test_continuity_survives_crossing_the_midline(self):
        self._apply(self.tracker.assign([hand_at(190, 100)], self.slots, WIDTH))
        a = self.tracker.assign([hand_at(215, 100)], self.slots, WIDTH)
        self.assertEqual(a[0], (215.0, 100.0))
        self.assertIsNone(a[1])

    def test_conflict_keeps_nearest_and_drops_the_other(self):
        self._apply(self.tracker.assign([hand_at(100, 100)], self.slots, WIDTH))
        a = self.tracker.assign([hand_at(130, 100), hand_at(110, 100)], self.slots, WIDTH)
        self.assertEqual(a[0], (110.0, 100.0))
        self.assertIsNone(a[1])
        self.assertEqual(a.dropped, 1)

    def test_conflict_without_history_prefers_hand_farther_from_midline(self):
        a = self.tracker.assign([hand_at(180, 100), hand_at(40, 100)], self.slots, WIDTH)
        self.assertEqual(a[0], (40.0, 100.0))
        self.assertEqual(a.dropped, 1)

    def test_hand_missing_landmarks_is_dropped(self):
        a = self.tracker.assign([hand_at(50, 100, n=6)], self.slots, WIDTH)
        self.assertIsNone(a[0])
        self.assertIsNone(a[1])
        self.assertEqual(a.dropped, 1)

    def test_absent_slot_clears_trail_but_keeps_counters(self):
        for x in (50, 70, 90):
            self._apply(self.tracker.assign([hand_at(x, 100)], self.slots, WIDTH))
        distance = self.slots.left.total_distance
        self.assertGreater(distance, 0)

        self._apply(self.tracker.assign([], self.slots, WIDTH))
        self.assertFalse(self.slots.left.seen)
        self.assertEqual(len(self.slots.left.trail), 0)
        self.assertEqual(self.slots.left.total_distance, distance)


if __name__ == '__main__':
    unittest.main()

import math
import unittest
import sys
import os

# Add path to source
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from motion_coach.detectors.scale_normalizer import ScaleNormalizer
from motion_coach.metrics.motion_metrics import HandSlot, HandSlots, MotionAccumulator
from tests.synthetic import face_with_iod, WIDTH, HEIGHT


class TestMotionAccumulator(unittest.TestCase):
    def setUp(self):
        self.acc = MotionAccumulator(min_motion_px=2.0, angle_threshold_rad=1.0)
        self.slot = HandSlot(index=0, trail_length=45)

    def test_constant_direction_motion(self):
        """10 px per frame for 3000 ms in one direction: no turns, speed = distance / 3 s."""
        dt = 125.0
        steps = int(3000 / dt)
        for i in range(steps + 1):
            self.acc.update(self.slot, (10.0 * i, 50.0), elapsed_ms=dt if i else 0.0)

        self.assertEqual(self.slot.erratic_turn_count, 0)
        self.assertAlmostEqual(self.slot.visible_time_ms, 3000.0)
        self.assertAlmostEqual(self.slot.total_distance, 10.0 * steps)
        self.assertAlmostEqual(self.slot.speed, self.slot.total_distance / 3.0)
        self.assertEqual(self.slot.erratic_rate, 0.0)

    def test_reversal_every_frame_counts_every_comparison(self):
        """180 degree reversal each frame for 2000 ms -> turns = steps - 1."""
        dt = 50.0
        steps = int(2000 / dt)
        x = 100.0
        self.acc.update(self.slot, (x, 100.0))
        for i in range(steps):
            x += 10.0 if i % 2 == 0 else -10.0
            self.acc.update(self.slot, (x, 100.0), elapsed_ms=dt)

        self.assertEqual(self.slot.erratic_turn_count, steps - 1)
        self.assertEqual(self.slot.comparison_count, steps - 1)
        self.assertAlmostEqual(self.slot.erratic_rate, (steps - 1) / 2.0)

    def test_smooth_curve_is_not_erratic(self):
        # Quarter circle in 20 steps: direction changes ~4.5 degrees per step
        r = 100.0
        for i in range(21):
            theta = (math.pi / 2) * i / 20
            self.acc.update(self.slot, (r * math.cos(theta), r * math.sin(theta)), elapsed_ms=33.0)
        self.assertEqual(self.slot.erratic_turn_count, 0)
        self.assertGreater(self.slot.comparison_count, 0)

    def test_distance_is_normalized_to_baseline_head_size(self):
        # Face twice as close as at calibration: 40 raw px count as 20
        norm = ScaleNormalizer()
        norm.update_face(face_with_iod(100), WIDTH, HEIGHT)
        norm.capture_baseline()
        norm.update_face(face_with_iod(200), WIDTH, HEIGHT)

        self.acc.update(self.slot, (0.0, 0.0), normalizer=norm)
        added = self.acc.update(self.slot, (40.0, 0.0), normalizer=norm, elapsed_ms=33.0)
        self.assertAlmostEqual(added, 20.0)
        self.assertAlmostEqual(self.slot.total_distance, 20.0)

    def test_sub_epsilon_motion_is_noise(self):
        self.acc.update(self.slot, (0.0, 0.0))
        self.acc.update(self.slot, (10.0, 0.0), elapsed_ms=33.0)
        vector_before = self.slot.last_motion_vector.copy()

        added = self.acc.update(self.slot, (11.0, 0.0), elapsed_ms=33.0)
        self.assertEqual(added, 0.0)
        self.assertAlmostEqual(self.slot.total_distance, 10.0)
        self.assertAlmostEqual(self.slot.visible_time_ms, 33.0)
        self.assertEqual(self.slot.last_position, (11.0, 0.0))
        self.assertTrue((self.slot.last_motion_vector == vector_before).all())
        # The noise point still shows in the trail
        self.assertEqual(self.slot.trail[-1], (11.0, 0.0))

    def test_slow_drift_below_epsilon_adds_nothing(self):
        """1.5 px per frame at 30 fps for 3 s never clears a 2 px threshold."""
        for i in range(91):
            self.acc.update(self.slot, (1.5 * i, 0.0), elapsed_ms=33.0 if i else 0.0)
        self.assertEqual(self.slot.total_distance, 0.0)
        self.assertEqual(self.slot.visible_time_ms, 0.0)
        self.assertEqual(self.slot.speed, 0.0)
        self.assertEqual(self.slot.last_position, (135.0, 0.0))

    def test_speed_matches_motion_after_noise_steps(self):
        # Alternating 1 px and 10 px steps: only the 10 px steps count, with their own time
        x = 0.0
        self.acc.update(self.slot, (x, 0.0))
        for i in range(20):
            x += 1.0 if i % 2 == 0 else 10.0
            self.acc.update(self.slot, (x, 0.0), elapsed_ms=100.0)
        self.assertAlmostEqual(self.slot.total_distance, 100.0)
        self.assertAlmostEqual(self.slot.visible_time_ms, 1000.0)
        self.assertAlmostEqual(self.slot.speed, 100.0)

    def test_absence_breaks_the_run(self):
        self.acc.update(self.slot, (0.0, 0.0))
        self.acc.update(self.slot, (10.0, 0.0), elapsed_ms=33.0)
        self.slot.mark_absent()
        # Reappearing far away does not count the jump
        self.acc.update(self.slot, (200.0, 0.0), elapsed_ms=33.0)
        self.assertAlmostEqual(self.slot.total_distance, 10.0)
        self.assertIsNone(self.slot.last_motion_vector)
        self.assertEqual(list(self.slot.trail), [(200.0, 0.0)])

    def test_trail_is_bounded(self):
        slot = HandSlot(index=1, trail_length=5)
        for i in range(12):
            self.acc.update(slot, (float(i * 5), 0.0), elapsed_ms=33.0)
        self.assertEqual(len(slot.trail), 5)
        self.assertEqual(slot.trail[0], (35.0, 0.0))

    def test_rates_are_zero_without_visible_time(self):
        self.assertEqual(self.slot.speed, 0.0)
        self.assertEqual(self.slot.erratic_rate, 0.0)

    def test_erratic_count_never_exceeds_comparisons(self):
        pts = [(0, 0), (10, 0), (10, 10), (0, 10), (5, 5), (20, 3), (20, 4), (0, 0), (30, 30)]
        for p in pts:
            self.acc.update(self.slot, (float(p[0]), float(p[1])), elapsed_ms=33.0)
            self.assertLessEqual(self.slot.erratic_turn_count, self.slot.comparison_count)


class TestHandSlots(unittest.TestCase):
    def test_named_accessors(self):
        slots = HandSlots()
        self.assertIs(slots.left, slots[0])
        self.assertIs(slots.right, slots[1])
        self.assertEqual(len(slots), 2)

    def test_out_of_range_index(self):
        with self.assertRaises(IndexError):
            HandSlots()[2]

    def test_reset_counters_keeps_position(self):
        slots = HandSlots()
        acc = MotionAccumulator()
        acc.update(slots.left, (0.0, 0.0))
        acc.update(slots.left, (30.0, 0.0), elapsed_ms=100.0)
        slots.reset_counters()
        self.assertEqual(slots.left.total_distance, 0.0)
        self.assertEqual(slots.left.visible_time_ms, 0.0)
        self.assertEqual(slots.left.erratic_turn_count, 0)
        self.assertEqual(slots.left.last_position, (30.0, 0.0))


if __name__ == '__main__':
    unittest.main()

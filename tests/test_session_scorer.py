import unittest
import sys
import os

# Add path to source
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from motion_coach.metrics.motion_metrics import HandSlots
from motion_coach.metrics.session_scorer import (
    SessionScorer, SUB_SCORE_MAX, NO_DATA_BANNER, GENERAL_TIPS, SCORE_BANNERS,
    format_duration, format_report,
)


def make_slots(*per_slot):
    """per_slot: (distance, visible_ms, turns) per slot, or None for a never-seen slot."""
    slots = HandSlots()
    for slot, values in zip(slots, per_slot):
        if values is None:
            continue
        slot.total_distance, slot.visible_time_ms, slot.erratic_turn_count = values
    return slots


class TestSubScores(unittest.TestCase):
    def setUp(self):
        self.scorer = SessionScorer()

    def test_distance_band_shape(self):
        self.assertAlmostEqual(self.scorer.distance_score(0), 0.0)
        self.assertAlmostEqual(self.scorer.distance_score(1000), SUB_SCORE_MAX / 2)
        self.assertAlmostEqual(self.scorer.distance_score(2000), SUB_SCORE_MAX)
        self.assertAlmostEqual(self.scorer.distance_score(8000), SUB_SCORE_MAX)
        self.assertAlmostEqual(self.scorer.distance_score(11000), SUB_SCORE_MAX / 2)
        self.assertAlmostEqual(self.scorer.distance_score(14000), 0.0)
        self.assertAlmostEqual(self.scorer.distance_score(50000), 0.0)

    def test_speed_band_shape(self):
        self.assertAlmostEqual(self.scorer.speed_score(50), SUB_SCORE_MAX / 2)
        self.assertAlmostEqual(self.scorer.speed_score(200), SUB_SCORE_MAX)
        self.assertAlmostEqual(self.scorer.speed_score(400), SUB_SCORE_MAX / 2)

    def test_erratic_score_clamps(self):
        self.assertAlmostEqual(self.scorer.erratic_score(0), SUB_SCORE_MAX)
        self.assertAlmostEqual(self.scorer.erratic_score(3.5), SUB_SCORE_MAX / 2)
        self.assertEqual(self.scorer.erratic_score(7), 0.0)
        self.assertEqual(self.scorer.erratic_score(20), 0.0)


class TestSessionScorer(unittest.TestCase):
    def setUp(self):
        self.scorer = SessionScorer()

    def test_no_data_session(self):
        report = self.scorer.score(make_slots(None, None), duration_ms=30000)
        self.assertIsNone(report.overall_score)
        self.assertFalse(report.has_data)
        self.assertEqual(report.tips, (NO_DATA_BANNER,))
        self.assertTrue(all(not h.visible and h.score is None for h in report.hands))

    def test_perfect_hand(self):
        report = self.scorer.score(make_slots((5000, 20000, 0), None))
        hand = report.hands[0]
        self.assertAlmostEqual(hand.score, 10.0)
        self.assertAlmostEqual(report.overall_score, 10.0)
        self.assertEqual(report.tips[0], SCORE_BANNERS[0][1])
        self.assertEqual(report.tips[1], "Left hand (score 10.0/10):")
        self.assertEqual(report.tips[2:], ("- Movement was smooth and controlled.",
                                           "- Strong overall gesturing with this hand."))
        self.assertEqual(report.areas_for_improvement, ())

    def test_overall_excludes_unseen_hands(self):
        report = self.scorer.score(make_slots(None, (5000, 20000, 0)))
        self.assertAlmostEqual(report.overall_score, report.hands[1].score)
        self.assertIsNone(report.hands[0].score)

    def test_overall_is_mean_of_visible_hands(self):
        report = self.scorer.score(make_slots((5000, 20000, 0), (1000, 20000, 0)))
        expected = (report.hands[0].score + report.hands[1].score) / 2
        self.assertAlmostEqual(report.overall_score, expected)

    def test_tip_order(self):
        report = self.scorer.score(make_slots((500, 10000, 50), None))
        hand = report.hands[0]
        self.assertLess(hand.score, 5.0)
        self.assertEqual(report.tips[0], "Your gestures need work. Focus on the tips below.")
        self.assertEqual(report.tips[1], f"Left hand (score {hand.score:.1f}/10):")
        self.assertTrue(report.tips[2].startswith("- Movement was too contained"))
        self.assertTrue(report.tips[3].startswith("- Gestures were slow"))
        self.assertTrue(report.tips[4].startswith("- Movement was jerky"))
        self.assertEqual(report.tips[5], "- This hand scored low; focus on the points above.")
        self.assertEqual(report.tips[6:], (GENERAL_TIPS['erratic'], GENERAL_TIPS['contained'],
                                           GENERAL_TIPS['low_score']))

    def test_hand_without_triggered_rules_has_no_section(self):
        # In band, moderate erraticism, mid score: nothing to say about it
        scorer = SessionScorer(erratic_high=3.0, erratic_low=0.5, high_score=9.9, low_score=1.0)
        report = scorer.score(make_slots((5000, 20000, 20), None))
        self.assertEqual(len(report.tips), 1)

    def test_too_fast_general_tip(self):
        report = self.scorer.score(make_slots((8000, 10000, 0), None))
        self.assertIn(GENERAL_TIPS['fast'], report.tips)
        self.assertNotIn(GENERAL_TIPS['contained'], report.tips)

    def test_report_is_immutable(self):
        report = self.scorer.score(make_slots((5000, 20000, 0), None))
        with self.assertRaises(Exception):
            report.overall_score = 1.0

    def test_slot_labels(self):
        scorer = SessionScorer(slot_labels=("Hand A", "Hand B"))
        report = scorer.score(make_slots(None, (5000, 20000, 0)))
        self.assertEqual(report.hands[1].label, "Hand B")

    def test_to_dict_and_text(self):
        report = self.scorer.score(make_slots((5000, 20000, 0), None), duration_ms=30000)
        data = report.to_dict()
        self.assertEqual(data['duration_text'], "0 minutes 30 seconds")
        self.assertIsInstance(data['tips'], list)
        self.assertEqual(len(data['hands']), 2)
        text = format_report(report)
        self.assertIn("Overall score: 10.0/10", text)
        self.assertIn("Right hand: not detected", text)


class TestFormatDuration(unittest.TestCase):
    def test_plural_and_singular(self):
        self.assertEqual(format_duration(272), "4 minutes 32 seconds")
        self.assertEqual(format_duration(61), "1 minute 1 second")
        self.assertEqual(format_duration(0), "0 minutes 0 seconds")


if __name__ == '__main__':
    unittest.main()

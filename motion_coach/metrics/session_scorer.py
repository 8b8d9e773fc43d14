"""
End-of-session scoring.

Each hand that was visible gets three sub-scores (distance, speed,
erraticism), each worth up to a third of 10. The overall score averages
the visible hands only; a session in which no hand ever moved has no
overall score at all.

Tip order is fixed:
    1. one banner line for the overall score band
    2. per-hand sections (distance, speed, erraticism, score band rules)
    3. general tips triggered by any hand
"""

from typing import Dict, List, Optional, Sequence, Tuple
from dataclasses import dataclass, asdict

from motion_coach.metrics.motion_metrics import HandSlot, HandSlots
from motion_coach.utils.math_utils import linear_band_score


MAX_SCORE = 10.0
SUB_SCORE_MAX = MAX_SCORE / 3.0

# (minimum overall score, banner); first match wins
SCORE_BANNERS = (
    (8.5, "Excellent gesturing! Your hand movement was natural, expressive and controlled."),
    (7.0, "Good gesturing overall. A few small adjustments will make it even stronger."),
    (5.0, "Decent gesturing, with clear room for improvement."),
    (3.0, "Your gestures need work. Focus on the tips below."),
    (0.0, "Gesturing was a weak point in this session. Practice with the tips below."),
)
NO_DATA_BANNER = "No hand movement was detected. Make sure your hands are visible to the camera."

GENERAL_TIPS = {
    'erratic': "Practice slow, deliberate gestures in front of a mirror to reduce jerky movement.",
    'fast': "Pause between points and let each gesture finish before starting the next.",
    'contained': "Let your hands move away from your body; open gestures read as confident.",
    'low_score': "Record another session after practicing and aim for steady, purposeful movement.",
}


@dataclass(frozen=True)
class HandReport:
    slot: int
    label: str
    visible: bool
    visible_seconds: float
    distance: float
    speed: float
    erratic_rate: float
    erratic_turns: int
    distance_score: Optional[float] = None
    speed_score: Optional[float] = None
    erratic_score: Optional[float] = None
    score: Optional[float] = None


@dataclass(frozen=True)
class SessionReport:
    hands: Tuple[HandReport, ...]
    overall_score: Optional[float]
    overall_feedback: str
    tips: Tuple[str, ...]
    strengths: Tuple[str, ...]
    areas_for_improvement: Tuple[str, ...]
    duration_seconds: float
    duration_text: str

    @property
    def has_data(self) -> bool:
        return self.overall_score is not None

    def to_dict(self) -> Dict:
        out = asdict(self)
        out['hands'] = [asdict(h) for h in self.hands]
        out['tips'] = list(self.tips)
        out['strengths'] = list(self.strengths)
        out['areas_for_improvement'] = list(self.areas_for_improvement)
        return out


def format_duration(seconds: float) -> str:
    """'4 minutes 32 seconds' style text."""
    total = int(round(max(0.0, seconds)))
    minutes, secs = divmod(total, 60)
    m_unit = "minute" if minutes == 1 else "minutes"
    s_unit = "second" if secs == 1 else "seconds"
    return f"{minutes} {m_unit} {secs} {s_unit}"


class SessionScorer:

    def __init__(
        self,
        distance_band: Sequence[float] = (2000.0, 8000.0),
        speed_band: Sequence[float] = (100.0, 300.0),
        max_erratic_rate: float = 7.0,
        erratic_high: float = 3.0,
        erratic_low: float = 0.5,
        low_score: float = 5.0,
        high_score: float = 8.0,
        slot_labels: Sequence[str] = ("Left hand", "Right hand"),
    ):
        self.distance_band = (float(distance_band[0]), float(distance_band[1]))
        self.speed_band = (float(speed_band[0]), float(speed_band[1]))
        self.max_erratic_rate = float(max_erratic_rate)
        self.erratic_high = float(erratic_high)
        self.erratic_low = float(erratic_low)
        self.low_score = float(low_score)
        self.high_score = float(high_score)
        self.slot_labels = tuple(slot_labels)

    @classmethod
    def from_config(cls) -> 'SessionScorer':
        from motion_coach.config.config_manager import config, get_scoring_setting
        return cls(
            distance_band=get_scoring_setting('distance_band', default=(2000.0, 8000.0)),
            speed_band=get_scoring_setting('speed_band', default=(100.0, 300.0)),
            max_erratic_rate=get_scoring_setting('max_erratic_rate', default=7.0),
            erratic_high=get_scoring_setting('erratic_high', default=3.0),
            erratic_low=get_scoring_setting('erratic_low', default=0.5),
            low_score=get_scoring_setting('low_score', default=5.0),
            high_score=get_scoring_setting('high_score', default=8.0),
            slot_labels=config.get('display', 'slot_labels', default=("Left hand", "Right hand")),
        )

    # Sub-scores

    def distance_score(self, distance: float) -> float:
        return linear_band_score(distance, self.distance_band[0], self.distance_band[1], SUB_SCORE_MAX)

    def speed_score(self, speed: float) -> float:
        return linear_band_score(speed, self.speed_band[0], self.speed_band[1], SUB_SCORE_MAX)

    def erratic_score(self, erratic_rate: float) -> float:
        if self.max_erratic_rate <= 0:
            return SUB_SCORE_MAX if erratic_rate <= 0 else 0.0
        return SUB_SCORE_MAX * max(0.0, 1.0 - max(0.0, erratic_rate) / self.max_erratic_rate)

    def score_hand(self, slot: HandSlot) -> HandReport:
        label = self._label(slot.index)
        if slot.visible_time_ms <= 0:
            return HandReport(
                slot=slot.index, label=label, visible=False, visible_seconds=0.0,
                distance=slot.total_distance, speed=0.0, erratic_rate=0.0,
                erratic_turns=slot.erratic_turn_count,
            )

        speed = slot.speed
        erratic_rate = slot.erratic_rate
        d_score = self.distance_score(slot.total_distance)
        s_score = self.speed_score(speed)
        e_score = self.erratic_score(erratic_rate)
        return HandReport(
            slot=slot.index, label=label, visible=True,
            visible_seconds=slot.visible_seconds,
            distance=slot.total_distance, speed=speed, erratic_rate=erratic_rate,
            erratic_turns=slot.erratic_turn_count,
            distance_score=d_score, speed_score=s_score, erratic_score=e_score,
            score=min(MAX_SCORE, d_score + s_score + e_score),
        )

    def score(self, slots: HandSlots, duration_ms: float = 0.0) -> SessionReport:
        hands = tuple(self.score_hand(slot) for slot in slots)
        visible = [h for h in hands if h.visible]
        overall = sum(h.score for h in visible) / len(visible) if visible else None

        banner = self.banner(overall)
        tips: List[str] = [banner]
        strengths: List[str] = []
        improvements: List[str] = []

        for hand in visible:
            lines = self._hand_rules(hand, strengths, improvements)
            if lines:
                tips.append(f"{hand.label} (score {hand.score:.1f}/10):")
                tips.extend(f"- {line}" for line in lines)

        tips.extend(self._general_tips(visible))

        duration_s = max(0.0, float(duration_ms)) / 1000.0
        return SessionReport(
            hands=hands,
            overall_score=overall,
            overall_feedback=banner,
            tips=tuple(tips),
            strengths=tuple(strengths),
            areas_for_improvement=tuple(improvements),
            duration_seconds=duration_s,
            duration_text=format_duration(duration_s),
        )

    def banner(self, overall: Optional[float]) -> str:
        if overall is None:
            return NO_DATA_BANNER
        for floor, text in SCORE_BANNERS:
            if overall >= floor:
                return text
        return SCORE_BANNERS[-1][1]

    # Rules

    def _hand_rules(self, hand: HandReport, strengths: List[str], improvements: List[str]) -> List[str]:
        lines = []
        d_min, d_max = self.distance_band
        s_min, s_max = self.speed_band

        if hand.distance < d_min:
            lines.append(f"Movement was too contained ({hand.distance:.0f} px). Use bigger, more open gestures.")
            improvements.append(f"{hand.label}: gesture range was too small")
        elif hand.distance > d_max:
            lines.append(f"Movement covered a lot of ground ({hand.distance:.0f} px). "
                         "Keep gestures purposeful rather than constant.")
            improvements.append(f"{hand.label}: too much overall movement")
        else:
            strengths.append(f"{hand.label}: good range of motion")

        if hand.speed < s_min:
            lines.append(f"Gestures were slow ({hand.speed:.0f} px/s). Add a bit more energy.")
            improvements.append(f"{hand.label}: gestures were slow")
        elif hand.speed > s_max:
            lines.append(f"Gestures were fast ({hand.speed:.0f} px/s). Slow down to let each gesture land.")
            improvements.append(f"{hand.label}: gestures were rushed")
        else:
            strengths.append(f"{hand.label}: well-paced gestures")

        if hand.erratic_rate > self.erratic_high:
            lines.append(f"Movement was jerky ({hand.erratic_rate:.1f} reversals/s). "
                         "Aim for smooth, flowing motions.")
            improvements.append(f"{hand.label}: frequent abrupt direction changes")
        elif hand.erratic_rate < self.erratic_low:
            lines.append("Movement was smooth and controlled.")
            strengths.append(f"{hand.label}: smooth, controlled movement")

        if hand.score >= self.high_score:
            lines.append("Strong overall gesturing with this hand.")
        elif hand.score < self.low_score:
            lines.append("This hand scored low; focus on the points above.")

        return lines

    def _general_tips(self, visible: List[HandReport]) -> List[str]:
        tips = []
        if any(h.erratic_rate > self.erratic_high for h in visible):
            tips.append(GENERAL_TIPS['erratic'])
        if any(h.speed > self.speed_band[1] for h in visible):
            tips.append(GENERAL_TIPS['fast'])
        if any(h.distance < self.distance_band[0] for h in visible):
            tips.append(GENERAL_TIPS['contained'])
        if any(h.score < self.low_score for h in visible):
            tips.append(GENERAL_TIPS['low_score'])
        return tips

    def _label(self, index: int) -> str:
        if index < len(self.slot_labels):
            return str(self.slot_labels[index])
        return f"Hand {index}"


def format_report(report: SessionReport) -> str:
    """Plain-text rendering of a report for the console."""
    lines = ["=" * 60, "GESTURE FEEDBACK", "=" * 60]
    if report.has_data:
        lines.append(f"Overall score: {report.overall_score:.1f}/10")
    else:
        lines.append("Overall score: n/a (no data)")
    lines.append(f"Session length: {report.duration_text}")
    lines.append("")
    for hand in report.hands:
        if not hand.visible:
            lines.append(f"{hand.label}: not detected")
            continue
        lines.append(
            f"{hand.label}: score {hand.score:.1f}/10 | total {hand.distance:.1f} px | "
            f"avg {hand.speed:.1f} px/s | erratic {hand.erratic_rate:.1f} rev/s"
        )
    for title, items in (("Strengths", report.strengths),
                         ("Areas for improvement", report.areas_for_improvement),
                         ("Tips", report.tips)):
        if items:
            lines.append("")
            lines.append(f"{title}:")
            lines.extend(f"  {item}" for item in items)
    lines.append("=" * 60)
    return "\n".join(lines)


__all__ = [
    'HandReport',
    'SessionReport',
    'SessionScorer',
    'format_duration',
    'format_report',
    'SCORE_BANNERS',
    'NO_DATA_BANNER',
    'GENERAL_TIPS',
]

"""
Session state machine for Motion Coach.

    CALIBRATING --(countdown hits 0)--> RECORDING --(timer)--> FINISHED
         \\______________________ cancel() ______________________/--> CANCELLED

SessionEngine owns every piece of mutable session state (hand slots,
calibration, feedback). Timer callbacks and the frame loop only go through
its methods. SessionRunner is the cooperative loop: fire due timers, pull
one frame, step the engine, repeat until the engine stops.
"""

from enum import Enum
from typing import Callable, List, Optional, Tuple
from dataclasses import dataclass

from motion_coach.app.scheduler import CooperativeScheduler, SchedulerError, TimerHandle
from motion_coach.app.detection_source import DetectionSourceError
from motion_coach.detectors.keypoint_frame import KeypointFrame
from motion_coach.detectors.identity_tracker import IdentityTracker
from motion_coach.detectors.scale_normalizer import ScaleNormalizer
from motion_coach.metrics.motion_metrics import HandSlots, MotionAccumulator, SlotRates
from motion_coach.metrics.live_feedback import LiveFeedbackClassifier
from motion_coach.metrics.session_scorer import SessionReport, SessionScorer


class SessionStartError(RuntimeError):
    """The session could not start; no session state was kept."""


class SessionPhase(Enum):
    IDLE = 'idle'
    CALIBRATING = 'calibrating'
    RECORDING = 'recording'
    FINISHED = 'finished'
    CANCELLED = 'cancelled'


class StepOutcome(Enum):
    CONTINUE = 'continue'
    FINISHED = 'finished'
    CANCELLED = 'cancelled'


@dataclass(frozen=True)
class LiveState:
    """Snapshot handed to observers after each processed frame."""
    per_slot_metrics: Tuple[SlotRates, SlotRates]
    feedback_label: str
    feedback_message: str
    calibrated: bool
    countdown_remaining: int
    phase: SessionPhase
    scale_factor: float = 1.0
    face_within_guide: bool = False


class SessionEngine:

    def __init__(
        self,
        scheduler: CooperativeScheduler,
        tracker: Optional[IdentityTracker] = None,
        normalizer: Optional[ScaleNormalizer] = None,
        accumulator: Optional[MotionAccumulator] = None,
        feedback: Optional[LiveFeedbackClassifier] = None,
        scorer: Optional[SessionScorer] = None,
        calibration_seconds: int = 5,
        recording_seconds: float = 30,
        countdown_tick_ms: float = 1000,
        trail_length: int = 45,
    ):
        self.scheduler = scheduler
        self.tracker = tracker or IdentityTracker()
        self.normalizer = normalizer or ScaleNormalizer()
        self.accumulator = accumulator or MotionAccumulator()
        self.feedback = feedback or LiveFeedbackClassifier()
        self.scorer = scorer or SessionScorer()
        self.calibration_seconds = int(calibration_seconds)
        self.recording_seconds = float(recording_seconds)
        self.countdown_tick_ms = float(countdown_tick_ms)
        self.trail_length = int(trail_length)

        self._state_observers: List[Callable[[LiveState], None]] = []
        self._report_observers: List[Callable[[SessionReport], None]] = []
        self._reset_session_state()

    @classmethod
    def from_config(cls, scheduler: CooperativeScheduler) -> 'SessionEngine':
        from motion_coach.config.config_manager import get_session_setting, get_metrics_setting
        return cls(
            scheduler,
            tracker=IdentityTracker.from_config(),
            normalizer=ScaleNormalizer.from_config(),
            accumulator=MotionAccumulator.from_config(),
            feedback=LiveFeedbackClassifier.from_config(),
            scorer=SessionScorer.from_config(),
            calibration_seconds=get_session_setting('calibration_seconds', default=5),
            recording_seconds=get_session_setting('recording_seconds', default=30),
            countdown_tick_ms=get_session_setting('countdown_tick_ms', default=1000),
            trail_length=get_metrics_setting('trail_length', default=45),
        )

    def _reset_session_state(self):
        self.phase = SessionPhase.IDLE
        self.slots = HandSlots(trail_length=self.trail_length)
        self.normalizer.reset()
        self.feedback.reset()
        self.countdown_remaining = self.calibration_seconds
        self.frame_count = 0
        self.report: Optional[SessionReport] = None
        self.live_state: Optional[LiveState] = None
        self._last_frame_ms: Optional[float] = None
        self._recording_started_ms: Optional[float] = None
        self._countdown_timer: Optional[TimerHandle] = None
        self._recording_timer: Optional[TimerHandle] = None

    # Observers

    def subscribe(self, callback: Callable[[LiveState], None]):
        self._state_observers.append(callback)

    def on_report(self, callback: Callable[[SessionReport], None]):
        self._report_observers.append(callback)

    # Lifecycle

    @property
    def calibrated(self) -> bool:
        return self.phase in (SessionPhase.RECORDING, SessionPhase.FINISHED)

    @property
    def stopped(self) -> bool:
        return self.phase in (SessionPhase.FINISHED, SessionPhase.CANCELLED)

    def start(self):
        """Enter CALIBRATING and arm the countdown."""
        if self.phase is not SessionPhase.IDLE:
            raise SessionStartError(f"session already {self.phase.value}")
        self.phase = SessionPhase.CALIBRATING
        try:
            if self.calibration_seconds <= 0:
                self._end_calibration()
            else:
                self._countdown_timer = self.scheduler.call_every(self.countdown_tick_ms, self._on_countdown_tick)
        except SchedulerError as e:
            self._cancel_timers()
            self._reset_session_state()
            raise SessionStartError(f"could not arm session timers: {e}") from e
        self._publish()

    def cancel(self):
        """Abort the session. Safe to call any number of times; no-op once stopped."""
        if self.stopped:
            return
        self._cancel_timers()
        self.phase = SessionPhase.CANCELLED
        print("⚠ Session cancelled")

    def step(self, frame: Optional[KeypointFrame]) -> StepOutcome:
        """Process one frame. A None frame (detector hiccup) contributes nothing."""
        if self.phase is SessionPhase.FINISHED:
            return StepOutcome.FINISHED
        if self.phase is SessionPhase.CANCELLED:
            return StepOutcome.CANCELLED
        if self.phase is SessionPhase.IDLE:
            raise RuntimeError("step() called before start()")
        if frame is None:
            return StepOutcome.CONTINUE

        elapsed_ms = 0.0
        if self._last_frame_ms is not None:
            elapsed_ms = max(0.0, frame.timestamp_ms - self._last_frame_ms)
        self._last_frame_ms = frame.timestamp_ms

        self.normalizer.update_face(frame.face, frame.width, frame.height)
        assignment = self.tracker.assign(frame.hands, self.slots, frame.width)

        for slot in self.slots:
            point = assignment[slot.index]
            if point is None:
                slot.mark_absent()
            else:
                self.accumulator.update(slot, point, normalizer=self.normalizer, elapsed_ms=elapsed_ms)

        if self.phase is SessionPhase.RECORDING:
            self.feedback.update(self.slots.left)

        self.frame_count += 1
        self._publish()
        return StepOutcome.CONTINUE

    # Timer callbacks

    def _on_countdown_tick(self):
        if self.phase is not SessionPhase.CALIBRATING:
            return
        self.countdown_remaining = max(0, self.countdown_remaining - 1)
        if self.countdown_remaining == 0:
            self._end_calibration()
        self._publish()

    def _end_calibration(self):
        self.scheduler.cancel(self._countdown_timer)
        self._countdown_timer = None
        self.countdown_remaining = 0

        baseline = self.normalizer.capture_baseline()
        self.slots.reset_counters()
        self.phase = SessionPhase.RECORDING
        self._recording_started_ms = self.scheduler.clock.now_ms()
        self._recording_timer = self.scheduler.call_later(self.recording_seconds * 1000.0,
                                                          self._on_recording_elapsed)
        if baseline:
            print(f"✓ Calibration complete (baseline IOD {baseline:.1f} px)")
        else:
            print("⚠ Calibration complete without a face; motion will not be scale-normalized")

    def _on_recording_elapsed(self):
        if self.phase is not SessionPhase.RECORDING:
            return
        self._finish()

    def _finish(self):
        self._cancel_timers()
        self.phase = SessionPhase.FINISHED
        duration_ms = 0.0
        if self._recording_started_ms is not None:
            duration_ms = self.scheduler.clock.now_ms() - self._recording_started_ms
        self.report = self.scorer.score(self.slots, duration_ms=duration_ms)
        print("✓ Session finished")
        self._publish()
        for callback in self._report_observers:
            callback(self.report)

    def _cancel_timers(self):
        self.scheduler.cancel(self._countdown_timer)
        self.scheduler.cancel(self._recording_timer)
        self._countdown_timer = None
        self._recording_timer = None

    def _publish(self):
        self.live_state = LiveState(
            per_slot_metrics=self.slots.rates(),
            feedback_label=self.feedback.label,
            feedback_message=self.feedback.message,
            calibrated=self.calibrated,
            countdown_remaining=self.countdown_remaining,
            phase=self.phase,
            scale_factor=self.normalizer.scale_factor,
            face_within_guide=self.normalizer.state.face_within_guide,
        )
        for callback in self._state_observers:
            callback(self.live_state)


class SessionRunner:
    """
    Drives one session: fire due timers, read a frame, step, repeat.

    `frame_hooks` run after every processed frame with (frame, engine);
    the live app uses them for the preview window and key handling.
    """

    def __init__(self, engine: SessionEngine, source, frame_hooks=None):
        self.engine = engine
        self.source = source
        self.frame_hooks = list(frame_hooks or [])

    def run(self) -> Optional[SessionReport]:
        try:
            self.source.open()
        except DetectionSourceError as e:
            raise SessionStartError(f"detection source unavailable: {e}") from e

        try:
            self.engine.start()
            while True:
                self.engine.scheduler.run_due()
                if self.engine.stopped:
                    break
                frame = self.source.read()
                # Reading may have moved the clock past a deadline
                self.engine.scheduler.run_due()
                if self.engine.stopped:
                    break
                outcome = self.engine.step(frame)
                for hook in self.frame_hooks:
                    hook(frame, self.engine)
                if outcome is not StepOutcome.CONTINUE:
                    break
        finally:
            self.source.close()

        return self.engine.report


__all__ = [
    'SessionStartError',
    'SessionPhase',
    'StepOutcome',
    'LiveState',
    'SessionEngine',
    'SessionRunner',
]

#!/usr/bin/env python3
"""
Motion Coach - gesture quality feedback
Main Application

Runs one calibration + recording session from the webcam (or a recorded
landmark stream), shows live coaching while recording, then prints a
scored report of how the user's hands moved.
"""

import argparse
import json
import sys

from motion_coach.config.config_manager import config
from motion_coach.app.scheduler import CooperativeScheduler, MonotonicClock
from motion_coach.app.detection_source import (
    MediaPipeDetectionSource, ReplayDetectionSource, FrameRecorder,
)
from motion_coach.app.session_engine import SessionEngine, SessionRunner, SessionStartError, SessionPhase
from motion_coach.metrics.session_scorer import format_report


class MotionCoachApplication:
    """Main Motion Coach application controller."""

    def __init__(self, camera_idx=None, replay_path=None, record_path=None,
                 show_window=None, show_debug=False):
        print("\n" + "=" * 60)
        print("Motion Coach - gesture quality feedback")
        print("=" * 60 + "\n")

        if replay_path:
            self.source = ReplayDetectionSource(path=replay_path)
            self.clock = self.source.clock
        else:
            self.clock = MonotonicClock()
            self.source = MediaPipeDetectionSource.from_config(camera_idx=camera_idx, clock=self.clock)

        self.scheduler = CooperativeScheduler(self.clock)
        self.engine = SessionEngine.from_config(self.scheduler)
        print("✓ Session engine initialized "
              f"(calibration {self.engine.calibration_seconds}s, recording {self.engine.recording_seconds:g}s)")

        if show_window is None:
            show_window = config.get('display', 'show_camera_window', default=True) and not replay_path
        self.show_window = show_window
        self.show_debug = show_debug
        self.visual = None
        if self.show_window:
            from motion_coach.utils.visual_feedback import VisualFeedback
            self.visual = VisualFeedback(config)
            print("✓ Visual feedback initialized")

        self.recorder = FrameRecorder(record_path) if record_path else None
        self._last_label = None
        self._last_phase = None

    def on_frame(self, frame, engine):
        """Per-frame hook: preview window, key handling, console feedback."""
        state = engine.live_state
        if state is not None:
            if state.phase is not self._last_phase:
                self._last_phase = state.phase
                if state.phase is SessionPhase.RECORDING:
                    print("🎬 Recording started - start talking with your hands!")
            if state.calibrated and state.feedback_label != self._last_label:
                self._last_label = state.feedback_label
                print(f"  Movement: {state.feedback_message}")
            if self.show_debug and frame is not None:
                m0, m1 = state.per_slot_metrics
                print(f"[frame {engine.frame_count}] hand0 {m0.speed:.1f}px/s {m0.erratic_rate:.1f}rev/s | "
                      f"hand1 {m1.speed:.1f}px/s {m1.erratic_rate:.1f}rev/s | scale {state.scale_factor:.2f}")

        if self.show_window:
            import cv2
            image = getattr(self.source, 'last_image', None)
            if image is not None:
                self.visual.draw(image, engine)
                cv2.imshow("Motion Coach (q to quit)", image)
            key = cv2.waitKey(1) & 0xFF
            if key == ord('q'):
                engine.cancel()

    def run(self):
        hooks = [self.on_frame]
        if self.recorder:
            hooks.insert(0, self.recorder)
        runner = SessionRunner(self.engine, self.source, frame_hooks=hooks)
        try:
            return runner.run()
        finally:
            self.cleanup()

    def cleanup(self):
        """Clean up resources."""
        if self.recorder:
            self.recorder.close()
        if self.show_window:
            try:
                import cv2
                cv2.destroyAllWindows()
            except Exception as e:
                print(f"⚠ Error closing preview window: {e}")


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Motion Coach - gesture quality feedback"
    )
    parser.add_argument(
        '--camera', type=int, default=None,
        help='Camera device index (default: from config)'
    )
    parser.add_argument(
        '--config', type=str, default=None,
        help='Path to config.json (default: bundled config.json)'
    )
    parser.add_argument(
        '--replay', type=str, default=None,
        help='Replay a recorded JSON-lines landmark stream instead of the camera'
    )
    parser.add_argument(
        '--record', type=str, default=None,
        help='Record the processed landmark stream to a JSON-lines file'
    )
    parser.add_argument(
        '--report-json', type=str, default=None,
        help='Also write the final report to this JSON file'
    )
    parser.add_argument(
        '--no-window', action='store_true',
        help='Run without the preview window'
    )
    parser.add_argument(
        '--debug', action='store_true',
        help='Print per-frame metrics'
    )

    args = parser.parse_args(argv)

    if args.config:
        from motion_coach.config.config_manager import Config
        Config(args.config)

    try:
        app = MotionCoachApplication(
            camera_idx=args.camera,
            replay_path=args.replay,
            record_path=args.record,
            show_window=False if args.no_window else None,
            show_debug=args.debug,
        )
        report = app.run()
    except SessionStartError as e:
        print(f"\n❌ Could not start session: {e}")
        return 1
    except KeyboardInterrupt:
        print("\n⚠ Interrupted by user")
        return 130

    if report is None:
        print("\n⚠ Session ended before a report was produced")
        return 1

    print("\n" + format_report(report))

    if args.report_json:
        try:
            with open(args.report_json, 'w') as f:
                json.dump(report.to_dict(), f, indent=2)
            print(f"✓ Report saved to {args.report_json}")
        except OSError as e:
            print(f"⚠ Could not save report: {e}")

    return 0


if __name__ == "__main__":
    sys.exit(main())

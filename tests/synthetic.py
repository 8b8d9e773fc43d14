"""Builders for synthetic keypoint frames used across the tests."""

from motion_coach.detectors.keypoint_frame import FaceDetection, HandDetection, KeypointFrame, Point2D

WIDTH = 400
HEIGHT = 300


def hand_at(x, y, n=21):
    """A hand whose every landmark sits at (x, y), so its composite point is (x, y)."""
    return HandDetection(landmarks=[Point2D(float(x), float(y)) for _ in range(n)])


def face_with_iod(iod, cx=WIDTH / 2, cy=HEIGHT / 3):
    return FaceDetection(landmarks={
        'left_eye': Point2D(cx - iod / 2.0, cy),
        'right_eye': Point2D(cx + iod / 2.0, cy),
    })


def frame(t_ms, hands=(), face=None, width=WIDTH, height=HEIGHT):
    return KeypointFrame(timestamp_ms=float(t_ms), width=width, height=height, hands=list(hands), face=face)

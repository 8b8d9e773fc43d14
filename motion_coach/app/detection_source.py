"""
Detection sources feeding KeypointFrames to the session loop.

- MediaPipeDetectionSource: webcam + MediaPipe hand landmarks every frame,
  face keypoints every Nth frame (face detection is the costlier step).
- ReplayDetectionSource: frames recorded earlier as JSON lines.
- FrameRecorder: frame hook that writes frames as JSON lines.

Frames are mirrored before detection, so x grows to the user's right as
seen in the preview and slot 0 (left half) is the user's left hand.
"""

import json
import urllib.request
from pathlib import Path
from typing import Iterable, List, Optional

from motion_coach.app.scheduler import ManualClock, MonotonicClock
from motion_coach.detectors.keypoint_frame import (
    FaceDetection, HandDetection, KeypointFrame, Point2D, FACE_KEYPOINT_NAMES,
)
from motion_coach.utils.math_utils import landmarks_to_array, normalized_to_pixels


class DetectionSourceError(RuntimeError):
    """The source cannot deliver frames at all (camera missing, file unreadable)."""


# Model URLs and local paths
HAND_LANDMARKER_MODEL_URL = 'https://storage.googleapis.com/mediapipe-models/hand_landmarker/hand_landmarker/float16/1/hand_landmarker.task'
FACE_DETECTOR_MODEL_URL = 'https://storage.googleapis.com/mediapipe-models/face_detector/blaze_face_short_range/float16/1/blaze_face_short_range.tflite'
MODELS_DIR = Path(__file__).parent.parent / 'models'


def ensure_model_downloaded(url: str, filename: str) -> Optional[str]:
    """Download a MediaPipe model if not present."""
    model_path = MODELS_DIR / filename
    model_path.parent.mkdir(parents=True, exist_ok=True)

    if not model_path.exists():
        print(f"📥 Downloading {filename}...")
        try:
            urllib.request.urlretrieve(url, str(model_path))
            print(f"✓ Model downloaded to {model_path}")
        except OSError as e:
            print(f"⚠ Failed to download model: {e}")
            return None

    return str(model_path)


def _points_from_normalized(landmarks, width: int, height: int) -> List[Point2D]:
    pixels = normalized_to_pixels(landmarks_to_array(landmarks), (height, width))
    return [Point2D(float(x), float(y)) for x, y in pixels]


class MediaPipeDetectionSource:
    """Webcam frames through MediaPipe (Tasks API, legacy solutions as fallback)."""

    def __init__(
        self,
        camera_idx: int = 0,
        width: int = 640,
        height: int = 480,
        fps: int = 30,
        max_hands: int = 2,
        detection_conf: float = 0.6,
        tracking_conf: float = 0.5,
        face_conf: float = 0.5,
        face_sample_interval: int = 3,
        flip_horizontal: bool = True,
        clock=None,
    ):
        self.camera_idx = camera_idx
        self.width = width
        self.height = height
        self.fps = fps
        self.max_hands = max_hands
        self.detection_conf = detection_conf
        self.tracking_conf = tracking_conf
        self.face_conf = face_conf
        self.face_sample_interval = max(1, int(face_sample_interval))
        self.flip_horizontal = flip_horizontal
        self.clock = clock or MonotonicClock()

        self.cap = None
        self.hand_landmarker = None
        self.face_detector = None
        self.hands = None
        self.face = None
        self.use_tasks_api = False
        self.frame_count = 0
        self.last_image = None
        self._read_failures = 0

    @classmethod
    def from_config(cls, camera_idx: Optional[int] = None, clock=None) -> 'MediaPipeDetectionSource':
        from motion_coach.config.config_manager import config
        return cls(
            camera_idx=config.get('camera', 'index', default=0) if camera_idx is None else camera_idx,
            width=config.get('camera', 'width', default=640),
            height=config.get('camera', 'height', default=480),
            fps=config.get('camera', 'fps', default=30),
            max_hands=config.get('performance', 'max_hands', default=2),
            detection_conf=config.get('performance', 'min_detection_confidence', default=0.6),
            tracking_conf=config.get('performance', 'min_tracking_confidence', default=0.5),
            face_conf=config.get('performance', 'face_min_detection_confidence', default=0.5),
            face_sample_interval=config.get('performance', 'face_sample_interval', default=3),
            flip_horizontal=config.get('display', 'flip_horizontal', default=True),
            clock=clock,
        )

    def open(self):
        import cv2

        self.cap = cv2.VideoCapture(self.camera_idx)
        if not self.cap.isOpened():
            self.cap = None
            raise DetectionSourceError(f"Could not open camera {self.camera_idx}")

        self.cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.width)
        self.cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.height)
        self.cap.set(cv2.CAP_PROP_FPS, self.fps)
        actual_width = int(self.cap.get(cv2.CAP_PROP_FRAME_WIDTH))
        actual_height = int(self.cap.get(cv2.CAP_PROP_FRAME_HEIGHT))
        print(f"✓ Camera initialized: {actual_width}x{actual_height}")

        try:
            self._init_detectors()
        except Exception as e:
            self.close()
            raise DetectionSourceError(f"MediaPipe initialization failed: {e}") from e

    def _init_detectors(self):
        import mediapipe as mp

        hand_model = ensure_model_downloaded(HAND_LANDMARKER_MODEL_URL, 'hand_landmarker.task')
        face_model = ensure_model_downloaded(FACE_DETECTOR_MODEL_URL, 'blaze_face_short_range.tflite')
        if hand_model and face_model:
            try:
                from mediapipe.tasks.python import vision as mp_vision
                from mediapipe.tasks.python.core.base_options import BaseOptions

                self.hand_landmarker = mp_vision.HandLandmarker.create_from_options(
                    mp_vision.HandLandmarkerOptions(
                        base_options=BaseOptions(model_asset_path=hand_model),
                        running_mode=mp_vision.RunningMode.IMAGE,
                        num_hands=self.max_hands,
                        min_hand_detection_confidence=self.detection_conf,
                        min_tracking_confidence=self.tracking_conf,
                    )
                )
                self.face_detector = mp_vision.FaceDetector.create_from_options(
                    mp_vision.FaceDetectorOptions(
                        base_options=BaseOptions(model_asset_path=face_model),
                        running_mode=mp_vision.RunningMode.IMAGE,
                        min_detection_confidence=self.face_conf,
                    )
                )
                self.use_tasks_api = True
                print(f"✓ MediaPipe HandLandmarker + FaceDetector initialized (max_hands={self.max_hands})")
                return
            except Exception as e:
                print(f"⚠ Tasks API initialization failed: {e}")
                print("  Falling back to legacy solutions...")

        self.hands = mp.solutions.hands.Hands(
            min_detection_confidence=self.detection_conf,
            min_tracking_confidence=self.tracking_conf,
            max_num_hands=self.max_hands,
        )
        self.face = mp.solutions.face_detection.FaceDetection(
            model_selection=0,
            min_detection_confidence=self.face_conf,
        )
        print(f"✓ MediaPipe Hands + FaceDetection (legacy) initialized (max_hands={self.max_hands})")

    def read(self) -> Optional[KeypointFrame]:
        import cv2

        if self.cap is None:
            return None
        ret, frame_bgr = self.cap.read()
        if not ret:
            self._read_failures += 1
            if self._read_failures == 1:
                print("⚠ Failed to read frame")
            return None
        self._read_failures = 0

        if self.flip_horizontal:
            frame_bgr = cv2.flip(frame_bgr, 1)
        self.last_image = frame_bgr
        h, w = frame_bgr.shape[:2]
        frame_rgb = cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)

        sample_face = self.frame_count % self.face_sample_interval == 0
        self.frame_count += 1

        if self.use_tasks_api:
            hands, face = self._detect_tasks(frame_rgb, w, h, sample_face)
        else:
            hands, face = self._detect_legacy(frame_rgb, w, h, sample_face)

        return KeypointFrame(timestamp_ms=self.clock.now_ms(), width=w, height=h, hands=hands, face=face)

    def _detect_tasks(self, frame_rgb, w, h, sample_face):
        import mediapipe as mp

        mp_image = mp.Image(image_format=mp.ImageFormat.SRGB, data=frame_rgb)
        results = self.hand_landmarker.detect(mp_image)
        hands = [HandDetection(landmarks=_points_from_normalized(lms, w, h))
                 for lms in (results.hand_landmarks or [])]

        face = None
        if sample_face:
            faces = self.face_detector.detect(mp_image)
            if faces.detections:
                keypoints = faces.detections[0].keypoints or []
                face = FaceDetection(landmarks=dict(zip(FACE_KEYPOINT_NAMES, _points_from_normalized(keypoints, w, h))))
        return hands, face

    def _detect_legacy(self, frame_rgb, w, h, sample_face):
        results = self.hands.process(frame_rgb)
        hands = [HandDetection(landmarks=_points_from_normalized(lms.landmark, w, h))
                 for lms in (results.multi_hand_landmarks or [])]

        face = None
        if sample_face:
            faces = self.face.process(frame_rgb)
            if faces.detections:
                keypoints = faces.detections[0].location_data.relative_keypoints
                face = FaceDetection(landmarks=dict(zip(FACE_KEYPOINT_NAMES, _points_from_normalized(keypoints, w, h))))
        return hands, face

    def close(self):
        if self.cap is not None:
            try:
                self.cap.release()
            except Exception as e:
                print(f"⚠ Error releasing camera: {e}")
            self.cap = None

        for name in ('hand_landmarker', 'face_detector', 'hands', 'face'):
            detector = getattr(self, name)
            if detector is not None:
                try:
                    detector.close()
                except Exception as e:
                    print(f"⚠ Error closing {name}: {e}")
                setattr(self, name, None)


def load_frames(path) -> List[KeypointFrame]:
    """Read a JSON-lines recording. Blank lines are skipped."""
    frames = []
    with open(path, 'r') as f:
        for line in f:
            line = line.strip()
            if line:
                frames.append(KeypointFrame.from_dict(json.loads(line)))
    return frames


class ReplayDetectionSource:
    """
    Plays back recorded frames on a ManualClock that follows the frame
    timestamps. Once the recording runs out, the clock keeps moving in
    `idle_step_ms` steps with no frames, so the session still ends on its
    recording timer.
    """

    def __init__(self, frames: Optional[Iterable[KeypointFrame]] = None, path=None, idle_step_ms: float = 1000.0 / 30):
        if frames is None and path is None:
            raise ValueError("ReplayDetectionSource needs frames or a path")
        self.path = path
        self._frames = list(frames) if frames is not None else None
        self.idle_step_ms = float(idle_step_ms)
        self.clock = ManualClock()
        self._index = 0
        self.last_image = None

    def open(self):
        if self._frames is None:
            try:
                self._frames = load_frames(self.path)
            except (OSError, ValueError, KeyError) as e:
                raise DetectionSourceError(f"Could not load recording {self.path}: {e}") from e
            print(f"✓ Loaded {len(self._frames)} recorded frames from {self.path}")
        self._index = 0
        if self._frames:
            self.clock.set(max(self.clock.now_ms(), self._frames[0].timestamp_ms))

    def read(self) -> Optional[KeypointFrame]:
        if self._frames is not None and self._index < len(self._frames):
            frame = self._frames[self._index]
            self._index += 1
            if frame.timestamp_ms > self.clock.now_ms():
                self.clock.set(frame.timestamp_ms)
            return frame
        self.clock.advance(self.idle_step_ms)
        return None

    @property
    def exhausted(self) -> bool:
        return self._frames is not None and self._index >= len(self._frames)

    def close(self):
        pass


class FrameRecorder:
    """Frame hook writing every non-empty frame as one JSON line."""

    def __init__(self, path):
        self.path = str(path)
        self._file = open(self.path, 'w')
        self.count = 0

    def __call__(self, frame: Optional[KeypointFrame], engine=None):
        if frame is None or self._file is None:
            return
        self._file.write(json.dumps(frame.to_dict()) + '\n')
        self.count += 1

    def close(self):
        if self._file is not None:
            self._file.close()
            self._file = None
            print(f"✓ Recorded {self.count} frames to {self.path}")


__all__ = [
    'DetectionSourceError',
    'MediaPipeDetectionSource',
    'ReplayDetectionSource',
    'FrameRecorder',
    'load_frames',
    'ensure_model_downloaded',
]

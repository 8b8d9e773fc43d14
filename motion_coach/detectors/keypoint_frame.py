import numpy as np
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field


# Data Structures

@dataclass(frozen=True)
class Point2D:
    """A landmark position in display-frame pixel coordinates."""
    x: float
    y: float

    def as_tuple(self) -> Tuple[float, float]:
        return (self.x, self.y)


@dataclass
class HandDetection:
    """
    One detected hand in one frame.
    Landmarks follow MediaPipe hand order (21 points, wrist first).
    """
    landmarks: List[Point2D]
    score: float = 1.0

    def as_array(self) -> np.ndarray:
        return np.array([[p.x, p.y] for p in self.landmarks], dtype=float).reshape((-1, 2))


@dataclass
class FaceDetection:
    """
    One detected face. Only 'left_eye' and 'right_eye' are consumed;
    other named keypoints (nose_tip, mouth_center, ...) ride along.
    """
    landmarks: Dict[str, Point2D] = field(default_factory=dict)

    def eyes(self) -> Optional[Tuple[Point2D, Point2D]]:
        """(left_eye, right_eye) or None when either is missing."""
        left = self.landmarks.get('left_eye')
        right = self.landmarks.get('right_eye')
        if left is None or right is None:
            return None
        return left, right


@dataclass
class KeypointFrame:
    """Everything the detector produced for one tick."""
    timestamp_ms: float
    width: int
    height: int
    hands: List[HandDetection] = field(default_factory=list)
    face: Optional[FaceDetection] = None

    def to_dict(self) -> Dict:
        out = {
            't': self.timestamp_ms,
            'w': self.width,
            'h': self.height,
            'hands': [[[p.x, p.y] for p in hand.landmarks] for hand in self.hands],
        }
        if self.face is not None:
            out['face'] = {name: [p.x, p.y] for name, p in self.face.landmarks.items()}
        return out

    @classmethod
    def from_dict(cls, data: Dict) -> 'KeypointFrame':
        hands = [
            HandDetection(landmarks=[Point2D(float(x), float(y)) for x, y in pts])
            for pts in data.get('hands', [])
        ]
        face = None
        if data.get('face') is not None:
            face = FaceDetection(landmarks={
                name: Point2D(float(xy[0]), float(xy[1])) for name, xy in data['face'].items()
            })
        return cls(
            timestamp_ms=float(data['t']),
            width=int(data['w']),
            height=int(data['h']),
            hands=hands,
            face=face,
        )


# MediaPipe Hand Landmark indices (for reference)
LANDMARK_NAMES = {
    'WRIST': 0,
    'THUMB_CMC': 1, 'THUMB_MCP': 2, 'THUMB_IP': 3, 'THUMB_TIP': 4,
    'INDEX_MCP': 5, 'INDEX_PIP': 6, 'INDEX_DIP': 7, 'INDEX_TIP': 8,
    'MIDDLE_MCP': 9, 'MIDDLE_PIP': 10, 'MIDDLE_DIP': 11, 'MIDDLE_TIP': 12,
    'RING_MCP': 13, 'RING_PIP': 14, 'RING_DIP': 15, 'RING_TIP': 16,
    'PINKY_MCP': 17, 'PINKY_PIP': 18, 'PINKY_DIP': 19, 'PINKY_TIP': 20,
}

# MediaPipe face detection keypoint order
FACE_KEYPOINT_NAMES = [
    'right_eye', 'left_eye', 'nose_tip', 'mouth_center', 'right_ear_tragion', 'left_ear_tragion',
]


__all__ = [
    'Point2D',
    'HandDetection',
    'FaceDetection',
    'KeypointFrame',
    'LANDMARK_NAMES',
    'FACE_KEYPOINT_NAMES',
]

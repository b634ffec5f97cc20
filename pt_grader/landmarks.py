"""Pose landmark data model shared by every grader.

Frames arrive as lists of 33 MediaPipe-style landmarks with normalized image
coordinates (x right, y down) and a per-landmark visibility score.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, Iterable, List, Optional, Tuple


class PoseLandmark(IntEnum):
    NOSE = 0
    LEFT_EYE_INNER = 1
    LEFT_EYE = 2
    LEFT_EYE_OUTER = 3
    RIGHT_EYE_INNER = 4
    RIGHT_EYE = 5
    RIGHT_EYE_OUTER = 6
    LEFT_EAR = 7
    RIGHT_EAR = 8
    MOUTH_LEFT = 9
    MOUTH_RIGHT = 10
    LEFT_SHOULDER = 11
    RIGHT_SHOULDER = 12
    LEFT_ELBOW = 13
    RIGHT_ELBOW = 14
    LEFT_WRIST = 15
    RIGHT_WRIST = 16
    LEFT_PINKY = 17
    RIGHT_PINKY = 18
    LEFT_INDEX = 19
    RIGHT_INDEX = 20
    LEFT_THUMB = 21
    RIGHT_THUMB = 22
    LEFT_HIP = 23
    RIGHT_HIP = 24
    LEFT_KNEE = 25
    RIGHT_KNEE = 26
    LEFT_ANKLE = 27
    RIGHT_ANKLE = 28
    LEFT_HEEL = 29
    RIGHT_HEEL = 30
    LEFT_FOOT_INDEX = 31
    RIGHT_FOOT_INDEX = 32


NUM_LANDMARKS = len(PoseLandmark)


@dataclass(frozen=True)
class Landmark:
    x: float
    y: float
    z: float = 0.0
    visibility: float = 0.0

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "Landmark":
        return Landmark(
            x=float(d["x"]),
            y=float(d["y"]),
            z=float(d.get("z", 0.0)),
            visibility=float(d.get("visibility", 0.0)),
        )

    def to_dict(self) -> Dict[str, float]:
        return {"x": self.x, "y": self.y, "z": self.z, "visibility": self.visibility}


@dataclass(frozen=True)
class PoseFrame:
    """One pose estimate: landmarks indexed by ``PoseLandmark`` plus a timestamp in seconds."""

    landmarks: Tuple[Landmark, ...]
    timestamp: float

    def __post_init__(self):
        if not isinstance(self.landmarks, tuple):
            object.__setattr__(self, "landmarks", tuple(self.landmarks))

    def __getitem__(self, idx: int) -> Landmark:
        return self.landmarks[int(idx)]

    def __len__(self) -> int:
        return len(self.landmarks)

    def get(self, idx: int) -> Optional[Landmark]:
        """Landmark at ``idx`` or None when the estimator did not return it."""
        idx = int(idx)
        if 0 <= idx < len(self.landmarks):
            return self.landmarks[idx]
        return None

    @staticmethod
    def from_dicts(landmarks: Iterable[Dict[str, Any]], timestamp: float) -> "PoseFrame":
        return PoseFrame(
            landmarks=tuple(Landmark.from_dict(d) for d in landmarks),
            timestamp=float(timestamp),
        )

    def to_dicts(self) -> List[Dict[str, float]]:
        return [lm.to_dict() for lm in self.landmarks]


"""Synthetic pose builders shared by the grader tests.

Each builder places landmarks so the governing angle of the exercise equals
the requested value exactly, with every other measurement held at a clean,
fault-free position.
"""

import math
from typing import Dict, List, Sequence

import pytest

from pt_grader.graders.running import EARTH_RADIUS_METERS, GPSFix
from pt_grader.landmarks import NUM_LANDMARKS, Landmark, PoseFrame, PoseLandmark as PL

FRAME_INTERVAL = 0.1
VISIBLE = 0.9


def _frame(points: Dict[int, tuple], timestamp: float, visibility: float = VISIBLE) -> PoseFrame:
    landmarks: List[Landmark] = []
    for idx in range(NUM_LANDMARKS):
        x, y = points.get(idx, (0.5, 0.5))
        landmarks.append(Landmark(x=x, y=y, z=0.0, visibility=visibility))
    return PoseFrame(landmarks, timestamp)


def make_pushup_frame(elbow_angle: float, timestamp: float, hip_offset: float = 0.0) -> PoseFrame:
    """Side-view plank with both arms at ``elbow_angle``; ``hip_offset`` pushes the hips down."""
    theta = math.radians(elbow_angle)
    wrist = (0.4, 0.8)
    elbow = (0.4, 0.68)
    shoulder = (elbow[0] - 0.12 * math.sin(theta), elbow[1] + 0.12 * math.cos(theta))
    ankle = (0.9, 0.8)
    hip = (
        shoulder[0] + 0.6 * (ankle[0] - shoulder[0]),
        shoulder[1] + 0.6 * (ankle[1] - shoulder[1]) + hip_offset,
    )
    knee = (
        shoulder[0] + 0.8 * (ankle[0] - shoulder[0]),
        shoulder[1] + 0.8 * (ankle[1] - shoulder[1]),
    )
    points = {}
    for left, right, point in (
        (PL.LEFT_WRIST, PL.RIGHT_WRIST, wrist),
        (PL.LEFT_ELBOW, PL.RIGHT_ELBOW, elbow),
        (PL.LEFT_SHOULDER, PL.RIGHT_SHOULDER, shoulder),
        (PL.LEFT_HIP, PL.RIGHT_HIP, hip),
        (PL.LEFT_KNEE, PL.RIGHT_KNEE, knee),
        (PL.LEFT_ANKLE, PL.RIGHT_ANKLE, ankle),
    ):
        points[left] = point
        points[right] = point
    return _frame(points, timestamp)


def make_pullup_frame(elbow_angle: float, timestamp: float) -> PoseFrame:
    """Front view hanging from a bar at y=0.2, both elbows at ``elbow_angle``."""
    theta = math.radians(elbow_angle)
    points = {}
    shoulders = []
    for side, wrist_x, wrist, elbow, shoulder in (
        (1, 0.4, PL.LEFT_WRIST, PL.LEFT_ELBOW, PL.LEFT_SHOULDER),
        (-1, 0.6, PL.RIGHT_WRIST, PL.RIGHT_ELBOW, PL.RIGHT_SHOULDER),
    ):
        points[wrist] = (wrist_x, 0.2)
        points[elbow] = (wrist_x, 0.32)
        shoulder_point = (wrist_x + 0.12 * side * math.sin(theta), 0.32 - 0.12 * math.cos(theta))
        points[shoulder] = shoulder_point
        shoulders.append(shoulder_point)

    shoulder_y = (shoulders[0][1] + shoulders[1][1]) / 2.0
    points[PL.NOSE] = (0.5, shoulder_y - 0.1)
    for hip, knee, ankle, x in (
        (PL.LEFT_HIP, PL.LEFT_KNEE, PL.LEFT_ANKLE, 0.45),
        (PL.RIGHT_HIP, PL.RIGHT_KNEE, PL.RIGHT_ANKLE, 0.55),
    ):
        points[hip] = (x, shoulder_y + 0.3)
        points[knee] = (x, shoulder_y + 0.5)
        points[ankle] = (x, shoulder_y + 0.7)
    return _frame(points, timestamp)


def make_situp_frame(trunk_angle: float, timestamp: float) -> PoseFrame:
    """Side view with the trunk ``trunk_angle`` degrees above the floor, hands behind the head."""
    alpha = math.radians(trunk_angle)
    hip = (0.5, 0.7)
    d = (-math.cos(alpha), -math.sin(alpha))
    n = (math.sin(alpha), -math.cos(alpha))

    def along(length: float) -> tuple:
        return hip[0] + length * d[0], hip[1] + length * d[1]

    shoulder = along(0.25)
    head = along(0.33)
    elbow = (shoulder[0] + 0.1 * d[0] + 0.15 * n[0], shoulder[1] + 0.1 * d[1] + 0.15 * n[1])
    points = {PL.NOSE: head}
    for left, right, point in (
        (PL.LEFT_EAR, PL.RIGHT_EAR, head),
        (PL.LEFT_WRIST, PL.RIGHT_WRIST, head),
        (PL.LEFT_SHOULDER, PL.RIGHT_SHOULDER, shoulder),
        (PL.LEFT_ELBOW, PL.RIGHT_ELBOW, elbow),
        (PL.LEFT_HIP, PL.RIGHT_HIP, hip),
        (PL.LEFT_KNEE, PL.RIGHT_KNEE, (0.62, 0.42)),
        (PL.LEFT_ANKLE, PL.RIGHT_ANKLE, (0.9, 0.54)),
    ):
        points[left] = point
        points[right] = point
    return _frame(points, timestamp)


def frames_from_angles(builder, angles: Sequence[float], start: float = 0.0) -> List[PoseFrame]:
    return [builder(angle, start + i * FRAME_INTERVAL) for i, angle in enumerate(angles)]


def meridian_fixes(step_meters: float, count: int, interval: float = 1.0, start_ts: float = 0.0) -> List[GPSFix]:
    """``count`` fixes walking due north in equal steps."""
    step_degrees = math.degrees(step_meters / EARTH_RADIUS_METERS)
    return [
        GPSFix(latitude=i * step_degrees, longitude=0.0, timestamp=start_ts + i * interval)
        for i in range(count)
    ]


# Full push-up: lockout, down to 90 degrees, back to lockout.
PUSHUP_REP_ANGLES = [170] * 5 + [160, 150, 140, 130, 120, 110, 100, 90, 90, 90] + [
    100, 110, 120, 130, 140, 150, 160, 170, 170, 170
]

# Dead hang, chin over the bar, back to dead hang.
PULLUP_REP_ANGLES = [170] * 5 + [150, 130, 110, 90, 70, 62, 62, 62, 62] + [
    80, 100, 120, 140, 160, 170, 170, 170
]

# Flat on the back, up past vertical-ish, back down.
SITUP_REP_ANGLES = [0] * 5 + [15, 40, 55, 70, 80, 85, 85, 70, 60, 45, 30, 15, 5, 0]


@pytest.fixture
def pushup_frame():
    return make_pushup_frame


@pytest.fixture
def pullup_frame():
    return make_pullup_frame


@pytest.fixture
def situp_frame():
    return make_situp_frame


@pytest.fixture
def build_frames():
    return frames_from_angles


@pytest.fixture
def walk_north():
    return meridian_fixes


@pytest.fixture
def pushup_rep_frames():
    return frames_from_angles(make_pushup_frame, PUSHUP_REP_ANGLES)


@pytest.fixture
def pullup_rep_frames():
    return frames_from_angles(make_pullup_frame, PULLUP_REP_ANGLES)


@pytest.fixture
def situp_rep_frames():
    return frames_from_angles(make_situp_frame, SITUP_REP_ANGLES)


@pytest.fixture
def two_mile_fixes():
    # 700 s over exactly the target distance.
    return meridian_fixes(3218.69 / 700, 701)


@pytest.fixture
def pushup_rep_angles():
    return list(PUSHUP_REP_ANGLES)


@pytest.fixture
def pullup_rep_angles():
    return list(PULLUP_REP_ANGLES)

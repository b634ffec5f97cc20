"""
Sit-up strategy.

Phases: down -> rising -> lowering -> down. The governing measurement is the
trunk inclination (hip -> shoulder) above the horizontal: about 0 lying
flat, about 90 sitting upright.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Tuple

from ..form_checker import FormIssue, Severity
from ..kinematics import calculate_angle, calculate_distance, inclination_from_horizontal, midpoint
from ..landmarks import PoseFrame, PoseLandmark as PL
from .base import ExerciseStrategy

if TYPE_CHECKING:
    from ..rep_counter import CycleTracker, Grader

DOWN = "down"
RISING = "rising"
LOWERING = "lowering"

KNEES = (PL.LEFT_KNEE, PL.RIGHT_KNEE)


class SitupStrategy(ExerciseStrategy):
    name = "situp"
    rest_phase = DOWN
    phases = (DOWN, RISING, LOWERING)
    required_landmarks = (
        PL.NOSE,
        PL.LEFT_EAR, PL.RIGHT_EAR,
        PL.LEFT_SHOULDER, PL.RIGHT_SHOULDER,
        PL.LEFT_ELBOW, PL.RIGHT_ELBOW,
        PL.LEFT_WRIST, PL.RIGHT_WRIST,
        PL.LEFT_HIP, PL.RIGHT_HIP,
        PL.LEFT_KNEE, PL.RIGHT_KNEE,
        PL.LEFT_ANKLE, PL.RIGHT_ANKLE,
    )

    def __init__(self, config, calibration):
        super().__init__(config, calibration)
        self.thresholds = config.situp
        self.grounded_frames = 0

    @property
    def rep_window(self) -> Tuple[float, float]:
        return self.thresholds.min_rep_duration, self.thresholds.max_rep_duration

    def capture_baseline(self, frame: PoseFrame) -> None:
        self.calibration.shoulder_height = midpoint(frame[PL.LEFT_SHOULDER], frame[PL.RIGHT_SHOULDER]).y
        self.calibration.hip_height = midpoint(frame[PL.LEFT_HIP], frame[PL.RIGHT_HIP]).y

    def analyze(self, frame: PoseFrame) -> Dict[str, float]:
        t = self.thresholds
        hip = midpoint(frame[PL.LEFT_HIP], frame[PL.RIGHT_HIP])
        shoulder = midpoint(frame[PL.LEFT_SHOULDER], frame[PL.RIGHT_SHOULDER])
        trunk = inclination_from_horizontal(hip, shoulder)

        left_knee = calculate_angle(frame[PL.LEFT_HIP], frame[PL.LEFT_KNEE], frame[PL.LEFT_ANKLE])
        right_knee = calculate_angle(frame[PL.RIGHT_HIP], frame[PL.RIGHT_KNEE], frame[PL.RIGHT_ANKLE])

        hands_behind_head = (
            calculate_distance(frame[PL.LEFT_WRIST], frame[PL.LEFT_EAR]) < t.hand_to_head_threshold
            and calculate_distance(frame[PL.RIGHT_WRIST], frame[PL.RIGHT_EAR]) < t.hand_to_head_threshold
            and calculate_distance(frame[PL.LEFT_WRIST], frame[PL.RIGHT_WRIST]) < t.max_wrist_separation
        )

        elbow_to_knee = min(
            calculate_distance(frame[PL.LEFT_ELBOW], frame[PL.LEFT_KNEE]),
            calculate_distance(frame[PL.RIGHT_ELBOW], frame[PL.RIGHT_KNEE]),
        )

        span = t.min_trunk_angle - t.down_trunk_angle
        progress = (trunk - t.down_trunk_angle) / span if span > 0 else 0.0

        return {
            "trunk_angle": trunk,
            "knee_angle": (left_knee + right_knee) / 2.0,
            "hands_behind_head": float(hands_behind_head),
            "elbow_to_knee": elbow_to_knee,
            "hip_lift": abs(hip.y - self.calibration.hip_height),
            "grounded": float(trunk <= t.down_trunk_angle),
            "rep_progress": max(0.0, min(1.0, progress)),
        }

    def movement_signal(self, metrics: Dict[str, float]) -> float:
        return metrics["trunk_angle"]

    def valid_rest_start(self) -> bool:
        return self.grounded_frames >= self.thresholds.grounded_frames

    def update_state(self, metrics: Dict[str, float], grader: "Grader") -> str:
        t = self.thresholds
        trunk = metrics["trunk_angle"]
        cycle = grader.cycle
        phase = grader.phase

        if phase == DOWN:
            if trunk > t.down_trunk_angle + t.rise_margin:
                return RISING
            return DOWN

        if phase == RISING:
            if cycle.flag("reached_top"):
                if trunk < cycle.max_angle - t.lowering_hysteresis:
                    return LOWERING
            elif trunk <= t.down_trunk_angle:
                return DOWN
            return RISING

        if trunk >= t.min_trunk_angle:
            return RISING
        if trunk <= t.down_trunk_angle:
            return DOWN
        return LOWERING

    def track_cycle(self, metrics: Dict[str, float], grader: "Grader") -> None:
        cycle = grader.cycle
        cycle.observe_angle(metrics["trunk_angle"])
        if metrics["trunk_angle"] >= self.thresholds.min_trunk_angle:
            cycle.set_flag("reached_top")
        if metrics["elbow_to_knee"] < self.thresholds.elbow_to_knee_threshold:
            cycle.set_flag("elbows_reached_knees")

    def validate_form(self, metrics: Dict[str, float], grader: "Grader") -> List[FormIssue]:
        t = self.thresholds
        issues: List[FormIssue] = []
        phase = grader.phase

        if not metrics["hands_behind_head"]:
            issues.append(FormIssue(
                Severity.CRITICAL,
                "Keep hands behind head with fingers interlocked",
                (PL.LEFT_WRIST, PL.RIGHT_WRIST),
            ))

        knee = metrics["knee_angle"]
        if knee < t.min_knee_angle - t.knee_tolerance:
            issues.append(FormIssue(Severity.MODERATE, "Keep knees bent at 90 degrees", KNEES))
        elif knee > t.max_knee_angle + t.knee_tolerance:
            issues.append(FormIssue(Severity.MODERATE, "Do not straighten knees too much", KNEES))

        if metrics["hip_lift"] >= t.hip_lift_threshold:
            issues.append(FormIssue(Severity.CRITICAL, "Keep hips on the ground", (PL.LEFT_HIP, PL.RIGHT_HIP)))

        pause = self.pause_issue(grader)
        if pause is not None:
            issues.append(pause)

        if (
            phase == RISING
            and not grader.cycle.flag("elbows_reached_knees")
            and metrics["rep_progress"] > t.elbow_reach_progress
        ):
            issues.append(FormIssue(
                Severity.MINOR, "Touch elbows to knees", (PL.LEFT_ELBOW, PL.RIGHT_ELBOW) + KNEES
            ))

        if phase == DOWN and not metrics["grounded"] and grader.state_frame_count > 10:
            issues.append(FormIssue(
                Severity.MINOR, "Touch shoulder blades to ground", (PL.LEFT_SHOULDER, PL.RIGHT_SHOULDER)
            ))

        return issues

    def after_frame(self, metrics: Dict[str, float], grader: "Grader") -> None:
        if metrics["grounded"]:
            self.grounded_frames += 1
        else:
            self.grounded_frames = 0

    def completion_checks(self, cycle: "CycleTracker") -> Dict[str, bool]:
        return {
            "reached_top": cycle.flag("reached_top"),
            "elbows_reached_knees": cycle.flag("elbows_reached_knees"),
        }

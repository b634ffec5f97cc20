"""
Pull-up strategy.

Phases: down (dead hang) -> pulling -> lowering -> down. A rep must start
from a held dead hang, clear the bar with the chin for several frames and
return to locked-out elbows. The bar height and the starting hip, wrist and
knee positions are taken from the first fully visible frame.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Tuple

from ..form_checker import FormIssue, Severity
from ..kinematics import calculate_angle, midpoint
from ..landmarks import PoseFrame, PoseLandmark as PL
from .base import ExerciseStrategy

if TYPE_CHECKING:
    from ..rep_counter import CycleTracker, Grader

DOWN = "down"
PULLING = "pulling"
LOWERING = "lowering"

ELBOWS = (PL.LEFT_ELBOW, PL.RIGHT_ELBOW)


class PullupStrategy(ExerciseStrategy):
    name = "pullup"
    rest_phase = DOWN
    phases = (DOWN, PULLING, LOWERING)
    required_landmarks = (
        PL.NOSE,
        PL.LEFT_SHOULDER, PL.RIGHT_SHOULDER,
        PL.LEFT_ELBOW, PL.RIGHT_ELBOW,
        PL.LEFT_WRIST, PL.RIGHT_WRIST,
        PL.LEFT_HIP, PL.RIGHT_HIP,
        PL.LEFT_KNEE, PL.RIGHT_KNEE,
        PL.LEFT_ANKLE, PL.RIGHT_ANKLE,
    )

    def __init__(self, config, calibration):
        super().__init__(config, calibration)
        self.thresholds = config.pullup
        self.dead_hang_frames = 0

    @property
    def rep_window(self) -> Tuple[float, float]:
        return self.thresholds.min_rep_duration, self.thresholds.max_rep_duration

    def capture_baseline(self, frame: PoseFrame) -> None:
        cal = self.calibration
        cal.bar_height = (frame[PL.LEFT_WRIST].y + frame[PL.RIGHT_WRIST].y) / 2.0
        cal.left_wrist_x = frame[PL.LEFT_WRIST].x
        cal.right_wrist_x = frame[PL.RIGHT_WRIST].x
        cal.hip_x = midpoint(frame[PL.LEFT_HIP], frame[PL.RIGHT_HIP]).x
        cal.knee_angle = self._knee_angle(frame)
        cal.shoulder_height = midpoint(frame[PL.LEFT_SHOULDER], frame[PL.RIGHT_SHOULDER]).y

    @staticmethod
    def _knee_angle(frame: PoseFrame) -> float:
        left = calculate_angle(frame[PL.LEFT_HIP], frame[PL.LEFT_KNEE], frame[PL.LEFT_ANKLE])
        right = calculate_angle(frame[PL.RIGHT_HIP], frame[PL.RIGHT_KNEE], frame[PL.RIGHT_ANKLE])
        return (left + right) / 2.0

    def _rep_progress(self, nose_y: float, elbow_angle: float) -> float:
        """0 at dead hang, 1 with the chin at the bar."""
        t = self.thresholds
        if elbow_angle <= t.max_elbow_top_angle:
            return 1.0
        if elbow_angle >= t.min_elbow_lockout_angle:
            return 0.0
        top = self.calibration.bar_height - t.chin_clearance
        bottom = self.calibration.bar_height + t.hang_depth
        progress = (bottom - nose_y) / (bottom - top)
        return max(0.0, min(1.0, progress))

    def analyze(self, frame: PoseFrame) -> Dict[str, float]:
        t = self.thresholds
        cal = self.calibration
        left_elbow = calculate_angle(frame[PL.LEFT_SHOULDER], frame[PL.LEFT_ELBOW], frame[PL.LEFT_WRIST])
        right_elbow = calculate_angle(frame[PL.RIGHT_SHOULDER], frame[PL.RIGHT_ELBOW], frame[PL.RIGHT_WRIST])
        elbow_angle = (left_elbow + right_elbow) / 2.0
        nose_y = frame[PL.NOSE].y

        hip_x = midpoint(frame[PL.LEFT_HIP], frame[PL.RIGHT_HIP]).x
        swing = max(
            abs(hip_x - cal.hip_x),
            abs(frame[PL.LEFT_WRIST].x - cal.left_wrist_x),
            abs(frame[PL.RIGHT_WRIST].x - cal.right_wrist_x),
        )

        return {
            "left_elbow_angle": left_elbow,
            "right_elbow_angle": right_elbow,
            "elbow_angle": elbow_angle,
            "nose_y": nose_y,
            "chin_over_bar": float(nose_y < cal.bar_height - t.chin_clearance),
            "elbows_locked": float(elbow_angle >= t.min_elbow_lockout_angle),
            "rep_progress": self._rep_progress(nose_y, elbow_angle),
            "swing": swing,
            "knee_angle_change": abs(self._knee_angle(frame) - cal.knee_angle),
        }

    def movement_signal(self, metrics: Dict[str, float]) -> float:
        return metrics["elbow_angle"]

    def valid_rest_start(self) -> bool:
        return self.dead_hang_frames >= self.thresholds.dead_hang_frames

    def update_state(self, metrics: Dict[str, float], grader: "Grader") -> str:
        t = self.thresholds
        angle = metrics["elbow_angle"]
        locked = bool(metrics["elbows_locked"])
        chin_over = bool(metrics["chin_over_bar"])
        cycle = grader.cycle
        phase = grader.phase

        if phase == DOWN:
            return PULLING if not locked else DOWN

        if phase == PULLING:
            if cycle.flag("reached_top"):
                if angle > cycle.min_angle + t.lowering_hysteresis:
                    return LOWERING
            elif locked:
                # Gave up before reaching the bar.
                return DOWN
            return PULLING

        if chin_over:
            return PULLING
        if locked:
            return DOWN
        return LOWERING

    def track_cycle(self, metrics: Dict[str, float], grader: "Grader") -> None:
        cycle = grader.cycle
        cycle.observe_angle(metrics["elbow_angle"])
        if metrics["chin_over_bar"]:
            cycle.increment("chin_frames")
            cycle.set_flag("reached_top")
        elif metrics["elbow_angle"] <= self.thresholds.max_elbow_top_angle:
            cycle.set_flag("reached_top")

    def validate_form(self, metrics: Dict[str, float], grader: "Grader") -> List[FormIssue]:
        t = self.thresholds
        issues: List[FormIssue] = []
        phase = grader.phase

        if metrics["swing"] > t.max_swing_distance:
            issues.append(FormIssue(
                Severity.CRITICAL, "Control your body - no swinging", (PL.LEFT_HIP, PL.RIGHT_HIP)
            ))

        if metrics["knee_angle_change"] > t.max_kipping_angle:
            issues.append(FormIssue(
                Severity.CRITICAL, "No kipping - keep legs straight", (PL.LEFT_KNEE, PL.RIGHT_KNEE)
            ))

        pause = self.pause_issue(grader)
        if pause is not None:
            issues.append(pause)

        if phase == DOWN and not metrics["elbows_locked"] and grader.state_frame_count > 10:
            issues.append(FormIssue(Severity.MINOR, "Fully extend arms to dead hang", ELBOWS))

        if phase == PULLING and not metrics["chin_over_bar"] and metrics["rep_progress"] > t.top_progress:
            issues.append(FormIssue(Severity.MINOR, "Pull chin above the bar", (PL.NOSE,)))

        if phase == PULLING and metrics["elbow_angle"] < t.min_elbow_angle:
            issues.append(FormIssue(Severity.MODERATE, "Pull with control - elbows too tight", ELBOWS))

        if abs(metrics["left_elbow_angle"] - metrics["right_elbow_angle"]) > t.max_elbow_asymmetry:
            issues.append(FormIssue(Severity.MODERATE, "Pull evenly with both arms", ELBOWS))

        return issues

    def after_frame(self, metrics: Dict[str, float], grader: "Grader") -> None:
        if metrics["elbows_locked"]:
            self.dead_hang_frames += 1
        else:
            self.dead_hang_frames = 0

    def completion_checks(self, cycle: "CycleTracker") -> Dict[str, bool]:
        return {
            "reached_top": cycle.flag("reached_top"),
            "chin_over_bar": cycle.count("chin_frames") >= self.thresholds.min_chin_frames,
        }

"""
Push-up strategy.

Phases: up -> descending -> ascending -> up. The governing measurement is
the mean elbow angle; the lockout threshold is personalized during the first
frames of the session.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from ..calibration import CalibrationData, ThresholdCalibrator
from ..config import GraderConfig
from ..form_checker import FormIssue, Severity
from ..kinematics import calculate_angle, calculate_distance, midpoint, vertical_deviation
from ..landmarks import PoseFrame, PoseLandmark as PL
from .base import ExerciseStrategy

if TYPE_CHECKING:
    from ..rep_counter import CycleTracker, Grader

UP = "up"
DESCENDING = "descending"
ASCENDING = "ascending"

HIPS = (PL.LEFT_HIP, PL.RIGHT_HIP)
ELBOWS = (PL.LEFT_ELBOW, PL.RIGHT_ELBOW)
WRISTS = (PL.LEFT_WRIST, PL.RIGHT_WRIST)


class PushupStrategy(ExerciseStrategy):
    name = "pushup"
    rest_phase = UP
    phases = (UP, DESCENDING, ASCENDING)
    required_landmarks = (
        PL.LEFT_SHOULDER, PL.RIGHT_SHOULDER,
        PL.LEFT_ELBOW, PL.RIGHT_ELBOW,
        PL.LEFT_WRIST, PL.RIGHT_WRIST,
        PL.LEFT_HIP, PL.RIGHT_HIP,
        PL.LEFT_KNEE, PL.RIGHT_KNEE,
        PL.LEFT_ANKLE, PL.RIGHT_ANKLE,
    )

    def __init__(self, config: GraderConfig, calibration: CalibrationData):
        super().__init__(config, calibration)
        self.thresholds = config.pushup
        t = self.thresholds
        self._calibrator = ThresholdCalibrator(
            default=t.min_arm_extension_angle,
            band=(t.calibration_min_angle, t.calibration_max_angle),
            max_frames=config.calibration_frames,
            min_samples=config.calibration_min_samples,
            margin=t.calibration_margin,
        )
        self._prev_wrist_y: Optional[Tuple[float, float]] = None
        self._prev_shoulder_y: Optional[float] = None
        self._prev_hip_y: Optional[float] = None
        self.locked_frames = 0

    @property
    def calibrator(self) -> Optional[ThresholdCalibrator]:
        return self._calibrator

    @property
    def extension_angle(self) -> float:
        """Elbow angle that counts as locked out."""
        if self.config.adaptive_calibration:
            return self._calibrator.value
        return self.thresholds.min_arm_extension_angle

    @property
    def rep_window(self) -> Tuple[float, float]:
        return self.thresholds.min_rep_duration, self.thresholds.max_rep_duration

    def capture_baseline(self, frame: PoseFrame) -> None:
        self.calibration.shoulder_height = midpoint(frame[PL.LEFT_SHOULDER], frame[PL.RIGHT_SHOULDER]).y
        self.calibration.hip_height = midpoint(frame[PL.LEFT_HIP], frame[PL.RIGHT_HIP]).y

    def calibration_sample(self, metrics: Dict[str, float], phase: str) -> Optional[float]:
        angle = metrics["elbow_angle"]
        if phase == UP and angle >= self.extension_angle:
            return angle
        return None

    def apply_calibration(self) -> None:
        self.calibration.arm_extension_angle = self.extension_angle

    def analyze(self, frame: PoseFrame) -> Dict[str, float]:
        left_elbow = calculate_angle(frame[PL.LEFT_SHOULDER], frame[PL.LEFT_ELBOW], frame[PL.LEFT_WRIST])
        right_elbow = calculate_angle(frame[PL.RIGHT_SHOULDER], frame[PL.RIGHT_ELBOW], frame[PL.RIGHT_WRIST])

        shoulder = midpoint(frame[PL.LEFT_SHOULDER], frame[PL.RIGHT_SHOULDER])
        hip = midpoint(frame[PL.LEFT_HIP], frame[PL.RIGHT_HIP])
        knee = midpoint(frame[PL.LEFT_KNEE], frame[PL.RIGHT_KNEE])
        ankle = midpoint(frame[PL.LEFT_ANKLE], frame[PL.RIGHT_ANKLE])

        return {
            "left_elbow_angle": left_elbow,
            "right_elbow_angle": right_elbow,
            "elbow_angle": (left_elbow + right_elbow) / 2.0,
            "body_alignment_angle": calculate_angle(shoulder, hip, ankle),
            "hip_deviation": vertical_deviation(shoulder, hip, ankle),
            "knee_angle": calculate_angle(hip, knee, ankle),
            "shoulder_y": shoulder.y,
            "hip_y": hip.y,
            "left_wrist_y": frame[PL.LEFT_WRIST].y,
            "right_wrist_y": frame[PL.RIGHT_WRIST].y,
            "shoulder_width": calculate_distance(frame[PL.LEFT_SHOULDER], frame[PL.RIGHT_SHOULDER]),
            "hand_width": calculate_distance(frame[PL.LEFT_WRIST], frame[PL.RIGHT_WRIST]),
        }

    def movement_signal(self, metrics: Dict[str, float]) -> float:
        return metrics["elbow_angle"]

    def update_state(self, metrics: Dict[str, float], grader: "Grader") -> str:
        t = self.thresholds
        angle = metrics["elbow_angle"]
        extension = self.extension_angle
        cycle = grader.cycle
        phase = grader.phase

        if phase == UP:
            if angle < extension - t.descent_margin:
                return DESCENDING
            return UP

        if phase == DESCENDING:
            if cycle.flag("reached_bottom"):
                if angle >= cycle.min_angle + t.ascent_hysteresis:
                    return ASCENDING
            elif angle >= extension:
                # Turned back before reaching depth.
                return UP
            return DESCENDING

        if angle >= extension:
            return UP
        if angle <= t.max_elbow_flexion_angle:
            return DESCENDING
        return ASCENDING

    def track_cycle(self, metrics: Dict[str, float], grader: "Grader") -> None:
        angle = metrics["elbow_angle"]
        grader.cycle.observe_angle(angle)
        if angle <= self.thresholds.max_elbow_flexion_angle:
            grader.cycle.set_flag("reached_bottom")

    def validate_form(self, metrics: Dict[str, float], grader: "Grader") -> List[FormIssue]:
        t = self.thresholds
        issues: List[FormIssue] = []

        if metrics["body_alignment_angle"] < t.min_body_alignment_angle:
            if metrics["hip_deviation"] > 0:
                issues.append(FormIssue(Severity.CRITICAL, "Keep your body straight - hips are sagging", HIPS))
            else:
                issues.append(FormIssue(Severity.CRITICAL, "Keep your body straight - hips are too high", HIPS))

        if self._prev_shoulder_y is not None and self._prev_hip_y is not None:
            shoulder_dy = metrics["shoulder_y"] - self._prev_shoulder_y
            hip_dy = metrics["hip_y"] - self._prev_hip_y
            if abs(shoulder_dy - hip_dy) > t.worming_threshold:
                issues.append(FormIssue(
                    Severity.MODERATE,
                    "Move your body as one unit",
                    (PL.LEFT_SHOULDER, PL.RIGHT_SHOULDER) + HIPS,
                ))

        if metrics["knee_angle"] < t.min_knee_angle:
            issues.append(FormIssue(Severity.CRITICAL, "Keep knees off the ground", (PL.LEFT_KNEE, PL.RIGHT_KNEE)))

        if self._prev_wrist_y is not None:
            left_dy = abs(metrics["left_wrist_y"] - self._prev_wrist_y[0])
            right_dy = abs(metrics["right_wrist_y"] - self._prev_wrist_y[1])
            if max(left_dy, right_dy) > t.hand_lift_threshold:
                issues.append(FormIssue(Severity.CRITICAL, "Keep hands on the ground", WRISTS))

        pause = self.pause_issue(grader)
        if pause is not None:
            issues.append(pause)

        if abs(metrics["left_elbow_angle"] - metrics["right_elbow_angle"]) > t.max_elbow_asymmetry:
            issues.append(FormIssue(Severity.MODERATE, "Push evenly with both arms", ELBOWS))

        shoulder_width = metrics["shoulder_width"]
        if shoulder_width > t.min_shoulder_width:
            ratio = metrics["hand_width"] / shoulder_width
            if ratio < t.min_hand_width_ratio or ratio > t.max_hand_width_ratio:
                issues.append(FormIssue(Severity.MINOR, "Place hands about shoulder-width apart", WRISTS))

        if grader.phase == UP and metrics["elbow_angle"] < self.extension_angle and grader.state_frame_count > 10:
            issues.append(FormIssue(Severity.MINOR, "Fully extend your arms", ELBOWS))

        return issues

    def after_frame(self, metrics: Dict[str, float], grader: "Grader") -> None:
        self._prev_wrist_y = (metrics["left_wrist_y"], metrics["right_wrist_y"])
        self._prev_shoulder_y = metrics["shoulder_y"]
        self._prev_hip_y = metrics["hip_y"]
        angle = metrics["elbow_angle"]
        extension = self.extension_angle
        if angle >= extension:
            self.locked_frames += 1
        elif angle < extension - self.thresholds.descent_margin:
            self.locked_frames = 0

    def valid_rest_start(self) -> bool:
        # Locked out for a few frames before the descent; a start at the bottom never counts.
        return self.locked_frames >= self.config.min_stability_frames

    def completion_checks(self, cycle: "CycleTracker") -> Dict[str, bool]:
        return {"reached_bottom": cycle.flag("reached_bottom")}

"""Common interface for exercise strategies plugged into the Grader."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from ..calibration import CalibrationData, ThresholdCalibrator
from ..config import GraderConfig
from ..form_checker import FormIssue, Severity
from ..landmarks import PoseFrame

if TYPE_CHECKING:
    from ..rep_counter import CycleTracker, Grader

PAUSE_MESSAGE = "Keep moving - no pausing"


class ExerciseStrategy(ABC):
    """
    Exercise-specific half of a grader.

    The strategy reads geometry out of a frame, proposes the next phase and
    lists form issues; the Grader owns debouncing, cycle bookkeeping and
    scoring.
    """

    name: str = "base"
    rest_phase: str = ""
    phases: Tuple[str, ...] = ()
    required_landmarks: Tuple[int, ...] = ()

    def __init__(self, config: GraderConfig, calibration: CalibrationData):
        self.config = config
        self.calibration = calibration

    # --- Calibration -------------------------------------------------
    @property
    def calibrator(self) -> Optional[ThresholdCalibrator]:
        """Adaptive threshold learned during the first frames, if the exercise has one."""
        return None

    def capture_baseline(self, frame: PoseFrame) -> None:
        """Record reference positions from the first fully visible frame."""
        return None

    def calibration_sample(self, metrics: Dict[str, float], phase: str) -> Optional[float]:
        return None

    def apply_calibration(self) -> None:
        return None

    # --- Per-frame ---------------------------------------------------
    @abstractmethod
    def analyze(self, frame: PoseFrame) -> Dict[str, float]:
        """Extract the measurements the rest of the strategy works from."""

    @abstractmethod
    def movement_signal(self, metrics: Dict[str, float]) -> float:
        """Scalar whose frame-to-frame change counts as movement."""

    @abstractmethod
    def update_state(self, metrics: Dict[str, float], grader: "Grader") -> str:
        """Propose the phase for this frame; the Grader debounces it."""

    def track_cycle(self, metrics: Dict[str, float], grader: "Grader") -> None:
        """Update the open cycle with this frame's measurements."""
        grader.cycle.observe_angle(self.movement_signal(metrics))

    @abstractmethod
    def validate_form(self, metrics: Dict[str, float], grader: "Grader") -> List[FormIssue]:
        """Form issues for this frame, most important first."""

    def after_frame(self, metrics: Dict[str, float], grader: "Grader") -> None:
        """Carry frame-to-frame references forward."""
        return None

    # --- Rep completion ----------------------------------------------
    def valid_rest_start(self) -> bool:
        """Whether the rest posture was properly held when a departure began."""
        return True

    @abstractmethod
    def completion_checks(self, cycle: "CycleTracker") -> Dict[str, bool]:
        """Exercise-specific conditions a finished cycle must satisfy."""

    @property
    @abstractmethod
    def rep_window(self) -> Tuple[float, float]:
        """(min, max) rep duration in seconds, both exclusive."""

    # --- Shared rules ------------------------------------------------
    def pause_issue(self, grader: "Grader", joints: Tuple[int, ...] = ()) -> Optional[FormIssue]:
        if grader.is_paused():
            return FormIssue(Severity.MODERATE, PAUSE_MESSAGE, joints)
        return None

"""
Per-session calibration.

Two kinds of calibration happen while a grader runs:
- a baseline snapshot (bar height, starting hip/wrist positions, starting knee
  angle...) taken once on the first fully visible frame, used to anchor
  geometry-based checks;
- adaptive thresholds learned from the first frames of the session, e.g. the
  arm-extension angle that counts as "locked out" for this person.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np


@dataclass
class CalibrationData:
    # --- Adaptive thresholds ---
    arm_extension_angle: Optional[float] = None

    # --- Baseline snapshot ---
    shoulder_height: Optional[float] = None
    hip_height: Optional[float] = None
    bar_height: Optional[float] = None
    hip_x: Optional[float] = None
    left_wrist_x: Optional[float] = None
    right_wrist_x: Optional[float] = None
    knee_angle: Optional[float] = None

    baseline_captured: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "arm_extension_angle": self.arm_extension_angle,
            "shoulder_height": self.shoulder_height,
            "hip_height": self.hip_height,
            "bar_height": self.bar_height,
            "hip_x": self.hip_x,
            "left_wrist_x": self.left_wrist_x,
            "right_wrist_x": self.right_wrist_x,
            "knee_angle": self.knee_angle,
            "baseline_captured": self.baseline_captured,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> "CalibrationData":
        def _opt(key: str) -> Optional[float]:
            value = data.get(key)
            return float(value) if value is not None else None

        return CalibrationData(
            arm_extension_angle=_opt("arm_extension_angle"),
            shoulder_height=_opt("shoulder_height"),
            hip_height=_opt("hip_height"),
            bar_height=_opt("bar_height"),
            hip_x=_opt("hip_x"),
            left_wrist_x=_opt("left_wrist_x"),
            right_wrist_x=_opt("right_wrist_x"),
            knee_angle=_opt("knee_angle"),
            baseline_captured=bool(data.get("baseline_captured", False)),
        )


@dataclass
class ThresholdCalibrator:
    """
    Learns a personal threshold from in-band samples seen during the first
    ``max_frames`` frames of a session.

    value = max(default, mean(samples) - margin) once ``min_samples`` have been
    collected, otherwise the safety default. After ``max_frames`` frames the
    calibrator is frozen and ignores further input.
    """

    default: float
    band: Tuple[float, float]
    max_frames: int = 30
    min_samples: int = 5
    margin: float = 5.0
    frames_seen: int = 0
    samples: List[float] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        return self.frames_seen >= self.max_frames

    @property
    def progress(self) -> float:
        return min(1.0, self.frames_seen / float(self.max_frames))

    @property
    def has_enough_samples(self) -> bool:
        return len(self.samples) >= self.min_samples

    @property
    def value(self) -> float:
        if not self.has_enough_samples:
            return self.default
        return max(self.default, float(np.mean(self.samples)) - self.margin)

    def observe(self, sample: Optional[float]) -> None:
        """Count one frame; keep ``sample`` if it falls strictly inside the band."""
        if self.is_complete:
            return
        self.frames_seen += 1
        if sample is None:
            return
        low, high = self.band
        if low < sample < high:
            self.samples.append(float(sample))

    def reset(self) -> None:
        self.frames_seen = 0
        self.samples = []

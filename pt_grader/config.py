"""
Grader configuration.

One immutable GraderConfig is handed to a grader at construction; every
threshold the state machines and form rules use lives here.
"""

from __future__ import annotations

import os
from dataclasses import asdict, dataclass, field, fields, replace
from typing import Any, Dict, Optional

ENV_PREFIX = "PT_GRADER_"


@dataclass(frozen=True)
class PushupThresholds:
    min_arm_extension_angle: float = 150.0
    max_elbow_flexion_angle: float = 100.0
    descent_margin: float = 10.0
    ascent_hysteresis: float = 15.0
    min_body_alignment_angle: float = 165.0
    min_knee_angle: float = 150.0
    max_elbow_asymmetry: float = 25.0
    hand_lift_threshold: float = 0.03
    worming_threshold: float = 0.03
    min_hand_width_ratio: float = 0.8
    max_hand_width_ratio: float = 2.0
    min_shoulder_width: float = 0.05
    calibration_min_angle: float = 140.0
    calibration_max_angle: float = 175.0
    calibration_margin: float = 5.0
    min_rep_duration: float = 0.5
    max_rep_duration: float = 15.0


@dataclass(frozen=True)
class PullupThresholds:
    min_elbow_lockout_angle: float = 160.0
    max_elbow_top_angle: float = 120.0
    min_elbow_angle: float = 60.0
    chin_clearance: float = 0.02
    hang_depth: float = 0.2
    max_swing_distance: float = 0.1
    max_kipping_angle: float = 20.0
    max_elbow_asymmetry: float = 25.0
    lowering_hysteresis: float = 15.0
    top_progress: float = 0.8
    dead_hang_frames: int = 3
    min_chin_frames: int = 3
    min_rep_duration: float = 0.5
    max_rep_duration: float = 15.0


@dataclass(frozen=True)
class SitupThresholds:
    min_trunk_angle: float = 70.0
    down_trunk_angle: float = 20.0
    rise_margin: float = 10.0
    lowering_hysteresis: float = 15.0
    min_knee_angle: float = 80.0
    max_knee_angle: float = 100.0
    knee_tolerance: float = 10.0
    elbow_to_knee_threshold: float = 0.15
    elbow_reach_progress: float = 0.7
    hand_to_head_threshold: float = 0.15
    max_wrist_separation: float = 0.1
    hip_lift_threshold: float = 0.03
    grounded_frames: int = 3
    min_rep_duration: float = 0.5
    max_rep_duration: float = 10.0


@dataclass(frozen=True)
class RunningThresholds:
    target_distance_meters: float = 3218.69
    max_duration_seconds: float = 1800.0
    min_pace: float = 1.5
    max_pace: float = 7.0
    max_jump_meters: float = 100.0
    min_fixes_for_validation: int = 5


_SECTIONS = {
    "pushup": PushupThresholds,
    "pullup": PullupThresholds,
    "situp": SitupThresholds,
    "running": RunningThresholds,
}


@dataclass(frozen=True)
class GraderConfig:
    min_stability_frames: int = 3
    adaptive_calibration: bool = True
    form_score_enabled: bool = True
    debug_mode: bool = False
    visibility_threshold: float = 0.6
    calibration_frames: int = 30
    calibration_min_samples: int = 5
    movement_window: int = 10
    pause_seconds: float = 2.0
    pause_movement_threshold: float = 1.0
    pushup: PushupThresholds = field(default_factory=PushupThresholds)
    pullup: PullupThresholds = field(default_factory=PullupThresholds)
    situp: SitupThresholds = field(default_factory=SitupThresholds)
    running: RunningThresholds = field(default_factory=RunningThresholds)

    def __post_init__(self):
        if self.min_stability_frames < 1:
            raise ValueError("min_stability_frames must be >= 1")
        if not 0.0 <= self.visibility_threshold < 1.0:
            raise ValueError("visibility_threshold must be in [0, 1)")
        if self.calibration_frames < 1 or self.calibration_min_samples < 1:
            raise ValueError("calibration_frames and calibration_min_samples must be >= 1")
        if self.calibration_min_samples > self.calibration_frames:
            raise ValueError("calibration_min_samples cannot exceed calibration_frames")
        if self.movement_window < 1:
            raise ValueError("movement_window must be >= 1")
        if self.pause_seconds <= 0:
            raise ValueError("pause_seconds must be positive")
        for name in ("pushup", "pullup", "situp"):
            section = getattr(self, name)
            if section.min_rep_duration >= section.max_rep_duration:
                raise ValueError(f"{name}: min_rep_duration must be below max_rep_duration")
        if self.running.target_distance_meters <= 0:
            raise ValueError("running.target_distance_meters must be positive")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @staticmethod
    def from_dict(data: Optional[Dict[str, Any]]) -> "GraderConfig":
        """Build a config from a (possibly partial) nested dict; unknown keys are rejected."""
        data = dict(data or {})
        known = {f.name for f in fields(GraderConfig)}
        unknown = set(data) - known
        if unknown:
            raise ValueError(f"Unknown config keys: {', '.join(sorted(unknown))}")

        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            section_cls = _SECTIONS.get(key)
            if section_cls is None:
                kwargs[key] = value
                continue
            if isinstance(value, section_cls):
                kwargs[key] = value
                continue
            if not isinstance(value, dict):
                raise ValueError(f"{key} config must be a mapping, got {type(value).__name__}")
            section_known = {f.name for f in fields(section_cls)}
            bad = set(value) - section_known
            if bad:
                raise ValueError(f"Unknown {key} config keys: {', '.join(sorted(bad))}")
            kwargs[key] = section_cls(**value)
        return GraderConfig(**kwargs)

    @staticmethod
    def from_env(prefix: str = ENV_PREFIX, base: Optional["GraderConfig"] = None) -> "GraderConfig":
        """
        Override the scalar options from environment variables, e.g.
        ``PT_GRADER_DEBUG_MODE=1`` or ``PT_GRADER_MIN_STABILITY_FRAMES=5``.
        """
        config = base or GraderConfig()
        overrides: Dict[str, Any] = {}
        for f in fields(GraderConfig):
            if f.name in _SECTIONS:
                continue
            raw = os.getenv(prefix + f.name.upper())
            if raw is None:
                continue
            current = getattr(config, f.name)
            overrides[f.name] = _coerce(raw, type(current), prefix + f.name.upper())
        if not overrides:
            return config
        return replace(config, **overrides)


def _coerce(raw: str, target: type, name: str) -> Any:
    if target is bool:
        lowered = raw.strip().lower()
        if lowered in ("1", "true", "yes", "on"):
            return True
        if lowered in ("0", "false", "no", "off"):
            return False
        raise ValueError(f"{name} must be a boolean, got '{raw}'")
    try:
        return target(raw)
    except ValueError:
        raise ValueError(f"{name} must be {target.__name__}, got '{raw}'") from None

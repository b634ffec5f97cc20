"""
Debounced rep counter shared by the pose-based graders.

The Grader owns all mutable session state (phase, counters, calibration,
movement history, the open rep cycle). The exercise strategy it wraps only
proposes target phases, supplies form rules and names the extra conditions a
finished cycle must meet. A rep is counted at most once per return to the
rest phase, and only if the whole cycle was clean.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Type

import numpy as np

from .calibration import CalibrationData
from .config import GraderConfig
from .form_checker import collect_joints, has_critical, score_issues, select_feedback
from .kinematics import landmarks_visible
from .landmarks import PoseFrame
from .movement import MovementHistory
from .scoring import get_apft_score

if TYPE_CHECKING:
    from .graders.base import ExerciseStrategy

logger = logging.getLogger(__name__)

UNKNOWN_STATE = "unknown"
NOT_VISIBLE_MESSAGE = "Position yourself in frame - cannot see all required body parts"


@dataclass(frozen=True)
class GradingResult:
    """Per-call snapshot handed back to the caller; the grader keeps no reference to it."""

    state: str
    rep_increment: int = 0
    has_form_fault: bool = False
    form_fault: Optional[str] = None
    form_score: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state,
            "rep_increment": self.rep_increment,
            "has_form_fault": self.has_form_fault,
            "form_fault": self.form_fault,
            "form_score": self.form_score,
        }


@dataclass
class CycleTracker:
    """Everything observed between leaving the rest phase and coming back to it."""

    start_time: Optional[float] = None
    started_from_rest: bool = False
    critical_seen: bool = False
    frame_scores: List[float] = field(default_factory=list)
    min_angle: float = math.inf
    max_angle: float = -math.inf
    flags: Dict[str, bool] = field(default_factory=dict)
    counters: Dict[str, int] = field(default_factory=dict)

    @property
    def is_open(self) -> bool:
        return self.start_time is not None

    def open(self, timestamp: float, started_from_rest: bool) -> None:
        self.reset()
        self.start_time = timestamp
        self.started_from_rest = started_from_rest

    def reset(self) -> None:
        self.start_time = None
        self.started_from_rest = False
        self.critical_seen = False
        self.frame_scores = []
        self.min_angle = math.inf
        self.max_angle = -math.inf
        self.flags = {}
        self.counters = {}

    def observe_angle(self, angle: float) -> None:
        self.min_angle = min(self.min_angle, angle)
        self.max_angle = max(self.max_angle, angle)

    def set_flag(self, name: str) -> None:
        self.flags[name] = True

    def flag(self, name: str) -> bool:
        return self.flags.get(name, False)

    def increment(self, name: str) -> int:
        self.counters[name] = self.counters.get(name, 0) + 1
        return self.counters[name]

    def count(self, name: str) -> int:
        return self.counters.get(name, 0)

    def record_frame(self, score: float, critical: bool) -> None:
        self.frame_scores.append(score)
        if critical:
            self.critical_seen = True

    def duration(self, timestamp: float) -> float:
        if self.start_time is None:
            return 0.0
        return timestamp - self.start_time

    @property
    def average_score(self) -> Optional[float]:
        if not self.frame_scores:
            return None
        return float(np.mean(self.frame_scores))


class Grader:
    """
    Pose-driven grader for one exercise session.

    Usage:
        grader = Grader(PushupStrategy, GraderConfig())
        for frame in frames:
            result = grader.process_frame(frame)
        grader.rep_count, grader.form_score, grader.get_apft_score()
    """

    def __init__(self, strategy_cls: Type["ExerciseStrategy"], config: Optional[GraderConfig] = None):
        self.config = config or GraderConfig()
        self._strategy_cls = strategy_cls
        self._init_state()

    def _init_state(self) -> None:
        self.calibration = CalibrationData()
        self.strategy = self._strategy_cls(self.config, self.calibration)
        self.name = self.strategy.name

        self._phase = self.strategy.rest_phase
        self._previous_phase = self.strategy.rest_phase
        self._rep_count = 0
        self._rep_scores: List[float] = []
        self._current_form_score = 100.0
        self._problem_joints: List[int] = []

        self.state_frame_count = 0
        self._pending_phase: Optional[str] = None
        self._pending_frames = 0

        self.movement = MovementHistory(self.config.movement_window)
        self._last_signal: Optional[float] = None
        self._last_movement_time: Optional[float] = None
        self._last_timestamp: Optional[float] = None

        self.cycle = CycleTracker()

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def phase(self) -> str:
        return self._phase

    @property
    def state(self) -> str:
        """Alias of ``phase`` used by the service payloads."""
        return self._phase

    @property
    def previous_phase(self) -> str:
        return self._previous_phase

    @property
    def rep_count(self) -> int:
        return self._rep_count

    @property
    def rep_scores(self) -> List[float]:
        return list(self._rep_scores)

    @property
    def form_score(self) -> int:
        """Mean per-rep form score, 100 before any rep is counted."""
        if not self._rep_scores:
            return 100
        return int(round(float(np.mean(self._rep_scores))))

    @property
    def current_form_score(self) -> float:
        return self._current_form_score

    @property
    def problem_joints(self) -> List[int]:
        return list(self._problem_joints)

    @property
    def calibration_progress(self) -> float:
        calibrator = self.strategy.calibrator
        if calibrator is None or not self.config.adaptive_calibration:
            return 1.0
        return calibrator.progress

    def is_stable(self) -> bool:
        return self.state_frame_count >= self.config.min_stability_frames

    def is_paused(self) -> bool:
        """Holding still outside the rest phase for longer than the pause window."""
        if self._phase == self.strategy.rest_phase:
            return False
        if self._last_movement_time is None or self._last_timestamp is None:
            return False
        idle = self._last_timestamp - self._last_movement_time
        return idle > self.config.pause_seconds and self.movement.is_stable(
            self.config.pause_movement_threshold
        )

    def get_apft_score(self, age: Optional[int] = None, gender: Optional[str] = None) -> int:
        return get_apft_score(self.name, self._rep_count, age, gender)

    def reset(self) -> None:
        self._init_state()

    def summary(self) -> Dict[str, Any]:
        return {
            "exercise": self.name,
            "rep_count": self._rep_count,
            "form_score": self.form_score,
            "rep_scores": self.rep_scores,
            "phase": self._phase,
            "calibration": self.calibration.to_dict(),
        }

    # ------------------------------------------------------------------
    # Frame processing
    # ------------------------------------------------------------------
    def process_frame(self, frame: PoseFrame) -> GradingResult:
        """Advance the grader by one pose estimate."""
        self._problem_joints = []
        strategy = self.strategy

        if not landmarks_visible(frame, strategy.required_landmarks, self.config.visibility_threshold):
            logger.debug("%s: required landmarks not visible at t=%.3f", self.name, frame.timestamp)
            return GradingResult(
                state=UNKNOWN_STATE,
                rep_increment=0,
                has_form_fault=True,
                form_fault=NOT_VISIBLE_MESSAGE,
                form_score=None,
            )

        ts = frame.timestamp
        self._last_timestamp = ts

        if not self.calibration.baseline_captured:
            strategy.capture_baseline(frame)
            self.calibration.baseline_captured = True
            if self.config.debug_mode:
                logger.info("%s: baseline captured %s", self.name, self.calibration.to_dict())

        metrics = strategy.analyze(frame)

        self._update_calibration(metrics)
        self._update_movement(strategy.movement_signal(metrics), ts)

        target = strategy.update_state(metrics, self)
        committed = self._advance_phase(target, ts)
        if self.cycle.is_open:
            strategy.track_cycle(metrics, self)

        issues = strategy.validate_form(metrics, self)
        if self.config.form_score_enabled:
            self._current_form_score = score_issues(issues)
        self._problem_joints = collect_joints(issues)
        if self.cycle.is_open:
            self.cycle.record_frame(self._current_form_score, has_critical(issues))

        rep_increment = 0
        if committed and self._phase == strategy.rest_phase:
            rep_increment = self._close_cycle(ts)

        strategy.after_frame(metrics, self)

        feedback = select_feedback(issues)
        return GradingResult(
            state=self._phase,
            rep_increment=rep_increment,
            has_form_fault=bool(issues),
            form_fault=feedback,
            form_score=self._current_form_score,
        )

    def _update_calibration(self, metrics: Dict[str, float]) -> None:
        calibrator = self.strategy.calibrator
        if calibrator is None or not self.config.adaptive_calibration or calibrator.is_complete:
            return
        calibrator.observe(self.strategy.calibration_sample(metrics, self._phase))
        self.strategy.apply_calibration()
        if calibrator.is_complete and self.config.debug_mode:
            logger.info(
                "%s: calibration complete (%d samples) -> %.1f",
                self.name, len(calibrator.samples), calibrator.value,
            )

    def _update_movement(self, signal: float, ts: float) -> None:
        if self._last_signal is None:
            self._last_movement_time = ts
        else:
            delta = abs(signal - self._last_signal)
            self.movement.push(delta)
            if delta > self.config.pause_movement_threshold:
                self._last_movement_time = ts
        self._last_signal = signal

    def _advance_phase(self, target: str, ts: float) -> bool:
        """Debounce ``target``; returns True when a transition was committed this frame."""
        rest = self.strategy.rest_phase

        if target == self._phase:
            if self._phase == rest and self.cycle.is_open:
                logger.debug("%s: departure from %s reverted, cycle discarded", self.name, rest)
                self.cycle.reset()
            self._pending_phase = None
            self._pending_frames = 0
            self.state_frame_count += 1
            return False

        if target != self._pending_phase:
            self._pending_phase = target
            self._pending_frames = 1
        else:
            self._pending_frames += 1
        self.state_frame_count += 1

        if self._phase == rest and not self.cycle.is_open:
            self.cycle.open(ts, self.strategy.valid_rest_start())

        if self._pending_frames < self.config.min_stability_frames:
            return False

        self._previous_phase = self._phase
        self._phase = target
        self.state_frame_count = self._pending_frames
        self._pending_phase = None
        self._pending_frames = 0
        if self.config.debug_mode:
            logger.info("%s: %s -> %s at t=%.3f", self.name, self._previous_phase, self._phase, ts)
        return True

    def _close_cycle(self, ts: float) -> int:
        cycle = self.cycle
        min_duration, max_duration = self.strategy.rep_window
        duration = cycle.duration(ts)

        checks = {
            "started_from_rest": cycle.started_from_rest,
            "stable": self.is_stable(),
            "no_critical_fault": not cycle.critical_seen,
            "duration": min_duration < duration < max_duration,
        }
        checks.update(self.strategy.completion_checks(cycle))
        valid = all(checks.values())

        if valid:
            self._rep_count += 1
            rep_score = cycle.average_score
            if self.config.form_score_enabled and rep_score is not None:
                self._rep_scores.append(rep_score)
            if self.config.debug_mode:
                logger.info(
                    "%s: rep %d counted (%.2fs, score %.1f)",
                    self.name, self._rep_count, duration, rep_score if rep_score is not None else 100.0,
                )
        elif self.config.debug_mode:
            failed = [name for name, ok in checks.items() if not ok]
            logger.info("%s: cycle rejected (%s)", self.name, ", ".join(failed))

        cycle.reset()
        return 1 if valid else 0

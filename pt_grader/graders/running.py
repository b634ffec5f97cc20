"""
Two-mile run grader driven by GPS fixes instead of pose frames.

States: ready -> running -> completed. Distance is the haversine sum of
plausible steps between consecutive fixes; elapsed time comes from the fix
timestamps so a recorded run replays identically.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from ..config import GraderConfig
from ..form_checker import FormIssue, Severity, score_issues, select_feedback
from ..landmarks import PoseFrame
from ..movement import MovementHistory
from ..rep_counter import GradingResult
from ..scoring import format_time, get_apft_score

logger = logging.getLogger(__name__)

READY = "ready"
RUNNING = "running"
COMPLETED = "completed"

EARTH_RADIUS_METERS = 6371000.0
METERS_PER_MILE = 1609.34
# Runs shorter than this share of the target distance do not score.
MIN_SCORED_FRACTION = 0.9
# Reference time (seconds) that earns a per-run form score of 100.
REFERENCE_RUN_SECONDS = 720.0


@dataclass(frozen=True)
class GPSFix:
    latitude: float
    longitude: float
    timestamp: float
    accuracy: Optional[float] = None

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "GPSFix":
        accuracy = d.get("accuracy")
        return GPSFix(
            latitude=float(d["latitude"]),
            longitude=float(d["longitude"]),
            timestamp=float(d["timestamp"]),
            accuracy=float(accuracy) if accuracy is not None else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "timestamp": self.timestamp,
            "accuracy": self.accuracy,
        }


def haversine_distance(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in meters between two WGS84 coordinates."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_METERS * c


class RunningGrader:
    """Grades a timed two-mile run from a stream of GPS fixes."""

    name = "running"

    def __init__(self, config: Optional[GraderConfig] = None):
        self.config = config or GraderConfig()
        self.thresholds = self.config.running
        self.reset()

    def reset(self) -> None:
        self._state = READY
        self._start_time: Optional[float] = None
        self._end_time: Optional[float] = None
        self._distance = 0.0
        self._elapsed = 0.0
        self._current_pace = 0.0
        self._path: List[GPSFix] = []
        self._last_position: Optional[GPSFix] = None
        self._current_form_score = 100.0
        self._run_scores: List[float] = []
        self.movement = MovementHistory(self.config.movement_window)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    def start_run(self, timestamp: Optional[float] = None) -> None:
        """Begin timing; without a timestamp the clock starts at the first fix."""
        if self._state != READY:
            return
        self._start_time = timestamp
        self._state = RUNNING
        if self.config.debug_mode:
            logger.info("running: run started at %s", timestamp)

    def stop_run(self, timestamp: Optional[float] = None) -> None:
        if self._state != RUNNING:
            return
        if timestamp is None:
            timestamp = self._last_position.timestamp if self._last_position else self._start_time
        self._end_time = timestamp
        self._elapsed = self._elapsed_until(timestamp)
        self._state = COMPLETED

        score = self._run_form_score()
        self._current_form_score = score
        self._run_scores.append(score)
        if self.config.debug_mode:
            logger.info(
                "running: run completed, %.1f m in %.1f s (score %.1f)",
                self._distance, self._elapsed, score,
            )

    def _elapsed_until(self, timestamp: Optional[float]) -> float:
        if timestamp is None or self._start_time is None:
            return 0.0
        return max(0.0, timestamp - self._start_time)

    # ------------------------------------------------------------------
    # Updates
    # ------------------------------------------------------------------
    def update_gps_position(self, position: GPSFix) -> GradingResult:
        """Fold one GPS fix into the run and return the current grading snapshot."""
        if self._state != RUNNING:
            return self._result([])

        if self._start_time is None:
            self._start_time = position.timestamp

        last = self._last_position
        if last is not None:
            distance = haversine_distance(last.latitude, last.longitude, position.latitude, position.longitude)
            time_delta = position.timestamp - last.timestamp
            if time_delta > 0 and 0 < distance < self.thresholds.max_jump_meters:
                self._distance += distance
                self._current_pace = distance / time_delta
                self.movement.push(self._current_pace)
            elif distance >= self.thresholds.max_jump_meters:
                logger.warning(
                    "running: discarding implausible GPS jump of %.1f m over %.2f s", distance, time_delta
                )

        self._path.append(position)
        self._last_position = position
        self._elapsed = self._elapsed_until(position.timestamp)

        if self._distance >= self.thresholds.target_distance_meters:
            self.stop_run(position.timestamp)

        return self._result(self.validate_form())

    def process_frame(self, frame: Optional[PoseFrame] = None) -> GradingResult:
        """Pose frames carry no information for a run; only the pace checks are evaluated."""
        return self._result(self.validate_form())

    def validate_form(self) -> List[FormIssue]:
        t = self.thresholds
        issues: List[FormIssue] = []
        if self._state != RUNNING or len(self._path) <= t.min_fixes_for_validation:
            return issues

        avg_pace = self.movement.average
        if avg_pace < t.min_pace:
            issues.append(FormIssue(Severity.MODERATE, "Pick up the pace - running too slow"))
        if avg_pace > t.max_pace:
            issues.append(FormIssue(Severity.MINOR, "Maintain a sustainable pace"))
        if self._elapsed > t.max_duration_seconds:
            issues.append(FormIssue(Severity.CRITICAL, "Time limit exceeded"))
        return issues

    def _result(self, issues: List[FormIssue]) -> GradingResult:
        if self._state == RUNNING and self.config.form_score_enabled:
            self._current_form_score = score_issues(issues)
        return GradingResult(
            state=self._state,
            rep_increment=0,
            has_form_fault=bool(issues),
            form_fault=select_feedback(issues),
            form_score=self._current_form_score if self._state == COMPLETED else None,
        )

    def _run_form_score(self) -> float:
        target = self.thresholds.target_distance_meters
        if self._distance < target * MIN_SCORED_FRACTION:
            return 0.0
        normalized_time = self._elapsed * (target / self._distance)
        return max(0.0, min(100.0, 100.0 - (normalized_time - REFERENCE_RUN_SECONDS) / 10.0))

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def state(self) -> str:
        return self._state

    phase = state

    @property
    def rep_count(self) -> int:
        return 0

    @property
    def form_score(self) -> int:
        if not self._run_scores:
            return 100
        return int(round(sum(self._run_scores) / len(self._run_scores)))

    @property
    def current_form_score(self) -> float:
        return self._current_form_score

    @property
    def problem_joints(self) -> List[int]:
        return []

    @property
    def is_run_complete(self) -> bool:
        return self._state == COMPLETED

    @property
    def distance(self) -> float:
        """Accumulated distance in meters."""
        return self._distance

    @property
    def duration(self) -> float:
        """Elapsed run time in seconds."""
        return self._elapsed

    @property
    def current_pace(self) -> float:
        return self._current_pace

    @property
    def progress(self) -> float:
        return min(1.0, self._distance / self.thresholds.target_distance_meters)

    @property
    def gps_path(self) -> List[GPSFix]:
        return list(self._path)

    @property
    def last_known_position(self) -> Optional[GPSFix]:
        return self._last_position

    def pace_per_mile(self) -> str:
        """Average pace as ``MM:SS`` per mile."""
        if self._distance <= 0:
            return "00:00"
        miles = self._distance / METERS_PER_MILE
        minutes_per_mile = (self._elapsed / 60.0) / miles
        minutes = int(minutes_per_mile)
        seconds = int(round((minutes_per_mile - minutes) * 60))
        if seconds == 60:
            minutes, seconds = minutes + 1, 0
        return f"{minutes:02d}:{seconds:02d}"

    def get_apft_score(self, age: Optional[int] = None, gender: Optional[str] = None) -> int:
        """Run-event points; 0 until the run is complete and covers 90% of the target."""
        if not self.is_run_complete:
            return 0
        if self._distance < self.thresholds.target_distance_meters * MIN_SCORED_FRACTION:
            return 0
        return get_apft_score(self.name, round(self._elapsed), age, gender)

    def summary(self) -> Dict[str, Any]:
        return {
            "exercise": self.name,
            "state": self._state,
            "distance_meters": self._distance,
            "duration_seconds": self._elapsed,
            "duration": format_time(self._elapsed),
            "pace_per_mile": self.pace_per_mile(),
            "progress": self.progress,
            "form_score": self.form_score,
        }

"""
Fitness test session management for pt_grader.

A session walks through an ordered list of events (push-ups, sit-ups, the
two-mile run...), keeps one grader per event and collects the per-event
results into a total test score.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
import time
import uuid

from .config import GraderConfig
from .graders import AnyGrader, RunningGrader, build_grader

DEFAULT_EVENTS = ["pushup", "situp", "running"]


@dataclass
class EventResult:
    """Outcome of one completed event."""

    exercise: str
    reps: int
    form_score: int
    points: int
    duration_seconds: Optional[float] = None
    distance_meters: Optional[float] = None
    rep_scores: List[float] = field(default_factory=list)
    faults: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "exercise": self.exercise,
            "reps": self.reps,
            "form_score": self.form_score,
            "points": self.points,
            "duration_seconds": self.duration_seconds,
            "distance_meters": self.distance_meters,
            "rep_scores": self.rep_scores,
            "faults": self.faults,
        }


@dataclass
class FitnessTestSession:
    """
    An ordered fitness test.

    Usage:
        session = FitnessTestSession.from_config(["pushup", "situp", "running"], age=20, gender="male")
        session.start()

        grader = session.current_grader
        for frame in frames:
            result = grader.process_frame(frame)
            session.record_fault(result.form_fault)

        session.complete_event()   # scores the event and moves on
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    name: str = "Fitness Test"
    events: List[str] = field(default_factory=lambda: list(DEFAULT_EVENTS))
    age: Optional[int] = None
    gender: Optional[str] = None
    config: GraderConfig = field(default_factory=GraderConfig)
    results: List[EventResult] = field(default_factory=list)
    current_event_index: int = 0
    started_at: Optional[float] = None
    finished_at: Optional[float] = None

    def __post_init__(self):
        # Builds every grader once up front so unknown events fail here, not mid-test.
        self._graders: List[AnyGrader] = [build_grader(e, self.config) for e in self.events]
        self._faults: Dict[str, int] = {}

    @classmethod
    def from_config(
        cls,
        events: List[str],
        name: str = "Fitness Test",
        age: Optional[int] = None,
        gender: Optional[str] = None,
        config: Optional[GraderConfig] = None,
    ) -> "FitnessTestSession":
        return cls(
            name=name,
            events=list(events),
            age=age,
            gender=gender,
            config=config or GraderConfig(),
        )

    @property
    def current_exercise(self) -> Optional[str]:
        if 0 <= self.current_event_index < len(self.events):
            return self.events[self.current_event_index]
        return None

    @property
    def current_grader(self) -> Optional[AnyGrader]:
        """Grader for the event in progress."""
        if 0 <= self.current_event_index < len(self._graders):
            return self._graders[self.current_event_index]
        return None

    @property
    def is_complete(self) -> bool:
        return self.current_event_index >= len(self.events)

    @property
    def is_active(self) -> bool:
        return self.started_at is not None and self.finished_at is None

    @property
    def final_scores(self) -> Dict[str, int]:
        return {r.exercise: r.points for r in self.results}

    @property
    def total_reps(self) -> Dict[str, int]:
        return {r.exercise: r.reps for r in self.results}

    @property
    def total_score(self) -> int:
        """Sum of event points recorded so far."""
        return sum(r.points for r in self.results)

    @property
    def duration_seconds(self) -> Optional[float]:
        if self.started_at:
            end = self.finished_at or time.time()
            return end - self.started_at
        return None

    def start(self):
        self.started_at = time.time()

    def record_fault(self, message: Optional[str]):
        """Tally a feedback message against the current event."""
        if message:
            self._faults[message] = self._faults.get(message, 0) + 1

    def record_event(self, grader: AnyGrader) -> EventResult:
        """Score a finished grader against this session's age and gender."""
        if isinstance(grader, RunningGrader):
            return EventResult(
                exercise=grader.name,
                reps=0,
                form_score=grader.form_score,
                points=grader.get_apft_score(self.age, self.gender),
                duration_seconds=grader.duration,
                distance_meters=grader.distance,
                faults=dict(self._faults),
            )
        return EventResult(
            exercise=grader.name,
            reps=grader.rep_count,
            form_score=grader.form_score,
            points=grader.get_apft_score(self.age, self.gender),
            rep_scores=grader.rep_scores,
            faults=dict(self._faults),
        )

    def complete_event(self) -> Optional[EventResult]:
        """
        Score the current event and advance to the next one.

        Returns:
            The EventResult, or None if the session was already complete
        """
        grader = self.current_grader
        if grader is None:
            return None
        if isinstance(grader, RunningGrader):
            grader.stop_run()

        result = self.record_event(grader)
        self.results.append(result)
        self._faults = {}
        self.current_event_index += 1
        if self.is_complete:
            self.finished_at = time.time()
        return result

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "events": list(self.events),
            "age": self.age,
            "gender": self.gender,
            "results": [r.to_dict() for r in self.results],
            "current_event_index": self.current_event_index,
            "current_exercise": self.current_exercise,
            "is_complete": self.is_complete,
            "final_scores": self.final_scores,
            "total_score": self.total_score,
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "duration_seconds": self.duration_seconds,
        }

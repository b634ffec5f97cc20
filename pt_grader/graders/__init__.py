"""Exercise grader registry for pt_grader.

Lets the service, the replay tool and the test session build a grader by
exercise name without knowing which strategy or grader class backs it.
"""

from typing import Dict, List, Optional, Type, Union

from ..config import GraderConfig
from ..rep_counter import Grader
from ..scoring import EXERCISE_ALIASES
from .base import ExerciseStrategy
from .pullup import PullupStrategy
from .pushup import PushupStrategy
from .running import GPSFix, RunningGrader
from .situp import SitupStrategy

GRADER_REGISTRY: Dict[str, Type[ExerciseStrategy]] = {
    PushupStrategy.name: PushupStrategy,
    SitupStrategy.name: SitupStrategy,
    PullupStrategy.name: PullupStrategy,
}

AnyGrader = Union[Grader, RunningGrader]


def get_available_exercises() -> List[str]:
    """Return the list of exercise names build_grader accepts."""
    return list(GRADER_REGISTRY.keys()) + [RunningGrader.name]


def build_grader(name: str, config: Optional[GraderConfig] = None) -> AnyGrader:
    """Instantiate a grader by exercise name or alias."""
    key = EXERCISE_ALIASES.get(name.strip().lower().replace("-", "_").replace(" ", "_"))
    if key == RunningGrader.name:
        return RunningGrader(config)
    strategy_cls = GRADER_REGISTRY.get(key) if key else None
    if not strategy_cls:
        raise ValueError(
            f"Unknown exercise '{name}'. "
            f"Available options: {', '.join(get_available_exercises())}"
        )
    return Grader(strategy_cls, config)


__all__ = [
    "AnyGrader",
    "ExerciseStrategy",
    "GPSFix",
    "GRADER_REGISTRY",
    "PullupStrategy",
    "PushupStrategy",
    "RunningGrader",
    "SitupStrategy",
    "build_grader",
    "get_available_exercises",
]

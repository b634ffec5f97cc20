"""pt_grader: repetition counting, form grading and fitness-test scoring from pose landmarks."""

from .config import GraderConfig
from .graders import GPSFix, RunningGrader, build_grader, get_available_exercises
from .landmarks import Landmark, PoseFrame, PoseLandmark
from .rep_counter import Grader, GradingResult
from .scoring import get_apft_score
from .session import FitnessTestSession

__version__ = "0.1.0"

__all__ = [
    "FitnessTestSession",
    "GPSFix",
    "Grader",
    "GraderConfig",
    "GradingResult",
    "Landmark",
    "PoseFrame",
    "PoseLandmark",
    "RunningGrader",
    "build_grader",
    "get_apft_score",
    "get_available_exercises",
]

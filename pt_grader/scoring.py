"""
Fitness-test (APFT) scoring tables and lookups.

All tables are for the 17-21 male bracket. Rep tables map a rep count to
points; the run table maps a two-mile time in seconds to points.
"""

from bisect import bisect_right
from typing import Dict, Optional

PUSHUP_SCORE_TABLE: Dict[int, int] = {
    68: 100, 67: 99, 66: 97, 65: 96, 64: 94, 63: 93, 62: 91, 61: 90, 60: 88,
    59: 87, 58: 85, 57: 84, 56: 82, 55: 81, 54: 79, 53: 78, 52: 76, 51: 75,
    50: 74, 49: 72, 48: 71, 47: 69, 46: 68, 45: 66, 44: 65, 43: 63, 42: 62,
    41: 60, 40: 59, 39: 57, 38: 56, 37: 54, 36: 53, 35: 51, 34: 50, 33: 48,
    32: 47, 31: 46, 30: 44, 29: 43, 28: 41, 27: 40, 26: 38, 25: 37, 24: 35,
    23: 34, 22: 32, 21: 31, 20: 29, 19: 28, 18: 26, 17: 25, 16: 24, 15: 22,
    14: 21, 13: 19, 12: 18, 11: 16, 10: 15, 9: 13, 8: 12, 7: 10, 6: 9,
    5: 7, 4: 6, 3: 4, 2: 3, 1: 1, 0: 0,
}

# 0-50 reps score one point per rep.
SITUP_SCORE_TABLE: Dict[int, int] = {reps: reps for reps in range(51)}
SITUP_SCORE_TABLE.update({
    51: 52, 52: 58, 53: 60, 54: 62, 55: 64, 56: 66, 57: 68, 58: 70, 59: 72,
    60: 74, 61: 76, 62: 78, 63: 80, 64: 82, 65: 84, 66: 86, 67: 88, 68: 90,
    69: 91, 70: 92, 71: 93, 72: 94, 73: 95, 74: 96, 75: 97, 76: 98, 77: 99,
    78: 100,
})

PULLUP_SCORE_TABLE: Dict[int, int] = {reps: reps * 4 for reps in range(26)}

# Two-mile run, 11:00 (660 s) to 19:30 (1170 s) in 6 second steps.
RUNNING_SCORE_TABLE: Dict[int, int] = {
    660: 100, 666: 99, 672: 98, 678: 96, 684: 95, 690: 94, 696: 93, 702: 92,
    708: 91, 714: 89, 720: 88, 726: 87, 732: 86, 738: 85, 744: 84, 750: 82,
    756: 81, 762: 80, 768: 79, 774: 78, 780: 76, 786: 75, 792: 74, 798: 73,
    804: 72, 810: 71, 816: 69, 822: 68, 828: 67, 834: 66, 840: 64, 846: 63,
    852: 62, 858: 61, 864: 60, 870: 59, 876: 57, 882: 56, 888: 55, 894: 54,
    900: 53, 906: 51, 912: 50, 918: 49, 924: 48, 930: 47, 936: 45, 942: 44,
    948: 43, 954: 42, 960: 41, 966: 39, 972: 38, 978: 37, 984: 36, 990: 35,
    996: 33, 1002: 32, 1008: 31, 1014: 30, 1020: 29, 1026: 28, 1032: 27,
    1038: 26, 1044: 24, 1050: 23, 1056: 22, 1062: 21, 1068: 20, 1074: 19,
    1080: 18, 1086: 16, 1092: 15, 1098: 14, 1104: 13, 1110: 12, 1116: 11,
    1122: 10, 1128: 9, 1134: 8, 1140: 6, 1146: 5, 1152: 4, 1158: 3,
    1164: 2, 1170: 0,
}
_RUNNING_TIMES = sorted(RUNNING_SCORE_TABLE)

EXERCISE_ALIASES: Dict[str, str] = {
    "pushup": "pushup",
    "pushups": "pushup",
    "push_up": "pushup",
    "push_ups": "pushup",
    "situp": "situp",
    "situps": "situp",
    "sit_up": "situp",
    "sit_ups": "situp",
    "pullup": "pullup",
    "pullups": "pullup",
    "pull_up": "pullup",
    "pull_ups": "pullup",
    "run": "running",
    "running": "running",
    "two_mile_run": "running",
}

VALID_GENDERS = ("male", "female")


def normalize_exercise(name: str) -> str:
    """Map an exercise name or alias to its canonical key; ValueError when unknown."""
    key = name.strip().lower().replace("-", "_").replace(" ", "_")
    canonical = EXERCISE_ALIASES.get(key)
    if canonical is None:
        raise ValueError(
            f"Unknown exercise '{name}'. "
            f"Available options: pushup, situp, pullup, running"
        )
    return canonical


def get_score(reps: float, table: Dict[int, int]) -> int:
    """
    Look up ``reps`` in a rep table.

    At or above the table maximum the maximum score is returned; otherwise the
    closest tabulated rep count not above ``reps`` is used. Negative input
    scores 0.
    """
    max_rep = max(table)
    if reps >= max_rep:
        return table[max_rep]
    r = int(reps // 1)
    while r >= 0 and r not in table:
        r -= 1
    return table[r] if r >= 0 else 0


def calculate_pushup_score(reps: float) -> int:
    return get_score(reps, PUSHUP_SCORE_TABLE)


def calculate_situp_score(reps: float) -> int:
    return get_score(reps, SITUP_SCORE_TABLE)


def calculate_pullup_score(reps: float) -> int:
    return get_score(reps, PULLUP_SCORE_TABLE)


def calculate_running_score(time_in_seconds: float) -> int:
    """Points for a two-mile time: the greatest tabulated time not above the input wins."""
    if time_in_seconds <= _RUNNING_TIMES[0]:
        return RUNNING_SCORE_TABLE[_RUNNING_TIMES[0]]
    if time_in_seconds >= _RUNNING_TIMES[-1]:
        return RUNNING_SCORE_TABLE[_RUNNING_TIMES[-1]]
    idx = bisect_right(_RUNNING_TIMES, time_in_seconds) - 1
    return RUNNING_SCORE_TABLE[_RUNNING_TIMES[idx]]


_CALCULATORS = {
    "pushup": calculate_pushup_score,
    "situp": calculate_situp_score,
    "pullup": calculate_pullup_score,
    "running": calculate_running_score,
}


def get_apft_score(exercise: str, metric: float, age: Optional[int] = None, gender: Optional[str] = None) -> int:
    """
    Standardized 0-100 score for one event.

    ``metric`` is a rep count, or the run time in seconds for running. ``age``
    and ``gender`` are validated but every bracket currently uses the 17-21
    male table.
    """
    canonical = normalize_exercise(exercise)
    if age is not None and age < 0:
        raise ValueError(f"age must be non-negative, got {age}")
    if gender is not None and gender.lower() not in VALID_GENDERS:
        raise ValueError(f"gender must be one of {', '.join(VALID_GENDERS)}, got '{gender}'")
    score = _CALCULATORS[canonical](metric)
    return int(min(100, max(0, score)))


def format_score_display(reps: int, score: int) -> str:
    """e.g. ``"48 reps → 71 points"``"""
    return f"{reps} reps → {score} points"


def format_time(seconds: float) -> str:
    """``MM:SS`` for a duration in seconds."""
    total = int(seconds)
    return f"{total // 60}:{total % 60:02d}"


def format_running_score_display(time_in_seconds: float, score: int) -> str:
    """e.g. ``"15:30 → 47 points"``"""
    return f"{format_time(time_in_seconds)} → {score} points"

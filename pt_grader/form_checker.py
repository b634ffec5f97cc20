"""
Form issue model and per-frame form scoring.

Each exercise strategy emits a list of FormIssue for the current frame; this
module turns that list into a 0-100 frame score, a single feedback string and
the set of joints to highlight.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple


class Severity(str, Enum):
    CRITICAL = "critical"
    MODERATE = "moderate"
    MINOR = "minor"

    @property
    def penalty(self) -> float:
        return SEVERITY_PENALTIES[self]


SEVERITY_PENALTIES: Dict[Severity, float] = {
    Severity.CRITICAL: 20.0,
    Severity.MODERATE: 10.0,
    Severity.MINOR: 5.0,
}

PERFECT_SCORE = 100.0


@dataclass(frozen=True)
class FormIssue:
    severity: Severity
    message: str
    joints: Tuple[int, ...] = field(default_factory=tuple)

    @property
    def is_critical(self) -> bool:
        return self.severity is Severity.CRITICAL


def score_issues(issues: Sequence[FormIssue]) -> float:
    """100 minus the summed severity penalties, floored at 0."""
    penalty = sum(issue.severity.penalty for issue in issues)
    return max(0.0, PERFECT_SCORE - penalty)


def select_feedback(issues: Sequence[FormIssue]) -> Optional[str]:
    """The first critical message wins; otherwise the first message of any severity."""
    for issue in issues:
        if issue.is_critical:
            return issue.message
    if issues:
        return issues[0].message
    return None


def collect_joints(issues: Sequence[FormIssue]) -> List[int]:
    joints = set()
    for issue in issues:
        joints.update(int(j) for j in issue.joints)
    return sorted(joints)


def has_critical(issues: Sequence[FormIssue]) -> bool:
    return any(issue.is_critical for issue in issues)

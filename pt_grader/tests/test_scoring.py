import pytest

from pt_grader.scoring import (
    PULLUP_SCORE_TABLE,
    calculate_pullup_score,
    calculate_pushup_score,
    calculate_running_score,
    calculate_situp_score,
    format_running_score_display,
    format_score_display,
    format_time,
    get_apft_score,
    normalize_exercise,
)


@pytest.mark.parametrize(
    "reps, points",
    [(0, 0), (1, 1), (48, 71), (68, 100), (90, 100), (-3, 0)],
)
def test_pushup_table(reps, points):
    assert calculate_pushup_score(reps) == points


def test_situp_table():
    assert calculate_situp_score(40) == 40
    assert calculate_situp_score(50) == 50
    assert calculate_situp_score(52) == 58
    assert calculate_situp_score(78) == 100
    assert calculate_situp_score(100) == 100


def test_pullup_table():
    assert calculate_pullup_score(10) == 40
    assert calculate_pullup_score(25) == 100
    assert calculate_pullup_score(30) == 100
    assert max(PULLUP_SCORE_TABLE) == 25


def test_fractional_reps_round_down():
    assert calculate_pushup_score(48.9) == 71


@pytest.mark.parametrize(
    "seconds, points",
    [(600, 100), (660, 100), (663, 100), (666, 99), (700, 93), (1169, 2), (1170, 0), (1500, 0)],
)
def test_running_table(seconds, points):
    assert calculate_running_score(seconds) == points


def test_get_apft_score_aliases_and_validation():
    assert get_apft_score("Push-Ups", 48) == 71
    assert get_apft_score("two mile run", 700, age=19, gender="Female") == 93
    with pytest.raises(ValueError, match="Unknown exercise"):
        get_apft_score("burpees", 10)
    with pytest.raises(ValueError, match="age"):
        get_apft_score("pushup", 10, age=-1)
    with pytest.raises(ValueError, match="gender"):
        get_apft_score("pushup", 10, gender="other")


def test_normalize_exercise():
    assert normalize_exercise(" Sit Ups ") == "situp"
    assert normalize_exercise("run") == "running"


def test_formatting():
    assert format_time(930) == "15:30"
    assert format_time(65.9) == "1:05"
    assert format_score_display(48, 71) == "48 reps → 71 points"
    assert format_running_score_display(930, 47) == "15:30 → 47 points"

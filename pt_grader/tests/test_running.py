import pytest

from pt_grader.config import GraderConfig, RunningThresholds
from pt_grader.graders import build_grader
from pt_grader.graders.running import COMPLETED, READY, RUNNING, GPSFix, RunningGrader, haversine_distance


def test_haversine_one_degree_of_latitude():
    assert haversine_distance(0.0, 0.0, 1.0, 0.0) == pytest.approx(111194.9, rel=1e-4)
    assert haversine_distance(45.0, 7.0, 45.0, 7.0) == 0.0


def test_fixes_before_start_are_ignored(walk_north):
    grader = RunningGrader()
    for fix in walk_north(10.0, 5):
        result = grader.update_gps_position(fix)
    assert result.state == READY
    assert grader.distance == 0.0
    assert grader.gps_path == []


def test_full_two_mile_run(two_mile_fixes):
    grader = build_grader("two mile run")
    grader.start_run(0.0)
    for fix in two_mile_fixes:
        grader.update_gps_position(fix)
    grader.stop_run()

    assert grader.state == COMPLETED
    assert grader.is_run_complete
    assert grader.distance == pytest.approx(3218.69, rel=1e-6)
    assert grader.duration == pytest.approx(700.0)
    assert grader.progress == pytest.approx(1.0)
    assert grader.form_score == 100
    assert grader.get_apft_score() == 93
    assert grader.pace_per_mile() == "05:50"
    assert grader.summary()["duration"] == "11:40"


def test_implausible_jump_is_discarded(walk_north):
    fixes = walk_north(10.0, 2)
    jump = walk_north(500.0, 2)[1]
    grader = RunningGrader()
    grader.start_run()
    grader.update_gps_position(fixes[0])
    grader.update_gps_position(fixes[1])
    grader.update_gps_position(GPSFix(fixes[1].latitude + jump.latitude, 0.0, 2.0))
    after_jump = walk_north(10.0, 2)[1]
    grader.update_gps_position(
        GPSFix(fixes[1].latitude + jump.latitude + after_jump.latitude, 0.0, 3.0)
    )

    assert grader.distance == pytest.approx(20.0, rel=1e-6)
    assert grader.last_known_position.timestamp == 3.0
    assert len(grader.gps_path) == 4


def test_clock_starts_at_first_fix_without_start_timestamp(walk_north):
    grader = RunningGrader()
    grader.start_run()
    for fix in walk_north(30.0, 11, interval=1.0, start_ts=100.0):
        grader.update_gps_position(fix)
    assert grader.state == RUNNING
    assert grader.duration == pytest.approx(10.0)
    assert grader.distance == pytest.approx(300.0, rel=1e-6)


def test_auto_stop_at_target_distance(walk_north):
    config = GraderConfig(running=RunningThresholds(target_distance_meters=100.0))
    grader = RunningGrader(config)
    grader.start_run(0.0)
    for fix in walk_north(3.0, 40):
        grader.update_gps_position(fix)
    assert grader.state == COMPLETED
    assert grader.distance == pytest.approx(102.0, rel=1e-6)
    assert grader.duration == pytest.approx(34.0)
    assert len(grader.gps_path) == 35
    assert grader.get_apft_score() == 100


def test_short_run_does_not_score(walk_north):
    grader = RunningGrader()
    grader.start_run(0.0)
    for fix in walk_north(4.0, 401):
        grader.update_gps_position(fix)
    grader.stop_run()

    assert grader.is_run_complete
    assert grader.get_apft_score() == 0
    assert grader.form_score == 0


def test_slow_pace_feedback(walk_north):
    grader = RunningGrader()
    grader.start_run(0.0)
    for fix in walk_north(1.0, 10):
        result = grader.update_gps_position(fix)
    assert result.form_fault == "Pick up the pace - running too slow"
    assert grader.current_form_score == 90.0


def test_apft_score_zero_while_running(walk_north):
    grader = RunningGrader()
    grader.start_run(0.0)
    grader.update_gps_position(walk_north(5.0, 1)[0])
    assert grader.get_apft_score() == 0
    assert grader.rep_count == 0
    assert grader.problem_joints == []

import numpy as np
import pytest

from pt_grader.config import GraderConfig
from pt_grader.graders import PushupStrategy, build_grader
from pt_grader.graders.base import PAUSE_MESSAGE
from pt_grader.landmarks import Landmark, PoseFrame, PoseLandmark
from pt_grader.rep_counter import NOT_VISIBLE_MESSAGE, UNKNOWN_STATE, Grader


def run(grader, frames):
    return [grader.process_frame(frame) for frame in frames]


def test_full_rep_is_counted_once(pushup_rep_frames):
    grader = build_grader("pushup")
    results = run(grader, pushup_rep_frames)

    increments = [r.rep_increment for r in results]
    assert sum(increments) == 1
    assert increments[-1] == 1
    assert grader.rep_count == 1
    assert grader.form_score == 100
    assert grader.phase == "up"
    assert not grader.cycle.is_open
    assert grader.get_apft_score() == 1


def test_extension_threshold_is_calibrated(pushup_rep_frames):
    grader = build_grader("pushup")
    run(grader, pushup_rep_frames[:5])
    assert grader.strategy.extension_angle == pytest.approx(165.0)
    assert grader.calibration.arm_extension_angle == grader.strategy.extension_angle
    assert 0.0 < grader.calibration_progress < 1.0


def test_fixed_threshold_without_adaptive_calibration(pushup_rep_frames):
    grader = Grader(PushupStrategy, GraderConfig(adaptive_calibration=False))
    run(grader, pushup_rep_frames)
    assert grader.strategy.extension_angle == 150.0
    assert grader.calibration_progress == 1.0
    assert grader.rep_count == 1


def test_phases_are_debounced(pushup_frame, build_frames):
    grader = build_grader("pushup")
    results = run(grader, build_frames(pushup_frame, [170] * 8 + [150, 120] + [170] * 5))

    assert grader.rep_count == 0
    assert all(r.state == "up" for r in results)
    assert not grader.cycle.is_open


def test_shallow_rep_is_not_counted(pushup_frame, build_frames):
    grader = build_grader("pushup")
    angles = [170] * 5 + [160, 150, 140, 130, 125, 125, 130, 140, 150, 160, 170, 170, 170, 170]
    run(grader, build_frames(pushup_frame, angles))
    assert grader.rep_count == 0
    assert grader.phase == "up"


def test_critical_fault_vetoes_the_rep(pushup_rep_frames, pushup_frame):
    frames = list(pushup_rep_frames)
    bottom = frames[13]
    frames[13] = pushup_frame(90, bottom.timestamp, hip_offset=0.1)

    grader = build_grader("pushup")
    results = run(grader, frames[:14])

    assert results[13].has_form_fault
    assert results[13].form_fault == "Keep your body straight - hips are sagging"
    assert results[13].form_score < 100
    assert PoseLandmark.LEFT_HIP in grader.problem_joints

    run(grader, frames[14:])
    assert grader.phase == "up"
    assert grader.rep_count == 0
    assert grader.form_score == 100


def test_not_visible_frame_is_ignored(pushup_frame):
    frame = pushup_frame(170, 0.0)
    landmarks = list(frame.landmarks)
    wrist = landmarks[PoseLandmark.LEFT_WRIST]
    landmarks[PoseLandmark.LEFT_WRIST] = Landmark(wrist.x, wrist.y, wrist.z, visibility=0.3)

    grader = build_grader("pushup")
    result = grader.process_frame(PoseFrame(landmarks, 0.0))

    assert result.state == UNKNOWN_STATE
    assert result.rep_increment == 0
    assert result.has_form_fault
    assert result.form_fault == NOT_VISIBLE_MESSAGE
    assert result.form_score is None
    assert not grader.calibration.baseline_captured
    assert grader.phase == "up"


def test_reset_clears_session(pushup_rep_frames):
    grader = build_grader("pushup")
    run(grader, pushup_rep_frames)
    grader.reset()
    assert grader.rep_count == 0
    assert grader.rep_scores == []
    assert not grader.calibration.baseline_captured


def test_random_frames_respect_bounds():
    rng = np.random.default_rng(7)
    grader = build_grader("pushup")
    last_count = 0
    for i in range(300):
        points = rng.uniform(0.0, 1.0, size=(33, 2))
        frame = PoseFrame([Landmark(x, y, 0.0, 0.9) for x, y in points], i * 0.05)
        result = grader.process_frame(frame)

        assert result.rep_increment in (0, 1)
        assert result.state in PushupStrategy.phases
        assert 0.0 <= result.form_score <= 100.0
        assert grader.rep_count >= last_count
        assert 0 <= grader.form_score <= 100
        last_count = grader.rep_count


def test_session_starting_at_the_bottom_does_not_count(pushup_frame, build_frames, pushup_rep_angles):
    angles = [90] * 6 + [100, 110, 120, 130, 140, 150, 160, 170] + [170] * 2
    grader = build_grader("pushup")
    results = run(grader, build_frames(pushup_frame, angles))

    assert [r.state for r in results[:2]] == ["up", "up"]
    assert results[-1].state == "up"
    assert grader.rep_count == 0

    # A proper rep from lockout afterwards still counts.
    run(grader, build_frames(pushup_frame, pushup_rep_angles, start=len(angles) * 0.1))
    assert grader.rep_count == 1


@pytest.mark.parametrize("interval", [0.01, 1.0])
def test_rep_outside_duration_window_is_rejected(pushup_frame, pushup_rep_angles, interval):
    frames = [pushup_frame(angle, i * interval) for i, angle in enumerate(pushup_rep_angles)]
    grader = build_grader("pushup")
    run(grader, frames)
    assert grader.phase == "up"
    assert grader.rep_count == 0


def test_holding_the_bottom_is_a_moderate_fault(pushup_frame, build_frames):
    angles = [170] * 5 + [160, 150, 140, 130, 120, 110, 100] + [90] * 30 + [
        100, 110, 120, 130, 140, 150, 160, 170, 170, 170
    ]
    grader = build_grader("pushup")
    results = run(grader, build_frames(pushup_frame, angles))

    paused = [r for r in results if r.form_fault == PAUSE_MESSAGE]
    assert paused
    assert all(r.form_score == 90.0 for r in paused)
    assert grader.rep_count == 1
    assert grader.rep_scores[0] < 100.0


def test_hidden_frame_mid_descent_leaves_state_untouched(pushup_rep_frames):
    grader = build_grader("pushup")
    run(grader, pushup_rep_frames[:11])
    assert grader.phase == "descending"

    visible = pushup_rep_frames[10]
    landmarks = list(visible.landmarks)
    elbow = landmarks[PoseLandmark.RIGHT_ELBOW]
    landmarks[PoseLandmark.RIGHT_ELBOW] = Landmark(elbow.x, elbow.y, elbow.z, visibility=0.1)

    before = (grader.phase, grader.state_frame_count, grader.strategy.calibrator.frames_seen)
    result = grader.process_frame(PoseFrame(landmarks, visible.timestamp + 0.05))

    assert result.state == UNKNOWN_STATE
    assert (grader.phase, grader.state_frame_count, grader.strategy.calibrator.frames_seen) == before
    assert grader.cycle.is_open

    run(grader, pushup_rep_frames[11:])
    assert grader.rep_count == 1


def test_form_scoring_disabled_still_vetoes_critical_faults(pushup_rep_frames, pushup_frame):
    config = GraderConfig(form_score_enabled=False)

    clean = Grader(PushupStrategy, config)
    results = run(clean, pushup_rep_frames)
    assert clean.rep_count == 1
    assert clean.rep_scores == []
    assert clean.form_score == 100
    assert all(r.form_score == 100.0 for r in results)

    frames = list(pushup_rep_frames)
    frames[13] = pushup_frame(90, frames[13].timestamp, hip_offset=0.1)
    faulty = Grader(PushupStrategy, config)
    results = run(faulty, frames)
    assert results[13].form_fault == "Keep your body straight - hips are sagging"
    assert results[13].form_score == 100.0
    assert faulty.rep_count == 0


def test_back_to_back_reps(pushup_frame, build_frames, pushup_rep_angles):
    grader = build_grader("pushup")
    first = build_frames(pushup_frame, pushup_rep_angles)
    run(grader, first)
    assert grader.rep_count == 1
    assert not grader.cycle.is_open
    assert grader.cycle.flags == {}

    run(grader, build_frames(pushup_frame, pushup_rep_angles[5:], start=len(first) * 0.1))
    assert grader.rep_count == 2
    assert len(grader.rep_scores) == 2
    assert not grader.cycle.is_open

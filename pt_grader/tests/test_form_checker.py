from pt_grader.form_checker import FormIssue, Severity, collect_joints, has_critical, score_issues, select_feedback


def test_score_issues_penalties_and_floor():
    assert score_issues([]) == 100.0
    issues = [
        FormIssue(Severity.CRITICAL, "a"),
        FormIssue(Severity.MODERATE, "b"),
        FormIssue(Severity.MINOR, "c"),
    ]
    assert score_issues(issues) == 65.0
    assert score_issues([FormIssue(Severity.CRITICAL, "x")] * 6) == 0.0


def test_select_feedback_prefers_critical():
    issues = [FormIssue(Severity.MINOR, "minor first"), FormIssue(Severity.CRITICAL, "critical later")]
    assert select_feedback(issues) == "critical later"
    assert select_feedback([FormIssue(Severity.MODERATE, "only")]) == "only"
    assert select_feedback([]) is None


def test_collect_joints_is_sorted_union():
    issues = [FormIssue(Severity.MINOR, "a", (24, 23)), FormIssue(Severity.MINOR, "b", (23, 11))]
    assert collect_joints(issues) == [11, 23, 24]


def test_has_critical():
    issue = FormIssue(Severity.CRITICAL, "Keep hips on the ground", (23, 24))
    assert has_critical([FormIssue(Severity.MINOR, "m"), issue])
    assert not has_critical([FormIssue(Severity.MINOR, "m")])

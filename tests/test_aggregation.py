import pytest

from aggregation import (
    GradingOptions,
    aggregate_results,
    finalize,
    regrade,
    summarize_results,
)
from errors import ConfigurationError, InvalidAssessmentError, NotFoundError
from grading import GradeResult, apply_manual_grade, grade_submission
from questions import Submission


@pytest.fixture
def three_tens(make_question):
    return [
        make_question("numeric", {"expected": i}, points=10, qid=f"q{i}") for i in range(1, 4)
    ]


def scored(qid, earned):
    return GradeResult(question_id=qid, earned_points=earned, is_correct=None, graded_by="t")


@pytest.mark.parametrize("earned,passed", [(17, False), (18, True)])
def test_passing_boundary_is_inclusive(three_tens, earned, passed):
    results = [scored("q1", 10), scored("q2", earned - 10), scored("q3", 0)]
    r = aggregate_results(three_tens, results, 0.6)
    assert r.total_score == earned and r.max_score == 30
    assert r.passed is passed
    assert r.pending_manual_grading is False


def test_aggregation_is_idempotent(three_tens):
    results = [scored("q1", 10), scored("q2", 5), scored("q3", 3)]
    assert aggregate_results(three_tens, results, 0.5) == aggregate_results(three_tens, results, 0.5)


def test_results_follow_question_order(three_tens):
    results = [scored("q3", 1), scored("q1", 2), scored("q2", 3)]
    r = aggregate_results(three_tens, results, 0.5)
    assert [g.question_id for g in r.results] == ["q1", "q2", "q3"]


def test_total_never_exceeds_max(three_tens):
    results = [scored("q1", 10), scored("q2", 10), scored("q3", 10)]
    r = aggregate_results(three_tens, results, 0.5)
    assert r.total_score <= r.max_score
    assert r.percentage == 100


def test_essay_only_assessment_stays_pending(make_question):
    essays = [make_question("essay", None, points=5, qid=f"e{i}") for i in range(2)]
    results = [grade_submission(q, Submission(question_id=q.id, answer="text")) for q in essays]
    r = aggregate_results(essays, results, 0.5)
    assert r.pending_manual_grading is True
    assert r.passed is None
    assert r.total_score == 0

    # one scored, one still pending: still provisional
    results[0] = apply_manual_grade(essays[0], results[0], 5)
    r = aggregate_results(essays, results, 0.5)
    assert r.pending_manual_grading is True and r.passed is None

    results[1] = apply_manual_grade(essays[1], results[1], 1)
    r = aggregate_results(essays, results, 0.5)
    assert r.pending_manual_grading is False
    assert r.total_score == 6 and r.passed is True


def test_missing_grade_result_is_provisional(three_tens):
    r = aggregate_results(three_tens, [scored("q1", 10)], 0.3)
    assert r.pending_manual_grading is True
    assert r.passed is None
    assert r.total_score == 10
    assert len(r.results) == 3


def test_zero_max_score_is_invalid(make_question):
    q = make_question("true-false", {"correct": True}, points=0)
    with pytest.raises(InvalidAssessmentError):
        aggregate_results([q], [], 0.5)
    with pytest.raises(InvalidAssessmentError):
        aggregate_results([], [], 0.5)


def test_dangling_grade_result(three_tens):
    with pytest.raises(NotFoundError):
        aggregate_results(three_tens, [scored("elsewhere", 1)], 0.5)


def test_duplicate_grade_results(three_tens):
    with pytest.raises(InvalidAssessmentError):
        aggregate_results(three_tens, [scored("q1", 1), scored("q1", 2)], 0.5)


def test_ratio_out_of_range(three_tens):
    with pytest.raises(ConfigurationError):
        aggregate_results(three_tens, [], 1.5)


def test_late_penalty_and_rounding(three_tens):
    results = [scored("q1", 10), scored("q2", 7), scored("q3", 3)]
    opts = GradingOptions(late_penalty_percent=10, round_to_nearest=0.5)
    on_time = aggregate_results(three_tens, results, 0.6, options=opts)
    late = aggregate_results(three_tens, results, 0.6, options=opts, late=True)
    assert on_time.total_score == 20
    assert late.total_score == 18  # 20 * 0.9
    assert late.passed is True


def test_regrade_makes_new_version(three_tens):
    first = aggregate_results(three_tens, [scored("q1", 10), scored("q2", 0), scored("q3", 0)], 0.6)
    second = regrade(first, three_tens, [scored("q1", 10), scored("q2", 10), scored("q3", 0)])
    assert first.version == 1 and first.passed is False
    assert second.version == 2 and second.passed is True
    assert second.passing_score_ratio == first.passing_score_ratio


def test_finalize(three_tens):
    done = aggregate_results(three_tens, [scored(q.id, 5) for q in three_tens], 0.5)
    assert finalize(done).finalized is True
    assert done.finalized is False

    pending = aggregate_results(three_tens, [scored("q1", 5)], 0.5)
    with pytest.raises(InvalidAssessmentError):
        finalize(pending)


def test_summarize_results(three_tens):
    a = aggregate_results(three_tens, [scored(q.id, 10) for q in three_tens], 0.6)
    b = aggregate_results(three_tens, [scored(q.id, 0) for q in three_tens], 0.6)
    c = aggregate_results(three_tens, [scored("q1", 10)], 0.6)
    s = summarize_results([a, b, c])
    assert s.count == 3 and s.pending == 1
    assert s.average_score == 15
    assert s.pass_rate == 50

from __future__ import annotations

import random

from assessment_core.errors import InvalidTransition, RetryNotAllowed
from assessment_core.session import Phase, Session, start_session
from assessment_core.types import Assessment, TrueFalseItem

from tests.conftest import FIXED_NOW, build_sample_assessment, correct_responses, fixed_clock


def _tf_assessment(**settings) -> Assessment:
    return Assessment(items=(TrueFalseItem(id="q", points=1, answer=True),), **settings)


def test_single_true_false_wrong_answer_fails():
    sess = start_session(_tf_assessment(passing_score_percent=50))
    assert sess.submit_response("q", False) is None
    assert sess.advance() is None
    res = sess.current_result
    assert res.score_percent == 0 and res.passed is False


def test_single_true_false_right_answer_passes():
    sess = start_session(_tf_assessment(passing_score_percent=50), clock=fixed_clock)
    sess.submit_response("q", True)
    sess.advance()
    res = sess.current_result
    assert res.score_percent == 100 and res.passed is True
    assert res.correct_count == 1 and res.total_count == 1
    assert res.attempt_number == 1
    assert res.completed_at == FIXED_NOW.isoformat()


def test_transitions_before_start_are_rejected():
    sess = Session(_tf_assessment())
    for call in (lambda: sess.tick(1), sess.advance, sess.go_back, sess.complete, lambda: sess.submit_response("q", True)):
        err = call()
        assert isinstance(err, InvalidTransition)
    assert sess.phase is Phase.NOT_STARTED
    assert isinstance(sess.retry(), InvalidTransition)


def test_stray_events_after_completion_do_not_change_state():
    sess = start_session(_tf_assessment(), clock=fixed_clock)
    sess.submit_response("q", True)
    sess.complete()
    before = sess.current_result
    assert isinstance(sess.submit_response("q", False), InvalidTransition)
    assert isinstance(sess.tick(1), InvalidTransition)
    assert isinstance(sess.advance(), InvalidTransition)
    assert isinstance(sess.start(), InvalidTransition)
    assert sess.responses == {"q": True}
    assert sess.current_result is before


def test_current_result_raises_until_completed():
    sess = start_session(_tf_assessment())
    assert sess.result is None
    try:
        sess.current_result
    except InvalidTransition as exc:
        assert exc.code == "invalid_transition"
    else:
        raise AssertionError("expected InvalidTransition")


def test_unknown_item_is_rejected():
    sess = start_session(_tf_assessment())
    err = sess.submit_response("nope", True)
    assert isinstance(err, InvalidTransition)
    assert sess.responses == {}


def test_navigation_keeps_responses():
    sess = start_session(build_sample_assessment(), clock=fixed_clock)
    assert isinstance(sess.go_back(), InvalidTransition)
    first = sess.current_item
    sess.submit_response(first.id, "anything")
    sess.advance()
    assert sess.current_index == 1
    sess.go_back()
    assert sess.current_index == 0
    assert sess.responses[first.id] == "anything"
    assert sess.phase is Phase.IN_PROGRESS


def test_advance_past_last_item_completes():
    assessment = build_sample_assessment()
    sess = start_session(assessment, clock=fixed_clock)
    answers = correct_responses()
    for _ in range(len(assessment.items)):
        sess.submit_response(sess.current_item.id, answers[sess.current_item.id])
        sess.advance()
    assert sess.phase is Phase.COMPLETED
    assert sess.current_result.score_percent == 100
    assert sess.progress == 1.0


def test_submit_overwrites_previous_response():
    sess = start_session(_tf_assessment())
    sess.submit_response("q", False)
    sess.submit_response("q", True)
    sess.complete()
    assert sess.current_result.score_percent == 100


def test_no_time_limit_never_expires():
    sess = start_session(_tf_assessment())
    for _ in range(10_000):
        assert sess.tick(1) is None
    assert sess.phase is Phase.IN_PROGRESS
    assert sess.time_remaining is None
    assert sess.elapsed_seconds == 10_000


def test_time_limit_forces_completion_with_partial_answers():
    assessment = build_sample_assessment(time_limit_seconds=1, passing_score_percent=50)
    sess = start_session(assessment, clock=fixed_clock)
    first = sess.current_item
    sess.submit_response(first.id, correct_responses()[first.id])
    for _ in range(59):
        sess.tick(1)
    assert sess.phase is Phase.IN_PROGRESS
    assert sess.time_remaining == 1
    sess.tick(1)
    assert sess.phase is Phase.COMPLETED
    res = sess.current_result
    assert res.elapsed_seconds == 60
    assert res.correct_count == 1
    assert res.passed is False


def test_negative_tick_is_rejected():
    sess = start_session(_tf_assessment())
    assert isinstance(sess.tick(-1), InvalidTransition)
    assert sess.elapsed_seconds == 0


def test_non_finite_tick_is_rejected_and_completion_still_works():
    sess = start_session(_tf_assessment(), clock=fixed_clock)
    sess.tick(3)
    for bad in (float("nan"), float("inf"), True, "5"):
        assert isinstance(sess.tick(bad), InvalidTransition)
    assert sess.elapsed_seconds == 3
    assert sess.complete() is None
    assert sess.current_result.elapsed_seconds == 3
    assert sess.result is sess.current_result


def test_shuffle_uses_injected_random_source():
    assessment = build_sample_assessment(shuffle=True)
    a = start_session(assessment, rng=random.Random(7))
    b = start_session(assessment, rng=random.Random(7))
    assert a.order == b.order
    assert sorted(a.order) == sorted(it.id for it in assessment.items)


def test_identity_order_without_shuffle():
    assessment = build_sample_assessment()
    sess = start_session(assessment, rng=random.Random(1))
    assert sess.order == [it.id for it in assessment.items]


def test_retry_not_allowed_keeps_attempt_number():
    sess = start_session(_tf_assessment(allow_retry=False))
    sess.complete()
    out = sess.retry()
    assert isinstance(out, RetryNotAllowed)
    assert sess.attempt_number == 1


def test_retry_creates_fresh_session_until_max_attempts():
    sess = start_session(_tf_assessment(allow_retry=True, max_attempts=2))
    sess.submit_response("q", False)
    sess.complete()
    second = sess.retry()
    assert isinstance(second, Session)
    assert second is not sess
    assert second.attempt_number == 2
    assert second.phase is Phase.NOT_STARTED
    assert second.responses == {}
    assert sess.current_result.attempt_number == 1

    second.start()
    second.submit_response("q", True)
    second.complete()
    assert second.current_result.score_percent == 100
    assert second.current_result.attempt_number == 2
    assert isinstance(second.retry(), RetryNotAllowed)


def test_review_lists_every_item_in_play_order():
    sess = start_session(build_sample_assessment(), clock=fixed_clock)
    sess.submit_response("tf1", True)
    sess.submit_response("sc1", "A database")
    sess.complete()
    rows = {r.item_id: r for r in sess.review()}
    assert rows["tf1"].answered and rows["tf1"].correct
    assert rows["sc1"].answered and not rows["sc1"].correct
    assert not rows["dd1"].answered and not rows["dd1"].correct
    assert [r.position for r in sess.review()] == list(range(len(rows)))


def test_snapshot_reports_progress():
    sess = start_session(build_sample_assessment(time_limit_seconds=2))
    snap = sess.to_dict()
    assert snap["phase"] == "in-progress"
    assert snap["total_count"] == 8
    assert snap["time_remaining"] == 120
    assert snap["progress"] == 1 / 8

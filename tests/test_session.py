"""Tests for the session state machine on a manual clock.

Covers:
  - Countdown progression and question selection
  - Cancellation during the countdown (no stray callbacks)
  - Live face evaluation while the question is active
  - Submission by the user and by the deadline, exactly once
  - Judge failure fallback in the final result
  - Audio tracking through an attached analyzer
"""
import threading
import time
from unittest.mock import patch

import pytest

from interview_coach.infrastructure.vision import GeometryScores
from interview_coach.interview import (
    SessionStateMachine, SessionPhase, EventType, QUESTION_BANK, AudioSample,
    FeedbackMessages, JUDGE_FALLBACK_FEEDBACK,
)
from interview_coach.interview.testing import (
    MockJudgeClient, FailingJudgeClient, create_mock_session, run_to_active,
    make_face_frame, make_face_points, make_spectrum, silence, TestSessionResult,
)
from interview_coach.utils.timers import ThreadingScheduler


class SlowJudgeClient(MockJudgeClient):
    def evaluate(self, question, answer, face_score):
        time.sleep(0.05)
        return super().evaluate(question, answer, face_score)


# ---------------------------------------------------------------------------
# Countdown
# ---------------------------------------------------------------------------


class TestCountdown:
    def test_start_enters_countdown(self, session) -> None:
        session.start()
        assert session.phase == SessionPhase.COUNTDOWN
        assert session.state.countdown_remaining == 5

    def test_countdown_ticks_once_per_second(self, session) -> None:
        session.start()
        session.scheduler.advance(1)
        assert session.state.countdown_remaining == 4
        session.scheduler.advance(3)
        assert session.state.countdown_remaining == 1
        assert session.phase == SessionPhase.COUNTDOWN

    def test_question_starts_after_countdown(self, session) -> None:
        run_to_active(session)
        assert session.phase == SessionPhase.ACTIVE
        assert session.state.question in QUESTION_BANK
        assert session.state.deadline == pytest.approx(65.0)
        assert session.time_left() == pytest.approx(60.0)

    def test_start_twice_raises(self, session) -> None:
        session.start()
        with pytest.raises(RuntimeError):
            session.start()

    def test_zero_countdown_starts_question_immediately(self) -> None:
        machine = create_mock_session(countdown_seconds=0)
        machine.start()
        assert machine.phase == SessionPhase.ACTIVE

    def test_seeded_question_choice_is_repeatable(self) -> None:
        first = run_to_active(create_mock_session(seed=3))
        second = run_to_active(create_mock_session(seed=3))
        assert first.state.question == second.state.question

    def test_invalid_construction(self) -> None:
        with pytest.raises(ValueError):
            SessionStateMachine(judge_client=MockJudgeClient(), questions=())
        with pytest.raises(ValueError):
            SessionStateMachine(judge_client=MockJudgeClient(), time_limit=0)


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------


class TestCancellation:
    def test_cancel_during_countdown(self, session) -> None:
        started = []
        session.event_bus.subscribe(EventType.QUESTION_STARTED, started.append)
        session.start()
        session.scheduler.advance(2)

        assert session.cancel() is True
        assert session.phase == SessionPhase.CANCELLED
        assert session.scheduler.pending == 0

        session.scheduler.advance(120)
        assert session.phase == SessionPhase.CANCELLED
        assert session.state.question == ""
        assert started == []
        assert session.result is None

    def test_cancel_active_question_stops_deadline(self, session, judge) -> None:
        run_to_active(session)
        session.cancel()
        session.scheduler.advance(120)
        assert session.result is None
        assert judge.request_history == []

    def test_cancel_after_conclusion_is_noop(self, session) -> None:
        run_to_active(session)
        session.submit()
        assert session.cancel() is False
        assert session.phase == SessionPhase.CONCLUDED

    def test_cancel_before_start(self, session) -> None:
        assert session.cancel() is True
        with pytest.raises(RuntimeError):
            session.start()


# ---------------------------------------------------------------------------
# Live evaluation
# ---------------------------------------------------------------------------


class TestLiveEvaluation:
    def test_frames_ignored_outside_active_phase(self, session, neutral_frame) -> None:
        assert session.on_landmarks(neutral_frame, 1.0) is None
        session.start()
        assert session.on_landmarks(neutral_frame, 1.0) is None
        assert session.state.previous_frame is None

    def test_neutral_face_evaluation(self, session, neutral_frame) -> None:
        run_to_active(session)
        evaluation = session.on_landmarks(neutral_frame, 1.0)
        assert evaluation.face_score == pytest.approx(100.0)
        assert evaluation.live_score == pytest.approx(10.0)
        assert evaluation.feedback == FeedbackMessages.GOOD_EYE_CONTACT
        assert session.state.previous_frame is neutral_frame

    def test_raw_points_are_accepted(self, session) -> None:
        run_to_active(session)
        evaluation = session.on_landmarks(make_face_points().tolist(), 1.0)
        assert evaluation is not None

    @pytest.mark.parametrize("points", [
        [[0.5, 0.5, 0.0]] * 467 + [[0.5]],
        [{"x": 0.5}],
        [None],
    ])
    def test_malformed_points_are_skipped(self, session, neutral_frame, points) -> None:
        errors = []
        session.event_bus.subscribe(EventType.ERROR_OCCURRED, errors.append)
        run_to_active(session)
        session.on_landmarks(neutral_frame, 1.0)
        assert session.on_landmarks(points, 0.9) is None
        assert session.phase == SessionPhase.ACTIVE
        assert [e.data["component"] for e in errors] == ["landmarks"]
        assert session.get_metrics()["errors_occurred"] == 1
        assert session.state.face_score == pytest.approx(100.0)
        assert session.state.previous_frame is neutral_frame

    def test_missing_face_is_skipped(self, session, neutral_frame) -> None:
        run_to_active(session)
        session.on_landmarks(neutral_frame, 1.0)
        assert session.on_landmarks(None) is None
        assert session.state.face_score == pytest.approx(100.0)

    def test_stability_compares_with_previous_frame(self, session) -> None:
        run_to_active(session)
        session.on_landmarks(make_face_frame(), 0.8)
        evaluation = session.on_landmarks(make_face_frame(offset=(0.01, 0.0)), 0.8)
        assert evaluation.scores.stability == pytest.approx(80.0)

    def test_low_stability_scenario(self, session) -> None:
        run_to_active(session)
        with patch("interview_coach.interview.services.score_frame",
                   return_value=GeometryScores(35.0, 10.0, 28.0)):
            evaluation = session.on_landmarks(make_face_frame())
        assert evaluation.face_score == pytest.approx(25.4)
        assert FeedbackMessages.HOLD_HEAD_STEADY in evaluation.feedback
        assert FeedbackMessages.GOOD_EYE_CONTACT not in evaluation.feedback

    def test_snapshot(self, session, neutral_frame) -> None:
        run_to_active(session)
        session.on_landmarks(neutral_frame, 1.0)
        snap = session.snapshot()
        assert snap["phase"] == "active"
        assert snap["faceScore"] == pytest.approx(100.0)
        assert snap["faceScoreDetails"]["eyeContact"] == pytest.approx(40.0)


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------


class TestSubmission:
    def test_user_submission(self, session, judge, neutral_frame) -> None:
        run_to_active(session)
        session.on_landmarks(neutral_frame, 1.0)
        session.update_transcript("  I build reliable backend systems.  ")
        result = session.submit()

        assert session.phase == SessionPhase.CONCLUDED
        assert result.total_score == 82  # 80 * 0.9 + 100 * 0.1
        assert result.grade == "A"
        assert result.ai_score == 80.0
        assert result.used_default_score is False
        assert result.submitted_by == "user"
        assert result.answer == "I build reliable backend systems."
        assert judge.request_history[0]["answer"] == "I build reliable backend systems."
        TestSessionResult.assert_valid_result(result)

    def test_deadline_submits_once(self, session, judge) -> None:
        run_to_active(session)
        session.scheduler.advance(60)
        assert session.phase == SessionPhase.CONCLUDED
        assert session.result.submitted_by == "timeout"
        assert session.submit() is None
        assert len(judge.request_history) == 1

    def test_submission_is_idempotent(self, session, judge) -> None:
        run_to_active(session)
        result = session.submit()
        assert session.submit() is None
        session.scheduler.advance(120)
        assert session.result is result
        assert len(judge.request_history) == 1

    def test_submit_before_question_is_ignored(self, session) -> None:
        session.start()
        assert session.submit() is None
        assert session.phase == SessionPhase.COUNTDOWN

    def test_concurrent_submissions_produce_one_result(self) -> None:
        judge = SlowJudgeClient()
        machine = run_to_active(create_mock_session(judge_client=judge))
        results = []
        threads = [threading.Thread(target=lambda: results.append(machine.submit())) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len([r for r in results if r is not None]) == 1
        assert len(judge.request_history) == 1

    def test_judge_failure_uses_default_score(self, failing_judge) -> None:
        machine = run_to_active(create_mock_session(judge_client=failing_judge))
        machine.state.face_score = 80.0
        result = machine.submit()

        assert result.total_score == 53
        assert result.used_default_score is True
        assert result.ai_score is None
        assert result.ai_feedback == JUDGE_FALLBACK_FEEDBACK
        assert machine.get_metrics()["judge_fallbacks"] == 1
        TestSessionResult.assert_valid_result(result)

    def test_wait_for_result_with_real_timers(self, judge) -> None:
        machine = SessionStateMachine(
            judge_client=judge,
            countdown_seconds=0,
            time_limit=0.05,
            scheduler=ThreadingScheduler(),
        )
        machine.start()
        result = machine.wait_for_result(timeout=5.0)
        assert result is not None
        assert result.submitted_by == "timeout"

    def test_event_order(self, session) -> None:
        seen = []
        session.event_bus.subscribe_all(lambda e: seen.append(e.event_type))
        run_to_active(session)
        session.submit()
        assert seen == (
            [EventType.SESSION_STARTED]
            + [EventType.COUNTDOWN_TICK] * 5
            + [EventType.QUESTION_STARTED, EventType.SUBMISSION_STARTED, EventType.SESSION_CONCLUDED]
        )


# ---------------------------------------------------------------------------
# Audio tracking
# ---------------------------------------------------------------------------


class TestAudioTracking:
    def test_analyzer_samples_update_speaking_time(self) -> None:
        machine = create_mock_session(with_analyzer=True)
        machine.start()
        for _ in range(5):
            machine.on_audio_buffer(silence())
        assert machine.audio_analyzer.is_calibrated
        assert machine.state.audio_tracking.speaking_time_ms == 0

        machine.scheduler.advance(6)
        for _ in range(4):
            machine.on_audio_buffer(make_spectrum(17.0))

        tracking = machine.state.audio_tracking
        assert tracking.speaking_time_ms == 200
        assert tracking.total_time_ms == 6000
        assert len(tracking.volume_history) == 2

    def test_analyzer_stops_at_submission(self) -> None:
        machine = run_to_active(create_mock_session(with_analyzer=True))
        machine.submit()
        assert machine.audio_analyzer.is_running is False

    def test_buffer_without_analyzer_raises(self, session) -> None:
        with pytest.raises(RuntimeError):
            session.on_audio_buffer(silence())

    def test_history_is_bounded(self, session) -> None:
        run_to_active(session)
        for _ in range(150):
            session.on_audio_sample(AudioSample(volume=0.5, frequency=220.0, is_speaking=True))
        tracking = session.state.audio_tracking
        assert len(tracking.volume_history) == 100
        assert len(tracking.frequency_history) == 100
        assert tracking.speaking_time_ms == 15000

"""Integration tests for the care pipeline's user-action flow."""

import json
import threading
from datetime import date
from unittest.mock import MagicMock

import pytest

from care_intelligence.config import AppConfig
from care_intelligence.errors import ValidationError
from care_intelligence.feedback import DEFAULT_FAILURE_POINTS, FAILURE_REPORT_TEXT
from care_intelligence.pipeline import CarePipeline
from care_intelligence.schemas import AnswerIntent, EmotionIntent, RoutineIntent


DAY = "2026-10-14"
THERAPIST = "1"


def _responses(*items):
    """genai client mock returning (or raising) each item in turn."""
    effects = []
    for item in items:
        if isinstance(item, Exception):
            effects.append(item)
        else:
            effects.append(MagicMock(text=json.dumps(item, ensure_ascii=False)))
    client = MagicMock()
    client.models.generate_content.side_effect = effects
    return client


def _feedback_messages(pipeline, user_id):
    return [m for m in pipeline.store.get_messages(user_id, THERAPIST) if m.type == "feedback"]


@pytest.fixture
def pipeline(app_config, memory_store):
    return CarePipeline(app_config, store=memory_store)


# ─────────────────────────────────────────────────────────────────
# Transcript handling
# ─────────────────────────────────────────────────────────────────


class TestHandleTranscript:
    def test_routine_record_created(self, pipeline, user_id):
        outcome = pipeline.handle_transcript(user_id, "Walk the dog")

        assert isinstance(outcome.intent, RoutineIntent)
        assert outcome.reply == "Added to your list."
        assert [r.label for r in pipeline.store.get_routines(user_id)] == ["New Task"]

    def test_emotion_record_created(self, pipeline, user_id):
        outcome = pipeline.handle_transcript(user_id, "I am sad")

        assert isinstance(outcome.intent, EmotionIntent)
        emotions = pipeline.store.get_emotions(user_id)
        assert [e.label for e in emotions] == ["Emotion"]
        assert emotions[0].intensity == 3

    def test_answer_creates_nothing(self, app_config, memory_store, user_id):
        client = _responses({"intent": "ANSWER", "reply": "We played outside."})
        pipeline = CarePipeline(app_config, store=memory_store, client=client)

        outcome = pipeline.handle_transcript(user_id, "we played outside")

        assert isinstance(outcome.intent, AnswerIntent)
        assert outcome.record is None
        assert pipeline.store.get_routines(user_id) == []
        assert pipeline.store.get_emotions(user_id) == []

    @pytest.mark.parametrize("transcript", ["", "   ", None])
    def test_empty_transcript_rejected(self, pipeline, user_id, transcript):
        with pytest.raises(ValidationError) as exc:
            pipeline.handle_transcript(user_id, transcript)
        assert exc.value.code == "EMPTY_TRANSCRIPT"


# ─────────────────────────────────────────────────────────────────
# Day flow
# ─────────────────────────────────────────────────────────────────


class TestDayFlow:
    def test_questions_generated_once_per_day(self, app_config, memory_store, user_id):
        client = _responses(
            [
                {"id": "a", "text": "Sleep ok?", "emoji": "😴"},
                {"id": "b", "text": "Any worries?", "emoji": "😟"},
            ]
        )
        pipeline = CarePipeline(app_config, store=memory_store, client=client)

        first = pipeline.start_day(user_id, THERAPIST, day=DAY)
        second = pipeline.start_day(user_id, THERAPIST, day=DAY)

        assert first is second
        assert [q.id for q in second.questions] == ["a", "b"]
        assert client.models.generate_content.call_count == 1

    def test_start_day_requires_therapist(self, pipeline, user_id):
        with pytest.raises(ValidationError):
            pipeline.start_day(user_id, "3", day=DAY)
        with pytest.raises(ValidationError):
            pipeline.start_day(user_id, "999", day=DAY)

    def test_answer_set_at_most_once(self, pipeline, user_id):
        state = pipeline.start_day(user_id, THERAPIST, day=DAY)
        qid = state.questions[0].id

        pipeline.answer_question(user_id, qid, "Slept well", day=DAY)

        assert state.question(qid).answer == "Slept well"
        with pytest.raises(ValidationError) as exc:
            pipeline.answer_question(user_id, qid, "Changed my mind", day=DAY)
        assert exc.value.code == "ALREADY_ANSWERED"

    def test_unknown_question_rejected(self, pipeline, user_id):
        pipeline.start_day(user_id, THERAPIST, day=DAY)

        with pytest.raises(ValidationError):
            pipeline.answer_question(user_id, "nope", "x", day=DAY)

    def test_complete_before_start_rejected(self, pipeline, user_id):
        with pytest.raises(ValidationError) as exc:
            pipeline.complete_day(user_id, day=DAY)
        assert exc.value.code == "DAY_NOT_STARTED"

    def test_complete_day_persists_feedback_message(self, app_config, memory_store, user_id):
        client = _responses(
            [
                {"id": "a", "text": "Sleep ok?", "emoji": "😴"},
                {"id": "b", "text": "Any worries?", "emoji": "😟"},
            ],
            {"text": "Strong day with routines.", "points": 640},
        )
        pipeline = CarePipeline(app_config, store=memory_store, client=client)
        pipeline.start_day(user_id, THERAPIST, day=DAY)
        routine = pipeline.add_routine(user_id, "Brush teeth", "🦷")
        pipeline.toggle_routine(user_id, routine.id, True)

        report = pipeline.complete_day(user_id, day=DAY)

        assert report.points == 100
        messages = _feedback_messages(pipeline, user_id)
        assert len(messages) == 1
        assert messages[0].sender_id == THERAPIST
        assert messages[0].text == "Strong day with routines."
        assert messages[0].points == 100
        prompt = client.models.generate_content.call_args.kwargs["contents"]
        assert "Brush teeth" in prompt


# ─────────────────────────────────────────────────────────────────
# Day completion guard
# ─────────────────────────────────────────────────────────────────


class TestCompleteDayGuard:
    def test_failure_mid_synthesis_yields_one_report(self, app_config, memory_store, user_id):
        client = _responses(
            [
                {"id": "a", "text": "Sleep ok?", "emoji": "😴"},
                {"id": "b", "text": "Any worries?", "emoji": "😟"},
            ],
            ConnectionError("connection dropped"),
        )
        pipeline = CarePipeline(app_config, store=memory_store, client=client)
        pipeline.start_day(user_id, THERAPIST, day=DAY)

        first = pipeline.complete_day(user_id, day=DAY)
        second = pipeline.complete_day(user_id, day=DAY)

        assert first == second
        assert first.text == FAILURE_REPORT_TEXT
        assert first.points == DEFAULT_FAILURE_POINTS
        assert len(_feedback_messages(pipeline, user_id)) == 1
        assert client.models.generate_content.call_count == 2

    def test_concurrent_completion_synthesizes_once(self, pipeline, user_id):
        pipeline.start_day(user_id, THERAPIST, day=DAY)
        real = pipeline.synthesizer.synthesize
        pipeline.synthesizer.synthesize = MagicMock(side_effect=real)

        threads = [threading.Thread(target=pipeline.complete_day, args=(user_id, DAY)) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert pipeline.synthesizer.synthesize.call_count == 1
        assert len(_feedback_messages(pipeline, user_id)) == 1

    def test_days_are_independent(self, pipeline, user_id):
        pipeline.start_day(user_id, THERAPIST, day="2026-10-13")
        pipeline.start_day(user_id, THERAPIST, day="2026-10-14")

        pipeline.complete_day(user_id, day="2026-10-13")
        pipeline.complete_day(user_id, day="2026-10-14")

        assert len(_feedback_messages(pipeline, user_id)) == 2

    def test_settled_earlier_days_are_evicted(self, pipeline, user_id):
        pipeline.start_day(user_id, THERAPIST, day="2026-10-11")
        pipeline.complete_day(user_id, day="2026-10-11")
        pipeline.start_day(user_id, THERAPIST, day="2026-10-12")
        pipeline.day_state("other-user", day="2026-10-10")

        pipeline.start_day(user_id, THERAPIST, day="2026-10-14")

        assert (user_id, "2026-10-11") not in pipeline._days
        assert (user_id, "2026-10-11") not in pipeline._day_locks
        assert (user_id, "2026-10-12") in pipeline._days
        assert ("other-user", "2026-10-10") in pipeline._days
        pipeline.complete_day(user_id, day="2026-10-12")
        assert len(_feedback_messages(pipeline, user_id)) == 2


# ─────────────────────────────────────────────────────────────────
# Messages and analytics
# ─────────────────────────────────────────────────────────────────


class TestMessagesAndProgress:
    def test_send_message(self, pipeline, user_id):
        message = pipeline.send_message(user_id, "4", "  See you at 3  ")

        assert message.sender_id == "me"
        assert message.text == "See you at 3"
        assert pipeline.store.get_messages(user_id, "4") == [message]

    def test_send_to_unknown_contact_rejected(self, pipeline, user_id):
        with pytest.raises(ValidationError):
            pipeline.send_message(user_id, "42", "hello")

    def test_progress_report(self, pipeline, user_id):
        for text in ["great", "fine", "bad", "fine", "progress"]:
            pipeline.send_message(user_id, THERAPIST, text)
        pipeline.add_emotion(user_id, "Happy", "😊")
        pipeline.add_emotion(user_id, "Happy", "😊")
        pipeline.add_emotion(user_id, "Sad", "😢")
        pipeline.add_routine(user_id, "Brush teeth", "🦷")

        today = date(2026, 10, 14)
        report = pipeline.progress_report(user_id, THERAPIST, today=today)

        assert [(b.label, b.count) for b in report.emotions] == [("Happy", 2), ("Sad", 1)]
        assert report.insight == "Mostly positive emotions! Great week."
        assert report.routines[today.weekday()].total == 1
        assert len(report.wellness) == 5
        assert report.routine_progress == 0.0

    def test_progress_requires_therapist(self, pipeline, user_id):
        with pytest.raises(ValidationError):
            pipeline.progress_report(user_id, "3")

    def test_therapist_roster(self, pipeline):
        assert [c.name for c in pipeline.therapists()] == [
            "Dr. Sandeep",
            "Dr. Sujatha",
            "Dr. George Stephen",
            "Dr. Fathima Rasool",
        ]

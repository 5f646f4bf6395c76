"""Unit tests for daily question generation."""

import pytest

from care_intelligence.errors import SchemaViolation
from care_intelligence.questions import (
    FAILURE_QUESTIONS,
    OFFLINE_QUESTIONS,
    DailyQuestionGenerator,
    decode_questions,
)


def _texts(questions):
    return [q.text for q in questions]


class TestGenerate:
    def test_offline_returns_two_canned_questions(self, offline_llm):
        questions = DailyQuestionGenerator(offline_llm).generate()

        assert len(questions) == 2
        assert _texts(questions) == [text for _, text, _ in OFFLINE_QUESTIONS]
        assert all(q.answer is None for q in questions)

    def test_failure_returns_failure_set(self, llm_factory):
        llm = llm_factory(error=ConnectionError("down"))

        questions = DailyQuestionGenerator(llm).generate()

        assert _texts(questions) == [text for _, text, _ in FAILURE_QUESTIONS]

    def test_model_questions_used(self, llm_factory):
        llm = llm_factory(
            [
                {"id": "a", "text": "Did you sleep well?", "emoji": "😴"},
                {"id": "b", "text": "Did you see a friend?", "emoji": "🧑‍🤝‍🧑"},
                {"id": "c", "text": "Any worries today?", "emoji": "😟"},
            ]
        )

        questions = DailyQuestionGenerator(llm).generate()

        assert [q.id for q in questions] == ["a", "b", "c"]

    def test_too_few_questions_falls_back(self, llm_factory):
        llm = llm_factory([{"id": "a", "text": "Only one?", "emoji": "❓"}])

        questions = DailyQuestionGenerator(llm).generate()

        assert len(questions) == 2
        assert _texts(questions) == [text for _, text, _ in FAILURE_QUESTIONS]

    def test_returns_fresh_objects_each_call(self, offline_llm):
        generator = DailyQuestionGenerator(offline_llm)
        first = generator.generate()
        first[0].answer = "ok"

        assert generator.generate()[0].answer is None


class TestDecodeQuestions:
    def test_truncates_to_three(self):
        payload = [{"id": str(i), "text": f"Q{i}", "emoji": "🙂"} for i in range(5)]

        assert len(decode_questions(payload)) == 3

    def test_skips_malformed_items(self):
        payload = [
            {"id": "1", "text": "Good?", "emoji": "🙂"},
            {"id": "2", "text": "", "emoji": "🙂"},
            "not-a-dict",
            {"id": "3", "text": "Sleep?", "emoji": "😴"},
        ]

        assert [q.id for q in decode_questions(payload)] == ["1", "3"]

    def test_duplicate_ids_rejected(self):
        payload = [
            {"id": "1", "text": "A?", "emoji": "🙂"},
            {"id": "1", "text": "B?", "emoji": "🙂"},
        ]

        with pytest.raises(SchemaViolation):
            decode_questions(payload)

    def test_accepts_wrapped_object(self):
        payload = {
            "questions": [
                {"id": "1", "text": "A?", "emoji": "🙂"},
                {"id": "2", "text": "B?", "emoji": "🙂"},
            ]
        }

        assert len(decode_questions(payload)) == 2

    def test_rejects_scalar(self):
        with pytest.raises(SchemaViolation):
            decode_questions("two questions")

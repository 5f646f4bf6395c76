"""Daily check-in question generation with canned fallbacks."""

from __future__ import annotations

import logging
from typing import Any, List

from google.genai import types as genai_types

from .errors import SchemaViolation, ServiceUnavailable
from .llm import GenAIJSONClient
from .schemas import DailyQuestion


logger = logging.getLogger(__name__)


MIN_QUESTIONS = 2
MAX_QUESTIONS = 3

# Served when no credential is configured at all.
OFFLINE_QUESTIONS = [
    ("1", "How did you sleep last night?", "😴"),
    ("2", "What is making you happy today?", "😊"),
]

# Served when a configured call fails or returns an unusable shape.
FAILURE_QUESTIONS = [
    ("1", "How are you feeling right now?", "🤔"),
    ("2", "Did anything make you upset today?", "🌧️"),
]

PROMPT = (
    "Generate 2 or 3 simple, friendly, short questions for a neurodivergent individual "
    "(child or adult) that will help a therapist understand their daily mental health status "
    "(e.g. sleep, anxiety, mood, social interaction). "
    "Return a JSON array of objects with 'id', 'text', and 'emoji'."
)

QUESTIONS_SCHEMA = genai_types.Schema(
    type=genai_types.Type.ARRAY,
    items=genai_types.Schema(
        type=genai_types.Type.OBJECT,
        properties={
            "id": genai_types.Schema(type=genai_types.Type.STRING),
            "text": genai_types.Schema(type=genai_types.Type.STRING),
            "emoji": genai_types.Schema(type=genai_types.Type.STRING),
        },
        required=["id", "text", "emoji"],
    ),
)


def _canned(rows) -> List[DailyQuestion]:
    return [DailyQuestion(id=qid, text=text, emoji=emoji) for qid, text, emoji in rows]


def decode_questions(payload: Any) -> List[DailyQuestion]:
    """Validate a raw model payload into 2-3 questions with unique ids."""
    if isinstance(payload, dict) and isinstance(payload.get("questions"), list):
        payload = payload["questions"]
    if not isinstance(payload, list):
        raise SchemaViolation("Question response must be a JSON array")

    questions: List[DailyQuestion] = []
    seen = set()
    for item in payload:
        if not isinstance(item, dict):
            continue
        qid = str(item.get("id", "")).strip()
        text = item.get("text")
        emoji = item.get("emoji")
        if not qid or not isinstance(text, str) or not text.strip():
            continue
        if not isinstance(emoji, str) or not emoji.strip():
            continue
        if qid in seen:
            raise SchemaViolation(f"Duplicate question id: {qid}")
        seen.add(qid)
        questions.append(DailyQuestion(id=qid, text=text.strip(), emoji=emoji.strip()))

    if len(questions) < MIN_QUESTIONS:
        raise SchemaViolation(f"Expected at least {MIN_QUESTIONS} questions, got {len(questions)}")
    return questions[:MAX_QUESTIONS]


class DailyQuestionGenerator:
    """Produces the day's short check-in question set."""

    def __init__(self, client: GenAIJSONClient, temperature: float = 0.7):
        self.client = client
        self.temperature = temperature

    def generate(self) -> List[DailyQuestion]:
        if not self.client.available:
            logger.warning("No model credential; serving offline check-in questions")
            return _canned(OFFLINE_QUESTIONS)

        try:
            payload = self.client.generate_json(PROMPT, QUESTIONS_SCHEMA, temperature=self.temperature)
            return decode_questions(payload)
        except (ServiceUnavailable, SchemaViolation) as exc:
            logger.warning("Question generation fell back (%s): %s", exc.code, exc.message)
            return _canned(FAILURE_QUESTIONS)

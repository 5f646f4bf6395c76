"""Voice/typed intent classification with an LLM-first, heuristic-fallback design."""

from __future__ import annotations

import json
import logging
from typing import Any

from google.genai import types as genai_types

from .errors import SchemaViolation, ServiceUnavailable
from .llm import GenAIJSONClient
from .schemas import (
    ALLOWED_INTENTS,
    INTENT_ADD_EMOTION,
    INTENT_ADD_ROUTINE,
    AnswerIntent,
    EmotionIntent,
    IntentResult,
    RoutineIntent,
)


logger = logging.getLogger(__name__)


AFFECT_KEYWORDS = ["sad", "happy", "angry"]

FALLBACK_EMOTION = EmotionIntent(label="Emotion", emoji="😐", reply="I hear you.")
FALLBACK_ROUTINE = RoutineIntent(label="New Task", emoji="📝", reply="Added to your list.")

DEFAULT_ROUTINE_EMOJI = "✨"
DEFAULT_EMOTION_EMOJI = "😊"

INSTRUCTION = """
You are an assistant for a neurodivergent individual.
Analyze the user's spoken input and determine the intent:
1. 'ADD_ROUTINE': User wants to do something (e.g., "I need to eat breakfast", "Walk the dog").
2. 'ADD_EMOTION': User is expressing feelings (e.g., "I am sad", "I feel happy").
3. 'ANSWER': User is just chatting or answering a question.

Return JSON.
If intent is ADD_ROUTINE, provide a short label and a matching emoji.
If intent is ADD_EMOTION, provide a label (Happy, Sad, Angry, etc.) and emoji.
If intent is ANSWER, provide the text as the 'reply'.
""".strip()

INTENT_SCHEMA = genai_types.Schema(
    type=genai_types.Type.OBJECT,
    properties={
        "intent": genai_types.Schema(type=genai_types.Type.STRING, enum=ALLOWED_INTENTS),
        "label": genai_types.Schema(type=genai_types.Type.STRING),
        "emoji": genai_types.Schema(type=genai_types.Type.STRING),
        "reply": genai_types.Schema(
            type=genai_types.Type.STRING,
            description="The content of the answer or a reply.",
        ),
    },
    required=["intent"],
)


def _optional_str(payload: dict, key: str) -> str:
    value = payload.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise SchemaViolation(f"Field '{key}' must be a string")
    return value.strip()


def decode_intent(payload: Any, transcript: str) -> IntentResult:
    """Validate a raw model payload into one IntentResult variant."""
    if not isinstance(payload, dict):
        raise SchemaViolation("Intent response must be a JSON object")

    intent = payload.get("intent")
    if intent not in ALLOWED_INTENTS:
        raise SchemaViolation(f"Unknown intent: {intent!r}")

    label = _optional_str(payload, "label")
    emoji = _optional_str(payload, "emoji")
    reply = _optional_str(payload, "reply") or None

    if intent == INTENT_ADD_ROUTINE:
        if not label:
            raise SchemaViolation("ADD_ROUTINE requires a label")
        return RoutineIntent(label=label, emoji=emoji or DEFAULT_ROUTINE_EMOJI, reply=reply)
    if intent == INTENT_ADD_EMOTION:
        if not label:
            raise SchemaViolation("ADD_EMOTION requires a label")
        return EmotionIntent(label=label, emoji=emoji or DEFAULT_EMOTION_EMOJI, reply=reply)
    return AnswerIntent(reply=reply or transcript)


def fallback_intent(transcript: str) -> IntentResult:
    text = transcript.lower()
    if any(token in text for token in AFFECT_KEYWORDS):
        return FALLBACK_EMOTION
    return FALLBACK_ROUTINE


class IntentClassifier:
    """Maps a transcript to a structured action. Never raises."""

    def __init__(self, client: GenAIJSONClient, temperature: float = 0.0):
        self.client = client
        self.temperature = temperature

    def classify(self, transcript: str) -> IntentResult:
        if not self.client.available:
            logger.warning("No model credential; using heuristic intent fallback")
            return fallback_intent(transcript)

        request = {"instruction": INSTRUCTION, "transcript": transcript}
        prompt = (
            f"{request['instruction']}\n\n"
            f"Spoken input:\n{json.dumps(request['transcript'], ensure_ascii=False)}\n"
        )
        try:
            payload = self.client.generate_json(prompt, INTENT_SCHEMA, temperature=self.temperature)
            result = decode_intent(payload, transcript)
        except (ServiceUnavailable, SchemaViolation) as exc:
            logger.warning("Intent classification fell back (%s): %s", exc.code, exc.message)
            return fallback_intent(transcript)

        logger.debug("Classified transcript as %s", result.intent)
        return result

"""End-of-day caregiver report synthesis."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Any, Iterable, List, Tuple

from google.genai import types as genai_types

from .errors import SchemaViolation, ServiceUnavailable
from .llm import GenAIJSONClient
from .schemas import DailyQuestion, EmotionRecord, FeedbackReport, RoutineRecord


logger = logging.getLogger(__name__)


MIN_POINTS = 0
MAX_POINTS = 100

NO_ANSWER = "No answer"

OFFLINE_REPORT_TEXT = (
    "Daily Report: Good effort on routines today. I noticed some happy emotions logged. "
    "Keep practicing the morning schedule."
)
OFFLINE_POINTS = 50

FAILURE_REPORT_TEXT = "Activity log received. Great job today!"
DEFAULT_FAILURE_POINTS = 20

FEEDBACK_SCHEMA = genai_types.Schema(
    type=genai_types.Type.OBJECT,
    properties={
        "text": genai_types.Schema(type=genai_types.Type.STRING),
        "points": genai_types.Schema(type=genai_types.Type.NUMBER),
    },
    required=["text", "points"],
)


def clamp_points(value: object, default: int = DEFAULT_FAILURE_POINTS) -> int:
    """Coerce an untrusted score into [0, 100]."""
    if isinstance(value, bool):
        return default
    if isinstance(value, str):
        try:
            value = float(value.strip())
        except ValueError:
            return default
    if not isinstance(value, (int, float)):
        return default
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return default
        value = int(round(value))
    return max(MIN_POINTS, min(MAX_POINTS, int(value)))


@dataclass
class DaySummary:
    """Structured view of one day's logs."""

    completed: List[str] = field(default_factory=list)
    missed: List[str] = field(default_factory=list)
    emotions: List[str] = field(default_factory=list)
    qa: List[Tuple[str, str]] = field(default_factory=list)

    def render(self) -> str:
        qa = "; ".join(f'Q: "{q}" A: "{a}"' for q, a in self.qa)
        return (
            f"- Completed Routines: {', '.join(self.completed) or 'None'}\n"
            f"- Missed Routines: {', '.join(self.missed) or 'None'}\n"
            f"- Emotions Logged: {', '.join(self.emotions) or 'None'}\n"
            f"- Daily Questions & Answers: {qa or 'None'}"
        )


def build_day_summary(
    routines: Iterable[RoutineRecord],
    emotions: Iterable[EmotionRecord],
    questions: Iterable[DailyQuestion],
) -> DaySummary:
    routines = list(routines)
    return DaySummary(
        completed=[r.label for r in routines if r.completed],
        missed=[r.label for r in routines if not r.completed],
        emotions=[f"{e.label} ({e.emoji})" for e in emotions],
        qa=[(q.text, q.answer or NO_ANSWER) for q in questions],
    )


def decode_feedback(payload: Any) -> FeedbackReport:
    if not isinstance(payload, dict):
        raise SchemaViolation("Feedback response must be a JSON object")
    text = payload.get("text")
    if not isinstance(text, str) or not text.strip():
        raise SchemaViolation("Feedback response is missing 'text'")
    return FeedbackReport(text=text.strip(), points=clamp_points(payload.get("points")))


class FeedbackSynthesizer:
    """Turns the day's logs into a report; always returns one.

    Not idempotence-aware: callers must guard against repeated day completion.
    """

    def __init__(self, client: GenAIJSONClient, temperature: float = 0.4):
        self.client = client
        self.temperature = temperature

    def synthesize(
        self,
        routines: Iterable[RoutineRecord],
        emotions: Iterable[EmotionRecord],
        questions: Iterable[DailyQuestion],
    ) -> FeedbackReport:
        if not self.client.available:
            logger.warning("No model credential; using offline feedback template")
            return FeedbackReport(text=OFFLINE_REPORT_TEXT, points=OFFLINE_POINTS, fallback=True)

        summary = build_day_summary(routines, emotions, questions)
        try:
            payload = self.client.generate_json(
                self._prompt(summary), FEEDBACK_SCHEMA, temperature=self.temperature
            )
            report = decode_feedback(payload)
        except (ServiceUnavailable, SchemaViolation) as exc:
            logger.warning("Feedback synthesis fell back (%s): %s", exc.code, exc.message)
            return self.failure_report()

        logger.debug("Feedback synthesized with %d points", report.points)
        return report

    @staticmethod
    def failure_report() -> FeedbackReport:
        return FeedbackReport(text=FAILURE_REPORT_TEXT, points=DEFAULT_FAILURE_POINTS, fallback=True)

    @staticmethod
    def _prompt(summary: DaySummary) -> str:
        return (
            "You are a professional, compassionate therapist for a neurodivergent individual.\n"
            "Analyze the following daily activity log to provide feedback to the parent/guardian.\n\n"
            f"Data:\n{summary.render()}\n\n"
            "Task:\n"
            "1. Write a short, encouraging, and insightful message to the parent. "
            "Mention specific wins or areas to focus on based on the data.\n"
            '2. Assign "Points" (0-100) based on the level of engagement and completion.\n\n'
            'Return JSON: { "text": "string", "points": number }'
        )

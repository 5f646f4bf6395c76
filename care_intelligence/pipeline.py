"""Orchestration layer: user actions in, records and reports out."""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from .analytics import AnalyticsAggregator
from .config import AppConfig
from .errors import ValidationError
from .feedback import FeedbackSynthesizer
from .intents import IntentClassifier
from .llm import GenAIJSONClient
from .questions import DailyQuestionGenerator
from .schemas import (
    DEFAULT_CONTACTS,
    MESSAGE_FEEDBACK,
    ChatMessage,
    Contact,
    DailyQuestion,
    EmotionIntent,
    EmotionRecord,
    FeedbackReport,
    IntentResult,
    ProgressReport,
    RoutineIntent,
    RoutineRecord,
)
from .storage import CareStore, build_store
from .utils import day_key


logger = logging.getLogger(__name__)


SELF_SENDER_ID = "me"


@dataclass
class DayState:
    """Explicit per-user-day state threaded through the day's actions."""

    user_id: str
    day: str
    therapist_id: Optional[str] = None
    questions: List[DailyQuestion] = field(default_factory=list)
    started: bool = False
    submitted: bool = False
    report: Optional[FeedbackReport] = None

    def question(self, question_id: str) -> Optional[DailyQuestion]:
        for q in self.questions:
            if q.id == question_id:
                return q
        return None


@dataclass
class TranscriptOutcome:
    """What a transcript turned into, plus the record created for it (if any)."""

    intent: IntentResult
    record: Optional[Union[RoutineRecord, EmotionRecord]] = None

    @property
    def reply(self) -> Optional[str]:
        return self.intent.reply


class CarePipeline:
    """High-level pipeline composed of the care intelligence components."""

    def __init__(
        self,
        config: AppConfig,
        store: Optional[CareStore] = None,
        client: Optional[Any] = None,
        contacts: Optional[Iterable[Contact]] = None,
    ):
        self.config = config
        self.store = store if store is not None else build_store(config.storage)
        self.llm = GenAIJSONClient(config.model, google_api_key=config.google_api_key, client=client)

        self.classifier = IntentClassifier(self.llm, temperature=config.model.intent_temperature)
        self.question_generator = DailyQuestionGenerator(
            self.llm, temperature=config.model.question_temperature
        )
        self.synthesizer = FeedbackSynthesizer(self.llm, temperature=config.model.feedback_temperature)
        self.analytics = AnalyticsAggregator(config.analytics)

        self.contacts: Dict[str, Contact] = {
            c.id: c for c in (contacts if contacts is not None else DEFAULT_CONTACTS)
        }
        self._days: Dict[Tuple[str, str], DayState] = {}
        self._state_lock = threading.Lock()
        self._day_locks: Dict[Tuple[str, str], threading.Lock] = defaultdict(threading.Lock)

    # -- contacts -----------------------------------------------------------

    def therapists(self) -> List[Contact]:
        return [c for c in self.contacts.values() if c.is_therapist]

    def _contact(self, contact_id: str) -> Contact:
        contact = self.contacts.get(contact_id)
        if contact is None:
            raise ValidationError(f"Unknown contact: {contact_id}", code="UNKNOWN_CONTACT")
        return contact

    def _therapist(self, therapist_id: Optional[str]) -> Contact:
        if not therapist_id:
            raise ValidationError("A therapist must be selected", code="NO_THERAPIST")
        contact = self._contact(therapist_id)
        if not contact.is_therapist:
            raise ValidationError(f"Contact {therapist_id} is not a therapist", code="NOT_THERAPIST")
        return contact

    # -- day state ----------------------------------------------------------

    def day_state(self, user_id: str, day: Optional[str] = None) -> DayState:
        key = (user_id, day or day_key())
        with self._state_lock:
            state = self._days.get(key)
            if state is None:
                self._prune_days(user_id, key[1])
                state = DayState(user_id=user_id, day=key[1])
                self._days[key] = state
            return state

    def _prune_days(self, user_id: str, current_day: str) -> None:
        # Caller holds _state_lock. Earlier days are dropped once submitted,
        # or when never started and not locked by an in-flight action.
        for key, state in list(self._days.items()):
            if key[0] != user_id or key[1] >= current_day:
                continue
            lock = self._day_locks.get(key)
            busy = lock is not None and lock.locked()
            if state.submitted or (not state.started and not busy):
                del self._days[key]
                self._day_locks.pop(key, None)
                logger.debug("Evicted day %s for %s", key[1], user_id)

    def _day_lock(self, user_id: str, day: str) -> threading.Lock:
        with self._state_lock:
            return self._day_locks[(user_id, day)]

    def start_day(self, user_id: str, therapist_id: str, day: Optional[str] = None) -> DayState:
        """Select the day's therapist and generate questions once for the day."""
        self._therapist(therapist_id)
        state = self.day_state(user_id, day)
        with self._day_lock(user_id, state.day):
            state.therapist_id = therapist_id
            if not state.questions:
                state.questions = self.question_generator.generate()
            state.started = True
        logger.info("Day %s started for %s with %d questions", state.day, user_id, len(state.questions))
        return state

    def answer_question(
        self,
        user_id: str,
        question_id: str,
        answer: str,
        day: Optional[str] = None,
    ) -> DailyQuestion:
        if not answer or not answer.strip():
            raise ValidationError("Answer must not be empty", code="EMPTY_ANSWER")
        state = self.day_state(user_id, day)
        with self._day_lock(user_id, state.day):
            question = state.question(question_id)
            if question is None:
                raise ValidationError(f"Unknown question: {question_id}", code="UNKNOWN_QUESTION")
            if question.answer is not None:
                raise ValidationError(f"Question {question_id} already answered", code="ALREADY_ANSWERED")
            question.answer = answer.strip()
        return question

    # -- records ------------------------------------------------------------

    def add_routine(self, user_id: str, label: str, emoji: str) -> RoutineRecord:
        if not label or not label.strip():
            raise ValidationError("Routine label must not be empty", code="EMPTY_LABEL")
        return self.store.add_routine(user_id, RoutineRecord.create(label.strip(), emoji))

    def toggle_routine(self, user_id: str, routine_id: str, completed: bool) -> None:
        self.store.set_routine_completed(user_id, routine_id, completed)

    def add_emotion(self, user_id: str, label: str, emoji: str, intensity: int = 3) -> EmotionRecord:
        if not label or not label.strip():
            raise ValidationError("Emotion label must not be empty", code="EMPTY_LABEL")
        return self.store.add_emotion(user_id, EmotionRecord.create(label.strip(), emoji, intensity))

    def handle_transcript(self, user_id: str, transcript: str) -> TranscriptOutcome:
        """Classify spoken/typed input and create the matching record."""
        if not transcript or not transcript.strip():
            raise ValidationError("Transcript must not be empty", code="EMPTY_TRANSCRIPT")

        intent = self.classifier.classify(transcript.strip())
        if isinstance(intent, RoutineIntent):
            return TranscriptOutcome(intent=intent, record=self.add_routine(user_id, intent.label, intent.emoji))
        if isinstance(intent, EmotionIntent):
            return TranscriptOutcome(intent=intent, record=self.add_emotion(user_id, intent.label, intent.emoji))
        return TranscriptOutcome(intent=intent)

    def send_message(self, user_id: str, contact_id: str, text: str) -> ChatMessage:
        self._contact(contact_id)
        if not text or not text.strip():
            raise ValidationError("Message must not be empty", code="EMPTY_MESSAGE")
        return self.store.add_message(user_id, contact_id, ChatMessage.create(SELF_SENDER_ID, text.strip()))

    # -- day completion -----------------------------------------------------

    def complete_day(self, user_id: str, day: Optional[str] = None) -> FeedbackReport:
        """Synthesize and deliver the day's report exactly once per user-day."""
        state = self.day_state(user_id, day)
        with self._day_lock(user_id, state.day):
            if not state.started:
                raise ValidationError("Day has not been started", code="DAY_NOT_STARTED")
            therapist = self._therapist(state.therapist_id)
            if state.submitted and state.report is not None:
                logger.info("Day %s for %s already submitted; returning existing report", state.day, user_id)
                return state.report

            report = self.synthesizer.synthesize(
                self.store.get_routines(user_id),
                self.store.get_emotions(user_id),
                state.questions,
            )
            state.report = report
            state.submitted = True

            message = ChatMessage.create(
                sender_id=therapist.id,
                text=report.text,
                type=MESSAGE_FEEDBACK,
                points=report.points,
            )
            self.store.add_message(user_id, therapist.id, message)
        logger.info(
            "Delivered %sfeedback for %s on %s (%d points)",
            "fallback " if report.fallback else "",
            user_id,
            state.day,
            report.points,
        )
        return report

    # -- analytics ----------------------------------------------------------

    def progress_report(
        self,
        user_id: str,
        therapist_id: str,
        today: Optional[date] = None,
    ) -> ProgressReport:
        therapist = self._therapist(therapist_id)
        return self.analytics.build_report(
            routines=self.store.get_routines(user_id),
            emotions=self.store.get_emotions(user_id),
            messages=self.store.get_messages(user_id, therapist.id),
            today=today,
        )

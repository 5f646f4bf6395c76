"""Core data structures shared across modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, List, Optional, Union

from .utils import generate_id, timestamp_ms


INTENT_ADD_ROUTINE = "ADD_ROUTINE"
INTENT_ADD_EMOTION = "ADD_EMOTION"
INTENT_ANSWER = "ANSWER"
ALLOWED_INTENTS = [INTENT_ADD_ROUTINE, INTENT_ADD_EMOTION, INTENT_ANSWER]


@dataclass(frozen=True)
class RoutineIntent:
    """Caller should create a routine from this label and emoji."""

    intent: ClassVar[str] = INTENT_ADD_ROUTINE

    label: str
    emoji: str
    reply: Optional[str] = None


@dataclass(frozen=True)
class EmotionIntent:
    """Caller should log an emotion from this label and emoji."""

    intent: ClassVar[str] = INTENT_ADD_EMOTION

    label: str
    emoji: str
    reply: Optional[str] = None


@dataclass(frozen=True)
class AnswerIntent:
    """Input was conversational; ``reply`` holds the answer text."""

    intent: ClassVar[str] = INTENT_ANSWER

    reply: str


IntentResult = Union[RoutineIntent, EmotionIntent, AnswerIntent]


@dataclass
class DailyQuestion:
    """Check-in prompt created at day start; only ``answer`` changes later."""

    id: str
    text: str
    emoji: str
    answer: Optional[str] = None


@dataclass
class RoutineRecord:
    id: str
    label: str
    emoji: str
    completed: bool = False
    timestamp: int = field(default_factory=timestamp_ms)

    @classmethod
    def create(cls, label: str, emoji: str) -> "RoutineRecord":
        return cls(id=generate_id("routine"), label=label, emoji=emoji)


@dataclass
class EmotionRecord:
    """Logged feeling. ``intensity`` is declared 1-5 but not enforced."""

    id: str
    label: str
    emoji: str
    intensity: int = 3
    timestamp: int = field(default_factory=timestamp_ms)

    @classmethod
    def create(cls, label: str, emoji: str, intensity: int = 3) -> "EmotionRecord":
        return cls(id=generate_id("emotion"), label=label, emoji=emoji, intensity=intensity)


MESSAGE_TEXT = "text"
MESSAGE_FEEDBACK = "feedback"


@dataclass
class ChatMessage:
    id: str
    sender_id: str
    text: str
    timestamp: int = field(default_factory=timestamp_ms)
    type: str = MESSAGE_TEXT
    points: Optional[int] = None

    @classmethod
    def create(
        cls,
        sender_id: str,
        text: str,
        type: str = MESSAGE_TEXT,
        points: Optional[int] = None,
    ) -> "ChatMessage":
        return cls(id=generate_id("msg"), sender_id=sender_id, text=text, type=type, points=points)


@dataclass(frozen=True)
class FeedbackReport:
    """Caregiver report. ``points`` is always within 0-100."""

    text: str
    points: int
    fallback: bool = False


ROLE_THERAPIST = "Therapist"
ROLE_PARENT = "Parent"
ROLE_SUPPORT = "Support"


@dataclass(frozen=True)
class Contact:
    id: str
    name: str
    role: str

    @property
    def is_therapist(self) -> bool:
        return self.role == ROLE_THERAPIST


DEFAULT_CONTACTS: List[Contact] = [
    Contact(id="1", name="Dr. Sandeep", role=ROLE_THERAPIST),
    Contact(id="2", name="Dr. Sujatha", role=ROLE_THERAPIST),
    Contact(id="5", name="Dr. George Stephen", role=ROLE_THERAPIST),
    Contact(id="6", name="Dr. Fathima Rasool", role=ROLE_THERAPIST),
    Contact(id="3", name="Mom", role=ROLE_PARENT),
    Contact(id="4", name="Mr. Jones", role=ROLE_SUPPORT),
]


@dataclass(frozen=True)
class WellnessPoint:
    day: str
    score: float


@dataclass(frozen=True)
class EmotionBucket:
    label: str
    count: int
    color: str


@dataclass(frozen=True)
class RoutineDayStat:
    day: str
    completed: int
    total: int


@dataclass
class ProgressReport:
    """Chart-ready analytics for one therapist conversation."""

    wellness: List[WellnessPoint]
    emotions: List[EmotionBucket]
    routines: List[RoutineDayStat]
    insight: str
    routine_progress: float = 0.0

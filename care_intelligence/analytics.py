"""Chart-ready analytics: emotion buckets, routine adherence, wellness index."""

from __future__ import annotations

from collections import Counter
from datetime import date
from typing import Dict, List, Optional, Sequence

from .config import AnalyticsConfig
from .schemas import (
    ChatMessage,
    EmotionBucket,
    EmotionRecord,
    ProgressReport,
    RoutineDayStat,
    RoutineRecord,
    WellnessPoint,
)
from .sentiment import score_sentiment
from .utils import utc_today


WEEKDAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
WELLNESS_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri"]
WELLNESS_FACTOR_SCALE = 5

EMOTION_COLORS: Dict[str, str] = {
    "Happy": "#34D399",
    "Very Happy": "#10B981",
    "Laughing": "#059669",
    "Sad": "#60A5FA",
    "Scared": "#818CF8",
    "Anxious": "#F87171",
    "Angry": "#EF4444",
    "Neutral": "#94A3B8",
    "Peaceful": "#A78BFA",
}
DEFAULT_EMOTION_COLOR = "#CBD5E1"

# Display placeholder shown when nothing has been logged yet.
PLACEHOLDER_BUCKETS = [
    EmotionBucket(label="Happy", count=4, color="#34D399"),
    EmotionBucket(label="Neutral", count=3, color="#94A3B8"),
    EmotionBucket(label="Anxious", count=1, color="#F87171"),
    EmotionBucket(label="Excited", count=2, color="#FBBF24"),
]

POSITIVE_LABELS = {"Happy", "Very Happy"}
NEGATIVE_LABELS = {"Anxious", "Sad"}

INSIGHT_POSITIVE = "Mostly positive emotions! Great week."
INSIGHT_NEGATIVE = "Indicates some distress. Review triggers."
INSIGHT_BALANCED = "Emotions are balanced and stable."
INSIGHT_EMPTY = "No data available yet."


class AnalyticsAggregator:
    """Blends routine, emotion and chat signals into progress series."""

    def __init__(self, config: Optional[AnalyticsConfig] = None):
        self.config = config or AnalyticsConfig()
        if len(self.config.routine_baseline_completed) != len(WEEKDAYS):
            raise ValueError("routine_baseline_completed needs one value per weekday")
        if len(self.config.wellness_routine_factors) != len(WELLNESS_DAYS):
            raise ValueError("wellness_routine_factors needs one value per wellness day")
        max_factor = 100 / WELLNESS_FACTOR_SCALE
        if any(not 0 <= f <= max_factor for f in self.config.wellness_routine_factors):
            raise ValueError(f"wellness_routine_factors must lie within 0..{max_factor:g}")

    def emotion_buckets(self, emotions: Sequence[EmotionRecord]) -> List[EmotionBucket]:
        if not emotions:
            return list(PLACEHOLDER_BUCKETS) if self.config.emotion_placeholder else []
        # Counter preserves first-seen insertion order.
        counts = Counter(e.label for e in emotions)
        return [
            EmotionBucket(label=label, count=count, color=EMOTION_COLORS.get(label, DEFAULT_EMOTION_COLOR))
            for label, count in counts.items()
        ]

    @staticmethod
    def emotion_shares(buckets: Sequence[EmotionBucket]) -> Dict[str, int]:
        """Rounded percentage of each bucket, for the chart legend."""
        total = sum(b.count for b in buckets)
        if not total:
            return {b.label: 0 for b in buckets}
        return {b.label: round(b.count / total * 100) for b in buckets}

    def routine_adherence(
        self,
        routines: Sequence[RoutineRecord],
        today: Optional[date] = None,
    ) -> List[RoutineDayStat]:
        today = today or utc_today()
        today_index = today.weekday()

        stats: List[RoutineDayStat] = []
        for index, day in enumerate(WEEKDAYS):
            if index == today_index:
                stats.append(
                    RoutineDayStat(
                        day=day,
                        completed=sum(1 for r in routines if r.completed),
                        total=len(routines) or self.config.routine_total_floor,
                    )
                )
                continue
            stats.append(
                RoutineDayStat(
                    day=day,
                    completed=self.config.routine_baseline_completed[index],
                    total=self.config.routine_baseline_total,
                )
            )
        return stats

    @staticmethod
    def routine_progress(routines: Sequence[RoutineRecord]) -> float:
        if not routines:
            return 0.0
        return sum(1 for r in routines if r.completed) / len(routines) * 100

    def wellness_index(self, messages: Sequence[ChatMessage]) -> List[WellnessPoint]:
        """Split messages into equal chunks by position, one per weekday.

        Chunks approximate days; they are not grouped by calendar date.
        """
        n = len(messages)
        days = len(WELLNESS_DAYS)
        points: List[WellnessPoint] = []
        for idx, day in enumerate(WELLNESS_DAYS):
            start = (n * idx) // days
            end = (n * (idx + 1)) // days
            sentiment = score_sentiment(messages[start:end])
            routine_factor = self.config.wellness_routine_factors[idx] * WELLNESS_FACTOR_SCALE
            score = min(100.0, max(0.0, (sentiment + routine_factor) / 2))
            points.append(WellnessPoint(day=day, score=score))
        return points

    @staticmethod
    def top_emotion_insight(buckets: Sequence[EmotionBucket]) -> str:
        if not buckets:
            return INSIGHT_EMPTY
        top = buckets[0]
        for bucket in buckets[1:]:
            if bucket.count > top.count:
                top = bucket
        if top.label in POSITIVE_LABELS:
            return INSIGHT_POSITIVE
        if top.label in NEGATIVE_LABELS:
            return INSIGHT_NEGATIVE
        return INSIGHT_BALANCED

    def build_report(
        self,
        routines: Sequence[RoutineRecord],
        emotions: Sequence[EmotionRecord],
        messages: Sequence[ChatMessage],
        today: Optional[date] = None,
    ) -> ProgressReport:
        buckets = self.emotion_buckets(emotions)
        return ProgressReport(
            wellness=self.wellness_index(messages),
            emotions=buckets,
            routines=self.routine_adherence(routines, today=today),
            insight=self.top_emotion_insight(buckets),
            routine_progress=self.routine_progress(routines),
        )

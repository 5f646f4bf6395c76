"""Keyword sentiment over a conversation's chat messages."""

from __future__ import annotations

from typing import Iterable, Union

from .schemas import ChatMessage


BASELINE = 50
MIN_SCORE = 0
MAX_SCORE = 100

POSITIVE_WORDS = ("good", "great", "happy", "better")
NEGATIVE_WORDS = ("bad", "sad", "anxious", "worse")
HIGH_VALUE_WORDS = ("progress", "excellent")

POSITIVE_DELTA = 5
NEGATIVE_DELTA = -5
HIGH_VALUE_DELTA = 8


def message_delta(text: str) -> int:
    """Score contribution of one message; rules are independent substring tests."""
    lowered = text.lower()
    delta = 0
    if any(word in lowered for word in POSITIVE_WORDS):
        delta += POSITIVE_DELTA
    if any(word in lowered for word in NEGATIVE_WORDS):
        delta += NEGATIVE_DELTA
    if any(word in lowered for word in HIGH_VALUE_WORDS):
        delta += HIGH_VALUE_DELTA
    return delta


def score_sentiment(messages: Iterable[Union[ChatMessage, str]]) -> int:
    # Clamp once after summing so the result is order-independent.
    total = BASELINE
    for message in messages:
        text = message if isinstance(message, str) else message.text
        total += message_delta(text or "")
    return max(MIN_SCORE, min(MAX_SCORE, total))

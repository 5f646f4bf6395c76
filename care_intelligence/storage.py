"""Collaborator stores for routines, emotions and chat messages.

One ``CareStore`` is chosen at startup by ``build_store`` and injected into
the pipeline; call sites never branch on the storage mode.
"""

from __future__ import annotations

import sqlite3
import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from pathlib import Path
from typing import Dict, List, Tuple

from .config import StorageConfig
from .schemas import ChatMessage, EmotionRecord, RoutineRecord
from .utils import coerce_timestamp_ms, timestamp_ms


class CareStore(ABC):
    """Per-user routine/emotion stores and a per-(user, contact) message store."""

    @abstractmethod
    def get_routines(self, user_id: str) -> List[RoutineRecord]:
        ...

    @abstractmethod
    def add_routine(self, user_id: str, routine: RoutineRecord) -> RoutineRecord:
        ...

    @abstractmethod
    def set_routine_completed(self, user_id: str, routine_id: str, completed: bool) -> None:
        ...

    @abstractmethod
    def get_emotions(self, user_id: str) -> List[EmotionRecord]:
        ...

    @abstractmethod
    def add_emotion(self, user_id: str, emotion: EmotionRecord) -> EmotionRecord:
        ...

    @abstractmethod
    def get_messages(self, user_id: str, contact_id: str) -> List[ChatMessage]:
        """Messages for one conversation, oldest first."""

    @abstractmethod
    def add_message(self, user_id: str, contact_id: str, message: ChatMessage) -> ChatMessage:
        ...

    def close(self) -> None:
        pass


class InMemoryCareStore(CareStore):
    """Process-local store; the default for demos and tests."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._routines: Dict[str, List[RoutineRecord]] = defaultdict(list)
        self._emotions: Dict[str, List[EmotionRecord]] = defaultdict(list)
        self._messages: Dict[Tuple[str, str], List[ChatMessage]] = defaultdict(list)

    def get_routines(self, user_id: str) -> List[RoutineRecord]:
        with self._lock:
            return list(self._routines[user_id])

    def add_routine(self, user_id: str, routine: RoutineRecord) -> RoutineRecord:
        with self._lock:
            self._routines[user_id].append(routine)
        return routine

    def set_routine_completed(self, user_id: str, routine_id: str, completed: bool) -> None:
        with self._lock:
            for routine in self._routines[user_id]:
                if routine.id == routine_id:
                    routine.completed = completed

    def get_emotions(self, user_id: str) -> List[EmotionRecord]:
        with self._lock:
            return list(self._emotions[user_id])

    def add_emotion(self, user_id: str, emotion: EmotionRecord) -> EmotionRecord:
        with self._lock:
            self._emotions[user_id].append(emotion)
        return emotion

    def get_messages(self, user_id: str, contact_id: str) -> List[ChatMessage]:
        with self._lock:
            return sorted(self._messages[(user_id, contact_id)], key=lambda m: m.timestamp)

    def add_message(self, user_id: str, contact_id: str, message: ChatMessage) -> ChatMessage:
        with self._lock:
            self._messages[(user_id, contact_id)].append(message)
        return message


class SQLiteCareStore(CareStore):
    """Persists care records in a local SQLite file."""

    def __init__(self, db_path: str):
        if db_path != ":memory:":
            Path(db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = sqlite3.connect(db_path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self._lock = threading.Lock()
        self._init_schema()

    def _init_schema(self) -> None:
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS routines (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                label TEXT NOT NULL,
                emoji TEXT NOT NULL,
                completed INTEGER NOT NULL DEFAULT 0,
                timestamp TEXT NOT NULL
            )
            """
        )
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS emotions (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                label TEXT NOT NULL,
                emoji TEXT NOT NULL,
                intensity INTEGER NOT NULL DEFAULT 3,
                timestamp TEXT NOT NULL
            )
            """
        )
        self.conn.execute(
            """
            CREATE TABLE IF NOT EXISTS messages (
                id TEXT PRIMARY KEY,
                user_id TEXT NOT NULL,
                contact_id TEXT NOT NULL,
                sender_id TEXT NOT NULL,
                text TEXT NOT NULL,
                type TEXT NOT NULL DEFAULT 'text',
                points INTEGER,
                timestamp TEXT NOT NULL
            )
            """
        )
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_routines_user ON routines(user_id)")
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_emotions_user ON emotions(user_id)")
        self.conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_messages_conversation ON messages(user_id, contact_id)"
        )
        self.conn.commit()

    @staticmethod
    def _ts(value: object) -> int:
        # Older rows may carry ISO strings rather than epoch millis.
        parsed = coerce_timestamp_ms(value)
        return parsed if parsed is not None else timestamp_ms()

    def get_routines(self, user_id: str) -> List[RoutineRecord]:
        with self._lock:
            rows = self.conn.execute(
                "SELECT * FROM routines WHERE user_id = ? ORDER BY rowid", (user_id,)
            ).fetchall()
        return [
            RoutineRecord(
                id=row["id"],
                label=row["label"],
                emoji=row["emoji"],
                completed=bool(row["completed"]),
                timestamp=self._ts(row["timestamp"]),
            )
            for row in rows
        ]

    def add_routine(self, user_id: str, routine: RoutineRecord) -> RoutineRecord:
        with self._lock:
            self.conn.execute(
                """
                INSERT INTO routines (id, user_id, label, emoji, completed, timestamp)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    label=excluded.label,
                    emoji=excluded.emoji,
                    completed=excluded.completed
                """,
                (
                    routine.id,
                    user_id,
                    routine.label,
                    routine.emoji,
                    int(routine.completed),
                    str(routine.timestamp),
                ),
            )
            self.conn.commit()
        return routine

    def set_routine_completed(self, user_id: str, routine_id: str, completed: bool) -> None:
        with self._lock:
            self.conn.execute(
                "UPDATE routines SET completed = ? WHERE id = ? AND user_id = ?",
                (int(completed), routine_id, user_id),
            )
            self.conn.commit()

    def get_emotions(self, user_id: str) -> List[EmotionRecord]:
        with self._lock:
            rows = self.conn.execute(
                "SELECT * FROM emotions WHERE user_id = ? ORDER BY rowid", (user_id,)
            ).fetchall()
        return [
            EmotionRecord(
                id=row["id"],
                label=row["label"],
                emoji=row["emoji"],
                intensity=int(row["intensity"]),
                timestamp=self._ts(row["timestamp"]),
            )
            for row in rows
        ]

    def add_emotion(self, user_id: str, emotion: EmotionRecord) -> EmotionRecord:
        with self._lock:
            self.conn.execute(
                """
                INSERT OR REPLACE INTO emotions (id, user_id, label, emoji, intensity, timestamp)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    emotion.id,
                    user_id,
                    emotion.label,
                    emotion.emoji,
                    int(emotion.intensity),
                    str(emotion.timestamp),
                ),
            )
            self.conn.commit()
        return emotion

    def get_messages(self, user_id: str, contact_id: str) -> List[ChatMessage]:
        with self._lock:
            rows = self.conn.execute(
                "SELECT * FROM messages WHERE user_id = ? AND contact_id = ? ORDER BY rowid",
                (user_id, contact_id),
            ).fetchall()
        messages = [
            ChatMessage(
                id=row["id"],
                sender_id=row["sender_id"],
                text=row["text"],
                timestamp=self._ts(row["timestamp"]),
                type=row["type"],
                points=row["points"],
            )
            for row in rows
        ]
        # Stable sort keeps insertion order for equal timestamps.
        messages.sort(key=lambda m: m.timestamp)
        return messages

    def add_message(self, user_id: str, contact_id: str, message: ChatMessage) -> ChatMessage:
        with self._lock:
            self.conn.execute(
                """
                INSERT OR REPLACE INTO messages (
                    id, user_id, contact_id, sender_id, text, type, points, timestamp
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    message.id,
                    user_id,
                    contact_id,
                    message.sender_id,
                    message.text,
                    message.type,
                    message.points,
                    str(message.timestamp),
                ),
            )
            self.conn.commit()
        return message

    def close(self) -> None:
        self.conn.close()


def build_store(config: StorageConfig) -> CareStore:
    """Pick the store implementation once, at startup."""
    backend = config.backend.lower()
    if backend == "memory":
        return InMemoryCareStore()
    if backend == "sqlite":
        return SQLiteCareStore(config.sqlite_path)
    raise ValueError(f"Unknown storage backend: {config.backend!r}")

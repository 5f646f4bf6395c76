"""Configuration loading for the Daily Care Intelligence pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml


def _resolve_path(raw_path: str, base_dir: Path) -> str:
    if raw_path == ":memory:":
        return raw_path
    path = Path(raw_path).expanduser()
    if not path.is_absolute():
        path = (base_dir / path).resolve()
    return str(path)


@dataclass
class ModelConfig:
    """Language model settings shared by classification and generation."""

    provider: str = "google"
    model: str = "gemini-2.5-flash"
    intent_temperature: float = 0.0
    question_temperature: float = 0.7
    feedback_temperature: float = 0.4
    timeout_ms: Optional[int] = None


@dataclass
class StorageConfig:
    """Which collaborator store to build at startup."""

    backend: str = "memory"
    sqlite_path: str = "data/care.db"


@dataclass
class AnalyticsConfig:
    """Fixed baselines used by the progress charts."""

    emotion_placeholder: bool = True
    routine_baseline_completed: List[int] = field(default_factory=lambda: [4, 5, 3, 6, 4, 2, 5])
    routine_baseline_total: int = 6
    routine_total_floor: int = 5
    wellness_routine_factors: List[int] = field(default_factory=lambda: [4, 5, 3, 6, 4])


@dataclass
class AppConfig:
    """Top-level app configuration."""

    model: ModelConfig = field(default_factory=ModelConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    analytics: AnalyticsConfig = field(default_factory=AnalyticsConfig)
    google_api_key: Optional[str] = None
    log_level: str = "INFO"

    @classmethod
    def from_dict(cls, data: Dict[str, Any], base_dir: Optional[Path] = None) -> "AppConfig":
        """Build config from a dictionary."""
        base = Path.cwd() if base_dir is None else base_dir

        storage_data = dict(data.get("storage", {}))
        storage = StorageConfig(
            backend=str(storage_data.get("backend", "memory")).lower(),
            sqlite_path=_resolve_path(storage_data.get("sqlite_path", "data/care.db"), base),
        )

        model = ModelConfig(**data.get("model", {}))
        analytics = AnalyticsConfig(**data.get("analytics", {}))

        return cls(
            model=model,
            storage=storage,
            analytics=analytics,
            google_api_key=data.get("google_api_key"),
            log_level=str(data.get("log_level", "INFO")).upper(),
        )

    @classmethod
    def from_yaml(cls, path: str) -> "AppConfig":
        """Load config from YAML."""
        config_path = Path(path).resolve()
        with config_path.open("r", encoding="utf-8") as fh:
            data = yaml.safe_load(fh) or {}
        return cls.from_dict(data, base_dir=config_path.parent)

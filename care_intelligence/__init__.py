"""Daily Care Intelligence pipeline."""

from .config import AppConfig
from .pipeline import CarePipeline

__all__ = ["AppConfig", "CarePipeline"]

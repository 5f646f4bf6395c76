"""Schema-constrained JSON calls to Gemini.

Every failure is surfaced as ``ServiceUnavailable`` (no key, transport/API
error) or ``SchemaViolation`` (empty or non-JSON body) so that callers can
route both into their local fallback.
"""

from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Optional

from google import genai
from google.genai import types as genai_types

from .config import ModelConfig
from .errors import SchemaViolation, ServiceUnavailable


logger = logging.getLogger(__name__)


def _extract_json(raw: str) -> Optional[Any]:
    raw = raw.strip()
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, RecursionError):
        pass
    # Models sometimes wrap the payload in prose or a markdown fence.
    patterns = [r"\{[\s\S]*\}", r"\[[\s\S]*\]"]
    first_brace, first_bracket = raw.find("{"), raw.find("[")
    if first_bracket != -1 and (first_brace == -1 or first_bracket < first_brace):
        patterns.reverse()
    for pattern in patterns:
        match = re.search(pattern, raw)
        if not match:
            continue
        try:
            return json.loads(match.group(0))
        except (json.JSONDecodeError, RecursionError):
            continue
    return None


class GenAIJSONClient:
    """Thin wrapper over ``genai.Client`` returning decoded JSON."""

    def __init__(
        self,
        config: ModelConfig,
        google_api_key: Optional[str] = None,
        client: Optional[Any] = None,
    ):
        self.config = config
        self.api_key = google_api_key or os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY")
        if client is not None:
            self.client = client
        elif self.api_key:
            http_options = None
            if config.timeout_ms:
                http_options = genai_types.HttpOptions(timeout=int(config.timeout_ms))
            self.client = genai.Client(api_key=self.api_key, http_options=http_options)
        else:
            self.client = None

    @property
    def available(self) -> bool:
        return self.client is not None

    def generate_json(
        self,
        prompt: str,
        response_schema: genai_types.Schema,
        temperature: float = 0.0,
    ) -> Any:
        """Single attempt; no retry."""
        if not self.client:
            raise ServiceUnavailable("No Gemini API key configured", code="NO_CREDENTIAL")

        try:
            resp = self.client.models.generate_content(
                model=self.config.model,
                contents=prompt,
                config=genai_types.GenerateContentConfig(
                    temperature=temperature,
                    response_mime_type="application/json",
                    response_schema=response_schema,
                ),
            )
            raw = resp.text
        except Exception as exc:
            raise ServiceUnavailable(f"Gemini call failed: {exc}") from exc

        if not raw or not isinstance(raw, str):
            raise SchemaViolation("Empty response from model")

        try:
            parsed = _extract_json(raw)
        except (ValueError, RecursionError) as exc:
            raise SchemaViolation(f"Response could not be decoded: {exc}") from exc
        if parsed is None:
            raise SchemaViolation("Response is not valid JSON", details=raw[:200])
        logger.debug("Gemini %s returned %d chars", self.config.model, len(raw))
        return parsed

"""
Error taxonomy for the care pipeline.

ServiceUnavailable and SchemaViolation are raised by the model client and
response decoders only; every component absorbs them into its fallback.
ValidationError is raised to callers that pass invalid input.
"""

from typing import Any, Optional


class CareIntelligenceError(Exception):
    """Base error with a machine-readable code."""

    code = "CARE_ERROR"

    def __init__(self, message: str, code: Optional[str] = None, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.details = details


class ServiceUnavailable(CareIntelligenceError):
    """No credential configured, or the model call failed in transport."""

    code = "SERVICE_UNAVAILABLE"


class SchemaViolation(CareIntelligenceError):
    """Model response did not decode into the expected shape."""

    code = "SCHEMA_VIOLATION"


class ValidationError(CareIntelligenceError):
    """Caller passed invalid input (empty transcript, unknown id, ...)."""

    code = "VALIDATION_ERROR"

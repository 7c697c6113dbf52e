from __future__ import annotations

from typing import Any, Dict, Optional


class SafetyEngineError(Exception):
    """Base class for workout generation / safety errors."""

    code = "SAFETY_ENGINE_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": self.message, "details": self.details}


class ConstraintValidationError(SafetyEngineError):
    """Malformed or out-of-envelope request. Surfaced to the caller."""

    code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(message, details)
        if code:
            self.code = code


class NoEligibleExercisesError(SafetyEngineError):
    """The filtered library is empty. Generation must not proceed."""

    code = "NO_EXERCISES"


class GenerationError(SafetyEngineError):
    """External generator failed or returned unusable output. Never surfaced."""

    code = "GENERATION_ERROR"


class StoreError(SafetyEngineError):
    """Library / profile / history read failed. Fatal for the request."""

    code = "STORE_UNAVAILABLE"

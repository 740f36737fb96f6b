# onboarding/errors.py
"""Per-employee, per-operation outcomes raised by the engine.

None of these are fatal to the process. Each carries the HTTP semantics the
API layer renders, so routes never translate errors by hand.
"""
from typing import Any, Dict, List, Optional

from fastapi import status


class OnboardingError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "onboarding_error"

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"detail": self.message, "code": self.code}
        if self.details:
            payload["details"] = self.details
        return payload


class GateNotSatisfied(OnboardingError):
    """A precondition gate is false. Recoverable: the gaps tell the UI what to do next."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "gate_not_satisfied"

    def __init__(self, message: str, gaps: List[str], *, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, details=details)
        self.gaps = list(gaps)

    def to_payload(self) -> Dict[str, Any]:
        payload = super().to_payload()
        payload["gaps"] = self.gaps
        return payload


class AlreadySatisfied(OnboardingError):
    status_code = status.HTTP_409_CONFLICT
    code = "already_satisfied"


class AttemptsExhausted(OnboardingError):
    status_code = status.HTTP_409_CONFLICT
    code = "attempts_exhausted"


class InvalidTransition(OnboardingError):
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_transition"


class RecordNotFound(OnboardingError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "record_not_found"


class RecordAlreadyExists(OnboardingError):
    status_code = status.HTTP_409_CONFLICT
    code = "record_already_exists"


class InvalidRequest(OnboardingError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "invalid_request"


class NotAuthorized(OnboardingError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "not_authorized"


class ConcurrencyConflict(OnboardingError):
    status_code = status.HTTP_409_CONFLICT
    code = "concurrency_conflict"

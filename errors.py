from __future__ import annotations

from typing import Any


class EligibilityError(Exception):
    kind = "error"

    def __init__(self, message: str, details: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind, "message": self.message}
        if self.details is not None:
            payload["details"] = self.details
        return payload


class NotFound(EligibilityError):
    kind = "not_found"


class DuplicateRecord(EligibilityError):
    kind = "duplicate_record"


class InvalidState(EligibilityError):
    kind = "invalid_state"


class Unauthorized(EligibilityError):
    kind = "unauthorized"


class ValidationError(EligibilityError):
    kind = "validation_error"

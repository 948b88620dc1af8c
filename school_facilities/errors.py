# school_facilities/errors.py
from __future__ import annotations

from typing import Any, Optional


class FacilityError(Exception):
    """
    Base for every recoverable error the core raises.

    `status_code` mirrors the HTTP status an outer API layer would answer with,
    `code` is a stable machine-readable tag.
    """

    status_code: int = 400
    code: str = "facility_error"

    def __init__(self, message: str, *, details: Optional[dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def as_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class NotFound(FacilityError):
    status_code = 404
    code = "not_found"

    def __init__(self, entity_type: str, entity_id: Any) -> None:
        super().__init__(
            f"{entity_type} not found: {entity_id}",
            details={"entity_type": entity_type, "entity_id": str(entity_id)},
        )
        self.entity_type = entity_type
        self.entity_id = entity_id


class Conflict(FacilityError):
    status_code = 409
    code = "conflict"


class ValidationError(FacilityError):
    status_code = 422
    code = "validation_error"


class InvalidState(FacilityError):
    status_code = 409
    code = "invalid_state"


class PermissionDenied(FacilityError):
    status_code = 403
    code = "permission_denied"

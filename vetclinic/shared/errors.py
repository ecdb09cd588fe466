"""Domain error taxonomy shared by every service

Services raise these; the exception handlers in main.py turn them into HTTP
responses. Storage failures are surfaced without backend detail.
"""

from typing import Any, Optional


class ClinicError(Exception):
    """Base class for all domain errors"""

    code = "clinic_error"
    status_code = 400

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        payload = {"error": self.code, "detail": self.message}
        if self.details:
            payload["context"] = self.details
        return payload


class ValidationError(ClinicError):
    """Malformed, missing or contradictory input"""

    code = "validation_error"
    status_code = 400


class NotFound(ClinicError):
    code = "not_found"
    status_code = 404

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(f"{entity} {entity_id} not found", entity=entity, id=entity_id)
        self.entity = entity
        self.entity_id = entity_id


class InvalidTransition(ClinicError):
    code = "invalid_transition"
    status_code = 409

    def __init__(self, current: str, target: str, reason: Optional[str] = None):
        message = reason or f"Cannot move appointment from '{current}' to '{target}'"
        super().__init__(message, current=current, target=target)
        self.current = current
        self.target = target


class InsufficientStock(ClinicError):
    code = "insufficient_stock"
    status_code = 409

    def __init__(self, product_id: int, requested: int, available: Optional[int] = None):
        super().__init__(
            f"Insufficient stock for product {product_id}",
            product_id=product_id,
            requested=requested,
            available=available,
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class Conflict(ClinicError):
    """A concurrent writer changed the row between our read and our write"""

    code = "conflict"
    status_code = 409


class UpstreamStorageError(ClinicError):
    code = "storage_error"
    status_code = 503

    def __init__(self, message: str = "Storage backend unavailable"):
        super().__init__(message)

    def to_dict(self) -> dict:
        return {"error": self.code, "detail": "The request could not be completed. Please retry later."}


class PartialBatchFailure(ClinicError):
    """Some items of a batch succeeded and some failed

    Carries the full per-item outcome so nothing is masked.
    """

    code = "partial_batch_failure"
    status_code = 207

    def __init__(self, outcome):
        super().__init__(
            f"{len(outcome.failed)} of {len(outcome.items)} item(s) failed",
        )
        self.outcome = outcome

    def to_dict(self) -> dict:
        payload = self.outcome.to_dict()
        payload["error"] = self.code
        payload["detail"] = self.message
        return payload

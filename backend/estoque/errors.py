# Overview: Typed business errors raised by the service layer and mapped to HTTP by the routes.

"""
Error kinds surfaced by every service operation.

All errors carry a human-readable message plus a ``details`` dict for
programmatic handling. Routes turn them into ``{"error", "details"}`` JSON
with ``status_code``; anything that is not an EstoqueError is reported as a
generic internal error.
"""

from __future__ import annotations


class EstoqueError(Exception):
    """Base class for business-rule violations."""

    status_code = 400
    code = "ERROR"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class ValidationError(EstoqueError):
    """Malformed input. Always raised before any write."""

    code = "VALIDATION_ERROR"


class NotFoundError(EstoqueError):
    status_code = 404
    code = "NOT_FOUND"


class InvalidTransitionError(EstoqueError):
    """Requested status change is not in the transition table."""

    code = "INVALID_TRANSITION"

    def __init__(self, current_status: str, target_status: str):
        super().__init__(
            f"Invalid transition: {current_status} -> {target_status}",
            details={"current_status": current_status, "target_status": target_status},
        )
        self.current_status = current_status
        self.target_status = target_status


class InvalidStateError(EstoqueError):
    """Operation forbidden in the entity's current state."""

    code = "INVALID_STATE"


class InsufficientStockError(EstoqueError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, *, product_id: int, product_name: str | None, available: int, required: int):
        label = product_name or f"product {product_id}"
        super().__init__(
            f"Insufficient stock for {label}. Available: {available}, required: {required}",
            details={
                "product_id": product_id,
                "product_name": product_name,
                "available": available,
                "required": required,
            },
        )
        self.product_id = product_id
        self.available = available
        self.required = required


class ConflictError(EstoqueError):
    """Uniqueness violation (duplicate SKU, duplicate tax id, ...)."""

    status_code = 409
    code = "CONFLICT"


class ConcurrencyError(ConflictError):
    """Another transaction modified the same order or product first."""

    code = "CONCURRENT_MODIFICATION"

# Overview: Business error taxonomy shared by services and routes.

from __future__ import annotations


class SalesEngineError(Exception):
    """
    Base class for expected business outcomes.

    Every subclass is recoverable at the call boundary: routes turn it into a
    JSON error body with ``status_code``. Anything that is not a
    SalesEngineError is a persistence/transport failure.
    """
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class InvalidInputError(SalesEngineError):
    """Malformed request; raised before any mutation."""
    status_code = 400


class NotFoundError(SalesEngineError):
    status_code = 404

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} not found", details={"entity": entity, "id": entity_id})
        self.entity = entity
        self.entity_id = entity_id


class InsufficientStockError(SalesEngineError):
    status_code = 409

    def __init__(self, product_id: int, requested: int, available: int | None = None):
        super().__init__(
            f"Insufficient stock for product {product_id}",
            details={
                "product_id": product_id,
                "requested_quantity": requested,
                "available": available,
            },
        )
        self.product_id = product_id
        self.requested = requested
        self.available = available


class AlreadyResolvedError(SalesEngineError):
    """Transition attempted on a sale that is no longer pending."""
    status_code = 409

    def __init__(self, sale_id: int, status: str):
        super().__init__(
            f"Sale {sale_id} is already {status}",
            details={"sale_id": sale_id, "status": status},
        )
        self.sale_id = sale_id
        self.status = status


class AlreadyPaidError(SalesEngineError):
    status_code = 409

    def __init__(self, commission_id: int):
        super().__init__(
            f"Commission {commission_id} is already paid",
            details={"commission_id": commission_id},
        )
        self.commission_id = commission_id


class InvalidCommissionRuleError(SalesEngineError):
    """Unknown rule type reached the calculator. Fatal to the approval attempt."""
    status_code = 422

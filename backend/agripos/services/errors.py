# Overview: Service-layer exceptions shared by the checkout and order workflows.

from __future__ import annotations


class ServiceError(Exception):
    """Base for domain errors raised by services; routes map them to HTTP codes."""
    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(ServiceError):
    """Bad input: empty cart, missing field, insufficient payment, bad discount."""
    pass


class NotFoundError(ServiceError):
    status_code = 404


class InsufficientInventoryError(ServiceError):
    """Raised when an order cannot be confirmed for lack of stock."""
    status_code = 409

    def __init__(self, message: str, missing_items: list[dict]):
        super().__init__(message, details={"missing_items": missing_items})
        self.missing_items = missing_items


class TransactionError(ServiceError):
    """Raised when a sale cannot be written; the unit of work is rolled back."""
    pass


class InvalidOrderTransition(ServiceError):
    status_code = 409

    def __init__(self, order_id: int, current_status: str, action: str):
        super().__init__(
            f"Cannot {action} order {order_id} in status {current_status}",
            details={"order_id": order_id, "status": current_status, "action": action},
        )
        self.current_status = current_status
        self.action = action


class SessionError(ServiceError):
    status_code = 409


class InventoryCheckUnavailable(Exception):
    """The availability check could not reach its data; callers may degrade."""
    pass

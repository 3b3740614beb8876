"""Errors raised by the order/stock core."""

from __future__ import annotations


class OrderCoreError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message="An internal error occurred", status_code=500, payload=None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload

    def to_dict(self):
        rv = dict(self.payload or ())
        rv["message"] = self.message
        rv["status"] = "error"
        return rv


class NotFoundError(OrderCoreError):
    """A referenced order, product or supplier does not exist."""

    def __init__(self, message="Resource not found", status_code=404, payload=None):
        super().__init__(message, status_code, payload)


class OrderNotFound(NotFoundError):
    def __init__(self, order_id):
        super().__init__(f"Order {order_id} not found", payload={"order_id": order_id})
        self.order_id = order_id


class ProductNotFound(NotFoundError):
    def __init__(self, product_id, message=None, status_code=404, payload=None):
        rv = {"product_id": product_id}
        rv.update(payload or {})
        super().__init__(message or f"Product not found for ID: {product_id}", status_code, rv)
        self.product_id = product_id


class SupplierNotFound(NotFoundError):
    def __init__(self, supplier_id, status_code=404):
        super().__init__(f"Supplier {supplier_id} not found", status_code, {"supplier_id": supplier_id})
        self.supplier_id = supplier_id


class InsufficientStock(OrderCoreError):
    """A deduction would drive a product's stock below zero."""

    def __init__(self, product_id, product_name, requested, available):
        message = f"Insufficient stock for {product_name}. Available: {available}, requested: {requested}"
        super().__init__(
            message,
            status_code=409,
            payload={
                "product_id": product_id,
                "product_name": product_name,
                "requested": requested,
                "available": available,
            },
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class InvalidTransition(OrderCoreError):
    def __init__(self, order_id, from_status, to_status, message=None):
        super().__init__(
            message or "Cannot reactivate a cancelled order. Create a new one.",
            status_code=409,
            payload={
                "order_id": order_id,
                "from_status": getattr(from_status, "value", from_status),
                "to_status": getattr(to_status, "value", to_status),
            },
        )


class ValidationError(OrderCoreError):
    """Malformed input that the request schema could not catch."""

    def __init__(self, message, field=None):
        super().__init__(message, status_code=422, payload={"field": field} if field else None)
        self.field = field


class DuplicateError(OrderCoreError):
    def __init__(self, field, value, message=None):
        super().__init__(
            message or f"{field} '{value}' already exists",
            status_code=409,
            payload={"field": field, "value": value},
        )


class TransactionConflict(OrderCoreError):
    """Storage-level concurrency failure. Safe to retry."""

    def __init__(self, message="Transaction conflict, retry the request", attempts=1):
        super().__init__(message, status_code=503, payload={"attempts": attempts})
        self.attempts = attempts


class DataIntegrityFault(ProductNotFound):
    """A restock target no longer exists: the order can not be reversed."""

    def __init__(self, product_id, order_id=None):
        super().__init__(
            product_id,
            message=f"Cannot restock order {order_id}: product {product_id} no longer exists",
            status_code=500,
            payload={"order_id": order_id},
        )
        self.order_id = order_id


class InUseError(OrderCoreError):
    """The record is still referenced and can not be deleted."""

    def __init__(self, message, payload=None):
        super().__init__(message, status_code=409, payload=payload)

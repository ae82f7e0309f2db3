# storefront/core/exceptions.py
"""
Custom exceptions for the application.

Each error carries a stable `code` and the HTTP status the API answers with.
"""
from typing import Optional, Dict, Any, List


class StorefrontError(Exception):
    """Base exception for all Storefront errors."""
    code = "STOREFRONT_ERROR"
    status_code = 400

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": {"code": self.code, "message": self.message, "details": self.details}}


class NotFoundError(StorefrontError):
    """A record looked up by natural key does not exist."""
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, entity: str, key: Any):
        super().__init__(
            f"{entity} not found: {key}",
            {"entity": entity, "key": str(key)}
        )
        self.entity = entity
        self.key = key


class InsufficientStockError(StorefrontError):
    """Requested quantity exceeds available stock."""
    code = "INSUFFICIENT_STOCK"
    status_code = 409

    def __init__(self, sku: str, requested: int, available: int):
        super().__init__(
            f"Insufficient stock for {sku}: requested {requested}, available {available}",
            {"sku": sku, "requested": requested, "available": available}
        )
        self.sku = sku
        self.requested = requested
        self.available = available


class OrderStateError(StorefrontError):
    """Illegal order status transition."""
    code = "INVALID_TRANSITION"
    status_code = 409

    def __init__(self, order_id: Any, current: str, target: str):
        super().__init__(
            f"Order {order_id} cannot move from '{current}' to '{target}'",
            {"order_id": order_id, "current": current, "target": target}
        )
        self.order_id = order_id
        self.current = current
        self.target = target


class ProtectedRecordError(StorefrontError):
    """Delete blocked by PROTECT foreign keys."""
    code = "PROTECTED"
    status_code = 409

    def __init__(self, entity: str, key: Any, blockers: List[str]):
        super().__init__(
            f"{entity} {key} is referenced by {len(blockers)} record(s) and cannot be deleted",
            {"entity": entity, "key": str(key), "blockers": blockers}
        )
        self.entity = entity
        self.key = key
        self.blockers = blockers


class DatasetError(StorefrontError):
    """Sample dataset could not be read or applied."""
    code = "DATASET_ERROR"
    status_code = 400

    def __init__(self, path: str, message: str):
        super().__init__(
            f"Dataset {path}: {message}",
            {"path": path}
        )
        self.path = path


class RecipeError(StorefrontError):
    """Unknown cookbook recipe or bad recipe parameters."""
    code = "UNKNOWN_RECIPE"
    status_code = 404

    def __init__(self, name: str, message: str):
        super().__init__(
            f"Recipe '{name}': {message}",
            {"recipe": name}
        )
        self.name = name


class RecipeParamError(RecipeError):
    """Recipe exists but was called with unknown, missing or malformed params."""
    code = "INVALID_PARAMS"
    status_code = 400

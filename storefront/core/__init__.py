# storefront/core/__init__.py
"""
Core module - configuration, logging and exceptions.
"""
from storefront.core.config import settings
from storefront.core.logging import log, log_section
from storefront.core.exceptions import (
    StorefrontError,
    NotFoundError,
    InsufficientStockError,
    OrderStateError,
    ProtectedRecordError,
    DatasetError,
    RecipeError,
    RecipeParamError,
)

__all__ = [
    "settings",
    "log",
    "log_section",
    "StorefrontError",
    "NotFoundError",
    "InsufficientStockError",
    "OrderStateError",
    "ProtectedRecordError",
    "DatasetError",
    "RecipeError",
    "RecipeParamError",
]

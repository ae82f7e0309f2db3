# storefront/shop/models/__init__.py
"""
Sample e-commerce schema.

The models live in one module per area; this package re-exports them so
`from storefront.shop.models import Product` works everywhere.
"""
from storefront.shop.models.base import TimeStampedModel
from storefront.shop.models.catalog import Category, Product, Supplier, Tag
from storefront.shop.models.customers import Customer
from storefront.shop.models.orders import Order, OrderItem
from storefront.shop.models.reviews import Review

__all__ = [
    "TimeStampedModel",
    "Category",
    "Supplier",
    "Tag",
    "Product",
    "Customer",
    "Order",
    "OrderItem",
    "Review",
]

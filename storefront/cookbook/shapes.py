# storefront/cookbook/shapes.py
"""
Plain-dict views of model instances shared by recipes and the API.

Callers are expected to have loaded the relations they ask for
(select_related / prefetch_related); these helpers never query on their own
beyond what attribute access triggers.
"""
from decimal import Decimal
from typing import Any, Dict, Optional


def money(value: Optional[Any]) -> Optional[str]:
    if value is None:
        return None
    return str(Decimal(value).quantize(Decimal("0.01")))


def category_shape(category) -> Dict[str, Any]:
    return {
        "id": category.pk,
        "name": category.name,
        "slug": category.slug,
        "parent": category.parent.slug if category.parent_id else None,
    }


def product_shape(product, tags: bool = True) -> Dict[str, Any]:
    data = {
        "id": product.pk,
        "sku": product.sku,
        "name": product.name,
        "slug": product.slug,
        "price": money(product.price),
        "stock": product.stock,
        "is_active": product.is_active,
        "category": product.category.slug,
        "supplier": product.supplier.name if product.supplier_id else None,
        "attributes": product.attributes,
    }
    if tags:
        data["tags"] = sorted(t.slug for t in product.tags.all())
    return data


def customer_shape(customer) -> Dict[str, Any]:
    return {
        "id": customer.pk,
        "name": customer.full_name,
        "email": customer.email,
        "city": customer.city,
        "country": customer.country,
        "tier": customer.tier,
    }


def order_shape(order, items: bool = True) -> Dict[str, Any]:
    data = {
        "id": order.pk,
        "customer": order.customer.email,
        "status": order.status,
        "placed_at": order.placed_at,
        "shipping_address": order.shipping_address,
        "total": money(order.total),
    }
    if items:
        data["items"] = [
            {
                "sku": item.product.sku,
                "name": item.product.name,
                "quantity": item.quantity,
                "unit_price": money(item.unit_price),
                "line_total": money(item.line_total),
            }
            for item in order.items.all()
        ]
    return data

# storefront/cookbook/transactions.py
"""
Order service: the recipes where atomicity matters.

place_order locks the product rows it reads (select_for_update), checks stock,
then writes the order, its lines and the stock decrements inside one
transaction.atomic() block. Any exception rolls the whole thing back.

place_orders_batch nests one atomic() per order inside an outer one; each
inner block is a savepoint, so one bad order is undone on its own while the
others commit.
"""
import json
from decimal import Decimal
from typing import Any, Dict, List

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from storefront.cookbook.registry import Topic, recipe
from storefront.cookbook.relations import eager_orders
from storefront.cookbook.shapes import order_shape
from storefront.core.exceptions import InsufficientStockError, NotFoundError, StorefrontError
from storefront.core.logging import log
from storefront.lib.cache import invalidate_on_commit
from storefront.lib.monitoring import record_order_placed
from storefront.shop.models import Customer, Order, OrderItem, Product


def parse_items(items: Any) -> Dict[str, int]:
    """
    Normalise order lines to {SKU: quantity}.

    Accepts [{"sku": ..., "quantity": ...}], {"SKU": qty} or "SKU:2,SKU2:1".
    Repeated SKUs are merged since an order holds one line per product.
    """
    if isinstance(items, str):
        pairs = []
        for chunk in items.split(","):
            if not chunk.strip():
                continue
            sku, _, qty = chunk.partition(":")
            pairs.append((sku, qty or "1"))
    elif isinstance(items, dict):
        pairs = list(items.items())
    else:
        pairs = [(line.get("sku"), line.get("quantity", 1)) for line in items or []]

    merged: Dict[str, int] = {}
    for sku, qty in pairs:
        if not sku:
            raise ValidationError({"items": "Every line needs a SKU."})
        try:
            qty = int(qty)
        except (TypeError, ValueError):
            raise ValidationError({"items": f"Quantity for {sku} must be a whole number."})
        if qty < 1:
            raise ValidationError({"items": f"Quantity for {sku} must be at least 1."})
        key = str(sku).strip().upper()
        merged[key] = merged.get(key, 0) + qty
    if not merged:
        raise ValidationError({"items": "An order needs at least one line."})
    return merged


def _load_order(order_id: int) -> Dict[str, Any]:
    return order_shape(eager_orders().get(pk=order_id))


def _lock_order(order_id: Any) -> Order:
    try:
        return Order.objects.select_for_update().get(pk=int(order_id))
    except (Order.DoesNotExist, ValueError):
        raise NotFoundError("Order", order_id)


@recipe("place_order", Topic.TRANSACTIONS, "All-or-nothing checkout with select_for_update and F() stock updates", writes=True)
def place_order(customer_email: str, items: Any, shipping_address: str = "") -> Dict[str, Any]:
    requested = parse_items(items)

    with transaction.atomic():
        try:
            customer = Customer.objects.get(email=customer_email.strip().lower())
        except Customer.DoesNotExist:
            raise NotFoundError("Customer", customer_email)
        if not customer.is_active:
            raise ValidationError({"customer": f"{customer.email} is not an active customer."})

        # Locked in pk order so concurrent checkouts never deadlock on each other.
        products = {
            p.sku: p
            for p in Product.objects.select_for_update().filter(sku__in=list(requested)).order_by("pk")
        }
        missing = sorted(set(requested) - set(products))
        if missing:
            raise NotFoundError("Product", ", ".join(missing))

        for sku, qty in requested.items():
            product = products[sku]
            available = product.stock if product.is_active else 0
            if qty > available:
                raise InsufficientStockError(sku, qty, available)

        order = Order.objects.create(
            customer=customer,
            shipping_address=shipping_address or f"{customer.city}, {customer.country}".strip(", "),
        )
        lines = [
            OrderItem(order=order, product=products[sku], quantity=qty, unit_price=products[sku].price)
            for sku, qty in requested.items()
        ]
        OrderItem.objects.bulk_create(lines)

        now = timezone.now()
        for line in lines:
            # Guarded decrement: a concurrent writer that got here first makes this match nothing.
            changed = Product.objects.filter(pk=line.product_id, stock__gte=line.quantity).update(
                stock=F("stock") - line.quantity, updated_at=now
            )
            if not changed:
                raise InsufficientStockError(line.product.sku, line.quantity, line.product.stock)

        order.total = sum((line.unit_price * line.quantity for line in lines), Decimal("0.00"))
        order.save(update_fields=["total", "updated_at"])
        transaction.on_commit(record_order_placed)
        invalidate_on_commit("catalog", "orders")

    log("ORDERS", f"Placed order #{order.pk} for {customer.email}", {"items": requested, "total": str(order.total)})
    return _load_order(order.pk)


@recipe("cancel_order", Topic.TRANSACTIONS, "Cancel through the state machine and put the stock back atomically", writes=True)
def cancel_order(order_id: int) -> Dict[str, Any]:
    with transaction.atomic():
        order = _lock_order(order_id)
        order.transition_to(Order.Status.CANCELLED)
        now = timezone.now()
        for item in order.items.all():
            Product.objects.filter(pk=item.product_id).update(stock=F("stock") + item.quantity, updated_at=now)
        invalidate_on_commit("catalog", "orders")

    log("ORDERS", f"Cancelled order #{order.pk}, stock restored")
    return _load_order(order.pk)


@recipe("advance_order", Topic.TRANSACTIONS, "Move an order along pending -> paid -> shipped -> delivered", writes=True)
def advance_order(order_id: int, status: str) -> Dict[str, Any]:
    if str(status) == Order.Status.CANCELLED:
        return cancel_order(order_id)
    if str(status) not in Order.Status.values:
        raise ValidationError({"status": f"Unknown status '{status}'."})

    with transaction.atomic():
        order = _lock_order(order_id)
        previous = order.status
        order.transition_to(status)

    log("ORDERS", f"Order #{order.pk}: {previous} -> {order.status}")
    return _load_order(order.pk)


@recipe("place_orders_batch", Topic.TRANSACTIONS, "One savepoint per order: failures roll back alone", writes=True)
def place_orders_batch(requests: Any) -> Dict[str, Any]:
    if isinstance(requests, str):
        try:
            requests = json.loads(requests)
        except json.JSONDecodeError as e:
            raise ValidationError({"requests": f"Not valid JSON: {e.msg}"})

    results: List[Dict[str, Any]] = []
    with transaction.atomic():
        for index, request in enumerate(requests):
            try:
                with transaction.atomic():
                    order = place_order(
                        request.get("customer_email", ""),
                        request.get("items", []),
                        request.get("shipping_address", ""),
                    )
                results.append({"index": index, "ok": True, "order_id": order["id"], "total": order["total"]})
            except StorefrontError as e:
                results.append({"index": index, "ok": False, "error": {"code": e.code, "message": e.message}})
            except ValidationError as e:
                results.append({
                    "index": index,
                    "ok": False,
                    "error": {"code": "VALIDATION_ERROR", "message": "; ".join(e.messages)},
                })

    placed = sum(1 for r in results if r["ok"])
    log("ORDERS", f"Batch finished: {placed} placed, {len(results) - placed} rejected")
    return {"placed": placed, "failed": len(results) - placed, "results": results}

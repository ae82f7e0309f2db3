# storefront/cookbook/windows.py
"""
Window functions: per-row values computed over a partition of related rows.

Unlike annotate() + aggregate, a window keeps every row and adds the
partition-level value alongside it.
"""
from decimal import Decimal
from typing import Any, Dict, List

from django.db.models import F, Sum, Window
from django.db.models.functions import Lag, Ntile, Rank

from storefront.cookbook.registry import Topic, recipe
from storefront.cookbook.shapes import money
from storefront.shop.managers import MONEY
from storefront.shop.models import Order, Product


def _customer_orders(email: str):
    qs = Order.objects.countable().select_related("customer")
    if email:
        qs = qs.filter(customer__email=email.strip().lower())
    return qs


@recipe("rank_products_in_category", Topic.WINDOWS, "Rank() partitioned by category, most expensive first")
def rank_products_in_category() -> List[Dict[str, Any]]:
    qs = (
        Product.objects.active()
        .select_related("category")
        .annotate(
            price_rank=Window(
                expression=Rank(),
                partition_by=[F("category_id")],
                order_by=F("price").desc(),
            )
        )
        .order_by("category__name", "price_rank", "sku")
    )
    return [
        {"category": p.category.slug, "sku": p.sku, "price": money(p.price), "rank": p.price_rank}
        for p in qs
    ]


@recipe("customer_running_totals", Topic.WINDOWS, "Cumulative Sum() over each customer's orders by date")
def customer_running_totals(email: str = "") -> List[Dict[str, Any]]:
    qs = _customer_orders(email).annotate(
        running_total=Window(
            expression=Sum("total"),
            partition_by=[F("customer_id")],
            order_by=[F("placed_at").asc(), F("id").asc()],
            output_field=MONEY,
        )
    ).order_by("customer__email", "placed_at", "id")
    return [
        {
            "customer": o.customer.email,
            "order_id": o.pk,
            "placed_at": o.placed_at,
            "total": money(o.total),
            "running_total": money(o.running_total),
        }
        for o in qs
    ]


@recipe("order_gaps", Topic.WINDOWS, "Lag() gives each order the previous order date of the same customer")
def order_gaps(email: str = "") -> List[Dict[str, Any]]:
    qs = _customer_orders(email).annotate(
        previous_placed_at=Window(
            expression=Lag("placed_at"),
            partition_by=[F("customer_id")],
            order_by=[F("placed_at").asc(), F("id").asc()],
        )
    ).order_by("customer__email", "placed_at", "id")
    rows = []
    for o in qs:
        gap = (o.placed_at - o.previous_placed_at).days if o.previous_placed_at else None
        rows.append({
            "customer": o.customer.email,
            "order_id": o.pk,
            "placed_at": o.placed_at,
            "previous_placed_at": o.previous_placed_at,
            "days_since_previous": gap,
        })
    return rows


@recipe("product_price_quartiles", Topic.WINDOWS, "Ntile(4) splits active products into price quartiles")
def product_price_quartiles() -> Dict[str, Any]:
    qs = (
        Product.objects.active()
        .annotate(quartile=Window(expression=Ntile(4), order_by=[F("price").asc(), F("sku").asc()]))
        .order_by("quartile", "price", "sku")
    )
    rows = [{"sku": p.sku, "price": money(p.price), "quartile": p.quartile} for p in qs]
    buckets: Dict[int, List[str]] = {}
    for row in rows:
        buckets.setdefault(row["quartile"], []).append(row["sku"])
    return {"rows": rows, "buckets": buckets}


@recipe("category_price_share", Topic.WINDOWS, "Partition Sum() of prices and each product's share of it")
def category_price_share() -> List[Dict[str, Any]]:
    qs = (
        Product.objects.active()
        .select_related("category")
        .annotate(
            category_total=Window(
                expression=Sum("price"),
                partition_by=[F("category_id")],
                output_field=MONEY,
            )
        )
        .order_by("category__name", "-price", "sku")
    )
    rows = []
    for p in qs:
        total = Decimal(p.category_total)
        share = (Decimal(p.price) * 100 / total).quantize(Decimal("0.01")) if total else Decimal("0.00")
        rows.append({
            "category": p.category.slug,
            "sku": p.sku,
            "price": money(p.price),
            "category_total": money(total),
            "share_pct": str(share),
        })
    return rows

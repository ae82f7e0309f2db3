# storefront/cookbook/aggregation.py
"""
aggregate(), annotate(), conditional aggregation and subqueries.

The four report-style recipes are cached per namespace; saving a model they
read from bumps that namespace (storefront.shop.signals) and the next call
recomputes.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.db.models import (
    Avg,
    Case,
    CharField,
    Count,
    Exists,
    F,
    Max,
    Min,
    OuterRef,
    Q,
    Subquery,
    Sum,
    Value,
    When,
)
from django.db.models.functions import Coalesce, TruncMonth

from storefront.cookbook.registry import Topic, recipe
from storefront.cookbook.shapes import money
from storefront.lib.cache import cached_query
from storefront.shop.managers import MONEY, SALES_STATUSES, ZERO
from storefront.shop.models import Customer, Order, OrderItem, Product

PRICE_BANDS = (
    ("budget", Decimal("50")),
    ("mid", Decimal("300")),
    ("premium", None),
)


@recipe("catalog_stats", Topic.AGGREGATION, "Count, Avg, Min, Max and Sum over the whole catalog in one query")
@cached_query("catalog")
def catalog_stats() -> Dict[str, Any]:
    stats = Product.objects.aggregate(
        products=Count("id"),
        active=Count("id", filter=Q(is_active=True)),
        in_stock=Count("id", filter=Q(is_active=True, stock__gt=0)),
        avg_price=Avg("price", output_field=MONEY),
        min_price=Min("price"),
        max_price=Max("price"),
        total_stock=Coalesce(Sum("stock"), 0),
        inventory_value=Coalesce(Sum(F("price") * F("stock"), output_field=MONEY), ZERO),
    )
    for key in ("avg_price", "min_price", "max_price", "inventory_value"):
        stats[key] = money(stats[key])
    return stats


@recipe("revenue_by_category", Topic.AGGREGATION, "values() + annotate() groups order lines by category")
@cached_query("orders")
def revenue_by_category() -> List[Dict[str, Any]]:
    rows = (
        OrderItem.objects.filter(order__status__in=SALES_STATUSES)
        .values("product__category__slug", "product__category__name")
        .annotate(
            units=Sum("quantity"),
            revenue=Sum(F("quantity") * F("unit_price"), output_field=MONEY),
        )
        .order_by("-revenue", "product__category__slug")
    )
    return [
        {
            "category": row["product__category__slug"],
            "name": row["product__category__name"],
            "units": row["units"],
            "revenue": money(row["revenue"]),
        }
        for row in rows
    ]


@recipe("top_products", Topic.AGGREGATION, "Best sellers by revenue from non-cancelled orders")
@cached_query("orders")
def top_products(limit: int = 5) -> List[Dict[str, Any]]:
    qs = Product.objects.with_sales().filter(units_sold__gt=0).order_by("-revenue", "sku")[: int(limit)]
    return [
        {"sku": p.sku, "name": p.name, "units_sold": p.units_sold, "revenue": money(p.revenue)}
        for p in qs
    ]


@recipe("product_ratings", Topic.AGGREGATION, "Average rating and review count, filtered on the annotation")
@cached_query("reviews")
def product_ratings(min_reviews: int = 1) -> List[Dict[str, Any]]:
    qs = (
        Product.objects.with_rating()
        .filter(review_count__gte=int(min_reviews))
        .order_by(F("avg_rating").desc(nulls_last=True), "-review_count", "name")
    )
    return [
        {
            "sku": p.sku,
            "name": p.name,
            "avg_rating": round(float(p.avg_rating), 2) if p.avg_rating is not None else None,
            "review_count": p.review_count,
        }
        for p in qs
    ]


@recipe("order_status_breakdown", Topic.AGGREGATION, "One Count(filter=Q(...)) per status in a single query")
def order_status_breakdown() -> Dict[str, Any]:
    counts = Order.objects.aggregate(
        total=Count("id"),
        **{status: Count("id", filter=Q(status=status)) for status in Order.Status.values},
    )
    total = counts.pop("total")
    return {"total": total, "by_status": counts}


@recipe("customer_lifetime_values", Topic.AGGREGATION, "Per-customer order count and spend, customers without orders included")
def customer_lifetime_values() -> List[Dict[str, Any]]:
    qs = Customer.objects.with_order_stats().order_by("-lifetime_value", "email")
    rows = []
    for c in qs:
        average = c.lifetime_value / c.order_count if c.order_count else None
        rows.append({
            "email": c.email,
            "name": c.full_name,
            "tier": c.tier,
            "order_count": c.order_count,
            "lifetime_value": money(c.lifetime_value),
            "average_order": money(average),
        })
    return rows


@recipe("monthly_sales", Topic.AGGREGATION, "TruncMonth grouping of order totals")
def monthly_sales(year: Optional[int] = None) -> List[Dict[str, Any]]:
    qs = Order.objects.countable()
    if year is not None:
        qs = qs.filter(placed_at__year=int(year))
    rows = (
        qs.annotate(month=TruncMonth("placed_at"))
        .values("month")
        .annotate(orders=Count("id"), total=Sum("total"))
        .order_by("month")
    )
    return [
        {"month": row["month"].strftime("%Y-%m"), "orders": row["orders"], "total": money(row["total"])}
        for row in rows
    ]


@recipe("products_never_ordered", Topic.AGGREGATION, "Anti-join with ~Exists()")
def products_never_ordered() -> List[Dict[str, Any]]:
    ordered = OrderItem.objects.filter(product=OuterRef("pk"))
    qs = Product.objects.filter(~Exists(ordered)).order_by("sku")
    return [{"sku": p.sku, "name": p.name, "stock": p.stock, "is_active": p.is_active} for p in qs]


@recipe("latest_order_per_customer", Topic.AGGREGATION, "Correlated Subquery with OuterRef, one row per customer")
def latest_order_per_customer() -> List[Dict[str, Any]]:
    latest = Order.objects.filter(customer=OuterRef("pk")).order_by("-placed_at", "-id")
    qs = (
        Customer.objects.annotate(
            latest_order_id=Subquery(latest.values("id")[:1]),
            latest_placed_at=Subquery(latest.values("placed_at")[:1]),
            latest_status=Subquery(latest.values("status")[:1]),
            latest_total=Subquery(latest.values("total")[:1], output_field=MONEY),
        )
        .filter(latest_order_id__isnull=False)
        .order_by("email")
    )
    return [
        {
            "email": c.email,
            "order_id": c.latest_order_id,
            "placed_at": c.latest_placed_at,
            "status": c.latest_status,
            "total": money(c.latest_total),
        }
        for c in qs
    ]


@recipe("price_bands", Topic.AGGREGATION, "Case/When buckets counted with values().annotate()")
def price_bands() -> Dict[str, int]:
    whens = [When(price__lt=limit, then=Value(name)) for name, limit in PRICE_BANDS if limit is not None]
    premium = PRICE_BANDS[-1][0]
    rows = (
        Product.objects.annotate(band=Case(*whens, default=Value(premium), output_field=CharField()))
        .values("band")
        .annotate(count=Count("id"))
        .order_by("band")
    )
    found = {row["band"]: row["count"] for row in rows}
    return {name: found.get(name, 0) for name, _ in PRICE_BANDS}

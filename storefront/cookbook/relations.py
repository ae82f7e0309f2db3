# storefront/cookbook/relations.py
"""
Following foreign keys in both directions without N+1 queries.

select_related joins single-valued relations into the main query;
prefetch_related runs one extra query per multi-valued relation and stitches
the results together in Python.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.db import connection
from django.db.models import Count, Prefetch
from django.test.utils import CaptureQueriesContext

from storefront.cookbook.registry import Topic, recipe
from storefront.cookbook.shapes import customer_shape, money, order_shape, product_shape
from storefront.core.exceptions import NotFoundError
from storefront.shop.managers import SALES_STATUSES
from storefront.shop.models import Category, Customer, Order, OrderItem, Product, Review, Supplier


def _items_prefetch() -> Prefetch:
    return Prefetch("items", queryset=OrderItem.objects.select_related("product").order_by("id"))


def eager_orders():
    """Orders with customer joined and items + products prefetched: two queries total."""
    return Order.objects.select_related("customer").prefetch_related(_items_prefetch())


@recipe("order_summaries", Topic.RELATIONS, "select_related customer + Prefetch of items with their products")
def order_summaries(status: str = "", limit: int = 0) -> List[Dict[str, Any]]:
    qs = eager_orders().order_by("placed_at", "id")
    if status:
        qs = qs.with_status(*[s.strip() for s in status.split(",") if s.strip()])
    if limit:
        qs = qs[:limit]
    return [order_shape(o) for o in qs]


@recipe("product_cards", Topic.RELATIONS, "Product listing with category, supplier, tags and reviews loaded up front")
def product_cards(category: str = "") -> List[Dict[str, Any]]:
    qs = (
        Product.objects.active()
        .select_related("category", "supplier")
        .prefetch_related(
            "tags",
            Prefetch("reviews", queryset=Review.objects.select_related("customer").order_by("-rating", "id")),
        )
        .order_by("sku")
    )
    if category:
        try:
            qs = qs.in_category(category)
        except Category.DoesNotExist:
            raise NotFoundError("Category", category)

    cards = []
    for product in qs:
        reviews = list(product.reviews.all())
        ratings = [r.rating for r in reviews]
        cards.append({
            **product_shape(product),
            "rating": round(sum(ratings) / len(ratings), 2) if ratings else None,
            "reviews": [
                {"author": r.customer.full_name, "rating": r.rating, "title": r.title, "verified": r.is_verified}
                for r in reviews
            ],
        })
    return cards


@recipe("category_tree", Topic.RELATIONS, "Nested categories built from the parent/children self-reference")
def category_tree() -> List[Dict[str, Any]]:
    """
    One query fetches every category with its direct product count; the tree
    is assembled by walking each node's children.
    """
    categories = list(Category.objects.annotate(product_count=Count("products")).order_by("name"))
    children: Dict[Optional[int], List[Category]] = {}
    for category in categories:
        children.setdefault(category.parent_id, []).append(category)

    def build(node: Category, seen: frozenset) -> Dict[str, Any]:
        kids = [build(child, seen | {node.pk}) for child in children.get(node.pk, []) if child.pk not in seen]
        return {
            "name": node.name,
            "slug": node.slug,
            "product_count": node.product_count,
            "total_products": node.product_count + sum(k["total_products"] for k in kids),
            "children": kids,
        }

    return [build(root, frozenset()) for root in children.get(None, [])]


@recipe("customer_order_history", Topic.RELATIONS, "Reverse foreign key: customer.orders with items prefetched")
def customer_order_history(email: str) -> Dict[str, Any]:
    try:
        customer = Customer.objects.get(email=email.strip().lower())
    except Customer.DoesNotExist:
        raise NotFoundError("Customer", email)

    orders = list(
        customer.orders.select_related("customer").prefetch_related(_items_prefetch()).order_by("placed_at", "id")
    )
    counted = [o for o in orders if o.status in SALES_STATUSES]
    return {
        "customer": customer_shape(customer),
        "order_count": len(counted),
        "lifetime_value": money(sum((o.total for o in counted), Decimal("0.00"))),
        "orders": [order_shape(o) for o in orders],
    }


@recipe("supplier_catalog", Topic.RELATIONS, "Filtered Prefetch stored on a to_attr list")
def supplier_catalog(active_only: bool = True) -> List[Dict[str, Any]]:
    products = Product.objects.order_by("sku")
    if active_only:
        products = products.filter(is_active=True)
    suppliers = Supplier.objects.prefetch_related(
        Prefetch("products", queryset=products, to_attr="listed_products")
    ).order_by("name")
    return [
        {
            "supplier": s.name,
            "country": s.country,
            "count": len(s.listed_products),
            "products": [p.sku for p in s.listed_products],
        }
        for s in suppliers
    ]


def _walk_orders(orders) -> List[Any]:
    return [(o.customer.email, [(i.product.sku, i.quantity) for i in o.items.all()]) for o in orders]


@recipe("compare_loading_strategies", Topic.RELATIONS, "Count queries for lazy vs eager loading of the same data")
def compare_loading_strategies() -> Dict[str, Any]:
    """
    Walks every order with its customer and line products twice. Lazy access
    issues one query per relation per row (the N+1 problem); the eager version
    stays at two queries however many orders there are.
    """
    with CaptureQueriesContext(connection) as naive:
        naive_rows = _walk_orders(Order.objects.order_by("id"))
    with CaptureQueriesContext(connection) as eager:
        eager_rows = _walk_orders(eager_orders().order_by("id"))

    return {
        "orders": len(naive_rows),
        "items": sum(len(items) for _, items in naive_rows),
        "naive_queries": len(naive.captured_queries),
        "eager_queries": len(eager.captured_queries),
        "same_result": naive_rows == eager_rows,
    }

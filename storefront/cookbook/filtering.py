# storefront/cookbook/filtering.py
"""
Field lookups, Q objects, F comparisons and pagination.
"""
import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from django.core.exceptions import ValidationError
from django.core.paginator import EmptyPage, Paginator
from django.db.models import F, Q
from django.utils.dateparse import parse_date

from storefront.cookbook.registry import Topic, recipe
from storefront.cookbook.shapes import money, order_shape, product_shape
from storefront.core.config import settings
from storefront.core.exceptions import NotFoundError
from storefront.shop.models import Category, Customer, Order, Product


def _split(value) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [v.strip() for v in value.split(",") if v.strip()]
    return list(value)


def _date(value, field: str) -> Optional[datetime.date]:
    if value is None or isinstance(value, datetime.date):
        return value
    try:
        parsed = parse_date(str(value))
    except ValueError:
        parsed = None
    if parsed is None:
        raise ValidationError({field: f"'{value}' is not a date (YYYY-MM-DD)."})
    return parsed


def _amount(value, field: str) -> Optional[Decimal]:
    if value is None:
        return None
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValidationError({field: f"'{value}' is not a valid amount."})


def _brief(product: Product) -> Dict[str, Any]:
    return {"sku": product.sku, "name": product.name, "price": money(product.price), "stock": product.stock}


@recipe("products_in_price_range", Topic.FILTERING, "price__gte / price__lte on active products")
def products_in_price_range(low: Any = None, high: Any = None) -> List[Dict[str, Any]]:
    low = _amount(low, "low")
    high = _amount(high, "high")
    qs = Product.objects.active().price_between(low, high).order_by("price", "sku")
    return [_brief(p) for p in qs]


@recipe("search_products", Topic.FILTERING, "OR across fields with Q, minus an excluded term with ~Q")
def search_products(term: str, exclude: str = "", active_only: bool = True) -> List[Dict[str, Any]]:
    qs = Product.objects.all()
    if active_only:
        qs = qs.active()
    qs = qs.search(term)
    if exclude:
        qs = qs.filter(~Q(name__icontains=exclude) & ~Q(description__icontains=exclude))
    return [_brief(p) for p in qs.order_by("sku")]


@recipe("products_excluding_category", Topic.FILTERING, "exclude() a category subtree")
def products_excluding_category(category: str) -> List[Dict[str, Any]]:
    try:
        root = Category.objects.get(slug=category)
    except Category.DoesNotExist:
        raise NotFoundError("Category", category)
    qs = Product.objects.active().exclude(category_id__in=root.descendant_ids()).order_by("sku")
    return [_brief(p) for p in qs]


@recipe("customers_by_email_domain", Topic.FILTERING, "Case-insensitive suffix match with iendswith")
def customers_by_email_domain(domain: str) -> List[Dict[str, Any]]:
    domain = domain.strip().lstrip("@")
    qs = Customer.objects.filter(email__iendswith=f"@{domain}").order_by("email")
    return [{"name": c.full_name, "email": c.email} for c in qs]


@recipe("orders_in_period", Topic.FILTERING, "placed_at__date__range, inclusive on both ends")
def orders_in_period(start: Any, end: Any, status: str = "") -> List[Dict[str, Any]]:
    period = (_date(start, "start"), _date(end, "end"))
    qs = Order.objects.select_related("customer").filter(placed_at__date__range=period)
    statuses = _split(status)
    if statuses:
        qs = qs.with_status(*statuses)
    return [order_shape(o, items=False) for o in qs.order_by("placed_at")]


@recipe("products_with_tags", Topic.FILTERING, "Any-of (tags__slug__in) or all-of (chained filters) tag matching")
def products_with_tags(tags: Any, match_all: bool = False) -> List[Dict[str, Any]]:
    qs = Product.objects.active().tagged(*_split(tags), match_all=match_all).order_by("sku")
    return [_brief(p) for p in qs]


@recipe("distinct_customer_countries", Topic.FILTERING, "values_list(flat=True) with distinct()")
def distinct_customer_countries() -> List[str]:
    return list(
        Customer.objects.exclude(country="").order_by("country").values_list("country", flat=True).distinct()
    )


@recipe("restock_candidates", Topic.FILTERING, "Compare two columns with F: stock below units already sold")
def restock_candidates(threshold: Optional[int] = None) -> List[Dict[str, Any]]:
    """
    Active products whose remaining stock no longer covers what has sold so
    far, or that sit at or below the low-stock threshold.
    """
    if threshold is None:
        threshold = settings.low_stock_threshold
    qs = (
        Product.objects.active()
        .with_sales()
        .filter(Q(stock__lt=F("units_sold")) | Q(stock__lte=int(threshold)))
        .order_by("stock", "sku")
    )
    return [{**_brief(p), "units_sold": p.units_sold} for p in qs]


@recipe("paginate_products", Topic.FILTERING, "Django Paginator over an ordered queryset")
def paginate_products(page: int = 1, size: int = 5, category: str = "") -> Dict[str, Any]:
    qs = Product.objects.select_related("category", "supplier").prefetch_related("tags").active()
    if category:
        try:
            qs = qs.in_category(category)
        except Category.DoesNotExist:
            raise NotFoundError("Category", category)
    paginator = Paginator(qs.order_by("name", "sku"), settings.page_size(size))
    try:
        current = paginator.page(page)
    except EmptyPage:
        current = paginator.page(paginator.num_pages)
    return {
        "page": current.number,
        "num_pages": paginator.num_pages,
        "count": paginator.count,
        "has_next": current.has_next(),
        "has_previous": current.has_previous(),
        "results": [product_shape(p) for p in current.object_list],
    }


@recipe("product_existence", Topic.FILTERING, "exists() vs count() vs first() for the same lookup")
def product_existence(sku: str) -> Dict[str, Any]:
    qs = Product.objects.filter(sku=sku.strip().upper())
    first = qs.first()
    return {
        "sku": sku.strip().upper(),
        "exists": qs.exists(),
        "count": qs.count(),
        "first": _brief(first) if first else None,
    }

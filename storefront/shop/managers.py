# storefront/shop/managers.py
"""
Custom querysets and managers for the shop models.

Every chainable filter lives on a QuerySet so it composes
(`Product.objects.active().in_stock().with_rating()`); managers are built
from those querysets with Manager.from_queryset().
"""
from decimal import Decimal

from django.db import models
from django.db.models import Avg, Count, DecimalField, F, Q, Sum, Value
from django.db.models.functions import Coalesce

MONEY = DecimalField(max_digits=12, decimal_places=2)
ZERO = Value(Decimal("0.00"), output_field=MONEY)

# Order statuses that count towards sales figures; cancelled orders never do.
SALES_STATUSES = ("pending", "paid", "shipped", "delivered")


class ProductQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def in_stock(self):
        return self.filter(stock__gt=0)

    def low_stock(self, threshold=None):
        if threshold is None:
            from storefront.core.config import settings
            threshold = settings.low_stock_threshold
        return self.filter(stock__lte=threshold)

    def in_category(self, category):
        """Products in a category or any of its sub-categories."""
        from storefront.shop.models import Category

        if not isinstance(category, Category):
            category = Category.objects.get(slug=category)
        return self.filter(category_id__in=category.descendant_ids())

    def tagged(self, *slugs, match_all=False):
        if not slugs:
            return self
        if not match_all:
            return self.filter(tags__slug__in=slugs).distinct()
        qs = self
        for slug in slugs:
            qs = qs.filter(tags__slug=slug)
        return qs.distinct()

    def search(self, term):
        term = (term or "").strip()
        if not term:
            return self
        return self.filter(
            Q(name__icontains=term) | Q(description__icontains=term) | Q(sku__iexact=term)
        )

    def price_between(self, low=None, high=None):
        qs = self
        if low is not None:
            qs = qs.filter(price__gte=low)
        if high is not None:
            qs = qs.filter(price__lte=high)
        return qs

    def with_rating(self):
        return self.annotate(
            avg_rating=Avg("reviews__rating"),
            review_count=Count("reviews", distinct=True),
        )

    def with_sales(self):
        sold = Q(order_items__order__status__in=SALES_STATUSES)
        return self.annotate(
            units_sold=Coalesce(Sum("order_items__quantity", filter=sold), 0, output_field=models.IntegerField()),
            revenue=Coalesce(
                Sum(F("order_items__quantity") * F("order_items__unit_price"), filter=sold, output_field=MONEY),
                ZERO,
            ),
        )


class ProductManager(models.Manager.from_queryset(ProductQuerySet)):
    pass


class AvailableProductManager(ProductManager):
    """Only products a customer can actually buy right now."""

    def get_queryset(self):
        return super().get_queryset().filter(is_active=True, stock__gt=0)


class OrderQuerySet(models.QuerySet):
    def with_item_totals(self):
        return self.annotate(
            items_total=Coalesce(
                Sum(F("items__quantity") * F("items__unit_price"), output_field=MONEY),
                ZERO,
            ),
            item_count=Coalesce(Sum("items__quantity"), 0, output_field=models.IntegerField()),
        )

    def with_status(self, *statuses):
        return self.filter(status__in=statuses) if statuses else self

    def placed_between(self, start=None, end=None):
        qs = self
        if start is not None:
            qs = qs.filter(placed_at__gte=start)
        if end is not None:
            qs = qs.filter(placed_at__lt=end)
        return qs

    def open(self):
        return self.filter(status__in=("pending", "paid"))

    def countable(self):
        return self.filter(status__in=SALES_STATUSES)


class OrderManager(models.Manager.from_queryset(OrderQuerySet)):
    pass


class CustomerQuerySet(models.QuerySet):
    def active(self):
        return self.filter(is_active=True)

    def with_order_stats(self):
        counted = Q(orders__status__in=SALES_STATUSES)
        return self.annotate(
            order_count=Count("orders", filter=counted, distinct=True),
            lifetime_value=Coalesce(Sum("orders__total", filter=counted), ZERO),
        )

    def top_spenders(self, limit=5):
        return self.with_order_stats().filter(order_count__gt=0).order_by("-lifetime_value", "email")[:limit]


class CustomerManager(models.Manager.from_queryset(CustomerQuerySet)):
    pass

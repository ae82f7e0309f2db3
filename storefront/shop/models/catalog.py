# storefront/shop/models/catalog.py
"""
Catalog models: categories, suppliers, tags and products.
"""
from decimal import Decimal
from typing import List

from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models

from storefront.shop.managers import AvailableProductManager, ProductManager
from storefront.shop.models.base import TimeStampedModel


class Category(TimeStampedModel):
    name = models.CharField(max_length=100, unique=True)
    slug = models.SlugField(max_length=120, unique=True, blank=True)
    description = models.TextField(blank=True, default="")
    parent = models.ForeignKey(
        "self",
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="children",
    )

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "categories"

    def __str__(self):
        return self.name

    def ancestors(self) -> List["Category"]:
        """Parents from the direct parent up to the root."""
        chain = []
        seen = {self.pk}
        node = self.parent
        while node is not None and node.pk not in seen:
            chain.append(node)
            seen.add(node.pk)
            node = node.parent
        return chain

    def descendant_ids(self) -> List[int]:
        """This category's id plus the ids of every category below it."""
        ids = [self.pk]
        frontier = [self.pk]
        while frontier:
            frontier = [
                pk for pk in Category.objects.filter(parent_id__in=frontier).values_list("id", flat=True)
                if pk not in ids
            ]
            ids.extend(frontier)
        return ids


class Supplier(TimeStampedModel):
    name = models.CharField(max_length=150, unique=True)
    email = models.EmailField(blank=True, default="")
    phone = models.CharField(max_length=30, blank=True, default="")
    country = models.CharField(max_length=60, blank=True, default="")
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Tag(models.Model):
    name = models.CharField(max_length=50, unique=True)
    slug = models.SlugField(max_length=60, unique=True, blank=True)

    class Meta:
        ordering = ["name"]

    def __str__(self):
        return self.name


class Product(TimeStampedModel):
    sku = models.CharField(max_length=32, unique=True)
    name = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True, blank=True)
    description = models.TextField(blank=True, default="")
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        validators=[MinValueValidator(Decimal("0"))],
    )
    stock = models.IntegerField(default=0, validators=[MinValueValidator(0)])
    is_active = models.BooleanField(default=True)
    category = models.ForeignKey(Category, on_delete=models.PROTECT, related_name="products")
    supplier = models.ForeignKey(
        Supplier,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="products",
    )
    tags = models.ManyToManyField(Tag, blank=True, related_name="products")
    attributes = models.JSONField(default=dict, blank=True)

    objects = ProductManager()
    available = AvailableProductManager()

    class Meta:
        ordering = ["name"]
        indexes = [
            models.Index(fields=["category", "price"], name="product_category_price_idx"),
        ]
        constraints = [
            models.CheckConstraint(condition=models.Q(price__gte=0), name="product_price_non_negative"),
            models.CheckConstraint(condition=models.Q(stock__gte=0), name="product_stock_non_negative"),
        ]

    def __str__(self):
        return f"{self.name} ({self.sku})"

    @property
    def in_stock(self) -> bool:
        return self.is_active and self.stock > 0

    def clean(self):
        if self.sku:
            self.sku = self.sku.strip().upper()
        if self.attributes is not None and not isinstance(self.attributes, dict):
            raise ValidationError({"attributes": "Attributes must be a JSON object."})

# storefront/shop/loader.py
"""
Sample dataset import / export.

The dataset is plain JSON keyed by model family. Rows point at each other by
natural key instead of database id:

    category -> slug      supplier -> name      tag -> slug
    product  -> sku       customer -> email

Everything is inserted with bulk_create inside one transaction, so a bad
reference anywhere leaves the database exactly as it was.
"""
import json
from datetime import timezone as dt_timezone
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from django.db import IntegrityError, connection, transaction
from django.db.models import Exists, OuterRef
from django.utils import timezone
from django.utils.dateparse import parse_datetime
from django.utils.text import slugify

from storefront.core.config import settings
from storefront.core.exceptions import DatasetError
from storefront.core.logging import log, log_counts
from storefront.lib.cache import NAMESPACES, invalidate
from storefront.shop.models import Category, Customer, Order, OrderItem, Product, Review, Supplier, Tag

SECTIONS = ("categories", "suppliers", "tags", "products", "customers", "orders", "reviews")


@dataclass
class LoadReport:
    """Per-model row counts written by load_dataset()."""
    path: str
    reset: bool = False
    counts: Dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "reset": self.reset, "counts": dict(self.counts), "total": self.total}


def read_dataset(path: Union[str, Path, None] = None) -> Dict[str, List[dict]]:
    path = Path(path or settings.paths.sample_dataset)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        raise DatasetError(str(path), "file not found")
    except json.JSONDecodeError as e:
        raise DatasetError(str(path), f"invalid JSON ({e.msg} at line {e.lineno})")

    if not isinstance(data, dict):
        raise DatasetError(str(path), "top level must be an object")
    unknown = set(data) - set(SECTIONS)
    if unknown:
        raise DatasetError(str(path), f"unknown sections: {', '.join(sorted(unknown))}")
    return {section: list(data.get(section) or []) for section in SECTIONS}


def clear_shop_data() -> Dict[str, int]:
    """Delete every shop row, children before the parents that PROTECT them."""
    deleted = {}
    for model in (Review, OrderItem, Order, Product.tags.through, Product, Customer, Tag, Supplier, Category):
        count, _ = model.objects.all().delete()
        deleted[model._meta.label] = count
    return deleted


def mark_verified_reviews() -> int:
    """Flag reviews whose author bought the product in a non-cancelled order."""
    purchases = OrderItem.objects.exclude(order__status=Order.Status.CANCELLED).filter(
        order__customer_id=OuterRef("customer_id"),
        product_id=OuterRef("product_id"),
    )
    return Review.objects.filter(Exists(purchases), is_verified=False).update(is_verified=True)


def _lookup(mapping: Dict[str, Any], key: Any, what: str, owner: str, path: str):
    try:
        return mapping[key]
    except KeyError:
        raise DatasetError(path, f"{owner} references unknown {what} '{key}'")


def _decimal(value: Any, owner: str, path: str) -> Decimal:
    try:
        return Decimal(str(value)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        raise DatasetError(path, f"{owner} has an invalid amount '{value}'")


def _by(model, field_name: str, keys: Iterable[Any]) -> Dict[Any, Any]:
    """Re-read freshly inserted rows keyed by a natural key (ids are not portable across backends)."""
    return {getattr(obj, field_name): obj for obj in model.objects.filter(**{f"{field_name}__in": list(keys)})}


def _insert_orders(orders: List[Order]) -> None:
    if connection.features.can_return_rows_from_bulk_insert:
        Order.objects.bulk_create(orders)
    else:
        for order in orders:
            order.save()


def load_dataset(path: Union[str, Path, None] = None, reset: bool = False) -> LoadReport:
    """
    Load a dataset file (the bundled sample by default).

    With reset=True every existing shop row is removed first, which makes the
    call idempotent. Raises DatasetError for unreadable files, unknown natural
    keys and rows the database rejects.
    """
    path_str = str(path or settings.paths.sample_dataset)
    data = read_dataset(path_str)
    report = LoadReport(path=path_str, reset=reset)

    try:
        with transaction.atomic():
            if reset:
                clear_shop_data()
            _load(data, report, path_str)
            transaction.on_commit(lambda: invalidate(*NAMESPACES))
    except IntegrityError as e:
        raise DatasetError(path_str, f"rejected by the database: {e}")
    except KeyError as e:
        raise DatasetError(path_str, f"missing field {e}")

    log_counts("LOADER", f"Loaded {report.total} rows from {path_str}", report.counts)
    return report


def _load(data: Dict[str, List[dict]], report: LoadReport, path: str) -> None:
    # Categories: insert flat, then wire parents once every slug has an id.
    categories = [
        Category(
            name=row["name"],
            slug=row.get("slug") or slugify(row["name"]),
            description=row.get("description", ""),
        )
        for row in data["categories"]
    ]
    Category.objects.bulk_create(categories)
    category_map = _by(Category, "slug", [c.slug for c in categories])
    with_parent = []
    for row, cat in zip(data["categories"], categories):
        if row.get("parent"):
            child = category_map[cat.slug]
            child.parent = _lookup(category_map, row["parent"], "category", f"category {cat.slug}", path)
            with_parent.append(child)
    Category.objects.bulk_update(with_parent, ["parent"])
    report.counts["categories"] = len(categories)

    suppliers = [
        Supplier(
            name=row["name"],
            email=row.get("email", ""),
            phone=row.get("phone", ""),
            country=row.get("country", ""),
            is_active=row.get("is_active", True),
        )
        for row in data["suppliers"]
    ]
    Supplier.objects.bulk_create(suppliers)
    supplier_map = _by(Supplier, "name", [s.name for s in suppliers])
    report.counts["suppliers"] = len(suppliers)

    tags = [Tag(name=row["name"], slug=row.get("slug") or slugify(row["name"])) for row in data["tags"]]
    Tag.objects.bulk_create(tags)
    tag_map = _by(Tag, "slug", [t.slug for t in tags])
    report.counts["tags"] = len(tags)

    products = []
    taken = set(Product.objects.values_list("slug", flat=True))
    for row in data["products"]:
        owner = f"product {row['sku']}"
        supplier = row.get("supplier")
        slug = row.get("slug") or slugify(row["name"])
        if slug in taken and not row.get("slug"):
            # same rule as the pre_save handler: a repeated name gets the SKU appended
            slug = slugify(f"{row['name']} {row['sku']}")
        taken.add(slug)
        products.append(Product(
            sku=row["sku"],
            name=row["name"],
            slug=slug,
            description=row.get("description", ""),
            price=_decimal(row["price"], owner, path),
            stock=int(row.get("stock", 0)),
            is_active=row.get("is_active", True),
            category=_lookup(category_map, row["category"], "category", owner, path),
            supplier=_lookup(supplier_map, supplier, "supplier", owner, path) if supplier else None,
            attributes=row.get("attributes") or {},
        ))
    Product.objects.bulk_create(products)
    product_map = _by(Product, "sku", [p.sku for p in products])
    report.counts["products"] = len(products)

    Through = Product.tags.through
    links = [
        Through(
            product_id=product_map[row["sku"]].pk,
            tag_id=_lookup(tag_map, slug, "tag", f"product {row['sku']}", path).pk,
        )
        for row in data["products"]
        for slug in row.get("tags", [])
    ]
    Through.objects.bulk_create(links)
    report.counts["product_tags"] = len(links)

    customers = [
        Customer(
            first_name=row["first_name"],
            last_name=row["last_name"],
            email=row["email"].strip().lower(),
            phone=row.get("phone", ""),
            city=row.get("city", ""),
            country=row.get("country", ""),
            tier=row.get("tier", Customer.Tier.BRONZE),
            is_active=row.get("is_active", True),
        )
        for row in data["customers"]
    ]
    Customer.objects.bulk_create(customers)
    customer_map = _by(Customer, "email", [c.email for c in customers])
    report.counts["customers"] = len(customers)

    orders, pending_items = [], []
    for index, row in enumerate(data["orders"]):
        owner = f"order #{index + 1}"
        placed_at = parse_datetime(row["placed_at"]) if row.get("placed_at") else timezone.now()
        if placed_at is None:
            raise DatasetError(path, f"{owner} has an invalid placed_at '{row['placed_at']}'")
        if timezone.is_naive(placed_at):
            placed_at = timezone.make_aware(placed_at, dt_timezone.utc)
        status = row.get("status", Order.Status.PENDING)
        if status not in Order.Status.values:
            raise DatasetError(path, f"{owner} has an unknown status '{status}'")

        items = []
        for item in row["items"]:
            product = _lookup(product_map, item["product"], "product", owner, path)
            unit_price = _decimal(item.get("unit_price", product.price), owner, path)
            items.append(OrderItem(product=product, quantity=int(item["quantity"]), unit_price=unit_price))

        order = Order(
            customer=_lookup(customer_map, row["customer"].strip().lower(), "customer", owner, path),
            status=status,
            placed_at=placed_at,
            shipping_address=row.get("shipping_address", ""),
            total=sum((i.unit_price * i.quantity for i in items), Decimal("0.00")),
        )
        orders.append(order)
        pending_items.append(items)

    _insert_orders(orders)
    order_items = []
    for order, items in zip(orders, pending_items):
        for item in items:
            item.order = order
            order_items.append(item)
    OrderItem.objects.bulk_create(order_items)
    report.counts["orders"] = len(orders)
    report.counts["order_items"] = len(order_items)

    reviews = []
    for row in data["reviews"]:
        owner = f"review of {row['product']}"
        reviews.append(Review(
            product=_lookup(product_map, row["product"], "product", owner, path),
            customer=_lookup(customer_map, row["customer"].strip().lower(), "customer", owner, path),
            rating=int(row["rating"]),
            title=row.get("title", ""),
            body=row.get("body", ""),
        ))
    Review.objects.bulk_create(reviews)
    report.counts["reviews"] = len(reviews)
    report.counts["verified_reviews"] = mark_verified_reviews()


def dump_dataset() -> Dict[str, List[dict]]:
    """Export the database in the same natural-key format load_dataset() reads."""
    data: Dict[str, List[dict]] = {}

    data["categories"] = [
        {"name": c.name, "slug": c.slug, "description": c.description, "parent": c.parent.slug if c.parent else None}
        for c in Category.objects.select_related("parent").order_by("id")
    ]
    data["suppliers"] = [
        {"name": s.name, "email": s.email, "phone": s.phone, "country": s.country, "is_active": s.is_active}
        for s in Supplier.objects.order_by("id")
    ]
    data["tags"] = [{"name": t.name, "slug": t.slug} for t in Tag.objects.order_by("id")]
    data["products"] = [
        {
            "sku": p.sku,
            "name": p.name,
            "slug": p.slug,
            "category": p.category.slug,
            "supplier": p.supplier.name if p.supplier else None,
            "price": str(p.price),
            "stock": p.stock,
            "is_active": p.is_active,
            "tags": [t.slug for t in p.tags.all()],
            "attributes": p.attributes,
            "description": p.description,
        }
        for p in Product.objects.select_related("category", "supplier").prefetch_related("tags").order_by("id")
    ]
    data["customers"] = [
        {
            "first_name": c.first_name,
            "last_name": c.last_name,
            "email": c.email,
            "phone": c.phone,
            "city": c.city,
            "country": c.country,
            "tier": c.tier,
            "is_active": c.is_active,
        }
        for c in Customer.objects.order_by("id")
    ]
    data["orders"] = [
        {
            "customer": o.customer.email,
            "placed_at": o.placed_at.isoformat(),
            "status": o.status,
            "shipping_address": o.shipping_address,
            "items": [
                {"product": i.product.sku, "quantity": i.quantity, "unit_price": str(i.unit_price)}
                for i in o.items.all()
            ],
        }
        for o in Order.objects.select_related("customer").prefetch_related("items__product").order_by("id")
    ]
    data["reviews"] = [
        {
            "product": r.product.sku,
            "customer": r.customer.email,
            "rating": r.rating,
            "title": r.title,
            "body": r.body,
        }
        for r in Review.objects.select_related("product", "customer").order_by("id")
    ]
    log("LOADER", f"Dumped {sum(len(rows) for rows in data.values())} rows")
    return data

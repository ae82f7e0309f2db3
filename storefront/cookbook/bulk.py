# storefront/cookbook/bulk.py
"""
Set-based writes and reads: bulk_create, bulk_update, queryset update(),
in_bulk() and iterator().

None of these call save() or send model signals, so each write here bumps
the cache namespaces itself once the write commits.
"""
import json
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import DecimalField, F, Value
from django.db.models.functions import Round
from django.utils import timezone
from django.utils.text import slugify

from storefront.cookbook.registry import Topic, recipe
from storefront.cookbook.shapes import money
from storefront.core.exceptions import NotFoundError
from storefront.core.logging import log
from storefront.lib.cache import invalidate_on_commit
from storefront.shop.models import Category, Product


def _category(slug: str) -> Category:
    try:
        return Category.objects.get(slug=slug)
    except Category.DoesNotExist:
        raise NotFoundError("Category", slug)


def _parse_rows(rows: Any) -> List[Dict[str, Any]]:
    if isinstance(rows, str):
        try:
            rows = json.loads(rows)
        except json.JSONDecodeError as e:
            raise ValidationError({"rows": f"Not valid JSON: {e.msg}"})
    if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
        raise ValidationError({"rows": "Expected a list of objects."})
    return rows


def _parse_mapping(mapping: Any) -> Dict[str, int]:
    """Accept {"SKU": 5} or the CLI / query-string form "SKU:5,SKU2:3"."""
    if isinstance(mapping, str):
        pairs = [p.split(":", 1) for p in mapping.split(",") if p.strip()]
        if any(len(p) != 2 for p in pairs):
            raise ValidationError({"mapping": "Expected SKU:QUANTITY pairs."})
        mapping = {sku: qty for sku, qty in pairs}
    try:
        return {sku.strip().upper(): int(qty) for sku, qty in mapping.items()}
    except (TypeError, ValueError):
        raise ValidationError({"mapping": "Stock levels must be whole numbers."})


@recipe("bulk_create_products", Topic.BULK, "Insert many products in batched INSERTs with bulk_create", writes=True)
def bulk_create_products(rows: Any, batch_size: int = 100, ignore_conflicts: bool = False) -> Dict[str, Any]:
    rows = _parse_rows(rows)
    categories = {c.slug: c for c in Category.objects.filter(slug__in={r.get("category") for r in rows})}

    products = []
    for index, row in enumerate(rows):
        missing = [field for field in ("sku", "name") if not row.get(field)]
        if missing:
            raise ValidationError({missing[0]: f"Row {index} needs a {' and '.join(missing)}."})
        slug = row.get("category")
        if slug not in categories:
            raise NotFoundError("Category", slug)
        try:
            price = Decimal(str(row["price"]))
        except (KeyError, InvalidOperation):
            raise ValidationError({"price": f"Row {row['sku']} needs a valid price."})
        try:
            stock = int(row.get("stock", 0))
        except (TypeError, ValueError):
            raise ValidationError({"stock": f"Row {row['sku']} needs a whole-number stock."})
        sku = str(row["sku"]).strip().upper()
        products.append(Product(
            sku=sku,
            name=row["name"],
            # bulk_create skips the pre_save slug handler
            slug=row.get("slug") or slugify(f"{row['name']} {sku}"),
            description=row.get("description", ""),
            price=price,
            stock=stock,
            is_active=row.get("is_active", True),
            category=categories[slug],
            attributes=row.get("attributes") or {},
        ))

    skus = list(dict.fromkeys(p.sku for p in products))
    with transaction.atomic():
        # Skipped conflicts are invisible to bulk_create, so compare the SKUs present before and after.
        existing = set(Product.objects.filter(sku__in=skus).values_list("sku", flat=True)) if ignore_conflicts else set()
        Product.objects.bulk_create(products, batch_size=int(batch_size), ignore_conflicts=ignore_conflicts)
        if ignore_conflicts:
            present = set(Product.objects.filter(sku__in=skus).values_list("sku", flat=True))
            skus = [sku for sku in skus if sku in present - existing]
        invalidate_on_commit("catalog")
    log("COOKBOOK", f"bulk_create inserted {len(skus)} of {len(products)} products")
    return {"created": len(skus), "skus": skus}


@recipe("adjust_prices", Topic.BULK, "One UPDATE with F('price') * factor, rounded to cents", writes=True)
def adjust_prices(category: str, percent: float) -> Dict[str, Any]:
    factor = Decimal("1") + Decimal(str(percent)) / Decimal("100")
    if factor < 0:
        raise ValidationError({"percent": "A cut of more than 100% would make prices negative."})

    root = _category(category)
    qs = Product.objects.filter(category_id__in=root.descendant_ids())
    updated = qs.update(
        price=Round(F("price") * Value(factor, output_field=DecimalField(max_digits=12, decimal_places=6)), 2),
        updated_at=timezone.now(),
    )
    invalidate_on_commit("catalog")
    return {
        "category": root.slug,
        "percent": str(percent),
        "updated": updated,
        "prices": {p.sku: money(p.price) for p in qs.order_by("sku")},
    }


@recipe("bulk_update_stock", Topic.BULK, "Set different stock levels on many rows with bulk_update", writes=True)
def bulk_update_stock(mapping: Any) -> Dict[str, Any]:
    levels = _parse_mapping(mapping)
    negative = sorted(sku for sku, qty in levels.items() if qty < 0)
    if negative:
        raise ValidationError({"stock": f"Stock cannot be negative ({', '.join(negative)})."})

    products = Product.objects.in_bulk(list(levels), field_name="sku")
    missing = sorted(set(levels) - set(products))
    if missing:
        raise NotFoundError("Product", ", ".join(missing))

    now = timezone.now()
    for sku, product in products.items():
        product.stock = levels[sku]
        product.updated_at = now
    updated = Product.objects.bulk_update(list(products.values()), ["stock", "updated_at"], batch_size=100)
    invalidate_on_commit("catalog")
    return {"updated": updated, "stock": {sku: levels[sku] for sku in sorted(levels)}}


@recipe("restock_low_inventory", Topic.BULK, "update(stock=F('stock') + n) for every low-stock active product", writes=True)
def restock_low_inventory(amount: int = 20, threshold: Optional[int] = None) -> Dict[str, Any]:
    amount = int(amount)
    if amount <= 0:
        raise ValidationError({"amount": "Restock amount must be positive."})
    try:
        threshold = int(threshold) if threshold is not None else None
    except (TypeError, ValueError):
        raise ValidationError({"threshold": f"'{threshold}' is not a whole number."})
    qs = Product.objects.active().low_stock(threshold)
    with transaction.atomic():
        skus = sorted(qs.values_list("sku", flat=True))
        updated = Product.objects.filter(sku__in=skus).update(stock=F("stock") + amount, updated_at=timezone.now())
        invalidate_on_commit("catalog")
    return {"restocked": updated, "amount": amount, "skus": skus}


@recipe("products_by_sku", Topic.BULK, "in_bulk() keyed by SKU in one query")
def products_by_sku(skus: Any) -> Dict[str, Any]:
    if isinstance(skus, str):
        skus = skus.split(",")
    wanted = [s.strip().upper() for s in skus if s.strip()]
    found = Product.objects.in_bulk(wanted, field_name="sku")
    return {
        "found": {
            sku: {"name": p.name, "price": money(p.price), "stock": p.stock}
            for sku, p in sorted(found.items())
        },
        "missing": sorted(set(wanted) - set(found)),
    }


@recipe("export_products", Topic.BULK, "Stream every product with iterator(chunk_size=...)")
def export_products(chunk_size: int = 100) -> Dict[str, Any]:
    qs = (
        Product.objects.select_related("category", "supplier")
        .order_by("sku")
        .iterator(chunk_size=int(chunk_size))
    )
    rows = [
        {
            "sku": p.sku,
            "name": p.name,
            "category": p.category.slug,
            "supplier": p.supplier.name if p.supplier_id else "",
            "price": money(p.price),
            "stock": p.stock,
            "is_active": p.is_active,
        }
        for p in qs
    ]
    return {"count": len(rows), "rows": rows}

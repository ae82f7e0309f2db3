# storefront/cookbook/crud.py
"""
Create, read, update and delete one record at a time.

Inputs go through full_clean() before they reach the database, so validators
and unique checks raise ValidationError instead of IntegrityError.
"""
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from django.core.exceptions import MultipleObjectsReturned, ValidationError
from django.db import transaction
from django.db.models import ProtectedError, Q
from django.utils.text import slugify

from storefront.cookbook.registry import Topic, recipe
from storefront.cookbook.shapes import category_shape, customer_shape, money, product_shape
from storefront.core.exceptions import NotFoundError, ProtectedRecordError
from storefront.core.logging import log
from storefront.shop.models import Category, Customer, Product, Supplier, Tag


def _product(sku: str) -> Product:
    try:
        return Product.objects.select_related("category", "supplier").get(sku=sku.strip().upper())
    except Product.DoesNotExist:
        raise NotFoundError("Product", sku)


def _category(slug: str) -> Category:
    try:
        return Category.objects.select_related("parent").get(slug=slug)
    except Category.DoesNotExist:
        raise NotFoundError("Category", slug)


def _price(value: Any) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError({"price": f"'{value}' is not a valid amount."})


@recipe("create_product", Topic.CRUD, "Validate and insert a product, then attach its tags", writes=True)
def create_product(
    sku: str,
    name: str,
    category: str,
    price: Any,
    stock: int = 0,
    supplier: Optional[str] = None,
    tags: Optional[List[str]] = None,
    description: str = "",
    attributes: Optional[Dict[str, Any]] = None,
    is_active: bool = True,
) -> Dict[str, Any]:
    product = Product(
        sku=sku.strip().upper(),
        name=name,
        description=description,
        price=_price(price),
        stock=stock,
        is_active=is_active,
        category=_category(category),
        attributes=attributes or {},
    )
    if supplier:
        try:
            product.supplier = Supplier.objects.get(name=supplier)
        except Supplier.DoesNotExist:
            raise NotFoundError("Supplier", supplier)

    if isinstance(tags, str):
        tags = [t for t in tags.split(",") if t]
    tag_objects = list(Tag.objects.filter(slug__in=tags or []))
    missing = sorted(set(tags or []) - {t.slug for t in tag_objects})
    if missing:
        raise NotFoundError("Tag", ", ".join(missing))

    # slug is filled by the pre_save signal
    product.full_clean(exclude=["slug"])
    with transaction.atomic():
        product.save()
        product.tags.set(tag_objects)
    log("COOKBOOK", f"Created product {product.sku}")
    return product_shape(product)


@recipe("get_product", Topic.CRUD, "Fetch one product by SKU (DoesNotExist becomes NOT_FOUND)")
def get_product(sku: str) -> Dict[str, Any]:
    product = Product.objects.select_related("category", "supplier").prefetch_related("tags").filter(
        sku=sku.strip().upper()
    ).first()
    if product is None:
        raise NotFoundError("Product", sku)
    return product_shape(product)


@recipe("find_customer_by_name", Topic.CRUD, "get() on a name that may match zero, one or many customers")
def find_customer_by_name(name: str) -> Dict[str, Any]:
    """
    get() raises MultipleObjectsReturned when the lookup is ambiguous; the
    recipe reports the candidates instead of picking one.
    """
    lookup = Q(first_name__iexact=name) | Q(last_name__iexact=name)
    try:
        customer = Customer.objects.get(lookup)
    except Customer.DoesNotExist:
        raise NotFoundError("Customer", name)
    except MultipleObjectsReturned:
        candidates = Customer.objects.filter(lookup).order_by("email")
        return {"match": None, "ambiguous": True, "candidates": [customer_shape(c) for c in candidates]}
    return {"match": customer_shape(customer), "ambiguous": False, "candidates": []}


@recipe("get_or_create_tag", Topic.CRUD, "Return the tag for a name, creating it on first use", writes=True)
def get_or_create_tag(name: str) -> Dict[str, Any]:
    tag, created = Tag.objects.get_or_create(slug=slugify(name), defaults={"name": name.strip()})
    return {"tag": {"id": tag.pk, "name": tag.name, "slug": tag.slug}, "created": created}


@recipe("update_or_create_supplier", Topic.CRUD, "Upsert a supplier by name", writes=True)
def update_or_create_supplier(
    name: str,
    email: Optional[str] = None,
    phone: Optional[str] = None,
    country: Optional[str] = None,
    is_active: Optional[bool] = None,
) -> Dict[str, Any]:
    if isinstance(is_active, str):
        is_active = is_active.strip().lower() in ("1", "true", "yes", "on")
    defaults = {
        key: value
        for key, value in (("email", email), ("phone", phone), ("country", country), ("is_active", is_active))
        if value is not None
    }
    supplier, created = Supplier.objects.update_or_create(name=name, defaults=defaults)
    return {
        "supplier": {
            "id": supplier.pk,
            "name": supplier.name,
            "email": supplier.email,
            "phone": supplier.phone,
            "country": supplier.country,
            "is_active": supplier.is_active,
        },
        "created": created,
    }


@recipe("update_price", Topic.CRUD, "Change one product's price with save(update_fields=...)", writes=True)
def update_price(sku: str, price: Any) -> Dict[str, Any]:
    product = _product(sku)
    old_price = product.price
    product.price = _price(price)
    product.full_clean(exclude=["slug"])
    product.save(update_fields=["price", "updated_at"])
    return {"sku": product.sku, "old_price": money(old_price), "new_price": money(product.price)}


@recipe("rename_category", Topic.CRUD, "Rename a category and regenerate its slug", writes=True)
def rename_category(slug: str, new_name: str) -> Dict[str, Any]:
    category = _category(slug)
    category.name = new_name.strip()
    category.slug = ""
    category.full_clean(exclude=["slug"])
    category.save()
    return category_shape(category)


@recipe("delete_product", Topic.CRUD, "Delete a product; PROTECT references become a PROTECTED error", writes=True)
def delete_product(sku: str) -> Dict[str, Any]:
    product = _product(sku)
    try:
        deleted, by_model = product.delete()
    except ProtectedError as e:
        blockers = sorted(str(obj) for obj in e.protected_objects)
        raise ProtectedRecordError("Product", product.sku, blockers)
    log("COOKBOOK", f"Deleted product {product.sku}", by_model)
    return {"sku": product.sku, "deleted": deleted, "by_model": by_model}


@recipe("update_product", Topic.CRUD, "Partial update: only the given fields are validated and saved", writes=True)
def update_product(
    sku: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
    price: Any = None,
    stock: Optional[int] = None,
    is_active: Optional[bool] = None,
    category: Optional[str] = None,
    supplier: Optional[str] = None,
    tags: Optional[List[str]] = None,
    attributes: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    product = _product(sku)
    changed = []
    for field_name, value in (("name", name), ("description", description), ("attributes", attributes)):
        if value is not None:
            setattr(product, field_name, value)
            changed.append(field_name)
    if price is not None:
        product.price = _price(price)
        changed.append("price")
    if stock is not None:
        try:
            product.stock = int(stock)
        except (TypeError, ValueError):
            raise ValidationError({"stock": f"'{stock}' is not a whole number."})
        changed.append("stock")
    if is_active is not None:
        if isinstance(is_active, str):
            is_active = is_active.strip().lower() in ("1", "true", "yes", "on")
        product.is_active = is_active
        changed.append("is_active")
    if category is not None:
        product.category = _category(category)
        changed.append("category")
    if supplier is not None:
        if supplier == "":
            product.supplier = None
        else:
            try:
                product.supplier = Supplier.objects.get(name=supplier)
            except Supplier.DoesNotExist:
                raise NotFoundError("Supplier", supplier)
        changed.append("supplier")

    tag_objects = None
    if tags is not None:
        if isinstance(tags, str):
            tags = [t for t in tags.split(",") if t]
        tag_objects = list(Tag.objects.filter(slug__in=tags))
        missing = sorted(set(tags) - {t.slug for t in tag_objects})
        if missing:
            raise NotFoundError("Tag", ", ".join(missing))

    product.full_clean(exclude=["slug"])
    with transaction.atomic():
        if changed:
            product.save(update_fields=changed + ["updated_at"])
        if tag_objects is not None:
            product.tags.set(tag_objects)
    return get_product(product.sku)

# storefront/shop/signals.py
"""
Model signal handlers.

- pre_save fills empty slugs from names.
- post_save / post_delete bump the cache namespaces a model feeds:
  right away, so the writing transaction reads its own changes, and again on
  commit, so nothing a concurrent reader cached in between survives.

Queryset update(), bulk_create() and bulk_update() bypass signals; code using
them calls storefront.lib.cache.invalidate_on_commit() itself.
"""
from django.db.models.signals import m2m_changed, post_delete, post_save, pre_save
from django.utils.text import slugify

from storefront.core.logging import log
from storefront.lib.cache import invalidate, invalidate_on_commit
from storefront.shop.models import Category, Order, OrderItem, Product, Review, Tag

# Which cached namespaces go stale when a model changes.
CACHE_DEPENDENCIES = {
    Category: ("catalog",),
    Tag: ("catalog",),
    Product: ("catalog", "reviews", "orders"),
    Review: ("reviews",),
    Order: ("orders",),
    OrderItem: ("orders", "catalog"),
}


def unique_slug(instance, value: str, fallback: str = "") -> str:
    """slugify(value), made unique within the model by appending the fallback or a counter."""
    model = type(instance)
    max_length = model._meta.get_field("slug").max_length
    base = slugify(value)[:max_length] or slugify(fallback) or model._meta.model_name
    others = model._default_manager.exclude(pk=instance.pk) if instance.pk else model._default_manager.all()

    candidate = base
    if fallback and others.filter(slug=candidate).exists():
        candidate = slugify(f"{value} {fallback}")[:max_length]
    counter = 2
    while others.filter(slug=candidate).exists():
        suffix = f"-{counter}"
        candidate = f"{base[:max_length - len(suffix)]}{suffix}"
        counter += 1
    return candidate


def fill_slug(sender, instance, **kwargs):
    if instance.slug:
        return
    fallback = getattr(instance, "sku", "")
    instance.slug = unique_slug(instance, instance.name, fallback=fallback)
    log("SIGNALS", f"{sender.__name__} slug -> {instance.slug}")


def invalidate_dependents(sender, instance=None, **kwargs):
    if kwargs.get("raw"):
        return
    invalidate(*CACHE_DEPENDENCIES[sender])
    invalidate_on_commit(*CACHE_DEPENDENCIES[sender])


def invalidate_tagging(sender, action=None, **kwargs):
    if action in ("post_add", "post_remove", "post_clear"):
        invalidate("catalog")
        invalidate_on_commit("catalog")


def connect_handlers():
    for model in (Category, Product, Tag):
        pre_save.connect(fill_slug, sender=model, dispatch_uid=f"fill_slug_{model.__name__}")

    for model in CACHE_DEPENDENCIES:
        post_save.connect(invalidate_dependents, sender=model, dispatch_uid=f"cache_save_{model.__name__}")
        post_delete.connect(invalidate_dependents, sender=model, dispatch_uid=f"cache_delete_{model.__name__}")

    m2m_changed.connect(invalidate_tagging, sender=Product.tags.through, dispatch_uid="cache_product_tags")

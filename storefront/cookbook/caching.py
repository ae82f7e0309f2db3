# storefront/cookbook/caching.py
"""
Inspecting and warming the query-result cache.
"""
from typing import Any, Dict

from django.core.cache import cache

from storefront.cookbook import aggregation
from storefront.cookbook.registry import Topic, recipe
from storefront.core.exceptions import RecipeParamError
from storefront.lib.cache import NAMESPACES, invalidate, namespace_version

CACHED_RECIPES = {
    "catalog_stats": aggregation.catalog_stats,
    "revenue_by_category": aggregation.revenue_by_category,
    "top_products": aggregation.top_products,
    "product_ratings": aggregation.product_ratings,
}


@recipe("cache_status", Topic.CACHING, "Namespace versions and which cached reports are warm")
def cache_status() -> Dict[str, Any]:
    return {
        "versions": {ns: namespace_version(ns) for ns in NAMESPACES},
        "warm": {name: cache.get(func.cache_key()) is not None for name, func in CACHED_RECIPES.items()},
    }


@recipe("warm_cache", Topic.CACHING, "Compute every cached report with default arguments", writes=True)
def warm_cache() -> Dict[str, Any]:
    for func in CACHED_RECIPES.values():
        func()
    return cache_status()


@recipe("invalidate_cache", Topic.CACHING, "Bump one namespace, or all of them", writes=True)
def invalidate_cache(namespace: str = "") -> Dict[str, Any]:
    targets = [namespace] if namespace else list(NAMESPACES)
    unknown = [ns for ns in targets if ns not in NAMESPACES]
    if unknown:
        raise RecipeParamError("invalidate_cache", f"unknown cache namespace: {', '.join(unknown)}")
    invalidate(*targets)
    return {"invalidated": targets, "versions": {ns: namespace_version(ns) for ns in NAMESPACES}}

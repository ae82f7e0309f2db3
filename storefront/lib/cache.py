# storefront/lib/cache.py
"""
Query-result caching on top of django.core.cache.

Results are stored under versioned namespaces. Writing to a model bumps the
version of every namespace it feeds (see storefront.shop.signals), so stale
entries are simply never read again and expire on their own.

    @cached_query("catalog")
    def catalog_stats():
        ...
"""
import hashlib
import json
from functools import wraps
from typing import Any, Callable, Optional

from django.core.cache import cache
from django.db import transaction

from storefront.core.logging import log
from storefront.lib.monitoring import record_cache_hit, record_cache_miss

NAMESPACES = ("catalog", "reviews", "orders")

# Sentinel so a cached None is still a hit.
_MISSING = object()


def _version_key(namespace: str) -> str:
    return f"ns:{namespace}:version"


def namespace_version(namespace: str) -> int:
    version = cache.get(_version_key(namespace))
    if version is None:
        cache.add(_version_key(namespace), 1, timeout=None)
        version = cache.get(_version_key(namespace), 1)
    return int(version)


def make_key(namespace: str, name: str, args: tuple, kwargs: dict) -> str:
    raw = json.dumps([args, kwargs], sort_keys=True, default=str)
    digest = hashlib.sha1(raw.encode("utf-8")).hexdigest()[:16]
    return f"q:{namespace}:v{namespace_version(namespace)}:{name}:{digest}"


def invalidate(*namespaces: str) -> None:
    """Bump namespace versions so every key built under the old ones is orphaned."""
    for namespace in namespaces:
        key = _version_key(namespace)
        try:
            cache.incr(key)
        except ValueError:
            # Key missing (first write, or evicted): start past the implicit 1.
            cache.add(key, 2, timeout=None)
        log("CACHE", f"Invalidated namespace '{namespace}'")


def invalidate_on_commit(*namespaces: str) -> None:
    """
    Bump namespace versions once the current transaction commits.

    A reader running before the commit still sees the old rows, so bumping
    earlier would let it cache them under the new version. Outside an atomic
    block the bump happens immediately.
    """
    transaction.on_commit(lambda: invalidate(*namespaces))


def cached_query(namespace: str, timeout: Optional[int] = None) -> Callable:
    """
    Decorator caching a function's JSON-ready return value.

    The wrapped function gains `.uncached` (the original) and
    `.cache_key(*args, **kwargs)` for tests and debugging.
    """
    if namespace not in NAMESPACES:
        raise ValueError(f"Unknown cache namespace: {namespace}")

    def decorator(func: Callable) -> Callable:
        name = f"{func.__module__}.{func.__qualname__}"

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            key = make_key(namespace, name, args, kwargs)
            value = cache.get(key, _MISSING)
            if value is not _MISSING:
                record_cache_hit(namespace)
                log("COOKBOOK", f"cache hit {key}")
                return value

            record_cache_miss(namespace)
            value = func(*args, **kwargs)
            if timeout is None:
                cache.set(key, value)
            else:
                cache.set(key, value, timeout)
            return value

        wrapper.uncached = func
        wrapper.cache_key = lambda *a, **kw: make_key(namespace, name, a, kw)
        return wrapper

    return decorator

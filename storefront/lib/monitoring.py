# storefront/lib/monitoring.py
from fastapi import FastAPI
from prometheus_client.registry import CollectorRegistry as Registry
from prometheus_client import Counter
from prometheus_fastapi_instrumentator import Instrumentator
from storefront.core.logging import log

# Create a separate registry
registry = Registry()

cache_hits = Counter(
    'storefront_cache_hits_total',
    'Cached query results served from the cache',
    ['namespace'],
    registry=registry
)

cache_misses = Counter(
    'storefront_cache_misses_total',
    'Cached query results that had to be computed',
    ['namespace'],
    registry=registry
)

orders_placed = Counter(
    'storefront_orders_placed_total',
    'Orders committed by the order service',
    registry=registry
)


def record_cache_hit(namespace: str):
    cache_hits.labels(namespace=namespace).inc()


def record_cache_miss(namespace: str):
    cache_misses.labels(namespace=namespace).inc()


def record_order_placed():
    orders_placed.inc()


def register_monitoring(app: FastAPI):
    """
    Registers Prometheus monitoring on the FastAPI app.
    Request counts and durations come from the instrumentator; the shop
    counters above share its registry so /metrics shows both.
    """
    instrumentator = Instrumentator(
        excluded_handlers=["/metrics"],  # Don't monitor the metrics endpoint itself
        registry=registry
    ).instrument(app)

    instrumentator.expose(app, include_in_schema=False, should_gzip=True)

    log("MONITORING", "Prometheus instrumentation registered at /metrics.")

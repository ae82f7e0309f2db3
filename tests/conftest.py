# tests/conftest.py
"""
Shared pytest fixtures for the storefront test suite.

Provides:
- ASGI client for the FastAPI app (no network, no lifespan)
- The bundled sample dataset, loaded through the real loader
- A clean query-result cache for every test
- Faker-built customers and products
"""
from decimal import Decimal

import pytest
from django.core.cache import cache
from faker import Faker
from httpx import AsyncClient, ASGITransport

from storefront.main import app
from storefront.shop.loader import load_dataset
from storefront.shop.models import Category, Customer, Product

# Tests fire far more requests per minute than any real client should.
app.state.limiter.enabled = False


# ═══════════════════════════════════════════════════════
# HTTP CLIENT
# ═══════════════════════════════════════════════════════

@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


@pytest.fixture
async def async_client():
    """Async HTTP client for testing FastAPI endpoints."""
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def client(async_client):
    """Alias for async_client - use either name in tests."""
    return async_client


# ═══════════════════════════════════════════════════════
# DATA
# ═══════════════════════════════════════════════════════

@pytest.fixture(autouse=True)
def clear_cache():
    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def sample_data(db):
    """Bundled sample dataset; returns the LoadReport."""
    return load_dataset()


@pytest.fixture
def fake():
    generator = Faker()
    generator.seed_instance(1234)
    return generator


@pytest.fixture
def make_customer(db, fake):
    def factory(**overrides):
        values = {
            "first_name": fake.first_name(),
            "last_name": fake.last_name(),
            "email": fake.unique.email(),
            "city": fake.city(),
            "country": fake.country_code(),
        }
        values.update(overrides)
        return Customer.objects.create(**values)
    return factory


@pytest.fixture
def make_product(db, fake):
    def factory(category=None, **overrides):
        if category is None:
            category, _ = Category.objects.get_or_create(name="Test Category")
        values = {
            "sku": fake.unique.bothify(text="TST-####").upper(),
            "name": fake.unique.catch_phrase(),
            "price": Decimal(str(fake.pyfloat(min_value=1, max_value=500, right_digits=2))),
            "stock": fake.pyint(min_value=1, max_value=50),
            "category": category,
        }
        values.update(overrides)
        return Product.objects.create(**values)
    return factory

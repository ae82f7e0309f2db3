"""
HTTP API tests.

Route handlers reach the ORM from a worker thread, so these tests use
transactional database access: rows loaded here are committed and visible
to that thread.
"""
import pytest

from storefront.db import run_orm
from storefront.shop.models import Order, Product

pytestmark = [pytest.mark.anyio, pytest.mark.django_db(transaction=True)]


# Django refuses ORM calls made straight from a coroutine.
def stock(sku):
    return Product.objects.get(sku=sku).stock


def product_exists(sku):
    return Product.objects.filter(sku=sku).exists()


def order_count():
    return Order.objects.count()


def first_order_id():
    return Order.objects.order_by("placed_at").first().pk


def assert_error(response, status_code, code):
    assert response.status_code == status_code, response.text
    error = response.json()["error"]
    assert error["code"] == code
    assert error["message"]
    return error


# ═══════════════════════════════════════════════════════
# PRODUCTS
# ═══════════════════════════════════════════════════════

async def test_list_products(async_client, sample_data):
    response = await async_client.get("/api/products")
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 11
    assert body["page"] == 1
    assert body["data"][0]["sku"] == "KIT-003"
    assert "BOK-003" not in [p["sku"] for p in body["data"]]


async def test_list_products_filters(async_client, sample_data):
    response = await async_client.get("/api/products", params={"category": "electronics", "in_stock": "true"})
    assert sorted(p["sku"] for p in response.json()["data"]) == ["AUD-001", "AUD-002", "LAP-001", "LAP-002"]

    response = await async_client.get("/api/products", params={"tag": "eco", "max_price": "50"})
    assert [p["sku"] for p in response.json()["data"]] == ["KIT-003"]

    response = await async_client.get("/api/products", params={"search": "atlas", "include_inactive": "true"})
    assert [p["sku"] for p in response.json()["data"]] == ["BOK-003"]


async def test_list_products_pagination(async_client, sample_data):
    response = await async_client.get("/api/products", params={"page": 3, "limit": 5})
    body = response.json()
    assert body["total"] == 11
    assert body["limit"] == 5
    assert [p["sku"] for p in body["data"]] == ["LAP-002"]


async def test_list_products_rejects_bad_query(async_client, sample_data):
    assert_error(await async_client.get("/api/products", params={"page": 0}), 422, "VALIDATION_ERROR")
    assert_error(await async_client.get("/api/products", params={"category": "garden"}), 404, "NOT_FOUND")


async def test_get_product(async_client, sample_data):
    response = await async_client.get("/api/products/aud-001")
    assert response.status_code == 200
    product = response.json()
    assert product["name"] == "Wireless Earbuds"
    assert product["tags"] == ["bestseller", "portable", "wireless"]

    error = assert_error(await async_client.get("/api/products/NOPE-1"), 404, "NOT_FOUND")
    assert error["details"] == {"entity": "Product", "key": "NOPE-1"}


async def test_create_product(async_client, sample_data):
    payload = {"sku": "KIT-010", "name": "Pour Over Kettle", "category": "kitchen", "price": "45.00", "stock": 9,
               "supplier": "HomeCraft", "tags": ["gift"]}
    response = await async_client.post("/api/products", json=payload)
    assert response.status_code == 201, response.text
    created = response.json()
    assert created["slug"] == "pour-over-kettle"
    assert created["tags"] == ["gift"]
    assert await run_orm(product_exists, "KIT-010")


async def test_create_product_errors(async_client, sample_data):
    duplicate = {"sku": "LAP-001", "name": "Clone", "category": "laptops", "price": "10.00"}
    error = assert_error(await async_client.post("/api/products", json=duplicate), 422, "VALIDATION_ERROR")
    assert "sku" in error["details"]

    negative = {"sku": "NEG-1", "name": "Negative", "category": "laptops", "price": "-1"}
    assert_error(await async_client.post("/api/products", json=negative), 422, "VALIDATION_ERROR")

    unknown = {"sku": "X-1", "name": "X", "category": "garden", "price": "1.00"}
    assert_error(await async_client.post("/api/products", json=unknown), 404, "NOT_FOUND")


async def test_update_product(async_client, sample_data):
    response = await async_client.patch("/api/products/KIT-001", json={"price": "84.50", "tags": ["gift", "eco"]})
    assert response.status_code == 200
    updated = response.json()
    assert updated["price"] == "84.50"
    assert updated["tags"] == ["eco", "gift"]
    assert updated["stock"] == 25


async def test_delete_product(async_client, sample_data):
    response = await async_client.delete("/api/products/BOK-002")
    assert response.status_code == 204
    assert not await run_orm(product_exists, "BOK-002")

    error = assert_error(await async_client.delete("/api/products/LAP-001"), 409, "PROTECTED")
    assert len(error["details"]["blockers"]) == 2


# ═══════════════════════════════════════════════════════
# CATEGORIES & CUSTOMERS
# ═══════════════════════════════════════════════════════

async def test_category_tree(async_client, sample_data):
    response = await async_client.get("/api/categories")
    assert response.status_code == 200
    tree = response.json()
    assert [node["slug"] for node in tree] == ["books", "electronics", "home"]
    assert tree[1]["total_products"] == 5


async def test_list_customers(async_client, sample_data):
    response = await async_client.get("/api/customers", params={"limit": 3})
    body = response.json()
    assert body["total"] == 8
    assert [c["name"] for c in body["data"]] == ["Margaret Hamilton", "Grace Hopper", "Barbara Liskov"]
    assert body["data"][1]["lifetime_value"] == "2877.00"


async def test_customer_orders(async_client, sample_data):
    response = await async_client.get("/api/customers/ada.lovelace@example.com/orders")
    assert response.status_code == 200
    history = response.json()
    assert history["order_count"] == 3
    assert history["lifetime_value"] == "2064.90"

    assert_error(await async_client.get("/api/customers/nobody@example.com/orders"), 404, "NOT_FOUND")


# ═══════════════════════════════════════════════════════
# ORDERS
# ═══════════════════════════════════════════════════════

async def test_list_orders(async_client, sample_data):
    response = await async_client.get("/api/orders", params={"status": "paid,pending"})
    body = response.json()
    assert body["total"] == 3
    # newest first
    assert body["data"][0]["customer"] == "ada.lovelace@example.com"

    response = await async_client.get("/api/orders", params={"customer": "Grace.Hopper@navy.example.org"})
    assert response.json()["total"] == 2


async def test_get_order(async_client, sample_data):
    order_id = await run_orm(first_order_id)
    response = await async_client.get(f"/api/orders/{order_id}")
    assert response.status_code == 200
    assert response.json()["total"] == "1457.00"

    assert_error(await async_client.get("/api/orders/999999"), 404, "NOT_FOUND")


async def test_create_and_cancel_order(async_client, sample_data):
    payload = {"customer_email": "guido@example.com", "items": [{"sku": "KIT-002", "quantity": 2}]}
    response = await async_client.post("/api/orders", json=payload)
    assert response.status_code == 201, response.text
    order = response.json()
    assert order["total"] == "698.00"
    assert order["status"] == "pending"
    assert await run_orm(stock, "KIT-002") == 4

    response = await async_client.post(f"/api/orders/{order['id']}/cancel")
    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert await run_orm(stock, "KIT-002") == 6


async def test_create_order_errors(async_client, sample_data):
    too_many = {"customer_email": "guido@example.com", "items": [{"sku": "KIT-002", "quantity": 50}]}
    error = assert_error(await async_client.post("/api/orders", json=too_many), 409, "INSUFFICIENT_STOCK")
    assert error["details"]["available"] == 6

    empty = {"customer_email": "guido@example.com", "items": []}
    assert_error(await async_client.post("/api/orders", json=empty), 422, "VALIDATION_ERROR")
    assert await run_orm(order_count) == 12


async def test_order_status_changes(async_client, sample_data):
    payload = {"customer_email": "barbara.l@example.org", "items": [{"sku": "BOK-001", "quantity": 1}]}
    order_id = (await async_client.post("/api/orders", json=payload)).json()["id"]

    response = await async_client.post(f"/api/orders/{order_id}/status", json={"status": "paid"})
    assert response.json()["status"] == "paid"

    error = assert_error(
        await async_client.post(f"/api/orders/{order_id}/status", json={"status": "delivered"}),
        409,
        "INVALID_TRANSITION",
    )
    assert error["details"] == {"order_id": order_id, "current": "paid", "target": "delivered"}

    assert_error(
        await async_client.post(f"/api/orders/{order_id}/status", json={"status": "lost"}),
        422,
        "VALIDATION_ERROR",
    )


# ═══════════════════════════════════════════════════════
# REPORTS & RECIPES
# ═══════════════════════════════════════════════════════

async def test_reports(async_client, sample_data):
    listing = (await async_client.get("/api/reports")).json()
    assert "top-products" in [r["name"] for r in listing]

    response = await async_client.get("/api/reports/top-products", params={"limit": 2, "ignored": "x"})
    body = response.json()
    assert body["params"] == {"limit": "2"}
    assert [row["sku"] for row in body["data"]] == ["LAP-002", "LAP-001"]

    stats = (await async_client.get("/api/reports/stats")).json()["data"]
    assert stats["inventory_value"] == "44824.20"

    assert_error(await async_client.get("/api/reports/horoscope"), 404, "NOT_FOUND")


async def test_ratings_report_with_unreviewed_products(async_client, sample_data):
    response = await async_client.get("/api/reports/ratings", params={"min_reviews": 0})
    assert response.status_code == 200, response.text
    rows = response.json()["data"]
    assert len(rows) == 12
    assert rows[-1]["avg_rating"] is None


async def test_list_recipes(async_client):
    response = await async_client.get("/api/recipes", params={"topic": "transactions"})
    assert response.status_code == 200
    names = [r["name"] for r in response.json()]
    assert names == ["advance_order", "cancel_order", "place_order", "place_orders_batch"]

    assert_error(await async_client.get("/api/recipes", params={"topic": "astrology"}), 404, "UNKNOWN_RECIPE")


async def test_run_read_recipe(async_client, sample_data):
    response = await async_client.get("/api/recipes/products_with_tags", params={"tags": "wireless,portable", "match_all": "true"})
    assert response.status_code == 200
    body = response.json()
    assert body["topic"] == "filtering"
    assert [row["sku"] for row in body["result"]] == ["AUD-001", "AUD-003"]

    assert_error(await async_client.get("/api/recipes/top_products", params={"bogus": 1}), 400, "INVALID_PARAMS")
    assert_error(await async_client.get("/api/recipes/make_coffee"), 404, "UNKNOWN_RECIPE")


async def test_recipe_rejects_malformed_values(async_client, sample_data):
    error = assert_error(
        await async_client.get("/api/recipes/products_in_price_range", params={"low": "abc"}),
        422,
        "VALIDATION_ERROR",
    )
    assert "low" in error["details"]

    error = assert_error(
        await async_client.get("/api/recipes/orders_in_period", params={"start": "2024-02-30", "end": "2024-03-31"}),
        422,
        "VALIDATION_ERROR",
    )
    assert "start" in error["details"]

    assert_error(
        await async_client.get("/api/recipes/low_stock_report", params={"threshold": "few"}),
        400,
        "INVALID_PARAMS",
    )


async def test_bulk_create_recipe_rejects_incomplete_rows(async_client, sample_data):
    rows = [{"name": "Nameless", "category": "books", "price": "5.00"}]
    error = assert_error(
        await async_client.post("/api/recipes/bulk_create_products", json={"rows": rows}),
        422,
        "VALIDATION_ERROR",
    )
    assert "sku" in error["details"]

    rows = [{"sku": "BOK-200", "name": "Counted", "category": "books", "price": "5.00", "stock": "many"}]
    error = assert_error(
        await async_client.post("/api/recipes/bulk_create_products", json={"rows": rows}),
        422,
        "VALIDATION_ERROR",
    )
    assert "stock" in error["details"]
    assert not await run_orm(product_exists, "BOK-200")


async def test_write_recipe_needs_post(async_client, sample_data):
    assert_error(await async_client.get("/api/recipes/restock_low_inventory"), 405, "METHOD_NOT_ALLOWED")
    assert await run_orm(stock, "AUD-003") == 0

    response = await async_client.post("/api/recipes/restock_low_inventory", json={"amount": 5})
    assert response.status_code == 200
    assert response.json()["result"]["restocked"] == 5
    assert await run_orm(stock, "AUD-003") == 5


async def test_post_recipe_without_body(async_client, sample_data):
    response = await async_client.post("/api/recipes/order_status_breakdown")
    assert response.status_code == 200
    assert response.json()["result"]["total"] == 12

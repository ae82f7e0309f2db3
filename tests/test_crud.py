"""
Single-record create / read / update / delete recipes.
"""
import pytest
from django.core.exceptions import ValidationError

from storefront.cookbook import crud
from storefront.core.exceptions import NotFoundError, ProtectedRecordError
from storefront.shop.models import Category, Product, Supplier, Tag

pytestmark = pytest.mark.django_db


# ═══════════════════════════════════════════════════════
# CREATE
# ═══════════════════════════════════════════════════════

def test_create_product(sample_data):
    result = crud.create_product(
        sku="aud-010",
        name="Travel Speaker",
        category="audio",
        price="59.90",
        stock=5,
        supplier="Nordic Sound",
        tags="wireless,gift",
        attributes={"battery_h": 10},
    )
    assert result["sku"] == "AUD-010"
    assert result["slug"] == "travel-speaker"
    assert result["price"] == "59.90"
    assert result["tags"] == ["gift", "wireless"]
    assert result["supplier"] == "Nordic Sound"
    assert Product.objects.get(sku="AUD-010").tags.count() == 2


def test_create_product_duplicate_sku_is_validation_error(sample_data):
    with pytest.raises(ValidationError) as excinfo:
        crud.create_product(sku="LAP-001", name="Clone", category="laptops", price="10.00")
    assert "sku" in excinfo.value.message_dict


def test_create_product_rejects_negative_price(sample_data):
    with pytest.raises(ValidationError):
        crud.create_product(sku="NEG-1", name="Negative", category="books", price="-5")


def test_create_product_unknown_references(sample_data):
    with pytest.raises(NotFoundError):
        crud.create_product(sku="X-1", name="X", category="garden", price="1.00")
    with pytest.raises(NotFoundError):
        crud.create_product(sku="X-1", name="X", category="books", price="1.00", supplier="Nobody Ltd")
    with pytest.raises(NotFoundError) as excinfo:
        crud.create_product(sku="X-1", name="X", category="books", price="1.00", tags=["eco", "vintage"])
    assert excinfo.value.key == "vintage"
    assert not Product.objects.filter(sku="X-1").exists()


# ═══════════════════════════════════════════════════════
# READ
# ═══════════════════════════════════════════════════════

def test_get_product(sample_data):
    product = crud.get_product("lap-001")
    assert product["name"] == "Ultrabook 13"
    assert product["category"] == "laptops"
    assert product["supplier"] == "Acme Components"
    assert product["tags"] == ["bestseller", "portable"]
    assert product["attributes"]["ram_gb"] == 16


def test_get_product_missing(sample_data):
    with pytest.raises(NotFoundError) as excinfo:
        crud.get_product("NOPE-1")
    assert excinfo.value.to_dict()["error"]["code"] == "NOT_FOUND"


def test_find_customer_by_name(sample_data, make_customer):
    single = crud.find_customer_by_name("lovelace")
    assert single["ambiguous"] is False
    assert single["match"]["email"] == "ada.lovelace@example.com"

    make_customer(first_name="Ada", last_name="Byron", email="ada.byron@example.com")
    ambiguous = crud.find_customer_by_name("Ada")
    assert ambiguous["ambiguous"] is True
    assert ambiguous["match"] is None
    assert [c["email"] for c in ambiguous["candidates"]] == ["ada.byron@example.com", "ada.lovelace@example.com"]

    with pytest.raises(NotFoundError):
        crud.find_customer_by_name("Nobody")


# ═══════════════════════════════════════════════════════
# UPSERTS
# ═══════════════════════════════════════════════════════

def test_get_or_create_tag(sample_data):
    existing = crud.get_or_create_tag("Wireless")
    assert existing["created"] is False
    assert existing["tag"]["slug"] == "wireless"

    created = crud.get_or_create_tag("Limited Edition")
    assert created["created"] is True
    assert created["tag"]["slug"] == "limited-edition"
    assert Tag.objects.count() == 6


def test_update_or_create_supplier(sample_data):
    updated = crud.update_or_create_supplier("Nordic Sound", country="NO")
    assert updated["created"] is False
    assert updated["supplier"]["country"] == "NO"
    assert updated["supplier"]["email"] == "orders@nordicsound.example.se"

    created = crud.update_or_create_supplier("Fjord Audio", email="hi@fjord.example.no", is_active="false")
    assert created["created"] is True
    assert created["supplier"]["is_active"] is False
    assert Supplier.objects.count() == 5


# ═══════════════════════════════════════════════════════
# UPDATE
# ═══════════════════════════════════════════════════════

def test_update_price(sample_data):
    result = crud.update_price("KIT-001", "85")
    assert result == {"sku": "KIT-001", "old_price": "79.90", "new_price": "85.00"}
    assert str(Product.objects.get(sku="KIT-001").price) == "85.00"


def test_update_price_rejects_bad_values(sample_data):
    with pytest.raises(ValidationError):
        crud.update_price("KIT-001", "-1")
    with pytest.raises(ValidationError):
        crud.update_price("KIT-001", "cheap")
    assert str(Product.objects.get(sku="KIT-001").price) == "79.90"


def test_rename_category_regenerates_slug(sample_data):
    result = crud.rename_category("books", "Printed Books")
    assert result["slug"] == "printed-books"
    assert Category.objects.get(slug="printed-books").products.count() == 3


def test_update_product_partial(sample_data):
    result = crud.update_product("AUD-002", stock=20, tags="wireless,gift", supplier="")
    assert result["stock"] == 20
    assert result["tags"] == ["gift", "wireless"]
    assert result["supplier"] is None
    assert result["price"] == "249.00"


def test_update_product_move_category(sample_data):
    result = crud.update_product("HOM-001", category="kitchen", is_active="false")
    assert result["category"] == "kitchen"
    assert result["is_active"] is False


def test_update_product_rejects_bad_stock(sample_data):
    with pytest.raises(ValidationError) as excinfo:
        crud.update_product("AUD-002", stock="plenty")
    assert "stock" in excinfo.value.message_dict
    assert Product.objects.get(sku="AUD-002").stock == 8


# ═══════════════════════════════════════════════════════
# DELETE
# ═══════════════════════════════════════════════════════

def test_delete_unreferenced_product(sample_data):
    result = crud.delete_product("BOK-002")
    assert result["deleted"] == 1
    assert not Product.objects.filter(sku="BOK-002").exists()


def test_delete_ordered_product_is_protected(sample_data):
    with pytest.raises(ProtectedRecordError) as excinfo:
        crud.delete_product("LAP-001")
    assert excinfo.value.status_code == 409
    assert len(excinfo.value.blockers) == 2
    assert Product.objects.filter(sku="LAP-001").exists()

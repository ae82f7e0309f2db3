"""
Model behaviour, custom managers and querysets.
"""
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError

from storefront.core.exceptions import OrderStateError
from storefront.shop.models import Category, Customer, Order, OrderItem, Product, Tag

pytestmark = pytest.mark.django_db


# ═══════════════════════════════════════════════════════
# SLUGS & TREE
# ═══════════════════════════════════════════════════════

def test_category_slug_filled_from_name():
    category = Category.objects.create(name="Garden Tools")
    assert category.slug == "garden-tools"


def test_tag_slug_filled_from_name():
    assert Tag.objects.create(name="Limited Edition").slug == "limited-edition"


def test_product_slug_collision_uses_sku(make_product):
    first = make_product(name="Desk Lamp", sku="LMP-1")
    second = make_product(name="Desk Lamp", sku="LMP-2")
    assert first.slug == "desk-lamp"
    assert second.slug == "desk-lamp-lmp-2"


def test_explicit_slug_is_kept():
    category = Category.objects.create(name="Outdoor", slug="outside")
    assert category.slug == "outside"


def test_category_ancestors_and_descendants():
    root = Category.objects.create(name="Root")
    mid = Category.objects.create(name="Mid", parent=root)
    leaf = Category.objects.create(name="Leaf", parent=mid)
    Category.objects.create(name="Elsewhere")

    assert leaf.ancestors() == [mid, root]
    assert root.ancestors() == []
    assert set(root.descendant_ids()) == {root.pk, mid.pk, leaf.pk}
    assert leaf.descendant_ids() == [leaf.pk]


# ═══════════════════════════════════════════════════════
# VALIDATION
# ═══════════════════════════════════════════════════════

def test_product_clean_normalises_sku():
    category = Category.objects.create(name="Clean")
    product = Product(sku=" ab-1 ", name="Thing", price=Decimal("1.00"), category=category)
    product.full_clean(exclude=["slug"])
    assert product.sku == "AB-1"


def test_product_full_clean_rejects_negative_price_and_stock():
    category = Category.objects.create(name="Invalid")
    product = Product(sku="NEG-1", name="Bad", price=Decimal("-1.00"), stock=-3, category=category)
    with pytest.raises(ValidationError) as excinfo:
        product.full_clean(exclude=["slug"])
    assert {"price", "stock"} <= set(excinfo.value.message_dict)


def test_product_attributes_must_be_object():
    category = Category.objects.create(name="Attrs")
    product = Product(sku="ATR-1", name="Odd", price=Decimal("2.00"), category=category, attributes=[1, 2])
    with pytest.raises(ValidationError) as excinfo:
        product.full_clean(exclude=["slug"])
    assert "attributes" in excinfo.value.message_dict


def test_customer_clean_lowercases_email():
    customer = Customer(first_name="Edsger", last_name="Dijkstra", email="EWD@Example.COM")
    customer.full_clean()
    assert customer.email == "ewd@example.com"
    assert customer.full_name == "Edsger Dijkstra"


def test_in_stock_property(make_product):
    assert make_product(stock=3).in_stock is True
    assert make_product(stock=0).in_stock is False
    assert make_product(stock=5, is_active=False).in_stock is False


# ═══════════════════════════════════════════════════════
# ORDERS
# ═══════════════════════════════════════════════════════

def test_order_status_machine(make_customer):
    order = Order.objects.create(customer=make_customer())
    assert order.status == Order.Status.PENDING
    assert order.can_transition_to("paid")
    assert not order.can_transition_to("shipped")

    with pytest.raises(OrderStateError) as excinfo:
        order.transition_to("shipped")
    assert excinfo.value.details == {"order_id": order.pk, "current": "pending", "target": "shipped"}

    for status in ("paid", "shipped", "delivered"):
        order.transition_to(status)
    order.refresh_from_db()
    assert order.status == "delivered"

    with pytest.raises(OrderStateError):
        order.transition_to(Order.Status.CANCELLED)


def test_recalculate_total_and_line_total(make_customer, make_product):
    order = Order.objects.create(customer=make_customer())
    a = make_product(price=Decimal("10.25"))
    b = make_product(price=Decimal("3.10"))
    OrderItem.objects.create(order=order, product=a, quantity=2, unit_price=a.price)
    line = OrderItem.objects.create(order=order, product=b, quantity=3, unit_price=b.price)

    assert line.line_total == Decimal("9.30")
    assert order.recalculate_total() == Decimal("29.80")
    order.refresh_from_db()
    assert order.total == Decimal("29.80")


# ═══════════════════════════════════════════════════════
# MANAGERS & QUERYSETS (sample data)
# ═══════════════════════════════════════════════════════

def skus(qs):
    return sorted(qs.values_list("sku", flat=True))


def test_product_querysets(sample_data):
    assert Product.objects.count() == 12
    assert Product.objects.active().count() == 11
    assert Product.objects.in_stock().count() == 10
    assert Product.available.count() == 10
    assert skus(Product.objects.low_stock(10)) == ["AUD-002", "AUD-003", "BOK-002", "BOK-003", "KIT-002", "LAP-002"]


def test_available_manager_excludes_inactive_and_empty(sample_data):
    available = skus(Product.available.all())
    assert "AUD-003" not in available
    assert "BOK-003" not in available


def test_in_category_includes_descendants(sample_data):
    assert skus(Product.objects.in_category("electronics")) == ["AUD-001", "AUD-002", "AUD-003", "LAP-001", "LAP-002"]
    home = Category.objects.get(slug="home")
    assert skus(Product.objects.in_category(home)) == ["HOM-001", "KIT-001", "KIT-002", "KIT-003"]


def test_tagged_any_and_all(sample_data):
    assert skus(Product.objects.tagged("wireless", "portable", match_all=True)) == ["AUD-001", "AUD-003"]
    assert skus(Product.objects.tagged("eco", "gift")) == ["AUD-003", "BOK-003", "HOM-001", "KIT-001", "KIT-003"]


def test_search_matches_name_description_and_sku(sample_data):
    assert skus(Product.objects.search("espresso")) == ["KIT-002"]
    assert skus(Product.objects.search("bok-001")) == ["BOK-001"]
    assert Product.objects.search("").count() == 12


def test_with_sales_and_rating(sample_data):
    laptop = Product.objects.with_sales().get(sku="LAP-001")
    assert laptop.units_sold == 2
    assert laptop.revenue == Decimal("2398.00")

    rated = Product.objects.with_rating().get(sku="LAP-001")
    assert rated.avg_rating == pytest.approx(4.5)
    assert rated.review_count == 2

    unsold = Product.objects.with_sales().get(sku="HOM-001")
    assert unsold.units_sold == 0
    assert unsold.revenue == Decimal("0.00")


def test_cancelled_orders_do_not_count_as_sales(sample_data):
    headphones = Product.objects.with_sales().get(sku="AUD-002")
    assert headphones.units_sold == 1
    assert headphones.revenue == Decimal("249.00")


def test_order_querysets(sample_data):
    for order in Order.objects.with_item_totals():
        assert order.items_total == order.total
    assert Order.objects.open().count() == 3
    assert Order.objects.with_status("delivered").count() == 6


def test_top_spenders(sample_data):
    top = list(Customer.objects.top_spenders(3))
    assert [c.email for c in top] == [
        "grace.hopper@navy.example.org",
        "ada.lovelace@example.com",
        "alan.turing@example.com",
    ]
    assert top[0].lifetime_value == Decimal("2877.00")
    assert top[1].order_count == 3

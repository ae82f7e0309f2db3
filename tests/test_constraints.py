"""
Database-level constraints: these hold even when model validation is skipped.
"""
from decimal import Decimal

import pytest
from django.db import IntegrityError, transaction

from storefront.shop.models import Order, OrderItem, Product, Review

pytestmark = pytest.mark.django_db


def test_negative_price_rejected(make_product):
    product = make_product()
    with pytest.raises(IntegrityError), transaction.atomic():
        Product.objects.filter(pk=product.pk).update(price=Decimal("-0.01"))


def test_negative_stock_rejected(make_product):
    product = make_product()
    product.stock = -1
    with pytest.raises(IntegrityError), transaction.atomic():
        product.save()


def test_duplicate_sku_rejected(make_product):
    make_product(sku="DUP-1")
    with pytest.raises(IntegrityError), transaction.atomic():
        make_product(sku="DUP-1")


@pytest.mark.parametrize("rating", [0, 6])
def test_rating_outside_range_rejected(make_customer, make_product, rating):
    with pytest.raises(IntegrityError), transaction.atomic():
        Review.objects.create(product=make_product(), customer=make_customer(), rating=rating)


def test_one_review_per_customer_and_product(make_customer, make_product):
    customer, product = make_customer(), make_product()
    Review.objects.create(product=product, customer=customer, rating=4)
    with pytest.raises(IntegrityError), transaction.atomic():
        Review.objects.create(product=product, customer=customer, rating=2)


def test_one_line_per_product_per_order(make_customer, make_product):
    order = Order.objects.create(customer=make_customer())
    product = make_product()
    OrderItem.objects.create(order=order, product=product, quantity=1, unit_price=product.price)
    with pytest.raises(IntegrityError), transaction.atomic():
        OrderItem.objects.create(order=order, product=product, quantity=2, unit_price=product.price)


def test_zero_quantity_rejected(make_customer, make_product):
    order = Order.objects.create(customer=make_customer())
    product = make_product()
    with pytest.raises(IntegrityError), transaction.atomic():
        OrderItem.objects.create(order=order, product=product, quantity=0, unit_price=product.price)


def test_protected_foreign_keys(make_customer, make_product):
    from django.db.models import ProtectedError

    customer, product = make_customer(), make_product()
    order = Order.objects.create(customer=customer)
    OrderItem.objects.create(order=order, product=product, quantity=1, unit_price=product.price)

    with pytest.raises(ProtectedError):
        product.delete()
    with pytest.raises(ProtectedError):
        customer.delete()
    with pytest.raises(ProtectedError):
        product.category.delete()


def test_order_delete_cascades_to_items(make_customer, make_product):
    order = Order.objects.create(customer=make_customer())
    product = make_product()
    OrderItem.objects.create(order=order, product=product, quantity=1, unit_price=product.price)
    order.delete()
    assert not OrderItem.objects.filter(product=product).exists()

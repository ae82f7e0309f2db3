"""
Migration state and the is_verified backfill.
"""
import importlib
from io import StringIO

import pytest
from django.apps import apps
from django.core.management import call_command
from django.db import connection
from django.db.migrations.executor import MigrationExecutor

from storefront.shop.models import Review

pytestmark = pytest.mark.django_db


def test_models_match_migrations():
    out = StringIO()
    # --check exits non-zero when a model change has no migration
    call_command("makemigrations", "shop", "--check", "--dry-run", stdout=out)
    assert "No changes detected" in out.getvalue()


def test_all_migrations_applied():
    executor = MigrationExecutor(connection)
    plan = executor.migration_plan(executor.loader.graph.leaf_nodes())
    assert plan == []
    applied = {name for app, name in executor.loader.applied_migrations if app == "shop"}
    assert {"0001_initial", "0002_review_is_verified"} <= applied


def test_backfill_marks_only_purchased_reviews(sample_data):
    Review.objects.update(is_verified=False)
    migration = importlib.import_module("storefront.shop.migrations.0002_review_is_verified")

    migration.mark_verified_reviews(apps, None)

    assert Review.objects.filter(is_verified=True).count() == 12
    unverified = sorted(Review.objects.filter(is_verified=False).values_list("customer__email", "product__sku"))
    assert unverified == [("ken.t@example.net", "KIT-001"), ("linus.t@example.net", "AUD-002")]


def test_shop_tables_exist():
    tables = set(connection.introspection.table_names())
    for model in ("category", "supplier", "tag", "product", "customer", "order", "orderitem", "review"):
        assert f"shop_{model}" in tables

# storefront/cookbook/raw_sql.py
"""
Dropping below the ORM: Manager.raw() and connection.cursor().

Values always travel as query params; only table names, which come from model
metadata, are interpolated into the SQL text.
"""
from decimal import Decimal
from typing import Any, Dict, List, Optional

from django.db import connection

from storefront.cookbook.registry import Topic, recipe
from storefront.cookbook.shapes import money
from storefront.core.config import settings
from storefront.shop.managers import SALES_STATUSES
from storefront.shop.models import Category, Order, OrderItem, Product, Supplier


def dictfetchall(cursor) -> List[Dict[str, Any]]:
    columns = [col[0] for col in cursor.description]
    return [dict(zip(columns, row)) for row in cursor.fetchall()]


@recipe("low_stock_report", Topic.RAW_SQL, "Manager.raw() with params, mapped back onto Product instances")
def low_stock_report(threshold: Optional[int] = None) -> List[Dict[str, Any]]:
    if threshold is None:
        threshold = settings.low_stock_threshold
    sql = (
        f"SELECT p.id, p.sku, p.name, p.stock, p.price, c.name AS category_name "
        f"FROM {Product._meta.db_table} p "
        f"JOIN {Category._meta.db_table} c ON c.id = p.category_id "
        f"WHERE p.is_active = %s AND p.stock <= %s "
        f"ORDER BY p.stock, p.sku"
    )
    return [
        {
            "sku": p.sku,
            "name": p.name,
            "category": p.category_name,
            "stock": p.stock,
            "price": money(p.price),
        }
        for p in Product.objects.raw(sql, [True, int(threshold)])
    ]


@recipe("sales_per_supplier", Topic.RAW_SQL, "Hand-written GROUP BY through connection.cursor(), rows as dicts")
def sales_per_supplier() -> List[Dict[str, Any]]:
    placeholders = ", ".join(["%s"] * len(SALES_STATUSES))
    sql = (
        f"SELECT s.name AS supplier, COUNT(DISTINCT o.id) AS orders, "
        f"SUM(i.quantity) AS units, SUM(i.quantity * i.unit_price) AS revenue "
        f"FROM {Supplier._meta.db_table} s "
        f"JOIN {Product._meta.db_table} p ON p.supplier_id = s.id "
        f"JOIN {OrderItem._meta.db_table} i ON i.product_id = p.id "
        f"JOIN {Order._meta.db_table} o ON o.id = i.order_id "
        f"WHERE o.status IN ({placeholders}) "
        f"GROUP BY s.id, s.name "
        f"ORDER BY revenue DESC, s.name"
    )
    with connection.cursor() as cursor:
        cursor.execute(sql, list(SALES_STATUSES))
        rows = dictfetchall(cursor)
    for row in rows:
        # Backends differ on the Python type of a computed SUM.
        row["revenue"] = money(Decimal(str(row["revenue"])))
        row["units"] = int(row["units"])
    return rows

# storefront/api/customers.py
"""
Customer routes.
"""
from fastapi import APIRouter, Query

from storefront.api.schemas import Page
from storefront.cookbook import relations
from storefront.cookbook.shapes import customer_shape, money
from storefront.core.config import settings
from storefront.db import run_orm
from storefront.shop.models import Customer

router = APIRouter(prefix="/api/customers", tags=["Customers"])


def list_customers(page: int, limit: int) -> dict:
    qs = Customer.objects.active().with_order_stats().order_by("last_name", "first_name", "email")
    total = qs.count()
    start = (page - 1) * limit
    data = [
        {**customer_shape(c), "order_count": c.order_count, "lifetime_value": money(c.lifetime_value)}
        for c in qs[start:start + limit]
    ]
    return {"data": data, "total": total, "page": page, "limit": limit}


@router.get("", response_model=Page)
async def get_customers(
    page: int = Query(1, ge=1),
    limit: int = Query(settings.api.default_page_size, ge=1, le=settings.api.max_page_size),
):
    return await run_orm(list_customers, page, limit)


@router.get("/{email}/orders")
async def get_customer_orders(email: str):
    return await run_orm(relations.customer_order_history, email)

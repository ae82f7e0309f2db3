# storefront/api/orders.py
"""
Order routes. Writes go through the transactional order service in
storefront.cookbook.transactions.
"""
from typing import Optional

from fastapi import APIRouter, Query, status

from storefront.api.schemas import OrderCreate, Page, StatusChange
from storefront.cookbook import transactions
from storefront.cookbook.relations import eager_orders
from storefront.cookbook.shapes import order_shape
from storefront.core.config import settings
from storefront.core.exceptions import NotFoundError
from storefront.db import run_orm
from storefront.shop.models import Order

router = APIRouter(prefix="/api/orders", tags=["Orders"])


def list_orders(status_filter: Optional[str], customer: Optional[str], page: int, limit: int) -> dict:
    qs = eager_orders().order_by("-placed_at", "-id")
    if status_filter:
        qs = qs.with_status(*[s.strip() for s in status_filter.split(",") if s.strip()])
    if customer:
        qs = qs.filter(customer__email=customer.strip().lower())
    total = qs.count()
    start = (page - 1) * limit
    return {
        "data": [order_shape(o) for o in qs[start:start + limit]],
        "total": total,
        "page": page,
        "limit": limit,
    }


def fetch_order(order_id: int) -> dict:
    try:
        return order_shape(eager_orders().get(pk=order_id))
    except Order.DoesNotExist:
        raise NotFoundError("Order", order_id)


@router.get("", response_model=Page)
async def get_orders(
    status_filter: Optional[str] = Query(None, alias="status"),
    customer: Optional[str] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.api.default_page_size, ge=1, le=settings.api.max_page_size),
):
    return await run_orm(list_orders, status_filter, customer, page, limit)


@router.get("/{order_id}")
async def get_order(order_id: int):
    return await run_orm(fetch_order, order_id)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_order(data: OrderCreate):
    items = [line.model_dump() for line in data.items]
    return await run_orm(transactions.place_order, data.customer_email, items, data.shipping_address)


@router.post("/{order_id}/cancel")
async def cancel_order(order_id: int):
    return await run_orm(transactions.cancel_order, order_id)


@router.post("/{order_id}/status")
async def change_status(order_id: int, data: StatusChange):
    return await run_orm(transactions.advance_order, order_id, data.status)

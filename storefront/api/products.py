# storefront/api/products.py
"""
Product catalog routes.
"""
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Query, Response, status

from storefront.api.schemas import Page, ProductCreate, ProductUpdate
from storefront.cookbook import crud
from storefront.cookbook.shapes import product_shape
from storefront.core.config import settings
from storefront.core.exceptions import NotFoundError
from storefront.db import run_orm
from storefront.shop.models import Category, Product

router = APIRouter(prefix="/api/products", tags=["Products"])


def list_products(
    search: Optional[str] = None,
    category: Optional[str] = None,
    tag: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    in_stock: Optional[bool] = None,
    include_inactive: bool = False,
    page: int = 1,
    limit: Optional[int] = None,
) -> dict:
    limit = settings.page_size(limit)
    qs = Product.objects.select_related("category", "supplier").prefetch_related("tags")
    if not include_inactive:
        qs = qs.active()
    if search:
        qs = qs.search(search)
    if category:
        try:
            qs = qs.in_category(category)
        except Category.DoesNotExist:
            raise NotFoundError("Category", category)
    if tag:
        qs = qs.tagged(*[t.strip() for t in tag.split(",") if t.strip()])
    qs = qs.price_between(min_price, max_price)
    if in_stock is True:
        qs = qs.in_stock()
    elif in_stock is False:
        qs = qs.filter(stock=0)

    qs = qs.order_by("name", "sku")
    total = qs.count()
    start = (page - 1) * limit
    return {
        "data": [product_shape(p) for p in qs[start:start + limit]],
        "total": total,
        "page": page,
        "limit": limit,
    }


@router.get("", response_model=Page)
async def get_products(
    search: Optional[str] = Query(None, min_length=1, max_length=200),
    category: Optional[str] = None,
    tag: Optional[str] = None,
    min_price: Optional[Decimal] = Query(None, ge=0),
    max_price: Optional[Decimal] = Query(None, ge=0),
    in_stock: Optional[bool] = None,
    include_inactive: bool = False,
    page: int = Query(1, ge=1),
    limit: int = Query(settings.api.default_page_size, ge=1, le=settings.api.max_page_size),
):
    return await run_orm(
        list_products,
        search=search,
        category=category,
        tag=tag,
        min_price=min_price,
        max_price=max_price,
        in_stock=in_stock,
        include_inactive=include_inactive,
        page=page,
        limit=limit,
    )


@router.get("/{sku}")
async def get_product(sku: str):
    return await run_orm(crud.get_product, sku)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_product(data: ProductCreate):
    return await run_orm(crud.create_product, **data.model_dump())


@router.patch("/{sku}")
async def update_product(sku: str, data: ProductUpdate):
    return await run_orm(crud.update_product, sku, **data.model_dump(exclude_unset=True))


@router.delete("/{sku}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(sku: str):
    await run_orm(crud.delete_product, sku)
    return Response(status_code=status.HTTP_204_NO_CONTENT)

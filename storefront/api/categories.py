# storefront/api/categories.py
from fastapi import APIRouter

from storefront.cookbook import relations
from storefront.db import run_orm

router = APIRouter(prefix="/api/categories", tags=["Categories"])


@router.get("")
async def get_category_tree():
    """Root categories with their children nested below them."""
    return await run_orm(relations.category_tree)

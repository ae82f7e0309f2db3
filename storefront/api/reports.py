# storefront/api/reports.py
"""
Named analytics reports, each backed by a cookbook recipe.
"""
from fastapi import APIRouter, Request

from storefront.cookbook import run_recipe
from storefront.core.exceptions import NotFoundError
from storefront.db import run_orm

router = APIRouter(prefix="/api/reports", tags=["Reports"])

# report name -> (recipe, query parameters it accepts)
REPORTS = {
    "stats": ("catalog_stats", ()),
    "revenue-by-category": ("revenue_by_category", ()),
    "top-products": ("top_products", ("limit",)),
    "ratings": ("product_ratings", ("min_reviews",)),
    "status-breakdown": ("order_status_breakdown", ()),
    "monthly-sales": ("monthly_sales", ("year",)),
    "rankings": ("rank_products_in_category", ()),
    "running-totals": ("customer_running_totals", ("email",)),
    "low-stock": ("low_stock_report", ("threshold",)),
}


@router.get("")
async def list_reports():
    return [
        {"name": name, "recipe": recipe_name, "params": list(params)}
        for name, (recipe_name, params) in REPORTS.items()
    ]


@router.get("/{name}")
async def get_report(name: str, request: Request):
    if name not in REPORTS:
        raise NotFoundError("Report", name)
    recipe_name, accepted = REPORTS[name]
    params = {key: request.query_params[key] for key in accepted if key in request.query_params}
    data = await run_orm(run_recipe, recipe_name, **params)
    return {"report": name, "params": params, "data": data}

# storefront/api/recipes.py
"""
Cookbook routes: browse the registry and run recipes by name.

GET runs read-only recipes with query parameters as params. Recipes that
write are only run by POST, with params in a JSON object body.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Request

from storefront.api.errors import error_response
from storefront.cookbook import get_recipe, list_recipes, run_recipe
from storefront.db import run_orm

router = APIRouter(prefix="/api/recipes", tags=["Recipes"])


@router.get("")
async def get_recipes(topic: Optional[str] = None):
    return [definition.to_dict() for definition in list_recipes(topic)]


@router.get("/{name}")
async def run_read_recipe(name: str, request: Request):
    definition = get_recipe(name)
    if definition.writes:
        return error_response(
            405,
            "METHOD_NOT_ALLOWED",
            f"Recipe '{name}' changes data; call it with POST",
            {"recipe": name},
        )
    params = dict(request.query_params)
    result = await run_orm(run_recipe, name, **params)
    return {"recipe": name, "topic": definition.topic.value, "result": result}


@router.post("/{name}")
async def run_any_recipe(name: str, params: Optional[Dict[str, Any]] = Body(None)):
    definition = get_recipe(name)
    result = await run_orm(run_recipe, name, **(params or {}))
    return {"recipe": name, "topic": definition.topic.value, "result": result}

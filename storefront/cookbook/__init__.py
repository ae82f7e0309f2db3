# storefront/cookbook/__init__.py
"""
ORM cookbook - one module per topic, every recipe registered by name.

Architecture:
- registry.py: @recipe decorator, lookup and run interface
- shapes.py: dict views of models shared with the API
- crud / filtering / relations / aggregation / windows / bulk /
  transactions / raw_sql: the recipes

Importing this package requires a configured Django (storefront.db.setup_django).
"""
from storefront.cookbook.registry import (
    RECIPES,
    RecipeDefinition,
    Topic,
    get_recipe,
    list_recipes,
    load_recipes,
    recipe,
    run_recipe,
    to_json,
)

__all__ = [
    "RECIPES",
    "RecipeDefinition",
    "Topic",
    "get_recipe",
    "list_recipes",
    "load_recipes",
    "recipe",
    "run_recipe",
    "to_json",
]

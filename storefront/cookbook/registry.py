# storefront/cookbook/registry.py
"""
═══════════════════════════════════════════════════════════════════════════════
COOKBOOK RECIPE REGISTRY

Every ORM recipe is registered in ONE place:
- name (stable, used by the API and `manage.py run_recipe`)
- topic
- implementation function
- parameters (read from the function signature)

Recipes return JSON-ready data; `to_json()` is applied on the way out so
Decimals become strings and datetimes become ISO strings.
═══════════════════════════════════════════════════════════════════════════════
"""
import datetime
import inspect
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum, unique
from typing import Any, Callable, Dict, List, Optional, Union, get_args, get_origin

from storefront.core.exceptions import RecipeError, RecipeParamError
from storefront.core.logging import log


# ═══════════════════════════════════════════════════════════════════════════════
# TOPICS
# ═══════════════════════════════════════════════════════════════════════════════

@unique
class Topic(Enum):
    """Which part of the ORM a recipe demonstrates."""
    CRUD = "crud"
    FILTERING = "filtering"
    RELATIONS = "relations"
    AGGREGATION = "aggregation"
    WINDOWS = "windows"
    BULK = "bulk"
    TRANSACTIONS = "transactions"
    RAW_SQL = "raw_sql"
    CACHING = "caching"


# ═══════════════════════════════════════════════════════════════════════════════
# RECIPE DEFINITION
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass
class RecipeParam:
    name: str
    default: Any = None
    required: bool = False
    annotation: Optional[str] = None


@dataclass
class RecipeDefinition:
    """Complete definition of a recipe."""
    name: str
    topic: Topic
    func: Callable
    description: str = ""
    params: List[RecipeParam] = field(default_factory=list)
    writes: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "topic": self.topic.value,
            "description": self.description,
            "writes": self.writes,
            "params": [
                {
                    "name": p.name,
                    "required": p.required,
                    "default": to_json(p.default),
                    "type": p.annotation,
                }
                for p in self.params
            ],
        }


# ═══════════════════════════════════════════════════════════════════════════════
# REGISTRY (populated by @recipe decorator)
# ═══════════════════════════════════════════════════════════════════════════════

RECIPES: Dict[str, RecipeDefinition] = {}


def _annotation_name(annotation: Any) -> str:
    # Optional[int] coerces like int
    if get_origin(annotation) is Union:
        args = [a for a in get_args(annotation) if a is not type(None)]
        if len(args) == 1:
            annotation = args[0]
    return getattr(annotation, "__name__", str(annotation))


def _signature_params(func: Callable) -> List[RecipeParam]:
    params = []
    for p in inspect.signature(func).parameters.values():
        if p.kind in (p.VAR_POSITIONAL, p.VAR_KEYWORD):
            continue
        annotation = None
        if p.annotation is not p.empty:
            annotation = _annotation_name(p.annotation)
        params.append(RecipeParam(
            name=p.name,
            default=None if p.default is p.empty else p.default,
            required=p.default is p.empty,
            annotation=annotation,
        ))
    return params


def recipe(name: str, topic: Topic, description: str = "", writes: bool = False):
    """
    Decorator to register a recipe.

    Usage:
        @recipe("catalog_stats", Topic.AGGREGATION, "Count, average, min and max over products")
        def catalog_stats():
            ...

    Recipes that change data pass writes=True; the HTTP layer only runs
    those on POST.

    The function itself is returned unchanged, so recipes stay plain callables.
    """
    def decorator(func: Callable) -> Callable:
        if name in RECIPES:
            raise ValueError(f"Recipe '{name}' registered twice")
        # Cached recipes expose the undecorated function; read params from it.
        target = getattr(func, "uncached", func)
        RECIPES[name] = RecipeDefinition(
            name=name,
            topic=topic,
            func=func,
            description=description or (inspect.getdoc(target) or "").split("\n")[0],
            params=_signature_params(target),
            writes=writes,
        )
        return func
    return decorator


# ═══════════════════════════════════════════════════════════════════════════════
# HELPER FUNCTIONS
# ═══════════════════════════════════════════════════════════════════════════════

def to_json(value: Any) -> Any:
    """Convert ORM output into plain JSON types."""
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (datetime.datetime, datetime.date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_json(v) for v in value]
    if isinstance(value, Enum):
        return value.value
    return value


def load_recipes() -> None:
    """Import every recipe module so their decorators run."""
    from storefront.cookbook import (  # noqa: F401
        aggregation,
        bulk,
        caching,
        crud,
        filtering,
        raw_sql,
        relations,
        transactions,
        windows,
    )


def get_recipe(name: str) -> RecipeDefinition:
    """Get a recipe by name, raising RecipeError if it is not registered."""
    load_recipes()
    definition = RECIPES.get(name)
    if definition is None:
        raise RecipeError(name, "no such recipe")
    return definition


def list_recipes(topic: Optional[Any] = None) -> List[RecipeDefinition]:
    """All registered recipes, optionally limited to one topic, sorted by topic then name."""
    load_recipes()
    if topic is not None and not isinstance(topic, Topic):
        try:
            topic = Topic(topic)
        except ValueError:
            raise RecipeError(str(topic), "no such topic")
    found = [r for r in RECIPES.values() if topic is None or r.topic is topic]
    order = list(Topic)
    return sorted(found, key=lambda r: (order.index(r.topic), r.name))


def _coerce(param: RecipeParam, value: Any) -> Any:
    """Coerce string values (query string, CLI) to the type of the declared default."""
    if not isinstance(value, str):
        return value
    target = param.annotation or (type(param.default).__name__ if param.default is not None else None)
    if target == "bool":
        return value.strip().lower() in ("1", "true", "yes", "on")
    if target == "int":
        return int(value)
    if target == "float":
        return float(value)
    if target == "Decimal":
        return Decimal(value)
    return value


def run_recipe(name: str, **params: Any) -> Any:
    """
    Run a recipe by name with keyword params and return JSON-ready data.

    Unknown names and unknown or missing params raise RecipeError; errors the
    recipe itself raises propagate unchanged.
    """
    definition = get_recipe(name)
    declared = {p.name: p for p in definition.params}

    unknown = sorted(set(params) - set(declared))
    if unknown:
        raise RecipeParamError(name, f"unexpected params: {', '.join(unknown)}")
    missing = [p.name for p in definition.params if p.required and p.name not in params]
    if missing:
        raise RecipeParamError(name, f"missing params: {', '.join(missing)}")

    try:
        kwargs = {key: _coerce(declared[key], value) for key, value in params.items()}
    except (ValueError, ArithmeticError) as e:
        raise RecipeParamError(name, f"bad param value ({e})")

    log("COOKBOOK", f"Running recipe {name}", kwargs or None)
    return to_json(definition.func(**kwargs))

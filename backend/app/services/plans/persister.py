"""
Save a meal plan with its recipes and ingredients in one transaction.

Recipe and ingredient dicts come straight from the client (often copied from a
model reply), so every field is coerced: wrong types become None (or 0 for a
recipe's cost) and strings are cut to their column widths.
"""

from dataclasses import dataclass
from typing import Any

from sqlmodel import Session

from app.logging import get_logger
from app.storage.models import (
    CATEGORY_MAX,
    DAY_OF_WEEK_MAX,
    INGREDIENT_NAME_MAX,
    MEAL_SLOT_MAX,
    MealPlan,
    PlanIngredient,
    PlanRecipe,
    TITLE_MAX,
    UNIT_MAX,
)

logger = get_logger(__name__)


@dataclass
class SavedPlan:
    meal_plan_id: int
    plan_name: str
    total_estimated_cost: float
    servings: int
    recipes_count: int


def _number(value: Any) -> float | int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _text(value: Any, default: str, limit: int | None = None) -> str:
    out = str(value) if value else default
    return out[:limit] if limit else out


def _optional_text(value: Any, limit: int) -> str | None:
    if value is None:
        return None
    return str(value)[:limit]


def recipe_from_payload(plan_id: int, data: dict) -> PlanRecipe:
    return PlanRecipe(
        meal_plan_id=plan_id,
        day_of_week=_text(data.get("day_of_week"), "Monday", DAY_OF_WEEK_MAX),
        meal_slot=_text(data.get("meal_slot"), "dinner", MEAL_SLOT_MAX),
        title=_text(data.get("title"), "Untitled", TITLE_MAX),
        instructions=_text(data.get("instructions"), ""),
        prep_time=_number(data.get("prep_time")),
        cook_time=_number(data.get("cook_time")),
        estimated_cost=_number(data.get("estimated_cost")) or 0,
        calories=_number(data.get("calories")),
        protein=_number(data.get("protein")),
        carbs=_number(data.get("carbs")),
        fat=_number(data.get("fat")),
    )


def ingredient_from_payload(recipe_id: int, data: dict) -> PlanIngredient:
    return PlanIngredient(
        recipe_id=recipe_id,
        ingredient_name=_text(data.get("ingredient_name"), "Unknown", INGREDIENT_NAME_MAX),
        quantity=_number(data.get("quantity")),
        unit=_optional_text(data.get("unit"), UNIT_MAX),
        category=_optional_text(data.get("category"), CATEGORY_MAX),
        estimated_price=_number(data.get("estimated_price")),
    )


def save_meal_plan(
    session: Session, user_id: int, plan_name: str, servings: int, recipes: list[dict]
) -> SavedPlan:
    """
    Insert plan, recipes and ingredients, then write the summed recipe cost to the plan.
    Nothing is committed until everything is inserted; any failure rolls the whole plan back.
    """
    try:
        plan = MealPlan(
            user_id=user_id,
            plan_name=plan_name,
            total_estimated_cost=0.0,
            servings=servings,
            status="draft",
        )
        session.add(plan)
        session.flush()

        total = 0.0
        ingredient_count = 0
        for data in recipes:
            recipe = recipe_from_payload(plan.id, data)
            total += recipe.estimated_cost
            session.add(recipe)
            session.flush()

            ingredients = data.get("ingredients")
            for ing in ingredients if isinstance(ingredients, list) else []:
                if not isinstance(ing, dict):
                    continue
                session.add(ingredient_from_payload(recipe.id, ing))
                ingredient_count += 1

        plan.total_estimated_cost = total
        session.add(plan)
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("meal_plan.save_failed user_id=%s name=%s", user_id, plan_name)
        raise

    session.refresh(plan)
    logger.info(
        "meal_plan.created id=%s user_id=%s recipes=%s ingredients=%s total=%s",
        plan.id,
        user_id,
        len(recipes),
        ingredient_count,
        total,
    )
    return SavedPlan(
        meal_plan_id=plan.id,
        plan_name=plan.plan_name,
        total_estimated_cost=total,
        servings=plan.servings,
        recipes_count=len(recipes),
    )

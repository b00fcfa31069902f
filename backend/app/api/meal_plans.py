from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.api.deps import get_current_user
from app.errors import NotFoundError, ValidationError
from app.logging import get_logger
from app.schemas.plan import (
    IngredientOut,
    MealPlanCreated,
    MealPlanDetail,
    MealPlanRequest,
    MealPlanSummary,
    RecipeOut,
)
from app.services.auth import AuthUser
from app.services.plans.persister import save_meal_plan
from app.storage.db import get_session
from app.storage.repositories import get_owned_plan, get_plan_recipes, get_recipe_ingredients, list_plans

router = APIRouter()
logger = get_logger(__name__)

INVALID_PLAN_MESSAGE = (
    "Invalid request. Required: plan_name (string), servings (positive integer), "
    "recipes (non-empty array)."
)


def _validate_plan_request(body: MealPlanRequest) -> tuple[str, int, list[dict]]:
    plan_name, servings, recipes = body.plan_name, body.servings, body.recipes
    if not isinstance(plan_name, str) or not plan_name.strip():
        raise ValidationError(INVALID_PLAN_MESSAGE, detail={"field": "plan_name"})
    # bool is an int subclass; true/false are not a head count.
    if isinstance(servings, bool) or not isinstance(servings, int) or servings < 1:
        raise ValidationError(INVALID_PLAN_MESSAGE, detail={"field": "servings"})
    if not isinstance(recipes, list) or not recipes:
        raise ValidationError(INVALID_PLAN_MESSAGE, detail={"field": "recipes"})
    if not all(isinstance(r, dict) for r in recipes):
        raise ValidationError(INVALID_PLAN_MESSAGE, detail={"field": "recipes", "reason": "each recipe must be an object"})
    return plan_name.strip(), servings, recipes


@router.post("/meal-plan", status_code=201, response_model=MealPlanCreated)
def create_meal_plan(
    body: MealPlanRequest,
    user: AuthUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> MealPlanCreated:
    plan_name, servings, recipes = _validate_plan_request(body)
    saved = save_meal_plan(session, user.user_id, plan_name, servings, recipes)
    return MealPlanCreated(
        meal_plan_id=saved.meal_plan_id,
        plan_name=saved.plan_name,
        total_estimated_cost=saved.total_estimated_cost,
        servings=saved.servings,
        recipes_count=saved.recipes_count,
    )


@router.get("/meal-plans", response_model=list[MealPlanSummary])
def list_meal_plans(
    user: AuthUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> list[MealPlanSummary]:
    return [MealPlanSummary.model_validate(p, from_attributes=True) for p in list_plans(session, user.user_id)]


@router.get("/meal-plans/{plan_id}", response_model=MealPlanDetail)
def get_meal_plan(
    plan_id: int,
    user: AuthUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> MealPlanDetail:
    plan = get_owned_plan(session, plan_id, user.user_id)
    if plan is None:
        raise NotFoundError("Meal plan not found")
    recipes = get_plan_recipes(session, plan.id)
    ingredients = get_recipe_ingredients(session, [r.id for r in recipes])
    return MealPlanDetail(
        **MealPlanSummary.model_validate(plan, from_attributes=True).model_dump(),
        recipes=[
            RecipeOut(
                **r.model_dump(exclude={"meal_plan_id"}),
                ingredients=[
                    IngredientOut(**i.model_dump(exclude={"id", "recipe_id"})) for i in ingredients[r.id]
                ],
            )
            for r in recipes
        ],
    )

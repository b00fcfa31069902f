from datetime import datetime
from typing import Any

from pydantic import BaseModel


class MealPlanRequest(BaseModel):
    plan_name: Any = None
    servings: Any = None
    recipes: Any = None


class MealPlanCreated(BaseModel):
    meal_plan_id: int
    plan_name: str
    total_estimated_cost: float
    servings: int
    recipes_count: int


class MealPlanSummary(BaseModel):
    id: int
    plan_name: str
    total_estimated_cost: float
    servings: int
    status: str
    created_at: datetime


class IngredientOut(BaseModel):
    ingredient_name: str
    quantity: float | None = None
    unit: str | None = None
    category: str | None = None
    estimated_price: float | None = None


class RecipeOut(BaseModel):
    id: int
    day_of_week: str
    meal_slot: str
    title: str
    instructions: str
    prep_time: float | None = None
    cook_time: float | None = None
    estimated_cost: float
    calories: float | None = None
    protein: float | None = None
    carbs: float | None = None
    fat: float | None = None
    ingredients: list[IngredientOut] = []


class MealPlanDetail(MealPlanSummary):
    recipes: list[RecipeOut] = []

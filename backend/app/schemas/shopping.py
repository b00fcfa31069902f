from typing import Any

from pydantic import BaseModel


class ShoppingListItemOut(BaseModel):
    ingredient_name: str
    quantity: float | None = None
    unit: str | None = None
    category: str | None = None
    estimated_price: float | None = None
    checked: bool = False


class ShoppingListResponse(BaseModel):
    shopping_list_id: int
    plan_id: int
    items: list[ShoppingListItemOut]
    total_cost: float


class AffiliateLinkRequest(BaseModel):
    retailer: Any = None
    search_query: Any = None


class AffiliateLinkResponse(BaseModel):
    url: str

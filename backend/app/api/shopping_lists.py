from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.api.deps import get_current_user, get_settings
from app.config import Settings
from app.errors import NotFoundError, ValidationError
from app.logging import get_logger
from app.schemas.shopping import (
    AffiliateLinkRequest,
    AffiliateLinkResponse,
    ShoppingListItemOut,
    ShoppingListResponse,
)
from app.services.auth import AuthUser
from app.services.shopping.aggregator import build_shopping_list
from app.services.shopping.retailers import RETAILERS, build_retailer_search_url
from app.storage.db import get_session
from app.storage.repositories import get_owned_plan

router = APIRouter()
logger = get_logger(__name__)


def _parse_plan_id(raw: str) -> int:
    value = raw.strip()
    if not value.isdecimal() or int(value) < 1:
        raise ValidationError("Invalid plan_id. Must be a positive integer.")
    return int(value)


@router.get("/shopping-list/{plan_id}", response_model=ShoppingListResponse)
def get_shopping_list(
    plan_id: str,
    user: AuthUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> ShoppingListResponse:
    """Regenerates the list from the plan's current ingredients on every call."""
    plan_pk = _parse_plan_id(plan_id)
    if get_owned_plan(session, plan_pk, user.user_id) is None:
        raise NotFoundError("Meal plan not found")

    result = build_shopping_list(session, plan_pk)
    return ShoppingListResponse(
        shopping_list_id=result.shopping_list_id,
        plan_id=result.plan_id,
        items=[
            ShoppingListItemOut(
                ingredient_name=item.ingredient_name,
                quantity=item.quantity,
                unit=item.unit,
                category=item.category,
                estimated_price=item.estimated_price,
                checked=item.checked,
            )
            for item in result.items
        ],
        total_cost=result.total_cost,
    )


@router.post("/affiliate-link", response_model=AffiliateLinkResponse)
def affiliate_link(
    body: AffiliateLinkRequest,
    user: AuthUser = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
) -> AffiliateLinkResponse:
    if not isinstance(body.search_query, str) or not body.search_query.strip():
        raise ValidationError(
            f"Invalid request. Required: retailer ({' | '.join(RETAILERS)}), search_query (non-empty string)"
        )
    retailer = body.retailer if isinstance(body.retailer, str) else ""
    url = build_retailer_search_url(retailer, body.search_query, settings.utm_source)
    logger.info("affiliate_link.built user_id=%s retailer=%s", user.user_id, retailer.lower())
    return AffiliateLinkResponse(url=url)

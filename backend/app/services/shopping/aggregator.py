"""
Shopping list aggregation for a meal plan.

Ingredients from every recipe in the plan are merged on (name, unit, category),
with a null unit treated as "". Each call replaces the list's items wholesale.

Known race: two overlapping regenerations for the same plan are not locked
against each other. Each runs delete-then-insert in its own transaction, so the
loser of the race can leave duplicate items until the next regeneration.
"""

from dataclasses import dataclass, field

from sqlmodel import Session

from app.logging import get_logger
from app.storage.models import ShoppingListItem
from app.storage.repositories import (
    aggregate_plan_ingredients,
    clear_shopping_list_items,
    get_or_create_shopping_list,
    get_shopping_list_items,
)
from app.utils.timing import time_span

logger = get_logger(__name__)


@dataclass
class ShoppingListResult:
    shopping_list_id: int
    plan_id: int
    total_cost: float
    items: list[ShoppingListItem] = field(default_factory=list)


def build_shopping_list(session: Session, plan_id: int) -> ShoppingListResult:
    """Regenerate the plan's shopping list. Caller has already checked ownership."""
    with time_span("shopping_list.build", plan_id=plan_id):
        try:
            shopping_list, created = get_or_create_shopping_list(session, plan_id)
            if not created:
                clear_shopping_list_items(session, shopping_list.id)

            total_cost = 0.0
            rows = aggregate_plan_ingredients(session, plan_id)
            for name, unit, category, quantity, price in rows:
                quantity = float(quantity) if quantity is not None else None
                price = float(price) if price is not None else None
                if price is not None:
                    total_cost += price
                session.add(
                    ShoppingListItem(
                        shopping_list_id=shopping_list.id,
                        ingredient_name=name,
                        quantity=quantity,
                        unit=unit or None,
                        category=category,
                        estimated_price=price,
                        checked=False,
                    )
                )

            shopping_list.total_cost = total_cost
            session.add(shopping_list)
            session.commit()
        except Exception:
            session.rollback()
            logger.warning("shopping_list.build_failed plan_id=%s", plan_id)
            raise

        items = get_shopping_list_items(session, shopping_list.id)
        logger.info(
            "shopping_list.built id=%s plan_id=%s created=%s items=%s total=%s",
            shopping_list.id,
            plan_id,
            created,
            len(items),
            total_cost,
        )
        return ShoppingListResult(
            shopping_list_id=shopping_list.id,
            plan_id=plan_id,
            total_cost=total_cost,
            items=items,
        )

from sqlalchemy import delete, func
from sqlmodel import Session, col, select

from app.logging import get_logger
from app.storage.models import (
    ChatMessage,
    CONVERSATION_ID_MAX,
    LLMCallLog,
    MealPlan,
    PlanIngredient,
    PlanRecipe,
    ShoppingList,
    ShoppingListItem,
    User,
)

logger = get_logger(__name__)


# Users


def get_user_by_email(session: Session, email: str) -> User | None:
    return session.exec(select(User).where(User.email == email)).first()


def get_user_by_id(session: Session, user_id: int) -> User | None:
    return session.get(User, user_id)


def create_user(session: Session, email: str, password_hash: str) -> User:
    user = User(email=email, password_hash=password_hash)
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("user.created id=%s email=%s", user.id, user.email)
    return user


def increment_message_count(session: Session, user: User) -> None:
    user.message_count = (user.message_count or 0) + 1
    session.add(user)
    session.commit()


# Conversations


def normalize_conversation_id(conversation_id: str) -> str:
    return conversation_id.strip()[:CONVERSATION_ID_MAX]


def append_message(
    session: Session, user_id: int, conversation_id: str, sender: str, text: str
) -> ChatMessage:
    message = ChatMessage(
        user_id=user_id,
        sender=sender,
        message_text=text,
        conversation_id=normalize_conversation_id(conversation_id),
    )
    session.add(message)
    session.commit()
    session.refresh(message)
    return message


def get_conversation(session: Session, user_id: int, conversation_id: str) -> list[ChatMessage]:
    return list(
        session.exec(
            select(ChatMessage)
            .where(
                ChatMessage.conversation_id == normalize_conversation_id(conversation_id),
                ChatMessage.user_id == user_id,
            )
            .order_by(col(ChatMessage.timestamp), col(ChatMessage.id))
        )
    )


# Meal plans


def get_owned_plan(session: Session, plan_id: int, user_id: int) -> MealPlan | None:
    return session.exec(
        select(MealPlan).where(MealPlan.id == plan_id, MealPlan.user_id == user_id)
    ).first()


def list_plans(session: Session, user_id: int) -> list[MealPlan]:
    return list(
        session.exec(
            select(MealPlan)
            .where(MealPlan.user_id == user_id)
            .order_by(col(MealPlan.created_at).desc(), col(MealPlan.id).desc())
        )
    )


def get_plan_recipes(session: Session, plan_id: int) -> list[PlanRecipe]:
    return list(
        session.exec(select(PlanRecipe).where(PlanRecipe.meal_plan_id == plan_id).order_by(col(PlanRecipe.id)))
    )


def get_recipe_ingredients(session: Session, recipe_ids: list[int]) -> dict[int, list[PlanIngredient]]:
    by_recipe: dict[int, list[PlanIngredient]] = {rid: [] for rid in recipe_ids}
    if not recipe_ids:
        return by_recipe
    rows = session.exec(
        select(PlanIngredient)
        .where(col(PlanIngredient.recipe_id).in_(recipe_ids))
        .order_by(col(PlanIngredient.id))
    )
    for ing in rows:
        by_recipe[ing.recipe_id].append(ing)
    return by_recipe


# Shopping lists


def get_or_create_shopping_list(session: Session, plan_id: int) -> tuple[ShoppingList, bool]:
    shopping_list = session.exec(
        select(ShoppingList).where(ShoppingList.meal_plan_id == plan_id)
    ).first()
    if shopping_list:
        return shopping_list, False
    shopping_list = ShoppingList(meal_plan_id=plan_id, total_cost=0.0)
    session.add(shopping_list)
    session.flush()
    return shopping_list, True


def clear_shopping_list_items(session: Session, shopping_list_id: int) -> None:
    session.execute(delete(ShoppingListItem).where(ShoppingListItem.shopping_list_id == shopping_list_id))


def aggregate_plan_ingredients(session: Session, plan_id: int) -> list[tuple]:
    """
    Rows of (name, unit, category, quantity, price) summed across every recipe in the plan.
    A null unit groups with the empty string and comes back as "".
    """
    unit_key = func.coalesce(PlanIngredient.unit, "")
    stmt = (
        select(
            PlanIngredient.ingredient_name,
            unit_key.label("unit"),
            PlanIngredient.category,
            func.sum(PlanIngredient.quantity).label("quantity"),
            func.sum(PlanIngredient.estimated_price).label("estimated_price"),
        )
        .join(PlanRecipe, col(PlanRecipe.id) == col(PlanIngredient.recipe_id))
        .where(PlanRecipe.meal_plan_id == plan_id)
        .group_by(PlanIngredient.ingredient_name, unit_key, PlanIngredient.category)
    )
    return list(session.exec(stmt))


def get_shopping_list_items(session: Session, shopping_list_id: int) -> list[ShoppingListItem]:
    return list(
        session.exec(
            select(ShoppingListItem)
            .where(ShoppingListItem.shopping_list_id == shopping_list_id)
            .order_by(
                col(ShoppingListItem.category).is_(None),
                col(ShoppingListItem.category),
                col(ShoppingListItem.ingredient_name),
            )
        )
    )


# Model calls


def log_llm_call(
    session: Session,
    prompt_name: str,
    prompt_version: str,
    model: str,
    status: str,
    input_payload: str,
    output_payload: str,
    latency_ms: int,
) -> None:
    session.add(
        LLMCallLog(
            prompt_name=prompt_name,
            prompt_version=prompt_version,
            model=model,
            status=status,
            input_payload=input_payload,
            output_payload=output_payload,
            latency_ms=latency_ms,
        )
    )
    session.commit()

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, ForeignKey, Index, Integer
from sqlmodel import Field, SQLModel


PLAN_STATUSES = ("draft", "active", "archived")
SENDERS = ("user", "assistant")

# Column widths; inputs are truncated to these before insert.
DAY_OF_WEEK_MAX = 20
MEAL_SLOT_MAX = 50
TITLE_MAX = 255
INGREDIENT_NAME_MAX = 255
UNIT_MAX = 50
CATEGORY_MAX = 100
CONVERSATION_ID_MAX = 100


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _fk(target: str, *, unique: bool = False) -> Column:
    return Column(
        Integer,
        ForeignKey(target, ondelete="CASCADE"),
        nullable=False,
        index=True,
        unique=unique,
    )


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: Optional[int] = Field(default=None, primary_key=True)
    email: str = Field(max_length=255, unique=True, index=True)
    password_hash: str = Field(max_length=255)
    dietary_preferences: Optional[str] = None
    allergies: Optional[str] = None
    household_size: int = 1
    default_budget: Optional[float] = None
    message_count: int = 0
    created_at: datetime = Field(default_factory=utc_now)


class ChatMessage(SQLModel, table=True):
    __tablename__ = "chat_messages"
    __table_args__ = (Index("idx_chat_messages_conversation_user", "conversation_id", "user_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(sa_column=_fk("users.id"))
    sender: str = Field(max_length=50)  # user | assistant
    message_text: str
    conversation_id: str = Field(max_length=CONVERSATION_ID_MAX)
    timestamp: datetime = Field(default_factory=utc_now, index=True)


class MealPlan(SQLModel, table=True):
    __tablename__ = "meal_plans"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(sa_column=_fk("users.id"))
    plan_name: str = Field(max_length=255)
    total_estimated_cost: float = 0.0
    servings: int
    status: str = Field(default="draft", max_length=50)
    created_at: datetime = Field(default_factory=utc_now)


class PlanRecipe(SQLModel, table=True):
    __tablename__ = "recipes"

    id: Optional[int] = Field(default=None, primary_key=True)
    meal_plan_id: int = Field(sa_column=_fk("meal_plans.id"))
    day_of_week: str = Field(max_length=DAY_OF_WEEK_MAX)
    meal_slot: str = Field(max_length=MEAL_SLOT_MAX)
    title: str = Field(max_length=TITLE_MAX)
    instructions: str = ""
    prep_time: Optional[float] = None
    cook_time: Optional[float] = None
    estimated_cost: float = 0.0
    calories: Optional[float] = None
    protein: Optional[float] = None
    carbs: Optional[float] = None
    fat: Optional[float] = None


class PlanIngredient(SQLModel, table=True):
    __tablename__ = "ingredients"

    id: Optional[int] = Field(default=None, primary_key=True)
    recipe_id: int = Field(sa_column=_fk("recipes.id"))
    ingredient_name: str = Field(max_length=INGREDIENT_NAME_MAX)
    quantity: Optional[float] = None
    unit: Optional[str] = Field(default=None, max_length=UNIT_MAX)
    category: Optional[str] = Field(default=None, max_length=CATEGORY_MAX)
    estimated_price: Optional[float] = None


class ShoppingList(SQLModel, table=True):
    __tablename__ = "shopping_lists"

    id: Optional[int] = Field(default=None, primary_key=True)
    meal_plan_id: int = Field(sa_column=_fk("meal_plans.id", unique=True))
    total_cost: float = 0.0
    created_at: datetime = Field(default_factory=utc_now)


class ShoppingListItem(SQLModel, table=True):
    __tablename__ = "shopping_list_items"

    id: Optional[int] = Field(default=None, primary_key=True)
    shopping_list_id: int = Field(sa_column=_fk("shopping_lists.id"))
    ingredient_name: str = Field(max_length=INGREDIENT_NAME_MAX)
    quantity: Optional[float] = None
    unit: Optional[str] = Field(default=None, max_length=UNIT_MAX)
    category: Optional[str] = Field(default=None, max_length=CATEGORY_MAX)
    estimated_price: Optional[float] = None
    checked: bool = False


class LLMCallLog(SQLModel, table=True):
    __tablename__ = "llm_call_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    prompt_name: str
    prompt_version: str
    model: str
    status: str  # ok | error | timeout
    input_payload: str
    output_payload: str
    latency_ms: int
    created_at: datetime = Field(default_factory=utc_now)

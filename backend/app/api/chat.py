from fastapi import APIRouter, Depends, Request
from sqlmodel import Session

from app.api.deps import get_current_user, get_settings
from app.config import Settings
from app.errors import AuthError, GatewayUnavailableError, QuotaExceededError, ValidationError
from app.logging import get_logger
from app.schemas.chat import ChatHistoryMessage, ChatHistoryResponse, ChatRequest
from app.services.auth import AuthUser
from app.services.llm.gateway import ModelGateway, turns_from_messages
from app.services.parsing.plan_extractor import extract_meal_plan, strip_plan_block
from app.storage.db import get_session
from app.storage.repositories import (
    append_message,
    get_conversation,
    get_user_by_id,
    increment_message_count,
    normalize_conversation_id,
)

router = APIRouter()
logger = get_logger(__name__)


def get_gateway(request: Request) -> ModelGateway:
    return request.app.state.gateway


def _non_blank(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())


@router.post("/chat")
def chat(
    body: ChatRequest,
    user: AuthUser = Depends(get_current_user),
    session: Session = Depends(get_session),
    gateway: ModelGateway = Depends(get_gateway),
    settings: Settings = Depends(get_settings),
) -> dict:
    """`meal_plan` is present only when the reply carried a plan."""
    if not _non_blank(body.user_message) or not _non_blank(body.conversation_id):
        raise ValidationError(
            "Invalid request. Required: user_message (string), conversation_id (string)."
        )
    if not gateway.configured:
        raise GatewayUnavailableError()

    account = get_user_by_id(session, user.user_id)
    if account is None:
        raise AuthError("Unknown user")
    quota = settings.message_quota_per_user
    if quota > 0 and (account.message_count or 0) >= quota:
        logger.info("chat.quota_exceeded user_id=%s count=%s", user.user_id, account.message_count)
        raise QuotaExceededError(f"Message limit of {quota} reached")

    conversation_id = normalize_conversation_id(body.conversation_id)
    append_message(session, user.user_id, conversation_id, "user", body.user_message.strip())
    increment_message_count(session, account)

    history = turns_from_messages(get_conversation(session, user.user_id, conversation_id))
    # Hand the connection back to the pool for the length of the model call.
    session.commit()
    assistant_text = gateway.complete(history, session=session)
    append_message(session, user.user_id, conversation_id, "assistant", assistant_text)

    meal_plan = extract_meal_plan(assistant_text)
    message = strip_plan_block(assistant_text) if meal_plan else assistant_text
    logger.info(
        "chat.reply user_id=%s conversation=%s turns=%s meal_plan=%s",
        user.user_id,
        conversation_id,
        len(history),
        meal_plan is not None,
    )
    response: dict = {"message": message}
    if meal_plan is not None:
        response["meal_plan"] = meal_plan
    return response


@router.get("/chat/{conversation_id}", response_model=ChatHistoryResponse)
def chat_history(
    conversation_id: str,
    user: AuthUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> ChatHistoryResponse:
    if not conversation_id.strip():
        raise ValidationError("conversation_id is required")
    conversation_id = normalize_conversation_id(conversation_id)
    messages = get_conversation(session, user.user_id, conversation_id)
    return ChatHistoryResponse(
        conversation_id=conversation_id,
        messages=[
            ChatHistoryMessage(sender=m.sender, message=m.message_text, timestamp=m.timestamp)
            for m in messages
        ],
    )

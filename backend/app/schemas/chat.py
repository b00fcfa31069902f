from datetime import datetime
from typing import Any

from pydantic import BaseModel


class ChatRequest(BaseModel):
    user_message: Any = None
    conversation_id: Any = None


class ChatHistoryMessage(BaseModel):
    sender: str
    message: str
    timestamp: datetime


class ChatHistoryResponse(BaseModel):
    conversation_id: str
    messages: list[ChatHistoryMessage]

from typing import Any

from pydantic import BaseModel, Field


class Credentials(BaseModel):
    # Types are checked in the route so bad input gets the documented 400 message.
    email: Any = None
    password: Any = None


class AuthResponse(BaseModel):
    message: str
    token: str
    user_id: int = Field(serialization_alias="userId")
    email: str

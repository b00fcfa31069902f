from pydantic import BaseModel, Field


class ProfileResponse(BaseModel):
    user_id: int = Field(serialization_alias="userId")
    email: str
    dietary_preferences: str | None = None
    allergies: str | None = None
    household_size: int
    default_budget: float | None = None
    message_count: int


class ProfileUpdate(BaseModel):
    dietary_preferences: str | None = Field(default=None, max_length=2000)
    allergies: str | None = Field(default=None, max_length=2000)
    household_size: int | None = Field(default=None, ge=1, le=50)
    default_budget: float | None = Field(default=None, ge=0)

from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.api.deps import get_current_user
from app.errors import NotFoundError, ValidationError
from app.logging import get_logger
from app.schemas.profile import ProfileResponse, ProfileUpdate
from app.services.auth import AuthUser
from app.storage.db import get_session
from app.storage.models import User
from app.storage.repositories import get_user_by_id

router = APIRouter()
logger = get_logger(__name__)


def _profile(user: User) -> ProfileResponse:
    return ProfileResponse(
        user_id=user.id,
        email=user.email,
        dietary_preferences=user.dietary_preferences,
        allergies=user.allergies,
        household_size=user.household_size,
        default_budget=user.default_budget,
        message_count=user.message_count,
    )


def _load_user(session: Session, auth: AuthUser) -> User:
    user = get_user_by_id(session, auth.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


@router.get("/profile", response_model=ProfileResponse)
def get_profile(
    auth: AuthUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> ProfileResponse:
    return _profile(_load_user(session, auth))


@router.put("/profile", response_model=ProfileResponse)
def update_profile(
    body: ProfileUpdate,
    auth: AuthUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> ProfileResponse:
    """Partial update: only fields present in the body change."""
    user = _load_user(session, auth)
    changes = body.model_dump(exclude_unset=True)
    if "household_size" in changes and changes["household_size"] is None:
        raise ValidationError("household_size must be a positive integer")
    for key, value in changes.items():
        setattr(user, key, value)
    session.add(user)
    session.commit()
    session.refresh(user)
    logger.info("profile.updated user_id=%s fields=%s", user.id, sorted(changes))
    return _profile(user)

from fastapi import APIRouter, Depends
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from app.api.deps import get_settings
from app.config import Settings
from app.errors import AuthError, ConflictError, ValidationError
from app.logging import get_logger
from app.schemas.auth import AuthResponse, Credentials
from app.services.auth import (
    MIN_PASSWORD_LENGTH,
    create_access_token,
    hash_password,
    is_valid_email,
    normalize_email,
    verify_password,
)
from app.storage.db import get_session
from app.storage.repositories import create_user, get_user_by_email

router = APIRouter()
logger = get_logger(__name__)


@router.post("/register", status_code=201, response_model=AuthResponse)
def register(
    body: Credentials,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    email = normalize_email(body.email) if isinstance(body.email, str) else ""
    if not is_valid_email(email):
        raise ValidationError("Valid email is required")
    if not isinstance(body.password, str) or len(body.password) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")

    if get_user_by_email(session, email):
        logger.info("auth.register.duplicate email=%s", email)
        raise ConflictError("Email already registered")
    try:
        user = create_user(session, email=email, password_hash=hash_password(body.password))
    except IntegrityError:
        # Lost a race with a concurrent registration for the same address.
        session.rollback()
        logger.info("auth.register.duplicate email=%s", email)
        raise ConflictError("Email already registered")

    token = create_access_token(settings, user.id, user.email)
    logger.info("auth.register.ok user_id=%s", user.id)
    return AuthResponse(message="User registered successfully", token=token, user_id=user.id, email=user.email)


@router.post("/login", response_model=AuthResponse)
def login(
    body: Credentials,
    session: Session = Depends(get_session),
    settings: Settings = Depends(get_settings),
) -> AuthResponse:
    if (
        not isinstance(body.email, str)
        or not body.email.strip()
        or not isinstance(body.password, str)
        or not body.password.strip()
    ):
        raise ValidationError("Email and password are required")

    user = get_user_by_email(session, normalize_email(body.email))
    if user is None or not verify_password(body.password, user.password_hash):
        logger.info("auth.login.rejected")
        raise AuthError("Invalid credentials")

    token = create_access_token(settings, user.id, user.email)
    logger.info("auth.login.ok user_id=%s", user.id)
    return AuthResponse(message="Logged in successfully", token=token, user_id=user.id, email=user.email)

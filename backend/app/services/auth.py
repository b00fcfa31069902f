"""
Credential hashing and bearer tokens.

Tokens are HS256 JWTs carrying `userId` and `email`; they expire after
`jwt_expires_minutes` and there is no refresh flow.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

import jwt
from werkzeug.security import check_password_hash, generate_password_hash

from app.config import Settings
from app.errors import ForbiddenError
from app.logging import get_logger

logger = get_logger(__name__)

EMAIL_RE = re.compile(r"^[\w.-]+@([\w-]+\.)+[\w-]{2,4}$")
MIN_PASSWORD_LENGTH = 8


@dataclass(frozen=True)
class AuthUser:
    user_id: int
    email: str


def normalize_email(email: str) -> str:
    return email.strip().lower()


def is_valid_email(email: str) -> bool:
    return bool(email) and EMAIL_RE.match(email) is not None


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    return check_password_hash(password_hash, password)


def create_access_token(settings: Settings, user_id: int, email: str, now: datetime | None = None) -> str:
    issued = now or datetime.now(timezone.utc)
    payload = {
        "userId": user_id,
        "email": email,
        "iat": issued,
        "exp": issued + timedelta(minutes=settings.jwt_expires_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(settings: Settings, token: str) -> AuthUser:
    """Verify signature and expiry. Any failure is a 403."""
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError:
        logger.info("auth.token.expired")
        raise ForbiddenError("Token expired")
    except jwt.InvalidTokenError as exc:
        logger.info("auth.token.invalid error=%s", exc)
        raise ForbiddenError("Invalid token")
    user_id = claims.get("userId")
    email = claims.get("email")
    if not isinstance(user_id, int) or isinstance(user_id, bool) or not isinstance(email, str):
        logger.info("auth.token.bad_claims")
        raise ForbiddenError("Invalid token")
    return AuthUser(user_id=user_id, email=email)

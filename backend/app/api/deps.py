from fastapi import Depends, Request

from app.config import Settings
from app.errors import AuthError
from app.services.auth import AuthUser, decode_access_token


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def _bearer_token(authorization: str | None) -> str | None:
    """Token is the part after the scheme: `Bearer <token>`."""
    if not authorization:
        return None
    parts = authorization.split()
    if len(parts) < 2:
        return None
    return parts[1]


def get_current_user(request: Request, settings: Settings = Depends(get_settings)) -> AuthUser:
    token = _bearer_token(request.headers.get("authorization"))
    if token is None:
        raise AuthError()
    user = decode_access_token(settings, token)
    request.state.user = user
    return user

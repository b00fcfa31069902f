import base64
import json
from datetime import datetime, timedelta, timezone

import jwt
import pytest
from sqlmodel import select

from app.services.auth import create_access_token, decode_access_token, hash_password, verify_password
from app.errors import ForbiddenError
from app.storage.models import User
from conftest import TEST_PASSWORD, bearer, register


def test_register_returns_token_for_new_user(client, settings):
    response = client.post("/register", json={"email": "new@example.com", "password": TEST_PASSWORD})
    assert response.status_code == 201
    data = response.json()
    assert data["email"] == "new@example.com"
    claims = jwt.decode(data["token"], settings.jwt_secret, algorithms=["HS256"])
    assert claims["userId"] == data["userId"]
    assert claims["email"] == "new@example.com"
    assert claims["exp"] - claims["iat"] == 3600


def test_register_normalizes_email(client, session):
    data = register(client, email="  Mixed.Case@Example.COM ")
    assert data["email"] == "mixed.case@example.com"
    stored = session.exec(select(User)).one()
    assert stored.email == "mixed.case@example.com"
    assert stored.password_hash != TEST_PASSWORD


def test_register_duplicate_email_conflicts(client):
    register(client, email="dup@example.com")
    response = client.post("/register", json={"email": "DUP@example.com ", "password": TEST_PASSWORD})
    assert response.status_code == 409
    assert response.json()["error"] == "Email already registered"


@pytest.mark.parametrize(
    "payload",
    [
        {"email": "not-an-email", "password": TEST_PASSWORD},
        {"email": "", "password": TEST_PASSWORD},
        {"email": 42, "password": TEST_PASSWORD},
        {"email": "ok@example.com", "password": "short"},
        {"email": "ok@example.com"},
        {},
    ],
)
def test_register_rejects_invalid_payload(client, payload):
    response = client.post("/register", json=payload)
    assert response.status_code == 400
    assert "error" in response.json()


def test_login_with_correct_credentials(client, settings):
    registered = register(client, email="login@example.com")
    response = client.post("/login", json={"email": "LOGIN@example.com", "password": TEST_PASSWORD})
    assert response.status_code == 200
    data = response.json()
    assert data["userId"] == registered["userId"]
    user = decode_access_token(settings, data["token"])
    assert user.user_id == registered["userId"]
    assert user.email == "login@example.com"


@pytest.mark.parametrize("email", ["login@example.com", "nobody@example.com", "garbage"])
def test_login_wrong_password_is_401(client, email):
    register(client, email="login@example.com")
    response = client.post("/login", json={"email": email, "password": "wrong-password"})
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid credentials"


def test_login_missing_fields_is_400(client):
    response = client.post("/login", json={"email": "x@example.com", "password": "   "})
    assert response.status_code == 400


PROTECTED = [
    ("post", "/chat", {"user_message": "hi", "conversation_id": "c1"}),
    ("post", "/meal-plan", {"plan_name": "p", "servings": 1, "recipes": [{}]}),
    ("get", "/shopping-list/1", None),
    ("post", "/affiliate-link", {"retailer": "tesco", "search_query": "eggs"}),
    ("get", "/meal-plans", None),
    ("get", "/profile", None),
]


@pytest.mark.parametrize("method,path,body", PROTECTED)
def test_protected_routes_require_token(client, method, path, body):
    kwargs = {"json": body} if body is not None else {}
    response = getattr(client, method)(path, **kwargs)
    assert response.status_code == 401


@pytest.mark.parametrize("method,path,body", PROTECTED)
def test_tampered_token_is_forbidden(client, user, method, path, body):
    header, _payload, signature = user["token"].split(".")
    forged_claims = json.dumps({"userId": user["userId"] + 1, "email": user["email"], "exp": 4102444800})
    payload = base64.urlsafe_b64encode(forged_claims.encode()).rstrip(b"=").decode()
    tampered = f"{header}.{payload}.{signature}"
    kwargs = {"json": body} if body is not None else {}
    response = getattr(client, method)(path, headers=bearer(tampered), **kwargs)
    assert response.status_code == 403


def test_token_signed_with_other_secret_is_forbidden(client, user):
    forged = jwt.encode({"userId": user["userId"], "email": user["email"]}, "other-secret", algorithm="HS256")
    response = client.get("/profile", headers=bearer(forged))
    assert response.status_code == 403


def test_expired_token_is_forbidden(client, settings, user):
    issued = datetime.now(timezone.utc) - timedelta(hours=2)
    token = create_access_token(settings, user["userId"], user["email"], now=issued)
    response = client.get("/profile", headers=bearer(token))
    assert response.status_code == 403


def test_header_without_token_is_401(client):
    response = client.get("/profile", headers={"Authorization": "Bearer"})
    assert response.status_code == 401


def test_decode_rejects_missing_claims(settings):
    token = jwt.encode({"sub": "1"}, settings.jwt_secret, algorithm="HS256")
    with pytest.raises(ForbiddenError):
        decode_access_token(settings, token)


def test_password_hash_roundtrip():
    hashed = hash_password(TEST_PASSWORD)
    assert verify_password(TEST_PASSWORD, hashed)
    assert not verify_password("something-else", hashed)

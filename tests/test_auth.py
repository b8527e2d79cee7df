from datetime import datetime, timedelta, timezone

import jwt

from app.auth import ALGORITHM, SECRET_KEY, AuthService
from app.models.enums import UserStatus

from conftest import auth_headers, make_user


async def test_register_returns_user_and_tokens(client):
    response = await client.post(
        "/api/auth/register",
        json={"username": " newbie ", "email": "NewBie@Example.com", "password": "secret123"},
    )
    assert response.status_code == 201
    data = response.json()["data"]
    assert data["user"]["username"] == "newbie"
    assert data["user"]["email"] == "newbie@example.com"
    assert data["user"]["role"] == "user"
    assert "password_hash" not in data["user"]
    assert data["tokens"]["token_type"] == "bearer"

    me = await client.get(
        "/api/auth/me",
        headers={"Authorization": f"Bearer {data['tokens']['access_token']}"},
    )
    assert me.json()["data"]["id"] == data["user"]["id"]


async def test_register_duplicate_email(client, author):
    response = await client.post(
        "/api/auth/register",
        json={"username": "someone-else", "email": author.email, "password": "secret123"},
    )
    assert response.status_code == 400
    assert response.json()["message"] == "User with this email already exists"


async def test_register_short_password_is_rejected(client):
    response = await client.post(
        "/api/auth/register",
        json={"username": "shorty", "email": "shorty@example.com", "password": "123"},
    )
    assert response.status_code == 400
    body = response.json()
    assert body["message"] == "Validation failed"
    assert "password" in body["error"]


async def test_login_and_refresh(client, author):
    response = await client.post(
        "/api/auth/login", json={"email": author.email, "password": "secret123"}
    )
    assert response.status_code == 200
    tokens = response.json()["data"]["tokens"]

    response = await client.post(
        "/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]}
    )
    assert response.status_code == 200
    assert response.json()["data"]["access_token"]

    # An access token is not accepted where a refresh token is expected
    response = await client.post(
        "/api/auth/refresh", json={"refresh_token": tokens["access_token"]}
    )
    assert response.status_code == 401


async def test_wrong_password(client, author):
    response = await client.post(
        "/api/auth/login", json={"email": author.email, "password": "nope-nope"}
    )
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid email or password"


async def test_suspended_account_cannot_login(client):
    user = await make_user("banned", status=UserStatus.SUSPENDED)
    response = await client.post(
        "/api/auth/login", json={"email": user.email, "password": "secret123"}
    )
    assert response.status_code == 403
    assert response.json()["message"] == "Account is suspended"


async def test_inactive_account_token_is_rejected(client):
    user = await make_user("sleepy", status=UserStatus.INACTIVE)
    response = await client.get("/api/auth/me", headers=auth_headers(user))
    assert response.status_code == 401


async def test_expired_token(client, author):
    token = jwt.encode(
        {
            "sub": str(author.id),
            "type": "access",
            "exp": datetime.now(timezone.utc) - timedelta(minutes=1),
        },
        SECRET_KEY,
        algorithm=ALGORITHM,
    )
    response = await client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401
    assert response.json()["message"] == "Token has expired"


def test_password_hash_round_trip():
    hashed = AuthService.get_password_hash("secret123")
    assert hashed != "secret123"
    assert AuthService.verify_password("secret123", hashed)
    assert not AuthService.verify_password("secret124", hashed)

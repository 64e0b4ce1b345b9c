"""Account endpoint tests."""

import pytest
from httpx import AsyncClient

from shortener.mailer import LoggingEmailSender

ADA = {"username": "ada", "email": "ada@example.com", "password": "s3cret"}


def last_token(mailer: LoggingEmailSender) -> str:
    return mailer.outbox[-1][2].rsplit("token=", 1)[1]


async def register_and_verify(client: AsyncClient, mailer: LoggingEmailSender) -> dict:
    response = await client.post("/api/auth/register", json=ADA)
    assert response.status_code == 200
    await client.post("/api/auth/verify", json={"token": last_token(mailer)})
    return response.json()["user"]


@pytest.mark.asyncio
async def test_register(client: AsyncClient, mailer: LoggingEmailSender) -> None:
    response = await client.post("/api/auth/register", json=ADA)
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "User registered successfully"
    assert data["user"]["username"] == "ada"
    assert data["user"]["email"] == "ada@example.com"
    assert "createdAt" in data["user"]
    assert "passwordHash" not in data["user"]
    assert mailer.outbox[-1][0] == "ada@example.com"


@pytest.mark.asyncio
async def test_register_missing_fields(client: AsyncClient) -> None:
    response = await client.post("/api/auth/register", json={"username": "ada"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_register_duplicate_email(client: AsyncClient) -> None:
    await client.post("/api/auth/register", json=ADA)
    response = await client.post("/api/auth/register", json={**ADA, "username": "other"})
    assert response.status_code == 409
    assert response.json()["error"] == "Email already registered"


@pytest.mark.asyncio
async def test_login_before_and_after_verification(client: AsyncClient, mailer: LoggingEmailSender) -> None:
    await client.post("/api/auth/register", json=ADA)
    credentials = {"email": ADA["email"], "password": ADA["password"]}

    response = await client.post("/api/auth/login", json=credentials)
    assert response.status_code == 403
    assert response.json()["error"] == "User not verified"

    verify = await client.post("/api/auth/verify", json={"token": last_token(mailer)})
    assert verify.json() == {"message": "Email verified successfully"}

    response = await client.post("/api/auth/login", json=credentials)
    assert response.status_code == 200
    assert response.json()["message"] == "Login successful"


@pytest.mark.asyncio
async def test_login_wrong_password(client: AsyncClient, mailer: LoggingEmailSender) -> None:
    await register_and_verify(client, mailer)
    response = await client.post("/api/auth/login", json={"email": ADA["email"], "password": "nope"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_verify_bad_token(client: AsyncClient) -> None:
    response = await client.post("/api/auth/verify", json={"token": "bogus"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_change_username_and_email(client: AsyncClient, mailer: LoggingEmailSender) -> None:
    user = await register_and_verify(client, mailer)

    response = await client.post("/api/auth/change-username", json={"userId": user["id"], "newUsername": "lovelace"})
    assert response.status_code == 200
    assert response.json()["user"]["username"] == "lovelace"

    response = await client.post("/api/auth/change-email", json={"userId": user["id"], "newEmail": "ada@new.example"})
    assert response.status_code == 200
    assert response.json()["message"] == "Email changed successfully"

    login = await client.post("/api/auth/login", json={"email": "ada@new.example", "password": ADA["password"]})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_change_password(client: AsyncClient, mailer: LoggingEmailSender) -> None:
    user = await register_and_verify(client, mailer)
    payload = {"userId": user["id"], "oldPassword": "wrong", "newPassword": "new-pass"}

    assert (await client.post("/api/auth/change-password", json=payload)).status_code == 401

    payload["oldPassword"] = ADA["password"]
    response = await client.post("/api/auth/change-password", json=payload)
    assert response.status_code == 200
    assert response.json()["message"] == "Password changed successfully"


@pytest.mark.asyncio
async def test_password_reset(client: AsyncClient, mailer: LoggingEmailSender) -> None:
    await register_and_verify(client, mailer)

    response = await client.post("/api/auth/request-password-reset", json={"email": ADA["email"]})
    assert response.json() == {"message": "Password reset link sent to your email"}

    response = await client.post(
        "/api/auth/reset-password", json={"token": last_token(mailer), "newPassword": "fresh-pass"}
    )
    assert response.json() == {"message": "Password reset successful."}

    login = await client.post("/api/auth/login", json={"email": ADA["email"], "password": "fresh-pass"})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_password_reset_unknown_email(client: AsyncClient) -> None:
    response = await client.post("/api/auth/request-password-reset", json={"email": "nobody@example.com"})
    assert response.status_code == 404

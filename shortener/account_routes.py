"""Account endpoints under ``/api/auth``.

All bodies are JSON with camelCase keys; missing fields are reported as
400 ``{error}`` by the account directory rather than by schema validation.
"""

from fastapi import APIRouter, Depends

from shortener.accounts import AccountDirectory
from shortener.dependencies import get_accounts
from shortener.schemas import (
    ChangeEmailRequest,
    ChangePasswordRequest,
    ChangeUsernameRequest,
    LoginRequest,
    MessageResponse,
    PasswordResetRequest,
    RegisterRequest,
    ResetPasswordRequest,
    UserResponse,
    VerifyRequest,
)

__all__ = ["router"]

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/register", response_model=UserResponse)
async def register(payload: RegisterRequest, accounts: AccountDirectory = Depends(get_accounts)) -> UserResponse:
    user = await accounts.register(payload.username, payload.email, payload.password)
    return UserResponse(message="User registered successfully", user=user)


@router.post("/verify", response_model=MessageResponse)
async def verify_email(payload: VerifyRequest, accounts: AccountDirectory = Depends(get_accounts)) -> MessageResponse:
    await accounts.verify_email(payload.token)
    return MessageResponse(message="Email verified successfully")


@router.post("/login", response_model=UserResponse)
async def login(payload: LoginRequest, accounts: AccountDirectory = Depends(get_accounts)) -> UserResponse:
    user = await accounts.login(payload.email, payload.password)
    return UserResponse(message="Login successful", user=user)


@router.post("/change-username", response_model=UserResponse)
async def change_username(
    payload: ChangeUsernameRequest, accounts: AccountDirectory = Depends(get_accounts)
) -> UserResponse:
    user = await accounts.change_username(payload.user_id, payload.new_username)
    return UserResponse(message="Username changed successfully", user=user)


@router.post("/change-email", response_model=UserResponse)
async def change_email(payload: ChangeEmailRequest, accounts: AccountDirectory = Depends(get_accounts)) -> UserResponse:
    user = await accounts.change_email(payload.user_id, payload.new_email)
    return UserResponse(message="Email changed successfully", user=user)


@router.post("/change-password", response_model=UserResponse)
async def change_password(
    payload: ChangePasswordRequest, accounts: AccountDirectory = Depends(get_accounts)
) -> UserResponse:
    user = await accounts.change_password(payload.user_id, payload.old_password, payload.new_password)
    return UserResponse(message="Password changed successfully", user=user)


@router.post("/request-password-reset", response_model=MessageResponse)
async def request_password_reset(
    payload: PasswordResetRequest, accounts: AccountDirectory = Depends(get_accounts)
) -> MessageResponse:
    await accounts.request_password_reset(payload.email)
    return MessageResponse(message="Password reset link sent to your email")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    payload: ResetPasswordRequest, accounts: AccountDirectory = Depends(get_accounts)
) -> MessageResponse:
    await accounts.reset_password(payload.token, payload.new_password)
    return MessageResponse(message="Password reset successful.")

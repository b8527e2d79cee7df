from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from ..auth import (
    AuthService,
    RefreshTokenRequest,
    UserLoginRequest,
    UserRegisterRequest,
)
from ..dependencies import ensure_db, get_current_user
from ..input_sanitizer import sanitizer
from ..models.user import User
from ..utils import format_response

router = APIRouter(
    prefix="/api/auth", tags=["Authentication"], dependencies=[Depends(ensure_db)]
)


@router.post(
    "/register",
    response_model=Dict[str, Any],
    status_code=status.HTTP_201_CREATED,
    summary="Register a new user",
    description="Create a reader account with username, email and password",
)
async def register(user_data: UserRegisterRequest):
    """
    Register a new user account.

    - **username**: 3 to 50 characters, unique
    - **email**: valid address, unique, used for login
    - **password**: at least 6 characters

    Returns the new user together with an access/refresh token pair.
    """
    sanitized = sanitizer.sanitize_dict(user_data.model_dump(), skip={"password"})
    new_user = await AuthService.register_user(UserRegisterRequest(**sanitized))
    return format_response(
        "User registered successfully",
        data={
            "user": AuthService.convert_user_to_response(new_user),
            "tokens": AuthService.issue_tokens(new_user).model_dump(),
        },
    )


@router.post("/login", response_model=Dict[str, Any], summary="Login user")
async def login(request_data: UserLoginRequest):
    result = await AuthService.login_user(request_data)
    return format_response("Login successful", data=result)


@router.post("/refresh", response_model=Dict[str, Any], summary="Refresh access token")
async def refresh_token(request_data: RefreshTokenRequest):
    tokens = await AuthService.refresh_tokens(request_data.refresh_token)
    return format_response("Token refreshed", data=tokens.model_dump())


@router.get("/me", response_model=Dict[str, Any], summary="Current user profile")
async def get_me(current_user: User = Depends(get_current_user)):
    return format_response(data=AuthService.convert_user_to_response(current_user))

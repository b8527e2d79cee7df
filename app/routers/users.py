"""
User management endpoints (admin only)
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, status

from ..auth import AuthService
from ..dependencies import admin_required, ensure_db
from ..models.enums import UserRole, UserStatus
from ..models.user import User
from ..services.user_service import UserCreateRequest, UserService, UserUpdateRequest
from ..utils import format_response

router = APIRouter(
    prefix="/api/users",
    tags=["Users"],
    dependencies=[Depends(ensure_db), Depends(admin_required)],
)


@router.get("/stats", response_model=Dict[str, Any], summary="User statistics")
async def user_stats():
    return format_response(data=await UserService.user_stats())


@router.get("/", response_model=Dict[str, Any], summary="List users")
async def list_users(
    search: Optional[str] = Query(None, description="Search name, username or email"),
    role: Optional[UserRole] = Query(None),
    user_status: Optional[UserStatus] = Query(None, alias="status"),
    is_verified: Optional[bool] = Query(None),
    is_approved: Optional[bool] = Query(None),
    sort_by: str = Query("created_at"),
    sort_order: str = Query("desc", pattern="^(asc|desc)$"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
):
    users, pagination, stats = await UserService.list_users(
        search, role, user_status, is_verified, is_approved, sort_by, sort_order, page, limit
    )
    return format_response(data=users, pagination=pagination, stats=stats)


@router.post(
    "/",
    response_model=Dict[str, Any],
    status_code=status.HTTP_201_CREATED,
    summary="Create a user",
)
async def create_user(
    user_data: UserCreateRequest, current_user: User = Depends(admin_required)
):
    user = await UserService.create_user(current_user, user_data)
    return format_response(
        "User created successfully", data=AuthService.convert_user_to_response(user)
    )


@router.get("/{user_id}", response_model=Dict[str, Any], summary="Get a user")
async def get_user(user_id: str):
    user = await UserService.get_user(user_id)
    return format_response(data=AuthService.convert_user_to_response(user))


@router.put("/{user_id}", response_model=Dict[str, Any], summary="Update a user")
async def update_user(
    user_id: str,
    user_data: UserUpdateRequest,
    current_user: User = Depends(admin_required),
):
    user = await UserService.update_user(current_user, user_id, user_data)
    return format_response(
        "User updated successfully", data=AuthService.convert_user_to_response(user)
    )


@router.delete("/{user_id}", response_model=Dict[str, Any], summary="Delete a user")
async def delete_user(user_id: str, current_user: User = Depends(admin_required)):
    await UserService.delete_user(current_user, user_id)
    return format_response("User deleted successfully")


@router.patch(
    "/{user_id}/toggle-verification",
    response_model=Dict[str, Any],
    summary="Flip the verified flag",
)
async def toggle_verification(user_id: str, current_user: User = Depends(admin_required)):
    user = await UserService.toggle_verification(current_user, user_id)
    state = "verified" if user.is_verified else "unverified"
    return format_response(
        f"User {state} successfully", data=AuthService.convert_user_to_response(user)
    )


@router.patch(
    "/{user_id}/toggle-approval",
    response_model=Dict[str, Any],
    summary="Flip the approved flag",
)
async def toggle_approval(user_id: str, current_user: User = Depends(admin_required)):
    user = await UserService.toggle_approval(current_user, user_id)
    state = "approved" if user.is_approved else "unapproved"
    return format_response(
        f"User {state} successfully", data=AuthService.convert_user_to_response(user)
    )

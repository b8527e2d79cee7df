"""
Dashboard endpoints for admin
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from ...auth import AuthService
from ...models.enums import UserRole, UserStatus
from ...models.user import User
from ...dependencies import admin_required
from ...services.dashboard_service import DashboardService
from ...services.user_service import UserService
from ...utils import format_response

router = APIRouter(tags=["Admin - Dashboard"])


class UserStatusUpdateRequest(BaseModel):
    status: Optional[UserStatus] = None
    role: Optional[UserRole] = None


@router.get(
    "/stats",
    response_model=Dict[str, Any],
    summary="Dashboard statistics",
    description="Headline counts, chart series, top blogs, recent activity and pending reviews",
)
async def dashboard_stats():
    return format_response(data=await DashboardService.stats())


@router.get("/analytics", response_model=Dict[str, Any], summary="Per-day analytics")
async def dashboard_analytics(
    period: str = Query("month", pattern="^(week|month|year)$"),
):
    return format_response(data=await DashboardService.analytics(period))


@router.get("/overview", response_model=Dict[str, Any], summary="Admin overview")
async def dashboard_overview():
    return format_response(data=await DashboardService.overview())


@router.get("/users", response_model=Dict[str, Any], summary="List users")
async def dashboard_users(
    search: Optional[str] = Query(None),
    role: Optional[UserRole] = Query(None),
    user_status: Optional[UserStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
):
    users, pagination, stats = await UserService.list_users(
        search=search, role=role, status=user_status, page=page, limit=limit
    )
    return format_response(data=users, pagination=pagination, stats=stats)


@router.put(
    "/users/{user_id}/status",
    response_model=Dict[str, Any],
    summary="Change a user's status and/or role",
)
async def update_user_status(
    user_id: str,
    body: UserStatusUpdateRequest,
    current_user: User = Depends(admin_required),
):
    user = await UserService.update_status(current_user, user_id, body.status, body.role)
    return format_response(
        "User updated successfully", data=AuthService.convert_user_to_response(user)
    )

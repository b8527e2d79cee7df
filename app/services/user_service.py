"""
Admin-side user management
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from beanie import PydanticObjectId
from bson import ObjectId
from pydantic import BaseModel, EmailStr, Field
from pymongo.errors import DuplicateKeyError

from ..auth import AuthService, MIN_PASSWORD_LENGTH
from ..exceptions import ConflictError, NotFoundError, ValidationError
from ..models.admin_action import ActionType
from ..models.enums import UserRole, UserStatus
from ..models.user import User
from ..utils import create_search_filter, paginate_query, save_document, to_query_datetime
from .admin_service import AdminService
from .dashboard_service import count_by_month

logger = logging.getLogger(__name__)

USER_SORT_FIELDS = {"created_at", "updated_at", "last_login", "username", "email", "name"}
PROFILE_FIELDS = ["name", "bio", "avatar", "phone", "full_name", "gender", "location"]


class UserCreateRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: EmailStr
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    name: Optional[str] = None
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.ACTIVE
    phone: Optional[str] = None
    full_name: Optional[str] = None
    gender: Optional[str] = None
    location: Optional[str] = None
    is_verified: bool = False
    is_approved: bool = True


class UserUpdateRequest(BaseModel):
    username: Optional[str] = Field(None, min_length=3, max_length=50)
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    role: Optional[UserRole] = None
    status: Optional[UserStatus] = None
    bio: Optional[str] = None
    avatar: Optional[str] = None
    phone: Optional[str] = None
    full_name: Optional[str] = None
    gender: Optional[str] = None
    location: Optional[str] = None
    is_verified: Optional[bool] = None
    is_approved: Optional[bool] = None


async def _conflict_from(exc: DuplicateKeyError, user: User) -> ConflictError:
    field = await AuthService.duplicate_user_field(exc, user)
    if field == "email":
        return ConflictError("Email already in use")
    if field == "username":
        return ConflictError("Username already taken")
    return ConflictError("User already exists")


def _user_snapshot(user: User) -> Dict[str, Any]:
    return user.model_dump(exclude={"password_hash"})


class UserService:
    @staticmethod
    async def get_user(user_id: str) -> User:
        if not ObjectId.is_valid(user_id):
            raise NotFoundError("User not found")
        user = await User.get(PydanticObjectId(user_id))
        if user is None:
            raise NotFoundError("User not found")
        return user

    @staticmethod
    async def _ensure_not_last_admin(user: User, action: str):
        """An admin account may not go away while it is the only one left"""
        if user.role != UserRole.ADMIN:
            return
        admin_count = await User.find({"role": UserRole.ADMIN.value}).count()
        if admin_count <= 1:
            raise ConflictError(f"Cannot {action} the only admin account")

    @staticmethod
    async def list_users(
        search: Optional[str] = None,
        role: Optional[UserRole] = None,
        status: Optional[UserStatus] = None,
        is_verified: Optional[bool] = None,
        is_approved: Optional[bool] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
        page: int = 1,
        limit: int = 20,
    ) -> Tuple[List[Dict[str, Any]], Dict[str, Any], Dict[str, int]]:
        if sort_by not in USER_SORT_FIELDS:
            raise ValidationError(f"Cannot sort by '{sort_by}'")

        filters: Dict[str, Any] = {}
        search_filter = create_search_filter(search, ["name", "username", "email", "full_name"])
        if search_filter:
            filters.update(search_filter)
        if role is not None:
            filters["role"] = role.value
        if status is not None:
            filters["status"] = status.value
        if is_verified is not None:
            filters["is_verified"] = is_verified
        if is_approved is not None:
            filters["is_approved"] = is_approved

        users, pagination = await paginate_query(
            User,
            filters,
            sort_by=sort_by,
            sort_order=sort_order,
            page=page,
            limit=limit,
            transform_func=lambda items: [AuthService.convert_user_to_response(u) for u in items],
        )
        return users, pagination, await UserService.role_status_counts()

    @staticmethod
    async def role_status_counts() -> Dict[str, int]:
        stats = {"total": await User.find_all().count()}
        for role in UserRole:
            stats[role.value] = await User.find({"role": role.value}).count()
        for status in UserStatus:
            stats[status.value] = await User.find({"status": status.value}).count()
        stats["verified"] = await User.find({"is_verified": True}).count()
        stats["approved"] = await User.find({"is_approved": True}).count()
        return stats

    @staticmethod
    async def user_stats() -> Dict[str, Any]:
        now = datetime.now(timezone.utc)
        month_start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)

        return {
            "total_users": await User.find_all().count(),
            "active_users": await User.find({"status": UserStatus.ACTIVE.value}).count(),
            "admin_users": await User.find({"role": UserRole.ADMIN.value}).count(),
            "verified_users": await User.find({"is_verified": True}).count(),
            "approved_users": await User.find({"is_approved": True}).count(),
            "new_users_this_month": await User.find(
                {"created_at": {"$gte": to_query_datetime(month_start)}}
            ).count(),
            "user_growth": await count_by_month(User, {}, months=6, now=now),
        }

    @staticmethod
    async def create_user(admin: User, data: UserCreateRequest) -> User:
        user = User(
            username=data.username.strip(),
            email=data.email.lower(),
            name=data.name or data.username.strip(),
            password_hash=AuthService.get_password_hash(data.password),
            role=data.role,
            status=data.status,
            phone=data.phone,
            full_name=data.full_name,
            gender=data.gender,
            location=data.location,
            is_verified=data.is_verified,
            is_approved=data.is_approved,
        )
        try:
            await user.insert()
        except DuplicateKeyError as e:
            raise await _conflict_from(e, user)

        await AdminService.log_admin_action(
            admin,
            ActionType.CREATE,
            "users",
            user.id,
            {"email": user.email, "role": user.role.value},
        )
        return user

    @staticmethod
    async def update_user(admin: User, user_id: str, data: UserUpdateRequest) -> User:
        user = await UserService.get_user(user_id)
        before = _user_snapshot(user)
        updates = data.model_dump(exclude_unset=True)

        if "role" in updates and data.role != user.role and data.role is not None:
            if user.role == UserRole.ADMIN:
                await UserService._ensure_not_last_admin(user, "demote")
            user.role = data.role
        if "status" in updates and data.status is not None and data.status != user.status:
            if data.status != UserStatus.ACTIVE and user.role == UserRole.ADMIN:
                await UserService._ensure_not_last_admin(user, "deactivate")
            user.status = data.status

        if data.username is not None:
            user.username = data.username.strip()
        if data.email is not None:
            user.email = data.email.lower()
        for field in PROFILE_FIELDS:
            if field in updates:
                setattr(user, field, updates[field])
        if data.is_verified is not None:
            user.is_verified = data.is_verified
        if data.is_approved is not None:
            user.is_approved = data.is_approved

        user.update_timestamp()
        try:
            await save_document(user)
        except DuplicateKeyError as e:
            raise await _conflict_from(e, user)

        changes = AdminService.diff(before, _user_snapshot(user), sorted(updates))
        await AdminService.log_admin_action(admin, ActionType.UPDATE, "users", user.id, changes)
        return user

    @staticmethod
    async def delete_user(admin: User, user_id: str) -> None:
        """Hard delete; never the caller's own account and never the last admin"""
        if str(admin.id) == user_id:
            raise ValidationError("You cannot delete your own account")

        user = await UserService.get_user(user_id)
        await UserService._ensure_not_last_admin(user, "delete")

        await user.delete()
        await AdminService.log_admin_action(
            admin, ActionType.DELETE, "users", user.id, {"email": user.email}
        )
        logger.info(f"User {user.email} deleted permanently by {admin.email}")

    @staticmethod
    async def _toggle(admin: User, user_id: str, field: str) -> User:
        user = await UserService.get_user(user_id)
        new_value = not getattr(user, field)
        await user.set({field: new_value, "updated_at": datetime.now(timezone.utc)})
        await AdminService.log_admin_action(
            admin, ActionType.UPDATE, "users", user.id, {field: {"old": not new_value, "new": new_value}}
        )
        return user

    @staticmethod
    async def toggle_verification(admin: User, user_id: str) -> User:
        return await UserService._toggle(admin, user_id, "is_verified")

    @staticmethod
    async def toggle_approval(admin: User, user_id: str) -> User:
        return await UserService._toggle(admin, user_id, "is_approved")

    @staticmethod
    async def update_status(
        admin: User,
        user_id: str,
        status: Optional[UserStatus] = None,
        role: Optional[UserRole] = None,
    ) -> User:
        """Dashboard shortcut for changing only status and/or role"""
        if status is None and role is None:
            raise ValidationError("Provide a status or a role to update")
        payload = {}
        if status is not None:
            payload["status"] = status
        if role is not None:
            payload["role"] = role
        return await UserService.update_user(admin, user_id, UserUpdateRequest(**payload))

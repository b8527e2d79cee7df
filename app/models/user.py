from beanie import Document
from pydantic import EmailStr, Field
from pymongo import ASCENDING, DESCENDING, IndexModel
from typing import Optional
from datetime import datetime, timezone
from .enums import UserRole, UserStatus


class User(Document):
    username: str
    email: EmailStr
    name: Optional[str] = None
    password_hash: str
    role: UserRole = UserRole.USER
    status: UserStatus = UserStatus.ACTIVE

    # Verification / approval flags
    is_verified: bool = True
    is_approved: bool = True

    # Profile fields
    bio: Optional[str] = None
    avatar: Optional[str] = None
    phone: Optional[str] = None
    full_name: Optional[str] = None
    gender: Optional[str] = None
    location: Optional[str] = None

    # Timestamps
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    last_login: Optional[datetime] = None

    class Settings:
        name = "users"
        indexes = [
            IndexModel([("username", ASCENDING)], unique=True, name="username_unique"),
            IndexModel([("email", ASCENDING)], unique=True, name="email_unique"),
            IndexModel([("role", ASCENDING)]),
            IndexModel([("created_at", DESCENDING)]),
        ]

    @property
    def display_name(self) -> str:
        return self.name or self.username or "Unknown"

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def update_timestamp(self):
        self.updated_at = datetime.now(timezone.utc)

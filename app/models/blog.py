from beanie import Document, PydanticObjectId
from pydantic import Field
from pymongo import ASCENDING, DESCENDING, IndexModel
from typing import List, Optional
from datetime import datetime, timezone

from .enums import BlogStatus
from ..utils import calculate_read_time


class Blog(Document):
    title: str
    slug: str  # URL-friendly version of title
    description: str = ""
    excerpt: str = ""

    # Media
    image_url: Optional[str] = None
    image_key: Optional[str] = None

    # Ownership and organization
    user_id: PydanticObjectId
    category_id: PydanticObjectId
    tags: List[str] = []
    keywords: List[str] = []

    # Moderation
    status: BlogStatus = BlogStatus.PENDING
    approved_at: Optional[datetime] = None
    approved_by: Optional[PydanticObjectId] = None
    rejected_at: Optional[datetime] = None
    rejected_by: Optional[PydanticObjectId] = None
    rejection_reason: Optional[str] = None

    # Engagement
    views: int = 0
    likes: int = 0
    bookmarks: int = 0
    liked_by: List[PydanticObjectId] = []
    bookmarked_by: List[PydanticObjectId] = []

    # Promotion flags (admin only)
    is_featured: bool = False
    is_hot: bool = False
    is_popular: bool = False

    read_time: int = 0
    is_deleted: bool = False

    # Timestamps
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "blogs"
        indexes = [
            IndexModel(
                [("title", ASCENDING)],
                unique=True,
                name="title_unique_live",
                partialFilterExpression={"is_deleted": False},
            ),
            IndexModel(
                [("slug", ASCENDING)],
                unique=True,
                name="slug_unique_live",
                partialFilterExpression={"is_deleted": False},
            ),
            IndexModel([("status", ASCENDING), ("category_id", ASCENDING), ("created_at", DESCENDING)]),
            IndexModel([("user_id", ASCENDING), ("status", ASCENDING), ("created_at", DESCENDING)]),
            IndexModel([("views", DESCENDING)]),
            IndexModel([("is_deleted", ASCENDING)]),
        ]

    def update_timestamp(self):
        self.updated_at = datetime.now(timezone.utc)

    def set_description(self, description: str):
        """Set the body and keep read_time in step with it"""
        self.description = description
        self.read_time = calculate_read_time(description)

    def clear_approval(self):
        self.approved_at = None
        self.approved_by = None

    def clear_rejection(self):
        self.rejected_at = None
        self.rejected_by = None
        self.rejection_reason = None

    def reset_promotion_flags(self):
        self.is_featured = False
        self.is_hot = False
        self.is_popular = False

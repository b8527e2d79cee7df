from beanie import Document
from pydantic import Field
from pymongo import ASCENDING, IndexModel
from typing import Optional
from datetime import datetime, timezone


class Category(Document):
    name: str
    slug: str  # URL-friendly version of name
    description: str = ""

    # Media
    image_url: Optional[str] = None
    image_key: Optional[str] = None  # Object key in the storage bucket

    # Enabled / disabled
    status: bool = True

    # Timestamps
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "blog_categories"
        indexes = [
            IndexModel([("name", ASCENDING)], unique=True, name="name_unique"),
            IndexModel([("slug", ASCENDING)], unique=True, name="slug_unique"),
        ]

    def update_timestamp(self):
        self.updated_at = datetime.now(timezone.utc)

from beanie import Document
from pydantic import Field, EmailStr
from pymongo import ASCENDING, IndexModel
from typing import Optional
from datetime import datetime, timezone

from .enums import SubscriberStatus


class Subscriber(Document):
    email: EmailStr
    status: SubscriberStatus = SubscriberStatus.ACTIVE
    source: str = "website"

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    subscribed_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    unsubscribed_at: Optional[datetime] = None

    class Settings:
        name = "newsletter_subscribers"
        indexes = [
            IndexModel([("email", ASCENDING)], unique=True, name="email_unique"),
        ]

from beanie import Document
from pydantic import Field, EmailStr
from typing import Optional
from datetime import datetime, timezone

from .enums import ContactType


class ContactMessage(Document):
    name: str
    email: EmailStr
    company: Optional[str] = None
    contact_type: ContactType = ContactType.GENERAL
    subject: str
    message: str

    # Request metadata
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None

    # Flipped once the admin notification went out
    notification_sent: bool = False

    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    class Settings:
        name = "contact_messages"

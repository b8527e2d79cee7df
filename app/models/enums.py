from enum import Enum


class UserRole(str, Enum):
    """User roles"""

    USER = "user"
    ADMIN = "admin"
    BLOGGER = "blogger"


class UserStatus(str, Enum):
    """Account status"""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class BlogStatus(str, Enum):
    """Moderation state of a blog"""

    DRAFT = "draft"
    PENDING = "pending"  # Waiting for an admin decision
    PUBLISHED = "published"  # The only state visible to the public
    REJECTED = "rejected"


class SubscriberStatus(str, Enum):
    ACTIVE = "active"
    UNSUBSCRIBED = "unsubscribed"


class ContactType(str, Enum):
    """Inquiry types offered by the contact form"""

    GENERAL = "general"
    EDITORIAL = "editorial"
    ADVERTISING = "advertising"
    PARTNERSHIP = "partnership"
    TECHNICAL = "technical"
    OTHER = "other"

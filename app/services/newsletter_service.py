"""
Newsletter subscriptions
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, NamedTuple, Optional, Tuple

from pydantic import BaseModel, EmailStr
from pymongo.errors import DuplicateKeyError

from ..models.enums import SubscriberStatus
from ..models.subscriber import Subscriber
from ..utils import paginate_query
from .email_service import EmailService

logger = logging.getLogger(__name__)


class SubscriptionRequest(BaseModel):
    email: EmailStr


class SubscriptionResult(NamedTuple):
    subscriber: Subscriber
    created: bool
    emails_sent: Optional[Dict[str, bool]] = None


def subscriber_to_dict(subscriber: Subscriber) -> Dict[str, Any]:
    return {
        "id": str(subscriber.id),
        "email": subscriber.email,
        "status": subscriber.status.value,
        "source": subscriber.source,
        "subscribed_at": subscriber.subscribed_at,
        "unsubscribed_at": subscriber.unsubscribed_at,
    }


class NewsletterService:
    @staticmethod
    async def active_count() -> int:
        return await Subscriber.find({"status": SubscriberStatus.ACTIVE.value}).count()

    @staticmethod
    async def _send_emails(subscriber: Subscriber) -> Dict[str, bool]:
        """Welcome mail and admin notice go out together; neither can fail the caller"""
        total = await NewsletterService.active_count()
        welcome, notification = await asyncio.gather(
            EmailService.send_newsletter_welcome(subscriber.email),
            EmailService.send_new_subscriber_notification(subscriber, total),
            return_exceptions=True,
        )
        for kind, outcome in (("welcome", welcome), ("notification", notification)):
            if isinstance(outcome, Exception):
                logger.error(f"Newsletter {kind} email for {subscriber.email} failed: {outcome}")

        logger.info(
            f"New newsletter subscriber {subscriber.email} (total active: {total})"
        )
        return {"welcome": welcome is True, "notification": notification is True}

    @staticmethod
    async def subscribe(
        email: str,
        source: Optional[str] = None,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> SubscriptionResult:
        """
        Subscribe an address.

        An address that is already active is reported as such and nothing is
        sent. A previously unsubscribed address is re-activated and welcomed
        again.
        """
        email = email.strip().lower()
        subscriber = Subscriber(
            email=email,
            source=source or "website",
            ip_address=ip_address,
            user_agent=user_agent,
        )
        try:
            await subscriber.insert()
        except DuplicateKeyError:
            existing = await Subscriber.find_one({"email": email})
            if existing is None:
                raise
            if existing.status == SubscriberStatus.ACTIVE:
                return SubscriptionResult(subscriber=existing, created=False)

            await existing.set(
                {
                    Subscriber.status: SubscriberStatus.ACTIVE,
                    Subscriber.subscribed_at: datetime.now(timezone.utc),
                    Subscriber.unsubscribed_at: None,
                }
            )
            subscriber = existing
            logger.info(f"Newsletter subscriber {email} re-activated")

        emails_sent = await NewsletterService._send_emails(subscriber)
        return SubscriptionResult(subscriber=subscriber, created=True, emails_sent=emails_sent)

    @staticmethod
    async def unsubscribe(email: str) -> None:
        """Idempotent; unknown addresses are ignored"""
        email = email.strip().lower()
        result = await Subscriber.find_one(
            {"email": email, "status": SubscriberStatus.ACTIVE.value}
        ).update(
            {
                "$set": {
                    "status": SubscriberStatus.UNSUBSCRIBED.value,
                    "unsubscribed_at": datetime.now(timezone.utc),
                }
            }
        )
        if result is not None and result.modified_count:
            logger.info(f"Newsletter unsubscribe: {email}")

    @staticmethod
    async def counts() -> Dict[str, int]:
        total = await Subscriber.find_all().count()
        active = await NewsletterService.active_count()
        return {"total": total, "active": active, "unsubscribed": total - active}

    @staticmethod
    async def list_subscribers(
        status: Optional[SubscriberStatus] = None, page: int = 1, limit: int = 50
    ) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
        filters: Dict[str, Any] = {}
        if status is not None:
            filters["status"] = status.value
        return await paginate_query(
            Subscriber,
            filters,
            sort_by="subscribed_at",
            sort_order="desc",
            page=page,
            limit=limit,
            transform_func=lambda items: [subscriber_to_dict(s) for s in items],
        )

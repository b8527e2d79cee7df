from datetime import datetime, timezone
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request

from ..dependencies import admin_required, ensure_db
from ..models.enums import SubscriberStatus
from ..models.user import User
from ..services.newsletter_service import NewsletterService, SubscriptionRequest
from ..utils import format_response

router = APIRouter(
    prefix="/api/newsletter", tags=["Newsletter"], dependencies=[Depends(ensure_db)]
)


def _client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else None


@router.post("/subscribe", response_model=Dict[str, Any], summary="Subscribe to the newsletter")
async def subscribe(body: SubscriptionRequest, request: Request):
    result = await NewsletterService.subscribe(
        body.email,
        source=request.headers.get("referer") or "direct",
        ip_address=_client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
    subscriber = result.subscriber
    if not result.created:
        return format_response("Email is already subscribed", data={"email": subscriber.email})

    return format_response(
        "Successfully subscribed to newsletter!",
        data={
            "email": subscriber.email,
            "subscribed_at": subscriber.subscribed_at,
            "message": "Check your email for a welcome message!",
            "emails_sent": result.emails_sent,
        },
    )


@router.post("/unsubscribe", response_model=Dict[str, Any], summary="Unsubscribe")
async def unsubscribe(body: SubscriptionRequest):
    await NewsletterService.unsubscribe(body.email)
    return format_response(
        "Successfully unsubscribed from newsletter.", data={"email": body.email.lower()}
    )


@router.get("/subscribers/count", response_model=Dict[str, Any], summary="Subscriber count")
async def subscriber_count():
    counts = await NewsletterService.counts()
    return format_response(
        data={
            "total": counts["total"],
            "active": counts["active"],
            "updated_at": datetime.now(timezone.utc),
        }
    )


@router.get("/subscribers", response_model=Dict[str, Any], summary="List subscribers (admin)")
async def list_subscribers(
    subscriber_status: Optional[SubscriberStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(admin_required),
):
    subscribers, pagination = await NewsletterService.list_subscribers(
        subscriber_status, page, limit
    )
    return format_response(data=subscribers, pagination=pagination)


@router.get("/health", response_model=Dict[str, Any], summary="Newsletter health")
async def newsletter_health():
    counts = await NewsletterService.counts()
    return format_response(
        "Newsletter service is running",
        timestamp=datetime.now(timezone.utc),
        stats={
            "total_subscribers": counts["total"],
            "active_subscribers": counts["active"],
            "unsubscribed_count": counts["unsubscribed"],
        },
    )

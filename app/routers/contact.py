import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, Request
from pydantic import BaseModel, EmailStr, Field

from ..config import settings
from ..dependencies import admin_required, ensure_db
from ..input_sanitizer import sanitizer
from ..models.contact import ContactMessage
from ..models.enums import ContactType
from ..models.user import User
from ..services.email_service import EmailService
from ..utils import format_response, paginate_query

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/contact", tags=["contact"], dependencies=[Depends(ensure_db)])


class ContactForm(BaseModel):
    name: str = Field(..., min_length=2, max_length=100)
    email: EmailStr
    company: Optional[str] = Field(None, max_length=200)
    contact_type: ContactType
    subject: str = Field(..., min_length=5, max_length=200)
    message: str = Field(..., min_length=10, max_length=5000)


CONTACT_INFO = {
    "phone": "+1 (555) 123-4567",
    "address": "123 Business Avenue, New York, NY 10001",
    "working_hours": "Monday-Friday, 9:00 AM - 6:00 PM EST",
    "response_time": "Typically within 24 hours",
    "departments": [
        {"name": "Editorial", "email": "editorial@dailyworldblog.com"},
        {"name": "Advertising", "email": "ads@dailyworldblog.com"},
        {"name": "Partnerships", "email": "partnerships@dailyworldblog.com"},
        {"name": "Technical Support", "email": "support@dailyworldblog.com"},
    ],
}


def contact_to_dict(contact: ContactMessage) -> Dict[str, Any]:
    return {
        "id": str(contact.id),
        "name": contact.name,
        "email": contact.email,
        "company": contact.company,
        "contact_type": contact.contact_type.value,
        "subject": contact.subject,
        "message": contact.message,
        "notification_sent": contact.notification_sent,
        "created_at": contact.created_at,
    }


async def send_contact_emails(contact: ContactMessage):
    """Admin notification plus auto-reply; runs after the response is sent"""
    notified = await EmailService.send_contact_notification(contact)
    if notified:
        await contact.set({ContactMessage.notification_sent: True})
    else:
        logger.warning(f"Contact notification for message {contact.id} was not delivered")

    if not await EmailService.send_contact_autoreply(contact):
        logger.warning(f"Auto-reply to {contact.email} was not delivered")


@router.post("/", response_model=Dict[str, Any], summary="Submit the contact form")
async def submit_contact_form(
    form: ContactForm, request: Request, background_tasks: BackgroundTasks
):
    """Store the message, then email the admin and the sender in the background"""
    contact = ContactMessage(
        name=sanitizer.sanitize_text(form.name),
        email=form.email.lower(),
        company=sanitizer.sanitize_text(form.company) or None,
        contact_type=form.contact_type,
        subject=sanitizer.sanitize_text(form.subject),
        message=sanitizer.sanitize_multiline(form.message),
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )
    await contact.insert()
    logger.info(f"Contact form submitted by {contact.email} ({contact.contact_type.value})")

    background_tasks.add_task(send_contact_emails, contact)

    return format_response(
        "Thank you for your message! We will get back to you soon.",
        data={
            "id": str(contact.id),
            "name": contact.name,
            "email": contact.email,
            "contact_type": contact.contact_type.value,
            "subject": contact.subject,
        },
    )


@router.get("/contact-info", response_model=Dict[str, Any], summary="Public contact details")
async def contact_info():
    return format_response(
        data={"email": settings.ADMIN_EMAIL or "contact@dailyworldblog.com", **CONTACT_INFO}
    )


@router.get("/", response_model=Dict[str, Any], summary="List contact messages (admin)")
async def list_contact_messages(
    contact_type: Optional[ContactType] = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: User = Depends(admin_required),
):
    filters: Dict[str, Any] = {}
    if contact_type is not None:
        filters["contact_type"] = contact_type.value
    messages, pagination = await paginate_query(
        ContactMessage,
        filters,
        page=page,
        limit=limit,
        transform_func=lambda items: [contact_to_dict(c) for c in items],
    )
    return format_response(data=messages, pagination=pagination)

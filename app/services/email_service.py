import asyncio
import smtplib
from datetime import datetime
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
import logging
from typing import Optional

from ..config import settings
from ..input_sanitizer import sanitizer

logger = logging.getLogger(__name__)

CONTACT_TYPE_LABELS = {
    "general": "General Inquiry",
    "editorial": "Editorial",
    "advertising": "Advertising",
    "partnership": "Partnership",
    "technical": "Technical Support",
    "other": "Other",
}


class EmailService:
    @staticmethod
    def _send_blocking(to_email: str, subject: str, body: str, from_name: str):
        """SMTP over SSL first, STARTTLS on 587 as a fallback"""
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f'"{from_name}" <{settings.SENDER_EMAIL}>'
        msg["To"] = to_email
        msg.attach(MIMEText(body, "html"))

        try:
            with smtplib.SMTP_SSL(settings.SMTP_SERVER, settings.SMTP_PORT, timeout=10) as server:
                server.login(settings.SENDER_EMAIL, settings.SENDER_PASSWORD)
                server.sendmail(settings.SENDER_EMAIL, to_email, msg.as_string())
            logger.info(f"Email sent (SSL/{settings.SMTP_PORT}) to {to_email}")
            return
        except (smtplib.SMTPException, OSError) as e:
            logger.warning(f"SSL send failed ({e}), retrying with TLS (587)")

        with smtplib.SMTP(settings.SMTP_SERVER, 587, timeout=10) as server:
            server.starttls()
            server.login(settings.SENDER_EMAIL, settings.SENDER_PASSWORD)
            server.sendmail(settings.SENDER_EMAIL, to_email, msg.as_string())
        logger.info(f"Email sent (TLS/587) to {to_email}")

    @staticmethod
    async def send_email(
        to_email: str, subject: str, body: str, from_name: Optional[str] = None
    ) -> bool:
        """Send an HTML email

        Returns True only when the message was handed to the SMTP server. A
        failed send, or SMTP not being configured, returns False.
        """
        if not settings.SENDER_EMAIL or not settings.SENDER_PASSWORD:
            logger.info(f"SMTP not configured, email to {to_email} not sent: {subject}")
            return False

        try:
            await asyncio.to_thread(
                EmailService._send_blocking,
                to_email,
                subject,
                body,
                from_name or settings.SITE_NAME,
            )
            return True
        except Exception as e:
            logger.error(f"Email send to {to_email} failed: {e}")
            return False

    @staticmethod
    def admin_address() -> Optional[str]:
        return settings.ADMIN_EMAIL or settings.SENDER_EMAIL

    # -----------------------------------------------------------
    # HTML TEMPLATE
    # -----------------------------------------------------------
    @staticmethod
    def layout(title: str, content: str, color: str = "#1E3A8A") -> str:
        year = datetime.now().year
        return f"""
        <!DOCTYPE html>
        <html>
        <head>
            <meta charset="UTF-8" />
            <style>
                body {{ font-family: Arial, sans-serif; background: #F3F4F6; padding: 20px; }}
                .card {{
                    max-width: 600px; margin: auto; background: #fff;
                    border-radius: 12px; padding: 30px; border-top: 6px solid {color};
                }}
                .title {{ font-size: 22px; font-weight: bold; color: {color}; margin-bottom: 16px; }}
                .text {{ color: #444; font-size: 15px; line-height: 1.6; }}
                .label {{ font-weight: bold; color: #555; }}
                .message {{ background: #F9FAFB; padding: 16px; border-radius: 8px; white-space: pre-wrap; }}
                .footer {{ margin-top: 25px; font-size: 13px; color: #777; text-align: center; }}
            </style>
        </head>
        <body>
            <div class="card">
                <div class="title">{title}</div>
                {content}
                <div class="footer">&copy; {year} {settings.SITE_NAME}. All rights reserved.</div>
            </div>
        </body>
        </html>
        """

    # -----------------------------------------------------------
    # CONTACT FORM
    # -----------------------------------------------------------

    @staticmethod
    async def send_contact_notification(contact) -> bool:
        """Forward a contact form submission to the site admin"""
        admin_email = EmailService.admin_address()
        if not admin_email:
            logger.warning("No admin email configured, contact notification not sent")
            return False

        e = sanitizer.escape
        contact_type = CONTACT_TYPE_LABELS.get(contact.contact_type.value, contact.contact_type.value)
        content = f"""
            <p class="text"><span class="label">Name:</span> {e(contact.name)}</p>
            <p class="text"><span class="label">Email:</span> {e(contact.email)}</p>
            <p class="text"><span class="label">Company:</span> {e(contact.company) or "N/A"}</p>
            <p class="text"><span class="label">Inquiry type:</span> {e(contact_type)}</p>
            <p class="text"><span class="label">Subject:</span> {e(contact.subject)}</p>
            <div class="message text">{e(contact.message)}</div>
            <p class="text"><small>Submitted {contact.created_at:%Y-%m-%d %H:%M} UTC
            from {e(contact.ip_address) or "unknown"}</small></p>
        """
        return await EmailService.send_email(
            admin_email,
            f"New Contact Form: {contact.subject}",
            EmailService.layout("New Contact Form Submission", content),
            from_name=f"{settings.SITE_NAME} Contact",
        )

    @staticmethod
    async def send_contact_autoreply(contact) -> bool:
        content = f"""
            <p class="text">Hello {sanitizer.escape(contact.name)},</p>
            <p class="text">Thanks for reaching out. We received your message about
            <b>{sanitizer.escape(contact.subject)}</b> and a member of our team will
            get back to you, typically within 24 hours on working days.</p>
        """
        return await EmailService.send_email(
            contact.email,
            f"Thank You for Contacting {settings.SITE_NAME}!",
            EmailService.layout("Thank You for Contacting Us!", content, color="#059669"),
            from_name=f"{settings.SITE_NAME} Support",
        )

    # -----------------------------------------------------------
    # NEWSLETTER
    # -----------------------------------------------------------

    @staticmethod
    async def send_newsletter_welcome(email: str) -> bool:
        content = f"""
            <p class="text">Welcome aboard! You are now subscribed to the
            {settings.SITE_NAME} newsletter.</p>
            <p class="text">Expect a weekly digest of our best stories, exclusive
            content and insights from our editorial team.</p>
            <p class="text"><small>Subscribed as {sanitizer.escape(email)}.</small></p>
        """
        return await EmailService.send_email(
            email,
            f"Welcome to {settings.SITE_NAME} Newsletter!",
            EmailService.layout("Welcome to Our Newsletter!", content, color="#7C3AED"),
            from_name=f"{settings.SITE_NAME} Newsletter",
        )

    @staticmethod
    async def send_new_subscriber_notification(subscriber, total_subscribers: int) -> bool:
        admin_email = EmailService.admin_address()
        if not admin_email:
            logger.warning("No admin email configured, subscriber notification not sent")
            return False

        e = sanitizer.escape
        content = f"""
            <p class="text">A new reader subscribed to the newsletter.</p>
            <ul class="text">
                <li><span class="label">Email:</span> {e(subscriber.email)}</li>
                <li><span class="label">Subscription date:</span> {subscriber.subscribed_at:%Y-%m-%d %H:%M} UTC</li>
                <li><span class="label">Source:</span> {e(subscriber.source)}</li>
                <li><span class="label">IP address:</span> {e(subscriber.ip_address) or "unknown"}</li>
                <li><span class="label">User agent:</span> {e(subscriber.user_agent) or "unknown"}</li>
            </ul>
            <p class="text">Total active subscribers: {total_subscribers}</p>
        """
        return await EmailService.send_email(
            admin_email,
            "New Newsletter Subscriber!",
            EmailService.layout("New Newsletter Subscription", content),
        )

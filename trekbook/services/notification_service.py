"""Notification Service for booking emails.

Emails go out through the SendGrid v3 HTTP API. When no API key is
configured, sends are skipped and reported as not delivered.
"""

import base64
import logging
from typing import Any

import httpx

from trekbook.config import settings
from trekbook.models.booking import Booking

logger = logging.getLogger(__name__)


def format_amount(amount: int | None, currency: str = "INR") -> str:
    """Format an amount in paise as a currency string."""
    return f"{currency} {(amount or 0) / 100:,.2f}"


class NotificationService:
    """Service for sending booking emails."""

    def __init__(self) -> None:
        """Initialize notification service."""
        self._http_client: httpx.AsyncClient | None = None

    @property
    def http_client(self) -> httpx.AsyncClient:
        """Lazy-load HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=30.0)
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        text_content: str | None = None,
        attachments: list[tuple[str, bytes, str]] | None = None,
    ) -> bool:
        """Send an email via SendGrid.

        Args:
            to_email: Recipient email
            subject: Email subject
            html_content: HTML body
            text_content: Plain text body
            attachments: (filename, content, MIME type) triples

        Returns:
            bool: True if sent successfully
        """
        if not settings.sendgrid_api_key:
            logger.warning(f"SendGrid not configured, skipping email to {to_email}: {subject}")
            return False

        headers = {
            "Authorization": f"Bearer {settings.sendgrid_api_key}",
            "Content-Type": "application/json",
        }
        payload: dict[str, Any] = {
            "personalizations": [{"to": [{"email": to_email}]}],
            "from": {
                "email": settings.email_from_address,
                "name": settings.email_from_name,
            },
            "subject": subject,
            "content": [{"type": "text/html", "value": html_content}],
        }
        if text_content:
            payload["content"].insert(0, {"type": "text/plain", "value": text_content})
        if attachments:
            payload["attachments"] = [
                {
                    "content": base64.b64encode(content).decode("ascii"),
                    "filename": filename,
                    "type": mime_type,
                    "disposition": "attachment",
                }
                for filename, content, mime_type in attachments
            ]

        try:
            response = await self.http_client.post(
                "https://api.sendgrid.com/v3/mail/send",
                headers=headers,
                json=payload,
            )
        except httpx.HTTPError as e:
            logger.error(f"Email to {to_email} failed: {e}")
            return False

        if response.status_code not in (200, 202):
            logger.error(f"SendGrid rejected email to {to_email}: {response.status_code} {response.text}")
            return False
        return True

    async def send_partial_payment_reminder(self, booking: Booking) -> bool:
        """Remind the booking contact to pay the remaining balance."""
        contact = booking.user_details or {}
        remaining = format_amount(booking.partial_remaining_amount, booking.currency)
        due_date = booking.partial_final_payment_due_date
        payment_link = f"{settings.frontend_url}/payment/{booking.id}"

        subject = f"Payment Reminder - {booking.trek_name}"
        text = (
            f"Hi {contact.get('name', 'there')},\n\n"
            f"The remaining balance of {remaining} for booking {booking.booking_number} "
            f"({booking.trek_name}, starting {booking.batch_start_date}) is due on {due_date}.\n"
            f"Pay now: {payment_link}\n"
        )
        html = (
            f"<p>Hi {contact.get('name', 'there')},</p>"
            f"<p>The remaining balance of <strong>{remaining}</strong> for booking "
            f"<strong>{booking.booking_number}</strong> ({booking.trek_name}, starting "
            f"{booking.batch_start_date}) is due on <strong>{due_date}</strong>.</p>"
            f'<p><a href="{payment_link}">Pay Remaining Balance</a></p>'
        )
        return await self.send_email(contact.get("email", ""), subject, html, text)

    async def send_auto_cancellation(self, booking: Booking) -> bool:
        """Tell the booking contact their booking was cancelled for non-payment."""
        contact = booking.user_details or {}
        remaining = format_amount(booking.partial_remaining_amount, booking.currency)

        subject = f"Booking Cancelled - {booking.trek_name}"
        text = (
            f"Hi {contact.get('name', 'there')},\n\n"
            f"Booking {booking.booking_number} for {booking.trek_name} has been cancelled because "
            f"the remaining balance of {remaining} was not paid by "
            f"{booking.partial_final_payment_due_date}.\n"
        )
        html = (
            f"<p>Hi {contact.get('name', 'there')},</p>"
            f"<p>Booking <strong>{booking.booking_number}</strong> for {booking.trek_name} has been "
            f"cancelled because the remaining balance of <strong>{remaining}</strong> was not paid by "
            f"<strong>{booking.partial_final_payment_due_date}</strong>.</p>"
        )
        return await self.send_email(contact.get("email", ""), subject, html, text)

    async def send_booking_reminder(self, booking: Booking) -> bool:
        """Remind the booking contact that their trek is coming up."""
        contact = booking.user_details or {}
        booking_link = f"{settings.frontend_url}/booking/{booking.id}"

        subject = f"Trek Reminder - {booking.trek_name}"
        text = (
            f"Hi {contact.get('name', 'there')},\n\n"
            f"Your trek {booking.trek_name} (booking {booking.booking_number}) starts on "
            f"{booking.batch_start_date} for {booking.number_of_participants} traveller(s).\n"
            f"Booking details: {booking_link}\n"
        )
        html = (
            f"<p>Hi {contact.get('name', 'there')},</p>"
            f"<p>Your trek <strong>{booking.trek_name}</strong> (booking "
            f"<strong>{booking.booking_number}</strong>) starts on "
            f"<strong>{booking.batch_start_date}</strong> for "
            f"{booking.number_of_participants} traveller(s).</p>"
            f'<p><a href="{booking_link}">View Booking</a></p>'
        )
        return await self.send_email(contact.get("email", ""), subject, html, text)

    async def send_booking_confirmation(self, booking: Booking) -> bool:
        """Confirm the booking to its contact."""
        contact = booking.user_details or {}
        paid = format_amount(booking.amount_paid, booking.currency)

        subject = f"Booking Confirmed - {booking.trek_name}"
        text = (
            f"Hi {contact.get('name', 'there')},\n\n"
            f"Booking {booking.booking_number} for {booking.trek_name} "
            f"({booking.batch_start_date} to {booking.batch_end_date}) is confirmed. "
            f"Amount paid: {paid}.\n"
        )
        html = (
            f"<p>Hi {contact.get('name', 'there')},</p>"
            f"<p>Booking <strong>{booking.booking_number}</strong> for {booking.trek_name} "
            f"({booking.batch_start_date} to {booking.batch_end_date}) is confirmed. "
            f"Amount paid: <strong>{paid}</strong>.</p>"
        )
        return await self.send_email(contact.get("email", ""), subject, html, text)

    async def send_invoice(self, booking: Booking, filename: str, pdf: bytes) -> bool:
        """Email the booking invoice as a PDF attachment."""
        contact = booking.user_details or {}

        subject = f"Invoice - {booking.booking_number}"
        text = (
            f"Hi {contact.get('name', 'there')},\n\n"
            f"Please find attached the invoice for booking {booking.booking_number} "
            f"({booking.trek_name}).\n"
        )
        html = (
            f"<p>Hi {contact.get('name', 'there')},</p>"
            f"<p>Please find attached the invoice for booking "
            f"<strong>{booking.booking_number}</strong> ({booking.trek_name}).</p>"
        )
        return await self.send_email(
            contact.get("email", ""),
            subject,
            html,
            text,
            attachments=[(filename, pdf, "application/pdf")],
        )


# Singleton instance
notification_service = NotificationService()

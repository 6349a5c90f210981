"""Async HTTP client for the booking API.

The access token is an argument of every call, so one client instance can
serve several users and no default headers are ever mutated.
"""

import logging
from datetime import date
from typing import Any
from uuid import UUID

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class BookingsAPIError(Exception):
    """Raised when the booking API answers with an error status."""

    def __init__(self, status_code: int, detail: Any) -> None:
        self.status_code = status_code
        self.detail = detail
        super().__init__(f"Booking API error {status_code}: {detail}")


class BookingsClient:
    """Client for the user and admin booking routes."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        api_prefix: str = "/api/v1",
        timeout: float = DEFAULT_TIMEOUT,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=f"{base_url.rstrip('/')}{api_prefix}",
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "BookingsClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        token: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        response = await self._client.request(
            method,
            path,
            headers={"Authorization": f"Bearer {token}"},
            json=json,
            params=params,
        )
        if response.is_error:
            try:
                detail = response.json().get("detail", response.text)
            except ValueError:
                detail = response.text
            logger.debug(f"{method} {path} failed with {response.status_code}: {detail}")
            raise BookingsAPIError(response.status_code, detail)
        return response

    # ==================== USER ROUTES ====================

    async def list_my_bookings(self, token: str) -> list[dict[str, Any]]:
        response = await self._request("GET", "/bookings/user/mybookings", token)
        return response.json()

    async def get_booking(self, token: str, booking_id: UUID | str) -> dict[str, Any]:
        response = await self._request("GET", f"/bookings/{booking_id}", token)
        return response.json()

    async def create_booking(self, token: str, data: dict[str, Any]) -> dict[str, Any]:
        """Create a booking and return the booking payload."""
        response = await self._request("POST", "/bookings", token, json=data)
        return response.json()["booking"]

    async def update_participants(
        self,
        token: str,
        booking_id: UUID | str,
        participants: list[dict[str, Any]],
    ) -> dict[str, Any]:
        response = await self._request(
            "PUT",
            f"/bookings/{booking_id}/participants",
            token,
            json={"participants": participants},
        )
        return response.json()

    async def cancel_booking(self, token: str, booking_id: UUID | str, reason: str) -> dict[str, Any]:
        response = await self._request(
            "POST", f"/bookings/{booking_id}/cancel", token, json={"reason": reason}
        )
        return response.json()

    async def download_invoice(self, token: str, booking_id: UUID | str) -> tuple[str, bytes]:
        """Return the invoice filename and file content."""
        response = await self._request("GET", f"/bookings/{booking_id}/invoice", token)
        disposition = response.headers.get("Content-Disposition", "")
        filename = disposition.split("filename=")[-1].strip('"') if "filename=" in disposition else "invoice.pdf"
        return filename, response.content

    # ==================== ADMIN ROUTES ====================

    async def admin_list_bookings(
        self,
        token: str,
        status: str | None = None,
        page: int = 1,
        page_size: int = 20,
    ) -> dict[str, Any]:
        params: dict[str, Any] = {"page": page, "page_size": page_size}
        if status:
            params["status"] = status
        response = await self._request("GET", "/admin/bookings", token, params=params)
        return response.json()

    async def admin_update_booking(
        self,
        token: str,
        booking_id: UUID | str,
        status: str | None = None,
        payment_status: str | None = None,
        admin_remarks: str | None = None,
        total_price: int | None = None,
    ) -> dict[str, Any]:
        """Send only the fields that were given."""
        fields = {
            "status": status,
            "payment_status": payment_status,
            "admin_remarks": admin_remarks,
            "total_price": total_price,
        }
        payload = {key: value for key, value in fields.items() if value is not None}
        response = await self._request("PATCH", f"/admin/bookings/{booking_id}", token, json=payload)
        return response.json()

    async def admin_record_payment(
        self,
        token: str,
        booking_id: UUID | str,
        amount: int,
        method: str = "manual",
        reference: str | None = None,
    ) -> dict[str, Any]:
        response = await self._request(
            "POST",
            f"/admin/bookings/{booking_id}/payments",
            token,
            json={"amount": amount, "method": method, "reference": reference},
        )
        return response.json()

    async def admin_mark_partial_complete(self, token: str, booking_id: UUID | str) -> dict[str, Any]:
        response = await self._request(
            "POST", f"/admin/bookings/{booking_id}/mark-partial-complete", token
        )
        return response.json()

    async def admin_send_email(
        self, token: str, booking_id: UUID | str, kind: str
    ) -> dict[str, Any]:
        """Send a booking email; kind is "reminder", "confirmation" or "invoice"."""
        response = await self._request("POST", f"/admin/bookings/{booking_id}/send-{kind}", token)
        return response.json()


def booking_payload(
    trek_id: UUID | str,
    trek_name: str,
    batch_start_date: date,
    batch_end_date: date,
    total_price: int,
    contact: dict[str, str],
    number_of_participants: int = 1,
    partial_payment: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the JSON body for create_booking."""
    payload: dict[str, Any] = {
        "trek_id": str(trek_id),
        "trek_name": trek_name,
        "batch_start_date": batch_start_date.isoformat(),
        "batch_end_date": batch_end_date.isoformat(),
        "number_of_participants": number_of_participants,
        "total_price": total_price,
        "user_details": contact,
        "payment_mode": "partial" if partial_payment else "full",
    }
    if partial_payment:
        payload["partial_payment"] = {
            key: value.isoformat() if isinstance(value, date) else value
            for key, value in partial_payment.items()
        }
    return payload

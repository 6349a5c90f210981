"""Booking audit trail service."""

from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from trekbook.models.admin import AuditLog


class AuditService:
    """Service for append-only booking audit logging."""

    BOOKING_ACTIONS = {
        "booking_create",
        "booking_status_change",
        "booking_update",
        "booking_cancel",
        "booking_participants_update",
        "payment_record",
        "partial_payment_settle",
        "partial_payment_reminder",
        "booking_reminder_email",
        "booking_confirmation_email",
        "booking_invoice_email",
    }

    async def log_action(
        self,
        db: AsyncSession,
        user_id: UUID | None,
        action: str,
        resource_type: str,
        resource_id: UUID,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuditLog:
        """Log an action.

        Args:
            db: Database session
            user_id: User performing the action (None for system jobs)
            action: Action name (e.g., "booking_status_change")
            resource_type: Resource type (e.g., "booking")
            resource_id: Resource ID
            old_values: Previous state
            new_values: New state
            ip_address: Client IP
            user_agent: Client user agent

        Returns:
            Created audit log entry
        """
        audit = AuditLog(
            user_id=user_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            old_values=old_values,
            new_values=new_values,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        db.add(audit)
        return audit

    async def log_booking_action(
        self,
        db: AsyncSession,
        user_id: UUID | None,
        action: str,
        booking_id: UUID,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
    ) -> AuditLog:
        """Log a change to a booking.

        Raises:
            ValueError: If the action is not a known booking action
        """
        if action not in self.BOOKING_ACTIONS:
            raise ValueError(f"Unknown booking audit action: {action}")
        return await self.log_action(
            db=db,
            user_id=user_id,
            action=action,
            resource_type="booking",
            resource_id=booking_id,
            old_values=old_values,
            new_values=new_values,
        )


audit_service = AuditService()

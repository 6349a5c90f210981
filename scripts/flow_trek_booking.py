#!/usr/bin/env python3
"""
Complete trek booking flow script.

DO NOT ADD BUSINESS LOGIC HERE.
This script only orchestrates API calls.
All rules live in the backend.

Usage:
    python scripts/flow_trek_booking.py --user-id <UUID> --admin-id <UUID> --trek-id <UUID> --start 2026-12-10 --end 2026-12-15
    python scripts/flow_trek_booking.py --user-id <UUID> --admin-id <UUID> --trek-id <UUID> --start 2026-12-10 --end 2026-12-15 --partial 300000

Flow:
    1. Create booking (as traveller)
    2. Record payment (as admin), full amount or initial partial amount
    3. Settle the remaining balance (partial bookings only)
    4. Add participant details (as traveller)
    5. Confirm booking (as admin, full payment only)
    6. Download invoice
"""

import argparse
import asyncio
import json
import sys
from datetime import date, timedelta

from trekbook.client import BookingsAPIError, BookingsClient, booking_payload
from trekbook.core.security import create_access_token

BASE_URL = "http://localhost:8000"

CONTACT = {"name": "Test Traveller", "email": "traveller@trekbook.in", "phone": "+919800000000"}


def print_step(step: int, title: str):
    """Print step header."""
    print(f"\n{'='*60}")
    print(f"STEP {step}: {title}")
    print("="*60)


def print_booking(booking: dict, fields: list[str] | None = None):
    """Print booking, optionally filtering fields."""
    fields = fields or ["booking_number", "status", "payment_status", "amount_paid", "badge", "progress", "resume_action"]
    print(json.dumps({k: booking.get(k) for k in fields}, indent=2, default=str))


async def run(args: argparse.Namespace) -> None:
    # Tokens are normally issued by the auth service
    traveller_token = create_access_token({"sub": args.user_id}, timedelta(hours=1))
    admin_token = create_access_token({"sub": args.admin_id}, timedelta(hours=1))

    partial_payment = None
    if args.partial:
        partial_payment = {
            "initial_amount": args.partial,
            "final_payment_due_date": args.start - timedelta(days=7),
        }

    async with BookingsClient(base_url=args.base_url) as client:
        # Step 1: Create booking
        print_step(1, "Create booking")
        booking = await client.create_booking(traveller_token, booking_payload(
            trek_id=args.trek_id,
            trek_name=args.trek_name,
            batch_start_date=args.start,
            batch_end_date=args.end,
            total_price=args.price,
            contact=CONTACT,
            number_of_participants=args.participants,
            partial_payment=partial_payment,
        ))
        print_booking(booking)
        booking_id = booking["id"]

        # Step 2: Record payment
        print_step(2, "Record payment (as admin)")
        amount = args.partial or args.price
        booking = await client.admin_record_payment(admin_token, booking_id, amount, method="bank_transfer")
        print_booking(booking)

        # Step 3: Settle remaining balance
        if args.partial:
            print_step(3, "Settle remaining balance (as admin)")
            booking = await client.admin_mark_partial_complete(admin_token, booking_id)
            print_booking(booking)

        # Step 4: Participants
        print_step(4, "Add participant details")
        participants = [{"name": f"Trekker {i + 1}"} for i in range(args.participants)]
        booking = await client.update_participants(traveller_token, booking_id, participants)
        print(f"Participants: {[p['name'] for p in booking['participants']]}")

        # Step 5: Confirm
        if booking["status"] == "payment_completed":
            print_step(5, "Confirm booking (as admin)")
            booking = await client.admin_update_booking(admin_token, booking_id, status="confirmed")
            print_booking(booking)

        # Step 6: Invoice
        print_step(6, "Download invoice")
        filename, content = await client.download_invoice(traveller_token, booking_id)
        with open(filename, "wb") as f:
            f.write(content)
        print(f"Saved {filename} ({len(content)} bytes)")

    print("\n" + "="*60)
    print("FULL FLOW COMPLETE")
    print("="*60)
    print(f"Booking: {booking['booking_number']} ({booking['status']})")


def main():
    parser = argparse.ArgumentParser(description="Complete trek booking flow")
    parser.add_argument("--base-url", default=BASE_URL, help="API base URL")
    parser.add_argument("--user-id", required=True, help="Traveller user UUID")
    parser.add_argument("--admin-id", required=True, help="Admin user UUID")
    parser.add_argument("--trek-id", required=True, help="Trek UUID")
    parser.add_argument("--trek-name", default="Kedarkantha Winter Trek", help="Trek name")
    parser.add_argument("--start", required=True, type=date.fromisoformat, help="Batch start (YYYY-MM-DD)")
    parser.add_argument("--end", required=True, type=date.fromisoformat, help="Batch end (YYYY-MM-DD)")
    parser.add_argument("--price", type=int, default=1_000_000, help="Total price in paise")
    parser.add_argument("--participants", type=int, default=2, help="Number of participants")
    parser.add_argument("--partial", type=int, default=None, help="Initial partial amount in paise")
    args = parser.parse_args()

    try:
        asyncio.run(run(args))
    except BookingsAPIError as e:
        print(f"ERROR ({e.status_code}): {json.dumps(e.detail, indent=2, ensure_ascii=False)}")
        sys.exit(1)


if __name__ == "__main__":
    main()

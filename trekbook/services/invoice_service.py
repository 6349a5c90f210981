"""PDF invoice generation for bookings."""

from io import BytesIO
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from trekbook.config import settings
from trekbook.core.exceptions import InvalidBookingStatus
from trekbook.domain.booking_state import BookingStatus, PaymentMode, parse_status
from trekbook.models.booking import Booking
from trekbook.services.notification_service import format_amount

INVOICE_STATUSES = frozenset({
    BookingStatus.PAYMENT_COMPLETED,
    BookingStatus.PAYMENT_CONFIRMED_PARTIAL,
    BookingStatus.CONFIRMED,
    BookingStatus.TREK_COMPLETED,
})

HEADER_STYLE = [
    ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
    ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
    ("BOTTOMPADDING", (0, 0), (-1, 0), 8),
    ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
]


class InvoiceService:
    """Render invoices for bookings that have received money."""

    def filename(self, booking: Booking) -> str:
        return f"invoice_{booking.booking_number}.pdf"

    def invoice_number(self, booking: Booking) -> str:
        """Invoice number, prefixed by which payment of a partial booking it covers."""
        prefix = "INV"
        if booking.payment_mode == PaymentMode.PARTIAL.value:
            if booking.status == BookingStatus.PAYMENT_CONFIRMED_PARTIAL.value:
                prefix = "PP-INV"
            elif booking.status == BookingStatus.CONFIRMED.value:
                prefix = "FP-INV"
        return f"{prefix}-{booking.booking_number.removeprefix('TRK-')}"

    def render(self, booking: Booking) -> bytes:
        """Render the invoice PDF for a booking.

        Raises:
            InvalidBookingStatus: If the booking has not received any payment
        """
        if parse_status(booking.status) not in INVOICE_STATUSES:
            raise InvalidBookingStatus(f"No invoice is available for a {booking.status} booking")

        contact = booking.user_details or {}
        currency = booking.currency
        styles = getSampleStyleSheet()

        buffer = BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            title=f"Invoice {booking.booking_number}",
            author=settings.invoice_company_name,
        )
        story = [
            Paragraph(f"<b>{escape(settings.invoice_company_name)}</b>", styles["Title"]),
            Paragraph(escape(settings.invoice_company_address), styles["Normal"]),
            Spacer(1, 20),
            Paragraph("<b>INVOICE</b>", styles["Heading2"]),
        ]

        details = Table(
            [
                ["Invoice No", self.invoice_number(booking)],
                ["Booking", booking.booking_number],
                ["Issued", f"{booking.created_at:%Y-%m-%d}"],
                ["Billed to", contact.get("name", "")],
                ["Email", contact.get("email", "")],
                ["Phone", contact.get("phone", "")],
            ],
            colWidths=[120, 330],
        )
        details.setStyle(TableStyle([("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold")]))
        story += [details, Spacer(1, 16)]

        trip = [["Trek", "Batch", "Travellers"]]
        trip.append([
            booking.trek_name,
            f"{booking.batch_start_date} to {booking.batch_end_date}",
            str(booking.number_of_participants),
        ])
        for participant in booking.participants:
            trip.append(["", f"{participant.position + 1}. {participant.name}", ""])
        trip_table = Table(trip, colWidths=[170, 200, 80])
        trip_table.setStyle(TableStyle(HEADER_STYLE))
        story += [trip_table, Spacer(1, 16)]

        amounts = [
            ["Description", "Amount"],
            ["Total price", format_amount(booking.total_price, currency)],
            ["Amount paid", format_amount(booking.amount_paid, currency)],
        ]
        if booking.payment_mode == PaymentMode.PARTIAL.value:
            amounts.append(["Balance due", format_amount(booking.balance_due, currency)])
            if booking.balance_due and booking.partial_final_payment_due_date:
                amounts.append(["Balance due by", str(booking.partial_final_payment_due_date)])
        amount_table = Table(amounts, colWidths=[250, 200])
        amount_table.setStyle(TableStyle(HEADER_STYLE + [("ALIGN", (1, 0), (1, -1), "RIGHT")]))
        story += [amount_table, Spacer(1, 16)]

        story.append(Paragraph(f"Status: {escape(booking.status)}", styles["Normal"]))

        doc.build(story)
        content = buffer.getvalue()
        buffer.close()
        return content


invoice_service = InvoiceService()

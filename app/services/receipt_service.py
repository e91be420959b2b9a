import io

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import cm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from app.core.config import settings

BRAND_COLOR = colors.HexColor("#667eea")


class ReceiptRenderer:
    """Builds the downloadable PDF receipt for a booking."""

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self.styles.add(ParagraphStyle(
            name="ReceiptTitle",
            parent=self.styles["Heading1"],
            fontSize=22,
            textColor=BRAND_COLOR,
            spaceAfter=6,
        ))

    def render(self, booking, user=None, item=None) -> bytes:
        item = item if item is not None else booking.item
        if user is not None:
            name, email, phone = user.name, user.email, user.phone or ""
        else:
            contact = booking.primary_contact
            name, email, phone = contact.get("name", ""), contact.get("email", ""), contact.get("phone", "")

        title = getattr(item, "title", None) or getattr(item, "name", None) or "Booking"
        pricing = booking.pricing or {}

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=2 * cm,
            rightMargin=2 * cm,
            topMargin=2 * cm,
            bottomMargin=2 * cm,
            title=f"Booking Receipt - {booking.id}",
            author=settings.SMTP_FROM_NAME or "My Guide",
        )

        story = [
            Paragraph("My Guide", self.styles["ReceiptTitle"]),
            Paragraph("BOOKING RECEIPT", self.styles["Heading2"]),
            Spacer(1, 0.4 * cm),
            self._table([
                ["Booking ID", str(booking.id)],
                ["Status", booking.status.upper()],
                ["Payment", booking.payment_status.upper()],
                ["Payment reference", booking.payment_id or "-"],
            ]),
            Spacer(1, 0.6 * cm),
            Paragraph("Customer", self.styles["Heading3"]),
            self._table([["Name", name], ["Email", email], ["Phone", phone or "-"]]),
            Spacer(1, 0.6 * cm),
            Paragraph("Booking details", self.styles["Heading3"]),
            self._table([
                ["Experience", title],
                ["Location", getattr(item, "location", None) or "-"],
                ["Date", booking.date.strftime("%B %d, %Y")],
                ["Time", booking.time or "-"],
                ["Participants", str(booking.participants)],
            ]),
            Spacer(1, 0.6 * cm),
            Paragraph("Price breakdown", self.styles["Heading3"]),
            self._table([
                ["Base price", self._inr(pricing.get("basePrice"))],
                ["Subtotal", self._inr(pricing.get("subtotal"))],
                ["Tax", self._inr(pricing.get("tax"))],
                ["Service fee", self._inr(pricing.get("serviceFee"))],
                ["Promo", "-" + self._inr(pricing.get("promoOff"))],
                ["Total", self._inr(booking.total_amount)],
            ], highlight_last=True),
        ]

        doc.build(story)
        return buffer.getvalue()

    @staticmethod
    def _inr(value) -> str:
        return f"INR {float(value or 0):,.2f}"

    @staticmethod
    def _table(rows, highlight_last=False) -> Table:
        table = Table(rows, colWidths=[5 * cm, 11 * cm])
        style = [
            ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
            ("TEXTCOLOR", (0, 0), (0, -1), BRAND_COLOR),
            ("LINEBELOW", (0, 0), (-1, -1), 0.25, colors.lightgrey),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
        ]
        if highlight_last:
            style.append(("FONTNAME", (0, -1), (-1, -1), "Helvetica-Bold"))
        table.setStyle(TableStyle(style))
        return table

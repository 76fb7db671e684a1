from typing import Optional
from datetime import datetime
from sqlalchemy.orm import Session, joinedload
import base64
import logging
import qrcode
from qrcode import constants
from io import BytesIO
from PIL import Image

from tour_booking.config import settings
from tour_booking.exceptions import NotFound, PaymentIncomplete
from tour_booking.models import Booking
from tour_booking.bookings.schemas import BookingStatus, Ticket, TicketParticipant

logger = logging.getLogger(__name__)

class TicketService:
    """Service for issuing tickets with QR codes for fully paid bookings"""

    def __init__(self, db: Session):
        self.db = db
        self.qr_size = settings.QR_CODE_SIZE
        self.qr_border = settings.QR_BORDER

    def issue_ticket(self, booking_id: int) -> Ticket:
        """Assemble the ticket of a booking whose payment is complete"""

        booking = self._get_paid_booking(booking_id)

        participants = [
            TicketParticipant(id=p.id, name=p.name, status=p.status)
            for p in booking.participants
        ]

        return Ticket(
            booking_id=booking.id,
            booking_code=booking.booking_code,
            customer_name=booking.customer_name,
            customer_email=booking.customer_email,
            participants=participants,
            total_price=float(booking.total_price),
            status=booking.status,
            qr_code_data=booking.booking_code,
            qr_code=self.qr_data_uri(booking.booking_code)
        )

    def booking_qr_png(self, booking_id: int) -> bytes:
        """QR code image of a paid booking's code"""
        booking = self._get_paid_booking(booking_id)
        return self.qr_png(booking.booking_code)

    def qr_png(self, data: str, size: Optional[int] = None) -> bytes:
        """Render ``data`` as a PNG QR code"""

        qr = qrcode.QRCode(
            version=1,
            error_correction=constants.ERROR_CORRECT_M,
            box_size=10,
            border=self.qr_border,
        )
        qr.add_data(data)
        qr.make(fit=True)

        qr_image = qr.make_image(fill_color="black", back_color="white")
        qr_size = size or self.qr_size
        qr_image = qr_image.resize((qr_size, qr_size), Image.NEAREST)

        buffer = BytesIO()
        qr_image.save(buffer, format="PNG")
        return buffer.getvalue()

    def qr_data_uri(self, data: str) -> str:
        encoded = base64.b64encode(self.qr_png(data)).decode("utf-8")
        return f"data:image/png;base64,{encoded}"

    def ticket_pdf(self, booking_id: int) -> bytes:
        """Printable ticket: booking summary plus one QR code per participant"""

        from reportlab.lib import colors
        from reportlab.lib.pagesizes import A4
        from reportlab.lib.styles import getSampleStyleSheet
        from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph, Spacer, Image as PDFImage

        booking = self._get_paid_booking(booking_id)

        buffer = BytesIO()
        doc = SimpleDocTemplate(buffer, pagesize=A4, title=f"Ticket {booking.booking_code}")
        styles = getSampleStyleSheet()
        story = []

        # Title
        story.append(Paragraph(settings.PROJECT_NAME, styles['Title']))
        story.append(Spacer(1, 20))

        # Booking info
        package_name = booking.package.name if booking.package else "-"
        booking_info = [
            ["Booking Code:", booking.booking_code],
            ["Package:", package_name],
            ["Customer:", booking.customer_name],
            ["Email:", booking.customer_email],
            ["Total Price:", f"{booking.total_price:,.2f}"],
            ["Status:", booking.status.replace("_", " ").title()]
        ]

        booking_table = Table(booking_info, colWidths=[100, 300])
        booking_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, -1), colors.lightblue),
            ('TEXTCOLOR', (0, 0), (-1, -1), colors.black),
            ('ALIGN', (0, 0), (-1, -1), 'LEFT'),
            ('FONTNAME', (0, 0), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
        ]))
        story.append(booking_table)
        story.append(Spacer(1, 20))

        # One section per participant; the QR code carries the id the gate scanner posts
        for i, participant in enumerate(booking.participants):
            if i > 0:
                story.append(Spacer(1, 20))

            story.append(Paragraph(f"Participant #{i + 1}", styles['Heading2']))

            participant_info = [
                ["Name:", participant.name],
                ["Ticket Status:", participant.status.title()]
            ]
            participant_table = Table(participant_info, colWidths=[100, 300])
            participant_table.setStyle(TableStyle([
                ('BACKGROUND', (0, 0), (-1, -1), colors.lightgrey),
                ('FONTNAME', (0, 0), (-1, -1), 'Helvetica'),
                ('FONTSIZE', (0, 0), (-1, -1), 10),
                ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
            ]))
            story.append(participant_table)
            story.append(Spacer(1, 10))
            story.append(PDFImage(BytesIO(self.qr_png(str(participant.id), size=150)), width=120, height=120))

        story.append(Spacer(1, 20))
        story.append(Paragraph(f"Issued {datetime.now().strftime('%Y-%m-%d %H:%M')}", styles['Italic']))

        doc.build(story)
        logger.info("PDF ticket generated for booking %s", booking.booking_code)
        return buffer.getvalue()

    def _get_paid_booking(self, booking_id: int) -> Booking:
        booking = self.db.query(Booking).options(
            joinedload(Booking.package),
            joinedload(Booking.participants)
        ).filter(Booking.id == booking_id).first()

        if not booking:
            raise NotFound(f"Booking {booking_id} not found")

        if booking.status != BookingStatus.COMPLETED.value:
            raise PaymentIncomplete("Payment has not been completed")

        return booking

"""Service for generating freight documents (rate confirmations, invoices,
customer statements) as PDF using fpdf2."""

from datetime import datetime, timezone
from io import BytesIO
from typing import Iterable, List, Optional, Sequence, Tuple

from fpdf import FPDF

from app.core.config import settings
from app.utils.logging import get_logger

LOGGER = get_logger(__name__)

BRAND_RGB = (0, 51, 102)
MUTED_RGB = (85, 85, 85)


def format_cents(cents: Optional[int]) -> str:
    if cents is None:
        return "-"
    sign = "-" if cents < 0 else ""
    return f"{sign}${abs(cents) / 100:,.2f}"


def _fmt_date(value) -> str:
    if value is None:
        return "-"
    if isinstance(value, datetime):
        return value.strftime("%m/%d/%Y %H:%M")
    return value.strftime("%m/%d/%Y")


def _stop_lines(stops: Iterable) -> List[Tuple[str, str, str]]:
    rows = []
    for stop in sorted(stops, key=lambda s: s.sequence):
        place = ", ".join(p for p in (stop.facility_name, stop.city, stop.state) if p)
        rows.append((f"{stop.sequence}. {stop.stop_type}", place, _fmt_date(stop.appointment_start)))
    return rows


class PDFDocumentService:
    """Renders tenant documents to an in-memory PDF byte stream."""

    def __init__(self, company_name: Optional[str] = None, company_address: Optional[str] = None):
        self.company_name = company_name or settings.accounting.company_name
        self.company_address = company_address or settings.accounting.company_address

    def _new_document(self, title: str, subtitle: str) -> FPDF:
        pdf = FPDF(orientation="portrait", unit="mm", format="Letter")
        pdf.set_auto_page_break(auto=True, margin=15)
        pdf.add_page()

        pdf.set_font("helvetica", "B", 16)
        pdf.set_text_color(*BRAND_RGB)
        pdf.cell(0, 8, self.company_name, new_x="LMARGIN", new_y="NEXT")
        if self.company_address:
            pdf.set_font("helvetica", "", 9)
            pdf.set_text_color(*MUTED_RGB)
            pdf.cell(0, 5, self.company_address, new_x="LMARGIN", new_y="NEXT")

        pdf.ln(4)
        pdf.set_font("helvetica", "B", 20)
        pdf.set_text_color(*BRAND_RGB)
        pdf.cell(0, 10, title, new_x="LMARGIN", new_y="NEXT")
        pdf.set_font("helvetica", "", 11)
        pdf.set_text_color(0, 0, 0)
        pdf.cell(0, 6, subtitle, new_x="LMARGIN", new_y="NEXT")
        pdf.line(pdf.l_margin, pdf.get_y() + 2, pdf.w - pdf.r_margin, pdf.get_y() + 2)
        pdf.ln(6)
        return pdf

    @staticmethod
    def _section(pdf: FPDF, heading: str) -> None:
        pdf.ln(3)
        pdf.set_font("helvetica", "B", 12)
        pdf.set_text_color(*BRAND_RGB)
        pdf.cell(0, 7, heading, new_x="LMARGIN", new_y="NEXT")
        pdf.set_font("helvetica", "", 10)
        pdf.set_text_color(0, 0, 0)

    @staticmethod
    def _pairs(pdf: FPDF, pairs: Sequence[Tuple[str, str]]) -> None:
        for label, value in pairs:
            pdf.set_font("helvetica", "B", 10)
            pdf.cell(45, 6, label)
            pdf.set_font("helvetica", "", 10)
            pdf.multi_cell(0, 6, value or "-", new_x="LMARGIN", new_y="NEXT")

    @staticmethod
    def _table(pdf: FPDF, headers: Sequence[str], widths: Sequence[int], rows: Iterable[Sequence[str]]) -> None:
        pdf.set_font("helvetica", "B", 9)
        pdf.set_fill_color(230, 236, 245)
        for header, width in zip(headers, widths):
            pdf.cell(width, 7, header, border=1, fill=True)
        pdf.ln()
        pdf.set_font("helvetica", "", 9)
        for row in rows:
            for value, width in zip(row, widths):
                pdf.cell(width, 6, str(value)[:60], border=1)
            pdf.ln()

    @staticmethod
    def _finish(pdf: FPDF) -> BytesIO:
        pdf.ln(6)
        pdf.set_font("helvetica", "I", 8)
        pdf.set_text_color(*MUTED_RGB)
        pdf.cell(0, 5, f"Generated {datetime.now(timezone.utc):%Y-%m-%d %H:%M} UTC")
        buffer = BytesIO(bytes(pdf.output()))
        buffer.seek(0)
        return buffer

    def rate_confirmation(self, load, carrier) -> BytesIO:
        """Carrier rate confirmation for an assigned load."""
        try:
            pdf = self._new_document("RATE CONFIRMATION", f"Load #{load.load_number}")

            self._section(pdf, "Carrier")
            self._pairs(pdf, [
                ("Carrier", carrier.name),
                ("MC / DOT", f"{carrier.mc_number or '-'} / {carrier.dot_number or '-'}"),
                ("Driver", f"{load.driver_name or '-'} {load.driver_phone or ''}".strip()),
                ("Truck / Trailer", f"{load.truck_number or '-'} / {load.trailer_number or '-'}"),
            ])

            self._section(pdf, "Shipment")
            self._pairs(pdf, [
                ("Equipment", load.equipment_type or "-"),
                ("Commodity", load.commodity or "-"),
                ("Weight", f"{load.weight_lbs:,} lbs" if load.weight_lbs else "-"),
                ("Pickup", _fmt_date(load.pickup_date)),
                ("Delivery", _fmt_date(load.delivery_date)),
            ])

            self._section(pdf, "Stops")
            self._table(pdf, ["Stop", "Location", "Appointment"], [35, 110, 45], _stop_lines(load.stops))

            self._section(pdf, "Rate")
            self._pairs(pdf, [
                ("Line haul", format_cents(load.carrier_rate_cents)),
                ("Accessorials", format_cents(load.accessorial_charges_cents)),
                ("Fuel advance", format_cents(load.fuel_advance_cents)),
            ])
            if load.dispatch_notes:
                self._section(pdf, "Dispatch notes")
                pdf.multi_cell(0, 6, load.dispatch_notes)

            self._section(pdf, "Acceptance")
            pdf.multi_cell(
                0, 6,
                "By signing below the carrier agrees to transport the shipment above "
                "at the stated rate under the terms of the broker-carrier agreement.",
            )
            pdf.ln(8)
            pdf.cell(90, 6, "Carrier signature: ______________________")
            pdf.cell(0, 6, "Date: ____________")
            return self._finish(pdf)
        except Exception as e:
            LOGGER.error(f"Error generating rate confirmation for load {load.load_number}: {e}", exc_info=True)
            raise

    def invoice(self, invoice, company) -> BytesIO:
        try:
            pdf = self._new_document("INVOICE", f"Invoice #{invoice.invoice_number}")
            self._pairs(pdf, [
                ("Bill to", company.name if company else "-"),
                ("Invoice date", _fmt_date(invoice.invoice_date)),
                ("Due date", _fmt_date(invoice.due_date)),
                ("Terms", invoice.payment_terms),
                ("Status", invoice.status),
            ])

            self._section(pdf, "Charges")
            rows = [
                (
                    str(item.line_number),
                    item.description,
                    f"{item.quantity}",
                    format_cents(item.unit_price_cents),
                    format_cents(item.amount_cents),
                )
                for item in sorted(invoice.line_items, key=lambda i: i.line_number)
            ]
            self._table(pdf, ["#", "Description", "Qty", "Rate", "Amount"], [10, 95, 20, 30, 35], rows)

            pdf.ln(3)
            self._pairs(pdf, [
                ("Subtotal", format_cents(invoice.subtotal_cents)),
                ("Tax", format_cents(invoice.tax_cents)),
                ("Total", format_cents(invoice.total_cents)),
                ("Paid", format_cents(invoice.amount_paid_cents)),
                ("Balance due", format_cents(invoice.balance_due_cents)),
            ])
            return self._finish(pdf)
        except Exception as e:
            LOGGER.error(f"Error generating invoice PDF {invoice.invoice_number}: {e}", exc_info=True)
            raise

    def statement(self, statement) -> BytesIO:
        """Customer statement built from a ``CustomerStatement`` schema."""
        try:
            pdf = self._new_document(
                "STATEMENT",
                f"{statement.company_name}: {_fmt_date(statement.start_date)} to {_fmt_date(statement.end_date)}",
            )
            self._pairs(pdf, [("Opening balance", format_cents(statement.opening_balance_cents))])
            self._section(pdf, "Activity")
            rows = [
                (
                    _fmt_date(line.date),
                    line.type,
                    line.reference,
                    format_cents(line.charges_cents) if line.charges_cents else "",
                    format_cents(line.payments_cents) if line.payments_cents else "",
                    format_cents(line.balance_cents),
                )
                for line in statement.lines
            ]
            self._table(pdf, ["Date", "Type", "Reference", "Charges", "Payments", "Balance"], [25, 25, 45, 30, 30, 35], rows)
            pdf.ln(3)
            self._pairs(pdf, [("Closing balance", format_cents(statement.closing_balance_cents))])
            return self._finish(pdf)
        except Exception as e:
            LOGGER.error(f"Error generating statement PDF: {e}", exc_info=True)
            raise

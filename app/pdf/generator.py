"""Render an ``InvoiceData`` entity to a PDF document with reportlab.

The first page carries the fixed-position header band, the From / Bill To
blocks and the date/status strip; the line-item table flows below them and
continues on later pages with its header row repeated. Totals, notes and terms
follow the table. Every page gets the thank-you / "Generated on" footer.

Output is byte-for-byte reproducible for the same entity and ``generated_on``
date (reportlab's invariant mode pins the document id and timestamps).
"""

from __future__ import annotations

import base64
import io
import logging
from datetime import date
from typing import List, Optional, Tuple
from xml.sax.saxutils import escape as xml_escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.lib.utils import ImageReader
from reportlab.platypus import (
    BaseDocTemplate,
    Frame,
    NextPageTemplate,
    PageTemplate,
    Paragraph,
    Spacer,
    Table,
    TableStyle,
)

from app.pdf.formatting import format_display_date, format_money, format_rate
from app.schemas.invoice import InvoiceData, InvoiceStatus
from app.services.object_urls import ObjectUrlRegistry

logger = logging.getLogger(__name__)

PDF_MEDIA_TYPE = "application/pdf"
DEFAULT_CREATOR = "ITwala Academy Invoice Generator"

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN_X = 20 * mm
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN_X
FOOTER_SPACE = 30 * mm
# Distance from the top edge where the item table starts on the first page.
FIRST_PAGE_TABLE_TOP = 165 * mm
LATER_PAGE_TOP = 20 * mm


def _rgb(red: int, green: int, blue: int) -> colors.Color:
    return colors.Color(red / 255, green / 255, blue / 255)


PRIMARY_COLOR = _rgb(41, 128, 185)
SECONDARY_COLOR = _rgb(52, 73, 94)
LIGHT_GRAY = _rgb(245, 245, 245)
FOOTER_GRAY = _rgb(128, 128, 128)

STATUS_COLORS = {
    InvoiceStatus.PAID: _rgb(46, 125, 50),
    InvoiceStatus.OVERDUE: _rgb(211, 47, 47),
    InvoiceStatus.SENT: _rgb(255, 152, 0),
}
DEFAULT_STATUS_COLOR = _rgb(97, 97, 97)


def _from_top(offset: float) -> float:
    return PAGE_HEIGHT - offset


def _markup(text: str) -> str:
    return xml_escape(text.strip()).replace("\n", "<br/>")


class InvoicePdfRenderer:
    def __init__(
        self,
        invoice: InvoiceData,
        *,
        currency_symbol: str = "$",
        generated_on: date | None = None,
        creator: str = DEFAULT_CREATOR,
        compress: bool = False,
    ) -> None:
        self.invoice = invoice
        self.currency_symbol = currency_symbol
        self.generated_on = generated_on or date.today()
        self.creator = creator
        self.compress = compress

        styles = getSampleStyleSheet()
        self._body_style = ParagraphStyle(
            "InvoiceBody", parent=styles["Normal"], fontName="Helvetica", fontSize=11, leading=14
        )
        self._heading_style = ParagraphStyle(
            "InvoiceHeading",
            parent=self._body_style,
            fontName="Helvetica-Bold",
            fontSize=12,
            leading=15,
            spaceAfter=3 * mm,
        )

    def _money(self, amount) -> str:
        return format_money(amount, self.currency_symbol)

    def render(self) -> bytes:
        buffer = io.BytesIO()
        doc = BaseDocTemplate(
            buffer,
            pagesize=A4,
            leftMargin=MARGIN_X,
            rightMargin=MARGIN_X,
            topMargin=LATER_PAGE_TOP,
            bottomMargin=FOOTER_SPACE,
            title=f"Invoice {self.invoice.invoice_number}",
            subject="Invoice",
            author=self.invoice.company_info.name,
            creator=self.creator,
            invariant=1,
            pageCompression=1 if self.compress else 0,
        )
        first_frame = Frame(
            MARGIN_X,
            FOOTER_SPACE,
            CONTENT_WIDTH,
            PAGE_HEIGHT - FIRST_PAGE_TABLE_TOP - FOOTER_SPACE,
            leftPadding=0,
            rightPadding=0,
            topPadding=0,
            bottomPadding=0,
            id="first",
        )
        later_frame = Frame(
            MARGIN_X,
            FOOTER_SPACE,
            CONTENT_WIDTH,
            PAGE_HEIGHT - LATER_PAGE_TOP - FOOTER_SPACE,
            leftPadding=0,
            rightPadding=0,
            topPadding=0,
            bottomPadding=0,
            id="later",
        )
        doc.addPageTemplates(
            [
                PageTemplate(id="first", frames=[first_frame], onPage=self._draw_first_page),
                PageTemplate(id="later", frames=[later_frame], onPage=self._draw_footer),
            ]
        )
        doc.build(self._story())
        return buffer.getvalue()

    # --- fixed-position drawing -------------------------------------------

    def _draw_first_page(self, canvas, doc) -> None:
        canvas.saveState()

        canvas.setFillColor(PRIMARY_COLOR)
        canvas.rect(0, _from_top(40 * mm), PAGE_WIDTH, 40 * mm, stroke=0, fill=1)

        self._draw_logo(canvas)

        canvas.setFillColor(colors.white)
        canvas.setFont("Helvetica-Bold", 28)
        canvas.drawString(120 * mm, _from_top(25 * mm), "INVOICE")
        canvas.setFont("Helvetica", 12)
        canvas.drawString(120 * mm, _from_top(35 * mm), f"Invoice #: {self.invoice.invoice_number}")

        canvas.setFillColor(colors.black)
        self._draw_party(canvas, 20 * mm, "From:", self._company_lines())
        self._draw_party(canvas, 120 * mm, "Bill To:", self._client_lines())
        self._draw_details_strip(canvas)

        canvas.restoreState()
        self._draw_footer(canvas, doc)

    def _load_logo(self) -> Optional[ImageReader]:
        source = (self.invoice.company_info.logo or "").strip()
        if not source:
            return None
        if "://" in source:
            logger.warning("Skipping remote company logo %s", source)
            return None
        try:
            if source.startswith("data:"):
                header, _, encoded = source.partition(",")
                if ";base64" not in header:
                    raise ValueError("logo data URL is not base64 encoded")
                return ImageReader(io.BytesIO(base64.b64decode(encoded, validate=True)))
            return ImageReader(source)
        except Exception:
            logger.warning("Could not load company logo, skipping it", exc_info=True)
            return None

    def _draw_logo(self, canvas) -> None:
        logo = self._load_logo()
        if logo is None:
            return
        try:
            canvas.drawImage(
                logo,
                20 * mm,
                _from_top(30 * mm),
                width=30 * mm,
                height=20 * mm,
                mask="auto",
                preserveAspectRatio=True,
            )
        except Exception:
            logger.warning("Could not add company logo, skipping it", exc_info=True)

    def _company_lines(self) -> List[str]:
        company = self.invoice.company_info
        lines = [
            company.name,
            company.address,
            ", ".join(part for part in (company.city, company.zip_code) if part),
            company.country,
            f"Email: {company.email}",
            f"Phone: {company.phone}",
        ]
        if company.website:
            lines.append(f"Website: {company.website}")
        if company.gstin:
            lines.append(f"GSTIN: {company.gstin}")
        return lines

    def _client_lines(self) -> List[str]:
        client = self.invoice.client_info
        lines = [
            client.name,
            client.email,
            client.address,
            ", ".join(part for part in (client.city, client.zip_code) if part),
            client.country,
        ]
        if client.phone:
            lines.append(f"Phone: {client.phone}")
        return lines

    def _draw_party(self, canvas, x: float, title: str, lines: List[str]) -> None:
        y = _from_top(60 * mm)
        canvas.setFont("Helvetica-Bold", 14)
        canvas.drawString(x, y, title)

        y -= 10 * mm
        canvas.setFont("Helvetica", 12)
        for line in lines:
            if not line:
                continue
            canvas.drawString(x, y, line)
            y -= 6 * mm

    def _draw_details_strip(self, canvas) -> None:
        top = 140 * mm
        canvas.setFillColor(LIGHT_GRAY)
        canvas.rect(20 * mm, _from_top(top + 15 * mm), 170 * mm, 20 * mm, stroke=0, fill=1)

        canvas.setFillColor(SECONDARY_COLOR)
        canvas.setFont("Helvetica-Bold", 12)
        label_y = _from_top(top + 5 * mm)
        canvas.drawString(25 * mm, label_y, "Invoice Date:")
        canvas.drawString(75 * mm, label_y, "Due Date:")
        canvas.drawString(125 * mm, label_y, "Status:")

        value_y = _from_top(top + 12 * mm)
        canvas.setFillColor(colors.black)
        canvas.setFont("Helvetica", 12)
        canvas.drawString(25 * mm, value_y, format_display_date(self.invoice.issue_date))
        canvas.drawString(75 * mm, value_y, format_display_date(self.invoice.due_date))

        status = self.invoice.status
        canvas.setFillColor(STATUS_COLORS.get(status, DEFAULT_STATUS_COLOR))
        canvas.drawString(125 * mm, value_y, status.value.upper())
        canvas.setFillColor(colors.black)

    def _draw_footer(self, canvas, doc) -> None:
        canvas.saveState()
        canvas.setFont("Helvetica", 10)
        canvas.setFillColor(FOOTER_GRAY)
        canvas.drawCentredString(PAGE_WIDTH / 2, 20 * mm, "Thank you for your business!")
        canvas.drawCentredString(
            PAGE_WIDTH / 2, 10 * mm, f"Generated on {format_display_date(self.generated_on)}"
        )
        page_number = canvas.getPageNumber()
        if page_number > 1:
            canvas.drawRightString(PAGE_WIDTH - MARGIN_X, 10 * mm, f"Page {page_number}")
        canvas.restoreState()

    # --- flowing content ---------------------------------------------------

    def _story(self) -> list:
        story = [NextPageTemplate("later"), self._items_table(), Spacer(1, 10 * mm), self._totals_table()]
        sections: Tuple[Tuple[str, Optional[str]], ...] = (
            ("Notes:", self.invoice.notes),
            ("Terms and Conditions:", self.invoice.terms),
        )
        for title, text in sections:
            if text and text.strip():
                story.append(Spacer(1, 8 * mm))
                story.append(Paragraph(title, self._heading_style))
                story.append(Paragraph(_markup(text), self._body_style))
        return story

    def _items_table(self) -> Table:
        rows = [["Description", "Quantity", "Rate", "Amount"]]
        for item in self.invoice.items:
            rows.append(
                [
                    Paragraph(xml_escape(item.description), self._body_style),
                    str(item.quantity),
                    self._money(item.rate),
                    self._money(item.amount),
                ]
            )

        table = Table(
            rows,
            colWidths=[
                CONTENT_WIDTH * 0.5,
                CONTENT_WIDTH * 0.15,
                CONTENT_WIDTH * 0.175,
                CONTENT_WIDTH * 0.175,
            ],
            repeatRows=1,
        )
        table.setStyle(
            TableStyle(
                [
                    ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                    ("BACKGROUND", (0, 0), (-1, 0), PRIMARY_COLOR),
                    ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
                    ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 0), (-1, 0), 12),
                    ("FONTNAME", (0, 1), (-1, -1), "Helvetica"),
                    ("FONTSIZE", (0, 1), (-1, -1), 11),
                    ("ALIGN", (1, 0), (1, -1), "CENTER"),
                    ("ALIGN", (2, 0), (3, -1), "RIGHT"),
                    ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
                    ("TOPPADDING", (0, 0), (-1, -1), 5),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 5),
                ]
            )
        )
        return table

    def _totals_table(self) -> Table:
        totals = self.invoice.totals
        rows = [
            ["Subtotal:", self._money(totals.subtotal)],
            [f"Tax ({format_rate(self.invoice.tax_rate)}%):", self._money(totals.tax)],
            ["Total:", self._money(totals.total)],
        ]
        table = Table(rows, colWidths=[40 * mm, 30 * mm], hAlign="RIGHT")
        table.setStyle(
            TableStyle(
                [
                    ("FONTNAME", (0, 0), (-1, -1), "Helvetica"),
                    ("FONTSIZE", (0, 0), (-1, -1), 12),
                    ("ALIGN", (1, 0), (1, -1), "RIGHT"),
                    ("BACKGROUND", (0, 2), (-1, 2), PRIMARY_COLOR),
                    ("TEXTCOLOR", (0, 2), (-1, 2), colors.white),
                    ("FONTNAME", (0, 2), (-1, 2), "Helvetica-Bold"),
                    ("FONTSIZE", (0, 2), (-1, 2), 14),
                    ("TOPPADDING", (0, 2), (-1, 2), 6),
                    ("BOTTOMPADDING", (0, 2), (-1, 2), 6),
                ]
            )
        )
        return table


def generate_invoice_pdf(
    invoice: InvoiceData,
    *,
    currency_symbol: str = "$",
    generated_on: date | None = None,
    creator: str = DEFAULT_CREATOR,
    compress: bool = False,
) -> bytes:
    return InvoicePdfRenderer(
        invoice,
        currency_symbol=currency_symbol,
        generated_on=generated_on,
        creator=creator,
        compress=compress,
    ).render()


def preview_invoice_pdf(
    invoice: InvoiceData,
    registry: ObjectUrlRegistry,
    **options,
) -> str:
    """Render the invoice and return a revocable URL to the bytes.

    The caller owns the returned URL and must revoke it.
    """

    return registry.create(generate_invoice_pdf(invoice, **options), PDF_MEDIA_TYPE)

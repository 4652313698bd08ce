"""
Invoice Service - allocates invoice numbers and renders invoice PDFs.

PDFs are built with reportlab platypus, written to the invoices folder and
mirrored to S3 by the storage service when it is configured.
"""

import re
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

from reportlab.lib import colors
from reportlab.lib.enums import TA_LEFT, TA_RIGHT
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle, KeepTogether
from sqlalchemy.orm import Session

from database.models import Order, Invoice
from services.numbering import allocate_with_retry, next_invoice_number
from services.storage_service import StorageService
from validators import sanitize_filename

logger = logging.getLogger(__name__)

BRAND_COLOR = colors.HexColor('#08221d')
TEXT_COLOR = colors.HexColor('#2A2A2A')
LIGHT_GRAY = colors.HexColor('#666666')

TERMS = [
    'Alterations accepted within 7 days of delivery.',
    'Delivery timelines may vary as per fabric & customer request.',
]


def invoice_filename(invoice_number: str, client_name: str) -> str:
    clean_name = re.sub(r'\s+', '', client_name or '')
    return sanitize_filename(f"Invoice_{invoice_number}_{clean_name}.pdf")


def _amount(value) -> str:
    return f"{value or 0:.0f}"


class InvoicePDFBuilder:
    """Lays out one invoice as an A4 platypus document."""

    def __init__(self, business: Dict[str, str]):
        self.business = business
        styles = getSampleStyleSheet()
        self.brand_style = ParagraphStyle('Brand', parent=styles['Title'], fontName='Times-Bold',
                                          fontSize=30, leading=34, textColor=BRAND_COLOR, alignment=TA_LEFT,
                                          spaceAfter=2)
        self.tagline_style = ParagraphStyle('Tagline', parent=styles['Normal'], fontSize=8,
                                            textColor=BRAND_COLOR, spaceAfter=18)
        self.heading_style = ParagraphStyle('SectionHeading', parent=styles['Heading2'], fontName='Helvetica-Bold',
                                            fontSize=15, textColor=TEXT_COLOR, spaceBefore=14, spaceAfter=6)
        self.body_style = ParagraphStyle('Body', parent=styles['Normal'], fontSize=11, textColor=TEXT_COLOR,
                                         leading=15)
        self.muted_style = ParagraphStyle('Muted', parent=self.body_style, textColor=LIGHT_GRAY)
        self.right_style = ParagraphStyle('Right', parent=self.body_style, alignment=TA_RIGHT)

    def _section(self, title, table):
        rule = Table([['']], colWidths=[6.9 * inch], rowHeights=[2])
        rule.setStyle(TableStyle([('LINEABOVE', (0, 0), (-1, 0), 1, colors.black)]))
        return KeepTogether([Paragraph(title, self.heading_style), rule, Spacer(1, 0.1 * inch), table])

    def _line_table(self, rows):
        table = Table(rows, colWidths=[3.3 * inch, 0.8 * inch, 1.5 * inch, 1.3 * inch], repeatRows=1)
        table.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
            ('FONTSIZE', (0, 0), (-1, -1), 11),
            ('TEXTCOLOR', (0, 0), (-1, -1), TEXT_COLOR),
            ('ALIGN', (1, 0), (2, -1), 'CENTER'),
            ('ALIGN', (3, 0), (3, -1), 'RIGHT'),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 8),
        ]))
        return table

    def build(self, order: Order, invoice_number: str, path: Path, issued: Optional[datetime] = None):
        issued = issued or datetime.now()
        client = order.client
        doc = SimpleDocTemplate(str(path), pagesize=A4, leftMargin=60, rightMargin=60,
                                topMargin=60, bottomMargin=60,
                                title=f"Invoice {invoice_number}", author=self.business['shop_name'])
        story = [
            Paragraph('THE DARJI', self.brand_style),
            Paragraph('WHERE TRADITION MEETS ELEGANCE', self.tagline_style),
        ]

        # Bill block
        bill_to = [Paragraph('<b>BILL TO:</b>', self.body_style), Paragraph(client.name, self.body_style),
                   Paragraph(client.phone, self.muted_style)]
        if client.email:
            bill_to.append(Paragraph(client.email, self.muted_style))
        invoice_info = [Paragraph('<b>INVOICE NO:</b>', self.body_style), Paragraph(invoice_number, self.body_style),
                        Paragraph(issued.strftime('%d/%m/%Y'), self.muted_style)]
        bill_table = Table([[bill_to, invoice_info]], colWidths=[4.6 * inch, 2.3 * inch])
        bill_table.setStyle(TableStyle([('VALIGN', (0, 0), (-1, -1), 'TOP')]))
        story.extend([bill_table, Spacer(1, 0.3 * inch)])

        # Stitching charges
        stitching_rows = [['OUTFIT', 'Qty', 'Stitching Price/qty.', 'TOTAL (INR)']]
        for item in order.items:
            name = item.garment_type.name if item.garment_type else 'Garment'
            stitching_rows.append([Paragraph(name, self.body_style), str(item.quantity or 0),
                                   _amount(item.price), _amount(item.subtotal)])
        story.append(self._section('Stitching Charges', self._line_table(stitching_rows)))

        # Other services
        if order.additional_services:
            service_rows = [['Item', 'Qty', 'Rate/item', 'TOTAL (INR)']]
            for service in order.additional_services:
                service_rows.append([Paragraph(service.description or 'Service', self.body_style), '1',
                                     _amount(service.amount), _amount(service.amount)])
            story.append(self._section('Other Services', self._line_table(service_rows)))

        # Totals
        summary_rows = [['Stitching Total', _amount(order.items_total)]]
        if order.services_total > 0:
            summary_rows.append(['Other Services', _amount(order.services_total)])
        summary_rows.extend([
            ['Grand Total', _amount(order.effective_amount)],
            ['Advance', _amount(order.advance)],
            ['Balance', _amount(order.balance)],
        ])
        summary = Table(summary_rows, colWidths=[5.6 * inch, 1.3 * inch])
        grand_row = len(summary_rows) - 3
        summary.setStyle(TableStyle([
            ('FONTNAME', (0, 0), (-1, -1), 'Helvetica'),
            ('FONTNAME', (0, grand_row), (-1, grand_row), 'Helvetica-Bold'),
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 11),
            ('ALIGN', (1, 0), (1, -1), 'RIGHT'),
            ('LINEABOVE', (0, grand_row), (-1, grand_row), 0.5, LIGHT_GRAY),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 6),
        ]))
        story.append(self._section('Total Summary', summary))

        # Terms and support
        terms = [Paragraph(f"&bull; {line}", self.body_style) for line in TERMS]
        story.append(KeepTogether([Paragraph('Notes / Terms', self.heading_style)] + terms))
        support = [
            Paragraph(f"Phone: {self.business['phone']}", self.body_style),
            Paragraph(f"Instagram: {self.business['instagram']}", self.body_style),
            Paragraph(f"Email: {self.business['email']}", self.body_style),
        ]
        story.append(KeepTogether([Paragraph('Queries &amp; Support', self.heading_style)] + support))

        doc.build(story)
        logger.debug(f"Rendered invoice PDF {path}")


class InvoiceService:
    """Creates and regenerates invoices for orders."""

    def __init__(self, session: Session, storage: StorageService, config=None):
        config = config or {}
        self.session = session
        self.storage = storage
        self.builder = InvoicePDFBuilder({
            'shop_name': config.get('SHOP_NAME', 'The Darji'),
            'phone': config.get('BUSINESS_PHONE', '+91-8854017433'),
            'email': config.get('BUSINESS_EMAIL', 'thedarji.creations@gmail.com'),
            'instagram': config.get('BUSINESS_INSTAGRAM', 'thedarji.creations'),
        })

    def _render(self, order: Order, invoice: Invoice):
        filename = invoice_filename(invoice.invoice_number, order.client.name)
        local_path = self.storage.invoice_path(filename)
        local_path.parent.mkdir(parents=True, exist_ok=True)
        self.builder.build(order, invoice.invoice_number, local_path)

        stored = self.storage.store_invoice(local_path)
        invoice.pdf_path = stored['pdf_path']
        invoice.s3_key = stored['s3_key']
        invoice.pdf_url = stored['pdf_url']
        self.session.flush()

    def generate_invoice(self, order: Order, user_id: str = None, existing: Invoice = None) -> Invoice:
        """
        Generate (or regenerate) the invoice for an order.

        An existing invoice keeps its number and record; a new one is numbered
        with retry on collisions.
        """
        if existing is not None:
            invoice = existing
            if user_id:
                invoice.generated_by = user_id
        else:
            def build(attempt):
                new_invoice = Invoice(
                    invoice_number=next_invoice_number(self.session, attempt),
                    order_id=order.id,
                    generated_by=user_id
                )
                self.session.add(new_invoice)
                return new_invoice

            invoice = allocate_with_retry(self.session, build, 'invoice_number')
            logger.info(f"Allocated invoice {invoice.invoice_number} for order {order.order_number}")

        self._render(order, invoice)
        return invoice

    def delete_invoice_file(self, invoice: Invoice):
        self.storage.delete_stored(s3_key=invoice.s3_key, local_path=invoice.pdf_path,
                                   bucket=self.storage.invoice_bucket)

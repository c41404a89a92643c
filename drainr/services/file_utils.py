# drainr/services/file_utils.py
from io import BytesIO
from xml.sax.saxutils import escape
from flask import make_response
from reportlab.lib.pagesizes import A4
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import inch
from reportlab.lib import colors
import logging

from .date_utils import format_document_date
from .qwilr import build_line_items

logger = logging.getLogger(__name__)


def _text(value, fallback='N/A'):
    # Paragraph parses a small XML dialect, so customer text must be escaped
    return escape(str(value)) if value else fallback


def _money(value):
    return f"${(value or 0):,.2f}"


def generate_quote_proposal(quote, settings):
    """
    Generate a PDF proposal for a published quote.

    Figures come from the snapshot frozen at publish time, never from the
    current rate card.

    Args:
        quote (Quote): the quote to render
        settings (Mapping): app config (COMPANY_*, TIMEZONE, QUOTE_VALID_DAYS)
    """
    try:
        totals = quote.totals or {}
        company_name = settings.get('COMPANY_NAME') or 'Drainr'
        tz_name = settings.get('TIMEZONE')
        valid_days = settings.get('QUOTE_VALID_DAYS', 30)

        # Create a PDF buffer
        buffer = BytesIO()

        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=60,
            leftMargin=60,
            topMargin=60,
            bottomMargin=60,
            title=f"Quote {quote.job_number}",
        )

        elements = []

        styles = getSampleStyleSheet()

        title_style = ParagraphStyle(
            'TitleStyle',
            parent=styles['Heading1'],
            fontSize=24,
            leading=30,
            alignment=1,  # Center alignment
            spaceAfter=24
        )

        section_title_style = ParagraphStyle(
            'SectionTitle',
            parent=styles['Heading2'],
            fontSize=14,
            leading=18,
            spaceBefore=12,
            spaceAfter=6,
            textColor=colors.darkblue
        )

        normal_style = ParagraphStyle(
            'CustomNormal',
            parent=styles['Normal'],
            fontSize=10,
            leading=14,
            spaceAfter=3
        )

        bold_style = ParagraphStyle(
            'BoldText',
            parent=normal_style,
            fontName='Helvetica-Bold'
        )

        elements.append(Paragraph("QUOTE", title_style))

        header_data = [
            [Paragraph(f"Job #: {_text(quote.job_number)}", normal_style)],
            [Paragraph(f"Quote ID: {_text(quote.public_id)}", normal_style)],
            [Paragraph(f"Date: {format_document_date(quote.created_at, tz_name)}", normal_style)],
        ]

        header_table = Table(header_data, colWidths=[475])
        header_table.setStyle(TableStyle([
            ('ALIGN', (0, 0), (-1, -1), 'RIGHT'),
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
        ]))

        elements.append(header_table)
        elements.append(Spacer(1, 0.1*inch))

        # Company and customer side by side
        company_lines = [
            settings.get('COMPANY_ADDRESS'),
            f"Phone: {settings.get('COMPANY_PHONE')}" if settings.get('COMPANY_PHONE') else None,
            settings.get('COMPANY_EMAIL'),
            f"ABN: {settings.get('COMPANY_ABN')}" if settings.get('COMPANY_ABN') else None,
        ]
        company_lines = [line for line in company_lines if line]
        customer_lines = [
            f"Site: {_text(quote.job_address)}",
            f"Phone: {_text(quote.customer_phone)}",
            f"Email: {_text(quote.customer_email)}",
        ]

        company_data = [
            [Paragraph(f"<b>{_text(company_name)}</b>", bold_style),
             Paragraph("<b>Prepared For:</b>", bold_style)],
            [Paragraph("", normal_style),
             Paragraph(_text(quote.customer_name), bold_style)],
        ]
        for i in range(max(len(company_lines), len(customer_lines))):
            left = _text(company_lines[i], '') if i < len(company_lines) else ''
            right = customer_lines[i] if i < len(customer_lines) else ''
            company_data.append([Paragraph(left, normal_style), Paragraph(right, normal_style)])

        company_table = Table(company_data, colWidths=[237, 238])
        company_table.setStyle(TableStyle([
            ('VALIGN', (0, 0), (-1, -1), 'TOP'),
            ('TOPPADDING', (0, 0), (-1, -1), 3),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 3),
        ]))

        elements.append(company_table)
        elements.append(Spacer(1, 0.3*inch))

        if quote.scope_of_works:
            elements.append(Paragraph("Scope of Works", section_title_style))
            elements.append(Paragraph(_text(quote.scope_of_works).replace('\n', '<br/>'), normal_style))
            elements.append(Spacer(1, 0.2*inch))

        elements.append(Paragraph("Investment Details", section_title_style))

        cell_style = ParagraphStyle('Cell', parent=normal_style, spaceAfter=0)
        price_data = [
            ["Description", "Qty", "Amount"]
        ]

        for item in build_line_items(quote):
            description = f"<b>{_text(item['name'])}</b>"
            if item['description'] and item['description'] != item['name']:
                description += f"<br/>{_text(item['description'])}"
            price_data.append([
                Paragraph(description, cell_style),
                f"{item['quantity']:g}",
                _money(item['total']),
            ])

        price_data.append(["", "", ""])  # Empty row for spacing
        price_data.append(["Subtotal (ex GST):", "", _money(totals.get('subtotal', quote.subtotal))])
        price_data.append(["GST (10%):", "", _money(totals.get('gst', quote.gst))])
        price_data.append(["Total (inc GST):", "", _money(totals.get('grand_total', quote.grand_total))])

        price_table = Table(price_data, colWidths=[300, 50, 125])
        price_table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, 0), colors.darkblue),
            ('TEXTCOLOR', (0, 0), (-1, 0), colors.white),
            ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
            ('ALIGN', (0, 0), (-1, 0), 'CENTER'),
            ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
            ('PADDING', (0, 0), (-1, -1), 6),
            ('GRID', (0, 0), (-1, 0), 1, colors.darkblue),
            ('LINEBELOW', (0, 0), (-1, 0), 1, colors.darkblue),
            ('LINEBELOW', (0, -4), (-1, -4), 1, colors.lightgrey),
            ('ALIGN', (1, 1), (1, -1), 'CENTER'),
            ('ALIGN', (2, 1), (2, -1), 'RIGHT'),
            ('LINEBELOW', (0, -2), (-1, -2), 1, colors.black),
            ('FONTNAME', (0, -1), (-1, -1), 'Helvetica-Bold'),
            ('TEXTCOLOR', (0, -1), (-1, -1), colors.darkblue),
        ]))

        elements.append(price_table)
        elements.append(Spacer(1, 0.3*inch))

        elements.append(Paragraph("Terms and Conditions", section_title_style))

        terms_style = ParagraphStyle(
            'TermsStyle',
            parent=normal_style,
            leftIndent=10,
            firstLineIndent=-10
        )

        elements.append(Paragraph("1. All prices are in Australian dollars and include GST where shown.", terms_style))
        elements.append(Paragraph("2. A deposit is required to schedule work. The balance is due on completion.", terms_style))
        elements.append(Paragraph("3. Pipe relining is warranted in line with the manufacturer's liner warranty.", terms_style))
        elements.append(Paragraph(f"4. This quote is valid for {valid_days} days from the date issued.", terms_style))
        elements.append(Spacer(1, 0.4*inch))

        signature_data = [
            ["Accepted By:", "Date:"],
            ["", ""],
            [quote.customer_name or "", ""]
        ]

        signature_table = Table(signature_data, colWidths=[237, 238])
        signature_table.setStyle(TableStyle([
            ('ALIGN', (0, 0), (-1, 0), 'LEFT'),
            ('FONTNAME', (0, 0), (1, 0), 'Helvetica-Bold'),
            ('LINEBELOW', (0, 1), (0, 1), 1, colors.black),
            ('LINEBELOW', (1, 1), (1, 1), 1, colors.black),
            ('TOPPADDING', (0, 1), (1, 1), 36),
            ('BOTTOMPADDING', (0, 1), (1, 1), 6),
        ]))

        elements.append(signature_table)
        elements.append(Spacer(1, 0.5*inch))

        footer_style = ParagraphStyle(
            'FooterStyle',
            parent=normal_style,
            alignment=1,  # Center
            textColor=colors.darkgrey,
            fontSize=9
        )

        elements.append(Paragraph("Thank you for the opportunity to quote on your drainage work.", footer_style))
        elements.append(Paragraph(_text(company_name), footer_style))

        doc.build(elements)

        buffer.seek(0)

        response = make_response(buffer.getvalue())
        response.headers['Content-Type'] = 'application/pdf'
        response.headers['Content-Disposition'] = f'inline; filename=quote_{quote.public_id}.pdf'

        return response

    except Exception as e:
        logger.error(f"Error generating quote proposal for {quote.public_id}: {str(e)}")
        raise

# app/utils/pdf_generators/invoice_pdf.py
from io import BytesIO

from reportlab.lib.pagesizes import A4
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle
from reportlab.lib import colors
from reportlab.lib.styles import getSampleStyleSheet

from app.core.config import COMPANY_DISPLAY_NAME, COMPANY_CONTACT_LINE, DEFAULT_CURRENCY
from app.models.billing.invoice_models import TaxInvoice


def _money(value) -> str:
    return f"{DEFAULT_CURRENCY} {float(value or 0):,.2f}"


def render_invoice_pdf(invoice: TaxInvoice) -> bytes:
    """Render a tax invoice with lines, tax breakdown and recorded payments."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=30,
        leftMargin=30,
        topMargin=30,
        bottomMargin=30,
        title=f"Invoice {invoice.invoice_number}",
    )
    styles = getSampleStyleSheet()
    story = []

    # --- Header ---
    story.append(Paragraph(f"<b>{COMPANY_DISPLAY_NAME}</b>", styles["Title"]))
    if COMPANY_CONTACT_LINE:
        story.append(Paragraph(COMPANY_CONTACT_LINE, styles["Normal"]))
    story.append(Spacer(1, 12))

    story.append(Paragraph(f"<b>Tax Invoice #{invoice.invoice_number}</b>", styles["Heading2"]))
    story.append(Paragraph(f"Status: {invoice.status.value}", styles["Normal"]))
    story.append(Paragraph(f"Issue date: {invoice.issue_date:%Y-%m-%d}", styles["Normal"]))
    story.append(Paragraph(f"Due date: {invoice.due_date:%Y-%m-%d}", styles["Normal"]))
    if invoice.project:
        story.append(Paragraph(f"Project: {invoice.project.job_code}", styles["Normal"]))
    story.append(Spacer(1, 10))

    # --- Customer ---
    customer = invoice.customer
    if customer:
        story.append(Paragraph("<b>Bill To</b>", styles["Heading3"]))
        story.append(Paragraph(customer.name, styles["Normal"]))
        if customer.registration_number:
            story.append(Paragraph(f"Registration No.: {customer.registration_number}", styles["Normal"]))
        story.append(Paragraph(customer.address or "-", styles["Normal"]))
        story.append(Spacer(1, 12))

    # --- Lines ---
    data = [["#", "Product", "SKU", "Qty", "Unit Price", "Amount"]]
    for idx, item in enumerate(invoice.items, start=1):
        data.append([
            idx,
            item.product_name,
            item.product_sku or "-",
            f"{item.quantity_invoiced:,}",
            _money(item.unit_price),
            _money(item.line_total),
        ])

    data.append(["", "", "", "", "Subtotal", _money(invoice.total_before_tax)])
    data.append(["", "", "", "", f"Tax ({invoice.tax_rate}%)", _money(invoice.total_tax)])
    data.append(["", "", "", "", "Total", _money(invoice.total_amount)])
    data.append(["", "", "", "", "Paid", _money(invoice.total_paid)])
    data.append(["", "", "", "", "Balance", _money(invoice.remaining_balance)])

    table = Table(data, colWidths=[25, 170, 70, 50, 90, 90])
    table.setStyle(
        TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("ALIGN", (3, 1), (-1, -1), "RIGHT"),
            ("GRID", (0, 0), (-1, len(invoice.items)), 0.5, colors.grey),
            ("FONTNAME", (4, -3), (-1, -3), "Helvetica-Bold"),
        ])
    )
    story.append(table)
    story.append(Spacer(1, 16))

    # --- Payments ---
    if invoice.payments:
        story.append(Paragraph("<b>Payments</b>", styles["Heading3"]))
        pay_data = [["Date", "Method", "Reference", "Amount"]]
        for p in invoice.payments:
            pay_data.append([
                f"{p.payment_date:%Y-%m-%d}",
                p.payment_method.value,
                p.reference_number or "-",
                _money(p.amount),
            ])
        pay_table = Table(pay_data, colWidths=[90, 110, 160, 100])
        pay_table.setStyle(
            TableStyle([
                ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
                ("ALIGN", (3, 1), (3, -1), "RIGHT"),
            ])
        )
        story.append(pay_table)

    if invoice.notes:
        story.append(Spacer(1, 12))
        story.append(Paragraph(f"<b>Notes:</b> {invoice.notes}", styles["Normal"]))

    doc.build(story)
    return buffer.getvalue()

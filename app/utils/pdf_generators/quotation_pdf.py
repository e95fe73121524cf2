from io import BytesIO

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from app.core.config import COMPANY_DISPLAY_NAME, COMPANY_CONTACT_LINE, DEFAULT_CURRENCY
from app.models.billing.quotation_models import Quotation


def _money(value) -> str:
    return f"{DEFAULT_CURRENCY} {float(value or 0):,.2f}"


def render_quotation_pdf(quotation: Quotation) -> bytes:
    """
    Render a quotation with its project, customer and line items.

    Expects the quotation loaded with project, project.customer and items.
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=30,
        leftMargin=30,
        topMargin=30,
        bottomMargin=30,
        title=f"Quotation {quotation.reference}",
    )
    styles = getSampleStyleSheet()
    elements = []

    # -------------------------------
    # Header
    # -------------------------------
    elements.append(Paragraph(f"<b>{COMPANY_DISPLAY_NAME}</b>", styles["Title"]))
    if COMPANY_CONTACT_LINE:
        elements.append(Paragraph(COMPANY_CONTACT_LINE, styles["Normal"]))
    elements.append(Spacer(1, 12))

    project = quotation.project
    elements.append(Paragraph(f"<b>Quotation: </b>{quotation.reference}", styles["Heading2"]))
    elements.append(Paragraph(f"Date: {quotation.quotation_date:%Y-%m-%d}", styles["Normal"]))
    elements.append(Paragraph(f"Valid for: {quotation.validity_days} days", styles["Normal"]))
    if project:
        elements.append(Paragraph(f"Project: {project.job_code} / {project.project_name}", styles["Normal"]))
    elements.append(Spacer(1, 10))

    # -------------------------------
    # Customer
    # -------------------------------
    customer = project.customer if project else None
    if customer:
        elements.append(Paragraph("<b>Customer</b>", styles["Heading3"]))
        elements.append(Paragraph(f"Name: {customer.name}", styles["Normal"]))
        if customer.registration_number:
            elements.append(Paragraph(f"Registration No.: {customer.registration_number}", styles["Normal"]))
        elements.append(Paragraph(f"Contact: {customer.contact_person or '-'}", styles["Normal"]))
        elements.append(Paragraph(f"Address: {customer.address or '-'}", styles["Normal"]))
        elements.append(Spacer(1, 12))

    # -------------------------------
    # Lines
    # -------------------------------
    data = [["#", "Product", "Qty", "Unit Price", "Amount"]]
    for item in quotation.items:
        data.append([
            item.sequence,
            item.product_name,
            f"{item.quantity:,}",
            _money(item.unit_price),
            _money(item.line_total),
        ])
    data.append(["", "", "", "Total", _money(quotation.total_amount)])

    table = Table(data, colWidths=[25, 215, 60, 100, 100])
    table.setStyle(
        TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("ALIGN", (2, 1), (-1, -1), "RIGHT"),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ("FONTNAME", (3, -1), (-1, -1), "Helvetica-Bold"),
        ])
    )
    elements.append(table)
    elements.append(Spacer(1, 20))

    if quotation.notes:
        elements.append(Paragraph("<b>Notes:</b>", styles["Heading3"]))
        elements.append(Paragraph(quotation.notes, styles["Normal"]))

    doc.build(elements)
    return buffer.getvalue()

from io import BytesIO

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from app.core.config import COMPANY_DISPLAY_NAME, COMPANY_CONTACT_LINE
from app.models.purchasing.purchase_models import PurchaseOrder, PurchaseRequest


def _money(currency: str, value) -> str:
    return f"{currency} {float(value or 0):,.2f}"


def render_purchase_order_pdf(po: PurchaseOrder, pr: PurchaseRequest) -> bytes:
    """Render a purchase order for the vendor, priced from the selected RFQ reply."""
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=30,
        leftMargin=30,
        topMargin=30,
        bottomMargin=30,
        title=f"Purchase Order {po.po_number}",
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

    elements.append(Paragraph(f"<b>Purchase Order: </b>{po.po_number}", styles["Heading2"]))
    elements.append(Paragraph(f"Order date: {po.order_date:%Y-%m-%d}", styles["Normal"]))
    if po.expected_delivery_date:
        elements.append(Paragraph(f"Expected delivery: {po.expected_delivery_date:%Y-%m-%d}", styles["Normal"]))
    elements.append(Paragraph(f"Reference: {pr.request_number}", styles["Normal"]))
    if pr.project:
        elements.append(Paragraph(f"Project: {pr.project.job_code} / {pr.project.project_name}", styles["Normal"]))
    elements.append(Spacer(1, 10))

    # -------------------------------
    # Vendor
    # -------------------------------
    vendor = po.vendor
    if vendor:
        elements.append(Paragraph("<b>Vendor</b>", styles["Heading3"]))
        elements.append(Paragraph(f"Name: {vendor.name}", styles["Normal"]))
        if vendor.registration_number:
            elements.append(Paragraph(f"Registration No.: {vendor.registration_number}", styles["Normal"]))
        elements.append(Paragraph(f"Contact: {vendor.contact_person or '-'}", styles["Normal"]))
        elements.append(Paragraph(f"Address: {vendor.address or '-'}", styles["Normal"]))
        elements.append(Spacer(1, 12))

    # -------------------------------
    # Lines
    # -------------------------------
    quantity = pr.quantity or 0
    unit_price = (po.total_amount / quantity) if quantity else 0
    label = pr.material.sku if pr.material else (pr.service_category.name if pr.service_category else "")
    data = [
        ["Item", "Description", "Qty", "Unit Price", "Amount"],
        [
            label,
            Paragraph(pr.description, styles["Normal"]),
            f"{quantity:,} {pr.uom}",
            _money(po.currency, unit_price),
            _money(po.currency, po.total_amount),
        ],
        ["", "", "", "Total", _money(po.currency, po.total_amount)],
    ]

    table = Table(data, colWidths=[70, 190, 60, 90, 90])
    table.setStyle(
        TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("ALIGN", (2, 1), (-1, -1), "RIGHT"),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ("FONTNAME", (3, -1), (-1, -1), "Helvetica-Bold"),
        ])
    )
    elements.append(table)
    elements.append(Spacer(1, 20))

    if po.notes:
        elements.append(Paragraph("<b>Notes:</b>", styles["Heading3"]))
        elements.append(Paragraph(po.notes, styles["Normal"]))

    doc.build(elements)
    return buffer.getvalue()

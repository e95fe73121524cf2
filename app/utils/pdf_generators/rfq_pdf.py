from io import BytesIO

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from app.core.config import COMPANY_DISPLAY_NAME, COMPANY_CONTACT_LINE
from app.models.purchasing.purchase_models import PurchaseRequest, RfqItem


def _item_label(pr: PurchaseRequest) -> str:
    if pr.material:
        return f"{pr.material.sku} {pr.material.name}"
    if pr.service_category:
        return pr.service_category.name
    return "-"


def render_rfq_pdf(pr: PurchaseRequest, rfq: RfqItem | None = None) -> bytes:
    """
    Render a request for quotation.

    With an RFQ item the vendor block is filled in; without one the
    document is the generic request shared with every invited vendor.
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=30,
        leftMargin=30,
        topMargin=30,
        bottomMargin=30,
        title=f"Request for Quotation {pr.request_number}",
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

    elements.append(Paragraph(f"<b>Request for Quotation: </b>{pr.request_number}", styles["Heading2"]))
    if rfq is not None:
        elements.append(Paragraph(f"Date: {rfq.sent_at:%Y-%m-%d}", styles["Normal"]))
    if pr.project:
        elements.append(Paragraph(f"Project: {pr.project.job_code} / {pr.project.project_name}", styles["Normal"]))
    elements.append(Paragraph(f"Required by: {pr.required_date:%Y-%m-%d}", styles["Normal"]))
    elements.append(Spacer(1, 10))

    vendor = rfq.vendor if rfq is not None else None
    if vendor:
        elements.append(Paragraph("<b>To</b>", styles["Heading3"]))
        elements.append(Paragraph(f"Name: {vendor.name}", styles["Normal"]))
        elements.append(Paragraph(f"Contact: {vendor.contact_person or '-'}", styles["Normal"]))
        elements.append(Paragraph(f"Address: {vendor.address or '-'}", styles["Normal"]))
        elements.append(Spacer(1, 12))

    # -------------------------------
    # Requested item
    # -------------------------------
    data = [
        ["Item", "Description", "Qty", "Unit"],
        [_item_label(pr), Paragraph(pr.description, styles["Normal"]), f"{pr.quantity:,}", pr.uom],
    ]
    table = Table(data, colWidths=[130, 250, 60, 60])
    table.setStyle(
        TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("ALIGN", (2, 1), (2, -1), "RIGHT"),
            ("VALIGN", (0, 0), (-1, -1), "TOP"),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ])
    )
    elements.append(table)
    elements.append(Spacer(1, 20))

    elements.append(
        Paragraph(
            "Please reply with your unit price and lead time in days before the required date.",
            styles["Normal"],
        )
    )
    if rfq is not None and rfq.notes:
        elements.append(Spacer(1, 10))
        elements.append(Paragraph("<b>Notes:</b>", styles["Heading3"]))
        elements.append(Paragraph(rfq.notes, styles["Normal"]))

    doc.build(elements)
    return buffer.getvalue()

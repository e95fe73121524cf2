from io import BytesIO

from reportlab.lib.pagesizes import A4
from reportlab.lib import colors
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from app.core.config import COMPANY_DISPLAY_NAME, COMPANY_CONTACT_LINE
from app.models.delivery.delivery_models import Delivery
from app.models.projects.project_models import Project


def render_delivery_note_pdf(delivery: Delivery, project: Project) -> bytes:
    """
    Render the delivery note handed over with the goods.

    Expects the project loaded with its customer.
    """
    buffer = BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=30,
        leftMargin=30,
        topMargin=30,
        bottomMargin=30,
        title=f"Delivery Note {project.job_code}-{delivery.id}",
    )
    styles = getSampleStyleSheet()
    elements = []

    elements.append(Paragraph(f"<b>{COMPANY_DISPLAY_NAME}</b>", styles["Title"]))
    if COMPANY_CONTACT_LINE:
        elements.append(Paragraph(COMPANY_CONTACT_LINE, styles["Normal"]))
    elements.append(Spacer(1, 12))

    elements.append(Paragraph(f"<b>Delivery Note: </b>{project.job_code}-{delivery.id}", styles["Heading2"]))
    elements.append(Paragraph(f"Delivery date: {delivery.delivery_date:%Y-%m-%d}", styles["Normal"]))
    elements.append(Paragraph(f"Project: {project.job_code} / {project.project_name}", styles["Normal"]))
    elements.append(Paragraph(f"Status: {delivery.status.value}", styles["Normal"]))
    elements.append(Spacer(1, 10))

    customer = project.customer
    if customer:
        elements.append(Paragraph("<b>Deliver to</b>", styles["Heading3"]))
        elements.append(Paragraph(f"Name: {customer.name}", styles["Normal"]))
        elements.append(Paragraph(f"Contact: {customer.contact_person or '-'}", styles["Normal"]))
        elements.append(Paragraph(f"Address: {customer.address or '-'}", styles["Normal"]))
        elements.append(Spacer(1, 12))

    data = [["#", "Product", "Qty Delivered"]]
    for idx, item in enumerate(delivery.items, start=1):
        data.append([idx, item.product_name, f"{item.quantity_delivered:,}"])

    table = Table(data, colWidths=[25, 375, 100])
    table.setStyle(
        TableStyle([
            ("BACKGROUND", (0, 0), (-1, 0), colors.grey),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.whitesmoke),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("ALIGN", (2, 1), (-1, -1), "RIGHT"),
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
        ])
    )
    elements.append(table)
    elements.append(Spacer(1, 20))

    if delivery.notes:
        elements.append(Paragraph("<b>Notes:</b>", styles["Heading3"]))
        elements.append(Paragraph(delivery.notes, styles["Normal"]))
        elements.append(Spacer(1, 20))

    # Receipt signature block
    signature = Table(
        [["Delivered by", "Received by"], ["", ""], ["Name / Date", "Name / Date"]],
        colWidths=[250, 250],
        rowHeights=[18, 40, 18],
    )
    signature.setStyle(
        TableStyle([
            ("GRID", (0, 0), (-1, -1), 0.5, colors.grey),
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ])
    )
    elements.append(signature)

    doc.build(elements)
    return buffer.getvalue()

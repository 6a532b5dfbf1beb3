"""
PDF generation for property reports.

A property report contains the property details, its units with occupancy,
open jobs and the most recent inspections.
"""

import io
from datetime import datetime
from typing import Any, Dict, List, Optional

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import HRFlowable, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from app.core.config import get_settings

settings = get_settings()

BRAND = colors.HexColor("#1e3a5f")
RULE = colors.HexColor("#e0e0e0")
MUTED = colors.HexColor("#666666")


class PDFGenerator:
    """Renders property reports with reportlab."""

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self._setup_custom_styles()

    def _setup_custom_styles(self):
        self.styles.add(ParagraphStyle(
            name="ReportTitle",
            parent=self.styles["Heading1"],
            fontSize=22,
            spaceAfter=12,
            alignment=TA_CENTER,
            textColor=BRAND,
        ))
        self.styles.add(ParagraphStyle(
            name="ReportSubtitle",
            parent=self.styles["Normal"],
            fontSize=11,
            spaceAfter=16,
            alignment=TA_CENTER,
            textColor=MUTED,
        ))
        self.styles.add(ParagraphStyle(
            name="SectionHeader",
            parent=self.styles["Heading2"],
            fontSize=13,
            spaceBefore=16,
            spaceAfter=8,
            textColor=BRAND,
        ))
        self.styles.add(ParagraphStyle(
            name="Footer",
            parent=self.styles["Normal"],
            fontSize=8,
            textColor=MUTED,
            alignment=TA_CENTER,
            spaceBefore=20,
        ))

    def _section(self, story: list, title: str) -> None:
        story.append(Paragraph(title, self.styles["SectionHeader"]))
        story.append(HRFlowable(width="100%", thickness=1, color=RULE))
        story.append(Spacer(1, 0.08 * inch))

    def _grid(self, rows: List[List[str]], col_widths: List[float]) -> Table:
        table = Table(rows, colWidths=[w * inch for w in col_widths], repeatRows=1)
        table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 9),
            ("BACKGROUND", (0, 0), (-1, 0), BRAND),
            ("TEXTCOLOR", (0, 0), (-1, 0), colors.white),
            ("VALIGN", (0, 0), (-1, -1), "MIDDLE"),
            ("GRID", (0, 0), (-1, -1), 0.5, RULE),
            ("ROWBACKGROUNDS", (0, 1), (-1, -1), [colors.white, colors.HexColor("#f7f9fc")]),
            ("TOPPADDING", (0, 0), (-1, -1), 6),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
        ]))
        return table

    def generate_property_report(
        self,
        prop: Dict[str, Any],
        units: List[Dict[str, Any]],
        jobs: List[Dict[str, Any]],
        inspections: List[Dict[str, Any]],
    ) -> bytes:
        """
        Render a property report.

        Args:
            prop: property fields (name, address, city, state, zip_code,
                property_type, status, year_built, total_area, description)
            units: unit dicts (unit_number, status, bedrooms, bathrooms, rent_amount)
            jobs: open job dicts (title, status, priority, scheduled_date)
            inspections: inspection dicts (title, inspection_type, status, scheduled_date)

        Returns:
            PDF bytes
        """
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=0.75 * inch,
            leftMargin=0.75 * inch,
            topMargin=0.75 * inch,
            bottomMargin=0.75 * inch,
            title=f"{prop.get('name', 'Property')} report",
        )

        story: list = []
        story.append(Paragraph(prop.get("name") or "Property", self.styles["ReportTitle"]))
        address = ", ".join(
            str(part) for part in (
                prop.get("address"), prop.get("city"), prop.get("state"), prop.get("zip_code")
            ) if part
        )
        story.append(Paragraph(address or "No address on file", self.styles["ReportSubtitle"]))

        self._section(story, "PROPERTY DETAILS")
        details = [
            ["Type:", prop.get("property_type") or "N/A"],
            ["Status:", self._enum(prop.get("status"))],
            ["Year built:", str(prop.get("year_built") or "N/A")],
            ["Total area:", f"{prop['total_area']:,.0f} m²" if prop.get("total_area") else "N/A"],
            ["Units:", str(len(units))],
            ["Occupied:", str(sum(1 for u in units if self._enum(u.get("status")) == "OCCUPIED"))],
        ]
        details_table = Table(details, colWidths=[1.6 * inch, 4.9 * inch])
        details_table.setStyle(TableStyle([
            ("FONTNAME", (0, 0), (0, -1), "Helvetica-Bold"),
            ("FONTSIZE", (0, 0), (-1, -1), 10),
            ("TEXTCOLOR", (0, 0), (0, -1), MUTED),
            ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
        ]))
        story.append(details_table)
        if prop.get("description"):
            story.append(Spacer(1, 0.1 * inch))
            story.append(Paragraph(prop["description"], self.styles["Normal"]))

        self._section(story, "UNITS")
        if units:
            rows = [["Unit", "Status", "Beds", "Baths", "Rent"]]
            for unit in units:
                rows.append([
                    unit.get("unit_number", "-"),
                    self._enum(unit.get("status")),
                    str(unit.get("bedrooms") if unit.get("bedrooms") is not None else "-"),
                    str(unit.get("bathrooms") if unit.get("bathrooms") is not None else "-"),
                    self._money(unit.get("rent_amount")),
                ])
            story.append(self._grid(rows, [1.2, 1.5, 0.8, 0.8, 1.2]))
        else:
            story.append(Paragraph("No units recorded.", self.styles["Normal"]))

        self._section(story, "OPEN JOBS")
        if jobs:
            rows = [["Title", "Status", "Priority", "Scheduled"]]
            for job in jobs:
                rows.append([
                    Paragraph(job.get("title", "-"), self.styles["Normal"]),
                    self._enum(job.get("status")),
                    self._enum(job.get("priority")),
                    self._format_date(job.get("scheduled_date")),
                ])
            story.append(self._grid(rows, [3.0, 1.2, 1.0, 1.3]))
        else:
            story.append(Paragraph("No open jobs.", self.styles["Normal"]))

        self._section(story, "RECENT INSPECTIONS")
        if inspections:
            rows = [["Title", "Type", "Status", "Scheduled"]]
            for inspection in inspections:
                rows.append([
                    Paragraph(inspection.get("title", "-"), self.styles["Normal"]),
                    self._enum(inspection.get("inspection_type")),
                    self._enum(inspection.get("status")),
                    self._format_date(inspection.get("scheduled_date")),
                ])
            story.append(self._grid(rows, [3.0, 1.2, 1.0, 1.3]))
        else:
            story.append(Paragraph("No inspections recorded.", self.styles["Normal"]))

        story.append(Paragraph(
            f"Generated by {settings.app_name} on {datetime.utcnow().strftime('%Y-%m-%d %H:%M UTC')}",
            self.styles["Footer"],
        ))

        doc.build(story)
        buffer.seek(0)
        return buffer.read()

    @staticmethod
    def _enum(value: Any) -> str:
        if value is None:
            return "N/A"
        return str(getattr(value, "value", value))

    @staticmethod
    def _money(value: Optional[float]) -> str:
        return f"${value:,.2f}" if value is not None else "-"

    @staticmethod
    def _format_date(dt: Any) -> str:
        if dt is None:
            return "N/A"
        if isinstance(dt, str):
            return dt[:10]
        if hasattr(dt, "strftime"):
            return dt.strftime("%Y-%m-%d")
        return str(dt)


def get_pdf_generator() -> PDFGenerator:
    return PDFGenerator()

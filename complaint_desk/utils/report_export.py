# complaint_desk/utils/report_export.py
"""
分類統計的匯出檔：Excel (openpyxl) 與 PDF (reportlab)。

PDF 使用 reportlab 內建字型，不含泰文字型，所以只輸出分類代碼。
"""
import io
from datetime import datetime, timezone
from typing import List

from openpyxl import Workbook
from openpyxl.styles import Font
from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from complaint_desk.schemas.analytics_schema import CategoryStat

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MEDIA_TYPE = "application/pdf"

COLUMNS = [
    ("Category", "category"),
    ("Total", "total_count"),
    ("New", "new_count"),
    ("In progress", "in_progress_count"),
    ("Resolved", "resolved_count"),
    ("Closed", "closed_count"),
    ("Archived", "archived_count"),
    ("Avg resolution (h)", "avg_resolution_time"),
    ("Resolution rate (%)", "resolution_rate"),
]

def build_category_workbook(stats: List[CategoryStat], time_range: str) -> bytes:
    workbook = Workbook()
    sheet = workbook.active
    sheet.title = "Analytics"

    sheet.append([header for header, _ in COLUMNS])
    for cell in sheet[1]:
        cell.font = Font(bold=True)
    for stat in stats:
        sheet.append([getattr(stat, key) for _, key in COLUMNS])

    sheet.append([])
    sheet.append(["Time range", time_range])
    sheet.column_dimensions["A"].width = 22

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()

def build_category_pdf(stats: List[CategoryStat], time_range: str) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=A4,
        rightMargin=40,
        leftMargin=40,
        topMargin=40,
        bottomMargin=40,
    )
    styles = getSampleStyleSheet()

    generated_at = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    elements = [
        Paragraph(f"Analytics Export ({time_range})", styles["Heading1"]),
        Paragraph(f"Generated: {generated_at}", styles["Normal"]),
        Spacer(1, 12),
    ]

    rows = [["Category", "Total", "Resolved", "Avg resolution (h)", "Resolution rate"]]
    for stat in stats:
        rows.append([
            stat.category,
            stat.total_count,
            stat.resolved_count,
            f"{stat.avg_resolution_time:.2f}",
            f"{stat.resolution_rate}%",
        ])

    table = Table(rows, colWidths=[2.0 * inch, 0.8 * inch, 0.9 * inch, 1.5 * inch, 1.3 * inch])
    table.setStyle(
        TableStyle(
            [
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 10),
                ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#f1f5f9")),
                ("ALIGN", (1, 1), (-1, -1), "RIGHT"),
                ("BOX", (0, 0), (-1, -1), 1, colors.HexColor("#e2e8f0")),
                ("INNERGRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#e2e8f0")),
            ]
        )
    )
    elements.append(table)

    doc.build(elements)
    return buffer.getvalue()

from __future__ import annotations

import io
from datetime import datetime, timezone
from typing import Literal, Optional
from uuid import UUID

import pandas as pd
from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from reportlab.lib import colors
from reportlab.lib.pagesizes import landscape, letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import Paragraph, SimpleDocTemplate, Table, TableStyle
from sqlalchemy.ext.asyncio import AsyncSession

from alleye.core.deps import get_db_session, require_org_viewer
from alleye.db.models import Profile
from alleye.services.reports import ReportService

ExportFormat = Literal["csv", "xlsx", "pdf"]

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

# PUBLIC_INTERFACE
router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
)


def _attachment(filename: str) -> dict:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


def _render_pdf(df: pd.DataFrame, title: str) -> io.BytesIO:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=landscape(letter), leftMargin=18, rightMargin=18, topMargin=18, bottomMargin=18
    )
    styles = getSampleStyleSheet()
    stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    elements: list = [Paragraph(f"{title} ({stamp})", styles["Title"])]

    data = [list(df.columns)] + df.fillna("").astype(str).values.tolist()
    table = Table(data, repeatRows=1)
    table.setStyle(
        TableStyle(
            [
                ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
                ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
                ("FONTSIZE", (0, 0), (-1, -1), 8),
                ("ALIGN", (0, 0), (-1, -1), "LEFT"),
                ("BOTTOMPADDING", (0, 0), (-1, 0), 6),
                ("GRID", (0, 0), (-1, -1), 0.25, colors.grey),
            ]
        )
    )
    elements.append(table)
    doc.build(elements)
    buffer.seek(0)
    return buffer


# PUBLIC_INTERFACE
def export_dataframe(df: pd.DataFrame, filename_base: str, export_format: str = "csv") -> StreamingResponse:
    """
    Convert a DataFrame to the requested format and stream it as an attachment.

    Supported formats:
      - csv: text/csv
      - xlsx: spreadsheet written with openpyxl
      - pdf: simple landscape table rendered with reportlab
    """
    export_format = (export_format or "csv").lower()
    if export_format == "xlsx":
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            df.to_excel(writer, index=False, sheet_name="Report")
        buffer.seek(0)
        return StreamingResponse(
            buffer, media_type=XLSX_MEDIA_TYPE, headers=_attachment(f"{filename_base}.xlsx")
        )

    if export_format == "pdf":
        title = filename_base.replace("_", " ").title()
        return StreamingResponse(
            _render_pdf(df, title), media_type="application/pdf", headers=_attachment(f"{filename_base}.pdf")
        )

    text = io.StringIO()
    df.to_csv(text, index=False)
    text.seek(0)
    return StreamingResponse(text, media_type="text/csv", headers=_attachment(f"{filename_base}.csv"))


# PUBLIC_INTERFACE
@router.get(
    "/learner-progress",
    summary="Learner progress report",
    description="One row per user and content item with status and score.",
    response_description="File stream (CSV/XLSX/PDF)",
)
async def learner_progress_report(
    organization_id: Optional[UUID] = Query(None, description="Restrict to one organization (administrators)"),
    format: ExportFormat = Query("csv", description="Export format: csv | xlsx | pdf"),
    caller: Profile = Depends(require_org_viewer),
    session: AsyncSession = Depends(get_db_session),
):
    df = await ReportService(session).learner_progress(caller, organization_id)
    return export_dataframe(df, "learner_progress", format)


# PUBLIC_INTERFACE
@router.get(
    "/training-results",
    summary="Training results report",
    description="Graded quiz attempts with score, pass flag, time spent and attempt number.",
    response_description="File stream (CSV/XLSX/PDF)",
)
async def training_results_report(
    organization_id: Optional[UUID] = Query(None),
    format: ExportFormat = Query("csv", description="Export format: csv | xlsx | pdf"),
    caller: Profile = Depends(require_org_viewer),
    session: AsyncSession = Depends(get_db_session),
):
    df = await ReportService(session).training_results(caller, organization_id)
    return export_dataframe(df, "training_results", format)


# PUBLIC_INTERFACE
@router.get(
    "/organization-summary",
    summary="Organization summary report",
    description="Members, completions, average quiz score and pass rate per organization.",
    response_description="File stream (CSV/XLSX/PDF)",
)
async def organization_summary_report(
    organization_id: Optional[UUID] = Query(None),
    format: ExportFormat = Query("csv", description="Export format: csv | xlsx | pdf"),
    caller: Profile = Depends(require_org_viewer),
    session: AsyncSession = Depends(get_db_session),
):
    df = await ReportService(session).organization_summary(caller, organization_id)
    return export_dataframe(df, "organization_summary", format)

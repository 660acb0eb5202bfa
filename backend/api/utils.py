"""
Helpers shared by route modules.
"""

from typing import Iterable

from fastapi.responses import Response, StreamingResponse

from services import reports
from services.report_excel import XLSX_MEDIA_TYPE


def _attachment(filename: str) -> dict[str, str]:
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


def csv_download(rows: Iterable[Iterable], filename_prefix: str) -> StreamingResponse:
    """Stream rows as a dated CSV attachment."""
    filename = reports.report_filename(filename_prefix)
    return StreamingResponse(
        reports.iter_csv(rows),
        media_type="text/csv; charset=utf-8",
        headers=_attachment(filename),
    )


def xlsx_download(content: bytes, filename_prefix: str) -> Response:
    """Return a built workbook as a dated .xlsx attachment."""
    filename = reports.report_filename(filename_prefix, extension="xlsx")
    return Response(content, media_type=XLSX_MEDIA_TYPE, headers=_attachment(filename))

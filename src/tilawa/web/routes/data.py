"""Management endpoints: statistics, export, import and reset.

All routes here require the X-Management-Passphrase header.
"""

from datetime import datetime, timezone
from typing import Any, Literal

import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, Query, status
from fastapi.responses import Response

from tilawa.core.models import CapacityExceededError, ImportMalformedError
from tilawa.core.store import RecitationStore
from tilawa.web.dependencies import get_store, require_passphrase
from tilawa.web.schemas import DatabaseStatsResponse, ImportResponse

logger = structlog.get_logger(__name__)

router = APIRouter(
    prefix="/api/data",
    tags=["management"],
    dependencies=[Depends(require_passphrase)],
)

_MEDIA_TYPES = {
    "json": "application/json",
    "csv": "text/csv; charset=utf-8",
}


@router.get("/stats", response_model=DatabaseStatsResponse)
async def get_stats(store: RecitationStore = Depends(get_store)) -> DatabaseStatsResponse:
    """Record counts and capacity."""
    return DatabaseStatsResponse(
        teachers=len(store.list_teachers()),
        students=len(store.list_students()),
        recitations=len(store.list_recitations()),
        total_records=store.total_records,
        max_records=store.max_records,
    )


@router.get("/export")
async def export_data(
    format: Literal["json", "csv"] = Query(default="json"),
    store: RecitationStore = Depends(get_store),
) -> Response:
    """Download a JSON backup or a CSV report."""
    content = store.export_data(format)
    today = datetime.now(timezone.utc).date().isoformat()
    prefix = "quran-tracking-backup" if format == "json" else "quran-tracking-report"
    filename = f"{prefix}-{today}.{format}"

    logger.info("data_export_requested", format=format)
    return Response(
        content=content.encode("utf-8"),
        media_type=_MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/import", response_model=ImportResponse)
async def import_data(
    payload: Any = Body(...),
    store: RecitationStore = Depends(get_store),
) -> ImportResponse:
    """Merge a JSON backup into the store."""
    try:
        result = store.import_data(payload)
    except ImportMalformedError as e:
        logger.warning("data_import_rejected", error=str(e))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except CapacityExceededError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return ImportResponse(
        teachers=result.teachers,
        students=result.students,
        recitations=result.recitations,
        skipped=result.skipped,
        total_records=store.total_records,
    )


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_data(store: RecitationStore = Depends(get_store)) -> None:
    """Delete every teacher, student and recitation."""
    store.clear()

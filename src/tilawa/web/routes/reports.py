"""Report and page-context endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from tilawa.core.quran_data import lookup_page_context
from tilawa.core.reports import (
    ActivityFilter,
    ReportWindow,
    Role,
    SortKey,
    compute_report,
)
from tilawa.core.store import RecitationStore
from tilawa.web.dependencies import get_store
from tilawa.web.schemas import (
    PageContextResponse,
    PersonResponse,
    ReportResponse,
    ReportRowResponse,
    StatsResponse,
)

router = APIRouter(prefix="/api", tags=["reports"])


@router.get("/reports", response_model=ReportResponse)
async def get_report(
    role: Role = Query(default=Role.STUDENT),
    window: ReportWindow = Query(default=ReportWindow.WEEKLY),
    q: str = Query(default="", max_length=100),
    activity: ActivityFilter = Query(default=ActivityFilter.ALL),
    sort: SortKey = Query(default=SortKey.MOST),
    store: RecitationStore = Depends(get_store),
) -> ReportResponse:
    """Weekly or monthly activity report for teachers or students."""
    entities = store.list_teachers() if role is Role.TEACHER else store.list_students()
    report = compute_report(
        entities,
        store.list_recitations(),
        role=role,
        window=window,
        name_filter=q,
        activity=activity,
        sort=sort,
    )

    rows = [
        ReportRowResponse(
            entity=PersonResponse.from_entity(row.entity),
            stats=StatsResponse(
                count=row.stats.count,
                errors=row.stats.errors,
                days=row.stats.days,
                unique_students=row.stats.unique_students,
                active=row.stats.active,
            ),
        )
        for row in report.rows
    ]
    return ReportResponse(
        role=role,
        window=window,
        activity=activity,
        sort=sort,
        cutoff=report.cutoff,
        rows=rows,
        total_recitations=report.total_recitations,
        active_count=report.active_count,
    )


@router.get("/pages/{page}", response_model=PageContextResponse)
async def get_page_context(page: int) -> PageContextResponse:
    """Juz and surah for a page of the mushaf."""
    context = lookup_page_context(page)
    if context is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Page {page} is outside the mushaf",
        )
    return PageContextResponse(page=context.page, juz=context.juz, surah=context.surah)

"""Student endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from tilawa.core.models import CapacityExceededError, Student
from tilawa.core.reports import student_detail, student_history
from tilawa.core.store import RecitationStore
from tilawa.web.dependencies import get_store
from tilawa.web.schemas import (
    BadgeResponse,
    DayActivityResponse,
    JuzProgressResponse,
    MemorizationResponse,
    PersonCreate,
    PersonResponse,
    RatingBucketResponse,
    RecitationListResponse,
    RecitationResponse,
    StudentBulkCreate,
    StudentListResponse,
    StudentReportResponse,
    TrendPointResponse,
)

router = APIRouter(prefix="/api/students", tags=["students"])


def _get_student_or_404(store: RecitationStore, student_id: str) -> Student:
    student = store.get_student(student_id)
    if student is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Student '{student_id}' not found",
        )
    return student


@router.get("", response_model=StudentListResponse)
async def list_students(store: RecitationStore = Depends(get_store)) -> StudentListResponse:
    """List all students."""
    students = [PersonResponse.from_entity(s) for s in store.list_students()]
    return StudentListResponse(students=students, count=len(students))


@router.post("", response_model=PersonResponse, status_code=status.HTTP_201_CREATED)
async def create_student(
    body: PersonCreate, store: RecitationStore = Depends(get_store)
) -> PersonResponse:
    """Create a new student."""
    try:
        student = store.add_student(body.name)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except CapacityExceededError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return PersonResponse.from_entity(student)


@router.post(
    "/bulk", response_model=StudentListResponse, status_code=status.HTTP_201_CREATED
)
async def create_students(
    body: StudentBulkCreate, store: RecitationStore = Depends(get_store)
) -> StudentListResponse:
    """Create several students; blank names are skipped."""
    try:
        added = store.add_students(body.names)
    except CapacityExceededError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    students = [PersonResponse.from_entity(s) for s in added]
    return StudentListResponse(students=students, count=len(students))


@router.delete("/{student_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_student(student_id: str, store: RecitationStore = Depends(get_store)) -> None:
    """Delete a student and their recitations."""
    if not store.delete_student(student_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Student '{student_id}' not found",
        )


@router.get("/{student_id}/history", response_model=RecitationListResponse)
async def get_student_history(
    student_id: str,
    limit: int = Query(default=3, ge=1, le=100),
    store: RecitationStore = Depends(get_store),
) -> RecitationListResponse:
    """A student's latest recitations, newest first."""
    _get_student_or_404(store, student_id)
    history = student_history(store.list_recitations(), student_id, limit)
    items = [RecitationResponse.from_recitation(r) for r in history]
    return RecitationListResponse(recitations=items, count=len(items))


@router.get("/{student_id}/report", response_model=StudentReportResponse)
async def get_student_report(
    student_id: str, store: RecitationStore = Depends(get_store)
) -> StudentReportResponse:
    """Detail report for one student: badges, ratings, memorization."""
    student = _get_student_or_404(store, student_id)
    detail = student_detail(student, store.list_recitations())
    memo = detail.memorization

    return StudentReportResponse(
        student=PersonResponse.from_entity(student),
        total_recitations=detail.total_recitations,
        average_errors=detail.average_errors,
        badges=[BadgeResponse(**b.to_dict()) for b in detail.badges],
        last_page=detail.last_page,
        rating_distribution=[
            RatingBucketResponse(rating=b.rating.value, label=b.rating.label_ar, count=b.count)
            for b in detail.rating_distribution
        ],
        weekly_activity=[
            DayActivityResponse(day=d.day.isoformat(), count=d.count)
            for d in detail.weekly_activity
        ],
        error_trend=[
            TrendPointResponse(index=p.index, errors=p.errors, page=p.page)
            for p in detail.error_trend
        ],
        memorization=MemorizationResponse(
            passed_pages=memo.passed_pages,
            page_ranges=memo.page_ranges,
            juz_progress=[
                JuzProgressResponse(
                    juz=j.juz, completed=j.completed, percent=j.percent, is_complete=j.is_complete
                )
                for j in memo.juz_progress
            ],
            completed_juz=memo.completed_juz,
        ),
    )

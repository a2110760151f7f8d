"""Teacher endpoints."""

from fastapi import APIRouter, Depends, HTTPException, status

from tilawa.core.models import CapacityExceededError
from tilawa.core.reports import teacher_detail
from tilawa.core.store import RecitationStore
from tilawa.web.dependencies import get_store
from tilawa.web.schemas import (
    PersonCreate,
    PersonResponse,
    TeacherListResponse,
    TeacherReportResponse,
)

router = APIRouter(prefix="/api/teachers", tags=["teachers"])


@router.get("", response_model=TeacherListResponse)
async def list_teachers(store: RecitationStore = Depends(get_store)) -> TeacherListResponse:
    """List all teachers."""
    teachers = [PersonResponse.from_entity(t) for t in store.list_teachers()]
    return TeacherListResponse(teachers=teachers, count=len(teachers))


@router.post("", response_model=PersonResponse, status_code=status.HTTP_201_CREATED)
async def create_teacher(
    body: PersonCreate, store: RecitationStore = Depends(get_store)
) -> PersonResponse:
    """Create a new teacher."""
    try:
        teacher = store.add_teacher(body.name)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except CapacityExceededError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return PersonResponse.from_entity(teacher)


@router.delete("/{teacher_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_teacher(teacher_id: str, store: RecitationStore = Depends(get_store)) -> None:
    """Delete a teacher and their recitations."""
    if not store.delete_teacher(teacher_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Teacher '{teacher_id}' not found",
        )


@router.get("/{teacher_id}/report", response_model=TeacherReportResponse)
async def get_teacher_report(
    teacher_id: str, store: RecitationStore = Depends(get_store)
) -> TeacherReportResponse:
    """Detail report for one teacher."""
    teacher = store.get_teacher(teacher_id)
    if teacher is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Teacher '{teacher_id}' not found",
        )

    detail = teacher_detail(teacher, store.list_recitations())
    return TeacherReportResponse(
        teacher=PersonResponse.from_entity(teacher),
        total_recitations=detail.total_recitations,
        unique_students=detail.unique_students,
        last_activity=detail.last_activity,
        activity_by_weekday=detail.activity_by_weekday,
    )

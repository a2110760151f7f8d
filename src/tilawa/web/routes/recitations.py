"""Recitation endpoints."""

from fastapi import APIRouter, Depends, HTTPException, Query, status

from tilawa.core.models import CapacityExceededError, EntityNotFoundError, OutOfRangeError
from tilawa.core.reports import recent_activity
from tilawa.core.store import RecitationInput, RecitationStore
from tilawa.web.dependencies import get_store
from tilawa.web.schemas import (
    RecitationBatchCreate,
    RecitationCreate,
    RecitationListResponse,
    RecitationResponse,
)

router = APIRouter(prefix="/api/recitations", tags=["recitations"])


@router.get("", response_model=RecitationListResponse)
async def list_recent_recitations(
    limit: int = Query(default=10, ge=1, le=1000),
    store: RecitationStore = Depends(get_store),
) -> RecitationListResponse:
    """Latest recitations, newest first."""
    items = [
        RecitationResponse.from_recitation(r)
        for r in recent_activity(store.list_recitations(), limit)
    ]
    return RecitationListResponse(recitations=items, count=len(items))


@router.post("", response_model=RecitationResponse, status_code=status.HTTP_201_CREATED)
async def create_recitation(
    body: RecitationCreate, store: RecitationStore = Depends(get_store)
) -> RecitationResponse:
    """Record a recitation."""
    try:
        recitation = store.add_recitation(
            teacher_id=body.teacher_id,
            student_id=body.student_id,
            page_number=body.page_number,
            error_count=body.error_count,
            is_bulk_import=body.is_bulk_import,
        )
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except OutOfRangeError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except CapacityExceededError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return RecitationResponse.from_recitation(recitation)


@router.post(
    "/batch", response_model=RecitationListResponse, status_code=status.HTTP_201_CREATED
)
async def create_recitation_batch(
    body: RecitationBatchCreate, store: RecitationStore = Depends(get_store)
) -> RecitationListResponse:
    """Record several recitations; all or none are stored."""
    inputs = [
        RecitationInput(
            teacher_id=item.teacher_id,
            student_id=item.student_id,
            page_number=item.page_number,
            error_count=item.error_count,
            is_bulk_import=item.is_bulk_import,
        )
        for item in body.items
    ]
    try:
        added = store.add_recitation_batch(inputs)
    except EntityNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except OutOfRangeError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))
    except CapacityExceededError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    items = [RecitationResponse.from_recitation(r) for r in added]
    return RecitationListResponse(recitations=items, count=len(items))

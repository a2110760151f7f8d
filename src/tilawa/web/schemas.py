"""Pydantic schemas for the Web API.

Serialization models for teachers, students, recitations, reports and
management (backup) operations.
"""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field

from tilawa.core.models import TOTAL_PAGES, Recitation, Student, Teacher
from tilawa.core.reports import ActivityFilter, ReportWindow, Role, SortKey

API_VERSION = "0.1.0"


# =============================================================================
# TEACHER / STUDENT SCHEMAS
# =============================================================================


class PersonCreate(BaseModel):
    """Request body for creating a teacher or a student."""

    name: str = Field(..., min_length=1, max_length=100)


class StudentBulkCreate(BaseModel):
    """Request body for adding several students, one name per entry."""

    names: list[str] = Field(..., min_length=1)


class PersonResponse(BaseModel):
    """Response for a teacher or a student."""

    id: str
    name: str
    created_at: datetime

    @classmethod
    def from_entity(cls, entity: Teacher | Student) -> PersonResponse:
        return cls(id=entity.id, name=entity.name, created_at=entity.created_at)


class TeacherListResponse(BaseModel):
    """Response for list of teachers."""

    teachers: list[PersonResponse]
    count: int


class StudentListResponse(BaseModel):
    """Response for list of students."""

    students: list[PersonResponse]
    count: int


# =============================================================================
# RECITATION SCHEMAS
# =============================================================================


class RecitationCreate(BaseModel):
    """Request body for recording a recitation."""

    teacher_id: str = Field(..., min_length=1)
    student_id: str = Field(..., min_length=1)
    page_number: int = Field(..., ge=1, le=TOTAL_PAGES)
    error_count: int = Field(default=0, ge=0)
    is_bulk_import: bool = False


class RecitationBatchCreate(BaseModel):
    """Request body for recording several recitations."""

    items: list[RecitationCreate] = Field(..., min_length=1)


class RecitationResponse(BaseModel):
    """Response for a recitation."""

    id: str
    teacher_id: str
    student_id: str
    page_number: int
    error_count: int
    timestamp: datetime
    is_bulk_import: bool = False
    rating: str
    rating_label: str

    @classmethod
    def from_recitation(cls, recitation: Recitation) -> RecitationResponse:
        rating = recitation.rating
        return cls(
            id=recitation.id,
            teacher_id=recitation.teacher_id,
            student_id=recitation.student_id,
            page_number=recitation.page_number,
            error_count=recitation.error_count,
            timestamp=recitation.timestamp,
            is_bulk_import=recitation.is_bulk_import,
            rating=rating.value,
            rating_label=rating.label_ar,
        )


class RecitationListResponse(BaseModel):
    """Response for list of recitations."""

    recitations: list[RecitationResponse]
    count: int


# =============================================================================
# REPORT SCHEMAS
# =============================================================================


class StatsResponse(BaseModel):
    """Derived statistics of one entity inside a report window."""

    count: int
    errors: int
    days: int
    unique_students: int
    active: bool


class ReportRowResponse(BaseModel):
    """One entity with its statistics."""

    entity: PersonResponse
    stats: StatsResponse


class ReportResponse(BaseModel):
    """Weekly or monthly report."""

    role: Role
    window: ReportWindow
    activity: ActivityFilter
    sort: SortKey
    cutoff: datetime
    rows: list[ReportRowResponse]
    total_recitations: int
    active_count: int


class BadgeResponse(BaseModel):
    id: str
    name: str
    icon: str
    description: str
    color: str


class JuzProgressResponse(BaseModel):
    juz: int
    completed: int
    percent: int
    is_complete: bool


class MemorizationResponse(BaseModel):
    """Passed pages, their ranges and the Juz grid."""

    passed_pages: list[int]
    page_ranges: list[str]
    juz_progress: list[JuzProgressResponse]
    completed_juz: int


class RatingBucketResponse(BaseModel):
    rating: str
    label: str
    count: int


class DayActivityResponse(BaseModel):
    day: str
    count: int


class TrendPointResponse(BaseModel):
    index: int
    errors: int
    page: int


class StudentReportResponse(BaseModel):
    """Detail report for one student."""

    student: PersonResponse
    total_recitations: int
    average_errors: float
    badges: list[BadgeResponse]
    last_page: int | None
    rating_distribution: list[RatingBucketResponse]
    weekly_activity: list[DayActivityResponse]
    error_trend: list[TrendPointResponse]
    memorization: MemorizationResponse


class TeacherReportResponse(BaseModel):
    """Detail report for one teacher."""

    teacher: PersonResponse
    total_recitations: int
    unique_students: int
    last_activity: datetime | None
    activity_by_weekday: list[int]


class PageContextResponse(BaseModel):
    page: int
    juz: int
    surah: str


# =============================================================================
# MANAGEMENT SCHEMAS
# =============================================================================


class ImportResponse(BaseModel):
    """Counts of records merged by an import."""

    teachers: int
    students: int
    recitations: int
    skipped: int
    total_records: int


class DatabaseStatsResponse(BaseModel):
    teachers: int
    students: int
    recitations: int
    total_records: int
    max_records: int


# =============================================================================
# HEALTH SCHEMAS
# =============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = API_VERSION
    timestamp: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

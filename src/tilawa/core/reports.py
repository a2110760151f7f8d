"""Reporting and aggregation engine.

Responsibilities:
- Weekly/monthly leaderboards for teachers or students
- Per-student and per-teacher detail reports
- Recent activity feeds

Every function here is pure: inputs are read, never mutated, and each call
returns freshly built values. Derived statistics travel in EntityWithStats
wrappers instead of being attached to the entities themselves.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Iterable, Sequence, Union

import structlog

from tilawa.core.badges import Badge, compute_badges
from tilawa.core.models import (
    Rating,
    Recitation,
    Student,
    Teacher,
    classify_rating,
    utc_now,
)
from tilawa.core.progress import MemorizationSummary, compute_memorization

logger = structlog.get_logger(__name__)

Entity = Union[Teacher, Student]

RECENT_ACTIVITY_LIMIT = 10
STUDENT_HISTORY_LIMIT = 3
ERROR_TREND_LENGTH = 10
ACTIVITY_DAYS = 7


# =============================================================================
# SELECTORS
# =============================================================================


class Role(str, Enum):
    """Which foreign key of a recitation an entity is matched on."""

    TEACHER = "teacher"
    STUDENT = "student"


class ReportWindow(str, Enum):
    """Reporting period."""

    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def days(self) -> int:
        if self is ReportWindow.WEEKLY:
            return 7
        return 30


class ActivityFilter(str, Enum):
    """Which entities to keep according to their activity in the window."""

    ALL = "all"
    ACTIVE = "active"
    INACTIVE = "inactive"


class SortKey(str, Enum):
    """Report ordering. MOST/LEAST rank by distinct active days."""

    MOST = "most"
    LEAST = "least"
    NAME_ASC = "name-asc"
    NAME_DESC = "name-desc"


# =============================================================================
# DATA CLASSES
# =============================================================================


@dataclass(frozen=True)
class EntityStats:
    """Activity of one entity inside the report window."""

    count: int = 0
    errors: int = 0
    days: int = 0
    unique_students: int = 0

    @property
    def active(self) -> bool:
        return self.count > 0


@dataclass(frozen=True)
class EntityWithStats:
    """An entity paired with its derived statistics."""

    entity: Entity
    stats: EntityStats


@dataclass(frozen=True)
class Report:
    """Filtered and sorted rows plus summary aggregates."""

    role: Role
    window: ReportWindow
    cutoff: datetime
    rows: list[EntityWithStats] = field(default_factory=list)

    @property
    def total_recitations(self) -> int:
        return sum(row.stats.count for row in self.rows)

    @property
    def active_count(self) -> int:
        return sum(1 for row in self.rows if row.stats.active)


@dataclass(frozen=True)
class RatingBucket:
    rating: Rating
    count: int


@dataclass(frozen=True)
class DayActivity:
    day: date
    count: int


@dataclass(frozen=True)
class TrendPoint:
    index: int
    errors: int
    page: int


@dataclass(frozen=True)
class StudentDetail:
    """Everything the per-student detail view shows."""

    student: Student
    total_recitations: int
    average_errors: float
    badges: list[Badge]
    last_page: int | None
    rating_distribution: list[RatingBucket]
    weekly_activity: list[DayActivity]
    error_trend: list[TrendPoint]
    memorization: MemorizationSummary


@dataclass(frozen=True)
class TeacherDetail:
    """Everything the per-teacher detail view shows."""

    teacher: Teacher
    total_recitations: int
    unique_students: int
    last_activity: datetime | None
    activity_by_weekday: list[int]  # Sunday first


# =============================================================================
# HELPERS
# =============================================================================


def _matches(recitation: Recitation, entity_id: str, role: Role) -> bool:
    if role is Role.TEACHER:
        return recitation.teacher_id == entity_id
    if role is Role.STUDENT:
        return recitation.student_id == entity_id
    raise ValueError(f"Unknown role: {role!r}")


def _name_key(name: str) -> str:
    return name.casefold()


def compute_entity_stats(
    entity_id: str,
    recitations: Iterable[Recitation],
    role: Role,
    cutoff: datetime | None = None,
) -> EntityStats:
    """Aggregate one entity's recitations strictly after ``cutoff``.

    Args:
        entity_id: Teacher or student id
        recitations: Full recitation log
        role: Whether entity_id is a teacher or a student id
        cutoff: Exclusive lower bound; None keeps the whole history

    Returns:
        EntityStats (unique_students is always 0 for students)
    """
    matching = [
        r
        for r in recitations
        if _matches(r, entity_id, role) and (cutoff is None or r.timestamp > cutoff)
    ]
    return EntityStats(
        count=len(matching),
        errors=sum(r.error_count for r in matching),
        days=len({r.timestamp.date() for r in matching}),
        unique_students=(
            len({r.student_id for r in matching}) if role is Role.TEACHER else 0
        ),
    )


def _keep_for_activity(stats: EntityStats, activity: ActivityFilter) -> bool:
    if activity is ActivityFilter.ALL:
        return True
    if activity is ActivityFilter.ACTIVE:
        return stats.active
    if activity is ActivityFilter.INACTIVE:
        return not stats.active
    raise ValueError(f"Unknown activity filter: {activity!r}")


def _sort_rows(rows: list[EntityWithStats], sort: SortKey) -> list[EntityWithStats]:
    # sorted() is stable, also with reverse=True, so ties keep input order
    if sort is SortKey.MOST:
        return sorted(rows, key=lambda r: r.stats.days, reverse=True)
    if sort is SortKey.LEAST:
        return sorted(rows, key=lambda r: r.stats.days)
    if sort is SortKey.NAME_ASC:
        return sorted(rows, key=lambda r: _name_key(r.entity.name))
    if sort is SortKey.NAME_DESC:
        return sorted(rows, key=lambda r: _name_key(r.entity.name), reverse=True)
    raise ValueError(f"Unknown sort key: {sort!r}")


# =============================================================================
# MAIN FUNCTIONS
# =============================================================================


def compute_report(
    entities: Sequence[Entity],
    recitations: Sequence[Recitation],
    role: Role | str,
    window: ReportWindow | str,
    name_filter: str = "",
    activity: ActivityFilter | str = ActivityFilter.ALL,
    sort: SortKey | str = SortKey.MOST,
    now: datetime | None = None,
) -> Report:
    """Build a weekly or monthly activity report.

    Args:
        entities: Teachers or students, matching ``role``
        recitations: Full recitation log
        role: "teacher" or "student"
        window: "weekly" (7 days) or "monthly" (30 days)
        name_filter: Case-insensitive substring to match against names
        activity: "all", "active" or "inactive"
        sort: "most", "least", "name-asc" or "name-desc"
        now: Reference time; defaults to the current UTC time

    Returns:
        Report with one EntityWithStats per kept entity

    Raises:
        ValueError: If a selector value is not recognised
    """
    role = Role(role)
    window = ReportWindow(window)
    activity = ActivityFilter(activity)
    sort = SortKey(sort)
    now = now or utc_now()
    cutoff = now - timedelta(days=window.days)
    needle = name_filter.casefold()

    rows: list[EntityWithStats] = []
    for entity in entities:
        if needle and needle not in entity.name.casefold():
            continue
        stats = compute_entity_stats(entity.id, recitations, role, cutoff)
        if not _keep_for_activity(stats, activity):
            continue
        rows.append(EntityWithStats(entity=entity, stats=stats))

    report = Report(role=role, window=window, cutoff=cutoff, rows=_sort_rows(rows, sort))
    logger.debug(
        "report_computed",
        role=role.value,
        window=window.value,
        rows=len(report.rows),
        total_recitations=report.total_recitations,
    )
    return report


def recent_activity(
    recitations: Iterable[Recitation], limit: int = RECENT_ACTIVITY_LIMIT
) -> list[Recitation]:
    """Newest recitations first."""
    return sorted(recitations, key=lambda r: r.timestamp, reverse=True)[:limit]


def student_history(
    recitations: Iterable[Recitation],
    student_id: str,
    limit: int = STUDENT_HISTORY_LIMIT,
) -> list[Recitation]:
    """A student's newest recitations, shown next to the recording form."""
    return recent_activity((r for r in recitations if r.student_id == student_id), limit)


def student_detail(
    student: Student,
    recitations: Iterable[Recitation],
    now: datetime | None = None,
) -> StudentDetail:
    """Detail report for one student over their whole history."""
    history = sorted(
        (r for r in recitations if r.student_id == student.id),
        key=lambda r: r.timestamp,
    )
    now = now or utc_now()

    total = len(history)
    total_errors = sum(r.error_count for r in history)
    average = round(total_errors / total, 1) if total else 0.0

    ratings = Counter(classify_rating(r.error_count) for r in history)
    distribution = [
        RatingBucket(rating=rating, count=ratings[rating])
        for rating in Rating
        if ratings[rating] > 0
    ]

    today = now.date()
    per_day = Counter(r.timestamp.date() for r in history)
    weekly = [
        DayActivity(day=day, count=per_day.get(day, 0))
        for day in (today - timedelta(days=offset) for offset in range(ACTIVITY_DAYS - 1, -1, -1))
    ]

    trend = [
        TrendPoint(index=i + 1, errors=r.error_count, page=r.page_number)
        for i, r in enumerate(history[-ERROR_TREND_LENGTH:])
    ]

    return StudentDetail(
        student=student,
        total_recitations=total,
        average_errors=average,
        badges=compute_badges(history),
        last_page=history[-1].page_number if history else None,
        rating_distribution=distribution,
        weekly_activity=weekly,
        error_trend=trend,
        memorization=compute_memorization(history),
    )


def teacher_detail(teacher: Teacher, recitations: Iterable[Recitation]) -> TeacherDetail:
    """Detail report for one teacher over their whole history."""
    history = sorted(
        (r for r in recitations if r.teacher_id == teacher.id),
        key=lambda r: r.timestamp,
    )

    by_weekday = [0] * 7
    for r in history:
        # datetime.weekday() is Monday=0; shift so Sunday comes first
        by_weekday[(r.timestamp.weekday() + 1) % 7] += 1

    return TeacherDetail(
        teacher=teacher,
        total_recitations=len(history),
        unique_students=len({r.student_id for r in history}),
        last_activity=history[-1].timestamp if history else None,
        activity_by_weekday=by_weekday,
    )

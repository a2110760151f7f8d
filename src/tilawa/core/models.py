"""Domain types for recitation tracking.

Responsibilities:
- Teacher, Student and Recitation records (immutable once created)
- Rating classification from an error count
- Range validation for page numbers and error counts
- Domain exceptions shared by the store and the engines

Serialized records keep camelCase keys (createdAt, teacherId, ...) so
exported bundles stay readable by older exports.
"""

from __future__ import annotations

import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any

# =============================================================================
# CONSTANTS
# =============================================================================

TOTAL_PAGES = 604
PAGES_PER_JUZ = 20
TOTAL_JUZ = 30
MAX_RECORDS = 999

# Error-count ceilings for each rating band (inclusive)
EXCELLENT_MAX_ERRORS = 3
VERY_GOOD_MAX_ERRORS = 6
GOOD_MAX_ERRORS = 9


# =============================================================================
# EXCEPTIONS
# =============================================================================


class TilawaError(Exception):
    """Base error for the recitation tracker."""

    pass


class OutOfRangeError(TilawaError):
    """Raised when a page number or error count is outside its bounds."""

    pass


class CapacityExceededError(TilawaError):
    """Raised when a creation would push the store past its record cap."""

    def __init__(self, current: int, requested: int, limit: int):
        self.current = current
        self.requested = requested
        self.limit = limit
        super().__init__(
            f"Record limit of {limit} reached "
            f"(current: {current}, requested: {requested})"
        )


class ImportMalformedError(TilawaError):
    """Raised when an import payload is missing fields or has bad values."""

    pass


class EntityNotFoundError(TilawaError):
    """Raised when a teacher or student id does not exist."""

    def __init__(self, kind: str, entity_id: str):
        self.kind = kind
        self.entity_id = entity_id
        super().__init__(f"{kind} '{entity_id}' not found")


# =============================================================================
# TIME HELPERS
# =============================================================================


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    Accepts the trailing "Z" written by browsers. Naive values are
    treated as UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    """Format a datetime as ISO-8601 with microsecond precision and a Z suffix.

    The output round-trips through parse_timestamp without loss.
    """
    utc = value.astimezone(timezone.utc)
    return utc.isoformat(timespec="microseconds").replace("+00:00", "Z")


def generate_id(prefix: str) -> str:
    """Generate a unique record id such as ``teacher_3f9a1c0b2d4e``."""
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


# =============================================================================
# RATING
# =============================================================================


class Rating(Enum):
    """Four-level qualitative classification of a single recitation."""

    EXCELLENT = "Excellent"
    VERY_GOOD = "Very Good"
    GOOD = "Good"
    NEEDS_ATTENTION = "Needs Attention"

    @property
    def label_ar(self) -> str:
        """Arabic label shown in reports and CSV exports."""
        return _RATING_LABELS_AR[self]


_RATING_LABELS_AR = {
    Rating.EXCELLENT: "ممتاز",
    Rating.VERY_GOOD: "جيد جداً",
    Rating.GOOD: "جيد",
    Rating.NEEDS_ATTENTION: "يحتاج تركيز",
}


def _check_number(value: Any, name: str) -> None:
    """Fail fast on values that cannot be compared as counts."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise TypeError(f"{name} must be a number, got {type(value).__name__}")
    if isinstance(value, float) and not math.isfinite(value):
        raise ValueError(f"{name} must be finite, got {value}")


def _require_text(data: dict[str, Any], key: str) -> str:
    """Return data[key], refusing nulls and non-string values."""
    value = data[key]
    if not isinstance(value, str):
        raise TypeError(f"{key} must be a string, got {type(value).__name__}")
    return value


def classify_rating(error_count: int) -> Rating:
    """Classify a recitation by its error count.

    Args:
        error_count: Number of mistakes made during the recitation

    Returns:
        Rating band: <=3 Excellent, 4-6 Very Good, 7-9 Good, >=10 Needs Attention

    Raises:
        TypeError: If error_count is not a number
        ValueError: If error_count is NaN or infinite
    """
    _check_number(error_count, "error_count")
    if error_count <= EXCELLENT_MAX_ERRORS:
        return Rating.EXCELLENT
    if error_count <= VERY_GOOD_MAX_ERRORS:
        return Rating.VERY_GOOD
    if error_count <= GOOD_MAX_ERRORS:
        return Rating.GOOD
    return Rating.NEEDS_ATTENTION


# =============================================================================
# VALIDATION
# =============================================================================


def validate_page_number(page_number: Any) -> int:
    """Return page_number as int, or raise OutOfRangeError."""
    if isinstance(page_number, bool) or not isinstance(page_number, int):
        raise OutOfRangeError(f"Page number must be an integer, got {page_number!r}")
    if not 1 <= page_number <= TOTAL_PAGES:
        raise OutOfRangeError(
            f"Page number {page_number} outside 1..{TOTAL_PAGES}"
        )
    return page_number


def validate_error_count(error_count: Any) -> int:
    """Return error_count as int, or raise OutOfRangeError."""
    if isinstance(error_count, bool) or not isinstance(error_count, int):
        raise OutOfRangeError(f"Error count must be an integer, got {error_count!r}")
    if error_count < 0:
        raise OutOfRangeError(f"Error count cannot be negative: {error_count}")
    return error_count


# =============================================================================
# RECORDS
# =============================================================================


@dataclass(frozen=True)
class Teacher:
    """A teacher who listens to recitations."""

    id: str
    name: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Teacher:
        """Build from a serialized record. Raises KeyError/TypeError/ValueError on bad data."""
        return cls(
            id=_require_text(data, "id"),
            name=_require_text(data, "name"),
            created_at=parse_timestamp(data["createdAt"]),
        )


@dataclass(frozen=True)
class Student:
    """A student whose recitations are tracked."""

    id: str
    name: str
    created_at: datetime

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": format_timestamp(self.created_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Student:
        """Build from a serialized record. Raises KeyError/TypeError/ValueError on bad data."""
        return cls(
            id=_require_text(data, "id"),
            name=_require_text(data, "name"),
            created_at=parse_timestamp(data["createdAt"]),
        )


@dataclass(frozen=True)
class Recitation:
    """One recorded session of a student reading a page to a teacher."""

    id: str
    teacher_id: str
    student_id: str
    page_number: int
    error_count: int
    timestamp: datetime
    is_bulk_import: bool = False

    @property
    def rating(self) -> Rating:
        return classify_rating(self.error_count)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        result: dict[str, Any] = {
            "id": self.id,
            "teacherId": self.teacher_id,
            "studentId": self.student_id,
            "pageNumber": self.page_number,
            "errorCount": self.error_count,
            "timestamp": format_timestamp(self.timestamp),
        }
        if self.is_bulk_import:
            result["isBulkImport"] = True
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Recitation:
        """Build from a serialized record.

        Raises:
            KeyError: If a required field is missing
            TypeError: If an id field is not a string
            ValueError: If the timestamp cannot be parsed
            OutOfRangeError: If page or error count are out of bounds
        """
        return cls(
            id=_require_text(data, "id"),
            teacher_id=_require_text(data, "teacherId"),
            student_id=_require_text(data, "studentId"),
            page_number=validate_page_number(data["pageNumber"]),
            error_count=validate_error_count(data["errorCount"]),
            timestamp=parse_timestamp(data["timestamp"]),
            is_bulk_import=bool(data.get("isBulkImport", False)),
        )

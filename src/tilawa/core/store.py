"""Recitation store.

Responsibilities:
- Own the canonical teacher, student and recitation collections
- Enforce the record cap and the page/error ranges on creation
- Cascade deletes from teachers and students to their recitations
- Export to a JSON bundle or a CSV report; merge JSON imports
- Hand every changed collection to a StorageBackend after each mutation

The store is the only writer. Engines in tilawa.core receive the lists it
returns and never modify them.
"""

from __future__ import annotations

import csv
import io
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Iterable, Literal, TypeVar

import structlog

from tilawa.core.models import (
    MAX_RECORDS,
    CapacityExceededError,
    EntityNotFoundError,
    ImportMalformedError,
    OutOfRangeError,
    Recitation,
    Student,
    Teacher,
    classify_rating,
    format_timestamp,
    generate_id,
    utc_now,
    validate_error_count,
    validate_page_number,
)
from tilawa.core.storage import STORAGE_KEYS, MemoryStorage, StorageBackend

logger = structlog.get_logger(__name__)

EXPORT_VERSION = "1.0"
CSV_BOM = "\ufeff"
CSV_HEADER = ["المعلمة", "الطالبة", "الصفحة", "الأخطاء", "التاريخ والوقت", "التقييم"]
UNKNOWN_NAME = "غير معروف"

ExportFormat = Literal["json", "csv"]
T = TypeVar("T")


@dataclass(frozen=True)
class RecitationInput:
    """Fields supplied when recording a recitation."""

    teacher_id: str
    student_id: str
    page_number: int
    error_count: int
    is_bulk_import: bool = False


@dataclass(frozen=True)
class ImportResult:
    """Counts of records merged by an import."""

    teachers: int = 0
    students: int = 0
    recitations: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.teachers + self.students + self.recitations


class RecitationStore:
    """In-memory collections mirrored to a storage backend."""

    def __init__(
        self,
        storage: StorageBackend | None = None,
        max_records: int = MAX_RECORDS,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.storage = storage if storage is not None else MemoryStorage()
        self.max_records = max_records
        self._clock = clock
        self._teachers: list[Teacher] = self._load("teachers", Teacher.from_dict)
        self._students: list[Student] = self._load("students", Student.from_dict)
        self._recitations: list[Recitation] = self._load("recitations", Recitation.from_dict)

    # -------------------------------------------------------------------------
    # Persistence
    # -------------------------------------------------------------------------

    def _load(self, key: str, parse: Callable[[dict[str, Any]], T]) -> list[T]:
        records = self.storage.load(key)
        if records is None:
            return []

        items: list[T] = []
        for raw in records:
            try:
                items.append(parse(raw))
            except (KeyError, TypeError, ValueError, AttributeError, OutOfRangeError) as e:
                logger.warning("store_record_skipped", key=key, error=str(e))
        logger.debug("store_loaded", key=key, records=len(items))
        return items

    def _persist(self, *keys: str) -> None:
        collections = dict(zip(STORAGE_KEYS, (self._teachers, self._students, self._recitations)))
        for key in keys:
            self.storage.save(key, [item.to_dict() for item in collections[key]])

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    @property
    def total_records(self) -> int:
        return len(self._teachers) + len(self._students) + len(self._recitations)

    def list_teachers(self) -> list[Teacher]:
        return list(self._teachers)

    def list_students(self) -> list[Student]:
        return list(self._students)

    def list_recitations(self) -> list[Recitation]:
        """All recitations, newest recorded first."""
        return list(self._recitations)

    def get_teacher(self, teacher_id: str) -> Teacher | None:
        for teacher in self._teachers:
            if teacher.id == teacher_id:
                return teacher
        return None

    def get_student(self, student_id: str) -> Student | None:
        for student in self._students:
            if student.id == student_id:
                return student
        return None

    def _check_capacity(self, requested: int) -> None:
        if self.total_records + requested > self.max_records:
            logger.warning(
                "capacity_exceeded",
                current=self.total_records,
                requested=requested,
                limit=self.max_records,
            )
            raise CapacityExceededError(self.total_records, requested, self.max_records)

    # -------------------------------------------------------------------------
    # Teachers and students
    # -------------------------------------------------------------------------

    def add_teacher(self, name: str) -> Teacher:
        """Add a teacher.

        Raises:
            ValueError: If name is blank
            CapacityExceededError: If the store is full
        """
        name = _clean_name(name)
        self._check_capacity(1)
        teacher = Teacher(id=generate_id("teacher"), name=name, created_at=self._clock())
        self._teachers.append(teacher)
        self._persist("teachers")
        logger.info("teacher_added", teacher_id=teacher.id)
        return teacher

    def delete_teacher(self, teacher_id: str) -> bool:
        """Delete a teacher and every recitation they listened to.

        Returns:
            True if the teacher existed
        """
        if self.get_teacher(teacher_id) is None:
            return False

        before = len(self._recitations)
        self._teachers = [t for t in self._teachers if t.id != teacher_id]
        self._recitations = [r for r in self._recitations if r.teacher_id != teacher_id]
        self._persist("teachers", "recitations")
        logger.info(
            "teacher_deleted",
            teacher_id=teacher_id,
            recitations_removed=before - len(self._recitations),
        )
        return True

    def add_student(self, name: str) -> Student:
        """Add a student.

        Raises:
            ValueError: If name is blank
            CapacityExceededError: If the store is full
        """
        name = _clean_name(name)
        self._check_capacity(1)
        student = Student(id=generate_id("student"), name=name, created_at=self._clock())
        self._students.append(student)
        self._persist("students")
        logger.info("student_added", student_id=student.id)
        return student

    def add_students(self, names: Iterable[str]) -> list[Student]:
        """Add several students at once; blank names are skipped.

        The whole batch is refused if it does not fit under the cap.
        """
        cleaned = [n.strip() for n in names if n and n.strip()]
        if not cleaned:
            return []

        self._check_capacity(len(cleaned))
        now = self._clock()
        added = [Student(id=generate_id("student"), name=n, created_at=now) for n in cleaned]
        self._students.extend(added)
        self._persist("students")
        logger.info("students_added", count=len(added))
        return added

    def delete_student(self, student_id: str) -> bool:
        """Delete a student and all of their recitations.

        Returns:
            True if the student existed
        """
        if self.get_student(student_id) is None:
            return False

        before = len(self._recitations)
        self._students = [s for s in self._students if s.id != student_id]
        self._recitations = [r for r in self._recitations if r.student_id != student_id]
        self._persist("students", "recitations")
        logger.info(
            "student_deleted",
            student_id=student_id,
            recitations_removed=before - len(self._recitations),
        )
        return True

    # -------------------------------------------------------------------------
    # Recitations
    # -------------------------------------------------------------------------

    def _build_recitation(self, item: RecitationInput, timestamp: datetime) -> Recitation:
        if self.get_teacher(item.teacher_id) is None:
            raise EntityNotFoundError("Teacher", item.teacher_id)
        if self.get_student(item.student_id) is None:
            raise EntityNotFoundError("Student", item.student_id)
        return Recitation(
            id=generate_id("reading"),
            teacher_id=item.teacher_id,
            student_id=item.student_id,
            page_number=validate_page_number(item.page_number),
            error_count=validate_error_count(item.error_count),
            timestamp=timestamp,
            is_bulk_import=item.is_bulk_import,
        )

    def add_recitation(
        self,
        teacher_id: str,
        student_id: str,
        page_number: int,
        error_count: int,
        is_bulk_import: bool = False,
        timestamp: datetime | None = None,
    ) -> Recitation:
        """Record one recitation.

        Args:
            teacher_id: Listening teacher
            student_id: Reciting student
            page_number: Page recited (1..604)
            error_count: Mistakes made (>= 0)
            is_bulk_import: Marks records entered in bulk
            timestamp: When it happened; defaults to now

        Raises:
            EntityNotFoundError: If the teacher or student does not exist
            OutOfRangeError: If page_number or error_count are out of bounds
            CapacityExceededError: If the store is full
        """
        item = RecitationInput(teacher_id, student_id, page_number, error_count, is_bulk_import)
        recitation = self._build_recitation(item, timestamp or self._clock())
        self._check_capacity(1)

        self._recitations.insert(0, recitation)
        self._persist("recitations")
        logger.info(
            "recitation_added",
            recitation_id=recitation.id,
            page_number=recitation.page_number,
            rating=recitation.rating.value,
        )
        return recitation

    def add_recitation_batch(self, items: Iterable[RecitationInput]) -> list[Recitation]:
        """Record several recitations at once.

        Every item is validated before anything is stored; the whole batch
        is refused if it does not fit under the cap.
        """
        now = self._clock()
        batch = [self._build_recitation(item, now) for item in items]
        if not batch:
            return []

        self._check_capacity(len(batch))
        self._recitations[:0] = batch
        self._persist("recitations")
        logger.info("recitation_batch_added", count=len(batch))
        return batch

    # -------------------------------------------------------------------------
    # Export / import
    # -------------------------------------------------------------------------

    def export_data(self, fmt: ExportFormat = "json") -> str:
        """Export the store.

        Args:
            fmt: "json" for a re-importable bundle, "csv" for a report

        Returns:
            The serialized export as text
        """
        if fmt == "json":
            return json.dumps(self.export_bundle(), indent=2, ensure_ascii=False)
        if fmt == "csv":
            return self.export_csv()
        raise ValueError(f"Unsupported export format: {fmt}")

    def export_bundle(self) -> dict[str, Any]:
        """JSON-serializable backup bundle."""
        return {
            "version": EXPORT_VERSION,
            "exportDate": format_timestamp(self._clock()),
            "teachers": [t.to_dict() for t in self._teachers],
            "students": [s.to_dict() for s in self._students],
            "readings": [r.to_dict() for r in self._recitations],
            "totalRecords": self.total_records,
        }

    def export_csv(self) -> str:
        """CSV report with a UTF-8 BOM and every field quoted."""
        teacher_names = {t.id: t.name for t in self._teachers}
        student_names = {s.id: s.name for s in self._students}

        buffer = io.StringIO()
        writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
        writer.writerow(CSV_HEADER)
        for r in self._recitations:
            writer.writerow(
                [
                    teacher_names.get(r.teacher_id, UNKNOWN_NAME),
                    student_names.get(r.student_id, UNKNOWN_NAME),
                    r.page_number,
                    r.error_count,
                    r.timestamp.strftime("%Y/%m/%d %H:%M:%S"),
                    classify_rating(r.error_count).label_ar,
                ]
            )

        logger.info("csv_exported", recitations=len(self._recitations))
        return CSV_BOM + buffer.getvalue()

    def import_data(self, blob: dict[str, Any] | str | bytes) -> ImportResult:
        """Merge an exported bundle into the store.

        Every list is parsed before anything is merged, so a malformed
        payload leaves the store untouched. Records whose id already
        exists are skipped.

        Raises:
            ImportMalformedError: If the payload or any record is malformed
            CapacityExceededError: If the merge would exceed the cap
        """
        data = _decode_blob(blob)

        teachers = _parse_list(data, ("teachers",), Teacher.from_dict)
        students = _parse_list(data, ("students",), Student.from_dict)
        recitations = _parse_list(data, ("readings", "recitations"), Recitation.from_dict)

        new_teachers = _new_only(teachers, {t.id for t in self._teachers})
        new_students = _new_only(students, {s.id for s in self._students})
        new_recitations = _new_only(recitations, {r.id for r in self._recitations})
        skipped = (
            len(teachers) + len(students) + len(recitations)
            - len(new_teachers) - len(new_students) - len(new_recitations)
        )

        self._check_capacity(len(new_teachers) + len(new_students) + len(new_recitations))

        self._teachers.extend(new_teachers)
        self._students.extend(new_students)
        self._recitations.extend(new_recitations)
        self._persist("teachers", "students", "recitations")

        result = ImportResult(
            teachers=len(new_teachers),
            students=len(new_students),
            recitations=len(new_recitations),
            skipped=skipped,
        )
        logger.info(
            "data_imported",
            teachers=result.teachers,
            students=result.students,
            recitations=result.recitations,
            skipped=result.skipped,
        )
        return result

    def clear(self) -> None:
        """Remove every record from memory and from the backend."""
        self._teachers = []
        self._students = []
        self._recitations = []
        for key in STORAGE_KEYS:
            self.storage.delete(key)
        logger.info("store_cleared")


# =============================================================================
# HELPERS
# =============================================================================


def _clean_name(name: str) -> str:
    cleaned = (name or "").strip()
    if not cleaned:
        raise ValueError("Name cannot be empty")
    return cleaned


def _decode_blob(blob: dict[str, Any] | str | bytes) -> dict[str, Any]:
    if isinstance(blob, (str, bytes)):
        try:
            blob = json.loads(blob)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ImportMalformedError(f"Import is not valid JSON: {e}") from e
    if not isinstance(blob, dict):
        raise ImportMalformedError("Import must be a JSON object")
    return blob


def _parse_list(
    data: dict[str, Any],
    keys: tuple[str, ...],
    parse: Callable[[dict[str, Any]], T],
) -> list[T]:
    key = next((k for k in keys if k in data), None)
    if key is None or data[key] is None:
        return []

    raw = data[key]
    if not isinstance(raw, list):
        raise ImportMalformedError(f"'{key}' must be a list")

    items: list[T] = []
    for index, record in enumerate(raw):
        if not isinstance(record, dict):
            raise ImportMalformedError(f"{key}[{index}] is not an object")
        try:
            items.append(parse(record))
        except KeyError as e:
            raise ImportMalformedError(f"{key}[{index}] is missing field {e}") from e
        except (TypeError, ValueError, AttributeError, OutOfRangeError) as e:
            raise ImportMalformedError(f"{key}[{index}] is invalid: {e}") from e
    return items


def _new_only(items: list[T], existing_ids: set[str]) -> list[T]:
    seen = set(existing_ids)
    fresh: list[T] = []
    for item in items:
        item_id = item.id  # type: ignore[attr-defined]
        if item_id in seen:
            continue
        seen.add(item_id)
        fresh.append(item)
    return fresh

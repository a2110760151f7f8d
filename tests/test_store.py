"""Tests for the recitation store."""

import csv
import io
import json

import pytest

from tilawa.core.models import (
    CapacityExceededError,
    EntityNotFoundError,
    ImportMalformedError,
    OutOfRangeError,
)
from tilawa.core.storage import MemoryStorage
from tilawa.core.store import (
    CSV_BOM,
    CSV_HEADER,
    UNKNOWN_NAME,
    RecitationInput,
    RecitationStore,
)


@pytest.fixture
def seeded(store):
    """Store with one teacher, two students and three recitations."""
    teacher = store.add_teacher("Fatimah")
    s1, s2 = store.add_students(["Maryam", "Aisha"])
    store.add_recitation(teacher.id, s1.id, 1, 2)
    store.add_recitation(teacher.id, s1.id, 2, 8)
    store.add_recitation(teacher.id, s2.id, 3, 11)
    return store, teacher, s1, s2


class TestRoster:
    """Tests for teacher and student management."""

    def test_add_teacher(self, store, now):
        teacher = store.add_teacher("  Fatimah ")
        assert teacher.name == "Fatimah"
        assert teacher.id.startswith("teacher_")
        assert teacher.created_at == now
        assert store.list_teachers() == [teacher]

    def test_blank_name_rejected(self, store):
        with pytest.raises(ValueError):
            store.add_student("   ")

    def test_add_students_skips_blank(self, store):
        added = store.add_students(["Maryam", "", "  ", "Aisha"])
        assert [s.name for s in added] == ["Maryam", "Aisha"]
        assert all(s.id.startswith("student_") for s in added)

    def test_lists_are_copies(self, store):
        store.add_teacher("Fatimah")
        store.list_teachers().clear()
        assert len(store.list_teachers()) == 1

    def test_get_missing(self, store):
        assert store.get_teacher("nope") is None
        assert store.get_student("nope") is None


class TestRecitations:
    """Tests for recording recitations."""

    def test_newest_first(self, seeded):
        store, *_ = seeded
        assert [r.page_number for r in store.list_recitations()] == [3, 2, 1]

    def test_out_of_range_rejected(self, seeded):
        store, teacher, s1, _ = seeded
        with pytest.raises(OutOfRangeError):
            store.add_recitation(teacher.id, s1.id, 605, 0)
        with pytest.raises(OutOfRangeError):
            store.add_recitation(teacher.id, s1.id, 10, -1)
        assert len(store.list_recitations()) == 3

    def test_unknown_references_rejected(self, seeded):
        store, teacher, s1, _ = seeded
        with pytest.raises(EntityNotFoundError):
            store.add_recitation("teacher_missing", s1.id, 1, 0)
        with pytest.raises(EntityNotFoundError) as exc_info:
            store.add_recitation(teacher.id, "student_missing", 1, 0)
        assert exc_info.value.entity_id == "student_missing"
        assert len(store.list_recitations()) == 3

    def test_batch_prepended_in_order(self, seeded):
        store, teacher, s1, s2 = seeded
        added = store.add_recitation_batch(
            [
                RecitationInput(teacher.id, s1.id, 10, 0, is_bulk_import=True),
                RecitationInput(teacher.id, s2.id, 11, 1, is_bulk_import=True),
            ]
        )
        assert len(added) == 2
        assert [r.page_number for r in store.list_recitations()][:2] == [10, 11]
        assert all(r.is_bulk_import for r in added)

    def test_batch_all_or_nothing(self, seeded):
        """One bad item leaves the whole batch unstored."""
        store, teacher, s1, _ = seeded
        with pytest.raises(OutOfRangeError):
            store.add_recitation_batch(
                [
                    RecitationInput(teacher.id, s1.id, 10, 0),
                    RecitationInput(teacher.id, s1.id, 0, 0),
                ]
            )
        assert len(store.list_recitations()) == 3


class TestCapacity:
    """Tests for the record cap."""

    def test_single_add_refused_when_full(self, now):
        store = RecitationStore(MemoryStorage(), max_records=3, clock=lambda: now)
        teacher = store.add_teacher("Fatimah")
        student = store.add_student("Maryam")
        store.add_recitation(teacher.id, student.id, 1, 0)

        with pytest.raises(CapacityExceededError) as exc_info:
            store.add_recitation(teacher.id, student.id, 2, 0)
        assert exc_info.value.limit == 3
        assert store.total_records == 3

    def test_batch_refused_when_it_overflows(self, now):
        store = RecitationStore(MemoryStorage(), max_records=4, clock=lambda: now)
        teacher = store.add_teacher("Fatimah")
        student = store.add_student("Maryam")
        items = [RecitationInput(teacher.id, student.id, p, 0) for p in (1, 2, 3)]

        with pytest.raises(CapacityExceededError):
            store.add_recitation_batch(items)
        assert store.list_recitations() == []

    def test_default_cap(self, store):
        assert store.max_records == 999


class TestCascade:
    """Tests for cascading deletes."""

    def test_delete_student(self, seeded):
        store, _, s1, s2 = seeded
        assert store.delete_student(s1.id) is True
        assert {r.student_id for r in store.list_recitations()} == {s2.id}
        assert store.get_student(s1.id) is None

    def test_delete_teacher(self, seeded):
        store, teacher, *_ = seeded
        assert store.delete_teacher(teacher.id) is True
        assert store.list_recitations() == []

    def test_delete_missing(self, store):
        assert store.delete_student("student_missing") is False
        assert store.delete_teacher("teacher_missing") is False


class TestExport:
    """Tests for JSON and CSV export."""

    def test_json_bundle(self, seeded):
        store, *_ = seeded
        bundle = json.loads(store.export_data("json"))
        assert bundle["version"] == "1.0"
        assert bundle["exportDate"] == "2024-03-15T12:00:00.000000Z"
        assert len(bundle["readings"]) == 3
        assert bundle["totalRecords"] == store.total_records == 6
        assert bundle["readings"][0]["teacherId"]

    def test_csv(self, seeded):
        store, *_ = seeded
        content = store.export_data("csv")
        assert content.startswith(CSV_BOM)

        rows = list(csv.reader(io.StringIO(content[len(CSV_BOM):])))
        assert rows[0] == CSV_HEADER
        assert len(rows) == 4
        assert rows[1] == ["Fatimah", "Aisha", "3", "11", "2024/03/15 12:00:00", "يحتاج تركيز"]

    def test_csv_quotes_every_field(self, seeded):
        store, *_ = seeded
        header_line = store.export_csv()[len(CSV_BOM):].splitlines()[0]
        assert header_line == '"المعلمة","الطالبة","الصفحة","الأخطاء","التاريخ والوقت","التقييم"'

    def test_csv_unknown_names(self, seeded):
        store, *_ = seeded
        store._teachers = []  # orphan every recitation
        content = store.export_csv()
        assert UNKNOWN_NAME in content

    def test_unsupported_format(self, store):
        with pytest.raises(ValueError):
            store.export_data("xml")


class TestImport:
    """Tests for importing backups."""

    def test_round_trip_into_empty_store(self, seeded, now):
        store, *_ = seeded
        target = RecitationStore(MemoryStorage(), clock=lambda: now)

        result = target.import_data(store.export_data("json"))

        assert result.teachers == 1
        assert result.students == 2
        assert result.recitations == 3
        assert set(target.list_teachers()) == set(store.list_teachers())
        assert set(target.list_students()) == set(store.list_students())
        assert set(target.list_recitations()) == set(store.list_recitations())

    def test_round_trip_keeps_sub_millisecond_times(self):
        """Records created on the live clock survive export and import unchanged."""
        store = RecitationStore(MemoryStorage())
        teacher = store.add_teacher("Fatimah")
        student = store.add_student("Maryam")
        store.add_recitation(teacher.id, student.id, 4, 1)
        target = RecitationStore(MemoryStorage())

        target.import_data(store.export_data("json"))

        assert set(target.list_teachers()) == set(store.list_teachers())
        assert set(target.list_students()) == set(store.list_students())
        assert set(target.list_recitations()) == set(store.list_recitations())

    def test_existing_ids_skipped(self, seeded):
        store, *_ = seeded
        result = store.import_data(store.export_bundle())
        assert result.total == 0
        assert result.skipped == 6
        assert store.total_records == 6

    def test_accepts_recitations_key(self, seeded, now):
        store, *_ = seeded
        payload = {"recitations": [r.to_dict() for r in store.list_recitations()]}
        target = RecitationStore(MemoryStorage(), clock=lambda: now)
        assert target.import_data(payload).recitations == 3

    @pytest.mark.parametrize(
        "payload",
        [
            "not json",
            b"[1, 2]",
            {"teachers": "nope"},
            {"students": [{"id": "student_x"}]},
            {"teachers": [{"id": "teacher_x", "name": None, "createdAt": "2024-01-01T00:00:00Z"}]},
            {"readings": [{"id": "r", "teacherId": "t", "studentId": "s",
                           "pageNumber": 0, "errorCount": 1,
                           "timestamp": "2024-03-15T12:00:00Z"}]},
        ],
    )
    def test_malformed_leaves_store_unchanged(self, seeded, payload):
        store, *_ = seeded
        before = (store.list_teachers(), store.list_students(), store.list_recitations())

        with pytest.raises(ImportMalformedError):
            store.import_data(payload)

        assert (store.list_teachers(), store.list_students(), store.list_recitations()) == before

    def test_valid_lists_not_merged_when_later_list_is_bad(self, store):
        payload = {
            "teachers": [{"id": "teacher_x", "name": "X", "createdAt": "2024-01-01T00:00:00Z"}],
            "readings": [{"id": "broken"}],
        }
        with pytest.raises(ImportMalformedError):
            store.import_data(payload)
        assert store.list_teachers() == []

    def test_import_capacity(self, seeded, now):
        store, *_ = seeded
        small = RecitationStore(MemoryStorage(), max_records=5, clock=lambda: now)
        with pytest.raises(CapacityExceededError):
            small.import_data(store.export_bundle())
        assert small.total_records == 0


class TestPersistence:
    """Tests for the backend hand-off."""

    def test_reload_from_backend(self, now):
        storage = MemoryStorage()
        store = RecitationStore(storage, clock=lambda: now)
        teacher = store.add_teacher("Fatimah")
        student = store.add_student("Maryam")
        store.add_recitation(teacher.id, student.id, 7, 4)

        reloaded = RecitationStore(storage)
        assert reloaded.list_teachers() == [teacher]
        assert reloaded.list_recitations() == store.list_recitations()

    def test_reload_keeps_microseconds(self, now):
        storage = MemoryStorage()
        precise = now.replace(microsecond=788390)
        store = RecitationStore(storage, clock=lambda: precise)
        teacher = store.add_teacher("Fatimah")

        reloaded = RecitationStore(storage)
        assert reloaded.list_teachers() == [teacher]
        assert reloaded.list_teachers()[0].created_at.microsecond == 788390

    def test_bad_records_skipped_on_load(self, now):
        storage = MemoryStorage(
            {"teachers": [{"id": "teacher_1", "name": "A", "createdAt": "2024-01-01T00:00:00Z"},
                          {"name": "missing id"}]}
        )
        store = RecitationStore(storage)
        assert [t.id for t in store.list_teachers()] == ["teacher_1"]

    def test_clear(self, seeded):
        store, *_ = seeded
        store.clear()
        assert store.total_records == 0
        assert RecitationStore(store.storage).total_records == 0

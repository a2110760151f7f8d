"""Tests for the tilawa CLI commands."""

import json

import pytest
from typer.testing import CliRunner

from tilawa.cli.commands import app
from tilawa.core.storage import JsonFileStorage
from tilawa.core.store import CSV_BOM, RecitationStore

runner = CliRunner()


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def invoke(data_dir):
    """Run a CLI command against an isolated data directory."""

    def _invoke(*args, **kwargs):
        return runner.invoke(app, list(args), env={"TILAWA_DATA_DIR": str(data_dir)}, **kwargs)

    return _invoke


def _store(data_dir) -> RecitationStore:
    return RecitationStore(JsonFileStorage(data_dir / "state"))


@pytest.fixture
def people(invoke, data_dir):
    """Teacher and student ids created through the CLI."""
    invoke("add-teacher", "Fatimah")
    invoke("add-student", "Maryam")
    store = _store(data_dir)
    return store.list_teachers()[0].id, store.list_students()[0].id


class TestRoster:
    """Tests for roster commands."""

    def test_add_teacher(self, invoke, data_dir):
        result = invoke("add-teacher", "Fatimah")
        assert result.exit_code == 0
        assert "Teacher added" in result.stdout
        assert (data_dir / "state" / "teachers.json").exists()

    def test_add_several_students(self, invoke, data_dir):
        result = invoke("add-student", "Maryam", "Aisha")
        assert result.exit_code == 0
        assert [s.name for s in _store(data_dir).list_students()] == ["Maryam", "Aisha"]

    def test_blank_teacher_fails(self, invoke):
        result = invoke("add-teacher", "  ")
        assert result.exit_code == 1
        assert "✗" in result.stdout

    def test_list(self, invoke, people):
        result = invoke("students")
        assert result.exit_code == 0
        assert "Maryam" in result.stdout

    def test_list_empty(self, invoke):
        result = invoke("teachers")
        assert result.exit_code == 0
        assert "No teachers" in result.stdout

    def test_delete_student_cascades(self, invoke, people, data_dir):
        teacher_id, student_id = people
        invoke("record", "-t", teacher_id, "-s", student_id, "-p", "3")

        result = invoke("delete-student", student_id, "--yes")
        assert result.exit_code == 0
        store = _store(data_dir)
        assert store.list_students() == []
        assert store.list_recitations() == []

    def test_delete_teacher_cancelled(self, invoke, people, data_dir):
        teacher_id, _ = people
        result = invoke("delete-teacher", teacher_id, input="n\n")
        assert result.exit_code == 0
        assert len(_store(data_dir).list_teachers()) == 1

    def test_delete_missing(self, invoke):
        assert invoke("delete-teacher", "teacher_missing", "--yes").exit_code == 1


class TestRecord:
    """Tests for the record command."""

    def test_record(self, invoke, people, data_dir):
        teacher_id, student_id = people
        result = invoke("record", "-t", teacher_id, "-s", student_id, "-p", "50", "-e", "5")
        assert result.exit_code == 0
        assert "Very Good" in result.stdout
        assert "Ali 'Imran" in result.stdout
        assert _store(data_dir).list_recitations()[0].page_number == 50

    def test_page_out_of_range(self, invoke, people):
        teacher_id, student_id = people
        result = invoke("record", "-t", teacher_id, "-s", student_id, "-p", "605")
        assert result.exit_code == 1

    def test_unknown_teacher(self, invoke, people):
        _, student_id = people
        result = invoke("record", "-t", "teacher_missing", "-s", student_id, "-p", "1")
        assert result.exit_code == 1
        assert "teacher_missing" in result.stdout

    def test_recent(self, invoke, people):
        teacher_id, student_id = people
        invoke("record", "-t", teacher_id, "-s", student_id, "-p", "7")
        result = invoke("recent")
        assert result.exit_code == 0
        assert "Maryam" in result.stdout


class TestReports:
    """Tests for report commands."""

    def test_weekly_report(self, invoke, people):
        teacher_id, student_id = people
        invoke("record", "-t", teacher_id, "-s", student_id, "-p", "7")
        result = invoke("report", "--role", "student", "--window", "weekly")
        assert result.exit_code == 0
        assert "Maryam" in result.stdout
        assert "Total recitations: 1" in result.stdout

    def test_invalid_window(self, invoke):
        assert invoke("report", "--window", "yearly").exit_code != 0

    def test_student_report(self, invoke, people):
        teacher_id, student_id = people
        for errors in ("2", "1", "3"):
            invoke("record", "-t", teacher_id, "-s", student_id, "-p", "5", "-e", errors)
        result = invoke("student-report", student_id)
        assert result.exit_code == 0
        assert "✨" in result.stdout
        assert "Juz  1" in result.stdout

    def test_teacher_report(self, invoke, people):
        teacher_id, _ = people
        result = invoke("teacher-report", teacher_id)
        assert result.exit_code == 0
        assert "Fatimah" in result.stdout

    def test_page(self, invoke):
        result = invoke("page", "588")
        assert result.exit_code == 0
        assert "Al-Mutaffifin" in result.stdout
        assert invoke("page", "0").exit_code == 1


class TestBackup:
    """Tests for export, import and clear."""

    def test_export_import_round_trip(self, invoke, people, tmp_path):
        teacher_id, student_id = people
        invoke("record", "-t", teacher_id, "-s", student_id, "-p", "9")
        backup = tmp_path / "backup.json"

        assert invoke("export", "-o", str(backup)).exit_code == 0
        assert json.loads(backup.read_text(encoding="utf-8"))["totalRecords"] == 3

        other_dir = tmp_path / "other"
        result = runner.invoke(
            app, ["import", str(backup)], env={"TILAWA_DATA_DIR": str(other_dir)}
        )
        assert result.exit_code == 0
        assert "Imported 3 records" in result.stdout
        assert _store(other_dir).total_records == 3

    def test_export_csv(self, invoke, people, tmp_path):
        out = tmp_path / "report.csv"
        assert invoke("export", "--format", "csv", "-o", str(out)).exit_code == 0
        assert out.read_text(encoding="utf-8").startswith(CSV_BOM)

    def test_import_malformed(self, invoke, tmp_path):
        bad = tmp_path / "bad.json"
        bad.write_text('{"teachers": [{"name": "no id"}]}', encoding="utf-8")
        result = invoke("import", str(bad))
        assert result.exit_code == 1
        assert "Import failed" in result.stdout

    def test_import_missing_file(self, invoke, tmp_path):
        assert invoke("import", str(tmp_path / "missing.json")).exit_code == 1

    def test_clear(self, invoke, people, data_dir):
        assert invoke("clear", "--yes").exit_code == 0
        assert _store(data_dir).total_records == 0

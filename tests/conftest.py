"""Shared fixtures for the recitation tracker tests."""

from datetime import datetime, timedelta, timezone
from itertools import count

import pytest

from tilawa.config.app_config import BACKEND_ENV, clear_config_cache
from tilawa.core.models import Recitation, Student, Teacher
from tilawa.core.storage import MemoryStorage
from tilawa.core.store import RecitationStore

# Friday, midday UTC
NOW = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch):
    """Every test starts from default configuration."""
    monkeypatch.delenv(BACKEND_ENV, raising=False)
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_recitation():
    """Factory for recitations with sensible defaults."""
    ids = count(1)

    def _make(
        error_count: int = 0,
        page_number: int = 1,
        teacher_id: str = "teacher_a",
        student_id: str = "student_a",
        timestamp: datetime | None = None,
        minutes_ago: int | None = None,
    ) -> Recitation:
        if timestamp is None:
            offset = minutes_ago if minutes_ago is not None else 0
            timestamp = NOW - timedelta(minutes=offset)
        return Recitation(
            id=f"reading_{next(ids)}",
            teacher_id=teacher_id,
            student_id=student_id,
            page_number=page_number,
            error_count=error_count,
            timestamp=timestamp,
        )

    return _make


@pytest.fixture
def make_history(make_recitation):
    """Build a time-ascending history from a list of error counts."""

    def _make(errors: list[int], page_number: int = 30, **kwargs) -> list[Recitation]:
        start = NOW - timedelta(hours=len(errors))
        return [
            make_recitation(
                error_count=e,
                page_number=page_number,
                timestamp=start + timedelta(hours=i),
                **kwargs,
            )
            for i, e in enumerate(errors)
        ]

    return _make


@pytest.fixture
def teacher():
    return Teacher(id="teacher_a", name="Fatimah", created_at=NOW - timedelta(days=60))


@pytest.fixture
def student():
    return Student(id="student_a", name="Maryam", created_at=NOW - timedelta(days=60))


@pytest.fixture
def store():
    """Empty in-memory store with a fixed clock."""
    return RecitationStore(storage=MemoryStorage(), clock=lambda: NOW)

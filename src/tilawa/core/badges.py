"""Badge engine.

Badges are never persisted; they are recomputed from a student's full
recitation history every time they are shown.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from tilawa.core.models import EXCELLENT_MAX_ERRORS, Recitation

FIRST_STEP_MIN = 1
DEDICATED_MIN = 10
HAFIZ_CLUB_MIN = 100
STREAK_LENGTH = 3
JUZ_1_FIRST_PAGE = 1
JUZ_1_LAST_PAGE = 21
JUZ_1_MIN_SESSIONS = 10


@dataclass(frozen=True)
class Badge:
    """An achievement marker from the static catalog."""

    id: str
    name: str
    icon: str
    description: str
    color: str

    def to_dict(self) -> dict[str, str]:
        return {
            "id": self.id,
            "name": self.name,
            "icon": self.icon,
            "description": self.description,
            "color": self.color,
        }


AVAILABLE_BADGES: tuple[Badge, ...] = (
    Badge("first_step", "بداية الطريق", "🌱", "سجل أول تلاوة", "bg-green-100 text-green-700 border-green-200"),
    Badge("perfect_streak", "تلاوة متقنة", "✨", "3 تلاوات متتالية بامتياز", "bg-yellow-100 text-yellow-700 border-yellow-200"),
    Badge("dedicated", "مجتهد", "🔥", "أتم 10 تلاوات", "bg-orange-100 text-orange-700 border-orange-200"),
    Badge("juz_1", "الجزء الأول", "🏆", "قرأ 10 صفحات من الجزء الأول", "bg-blue-100 text-blue-700 border-blue-200"),
    Badge("hafiz_club", "نادي الحفاظ", "👑", "أتم 100 تلاوة", "bg-purple-100 text-purple-700 border-purple-200"),
)

BADGES_BY_ID = {badge.id: badge for badge in AVAILABLE_BADGES}


def has_perfect_streak(recitations: Iterable[Recitation]) -> bool:
    """True if STREAK_LENGTH consecutive recitations were rated Excellent.

    The history is scanned in ascending timestamp order; any recitation
    above the Excellent ceiling resets the streak.
    """
    streak = 0
    for recitation in sorted(recitations, key=lambda r: r.timestamp):
        if recitation.error_count <= EXCELLENT_MAX_ERRORS:
            streak += 1
            if streak >= STREAK_LENGTH:
                return True
        else:
            streak = 0
    return False


def count_juz_1_sessions(recitations: Iterable[Recitation]) -> int:
    """Count sessions (not distinct pages) on pages 1-21."""
    return sum(
        1
        for r in recitations
        if JUZ_1_FIRST_PAGE <= r.page_number <= JUZ_1_LAST_PAGE
    )


def compute_badges(recitations: Iterable[Recitation]) -> list[Badge]:
    """Compute the badges earned by a single student.

    Args:
        recitations: The student's full recitation history, any order

    Returns:
        Earned badges in catalog order (empty for an empty history)
    """
    history = list(recitations)
    if not history:
        return []

    earned = {
        "first_step": len(history) >= FIRST_STEP_MIN,
        "perfect_streak": has_perfect_streak(history),
        "dedicated": len(history) >= DEDICATED_MIN,
        "juz_1": count_juz_1_sessions(history) >= JUZ_1_MIN_SESSIONS,
        "hafiz_club": len(history) >= HAFIZ_CLUB_MIN,
    }
    return [badge for badge in AVAILABLE_BADGES if earned[badge.id]]

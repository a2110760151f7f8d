"""Tests for the badge engine."""

from tilawa.core.badges import (
    AVAILABLE_BADGES,
    BADGES_BY_ID,
    compute_badges,
    count_juz_1_sessions,
    has_perfect_streak,
)


def _ids(badges):
    return [b.id for b in badges]


class TestCatalog:
    """Tests for the static badge catalog."""

    def test_catalog_order(self):
        assert _ids(AVAILABLE_BADGES) == [
            "first_step",
            "perfect_streak",
            "dedicated",
            "juz_1",
            "hafiz_club",
        ]

    def test_lookup_by_id(self):
        assert BADGES_BY_ID["hafiz_club"].icon == "👑"


class TestComputeBadges:
    """Tests for compute_badges."""

    def test_empty_history(self):
        """No history means no badges."""
        assert compute_badges([]) == []

    def test_short_excellent_streak(self, make_history):
        """Three excellent sessions earn first_step and perfect_streak only."""
        badges = compute_badges(make_history([2, 1, 3]))
        assert _ids(badges) == ["first_step", "perfect_streak"]

    def test_single_session(self, make_history):
        assert _ids(compute_badges(make_history([12]))) == ["first_step"]

    def test_dedicated(self, make_history):
        """Ten sessions earn dedicated; high errors block the streak."""
        badges = compute_badges(make_history([8] * 10))
        assert _ids(badges) == ["first_step", "dedicated"]

    def test_juz_1_counts_sessions(self, make_history):
        """Ten sessions on one page inside 1-21 are enough for juz_1."""
        badges = compute_badges(make_history([8] * 10, page_number=21))
        assert "juz_1" in _ids(badges)

    def test_juz_1_excludes_page_22(self, make_history):
        badges = compute_badges(make_history([8] * 10, page_number=22))
        assert "juz_1" not in _ids(badges)

    def test_hafiz_club(self, make_history):
        badges = compute_badges(make_history([5] * 100))
        assert _ids(badges) == ["first_step", "dedicated", "hafiz_club"]

    def test_result_in_catalog_order(self, make_history):
        """Order follows the catalog, not the order badges were earned."""
        history = make_history([1, 1, 1] + [8] * 7, page_number=5)
        assert _ids(compute_badges(history)) == [
            "first_step",
            "perfect_streak",
            "dedicated",
            "juz_1",
        ]


class TestPerfectStreak:
    """Tests for has_perfect_streak."""

    def test_streak_resets(self, make_history):
        """A session above three errors resets the count."""
        assert not has_perfect_streak(make_history([1, 1, 5, 1, 1]))

    def test_streak_anywhere(self, make_history):
        assert has_perfect_streak(make_history([9, 9, 0, 3, 2, 12]))

    def test_uses_timestamp_order(self, make_history):
        """Input order does not matter; timestamps do."""
        history = make_history([1, 1, 7, 1])
        shuffled = [history[3], history[0], history[2], history[1]]
        assert not has_perfect_streak(shuffled)

    def test_count_juz_1_sessions(self, make_recitation):
        recitations = [
            make_recitation(page_number=1),
            make_recitation(page_number=21),
            make_recitation(page_number=22),
            make_recitation(page_number=21),
        ]
        assert count_juz_1_sessions(recitations) == 3

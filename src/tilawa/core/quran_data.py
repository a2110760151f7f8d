"""Page-context lookup over the 604-page Madani layout.

Several short surahs share a page near the end of the mushaf. Their start
positions are stored as exact fractions of a page so that the table stays
strictly ordered without relying on float keys. When two entries start on
or before the same page, the later entry wins.
"""

from __future__ import annotations

from bisect import bisect_right
from dataclasses import dataclass
from fractions import Fraction

from tilawa.core.models import TOTAL_PAGES
from tilawa.core.progress import juz_for_page


@dataclass(frozen=True)
class SurahStart:
    """Position where a surah begins."""

    start_page: Fraction
    name: str


@dataclass(frozen=True)
class PageContext:
    """Juz and surah for a page."""

    page: int
    juz: int
    surah: str


def _s(start: int | str, name: str) -> SurahStart:
    return SurahStart(Fraction(start), name)


SURAH_STARTS: tuple[SurahStart, ...] = (
    _s(1, "Al-Fatiha"),
    _s(2, "Al-Baqarah"),
    _s(50, "Ali 'Imran"),
    _s(77, "An-Nisa"),
    _s(106, "Al-Ma'idah"),
    _s(128, "Al-An'am"),
    _s(151, "Al-A'raf"),
    _s(177, "Al-Anfal"),
    _s(187, "At-Tawbah"),
    _s(208, "Yunus"),
    _s(221, "Hud"),
    _s(235, "Yusuf"),
    _s(249, "Ar-Ra'd"),
    _s(255, "Ibrahim"),
    _s(262, "Al-Hijr"),
    _s(267, "An-Nahl"),
    _s(282, "Al-Isra"),
    _s(293, "Al-Kahf"),
    _s(305, "Maryam"),
    _s(312, "Ta-Ha"),
    _s(322, "Al-Anbiya"),
    _s(332, "Al-Hajj"),
    _s(342, "Al-Mu'minun"),
    _s(350, "An-Nur"),
    _s(359, "Al-Furqan"),
    _s(367, "Ash-Shu'ara"),
    _s(377, "An-Naml"),
    _s(385, "Al-Qasas"),
    _s(396, "Al-Ankabut"),
    _s(404, "Ar-Rum"),
    _s(411, "Luqman"),
    _s(415, "As-Sajdah"),
    _s(418, "Al-Ahzab"),
    _s(428, "Saba"),
    _s(434, "Fatir"),
    _s(440, "Ya-Sin"),
    _s(446, "As-Saffat"),
    _s(453, "Sad"),
    _s(458, "Az-Zumar"),
    _s(467, "Ghafir"),
    _s(477, "Fussilat"),
    _s(483, "Ash-Shura"),
    _s(489, "Az-Zukhruf"),
    _s(496, "Ad-Dukhan"),
    _s(499, "Al-Jathiyah"),
    _s(502, "Al-Ahqaf"),
    _s(507, "Muhammad"),
    _s(511, "Al-Fath"),
    _s(515, "Al-Hujurat"),
    _s(518, "Qaf"),
    _s(520, "Adh-Dhariyat"),
    _s(523, "At-Tur"),
    _s(526, "An-Najm"),
    _s(528, "Al-Qamar"),
    _s(531, "Ar-Rahman"),
    _s(534, "Al-Waqi'ah"),
    _s(537, "Al-Hadid"),
    _s(542, "Al-Mujadila"),
    _s(545, "Al-Hashr"),
    _s(549, "Al-Mumtahanah"),
    _s(551, "As-Saff"),
    _s(553, "Al-Jumu'ah"),
    _s(554, "Al-Munafiqun"),
    _s(556, "At-Taghabun"),
    _s(558, "At-Talaq"),
    _s(560, "At-Tahrim"),
    _s(562, "Al-Mulk"),
    _s(564, "Al-Qalam"),
    _s(566, "Al-Haqqah"),
    _s(568, "Al-Ma'arij"),
    _s(570, "Nuh"),
    _s(572, "Al-Jinn"),
    _s(574, "Al-Muzzammil"),
    _s(575, "Al-Muddaththir"),
    _s(577, "Al-Qiyamah"),
    _s(578, "Al-Insan"),
    _s(580, "Al-Mursalat"),
    _s(582, "An-Naba"),
    _s(583, "An-Nazi'at"),
    _s(585, "Abasa"),
    _s(586, "At-Takwir"),
    _s(587, "Al-Infitar"),
    _s("587.5", "Al-Mutaffifin"),
    _s(589, "Al-Inshiqaq"),
    _s(590, "Al-Buruj"),
    _s(591, "At-Tariq"),
    _s("591.5", "Al-A'la"),
    _s(592, "Al-Ghashiyah"),
    _s(593, "Al-Fajr"),
    _s(594, "Al-Balad"),
    _s(595, "Ash-Shams"),
    _s("595.5", "Al-Layl"),
    _s(596, "Ad-Duha"),
    _s("596.5", "Ash-Sharh"),
    _s(597, "At-Tin"),
    _s("597.5", "Al-Alaq"),
    _s(598, "Al-Qadr"),
    _s("598.5", "Al-Bayyinah"),
    _s(599, "Az-Zalzalah"),
    _s("599.5", "Al-Adiyat"),
    _s(600, "Al-Qari'ah"),
    _s("600.5", "At-Takathur"),
    _s(601, "Al-Asr"),
    _s("601.2", "Al-Humazah"),
    _s("601.5", "Al-Fil"),
    _s(602, "Quraysh"),
    _s("602.2", "Al-Ma'un"),
    _s("602.5", "Al-Kawthar"),
    _s(603, "Al-Kafirun"),
    _s("603.2", "An-Nasr"),
    _s("603.5", "Al-Masad"),
    _s(604, "Al-Ikhlas"),
    _s("604.2", "Al-Falaq"),
    _s("604.5", "An-Nas"),
)

_START_KEYS = [entry.start_page for entry in SURAH_STARTS]


def surah_for_page(page: int) -> str:
    """Name of the last surah starting on or before ``page``."""
    index = bisect_right(_START_KEYS, Fraction(page))
    if index == 0:
        return SURAH_STARTS[0].name
    return SURAH_STARTS[index - 1].name


def lookup_page_context(page: int) -> PageContext | None:
    """Resolve a page to its Juz and surah.

    Args:
        page: Page number in the 604-page layout

    Returns:
        PageContext, or None when page is outside 1..604
    """
    if isinstance(page, bool) or not isinstance(page, int):
        raise TypeError(f"page must be an integer, got {type(page).__name__}")
    if page < 1 or page > TOTAL_PAGES:
        return None
    return PageContext(page=page, juz=juz_for_page(page), surah=surah_for_page(page))

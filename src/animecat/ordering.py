"""Locale-aware and season-aware ordering of catalog titles.

Titles such as ``"Show X"``, ``"Show X 第二季"`` and ``"Show X Season 3"`` are
split into a base name plus an optional season ordinal so that sequels sort
next to each other and in numeric order instead of by raw string.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import TYPE_CHECKING

from pypinyin import lazy_pinyin

if TYPE_CHECKING:
    from animecat.models import LibraryEntry


# ---------------------------------------------------------------------------
# Collation
# ---------------------------------------------------------------------------


def collation_key(text: str) -> tuple[str, str]:
    """Return a sort key approximating a ``zh`` locale collation.

    Han characters are ordered by their pinyin reading and Latin text
    case-insensitively; the raw string breaks ties so that the ordering is
    total.

    Example:
        >>> sorted(["北京", "Anime", "阿"], key=collation_key)
        ['阿', 'Anime', '北京']
    """
    reading = "".join(lazy_pinyin(text)).casefold()
    return reading, text


def locale_compare(a: str, b: str) -> int:
    """Three-way comparison of two strings using :func:`collation_key`."""
    ka, kb = collation_key(a), collation_key(b)
    if ka < kb:
        return -1
    if ka > kb:
        return 1
    return 0


# ---------------------------------------------------------------------------
# Season parsing
# ---------------------------------------------------------------------------

_CHINESE_DIGITS: dict[str, int] = {
    "零": 0,
    "一": 1,
    "二": 2,
    "两": 2,
    "三": 3,
    "四": 4,
    "五": 5,
    "六": 6,
    "七": 7,
    "八": 8,
    "九": 9,
}

# "Show 第二季", "Show 第12期", "Show第三部"
_CHINESE_SEASON = re.compile(
    r"^(?P<base>.+?)\s*第\s*(?P<season>\d+|[零一二两三四五六七八九十]+)\s*[季期部]$"
)

# "Show S2", "Show Season 3"
_LATIN_SEASON = re.compile(r"^(?P<base>.+?)\s+(?:S|Season\s*)(?P<season>\d+)$", re.IGNORECASE)


def chinese_numeral_to_int(token: str) -> int | None:
    """Convert an Arabic or Chinese numeral token to an integer.

    Chinese numerals cover 0-99: with a ``十`` marker the left side supplies
    the tens digit (absent means 1) and the right side the ones digit
    (absent means 0).  Returns ``None`` for anything else.

    Example:
        >>> chinese_numeral_to_int("十二")
        12
        >>> chinese_numeral_to_int("二十")
        20
        >>> chinese_numeral_to_int("两")
        2
    """
    token = token.strip()
    if not token:
        return None
    if token.isdigit():
        return int(token)

    if "十" in token:
        left, _, right = token.partition("十")
        if len(left) > 1 or len(right) > 1:
            return None
        tens = _CHINESE_DIGITS.get(left) if left else 1
        ones = _CHINESE_DIGITS.get(right) if right else 0
        if tens is None or ones is None:
            return None
        return tens * 10 + ones

    if len(token) == 1:
        return _CHINESE_DIGITS.get(token)
    return None


@dataclass(frozen=True, slots=True)
class TitleKey:
    """A title split into its base name and optional season ordinal."""

    base: str
    season: int | None = None


def parse_title_key(title: str) -> TitleKey:
    """Split *title* into base name and season.

    Example:
        >>> parse_title_key("Show 第二季")
        TitleKey(base='Show', season=2)
        >>> parse_title_key("Show Season 3")
        TitleKey(base='Show', season=3)
        >>> parse_title_key("Show")
        TitleKey(base='Show', season=None)
    """
    trimmed = title.strip()

    m = _CHINESE_SEASON.match(trimmed)
    if m:
        season = chinese_numeral_to_int(m.group("season"))
        if season is not None:
            return TitleKey(base=m.group("base").strip(), season=season)

    m = _LATIN_SEASON.match(trimmed)
    if m:
        return TitleKey(base=m.group("base").strip(), season=int(m.group("season")))

    return TitleKey(base=trimmed)


# ---------------------------------------------------------------------------
# Sort keys
# ---------------------------------------------------------------------------

TitleSortKey = tuple[tuple[str, str], bool, int, tuple[str, str]]


def title_sort_key(title: str) -> TitleSortKey:
    """Season-aware sort key for a title.

    Titles are ordered by base name first.  Within one base the bare title
    (no season marker) leads, followed by its seasons in numeric order; the
    full title breaks any remaining tie.  Being a plain tuple, the ordering
    is total and independent of input order.

    Example:
        >>> sorted(["Show S10", "Show", "Show 第二季"], key=title_sort_key)
        ['Show', 'Show 第二季', 'Show S10']
    """
    key = parse_title_key(title)
    return (
        collation_key(key.base),
        key.season is not None,
        key.season if key.season is not None else 0,
        collation_key(title.strip()),
    )


def entry_sort_key(entry: LibraryEntry) -> TitleSortKey:
    return title_sort_key(entry.title)


def compare_titles(a: str, b: str) -> int:
    """Three-way comparison consistent with :func:`title_sort_key`."""
    ka, kb = title_sort_key(a), title_sort_key(b)
    if ka < kb:
        return -1
    if ka > kb:
        return 1
    return 0

"""Facet aggregation: selectable filter options with counts."""

from __future__ import annotations

import re
from collections import Counter
from typing import TYPE_CHECKING

from animecat.constants import ONGOING_KEYWORDS, STATUS_FINISHED, STATUS_LABELS, STATUS_ONGOING
from animecat.models import FacetOption, Facets
from animecat.ordering import collation_key

if TYPE_CHECKING:
    from collections.abc import Iterable

    from animecat.models import LibraryEntry

_ONGOING_PATTERN = re.compile("|".join(ONGOING_KEYWORDS), re.IGNORECASE)


def is_finished(entry: LibraryEntry) -> bool:
    """Return whether *entry* is finished with a positive, known episode count."""
    return entry.episodes > 0


def is_finished_text(value: str | int | None) -> bool:
    """Classify a free-text ``episodes`` value as used by older manifests.

    Any ongoing marker (未完/连载/更新中) means not finished; otherwise only a
    positive integer counts as finished.
    """
    if value is None:
        return False
    if isinstance(value, int):
        return value > 0
    text = value.strip()
    if _ONGOING_PATTERN.search(text):
        return False
    try:
        return int(text) > 0
    except ValueError:
        return False


def status_label(entry: LibraryEntry) -> str:
    return STATUS_FINISHED if is_finished(entry) else STATUS_ONGOING


def _sorted_options(counts: Counter[str]) -> list[FacetOption]:
    return [
        FacetOption(name=name, count=count)
        for name, count in sorted(counts.items(), key=lambda item: collation_key(item[0]))
    ]


def status_options(entries: Iterable[LibraryEntry]) -> list[FacetOption]:
    """Return the two fixed status buckets, finished first."""
    counts = Counter(status_label(e) for e in entries)
    return [FacetOption(name=label, count=counts[label]) for label in STATUS_LABELS]


def fansub_options(entries: Iterable[LibraryEntry]) -> list[FacetOption]:
    """Count every fansub token; an entry listing two groups counts for both."""
    counts: Counter[str] = Counter()
    for entry in entries:
        counts.update(entry.fansubs)
    return _sorted_options(counts)


def subtitle_options(entries: Iterable[LibraryEntry]) -> list[FacetOption]:
    counts: Counter[str] = Counter(e.subtitle_type for e in entries if e.subtitle_type)
    return _sorted_options(counts)


def quality_options(entries: Iterable[LibraryEntry]) -> list[FacetOption]:
    counts: Counter[str] = Counter(e.quality for e in entries if e.quality)
    return _sorted_options(counts)


def aggregate(entries: list[LibraryEntry]) -> Facets:
    """Derive all facet option lists from *entries*."""
    return Facets(
        status=status_options(entries),
        fansub=fansub_options(entries),
        subtitle_type=subtitle_options(entries),
        quality=quality_options(entries),
    )

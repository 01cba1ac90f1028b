"""Multi-facet filtering and free-text search over catalog entries."""

from __future__ import annotations

from typing import TYPE_CHECKING

from animecat.constants import STATUS_FINISHED
from animecat.facets import is_finished
from animecat.utils import normalize_text

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from animecat.models import FilterState, LibraryEntry


def _searchable_fields(entry: LibraryEntry) -> tuple[str, ...]:
    return (
        entry.title,
        entry.fansub,
        entry.subtitle_type,
        str(entry.episodes),
        entry.quality,
        entry.note,
        entry.group,
        entry.folder_name,
        entry.last_played_name,
    )


def matches_status(entry: LibraryEntry, selected: set[str]) -> bool:
    if not selected:
        return True
    finished = is_finished(entry)
    return any((value == STATUS_FINISHED) == finished for value in selected)


def matches_fansub(entry: LibraryEntry, selected: set[str]) -> bool:
    if not selected:
        return True
    return any(token in selected for token in entry.fansubs)


def matches_query(entry: LibraryEntry, keyword: str) -> bool:
    """Substring match of an already-normalized *keyword*."""
    if not keyword:
        return True
    return any(keyword in normalize_text(value) for value in _searchable_fields(entry) if value)


def build_predicate(state: FilterState, query: str) -> Callable[[LibraryEntry], bool]:
    """Combine facet selections and a search string into one inclusion test.

    Every active stage must pass.  The query is normalized once here; an
    empty query skips field normalization entirely.
    """
    keyword = normalize_text(query)
    status = set(state.status)
    fansub = set(state.fansub)
    subtitle = set(state.subtitle_type)
    quality = set(state.quality)

    def predicate(entry: LibraryEntry) -> bool:
        if not matches_status(entry, status):
            return False
        if not matches_fansub(entry, fansub):
            return False
        if subtitle and entry.subtitle_type not in subtitle:
            return False
        if quality and entry.quality not in quality:
            return False
        return matches_query(entry, keyword)

    return predicate


def apply_filters(
    entries: Iterable[LibraryEntry],
    state: FilterState,
    query: str = "",
) -> list[LibraryEntry]:
    """Return the entries passing :func:`build_predicate`, in input order."""
    predicate = build_predicate(state, query)
    return [entry for entry in entries if predicate(entry)]

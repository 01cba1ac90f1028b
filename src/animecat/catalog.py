"""In-memory catalog view: load, filter, group and select library entries.

The view owns the entry list returned by the catalog store.  Every mutating
operation recomputes the filtered list explicitly and then re-applies the
selection invariant:

* an empty filtered list clears the selection;
* a selection that dropped out of the filtered list moves to its first entry;
* otherwise the selection is left alone.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from animecat.exceptions import AnimecatError
from animecat.facets import aggregate
from animecat.filters import apply_filters
from animecat.models import EntryGroup, Facet, FilterState, LoadMode
from animecat.ordering import collation_key, entry_sort_key

if TYPE_CHECKING:
    from animecat.models import Facets, LibraryEntry
    from animecat.services import CatalogSource

log: structlog.stdlib.BoundLogger = structlog.get_logger()


class CatalogView:
    """Catalog state for one library root.

    Store failures never escape :meth:`load` / :meth:`refresh`; they are kept
    in :attr:`error` as a displayable message.
    """

    def __init__(self, store: CatalogSource, root_dir: str | Path) -> None:
        self._store = store
        self.root_dir = str(root_dir).strip()

        self.items: list[LibraryEntry] = []
        self.filters = FilterState()
        self.search = ""
        self.selected_id: str | None = None
        self.loading: LoadMode | None = None
        self.error = ""

        self._filtered: list[LibraryEntry] = []
        self._facets: Facets | None = None
        self._request_id = 0

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def load(self) -> list[LibraryEntry]:
        """Read entries from the store's cache."""
        return await self._fetch(LoadMode.LOAD)

    async def refresh(self) -> list[LibraryEntry]:
        """Force the store to rescan the library root."""
        return await self._fetch(LoadMode.REFRESH)

    async def _fetch(self, mode: LoadMode) -> list[LibraryEntry]:
        self._request_id += 1
        request_id = self._request_id
        self.loading = mode
        self.error = ""

        try:
            if mode is LoadMode.REFRESH:
                results = await self._store.force_rescan(self.root_dir)
            else:
                results = await self._store.load_cached(self.root_dir)
        except Exception as exc:  # noqa: BLE001
            if request_id != self._request_id:
                return []
            message = exc.message if isinstance(exc, AnimecatError) else str(exc)
            log.warning("failed to load library", root=self.root_dir, mode=mode.value, error=message)
            self.error = message
            self._set_items([])
            return []
        finally:
            if request_id == self._request_id:
                self.loading = None

        if request_id != self._request_id:
            log.debug("discarding stale catalog result", root=self.root_dir, mode=mode.value)
            return results

        log.debug("catalog loaded", root=self.root_dir, mode=mode.value, count=len(results))
        self._set_items(results)
        return results

    def _set_items(self, items: list[LibraryEntry]) -> None:
        self.items = list(items)
        self._facets = None
        self._recompute()

    # ------------------------------------------------------------------
    # Derived views
    # ------------------------------------------------------------------

    @property
    def facets(self) -> Facets:
        if self._facets is None:
            self._facets = aggregate(self.items)
        return self._facets

    @property
    def filtered(self) -> list[LibraryEntry]:
        return list(self._filtered)

    def grouped(self) -> list[EntryGroup]:
        """Partition the filtered list by ``group``.

        Groups are ordered by name, members by season-aware title order.
        """
        buckets: dict[str, list[LibraryEntry]] = {}
        for entry in self._filtered:
            buckets.setdefault(entry.group, []).append(entry)
        return [
            EntryGroup(name=name, items=sorted(buckets[name], key=entry_sort_key))
            for name in sorted(buckets, key=collation_key)
        ]

    @property
    def has_any_filter(self) -> bool:
        return not self.filters.is_empty()

    def _recompute(self) -> None:
        self._filtered = apply_filters(self.items, self.filters, self.search)
        self._sync_selection()

    def _sync_selection(self) -> None:
        if not self._filtered:
            self.selected_id = None
            return
        if not any(entry.id == self.selected_id for entry in self._filtered):
            self.selected_id = self._filtered[0].id

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def find(self, entry_id: str) -> LibraryEntry | None:
        return next((entry for entry in self.items if entry.id == entry_id), None)

    @property
    def selected(self) -> LibraryEntry | None:
        if self.selected_id is None:
            return None
        return self.find(self.selected_id)

    def select(self, entry_id: str) -> bool:
        """Select *entry_id*.

        Returns False, leaving the selection alone, when the entry is not in
        the filtered list.
        """
        if not any(entry.id == entry_id for entry in self._filtered):
            return False
        self.selected_id = entry_id
        return True

    # ------------------------------------------------------------------
    # Search & facets
    # ------------------------------------------------------------------

    def set_search(self, text: str) -> None:
        self.search = text
        self._recompute()

    def toggle(self, facet: Facet, value: str) -> None:
        self.filters.toggle(facet, value)
        self._recompute()

    def toggle_status(self, value: str) -> None:
        self.toggle(Facet.STATUS, value)

    def toggle_fansub(self, value: str) -> None:
        self.toggle(Facet.FANSUB, value)

    def toggle_subtitle(self, value: str) -> None:
        self.toggle(Facet.SUBTITLE_TYPE, value)

    def toggle_quality(self, value: str) -> None:
        self.toggle(Facet.QUALITY, value)

    def clear_all_filters(self) -> None:
        """Reset every facet selection; the search string is kept."""
        self.filters.clear()
        self._recompute()

    # ------------------------------------------------------------------
    # Play history
    # ------------------------------------------------------------------

    def record_playback(
        self,
        entry_id: str,
        file_path: str,
        file_name: str,
        played_at: int | None = None,
    ) -> LibraryEntry | None:
        """Patch the history fields of the entry with *entry_id* in place.

        This is the only client-side mutation of a loaded entry; it is
        superseded by the next load or refresh.
        """
        for index, entry in enumerate(self.items):
            if entry.id != entry_id:
                continue
            updated = entry.model_copy(
                update={
                    "last_played_path": file_path,
                    "last_played_name": file_name,
                    "last_played_at": played_at if played_at is not None else int(time.time()),
                }
            )
            self.items[index] = updated
            self._recompute()
            return updated
        return None

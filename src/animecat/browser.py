"""Directory drill-down inside a library entry's folder.

Listings are fetched asynchronously and cached per path.  A cached listing is
shown immediately when navigating, then replaced by a fresh fetch.  Every
fetch takes a token from a monotonically increasing counter and only applies
its result while that token is still the newest, so overlapping navigations
always resolve to the last one started.
"""

from __future__ import annotations

import asyncio
import re
import time
from typing import TYPE_CHECKING

import structlog

from animecat.constants import HOME_CRUMB_LABEL, HOME_CRUMB_PATH, MANIFEST_FILENAME
from animecat.exceptions import AnimecatError
from animecat.models import Breadcrumb, Page
from animecat.ordering import collation_key

if TYPE_CHECKING:
    from collections.abc import Iterable

    from animecat.catalog import CatalogView
    from animecat.models import FileEntry, LibraryEntry
    from animecat.services import DirectoryLister, HistorySink, PathOpener

log: structlog.stdlib.BoundLogger = structlog.get_logger()

_SEPARATORS = re.compile(r"[/\\]+")
_TRAILING_SEPARATORS = re.compile(r"[/\\]+$")


# ---------------------------------------------------------------------------
# Listing helpers
# ---------------------------------------------------------------------------


def filter_listing(entries: Iterable[FileEntry], *, include_audio: bool = True) -> list[FileEntry]:
    """Keep directories and recognized media files, never the manifest itself."""
    kept: list[FileEntry] = []
    for entry in entries:
        if entry.name.lower() == MANIFEST_FILENAME:
            continue
        if entry.is_dir or entry.is_video or (include_audio and entry.is_audio):
            kept.append(entry)
    return kept


def sort_listing(entries: Iterable[FileEntry]) -> list[FileEntry]:
    """Manifest-bearing entries first, then directories, then by name."""
    return sorted(
        entries,
        key=lambda e: (not e.has_manifest, not e.is_dir, collation_key(e.name)),
    )


def build_breadcrumbs(root: str, current: str) -> list[Breadcrumb]:
    """Derive the location trail from the entry root to *current*.

    Intermediate crumb paths reuse the root's separator style: backslashes
    when the root contains one, forward slashes otherwise.

    Example:
        >>> [c.label for c in build_breadcrumbs("/lib/Show", "/lib/Show/S1/extra")]
        ['主页', 'Show', 'S1', 'extra']
    """
    if not root:
        return []
    current = current or root

    def normalize(value: str) -> str:
        return _SEPARATORS.sub("/", value).removesuffix("/")

    root_norm = normalize(root)
    current_norm = normalize(current)
    root_parts = [part for part in root_norm.split("/") if part]
    root_label = root_parts[-1] if root_parts else root_norm

    relative = ""
    if current_norm == root_norm or current_norm.startswith(root_norm + "/"):
        relative = current_norm[len(root_norm) :].lstrip("/")
    rel_parts = [part for part in relative.split("/") if part]

    sep = "\\" if "\\" in root else "/"
    clean_root = _TRAILING_SEPARATORS.sub("", root)

    crumbs = [
        Breadcrumb(label=HOME_CRUMB_LABEL, path=HOME_CRUMB_PATH),
        Breadcrumb(label=root_label, path=root),
    ]
    acc: list[str] = []
    for part in rel_parts:
        acc.append(part)
        crumbs.append(Breadcrumb(label=part, path=clean_root + sep + sep.join(acc)))
    return crumbs


def _message(exc: Exception) -> str:
    return exc.message if isinstance(exc, AnimecatError) else str(exc)


# ---------------------------------------------------------------------------
# Browser
# ---------------------------------------------------------------------------


class DirectoryBrowser:
    """Browses the folder of the selected catalog entry.

    Listing errors are kept per path in :attr:`errors` and never affect other
    cached paths.  Play-history writes run in the background and their
    failures are only logged.
    """

    def __init__(
        self,
        catalog: CatalogView,
        lister: DirectoryLister,
        opener: PathOpener,
        history: HistorySink,
        *,
        include_audio: bool = True,
    ) -> None:
        self._catalog = catalog
        self._lister = lister
        self._opener = opener
        self._history = history
        self.include_audio = include_audio

        self.page = Page.LIBRARY
        self.root_path = ""
        self.current_path = ""
        self.entries: list[FileEntry] = []
        self.loading = False
        self.errors: dict[str, str] = {}
        self.cache: dict[str, list[FileEntry]] = {}

        self._request_id = 0
        self._background: set[asyncio.Task[None]] = set()

    @property
    def error(self) -> str:
        return self.errors.get(self.current_path, "")

    def breadcrumbs(self) -> list[Breadcrumb]:
        return build_breadcrumbs(self.root_path, self.current_path)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    async def open_detail(self, entry: LibraryEntry) -> bool:
        """Switch to the detail page rooted at *entry*'s folder.

        Entries hidden by the current filters cannot be opened; returns False
        and leaves the page unchanged for them.
        """
        if not self._catalog.select(entry.id):
            log.debug("entry not in filtered list", entry_id=entry.id)
            return False
        self.root_path = entry.path
        self.page = Page.DETAIL
        await self._navigate(entry.path)
        return True

    async def navigate_breadcrumb(self, path: str) -> None:
        if path == HOME_CRUMB_PATH:
            self.page = Page.LIBRARY
            return
        await self._navigate(path)

    async def _navigate(self, path: str) -> None:
        self.current_path = path
        cached = self.cache.get(path)
        self.entries = list(cached) if cached else []
        await self.fetch(path)

    async def fetch(self, path: str) -> None:
        """List *path* and apply the result unless a newer fetch has started."""
        self._request_id += 1
        request_id = self._request_id
        self.loading = True
        self.errors.pop(path, None)

        try:
            listed = await self._lister.list(path)
        except Exception as exc:  # noqa: BLE001
            if request_id != self._request_id:
                return
            message = _message(exc)
            log.warning("failed to list directory", path=path, error=message)
            self.errors[path] = message
            return
        finally:
            if request_id == self._request_id:
                self.loading = False

        if request_id != self._request_id:
            log.debug("discarding stale listing", path=path)
            return

        entries = sort_listing(filter_listing(listed, include_audio=self.include_audio))
        self.cache[path] = entries
        if path == self.current_path:
            self.entries = list(entries)

    def invalidate(self, path: str | None = None) -> None:
        """Drop the cached listing for *path*, or every listing."""
        if path is None:
            self.cache.clear()
        else:
            self.cache.pop(path, None)

    # ------------------------------------------------------------------
    # Opening files
    # ------------------------------------------------------------------

    async def open_entry(self, entry: FileEntry) -> None:
        """Descend into a directory, or open a file with the system application.

        Opening a video while a catalog entry is selected records it as that
        entry's last played file.
        """
        if entry.is_dir:
            await self._navigate(entry.path)
            return

        try:
            await self._opener.open_path(entry.path)
        except Exception as exc:  # noqa: BLE001
            message = _message(exc)
            log.warning("failed to open file", path=entry.path, error=message)
            self.errors[self.current_path] = message
            return

        selected = self._catalog.selected
        if entry.is_video and selected is not None:
            self._spawn_history_write(selected.id, entry.path, entry.name)
            self._catalog.record_playback(selected.id, entry.path, entry.name, int(time.time()))

    async def play_last(self) -> bool:
        """Reopen the selected entry's last played file, if any."""
        selected = self._catalog.selected
        if selected is None or not selected.last_played_path:
            return False
        try:
            await self._opener.open_path(selected.last_played_path)
        except Exception as exc:  # noqa: BLE001
            message = _message(exc)
            log.warning("failed to open file", path=selected.last_played_path, error=message)
            self.errors[self.current_path] = message
            return False
        return True

    async def open_folder(self, path: str | None = None) -> None:
        """Reveal *path* (default: the current directory) in the file manager."""
        target = path or self.current_path
        try:
            await self._opener.open_folder(target)
        except Exception as exc:  # noqa: BLE001
            message = _message(exc)
            log.warning("failed to open folder", path=target, error=message)
            self.errors[self.current_path] = message

    # ------------------------------------------------------------------
    # Play history
    # ------------------------------------------------------------------

    def _spawn_history_write(self, entry_id: str, file_path: str, file_name: str) -> None:
        task = asyncio.create_task(self._write_history(entry_id, file_path, file_name))
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _write_history(self, entry_id: str, file_path: str, file_name: str) -> None:
        try:
            await self._history.record(self._catalog.root_dir, entry_id, file_path, file_name)
        except Exception as exc:  # noqa: BLE001
            log.warning("failed to record play history", entry_id=entry_id, error=_message(exc))

    async def drain(self) -> None:
        """Wait for pending play-history writes."""
        if self._background:
            await asyncio.gather(*list(self._background), return_exceptions=True)

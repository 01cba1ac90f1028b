"""Interfaces of the collaborators the catalog core talks to.

The catalog view and directory browser only depend on these protocols; the
SQLite store, filesystem lister and system opener in this package are the
default implementations.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from animecat.models import FileEntry, LibraryEntry


class CatalogSource(Protocol):
    """Returns library entries for a root directory."""

    async def load_cached(self, root_dir: str) -> list[LibraryEntry]: ...

    async def force_rescan(self, root_dir: str) -> list[LibraryEntry]: ...


class DirectoryLister(Protocol):
    """Enumerates the nodes inside a directory."""

    async def list(self, path: str) -> list[FileEntry]: ...


class PathOpener(Protocol):
    """Hands paths over to the operating system."""

    async def open_path(self, path: str) -> None: ...

    async def open_folder(self, path: str) -> None: ...


class HistorySink(Protocol):
    """Persists the last played file of a library entry."""

    async def record(self, root_dir: str, entry_id: str, file_path: str, file_name: str) -> None: ...

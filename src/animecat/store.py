"""Manifest scanning and the SQLite catalog cache.

Each media folder may carry a ``manifest.yml`` describing it.  A rescan walks
the library root, turns every manifest into a :class:`LibraryEntry` and
replaces the cached rows for that root; a cached load only reads the rows
back, joined with the play history.

Directory layout::

    {library_dir}/anime-manager.sqlite                  # cache + play history
    {library_dir}/{group}/manifest.yml                  # is_parent: true
    {library_dir}/{group}/{title}/manifest.yml
"""

from __future__ import annotations

import os
import sqlite3
import time
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import anyio
import structlog
import yaml

from animecat.constants import CACHE_DB_FILENAME, MANIFEST_FILENAME
from animecat.exceptions import HistoryWriteError, LibraryNotFoundError, LoadError
from animecat.models import LibraryEntry

log: structlog.stdlib.BoundLogger = structlog.get_logger()


# ---------------------------------------------------------------------------
# Manifest parsing
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ManifestData:
    """Normalized content of one ``manifest.yml``."""

    title: str = ""
    is_parent: bool = False
    fansub: str = ""
    subtitle_type: str = ""
    episodes: int = 0
    quality: str = ""
    note: str = ""


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def normalize_episodes(value: Any) -> int:
    """Coerce an ``episodes`` value to an integer, 0 when unparseable."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return 0
    return 0


def parse_manifest(text: str) -> ManifestData:
    """Parse manifest YAML.

    Raises:
        yaml.YAMLError: If the text is not valid YAML.
    """
    raw = yaml.safe_load(text) or {}
    if not isinstance(raw, dict):
        raise yaml.YAMLError("manifest root must be a mapping")
    return ManifestData(
        title=_text(raw.get("title")),
        is_parent=bool(raw.get("is_parent", False)),
        fansub=_text(raw.get("fansub")),
        subtitle_type=_text(raw.get("subtitle_type")),
        episodes=normalize_episodes(raw.get("episodes")),
        quality=_text(raw.get("quality")),
        note=_text(raw.get("note")),
    )


def read_manifest_file(path: Path) -> ManifestData:
    return parse_manifest(path.read_text(encoding="utf-8"))


# ---------------------------------------------------------------------------
# Entry building
# ---------------------------------------------------------------------------


def _relative_dir(base: Path, folder: Path) -> str:
    try:
        relative = folder.relative_to(base)
    except ValueError:
        relative = folder
    text = relative.as_posix().replace("\\", "/")
    return "" if text == "." else text


def build_entry(base: Path, manifest_path: Path, data: ManifestData) -> LibraryEntry:
    """Turn one manifest into a library entry (group resolved separately)."""
    folder = manifest_path.parent
    relative_dir = _relative_dir(base, folder)
    folder_name = folder.name or relative_dir
    return LibraryEntry(
        id=f"{base}::{relative_dir}",
        title=data.title or folder_name,
        fansub=data.fansub,
        subtitle_type=data.subtitle_type,
        episodes=data.episodes,
        quality=data.quality,
        note=data.note,
        path=str(folder),
        folder_name=folder_name,
        group=folder_name,
        relative_dir=relative_dir,
    )


def resolve_group(base: Path, entry: LibraryEntry, parent_titles: dict[str, str]) -> str:
    """Pick the group label for *entry*.

    A manifest directly under the root is its own group.  Nested manifests
    use the nearest ancestor parent-manifest title, falling back to the first
    segment of the relative path.
    """
    folder = Path(entry.path)
    if folder.parent == base:
        return entry.title

    for ancestor in folder.parents:
        if ancestor == base or base not in ancestor.parents:
            break
        title = parent_titles.get(str(ancestor))
        if title:
            return title

    first = entry.relative_dir.split("/", 1)[0]
    return first or entry.folder_name


def find_manifests(base: Path) -> list[Path]:
    """Return every ``manifest.yml`` below *base*, in walk order."""
    found: list[Path] = []
    for dirpath, dirnames, filenames in os.walk(base):
        dirnames.sort()
        if MANIFEST_FILENAME in filenames:
            found.append(Path(dirpath) / MANIFEST_FILENAME)
    return found


def scan_library(base: Path) -> list[LibraryEntry]:
    """Scan *base* for manifests and build the entry list.

    Raises:
        LibraryNotFoundError: If *base* does not exist.
        LoadError: If a manifest cannot be read or is not valid YAML.
    """
    if not base.exists():
        raise LibraryNotFoundError(str(base))

    parsed: list[tuple[Path, ManifestData]] = []
    for manifest_path in find_manifests(base):
        try:
            data = read_manifest_file(manifest_path)
        except OSError as exc:
            raise LoadError(f"Failed to read {manifest_path}: {exc}") from exc
        except yaml.YAMLError as exc:
            raise LoadError(f"Invalid YAML {manifest_path}: {exc}") from exc
        parsed.append((manifest_path, data))

    parent_titles: dict[str, str] = {}
    for manifest_path, data in parsed:
        if data.is_parent:
            folder = manifest_path.parent
            parent_titles[str(folder)] = data.title or folder.name

    entries: list[LibraryEntry] = []
    for manifest_path, data in parsed:
        if data.is_parent:
            continue
        entry = build_entry(base, manifest_path, data)
        group = resolve_group(base, entry, parent_titles)
        entries.append(entry.model_copy(update={"group": group}))

    entries.sort(key=lambda e: (e.group, e.title))
    log.debug("scanned library", root=str(base), manifests=len(parsed), entries=len(entries))
    return entries


# ---------------------------------------------------------------------------
# SQLite cache
# ---------------------------------------------------------------------------

_SCHEMA = """
CREATE TABLE IF NOT EXISTS manifest_entries (
    id TEXT PRIMARY KEY,
    library_root TEXT NOT NULL,
    title TEXT,
    fansub TEXT,
    subtitle_type TEXT,
    episodes INTEGER,
    quality TEXT,
    note TEXT,
    path TEXT,
    folder_name TEXT,
    group_name TEXT,
    relative_dir TEXT,
    updated_at INTEGER
);
CREATE INDEX IF NOT EXISTS idx_manifest_library ON manifest_entries (library_root);
CREATE TABLE IF NOT EXISTS play_history (
    entry_id TEXT PRIMARY KEY,
    last_played_path TEXT,
    last_played_name TEXT,
    updated_at INTEGER
);
"""

_SELECT_ENTRIES = """
SELECT
    m.id, m.title, m.fansub, m.subtitle_type,
    COALESCE(CAST(m.episodes AS INTEGER), 0),
    m.quality, m.note, m.path, m.folder_name, m.group_name, m.relative_dir,
    COALESCE(p.last_played_path, ''),
    COALESCE(p.last_played_name, ''),
    COALESCE(p.updated_at, 0)
FROM manifest_entries m
LEFT JOIN play_history p ON m.id = p.entry_id
WHERE m.library_root = ?
ORDER BY m.group_name, m.title
"""

_INSERT_ENTRY = """
INSERT INTO manifest_entries (
    id, library_root, title, fansub, subtitle_type, episodes, quality, note,
    path, folder_name, group_name, relative_dir, updated_at
) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

_UPSERT_HISTORY = """
INSERT INTO play_history (entry_id, last_played_path, last_played_name, updated_at)
VALUES (?, ?, ?, ?)
ON CONFLICT(entry_id) DO UPDATE SET
    last_played_path = excluded.last_played_path,
    last_played_name = excluded.last_played_name,
    updated_at = excluded.updated_at
"""


def db_path(base: Path) -> Path:
    return base / CACHE_DB_FILENAME


def open_db(base: Path) -> sqlite3.Connection:
    """Open (and initialize) the cache database of *base*.

    Raises:
        LibraryNotFoundError: If *base* does not exist.
        LoadError: If the database cannot be opened.
    """
    if not base.exists():
        raise LibraryNotFoundError(str(base))
    try:
        conn = sqlite3.connect(db_path(base))
        conn.executescript(_SCHEMA)
    except sqlite3.Error as exc:
        raise LoadError(f"Failed to open database: {exc}") from exc
    return conn


def _row_to_entry(row: tuple[Any, ...]) -> LibraryEntry:
    return LibraryEntry(
        id=row[0],
        title=row[1] or "",
        fansub=row[2] or "",
        subtitle_type=row[3] or "",
        episodes=row[4],
        quality=row[5] or "",
        note=row[6] or "",
        path=row[7] or "",
        folder_name=row[8] or "",
        group=row[9] or "",
        relative_dir=row[10] or "",
        last_played_path=row[11],
        last_played_name=row[12],
        last_played_at=row[13],
    )


def load_entries(conn: sqlite3.Connection, library_root: str) -> list[LibraryEntry]:
    try:
        rows = conn.execute(_SELECT_ENTRIES, (library_root,)).fetchall()
    except sqlite3.Error as exc:
        raise LoadError(f"Failed to read entries: {exc}") from exc
    return [_row_to_entry(row) for row in rows]


def replace_entries(conn: sqlite3.Connection, library_root: str, entries: list[LibraryEntry]) -> None:
    """Replace every cached row of *library_root* in one transaction."""
    now = int(time.time())
    try:
        with conn:
            conn.execute("DELETE FROM manifest_entries WHERE library_root = ?", (library_root,))
            conn.executemany(
                _INSERT_ENTRY,
                [
                    (
                        e.id,
                        library_root,
                        e.title,
                        e.fansub,
                        e.subtitle_type,
                        e.episodes,
                        e.quality,
                        e.note,
                        e.path,
                        e.folder_name,
                        e.group,
                        e.relative_dir,
                        now,
                    )
                    for e in entries
                ],
            )
    except sqlite3.Error as exc:
        raise LoadError(f"Failed to write entries: {exc}") from exc


def _base(root_dir: str) -> Path:
    return Path(root_dir.strip())


def load_cached_sync(root_dir: str) -> list[LibraryEntry]:
    base = _base(root_dir)
    with closing(open_db(base)) as conn:
        return load_entries(conn, str(base))


def force_rescan_sync(root_dir: str) -> list[LibraryEntry]:
    base = _base(root_dir)
    entries = scan_library(base)
    with closing(open_db(base)) as conn:
        replace_entries(conn, str(base), entries)
        return load_entries(conn, str(base))


def record_play_sync(root_dir: str, entry_id: str, file_path: str, file_name: str) -> None:
    base = _base(root_dir)
    try:
        with closing(open_db(base)) as conn, conn:
            conn.execute(_UPSERT_HISTORY, (entry_id, file_path, file_name, int(time.time())))
    except (LoadError, LibraryNotFoundError, sqlite3.Error) as exc:
        raise HistoryWriteError(f"Failed to update play history: {exc}") from exc


class CatalogStore:
    """Async catalog store backed by manifest scanning and SQLite.

    Blocking filesystem and database work runs on a worker thread.
    """

    async def load_cached(self, root_dir: str) -> list[LibraryEntry]:
        return await anyio.to_thread.run_sync(load_cached_sync, root_dir)

    async def force_rescan(self, root_dir: str) -> list[LibraryEntry]:
        return await anyio.to_thread.run_sync(force_rescan_sync, root_dir)

    async def record(self, root_dir: str, entry_id: str, file_path: str, file_name: str) -> None:
        await anyio.to_thread.run_sync(record_play_sync, root_dir, entry_id, file_path, file_name)

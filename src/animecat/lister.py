"""Filesystem listing with manifest overlays for the directory browser."""

from __future__ import annotations

import os
from pathlib import Path

import anyio
import structlog
import yaml

from animecat.constants import MANIFEST_FILENAME
from animecat.exceptions import DirectoryError
from animecat.models import FileEntry
from animecat.store import ManifestData, read_manifest_file

log: structlog.stdlib.BoundLogger = structlog.get_logger()


def dir_size(path: Path) -> int:
    """Total size in bytes of all files below *path*; unreadable files count as 0."""
    total = 0
    for dirpath, _dirnames, filenames in os.walk(path):
        for name in filenames:
            try:
                total += (Path(dirpath) / name).stat().st_size
            except OSError:
                continue
    return total


def _overlay(directory: Path) -> ManifestData | None:
    manifest_path = directory / MANIFEST_FILENAME
    if not manifest_path.is_file():
        return None
    try:
        return read_manifest_file(manifest_path)
    except (OSError, yaml.YAMLError) as exc:
        log.debug("ignoring unreadable manifest", path=str(manifest_path), error=str(exc))
        return None


def _file_entry(child: Path) -> FileEntry:
    try:
        stat = child.stat()
    except FileNotFoundError:
        # dangling symlink
        stat = child.lstat()
    is_dir = child.is_dir()
    data = _overlay(child) if is_dir else None

    size = 0
    if not is_dir:
        size = stat.st_size
    elif data is not None:
        size = dir_size(child)

    fields: dict[str, object] = {}
    if data is not None:
        fields = {
            "has_manifest": True,
            "manifest_title": data.title,
            "manifest_fansub": data.fansub,
            "manifest_subtitle_type": data.subtitle_type,
            "manifest_episodes": data.episodes,
            "manifest_quality": data.quality,
            "manifest_note": data.note,
        }

    return FileEntry(
        name=child.name,
        path=str(child),
        is_dir=is_dir,
        size=size,
        modified_at=int(stat.st_mtime),
        extension=child.suffix.lstrip(".").lower(),
        **fields,  # type: ignore[arg-type]
    )


def list_directory(path: str) -> list[FileEntry]:
    """List the nodes of *path*, directories first.

    The manifest file itself is never listed.

    Raises:
        DirectoryError: If the directory or one of its entries cannot be read.
    """
    target = Path(path)
    try:
        children = list(target.iterdir())
    except OSError as exc:
        raise DirectoryError(path, f"Failed to read directory {target}: {exc}") from exc

    entries: list[FileEntry] = []
    for child in children:
        if child.name.lower() == MANIFEST_FILENAME:
            continue
        try:
            entries.append(_file_entry(child))
        except OSError as exc:
            raise DirectoryError(path, f"Failed to read metadata of {child}: {exc}") from exc

    entries.sort(key=lambda e: (not e.is_dir, e.name))
    return entries


class FilesystemLister:
    """Async directory lister running on a worker thread."""

    async def list(self, path: str) -> list[FileEntry]:
        return await anyio.to_thread.run_sync(list_directory, path)

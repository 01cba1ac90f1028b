"""Manifest creation/editing and handing paths to the operating system."""

from __future__ import annotations

from pathlib import Path

import anyio
import structlog
import typer
import yaml

from animecat.constants import MANIFEST_FILENAME
from animecat.exceptions import ManifestError, OpenPathError
from animecat.models import ManifestPayload
from animecat.store import ManifestData, read_manifest_file
from animecat.utils import ensure_dir

log: structlog.stdlib.BoundLogger = structlog.get_logger()


def render_manifest(payload: ManifestPayload, *, is_parent: bool = False) -> str:
    """Serialize *payload* to manifest YAML.

    Raises:
        ManifestValidationError: If the payload is not acceptable.
    """
    episodes = payload.resolved_episodes()
    data: dict[str, object] = {"title": payload.title.strip()}
    if is_parent:
        data["is_parent"] = True
    data.update(
        {
            "fansub": payload.fansub.strip(),
            "subtitle_type": payload.subtitle_type.strip(),
            "episodes": episodes,
            "quality": payload.quality.strip(),
            "note": payload.note.strip(),
        }
    )
    return yaml.safe_dump(data, allow_unicode=True, sort_keys=False)


def read_manifest(directory: Path) -> ManifestData | None:
    """Read the manifest of *directory*, ``None`` when it has none or it is unreadable."""
    path = directory / MANIFEST_FILENAME
    if not path.is_file():
        return None
    try:
        return read_manifest_file(path)
    except (OSError, yaml.YAMLError) as exc:
        log.warning("failed to read manifest", path=str(path), error=str(exc))
        return None


def create_manifest(target_dir: Path, payload: ManifestPayload) -> Path:
    """Write a new manifest into *target_dir*, creating the folder if needed.

    Returns the path of the written file.

    Raises:
        ManifestValidationError: If the payload is not acceptable.
        ManifestError: If a manifest already exists or the write fails.
    """
    content = render_manifest(payload)
    manifest_path = target_dir / MANIFEST_FILENAME
    if manifest_path.exists():
        raise ManifestError(f"Manifest already exists: {manifest_path}")
    try:
        ensure_dir(target_dir)
        manifest_path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"Failed to write {manifest_path}: {exc}") from exc
    log.info("created manifest", path=str(manifest_path))
    return manifest_path


def update_manifest(entry_dir: Path, payload: ManifestPayload) -> Path:
    """Rewrite the manifest of *entry_dir*, keeping an existing parent flag.

    Raises:
        ManifestValidationError: If the payload is not acceptable.
        ManifestError: If the directory is missing or the write fails.
    """
    if not entry_dir.is_dir():
        raise ManifestError(f"Entry directory not found: {entry_dir}")

    existing = read_manifest(entry_dir)
    content = render_manifest(payload, is_parent=existing is not None and existing.is_parent)
    manifest_path = entry_dir / MANIFEST_FILENAME
    try:
        manifest_path.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise ManifestError(f"Failed to write {manifest_path}: {exc}") from exc
    log.info("updated manifest", path=str(manifest_path))
    return manifest_path


# ---------------------------------------------------------------------------
# System opener
# ---------------------------------------------------------------------------


def _launch(path: str, locate: bool) -> None:
    if not Path(path).exists():
        raise OpenPathError(path, f"Failed to open path: {path} does not exist")
    code = typer.launch(path, locate=locate)
    if code != 0:
        raise OpenPathError(path, f"Failed to open path: {path} (exit code {code})")


class SystemOpener:
    """Opens files with their default application or reveals them in the file manager."""

    async def open_path(self, path: str) -> None:
        await anyio.to_thread.run_sync(_launch, path, False)

    async def open_folder(self, path: str) -> None:
        await anyio.to_thread.run_sync(_launch, path, True)

"""CLI entry point for the animecat library catalog (Typer + Rich)."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from animecat.browser import DirectoryBrowser
from animecat.catalog import CatalogView
from animecat.config import get_config_path, get_or_create_config, save_config
from animecat.exceptions import AnimecatError, ConfigError
from animecat.index import format_episodes, write_index
from animecat.lister import FilesystemLister
from animecat.manifest import SystemOpener, create_manifest, read_manifest, update_manifest
from animecat.models import AppConfig, FacetOption, FileEntry, LibraryEntry, ManifestPayload
from animecat.store import CatalogStore
from animecat.utils import format_size, format_timestamp, setup_logging

console = Console()


def _version_callback(value: bool) -> None:
    if value:
        from animecat import __version__

        console.print(f"animecat {__version__}")
        raise typer.Exit


def _verbose_callback(
    _ctx: typer.Context,
    value: bool,
) -> None:
    if value:
        setup_logging(verbose=True)


app = typer.Typer(
    help="Local anime library catalog.",
    no_args_is_help=True,
)


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option("--version", help="Show version and exit.", callback=_version_callback),
    ] = False,
) -> None:
    """Local anime library catalog."""


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro: object) -> object:
    """Run an async coroutine synchronously."""
    return asyncio.run(coro)  # type: ignore[arg-type]


def _fail(message: str) -> NoReturn:
    console.print(Panel(f"[red]{escape(message)}[/red]", title="Error"))
    raise typer.Exit(1)


def _load_config() -> AppConfig:
    """Load the configuration; an unreadable file ends the command with an error."""
    try:
        return get_or_create_config()
    except ConfigError as exc:
        _fail(exc.message)


def _root(config: AppConfig, library: Path | None) -> Path:
    return (library or config.library_dir).expanduser()


async def _open_catalog(config: AppConfig, library: Path | None, *, refresh: bool) -> CatalogView:
    """Load the catalog of the configured (or given) root; exits on failure."""
    view = CatalogView(CatalogStore(), _root(config, library))
    if refresh:
        await view.refresh()
    else:
        await view.load()
    if view.error:
        _fail(view.error)
    return view


def _resolve_entry(view: CatalogView, key: str) -> LibraryEntry:
    """Find an entry by id, relative directory or exact title."""
    for entry in view.items:
        if key in (entry.id, entry.relative_dir, entry.title):
            return entry
    console.print(f"[red]Entry {escape(key)} not found in library.[/red]")
    raise typer.Exit(1)


def _browser(view: CatalogView, config: AppConfig) -> DirectoryBrowser:
    return DirectoryBrowser(
        view,
        FilesystemLister(),
        SystemOpener(),
        CatalogStore(),
        include_audio=config.include_audio,
    )


def _status_markup(entry: LibraryEntry) -> str:
    text = format_episodes(entry.episodes)
    return f"[green]{text}[/green]" if entry.is_finished else f"[yellow]{text}[/yellow]"


def _options_table(title: str, options: list[FacetOption]) -> Table:
    table = Table(title=title)
    table.add_column("Value", style="bold")
    table.add_column("Count", justify="right")
    for option in options:
        table.add_row(escape(option.name), str(option.count))
    return table


# Reusable verbose option annotation (Typer requires it as a parameter,
# but the callback handles the actual work, so the value is unused in the body).
_VerboseAnnotation = Annotated[
    bool,
    typer.Option("--verbose", "-v", help="Enable debug logging.", callback=_verbose_callback),
]

_LibraryAnnotation = Annotated[
    Optional[Path],  # noqa: UP045
    typer.Option("--library", "-l", help="Library root (defaults to the configured one)"),
]


# ---------------------------------------------------------------------------
# list
# ---------------------------------------------------------------------------


@app.command("list")
def list_cmd(
    search: Annotated[str, typer.Option("--search", "-s", help="Free-text search")] = "",
    status: Annotated[
        Optional[list[str]],  # noqa: UP045
        typer.Option("--status", help="Status facet (已完结/未完结), repeatable"),
    ] = None,
    fansub: Annotated[
        Optional[list[str]],  # noqa: UP045
        typer.Option("--fansub", help="Fansub facet, repeatable"),
    ] = None,
    subtitle: Annotated[
        Optional[list[str]],  # noqa: UP045
        typer.Option("--subtitle", help="Subtitle type facet, repeatable"),
    ] = None,
    quality: Annotated[
        Optional[list[str]],  # noqa: UP045
        typer.Option("--quality", help="Quality facet, repeatable"),
    ] = None,
    refresh: Annotated[bool, typer.Option("--refresh", "-r", help="Rescan before listing")] = False,
    library: _LibraryAnnotation = None,
    *,
    verbose: _VerboseAnnotation = False,  # noqa: ARG001
) -> None:
    """List the library grouped by collection."""
    _run(_list(search, status or [], fansub or [], subtitle or [], quality or [], refresh, library))


async def _list(
    search: str,
    status: list[str],
    fansub: list[str],
    subtitle: list[str],
    quality: list[str],
    refresh: bool,
    library: Path | None,
) -> None:
    config = _load_config()
    view = await _open_catalog(config, library, refresh=refresh or config.auto_refresh)

    for value in status:
        view.toggle_status(value)
    for value in fansub:
        view.toggle_fansub(value)
    for value in subtitle:
        view.toggle_subtitle(value)
    for value in quality:
        view.toggle_quality(value)
    if search:
        view.set_search(search)

    if not view.items:
        console.print("[yellow]Library is empty.[/yellow]")
        return

    groups = view.grouped()
    if not groups:
        console.print("[yellow]No entries match the current filters.[/yellow]")
        return

    for group in groups:
        table = Table(title=escape(group.name))
        table.add_column("Dir", style="cyan")
        table.add_column("Title", style="bold")
        table.add_column("Fansub")
        table.add_column("Subtitle")
        table.add_column("Episodes")
        table.add_column("Quality")
        table.add_column("Last Played")

        for entry in group.items:
            marker = "* " if entry.id == view.selected_id else ""
            table.add_row(
                escape(entry.relative_dir),
                f"{marker}{escape(entry.title)}",
                escape(entry.fansub) or "-",
                escape(entry.subtitle_type) or "-",
                _status_markup(entry),
                escape(entry.quality) or "-",
                escape(entry.last_played_name) or "-",
            )
        console.print(table)

    console.print(f"{len(view.filtered)} of {len(view.items)} entries")


# ---------------------------------------------------------------------------
# facets
# ---------------------------------------------------------------------------


@app.command()
def facets(
    library: _LibraryAnnotation = None,
    *,
    verbose: _VerboseAnnotation = False,  # noqa: ARG001
) -> None:
    """Show filter options with counts."""
    _run(_facets(library))


async def _facets(library: Path | None) -> None:
    config = _load_config()
    view = await _open_catalog(config, library, refresh=config.auto_refresh)
    result = view.facets
    console.print(_options_table("Status", result.status))
    console.print(_options_table("Fansub", result.fansub))
    console.print(_options_table("Subtitle Type", result.subtitle_type))
    console.print(_options_table("Quality", result.quality))


# ---------------------------------------------------------------------------
# refresh
# ---------------------------------------------------------------------------


@app.command()
def refresh(
    library: _LibraryAnnotation = None,
    *,
    verbose: _VerboseAnnotation = False,  # noqa: ARG001
) -> None:
    """Rescan manifests and rebuild the cache."""
    _run(_refresh(library))


async def _refresh(library: Path | None) -> None:
    config = _load_config()
    view = await _open_catalog(config, library, refresh=True)
    console.print(f"[green]Indexed {len(view.items)} entries.[/green]")


# ---------------------------------------------------------------------------
# browse
# ---------------------------------------------------------------------------


@app.command()
def browse(
    entry: Annotated[str, typer.Argument(help="Entry id, relative dir or title")],
    subpath: Annotated[
        Optional[str],  # noqa: UP045
        typer.Argument(help="Sub-directory inside the entry"),
    ] = None,
    library: _LibraryAnnotation = None,
    *,
    verbose: _VerboseAnnotation = False,  # noqa: ARG001
) -> None:
    """List the media inside a library entry."""
    _run(_browse(entry, subpath, library))


async def _browse(key: str, subpath: str | None, library: Path | None) -> None:
    config = _load_config()
    view = await _open_catalog(config, library, refresh=config.auto_refresh)
    entry = _resolve_entry(view, key)
    browser = _browser(view, config)

    await browser.open_detail(entry)
    if subpath:
        await browser.navigate_breadcrumb(str(Path(entry.path) / subpath))
    if browser.error:
        _fail(browser.error)

    console.print(" / ".join(crumb.label for crumb in browser.breadcrumbs()[1:]))

    if not browser.entries:
        console.print("[yellow]No media found.[/yellow]")
        return

    table = Table(title=escape(entry.title))
    table.add_column("Name", style="bold")
    table.add_column("Type")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    table.add_column("Manifest")
    for item in browser.entries:
        kind = "dir" if item.is_dir else item.extension
        table.add_row(
            escape(item.name),
            kind,
            format_size(item.size),
            format_timestamp(item.modified_at),
            escape(item.manifest_title) or "-",
        )
    console.print(table)


# ---------------------------------------------------------------------------
# play / play-last
# ---------------------------------------------------------------------------


@app.command()
def play(
    entry: Annotated[str, typer.Argument(help="Entry id, relative dir or title")],
    file: Annotated[str, typer.Argument(help="File path relative to the entry folder")],
    library: _LibraryAnnotation = None,
    *,
    verbose: _VerboseAnnotation = False,  # noqa: ARG001
) -> None:
    """Open a file and remember it as the entry's last played."""
    _run(_play(entry, file, library))


async def _play(key: str, file: str, library: Path | None) -> None:
    config = _load_config()
    view = await _open_catalog(config, library, refresh=config.auto_refresh)
    entry = _resolve_entry(view, key)
    target = Path(entry.path) / file
    if not target.is_file():
        _fail(f"File not found: {target}")

    view.select(entry.id)
    browser = _browser(view, config)
    browser.current_path = str(target.parent)
    await browser.open_entry(
        FileEntry(
            name=target.name,
            path=str(target),
            extension=target.suffix.lstrip(".").lower(),
        )
    )
    await browser.drain()
    if browser.error:
        _fail(browser.error)
    console.print(f"[green]Playing {escape(target.name)}[/green]")


@app.command("play-last")
def play_last(
    entry: Annotated[str, typer.Argument(help="Entry id, relative dir or title")],
    library: _LibraryAnnotation = None,
    *,
    verbose: _VerboseAnnotation = False,  # noqa: ARG001
) -> None:
    """Reopen the last played file of an entry."""
    _run(_play_last(entry, library))


async def _play_last(key: str, library: Path | None) -> None:
    config = _load_config()
    view = await _open_catalog(config, library, refresh=config.auto_refresh)
    entry = _resolve_entry(view, key)
    view.select(entry.id)
    browser = _browser(view, config)
    if await browser.play_last():
        console.print(f"[green]Playing {escape(entry.last_played_name)}[/green]")
        return
    if browser.error:
        _fail(browser.error)
    console.print("[yellow]Nothing played yet.[/yellow]")


# ---------------------------------------------------------------------------
# new / edit
# ---------------------------------------------------------------------------


_FansubAnnotation = Annotated[
    Optional[str],  # noqa: UP045
    typer.Option("--fansub", help="Fansub group(s)"),
]
_SubtitleAnnotation = Annotated[
    Optional[str],  # noqa: UP045
    typer.Option("--subtitle", help="Subtitle type"),
]
_QualityAnnotation = Annotated[
    Optional[str],  # noqa: UP045
    typer.Option("--quality", help="Quality, e.g. 1080P"),
]
_NoteAnnotation = Annotated[
    Optional[str],  # noqa: UP045
    typer.Option("--note", help="Free-form note"),
]
_EpisodesAnnotation = Annotated[
    Optional[int],  # noqa: UP045
    typer.Option("--episodes", "-e", help="Episode count (0 = unknown)"),
]
_OngoingAnnotation = Annotated[
    Optional[bool],  # noqa: UP045
    typer.Option("--ongoing/--finished", help="Whether the title is still airing"),
]


@app.command()
def new(
    target_dir: Annotated[Path, typer.Argument(help="Folder to describe")],
    title: Annotated[str, typer.Option("--title", "-t", help="Title")],
    fansub: _FansubAnnotation = None,
    subtitle: _SubtitleAnnotation = None,
    quality: _QualityAnnotation = None,
    note: _NoteAnnotation = None,
    episodes: _EpisodesAnnotation = None,
    ongoing: _OngoingAnnotation = None,
    *,
    verbose: _VerboseAnnotation = False,  # noqa: ARG001
) -> None:
    """Create a manifest for a media folder."""
    payload = ManifestPayload(
        title=title,
        fansub=fansub or "",
        subtitle_type=subtitle or "",
        quality=quality or "",
        note=note or "",
        is_finished=not ongoing,
        episodes=episodes or 0,
    )
    try:
        path = create_manifest(target_dir.expanduser(), payload)
    except AnimecatError as exc:
        _fail(exc.message)
    console.print(f"[green]✓ Created {path}[/green]")


@app.command()
def edit(
    entry_dir: Annotated[Path, typer.Argument(help="Folder holding the manifest")],
    title: Annotated[
        Optional[str],  # noqa: UP045
        typer.Option("--title", "-t", help="Title"),
    ] = None,
    fansub: _FansubAnnotation = None,
    subtitle: _SubtitleAnnotation = None,
    quality: _QualityAnnotation = None,
    note: _NoteAnnotation = None,
    episodes: _EpisodesAnnotation = None,
    ongoing: _OngoingAnnotation = None,
    *,
    verbose: _VerboseAnnotation = False,  # noqa: ARG001
) -> None:
    """Update a manifest; omitted options keep their current value."""
    entry_dir = entry_dir.expanduser()
    current = read_manifest(entry_dir)

    def _pick(value: str | None, existing: str) -> str:
        return value if value is not None else existing

    current_episodes = current.episodes if current else 0
    is_finished = (not ongoing) if ongoing is not None else current_episodes >= 0
    if episodes is None:
        episodes = max(current_episodes, 0)

    payload = ManifestPayload(
        title=_pick(title, current.title if current else entry_dir.name),
        fansub=_pick(fansub, current.fansub if current else ""),
        subtitle_type=_pick(subtitle, current.subtitle_type if current else ""),
        quality=_pick(quality, current.quality if current else ""),
        note=_pick(note, current.note if current else ""),
        is_finished=is_finished,
        episodes=episodes,
    )
    try:
        path = update_manifest(entry_dir, payload)
    except AnimecatError as exc:
        _fail(exc.message)
    console.print(f"[green]✓ Updated {path}[/green]")


# ---------------------------------------------------------------------------
# index
# ---------------------------------------------------------------------------


@app.command()
def index(
    library: _LibraryAnnotation = None,
    *,
    verbose: _VerboseAnnotation = False,  # noqa: ARG001
) -> None:
    """Rescan and write the markdown video index."""
    _run(_index(library))


async def _index(library: Path | None) -> None:
    config = _load_config()
    view = await _open_catalog(config, library, refresh=True)
    try:
        path = write_index(_root(config, library), view.items, config.index_filename)
    except OSError as exc:
        _fail(f"Failed to write index: {exc}")
    console.print(f"[green]✓ Wrote {path}[/green]")


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


@app.command("config")
def config_cmd(
    set_library: Annotated[
        Optional[Path],  # noqa: UP045
        typer.Option("--set-library", help="Save a new library root"),
    ] = None,
    auto_refresh: Annotated[
        Optional[bool],  # noqa: UP045
        typer.Option("--auto-refresh/--no-auto-refresh", help="Rescan on every command"),
    ] = None,
    *,
    verbose: _VerboseAnnotation = False,  # noqa: ARG001
) -> None:
    """Show or change the configuration."""
    config = _load_config()

    if set_library is not None or auto_refresh is not None:
        if set_library is not None:
            config.library_dir = set_library.expanduser()
        if auto_refresh is not None:
            config.auto_refresh = auto_refresh
        save_config(config)
        console.print("[green]Configuration saved.[/green]")

    console.print(f"[bold]Config:[/bold] {get_config_path()}")

    table = Table(title="Configuration", show_header=False)
    table.add_column("Field", style="bold")
    table.add_column("Value")
    for field_name in config.__dataclass_fields__:
        value = getattr(config, field_name)
        display_name = field_name.replace("_", " ").title()
        formatted_value = ("Yes" if value else "No") if isinstance(value, bool) else str(value)
        table.add_row(display_name, formatted_value)
    console.print(table)

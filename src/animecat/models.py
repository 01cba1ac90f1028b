"""Pydantic data models for the animecat library catalog."""

from dataclasses import dataclass, field
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from animecat.constants import (
    AUDIO_EXTENSIONS,
    DEFAULT_INDEX_FILENAME,
    DEFAULT_LIBRARY_DIR,
    VIDEO_EXTENSIONS,
)
from animecat.exceptions import ManifestValidationError
from animecat.utils import split_multi


class LoadMode(StrEnum):
    """Which catalog store path a load is running against."""

    LOAD = "load"
    REFRESH = "refresh"


class Page(StrEnum):
    """View context shown to the user."""

    LIBRARY = "library"
    DETAIL = "detail"


class Facet(StrEnum):
    """Filterable dimensions of the catalog."""

    STATUS = "status"
    FANSUB = "fansub"
    SUBTITLE_TYPE = "subtitle_type"
    QUALITY = "quality"


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class LibraryEntry(BaseModel):
    """One media title folder in the catalog.

    ``episodes`` > 0 means finished with that many episodes, 0 means finished
    with an unknown count and a negative value means still airing.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str
    fansub: str = ""
    subtitle_type: str = ""
    episodes: int = 0
    quality: str = ""
    note: str = ""
    path: str = ""
    folder_name: str = ""
    group: str = ""
    relative_dir: str = ""
    last_played_path: str = ""
    last_played_name: str = ""
    last_played_at: int = 0

    @property
    def is_finished(self) -> bool:
        return self.episodes > 0

    @property
    def fansubs(self) -> list[str]:
        return split_multi(self.fansub)

    @property
    def has_history(self) -> bool:
        return bool(self.last_played_path)


class FileEntry(BaseModel):
    """A filesystem node inside a library entry's folder.

    The ``manifest_*`` overlay is only populated when the node is a directory
    carrying its own readable manifest.
    """

    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)

    name: str
    path: str
    is_dir: bool = False
    size: int = 0
    modified_at: int = 0
    extension: str = ""
    has_manifest: bool = False
    manifest_title: str = ""
    manifest_fansub: str = ""
    manifest_subtitle_type: str = ""
    manifest_episodes: int = 0
    manifest_quality: str = ""
    manifest_note: str = ""

    @property
    def is_video(self) -> bool:
        return not self.is_dir and self.extension.lower() in VIDEO_EXTENSIONS

    @property
    def is_audio(self) -> bool:
        return not self.is_dir and self.extension.lower() in AUDIO_EXTENSIONS


# ---------------------------------------------------------------------------
# Derived views
# ---------------------------------------------------------------------------


class FacetOption(BaseModel):
    """A selectable facet value with the number of entries carrying it."""

    model_config = ConfigDict(frozen=True)

    name: str
    count: int


class Facets(BaseModel):
    """All facet option lists derived from one entry list."""

    status: list[FacetOption] = []
    fansub: list[FacetOption] = []
    subtitle_type: list[FacetOption] = []
    quality: list[FacetOption] = []


class EntryGroup(BaseModel):
    """Entries sharing the same ``group`` label, already ordered."""

    name: str
    items: list[LibraryEntry] = []


class Breadcrumb(BaseModel):
    """One step of the directory browser's location trail."""

    model_config = ConfigDict(frozen=True)

    label: str
    path: str


@dataclass
class FilterState:
    """Selected facet values.  An empty set places no constraint on its facet."""

    status: set[str] = field(default_factory=set)
    fansub: set[str] = field(default_factory=set)
    subtitle_type: set[str] = field(default_factory=set)
    quality: set[str] = field(default_factory=set)

    def values(self, facet: Facet) -> set[str]:
        return getattr(self, facet.value)

    def toggle(self, facet: Facet, value: str) -> None:
        """Select *value* for *facet*, or deselect it when already selected."""
        self.values(facet).symmetric_difference_update({value})

    def clear(self) -> None:
        for facet in Facet:
            self.values(facet).clear()

    def is_empty(self) -> bool:
        return not (self.status or self.fansub or self.subtitle_type or self.quality)


# ---------------------------------------------------------------------------
# Manifest commands
# ---------------------------------------------------------------------------


class ManifestPayload(BaseModel):
    """Fields submitted when creating or editing a manifest."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    title: str
    fansub: str = ""
    subtitle_type: str = ""
    quality: str = ""
    note: str = ""
    is_finished: bool = True
    episodes: int = 0

    def resolved_episodes(self) -> int:
        """Return the episodes value to persist.

        Raises:
            ManifestValidationError: If the title is blank or a finished
                title has a negative episode count.
        """
        if not self.title.strip():
            raise ManifestValidationError("动画名称不能为空")
        if not self.is_finished:
            return -1
        if self.episodes < 0:
            raise ManifestValidationError("已完结动画的集数必须是非负整数（0 表示未知）")
        return self.episodes


# ---------------------------------------------------------------------------
# Application configuration (plain dataclass, NOT a Pydantic model)
# ---------------------------------------------------------------------------


@dataclass
class AppConfig:
    """Application-level configuration.

    A plain dataclass so the CLI can mutate it before saving.
    """

    library_dir: Path = field(default_factory=lambda: DEFAULT_LIBRARY_DIR)
    auto_refresh: bool = False
    include_audio: bool = True
    index_filename: str = DEFAULT_INDEX_FILENAME


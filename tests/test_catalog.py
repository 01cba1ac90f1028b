"""Tests for animecat.catalog module."""

from __future__ import annotations

import asyncio

from fakes import FakeStore, GatedStore, make_entry

from animecat.catalog import CatalogView
from animecat.exceptions import LibraryNotFoundError
from animecat.models import Facet, LoadMode

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _entries() -> list:
    return [
        make_entry("1", "Anime X", fansub="TeamA", subtitle_type="简日双语", quality="1080P"),
        make_entry("2", "Anime X 第二季", episodes=-1, fansub="TeamA,TeamB", quality="1080P"),
        make_entry("3", "Film A", group="Movies", episodes=1, quality="720P"),
    ]


async def _loaded_view() -> CatalogView:
    view = CatalogView(FakeStore(_entries()), "/lib")
    await view.load()
    return view


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


class TestLoad:
    """Given a store returning three entries."""

    async def test_load_uses_cache_path(self) -> None:
        store = FakeStore(_entries())
        view = CatalogView(store, "  /lib  ")

        result = await view.load()

        assert store.calls == [("load", "/lib")]
        assert [e.id for e in result] == ["1", "2", "3"]
        assert [e.id for e in view.items] == ["1", "2", "3"]
        assert view.loading is None
        assert view.error == ""

    async def test_refresh_uses_rescan_path(self) -> None:
        store = FakeStore()
        store.rescanned = [make_entry("9", "Fresh")]
        view = CatalogView(store, "/lib")

        await view.refresh()

        assert store.calls == [("refresh", "/lib")]
        assert [e.id for e in view.items] == ["9"]

    async def test_load_selects_first_entry(self) -> None:
        view = await _loaded_view()
        assert view.selected_id == "1"
        assert view.selected is not None
        assert view.selected.title == "Anime X"

    async def test_failure_keeps_message_and_empties(self) -> None:
        """When the store fails, items are emptied and the message is kept."""
        store = FakeStore(_entries())
        view = CatalogView(store, "/lib")
        await view.load()

        store.fail_with = LibraryNotFoundError("/lib")
        result = await view.refresh()

        assert result == []
        assert view.items == []
        assert view.filtered == []
        assert view.selected_id is None
        assert view.error == "Base directory not found: /lib"
        assert view.loading is None

    async def test_plain_exception_message(self) -> None:
        store = FakeStore()
        store.fail_with = RuntimeError("boom")
        view = CatalogView(store, "/lib")

        await view.load()

        assert view.error == "boom"

    async def test_success_clears_previous_error(self) -> None:
        store = FakeStore(_entries())
        store.fail_with = RuntimeError("boom")
        view = CatalogView(store, "/lib")
        await view.load()

        store.fail_with = None
        await view.load()

        assert view.error == ""
        assert len(view.items) == 3

    async def test_loading_flag_while_pending(self) -> None:
        store = GatedStore()
        view = CatalogView(store, "/lib")

        task = asyncio.create_task(view.refresh())
        await asyncio.sleep(0)
        assert view.loading is LoadMode.REFRESH

        store.gates["refresh"].set_result(_entries())
        await task
        assert view.loading is None


class TestStaleResults:
    """Given overlapping load and refresh calls."""

    async def test_last_started_call_wins(self) -> None:
        """When the older load resolves last, its result is discarded."""
        store = GatedStore()
        view = CatalogView(store, "/lib")

        load_task = asyncio.create_task(view.load())
        await asyncio.sleep(0)
        refresh_task = asyncio.create_task(view.refresh())
        await asyncio.sleep(0)

        store.gates["refresh"].set_result([make_entry("new", "New")])
        await refresh_task
        assert view.loading is None

        store.gates["load"].set_result([make_entry("old", "Old")])
        await load_task

        assert [e.id for e in view.items] == ["new"]
        assert view.selected_id == "new"

    async def test_stale_failure_is_ignored(self) -> None:
        store = GatedStore()
        view = CatalogView(store, "/lib")

        load_task = asyncio.create_task(view.load())
        await asyncio.sleep(0)
        refresh_task = asyncio.create_task(view.refresh())
        await asyncio.sleep(0)

        store.gates["refresh"].set_result(_entries())
        await refresh_task
        store.gates["load"].set_exception(RuntimeError("late failure"))
        await load_task

        assert view.error == ""
        assert len(view.items) == 3


# ---------------------------------------------------------------------------
# Filtering and selection
# ---------------------------------------------------------------------------


class TestSelectionInvariant:
    """Given a loaded view."""

    async def test_selection_kept_when_still_visible(self) -> None:
        view = await _loaded_view()
        assert view.select("2")

        view.toggle_fansub("TeamA")

        assert view.selected_id == "2"

    async def test_selection_moves_to_first_visible(self) -> None:
        view = await _loaded_view()
        view.select("3")

        view.toggle_status("未完结")

        assert [e.id for e in view.filtered] == ["2"]
        assert view.selected_id == "2"

    async def test_empty_filtered_clears_selection(self) -> None:
        view = await _loaded_view()

        view.set_search("nothing matches this")

        assert view.filtered == []
        assert view.selected_id is None
        assert view.selected is None

    async def test_select_unknown_id(self) -> None:
        view = await _loaded_view()
        assert view.select("missing") is False
        assert view.selected_id == "1"

    async def test_select_hidden_entry_is_refused(self) -> None:
        """When an entry is filtered out, selecting it keeps the visible selection."""
        view = await _loaded_view()
        view.toggle_status("未完结")

        assert view.select("1") is False
        assert view.selected_id == "2"
        assert view.selected_id in [e.id for e in view.filtered]


class TestFacetToggles:
    """Given facet toggles on a loaded view."""

    async def test_toggle_twice_restores(self) -> None:
        view = await _loaded_view()

        view.toggle_quality("720P")
        assert [e.id for e in view.filtered] == ["3"]
        assert view.has_any_filter

        view.toggle_quality("720P")
        assert [e.id for e in view.filtered] == ["1", "2", "3"]
        assert not view.has_any_filter

    async def test_generic_toggle(self) -> None:
        view = await _loaded_view()
        view.toggle(Facet.SUBTITLE_TYPE, "简日双语")
        assert [e.id for e in view.filtered] == ["1"]

    async def test_clear_all_filters_keeps_search(self) -> None:
        view = await _loaded_view()
        view.set_search("anime")
        view.toggle_status("已完结")
        view.toggle_fansub("TeamB")
        assert view.filtered == []

        view.clear_all_filters()

        assert view.search == "anime"
        assert view.filters.is_empty()
        assert [e.id for e in view.filtered] == ["1", "2"]

    async def test_facets_follow_items_not_filters(self) -> None:
        view = await _loaded_view()
        view.toggle_quality("720P")

        qualities = {o.name: o.count for o in view.facets.quality}

        assert qualities == {"1080P": 2, "720P": 1}

    async def test_facets_recomputed_after_reload(self) -> None:
        store = FakeStore(_entries())
        view = CatalogView(store, "/lib")
        await view.load()
        assert len(view.facets.quality) == 2

        store.cached = [make_entry("x", "Only", quality="4K")]
        await view.load()

        assert [o.name for o in view.facets.quality] == ["4K"]


# ---------------------------------------------------------------------------
# Grouping
# ---------------------------------------------------------------------------


class TestGrouped:
    """Given entries spread across groups."""

    async def test_groups_and_member_order(self) -> None:
        store = FakeStore(
            [
                make_entry("3", "Film A", group="Movies"),
                make_entry("2", "Anime X 第二季", episodes=-1),
                make_entry("1", "Anime X"),
            ]
        )
        view = CatalogView(store, "/lib")
        await view.load()

        groups = view.grouped()

        assert [g.name for g in groups] == ["G1", "Movies"]
        assert [e.title for e in groups[0].items] == ["Anime X", "Anime X 第二季"]
        assert [e.title for e in groups[1].items] == ["Film A"]

    async def test_grouped_follows_filters(self) -> None:
        view = await _loaded_view()
        view.toggle_status("未完结")

        groups = view.grouped()

        assert [g.name for g in groups] == ["G1"]
        assert [e.id for e in groups[0].items] == ["2"]


# ---------------------------------------------------------------------------
# Play history
# ---------------------------------------------------------------------------


class TestRecordPlayback:
    """Given a loaded view."""

    async def test_patches_history_fields(self) -> None:
        view = await _loaded_view()

        updated = view.record_playback("2", "/lib/G1/x/EP01.mkv", "EP01.mkv", 1700000000)

        assert updated is not None
        assert updated.last_played_name == "EP01.mkv"
        assert updated.last_played_at == 1700000000
        found = view.find("2")
        assert found is not None
        assert found.has_history
        assert found.title == "Anime X 第二季"

    async def test_patched_entry_is_searchable(self) -> None:
        view = await _loaded_view()
        view.record_playback("3", "/lib/Movies/Film A/film.mkv", "film.mkv")

        view.set_search("film.mkv")

        assert [e.id for e in view.filtered] == ["3"]

    async def test_unknown_entry(self) -> None:
        view = await _loaded_view()
        assert view.record_playback("missing", "/x", "x") is None

    async def test_reload_supersedes_patch(self) -> None:
        view = await _loaded_view()
        view.record_playback("1", "/x.mkv", "x.mkv")

        await view.load()

        found = view.find("1")
        assert found is not None
        assert not found.has_history

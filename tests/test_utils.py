"""Tests for animecat.utils module."""

from __future__ import annotations

from pathlib import Path

from animecat.utils import ensure_dir, format_size, format_timestamp, normalize_text, split_multi

# ---------------------------------------------------------------------------
# split_multi
# ---------------------------------------------------------------------------


class TestSplitMulti:
    """Given multi-valued field strings."""

    def test_all_separators(self) -> None:
        """When the value mixes full-width and ASCII separators, all split."""
        assert split_multi("TeamA，TeamB,TeamC/TeamD|TeamE") == [
            "TeamA",
            "TeamB",
            "TeamC",
            "TeamD",
            "TeamE",
        ]

    def test_trims_and_drops_empty_tokens(self) -> None:
        assert split_multi(" TeamA , ,TeamB|| ") == ["TeamA", "TeamB"]

    def test_keeps_duplicates_in_order(self) -> None:
        assert split_multi("B,A,B") == ["B", "A", "B"]

    def test_empty_and_none(self) -> None:
        assert split_multi("") == []
        assert split_multi(None) == []


# ---------------------------------------------------------------------------
# normalize_text
# ---------------------------------------------------------------------------


class TestNormalizeText:
    def test_lowercases_and_removes_whitespace(self) -> None:
        assert normalize_text("  Anime X\t第二季\n") == "animex第二季"

    def test_empty(self) -> None:
        assert normalize_text("") == ""
        assert normalize_text(None) == ""


# ---------------------------------------------------------------------------
# format_size
# ---------------------------------------------------------------------------


class TestFormatSize:
    """Given byte counts."""

    def test_zero_is_dash(self) -> None:
        assert format_size(0) == "-"

    def test_bytes(self) -> None:
        assert format_size(512) == "512 B"

    def test_kilobytes(self) -> None:
        assert format_size(2048) == "2.0 KB"

    def test_megabytes(self) -> None:
        assert format_size(52428800) == "50.0 MB"

    def test_gigabytes(self) -> None:
        assert format_size(int(1.5 * 1024**3)) == "1.50 GB"


# ---------------------------------------------------------------------------
# format_timestamp / ensure_dir
# ---------------------------------------------------------------------------


class TestFormatTimestamp:
    def test_unset(self) -> None:
        assert format_timestamp(0) == "-"

    def test_formats_local_time(self) -> None:
        text = format_timestamp(1700000000)
        assert len(text) == len("2023-11-14 22:13")
        assert text.startswith("2023-11-1")


class TestEnsureDir:
    def test_creates_nested(self, tmp_path: Path) -> None:
        target = tmp_path / "a" / "b"
        assert ensure_dir(target) == target
        assert target.is_dir()

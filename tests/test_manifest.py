"""Tests for animecat.manifest module."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from animecat.exceptions import ManifestError, ManifestValidationError, OpenPathError
from animecat.manifest import (
    SystemOpener,
    _launch,
    create_manifest,
    read_manifest,
    render_manifest,
    update_manifest,
)
from animecat.models import ManifestPayload

# ---------------------------------------------------------------------------
# Rendering
# ---------------------------------------------------------------------------


class TestRenderManifest:
    def test_field_order_and_values(self) -> None:
        payload = ManifestPayload(
            title=" Show ",
            fansub="TeamA",
            subtitle_type="简日双语",
            episodes=12,
            quality="1080P",
            note="BD",
        )

        text = render_manifest(payload)
        data = yaml.safe_load(text)

        assert list(data) == ["title", "fansub", "subtitle_type", "episodes", "quality", "note"]
        assert data["title"] == "Show"
        assert data["episodes"] == 12
        assert "简日双语" in text

    def test_ongoing_is_written_as_negative(self) -> None:
        payload = ManifestPayload(title="Show", is_finished=False, episodes=7)
        assert yaml.safe_load(render_manifest(payload))["episodes"] == -1

    def test_parent_flag_follows_title(self) -> None:
        data = yaml.safe_load(render_manifest(ManifestPayload(title="Show"), is_parent=True))
        assert list(data)[:2] == ["title", "is_parent"]
        assert data["is_parent"] is True

    def test_blank_title_rejected(self) -> None:
        with pytest.raises(ManifestValidationError) as exc_info:
            render_manifest(ManifestPayload(title="   "))
        assert exc_info.value.message == "动画名称不能为空"

    def test_negative_finished_episodes_rejected(self) -> None:
        with pytest.raises(ManifestValidationError):
            render_manifest(ManifestPayload(title="Show", episodes=-3))

    def test_camel_case_payload(self) -> None:
        payload = ManifestPayload.model_validate(
            {"title": "Show", "subtitleType": "简体", "isFinished": True, "episodes": 0}
        )
        assert yaml.safe_load(render_manifest(payload))["subtitle_type"] == "简体"


# ---------------------------------------------------------------------------
# Create / update
# ---------------------------------------------------------------------------


class TestCreateManifest:
    def test_creates_folder_and_file(self, tmp_path: Path) -> None:
        target = tmp_path / "New" / "Show"

        path = create_manifest(target, ManifestPayload(title="Show", episodes=3))

        assert path == target / "manifest.yml"
        data = read_manifest(target)
        assert data is not None
        assert data.title == "Show"
        assert data.episodes == 3

    def test_existing_manifest_refused(self, library_dir: Path) -> None:
        with pytest.raises(ManifestError):
            create_manifest(library_dir / "Solo", ManifestPayload(title="Solo"))

    def test_invalid_payload_writes_nothing(self, tmp_path: Path) -> None:
        with pytest.raises(ManifestValidationError):
            create_manifest(tmp_path / "Show", ManifestPayload(title=""))
        assert not (tmp_path / "Show").exists()


class TestUpdateManifest:
    """Given the fixture library tree."""

    def test_rewrites_fields(self, library_dir: Path) -> None:
        update_manifest(
            library_dir / "Anime X" / "S2",
            ManifestPayload(title="Anime X 第二季", fansub="TeamB", episodes=12),
        )

        data = read_manifest(library_dir / "Anime X" / "S2")
        assert data is not None
        assert data.fansub == "TeamB"
        assert data.episodes == 12

    def test_keeps_parent_flag(self, library_dir: Path) -> None:
        update_manifest(library_dir / "Anime X", ManifestPayload(title="Anime X (TV)"))

        data = read_manifest(library_dir / "Anime X")
        assert data is not None
        assert data.is_parent
        assert data.title == "Anime X (TV)"

    def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(ManifestError):
            update_manifest(tmp_path / "nope", ManifestPayload(title="x"))

    def test_read_manifest_absent_or_broken(self, tmp_path: Path) -> None:
        assert read_manifest(tmp_path) is None
        (tmp_path / "manifest.yml").write_text("title: [unclosed\n", encoding="utf-8")
        assert read_manifest(tmp_path) is None


# ---------------------------------------------------------------------------
# System opener
# ---------------------------------------------------------------------------


class TestLaunch:
    def test_missing_path(self, tmp_path: Path) -> None:
        with pytest.raises(OpenPathError) as exc_info:
            _launch(str(tmp_path / "gone.mkv"), False)
        assert "does not exist" in exc_info.value.message

    def test_nonzero_exit_code(self, tmp_path: Path) -> None:
        with (
            patch("animecat.manifest.typer.launch", return_value=1),
            pytest.raises(OpenPathError),
        ):
            _launch(str(tmp_path), False)

    async def test_opener_passes_locate_flag(self, tmp_path: Path) -> None:
        video = tmp_path / "EP01.mkv"
        video.write_bytes(b"0")
        opener = SystemOpener()

        with patch("animecat.manifest.typer.launch", return_value=0) as mock_launch:
            await opener.open_path(str(video))
            await opener.open_folder(str(video))

        assert mock_launch.call_args_list[0].kwargs == {"locate": False}
        assert mock_launch.call_args_list[1].kwargs == {"locate": True}

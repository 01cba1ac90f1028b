"""Pytest fixtures for animecat tests."""

from __future__ import annotations

from pathlib import Path

import pytest
from fakes import write_manifest


@pytest.fixture
def library_dir(tmp_path: Path) -> Path:
    """A small library tree.

    Layout::

        lib/
          Anime X/manifest.yml                (is_parent: true, title "Anime X")
          Anime X/S1/manifest.yml             (finished, 12 episodes)
          Anime X/S1/EP01.mkv
          Anime X/S2/manifest.yml             (ongoing)
          Movies/Film A/manifest.yml          (no parent manifest)
          Solo/manifest.yml                   (directly under root)
    """
    root = tmp_path / "lib"
    write_manifest(root / "Anime X", "title: Anime X\nis_parent: true\n")
    write_manifest(
        root / "Anime X" / "S1",
        "title: Anime X\nfansub: TeamA\nsubtitle_type: 简日双语\nepisodes: 12\nquality: 1080P\n",
    )
    (root / "Anime X" / "S1" / "EP01.mkv").write_bytes(b"0" * 10)
    write_manifest(
        root / "Anime X" / "S2",
        "title: Anime X 第二季\nfansub: TeamA,TeamB\nepisodes: -1\nquality: 1080P\n",
    )
    write_manifest(root / "Movies" / "Film A", "title: Film A\nepisodes: '1'\n")
    write_manifest(root / "Solo", "fansub: TeamC\nepisodes: 24\n")
    return root

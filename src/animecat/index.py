"""Markdown export of the whole catalog (``视频索引.MD``)."""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from animecat.constants import UNKNOWN_LABEL
from animecat.ordering import collation_key, entry_sort_key

if TYPE_CHECKING:
    from pathlib import Path

    from animecat.models import LibraryEntry

log: structlog.stdlib.BoundLogger = structlog.get_logger()

_ANCHOR_STRIP = set("【】[]()（）：:、,，。!！?？\"'")


def markdown_anchor(text: str) -> str:
    """Build a GitHub-style heading anchor.

    Example:
        >>> markdown_anchor("【新番】Anime X: 第二季")
        '新番anime-x-第二季'
    """
    chars = [ch for ch in text.lower() if ch not in _ANCHOR_STRIP]
    return "".join("-" if ch.isspace() else ch for ch in chars)


def format_episodes(value: int) -> str:
    if value > 0:
        return str(value)
    if value == 0:
        return UNKNOWN_LABEL
    return "未完结"


def _or_unknown(value: str) -> str:
    return value or UNKNOWN_LABEL


def _grouped(entries: list[LibraryEntry]) -> list[tuple[str, list[LibraryEntry]]]:
    groups: dict[str, list[LibraryEntry]] = {}
    for entry in entries:
        groups.setdefault(entry.group, []).append(entry)
    return [
        (name, sorted(groups[name], key=entry_sort_key)) for name in sorted(groups, key=collation_key)
    ]


def render_index_markdown(entries: list[LibraryEntry]) -> str:
    """Render the catalog as a markdown document with a table of contents."""
    grouped = _grouped(entries)

    lines: list[str] = [
        "# 视频信息",
        "",
        "## 目录",
        "",
        "- [视频信息](#视频信息)",
        "  - [目录](#目录)",
    ]
    for group, items in grouped:
        lines.append(f"    - [{group}](#{markdown_anchor(group)})")
        for item in items:
            if item.title != group:
                lines.append(f"      - [{item.title}](#{markdown_anchor(item.title)})")

    lines.append("")
    for group, items in grouped:
        lines.append(f"### {group}")
        lines.append("")
        for item in items:
            if item.title != group:
                lines.append(f"#### {item.title}")
            lines.extend(
                [
                    "```",
                    f"文件夹名:{item.folder_name}",
                    "",
                    f"字幕组:{_or_unknown(item.fansub)}",
                    "",
                    f"字幕形式:{_or_unknown(item.subtitle_type)}",
                    "",
                    f"集数:{format_episodes(item.episodes)}",
                    "",
                    f"画质:{_or_unknown(item.quality)}",
                ]
            )
            if item.note:
                lines.extend(["", f"备注:{item.note}"])
            lines.extend(["```", ""])

    return "\n".join(lines)


def write_index(root: Path, entries: list[LibraryEntry], filename: str) -> Path:
    """Write the markdown index into *root* and return its path."""
    output = root / filename
    output.write_text(render_index_markdown(entries), encoding="utf-8")
    log.info("wrote video index", path=str(output), entries=len(entries))
    return output

"""Constants for the animecat library catalog."""

from pathlib import Path

# Application name
APP_NAME = "animecat"

# Sidecar descriptor placed inside each media folder
MANIFEST_FILENAME = "manifest.yml"

# SQLite cache stored at the library root
CACHE_DB_FILENAME = "anime-manager.sqlite"

# Default name of the exported markdown index
DEFAULT_INDEX_FILENAME = "视频索引.MD"

# Default library root
DEFAULT_LIBRARY_DIR = Path.home() / "Videos"

# Status facet buckets
STATUS_FINISHED = "已完结"
STATUS_ONGOING = "未完结"
STATUS_LABELS: tuple[str, ...] = (STATUS_FINISHED, STATUS_ONGOING)

# Free-text episode markers meaning "still airing"
ONGOING_KEYWORDS: tuple[str, ...] = ("未完", "连载", "更新中")

# Separators used when a fansub field lists several groups
FANSUB_SEPARATORS = "，,/|"

# Recognized media extensions (lowercase, no dot)
VIDEO_EXTENSIONS = frozenset({"mp4", "mkv", "webm", "avi", "m4v"})
AUDIO_EXTENSIONS = frozenset({"mp3", "flac", "m4a", "aac", "wav", "ogg", "opus"})

# Breadcrumb that leads back to the catalog view
HOME_CRUMB_LABEL = "主页"
HOME_CRUMB_PATH = "home"

# Placeholder for blank fields in rendered output
UNKNOWN_LABEL = "未知"

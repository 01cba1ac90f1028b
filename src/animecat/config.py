"""TOML configuration management for the animecat library catalog."""

import tomllib
from pathlib import Path

from animecat.exceptions import ConfigError
from animecat.models import AppConfig
from animecat.utils import ensure_dir, get_data_dir


def get_config_path() -> Path:
    """Return the path to config.toml inside the data directory."""
    return get_data_dir() / "config.toml"


def load_config() -> AppConfig:
    """Load configuration from the TOML file.

    Returns a default ``AppConfig`` when the file does not exist.
    Raises ``ConfigError`` if the file exists but cannot be parsed.
    """
    path = get_config_path()

    if not path.exists():
        return AppConfig()

    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc

    kwargs: dict[str, object] = {}

    if "library_dir" in data:
        kwargs["library_dir"] = Path(data["library_dir"]).expanduser()
    if "auto_refresh" in data:
        kwargs["auto_refresh"] = bool(data["auto_refresh"])
    if "include_audio" in data:
        kwargs["include_audio"] = bool(data["include_audio"])
    if "index_filename" in data:
        kwargs["index_filename"] = str(data["index_filename"])

    return AppConfig(**kwargs)  # type: ignore[arg-type]


def _toml_string(value: str) -> str:
    """Quote *value* as a TOML basic string."""
    escaped = (
        value.replace("\\", "\\\\")
        .replace('"', '\\"')
        .replace("\n", "\\n")
        .replace("\r", "\\r")
    )
    return f'"{escaped}"'


def save_config(config: AppConfig) -> None:
    """Serialize *config* to the TOML file.

    Uses a simple manual formatter since the stdlib ``tomllib`` is read-only.
    """
    path = get_config_path()
    ensure_dir(path.parent)

    library_dir_str = str(config.library_dir)
    home = str(Path.home())
    if library_dir_str.startswith(home):
        library_dir_str = "~" + library_dir_str[len(home) :]

    lines = [
        f"library_dir = {_toml_string(library_dir_str)}",
        f"auto_refresh = {str(config.auto_refresh).lower()}",
        f"include_audio = {str(config.include_audio).lower()}",
        f"index_filename = {_toml_string(config.index_filename)}",
    ]

    path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def get_or_create_config() -> AppConfig:
    """Load config from disk, creating a default file when none exists."""
    path = get_config_path()

    if not path.exists():
        config = AppConfig()
        save_config(config)
        return config

    return load_config()

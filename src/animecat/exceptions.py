"""Exception hierarchy for the animecat library catalog."""


class AnimecatError(Exception):
    """Base exception for all animecat errors."""

    def __init__(self, message: str = "An unexpected animecat error occurred"):
        self.message = message
        super().__init__(message)


# --- Catalog store ---


class CatalogError(AnimecatError):
    """Catalog store related errors."""

    def __init__(self, message: str = "Catalog operation failed"):
        super().__init__(message)


class LibraryNotFoundError(CatalogError):
    """The configured library root does not exist."""

    def __init__(self, path: str, message: str | None = None):
        self.path = path
        super().__init__(message or f"Base directory not found: {path}")


class LoadError(CatalogError):
    """Reading the cache or rescanning the library failed."""

    def __init__(self, message: str = "Failed to load library"):
        super().__init__(message)


# --- Directory browsing ---


class DirectoryError(AnimecatError):
    """Listing a directory failed."""

    def __init__(self, path: str, message: str | None = None):
        self.path = path
        super().__init__(message or f"Failed to read directory {path}")


class HistoryWriteError(AnimecatError):
    """Persisting play history failed."""

    def __init__(self, message: str = "Failed to update play history"):
        super().__init__(message)


class OpenPathError(AnimecatError):
    """The system application could not be launched for a path."""

    def __init__(self, path: str, message: str | None = None):
        self.path = path
        super().__init__(message or f"Failed to open path: {path}")


# --- Manifest ---


class ManifestError(AnimecatError):
    """Manifest read/write errors."""

    def __init__(self, message: str = "Manifest operation failed"):
        super().__init__(message)


class ManifestValidationError(ManifestError):
    """A manifest payload is not acceptable."""

    def __init__(self, message: str = "Invalid manifest payload"):
        super().__init__(message)


# --- Configuration ---


class ConfigError(AnimecatError):
    """Configuration errors."""

    def __init__(self, message: str = "Invalid configuration"):
        super().__init__(message)

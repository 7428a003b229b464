from __future__ import annotations

import os
from pathlib import Path

__all__: list[str] = [
    "FileUtils",
    "FileUtilsError",
    "PathUnusableError",
]


class FileUtils:
    """Path helpers used when locating and validating cache directories."""

    @staticmethod
    def resolve_path(path: str | Path, *, strict: bool = False) -> Path:
        """Return `path` as an absolute path.

        `$VAR` / `%VAR%` references and a leading `~` are expanded first. Relative paths are taken
        from the current working directory.

        Args:
            path (str | Path): Path as written in the configuration, e.g. "~/cache/$APP_ENV".
            strict (bool): Raise FileNotFoundError when the path does not exist.

        Returns:
            Path: The absolute path.
        """
        candidate: Path = Path(os.path.expandvars(str(path))).expanduser()
        if not candidate.is_absolute():
            candidate = Path.cwd() / candidate
        return candidate.resolve(strict=strict)

    @staticmethod
    def ensure_directory(path: str | Path) -> Path:
        """Resolve a cache directory, creating it when missing, and check it is readable and writable.

        Args:
            path (str | Path): Directory to validate.

        Returns:
            Path: The resolved absolute directory.

        Raises:
            PathUnusableError: If the path is not a directory, cannot be created, or is not readable/writable.
        """
        directory: Path = FileUtils.resolve_path(path)
        try:
            if not directory.exists():
                directory.mkdir(parents=True)
        except OSError as err:
            msg = f"Could not create cache directory: {directory}"
            raise PathUnusableError(msg) from err

        if not directory.is_dir():
            msg = f"Cache path is not a directory: {directory}"
            raise PathUnusableError(msg)
        if not os.access(directory, os.R_OK | os.W_OK | os.X_OK):
            msg = f"Could not read/write in cache directory: {directory}"
            raise PathUnusableError(msg)
        return directory


class FileUtilsError(Exception):
    """Base class of the filesystem helper errors."""


class PathUnusableError(FileUtilsError):
    """The cache directory is missing and cannot be created, or is not readable and writable."""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
import os
from pathlib import Path
from typing import Final

DEFAULT_DIRECTORIES: Final = (".",)
DEFAULT_NAMES: Final = (".env",)

ErrorHandler = Callable[[Path, OSError], None]


def _entries(directory: Path) -> dict[str, Path]:
    return {path.name: path for path in directory.iterdir()}


def _match(directory: Path, entries: Mapping[str, Path], names: Sequence[str]) -> Path | None:
    for name in names:
        path = entries.get(name)
        if path is not None and path.is_file():
            return directory / name
    return None


def _search_subdirectories(directory: Path, entries: Mapping[str, Path], names: Sequence[str],
                           onerror: ErrorHandler | None) -> Path | None:
    # Symlinks are not followed to avoid cycles
    subdirs = sorted(path for path in entries.values()
                     if path.is_dir() and not path.is_symlink())
    for subdir in subdirs:
        try:
            sub_entries = _entries(subdir)
        except OSError as exc:
            if onerror is not None:
                onerror(subdir, exc)
            continue
        found = (_match(subdir, sub_entries, names) or
                 _search_subdirectories(subdir, sub_entries, names, onerror))
        if found is not None:
            return found
    return None


def search_file(directories: Sequence[str | os.PathLike[str]], names: Sequence[str],
                recursive: bool = False, onerror: ErrorHandler | None = None) -> Path | None:
    """Return the path of the first dotenv file found, or None.

    Directories are searched in order, and within each directory the names
    are tried in order. With recursive, subdirectories of each directory
    are searched depth-first, in name order, before moving on to the next
    directory. Directories that cannot be read are passed to onerror,
    along with the exception, and skipped.
    """
    for directory in map(Path, directories):
        try:
            entries = _entries(directory)
        except OSError as exc:
            if onerror is not None:
                onerror(directory, exc)
            continue
        found = _match(directory, entries, names)
        if found is None and recursive:
            found = _search_subdirectories(directory, entries, names, onerror)
        if found is not None:
            return found
    return None

"""Filesystem helpers used by the cache facade."""

import shutil
from pathlib import Path
from typing import Optional, Union

from cachegate.utils.logger import log_debug, log_warning

PathLike = Union[str, Path]


def file_exists(path: Optional[PathLike]) -> bool:
    """Return True if ``path`` is set and points to an existing file."""
    if not path:
        return False
    return Path(path).is_file()


def delete_file(path: PathLike) -> bool:
    """Delete a single file. A missing file counts as deleted."""
    file_path = Path(path)
    try:
        file_path.unlink()
        log_debug("Deleted file", path=str(file_path))
        return True
    except FileNotFoundError:
        return True
    except OSError as e:
        log_warning("Failed to delete file", path=str(file_path), error=str(e))
        return False


def delete_directory(path: PathLike) -> bool:
    """Recursively delete a directory.

    Returns True when the directory no longer exists afterwards, which
    includes the case where it never existed.
    """
    dir_path = Path(path)
    if not dir_path.exists():
        return True

    if not dir_path.is_dir():
        log_warning("Refusing to delete non-directory path", path=str(dir_path))
        return False

    try:
        shutil.rmtree(dir_path)
    except OSError as e:
        log_warning("Failed to delete directory", path=str(dir_path), error=str(e))

    return not dir_path.exists()

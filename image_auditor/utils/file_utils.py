"""
File operations for report and scan output.

The filesystem is only used as a sink: directories are created, artifacts
are inspected for size and empty ones are removed.
"""

from __future__ import annotations

from pathlib import Path

from image_auditor.constants import UNSAFE_FILENAME_CHARS
from image_auditor.exceptions import ReportError


def safe_filename(value: str, max_length: int = 200) -> str:
    """
    Turn an arbitrary string, such as an image reference, into a file name.
    
    Every character outside [A-Za-z0-9._-] becomes '_'. Leading dots are
    replaced so the result is never hidden or a relative path component.
    
    >>> safe_filename("registry.gitlab.com/group/app:1.2")
    'registry.gitlab.com_group_app_1.2'
    """
    name = UNSAFE_FILENAME_CHARS.sub("_", value)
    if name.startswith("."):
        name = "_" + name[1:]
    name = name[:max_length]
    return name or "_"


def ensure_directory(dir_path: Path | str) -> Path:
    """
    Ensure a directory exists, creating if necessary.
    
    Raises:
        ReportError: If the directory cannot be created
    """
    path = Path(dir_path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ReportError(
            f"Cannot create directory {path}: {e.strerror or type(e).__name__}"
        ) from e
    return path


def file_size(path: Path) -> int:
    """Size of a file in bytes, 0 if it does not exist."""
    try:
        return path.stat().st_size
    except FileNotFoundError:
        return 0


def remove_if_empty(path: Path) -> bool:
    """
    Delete a zero-byte file.
    
    Returns:
        True if the file is gone afterwards (deleted or never created),
        False if it holds content and was kept
    """
    if file_size(path) > 0:
        return False
    path.unlink(missing_ok=True)
    return True

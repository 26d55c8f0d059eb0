"""Utility modules."""

from image_auditor.utils.file_utils import (
    ensure_directory,
    file_size,
    remove_if_empty,
    safe_filename,
)
from image_auditor.utils.sanitizer import (
    redact_secrets,
    sanitize_for_log,
    strip_control_chars,
)

__all__ = [
    "ensure_directory",
    "file_size",
    "remove_if_empty",
    "safe_filename",
    "redact_secrets",
    "sanitize_for_log",
    "strip_control_chars",
]

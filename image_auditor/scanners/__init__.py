"""External vulnerability scanners."""

from __future__ import annotations

from typing import TYPE_CHECKING

from image_auditor.scanners.base import BaseScanner
from image_auditor.scanners.trivy import TrivyScanner

if TYPE_CHECKING:
    from image_auditor.config import ScanConfig

__all__ = [
    "BaseScanner",
    "TrivyScanner",
    "get_scanner",
]


def get_scanner(config: "ScanConfig") -> BaseScanner:
    """Build the scanner for a ScanConfig."""
    return TrivyScanner.from_config(config)

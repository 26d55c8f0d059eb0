"""
Per-run context.

One RunContext is created at startup and passed to every stage. It owns the
run timestamp, the output naming derived from it, the lazily created scan
directory and the cancellation flag.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from image_auditor.constants import (
    DEFAULT_FILE_NAME,
    DEFAULT_REF,
    REPORT_PREFIX,
    SCAN_DIR_PREFIX,
)
from image_auditor.logging_config import get_logger

logger = get_logger("context")


def format_timestamp(moment: datetime) -> str:
    """
    Format a moment as compact RFC3339 UTC, safe for file names.
    
    >>> format_timestamp(datetime(2024, 5, 1, 9, 15, 0, tzinfo=timezone.utc))
    '20240501T091500Z'
    """
    utc = moment.astimezone(timezone.utc).replace(microsecond=0)
    rfc3339 = utc.strftime("%Y-%m-%dT%H:%M:%SZ")
    return rfc3339.replace(":", "").replace("-", "")


@dataclass
class RunContext:
    """
    Values shared by every stage of a single audit run.
    
    Example:
        ctx = RunContext.create(Path("./out"), ".gitlab-ci.yml", "main")
        ctx.report_path(".md")   # out/imagelist-20240501T091500Z.md
        ctx.ensure_scan_dir()    # out/scans-20240501T091500Z/
    """
    
    timestamp: str
    output_dir: Path = field(default_factory=lambda: Path("."))
    file_name: str = DEFAULT_FILE_NAME
    ref: str = DEFAULT_REF
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    
    _scan_dir_lock: threading.Lock = field(default_factory=threading.Lock, init=False, repr=False)
    _scan_dir_ready: bool = field(default=False, init=False, repr=False)
    _cancel_event: threading.Event = field(default_factory=threading.Event, init=False, repr=False)
    
    @classmethod
    def create(
        cls,
        output_dir: Path,
        file_name: str = DEFAULT_FILE_NAME,
        ref: str = DEFAULT_REF,
        now: datetime | None = None,
    ) -> "RunContext":
        """Create a context stamped with the current (or given) time."""
        moment = now or datetime.now(timezone.utc)
        return cls(
            timestamp=format_timestamp(moment),
            output_dir=Path(output_dir),
            file_name=file_name,
            ref=ref,
            started_at=moment,
        )
    
    def report_path(self, extension: str = ".md") -> Path:
        """Path of the image list report for this run."""
        return self.output_dir / f"{REPORT_PREFIX}{self.timestamp}{extension}"
    
    @property
    def scan_dir(self) -> Path:
        """Directory holding this run's scan artifacts (may not exist yet)."""
        return self.output_dir / f"{SCAN_DIR_PREFIX}{self.timestamp}"
    
    def ensure_scan_dir(self) -> Path:
        """
        Create the scan directory on first use.
        
        Safe to call from several scan workers at once; the directory is
        created exactly once.
        """
        with self._scan_dir_lock:
            if not self._scan_dir_ready:
                self.scan_dir.mkdir(parents=True, exist_ok=True)
                self._scan_dir_ready = True
                logger.debug(f"Created scan directory {self.scan_dir}")
        return self.scan_dir
    
    def cancel(self) -> None:
        """Request a graceful stop of the run."""
        if not self._cancel_event.is_set():
            logger.warning("Cancellation requested, finishing with partial results")
        self._cancel_event.set()
    
    @property
    def cancelled(self) -> bool:
        return self._cancel_event.is_set()

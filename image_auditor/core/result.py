"""
Audit result data structures.

Immutable records for what each pipeline stage produces, plus the mutable
AuditResult that collects them for one run.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from http import HTTPStatus
from pathlib import Path
from typing import Any

from image_auditor.constants import LIVE_STATUS_CODE
from image_auditor.core.urls import derive_raw_url


@dataclass(frozen=True)
class Project:
    """A project returned by the directory listing, keyed by its web URL."""
    
    web_url: str
    path_with_namespace: str | None = None
    
    def __post_init__(self) -> None:
        if not self.web_url:
            raise ValueError("web_url cannot be empty")


@dataclass(frozen=True)
class CandidateURL:
    """A project URL paired with the raw-content URL derived from it."""
    
    project_url: str
    raw_url: str
    
    @classmethod
    def derive(cls, project_url: str, ref: str, file_name: str) -> "CandidateURL":
        return cls(project_url, derive_raw_url(project_url, ref, file_name))


class ProbeStatus(str, Enum):
    """Outcome of a liveness probe."""
    
    LIVE = "live"     # HTTP 200
    DEAD = "dead"     # any other status code
    ERROR = "error"   # transport failure or timeout, no status code


@dataclass(frozen=True)
class LivenessResult:
    """A CandidateURL tagged with the outcome of its probe."""
    
    candidate: CandidateURL
    status: ProbeStatus
    status_code: int | None = None
    status_text: str = ""
    error: str | None = None
    
    @classmethod
    def from_status_code(
        cls,
        candidate: CandidateURL,
        status_code: int,
        reason: str | None = None,
    ) -> "LivenessResult":
        """Classify a response; only 200 counts as live."""
        try:
            text = HTTPStatus(status_code).phrase
        except ValueError:
            text = reason or "Unknown"
        status = ProbeStatus.LIVE if status_code == LIVE_STATUS_CODE else ProbeStatus.DEAD
        return cls(candidate, status, status_code, text)
    
    @classmethod
    def from_error(cls, candidate: CandidateURL, error: str) -> "LivenessResult":
        return cls(candidate, ProbeStatus.ERROR, None, "", error)
    
    @property
    def live(self) -> bool:
        return self.status is ProbeStatus.LIVE
    
    def describe(self) -> str:
        """Status suffix used in console lines, e.g. '404-Not Found'."""
        if self.status_code is None:
            return self.error or "transport error"
        return f"{self.status_code}-{self.status_text}"
    
    def to_dict(self) -> dict[str, Any]:
        return {
            "project": self.candidate.project_url,
            "raw_url": self.candidate.raw_url,
            "status": self.status.value,
            "status_code": self.status_code,
            "status_text": self.status_text,
            "error": self.error,
        }


class ScanState(str, Enum):
    """
    Where a scan ended up once the scanner has run.
    
    A report with findings is kept; an empty one is removed.
    """
    
    KEPT = "kept"
    REMOVED = "removed"


@dataclass(frozen=True)
class ScanArtifact:
    """What the scanner left behind for one image."""
    
    image: str
    path: Path
    state: ScanState
    size_bytes: int = 0
    exit_code: int | None = None
    error: str | None = None
    
    @property
    def kept(self) -> bool:
        return self.state is ScanState.KEPT
    
    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0 and self.error is None
    
    def to_dict(self) -> dict[str, Any]:
        return {
            "image": self.image,
            "path": str(self.path) if self.kept else None,
            "state": self.state.value,
            "size_bytes": self.size_bytes,
            "exit_code": self.exit_code,
            "error": self.error,
        }


@dataclass
class AuditResult:
    """
    Complete result of an audit run.
    
    project_images only holds projects that declared at least one image;
    unique_images is the deduplicated scan order.
    """
    
    file_name: str
    ref: str
    
    # Timing
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: datetime | None = None
    
    # Stage outputs
    projects: list[Project] = field(default_factory=list)
    liveness: list[LivenessResult] = field(default_factory=list)
    project_images: dict[str, list[str]] = field(default_factory=dict)
    unique_images: list[str] = field(default_factory=list)
    scans: list[ScanArtifact] = field(default_factory=list)
    
    # Image lists written for this run
    reports: list[Path] = field(default_factory=list)
    
    cancelled: bool = False
    auditor_version: str = "1.0.0"
    
    @property
    def duration_seconds(self) -> float | None:
        if self.completed_at is None:
            return None
        return (self.completed_at - self.started_at).total_seconds()
    
    @property
    def live(self) -> list[LivenessResult]:
        return [r for r in self.liveness if r.live]
    
    @property
    def unreachable(self) -> list[LivenessResult]:
        return [r for r in self.liveness if not r.live]
    
    @property
    def kept_scans(self) -> list[ScanArtifact]:
        return [s for s in self.scans if s.kept]
    
    @property
    def failed_scans(self) -> list[ScanArtifact]:
        return [s for s in self.scans if not s.succeeded]
    
    def complete(self) -> None:
        """Mark the audit as complete."""
        self.completed_at = datetime.now(timezone.utc)
    
    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "file_name": self.file_name,
            "ref": self.ref,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_seconds": self.duration_seconds,
            "auditor_version": self.auditor_version,
            "cancelled": self.cancelled,
            "summary": {
                "projects": len(self.projects),
                "reachable": len(self.live),
                "unreachable": len(self.unreachable),
                "projects_with_images": len(self.project_images),
                "unique_images": len(self.unique_images),
                "scans_kept": len(self.kept_scans),
                "scans_failed": len(self.failed_scans),
            },
            # Projects without images are left out, as in the Markdown list
            "projects": {k: list(v) for k, v in self.project_images.items() if v},
            "unique_images": list(self.unique_images),
            "liveness": [r.to_dict() for r in self.liveness],
            "scans": [s.to_dict() for s in self.scans],
        }

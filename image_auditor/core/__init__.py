"""Core audit pipeline module."""

from image_auditor.core.context import RunContext
from image_auditor.core.dedup import ImageInventory, unique
from image_auditor.core.pipeline import Pipeline
from image_auditor.core.result import (
    AuditResult,
    CandidateURL,
    LivenessResult,
    ProbeStatus,
    Project,
    ScanArtifact,
    ScanState,
)
from image_auditor.core.severity import Severity
from image_auditor.core.urls import derive_raw_url

__all__ = [
    "AuditResult",
    "CandidateURL",
    "ImageInventory",
    "LivenessResult",
    "Pipeline",
    "ProbeStatus",
    "Project",
    "RunContext",
    "ScanArtifact",
    "ScanState",
    "Severity",
    "derive_raw_url",
    "unique",
]

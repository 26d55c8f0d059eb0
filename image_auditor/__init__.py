"""
CI-Image-Auditor

Audits the container images referenced by the CI pipeline definitions of
every GitLab project you own, and optionally scans each unique image for
HIGH/CRITICAL vulnerabilities.

Copyright 2024 Raghu
Licensed under the Apache License, Version 2.0
"""

from typing import Final

__version__: Final[str] = "1.0.0"
__author__: Final[str] = "Raghu"
__license__: Final[str] = "Apache-2.0"

# Public API exports
from image_auditor.config import AuditorConfig
from image_auditor.core.context import RunContext
from image_auditor.core.pipeline import Pipeline
from image_auditor.core.result import AuditResult, ScanArtifact
from image_auditor.core.severity import Severity

__all__ = [
    "__version__",
    "__author__",
    "__license__",
    "AuditorConfig",
    "AuditResult",
    "Pipeline",
    "RunContext",
    "ScanArtifact",
    "Severity",
]

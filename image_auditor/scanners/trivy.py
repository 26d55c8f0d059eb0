"""
Trivy image scanner.

Runs `trivy image -s HIGH,CRITICAL -f table -o <path> <image>` per image.

Reference: https://aquasecurity.github.io/trivy/latest/docs/target/container_image/
"""

from __future__ import annotations

import shutil
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING

from image_auditor.constants import GLYPH_FAIL, GLYPH_OK
from image_auditor.core.severity import Severity, severity_argument
from image_auditor.exceptions import ScannerNotAvailableError
from image_auditor.logging_config import get_logger
from image_auditor.scanners.base import BaseScanner

if TYPE_CHECKING:
    from image_auditor.config import ScanConfig

logger = get_logger("scanners.trivy")

PREFLIGHT_TIMEOUT_SECONDS = 30


class TrivyScanner(BaseScanner):
    """Scanner backed by the trivy CLI."""
    
    def __init__(
        self,
        executable: str = "trivy",
        min_severity: Severity = Severity.HIGH,
        output_format: str = "table",
        timeout_seconds: float = 600,
        workers: int = 2,
    ) -> None:
        super().__init__(executable, timeout_seconds=timeout_seconds, workers=workers)
        self.min_severity = min_severity
        self.output_format = output_format
    
    @classmethod
    def from_config(cls, config: "ScanConfig") -> "TrivyScanner":
        return cls(
            executable=config.scanner,
            min_severity=Severity.from_string(config.severities),
            output_format=config.output_format,
            timeout_seconds=config.timeout_seconds,
            workers=config.workers,
        )
    
    @property
    def name(self) -> str:
        return "Trivy"
    
    def preflight(self) -> None:
        """Run `trivy -h` and fail the run if it does not succeed."""
        if shutil.which(self.executable) is None:
            logger.error(f"{GLYPH_FAIL} Trivy not ready")
            raise ScannerNotAvailableError(
                "Scanner executable not found on PATH",
                scanner=self.executable,
            )
        
        try:
            subprocess.run(
                [self.executable, "-h"],
                capture_output=True,
                timeout=PREFLIGHT_TIMEOUT_SECONDS,
                check=True,
            )
        except subprocess.CalledProcessError as e:
            logger.error(f"{GLYPH_FAIL} Trivy not ready")
            raise ScannerNotAvailableError(
                "Scanner preflight failed",
                scanner=self.executable,
                details={"exit_code": e.returncode},
            ) from e
        except (subprocess.TimeoutExpired, OSError) as e:
            logger.error(f"{GLYPH_FAIL} Trivy not ready")
            raise ScannerNotAvailableError(
                f"Scanner preflight failed: {type(e).__name__}",
                scanner=self.executable,
            ) from e
        
        logger.info(f"{GLYPH_OK} Trivy detected")
    
    def build_command(self, image: str, output_path: Path) -> list[str]:
        return [
            self.executable,
            "image",
            "-s", severity_argument(self.min_severity),
            "-f", self.output_format,
            "-o", str(output_path),
            image,
        ]

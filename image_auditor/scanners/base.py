"""
Abstract base class for external image scanners.

A scanner is an executable run once per unique image. Its report file is
the artifact; a zero-byte report carries no signal and is deleted.
Failures of a single scan never abort the run.
"""

from __future__ import annotations

import subprocess
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING

from image_auditor.constants import SCAN_FILE_EXTENSION, SCAN_FILE_PREFIX
from image_auditor.core.pool import bounded_map
from image_auditor.core.result import ScanArtifact, ScanState
from image_auditor.logging_config import get_logger
from image_auditor.utils.file_utils import file_size, remove_if_empty, safe_filename
from image_auditor.utils.sanitizer import sanitize_for_log

if TYPE_CHECKING:
    from image_auditor.core.context import RunContext

logger = get_logger("scanners")


class BaseScanner(ABC):
    """
    Abstract base class for image scanners.
    
    Subclasses must implement:
    - name: Human-readable scanner name
    - preflight: Verify the executable is usable
    - build_command: Argument vector for one image
    
    The base class provides:
    - Artifact naming inside the run's scan directory
    - Subprocess execution with a timeout
    - Empty artifact cleanup
    - Bounded parallel fan-out over unique images
    """
    
    def __init__(
        self,
        executable: str,
        timeout_seconds: float = 600,
        workers: int = 2,
    ) -> None:
        self.executable = executable
        self.timeout_seconds = timeout_seconds
        self.workers = max(1, workers)
    
    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable name of the scanner."""
        ...
    
    @abstractmethod
    def preflight(self) -> None:
        """
        Verify the scanner can run at all.
        
        Raises:
            ScannerNotAvailableError: If the executable is missing or broken
        """
        ...
    
    @abstractmethod
    def build_command(self, image: str, output_path: Path) -> list[str]:
        """Argument vector that scans `image` into `output_path`."""
        ...
    
    def artifact_path(self, image: str, context: "RunContext") -> Path:
        """Per-image artifact path embedding the run timestamp."""
        file_name = (
            f"{SCAN_FILE_PREFIX}{context.timestamp}-{safe_filename(image)}{SCAN_FILE_EXTENSION}"
        )
        return context.scan_dir / file_name
    
    def scan_one(
        self,
        image: str,
        context: "RunContext",
        output_path: Path | None = None,
    ) -> ScanArtifact:
        """
        Scan a single image.
        
        Never raises for a single image: a failure to start, a timeout or a
        non-zero exit is recorded on the artifact and the run carries on.
        
        Returns:
            ScanArtifact in state KEPT if a non-empty report exists,
            REMOVED otherwise
        """
        path = output_path or self.artifact_path(image, context)
        
        try:
            context.ensure_scan_dir()
        except OSError as e:
            error = f"cannot create scan directory: {e.strerror or type(e).__name__}"
            logger.warning(f"{self.name} scan of {image} skipped, {error}")
            return ScanArtifact(image=image, path=path, state=ScanState.REMOVED, error=error)
        
        command = self.build_command(image, path)
        
        logger.info(f"Scanning {image} with {self.name}")
        exit_code: int | None = None
        error: str | None = None
        
        try:
            # Raw bytes: scanner output is not guaranteed to be UTF-8
            completed = subprocess.run(
                command,
                capture_output=True,
                timeout=self.timeout_seconds,
                check=False,
            )
            exit_code = completed.returncode
            if completed.stdout:
                logger.debug(f"{self.name} output for {image}: {_decode(completed.stdout)}")
            if exit_code != 0:
                logger.warning(f"{self.name} scan of {image} failed: command exit rc = {exit_code}")
                if completed.stderr:
                    logger.debug(f"{self.name} stderr for {image}: {_decode(completed.stderr)}")
        except subprocess.TimeoutExpired:
            error = f"timed out after {self.timeout_seconds:g}s"
            logger.warning(f"{self.name} scan of {image} {error}")
        except (OSError, ValueError, subprocess.SubprocessError) as e:
            error = type(e).__name__
            logger.warning(f"{self.name} scan of {image} could not run: {e}")
        
        return self._settle(image, path, exit_code, error)
    
    def scan_all(self, images: list[str], context: "RunContext") -> list[ScanArtifact]:
        """
        Scan every image once, at most `workers` at a time.
        
        Images are submitted in the given order and results come back in
        that order. Images not yet started when the run is cancelled are
        skipped.
        """
        if not images:
            return []
        
        paths = self._assign_paths(images, context)
        results = bounded_map(
            lambda image: self.scan_one(image, context, paths[image]),
            images,
            workers=self.workers,
            context=context,
            name="scan",
        )
        return [artifact for artifact in results if artifact is not None]
    
    def _assign_paths(self, images: list[str], context: "RunContext") -> dict[str, Path]:
        """Give every image its own artifact path, even when safe names collide."""
        paths: dict[str, Path] = {}
        taken: set[Path] = set()
        for image in images:
            base = self.artifact_path(image, context)
            path = base
            counter = 2
            while path in taken:
                path = base.with_name(f"{base.stem}-{counter}{base.suffix}")
                counter += 1
            taken.add(path)
            paths[image] = path
        return paths
    
    def _settle(
        self,
        image: str,
        path: Path,
        exit_code: int | None,
        error: str | None,
    ) -> ScanArtifact:
        """Inspect the artifact and delete it when empty."""
        try:
            size = file_size(path)
            removed = remove_if_empty(path)
        except OSError as e:
            size = 0
            logger.warning(f"Could not inspect artifact {path.name}: {e}")
            removed = False
        
        if removed:
            logger.info(f"No findings kept for {image}")
            state = ScanState.REMOVED
        else:
            logger.info(f"Scan report for {image} saved as {path}")
            state = ScanState.KEPT
        
        return ScanArtifact(
            image=image,
            path=path,
            state=state,
            size_bytes=size,
            exit_code=exit_code,
            error=error,
        )


def _decode(output: bytes) -> str:
    """Scanner output as loggable text; undecodable bytes become U+FFFD."""
    return sanitize_for_log(output.decode("utf-8", errors="replace"))

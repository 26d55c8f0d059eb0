"""
Main audit orchestrator for the CI-Image-Auditor.

Runs the stages in order:
1. Discover projects and derive raw-file URLs
2. Probe each URL for liveness
3. Scrape image references from live files
4. Write the image list
5. Scan each unique image (optional)

Per-URL and per-scan failures are logged and excluded. Only listing
failures, strict-mode transport failures and report write failures abort.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Callable

from image_auditor import __version__
from image_auditor.core.dedup import ImageInventory
from image_auditor.core.pool import bounded_map
from image_auditor.core.result import (
    AuditResult,
    CandidateURL,
    LivenessResult,
    Project,
    ScanArtifact,
)
from image_auditor.logging_config import get_logger
from image_auditor.parsers.images import ImageScraper
from image_auditor.reporters import get_reporters

if TYPE_CHECKING:
    from image_auditor.config import AuditorConfig
    from image_auditor.core.context import RunContext
    from image_auditor.reporters.base import BaseReporter
    from image_auditor.scanners.base import BaseScanner
    from image_auditor.sources.gitlab import GitLabClient
    from image_auditor.sources.transport import RawTransport

logger = get_logger("pipeline")

ProgressCallback = Callable[[str, str], None]


class Pipeline:
    """
    Orchestrates one audit run.
    
    Example:
        context = RunContext.create(config.output_dir, config.file_name, config.ref)
        pipeline = Pipeline(config, context, client, transport, scanner)
        result = pipeline.run()
    """
    
    def __init__(
        self,
        config: "AuditorConfig",
        context: "RunContext",
        client: "GitLabClient",
        transport: "RawTransport",
        scanner: "BaseScanner | None" = None,
        progress_callback: ProgressCallback | None = None,
        reporters: "list[BaseReporter] | None" = None,
    ) -> None:
        self.config = config
        self.context = context
        self.client = client
        self.transport = transport
        self.scanner = scanner
        # None means the formats named in the config; [] writes nothing
        self.reporters = (
            get_reporters(config.report.format) if reporters is None else list(reporters)
        )
        self.scraper = ImageScraper(transport)
        self._progress = progress_callback
    
    def run(self) -> AuditResult:
        """
        Run a complete audit.
        
        The image list is written as soon as scraping is done, before any
        scan starts, so a failing scanner cannot cost the list.
        
        Returns:
            The audit result. If the run was cancelled, `cancelled` is set
            and the result holds whatever finished before.
        
        Raises:
            DirectoryListingError: If the project listing fails
            TransportError: On transport failure with the strict policy
            ReportError: If the image list cannot be written
        """
        result = AuditResult(
            file_name=self.context.file_name,
            ref=self.context.ref,
            started_at=self.context.started_at,
            auditor_version=__version__,
        )
        
        logger.info(
            f'Scanning files: "{self.context.file_name}" in Git Refs: "{self.context.ref}"'
        )
        
        try:
            self._collect(result)
            result.cancelled = self.context.cancelled
            result.reports = self.write_reports(result, self.reporters)
            
            if self.scanner is not None and not self.context.cancelled:
                result.scans = self.scan(result.unique_images)
        finally:
            result.cancelled = self.context.cancelled
            result.complete()
        
        # Reports carrying scan outcomes are refreshed now that they exist
        if result.scans:
            self.write_reports(result, [r for r in self.reporters if r.includes_scans])
        
        self._log_summary(result)
        return result
    
    def _collect(self, result: AuditResult) -> None:
        """Discover, probe and scrape into `result`, stopping early once cancelled."""
        result.projects = self.discover()
        candidates = self.derive(result.projects)
        
        if self.context.cancelled:
            return
        
        result.liveness = self.probe_all(candidates)
        live = [r.candidate for r in result.liveness if r.live]
        
        if self.context.cancelled:
            return
        
        inventory = self.scrape_all(live)
        result.project_images = inventory.project_images
        result.unique_images = inventory.unique_images
    
    def discover(self) -> list[Project]:
        """List the projects to audit."""
        self._notify("discover", "Listing projects...")
        projects = self.client.list_projects()
        for project in projects:
            logger.info(f"Project webUrl found: {project.web_url}")
        if not projects:
            logger.warning("No projects found for this token")
        return projects
    
    def derive(self, projects: list[Project]) -> list[CandidateURL]:
        """Derive the raw-content URL of the pipeline file for each project."""
        return [
            CandidateURL.derive(p.web_url, self.context.ref, self.context.file_name)
            for p in projects
        ]
    
    def probe_all(self, candidates: list[CandidateURL]) -> list[LivenessResult]:
        """Probe every candidate; results keep candidate order."""
        self._notify("probe", f"Probing {len(candidates)} URL(s)...")
        results = bounded_map(
            self.transport.probe,
            candidates,
            workers=self.config.probe.workers,
            context=self.context,
            name="probe",
            on_result=lambda c, r: self._notify("probe", c.raw_url),
        )
        return [r for r in results if r is not None]
    
    def scrape_all(self, live: list[CandidateURL]) -> ImageInventory:
        """
        Scrape every live file.
        
        Fetches run in parallel, but images are recorded in listing order
        so the unique image order does not depend on scheduling.
        """
        self._notify("scrape", f"Scraping {len(live)} file(s)...")
        scraped = bounded_map(
            self.scraper.scrape,
            live,
            workers=self.config.probe.workers,
            context=self.context,
            name="scrape",
            on_result=lambda c, images: self._notify("scrape", c.project_url),
        )
        
        inventory = ImageInventory()
        for candidate, images in zip(live, scraped):
            if images:
                inventory.record(candidate.project_url, images)
        return inventory
    
    def write_reports(
        self,
        result: AuditResult,
        reporters: "list[BaseReporter]",
    ) -> list[Path]:
        """Write each report for this run; a write failure is fatal."""
        if not reporters:
            return []
        self._notify("report", "Writing image list...")
        paths = []
        for reporter in reporters:
            path = reporter.write(result, self.context)
            logger.info(f"{reporter.format_name} image list saved as {path}")
            paths.append(path)
        return paths
    
    def scan(self, images: list[str]) -> list[ScanArtifact]:
        """Scan each unique image once."""
        if self.scanner is None or not images:
            return []
        self._notify("scan", f"Scanning {len(images)} image(s)...")
        return self.scanner.scan_all(images, self.context)
    
    def _notify(self, stage: str, detail: str) -> None:
        if self._progress:
            self._progress(stage, detail)
    
    def _log_summary(self, result: AuditResult) -> None:
        """Log audit summary."""
        logger.info(
            f"Audit {'cancelled' if result.cancelled else 'complete'}. "
            f"Projects: {len(result.projects)}, reachable: {len(result.live)}, "
            f"unique images: {len(result.unique_images)}"
        )
        if result.scans:
            logger.info(
                f"Scans kept: {len(result.kept_scans)}/{len(result.scans)}, "
                f"failed: {len(result.failed_scans)}"
            )
        if result.duration_seconds is not None:
            logger.debug(f"Audit duration: {result.duration_seconds:.2f}s")

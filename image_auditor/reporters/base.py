"""
Abstract base class for report generators.

Reports are written line by line and every line is flushed to disk before
the next one, so an interrupted run still leaves everything written so far.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

from image_auditor.exceptions import ReportError
from image_auditor.logging_config import get_logger
from image_auditor.utils.file_utils import ensure_directory

if TYPE_CHECKING:
    from image_auditor.core.context import RunContext
    from image_auditor.core.result import AuditResult

logger = get_logger("reporters")


class BaseReporter(ABC):
    """
    Abstract base class for report generators.
    
    Subclasses must implement:
    - format_name: Name of the output format
    - file_extension: File extension for output
    - generate_lines: Report content, one line at a time
    """
    
    @property
    @abstractmethod
    def format_name(self) -> str:
        """Name of the report format (e.g., 'JSON', 'Markdown')."""
        ...
    
    @property
    @abstractmethod
    def file_extension(self) -> str:
        """File extension for output files (e.g., '.md')."""
        ...
    
    @property
    def includes_scans(self) -> bool:
        """Whether the report changes once scan results are in."""
        return False
    
    @abstractmethod
    def generate_lines(
        self,
        result: "AuditResult",
        context: "RunContext",
    ) -> Iterator[str]:
        """Yield report lines, each including its trailing newline."""
        ...
    
    def generate(self, result: "AuditResult", context: "RunContext") -> str:
        """Report content as a single string."""
        return "".join(self.generate_lines(result, context))
    
    def write(self, result: "AuditResult", context: "RunContext") -> Path:
        """
        Write the report for this run, truncating any existing file.
        
        Returns:
            Path to the written report file
        
        Raises:
            ReportError: If the file cannot be created or written
        """
        ensure_directory(context.output_dir)
        file_path = context.report_path(self.file_extension)
        
        try:
            with open(file_path, "w", encoding="utf-8") as handle:
                for line in self.generate_lines(result, context):
                    handle.write(line)
                    handle.flush()
                    os.fsync(handle.fileno())
        except OSError as e:
            raise ReportError(
                f"Failed to write {self.format_name} report to {file_path}: "
                f"{e.strerror or type(e).__name__}"
            ) from e
        
        logger.debug(f"{self.format_name} report written to {file_path}")
        return file_path

"""
JSON report generator.

Machine-readable companion to the Markdown image list, suitable for
feeding other tools. Unlike the Markdown list it also records liveness
and scan outcomes, so it is written again once scanning has finished.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Iterator

from image_auditor.reporters.base import BaseReporter

if TYPE_CHECKING:
    from image_auditor.core.context import RunContext
    from image_auditor.core.result import AuditResult

SCHEMA_VERSION = "1.0"


class JSONReporter(BaseReporter):
    """
    Generate JSON format reports.
    
    Output is a single JSON object with:
    - Run metadata (timestamp, file, ref, timing)
    - project -> images mapping (projects without images omitted)
    - Unique images in scan order
    - Liveness and scan outcomes
    """
    
    def __init__(self, pretty: bool = True) -> None:
        self.pretty = pretty
    
    @property
    def format_name(self) -> str:
        return "JSON"
    
    @property
    def file_extension(self) -> str:
        return ".json"
    
    @property
    def includes_scans(self) -> bool:
        return True
    
    def generate_lines(
        self,
        result: "AuditResult",
        context: "RunContext",
    ) -> Iterator[str]:
        data = {
            "schema_version": SCHEMA_VERSION,
            "run_id": context.timestamp,
            **result.to_dict(),
        }
        indent = 2 if self.pretty else None
        yield json.dumps(data, indent=indent, default=str, ensure_ascii=False) + "\n"

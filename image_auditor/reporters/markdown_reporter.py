"""
Markdown image list.

One section per project that declares at least one image:

    ### https://gitlab.com/group/app (.gitlab-ci.yml)
    nginx:1.21  
    golang:1.20  

Each image line ends with two spaces, a Markdown line break. Projects
without images are left out entirely.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Iterator

from image_auditor.reporters.base import BaseReporter

if TYPE_CHECKING:
    from image_auditor.core.context import RunContext
    from image_auditor.core.result import AuditResult


class MarkdownReporter(BaseReporter):
    """Generate the per-run image list as Markdown."""
    
    @property
    def format_name(self) -> str:
        return "Markdown"
    
    @property
    def file_extension(self) -> str:
        return ".md"
    
    def generate_lines(
        self,
        result: "AuditResult",
        context: "RunContext",
    ) -> Iterator[str]:
        for project_url, images in result.project_images.items():
            if not images:
                continue
            yield f"### {project_url} ({context.file_name})\n"
            for image in images:
                yield f"{image}  \n"

"""Report generators module."""

from image_auditor.reporters.base import BaseReporter
from image_auditor.reporters.json_reporter import JSONReporter
from image_auditor.reporters.markdown_reporter import MarkdownReporter

__all__ = [
    "BaseReporter",
    "JSONReporter",
    "MarkdownReporter",
    "get_reporters",
]


def get_reporters(format: str) -> list[BaseReporter]:
    """Reporters for a format name: markdown, json or all."""
    reporters: list[BaseReporter] = []
    if format in ("markdown", "all"):
        reporters.append(MarkdownReporter())
    if format in ("json", "all"):
        reporters.append(JSONReporter())
    return reporters

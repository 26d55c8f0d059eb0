"""Project discovery and raw-file transport."""

from image_auditor.sources.gitlab import GitLabClient, make_session
from image_auditor.sources.transport import RawTransport

__all__ = [
    "GitLabClient",
    "RawTransport",
    "make_session",
]

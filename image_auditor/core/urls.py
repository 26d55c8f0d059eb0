"""
Raw-content URL derivation.
"""

from __future__ import annotations

from image_auditor.constants import RAW_PATH_SEGMENT


def derive_raw_url(project_url: str, ref: str, file_name: str) -> str:
    """
    Build the raw-content URL of a file at a ref.
    
    Pure string composition; nothing is validated, so a bad ref just
    yields a URL that fails the liveness probe.
    
    >>> derive_raw_url("https://gitlab.com/group/app", "main", ".gitlab-ci.yml")
    'https://gitlab.com/group/app/-/raw/main/.gitlab-ci.yml'
    """
    return f"{project_url}{RAW_PATH_SEGMENT}{ref}/{file_name}"

"""
Image directive scraper for CI pipeline files.

Textual only: the file is never parsed as YAML. A line counts when, after
optional leading whitespace, it starts with `image:` followed by at least
one whitespace character and a value. Commented lines and bare `image:`
keys (the `image: {name: ...}` mapping form) are skipped, as are values
split across lines, quoted blocks and YAML aliases.

Reference: https://docs.gitlab.com/ee/ci/yaml/#image
"""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from image_auditor.constants import IMAGE_DIRECTIVE_PATTERN, IMAGE_DIRECTIVE_TOKEN
from image_auditor.logging_config import get_logger

if TYPE_CHECKING:
    from image_auditor.core.result import CandidateURL
    from image_auditor.sources.transport import RawTransport

logger = get_logger("parsers.images")

_WHITESPACE = re.compile(r"\s+")


def normalize_image(directive: str) -> str:
    """
    Strip the directive token and every whitespace character.
    
    >>> normalize_image("  image:   golang:1.20")
    'golang:1.20'
    """
    return _WHITESPACE.sub("", directive.replace(IMAGE_DIRECTIVE_TOKEN, "", 1))


def extract_images(content: str) -> list[str]:
    """
    Extract image references from pipeline file content in document order.
    
    Duplicates are kept; deduplication happens across projects later.
    """
    if not content:
        return []
    
    images = []
    for match in IMAGE_DIRECTIVE_PATTERN.finditer(content):
        image = normalize_image(match.group(0))
        if image:
            images.append(image)
    return images


class ImageScraper:
    """
    Fetches a live raw URL and returns the images it declares.
    
    Example:
        scraper = ImageScraper(transport)
        images = scraper.scrape(candidate)
    """
    
    def __init__(self, transport: "RawTransport") -> None:
        self.transport = transport
    
    def scrape(self, candidate: "CandidateURL") -> list[str]:
        """
        Scrape one project's pipeline file.
        
        A failed fetch or an empty body yields an empty list, the same as
        a file without image directives.
        """
        logger.info(f"Scraping {candidate.project_url} {candidate.raw_url}")
        content = self.transport.fetch(candidate.raw_url)
        images = extract_images(content)
        
        if images:
            logger.debug(f"Found {len(images)} image(s) in {candidate.project_url}")
        else:
            logger.debug(f"No image directives in {candidate.project_url}")
        
        return images

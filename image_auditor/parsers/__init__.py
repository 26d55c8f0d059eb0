"""Pipeline file parsers."""

from image_auditor.parsers.images import ImageScraper, extract_images, normalize_image

__all__ = [
    "ImageScraper",
    "extract_images",
    "normalize_image",
]

"""
Order-preserving deduplication and the shared image inventory.
"""

from __future__ import annotations

import threading
from typing import Hashable, Iterable, TypeVar

T = TypeVar("T", bound=Hashable)


def unique(items: Iterable[T]) -> list[T]:
    """
    Drop repeated values, keeping the first occurrence of each.
    
    Idempotent: unique(unique(xs)) == unique(xs).
    
    >>> unique(["nginx", "alpine", "nginx"])
    ['nginx', 'alpine']
    """
    seen: set[T] = set()
    result: list[T] = []
    for item in items:
        if item not in seen:
            seen.add(item)
            result.append(item)
    return result


class ImageInventory:
    """
    Thread-safe accumulator for scraped images.
    
    Holds the project -> images mapping (duplicates within a project kept,
    file order preserved) and the global set of unique images in order of
    first appearance. Every image in the mapping is also in the unique set.
    """
    
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._project_images: dict[str, list[str]] = {}
        self._seen: set[str] = set()
        self._unique: list[str] = []
    
    def record(self, project_url: str, images: Iterable[str]) -> None:
        """Append a project's images. Projects with no images are ignored."""
        images = list(images)
        if not images:
            return
        with self._lock:
            self._project_images.setdefault(project_url, []).extend(images)
            for image in images:
                if image not in self._seen:
                    self._seen.add(image)
                    self._unique.append(image)
    
    @property
    def project_images(self) -> dict[str, list[str]]:
        with self._lock:
            return {k: list(v) for k, v in self._project_images.items()}
    
    @property
    def unique_images(self) -> list[str]:
        with self._lock:
            return list(self._unique)
    
    def __len__(self) -> int:
        with self._lock:
            return len(self._unique)

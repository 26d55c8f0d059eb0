"""
GitLab project directory.

Lists the projects the token owner can see and returns their web URLs.
Only the first page is requested.

Reference: https://docs.gitlab.com/ee/api/projects.html#list-all-projects
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import requests

from image_auditor import __version__
from image_auditor.constants import PROJECTS_API_PATH
from image_auditor.core.result import Project
from image_auditor.exceptions import DirectoryListingError
from image_auditor.logging_config import get_logger

if TYPE_CHECKING:
    from image_auditor.config import GitLabConfig

logger = get_logger("sources.gitlab")


def make_session(verify_ssl: bool = True) -> requests.Session:
    """Create the HTTP session shared by the listing client and the transport."""
    session = requests.Session()
    session.headers["User-Agent"] = f"ci-image-auditor/{__version__}"
    session.verify = verify_ssl
    return session


class GitLabClient:
    """
    Minimal GitLab API client for the project listing.
    
    Example:
        client = GitLabClient(config.gitlab, token=config.require_token())
        projects = client.list_projects()
    """
    
    def __init__(
        self,
        config: "GitLabConfig",
        token: str,
        session: requests.Session | None = None,
    ) -> None:
        self.config = config
        self._token = token
        self.session = session or make_session(config.verify_ssl)
    
    @property
    def projects_url(self) -> str:
        return f"{self.config.url}{PROJECTS_API_PATH}"
    
    def list_projects(self) -> list[Project]:
        """
        Fetch the first page of projects in the configured order.
        
        Returns:
            Projects in listing order
        
        Raises:
            DirectoryListingError: On transport failure, non-2xx status or
                an unexpected payload
        """
        params: dict[str, Any] = {
            "order_by": self.config.order_by,
            "per_page": self.config.per_page,
            "simple": "true",
        }
        # Without an explicit sort GitLab returns the listing descending
        if self.config.sort:
            params["sort"] = self.config.sort
        if self.config.owned:
            params["owned"] = "true"
        
        try:
            response = self.session.get(
                self.projects_url,
                params=params,
                headers={"PRIVATE-TOKEN": self._token},
                timeout=self.config.timeout_seconds,
            )
        except requests.RequestException as e:
            raise DirectoryListingError(
                f"Failed to list projects: {type(e).__name__}",
                details={"url": self.projects_url},
            ) from e
        
        if not response.ok:
            raise DirectoryListingError(
                "Failed to list projects",
                status_code=response.status_code,
                details={"url": self.projects_url},
            )
        
        try:
            payload = response.json()
        except ValueError as e:
            raise DirectoryListingError("Project listing is not valid JSON") from e
        
        if not isinstance(payload, list):
            raise DirectoryListingError(
                "Project listing has unexpected shape",
                details={"type": type(payload).__name__},
            )
        
        projects = self._parse_projects(payload)
        logger.debug(f"Listed {len(projects)} project(s) from {self.config.url}")
        return projects
    
    def _parse_projects(self, payload: list[Any]) -> list[Project]:
        """Keep entries with a web URL, preserving order and skipping repeats."""
        projects: list[Project] = []
        seen: set[str] = set()
        
        for entry in payload:
            if not isinstance(entry, dict):
                continue
            web_url = entry.get("web_url")
            if not isinstance(web_url, str) or not web_url:
                logger.debug("Skipping project entry without web_url")
                continue
            web_url = web_url.rstrip("/")
            if web_url in seen:
                continue
            seen.add(web_url)
            projects.append(
                Project(web_url=web_url, path_with_namespace=entry.get("path_with_namespace"))
            )
        
        return projects

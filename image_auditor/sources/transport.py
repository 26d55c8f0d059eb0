"""
Raw-file transport: liveness probes and content fetches.

Every call returns a result instead of raising. Transport failures are
tagged ERROR and logged unless the strict policy is on, in which case they
raise TransportError and abort the run.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import requests

from image_auditor.constants import GLYPH_FAIL, GLYPH_OK, MAX_CONTENT_BYTES
from image_auditor.core.result import CandidateURL, LivenessResult
from image_auditor.exceptions import TransportError
from image_auditor.logging_config import get_logger
from image_auditor.sources.gitlab import make_session

if TYPE_CHECKING:
    from image_auditor.config import ProbeConfig

logger = get_logger("sources.transport")


class RawTransport:
    """
    HTTP GET over a shared requests session with a bounded timeout.
    
    requests.Session is not documented as thread-safe for mutation, but
    concurrent GETs on a session whose headers are not changed are fine.
    """
    
    def __init__(
        self,
        timeout_seconds: float = 15,
        max_content_bytes: int = MAX_CONTENT_BYTES,
        session: requests.Session | None = None,
        strict: bool = False,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.max_content_bytes = max_content_bytes
        self.session = session or make_session()
        self.strict = strict
    
    @classmethod
    def from_config(
        cls,
        config: "ProbeConfig",
        session: requests.Session | None = None,
        strict: bool = False,
    ) -> "RawTransport":
        return cls(
            timeout_seconds=config.timeout_seconds,
            max_content_bytes=config.max_content_bytes,
            session=session,
            strict=strict,
        )
    
    def probe(self, candidate: CandidateURL) -> LivenessResult:
        """
        Check whether a raw URL serves content.
        
        Only status 200 is live. Redirects are not followed, so a login
        redirect for a private project counts as dead.
        """
        url = candidate.raw_url
        try:
            with self.session.get(
                url,
                timeout=self.timeout_seconds,
                allow_redirects=False,
                stream=True,
            ) as response:
                result = LivenessResult.from_status_code(
                    candidate, response.status_code, response.reason
                )
        except requests.RequestException as e:
            if self.strict:
                raise TransportError(
                    f"Transport failure: {type(e).__name__}", url=url
                ) from e
            result = LivenessResult.from_error(candidate, type(e).__name__)
            logger.warning(f"{GLYPH_FAIL} {url} is NOT reachable ({result.describe()})")
            logger.debug(f"Probe error for {url}: {e}")
            return result
        
        if result.live:
            logger.info(f"{GLYPH_OK} {url} IS reachable ({result.describe()})")
        else:
            logger.info(f"{GLYPH_FAIL} {url} is NOT reachable ({result.describe()})")
        return result
    
    def fetch(self, url: str) -> str:
        """
        Fetch a raw URL as text.
        
        Returns an empty string on any failure; a missing body simply
        yields no images downstream.
        """
        try:
            with self.session.get(
                url,
                timeout=self.timeout_seconds,
                allow_redirects=False,
                stream=True,
            ) as response:
                if response.status_code != 200:
                    logger.warning(f"Fetch of {url} returned {response.status_code}, skipping")
                    return ""
                body = self._read_limited(response)
                encoding = response.encoding or "utf-8"
        except requests.RequestException as e:
            if self.strict:
                raise TransportError(
                    f"Transport failure: {type(e).__name__}", url=url
                ) from e
            logger.warning(f"Fetch of {url} failed ({type(e).__name__}), skipping")
            return ""
        
        try:
            return body.decode(encoding, errors="replace")
        except LookupError:
            return body.decode("utf-8", errors="replace")
    
    def _read_limited(self, response: requests.Response) -> bytes:
        """Read at most max_content_bytes from a streamed response."""
        chunks: list[bytes] = []
        total = 0
        for chunk in response.iter_content(chunk_size=64 * 1024):
            if not chunk:
                continue
            remaining = self.max_content_bytes - total
            if len(chunk) >= remaining:
                chunks.append(chunk[:remaining])
                logger.warning(
                    f"Content of {response.url} exceeds {self.max_content_bytes} bytes, truncated"
                )
                break
            chunks.append(chunk)
            total += len(chunk)
        return b"".join(chunks)

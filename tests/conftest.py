"""
Pytest fixtures and configuration.
"""

from __future__ import annotations

import json
import logging
import os
import subprocess
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Generator

import pytest
import requests

from image_auditor.core.context import RunContext


class FakeResponse:
    """Just enough of requests.Response for the transport and client."""
    
    def __init__(
        self,
        status_code: int = 200,
        body: bytes | str = b"",
        url: str = "",
        reason: str = "",
        encoding: str | None = "utf-8",
    ) -> None:
        self.status_code = status_code
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        self.url = url
        self.reason = reason
        self.encoding = encoding
        self.closed = False
    
    @property
    def ok(self) -> bool:
        return self.status_code < 400
    
    def json(self) -> Any:
        return json.loads(self._body.decode("utf-8"))
    
    def iter_content(self, chunk_size: int = 1) -> Generator[bytes, None, None]:
        for start in range(0, len(self._body), chunk_size):
            yield self._body[start:start + chunk_size]
    
    def close(self) -> None:
        self.closed = True
    
    def __enter__(self) -> "FakeResponse":
        return self
    
    def __exit__(self, *exc: Any) -> None:
        self.close()


class FakeSession:
    """
    Serves canned responses by URL.
    
    Values are (status_code, body) tuples or exception instances to raise.
    Unknown URLs answer 404.
    """
    
    def __init__(self, routes: dict[str, Any] | None = None) -> None:
        self.routes = dict(routes or {})
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.headers: dict[str, str] = {}
    
    def get(self, url: str, **kwargs: Any) -> FakeResponse:
        self.calls.append((url, kwargs))
        route = self.routes.get(url, (404, b""))
        if isinstance(route, BaseException):
            raise route
        status, body = route
        return FakeResponse(status, body, url=url)
    
    def urls(self) -> list[str]:
        return [url for url, _ in self.calls]
    
    def close(self) -> None:
        pass


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Undo setup_logging between tests so caplog sees package records."""
    yield
    package_logger = logging.getLogger("image_auditor")
    package_logger.handlers.clear()
    package_logger.propagate = True
    package_logger.setLevel(logging.NOTSET)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep a developer's GCIS_* variables out of the tests."""
    for key in list(os.environ):
        if key.upper().startswith("GCIS_"):
            monkeypatch.delenv(key, raising=False)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def run_context(temp_dir: Path) -> RunContext:
    """A run context with a fixed timestamp writing into temp_dir."""
    return RunContext.create(
        temp_dir,
        ".gitlab-ci.yml",
        "main",
        now=datetime(2024, 5, 1, 9, 15, 0, tzinfo=timezone.utc),
    )


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def connection_error() -> requests.ConnectionError:
    return requests.ConnectionError("Name or service not known")


@pytest.fixture
def sample_gitlab_ci() -> str:
    """Multi-job pipeline with a commented-out image and a mapping-form image."""
    return '''
image: python:3.12-slim

stages:
  - build
  - test

build:
  stage: build
  image:   docker:24.0
  services:
    - docker:24.0-dind
  script:
    - docker build .

test:
  stage: test
  # image: old/runner:1
  image:
    name: ghcr.io/acme/tester:2.1
  script:
    - pytest
'''


@pytest.fixture
def session_factory() -> type[FakeSession]:
    """The FakeSession class, for tests that build their own routes."""
    return FakeSession


class FakeTrivy:
    """
    Stands in for subprocess.run.
    
    `reports` maps an image to the text written to the -o path; images not
    listed get an empty report. `exit_codes`, `stderr` and `raises` override
    results. Output is bytes, as with capture_output and no text mode.
    """
    
    def __init__(
        self,
        reports: dict[str, str] | None = None,
        exit_codes: dict[str, int] | None = None,
        raises: dict[str, BaseException] | None = None,
        stderr: dict[str, bytes] | None = None,
    ) -> None:
        self.reports = reports or {}
        self.exit_codes = exit_codes or {}
        self.stderr = stderr or {}
        self.raises = raises or {}
        self.calls: list[list[str]] = []
    
    def __call__(self, command: list[str], **kwargs: Any) -> subprocess.CompletedProcess:
        self.calls.append(command)
        image = command[-1]
        if image in self.raises:
            raise self.raises[image]
        output = Path(command[command.index("-o") + 1])
        output.write_text(self.reports.get(image, ""))
        return subprocess.CompletedProcess(
            command,
            self.exit_codes.get(image, 0),
            stdout=b"",
            stderr=self.stderr.get(image, b"error text"),
        )
    
    @property
    def images(self) -> list[str]:
        return [call[-1] for call in self.calls]


@pytest.fixture
def fake_trivy(monkeypatch: pytest.MonkeyPatch) -> FakeTrivy:
    fake = FakeTrivy()
    monkeypatch.setattr("image_auditor.scanners.base.subprocess.run", fake)
    return fake


TRIVY_SCRIPT = """#!/bin/sh
# answers -h, otherwise writes a finding to the -o path
if [ "$1" = "-h" ]; then
    exit 0
fi
out=""
while [ $# -gt 0 ]; do
    if [ "$1" = "-o" ]; then
        out="$2"
        shift
    fi
    shift
done
echo "CVE-2024-0001 HIGH" > "$out"
printf '\\377\\376 not utf-8\\n' >&2
exit 1
"""


@pytest.fixture
def trivy_executable(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """
    A `trivy` on PATH that reports a finding, writes bytes that are not
    UTF-8 to stderr and exits 1.
    """
    if sys.platform == "win32":
        pytest.skip("needs a POSIX shell")
    bin_dir = temp_dir / "bin"
    bin_dir.mkdir()
    script = bin_dir / "trivy"
    script.write_text(TRIVY_SCRIPT)
    script.chmod(0o755)
    monkeypatch.setenv("PATH", f"{bin_dir}{os.pathsep}{os.environ.get('PATH', '')}")
    return script

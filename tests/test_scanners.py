"""
Tests for the scanner layer.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from image_auditor.config import ScanConfig
from image_auditor.core.context import RunContext
from image_auditor.core.result import ScanState
from image_auditor.core.severity import Severity
from image_auditor.exceptions import ScannerNotAvailableError
from image_auditor.scanners import TrivyScanner, get_scanner
from image_auditor.utils.file_utils import safe_filename


class TestSafeFilename:
    """Tests for safe_filename."""
    
    @pytest.mark.parametrize(
        ("image", "expected"),
        [
            ("nginx:1.21", "nginx_1.21"),
            ("registry.gitlab.com/group/app:1.2", "registry.gitlab.com_group_app_1.2"),
            ("alpine@sha256:abc", "alpine_sha256_abc"),
            ("../../etc/passwd", "_._.._etc_passwd"),
            ("$CI_REGISTRY_IMAGE", "_CI_REGISTRY_IMAGE"),
        ],
    )
    def test_sanitizes(self, image: str, expected: str):
        assert safe_filename(image) == expected
    
    def test_never_contains_separators(self):
        assert "/" not in safe_filename("a/b\\c:d")
        assert ":" not in safe_filename("a/b\\c:d")


class TestTrivyScanner:
    """Tests for TrivyScanner."""
    
    def test_build_command(self, run_context: RunContext):
        scanner = TrivyScanner()
        path = scanner.artifact_path("nginx:latest", run_context)
        
        assert scanner.build_command("nginx:latest", path) == [
            "trivy", "image", "-s", "HIGH,CRITICAL", "-f", "table", "-o", str(path), "nginx:latest",
        ]
    
    def test_artifact_path_embeds_timestamp_and_image(self, run_context: RunContext):
        path = TrivyScanner().artifact_path("library/nginx:latest", run_context)
        
        assert path.parent == run_context.scan_dir
        assert path.name == "scan-20240501T091500Z-library_nginx_latest.txt"
    
    def test_from_config(self):
        scanner = get_scanner(ScanConfig(severities="medium", workers=4, scanner="/opt/trivy"))
        
        assert isinstance(scanner, TrivyScanner)
        assert scanner.min_severity is Severity.MEDIUM
        assert scanner.workers == 4
        assert scanner.executable == "/opt/trivy"
    
    def test_report_with_findings_is_kept(self, fake_trivy, run_context: RunContext):
        fake_trivy.reports["nginx:1.21"] = "CVE-2023-0001 HIGH\n"
        
        artifact = TrivyScanner().scan_one("nginx:1.21", run_context)
        
        assert artifact.state is ScanState.KEPT
        assert artifact.path.read_text() == "CVE-2023-0001 HIGH\n"
        assert artifact.size_bytes > 0
    
    def test_empty_report_is_removed(self, fake_trivy, run_context: RunContext):
        artifact = TrivyScanner().scan_one("alpine:3.18", run_context)
        
        assert artifact.state is ScanState.REMOVED
        assert not artifact.path.exists()
        assert list(run_context.scan_dir.iterdir()) == []
    
    def test_non_zero_exit_is_not_fatal(self, fake_trivy, run_context: RunContext):
        fake_trivy.exit_codes["broken:1"] = 1
        
        artifact = TrivyScanner().scan_one("broken:1", run_context)
        
        assert artifact.exit_code == 1
        assert not artifact.succeeded
        assert artifact.state is ScanState.REMOVED
    
    def test_timeout_is_not_fatal(self, fake_trivy, run_context: RunContext):
        fake_trivy.raises["slow:1"] = subprocess.TimeoutExpired(["trivy"], 5)
        
        artifact = TrivyScanner(timeout_seconds=5).scan_one("slow:1", run_context)
        
        assert artifact.error == "timed out after 5s"
        assert artifact.state is ScanState.REMOVED
    
    def test_exec_error_is_not_fatal(self, fake_trivy, run_context: RunContext):
        fake_trivy.raises["gone:1"] = FileNotFoundError("trivy")
        
        artifact = TrivyScanner().scan_one("gone:1", run_context)
        
        assert artifact.error == "FileNotFoundError"
        assert artifact.exit_code is None
    
    def test_undecodable_output_is_not_fatal(self, fake_trivy, run_context: RunContext):
        fake_trivy.reports["nginx:1.21"] = "CVE-2023-0001 HIGH\n"
        fake_trivy.exit_codes["nginx:1.21"] = 1
        fake_trivy.stderr["nginx:1.21"] = b"\xff\xfe not utf-8"
        
        artifact = TrivyScanner().scan_one("nginx:1.21", run_context)
        
        assert artifact.exit_code == 1
        assert artifact.state is ScanState.KEPT
    
    def test_scanner_output_read_as_bytes(self, fake_trivy, run_context: RunContext, monkeypatch):
        seen: dict = {}
        
        def run(command, **kwargs):
            seen.update(kwargs)
            return fake_trivy(command, **kwargs)
        
        monkeypatch.setattr("image_auditor.scanners.base.subprocess.run", run)
        
        TrivyScanner(timeout_seconds=7).scan_one("nginx", run_context)
        
        assert seen["capture_output"] is True
        assert not seen.get("text")
        assert seen["timeout"] == 7
    
    @pytest.mark.parametrize(
        "error",
        [ValueError("embedded null byte"), subprocess.SubprocessError("broken pipe")],
    )
    def test_other_run_errors_are_not_fatal(self, fake_trivy, run_context: RunContext, error):
        fake_trivy.raises["odd:1"] = error
        
        artifact = TrivyScanner().scan_one("odd:1", run_context)
        
        assert artifact.error == type(error).__name__
        assert artifact.state is ScanState.REMOVED
    
    def test_scan_dir_failure_is_not_fatal(self, fake_trivy, temp_dir: Path):
        blocker = temp_dir / "not-a-dir"
        blocker.write_text("x")
        context = RunContext.create(blocker)
        
        artifact = TrivyScanner().scan_one("nginx", context)
        
        assert artifact.error.startswith("cannot create scan directory")
        assert artifact.state is ScanState.REMOVED
        assert fake_trivy.calls == []
    
    def test_scan_all_order_and_cleanup(self, fake_trivy, run_context: RunContext):
        fake_trivy.reports = {"nginx:latest": "findings", "redis:7": "findings"}
        images = ["nginx:latest", "alpine:3.18", "redis:7"]
        
        artifacts = TrivyScanner(workers=3).scan_all(images, run_context)
        
        assert [a.image for a in artifacts] == images
        assert sorted(fake_trivy.images) == sorted(images)
        kept = sorted(p.name for p in run_context.scan_dir.iterdir())
        assert kept == [
            "scan-20240501T091500Z-nginx_latest.txt",
            "scan-20240501T091500Z-redis_7.txt",
        ]
        for path in run_context.scan_dir.iterdir():
            assert path.stat().st_size > 0
    
    def test_scan_all_colliding_names(self, fake_trivy, run_context: RunContext):
        fake_trivy.reports = {"a/b": "x", "a:b": "y"}
        
        artifacts = TrivyScanner().scan_all(["a/b", "a:b"], run_context)
        
        assert artifacts[0].path != artifacts[1].path
        assert artifacts[0].path.read_text() == "x"
        assert artifacts[1].path.read_text() == "y"
    
    def test_scan_all_three_colliding_names(self, fake_trivy, run_context: RunContext):
        images = ["a/b", "a:b", "a@b"]
        fake_trivy.reports = {image: image for image in images}
        
        artifacts = TrivyScanner().scan_all(images, run_context)
        
        assert [a.path.name for a in artifacts] == [
            "scan-20240501T091500Z-a_b.txt",
            "scan-20240501T091500Z-a_b-2.txt",
            "scan-20240501T091500Z-a_b-3.txt",
        ]
    
    def test_scan_all_empty(self, fake_trivy, run_context: RunContext):
        assert TrivyScanner().scan_all([], run_context) == []
        assert not run_context.scan_dir.exists()
    
    def test_scan_all_cancelled(self, fake_trivy, run_context: RunContext):
        run_context.cancel()
        
        assert TrivyScanner().scan_all(["nginx"], run_context) == []
        assert fake_trivy.calls == []


class TestTrivyPreflight:
    """Tests for TrivyScanner.preflight."""
    
    def test_missing_binary(self, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.setattr("image_auditor.scanners.trivy.shutil.which", lambda name: None)
        
        with pytest.raises(ScannerNotAvailableError, match="not found"):
            TrivyScanner().preflight()
    
    def test_help_fails(self, monkeypatch: pytest.MonkeyPatch):
        def failing_run(command, **kwargs):
            raise subprocess.CalledProcessError(2, command)
        
        monkeypatch.setattr("image_auditor.scanners.trivy.shutil.which", lambda name: "/usr/bin/trivy")
        monkeypatch.setattr("image_auditor.scanners.trivy.subprocess.run", failing_run)
        
        with pytest.raises(ScannerNotAvailableError) as exc_info:
            TrivyScanner().preflight()
        
        assert exc_info.value.details["exit_code"] == 2
    
    def test_ready(self, monkeypatch: pytest.MonkeyPatch):
        calls = []
        
        def ok_run(command, **kwargs):
            calls.append(command)
            return subprocess.CompletedProcess(command, 0)
        
        monkeypatch.setattr("image_auditor.scanners.trivy.shutil.which", lambda name: "/usr/bin/trivy")
        monkeypatch.setattr("image_auditor.scanners.trivy.subprocess.run", ok_run)
        
        TrivyScanner().preflight()
        
        assert calls == [["trivy", "-h"]]


class TestTrivyProcess:
    """Tests against a real child process standing in for trivy."""
    
    def test_preflight_and_scan(self, trivy_executable: Path, run_context: RunContext):
        scanner = TrivyScanner(executable=str(trivy_executable))
        scanner.preflight()
        
        artifacts = scanner.scan_all(["nginx:1.21", "redis:7"], run_context)
        
        assert [a.exit_code for a in artifacts] == [1, 1]
        assert all(a.kept for a in artifacts)
        assert artifacts[0].path.read_text() == "CVE-2024-0001 HIGH\n"

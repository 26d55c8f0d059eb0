"""
Custom exceptions for the CI-Image-Auditor.

All exceptions inherit from AuditorError to allow catching all auditor-specific
exceptions with a single except clause. Each exception includes context about
the error without exposing sensitive information.

Only run-fatal conditions are raised. Per-URL and per-scan failures are
reported as tagged results and never surface as exceptions.
"""

from typing import Any


class AuditorError(Exception):
    """
    Base exception for all auditor-related errors.
    
    Attributes:
        message: Human-readable error description
        details: Additional context (sanitized, no secrets)
    """
    
    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)
    
    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message
    
    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, details={self.details!r})"


class ConfigurationError(AuditorError):
    """
    Raised when there's an issue with configuration.
    
    Examples:
        - Access token environment variable is missing
        - Invalid configuration format
        - Configuration file not found
    """
    pass


class ValidationError(AuditorError):
    """
    Raised when input validation fails.
    
    Examples:
        - Config file too large
        - Config file is not a YAML mapping
    """
    
    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if field:
            details["field"] = field
        # Never include the actual invalid value in logs for security
        if value:
            details["value_length"] = len(value)
        super().__init__(message, details)


class DirectoryListingError(AuditorError):
    """
    Raised when the project listing cannot be retrieved.
    
    Examples:
        - GitLab API unreachable
        - Token rejected (401/403)
        - Unexpected payload shape
    """
    
    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if status_code is not None:
            details["status"] = status_code
        super().__init__(message, details)


class TransportError(AuditorError):
    """
    Raised on a transport-level failure when the strict transport policy
    is enabled.
    
    With the default policy the same failure is tagged on the
    LivenessResult and the run continues.
    """
    
    def __init__(
        self,
        message: str,
        url: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if url:
            details["url"] = url
        super().__init__(message, details)


class ReportError(AuditorError):
    """
    Raised when report generation fails.
    
    Examples:
        - Output directory cannot be created
        - Output file write permission denied
    """
    pass


class ScannerError(AuditorError):
    """
    Raised when the external vulnerability scanner cannot be used at all.
    
    Note: This is NOT raised when a single image scan fails. That is
    logged and the remaining images are still scanned.
    """
    
    def __init__(
        self,
        message: str,
        scanner: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        details = details or {}
        if scanner:
            details["scanner"] = scanner
        super().__init__(message, details)


class ScannerNotAvailableError(ScannerError):
    """Raised when the scanner preflight check fails."""
    pass

"""
Configuration management for the CI-Image-Auditor.

Uses Pydantic for robust validation, type safety, and environment variable support.
Configuration values are validated at load time to fail fast on invalid configs.

SECURITY NOTES:
- The GitLab access token is only read from the environment (GCIS_PAT)
- The token is excluded from serialization and masked in debug dumps
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from image_auditor.constants import (
    DEFAULT_FILE_NAME,
    DEFAULT_GITLAB_URL,
    DEFAULT_REF,
    MAX_CONFIG_FILE_BYTES,
    MAX_CONTENT_BYTES,
    TOKEN_ENV_VAR,
)
from image_auditor.exceptions import ConfigurationError, ValidationError


class GitLabConfig(BaseModel):
    """Configuration for the GitLab project listing."""
    
    url: str = DEFAULT_GITLAB_URL
    owned: bool = True
    order_by: Literal["id", "name", "path", "created_at", "updated_at", "last_activity_at"] = "path"
    sort: Literal["asc", "desc"] | None = None  # None leaves the API default (desc)
    per_page: int = Field(default=20, ge=1, le=100)
    timeout_seconds: float = Field(default=30, gt=0, le=300)
    verify_ssl: bool = True  # Never disable in production
    
    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        """Validate GitLab URL format."""
        if not v.startswith(("https://", "http://localhost", "http://127.0.0.1")):
            raise ValueError("GitLab URL must use HTTPS (or localhost for testing)")
        return v.rstrip("/")
    
    @model_validator(mode="after")
    def warn_no_ssl(self) -> "GitLabConfig":
        """Warn if SSL verification is disabled."""
        if not self.verify_ssl:
            import warnings
            warnings.warn(
                "SSL verification is disabled. This is insecure and should "
                "only be used for testing with self-signed certificates.",
                UserWarning,
                stacklevel=2
            )
        return self


class ProbeConfig(BaseModel):
    """Configuration for liveness probing and scraping of raw files."""
    
    workers: int = Field(default=8, ge=1, le=64)
    timeout_seconds: float = Field(default=15, gt=0, le=300)
    max_content_bytes: int = Field(default=MAX_CONTENT_BYTES, ge=1024)


class ScanConfig(BaseModel):
    """Configuration for the external vulnerability scanner."""
    
    enabled: bool = False
    scanner: str = "trivy"
    severities: Literal["unknown", "low", "medium", "high", "critical"] = "high"
    output_format: Literal["table", "json", "sarif", "cyclonedx", "spdx"] = "table"
    workers: int = Field(default=2, ge=1, le=16)
    timeout_seconds: float = Field(default=600, gt=0, le=7200)
    
    @field_validator("scanner")
    @classmethod
    def validate_scanner(cls, v: str) -> str:
        """Scanner must be a bare executable name or path."""
        v = v.strip()
        if not v or any(ch.isspace() for ch in v):
            raise ValueError("Scanner must be a single executable name or path")
        return v


class ReportConfig(BaseModel):
    """Configuration for report generation."""
    
    format: Literal["markdown", "json", "all"] = "markdown"


class AuditorConfig(BaseSettings):
    """
    Main configuration for the CI-Image-Auditor.
    
    Configuration precedence (highest to lowest):
    1. Explicit overrides (CLI options)
    2. Config file values
    3. Environment variables (GCIS_*)
    4. Default values
    
    Example environment variables:
        GCIS_PAT=glpat-xxx
        GCIS_GITLAB__URL=https://gitlab.example.com
        GCIS_SCAN__WORKERS=4
    """
    
    model_config = SettingsConfigDict(
        env_prefix="GCIS_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )
    
    # Read from GCIS_PAT, never serialized
    pat: str | None = Field(default=None, exclude=True, repr=False)
    
    # General settings
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    verbose: bool = False
    no_color: bool = False
    json_logs: bool = False
    
    # What to fetch from each project
    file_name: str = DEFAULT_FILE_NAME
    ref: str = DEFAULT_REF
    
    # Where reports and scan directories are created
    output_dir: Path = Field(default=Path("."))
    
    # Transport failures abort the run instead of excluding the URL
    fail_on_transport_error: bool = False
    
    # Sub-configurations
    gitlab: GitLabConfig = Field(default_factory=GitLabConfig)
    probe: ProbeConfig = Field(default_factory=ProbeConfig)
    scan: ScanConfig = Field(default_factory=ScanConfig)
    report: ReportConfig = Field(default_factory=ReportConfig)
    
    @field_validator("file_name", "ref")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """File name and ref are used verbatim, but must not be blank."""
        if not v or not v.strip():
            raise ValueError("must not be empty")
        return v
    
    @property
    def token(self) -> str | None:
        """The GitLab access token, if one is configured."""
        return self.pat or None
    
    def require_token(self) -> str:
        """
        Return the access token or fail before any network call.
        
        Raises:
            ConfigurationError: If no token is configured
        """
        if not self.token:
            raise ConfigurationError(
                f"{TOKEN_ENV_VAR} environment does not exist. Please generate "
                f"GitLab Personal Access Token and export as {TOKEN_ENV_VAR}"
            )
        return self.token
    
    @classmethod
    def from_yaml_file(cls, path: Path, **overrides: Any) -> "AuditorConfig":
        """
        Load configuration from a YAML file.
        
        SECURITY: Uses safe_load to prevent code execution.
        """
        import yaml
        
        if not path.exists():
            raise ConfigurationError(f"Config file not found: {path}")
        
        if path.stat().st_size > MAX_CONFIG_FILE_BYTES:
            raise ValidationError("Config file too large", field="config")
        
        content = path.read_text(encoding="utf-8")
        
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            raise ValidationError(
                "Config file is not valid YAML",
                field="config",
                details={"error": type(e).__name__},
            ) from None
        
        if data is None:
            data = {}
        
        if not isinstance(data, dict):
            raise ValidationError("Config file must contain a YAML mapping", field="config")
        
        # The token never comes from a file
        data.pop("pat", None)
        
        _deep_update(data, overrides)
        return cls(**data)
    
    def to_safe_dict(self) -> dict[str, Any]:
        """
        Export config as dict, excluding sensitive values.
        
        Use this for logging or debugging.
        """
        data = self.model_dump(mode="json")
        data["pat"] = "***MASKED***" if self.pat else None
        return data


def get_default_config(**overrides: Any) -> AuditorConfig:
    """Get default configuration with environment overrides."""
    return AuditorConfig(**overrides)


def load_config(
    config_path: Path | None = None,
    **overrides: Any,
) -> AuditorConfig:
    """
    Load configuration from file and/or environment with overrides.
    
    Overrides with a value of None are ignored so unset CLI options
    don't clobber file or environment values.
    
    Args:
        config_path: Optional path to YAML config file
        **overrides: Direct overrides for config values (nested dicts allowed)
    
    Returns:
        Validated AuditorConfig instance
    """
    overrides = _drop_none(overrides)
    
    if config_path:
        return AuditorConfig.from_yaml_file(config_path, **overrides)
    
    return get_default_config(**overrides)


def _drop_none(values: dict[str, Any]) -> dict[str, Any]:
    """Recursively remove None values from override dicts."""
    cleaned: dict[str, Any] = {}
    for key, value in values.items():
        if isinstance(value, dict):
            nested = _drop_none(value)
            if nested:
                cleaned[key] = nested
        elif value is not None:
            cleaned[key] = value
    return cleaned


def _deep_update(base: dict[str, Any], updates: dict[str, Any]) -> None:
    """Recursively update a dictionary."""
    for key, value in updates.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_update(base[key], value)
        else:
            base[key] = value

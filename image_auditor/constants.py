"""
Constants for the CI-Image-Auditor.

Defaults, limits, file naming and pre-compiled patterns used across the
pipeline.

SECURITY NOTE: All regex patterns are pre-compiled for safety and performance.
Never construct patterns from user input.
"""

import re
from typing import Final

# =============================================================================
# DEFAULTS
# =============================================================================

DEFAULT_FILE_NAME: Final[str] = ".gitlab-ci.yml"
DEFAULT_REF: Final[str] = "main"
DEFAULT_GITLAB_URL: Final[str] = "https://gitlab.com"
TOKEN_ENV_VAR: Final[str] = "GCIS_PAT"

# =============================================================================
# SIZE LIMITS (Defense against resource exhaustion)
# =============================================================================

MAX_CONFIG_FILE_BYTES: Final[int] = 1 * 1024 * 1024  # 1 MB
MAX_CONTENT_BYTES: Final[int] = 10 * 1024 * 1024  # 10 MB

# =============================================================================
# GITLAB
# =============================================================================

# {project web url}/-/raw/{ref}/{file}
RAW_PATH_SEGMENT: Final[str] = "/-/raw/"
PROJECTS_API_PATH: Final[str] = "/api/v4/projects"
LIVE_STATUS_CODE: Final[int] = 200

# =============================================================================
# IMAGE DIRECTIVES
# =============================================================================

# No non-whitespace chars before "image:" (skips commented lines),
# at least one whitespace char after it, then a value on the same line.
IMAGE_DIRECTIVE_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"^[^\S\r\n]*image:[^\S\r\n]+\S+",
    re.MULTILINE,
)
IMAGE_DIRECTIVE_TOKEN: Final[str] = "image:"

# =============================================================================
# OUTPUT NAMING
# =============================================================================

REPORT_PREFIX: Final[str] = "imagelist-"
SCAN_DIR_PREFIX: Final[str] = "scans-"
SCAN_FILE_PREFIX: Final[str] = "scan-"
SCAN_FILE_EXTENSION: Final[str] = ".txt"

# Anything outside this set is replaced when an image reference becomes a file name
UNSAFE_FILENAME_CHARS: Final[re.Pattern[str]] = re.compile(r"[^A-Za-z0-9._-]")

# =============================================================================
# STATUS GLYPHS
# =============================================================================

GLYPH_OK: Final[str] = "✅"
GLYPH_FAIL: Final[str] = "❌"
GLYPH_ARROW: Final[str] = "➜"

# =============================================================================
# SECRET DETECTION PATTERNS (log redaction)
# =============================================================================

# SECURITY: Never log matches from these patterns
SECRET_PATTERNS: Final[dict[str, re.Pattern[str]]] = {
    "gitlab_pat": re.compile(r"glpat-[A-Za-z0-9_\-]{20,}"),
    "gitlab_deploy_token": re.compile(r"gldt-[A-Za-z0-9_\-]{20,}"),
    "gitlab_runner_token": re.compile(r"glrt-[A-Za-z0-9_\-]{20,}"),
    "gitlab_ci_job_token": re.compile(r"glcbt-[A-Za-z0-9_\-]{20,}"),
    "private_key": re.compile(
        r"-----BEGIN (?:RSA |EC |OPENSSH )?PRIVATE KEY-----"
    ),
    "jwt_token": re.compile(
        r"eyJ[A-Za-z0-9_-]+\.eyJ[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+"
    ),
}

# Keywords that might indicate secrets in key=value pairs
SECRET_KEYWORDS: Final[frozenset[str]] = frozenset({
    "password", "passwd", "secret", "token", "private-token",
    "private_token", "api_key", "apikey", "bearer",
})

# Maximum length for values echoed to logs
MAX_LOG_VALUE_LENGTH: Final[int] = 500

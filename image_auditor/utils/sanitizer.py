"""
Output sanitization utilities.

Scanner stderr and remote content end up in logs; these helpers keep them
single-line, bounded and free of tokens.
"""

from __future__ import annotations

import re
from typing import Any

from image_auditor.constants import (
    MAX_LOG_VALUE_LENGTH,
    SECRET_KEYWORDS,
    SECRET_PATTERNS,
)

REDACTED = "[REDACTED]"

# Longest keywords first so "private-token" wins over "token"
_KEYWORD_VALUE = re.compile(
    r"(?i)("
    + "|".join(re.escape(kw) for kw in sorted(SECRET_KEYWORDS, key=len, reverse=True))
    + r")\s*[:=]\s*['\"]?[^\s'\"]+['\"]?",
)

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f\x7f]")


def sanitize_for_log(value: Any, max_length: int = MAX_LOG_VALUE_LENGTH) -> str:
    """
    Sanitize a value for safe logging.
    
    Removes:
    - Potential secrets
    - Control characters
    - Excessive length
    """
    if value is None:
        return ""
    
    text = str(value)
    
    # Remove control characters
    text = strip_control_chars(text)
    
    # Redact secrets
    text = redact_secrets(text)
    
    # Truncate if too long
    if len(text) > max_length:
        text = text[:max_length] + "...[truncated]"
    
    # Escape newlines for single-line logging
    return text.replace("\n", "\\n").replace("\r", "\\r")


def strip_control_chars(text: str) -> str:
    """Drop control characters, keeping tabs and line breaks."""
    return _CONTROL_CHARS.sub("", text)


def redact_secrets(text: str) -> str:
    """Replace tokens and secret-looking key=value pairs with [REDACTED]."""
    if not text:
        return text
    
    result = text
    
    # Known token shapes (glpat-, gldt-, JWTs, ...)
    for pattern in SECRET_PATTERNS.values():
        result = pattern.sub(REDACTED, result)
    
    # PRIVATE-TOKEN: xxx, password=xxx and friends
    return _KEYWORD_VALUE.sub(lambda m: f"{m.group(1)}={REDACTED}", result)

"""
Severity levels understood by the vulnerability scanner.

The scanner is asked only for findings at or above a threshold; this module
turns a threshold into the comma-separated list the scanner expects.
"""

from __future__ import annotations

from enum import IntEnum


class Severity(IntEnum):
    """
    Vulnerability severities, ordered so they compare naturally.
    
    Using IntEnum allows direct comparison: Severity.CRITICAL > Severity.HIGH
    """
    
    UNKNOWN = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4
    
    @classmethod
    def from_string(cls, value: str) -> "Severity":
        """
        Parse severity from string (case-insensitive).
        
        Raises:
            ValueError: If string doesn't match any severity level
        """
        normalized = value.upper().strip()
        
        try:
            return cls[normalized]
        except KeyError:
            valid = ", ".join(s.name for s in cls)
            raise ValueError(
                f"Invalid severity '{value}'. Valid values: {valid}"
            ) from None
    
    def __str__(self) -> str:
        return self.name.lower()
    
    def __repr__(self) -> str:
        return f"Severity.{self.name}"


def severity_at_or_above(threshold: Severity) -> list[Severity]:
    """Get all severity levels at or above the threshold, lowest first."""
    return [s for s in Severity if s >= threshold]


def severity_argument(threshold: Severity) -> str:
    """
    Render a threshold as the scanner's severity argument.
    
    >>> severity_argument(Severity.HIGH)
    'HIGH,CRITICAL'
    """
    return ",".join(s.name for s in severity_at_or_above(threshold))

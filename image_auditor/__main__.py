"""
Entry point for running the auditor as a module.

Usage:
    python -m image_auditor --help
    python -m image_auditor audit --ref main --trivy
"""

from image_auditor.cli import main

if __name__ == "__main__":
    main()

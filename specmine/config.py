"""Configuration loading for specmine.

Config sources (in priority order):
1. Explicit arguments passed to functions or CLI options
2. Environment variables (SPECMINE_PROJECT_ROOT, etc.)
3. .env file in current directory
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_WORKSPACE = ".sdd"
DEFAULT_SCAN_DEPTH = 5

# Artifact names inside the workspace directory
DRAFTS_DIR = ".reverse-drafts"
REVIEW_DIR = ".reverse-review"
REPORTS_DIR = ".reverse-reports"
ARCHIVES_DIR = ".reverse-archives"
META_FILE = ".reverse-meta.json"
SPECS_DIR = "specs"
DOMAINS_FILE = "domains.yml"


def _read_int(name: str) -> int | None:
    """Read an integer env var. Unset gives None, garbage gives -1."""
    raw = os.getenv(name, "").strip()
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}")
        return -1


@dataclass
class Config:
    project_root: Path = Path(".")
    workspace_dir: str = DEFAULT_WORKSPACE
    scan_depth: int = DEFAULT_SCAN_DEPTH
    min_confidence: int | None = None  # 0-100, None disables the threshold
    anthropic_api_key: str = ""

    @classmethod
    def load(cls) -> Config:
        depth = _read_int("SPECMINE_SCAN_DEPTH")
        return cls(
            project_root=Path(os.getenv("SPECMINE_PROJECT_ROOT", ".")),
            workspace_dir=os.getenv("SPECMINE_WORKSPACE", DEFAULT_WORKSPACE),
            scan_depth=DEFAULT_SCAN_DEPTH if depth is None else depth,
            min_confidence=_read_int("SPECMINE_MIN_CONFIDENCE"),
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY", ""),
        )

    @property
    def sdd_path(self) -> Path:
        return self.project_root / self.workspace_dir

    @property
    def drafts_path(self) -> Path:
        return self.sdd_path / DRAFTS_DIR

    @property
    def reports_path(self) -> Path:
        return self.sdd_path / REPORTS_DIR

    @property
    def meta_path(self) -> Path:
        return self.sdd_path / META_FILE

    @property
    def specs_path(self) -> Path:
        return self.sdd_path / SPECS_DIR

    @property
    def domains_path(self) -> Path:
        return self.sdd_path / DOMAINS_FILE

    def validate(self) -> list[str]:
        """Return a list of config issues."""
        issues = []
        if not self.project_root.is_dir():
            issues.append(f"Project root not found: {self.project_root} (SPECMINE_PROJECT_ROOT)")
        if self.scan_depth < 0:
            issues.append("Scan depth must be a non-negative integer (SPECMINE_SCAN_DEPTH)")
        if self.min_confidence is not None and not 0 <= self.min_confidence <= 100:
            issues.append("Minimum confidence must be between 0 and 100 (SPECMINE_MIN_CONFIDENCE)")
        return issues

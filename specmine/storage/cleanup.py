"""Removes or archives the artifacts a reverse extraction leaves in the workspace.

Managed artifacts are the drafts, review and reports directories plus the
metadata file. Modes:
- full: every managed directory and the metadata file
- meta_only: just the metadata file
- domain: a single domain folder inside the drafts directory

With archive=True everything managed is copied into
.reverse-archives/reverse-archive-<timestamp> first; if that copy fails
nothing is deleted. A dry run enumerates the same targets and sizes without
touching the filesystem.
"""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from specmine.config import ARCHIVES_DIR, DRAFTS_DIR, META_FILE, REPORTS_DIR, REVIEW_DIR
from specmine.extraction.generator import slugify
from specmine.result import ErrorCode, Result
from specmine.storage.drafts import DraftStore

logger = logging.getLogger(__name__)

MANAGED_DIRS = (DRAFTS_DIR, REVIEW_DIR, REPORTS_DIR)


@dataclass
class CleanupTarget:
    path: Path
    type: str  # "file" | "directory"
    size: int
    last_modified: datetime


@dataclass
class CleanupResult:
    deleted_files: int = 0
    deleted_dirs: int = 0
    archived: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)  # [{"path": ..., "error": ...}]
    freed_space: int = 0  # bytes


@dataclass
class CleanupStatus:
    targets: list[CleanupTarget]
    total_size: int


def dir_size(path: Path) -> int:
    return sum(p.stat().st_size for p in path.rglob("*") if p.is_file())


def _target(path: Path, kind: str) -> CleanupTarget:
    size = dir_size(path) if kind == "directory" else path.stat().st_size
    return CleanupTarget(
        path=path,
        type=kind,
        size=size,
        last_modified=datetime.fromtimestamp(path.stat().st_mtime),
    )


def collect_cleanup_targets(
    sdd_path: Path,
    meta_only: bool = False,
    domain: str | None = None,
) -> list[CleanupTarget]:
    """Enumerate what a cleanup run would delete, in deletion order."""
    sdd_path = Path(sdd_path)
    targets: list[CleanupTarget] = []
    meta_file = sdd_path / META_FILE

    if domain:
        domain_dir = sdd_path / DRAFTS_DIR / slugify(domain)
        if domain_dir.is_dir():
            targets.append(_target(domain_dir, "directory"))
        return targets

    if not meta_only:
        for name in MANAGED_DIRS:
            directory = sdd_path / name
            if directory.is_dir():
                targets.append(_target(directory, "directory"))

    if meta_file.is_file():
        targets.append(_target(meta_file, "file"))
    return targets


def archive_reverse_data(sdd_path: Path) -> Result[Path]:
    """Copy every managed artifact into a fresh timestamped archive directory."""
    sdd_path = Path(sdd_path)
    stamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S-%f")
    archive_dir = sdd_path / ARCHIVES_DIR / f"reverse-archive-{stamp}"
    try:
        archive_dir.mkdir(parents=True)
        for name in MANAGED_DIRS:
            source = sdd_path / name
            if source.is_dir():
                shutil.copytree(source, archive_dir / name)
        meta_file = sdd_path / META_FILE
        if meta_file.is_file():
            shutil.copy2(meta_file, archive_dir / META_FILE)
    except OSError as e:
        logger.error(f"Failed to archive reverse data into {archive_dir}: {e}")
        return Result.failure(f"Failed to create archive: {e}", ErrorCode.IO_ERROR)

    logger.info(f"Archived reverse data to {archive_dir}")
    return Result.success(archive_dir)


def cleanup_reverse_files(
    sdd_path: Path,
    archive: bool = False,
    meta_only: bool = False,
    domain: str | None = None,
    dry_run: bool = False,
) -> Result[CleanupResult]:
    sdd_path = Path(sdd_path)
    result = CleanupResult()

    try:
        targets = collect_cleanup_targets(sdd_path, meta_only=meta_only, domain=domain)
    except OSError as e:
        return Result.failure(f"Failed to collect cleanup targets: {e}", ErrorCode.IO_ERROR)

    if archive and not dry_run:
        archived = archive_reverse_data(sdd_path)
        if not archived.ok:
            return Result.failure(f"{archived.error}; nothing was deleted", ErrorCode.IO_ERROR)
        result.archived.append(str(archived.value))

    for target in targets:
        if not dry_run:
            try:
                if target.type == "directory":
                    shutil.rmtree(target.path)
                else:
                    target.path.unlink()
            except OSError as e:
                logger.warning(f"Could not delete {target.path}: {e}")
                result.errors.append({"path": str(target.path), "error": str(e)})
                result.skipped.append(str(target.path))
                continue

        if target.type == "directory":
            result.deleted_dirs += 1
        else:
            result.deleted_files += 1
        result.freed_space += target.size

    if not dry_run:
        _remove_empty_managed_dirs(sdd_path)

    return Result.success(result)


def _remove_empty_managed_dirs(sdd_path: Path) -> None:
    for name in MANAGED_DIRS:
        directory = sdd_path / name
        if directory.is_dir() and not any(directory.iterdir()):
            directory.rmdir()


def reset_reverse_data(sdd_path: Path, archive: bool = False) -> Result[CleanupResult]:
    """Full sweep of every managed artifact."""
    return cleanup_reverse_files(sdd_path, archive=archive)


def delete_draft_spec(sdd_path: Path, spec_id: str) -> Result[list[Path]]:
    return DraftStore(Path(sdd_path) / DRAFTS_DIR).delete(spec_id)


def get_cleanup_status(sdd_path: Path) -> Result[CleanupStatus]:
    try:
        targets = collect_cleanup_targets(sdd_path)
    except OSError as e:
        return Result.failure(f"Failed to check cleanup status: {e}", ErrorCode.IO_ERROR)
    return Result.success(CleanupStatus(targets=targets, total_size=sum(t.size for t in targets)))


def format_size(size: int) -> str:
    kb = size / 1024
    mb = kb / 1024
    return f"{mb:.2f} MB" if mb >= 1 else f"{kb:.2f} KB"


def generate_commit_message(result: CleanupResult) -> str:
    lines = [
        "chore: clean up reverse extraction artifacts",
        "",
        "Removed temporary files left by a finished reverse extraction.",
        "",
    ]
    if result.deleted_files or result.deleted_dirs:
        lines.append(f"Deleted: {result.deleted_files} files, {result.deleted_dirs} directories")
    if result.archived:
        lines.append(f"Archived: {', '.join(result.archived)}")
    lines.append(f"Freed: {result.freed_space / 1024 / 1024:.2f} MB")
    return "\n".join(lines)

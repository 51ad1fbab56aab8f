"""Tests for specmine.storage.cleanup."""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from unittest.mock import patch

import pytest

from specmine.result import ErrorCode
from specmine.storage.cleanup import (
    CleanupResult,
    cleanup_reverse_files,
    collect_cleanup_targets,
    delete_draft_spec,
    format_size,
    generate_commit_message,
    get_cleanup_status,
    reset_reverse_data,
)


def _snapshot(root: Path) -> dict[str, bytes]:
    return {str(p.relative_to(root)): p.read_bytes() for p in sorted(root.rglob("*")) if p.is_file()}


@pytest.fixture
def workspace(sdd_path, saved_spec, meta_store, sample_scan):
    """A workspace with a draft, a review note, a report and metadata."""
    meta_store.add_scan(sample_scan).unwrap()
    (sdd_path / ".reverse-review").mkdir()
    (sdd_path / ".reverse-review" / "notes.md").write_text("notes")
    (sdd_path / ".reverse-reports").mkdir()
    (sdd_path / ".reverse-reports" / "report.json").write_text("{}")
    (sdd_path / "specs").mkdir()
    (sdd_path / "specs" / "keep.md").write_text("canonical")
    return sdd_path


class TestCollectTargets:
    def test_full(self, workspace):
        targets = collect_cleanup_targets(workspace)
        assert [t.path.name for t in targets] == [
            ".reverse-drafts", ".reverse-review", ".reverse-reports", ".reverse-meta.json",
        ]
        assert [t.type for t in targets] == ["directory", "directory", "directory", "file"]
        assert all(t.size > 0 for t in targets)

    def test_meta_only(self, workspace):
        assert [t.path.name for t in collect_cleanup_targets(workspace, meta_only=True)] == [
            ".reverse-meta.json",
        ]

    def test_domain(self, workspace):
        targets = collect_cleanup_targets(workspace, domain="auth")
        assert [t.path for t in targets] == [workspace / ".reverse-drafts" / "auth"]
        assert collect_cleanup_targets(workspace, domain="ghost") == []


class TestCleanup:
    def test_dry_run_matches_real_run(self, workspace):
        before = _snapshot(workspace)
        dry = cleanup_reverse_files(workspace, dry_run=True).unwrap()
        assert _snapshot(workspace) == before

        real = cleanup_reverse_files(workspace).unwrap()
        assert (dry.deleted_files, dry.deleted_dirs, dry.freed_space) == (
            real.deleted_files, real.deleted_dirs, real.freed_space,
        )
        assert (real.deleted_files, real.deleted_dirs) == (1, 3)

    def test_full_cleanup_leaves_canonical_specs(self, workspace):
        cleanup_reverse_files(workspace).unwrap()
        assert not (workspace / ".reverse-drafts").exists()
        assert not (workspace / ".reverse-meta.json").exists()
        assert (workspace / "specs" / "keep.md").read_text() == "canonical"

    def test_archive_before_delete(self, workspace):
        result = cleanup_reverse_files(workspace, archive=True).unwrap()
        archive = Path(result.archived[0])
        assert archive.parent == workspace / ".reverse-archives"
        assert archive.name.startswith("reverse-archive-")
        assert (archive / ".reverse-drafts" / "auth" / "user-service.json").exists()
        assert (archive / ".reverse-meta.json").exists()
        assert not (workspace / ".reverse-drafts").exists()

    def test_failed_archive_deletes_nothing(self, workspace):
        before = _snapshot(workspace)
        with patch("specmine.storage.cleanup.shutil.copytree", side_effect=OSError("no space")):
            result = cleanup_reverse_files(workspace, archive=True)
        assert not result.ok
        assert result.code == ErrorCode.IO_ERROR
        assert "nothing was deleted" in result.error
        assert {k: v for k, v in _snapshot(workspace).items() if not k.startswith(".reverse-archives")} == before

    def test_dry_run_skips_archive(self, workspace):
        result = cleanup_reverse_files(workspace, archive=True, dry_run=True).unwrap()
        assert result.archived == []
        assert not (workspace / ".reverse-archives").exists()

    def test_meta_only(self, workspace):
        result = cleanup_reverse_files(workspace, meta_only=True).unwrap()
        assert (result.deleted_files, result.deleted_dirs) == (1, 0)
        assert (workspace / ".reverse-drafts").exists()

    def test_domain_removes_empty_drafts_dir(self, workspace):
        result = cleanup_reverse_files(workspace, domain="auth").unwrap()
        assert result.deleted_dirs == 1
        assert not (workspace / ".reverse-drafts").exists()
        assert (workspace / ".reverse-meta.json").exists()
        assert (workspace / ".reverse-review").exists()

    def test_domain_matches_draft_folder_for_mixed_case(self, sdd_path, draft_store, sample_spec):
        spec = replace(sample_spec, id="userprofile/profile-store", domain="UserProfile")
        draft_store.save(spec).unwrap()
        result = cleanup_reverse_files(sdd_path, domain="UserProfile").unwrap()
        assert result.deleted_dirs == 1
        assert not draft_store.exists(spec.id)

    def test_delete_errors_are_collected(self, workspace):
        with patch("specmine.storage.cleanup.shutil.rmtree", side_effect=OSError("busy")):
            result = cleanup_reverse_files(workspace).unwrap()
        assert result.deleted_dirs == 0
        assert result.deleted_files == 1
        assert len(result.errors) == 3
        assert len(result.skipped) == 3

    def test_reset(self, workspace):
        result = reset_reverse_data(workspace).unwrap()
        assert result.deleted_dirs == 3

    def test_nothing_to_clean(self, sdd_path):
        result = cleanup_reverse_files(sdd_path).unwrap()
        assert result == CleanupResult()


class TestHelpers:
    def test_delete_draft_spec(self, workspace, saved_spec):
        removed = delete_draft_spec(workspace, saved_spec.id).unwrap()
        assert len(removed) == 2
        assert delete_draft_spec(workspace, saved_spec.id).code == ErrorCode.NOT_FOUND

    def test_status(self, workspace):
        status = get_cleanup_status(workspace).unwrap()
        assert len(status.targets) == 4
        assert status.total_size == sum(t.size for t in status.targets)

    def test_format_size(self):
        assert format_size(512) == "0.50 KB"
        assert format_size(3 * 1024 * 1024) == "3.00 MB"

    def test_commit_message(self):
        message = generate_commit_message(
            CleanupResult(deleted_files=1, deleted_dirs=2, archived=["/tmp/a"], freed_space=1024 * 1024)
        )
        lines = message.splitlines()
        assert lines[0] == "chore: clean up reverse extraction artifacts"
        assert "Deleted: 1 files, 2 directories" in lines
        assert "Archived: /tmp/a" in lines
        assert lines[-1] == "Freed: 1.00 MB"

    def test_commit_message_without_deletions(self):
        message = generate_commit_message(CleanupResult())
        assert "Deleted:" not in message
        assert message.endswith("Freed: 0.00 MB")

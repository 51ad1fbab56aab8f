"""Draft persistence: each draft is a JSON + markdown pair.

Layout: <drafts>/<domain-slug>/<name-slug>.json and .md, so a draft's path
is its spec id plus an extension. The JSON twin is authoritative (spec data
and review state); the markdown twin is for people.

Writes go to temp files first and are then renamed into place, JSON first.
A crash between the two renames leaves a fresh JSON next to a stale
markdown file; loading only reads JSON, so the stale file is cosmetic.
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from specmine.extraction.generator import format_spec_markdown
from specmine.extraction.models import ExtractedSpec
from specmine.result import ErrorCode, Result

logger = logging.getLogger(__name__)

TMP_SUFFIX = ".tmp"


@dataclass
class StoredDraft:
    spec: ExtractedSpec
    review: dict = field(default_factory=dict)  # Raw review block, empty until reviewed


class DraftStore:
    """Reads and writes draft pairs under one drafts directory."""

    def __init__(self, drafts_path: Path) -> None:
        self.root = Path(drafts_path)

    def paths_for(self, spec_id: str) -> tuple[Path, Path]:
        """(json_path, markdown_path) for a "<domain>/<name>" id."""
        domain, _, name = spec_id.rpartition("/")
        folder = self.root / (domain or "common")
        return folder / f"{name}.json", folder / f"{name}.md"

    def exists(self, spec_id: str) -> bool:
        return self.paths_for(spec_id)[0].exists()

    def save(
        self,
        spec: ExtractedSpec,
        review: dict | None = None,
        markdown: str | None = None,
    ) -> Result[Path]:
        json_path, md_path = self.paths_for(spec.id)
        data = spec.to_dict()
        if review:
            data["review"] = review

        try:
            json_path.parent.mkdir(parents=True, exist_ok=True)
            _write_pair(
                json_path,
                md_path,
                json.dumps(data, indent=2),
                markdown if markdown is not None else format_spec_markdown(spec),
            )
        except OSError as e:
            logger.error(f"Failed to save draft {spec.id}: {e}")
            return Result.failure(f"Failed to save draft {spec.id}: {e}", ErrorCode.IO_ERROR)

        return Result.success(json_path)

    def load(self, spec_id: str) -> Result[StoredDraft]:
        json_path, _ = self.paths_for(spec_id)
        if not json_path.exists():
            return Result.failure(f"Draft not found: {spec_id}", ErrorCode.NOT_FOUND)
        return _read_draft(json_path)

    def load_all(self) -> Result[list[StoredDraft]]:
        """Every draft, ordered by domain folder then file name. No folder means no drafts."""
        if not self.root.is_dir():
            return Result.success([])

        drafts: list[StoredDraft] = []
        try:
            folders = sorted(p for p in self.root.iterdir() if p.is_dir())
            for folder in folders:
                for json_path in sorted(folder.glob("*.json")):
                    loaded = _read_draft(json_path)
                    if not loaded.ok:
                        return Result.failure(loaded.error, loaded.code or ErrorCode.PARSE_ERROR)
                    drafts.append(loaded.value)
        except OSError as e:
            return Result.failure(f"Failed to load drafts: {e}", ErrorCode.IO_ERROR)

        return Result.success(drafts)

    def delete(self, spec_id: str) -> Result[list[Path]]:
        """Remove both twins and prune the domain folder if it is left empty."""
        json_path, md_path = self.paths_for(spec_id)
        removed: list[Path] = []
        try:
            for path in (json_path, md_path):
                if path.exists():
                    path.unlink()
                    removed.append(path)
            folder = json_path.parent
            if folder.is_dir() and not any(folder.iterdir()):
                folder.rmdir()
        except OSError as e:
            return Result.failure(f"Failed to delete draft {spec_id}: {e}", ErrorCode.IO_ERROR)

        if not removed:
            return Result.failure(f"Draft not found: {spec_id}", ErrorCode.NOT_FOUND)
        return Result.success(removed)


def _read_draft(json_path: Path) -> Result[StoredDraft]:
    try:
        data = json.loads(json_path.read_text(encoding="utf-8"))
        spec = ExtractedSpec.from_dict(data)
    except OSError as e:
        return Result.failure(f"Failed to read draft {json_path}: {e}", ErrorCode.IO_ERROR)
    except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
        return Result.failure(f"Malformed draft {json_path}: {e}", ErrorCode.PARSE_ERROR)
    return Result.success(StoredDraft(spec=spec, review=data.get("review") or {}))


def _write_pair(json_path: Path, md_path: Path, json_text: str, md_text: str) -> None:
    json_tmp = json_path.with_name(json_path.name + TMP_SUFFIX)
    md_tmp = md_path.with_name(md_path.name + TMP_SUFFIX)
    try:
        json_tmp.write_text(json_text, encoding="utf-8")
        md_tmp.write_text(md_text, encoding="utf-8")
        os.replace(json_tmp, json_path)
        os.replace(md_tmp, md_path)
    finally:
        for tmp in (json_tmp, md_tmp):
            if tmp.exists():
                tmp.unlink()

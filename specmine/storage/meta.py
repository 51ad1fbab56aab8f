"""Per-project extraction metadata, persisted as JSON.

Holds a bounded scan history (newest first) and the extraction/review/
finalization counters. A missing file reads as the default record.
"""

from __future__ import annotations

import json
import logging
import string
import uuid
from dataclasses import asdict, dataclass, field, fields
from datetime import datetime
from pathlib import Path

from specmine.extraction.models import ScanResult
from specmine.result import ErrorCode, Result

logger = logging.getLogger(__name__)

META_VERSION = "1.0"
MAX_SCAN_HISTORY = 10

_BASE36 = string.digits + string.ascii_lowercase


@dataclass
class ScanRecord:
    id: str  # "scan-<base36 millis>-<random>"
    path: str
    scanned_at: str  # ISO timestamp
    options: dict = field(default_factory=dict)
    file_count: int = 0
    symbol_count: int = 0
    domains: list[str] = field(default_factory=list)
    complexity_grade: str = ""


@dataclass
class ExtractionStatus:
    extracted_count: int = 0
    pending_review_count: int = 0
    approved_count: int = 0
    rejected_count: int = 0
    finalized_count: int = 0


@dataclass
class ReverseMeta:
    version: str = META_VERSION
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())
    updated_at: str = field(default_factory=lambda: datetime.now().isoformat())
    scan_history: list[ScanRecord] = field(default_factory=list)
    extraction_status: ExtractionStatus = field(default_factory=ExtractionStatus)
    last_scan: ScanRecord | None = None

    @classmethod
    def from_dict(cls, data: dict) -> ReverseMeta:
        history = [ScanRecord(**entry) for entry in data.get("scan_history", [])]
        last = data.get("last_scan")
        return cls(
            version=data.get("version", META_VERSION),
            created_at=data.get("created_at") or datetime.now().isoformat(),
            updated_at=data.get("updated_at") or datetime.now().isoformat(),
            scan_history=history,
            extraction_status=ExtractionStatus(**data.get("extraction_status", {})),
            last_scan=ScanRecord(**last) if last else None,
        )


def _base36(value: int) -> str:
    digits = ""
    while value:
        value, rem = divmod(value, 36)
        digits = _BASE36[rem] + digits
    return digits or "0"


def new_scan_id() -> str:
    millis = int(datetime.now().timestamp() * 1000)
    return f"scan-{_base36(millis)}-{uuid.uuid4().hex[:6]}"


def scan_record(scan: ScanResult) -> ScanRecord:
    return ScanRecord(
        id=new_scan_id(),
        path=scan.project_path,
        scanned_at=scan.scanned_at.isoformat(),
        options=asdict(scan.options),
        file_count=scan.summary.file_count,
        symbol_count=scan.summary.symbol_count,
        domains=[d.name for d in scan.summary.suggested_domains],
        complexity_grade=scan.summary.complexity.grade,
    )


class MetaStore:
    """Load-modify-save access to the metadata file."""

    def __init__(self, meta_path: Path) -> None:
        self.path = Path(meta_path)

    def exists(self) -> bool:
        return self.path.exists()

    def load(self) -> Result[ReverseMeta]:
        if not self.path.exists():
            return Result.success(ReverseMeta())
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                raise ValueError("top-level value is not an object")
            return Result.success(ReverseMeta.from_dict(data))
        except OSError as e:
            return Result.failure(f"Failed to read metadata: {e}", ErrorCode.IO_ERROR)
        except (json.JSONDecodeError, TypeError, ValueError) as e:
            return Result.failure(f"Malformed metadata file {self.path}: {e}", ErrorCode.PARSE_ERROR)

    def save(self, meta: ReverseMeta) -> Result[ReverseMeta]:
        meta.updated_at = datetime.now().isoformat()
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(asdict(meta), indent=2), encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to write metadata {self.path}: {e}")
            return Result.failure(f"Failed to write metadata: {e}", ErrorCode.IO_ERROR)
        return Result.success(meta)

    def add_scan(self, scan: ScanResult) -> Result[ReverseMeta]:
        """Prepend a scan to the history, keeping the most recent entries."""
        loaded = self.load()
        if not loaded.ok:
            return loaded
        meta = loaded.value
        record = scan_record(scan)
        meta.scan_history = [record, *meta.scan_history][:MAX_SCAN_HISTORY]
        meta.last_scan = record
        return self.save(meta)

    def update_extraction_status(self, **counts: int) -> Result[ReverseMeta]:
        """Overwrite only the counters passed in, e.g. finalized_count=3."""
        known = {f.name for f in fields(ExtractionStatus)}
        unknown = set(counts) - known
        if unknown:
            return Result.failure(
                f"Unknown extraction counters: {', '.join(sorted(unknown))}",
                ErrorCode.INVALID_INPUT,
            )

        loaded = self.load()
        if not loaded.ok:
            return loaded
        meta = loaded.value
        for name, value in counts.items():
            setattr(meta.extraction_status, name, value)
        return self.save(meta)

    def reset(self) -> Result[ReverseMeta]:
        """Clear history and counters, keeping the schema version and creation time."""
        loaded = self.load()
        if not loaded.ok:
            return loaded
        current = loaded.value
        return self.save(ReverseMeta(version=current.version, created_at=current.created_at))

    def get_last_scan(self) -> Result[ScanRecord | None]:
        loaded = self.load()
        if not loaded.ok:
            return Result.failure(loaded.error, loaded.code or ErrorCode.IO_ERROR)
        return Result.success(loaded.value.last_scan)

    def get_scan_history(self, limit: int | None = None) -> Result[list[ScanRecord]]:
        loaded = self.load()
        if not loaded.ok:
            return Result.failure(loaded.error, loaded.code or ErrorCode.IO_ERROR)
        history = loaded.value.scan_history
        return Result.success(history[:limit] if limit else history)

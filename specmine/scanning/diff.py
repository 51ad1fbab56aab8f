"""Compare two scan snapshots."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime

from specmine.extraction.models import ScanResult, SymbolInfo


@dataclass
class SymbolChange:
    type: str  # "added" | "removed" | "modified"
    symbol: SymbolInfo
    previous: SymbolInfo | None = None


@dataclass
class FileChanges:
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    modified: list[str] = field(default_factory=list)


@dataclass
class DomainChanges:
    added: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    unchanged: list[str] = field(default_factory=list)


@dataclass
class DiffSummary:
    files_added: int = 0
    files_removed: int = 0
    files_modified: int = 0
    symbols_added: int = 0
    symbols_removed: int = 0
    symbols_modified: int = 0
    has_changes: bool = False


@dataclass
class ScanDiff:
    previous_scanned_at: datetime
    current_scanned_at: datetime
    compared_at: datetime
    file_changes: FileChanges
    symbol_changes: list[SymbolChange]
    domain_changes: DomainChanges
    summary: DiffSummary

    def changes_of(self, change_type: str) -> list[SymbolChange]:
        return [c for c in self.symbol_changes if c.type == change_type]

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2, default=str)


def symbol_key(symbol: SymbolInfo) -> str:
    return f"{symbol.location.path}::{symbol.name_path}"


def symbol_hash(symbol: SymbolInfo) -> str:
    return (
        f"{int(symbol.kind)}|{symbol.signature or ''}|"
        f"{symbol.location.start_line}-{symbol.location.end_line}"
    )


def compare_scans(previous: ScanResult, current: ScanResult) -> ScanDiff:
    """Diff files, symbols and suggested domains between two scans.

    A file counts as modified when at least one of its symbols changed. If both
    scans carry content hashes, files whose hash differs are added as well.
    """
    previous_files = set(previous.files)
    current_files = set(current.files)

    file_changes = FileChanges(
        added=[f for f in current.files if f not in previous_files],
        removed=[f for f in previous.files if f not in current_files],
    )

    previous_symbols = {symbol_key(s): s for s in previous.symbols}
    current_symbols = {symbol_key(s): s for s in current.symbols}

    changes: list[SymbolChange] = []
    modified_files: list[str] = []

    for key, symbol in current_symbols.items():
        before = previous_symbols.get(key)
        if before is None:
            changes.append(SymbolChange(type="added", symbol=symbol))
        elif symbol_hash(symbol) != symbol_hash(before):
            changes.append(SymbolChange(type="modified", symbol=symbol, previous=before))
            if symbol.location.path not in modified_files:
                modified_files.append(symbol.location.path)

    for key, symbol in previous_symbols.items():
        if key not in current_symbols:
            changes.append(SymbolChange(type="removed", symbol=symbol))

    if previous.file_hashes and current.file_hashes:
        for path, digest in current.file_hashes.items():
            before_digest = previous.file_hashes.get(path)
            if before_digest and before_digest != digest and path not in modified_files:
                modified_files.append(path)

    file_changes.modified = modified_files

    previous_domains = [d.name for d in previous.summary.suggested_domains]
    current_domains = [d.name for d in current.summary.suggested_domains]
    domain_changes = DomainChanges(
        added=[d for d in current_domains if d not in previous_domains],
        removed=[d for d in previous_domains if d not in current_domains],
        unchanged=[d for d in current_domains if d in previous_domains],
    )

    summary = DiffSummary(
        files_added=len(file_changes.added),
        files_removed=len(file_changes.removed),
        files_modified=len(file_changes.modified),
        symbols_added=sum(1 for c in changes if c.type == "added"),
        symbols_removed=sum(1 for c in changes if c.type == "removed"),
        symbols_modified=sum(1 for c in changes if c.type == "modified"),
    )
    summary.has_changes = any((
        summary.files_added,
        summary.files_removed,
        summary.files_modified,
        summary.symbols_added,
        summary.symbols_removed,
        summary.symbols_modified,
    ))

    return ScanDiff(
        previous_scanned_at=previous.scanned_at,
        current_scanned_at=current.scanned_at,
        compared_at=datetime.now(),
        file_changes=file_changes,
        symbol_changes=changes,
        domain_changes=domain_changes,
        summary=summary,
    )

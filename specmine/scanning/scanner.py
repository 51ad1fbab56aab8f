"""Project scanner: directory walk, filtering, domain inference and complexity.

The scan is read-only. Symbols come from an injected SymbolProvider; without
one the scan carries no symbols and domain symbol counts stay estimates.
"""

from __future__ import annotations

import hashlib
import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable

from specmine.extraction.models import (
    ComplexityMetrics,
    ScanOptions,
    ScanResult,
    ScanSummary,
    SuggestedDomain,
    SymbolInfo,
)
from specmine.result import ErrorCode, Result
from specmine.scanning.languages import detect_language, extension_of, language_distribution
from specmine.symbols.provider import NullSymbolProvider, SymbolProvider

logger = logging.getLogger(__name__)

SKIP_DIRS = frozenset({"node_modules", "dist", "build"})

DOMAIN_PATTERN = re.compile(r"^(src|lib|packages|modules|apps)/([^/]+)")
GENERIC_DOMAINS = frozenset({"utils", "helpers", "types", "config", "test", "tests", "__tests__"})
MAX_DOMAINS = 10
SYMBOLS_PER_FILE = 5  # Domain symbol estimate when no provider is wired up

# Complexity estimates per file
LINES_PER_FILE = 100
DEPENDENCIES_PER_FILE = 2

QUICK_SCAN_DEPTH = 2


@dataclass
class ScanProgress:
    phase: str  # "listing" | "analyzing" | "summarizing"
    processed_files: int = 0
    total_files: int = 0
    symbol_count: int = 0


ProgressCallback = Callable[[ScanProgress], None]


def scan_project(
    project_path: Path,
    options: ScanOptions | None = None,
    provider: SymbolProvider | None = None,
    on_progress: ProgressCallback | None = None,
    hash_files: bool = False,
) -> Result[ScanResult]:
    """Scan a project tree and summarize files, languages, domains and symbols."""
    options = options or ScanOptions()
    provider = provider or NullSymbolProvider()
    root = Path(project_path)

    if not root.is_dir():
        return Result.failure(f"Path not found: {project_path}", ErrorCode.NOT_FOUND)

    started = datetime.now()
    _report(on_progress, ScanProgress(phase="listing"))

    directories, files = _walk(root, options.depth)

    try:
        filtered = _apply_patterns(files, options.include, options.exclude)
    except re.error as e:
        return Result.failure(f"Invalid include/exclude pattern: {e}", ErrorCode.INVALID_INPUT)

    _report(on_progress, ScanProgress(phase="analyzing", total_files=len(filtered)))

    # Distribution is taken before the language filter narrows the file list
    languages = language_distribution(filtered)

    if options.language:
        language = options.language
        filtered = [
            f for f in filtered
            if language in f or language in extension_of(f) or detect_language(f) == language
        ]

    domains = infer_domains(filtered)

    try:
        symbols = provider.symbols_for(root, filtered)
    except (OSError, ValueError) as e:
        logger.error(f"Symbol analysis failed for {root}: {e}")
        return Result.failure(f"Symbol analysis failed: {e}", ErrorCode.PARSE_ERROR)

    _report(
        on_progress,
        ScanProgress(
            phase="summarizing",
            processed_files=len(filtered),
            total_files=len(filtered),
            symbol_count=len(symbols),
        ),
    )

    summary = ScanSummary(
        file_count=len(filtered),
        symbol_count=len(symbols),
        symbols_by_kind=_symbol_histogram(symbols),
        language_distribution=languages,
        suggested_domains=domains,
        complexity=calculate_complexity(filtered),
    )

    logger.info(f"Scanned {root}: {len(filtered)} files, {len(symbols)} symbols, {len(domains)} domains")

    return Result.success(
        ScanResult(
            project_path=str(project_path),
            scanned_at=started,
            options=options,
            files=filtered,
            directories=directories,
            symbols=symbols,
            summary=summary,
            file_hashes=_hash_files(root, filtered) if hash_files else {},
        )
    )


def quick_scan(project_path: Path, provider: SymbolProvider | None = None) -> Result[ScanResult]:
    """Shallow scan for a first look at a project."""
    return scan_project(project_path, ScanOptions(depth=QUICK_SCAN_DEPTH), provider)


def scan_path(
    project_path: Path,
    target: str,
    options: ScanOptions | None = None,
    provider: SymbolProvider | None = None,
) -> Result[ScanResult]:
    """Scan a subdirectory of the project."""
    full_path = Path(project_path) / target
    if not full_path.exists():
        return Result.failure(f"Path not found: {target}", ErrorCode.NOT_FOUND)
    return scan_project(full_path, options, provider)


def infer_domains(files: list[str]) -> list[SuggestedDomain]:
    """Group files under src/lib/packages/modules/apps subdirectories into domains."""
    grouped: dict[str, tuple[str, list[str]]] = {}
    for f in files:
        match = DOMAIN_PATTERN.match(f)
        if not match:
            continue
        name = match.group(2)
        if name not in grouped:
            grouped[name] = (match.group(0), [])
        grouped[name][1].append(f)

    candidates = [(name, info) for name, info in grouped.items() if name not in GENERIC_DOMAINS]
    candidates.sort(key=lambda item: len(item[1][1]), reverse=True)

    total = len(files)
    domains = []
    for name, (path, domain_files) in candidates[:MAX_DOMAINS]:
        symbol_count = len(domain_files) * SYMBOLS_PER_FILE
        domains.append(
            SuggestedDomain(
                name=name,
                path=path,
                file_count=len(domain_files),
                symbol_count=symbol_count,
                confidence=calculate_domain_confidence(len(domain_files), symbol_count, path, total),
                files=domain_files,
            )
        )
    return domains


def calculate_domain_confidence(file_count: int, symbol_count: int, path: str, total_files: int) -> int:
    file_score = min(file_count / total_files * 100, 50) if total_files else 0
    symbol_score = min(symbol_count / 10, 30)
    path_score = 20 if "src/" in path else 10
    return round(file_score + symbol_score + path_score)


def calculate_complexity(files: list[str]) -> ComplexityMetrics:
    estimated_loc = len(files) * LINES_PER_FILE
    avg_file_size = LINES_PER_FILE
    dependency_count = math.floor(len(files) * DEPENDENCIES_PER_FILE)
    return ComplexityMetrics(
        estimated_loc=estimated_loc,
        avg_file_size=avg_file_size,
        dependency_count=dependency_count,
        grade=calculate_complexity_grade(estimated_loc, avg_file_size, dependency_count),
    )


def calculate_complexity_grade(estimated_loc: int, avg_file_size: int, dependency_count: int) -> str:
    score = (
        (estimated_loc / 10000) * 0.4
        + (dependency_count / 100) * 0.4
        + (avg_file_size / 500) * 0.2
    )
    if score < 0.5:
        return "low"
    if score < 1.5:
        return "medium"
    if score < 3:
        return "high"
    return "very-high"


def _walk(root: Path, depth: int) -> tuple[list[str], list[str]]:
    """Depth-bounded walk with an explicit stack. Root entries are level 0."""
    directories: list[str] = []
    files: list[str] = []
    stack: list[tuple[Path, int]] = [(root, 0)]

    while stack:
        current, level = stack.pop()
        if level > depth:
            continue
        try:
            entries = sorted(current.iterdir(), key=lambda p: p.name)
        except OSError as e:
            logger.warning(f"Cannot read directory {current}: {e}")
            continue

        subdirs = []
        for entry in entries:
            if entry.name.startswith(".") or entry.name in SKIP_DIRS:
                continue
            rel_path = entry.relative_to(root).as_posix()
            if entry.is_dir():
                directories.append(rel_path)
                subdirs.append(entry)
            elif entry.is_file():
                files.append(rel_path)

        # Reversed so the next pop is the alphabetically first subdirectory
        for sub in reversed(subdirs):
            stack.append((sub, level + 1))

    return directories, files


def _apply_patterns(files: list[str], include: list[str], exclude: list[str]) -> list[str]:
    result = files
    if include:
        patterns = [re.compile(p.replace("*", ".*")) for p in include]
        result = [f for f in result if any(p.search(f) for p in patterns)]
    if exclude:
        patterns = [re.compile(p.replace("*", ".*")) for p in exclude]
        result = [f for f in result if not any(p.search(f) for p in patterns)]
    return result


def _symbol_histogram(symbols: list[SymbolInfo]) -> dict[str, int]:
    histogram: dict[str, int] = {}
    for s in symbols:
        histogram[s.kind.label] = histogram.get(s.kind.label, 0) + 1
    return histogram


def _hash_files(root: Path, files: list[str]) -> dict[str, str]:
    hashes = {}
    for rel_path in files:
        try:
            hashes[rel_path] = hashlib.sha256((root / rel_path).read_bytes()).hexdigest()
        except OSError as e:
            logger.warning(f"Cannot hash {rel_path}: {e}")
    return hashes


def _report(callback: ProgressCallback | None, progress: ScanProgress) -> None:
    if callback:
        callback(progress)

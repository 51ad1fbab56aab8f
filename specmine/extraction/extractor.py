"""Spec extraction: filter, group and score scanned symbols, then generate drafts.

Pipeline phases, always reported in this order:
1. analyzing: filter symbols by kind and depth
2. grouping: bucket symbols by domain, then by class or per-file functions
3. generating: score each group and build a draft for those above the threshold
4. saving: persist drafts when a store is given
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from pathlib import PurePosixPath
from typing import Callable

from specmine.extraction.confidence import aggregate_confidence, calculate_average_confidence
from specmine.extraction.generator import generate_spec, slugify
from specmine.extraction.models import (
    ConfidenceResult,
    ExtractedSpec,
    ScanResult,
    SymbolInfo,
    SymbolKind,
)
from specmine.result import ErrorCode, Result
from specmine.storage.drafts import DraftStore

logger = logging.getLogger(__name__)

DEPTH_KINDS: dict[str, set[SymbolKind] | None] = {
    "shallow": {SymbolKind.CLASS, SymbolKind.FUNCTION, SymbolKind.INTERFACE},
    "medium": {SymbolKind.CLASS, SymbolKind.FUNCTION, SymbolKind.INTERFACE, SymbolKind.METHOD},
    "deep": None,  # Everything
}

UNKNOWN_DOMAIN = "unknown"


@dataclass
class ExtractOptions:
    depth: str = "deep"  # "shallow" | "medium" | "deep"
    domain: str | None = None
    min_confidence: int | None = None
    include_kinds: list[SymbolKind] = field(default_factory=list)
    exclude_kinds: list[SymbolKind] = field(default_factory=list)


@dataclass
class ExtractionProgress:
    phase: str  # "analyzing" | "grouping" | "generating" | "saving"
    processed_symbols: int
    total_symbols: int
    specs_generated: int


@dataclass
class ExtractionResult:
    specs: list[ExtractedSpec]
    overall_confidence: ConfidenceResult
    symbol_count: int  # Symbols that ended up in a draft
    skipped_count: int  # Symbols in groups below the confidence threshold
    extracted_at: datetime
    saved_path: str | None = None
    errors: list[dict] = field(default_factory=list)  # [{"spec_id": ..., "error": ...}]

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2, default=str)


ProgressCallback = Callable[[ExtractionProgress], None]
Refiner = Callable[[ExtractedSpec], ExtractedSpec]


def filter_symbols(symbols: list[SymbolInfo], options: ExtractOptions) -> list[SymbolInfo]:
    filtered = list(symbols)
    if options.include_kinds:
        filtered = [s for s in filtered if s.kind in options.include_kinds]
    if options.exclude_kinds:
        filtered = [s for s in filtered if s.kind not in options.exclude_kinds]

    if options.depth not in DEPTH_KINDS:
        raise ValueError(f"Unknown extraction depth: {options.depth}")
    allowed = DEPTH_KINDS[options.depth]
    if allowed is not None:
        filtered = [s for s in filtered if s.kind in allowed]
    return filtered


def domain_for_path(path: str, suggested_domains: list[str]) -> str:
    for name in suggested_domains:
        if name in path:
            return name

    parts = path.split("/")
    if len(parts) > 1:
        if "src" in parts:
            index = parts.index("src")
            if index < len(parts) - 1:
                return parts[index + 1]
        return parts[0]
    return UNKNOWN_DOMAIN


def group_by_domain(
    symbols: list[SymbolInfo], suggested_domains: list[str]
) -> dict[str, list[SymbolInfo]]:
    groups: dict[str, list[SymbolInfo]] = {}
    for s in symbols:
        groups.setdefault(domain_for_path(s.location.path, suggested_domains), []).append(s)
    return groups


def group_by_unit(symbols: list[SymbolInfo]) -> dict[str, list[SymbolInfo]]:
    """Group a domain's symbols per class, then free functions per source file."""
    groups: dict[str, list[SymbolInfo]] = {}

    for cls in (s for s in symbols if s.kind == SymbolKind.CLASS):
        key = cls.name_path or cls.name
        groups[key] = [s for s in symbols if s is cls or s.name_path.startswith(key + "/")]

    by_file: dict[str, list[SymbolInfo]] = {}
    for s in symbols:
        if s.kind in (SymbolKind.FUNCTION, SymbolKind.METHOD) and "/" not in s.name_path:
            by_file.setdefault(s.location.path, []).append(s)

    for path, functions in by_file.items():
        groups[f"functions/{PurePosixPath(path).stem}"] = functions

    return groups


def _unique_id(spec: ExtractedSpec, taken: set[str]) -> ExtractedSpec:
    """Suffix -2, -3, ... when two groups of one run infer the same id."""
    spec_id, n = spec.id, 2
    while spec_id in taken:
        spec_id = f"{spec.id}-{n}"
        n += 1
    taken.add(spec_id)
    if spec_id == spec.id:
        return spec
    logger.warning(f"Spec id {spec.id} already generated in this run; using {spec_id}")
    return replace(spec, id=spec_id)


def extract_specs(
    scan: ScanResult,
    options: ExtractOptions | None = None,
    on_progress: ProgressCallback | None = None,
    store: DraftStore | None = None,
    refine: Refiner | None = None,
) -> Result[ExtractionResult]:
    """Turn a scan's symbols into draft specs, optionally saving them."""
    options = options or ExtractOptions()
    started = datetime.now()
    total = len(scan.symbols)
    specs: list[ExtractedSpec] = []
    taken_ids: set[str] = set()
    processed = 0
    skipped = 0

    def report(phase: str) -> None:
        if on_progress:
            on_progress(ExtractionProgress(phase, processed, total, len(specs)))

    report("analyzing")
    try:
        filtered = filter_symbols(scan.symbols, options)
    except ValueError as e:
        return Result.failure(str(e), ErrorCode.INVALID_INPUT)

    report("grouping")
    domain_names = [d.name for d in scan.summary.suggested_domains]
    domain_groups = group_by_domain(filtered, domain_names)
    if options.domain:
        wanted = slugify(options.domain)
        domain_groups = {d: g for d, g in domain_groups.items() if slugify(d) == wanted}

    report("generating")
    for domain, symbols in domain_groups.items():
        for group_name, group in group_by_unit(symbols).items():
            if not group:
                continue

            confidence = calculate_average_confidence(group, scan.symbols, scan.files)
            if options.min_confidence is not None and confidence.score < options.min_confidence:
                logger.info(
                    f"Skipping {domain}/{group_name}: confidence {confidence.score} "
                    f"below {options.min_confidence}"
                )
                skipped += len(group)
                continue

            spec = generate_spec(domain, group, confidence, domain_names)
            if refine:
                spec = refine(spec)
            specs.append(_unique_id(spec, taken_ids))
            processed += len(group)
            report("generating")

    errors: list[dict] = []
    saved_path = None
    report("saving")
    if store is not None:
        for spec in specs:
            previous = store.load(spec.id)
            if previous.ok and previous.value.review:
                logger.warning(
                    f"Re-extracting {spec.id} resets its review state "
                    f"(was {previous.value.review.get('status', 'unknown')})"
                )
            saved = store.save(spec)
            if not saved.ok:
                errors.append({"spec_id": spec.id, "error": saved.error})
        saved_path = str(store.root)

    logger.info(f"Extracted {len(specs)} specs from {processed} symbols ({skipped} skipped)")

    return Result.success(
        ExtractionResult(
            specs=specs,
            overall_confidence=aggregate_confidence([s.confidence for s in specs]),
            symbol_count=processed,
            skipped_count=skipped,
            extracted_at=started,
            saved_path=saved_path,
            errors=errors,
        )
    )

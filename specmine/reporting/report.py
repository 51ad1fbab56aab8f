"""Extraction report: one snapshot of scan, extraction, review and finalization progress."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime
from pathlib import Path

from specmine.finalize.finalizer import FinalizeResult
from specmine.result import ErrorCode, Result
from specmine.review.workflow import ReviewItem, summarize
from specmine.storage.meta import ReverseMeta

logger = logging.getLogger(__name__)

HIGH_CONFIDENCE = 80
MEDIUM_CONFIDENCE = 60

# Scan complexity grade -> letter shown in reports
COMPLEXITY_LETTERS = {"low": "A", "medium": "B", "high": "C", "very-high": "D"}


@dataclass
class ScanSection:
    total_files: int
    total_symbols: int
    suggested_domains: list[str]
    complexity_grade: str  # "A".."D"


@dataclass
class ExtractionSection:
    total_extracted: int
    by_confidence: dict[str, int]  # {"high": n, "medium": n, "low": n}
    by_domain: dict[str, int]
    average_confidence: float


@dataclass
class ReviewSection:
    total_reviewed: int
    approved: int
    rejected: int
    pending: int  # pending + needs_revision
    approval_rate: int  # percent


@dataclass
class FinalizationSection:
    total_finalized: int
    by_domain: dict[str, int]
    errors: int


@dataclass
class ReportStatistics:
    success_rate: int  # finalized / extracted, percent
    manual_review_needed: int
    automation_rate: int  # percent


@dataclass
class ExtractionReport:
    generated_at: str
    project_path: str
    statistics: ReportStatistics
    scan: ScanSection | None = None
    extraction: ExtractionSection | None = None
    review: ReviewSection | None = None
    finalization: FinalizationSection | None = None
    recommendations: list[str] = field(default_factory=list)

    def to_json(self) -> str:
        return json.dumps(asdict(self), indent=2)


def confidence_band(score: float) -> str:
    if score >= HIGH_CONFIDENCE:
        return "high"
    if score >= MEDIUM_CONFIDENCE:
        return "medium"
    return "low"


def _percent(part: int, whole: int) -> int:
    return round(part / whole * 100) if whole else 0


def build_report(
    meta: ReverseMeta,
    review_items: list[ReviewItem],
    finalize_result: FinalizeResult | None = None,
    project_path: str = "",
) -> ExtractionReport:
    recommendations: list[str] = []

    scan = None
    if meta.last_scan is not None:
        last = meta.last_scan
        grade = COMPLEXITY_LETTERS.get(last.complexity_grade, "C")
        scan = ScanSection(
            total_files=last.file_count,
            total_symbols=last.symbol_count,
            suggested_domains=list(last.domains),
            complexity_grade=grade,
        )
        project_path = project_path or last.path
        if grade in ("A", "B"):
            recommendations.append("Codebase structure looks healthy. Proceed with automatic extraction.")
        elif grade == "D":
            recommendations.append("Complex codebase. Extract one domain at a time.")

    extraction = None
    if review_items:
        bands = {"high": 0, "medium": 0, "low": 0}
        by_domain: dict[str, int] = {}
        for item in review_items:
            bands[confidence_band(item.spec.confidence.score)] += 1
            by_domain[item.spec.domain] = by_domain.get(item.spec.domain, 0) + 1
        scores = [item.spec.confidence.score for item in review_items]
        extraction = ExtractionSection(
            total_extracted=len(review_items),
            by_confidence=bands,
            by_domain=by_domain,
            average_confidence=round(sum(scores) / len(scores), 2),
        )
        if bands["low"] > bands["high"]:
            recommendations.append("Many drafts have low confidence. Review them manually.")

    summary = summarize(review_items)
    review = ReviewSection(
        total_reviewed=summary.total,
        approved=summary.approved,
        rejected=summary.rejected,
        pending=summary.pending + summary.needs_revision,
        approval_rate=_percent(summary.approved, summary.total),
    )
    if summary.pending:
        recommendations.append(f"{summary.pending} drafts are waiting for review.")

    finalization = None
    finalized_count = meta.extraction_status.finalized_count
    if finalize_result is not None:
        by_domain = {}
        for spec in finalize_result.finalized:
            by_domain[spec.domain] = by_domain.get(spec.domain, 0) + 1
        finalization = FinalizationSection(
            total_finalized=len(finalize_result.finalized),
            by_domain=by_domain,
            errors=len(finalize_result.errors),
        )
        finalized_count = max(finalized_count, len(finalize_result.finalized))
        if finalize_result.errors:
            recommendations.append(f"Check {len(finalize_result.errors)} finalization errors.")

    extracted = max(meta.extraction_status.extracted_count, len(review_items))
    statistics = ReportStatistics(
        success_rate=min(_percent(finalized_count, extracted), 100),
        manual_review_needed=review.pending,
        automation_rate=_percent(extracted - review.pending, extracted),
    )
    if finalized_count:
        recommendations.append("Validate the finalized specs before implementing them.")

    return ExtractionReport(
        generated_at=datetime.now().isoformat(),
        project_path=project_path,
        statistics=statistics,
        scan=scan,
        extraction=extraction,
        review=review,
        finalization=finalization,
        recommendations=list(dict.fromkeys(recommendations)),
    )


def format_report_markdown(report: ExtractionReport) -> str:
    lines = [
        "# Reverse Extraction Report",
        "",
        f"- Generated: {report.generated_at}",
        f"- Project: {report.project_path or '-'}",
        "",
    ]

    if report.scan:
        lines += [
            "## Scan",
            "",
            f"- Files: {report.scan.total_files}",
            f"- Symbols: {report.scan.total_symbols}",
            f"- Complexity: {report.scan.complexity_grade}",
        ]
        if report.scan.suggested_domains:
            lines.append(f"- Suggested domains: {', '.join(report.scan.suggested_domains)}")
        lines.append("")

    if report.extraction:
        bands = report.extraction.by_confidence
        lines += [
            "## Extraction",
            "",
            f"- Drafts: {report.extraction.total_extracted}",
            f"- Average confidence: {report.extraction.average_confidence:.0f}%",
            f"- High: {bands['high']} | Medium: {bands['medium']} | Low: {bands['low']}",
            "",
        ]

    if report.review:
        lines += [
            "## Review",
            "",
            f"- Approved: {report.review.approved}",
            f"- Rejected: {report.review.rejected}",
            f"- Pending: {report.review.pending}",
            f"- Approval rate: {report.review.approval_rate}%",
            "",
        ]

    if report.finalization:
        lines += ["## Finalization", "", f"- Finalized: {report.finalization.total_finalized}"]
        for domain, count in report.finalization.by_domain.items():
            lines.append(f"  - {domain}: {count}")
        if report.finalization.errors:
            lines.append(f"- Errors: {report.finalization.errors}")
        lines.append("")

    stats = report.statistics
    lines += [
        "## Statistics",
        "",
        f"- Success rate: {stats.success_rate}%",
        f"- Automation rate: {stats.automation_rate}%",
        f"- Needs manual review: {stats.manual_review_needed}",
        "",
    ]

    if report.recommendations:
        lines += ["## Next Steps", ""]
        lines += [f"- {r}" for r in report.recommendations]
        lines.append("")

    return "\n".join(lines)


def save_report(report: ExtractionReport, reports_path: Path, fmt: str = "json") -> Result[Path]:
    """Write the report as report-<timestamp>.json or .md."""
    if fmt not in ("json", "markdown"):
        return Result.failure(f"Unknown report format: {fmt}", ErrorCode.INVALID_INPUT)

    stamp = datetime.now().strftime("%Y-%m-%dT%H-%M-%S")
    ext = "json" if fmt == "json" else "md"
    path = Path(reports_path) / f"report-{stamp}.{ext}"
    content = report.to_json() if fmt == "json" else format_report_markdown(report)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        logger.error(f"Failed to write report {path}: {e}")
        return Result.failure(f"Failed to write report: {e}", ErrorCode.IO_ERROR)
    return Result.success(path)

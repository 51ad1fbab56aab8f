"""Review workflow over stored drafts.

Every draft starts as "pending". An operator moves it to "approved",
"rejected" or "needs_revision"; any state can be re-entered later. Each
transition updates the review status and the draft's metadata status together,
appends a timestamped comment and persists the draft pair.

The review block (status, comments, suggestions, reviewer) lives inside the
draft's JSON twin so the comment log survives between runs.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime

from specmine.extraction.generator import format_spec_markdown
from specmine.extraction.models import ExtractedSpec
from specmine.result import ErrorCode, Result
from specmine.storage.drafts import DraftStore, StoredDraft

logger = logging.getLogger(__name__)

REVIEW_STATUSES = ("pending", "approved", "rejected", "needs_revision")

# Review status -> draft metadata status
METADATA_STATUS = {
    "pending": "pending_review",
    "approved": "approved",
    "rejected": "rejected",
    "needs_revision": "pending_review",
}


@dataclass
class ReviewComment:
    type: str  # "info" | "warning" | "error" | "suggestion"
    message: str
    created_at: str = field(default_factory=lambda: datetime.now().isoformat())


@dataclass
class ReviewItem:
    spec: ExtractedSpec
    status: str = "pending"
    comments: list[ReviewComment] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)
    reviewer: str | None = None
    reviewed_at: str | None = None

    @property
    def spec_id(self) -> str:
        return self.spec.id

    def review_block(self) -> dict:
        return {
            "status": self.status,
            "comments": [asdict(c) for c in self.comments],
            "suggestions": list(self.suggestions),
            "reviewer": self.reviewer,
            "reviewed_at": self.reviewed_at,
        }


@dataclass
class ReviewSummary:
    total: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    needs_revision: int = 0


def status_from_metadata(metadata_status: str) -> str:
    if metadata_status in ("approved", "rejected"):
        return metadata_status
    return "pending"


def item_from_draft(draft: StoredDraft) -> ReviewItem:
    review = draft.review
    spec = draft.spec
    status = review.get("status") or status_from_metadata(spec.metadata.status)
    if status not in REVIEW_STATUSES or METADATA_STATUS[status] != _normalized(spec.metadata.status):
        # The JSON twin's metadata wins over a review block that disagrees with it
        derived = status_from_metadata(spec.metadata.status)
        if review.get("status"):
            logger.warning(
                f"Review status {status!r} of {spec.id} disagrees with metadata "
                f"{spec.metadata.status!r}, using {derived!r}"
            )
        status = derived

    return ReviewItem(
        spec=spec,
        status=status,
        comments=[ReviewComment(**c) for c in review.get("comments", [])],
        suggestions=list(review.get("suggestions", spec.confidence.suggestions)),
        reviewer=review.get("reviewer"),
        reviewed_at=review.get("reviewed_at"),
    )


def _normalized(metadata_status: str) -> str:
    return "pending_review" if metadata_status == "draft" else metadata_status


def summarize(items: list[ReviewItem]) -> ReviewSummary:
    summary = ReviewSummary(total=len(items))
    for item in items:
        setattr(summary, item.status, getattr(summary, item.status) + 1)
    return summary


def format_review_markdown(item: ReviewItem) -> str:
    lines = [format_spec_markdown(item.spec), "## Review", "", f"- Status: {item.status}"]
    if item.reviewer:
        lines.append(f"- Reviewer: {item.reviewer}")
    if item.reviewed_at:
        lines.append(f"- Reviewed at: {item.reviewed_at}")
    if item.comments:
        lines += ["", "### Comments", ""]
        lines += [f"- [{c.type}] {c.message} ({c.created_at})" for c in item.comments]
    lines.append("")
    return "\n".join(lines)


class ReviewWorkflow:
    """State transitions for drafts in one DraftStore."""

    def __init__(self, store: DraftStore, reviewer: str | None = None) -> None:
        self._store = store
        self._reviewer = reviewer

    def load_items(self) -> Result[list[ReviewItem]]:
        loaded = self._store.load_all()
        if not loaded.ok:
            return Result.failure(f"Failed to load review list: {loaded.error}", loaded.code or ErrorCode.IO_ERROR)
        return Result.success([item_from_draft(d) for d in loaded.value])

    def get(self, spec_id: str) -> Result[ReviewItem]:
        loaded = self.load_items()
        if not loaded.ok:
            return loaded  # type: ignore[return-value]
        for item in loaded.value:
            if item.spec_id == spec_id:
                return Result.success(item)
        return Result.failure(f"Spec not found: {spec_id}", ErrorCode.NOT_FOUND)

    def approve(self, spec_id: str, comment: str | None = None) -> Result[ReviewItem]:
        comments = [ReviewComment(type="info", message=comment)] if comment else []
        return self._transition(spec_id, "approved", comments)

    def reject(self, spec_id: str, reason: str) -> Result[ReviewItem]:
        if not reason or not reason.strip():
            return Result.failure("A rejection reason is required", ErrorCode.INVALID_INPUT)
        return self._transition(spec_id, "rejected", [ReviewComment(type="error", message=reason)])

    def request_revision(self, spec_id: str, suggestions: list[str]) -> Result[ReviewItem]:
        comments = [ReviewComment(type="suggestion", message=s) for s in suggestions]
        return self._transition(spec_id, "needs_revision", comments, suggestions)

    def summary(self) -> Result[ReviewSummary]:
        loaded = self.load_items()
        if not loaded.ok:
            return loaded  # type: ignore[return-value]
        return Result.success(summarize(loaded.value))

    def approved_specs(self) -> Result[list[ExtractedSpec]]:
        loaded = self.load_items()
        if not loaded.ok:
            return loaded  # type: ignore[return-value]
        return Result.success([i.spec for i in loaded.value if i.status == "approved"])

    def pending_items(self) -> Result[list[ReviewItem]]:
        loaded = self.load_items()
        if not loaded.ok:
            return loaded
        return Result.success([i for i in loaded.value if i.status == "pending"])

    def _transition(
        self,
        spec_id: str,
        status: str,
        comments: list[ReviewComment],
        suggestions: list[str] | None = None,
    ) -> Result[ReviewItem]:
        found = self.get(spec_id)
        if not found.ok:
            return found
        item = found.value

        item.status = status
        item.spec.metadata.status = METADATA_STATUS[status]
        item.reviewed_at = datetime.now().isoformat()
        if self._reviewer:
            item.reviewer = self._reviewer
        item.comments.extend(comments)
        for s in suggestions or []:
            if s not in item.suggestions:
                item.suggestions.append(s)

        saved = self._store.save(item.spec, item.review_block(), format_review_markdown(item))
        if not saved.ok:
            return Result.failure(saved.error, saved.code or ErrorCode.IO_ERROR)

        logger.info(f"{spec_id} -> {status}")
        return Result.success(item)

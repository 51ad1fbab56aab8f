"""Promote approved drafts into the canonical spec store.

Each approved draft becomes <specs>/<domain>/<feature-id>/spec.md in the
format the spec validator accepts:
- YAML front-matter (id, title, status, created, domain, depends, provenance, confidence)
- "# Title" heading followed by a "> description" blockquote
- "## Requirement: ..." sections, each with a SHALL statement
- "### Scenario: ..." sections with GIVEN/WHEN/THEN bullets
- boilerplate non-functional, constraints and glossary sections

The draft pair is deleted once its spec is written.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path

import yaml

from specmine.extraction.generator import slugify
from specmine.extraction.models import ExtractedContract, ExtractedScenario, ExtractedSpec
from specmine.finalize.domains import DomainLinker
from specmine.result import ErrorCode, Result
from specmine.review.workflow import ReviewWorkflow
from specmine.storage.drafts import DraftStore
from specmine.storage.meta import MetaStore

logger = logging.getLogger(__name__)

SPEC_FILE = "spec.md"
DEFAULT_DOMAIN = "common"
PROVENANCE = "reverse-extraction"
TARGET_STATUS = "draft"  # The canonical store runs its own lifecycle from here
TARGET_STATUSES = ("draft", "review", "approved", "implemented")

REQUIREMENT_TEMPLATES = {
    "input": "The system SHALL accept the following input: {description}.",
    "output": "The system SHALL produce the following output: {description}.",
    "invariant": "The system SHALL preserve the following invariant: {description}.",
    "dependency": "The system SHALL depend on the following collaborator: {description}.",
}


@dataclass
class FinalizedSpec:
    id: str  # "<domain>/<feature-id>"
    domain: str
    spec_path: str  # Relative to the project root
    original: ExtractedSpec
    finalized_at: datetime
    link_error: str | None = None


@dataclass
class FinalizeResult:
    finalized: list[FinalizedSpec] = field(default_factory=list)
    errors: list[dict] = field(default_factory=list)  # [{"spec_id": ..., "error": ...}]


@dataclass
class FrontMatter:
    id: str | None = None
    title: str | None = None
    status: str = "draft"
    domain: str | None = None
    created: str | None = None  # YYYY-MM-DD
    extracted_from: str | None = None
    confidence: float | None = None
    source_files: list[str] = field(default_factory=list)


@dataclass
class FinalizedEntry:
    id: str
    domain: str
    spec_path: str
    front_matter: FrontMatter


def feature_id(spec_id: str) -> str:
    return spec_id.rsplit("/", 1)[-1]


def _one_line(text: str) -> str:
    return " ".join(text.split())


def _lower_first(text: str) -> str:
    return text[:1].lower() + text[1:]


def _requirement_from_contract(contract: ExtractedContract) -> list[str]:
    template = REQUIREMENT_TEMPLATES.get(contract.type, REQUIREMENT_TEMPLATES["dependency"])
    lines = [
        f"## Requirement: {_one_line(contract.description)}",
        "",
        template.format(description=_lower_first(_one_line(contract.description))),
        "",
    ]
    if contract.signature:
        lines += ["```", contract.signature, "```", ""]
    return lines


def _requirement_from_scenario(scenario: ExtractedScenario) -> list[str]:
    return [
        f"## Requirement: {_one_line(scenario.name)}",
        "",
        f"The system SHALL ensure that when {_one_line(scenario.when)}, {_one_line(scenario.then)}.",
        "",
    ]


def render_canonical_spec(spec: ExtractedSpec, created: date | None = None) -> str:
    created = created or spec.metadata.extracted_at.date()
    front = {
        "id": feature_id(spec.id),
        "title": spec.name,
        "status": TARGET_STATUS,
        "created": created.isoformat(),
        "domain": spec.domain or DEFAULT_DOMAIN,
        "depends": None,
        "extracted_from": PROVENANCE,
        "confidence": spec.confidence.score,
        "source_files": list(spec.metadata.source_files),
    }
    description = _one_line(spec.description)

    lines = [
        "---",
        yaml.safe_dump(front, sort_keys=False, allow_unicode=True).rstrip(),
        "---",
        "",
        f"# {spec.name}",
        "",
        f"> {description}",
        "",
        "---",
        "",
        "## Overview",
        "",
        description,
        "",
        "---",
        "",
    ]

    if spec.contracts:
        for contract in spec.contracts:
            lines += _requirement_from_contract(contract)
    else:
        for scenario in spec.scenarios:
            lines += _requirement_from_scenario(scenario)
    if not spec.contracts and not spec.scenarios:
        lines += [
            f"## Requirement: {spec.name}",
            "",
            f"The system SHALL provide {spec.name}.",
            "",
        ]

    lines += ["---", "", "## Scenarios", ""]
    for scenario in spec.scenarios:
        lines += [
            f"### Scenario: {_one_line(scenario.name)}",
            "",
            f"- **GIVEN** {_one_line(scenario.given)}",
            f"- **WHEN** {_one_line(scenario.when)}",
            f"- **THEN** {_one_line(scenario.then)}",
            "",
        ]

    lines += [
        "---",
        "",
        "## Non-Functional Requirements",
        "",
        "### Performance",
        "",
        "- Response time: [N]ms or less (SHOULD)",
        "",
        "### Security",
        "",
        "- [Security requirement] (SHALL)",
        "",
        "---",
        "",
        "## Constraints",
        "",
        f"- Source files: {', '.join(spec.metadata.source_files) or '(none)'}",
        f"- Extraction confidence: {spec.confidence.grade} ({spec.confidence.score}%)",
        "",
        "---",
        "",
        "## Glossary",
        "",
        "| Term | Definition |",
        "|------|------------|",
        "| [Term] | [Definition] |",
        "",
    ]

    if spec.related_specs:
        lines += ["---", "", "## Related Specs", ""]
        lines += [f"- [[{related}]]" for related in spec.related_specs]
        lines.append("")

    return "\n".join(lines)


def parse_front_matter(text: str) -> Result[FrontMatter]:
    """Parse the YAML block between the leading "---" fences into a FrontMatter."""
    if not text.startswith("---"):
        return Result.failure("No front-matter block", ErrorCode.PARSE_ERROR)
    parts = text.split("\n---", 1)
    if len(parts) < 2:
        return Result.failure("Unterminated front-matter block", ErrorCode.PARSE_ERROR)

    try:
        data = yaml.safe_load(parts[0][3:]) or {}
    except yaml.YAMLError as e:
        return Result.failure(f"Invalid front-matter YAML: {e}", ErrorCode.PARSE_ERROR)
    if not isinstance(data, dict):
        return Result.failure("Front-matter is not a mapping", ErrorCode.PARSE_ERROR)

    status = str(data.get("status") or "draft")
    if status not in TARGET_STATUSES:
        return Result.failure(f"Unknown status in front-matter: {status}", ErrorCode.PARSE_ERROR)

    created = data.get("created")
    if isinstance(created, (date, datetime)):
        created = created.isoformat()[:10]

    confidence = data.get("confidence")
    if confidence is not None:
        try:
            confidence = float(confidence)
        except (TypeError, ValueError):
            return Result.failure(f"Confidence is not a number: {confidence!r}", ErrorCode.PARSE_ERROR)

    def text_or_none(key: str) -> str | None:
        value = data.get(key)
        return None if value is None else str(value)

    return Result.success(
        FrontMatter(
            id=text_or_none("id"),
            title=text_or_none("title"),
            status=status,
            domain=text_or_none("domain"),
            created=None if created is None else str(created),
            extracted_from=text_or_none("extracted_from"),
            confidence=confidence,
            source_files=[str(f) for f in data.get("source_files") or []],
        )
    )


def get_finalized_specs(specs_path: Path, project_root: Path | None = None) -> Result[list[FinalizedEntry]]:
    """List specs in the canonical store: <domain>/<name>/spec.md or legacy <domain>/spec.md."""
    specs_path = Path(specs_path)
    if not specs_path.is_dir():
        return Result.success([])

    base = project_root or specs_path
    entries: list[FinalizedEntry] = []
    try:
        for domain_dir in sorted(p for p in specs_path.iterdir() if p.is_dir()):
            candidates = [domain_dir / SPEC_FILE]
            candidates += sorted(p / SPEC_FILE for p in domain_dir.iterdir() if p.is_dir())
            for spec_file in candidates:
                if not spec_file.is_file():
                    continue
                parsed = parse_front_matter(spec_file.read_text(encoding="utf-8"))
                if parsed.ok:
                    front = parsed.value
                else:
                    logger.warning(f"{spec_file}: {parsed.error}; falling back to directory names")
                    front = FrontMatter()
                name = spec_file.parent.name
                domain = front.domain or domain_dir.name
                entries.append(
                    FinalizedEntry(
                        id=f"{domain}/{front.id or name}",
                        domain=domain,
                        spec_path=os.path.relpath(spec_file, base),
                        front_matter=front,
                    )
                )
    except OSError as e:
        return Result.failure(f"Failed to list finalized specs: {e}", ErrorCode.IO_ERROR)

    return Result.success(entries)


class Finalizer:
    def __init__(
        self,
        project_root: Path,
        specs_path: Path,
        store: DraftStore,
        meta: MetaStore | None = None,
        linker: DomainLinker | None = None,
    ) -> None:
        self._project_root = Path(project_root)
        self._specs_path = Path(specs_path)
        self._store = store
        self._meta = meta
        self._linker = linker

    def finalize_spec(self, spec: ExtractedSpec, link: bool = False) -> Result[FinalizedSpec]:
        """Write one spec into the canonical store. Re-finalizing overwrites."""
        domain = spec.domain or DEFAULT_DOMAIN
        name = feature_id(spec.id)
        spec_file = self._specs_path / domain / name / SPEC_FILE

        try:
            spec_file.parent.mkdir(parents=True, exist_ok=True)
            spec_file.write_text(render_canonical_spec(spec), encoding="utf-8")
        except OSError as e:
            logger.error(f"Failed to finalize {spec.id}: {e}")
            return Result.failure(f"Failed to finalize {spec.id}: {e}", ErrorCode.IO_ERROR)

        finalized = FinalizedSpec(
            id=f"{domain}/{name}",
            domain=domain,
            spec_path=os.path.relpath(spec_file, self._project_root),
            original=spec,
            finalized_at=datetime.now(),
        )
        if link:
            finalized.link_error = self._link(domain, finalized.id)
        return Result.success(finalized)

    def finalize_all_approved(self, link: bool = False) -> Result[FinalizeResult]:
        approved = self._approved()
        if not approved.ok:
            return approved  # type: ignore[return-value]
        return self._finalize_many(approved.value, link)

    def finalize_domain(self, domain: str, link: bool = False) -> Result[FinalizeResult]:
        approved = self._approved()
        if not approved.ok:
            return approved  # type: ignore[return-value]
        wanted = slugify(domain)
        return self._finalize_many([s for s in approved.value if slugify(s.domain) == wanted], link)

    def finalize_by_id(self, spec_id: str, link: bool = False) -> Result[FinalizedSpec]:
        approved = self._approved()
        if not approved.ok:
            return approved  # type: ignore[return-value]
        spec = next((s for s in approved.value if s.id == spec_id), None)
        if spec is None:
            return Result.failure(f"Approved spec not found: {spec_id}", ErrorCode.NOT_FOUND)

        result = self.finalize_spec(spec, link)
        if result.ok:
            self._remove_draft(spec.id)
            self._bump_finalized_count(1)
        return result

    def _approved(self) -> Result[list[ExtractedSpec]]:
        return ReviewWorkflow(self._store).approved_specs()

    def _finalize_many(self, specs: list[ExtractedSpec], link: bool) -> Result[FinalizeResult]:
        result = FinalizeResult()
        for spec in specs:
            finalized = self.finalize_spec(spec, link)
            if not finalized.ok:
                result.errors.append({"spec_id": spec.id, "error": finalized.error})
                continue
            result.finalized.append(finalized.value)
            if finalized.value.link_error:
                result.errors.append({"spec_id": spec.id, "error": finalized.value.link_error})
            removed = self._remove_draft(spec.id)
            if removed:
                result.errors.append({"spec_id": spec.id, "error": removed})

        self._bump_finalized_count(len(result.finalized))
        return Result.success(result)

    def _remove_draft(self, spec_id: str) -> str | None:
        deleted = self._store.delete(spec_id)
        if deleted.ok or deleted.code == ErrorCode.NOT_FOUND:
            return None
        logger.warning(deleted.error)
        return deleted.error

    def _bump_finalized_count(self, count: int) -> None:
        if self._meta is None or count == 0:
            return
        loaded = self._meta.load()
        if not loaded.ok:
            logger.warning(f"Finalized count not recorded: {loaded.error}")
            return
        current = loaded.value.extraction_status.finalized_count
        updated = self._meta.update_extraction_status(finalized_count=current + count)
        if not updated.ok:
            logger.warning(f"Finalized count not recorded: {updated.error}")

    def _link(self, domain: str, spec_id: str) -> str | None:
        """Register the spec under its domain, creating the domain if needed."""
        if self._linker is None:
            return "No domain registry configured"
        listed = self._linker.list_domains()
        if not listed.ok:
            return listed.error
        if domain not in {d.id for d in listed.value}:
            created = self._linker.create_domain(domain, f"Created while finalizing {spec_id}")
            if not created.ok:
                return created.error
        linked = self._linker.link_spec(domain, spec_id)
        return None if linked.ok else linked.error

"""Draft spec generation from a group of symbols.

Everything is inferred from names, signatures and doc comments:
- name: first class, else the longest function name, split into words
- description: first documented sentence, else a summary of the symbol kinds
- scenarios: Given/When/Then triples keyed off verb prefixes (get, create, ...)
- contracts: parameter list and return type parsed from each signature
- related specs: known domain names mentioned in the documentation
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from specmine.extraction.models import (
    ConfidenceResult,
    ExtractedContract,
    ExtractedScenario,
    ExtractedSpec,
    ExtractedSpecMeta,
    SymbolInfo,
    SymbolKind,
)

SPEC_FORMAT_VERSION = "1.0.0"
MIN_DESCRIPTION_LENGTH = 10

CALLABLE_KINDS = (SymbolKind.FUNCTION, SymbolKind.METHOD)

SLUG_UNSAFE = re.compile(r"[^a-z0-9-]")
CAMEL_BOUNDARY = re.compile(r"([a-z])([A-Z])")
ACRONYM_BOUNDARY = re.compile(r"([A-Z])([A-Z][a-z])")
SENTENCE_END = re.compile(r"[.!?]")
PARAMETER_LIST = re.compile(r"\((.*?)\)")
TRAILING_TYPE = re.compile(r":\s*([^=]+)$")


def slugify(value: str) -> str:
    return SLUG_UNSAFE.sub("-", value.lower())


def generate_spec_id(domain: str, name: str) -> str:
    return f"{slugify(domain)}/{slugify(name)}"


def format_spec_name(name: str) -> str:
    """Split camelCase/PascalCase into words: "getUserProfile" -> "get User Profile"."""
    spaced = CAMEL_BOUNDARY.sub(r"\1 \2", name)
    spaced = ACRONYM_BOUNDARY.sub(r"\1 \2", spaced)
    return spaced.strip()


def _words(name: str) -> str:
    """Human words for scenario text: strips leading underscores, splits case and snake."""
    text = format_spec_name(name.lstrip("_")).replace("_", " ")
    return " ".join(text.split())


def infer_spec_name(symbols: list[SymbolInfo]) -> str:
    if not symbols:
        return "unknown"

    for s in symbols:
        if s.kind == SymbolKind.CLASS:
            return format_spec_name(s.name)

    functions = [s for s in symbols if s.kind in CALLABLE_KINDS]
    if functions:
        longest = functions[0]
        for f in functions[1:]:
            if len(f.name) > len(longest.name):
                longest = f
        return format_spec_name(longest.name)

    return format_spec_name(symbols[0].name)


def infer_description(symbols: list[SymbolInfo]) -> str:
    for s in symbols:
        if s.documentation:
            first_sentence = SENTENCE_END.split(s.documentation, maxsplit=1)[0].strip()
            if len(first_sentence) >= MIN_DESCRIPTION_LENGTH:
                return " ".join(first_sentence.split())

    kinds: list[str] = []
    for s in symbols:
        if s.kind.label not in kinds:
            kinds.append(s.kind.label)
    kind_list = ", ".join(kinds[:3]) or "symbol"
    noun = "symbol" if len(symbols) == 1 else "symbols"
    return f"Module containing {len(symbols)} {noun} ({kind_list})"


@dataclass
class _VerbPattern:
    pattern: re.Pattern[str]
    build: Callable[[str, str], ExtractedScenario]  # (subject, callable name)


def _scenario(name: str, given: str, when: str, then: str) -> ExtractedScenario:
    return ExtractedScenario(name=name, given=given, when=when, then=then, inferred=True)


VERB_PATTERNS = [
    _VerbPattern(
        re.compile(r"^get_?(.+)$", re.IGNORECASE),
        lambda subject, fn: _scenario(
            f"Retrieve {subject}",
            f"{subject} exists",
            f"{fn} is called",
            f"the {subject} data is returned",
        ),
    ),
    _VerbPattern(
        re.compile(r"^create_?(.+)$", re.IGNORECASE),
        lambda subject, fn: _scenario(
            f"Create {subject}",
            f"valid {subject} data is provided",
            f"{fn} is called",
            f"a new {subject} is created",
        ),
    ),
    _VerbPattern(
        re.compile(r"^update_?(.+)$", re.IGNORECASE),
        lambda subject, fn: _scenario(
            f"Update {subject}",
            f"an existing {subject} is present",
            f"{fn} is called",
            f"the {subject} is updated",
        ),
    ),
    _VerbPattern(
        re.compile(r"^delete_?(.+)$", re.IGNORECASE),
        lambda subject, fn: _scenario(
            f"Delete {subject}",
            f"{subject} exists",
            f"{fn} is called",
            f"the {subject} is deleted",
        ),
    ),
    _VerbPattern(
        re.compile(r"^find_?(.+)$", re.IGNORECASE),
        lambda subject, fn: _scenario(
            f"Search {subject}",
            "search criteria are provided",
            f"{fn} is called",
            f"the {subject} matching the criteria is returned",
        ),
    ),
    _VerbPattern(
        re.compile(r"^validate_?(.+)$", re.IGNORECASE),
        lambda subject, fn: _scenario(
            f"Validate {subject}",
            f"{subject} data is provided",
            f"{fn} is called",
            "the validation result is returned",
        ),
    ),
    _VerbPattern(
        re.compile(r"^(?:is|has|can)_?(.+)$", re.IGNORECASE),
        lambda subject, fn: _scenario(
            f"Check {subject}",
            "a target is provided",
            f"{fn} is called",
            "a boolean result is returned",
        ),
    ),
]


def default_scenario() -> ExtractedScenario:
    return _scenario(
        "Basic behavior",
        "the system is initialized",
        "the user invokes the feature",
        "the expected result is returned",
    )


def scenario_from_function(symbol: SymbolInfo) -> ExtractedScenario:
    name = symbol.name
    bare = name.lstrip("_")
    for verb in VERB_PATTERNS:
        match = verb.pattern.match(bare)
        if match:
            return verb.build(_words(match.group(1)), name)

    return _scenario(
        f"Execute {_words(name)}",
        "the required preconditions are met",
        f"{name} is called",
        "the expected result is returned",
    )


def infer_scenarios(symbols: list[SymbolInfo]) -> list[ExtractedScenario]:
    scenarios = [scenario_from_function(s) for s in symbols if s.kind in CALLABLE_KINDS]
    if not scenarios:
        scenarios.append(default_scenario())
    return scenarios


def return_type(signature: str) -> str | None:
    """Return type written after the parameter list with ":" or "->"."""
    depth = 0
    for i, ch in enumerate(signature):
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                tail = signature[i + 1:].strip()
                for separator in ("->", ":"):
                    if tail.startswith(separator):
                        return tail[len(separator):].strip() or None
                return None

    # No parameter list, e.g. a property typed as "name: string"
    match = TRAILING_TYPE.search(signature)
    return match.group(1).strip() if match else None


def infer_contracts(symbols: list[SymbolInfo]) -> list[ExtractedContract]:
    contracts: list[ExtractedContract] = []
    for s in symbols:
        if not s.signature:
            continue

        params = PARAMETER_LIST.search(s.signature)
        if params and params.group(1).strip():
            contracts.append(
                ExtractedContract(
                    type="input",
                    description=f"Input parameters of {s.name}",
                    signature=params.group(1).strip(),
                )
            )

        returns = return_type(s.signature)
        if returns:
            contracts.append(
                ExtractedContract(
                    type="output",
                    description=f"Return type of {s.name}",
                    signature=returns,
                )
            )
    return contracts


def infer_related_specs(symbols: list[SymbolInfo], all_domains: list[str]) -> list[str]:
    related: list[str] = []
    for s in symbols:
        if not s.documentation:
            continue
        doc = s.documentation.lower()
        for domain in all_domains:
            if domain.lower() in doc and domain not in related:
                related.append(domain)
    return related


def generate_spec(
    domain: str,
    symbols: list[SymbolInfo],
    confidence: ConfidenceResult,
    all_domains: list[str] | None = None,
) -> ExtractedSpec:
    """Build a draft spec for one symbol group."""
    name = infer_spec_name(symbols)
    return ExtractedSpec(
        id=generate_spec_id(domain, name),
        name=name,
        domain=domain,
        description=infer_description(symbols),
        source_symbols=list(symbols),
        confidence=confidence,
        scenarios=infer_scenarios(symbols),
        contracts=infer_contracts(symbols),
        related_specs=infer_related_specs(symbols, all_domains or []),
        metadata=ExtractedSpecMeta(
            extracted_at=datetime.now(),
            source_files=sorted({s.location.path for s in symbols}),
            symbol_count=len(symbols),
            version=SPEC_FORMAT_VERSION,
            status="draft",
        ),
    )


def format_spec_markdown(spec: ExtractedSpec) -> str:
    """Human-readable rendering of a draft, stored next to its JSON twin."""
    lines = [
        f"# {spec.name}",
        "",
        f"> Domain: `{spec.domain}`",
        f"> Confidence: {spec.confidence.grade} ({spec.confidence.score}%)",
        f"> Status: {spec.metadata.status}",
        "",
        "## Description",
        "",
        spec.description,
        "",
    ]

    if spec.scenarios:
        lines += ["## Scenarios", ""]
        for scenario in spec.scenarios:
            marker = " *(inferred)*" if scenario.inferred else ""
            lines += [
                f"### {scenario.name}{marker}",
                "",
                f"**Given** {scenario.given}",
                f"**When** {scenario.when}",
                f"**Then** {scenario.then}",
                "",
            ]

    if spec.contracts:
        lines += ["## Contracts", ""]
        for contract in spec.contracts:
            lines += [f"### {contract.type.upper()}", "", contract.description]
            if contract.signature:
                lines += ["", "```", contract.signature, "```"]
            lines.append("")

    if spec.related_specs:
        lines += ["## Related Specs", ""]
        lines += [f"- {related}" for related in spec.related_specs]
        lines.append("")

    lines += [
        "---",
        "",
        "## Metadata",
        "",
        f"- Extracted at: {spec.metadata.extracted_at.isoformat()}",
        f"- Source files: {', '.join(spec.metadata.source_files)}",
        f"- Symbol count: {spec.metadata.symbol_count}",
        f"- Version: {spec.metadata.version}",
        "",
    ]

    if spec.confidence.suggestions:
        lines += ["### Suggestions", ""]
        lines += [f"- {s}" for s in spec.confidence.suggestions]
        lines.append("")

    return "\n".join(lines)

"""Heuristic confidence scoring for extracted symbols.

Five independent factors, each 0-100:
- documentation: presence, length and tags of the doc comment
- naming: length, casing convention, verb prefix
- structure: naming consistency and kind variety within the symbol's file
- test_coverage: whether a matching test file appears among known paths
- typing: how much type information the signature carries

The weighted score maps to a letter grade. Everything here is a pure function.
"""

from __future__ import annotations

import re
from pathlib import PurePosixPath

from specmine.extraction.models import ConfidenceFactors, ConfidenceResult, SymbolInfo

WEIGHTS = ConfidenceFactors(
    documentation=0.25,
    naming=0.2,
    structure=0.15,
    test_coverage=0.2,
    typing=0.2,
)

VERB_PREFIXES = (
    "get", "set", "create", "update", "delete", "find", "is", "has", "can", "should",
    "validate", "process", "handle", "parse", "format", "build", "init", "load", "save",
)

GRADE_BANDS = [(90, "A"), (80, "B"), (70, "C"), (60, "D")]

CAMEL_CASE = re.compile(r"^[a-z][a-zA-Z0-9]*$")
PASCAL_CASE = re.compile(r"^[A-Z][a-zA-Z0-9]*$")
SNAKE_CASE = re.compile(r"^[a-z][a-z0-9_]*$")
SCREAMING_SNAKE_CASE = re.compile(r"^[A-Z][A-Z0-9_]*$")
ACRONYM = re.compile(r"^[A-Z]{2,}$")
ANY_TYPE = re.compile(r"\bany\b", re.IGNORECASE)

NO_SYMBOLS_SUGGESTION = "No symbols to analyze"


def _clamp(score: float) -> float:
    return max(0, min(score, 100))


def evaluate_documentation(symbol: SymbolInfo) -> float:
    doc = symbol.documentation
    if not doc:
        return 0

    score = 30
    if len(doc) > 50:
        score += 20
    if len(doc) > 100:
        score += 10
    if "@param" in doc or ":param" in doc:
        score += 15
    if "@returns" in doc or ":returns" in doc:
        score += 10
    if "@example" in doc or "Example" in doc:
        score += 15
    return min(score, 100)


def evaluate_naming(symbol: SymbolInfo) -> float:
    name = symbol.name
    score = 50

    if 3 <= len(name) <= 30:
        score += 10
    if len(name) < 3:
        score -= 20
    if len(name) > 50:
        score -= 10

    if CAMEL_CASE.match(name) or PASCAL_CASE.match(name) or SNAKE_CASE.match(name):
        score += 15

    if name.lower().startswith(VERB_PREFIXES):
        score += 15

    if len(name) == 1:
        score -= 30
    if name[:1].isdigit():
        score -= 20
    if ACRONYM.match(name):
        score -= 10

    return _clamp(score)


def naming_pattern(name: str) -> str:
    if CAMEL_CASE.match(name):
        return "camelCase"
    if PASCAL_CASE.match(name):
        return "PascalCase"
    if SNAKE_CASE.match(name):
        return "snake_case"
    if SCREAMING_SNAKE_CASE.match(name):
        return "SCREAMING_SNAKE_CASE"
    return "mixed"


def evaluate_structure(symbol: SymbolInfo, all_symbols: list[SymbolInfo]) -> float:
    """Score consistency with the other symbols declared in the same file."""
    score = 50.0
    siblings = [s for s in all_symbols if s.location.path == symbol.location.path]
    if not siblings:
        return score

    pattern = naming_pattern(symbol.name)
    matching = sum(1 for s in siblings if naming_pattern(s.name) == pattern)
    score += matching / len(siblings) * 30

    kinds = {s.kind for s in siblings}
    if len(kinds) <= 3:
        score += 10
    if len(kinds) > 5:
        score -= 10

    return _clamp(score)


def candidate_test_paths(path: str) -> list[str]:
    """Candidate test-file paths for a source file."""
    pure = PurePosixPath(path)
    patterns = []
    if pure.suffix:
        stem = path[: -len(pure.suffix)]
        patterns.append(f"{stem}.test{pure.suffix}")
        patterns.append(f"{stem}.spec{pure.suffix}")
    patterns.append(f"tests/test_{pure.name}")
    patterns.append(path.replace("src/", "tests/", 1))
    patterns.append(path.replace("src/", "__tests__/", 1))
    # A path with no "src/" segment maps onto itself, which proves nothing
    return [p for p in patterns if p != path]


def estimate_test_coverage(
    symbol: SymbolInfo,
    all_symbols: list[SymbolInfo],
    known_paths: list[str] | None = None,
) -> float:
    if known_paths is None:
        known_paths = [s.location.path for s in all_symbols]

    patterns = candidate_test_paths(symbol.location.path)
    if any(p in known for known in known_paths for p in patterns):
        return 60

    if any("test" in s.name.lower() or "spec" in s.name.lower() for s in all_symbols):
        return 30

    return 0


def evaluate_typing(symbol: SymbolInfo) -> float:
    score = 40
    sig = symbol.signature
    if sig:
        score += 20
        if ":" in sig or "->" in sig:
            score += 15
        if ": " in sig and "(" in sig:
            score += 15
        if ANY_TYPE.search(sig):
            score -= 20
        if "unknown" in sig:
            score += 5
        if "<" in sig and ">" in sig:
            score += 10
    return _clamp(score)


def calculate_grade(score: float) -> str:
    for threshold, grade in GRADE_BANDS:
        if score >= threshold:
            return grade
    return "F"


def generate_suggestions(factors: ConfidenceFactors) -> list[str]:
    suggestions = []
    if factors.documentation < 50:
        suggestions.append("Add docstrings or doc comments to improve documentation")
    if factors.naming < 50:
        suggestions.append("Apply a clear naming convention (verb + noun)")
    if factors.structure < 50:
        suggestions.append("Tidy up the symbol structure within each file")
    if factors.test_coverage < 30:
        suggestions.append("Add test files")
    if factors.typing < 50:
        suggestions.append("Declare type signatures explicitly")
    return suggestions


def _weighted(factors: ConfidenceFactors) -> float:
    return (
        factors.documentation * WEIGHTS.documentation
        + factors.naming * WEIGHTS.naming
        + factors.structure * WEIGHTS.structure
        + factors.test_coverage * WEIGHTS.test_coverage
        + factors.typing * WEIGHTS.typing
    )


def calculate_confidence(
    symbol: SymbolInfo,
    all_symbols: list[SymbolInfo],
    known_paths: list[str] | None = None,
) -> ConfidenceResult:
    factors = ConfidenceFactors(
        documentation=evaluate_documentation(symbol),
        naming=evaluate_naming(symbol),
        structure=evaluate_structure(symbol, all_symbols),
        test_coverage=estimate_test_coverage(symbol, all_symbols, known_paths),
        typing=evaluate_typing(symbol),
    )
    score = round(_weighted(factors))
    return ConfidenceResult(
        score=score,
        grade=calculate_grade(score),
        factors=factors,
        suggestions=generate_suggestions(factors),
    )


def empty_confidence() -> ConfidenceResult:
    return ConfidenceResult(
        score=0,
        grade="F",
        factors=ConfidenceFactors(),
        suggestions=[NO_SYMBOLS_SUGGESTION],
    )


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0


def _mean_factors(results: list[ConfidenceResult]) -> ConfidenceFactors:
    return ConfidenceFactors(
        documentation=_mean([r.factors.documentation for r in results]),
        naming=_mean([r.factors.naming for r in results]),
        structure=_mean([r.factors.structure for r in results]),
        test_coverage=_mean([r.factors.test_coverage for r in results]),
        typing=_mean([r.factors.typing for r in results]),
    )


def calculate_average_confidence(
    symbols: list[SymbolInfo],
    all_symbols: list[SymbolInfo],
    known_paths: list[str] | None = None,
) -> ConfidenceResult:
    """Confidence of one symbol group: mean factors, grade of the mean score."""
    if not symbols:
        return empty_confidence()

    results = [calculate_confidence(s, all_symbols, known_paths) for s in symbols]
    factors = _mean_factors(results)
    mean_score = _mean([r.score for r in results])
    return ConfidenceResult(
        score=round(mean_score),
        grade=calculate_grade(mean_score),
        factors=factors,
        suggestions=generate_suggestions(factors),
    )


def strictest_common_grade(grades: list[str]) -> str:
    """A only if all are A, B if all are A/B, C if all are A/B/C, F if any F, else D."""
    if not grades:
        return "F"
    present = set(grades)
    if present <= {"A"}:
        return "A"
    if present <= {"A", "B"}:
        return "B"
    if present <= {"A", "B", "C"}:
        return "C"
    if "F" in present:
        return "F"
    return "D"


def aggregate_confidence(results: list[ConfidenceResult]) -> ConfidenceResult:
    """Combine many group results into one batch-level confidence."""
    if not results:
        return empty_confidence()

    suggestions: list[str] = []
    for r in results:
        for s in r.suggestions:
            if s not in suggestions:
                suggestions.append(s)

    return ConfidenceResult(
        score=round(_mean([r.score for r in results])),
        grade=strictest_common_grade([r.grade for r in results]),
        factors=_mean_factors(results),
        suggestions=suggestions,
    )

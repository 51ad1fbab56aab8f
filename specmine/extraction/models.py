"""Core data models for specmine."""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime
from enum import IntEnum


class SymbolKind(IntEnum):
    """Symbol kinds, numbered the way language servers report them."""

    FILE = 1
    MODULE = 2
    NAMESPACE = 3
    PACKAGE = 4
    CLASS = 5
    METHOD = 6
    PROPERTY = 7
    FIELD = 8
    CONSTRUCTOR = 9
    ENUM = 10
    INTERFACE = 11
    FUNCTION = 12
    VARIABLE = 13
    CONSTANT = 14
    STRING = 15
    NUMBER = 16
    BOOLEAN = 17
    ARRAY = 18
    OBJECT = 19
    KEY = 20
    NULL = 21
    ENUM_MEMBER = 22
    STRUCT = 23
    EVENT = 24
    OPERATOR = 25
    TYPE_PARAMETER = 26

    @property
    def label(self) -> str:
        return "".join(part.capitalize() for part in self.name.split("_"))


@dataclass
class FileLocation:
    path: str  # Relative to the scanned root, forward slashes
    start_line: int = 0
    end_line: int = 0


@dataclass
class SymbolInfo:
    name: str
    kind: SymbolKind
    name_path: str  # "UserService/getUser" for members, plain name otherwise
    location: FileLocation
    signature: str | None = None  # "(id: string): Promise<User>"
    documentation: str | None = None
    body: str | None = None

    @classmethod
    def from_dict(cls, data: dict) -> SymbolInfo:
        loc = data.get("location") or {}
        return cls(
            name=data["name"],
            kind=SymbolKind(int(data["kind"])),
            name_path=data.get("name_path") or data["name"],
            location=FileLocation(
                path=loc.get("path", ""),
                start_line=int(loc.get("start_line", 0)),
                end_line=int(loc.get("end_line", 0)),
            ),
            signature=data.get("signature"),
            documentation=data.get("documentation"),
            body=data.get("body"),
        )


@dataclass
class ScanOptions:
    depth: int = 5
    include: list[str] = field(default_factory=list)  # Glob-ish patterns, "*" = anything
    exclude: list[str] = field(default_factory=list)
    language: str | None = None  # Matched against extension or path substring


@dataclass
class SuggestedDomain:
    name: str
    path: str  # Source prefix, e.g. "src/auth"
    file_count: int
    symbol_count: int  # Estimated
    confidence: int  # 0-100
    description: str = ""
    files: list[str] = field(default_factory=list)


@dataclass
class ComplexityMetrics:
    estimated_loc: int
    avg_file_size: int
    dependency_count: int
    grade: str  # "low" | "medium" | "high" | "very-high"


@dataclass
class ScanSummary:
    file_count: int
    symbol_count: int
    symbols_by_kind: dict[str, int]  # SymbolKind label -> count
    language_distribution: dict[str, int]
    suggested_domains: list[SuggestedDomain]
    complexity: ComplexityMetrics


@dataclass(frozen=True)
class ScanResult:
    project_path: str
    scanned_at: datetime
    options: ScanOptions
    files: list[str]
    directories: list[str]
    symbols: list[SymbolInfo]
    summary: ScanSummary
    file_hashes: dict[str, str] = field(default_factory=dict)  # Only when hashing was requested

    def to_dict(self) -> dict:
        data = asdict(self)
        data["scanned_at"] = self.scanned_at.isoformat()
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, data: dict) -> ScanResult:
        summary = data["summary"]
        return cls(
            project_path=data["project_path"],
            scanned_at=datetime.fromisoformat(data["scanned_at"]),
            options=ScanOptions(**data.get("options", {})),
            files=list(data.get("files", [])),
            directories=list(data.get("directories", [])),
            symbols=[SymbolInfo.from_dict(s) for s in data.get("symbols", [])],
            summary=ScanSummary(
                file_count=summary["file_count"],
                symbol_count=summary["symbol_count"],
                symbols_by_kind=dict(summary.get("symbols_by_kind", {})),
                language_distribution=dict(summary.get("language_distribution", {})),
                suggested_domains=[
                    SuggestedDomain(**d) for d in summary.get("suggested_domains", [])
                ],
                complexity=ComplexityMetrics(**summary["complexity"]),
            ),
            file_hashes=dict(data.get("file_hashes", {})),
        )


@dataclass
class ConfidenceFactors:
    documentation: float = 0
    naming: float = 0
    structure: float = 0
    test_coverage: float = 0
    typing: float = 0


@dataclass
class ConfidenceResult:
    score: int  # 0-100
    grade: str  # "A" | "B" | "C" | "D" | "F"
    factors: ConfidenceFactors
    suggestions: list[str] = field(default_factory=list)


@dataclass
class ExtractedScenario:
    name: str
    given: str
    when: str
    then: str
    inferred: bool = True


@dataclass
class ExtractedContract:
    type: str  # "input" | "output" | "invariant" | "dependency"
    description: str
    signature: str | None = None


@dataclass
class ExtractedSpecMeta:
    extracted_at: datetime
    source_files: list[str] = field(default_factory=list)
    symbol_count: int = 0
    version: str = "1.0.0"
    status: str = "draft"  # "draft" | "pending_review" | "approved" | "rejected"


@dataclass
class ExtractedSpec:
    id: str  # "<domain>/<name>", slugified
    name: str
    domain: str
    description: str
    source_symbols: list[SymbolInfo]
    confidence: ConfidenceResult
    scenarios: list[ExtractedScenario] = field(default_factory=list)
    contracts: list[ExtractedContract] = field(default_factory=list)
    related_specs: list[str] = field(default_factory=list)
    metadata: ExtractedSpecMeta = field(default_factory=lambda: ExtractedSpecMeta(datetime.now()))

    def to_dict(self) -> dict:
        data = asdict(self)
        data["metadata"]["extracted_at"] = self.metadata.extracted_at.isoformat()
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, data: dict) -> ExtractedSpec:
        conf = data["confidence"]
        meta = data["metadata"]
        return cls(
            id=data["id"],
            name=data["name"],
            domain=data["domain"],
            description=data.get("description", ""),
            source_symbols=[SymbolInfo.from_dict(s) for s in data.get("source_symbols", [])],
            confidence=ConfidenceResult(
                score=int(conf["score"]),
                grade=conf["grade"],
                factors=ConfidenceFactors(**conf.get("factors", {})),
                suggestions=list(conf.get("suggestions", [])),
            ),
            scenarios=[ExtractedScenario(**s) for s in data.get("scenarios", [])],
            contracts=[ExtractedContract(**c) for c in data.get("contracts", [])],
            related_specs=list(data.get("related_specs", [])),
            metadata=ExtractedSpecMeta(
                extracted_at=datetime.fromisoformat(meta["extracted_at"]),
                source_files=list(meta.get("source_files", [])),
                symbol_count=int(meta.get("symbol_count", 0)),
                version=meta.get("version", "1.0.0"),
                status=meta.get("status", "draft"),
            ),
        )

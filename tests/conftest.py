"""Shared test fixtures for specmine."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from specmine.extraction.confidence import calculate_average_confidence
from specmine.extraction.generator import generate_spec
from specmine.extraction.models import (
    ExtractedSpec,
    FileLocation,
    ScanOptions,
    ScanResult,
    ScanSummary,
    SymbolInfo,
    SymbolKind,
)
from specmine.scanning.languages import language_distribution
from specmine.scanning.scanner import calculate_complexity, infer_domains
from specmine.storage.drafts import DraftStore
from specmine.storage.meta import MetaStore


def _make_symbol(
    name: str,
    kind: SymbolKind = SymbolKind.FUNCTION,
    path: str = "src/auth/user_service.ts",
    name_path: str | None = None,
    signature: str | None = None,
    documentation: str | None = None,
    start_line: int = 1,
    end_line: int = 10,
) -> SymbolInfo:
    return SymbolInfo(
        name=name,
        kind=kind,
        name_path=name_path or name,
        location=FileLocation(path=path, start_line=start_line, end_line=end_line),
        signature=signature,
        documentation=documentation,
    )


@pytest.fixture
def make_symbol():
    return _make_symbol


@pytest.fixture
def project_tree(tmp_path: Path) -> Path:
    """A small TypeScript/Python project with two domains and some noise."""
    root = tmp_path / "project"
    files = {
        "src/auth/user_service.ts": "export class UserService {}\n",
        "src/auth/session.ts": "export function createSession() {}\n",
        "src/auth/token.ts": "export function validateToken() {}\n",
        "src/billing/invoice.ts": "export function getInvoice() {}\n",
        "src/utils/strings.ts": "export const pad = 1;\n",
        "tests/auth/user_service.ts": "test('x', () => {});\n",
        "tools/report.py": 'def build_report():\n    """Build a report."""\n',
        "README.md": "# Demo\n",
        "node_modules/left-pad/index.js": "module.exports = 1;\n",
        "dist/bundle.js": "var x;\n",
        ".git/config": "[core]\n",
    }
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


@pytest.fixture
def sample_symbols() -> list[SymbolInfo]:
    path = "src/auth/user_service.ts"
    return [
        _make_symbol(
            "UserService",
            SymbolKind.CLASS,
            path,
            documentation="Manages user accounts and profiles for the auth domain.",
            start_line=1,
            end_line=40,
        ),
        _make_symbol(
            "getUser",
            SymbolKind.METHOD,
            path,
            name_path="UserService/getUser",
            signature="(id: string): Promise<User>",
            documentation="Fetch a single user by id.",
            start_line=5,
            end_line=12,
        ),
        _make_symbol(
            "createUser",
            SymbolKind.METHOD,
            path,
            name_path="UserService/createUser",
            signature="(data: CreateUserInput): Promise<User>",
            start_line=14,
            end_line=25,
        ),
        _make_symbol(
            "validateToken",
            SymbolKind.FUNCTION,
            "src/auth/token.ts",
            signature="(token: string): boolean",
            documentation="Check that a token is well formed and not expired.",
        ),
        _make_symbol(
            "getInvoice",
            SymbolKind.FUNCTION,
            "src/billing/invoice.ts",
            signature="(id: string): Invoice",
        ),
    ]


def _build_scan(files: list[str], symbols: list[SymbolInfo]) -> ScanResult:
    domains = infer_domains(files)
    return ScanResult(
        project_path="/tmp/project",
        scanned_at=datetime(2024, 6, 15, 10, 0, 0),
        options=ScanOptions(),
        files=files,
        directories=sorted({f.rsplit("/", 1)[0] for f in files if "/" in f}),
        symbols=symbols,
        summary=ScanSummary(
            file_count=len(files),
            symbol_count=len(symbols),
            symbols_by_kind={},
            language_distribution=language_distribution(files),
            suggested_domains=domains,
            complexity=calculate_complexity(files),
        ),
    )


@pytest.fixture
def build_scan():
    return _build_scan


@pytest.fixture
def sample_scan(sample_symbols: list[SymbolInfo]) -> ScanResult:
    files = [
        "src/auth/user_service.ts",
        "src/auth/token.ts",
        "src/billing/invoice.ts",
        "tests/auth/user_service.ts",
    ]
    return _build_scan(files, sample_symbols)


@pytest.fixture
def sample_spec(sample_symbols: list[SymbolInfo]) -> ExtractedSpec:
    group = sample_symbols[:3]
    confidence = calculate_average_confidence(group, sample_symbols)
    return generate_spec("auth", group, confidence, ["auth", "billing"])


@pytest.fixture
def sdd_path(tmp_path: Path) -> Path:
    path = tmp_path / ".sdd"
    path.mkdir()
    return path


@pytest.fixture
def draft_store(sdd_path: Path) -> DraftStore:
    return DraftStore(sdd_path / ".reverse-drafts")


@pytest.fixture
def meta_store(sdd_path: Path) -> MetaStore:
    return MetaStore(sdd_path / ".reverse-meta.json")


@pytest.fixture
def saved_spec(draft_store: DraftStore, sample_spec: ExtractedSpec) -> ExtractedSpec:
    draft_store.save(sample_spec).unwrap()
    return sample_spec

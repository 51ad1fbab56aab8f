"""Tests for specmine.finalize.domains."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from specmine.extraction.models import SuggestedDomain
from specmine.finalize.domains import DomainRegistry, create_suggested_domains
from specmine.result import ErrorCode, Result


@pytest.fixture
def registry(tmp_path):
    return DomainRegistry(tmp_path / ".sdd" / "domains.yml")


def _suggested(name: str, path: str = "", description: str = "") -> SuggestedDomain:
    return SuggestedDomain(
        name=name,
        path=path or f"src/{name}",
        file_count=3,
        symbol_count=30,
        confidence=60,
        description=description,
    )


class TestDomainRegistry:
    def test_empty_without_file(self, registry):
        assert registry.list_domains().unwrap() == []
        assert not registry.has_domain("auth")

    def test_create_and_list(self, registry):
        registry.create_domain("auth", "Authentication", "src/auth").unwrap()
        domains = registry.list_domains().unwrap()
        assert [(d.id, d.description, d.path, d.specs) for d in domains] == [
            ("auth", "Authentication", "src/auth", []),
        ]
        assert registry.path.exists()

    def test_create_existing(self, registry):
        registry.create_domain("auth").unwrap()
        assert registry.create_domain("auth").code == ErrorCode.INVALID_INPUT

    def test_link_spec_is_idempotent(self, registry):
        registry.create_domain("auth").unwrap()
        registry.link_spec("auth", "auth/user-service").unwrap()
        entry = registry.link_spec("auth", "auth/user-service").unwrap()
        assert entry.specs == ["auth/user-service"]

    def test_link_missing_domain(self, registry):
        assert registry.link_spec("ghost", "ghost/x").code == ErrorCode.NOT_FOUND

    def test_reads_hand_written_file(self, registry):
        registry.path.parent.mkdir(parents=True)
        registry.path.write_text("domains:\n  billing:\n    specs: [billing/invoice]\n  orders:\n")
        domains = {d.id: d for d in registry.list_domains().unwrap()}
        assert domains["billing"].specs == ["billing/invoice"]
        assert domains["orders"].description == ""

    def test_malformed_file(self, registry):
        registry.path.parent.mkdir(parents=True)
        registry.path.write_text("domains: [a, b]\n")
        assert registry.list_domains().code == ErrorCode.PARSE_ERROR
        assert registry.create_domain("x").code == ErrorCode.PARSE_ERROR

    @pytest.mark.parametrize("content", [
        "- auth\n- billing\n",
        "domains:\n  auth: Authentication\n",
    ])
    def test_wrong_shapes_are_parse_errors(self, registry, content):
        registry.path.parent.mkdir(parents=True)
        registry.path.write_text(content)
        assert registry.list_domains().code == ErrorCode.PARSE_ERROR
        assert registry.create_domain("x").code == ErrorCode.PARSE_ERROR
        assert registry.link_spec("auth", "auth/x").code == ErrorCode.PARSE_ERROR
        assert not registry.has_domain("auth")


class TestCreateSuggestedDomains:
    def test_creates_and_skips(self, registry):
        registry.create_domain("auth").unwrap()
        result = create_suggested_domains(
            registry, [_suggested("auth"), _suggested("billing"), _suggested("orders", description="Orders")]
        ).unwrap()
        assert result.created == ["billing", "orders"]
        assert result.skipped == ["auth"]
        assert result.errors == []

        domains = {d.id: d for d in registry.list_domains().unwrap()}
        assert domains["billing"].description == "Inferred from src/billing (3 files)"
        assert domains["billing"].path == "src/billing"
        assert domains["orders"].description == "Orders"

    def test_collects_create_errors(self):
        linker = MagicMock()
        linker.list_domains.return_value = Result.success([])
        linker.create_domain.return_value = Result.failure("disk full")
        result = create_suggested_domains(linker, [_suggested("auth")]).unwrap()
        assert result.created == []
        assert result.errors == [{"domain": "auth", "error": "disk full"}]

    def test_list_failure(self):
        linker = MagicMock()
        linker.list_domains.return_value = Result.failure("bad yaml", ErrorCode.PARSE_ERROR)
        assert create_suggested_domains(linker, []).code == ErrorCode.PARSE_ERROR

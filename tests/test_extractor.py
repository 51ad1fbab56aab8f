"""Tests for specmine.extraction.extractor."""

from __future__ import annotations

import json
from dataclasses import replace

from specmine.extraction.confidence import strictest_common_grade
from specmine.extraction.extractor import (
    ExtractOptions,
    domain_for_path,
    extract_specs,
    filter_symbols,
    group_by_domain,
    group_by_unit,
)
from specmine.extraction.models import SymbolKind
from specmine.result import ErrorCode
from specmine.review.workflow import ReviewWorkflow


class TestFilterSymbols:
    def test_depths(self, sample_symbols):
        assert len(filter_symbols(sample_symbols, ExtractOptions(depth="deep"))) == 5
        assert len(filter_symbols(sample_symbols, ExtractOptions(depth="medium"))) == 5
        shallow = filter_symbols(sample_symbols, ExtractOptions(depth="shallow"))
        assert [s.name for s in shallow] == ["UserService", "validateToken", "getInvoice"]

    def test_kind_filters(self, sample_symbols):
        options = ExtractOptions(include_kinds=[SymbolKind.METHOD, SymbolKind.FUNCTION],
                                 exclude_kinds=[SymbolKind.FUNCTION])
        assert [s.name for s in filter_symbols(sample_symbols, options)] == ["getUser", "createUser"]

    def test_medium_drops_variables(self, make_symbol):
        symbols = [make_symbol("count", SymbolKind.VARIABLE), make_symbol("run")]
        assert [s.name for s in filter_symbols(symbols, ExtractOptions(depth="medium"))] == ["run"]


class TestGrouping:
    def test_domain_for_path(self):
        assert domain_for_path("src/auth/token.ts", ["billing", "auth"]) == "auth"
        assert domain_for_path("src/orders/a.ts", []) == "orders"
        assert domain_for_path("lib/core/a.ts", []) == "lib"
        assert domain_for_path("main.ts", []) == "unknown"

    def test_group_by_domain(self, sample_symbols):
        groups = group_by_domain(sample_symbols, ["auth", "billing"])
        assert list(groups) == ["auth", "billing"]
        assert len(groups["auth"]) == 4

    def test_group_by_unit(self, sample_symbols):
        groups = group_by_unit(sample_symbols[:4])
        assert list(groups) == ["UserService", "functions/token"]
        assert [s.name for s in groups["UserService"]] == ["UserService", "getUser", "createUser"]
        assert [s.name for s in groups["functions/token"]] == ["validateToken"]


class TestExtractSpecs:
    def test_generates_one_spec_per_group(self, sample_scan):
        result = extract_specs(sample_scan).unwrap()
        assert [s.id for s in result.specs] == [
            "auth/user-service",
            "auth/validate-token",
            "billing/get-invoice",
        ]
        assert result.symbol_count == 5
        assert result.skipped_count == 0
        assert result.saved_path is None

    def test_phase_order(self, sample_scan):
        phases = []
        extract_specs(sample_scan, on_progress=lambda p: phases.append(p.phase))
        assert phases[:3] == ["analyzing", "grouping", "generating"]
        assert phases[-1] == "saving"
        assert set(phases[2:-1]) == {"generating"}

    def test_invalid_depth(self, sample_scan):
        result = extract_specs(sample_scan, ExtractOptions(depth="bottomless"))
        assert not result.ok
        assert result.code == ErrorCode.INVALID_INPUT

    def test_min_confidence_skips_groups(self, sample_scan):
        result = extract_specs(sample_scan, ExtractOptions(min_confidence=101)).unwrap()
        assert result.specs == []
        assert result.skipped_count == 5
        assert result.overall_confidence.grade == "F"

    def test_domain_filter(self, sample_scan):
        result = extract_specs(sample_scan, ExtractOptions(domain="billing")).unwrap()
        assert [s.id for s in result.specs] == ["billing/get-invoice"]
        assert extract_specs(sample_scan, ExtractOptions(domain="nope")).unwrap().specs == []

    def test_shallow_depth_keeps_class_group(self, sample_scan):
        result = extract_specs(sample_scan, ExtractOptions(depth="shallow")).unwrap()
        service = result.specs[0]
        assert [s.name for s in service.source_symbols] == ["UserService"]
        assert result.symbol_count == 3

    def test_overall_grade_is_strictest(self, sample_scan):
        result = extract_specs(sample_scan).unwrap()
        grades = [s.confidence.grade for s in result.specs]
        assert result.overall_confidence.grade == strictest_common_grade(grades)

    def test_saves_to_store(self, sample_scan, draft_store):
        result = extract_specs(sample_scan, store=draft_store).unwrap()
        assert result.saved_path == str(draft_store.root)
        assert result.errors == []
        assert (draft_store.root / "auth" / "user-service.json").exists()
        assert (draft_store.root / "billing" / "get-invoice.md").exists()

    def test_colliding_ids_are_suffixed(self, build_scan, make_symbol, draft_store):
        scan = build_scan(
            ["src/auth/login.ts", "src/auth/helpers.ts"],
            [
                make_symbol("Login", SymbolKind.CLASS, "src/auth/login.ts"),
                make_symbol("login", SymbolKind.FUNCTION, "src/auth/helpers.ts"),
            ],
        )
        result = extract_specs(scan, store=draft_store).unwrap()
        assert [s.id for s in result.specs] == ["auth/login", "auth/login-2"]
        assert sorted(d.spec.id for d in draft_store.load_all().unwrap()) == ["auth/login", "auth/login-2"]

    def test_domain_filter_accepts_slug(self, build_scan, make_symbol):
        scan = build_scan(
            ["src/UserProfile/store.ts"],
            [make_symbol("saveProfile", path="src/UserProfile/store.ts")],
        )
        for name in ("UserProfile", "userprofile"):
            result = extract_specs(scan, ExtractOptions(domain=name)).unwrap()
            assert [s.id for s in result.specs] == ["userprofile/save-profile"]

    def test_reextract_warns_about_review_reset(self, sample_scan, draft_store, caplog):
        extract_specs(sample_scan, store=draft_store).unwrap()
        ReviewWorkflow(draft_store).approve("billing/get-invoice").unwrap()
        extract_specs(sample_scan, store=draft_store).unwrap()
        assert "Re-extracting billing/get-invoice resets its review state (was approved)" in caplog.text

    def test_refine_hook(self, sample_scan):
        result = extract_specs(
            sample_scan, refine=lambda spec: replace(spec, description="Refined.")
        ).unwrap()
        assert {s.description for s in result.specs} == {"Refined."}

    def test_to_json(self, sample_scan):
        data = json.loads(extract_specs(sample_scan).unwrap().to_json())
        assert len(data["specs"]) == 3
        assert "grade" in data["overall_confidence"]

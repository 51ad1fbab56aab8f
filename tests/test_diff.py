"""Tests for specmine.scanning.diff."""

from __future__ import annotations

import json
from dataclasses import replace

from specmine.extraction.models import FileLocation, SymbolKind
from specmine.scanning.diff import compare_scans, symbol_hash, symbol_key


class TestSymbolKeys:
    def test_key_and_hash(self, make_symbol):
        s = make_symbol("getUser", SymbolKind.METHOD, "src/a.ts", "Svc/getUser", "(id: string)", start_line=3, end_line=9)
        assert symbol_key(s) == "src/a.ts::Svc/getUser"
        assert symbol_hash(s) == "6|(id: string)|3-9"


class TestCompareScans:
    def test_identical_scans(self, sample_scan):
        diff = compare_scans(sample_scan, sample_scan)
        assert not diff.summary.has_changes
        assert diff.symbol_changes == []
        assert diff.domain_changes.unchanged == ["auth", "billing"]

    def test_file_added_and_removed(self, build_scan, sample_symbols):
        before = build_scan(["src/auth/a.ts", "src/auth/b.ts"], [])
        after = build_scan(["src/auth/b.ts", "src/auth/c.ts"], [])
        diff = compare_scans(before, after)
        assert diff.file_changes.added == ["src/auth/c.ts"]
        assert diff.file_changes.removed == ["src/auth/a.ts"]
        assert diff.summary.has_changes

    def test_symbol_changes(self, build_scan, sample_symbols, make_symbol):
        files = ["src/auth/user_service.ts", "src/auth/token.ts", "src/billing/invoice.ts"]
        before = build_scan(files, sample_symbols)

        changed = list(sample_symbols)
        # getUser grows, getInvoice disappears, a new function appears
        changed[1] = replace(changed[1], location=FileLocation("src/auth/user_service.ts", 5, 20))
        del changed[4]
        changed.append(make_symbol("revokeToken", path="src/auth/token.ts", signature="(t: string): void"))
        after = build_scan(files, changed)

        diff = compare_scans(before, after)
        assert [c.symbol.name for c in diff.changes_of("added")] == ["revokeToken"]
        assert [c.symbol.name for c in diff.changes_of("removed")] == ["getInvoice"]
        modified = diff.changes_of("modified")
        assert [c.symbol.name for c in modified] == ["getUser"]
        assert modified[0].previous.location.end_line == 12
        assert diff.file_changes.modified == ["src/auth/user_service.ts"]
        assert diff.summary.symbols_added == 1
        assert diff.summary.symbols_removed == 1
        assert diff.summary.symbols_modified == 1
        assert diff.summary.files_modified == 1

    def test_comment_only_edit_needs_hashes(self, build_scan):
        files = ["src/auth/a.ts"]
        before = build_scan(files, [])
        after = build_scan(files, [])
        assert compare_scans(before, after).file_changes.modified == []

        hashed_before = replace(before, file_hashes={"src/auth/a.ts": "aaa"})
        hashed_after = replace(after, file_hashes={"src/auth/a.ts": "bbb"})
        diff = compare_scans(hashed_before, hashed_after)
        assert diff.file_changes.modified == ["src/auth/a.ts"]
        assert diff.summary.has_changes

    def test_domain_changes(self, build_scan):
        before = build_scan(["src/auth/a.ts", "src/billing/b.ts"], [])
        after = build_scan(["src/auth/a.ts", "src/orders/c.ts"], [])
        diff = compare_scans(before, after)
        assert diff.domain_changes.added == ["orders"]
        assert diff.domain_changes.removed == ["billing"]
        assert diff.domain_changes.unchanged == ["auth"]

    def test_to_json(self, sample_scan):
        data = json.loads(compare_scans(sample_scan, sample_scan).to_json())
        assert data["summary"]["has_changes"] is False

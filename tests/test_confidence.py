"""Tests for specmine.extraction.confidence."""

from __future__ import annotations

import pytest

from specmine.extraction.confidence import (
    NO_SYMBOLS_SUGGESTION,
    aggregate_confidence,
    calculate_average_confidence,
    calculate_confidence,
    calculate_grade,
    candidate_test_paths,
    estimate_test_coverage,
    evaluate_documentation,
    evaluate_naming,
    evaluate_structure,
    evaluate_typing,
    naming_pattern,
    strictest_common_grade,
)
from specmine.extraction.models import ConfidenceFactors, ConfidenceResult, SymbolKind


def _result(grade: str, score: int = 75) -> ConfidenceResult:
    return ConfidenceResult(score=score, grade=grade, factors=ConfidenceFactors(), suggestions=[])


class TestDocumentation:
    def test_absent(self, make_symbol):
        assert evaluate_documentation(make_symbol("f")) == 0

    def test_short(self, make_symbol):
        assert evaluate_documentation(make_symbol("f", documentation="Does a thing.")) == 30

    def test_length_bonuses(self, make_symbol):
        assert evaluate_documentation(make_symbol("f", documentation="x" * 60)) == 50
        assert evaluate_documentation(make_symbol("f", documentation="x" * 120)) == 60

    def test_tags(self, make_symbol):
        doc = "Load it.\n:param path: where\n:returns: data\nExample: load('a')"
        # 30 base + 20 length + 15 param + 10 returns + 15 example
        assert evaluate_documentation(make_symbol("f", documentation=doc)) == 90

    def test_capped(self, make_symbol):
        doc = "x" * 200 + " @param a @returns b @example c"
        assert evaluate_documentation(make_symbol("f", documentation=doc)) == 100


class TestNaming:
    def test_verb_camel_case(self, make_symbol):
        # 50 + 10 length + 15 convention + 15 verb
        assert evaluate_naming(make_symbol("getUser")) == 90

    def test_snake_case_verb(self, make_symbol):
        assert evaluate_naming(make_symbol("load_config")) == 90

    def test_single_character(self, make_symbol):
        # 50 - 20 short + 15 convention - 30 single char
        assert evaluate_naming(make_symbol("x")) == 15

    def test_leading_digit(self, make_symbol):
        # 50 + 10 length - 20 digit; no convention or verb
        assert evaluate_naming(make_symbol("3dModel")) == 40

    def test_acronym(self, make_symbol):
        # 50 + 10 length + 15 PascalCase - 10 acronym
        assert evaluate_naming(make_symbol("HTTP")) == 65

    def test_very_long_name(self, make_symbol):
        assert evaluate_naming(make_symbol("a" * 60)) == 55

    def test_patterns(self):
        assert naming_pattern("getUser") == "camelCase"
        assert naming_pattern("UserService") == "PascalCase"
        assert naming_pattern("load_config") == "snake_case"
        assert naming_pattern("MAX_SIZE") == "SCREAMING_SNAKE_CASE"
        assert naming_pattern("Weird-Name") == "mixed"


class TestStructure:
    def test_consistent_file(self, make_symbol):
        symbols = [make_symbol("getUser"), make_symbol("setUser"), make_symbol("User", SymbolKind.CLASS)]
        # 2 of 3 camelCase -> +20, two kinds -> +10
        assert evaluate_structure(symbols[0], symbols) == 80

    def test_ignores_other_files(self, make_symbol):
        me = make_symbol("getUser", path="a.ts")
        other = make_symbol("OTHER_THING", path="b.ts")
        assert evaluate_structure(me, [me, other]) == 90

    def test_many_kinds_penalized(self, make_symbol):
        kinds = [SymbolKind.CLASS, SymbolKind.FUNCTION, SymbolKind.METHOD,
                 SymbolKind.VARIABLE, SymbolKind.CONSTANT, SymbolKind.ENUM]
        symbols = [make_symbol(f"item{i}", k) for i, k in enumerate(kinds)]
        # all camelCase -> +30, six kinds -> -10
        assert evaluate_structure(symbols[0], symbols) == 70

    def test_no_siblings(self, make_symbol):
        assert evaluate_structure(make_symbol("a", path="x.ts"), []) == 50


class TestTestCoverage:
    def test_candidate_paths(self):
        paths = candidate_test_paths("src/auth/user.ts")
        assert "src/auth/user.test.ts" in paths
        assert "src/auth/user.spec.ts" in paths
        assert "tests/auth/user.ts" in paths
        assert "__tests__/auth/user.ts" in paths
        assert "tests/test_user.ts" in paths

    def test_candidate_paths_never_include_source(self):
        assert "lib/user.ts" not in candidate_test_paths("lib/user.ts")

    def test_matching_test_file(self, make_symbol):
        s = make_symbol("getUser", path="src/auth/user.ts")
        assert estimate_test_coverage(s, [s], ["src/auth/user.ts", "src/auth/user.test.ts"]) == 60

    def test_python_test_module(self, make_symbol):
        s = make_symbol("load", path="specmine/config.py")
        assert estimate_test_coverage(s, [s], ["specmine/config.py", "tests/test_config.py"]) == 60

    def test_source_file_alone_is_not_coverage(self, make_symbol):
        s = make_symbol("getUser", path="lib/user.ts")
        assert estimate_test_coverage(s, [s], ["lib/user.ts"]) == 0

    def test_test_named_symbol(self, make_symbol):
        s = make_symbol("getUser", path="lib/user.ts")
        helper = make_symbol("testGetUser", path="lib/other.ts")
        assert estimate_test_coverage(s, [s, helper], []) == 30


class TestTyping:
    def test_no_signature(self, make_symbol):
        assert evaluate_typing(make_symbol("f")) == 40

    def test_typed_generic(self, make_symbol):
        # 40 + 20 + 15 + 15 + 10
        assert evaluate_typing(make_symbol("f", signature="(id: string): Promise<User>")) == 100

    def test_untyped(self, make_symbol):
        assert evaluate_typing(make_symbol("f", signature="(a, b)")) == 60

    def test_any_penalized(self, make_symbol):
        assert evaluate_typing(make_symbol("f", signature="(a: any): any")) == 70

    def test_any_inside_word_not_penalized(self, make_symbol):
        assert evaluate_typing(make_symbol("f", signature="(c: Company): void")) == 90

    def test_unknown_bonus(self, make_symbol):
        assert evaluate_typing(make_symbol("f", signature="(a: unknown): void")) == 95


class TestGrades:
    @pytest.mark.parametrize(
        "score,grade",
        [(100, "A"), (90, "A"), (89, "B"), (80, "B"), (70, "C"), (60, "D"), (59, "F"), (0, "F")],
    )
    def test_bands(self, score, grade):
        assert calculate_grade(score) == grade

    @pytest.mark.parametrize(
        "grades,expected",
        [
            (["A", "A", "B"], "B"),
            (["A", "C", "F"], "F"),
            (["B", "B", "C"], "C"),
            (["A", "A"], "A"),
            (["A", "D"], "D"),
            (["D", "F"], "F"),
            ([], "F"),
        ],
    )
    def test_strictest_common_grade(self, grades, expected):
        assert strictest_common_grade(grades) == expected


class TestCalculateConfidence:
    def test_well_documented_symbol(self, make_symbol):
        s = make_symbol(
            "getUserProfile",
            path="src/users/profile.ts",
            signature="(id: string): Promise<User>",
            documentation="Fetch the profile of one user, including avatar and display settings for the UI.",
        )
        result = calculate_confidence(s, [s], ["src/users/profile.ts", "src/users/profile.test.ts"])
        # doc 50, naming 90, structure 90, coverage 60, typing 100
        assert result.factors == ConfidenceFactors(50, 90, 90, 60, 100)
        assert result.score == 76
        assert result.grade == "C"
        assert result.suggestions == []

    def test_poor_symbol_gets_suggestions(self, make_symbol):
        s = make_symbol("x", path="lib/x.ts")
        result = calculate_confidence(s, [s], [])
        assert result.grade == "F"
        assert any("docstrings" in m for m in result.suggestions)
        assert any("test" in m.lower() for m in result.suggestions)

    def test_scores_bounded(self, sample_symbols):
        for s in sample_symbols:
            result = calculate_confidence(s, sample_symbols)
            assert 0 <= result.score <= 100
            for value in vars(result.factors).values():
                assert 0 <= value <= 100


class TestAverageAndAggregate:
    def test_average_of_empty_group(self):
        result = calculate_average_confidence([], [])
        assert result.score == 0
        assert result.grade == "F"
        assert result.suggestions == [NO_SYMBOLS_SUGGESTION]

    def test_average_grade_follows_mean(self, sample_symbols):
        group = sample_symbols[:3]
        result = calculate_average_confidence(group, sample_symbols)
        singles = [calculate_confidence(s, sample_symbols).score for s in group]
        assert result.score == round(sum(singles) / 3)
        assert result.grade == calculate_grade(sum(singles) / 3)

    def test_aggregate_uses_strictest_grade(self):
        results = [_result("A", 95), _result("C", 72), _result("F", 20)]
        overall = aggregate_confidence(results)
        assert overall.grade == "F"
        assert overall.score == 62

    def test_aggregate_dedupes_suggestions(self):
        a = _result("B")
        a.suggestions = ["Add test files"]
        b = _result("B")
        b.suggestions = ["Add test files", "Declare type signatures explicitly"]
        assert aggregate_confidence([a, b]).suggestions == [
            "Add test files",
            "Declare type signatures explicitly",
        ]

    def test_aggregate_empty(self):
        assert aggregate_confidence([]).grade == "F"

"""Tests for feature aggregation and the pure resolve_imports entry point."""

from __future__ import annotations

import itertools

from windows_features.config import (
    FeatureRequirement,
    ImportStatement,
    NamedImport,
    RawImport,
    ResolverConfig,
)
from windows_features.phases.aggregation import aggregate_features
from windows_features.pipeline import resolve_imports

ROOT_CONFIG = ResolverConfig(import_root="root", namespace_root="Root")

LINES = [
    RawImport("a.rs", "use root::Sub::Foundation::LUID;"),
    RawImport("b.rs", "use root::Sub::Display::A;"),
    RawImport("c.rs", "use root::Sub::Display::B;"),
    RawImport("d.rs", "use root::Sub::Display::C;"),
    RawImport("e.rs", "use root::Sub::Foundation::Frobnicate;"),
]


def _req(*features: str) -> FeatureRequirement:
    stmt = ImportStatement(source="x.rs", root="root", path=("Sub",), target=NamedImport("X"))
    return FeatureRequirement(import_=stmt, features=frozenset(features))


class TestAggregateFeatures:
    def test_union_sorted_and_deduplicated(self):
        result = aggregate_features([_req("b", "a"), _req("c", "a"), _req()])
        assert result == ("a", "b", "c")

    def test_empty(self):
        assert aggregate_features([]) == ()

    def test_sort_is_lexicographic(self):
        result = aggregate_features([_req("Win32_UI", "Win32_Foundation", "Foundation")])
        assert result == ("Foundation", "Win32_Foundation", "Win32_UI")


class TestResolveImports:
    def test_two_symbols_same_namespace(self, sample_index):
        raw = [LINES[1], LINES[2]]
        report = resolve_imports(raw, sample_index, ROOT_CONFIG)
        assert report.features == ("F_Display", "F_Foundation")

    def test_unknown_symbol_single_warning(self, sample_index):
        report = resolve_imports([LINES[4]], sample_index, ROOT_CONFIG)
        assert report.features == ("F_Extra", "F_Foundation")
        assert [d.kind.value for d in report.diagnostics] == ["UnknownSymbolInNamespace"]

    def test_malformed_line_contributes_nothing(self, sample_index):
        raw = [RawImport("a.rs", "use root::Something;"), LINES[0]]
        report = resolve_imports(raw, sample_index, ROOT_CONFIG)
        assert report.features == ("F_Foundation",)
        assert [d.kind.value for d in report.diagnostics] == ["MalformedImport"]

    def test_grouped_foreign_crate_adds_nothing(self, sample_index):
        raw = [RawImport(
            "a.rs",
            "use {root::Sub::Display::A, std::collections::HashMap, other::Sub::Foundation::LUID};",
        )]
        report = resolve_imports(raw, sample_index, ROOT_CONFIG)
        assert report.features == ("F_Display",)
        assert report.diagnostics == []

    def test_deterministic_for_any_order(self, sample_index):
        expected = resolve_imports(LINES, sample_index, ROOT_CONFIG).features
        for perm in itertools.permutations(LINES):
            assert resolve_imports(list(perm), sample_index, ROOT_CONFIG).features == expected

    def test_monotonic(self, sample_index):
        previous: set[str] = set()
        for n in range(1, len(LINES) + 1):
            current = set(resolve_imports(LINES[:n], sample_index, ROOT_CONFIG).features)
            assert previous <= current
            previous = current

    def test_workers_do_not_change_result(self, sample_index):
        threaded = ResolverConfig(import_root="root", namespace_root="Root", workers=3)
        assert (
            resolve_imports(LINES, sample_index, threaded).features
            == resolve_imports(LINES, sample_index, ROOT_CONFIG).features
        )

    def test_index_diagnostics_are_surfaced(self):
        from windows_features.index.feature_index import build_feature_index

        index = build_feature_index({
            "namespace_map": ["Root.Sub.Foundation"],
            "feature_map": ["F0"],
            "namespaces": {"0": [{"name": "LUID", "features": [0, 5]}]},
        })
        report = resolve_imports([LINES[0]], index, ROOT_CONFIG)
        assert report.features == ("F0",)
        assert [d.kind.value for d in report.diagnostics] == ["FeatureIndexOutOfRange"]

"""Tests for namespace and symbol feature resolution."""

from __future__ import annotations

from windows_features.config import (
    DiagnosticKind,
    ImportStatement,
    NamedImport,
    RawImport,
    WildcardImport,
)
from windows_features.phases.parsing import parse_import
from windows_features.phases.resolution import (
    resolve_import,
    resolve_namespace,
    resolve_symbol_features,
    run_resolution_phase,
)


def _stmt(line: str) -> ImportStatement:
    return parse_import(RawImport("src/lib.rs", line))[0]


def _resolve(line, index, diagnostics=None):
    return resolve_import(_stmt(line), index, "Root", diagnostics)


class TestResolveNamespace:
    def test_found(self, sample_index):
        assert resolve_namespace(_stmt("use root::Sub::Display::A;"), sample_index, "Root") == 1

    def test_not_found_warns(self, sample_index):
        diagnostics = []
        ns_id = resolve_namespace(
            _stmt("use root::Sub::Audio::Play;"), sample_index, "Root", diagnostics,
        )
        assert ns_id is None
        assert [d.kind for d in diagnostics] == [DiagnosticKind.NAMESPACE_NOT_FOUND]
        assert "Root.Sub.Audio" in diagnostics[0].message
        assert diagnostics[0].source == "src/lib.rs"


class TestResolveSymbolFeatures:
    def test_named_match_is_exact(self, sample_index):
        features, matched = resolve_symbol_features(1, NamedImport("A"), sample_index)
        assert features == {"F_Display"}
        assert matched == "A"

    def test_named_match_is_case_sensitive(self, sample_index):
        diagnostics = []
        features, matched = resolve_symbol_features(1, NamedImport("a"), sample_index, diagnostics)
        assert matched is None
        assert features == {"F_Display", "F_Foundation", "F_Other"}
        assert len(diagnostics) == 1

    def test_wildcard_is_namespace_union(self, sample_index):
        features, matched = resolve_symbol_features(1, WildcardImport(), sample_index)
        assert features == {"F_Display", "F_Foundation", "F_Other"}
        assert matched is None

    def test_wildcard_on_empty_namespace(self, sample_index):
        features, _ = resolve_symbol_features(2, WildcardImport(), sample_index)
        assert features == frozenset()


class TestResolveImport:
    def test_named_symbol_resolves_to_its_entry(self, sample_index):
        req = _resolve("use root::Sub::Foundation::LUID;", sample_index)
        assert req.features == {"F_Foundation"}
        assert req.namespace_id == 0
        assert req.matched_symbol == "LUID"

    def test_sibling_symbols_keep_their_own_features(self, sample_index):
        a = _resolve("use root::Sub::Display::A;", sample_index)
        c = _resolve("use root::Sub::Display::C;", sample_index)
        assert a.features == {"F_Display"}
        assert c.features == {"F_Other"}

    def test_unknown_symbol_falls_back_to_namespace(self, sample_index):
        diagnostics = []
        req = _resolve("use root::Sub::Foundation::Frobnicate;", sample_index, diagnostics)
        assert req.features == {"F_Foundation", "F_Extra"}
        assert req.matched_symbol is None
        assert [d.kind for d in diagnostics] == [DiagnosticKind.UNKNOWN_SYMBOL]

    def test_unknown_namespace_contributes_nothing(self, sample_index):
        diagnostics = []
        req = _resolve("use root::Sub::Audio::*;", sample_index, diagnostics)
        assert req.features == frozenset()
        assert req.namespace_id is None
        assert len(diagnostics) == 1

    def test_wildcard_completeness(self, sample_index):
        req = _resolve("use root::Sub::Display::*;", sample_index)
        expected = set()
        for entry in sample_index.entries(1):
            expected |= sample_index.feature_names_for(entry.feature_ids)
        assert req.features == expected

    def test_idempotent(self, sample_index):
        stmt = _stmt("use root::Sub::Display::B;")
        first = resolve_import(stmt, sample_index, "Root")
        second = resolve_import(stmt, sample_index, "Root")
        assert first == second

    def test_dropped_feature_index_never_resolves(self):
        from windows_features.index.feature_index import build_feature_index

        index = build_feature_index({
            "namespace_map": ["Root.Sub.Foundation"],
            "feature_map": ["F0", "F1", "F2", "F3", "F4"],
            "namespaces": {"0": [{"name": "LUID", "features": [9999]}]},
        })
        assert _resolve("use root::Sub::Foundation::LUID;", index).features == frozenset()
        assert _resolve("use root::Sub::Foundation::*;", index).features == frozenset()


class TestRunResolutionPhase:
    LINES = [
        "use root::Sub::Foundation::LUID;",
        "use root::Sub::Display::A;",
        "use root::Sub::Display::B;",
        "use root::Sub::Foundation::Frobnicate;",
        "use root::Sub::Audio::Play;",
        "use root::Sub::Display::*;",
    ]

    def test_threaded_matches_sequential(self, sample_index):
        statements = [_stmt(line) for line in self.LINES]
        seq_diags, par_diags = [], []
        sequential = run_resolution_phase(statements, sample_index, seq_diags, "Root", workers=1)
        parallel = run_resolution_phase(statements, sample_index, par_diags, "Root", workers=4)
        assert sequential == parallel
        assert seq_diags == par_diags

    def test_one_requirement_per_statement(self, sample_index):
        statements = [_stmt(line) for line in self.LINES]
        diagnostics = []
        requirements = run_resolution_phase(statements, sample_index, diagnostics, "Root")
        assert [r.import_ for r in requirements] == statements
        kinds = sorted(d.kind.value for d in diagnostics)
        assert kinds == ["NamespaceNotFound", "UnknownSymbolInNamespace"]

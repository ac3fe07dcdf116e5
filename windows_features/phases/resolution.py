"""Phase 4: Import statements to the Cargo features they require."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from windows_features.config import (
    Diagnostic,
    DiagnosticKind,
    FeatureRequirement,
    ImportStatement,
    ImportTarget,
    NamedImport,
    WildcardImport,
)
from windows_features.index.feature_index import FeatureIndex

logger = logging.getLogger(__name__)


def resolve_namespace(
    stmt: ImportStatement,
    index: FeatureIndex,
    namespace_root: str,
    diagnostics: list[Diagnostic] | None = None,
) -> int | None:
    """Map an import's reconstructed namespace to its id, or None if unknown."""
    namespace = stmt.namespace(namespace_root)
    ns_id = index.namespace_id(namespace)
    if ns_id is None:
        message = f"No features found for namespace: {namespace} (import: {stmt.statement})"
        logger.warning(message)
        if diagnostics is not None:
            diagnostics.append(Diagnostic(DiagnosticKind.NAMESPACE_NOT_FOUND, message, stmt.source))
    return ns_id


def resolve_symbol_features(
    ns_id: int,
    target: ImportTarget,
    index: FeatureIndex,
    diagnostics: list[Diagnostic] | None = None,
    source: str | None = None,
) -> tuple[frozenset[str], str | None]:
    """Return (features, matched symbol name) for a target in a namespace.

    Wildcards take the namespace-wide union. A named symbol takes exactly its
    own entry's features, and only falls back to the union when the namespace
    has no entry of that name.
    """
    if isinstance(target, WildcardImport):
        return index.feature_names_for(index.namespace_feature_ids(ns_id)), None

    if not isinstance(target, NamedImport):
        raise TypeError(f"Unsupported import target: {target!r}")

    entry = index.find_entry(ns_id, target.name)
    if entry is not None:
        return index.feature_names_for(entry.feature_ids), entry.name

    namespace = index.namespace_names[ns_id]
    message = (
        f"No symbol {target.name} in namespace {namespace}; "
        f"using features of the whole namespace"
    )
    logger.warning(message)
    if diagnostics is not None:
        diagnostics.append(Diagnostic(DiagnosticKind.UNKNOWN_SYMBOL, message, source))
    return index.feature_names_for(index.namespace_feature_ids(ns_id)), None


def resolve_import(
    stmt: ImportStatement,
    index: FeatureIndex,
    namespace_root: str = "Windows",
    diagnostics: list[Diagnostic] | None = None,
) -> FeatureRequirement:
    """Resolve one import statement against the index."""
    ns_id = resolve_namespace(stmt, index, namespace_root, diagnostics)
    if ns_id is None:
        return FeatureRequirement(import_=stmt, features=frozenset())

    features, matched = resolve_symbol_features(
        ns_id, stmt.target, index, diagnostics, stmt.source,
    )
    requirement = FeatureRequirement(
        import_=stmt, features=features, namespace_id=ns_id, matched_symbol=matched,
    )
    logger.debug(
        f"{stmt.statement}: namespace={stmt.namespace(namespace_root)} "
        f"symbol={matched or '*'} features={sorted(features)}"
    )
    return requirement


def _resolve_one(
    stmt: ImportStatement, index: FeatureIndex, namespace_root: str,
) -> tuple[FeatureRequirement, list[Diagnostic]]:
    diagnostics: list[Diagnostic] = []
    return resolve_import(stmt, index, namespace_root, diagnostics), diagnostics


def run_resolution_phase(
    statements: list[ImportStatement],
    index: FeatureIndex,
    diagnostics: list[Diagnostic],
    namespace_root: str = "Windows",
    workers: int = 1,
) -> list[FeatureRequirement]:
    """Resolve every statement; with workers > 1 the work runs on a thread pool.

    Results and diagnostics are collected in statement order either way.
    """
    if workers > 1 and len(statements) > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            results = list(executor.map(
                lambda stmt: _resolve_one(stmt, index, namespace_root), statements,
            ))
    else:
        results = [_resolve_one(stmt, index, namespace_root) for stmt in statements]

    requirements: list[FeatureRequirement] = []
    for requirement, stmt_diagnostics in results:
        requirements.append(requirement)
        diagnostics.extend(stmt_diagnostics)
    return requirements

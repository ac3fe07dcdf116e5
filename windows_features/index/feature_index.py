"""Namespace/feature index built from a windows-rs ``features.json`` document."""

from __future__ import annotations

import logging
from typing import Any, Mapping

from windows_features.config import (
    Diagnostic,
    DiagnosticKind,
    MetadataLoadError,
    SymbolEntry,
)

logger = logging.getLogger(__name__)

NAMESPACE_MAP_KEY = "namespace_map"
FEATURE_MAP_KEY = "feature_map"
NAMESPACES_KEY = "namespaces"


class FeatureIndex:
    """Read-only lookup structure over namespaces, features and symbol entries.

    namespace_names: namespace id -> dotted namespace name
    feature_names: feature id -> Cargo feature name
    entries_by_namespace: namespace id -> symbol entries in document order
    """

    def __init__(
        self,
        namespace_names: list[str],
        feature_names: list[str],
        entries_by_namespace: dict[int, list[SymbolEntry]],
        diagnostics: list[Diagnostic] | None = None,
    ) -> None:
        self.namespace_names: tuple[str, ...] = tuple(namespace_names)
        self.feature_names: tuple[str, ...] = tuple(feature_names)
        self.entries_by_namespace: dict[int, tuple[SymbolEntry, ...]] = {
            ns_id: tuple(entries) for ns_id, entries in entries_by_namespace.items()
        }
        self.diagnostics: tuple[Diagnostic, ...] = tuple(diagnostics or ())
        self._ns_ids: dict[str, int] = {}
        for ns_id, name in enumerate(self.namespace_names):
            self._ns_ids.setdefault(name, ns_id)

    def __len__(self) -> int:
        return len(self.namespace_names)

    def namespace_id(self, namespace: str) -> int | None:
        """Exact lookup of a dotted namespace name. Returns its id or None."""
        return self._ns_ids.get(namespace)

    def entries(self, namespace_id: int) -> tuple[SymbolEntry, ...]:
        """Symbol entries recorded under a namespace (empty if none)."""
        return self.entries_by_namespace.get(namespace_id, ())

    def find_entry(self, namespace_id: int, symbol: str) -> SymbolEntry | None:
        for entry in self.entries(namespace_id):
            if entry.name == symbol:
                return entry
        return None

    def feature_names_for(self, feature_ids) -> frozenset[str]:
        return frozenset(self.feature_names[fid] for fid in feature_ids)

    def namespace_feature_ids(self, namespace_id: int) -> frozenset[int]:
        """Union of feature ids over every entry in the namespace."""
        ids: set[int] = set()
        for entry in self.entries(namespace_id):
            ids.update(entry.feature_ids)
        return frozenset(ids)

    def entry_count(self) -> int:
        return sum(len(entries) for entries in self.entries_by_namespace.values())


def _string_list(document: Mapping[str, Any], key: str) -> list[str]:
    if key not in document:
        raise MetadataLoadError(f"Metadata is missing '{key}'")
    value = document[key]
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise MetadataLoadError(f"Metadata '{key}' must be a list of strings")
    return value


def _parse_namespace_id(key: Any) -> int:
    if not isinstance(key, str) or not (key.isascii() and key.isdigit()):
        raise MetadataLoadError(f"Invalid namespace index: {key!r}")
    return int(key)


def _parse_entry(
    raw: Any,
    namespace: str,
    feature_count: int,
    diagnostics: list[Diagnostic],
) -> SymbolEntry:
    if not isinstance(raw, dict) or not isinstance(raw.get("name"), str):
        raise MetadataLoadError(f"Malformed symbol entry in {namespace}: {raw!r}")

    name = raw["name"]
    raw_features = raw.get("features")
    if raw_features is None:
        return SymbolEntry(name=name)
    if not isinstance(raw_features, list):
        raise MetadataLoadError(f"Feature list for {namespace}.{name} must be a list")

    feature_ids: set[int] = set()
    for fid in raw_features:
        if not isinstance(fid, int) or isinstance(fid, bool):
            raise MetadataLoadError(
                f"Feature index for {namespace}.{name} must be an integer, got {fid!r}"
            )
        if 0 <= fid < feature_count:
            feature_ids.add(fid)
            continue
        message = (
            f"Feature index {fid} out of bounds for feature_map "
            f"(size {feature_count}) in {namespace}.{name}"
        )
        logger.warning(message)
        diagnostics.append(Diagnostic(DiagnosticKind.FEATURE_INDEX_OUT_OF_RANGE, message))
    return SymbolEntry(name=name, feature_ids=frozenset(feature_ids))


def build_feature_index(document: Any) -> FeatureIndex:
    """Build a FeatureIndex from a parsed ``features.json`` document.

    Out-of-range feature and namespace indices are dropped with a
    diagnostic; anything structurally wrong raises MetadataLoadError.
    """
    if not isinstance(document, dict):
        raise MetadataLoadError("Metadata document must be a JSON object")

    namespace_names = _string_list(document, NAMESPACE_MAP_KEY)
    feature_names = _string_list(document, FEATURE_MAP_KEY)

    raw_namespaces = document.get(NAMESPACES_KEY)
    if not isinstance(raw_namespaces, dict):
        raise MetadataLoadError(f"Metadata '{NAMESPACES_KEY}' must be an object")

    diagnostics: list[Diagnostic] = []
    entries_by_namespace: dict[int, list[SymbolEntry]] = {}

    for key, raw_entries in raw_namespaces.items():
        ns_id = _parse_namespace_id(key)
        if ns_id >= len(namespace_names):
            message = f"Index {ns_id} out of range for namespace_map"
            logger.warning(message)
            diagnostics.append(Diagnostic(DiagnosticKind.NAMESPACE_ID_OUT_OF_RANGE, message))
            continue
        if not isinstance(raw_entries, list):
            raise MetadataLoadError(f"Entries for namespace {key} must be a list")

        namespace = namespace_names[ns_id]
        if ns_id in entries_by_namespace:
            # "1" and "01" name the same namespace; keep both lists in order
            logger.warning(f"Duplicate entries for namespace {ns_id} ({key}); merging")
        entries_by_namespace.setdefault(ns_id, []).extend(
            _parse_entry(raw, namespace, len(feature_names), diagnostics)
            for raw in raw_entries
        )

    index = FeatureIndex(namespace_names, feature_names, entries_by_namespace, diagnostics)
    logger.debug(
        f"Built feature index: {len(namespace_names)} namespaces, "
        f"{len(feature_names)} features, {index.entry_count()} symbols"
    )
    return index

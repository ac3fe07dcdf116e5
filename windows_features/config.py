"""Core data types and configuration for windows-features resolution."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Union

DEFAULT_METADATA_URL = (
    "https://raw.githubusercontent.com/microsoft/windows-rs/0.58.0/"
    "crates/libs/windows/features.json"
)


def default_cache_dir() -> str:
    return os.environ.get(
        "WINDOWS_FEATURES_CACHE_DIR",
        str(Path.home() / ".cache" / "windows-features"),
    )


class FeatureResolutionError(Exception):
    """Base class for fatal resolution failures."""


class MetadataLoadError(FeatureResolutionError):
    """The metadata document is missing, unreadable, or structurally invalid."""


class NothingToResolveError(FeatureResolutionError):
    """The scanner found no import lines at all."""


class DiagnosticKind(str, Enum):
    MALFORMED_IMPORT = "MalformedImport"
    NAMESPACE_NOT_FOUND = "NamespaceNotFound"
    UNKNOWN_SYMBOL = "UnknownSymbolInNamespace"
    FEATURE_INDEX_OUT_OF_RANGE = "FeatureIndexOutOfRange"
    NAMESPACE_ID_OUT_OF_RANGE = "NamespaceIdOutOfRange"


@dataclass(frozen=True)
class Diagnostic:
    """Non-fatal condition surfaced to the user after a run."""
    kind: DiagnosticKind
    message: str
    source: str | None = None


@dataclass(frozen=True)
class SymbolEntry:
    name: str
    feature_ids: frozenset[int] = frozenset()


@dataclass(frozen=True)
class NamedImport:
    name: str


@dataclass(frozen=True)
class WildcardImport:
    pass


ImportTarget = Union[NamedImport, WildcardImport]


@dataclass(frozen=True)
class RawImport:
    """Candidate import line as found by the scanner."""
    source: str
    line: str


@dataclass(frozen=True)
class ImportStatement:
    """Structured `use` path: root token, namespace path and trailing target."""
    source: str
    root: str
    path: tuple[str, ...]
    target: ImportTarget
    statement: str = ""

    def namespace(self, namespace_root: str) -> str:
        return ".".join((namespace_root, *self.path))


@dataclass(frozen=True)
class FeatureRequirement:
    import_: ImportStatement
    features: frozenset[str]
    namespace_id: int | None = None
    matched_symbol: str | None = None


@dataclass
class ResolverConfig:
    scan_root: str = "."
    metadata_path: str | None = None
    metadata_url: str = DEFAULT_METADATA_URL
    cache_dir: str = field(default_factory=default_cache_dir)
    output_path: str | None = None
    import_root: str = "windows"
    namespace_root: str = "Windows"
    workers: int = 1
    refresh: bool = False
    exclude_patterns: list[str] = field(default_factory=list)
    debug: bool = False
    quiet: bool = False
    max_file_size: int = 1_000_000  # 1MB


@dataclass
class FeatureReport:
    features: tuple[str, ...] = ()
    requirements: list[FeatureRequirement] = field(default_factory=list)
    diagnostics: list[Diagnostic] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)
    stats: dict[str, Any] = field(default_factory=dict)

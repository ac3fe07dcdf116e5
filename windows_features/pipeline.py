"""Sequential phase orchestrator with timing."""

from __future__ import annotations

import logging
import time

from windows_features.config import (
    Diagnostic,
    FeatureReport,
    NothingToResolveError,
    RawImport,
    ResolverConfig,
)
from windows_features.index.feature_index import FeatureIndex
from windows_features.index.metadata import get_index
from windows_features.output import build_report
from windows_features.phases.aggregation import aggregate_features
from windows_features.phases.parsing import run_parsing_phase
from windows_features.phases.resolution import run_resolution_phase
from windows_features.phases.scanning import run_scanning_phase

logger = logging.getLogger(__name__)

_PHASE_LABELS = {
    "metadata": "Loading features.json",
    "scanning": "Scanning source files",
    "parsing": "Parsing imports",
    "resolution": "Resolving features",
    "aggregation": "Aggregating features",
}


def resolve_imports(
    raw_imports: list[RawImport],
    index: FeatureIndex,
    config: ResolverConfig | None = None,
) -> FeatureReport:
    """Resolve already-scanned import lines against an index.

    Pure with respect to the index: no metadata loading, no file access.
    """
    config = config or ResolverConfig()
    diagnostics: list[Diagnostic] = list(index.diagnostics)
    statements = run_parsing_phase(raw_imports, diagnostics, config.import_root)
    requirements = run_resolution_phase(
        statements, index, diagnostics, config.namespace_root, config.workers,
    )
    return FeatureReport(
        features=aggregate_features(requirements),
        requirements=requirements,
        diagnostics=diagnostics,
    )


def run_pipeline(
    config: ResolverConfig,
    index: FeatureIndex | None = None,
    progress_callback=None,
) -> FeatureReport:
    """Execute the resolution pipeline and return the report.

    Args:
        config: Resolver configuration.
        index: Prebuilt index. When omitted the shared cached index for the
            configured metadata source is used.
        progress_callback: Optional callable(phase_name, label) invoked
            when each phase starts. Used by the CLI for Rich progress.

    Raises:
        MetadataLoadError: the metadata could not be loaded.
        NothingToResolveError: no crate imports were found under the scan root.
    """
    timings: dict[str, float] = {}
    total_start = time.monotonic()
    state: dict = {"index": index}
    diagnostics: list[Diagnostic] = []

    def load_index():
        if state["index"] is None:
            state["index"] = get_index(config)
        diagnostics.extend(state["index"].diagnostics)

    def scan():
        state["raw"] = run_scanning_phase(config)
        if not state["raw"]:
            raise NothingToResolveError(
                f"No 'use {config.import_root}::' imports found under {config.scan_root}"
            )

    def parse():
        state["statements"] = run_parsing_phase(state["raw"], diagnostics, config.import_root)

    def resolve():
        state["requirements"] = run_resolution_phase(
            state["statements"], state["index"], diagnostics,
            config.namespace_root, config.workers,
        )

    def aggregate():
        state["features"] = aggregate_features(state["requirements"])

    phases = [
        ("metadata", load_index),
        ("scanning", scan),
        ("parsing", parse),
        ("resolution", resolve),
        ("aggregation", aggregate),
    ]

    for name, phase_fn in phases:
        if progress_callback:
            progress_callback(name, _PHASE_LABELS.get(name, name))
        start = time.monotonic()
        phase_fn()
        timings[name] = time.monotonic() - start

    total_ms = (time.monotonic() - total_start) * 1000

    return build_report(
        config,
        state["index"],
        len(state["raw"]),
        state["requirements"],
        state["features"],
        diagnostics,
        timings,
        total_ms,
    )

"""Report assembly and plain-text serialisation."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from pathlib import Path

from windows_features import __version__
from windows_features.config import (
    Diagnostic,
    FeatureReport,
    FeatureRequirement,
    ResolverConfig,
)
from windows_features.index.feature_index import FeatureIndex
from windows_features.index.metadata import metadata_cache_path


def _metadata_source(config: ResolverConfig) -> str:
    if config.metadata_path:
        return str(config.metadata_path)
    return str(metadata_cache_path(config))


def build_report(
    config: ResolverConfig,
    index: FeatureIndex,
    raw_count: int,
    requirements: list[FeatureRequirement],
    features: tuple[str, ...],
    diagnostics: list[Diagnostic],
    timings: dict[str, float],
    total_ms: float,
) -> FeatureReport:
    """Build the FeatureReport for a finished run."""
    scan_root = Path(config.scan_root).resolve()
    kinds = Counter(d.kind.value for d in diagnostics)

    return FeatureReport(
        features=features,
        requirements=requirements,
        diagnostics=diagnostics,
        metadata={
            "scan_root": str(scan_root),
            "metadata_source": _metadata_source(config),
            "resolved_at": datetime.now(timezone.utc).isoformat(),
            "windows_features_version": __version__,
            "resolution_duration_ms": round(total_ms, 1),
            "phase_timings": timings,
        },
        stats={
            "import_lines": raw_count,
            "distinct_imports": len(requirements),
            "features": len(features),
            "namespaces": len(index),
            "diagnostics": dict(sorted(kinds.items())),
        },
    )


def format_features(features: tuple[str, ...]) -> str:
    """One feature per line, newline terminated; empty string for no features."""
    return "".join(f"{feature}\n" for feature in features)


def write_report(report: FeatureReport, output_path: str) -> None:
    """Write the feature list to a plain-text report file."""
    path = Path(output_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(format_features(report.features), encoding="utf-8")

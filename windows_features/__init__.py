"""windows-features - Find the windows-rs Cargo features a crate's imports need."""

__version__ = "0.1.0"

from windows_features.pipeline import resolve_imports, run_pipeline  # noqa: E402

__all__ = ["resolve_imports", "run_pipeline", "__version__"]

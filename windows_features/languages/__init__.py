"""Language registry - maps file extensions to language analysers."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from windows_features.languages.rust import RustAnalyser

_REGISTRY: dict[str, RustAnalyser] = {}
_INITIALISED = False


def _init_registry() -> None:
    global _INITIALISED
    if _INITIALISED:
        return

    from windows_features.languages.rust import RustAnalyser

    for analyser in [RustAnalyser()]:
        for ext in analyser.extensions:
            _REGISTRY[ext] = analyser

    _INITIALISED = True


def get_analyser(extension: str) -> RustAnalyser | None:
    """Get the language analyser for a file extension (e.g. '.rs')."""
    _init_registry()
    return _REGISTRY.get(extension)


def supported_extensions() -> set[str]:
    """Return all supported file extensions."""
    _init_registry()
    return set(_REGISTRY.keys())

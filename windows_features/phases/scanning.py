"""Phase 2: Walk the source tree and collect `use <root>::` declarations."""

from __future__ import annotations

import logging
import os
from pathlib import Path

import tree_sitter

from windows_features.config import RawImport, ResolverConfig
from windows_features.languages import get_analyser
from windows_features.phases.parsing import PATH_SEPARATOR, normalise_statement

logger = logging.getLogger(__name__)

DEFAULT_IGNORE = {
    ".git", "target", "node_modules", ".idea", ".vs", ".vscode",
    "__pycache__", ".venv", "venv", "dist", "build",
}

# Cache parsers per language to avoid re-creating
_parsers: dict[str, tree_sitter.Parser] = {}


def _get_parser(analyser) -> tree_sitter.Parser | None:
    """Get or create a parser for the given analyser."""
    key = analyser.language_name
    if key not in _parsers:
        try:
            _parsers[key] = tree_sitter.Parser(analyser.get_language())
        except Exception as e:
            logger.warning(f"Failed to initialise parser for {key}: {e}")
            return None
    return _parsers[key]


def _should_ignore(name: str, ignore_set: set[str]) -> bool:
    """Check if a directory or file name matches ignore patterns."""
    return name in ignore_set or name.startswith(".")


def discover_source_files(config: ResolverConfig) -> list[str]:
    """Return repo-relative paths of every analysable file, in sorted walk order."""
    root = Path(config.scan_root)
    if not root.is_dir():
        logger.warning(f"Scan root {root} is not a directory")
        return []

    ignore_set = set(DEFAULT_IGNORE)
    ignore_set.update(config.exclude_patterns)

    files: list[str] = []
    for dirpath, dirnames, filenames in os.walk(root):
        # Filter ignored directories in-place
        dirnames[:] = [
            d for d in sorted(dirnames)
            if not _should_ignore(d, ignore_set)
        ]

        rel_dir = os.path.relpath(dirpath, root)
        if rel_dir == ".":
            rel_dir = ""

        for filename in sorted(filenames):
            if _should_ignore(filename, ignore_set):
                continue
            ext = os.path.splitext(filename)[1].lower()
            if get_analyser(ext) is None:
                continue

            full_path = os.path.join(dirpath, filename)
            try:
                size = os.path.getsize(full_path)
            except OSError:
                continue
            # Skip files over max size
            if size > config.max_file_size:
                logger.debug(f"Skipping {full_path}: {size} bytes")
                continue

            rel_path = os.path.join(rel_dir, filename) if rel_dir else filename
            files.append(rel_path.replace("\\", "/"))
    return files


def is_candidate_import(line: str, import_root: str) -> bool:
    """True when a `use` line imports from the given crate root."""
    text = normalise_statement(line)
    prefix = import_root + PATH_SEPARATOR
    return text.startswith(prefix) or (
        text.startswith("{") and prefix in text
    )


def run_scanning_phase(config: ResolverConfig) -> list[RawImport]:
    """Parse every source file under the scan root and return its crate imports."""
    raw_imports: list[RawImport] = []
    files = discover_source_files(config)

    for file_path in files:
        ext = os.path.splitext(file_path)[1].lower()
        analyser = get_analyser(ext)
        if analyser is None:
            continue

        parser = _get_parser(analyser)
        if parser is None:
            continue

        # Read file
        full_path = os.path.join(config.scan_root, file_path)
        try:
            with open(full_path, "rb") as f:
                source = f.read()
        except OSError as e:
            logger.warning(f"Failed to read {file_path}: {e}")
            continue

        # Parse
        try:
            tree = parser.parse(source)
        except Exception as e:
            logger.warning(f"Failed to parse {file_path}: {e}")
            continue

        for raw in analyser.extract_imports(tree, source, file_path):
            if is_candidate_import(raw.line, config.import_root):
                raw_imports.append(raw)

    logger.info(
        f"Found {len(raw_imports)} '{config.import_root}' imports in {len(files)} files"
    )
    return raw_imports

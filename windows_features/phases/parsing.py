"""Phase 3: Raw `use` lines to structured import statements."""

from __future__ import annotations

import logging
import re

from windows_features.config import (
    Diagnostic,
    DiagnosticKind,
    ImportStatement,
    NamedImport,
    RawImport,
    WildcardImport,
)

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "::"
WILDCARD = "*"

# `use`, `pub use`, `pub(crate) use`, `pub(in path) use`
_USE_PREFIX = re.compile(r"^(?:pub(?:\s*\([^)]*\))?\s+)?use\s+")
_ALIAS = re.compile(r"\s+as\s+\S+$")


def normalise_statement(line: str) -> str:
    """Strip keywords, terminator and whitespace from a raw `use` line."""
    text = line.strip().rstrip(";").strip()
    text = _USE_PREFIX.sub("", text)
    if text.startswith(PATH_SEPARATOR):
        text = text[len(PATH_SEPARATOR):]
    return text.strip()


def _split_top_level(text: str) -> list[str]:
    """Split a brace group body on commas that are not nested in braces."""
    items: list[str] = []
    depth = 0
    current: list[str] = []
    for ch in text:
        if ch == "{":
            depth += 1
        elif ch == "}":
            depth -= 1
        if ch == "," and depth == 0:
            items.append("".join(current))
            current = []
        else:
            current.append(ch)
    items.append("".join(current))
    return [item.strip() for item in items if item.strip()]


def _split_path(text: str) -> list[str]:
    text = _ALIAS.sub("", text.strip())
    return [segment.strip() for segment in text.split(PATH_SEPARATOR)]


def expand_use_tree(text: str) -> list[list[str]]:
    """Expand a use tree into one segment list per imported leaf.

    ``windows::Win32::{Foundation::HWND, UI::*}`` yields
    ``[windows, Win32, Foundation, HWND]`` and ``[windows, Win32, UI, *]``.
    Raises ValueError on unbalanced or trailing braces and on empty groups.
    """
    open_pos = text.find("{")
    if open_pos == -1:
        if "}" in text:
            raise ValueError("unbalanced braces")
        return [_split_path(text)]

    depth = 0
    close_pos = -1
    for pos in range(open_pos, len(text)):
        if text[pos] == "{":
            depth += 1
        elif text[pos] == "}":
            depth -= 1
            if depth == 0:
                close_pos = pos
                break
    if close_pos == -1 or text[close_pos + 1:].strip():
        raise ValueError("unbalanced braces")

    prefix = text[:open_pos].strip()
    if prefix and not prefix.endswith(PATH_SEPARATOR):
        raise ValueError("brace group must follow a path separator")
    prefix_segments = _split_path(prefix[:-len(PATH_SEPARATOR)]) if prefix else []

    items = _split_top_level(text[open_pos + 1:close_pos])
    if not items:
        raise ValueError("empty use group")

    leaves: list[list[str]] = []
    for item in items:
        if _ALIAS.sub("", item).strip() == "self":
            leaves.append(list(prefix_segments))
            continue
        for sub in expand_use_tree(item):
            leaves.append(prefix_segments + sub)
    return leaves


def parse_import(
    raw: RawImport,
    diagnostics: list[Diagnostic] | None = None,
    import_root: str | None = None,
) -> list[ImportStatement]:
    """Parse one raw `use` line into import statements.

    A plain path yields one statement; a brace group yields one per leaf.
    Leaves with fewer than three segments are reported as MalformedImport
    and skipped. When import_root is given, leaves rooted at another crate
    are dropped silently.
    """
    text = normalise_statement(raw.line)

    try:
        leaves = expand_use_tree(text)
    except ValueError as e:
        _malformed(raw, f"Could not parse use tree ({e}): {raw.line.strip()}", diagnostics)
        return []

    statements: list[ImportStatement] = []
    for segments in leaves:
        if import_root is not None and segments[0] != import_root:
            logger.debug(f"Ignoring {PATH_SEPARATOR.join(segments)} in {raw.source}")
            continue
        if len(segments) < 3 or not all(segments):
            _malformed(
                raw,
                f"Could not determine namespace and item for import: {raw.line.strip()}",
                diagnostics,
            )
            continue

        last = segments[-1]
        target = WildcardImport() if last == WILDCARD else NamedImport(last)
        statements.append(ImportStatement(
            source=raw.source,
            root=segments[0],
            path=tuple(segments[1:-1]),
            target=target,
            statement=PATH_SEPARATOR.join(segments),
        ))
    return statements


def _malformed(raw: RawImport, message: str, diagnostics: list[Diagnostic] | None) -> None:
    logger.warning(message)
    if diagnostics is not None:
        diagnostics.append(Diagnostic(DiagnosticKind.MALFORMED_IMPORT, message, raw.source))


def run_parsing_phase(
    raw_imports: list[RawImport],
    diagnostics: list[Diagnostic],
    import_root: str | None = None,
) -> list[ImportStatement]:
    """Parse distinct raw lines; identical statements across files are kept once."""
    seen_lines: set[str] = set()
    seen_statements: set[str] = set()
    statements: list[ImportStatement] = []

    for raw in raw_imports:
        key = normalise_statement(raw.line)
        if key in seen_lines:
            continue
        seen_lines.add(key)

        for stmt in parse_import(raw, diagnostics, import_root):
            if stmt.statement in seen_statements:
                continue
            seen_statements.add(stmt.statement)
            statements.append(stmt)

    logger.debug(f"Parsed {len(statements)} distinct imports from {len(raw_imports)} lines")
    return statements

"""Rust language analyser."""

from __future__ import annotations

import tree_sitter
import tree_sitter_rust as ts_rust

from windows_features.config import RawImport


class RustAnalyser:
    extensions = [".rs"]
    language_name = "rust"

    def get_language(self) -> tree_sitter.Language:
        return tree_sitter.Language(ts_rust.language())

    def extract_imports(
        self, tree: tree_sitter.Tree, source: bytes, file_path: str
    ) -> list[RawImport]:
        """Return every `use` declaration in the file, including nested ones."""
        imports: list[RawImport] = []
        self._walk_node(tree.root_node, file_path, imports)
        return imports

    def _walk_node(self, node, file_path, imports):
        for child in node.children:
            if child.type == "use_declaration":
                imports.append(RawImport(
                    source=file_path,
                    line=" ".join(child.text.decode("utf-8").split()),
                ))
            else:
                self._walk_node(child, file_path, imports)

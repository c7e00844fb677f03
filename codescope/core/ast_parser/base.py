"""Base interface for language-specific AST parsers.

Shared parsing logic lives here; language-specific extraction is delegated
to subclasses.
"""

import logging
from abc import ABC, abstractmethod
from typing import List

import tree_sitter

from .models import ParseError, ParseResult, TypeDecl

logger = logging.getLogger(__name__)


class BaseLanguageParser(ABC):
    """Abstract base for tree-sitter parsers.

    Subclasses implement:
    - get_language(): returns language name string
    - get_tree_sitter_language(): returns tree-sitter Language object
    - extract_package(): package/namespace of the compilation unit
    - extract_imports(): import statements
    - extract_types(): walks the tree and builds TypeDecl objects
    """

    @abstractmethod
    def get_language(self) -> str:
        ...

    @abstractmethod
    def get_tree_sitter_language(self) -> tree_sitter.Language:
        ...

    @abstractmethod
    def extract_package(self, tree: tree_sitter.Tree, source: bytes) -> str:
        ...

    @abstractmethod
    def extract_imports(self, tree: tree_sitter.Tree, source: bytes) -> List[str]:
        ...

    @abstractmethod
    def extract_types(
        self, tree: tree_sitter.Tree, source: bytes, file_path: str, package: str
    ) -> List[TypeDecl]:
        """Extract every type declaration, nested ones included.

        Args:
            tree: Parsed tree-sitter tree
            source: Raw source bytes
            file_path: Relative file path within the repository
            package: Package name from extract_package()

        Returns:
            List of TypeDecl objects in source order
        """
        ...

    def parse_file(self, file_path: str, project_root: str = "") -> ParseResult:
        """Read and parse a source file.

        Args:
            file_path: Absolute path to the source file
            project_root: Repository root for computing relative paths

        Returns:
            ParseResult; read failures are reported as an error-severity
            ParseError rather than raised
        """
        if project_root and file_path.startswith(project_root):
            rel_path = file_path[len(project_root):].lstrip("/")
        else:
            rel_path = file_path

        try:
            with open(file_path, "r", encoding="utf-8", errors="replace") as f:
                source_text = f.read()
        except OSError as e:
            return ParseResult(
                file_path=rel_path,
                language=self.get_language(),
                package="",
                types=[],
                imports=[],
                errors=[ParseError(file_path=rel_path, line=0, message=str(e), severity="error")],
            )

        return self.parse_source(source_text, rel_path)

    def parse_source(self, source_text: str, file_path: str) -> ParseResult:
        """Parse source code string into a ParseResult.

        Syntax errors do not stop extraction: tree-sitter recovers and
        whatever declarations survive are still returned, with a warning.
        """
        errors: List[ParseError] = []
        source_bytes = source_text.encode("utf-8")
        line_count = source_text.count("\n") + (1 if source_text and not source_text.endswith("\n") else 0)

        parser = tree_sitter.Parser(self.get_tree_sitter_language())
        tree = parser.parse(source_bytes)

        if tree.root_node.has_error:
            errors.append(
                ParseError(
                    file_path=file_path,
                    line=self._first_error_line(tree.root_node),
                    message="Tree-sitter reported parse errors in file",
                    severity="warning",
                )
            )

        package = self.extract_package(tree, source_bytes)

        try:
            imports = self.extract_imports(tree, source_bytes)
        except Exception as e:
            logger.warning(f"Failed to extract imports from {file_path}: {e}")
            imports = []
            errors.append(ParseError(file_path=file_path, line=0, message=f"Import extraction failed: {e}"))

        try:
            types = self.extract_types(tree, source_bytes, file_path, package)
        except Exception as e:
            logger.error(f"Failed to extract types from {file_path}: {e}")
            types = []
            errors.append(ParseError(file_path=file_path, line=0, message=f"Type extraction failed: {e}", severity="error"))

        return ParseResult(
            file_path=file_path,
            language=self.get_language(),
            package=package,
            types=types,
            imports=imports,
            line_count=line_count,
            errors=errors,
        )

    @staticmethod
    def _first_error_line(root: tree_sitter.Node) -> int:
        """1-based line of the first ERROR/MISSING node, 0 if none found."""
        stack = [root]
        while stack:
            node = stack.pop()
            if node.type == "ERROR" or node.is_missing:
                return node.start_point.row + 1
            if node.has_error:
                stack.extend(reversed(node.children))
        return 0

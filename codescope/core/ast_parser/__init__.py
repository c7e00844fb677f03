"""CodeScope AST parser: tree-sitter based structural parsing.

Public API:
    parse_file(path, project_root) → ParseResult
    parse_source(source, file_path, language) → ParseResult
    detect_language(file_path) → str | None
"""

from .models import LogCall, Marker, MethodDecl, ParseError, ParseResult, TypeDecl
from .utils import detect_language, get_parser, is_supported_file

__all__ = [
    "parse_file",
    "parse_source",
    "detect_language",
    "get_parser",
    "is_supported_file",
    "LogCall",
    "Marker",
    "MethodDecl",
    "ParseError",
    "ParseResult",
    "TypeDecl",
]


def parse_file(file_path: str, project_root: str = "") -> ParseResult:
    """Parse a source file into its type declarations.

    Args:
        file_path: Absolute path to the source file
        project_root: Project root for computing relative paths

    Returns:
        ParseResult containing extracted declarations

    Raises:
        ValueError: If the file's language is not supported
    """
    language = detect_language(file_path)
    if not language:
        raise ValueError(f"Unsupported source file: {file_path}")
    return get_parser(language).parse_file(file_path, project_root)


def parse_source(source_text: str, file_path: str, language: str | None = None) -> ParseResult:
    """Parse source code string into its type declarations.

    Args:
        source_text: Source code as string
        file_path: Relative file path (for metadata)
        language: Language identifier. If None, detected from file_path.
    """
    if language is None:
        language = detect_language(file_path)
    if not language:
        raise ValueError(f"Unsupported source file: {file_path}")
    return get_parser(language).parse_source(source_text, file_path)

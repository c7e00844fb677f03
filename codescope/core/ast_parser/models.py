"""AST Parser data models.

Structural representation of parsed Java sources. These are pure data
containers, no parsing logic. Nothing here depends on type resolution:
type names are kept exactly as written in the source.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class Marker:
    """An annotation attached to a declaration.

    ``arguments`` maps the element name to its values. A single unnamed
    argument is stored under ``"value"``; array initializers expand to
    several values. String literals are unquoted, anything else is kept as
    source text (``RequestMethod.GET``, ``Constants.BASE + "/x"``).
    """

    name: str  # Simple name: "GetMapping" for @org.springframework...GetMapping
    arguments: Dict[str, List[str]] = field(default_factory=dict)
    line: int = 0

    def values(self, *keys: str) -> List[str]:
        """Values of the first key present, in the order given."""
        for key in keys:
            if key in self.arguments:
                return list(self.arguments[key])
        return []

    def has_argument(self, key: str) -> bool:
        return key in self.arguments


@dataclass
class MethodDecl:
    """A method (or constructor) declared in a type body."""

    name: str
    start_line: int
    markers: List[Marker] = field(default_factory=list)
    parameter_count: int = 0
    is_constructor: bool = False


@dataclass
class LogCall:
    """A call shaped like ``receiver.level(args...)``."""

    receiver: str  # "log", "this.logger", "LoggerFactory.getLogger(X.class)"
    method: str  # "info"
    arguments: List[str]  # Source text of each argument
    line: int


@dataclass
class TypeDecl:
    """A class, interface, enum, record or annotation type declaration."""

    kind: str  # "class" | "interface" | "enum" | "record" | "annotation"
    name: str
    qualified_name: str
    package: str
    file_path: str
    start_line: int
    end_line: int
    markers: List[Marker] = field(default_factory=list)
    extends: List[str] = field(default_factory=list)
    implements: List[str] = field(default_factory=list)
    methods: List[MethodDecl] = field(default_factory=list)
    calls: List[LogCall] = field(default_factory=list)
    parent_name: Optional[str] = None  # Enclosing type for nested declarations

    def marker(self, name: str) -> Optional[Marker]:
        for m in self.markers:
            if m.name == name:
                return m
        return None


@dataclass
class ParseError:
    """An error encountered during parsing."""

    file_path: str
    line: int
    message: str
    severity: str = "warning"  # "warning" | "error"


@dataclass
class ParseResult:
    """Complete parse output for a single file."""

    file_path: str
    language: str
    package: str
    types: List[TypeDecl]
    imports: List[str]
    line_count: int = 0
    errors: List[ParseError] = field(default_factory=list)

    @property
    def has_fatal_error(self) -> bool:
        return any(e.severity == "error" for e in self.errors)

"""Java AST parser using tree-sitter.

Walks the tree-sitter AST to extract type declarations (classes,
interfaces, enums, records, annotation types) together with their
annotations, supertypes, methods and logging-shaped call sites.
"""

import logging
import re
from typing import Dict, List, Optional

import tree_sitter
import tree_sitter_java

from .base import BaseLanguageParser
from .models import LogCall, Marker, MethodDecl, TypeDecl

logger = logging.getLogger(__name__)

_JAVA_LANGUAGE = tree_sitter.Language(tree_sitter_java.language())

_TYPE_NODES: Dict[str, str] = {
    "class_declaration": "class",
    "interface_declaration": "interface",
    "enum_declaration": "enum",
    "record_declaration": "record",
    "annotation_type_declaration": "annotation",
}

# Method names of invocations kept on TypeDecl.calls
TRACKED_CALL_NAMES = frozenset({"trace", "debug", "info", "warn", "warning", "error", "fatal"})

_GENERIC_ARGS = re.compile(r"<.*>", re.DOTALL)
_COMMENT_NODES = ("line_comment", "block_comment")


class JavaParser(BaseLanguageParser):
    """tree-sitter based Java parser.

    Extracts:
    - Type declarations (top-level and nested) -> TypeDecl
    - Annotations on types and methods -> Marker with parsed arguments
    - extends / implements clauses, generics stripped
    - Method and constructor declarations -> MethodDecl
    - Invocations of trace/debug/info/warn/error on a receiver -> LogCall
    """

    def get_language(self) -> str:
        return "java"

    def get_tree_sitter_language(self) -> tree_sitter.Language:
        return _JAVA_LANGUAGE

    def extract_package(self, tree: tree_sitter.Tree, source: bytes) -> str:
        for child in tree.root_node.children:
            if child.type == "package_declaration":
                for sub in child.children:
                    if sub.type in ("scoped_identifier", "identifier"):
                        return self._text(sub, source)
        return ""

    def extract_imports(self, tree: tree_sitter.Tree, source: bytes) -> List[str]:
        imports = []
        for child in tree.root_node.children:
            if child.type == "import_declaration":
                text = self._text(child, source).strip()
                imports.append(text[len("import"):].rstrip(";").strip())
        return imports

    def extract_types(
        self, tree: tree_sitter.Tree, source: bytes, file_path: str, package: str
    ) -> List[TypeDecl]:
        types: List[TypeDecl] = []
        for child in tree.root_node.children:
            if child.type in _TYPE_NODES:
                self._extract_type(child, source, file_path, package, None, types)
        return types

    # =========================================================================
    # Declarations
    # =========================================================================

    def _extract_type(
        self,
        node: tree_sitter.Node,
        source: bytes,
        file_path: str,
        package: str,
        outer: Optional[str],
        out: List[TypeDecl],
    ) -> None:
        name = self._get_child_text(node, "name", source)
        if not name:
            return

        nested_name = f"{outer}.{name}" if outer else name
        qualified_name = f"{package}.{nested_name}" if package else nested_name
        kind = _TYPE_NODES[node.type]

        if kind == "interface":
            extends = self._extract_interface_extends(node, source)
            implements: List[str] = []
        else:
            extends, implements = self._extract_inheritance(node, source)

        decl = TypeDecl(
            kind=kind,
            name=name,
            qualified_name=qualified_name,
            package=package,
            file_path=file_path,
            start_line=node.start_point.row + 1,
            end_line=node.end_point.row + 1,
            markers=self._extract_markers(node, source),
            extends=extends,
            implements=implements,
            parent_name=outer,
        )
        out.append(decl)

        body = node.child_by_field_name("body")
        if body is None:
            return

        for member in self._body_members(body):
            if member.type in ("method_declaration", "constructor_declaration"):
                method = self._extract_method(member, source)
                if method:
                    decl.methods.append(method)
            elif member.type in _TYPE_NODES:
                self._extract_type(member, source, file_path, package, nested_name, out)

        decl.calls = self._collect_calls(body, source)

    @staticmethod
    def _body_members(body: tree_sitter.Node) -> List[tree_sitter.Node]:
        """Direct members of a type body; enum bodies nest them one level down."""
        members = []
        for child in body.children:
            if child.type == "enum_body_declarations":
                members.extend(child.children)
            else:
                members.append(child)
        return members

    def _extract_method(self, node: tree_sitter.Node, source: bytes) -> Optional[MethodDecl]:
        name = self._get_child_text(node, "name", source)
        if not name:
            return None

        params = node.child_by_field_name("parameters")
        param_count = 0
        if params is not None:
            param_count = sum(
                1 for p in params.children if p.type in ("formal_parameter", "spread_parameter")
            )

        return MethodDecl(
            name=name,
            start_line=node.start_point.row + 1,
            markers=self._extract_markers(node, source),
            parameter_count=param_count,
            is_constructor=node.type == "constructor_declaration",
        )

    # =========================================================================
    # Annotations
    # =========================================================================

    def _extract_markers(self, node: tree_sitter.Node, source: bytes) -> List[Marker]:
        """Annotations in the declaration's modifiers, in source order."""
        markers: List[Marker] = []
        seen = set()
        for child in node.children:
            if child.type != "modifiers":
                continue
            for mod_child in child.children:
                if mod_child.type not in ("marker_annotation", "annotation"):
                    continue
                marker = self._marker_from_node(mod_child, source)
                if marker and marker.name not in seen:
                    seen.add(marker.name)
                    markers.append(marker)
        return markers

    def _marker_from_node(self, node: tree_sitter.Node, source: bytes) -> Optional[Marker]:
        raw_name = self._get_child_text(node, "name", source)
        if not raw_name:
            return None
        marker = Marker(name=raw_name.rsplit(".", 1)[-1], line=node.start_point.row + 1)

        args = node.child_by_field_name("arguments")
        if args is None:
            return marker

        for arg in args.named_children:
            if arg.type in _COMMENT_NODES:
                continue
            if arg.type == "element_value_pair":
                key = self._get_child_text(arg, "key", source) or "value"
                value = arg.child_by_field_name("value")
                marker.arguments[key] = self._element_values(value, source) if value else []
            else:
                marker.arguments.setdefault("value", []).extend(self._element_values(arg, source))
        return marker

    def _element_values(self, node: tree_sitter.Node, source: bytes) -> List[str]:
        if node.type == "element_value_array_initializer":
            values = []
            for child in node.named_children:
                if child.type not in _COMMENT_NODES:
                    values.extend(self._element_values(child, source))
            return values
        return [self.literal_value(self._text(node, source))]

    @staticmethod
    def literal_value(text: str) -> str:
        """Unquote a Java string literal; other expressions pass through."""
        text = text.strip()
        if len(text) >= 6 and text.startswith('"""') and text.endswith('"""'):
            return text[3:-3].strip()
        if len(text) >= 2 and text.startswith('"') and text.endswith('"') and text.count('"') == 2:
            return text[1:-1]
        return text

    # =========================================================================
    # Call sites
    # =========================================================================

    def _collect_calls(self, body: tree_sitter.Node, source: bytes) -> List[LogCall]:
        """Receiver calls to tracked method names inside one type body.

        Nested type declarations are skipped (they collect their own);
        anonymous classes and lambdas belong to the enclosing type.
        """
        calls: List[LogCall] = []
        stack = list(reversed(body.children))
        while stack:
            node = stack.pop()
            if node.type in _TYPE_NODES:
                continue
            if node.type == "method_invocation":
                call = self._log_call(node, source)
                if call:
                    calls.append(call)
            stack.extend(reversed(node.children))
        return calls

    def _log_call(self, node: tree_sitter.Node, source: bytes) -> Optional[LogCall]:
        name = self._get_child_text(node, "name", source)
        receiver = node.child_by_field_name("object")
        if not name or name not in TRACKED_CALL_NAMES or receiver is None:
            return None

        arguments = []
        arg_list = node.child_by_field_name("arguments")
        if arg_list is not None:
            arguments = [
                self._text(a, source).strip()
                for a in arg_list.named_children
                if a.type not in _COMMENT_NODES
            ]

        return LogCall(
            receiver=self._text(receiver, source),
            method=name,
            arguments=arguments,
            line=node.start_point.row + 1,
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _text(node: tree_sitter.Node, source: bytes) -> str:
        return source[node.start_byte:node.end_byte].decode("utf-8", errors="replace")

    @staticmethod
    def _get_child_text(node: tree_sitter.Node, field_name: str, source: bytes) -> Optional[str]:
        child = node.child_by_field_name(field_name)
        if child:
            return source[child.start_byte:child.end_byte].decode("utf-8", errors="replace")
        return None

    @classmethod
    def _type_name(cls, node: tree_sitter.Node, source: bytes) -> str:
        return _GENERIC_ARGS.sub("", cls._text(node, source)).strip()

    @classmethod
    def _type_list(cls, node: tree_sitter.Node, source: bytes) -> List[str]:
        names = []
        for sub in node.children:
            if sub.type == "type_list":
                for type_node in sub.named_children:
                    names.append(cls._type_name(type_node, source))
        return names

    @classmethod
    def _extract_inheritance(cls, node: tree_sitter.Node, source: bytes) -> tuple:
        """Extract extends and implements clauses from a class/enum/record.

        Returns:
            (extends: list[str], implements: list[str])
        """
        extends: List[str] = []
        implements: List[str] = []

        for child in node.children:
            if child.type == "superclass":
                for sub in child.named_children:
                    extends.append(cls._type_name(sub, source))
                    break
            elif child.type == "super_interfaces":
                implements.extend(cls._type_list(child, source))

        return extends, implements

    @classmethod
    def _extract_interface_extends(cls, node: tree_sitter.Node, source: bytes) -> List[str]:
        extends: List[str] = []
        for child in node.children:
            if child.type == "extends_interfaces":
                extends.extend(cls._type_list(child, source))
        return extends

"""Stereotype classification.

An ordered table of (predicate, stereotype) pairs evaluated against the
structural view of a declaration; the first matching rule wins. Marker
names are compared case-insensitively by suffix, so ``@RestController``
satisfies a ``Controller`` check and ``@SpringBootTest`` a ``Test`` check.
"""

from dataclasses import dataclass
from typing import Callable, FrozenSet, Sequence, Tuple

from ..ast_parser.models import TypeDecl
from .models import SourceSet, Stereotype


@dataclass(frozen=True)
class DeclarationView:
    name: str
    kind: str
    markers: FrozenSet[str]  # lowercased marker names
    supertypes: Tuple[str, ...]  # lowercased simple names of extends + implements
    source_set: SourceSet

    @classmethod
    def of(cls, decl: TypeDecl, source_set: SourceSet) -> "DeclarationView":
        return cls(
            name=decl.name,
            kind=decl.kind,
            markers=frozenset(m.name.lower() for m in decl.markers),
            supertypes=tuple(t.rsplit(".", 1)[-1].lower() for t in decl.extends + decl.implements),
            source_set=source_set,
        )

    def has_marker(self, *suffixes: str) -> bool:
        lowered = [s.lower() for s in suffixes]
        return any(m.endswith(s) for m in self.markers for s in lowered)

    def name_ends_with(self, *suffixes: str) -> bool:
        return self.name.endswith(tuple(suffixes))


def _is_test(d: DeclarationView) -> bool:
    if d.source_set == SourceSet.TEST or d.name_ends_with("Test", "Tests"):
        return True
    # FooIT integration tests; require a lowercase letter before "IT"
    if len(d.name) > 2 and d.name.endswith("IT") and d.name[-3].islower():
        return True
    return d.has_marker("Test")


StereotypeRule = Tuple[Callable[[DeclarationView], bool], Stereotype]

STEREOTYPE_RULES: Sequence[StereotypeRule] = (
    (_is_test, Stereotype.TEST),
    (lambda d: d.has_marker("Controller") or d.name_ends_with("Controller"), Stereotype.CONTROLLER),
    (lambda d: d.has_marker("Service", "Component") or d.name_ends_with("Service"), Stereotype.SERVICE),
    (
        lambda d: d.has_marker("Repository")
        or any(s.endswith("repository") for s in d.supertypes)
        or d.name_ends_with("Repository", "Dao"),
        Stereotype.REPOSITORY,
    ),
    (lambda d: d.has_marker("Entity", "Document", "Table", "Embeddable", "MappedSuperclass"), Stereotype.ENTITY),
    (
        lambda d: d.has_marker("Configuration", "ConfigurationProperties")
        or d.name_ends_with("Config", "Configuration"),
        Stereotype.CONFIG,
    ),
    (lambda d: d.kind == "enum" or d.name_ends_with("Util", "Utils"), Stereotype.UTILITY),
    (lambda d: d.kind == "record", Stereotype.ENTITY),
)


def classify_stereotype(
    decl: TypeDecl,
    source_set: SourceSet,
    rules: Sequence[StereotypeRule] = STEREOTYPE_RULES,
) -> Stereotype:
    """First matching rule's stereotype, PLAIN when none match."""
    view = DeclarationView.of(decl, source_set)
    for predicate, stereotype in rules:
        if predicate(view):
            return stereotype
    return Stereotype.PLAIN

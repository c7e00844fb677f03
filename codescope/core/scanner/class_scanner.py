"""Class metadata extraction from parsed Java files."""

import logging
from typing import Iterable, List, Sequence, Set

from ..ast_parser.models import ParseResult
from .exclusions import is_user_code, source_set_for
from .models import ClassMetadataRecord, ScanWarning
from .stereotypes import classify_stereotype

logger = logging.getLogger(__name__)


class ClassScanner:
    """Turns parsed type declarations into ClassMetadataRecords.

    Annotation type declarations are skipped. A fully-qualified name is
    recorded once per run; later duplicates produce a warning.
    """

    def __init__(self, user_code_packages: Sequence[str] = ()):
        self._user_code_packages = list(user_code_packages)

    def scan(self, parsed: Iterable[ParseResult], warnings: List[ScanWarning]) -> List[ClassMetadataRecord]:
        records: List[ClassMetadataRecord] = []
        seen: Set[str] = set()

        for result in parsed:
            source_set = source_set_for(result.file_path)
            for decl in result.types:
                if decl.kind == "annotation":
                    continue
                if decl.qualified_name in seen:
                    warnings.append(ScanWarning(
                        file_path=result.file_path,
                        message=f"Duplicate declaration of {decl.qualified_name} ignored",
                    ))
                    continue
                seen.add(decl.qualified_name)

                stereotype = classify_stereotype(decl, source_set)
                records.append(ClassMetadataRecord(
                    fully_qualified_name=decl.qualified_name,
                    package_name=decl.package,
                    class_name=decl.name,
                    stereotype=stereotype.value,
                    source_set=source_set.value,
                    relative_path=result.file_path,
                    user_code=is_user_code(result.file_path, decl.name, decl.package, self._user_code_packages),
                    annotations=sorted({m.name for m in decl.markers}),
                    interfaces=sorted(set(decl.implements + decl.extends)),
                ))

        logger.debug(f"Extracted {len(records)} class records")
        return records

"""File walking and classification.

Decides which files of a checkout the scanner looks at, and how.
"""

import logging
import os
from dataclasses import dataclass
from typing import List, Optional

from .models import FileKind
from .spec_documents import looks_like_openapi

logger = logging.getLogger(__name__)

# Directories never descended into (build output, VCS, IDE metadata)
SKIP_DIRECTORIES = frozenset({
    ".git",
    "target",
    "build",
    "node_modules",
    ".idea",
    ".gradle",
    ".github",
    ".mvn",
    "out",
    "bin",
    "dist",
})

BUILD_DESCRIPTORS = frozenset({"pom.xml", "build.gradle", "build.gradle.kts"})
SOURCE_EXTENSIONS = frozenset({".java"})
OPENAPI_EXTENSIONS = frozenset({".yaml", ".yml", ".json"})
SPEC_EXTENSIONS = frozenset({".wsdl", ".xsd", ".feature"})

# Extensions whose contents are scanned for sensitive data
TEXT_EXTENSIONS = frozenset({
    ".java", ".yml", ".yaml", ".xml", ".properties", ".sql", ".log",
    ".wsdl", ".xsd", ".feature", ".txt", ".json", ".csv", ".md",
    ".kt", ".gradle", ".conf", ".env",
})

OPENAPI_HEAD_BYTES = 4096


@dataclass
class ClassifiedFile:
    rel_path: str
    full_path: str
    kind: FileKind
    size: int
    text_eligible: bool = False


def should_skip_directory(dir_name: str) -> bool:
    """Check if a directory should be skipped during file walking.

    Args:
        dir_name: Directory name (not full path)
    """
    return dir_name in SKIP_DIRECTORIES or dir_name.startswith(".")


def _extension(name: str) -> str:
    lowered = name.lower()
    if lowered == ".env" or lowered.endswith("/.env"):
        return ".env"
    return os.path.splitext(lowered)[1]


def classify_file(rel_path: str, head: Optional[str] = None) -> FileKind:
    """Classify one file by name, peeking at its head for OpenAPI documents.

    Args:
        rel_path: Path relative to the repository root, '/'-separated
        head: First bytes of the file decoded as text; only consulted for
            YAML/JSON files not named like an API description
    """
    name = rel_path.rsplit("/", 1)[-1]
    lowered = name.lower()
    ext = _extension(name)

    if ext in SOURCE_EXTENSIONS:
        return FileKind.SOURCE
    if lowered in BUILD_DESCRIPTORS:
        return FileKind.BUILD_DESCRIPTOR
    if ext in SPEC_EXTENSIONS or lowered == "web.xml":
        return FileKind.SPEC_DOCUMENT
    if ext in OPENAPI_EXTENSIONS:
        if lowered.startswith(("openapi", "swagger")):
            return FileKind.SPEC_DOCUMENT
        if head is not None and looks_like_openapi(head):
            return FileKind.SPEC_DOCUMENT
    if ext in TEXT_EXTENSIONS:
        return FileKind.TEXT
    return FileKind.OPAQUE


def is_text_eligible(rel_path: str) -> bool:
    return _extension(rel_path.rsplit("/", 1)[-1]) in TEXT_EXTENSIONS


def _read_head(full_path: str) -> Optional[str]:
    try:
        with open(full_path, "rb") as f:
            return f.read(OPENAPI_HEAD_BYTES).decode("utf-8", errors="replace")
    except OSError as e:
        logger.debug(f"Could not read head of {full_path}: {e}")
        return None


def collect_files(root_dir: str) -> List[ClassifiedFile]:
    """Walk the checkout and classify every regular file, sorted by path.

    Skipped directories are pruned; symbolic links are not followed and
    linked files are ignored.

    Raises:
        OSError: If the root directory itself cannot be listed
    """
    # Surface an unlistable root instead of letting os.walk swallow it
    os.listdir(root_dir)

    files: List[ClassifiedFile] = []
    for dirpath, dirnames, filenames in os.walk(root_dir):
        dirnames[:] = sorted(d for d in dirnames if not should_skip_directory(d))

        for fname in filenames:
            full_path = os.path.join(dirpath, fname)
            if os.path.islink(full_path):
                continue
            try:
                size = os.path.getsize(full_path)
            except OSError:
                continue

            rel_path = os.path.relpath(full_path, root_dir).replace(os.sep, "/")
            head = None
            if _extension(fname) in OPENAPI_EXTENSIONS:
                head = _read_head(full_path)
            kind = classify_file(rel_path, head)
            files.append(ClassifiedFile(
                rel_path=rel_path,
                full_path=full_path,
                kind=kind,
                size=size,
                text_eligible=is_text_eligible(rel_path),
            ))

    files.sort(key=lambda f: f.rel_path)
    return files

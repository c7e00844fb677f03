"""Source-set and user-code heuristics based on path and naming conventions."""

from typing import Iterable, Optional

from .models import SourceSet

TEST_PATH_MARKERS = (
    "/src/test/",
    "/src/it/",
    "/src/integration-test/",
    "/src/integrationtest/",
)

# Path segments whose contents are not authored in the analyzed project
NON_USER_DIRECTORIES = frozenset({
    "generated",
    "generated-sources",
    "generated-test-sources",
    "vendor",
    "vendored",
    "third_party",
    "thirdparty",
    "third-party",
    "fixtures",
    "mock",
    "mocks",
    "node_modules",
})


def _normalize(rel_path: str) -> str:
    return "/" + rel_path.replace("\\", "/").lstrip("/").lower()


def source_set_for(rel_path: str) -> SourceSet:
    """TEST for files under a test source root, MAIN otherwise."""
    normalized = _normalize(rel_path)
    if any(marker in normalized for marker in TEST_PATH_MARKERS):
        return SourceSet.TEST
    return SourceSet.MAIN


def is_non_user_path(rel_path: str) -> bool:
    segments = _normalize(rel_path).split("/")[:-1]
    return any(segment in NON_USER_DIRECTORIES for segment in segments)


def is_mock_class(class_name: Optional[str]) -> bool:
    return bool(class_name) and "mock" in class_name.lower()


def is_user_code(
    rel_path: str,
    class_name: Optional[str],
    package_name: str,
    user_code_packages: Iterable[str] = (),
) -> bool:
    """Whether a declaration counts as code authored in the project.

    Vendored, generated and fixture paths and mock classes never count.
    When package prefixes are configured, the package must match one of
    them; with none configured every remaining class is user code.
    """
    if is_non_user_path(rel_path) or is_mock_class(class_name):
        return False

    prefixes = [p.strip().rstrip(".") for p in user_code_packages if p and p.strip()]
    if not prefixes:
        return True
    return any(package_name == p or package_name.startswith(p + ".") for p in prefixes)

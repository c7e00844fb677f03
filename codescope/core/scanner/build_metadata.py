"""Build descriptor parsing (Maven POM, Gradle build scripts).

Reads group/artifact/version and the targeted Java version. A root
``pom.xml`` wins; without one, nested POMs up to ``MAX_POM_DEPTH``
directories deep are merged field by field, shallowest first. Gradle
scripts are only consulted when no POM is found.
"""

import logging
import re
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional

from .models import BuildInfo, ScanWarning
from .xml_utils import get_text, local_find, local_findall_recursive

logger = logging.getLogger(__name__)

MAX_POM_DEPTH = 4
UNKNOWN_JAVA_VERSION = "unknown"

_JAVA_VERSION_PROPERTIES = (
    "java.version",
    "maven.compiler.release",
    "maven.compiler.target",
    "maven.compiler.source",
)
_COMPILER_SETTINGS = ("release", "target", "source")
_PROPERTY_REF = re.compile(r"\$\{([^}]+)\}")

_GRADLE_GROUP = re.compile(r"""^\s*group\s*=?\s*['"]([^'"]+)['"]""", re.MULTILINE)
_GRADLE_VERSION = re.compile(r"""^\s*version\s*=?\s*['"]([^'"]+)['"]""", re.MULTILINE)
_GRADLE_JAVA = (
    re.compile(r"languageVersion\s*(?:=|\.set\()\s*JavaLanguageVersion\.of\(\s*['\"]?(\d+)"),
    re.compile(r"""sourceCompatibility\s*=\s*(?:JavaVersion\.VERSION_)?['"]?([\d._]+)"""),
    re.compile(r"""targetCompatibility\s*=\s*(?:JavaVersion\.VERSION_)?['"]?([\d._]+)"""),
)


def _depth(rel_path: str) -> int:
    return rel_path.replace("\\", "/").count("/")


class BuildMetadataExtractor:
    """Derives BuildInfo from the build descriptors found by the scanner."""

    def extract(
        self,
        root_path: str,
        descriptors: List[str],
        warnings: List[ScanWarning],
    ) -> BuildInfo:
        """Build info for the repository.

        Args:
            root_path: Absolute repository root
            descriptors: Relative paths of build descriptors found in the tree
            warnings: Collector for unreadable descriptors

        Returns:
            BuildInfo, empty when no descriptor yields anything
        """
        poms = sorted(
            (p for p in descriptors if p.rsplit("/", 1)[-1] == "pom.xml" and _depth(p) <= MAX_POM_DEPTH),
            key=lambda p: (_depth(p), p),
        )
        gradles = sorted(
            (p for p in descriptors if p.rsplit("/", 1)[-1] in ("build.gradle", "build.gradle.kts")),
            key=lambda p: (_depth(p), p),
        )

        info = BuildInfo()
        if "pom.xml" in poms:
            poms = ["pom.xml"]
        for rel_path in poms:
            info = info.merge(self._read(root_path, rel_path, self.parse_pom, warnings))
        if info.is_empty:
            for rel_path in gradles:
                info = info.merge(self._read(root_path, rel_path, self.parse_gradle, warnings))

        if not info.is_empty and not info.java_version:
            info.java_version = UNKNOWN_JAVA_VERSION
        return info

    @staticmethod
    def _read(root_path, rel_path, parse, warnings: List[ScanWarning]) -> Optional[BuildInfo]:
        full_path = f"{root_path.rstrip('/')}/{rel_path}"
        try:
            with open(full_path, "r", encoding="utf-8", errors="replace") as f:
                text = f.read()
            return parse(text)
        except (OSError, ET.ParseError) as e:
            logger.warning(f"Skipping build descriptor {rel_path}: {e}")
            warnings.append(ScanWarning(file_path=rel_path, message=f"Unreadable build descriptor: {e}"))
            return None

    # =========================================================================
    # Maven
    # =========================================================================

    def parse_pom(self, text: str) -> BuildInfo:
        """Parse a POM document.

        Raises:
            ET.ParseError: If the XML is malformed
        """
        root = ET.fromstring(text)
        parent = local_find(root, "parent")
        properties = self._pom_properties(root)

        def resolve(value: str) -> Optional[str]:
            if not value:
                return None
            resolved = _PROPERTY_REF.sub(lambda m: properties.get(m.group(1), m.group(0)), value)
            return resolved.strip() or None

        return BuildInfo(
            group_id=resolve(get_text(root, "groupId") or get_text(parent, "groupId")),
            artifact_id=resolve(get_text(root, "artifactId")),
            version=resolve(get_text(root, "version") or get_text(parent, "version")),
            java_version=resolve(self._pom_java_version(root, properties)),
        )

    @staticmethod
    def _pom_properties(root: ET.Element) -> Dict[str, str]:
        props: Dict[str, str] = {}
        block = local_find(root, "properties")
        if block is not None:
            for child in block:
                if isinstance(child.tag, str) and child.text:
                    props[child.tag.split("}", 1)[-1]] = child.text.strip()
        for key in ("groupId", "artifactId", "version"):
            value = get_text(root, key)
            if value:
                props[f"project.{key}"] = value
        return props

    @staticmethod
    def _pom_java_version(root: ET.Element, properties: Dict[str, str]) -> str:
        for key in _JAVA_VERSION_PROPERTIES:
            if properties.get(key):
                return properties[key]

        for plugin in local_findall_recursive(root, "plugin"):
            if get_text(plugin, "artifactId") != "maven-compiler-plugin":
                continue
            config = local_find(plugin, "configuration")
            for setting in _COMPILER_SETTINGS:
                value = get_text(config, setting)
                if value:
                    return value
        return ""

    # =========================================================================
    # Gradle
    # =========================================================================

    @staticmethod
    def parse_gradle(text: str) -> BuildInfo:
        def first(pattern: re.Pattern) -> Optional[str]:
            match = pattern.search(text)
            return match.group(1).strip() if match else None

        java_version = None
        for pattern in _GRADLE_JAVA:
            java_version = first(pattern)
            if java_version:
                java_version = java_version.replace("_", ".")
                break

        return BuildInfo(
            group_id=first(_GRADLE_GROUP),
            version=first(_GRADLE_VERSION),
            java_version=java_version,
        )

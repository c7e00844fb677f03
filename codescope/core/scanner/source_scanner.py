"""Source scanner: checkout directory → ScanResult.

Walks the tree once, parses each Java file once with tree-sitter, and runs
the class, endpoint and logging passes over the parsed files. Build
descriptors and API description documents are read alongside.

Unreadable or malformed files become ScanWarnings; only a root that cannot
be listed at all is an error.
"""

import logging
import os
import time
import xml.etree.ElementTree as ET
from typing import Dict, List, Optional, Sequence

import yaml

from ..ast_parser import parse_file
from ..ast_parser.models import ParseResult
from ..errors import ScanError
from .build_metadata import BuildMetadataExtractor
from .class_scanner import ClassScanner
from .endpoint_scanner import EndpointScanner
from .file_classifier import ClassifiedFile, collect_files
from .gherkin import parse_feature
from .logger_scanner import LoggerScanner
from .models import FileKind, MetadataDump, OpenApiSpec, ScanResult, ScanWarning, SpecDocument
from .spec_documents import (
    OpenApiOperation,
    WsdlInspector,
    load_openapi,
    openapi_operations,
    parse_servlet_mappings,
)

logger = logging.getLogger(__name__)

DEFAULT_MAX_FILE_BYTES = 2_000_000


class SourceScanner:
    """Extracts classes, endpoints, log statements and metadata from a tree."""

    def __init__(
        self,
        user_code_packages: Sequence[str] = (),
        max_file_bytes: int = DEFAULT_MAX_FILE_BYTES,
    ):
        self._max_file_bytes = max_file_bytes
        self._classes = ClassScanner(user_code_packages)
        self._endpoints = EndpointScanner()
        self._loggers = LoggerScanner()
        self._build = BuildMetadataExtractor()
        self._wsdl = WsdlInspector()

    def scan(self, root_path: str) -> ScanResult:
        """Scan a checkout.

        Args:
            root_path: Repository root directory

        Returns:
            ScanResult; empty for a tree with nothing recognizable

        Raises:
            ScanError: If root_path is missing, not a directory, or unlistable
        """
        start = time.time()
        if not os.path.exists(root_path):
            raise ScanError(f"Scan root does not exist: {root_path}")
        if not os.path.isdir(root_path):
            raise ScanError(f"Scan root is not a directory: {root_path}")
        try:
            files = collect_files(root_path)
        except OSError as e:
            raise ScanError(f"Cannot list scan root {root_path}: {e}") from e

        result = ScanResult(root_path=root_path)
        warnings = result.warnings

        parsed = self._parse_sources(root_path, [f for f in files if f.kind == FileKind.SOURCE], warnings)

        dump = MetadataDump()
        operations: List[OpenApiOperation] = []
        wsdl_files: List[str] = []
        servlet_mappings: Dict[str, List[str]] = {}
        for f in files:
            if f.kind == FileKind.SPEC_DOCUMENT:
                self._read_spec_document(f, dump, operations, wsdl_files, servlet_mappings, result)

        descriptors = [f.rel_path for f in files if f.kind == FileKind.BUILD_DESCRIPTOR]
        result.build_info = self._build.extract(root_path, descriptors, warnings)
        result.metadata_dump = dump

        result.classes = self._classes.scan(parsed, warnings)
        result.endpoints = self._endpoints.scan(parsed, operations, wsdl_files, servlet_mappings)
        result.log_statements = self._loggers.scan(parsed)
        result.text_files = [
            f.rel_path for f in files if f.text_eligible and f.size <= self._max_file_bytes
        ]

        logger.info(
            f"Scanned {root_path}: {len(parsed)} Java files, {len(result.classes)} classes, "
            f"{len(result.endpoints)} endpoints, {len(result.log_statements)} log statements, "
            f"{len(warnings)} warnings in {time.time() - start:.2f}s"
        )
        return result

    def _parse_sources(
        self, root_path: str, sources: List[ClassifiedFile], warnings: List[ScanWarning]
    ) -> List[ParseResult]:
        parsed: List[ParseResult] = []
        for f in sources:
            if f.size > self._max_file_bytes:
                warnings.append(ScanWarning(
                    file_path=f.rel_path,
                    message=f"Skipped: {f.size} bytes exceeds limit of {self._max_file_bytes}",
                ))
                continue

            result = parse_file(f.full_path, root_path)
            result.file_path = f.rel_path
            for error in result.errors:
                if error.severity == "error":
                    warnings.append(ScanWarning(file_path=f.rel_path, message=f"Unreadable source: {error.message}"))
                else:
                    warnings.append(ScanWarning(
                        file_path=f.rel_path,
                        message=f"Syntax errors near line {error.line}; partial extraction kept",
                    ))
            if result.has_fatal_error and not result.types:
                continue
            parsed.append(result)
        return parsed

    def _read_spec_document(
        self,
        f: ClassifiedFile,
        dump: MetadataDump,
        operations: List[OpenApiOperation],
        wsdl_files: List[str],
        servlet_mappings: Dict[str, List[str]],
        result: ScanResult,
    ) -> None:
        text = self._read_text(f, result.warnings)
        if text is None:
            return

        name = f.rel_path.rsplit("/", 1)[-1].lower()
        try:
            if name.endswith(".wsdl"):
                wsdl_files.append(f.rel_path)
                dump.wsdl_documents.append(SpecDocument(file_name=f.rel_path, content=text))
                dump.soap_services.extend(self._wsdl.inspect(text, f.rel_path))
            elif name.endswith(".xsd"):
                dump.xsd_documents.append(SpecDocument(file_name=f.rel_path, content=text))
            elif name.endswith(".feature"):
                feature = parse_feature(text, f.rel_path)
                if feature is not None:
                    result.gherkin_features.append(feature)
            elif name == "web.xml":
                for servlet_class, patterns in parse_servlet_mappings(text).items():
                    servlet_mappings.setdefault(servlet_class, []).extend(patterns)
            else:
                doc = load_openapi(text, f.rel_path)
                if doc is not None:
                    dump.openapi_specs.append(OpenApiSpec(file_name=f.rel_path, content=text))
                    operations.extend(openapi_operations(doc, f.rel_path))
        except (yaml.YAMLError, ET.ParseError) as e:
            logger.warning(f"Skipping malformed document {f.rel_path}: {e}")
            result.warnings.append(ScanWarning(file_path=f.rel_path, message=f"Malformed document: {e}"))

    @staticmethod
    def _read_text(f: ClassifiedFile, warnings: List[ScanWarning]) -> Optional[str]:
        try:
            with open(f.full_path, "r", encoding="utf-8", errors="replace") as fh:
                return fh.read()
        except OSError as e:
            logger.warning(f"Skipping unreadable file {f.rel_path}: {e}")
            warnings.append(ScanWarning(file_path=f.rel_path, message=f"Unreadable file: {e}"))
            return None

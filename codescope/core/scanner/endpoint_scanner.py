"""Endpoint detection.

Recognized dialects, by the markers on a type and its methods:

- Spring MVC: ``@RestController``/``@Controller`` with ``@*Mapping``
  (mappings declared on implemented interfaces are inherited)
- JAX-RS: ``@Path`` with ``@GET``/``@POST``/...
- Spring-WS: ``@Endpoint`` with ``@PayloadRoot``/``@SoapAction``
- Servlets: subclasses of ``HttpServlet`` overriding ``doGet``/``doPost``/...
- Message listeners: ``@KafkaListener``, ``@JmsListener``, ``@RabbitListener``,
  ``@SqsListener``
- Scheduled tasks: ``@Scheduled``

OpenAPI operations are linked to Spring handler methods by operationId;
operations no handler claims are reported on their own.
"""

import logging
import re
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..ast_parser.models import Marker, MethodDecl, ParseResult, TypeDecl
from .models import ApiEndpointRecord, ApiSpecArtifact, EndpointProtocol
from .spec_documents import OpenApiOperation

logger = logging.getLogger(__name__)

SPRING_CONTROLLER_MARKERS = frozenset({"RestController", "Controller"})
SPRING_MAPPING_MARKERS: Dict[str, Optional[str]] = {
    "GetMapping": "GET",
    "PostMapping": "POST",
    "PutMapping": "PUT",
    "DeleteMapping": "DELETE",
    "PatchMapping": "PATCH",
    "RequestMapping": None,
}
JAXRS_PATH_MARKER = "Path"
JAXRS_HTTP_METHODS = frozenset({"GET", "POST", "PUT", "DELETE", "PATCH", "HEAD", "OPTIONS"})
SOAP_ENDPOINT_MARKERS = frozenset({"Endpoint"})
SOAP_METHOD_MARKERS = frozenset({"PayloadRoot", "SoapAction"})
SERVLET_METHODS = {
    "doGet": "GET",
    "doPost": "POST",
    "doPut": "PUT",
    "doDelete": "DELETE",
    "doPatch": "PATCH",
    "doHead": "HEAD",
    "doOptions": "OPTIONS",
    "doTrace": "TRACE",
}
# Listener marker -> attributes naming the destination, in preference order
MESSAGING_MARKERS: Dict[str, Tuple[str, ...]] = {
    "KafkaListener": ("topics", "topicPattern", "value", "id"),
    "JmsListener": ("destination", "value"),
    "RabbitListener": ("queues", "queuesToDeclare", "value"),
    "SqsListener": ("value", "queueNames"),
}
SCHEDULED_MARKER = "Scheduled"
SCHEDULED_ATTRIBUTES = (
    "cron",
    "fixedRate",
    "fixedRateString",
    "fixedDelay",
    "fixedDelayString",
)

_MULTI_SLASH = re.compile(r"/{2,}")

SpringMapping = Tuple[Optional[str], str]  # (http method, normalized path)


def normalize_segment(segment: Optional[str]) -> str:
    """'users/' -> '/users'; blank -> ''."""
    if not segment or not segment.strip():
        return ""
    value = _MULTI_SLASH.sub("/", segment.strip())
    if not value.startswith("/"):
        value = "/" + value
    if len(value) > 1 and value.endswith("/"):
        value = value.rstrip("/") or "/"
    return value


def combine_paths(base: Optional[str], path: Optional[str]) -> str:
    """Join a type-level and a method-level path; empty result is '/'."""
    left = normalize_segment(base)
    right = normalize_segment(path)
    left = "" if left == "/" else left
    right = "" if right == "/" else right
    return (left + right) or "/"


def _request_method(value: str) -> str:
    """'RequestMethod.GET' -> 'GET'"""
    return value.strip().rsplit(".", 1)[-1].strip("\"'").upper()


def _markers_named(markers: Iterable[Marker], names: Iterable[str]) -> List[Marker]:
    wanted = set(names)
    return [m for m in markers if m.name in wanted]


def _simple_name(type_name: str) -> str:
    return type_name.rsplit(".", 1)[-1]


class EndpointScanner:
    """Builds ApiEndpointRecords from parsed sources and spec documents."""

    def scan(
        self,
        parsed: Sequence[ParseResult],
        openapi_operations: Sequence[OpenApiOperation] = (),
        wsdl_files: Sequence[str] = (),
        servlet_mappings: Optional[Dict[str, List[str]]] = None,
    ) -> List[ApiEndpointRecord]:
        """Detect endpoints across all parsed files.

        Args:
            parsed: Every parsed Java file of the repository
            openapi_operations: Operations read from OpenAPI documents
            wsdl_files: Relative paths of WSDL documents (SOAP artifacts)
            servlet_mappings: servlet class -> URL patterns from web.xml
        """
        interface_mappings = self._collect_interface_mappings(parsed)
        openapi_index: Dict[str, List[int]] = {}
        for idx, op in enumerate(openapi_operations):
            if op.operation_id:
                openapi_index.setdefault(op.operation_id.lower(), []).append(idx)
        consumed: Set[int] = set()

        wsdl_artifacts = [ApiSpecArtifact(type="WSDL", name=f, reference=f) for f in wsdl_files]
        servlet_mappings = servlet_mappings or {}

        records: List[ApiEndpointRecord] = []
        for result in parsed:
            for decl in result.types:
                if decl.kind in ("interface", "annotation"):
                    continue
                marker_names = {m.name for m in decl.markers}

                if marker_names & SPRING_CONTROLLER_MARKERS:
                    records.extend(self._spring_endpoints(
                        decl, interface_mappings, openapi_operations, openapi_index, consumed,
                    ))
                if JAXRS_PATH_MARKER in marker_names or self._has_jaxrs_methods(decl):
                    records.extend(self._jaxrs_endpoints(decl))
                if marker_names & SOAP_ENDPOINT_MARKERS:
                    records.extend(self._soap_endpoints(decl, wsdl_artifacts))
                if any(_simple_name(t) == "HttpServlet" for t in decl.extends):
                    records.extend(self._servlet_endpoints(decl, servlet_mappings))

                records.extend(self._listener_endpoints(decl))

        for idx, op in enumerate(openapi_operations):
            if idx in consumed:
                continue
            records.append(ApiEndpointRecord(
                protocol=EndpointProtocol.REST.value,
                http_method=op.http_method,
                path_or_operation=normalize_segment(op.path) or "/",
                controller_class=f"OpenAPI:{op.file_name}",
                controller_method=op.operation_id,
                spec_artifacts=[ApiSpecArtifact(type="OPENAPI", name=op.file_name, reference=op.file_name)],
            ))

        logger.debug(f"Detected {len(records)} endpoints")
        return records

    # =========================================================================
    # Spring MVC
    # =========================================================================

    def _collect_interface_mappings(
        self, parsed: Sequence[ParseResult]
    ) -> Dict[str, Dict[str, List[SpringMapping]]]:
        """interface simple name -> method name -> mappings."""
        mappings: Dict[str, Dict[str, List[SpringMapping]]] = {}
        for result in parsed:
            for decl in result.types:
                if decl.kind != "interface":
                    continue
                for method in decl.methods:
                    method_mappings = self._spring_mappings(method.markers, include_method=True)
                    if method_mappings:
                        mappings.setdefault(decl.name, {}).setdefault(method.name, []).extend(method_mappings)
        return mappings

    def _spring_mappings(self, markers: Iterable[Marker], include_method: bool) -> List[SpringMapping]:
        results: List[SpringMapping] = []
        for marker in _markers_named(markers, SPRING_MAPPING_MARKERS):
            paths = marker.values("value", "path") or [""]
            methods: List[Optional[str]] = [None]
            if include_method:
                explicit = [_request_method(v) for v in marker.values("method") if v.strip()]
                implicit = SPRING_MAPPING_MARKERS[marker.name]
                methods = explicit or [implicit]
            for path in paths:
                for method in methods:
                    results.append((method, normalize_segment(path)))
        return results

    def _spring_endpoints(
        self,
        decl: TypeDecl,
        interface_mappings: Dict[str, Dict[str, List[SpringMapping]]],
        openapi_operations: Sequence[OpenApiOperation],
        openapi_index: Dict[str, List[int]],
        consumed: Set[int],
    ) -> List[ApiEndpointRecord]:
        base_paths = [p for _, p in self._spring_mappings(decl.markers, include_method=False) if p] or [""]
        interfaces = [_simple_name(t) for t in decl.implements]
        records: List[ApiEndpointRecord] = []

        for method in decl.methods:
            if method.is_constructor:
                continue
            mappings = self._spring_mappings(method.markers, include_method=True)
            if not mappings:
                for iface in interfaces:
                    mappings.extend(interface_mappings.get(iface, {}).get(method.name, []))

            matches = openapi_index.get(method.name.lower(), [])
            artifacts = self._openapi_artifacts(openapi_operations, matches)

            if not mappings:
                for idx in matches:
                    consumed.add(idx)
                    op = openapi_operations[idx]
                    records.append(ApiEndpointRecord(
                        protocol=EndpointProtocol.REST.value,
                        http_method=op.http_method,
                        path_or_operation=normalize_segment(op.path) or "/",
                        controller_class=decl.qualified_name,
                        controller_method=method.name,
                        spec_artifacts=list(artifacts),
                    ))
                continue

            consumed.update(matches)
            for http_method, path in mappings:
                for base in base_paths:
                    records.append(ApiEndpointRecord(
                        protocol=EndpointProtocol.REST.value,
                        http_method=http_method,
                        path_or_operation=combine_paths(base, path),
                        controller_class=decl.qualified_name,
                        controller_method=method.name,
                        spec_artifacts=list(artifacts),
                    ))
        return records

    @staticmethod
    def _openapi_artifacts(
        operations: Sequence[OpenApiOperation], matches: Sequence[int]
    ) -> List[ApiSpecArtifact]:
        artifacts: List[ApiSpecArtifact] = []
        seen: Set[str] = set()
        for idx in matches:
            file_name = operations[idx].file_name
            if file_name not in seen:
                seen.add(file_name)
                artifacts.append(ApiSpecArtifact(type="OPENAPI", name=file_name, reference=file_name))
        return artifacts

    # =========================================================================
    # JAX-RS
    # =========================================================================

    @staticmethod
    def _jaxrs_method(method: MethodDecl) -> Optional[str]:
        for marker in method.markers:
            if marker.name.upper() == marker.name and marker.name in JAXRS_HTTP_METHODS:
                return marker.name
        return None

    def _has_jaxrs_methods(self, decl: TypeDecl) -> bool:
        return any(self._jaxrs_method(m) for m in decl.methods)

    def _jaxrs_endpoints(self, decl: TypeDecl) -> List[ApiEndpointRecord]:
        base_paths = [
            normalize_segment((m.values("value") or [""])[0])
            for m in _markers_named(decl.markers, [JAXRS_PATH_MARKER])
        ] or [""]

        records: List[ApiEndpointRecord] = []
        for method in decl.methods:
            http_method = self._jaxrs_method(method)
            if not http_method:
                continue
            path_markers = _markers_named(method.markers, [JAXRS_PATH_MARKER])
            method_path = (path_markers[0].values("value") or [""])[0] if path_markers else ""
            for base in base_paths:
                records.append(ApiEndpointRecord(
                    protocol=EndpointProtocol.JAXRS.value,
                    http_method=http_method,
                    path_or_operation=combine_paths(base, method_path),
                    controller_class=decl.qualified_name,
                    controller_method=method.name,
                ))
        return records

    # =========================================================================
    # Spring-WS
    # =========================================================================

    def _soap_endpoints(self, decl: TypeDecl, wsdl_artifacts: List[ApiSpecArtifact]) -> List[ApiEndpointRecord]:
        records: List[ApiEndpointRecord] = []
        for method in decl.methods:
            soap_markers = _markers_named(method.markers, SOAP_METHOD_MARKERS)
            if not soap_markers:
                continue
            operation = method.name
            for marker in soap_markers:
                local_part = marker.values("localPart")
                if marker.name == "PayloadRoot" and local_part and local_part[0]:
                    operation = local_part[0]
                    break
            records.append(ApiEndpointRecord(
                protocol=EndpointProtocol.SOAP.value,
                http_method=None,
                path_or_operation=operation,
                controller_class=decl.qualified_name,
                controller_method=method.name,
                spec_artifacts=list(wsdl_artifacts),
            ))
        return records

    # =========================================================================
    # Servlets
    # =========================================================================

    def _servlet_endpoints(self, decl: TypeDecl, servlet_mappings: Dict[str, List[str]]) -> List[ApiEndpointRecord]:
        patterns = servlet_mappings.get(decl.qualified_name) or servlet_mappings.get(decl.name)
        if not patterns:
            patterns = next(
                (v for k, v in servlet_mappings.items() if _simple_name(k) == decl.name and v), None
            )
        if not patterns:
            web_servlet = decl.marker("WebServlet")
            if web_servlet is not None:
                patterns = web_servlet.values("urlPatterns", "value")
        if not patterns:
            patterns = [f"/{decl.name}"]

        records: List[ApiEndpointRecord] = []
        for method in decl.methods:
            http_method = SERVLET_METHODS.get(method.name)
            if not http_method:
                continue
            for pattern in patterns:
                records.append(ApiEndpointRecord(
                    protocol=EndpointProtocol.SERVLET.value,
                    http_method=http_method,
                    path_or_operation=pattern,
                    controller_class=decl.qualified_name,
                    controller_method=method.name,
                    spec_artifacts=[ApiSpecArtifact(type="SERVLET_MAPPING", name=pattern, reference=pattern)],
                ))
        return records

    # =========================================================================
    # Message listeners and scheduled tasks
    # =========================================================================

    def _listener_endpoints(self, decl: TypeDecl) -> List[ApiEndpointRecord]:
        records: List[ApiEndpointRecord] = []
        for method in decl.methods:
            for marker in method.markers:
                if marker.name in MESSAGING_MARKERS:
                    destinations = marker.values(*MESSAGING_MARKERS[marker.name]) or [method.name]
                    for destination in destinations:
                        records.append(ApiEndpointRecord(
                            protocol=EndpointProtocol.MESSAGING.value,
                            http_method=None,
                            path_or_operation=destination,
                            controller_class=decl.qualified_name,
                            controller_method=method.name,
                            spec_artifacts=[ApiSpecArtifact(type="LISTENER", name=marker.name)],
                        ))
                elif marker.name == SCHEDULED_MARKER:
                    trigger = next(
                        (f"{attr}={marker.values(attr)[0]}" for attr in SCHEDULED_ATTRIBUTES if marker.values(attr)),
                        method.name,
                    )
                    records.append(ApiEndpointRecord(
                        protocol=EndpointProtocol.SCHEDULED.value,
                        http_method=None,
                        path_or_operation=trigger,
                        controller_class=decl.qualified_name,
                        controller_method=method.name,
                    ))
        return records

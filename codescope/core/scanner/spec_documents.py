"""Machine-readable API descriptions found in the tree.

- OpenAPI / Swagger documents (YAML or JSON), loaded with PyYAML
- WSDL documents, summarized into services, ports and operations
- web.xml servlet mappings, used by the servlet endpoint detector
"""

import logging
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import yaml

from .models import SoapPortSummary, SoapServiceSummary
from .xml_utils import get_text, local_findall, strip_prefix

logger = logging.getLogger(__name__)

HTTP_METHODS = ("get", "post", "put", "delete", "patch", "head", "options", "trace")

_OPENAPI_HEAD = re.compile(r"""^\s*["']?(openapi|swagger)["']?\s*:""", re.MULTILINE)


@dataclass
class OpenApiOperation:
    file_name: str
    path: str
    http_method: str  # upper-case
    operation_id: Optional[str]


def looks_like_openapi(head: str) -> bool:
    """Cheap check on the first bytes of a YAML/JSON file."""
    return bool(_OPENAPI_HEAD.search(head))


def load_openapi(text: str, file_name: str) -> Optional[Dict[str, Any]]:
    """Parse an OpenAPI/Swagger document; None when it is not one.

    Raises:
        yaml.YAMLError: If the document is not valid YAML/JSON
    """
    doc = yaml.safe_load(text)
    if not isinstance(doc, dict) or not ("openapi" in doc or "swagger" in doc):
        logger.debug(f"{file_name} is not an OpenAPI document")
        return None
    return doc


def openapi_operations(doc: Dict[str, Any], file_name: str) -> List[OpenApiOperation]:
    operations: List[OpenApiOperation] = []
    paths = doc.get("paths") or {}
    if not isinstance(paths, dict):
        return operations

    for path, item in paths.items():
        if not isinstance(item, dict):
            continue
        for method in HTTP_METHODS:
            op = item.get(method)
            if not isinstance(op, dict):
                continue
            operation_id = op.get("operationId")
            operations.append(OpenApiOperation(
                file_name=file_name,
                path=str(path),
                http_method=method.upper(),
                operation_id=str(operation_id) if operation_id else None,
            ))
    return operations


class WsdlInspector:
    """Summarizes WSDL 1.1 documents.

    Ports resolve their binding; a binding without operations falls back to
    its portType's operations. A document with bindings but no service
    element yields one synthesized service named after the definitions.
    """

    def inspect(self, text: str, file_name: str) -> List[SoapServiceSummary]:
        if not text or not text.strip():
            return []
        try:
            root = ET.fromstring(text)
        except ET.ParseError as e:
            logger.debug(f"Failed to inspect WSDL {file_name}: {e}")
            return []

        port_type_ops = {
            pt.get("name", f"portType-{i}"): self._operation_names(pt)
            for i, pt in enumerate(local_findall(root, "portType"))
        }

        bindings: Dict[str, List[str]] = {}
        for i, binding in enumerate(local_findall(root, "binding")):
            name = (binding.get("name") or f"binding-{i}").strip()
            operations = self._operation_names(binding)
            if not operations:
                operations = port_type_ops.get(strip_prefix(binding.get("type")), [])
            bindings[name] = operations

        services = local_findall(root, "service")
        if services:
            summaries = []
            for service in services:
                ports = []
                for idx, port in enumerate(local_findall(service, "port")):
                    port_name = (port.get("name") or f"port-{idx}").strip()
                    ports.append(SoapPortSummary(
                        port_name=port_name,
                        operations=list(bindings.get(strip_prefix(port.get("binding")), [])),
                    ))
                summaries.append(SoapServiceSummary(
                    file_name=file_name,
                    service_name=(service.get("name") or file_name).strip(),
                    ports=ports,
                ))
            return summaries

        if not bindings:
            return []
        ports = [SoapPortSummary(port_name=name, operations=list(ops)) for name, ops in bindings.items()]
        return [SoapServiceSummary(
            file_name=file_name,
            service_name=(root.get("name") or file_name).strip(),
            ports=ports,
        )]

    @staticmethod
    def _operation_names(element: ET.Element) -> List[str]:
        return [
            (op.get("name") or f"operation-{j}").strip()
            for j, op in enumerate(local_findall(element, "operation"))
        ]


def parse_servlet_mappings(text: str) -> Dict[str, List[str]]:
    """servlet-class -> url-patterns from a web.xml document.

    Raises:
        ET.ParseError: If the XML is malformed
    """
    root = ET.fromstring(text)
    class_by_name: Dict[str, str] = {}
    for servlet in local_findall(root, "servlet"):
        name = get_text(servlet, "servlet-name")
        servlet_class = get_text(servlet, "servlet-class")
        if name and servlet_class:
            class_by_name[name] = servlet_class

    mappings: Dict[str, List[str]] = {}
    for mapping in local_findall(root, "servlet-mapping"):
        servlet_class = class_by_name.get(get_text(mapping, "servlet-name"))
        if not servlet_class:
            continue
        patterns = [
            p.text.strip() for p in local_findall(mapping, "url-pattern") if p.text and p.text.strip()
        ]
        mappings.setdefault(servlet_class, []).extend(patterns)
    return mappings

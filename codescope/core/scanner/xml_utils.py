"""ElementTree helpers that ignore XML namespaces.

Maven POMs, web.xml and WSDL files are read with or without their default
namespace, so every lookup goes by local name.
"""

import xml.etree.ElementTree as ET
from typing import List, Optional


def strip_namespace(tag: str) -> str:
    """'{http://maven.apache.org/POM/4.0.0}project' -> 'project'"""
    if tag.startswith("{"):
        return tag.split("}", 1)[1]
    return tag


def local_find(element: ET.Element, local_name: str) -> Optional[ET.Element]:
    """Find a child element by local name, ignoring namespaces."""
    for child in element:
        if strip_namespace(child.tag) == local_name:
            return child
    return None


def local_findall(element: ET.Element, local_name: str) -> List[ET.Element]:
    """Find all child elements by local name, ignoring namespaces."""
    return [child for child in element if strip_namespace(child.tag) == local_name]


def local_findall_recursive(element: ET.Element, local_name: str) -> List[ET.Element]:
    """Find all descendant elements by local name, ignoring namespaces."""
    return [node for node in element.iter() if strip_namespace(node.tag) == local_name]


def get_text(element: Optional[ET.Element], child_name: str) -> str:
    """Text of a named child element, or empty string."""
    if element is None:
        return ""
    child = local_find(element, child_name)
    if child is not None and child.text:
        return child.text.strip()
    return ""


def strip_prefix(qname: Optional[str]) -> str:
    """'tns:OrderBinding' -> 'OrderBinding'"""
    if not qname:
        return ""
    return qname.split(":", 1)[-1].strip()

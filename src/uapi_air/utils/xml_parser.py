# uapi_air/utils/xml_parser.py
"""
XML parsing utilities for uAPI SOAP responses.

Provides helper functions for parsing SOAP XML responses with proper
namespace handling and for decoding elements into the nested mapping
(DecodedNode) consumed by the response normalizers.

Decoding rules:
- Keys keep the prefix used in the document (``air:AirSegment``,
  ``common_v52_0:ErrorInfo``); unprefixed elements keep their bare name.
- Attributes and child elements share one mapping.
- An element with neither attributes nor children decodes to its text.
- An element with attributes (or children) and text keeps the text under '_'.
- A child tag that occurs more than once becomes a list.
- Namespace declarations made on an element are kept as ``xmlns:<prefix>``
  leaves, so fault details can be reproduced verbatim.
"""

import logging
from typing import Any

from lxml import etree
from pydantic import BaseModel, ConfigDict

from .accessor import TEXT_KEY, DecodedNode

logger: logging.Logger = logging.getLogger(__name__)

SOAP_NAMESPACE: str = 'http://schemas.xmlsoap.org/soap/envelope/'

# Children of SOAP Fault that are copied into the fault record
FAULT_FIELDS: tuple[str, ...] = ('faultcode', 'faultstring', 'detail')


class DecodedResponse(BaseModel):
    """
    A decoded SOAP envelope: exactly one of ``body`` or ``fault`` is set.

    Attributes:
        root_name: Qualified name of the response element (e.g.
                   'air:LowFareSearchRsp'), or 'SOAP:Fault'.
        body: Decoded content of the response element.
        fault: Fault record {faultcode, faultstring, detail}.
    """

    model_config = ConfigDict(frozen=True)

    root_name: str
    body: DecodedNode | None = None
    fault: DecodedNode | None = None

    @property
    def is_fault(self) -> bool:
        return self.fault is not None


def parse_soap_response(xml_string: str) -> etree._Element:
    """
    Parse a SOAP XML response string into an lxml Element.

    Args:
        xml_string: The raw XML response from the SOAP API.

    Returns:
        The root element of the parsed XML tree.

    Raises:
        etree.XMLSyntaxError: If the XML is malformed.
    """
    return etree.fromstring(xml_string.encode('utf-8'))


def extract_soap_body(root: etree._Element) -> etree._Element:
    """
    Extract the Body element from a SOAP envelope.

    Raises:
        ValueError: If no Body element is found.
    """
    body: etree._Element | None = root.find(f'.//{{{SOAP_NAMESPACE}}}Body')

    if body is None:
        raise ValueError('No SOAP Body element found in response')

    return body


def qualified_name(element: etree._Element) -> str:
    """Return the element tag as written in the document (``prefix:local``)."""
    local_name: str = etree.QName(element).localname
    if element.prefix:
        return f'{element.prefix}:{local_name}'
    return local_name


def _attribute_name(element: etree._Element, name: str) -> str:
    if not name.startswith('{'):
        return name
    qname: etree.QName = etree.QName(name)
    for prefix, uri in element.nsmap.items():
        if uri == qname.namespace and prefix:
            return f'{prefix}:{qname.localname}'
    return qname.localname


def _new_declarations(element: etree._Element) -> dict[str, str]:
    # nsmap includes inherited declarations; keep only the ones made here
    parent: etree._Element | None = element.getparent()
    inherited: dict[str | None, str] = dict(parent.nsmap) if parent is not None else {}
    declared: dict[str, str] = {}
    for prefix, uri in element.nsmap.items():
        if inherited.get(prefix) != uri:
            key: str = f'xmlns:{prefix}' if prefix else 'xmlns'
            declared[key] = uri
    return declared


def element_to_node(element: etree._Element) -> DecodedNode | str:
    """
    Decode an lxml element into a DecodedNode (or a bare string leaf).

    Example:
        >>> el = etree.fromstring('<a K="1"><b>x</b><b>y</b></a>')
        >>> element_to_node(el)
        {'K': '1', 'b': ['x', 'y']}
    """
    node: DecodedNode = {}

    for name, value in element.attrib.items():
        node[_attribute_name(element, name)] = value

    node.update(_new_declarations(element))

    for child in element:
        # Skip comments and processing instructions
        if not isinstance(child.tag, str):
            continue
        key: str = qualified_name(child)
        value: DecodedNode | str = element_to_node(child)
        if key not in node:
            node[key] = value
        elif isinstance(node[key], list):
            node[key].append(value)
        else:
            node[key] = [node[key], value]

    text: str | None = element.text.strip() if element.text else None

    if not node:
        return text or ''
    if text:
        node[TEXT_KEY] = text
    return node


def _decode_fault(fault: etree._Element) -> DecodedNode:
    decoded: DecodedNode | str = element_to_node(fault)
    record: DecodedNode = {}
    if isinstance(decoded, dict):
        for field in FAULT_FIELDS:
            if field in decoded:
                record[field] = decoded[field]
    return record


def decode_envelope(xml_string: str) -> DecodedResponse:
    """
    Decode a complete SOAP envelope into a DecodedResponse.

    Args:
        xml_string: The raw response text.

    Returns:
        DecodedResponse with ``fault`` set when the body holds a SOAP Fault,
        otherwise ``body`` holding the decoded response element.

    Raises:
        etree.XMLSyntaxError: If the XML is malformed.
        ValueError: If the envelope has no Body or the Body is empty.
    """
    root: etree._Element = parse_soap_response(xml_string)
    body: etree._Element = extract_soap_body(root)

    payload: list[etree._Element] = [
        child for child in body if isinstance(child.tag, str)
    ]
    if not payload:
        raise ValueError('SOAP Body element is empty')

    element: etree._Element = payload[0]
    root_name: str = qualified_name(element)

    if etree.QName(element).namespace == SOAP_NAMESPACE and etree.QName(element).localname == 'Fault':
        logger.debug('SOAP Fault found in response')
        return DecodedResponse(root_name=root_name, fault=_decode_fault(element))

    decoded: Any = element_to_node(element)
    logger.debug(f'Decoded response element {root_name!r}')
    return DecodedResponse(
        root_name=root_name,
        body=decoded if isinstance(decoded, dict) else {},
    )

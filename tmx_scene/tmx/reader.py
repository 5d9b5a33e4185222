"""
XML document reader for TMX / TSX / TX files

=============================================================================
ROLE
=============================================================================

This is the leaf of the loader: it turns raw document bytes into an
xml.etree.ElementTree element tree and offers typed attribute accessors.
It knows nothing about maps, tilesets or layers.

Every element gives us what the rest of the loader needs:

    elem.tag       -> tag name ('map', 'tileset', 'layer', ...)
    elem.attrib    -> ordered attribute mapping
    list(elem)     -> ordered child elements
    elem.text      -> optional text content (tile data payloads)

Unknown attributes and elements are simply never looked at, so files
written by newer versions of Tiled still load.

=============================================================================
ERRORS
=============================================================================

Syntax errors become MalformedDocument with the (line, column) reported by
the parser. A missing mandatory attribute, or one that does not convert to
the requested type, becomes MalformedDocument naming the element, e.g.

    missing attribute 'firstgid' (in <tileset source="terrain.tsx">)

=============================================================================
"""

import logging
import xml.etree.ElementTree as ET
from typing import Optional, Union

from ..errors import MalformedDocument

logger = logging.getLogger(__name__)

# Attributes that identify an element well enough for an error message
_IDENTIFYING_ATTRIBUTES = ('id', 'name', 'firstgid', 'source', 'template')

_MISSING = object()


def parse_document(data: Union[bytes, str], reference: str = "<memory>") -> ET.Element:
    """
    Parse a whole XML document and return its root element.

    Parameters:
    -----------
    data : bytes or str
        Raw document content
    reference : str
        Name of the document, only used in error messages

    Raises:
    -------
    MalformedDocument : If the document is not well-formed XML
    """
    try:
        root = ET.fromstring(data)
    except ET.ParseError as e:
        line, column = e.position
        logger.debug("XML syntax error in %s at %d:%d", reference, line, column)
        raise MalformedDocument(f"invalid XML: {e}", reference=reference,
                                line=line, column=column) from e

    logger.debug("Parsed %s: root <%s>", reference, root.tag)
    return root


def describe(elem: ET.Element) -> str:
    """Short human-readable tag for error messages: <layer name="Ground">"""
    parts = [elem.tag]
    for name in _IDENTIFYING_ATTRIBUTES:
        value = elem.get(name)
        if value is not None:
            parts.append(f'{name}="{value}"')
    return '<' + ' '.join(parts) + '>'


def expect_tag(elem: ET.Element, tag: str, reference: Optional[str] = None) -> ET.Element:
    """Check the root element of a document has the expected tag."""
    if elem.tag != tag:
        raise MalformedDocument(f"expected <{tag}> root element, found <{elem.tag}>",
                                reference=reference)
    return elem


# =============================================================================
# TYPED ATTRIBUTE ACCESS
# =============================================================================

def _convert(elem: ET.Element, name: str, raw: str, kind, label: str):
    try:
        return kind(raw)
    except ValueError as e:
        raise MalformedDocument(f"attribute '{name}' is not a valid {label}: {raw!r}",
                                element=describe(elem)) from e


def _parse_int(raw: str) -> int:
    # Tiled writes integers, but some exporters write "32.0"
    value = float(raw)
    if not value.is_integer():
        raise ValueError(raw)
    return int(value)


def parse_bool(raw: str) -> bool:
    lowered = raw.strip().lower()
    if lowered in ('1', 'true'):
        return True
    if lowered in ('0', 'false'):
        return False
    raise ValueError(raw)


def get_str(elem: ET.Element, name: str, default: Optional[str] = None) -> Optional[str]:
    return elem.get(name, default)


def get_int(elem: ET.Element, name: str, default=None):
    raw = elem.get(name)
    if raw is None:
        return default
    return _convert(elem, name, raw, _parse_int, "integer")


def get_float(elem: ET.Element, name: str, default=None):
    raw = elem.get(name)
    if raw is None:
        return default
    return _convert(elem, name, raw, float, "number")


def get_bool(elem: ET.Element, name: str, default=None):
    """Boolean attribute; TMX writes 0/1, property values write true/false."""
    raw = elem.get(name)
    if raw is None:
        return default
    return _convert(elem, name, raw, parse_bool, "boolean")


def _require(elem: ET.Element, name: str) -> str:
    raw = elem.get(name, _MISSING)
    if raw is _MISSING:
        raise MalformedDocument(f"missing attribute '{name}'", element=describe(elem))
    return raw


def require_str(elem: ET.Element, name: str) -> str:
    return _require(elem, name)


def require_int(elem: ET.Element, name: str) -> int:
    return _convert(elem, name, _require(elem, name), _parse_int, "integer")


def require_float(elem: ET.Element, name: str) -> float:
    return _convert(elem, name, _require(elem, name), float, "number")

"""
Custom properties and colors

Tiled allows adding custom properties to maps, layers, tilesets, tiles and
objects. Properties are key-value pairs with typed values:

    <properties>
        <property name="solid" type="bool" value="true"/>
        <property name="health" type="int" value="100"/>
        <property name="tint" type="color" value="#ff336699"/>
        <property name="description" value="A wooden door"/>   (string)
        <property name="notes">multi-line
    strings are stored as text</property>
    </properties>

The value types form a closed set (PropertyType). Properties are stored in
an insertion-ordered dict keyed by name.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, NamedTuple, Optional, Tuple
import xml.etree.ElementTree as ET

from ..errors import MalformedDocument, UnsupportedFeature
from .reader import describe, parse_bool, require_str

logger = logging.getLogger(__name__)


# =============================================================================
# COLOR
# =============================================================================

class Color(NamedTuple):
    """RGBA color with 0-255 channels."""
    r: int
    g: int
    b: int
    a: int = 255

    @classmethod
    def parse(cls, text: str) -> 'Color':
        """
        Parse a Tiled color string.

        Tiled writes colors as #AARRGGBB, or #RRGGBB when fully opaque.
        The leading '#' is optional.

        Raises:
        -------
        ValueError : If the text is not 6 or 8 hex digits
        """
        digits = text.strip().lstrip('#')
        if len(digits) not in (6, 8):
            raise ValueError(f"invalid color {text!r}")
        value = int(digits, 16)
        if len(digits) == 6:
            return cls((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF, 255)
        return cls((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF,
                   (value >> 24) & 0xFF)

    def as_floats(self) -> Tuple[float, float, float, float]:
        """Channels normalized to 0.0-1.0, in (r, g, b, a) order."""
        return (self.r / 255.0, self.g / 255.0, self.b / 255.0, self.a / 255.0)


def parse_color_attribute(elem: ET.Element, name: str) -> Optional[Color]:
    """Optional color attribute (tintcolor, backgroundcolor, trans)."""
    raw = elem.get(name)
    if not raw:
        return None
    try:
        return Color.parse(raw)
    except ValueError as e:
        raise MalformedDocument(f"attribute '{name}' is not a valid color: {raw!r}",
                                element=describe(elem)) from e


# =============================================================================
# PROPERTY
# =============================================================================

class PropertyType(Enum):
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    COLOR = "color"
    FILE = "file"


@dataclass(frozen=True)
class Property:
    """
    A single typed custom property.

    ==========================================================================
    VALUE TYPES
    ==========================================================================

    type        Python value
    ----        ------------
    STRING      str
    INT         int        (Tiled's "object" references are read as INT)
    FLOAT       float
    BOOL        bool
    COLOR       Color, or None for an unset color
    FILE        str        (path relative to the document)

    ==========================================================================
    """
    name: str
    type: PropertyType
    value: Any

    @classmethod
    def from_xml(cls, elem: ET.Element) -> 'Property':
        name = require_str(elem, 'name')
        type_name = elem.get('type', 'string')
        raw = elem.get('value')
        if raw is None:
            raw = elem.text or ''

        if type_name == 'class':
            raise UnsupportedFeature("class properties", f"property '{name}'")
        if type_name == 'object':
            type_name = 'int'

        try:
            prop_type = PropertyType(type_name)
        except ValueError as e:
            raise MalformedDocument(f"invalid property type {type_name!r}",
                                    element=describe(elem)) from e

        try:
            if prop_type is PropertyType.INT:
                value = int(raw) if raw else 0
            elif prop_type is PropertyType.FLOAT:
                value = float(raw) if raw else 0.0
            elif prop_type is PropertyType.BOOL:
                value = parse_bool(raw) if raw else False
            elif prop_type is PropertyType.COLOR:
                value = Color.parse(raw) if raw else None
            else:
                value = raw
        except ValueError as e:
            raise MalformedDocument(f"invalid {type_name} value {raw!r}",
                                    element=describe(elem)) from e

        return cls(name=name, type=prop_type, value=value)

    def as_str(self) -> Optional[str]:
        return self.value if self.type is PropertyType.STRING else None

    def as_int(self) -> Optional[int]:
        """Int value; floats are truncated."""
        if self.type is PropertyType.INT:
            return self.value
        if self.type is PropertyType.FLOAT:
            return int(self.value)
        return None

    def as_float(self) -> Optional[float]:
        if self.type in (PropertyType.INT, PropertyType.FLOAT):
            return float(self.value)
        return None

    def as_bool(self) -> Optional[bool]:
        return self.value if self.type is PropertyType.BOOL else None

    def as_color(self) -> Optional[Color]:
        return self.value if self.type is PropertyType.COLOR else None

    def as_file(self) -> Optional[str]:
        return self.value if self.type is PropertyType.FILE else None


def parse_properties(parent: ET.Element) -> Dict[str, Property]:
    """
    Read the <properties> child of an element, if any.

    Later definitions of the same name replace earlier ones, which is what
    object templates rely on (see objects.py).
    """
    properties: Dict[str, Property] = {}
    props_elem = parent.find('properties')
    if props_elem is not None:
        for prop_elem in props_elem.findall('property'):
            prop = Property.from_xml(prop_elem)
            properties[prop.name] = prop
    return properties

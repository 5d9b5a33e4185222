import xml.etree.ElementTree as ET

import pytest

from tmx_scene.errors import MalformedDocument, UnsupportedFeature
from tmx_scene.tmx.properties import Color, PropertyType, parse_properties


def _properties(body):
    return parse_properties(ET.fromstring(f'<map><properties>{body}</properties></map>'))


def test_color_forms():
    assert Color.parse("#ff102030") == Color(0x10, 0x20, 0x30, 0xFF)
    assert Color.parse("#80ff0000") == Color(255, 0, 0, 128)
    assert Color.parse("102030") == Color(0x10, 0x20, 0x30, 255)
    assert Color(255, 0, 0, 255).as_floats() == (1.0, 0.0, 0.0, 1.0)
    with pytest.raises(ValueError):
        Color.parse("#12345")


def test_typed_values():
    props = _properties(
        '<property name="title" value="Cave"/>'
        '<property name="hp" type="int" value="12"/>'
        '<property name="speed" type="float" value="1.5"/>'
        '<property name="solid" type="bool" value="true"/>'
        '<property name="glow" type="color" value="#ff00ff00"/>'
        '<property name="music" type="file" value="cave.ogg"/>'
        '<property name="target" type="object" value="7"/>'
    )
    assert list(props) == ["title", "hp", "speed", "solid", "glow", "music", "target"]
    assert props["title"].as_str() == "Cave"
    assert props["hp"].as_int() == 12
    assert props["speed"].as_float() == 1.5
    assert props["solid"].as_bool() is True
    assert props["glow"].as_color() == Color(0, 255, 0, 255)
    assert props["music"].as_file() == "cave.ogg"
    assert props["target"].type is PropertyType.INT
    assert props["target"].value == 7
    # Accessors of the wrong type give None
    assert props["title"].as_int() is None


def test_multiline_string_uses_text():
    props = _properties('<property name="dialog">Hello\nthere</property>')
    assert props["dialog"].value == "Hello\nthere"


def test_empty_color_is_none():
    props = _properties('<property name="c" type="color" value=""/>')
    assert props["c"].value is None


def test_class_property_is_unsupported():
    with pytest.raises(UnsupportedFeature):
        _properties('<property name="stats" type="class" propertytype="Stats"/>')


def test_bad_int_value():
    with pytest.raises(MalformedDocument):
        _properties('<property name="hp" type="int" value="lots"/>')


@pytest.mark.parametrize("raw", ["yes", "2", "on"])
def test_bad_bool_value(raw):
    with pytest.raises(MalformedDocument):
        _properties(f'<property name="solid" type="bool" value="{raw}"/>')


def test_bool_accepts_numeric_form():
    assert _properties('<property name="solid" type="bool" value="1"/>')["solid"].value is True


def test_no_properties():
    assert parse_properties(ET.fromstring('<map/>')) == {}

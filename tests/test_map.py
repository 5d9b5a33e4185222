import pytest

from builders import DictResolver, layer_xml, map_xml, tileset_xml
from tmx_scene.errors import CellCountMismatch, MalformedDocument, UnsupportedFeature
from tmx_scene.tmx.data import FlipFlags
from tmx_scene.tmx.layers import GroupLayer, ImageLayer, ObjectLayer, TileLayer
from tmx_scene.tmx.map import parse_map
from tmx_scene.tmx.projection import Orientation
from tmx_scene.tmx.properties import Color

GIDS = [1, 2, 0, 0,
        0, 3, 0, 0,
        0, 0, 0x80000004, 0,
        0, 0, 0, 0]


def _basic_map(**layer_kwargs):
    return map_xml(tileset_xml() + layer_xml(GIDS, 4, 4, **layer_kwargs))


def test_basic_map():
    document = parse_map(_basic_map(), reference="maps/level.tmx")
    assert (document.width, document.height) == (4, 4)
    assert (document.tile_width, document.tile_height) == (32, 32)
    assert document.projection.orientation is Orientation.ORTHOGONAL
    assert document.render_order == "right-down"
    assert len(document.tilesets) == 1
    layer = document.layers[0]
    assert isinstance(layer, TileLayer)
    assert layer.cell(1, 1) == (3, FlipFlags())
    assert layer.cell(2, 2) == (4, FlipFlags(horizontal=True))
    with pytest.raises(IndexError):
        layer.cell(4, 0)


@pytest.mark.parametrize("encoding, compression", [
    ("csv", None), ("base64", None), ("base64", "gzip"), ("base64", "zlib"),
    ("base64", "zstd"), (None, None),
])
def test_encodings_give_identical_layers(encoding, compression):
    reference = parse_map(_basic_map()).layers[0].cells
    document = parse_map(_basic_map(encoding=encoding, compression=compression))
    assert document.layers[0].cells == reference


def test_same_bytes_parse_equal():
    data = _basic_map(encoding="base64", compression="zlib")
    assert parse_map(data) == parse_map(data)


def test_layer_attributes_and_tree():
    body = (
        tileset_xml()
        + '<group id="10" name="Decor" offsetx="10" opacity="0.5" tintcolor="#ff0000">'
        + layer_xml([0] * 16, 4, 4, name="Trees", layer_id=11,
                    attrs='visible="0" parallaxx="0.5" offsety="4"')
        + '<imagelayer id="12" name="Sky" repeatx="1"><image source="sky.png" width="640" height="480"/></imagelayer>'
        + '</group>'
        + '<objectgroup id="13" name="Things" draworder="index"><object id="1" x="1" y="2"/></objectgroup>'
    )
    document = parse_map(map_xml(body, attrs='backgroundcolor="#203040"'))
    assert document.background_color == Color(0x20, 0x30, 0x40)

    group = document.layers[0]
    assert isinstance(group, GroupLayer)
    assert group.offset == (10, 0)
    assert group.opacity == 0.5
    assert group.tint == Color(255, 0, 0)

    trees, sky = group.layers
    assert not trees.visible
    assert trees.parallax == (0.5, 1.0)
    assert trees.offset == (0, 4)
    assert isinstance(sky, ImageLayer)
    assert sky.repeat_x and not sky.repeat_y
    assert sky.image.source == "sky.png"

    things = document.layers[1]
    assert isinstance(things, ObjectLayer)
    assert things.draw_order == "index"

    assert [layer.name for layer in document.iter_layers()] == ["Decor", "Trees", "Sky", "Things"]
    assert document.find_layer("Sky") is sky
    assert document.find_layer("Nope") is None
    assert [(z, obj.id) for z, obj in document.iter_objects()] == [(2, 1)]


def test_map_properties():
    body = '<properties><property name="music" type="file" value="cave.ogg"/></properties>'
    document = parse_map(map_xml(body))
    assert document.properties["music"].value == "cave.ogg"


def test_external_tileset_through_resolver():
    tsx = tileset_xml(name="terrain").replace(' firstgid="1"', '')
    resolver = DictResolver(files={"tilesets/terrain.tsx": tsx})
    data = map_xml('<tileset firstgid="1" source="../tilesets/terrain.tsx"/>'
                   + layer_xml(GIDS, 4, 4))
    document = parse_map(data, resolver, reference="maps/level.tmx")
    assert document.tilesets[0].source == "tilesets/terrain.tsx"
    assert resolver.requests == ["tilesets/terrain.tsx"]


@pytest.mark.parametrize("data, error", [
    (b"<map", MalformedDocument),
    (b"<tileset/>", MalformedDocument),
    (map_xml("", width=0), MalformedDocument),
    (map_xml("", orientation="spherical"), MalformedDocument),
    (map_xml("").replace(b'infinite="0"', b'infinite="1"'), UnsupportedFeature),
    (map_xml("").replace(b"right-down", b"left-up"), UnsupportedFeature),
    (map_xml(tileset_xml() + layer_xml([1, 2, 3], 2, 2), width=2, height=2), CellCountMismatch),
])
def test_rejected_documents(data, error):
    with pytest.raises(error):
        parse_map(data)


@pytest.mark.parametrize("body", [
    layer_xml([1, 2, 3, 4], 2, 2),
    '<group id="5" name="G">' + layer_xml([1, 2, 3, 4], 2, 2) + '</group>',
])
def test_layer_smaller_than_map(body):
    # Four cells each, but the map is 4x4
    with pytest.raises(CellCountMismatch) as info:
        parse_map(map_xml(tileset_xml() + body))
    assert info.value.expected == 16
    assert info.value.actual == 4


def test_layer_size_defaults_to_map():
    document = parse_map(map_xml(tileset_xml() + '<layer id="1" name="L"><data encoding="csv">'
                                 + ",".join(["1"] * 16) + '</data></layer>'))
    layer = document.layers[0]
    assert (layer.width, layer.height) == (4, 4)
    assert layer.cell(3, 3) == (1, FlipFlags())


def test_layer_without_data_is_empty():
    document = parse_map(map_xml('<layer id="1" name="L" width="4" height="4"/>'))
    assert len(document.layers[0].cells) == 16
    assert len(document.layers[0].cells.occupied()) == 0

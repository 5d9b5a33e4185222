import xml.etree.ElementTree as ET

import pytest

from builders import DictResolver, tileset_xml
from tmx_scene.errors import ExternalResourceUnavailable, MalformedDocument, UnresolvedTileId
from tmx_scene.tmx.objects import ObjectShape
from tmx_scene.tmx.tileset import (
    Frame, Rect, Tileset, TilesetTable, parse_tileset_element,
)


def _tileset(xml, resolver=None, document="maps/level.tmx"):
    return parse_tileset_element(ET.fromstring(xml), document, resolver)


def test_inline_tileset_derives_columns_and_count():
    tileset = _tileset(tileset_xml(image_width=128, image_height=64))
    assert tileset.columns == 4
    assert tileset.tile_count == 8
    assert tileset.image.source == "maps/terrain.png"
    assert tileset.source is None
    assert not tileset.is_collection


def test_columns_with_margin_and_spacing():
    # 54px = 2 + 3 * 16 + 2 * 1 + 2
    tileset = _tileset(tileset_xml(tile_width=16, tile_height=16, image_width=54,
                                   image_height=54, margin=2, spacing=1))
    assert tileset.columns == 3
    assert tileset.region(2) == Rect(2 + 2 * 17, 2, 16, 16)
    assert tileset.region(4) == Rect(2 + 17, 2 + 17, 16, 16)


def test_declared_columns_too_wide():
    with pytest.raises(MalformedDocument, match="columns"):
        _tileset(tileset_xml(image_width=64, columns=3))


def test_missing_image_size_asks_resolver():
    resolver = DictResolver(images={"maps/terrain.png": (96, 32)})
    tileset = _tileset(tileset_xml(image_width=None), resolver)
    assert (tileset.image.width, tileset.image.height) == (96, 32)
    assert tileset.columns == 3
    assert resolver.requests == ["maps/terrain.png"]


def test_missing_image_size_without_resolver():
    with pytest.raises(ExternalResourceUnavailable):
        _tileset(tileset_xml(image_width=None))


def test_external_tileset_paths_relative_to_tsx():
    tsx = tileset_xml(firstgid=99, name="items").replace(' firstgid="99"', '')
    resolver = DictResolver(files={"tilesets/items.tsx": tsx})
    tileset = _tileset('<tileset firstgid="101" source="../tilesets/items.tsx"/>', resolver)
    assert tileset.first_gid == 101
    assert tileset.name == "items"
    assert tileset.source == "tilesets/items.tsx"
    assert tileset.image.source == "tilesets/terrain.png"


def test_external_tileset_resolver_failure_is_chained():
    resolver = DictResolver()
    with pytest.raises(ExternalResourceUnavailable) as info:
        _tileset('<tileset firstgid="1" source="gone.tsx"/>', resolver)
    assert info.value.reference == "maps/gone.tsx"
    assert isinstance(info.value.__cause__, KeyError)


def test_external_tileset_wrong_root():
    resolver = DictResolver(files={"maps/bad.tsx": "<map/>"})
    with pytest.raises(MalformedDocument):
        _tileset('<tileset firstgid="1" source="bad.tsx"/>', resolver)


def test_tile_metadata():
    body = (
        '<tileoffset x="0" y="-8"/>'
        '<tile id="3" type="water">'
        '  <properties><property name="speed" type="float" value="0.5"/></properties>'
        '  <animation><frame tileid="3" duration="100"/><frame tileid="4" duration="150"/></animation>'
        '  <objectgroup draworder="index"><object id="1" x="0" y="16" width="32" height="16"/></objectgroup>'
        '</tile>'
    )
    tileset = _tileset(tileset_xml(firstgid=10, body=body))
    assert tileset.tile_offset == (0, -8)
    meta = tileset.tiles[3]
    assert meta.type == "water"
    assert meta.properties["speed"].value == 0.5
    assert meta.frames == (Frame(3, 100), Frame(4, 150))
    assert meta.frame_gids(tileset.first_gid) == ((13, 100), (14, 150))
    assert meta.shapes[0].shape is ObjectShape.RECTANGLE
    assert meta.shapes[0].height == 16


def test_tile_shape_from_tile_template_cannot_be_remapped():
    template = ('<template><tileset firstgid="1" source="items.tsx"/>'
                '<object gid="2" width="16" height="16"/></template>')
    resolver = DictResolver(files={"maps/crate.tx": template})
    body = ('<tile id="0"><objectgroup>'
            '<object id="1" template="crate.tx" x="0" y="0"/>'
            '</objectgroup></tile>')
    with pytest.raises(UnresolvedTileId):
        _tileset(tileset_xml(body=body), resolver)


def test_image_collection():
    body = ('<tile id="0"><image source="tree.png" width="64" height="96"/></tile>'
            '<tile id="2"><image source="rock.png" width="32" height="32"/></tile>')
    tileset = _tileset(tileset_xml(image=None, body=body))
    assert tileset.is_collection
    assert tileset.tile_count == 3
    table = TilesetTable([tileset])
    tile = table.resolve(1)
    assert tile.image.source == "maps/tree.png"
    assert tile.region == Rect(0, 0, 64, 96)
    with pytest.raises(UnresolvedTileId):
        table.resolve(2)


@pytest.fixture
def table():
    return TilesetTable([
        _tileset(tileset_xml(firstgid=101, name="items", image_width=64, image_height=64)),
        _tileset(tileset_xml(firstgid=1, name="terrain", image_width=128, image_height=128)),
    ])


def test_table_is_sorted(table):
    assert [t.first_gid for t in table] == [1, 101]
    assert len(table) == 2
    assert table[1].name == "items"


@pytest.mark.parametrize("gid, name, local_id", [
    (1, "terrain", 0),
    (16, "terrain", 15),
    (101, "items", 0),
    (104, "items", 3),
])
def test_resolve_within_range(table, gid, name, local_id):
    tile = table.resolve(gid)
    assert tile.tileset.name == name
    assert tile.local_id == local_id
    assert 0 <= tile.local_id < tile.tileset.tile_count


@pytest.mark.parametrize("gid", [0, 17, 100, 105, 5000])
def test_resolve_outside_every_range(table, gid):
    with pytest.raises(UnresolvedTileId) as info:
        table.resolve(gid)
    assert info.value.gid == gid


def test_resolve_region(table):
    tile = table.resolve(6)
    # local 5 in a 4-column sheet: column 1, row 1
    assert tile.region == Rect(32, 32, 32, 32)
    assert tile.image.source == "maps/terrain.png"
    assert tile.meta is None


def test_overlapping_ranges():
    a = _tileset(tileset_xml(firstgid=1, name="a"))
    b = _tileset(tileset_xml(firstgid=10, name="b"))
    with pytest.raises(MalformedDocument, match="overlaps"):
        TilesetTable([a, b])


def test_first_gid_for_source():
    tileset = Tileset(first_gid=7, name="x", tile_width=8, tile_height=8, tile_count=1,
                      columns=1, source="tilesets/x.tsx")
    table = TilesetTable([tileset])
    assert table.first_gid_for("tilesets/x.tsx") == 7
    assert table.first_gid_for("tilesets/y.tsx") is None

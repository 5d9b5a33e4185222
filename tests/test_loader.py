import pytest
from PIL import Image

from builders import layer_xml, map_xml, tileset_xml
from tmx_scene.config import SceneConfig
from tmx_scene.errors import ExternalResourceUnavailable
from tmx_scene.loader import FileSystemResolver, load_map, load_scene


@pytest.fixture
def assets(tmp_path):
    (tmp_path / "maps").mkdir()
    (tmp_path / "tilesets").mkdir()
    Image.new("RGBA", (96, 64), (0, 0, 0, 0)).save(tmp_path / "tilesets" / "terrain.png")

    # Image size left out on purpose: it must be read from the PNG header
    tsx = tileset_xml(image_width=None).replace(' firstgid="1"', '')
    (tmp_path / "tilesets" / "terrain.tsx").write_text(tsx, encoding="utf-8")

    tmx = map_xml('<tileset firstgid="1" source="../tilesets/terrain.tsx"/>'
                  + layer_xml([1, 0, 0, 6], 2, 2, encoding="base64", compression="zlib"),
                  width=2, height=2)
    (tmp_path / "maps" / "level.tmx").write_bytes(tmx)
    return tmp_path


def test_resolver_reads_relative_to_root(assets):
    resolver = FileSystemResolver(assets)
    assert resolver.read("tilesets/terrain.tsx").startswith(b"<tileset")
    assert resolver.image_size("tilesets/terrain.png") == (96, 64)


def test_load_map(assets):
    document = load_map(assets / "maps" / "level.tmx")
    tileset = document.tilesets[0]
    assert tileset.source == "../tilesets/terrain.tsx"
    assert (tileset.image.width, tileset.image.height) == (96, 64)
    assert tileset.columns == 3
    assert tileset.tile_count == 6


def test_load_scene(assets):
    scene = load_scene(str(assets / "maps" / "level.tmx"), SceneConfig(scale=(0.5, 0.5)))
    drawables = list(scene.drawables())
    assert [d.position for d in drawables] == [(0.0, 0.0), (16.0, 16.0)]
    assert drawables[1].image.source == "../tilesets/terrain.png"


def test_missing_tileset_file(assets):
    (assets / "tilesets" / "terrain.tsx").unlink()
    with pytest.raises(ExternalResourceUnavailable) as info:
        load_map(assets / "maps" / "level.tmx")
    assert isinstance(info.value.__cause__, FileNotFoundError)


def test_missing_map_file(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_map(tmp_path / "nope.tmx")

"""
External resources: the resolver collaborator and image references

The parser never touches the filesystem or the network. Whenever a document
references another file (an external .tsx tileset, a .tx object template,
or an image whose size is not written in the document), it asks a
resolver:

    class MyResolver:
        def read(self, reference: str) -> bytes: ...
        def image_size(self, reference: str) -> Tuple[int, int]: ...

References are POSIX-style paths, relative to the document that mentions
them. join_reference() resolves them the same way Tiled does:

    join_reference("maps/level1.tmx", "../tilesets/terrain.tsx")
        -> "tilesets/terrain.tsx"

    and an image inside that TSX:
    join_reference("tilesets/terrain.tsx", "terrain.png")
        -> "tilesets/terrain.png"

tmx_scene.loader.FileSystemResolver is a ready-made implementation.
"""

import logging
import posixpath
from dataclasses import dataclass
from typing import Optional, Protocol, Tuple
import xml.etree.ElementTree as ET

from ..errors import ExternalResourceUnavailable, UnsupportedFeature
from .properties import Color, parse_color_attribute
from .reader import get_int, require_str

logger = logging.getLogger(__name__)


class ResourceResolver(Protocol):
    """Supplies bytes and image dimensions for referenced files."""

    def read(self, reference: str) -> bytes:
        ...

    def image_size(self, reference: str) -> Tuple[int, int]:
        ...


def join_reference(document: str, relative: str) -> str:
    """
    Resolve a reference found inside `document` to a root-relative one.

    Absolute references and URLs with a scheme are returned unchanged.
    """
    if posixpath.isabs(relative) or '://' in relative:
        return relative
    base = posixpath.dirname(document)
    return posixpath.normpath(posixpath.join(base, relative))


def read_resource(resolver: Optional[ResourceResolver], reference: str) -> bytes:
    """
    Fetch document bytes through the resolver.

    Raises:
    -------
    ExternalResourceUnavailable : No resolver, or the resolver failed.
        The resolver's exception is chained, not interpreted.
    """
    if resolver is None:
        raise ExternalResourceUnavailable(reference) from LookupError("no resolver configured")
    try:
        data = resolver.read(reference)
    except Exception as e:
        logger.debug("Resolver could not read %s: %s", reference, e)
        raise ExternalResourceUnavailable(reference) from e
    logger.debug("Read %s (%d bytes)", reference, len(data))
    return data


def resource_image_size(resolver: Optional[ResourceResolver], reference: str) -> Tuple[int, int]:
    """Ask the resolver for the pixel size of an image."""
    if resolver is None:
        raise ExternalResourceUnavailable(reference) from LookupError("no resolver configured")
    try:
        width, height = resolver.image_size(reference)
    except Exception as e:
        logger.debug("Resolver could not size image %s: %s", reference, e)
        raise ExternalResourceUnavailable(reference) from e
    return int(width), int(height)


# =============================================================================
# IMAGE REFERENCE
# =============================================================================

@dataclass(frozen=True)
class ImageRef:
    """
    Image used by a tileset, a collection tile or an image layer.

    Only the reference and the pixel size are kept. Loading pixels is the
    job of whoever consumes the scene.

    source : str
        Root-relative reference (already joined with the document path)
    width, height : int
        Image size in pixels
    trans : Color, optional
        Color to treat as transparent
    """
    source: str
    width: int
    height: int
    trans: Optional[Color] = None

    @classmethod
    def from_xml(cls, elem: ET.Element, document: str,
                 resolver: Optional[ResourceResolver] = None) -> 'ImageRef':
        """
        Parse an <image> element.

        When the width/height attributes are missing the size is requested
        from the resolver.
        """
        if elem.get('source') is None and elem.find('data') is not None:
            raise UnsupportedFeature("embedded image data")

        source = join_reference(document, require_str(elem, 'source'))
        width = get_int(elem, 'width')
        height = get_int(elem, 'height')
        if width is None or height is None:
            width, height = resource_image_size(resolver, source)

        return cls(source=source, width=width, height=height,
                   trans=parse_color_attribute(elem, 'trans'))

"""
Exceptions raised while parsing TMX documents and assembling scenes

=============================================================================
ERROR MODEL
=============================================================================

Every failure is terminal for the parse (or scene build) that raised it.
Nothing is retried and no partial scene is returned:

    TmxError
    ├── MalformedDocument            XML syntax error / bad or missing attribute
    ├── UnsupportedFeature           valid file, feature not implemented
    ├── CellCountMismatch            tile data length != width * height
    ├── DecompressionFailure         corrupt gzip / zlib / zstd stream
    ├── UnresolvedTileId             GID outside every tileset
    └── ExternalResourceUnavailable  the resolver could not supply a file

Catch TmxError to handle all of them at once.

=============================================================================
"""

from typing import Optional


class TmxError(Exception):
    """Base class of every error raised by tmx_scene."""


class MalformedDocument(TmxError):
    """
    XML syntax error or missing / invalid mandatory attribute.

    Parameters:
    -----------
    message : str
        What went wrong
    reference : str, optional
        Reference string of the document (e.g. "maps/level1.tmx")
    line, column : int, optional
        Position of a syntax error, as reported by the XML parser
    element : str, optional
        Short description of the offending element, e.g. '<tileset name="terrain">'
    """

    def __init__(self, message: str, reference: Optional[str] = None,
                 line: Optional[int] = None, column: Optional[int] = None,
                 element: Optional[str] = None):
        self.message = message
        self.reference = reference
        self.line = line
        self.column = column
        self.element = element
        super().__init__(self._format())

    def _format(self) -> str:
        location = []
        if self.reference:
            location.append(self.reference)
        if self.line is not None:
            location.append(f"line {self.line}")
            if self.column is not None:
                location.append(f"column {self.column}")
        if self.element:
            location.append(f"in {self.element}")
        if location:
            return f"{self.message} ({', '.join(location)})"
        return self.message


class UnsupportedFeature(TmxError):
    """A recognized TMX feature that this loader does not implement."""

    def __init__(self, feature: str, detail: str = ""):
        self.feature = feature
        message = f"unsupported feature: {feature}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class CellCountMismatch(TmxError):
    """Decoded tile data does not contain exactly width * height cells."""

    def __init__(self, expected: int, actual: int, detail: str = ""):
        self.expected = expected
        self.actual = actual
        message = f"expected {expected} cells, decoded {actual}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)


class DecompressionFailure(TmxError):
    """A compressed tile-data payload is corrupt or truncated."""

    def __init__(self, compression: str, detail: str = ""):
        self.compression = compression
        message = f"could not decompress {compression} tile data"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class UnresolvedTileId(TmxError):
    """A global tile id has no owning tileset, or exceeds its tile count."""

    def __init__(self, gid: int, detail: str = ""):
        self.gid = gid
        message = f"unresolved tile id {gid}"
        if detail:
            message += f": {detail}"
        super().__init__(message)


class ExternalResourceUnavailable(TmxError):
    """
    The external resolver failed to supply a referenced file.

    The resolver's own exception is chained as __cause__ and not
    interpreted here.
    """

    def __init__(self, reference: str):
        self.reference = reference
        super().__init__(f"external resource unavailable: {reference}")

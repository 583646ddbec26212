#
# PROJECT: model-viewer-core
# MODULE: model_viewer/registry.py
# STATUS: Level 2 - Implementation
# LOG_REF: 2026-10-19
#

import enum
import logging
import os
from typing import Dict, List, Optional

from .errors import ContentEncodingError, UnsupportedFormat
from .parsed import ParsedObject

logger = logging.getLogger(__name__)


class Encoding(enum.Enum):
    TEXT = "text"
    BINARY = "binary"
    ANY = "text or binary"


class Decoder:
    """
    Base class for format decoders.

    Subclasses set ``extensions`` (lower-case, with dot), ``encoding`` and
    optionally a binary ``signature`` prefix, and implement ``decode``.
    ``decode`` raises ParseFailure for malformed content.
    """
    name = "decoder"
    extensions: tuple = ()
    encoding = Encoding.BINARY
    signature: Optional[bytes] = None

    def accepts(self, content) -> bool:
        if self.encoding is Encoding.TEXT:
            return isinstance(content, str)
        if self.encoding is Encoding.BINARY:
            return isinstance(content, (bytes, bytearray, memoryview))
        return isinstance(content, (str, bytes, bytearray, memoryview))

    def matches_signature(self, content) -> bool:
        if self.signature is None or not isinstance(content, (bytes, bytearray)):
            return False
        return bytes(content[:len(self.signature)]) == self.signature

    def decode(self, filename: str, content) -> ParsedObject:
        raise NotImplementedError


def file_extension(filename: str) -> str:
    return os.path.splitext(filename)[1].lower()


class FormatRegistry:
    """Maps file extensions (and binary signatures) to decoders."""

    def __init__(self):
        self._by_extension: Dict[str, Decoder] = {}
        self._decoders: List[Decoder] = []

    def register(self, decoder: Decoder) -> Decoder:
        for ext in decoder.extensions:
            if ext in self._by_extension:
                logger.debug("Decoder %s overrides %s for %s",
                              decoder.name, self._by_extension[ext].name, ext)
            self._by_extension[ext] = decoder
        self._decoders.append(decoder)
        return decoder

    @property
    def extensions(self):
        return sorted(self._by_extension)

    def decoder_for(self, filename: str, content=None) -> Decoder:
        """Resolve by extension; fall back to signature sniffing only
        when the name carries no extension at all."""
        ext = file_extension(filename)
        if ext:
            decoder = self._by_extension.get(ext)
            if decoder is None:
                raise UnsupportedFormat(filename, ext)
            return decoder
        for decoder in self._decoders:
            if decoder.matches_signature(content):
                logger.debug("Sniffed %s as %s", filename, decoder.name)
                return decoder
        raise UnsupportedFormat(filename, ext)

    def parse(self, filename: str, content) -> ParsedObject:
        """
        Decode ``content`` into an intermediate parsed object.

        Raises UnsupportedFormat, ContentEncodingError (caller passed text
        to a binary format or vice versa) or ParseFailure. Decoder errors
        are propagated untouched.
        """
        decoder = self.decoder_for(filename, content)
        if not decoder.accepts(content):
            raise ContentEncodingError(filename, decoder.encoding.value, type(content))
        if isinstance(content, (bytearray, memoryview)):
            content = bytes(content)
        logger.debug("Parsing %s with %s decoder", filename, decoder.name)
        return decoder.decode(filename, content)


def default_registry(resolver=None) -> FormatRegistry:
    """All built-in decoders. ``resolver`` fetches external glTF buffers."""
    from .fbx import FbxDecoder
    from .gltf import GlbDecoder, GltfDecoder
    from .trimesh_formats import ObjDecoder, StlDecoder

    registry = FormatRegistry()
    registry.register(GltfDecoder(resolver))
    registry.register(GlbDecoder(resolver))
    registry.register(ObjDecoder())
    registry.register(FbxDecoder())
    registry.register(StlDecoder())
    return registry
